"""
OpenAlex works reader.

Architecture Context
--------------------
    record = fetch("10.7554/elife.01567")            # by DOI
    record = fetch("https://openalex.org/W2741809807")
    records = fetch_all(QueryOptions(ror="02nr0ka47", number=20))

``read`` is a pure mapping of one work object. ``fetch`` additionally
resolves what a work only references by OpenAlex id: the cited works
(in batches of REFERENCE_BATCH_SIZE) and the funders of its grants.

Design Decisions
----------------
1. **Abstract**: OpenAlex ships abstracts as an inverted index
   ``{word: [positions]}``; the text is rebuilt by position.
2. **Type**: ``type_crossref`` is preferred because it is finer grained;
   the OpenAlex ``type`` becomes ``additionalType`` when it differs.
3. **Identifiers**: the work's OpenAlex, DOI, MAG, PMID and PMCID ids are
   all kept as identifiers.
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from commonmeta.core.config import get_settings
from commonmeta.core.exceptions import InvalidIdentifierError, NotFoundError
from commonmeta.core.http import HttpClient, get_client
from commonmeta.core.logging import get_logger
from commonmeta.formats.base import (
    PathLike,
    QueryOptions,
    load_content,
    read_each,
    unwrap_items,
)
from commonmeta.formats.crossref.reader import CR_TO_CM_MAPPINGS
from commonmeta.model.record import (
    Affiliation,
    Container,
    Contributor,
    Date,
    Description,
    File,
    FundingReference,
    Identifier,
    License,
    Publisher,
    Record,
    Reference,
    Relation,
    Subject,
    Title,
)
from commonmeta.utils.authors import parse_name
from commonmeta.utils.dates import parse_date
from commonmeta.utils.doi import normalize_doi, validate_doi
from commonmeta.utils.identifiers import (
    issn_as_url,
    normalize_orcid,
    normalize_ror,
    normalize_url,
    validate_openalex,
    validate_orcid,
    validate_ror,
)
from commonmeta.utils.text import sanitize
from commonmeta.vocabularies.spdx import spdx_to_url

logger = get_logger(__name__)

API_URL = "https://api.openalex.org"
OPENALEX_URL = "https://openalex.org/"

# the OpenAlex filter syntax accepts at most 50 values joined with "|"
REFERENCE_BATCH_SIZE = 49

OA_TO_CM_MAPPINGS = {
    "article": "Article",
    "book": "Book",
    "book-chapter": "BookChapter",
    "dataset": "Dataset",
    "dissertation": "Dissertation",
    "editorial": "Document",
    "erratum": "Other",
    "grant": "Grant",
    "letter": "Article",
    "libguides": "InteractiveResource",
    "other": "Other",
    "paratext": "Component",
    "peer-review": "PeerReview",
    "preprint": "Article",
    "reference-entry": "Other",
    "report": "Report",
    "retraction": "Other",
    "review": "Article",
    "standard": "Standard",
    "supplementary-materials": "Component",
}

OA_CONTAINER_TYPES = {
    "journal": "Journal",
    "proceedings": "Proceedings",
    "reference": "Collection",
    "repository": "Repository",
    "book-series": "BookSeries",
    "book": "Book",
    "report-series": "ReportSeries",
}

OA_IDENTIFIER_TYPES = {
    "openalex": "OpenAlex",
    "doi": "DOI",
    "mag": "Other",
    "pmid": "PMID",
    "pmcid": "PMCID",
}

OA_LICENSES = {
    "cc-by": "CC-BY-4.0",
    "cc-by-sa": "CC-BY-SA-4.0",
    "cc-by-nc": "CC-BY-NC-4.0",
    "cc-by-nd": "CC-BY-ND-4.0",
    "cc-by-nc-sa": "CC-BY-NC-SA-4.0",
    "cc-by-nc-nd": "CC-BY-NC-ND-4.0",
    "cc0": "CC0-1.0",
    "public-domain": "CC0-1.0",
    "mit": "MIT",
    "apache-2-0": "Apache-2.0",
}

QUERY_FLAGS = (
    ("has_abstract", "has_abstract:true"),
    ("has_orcid", "has_orcid:true"),
    ("has_references", "referenced_works_count:>0"),
    ("has_award", "grants.funder:!null"),
    ("has_license", "best_oa_location.license:!null"),
)


# ============================================================================
# Network
# ============================================================================


def _params(params: List[Tuple[str, str]]) -> str:
    email = get_settings().email
    if email:
        params = params + [("mailto", email)]
    return urlencode(params, safe=":|,>!")


def work_url(pid: str) -> str:
    """API URL of one work, addressed by OpenAlex id or by DOI."""
    openalex_id, ok = validate_openalex(pid)
    if ok:
        return f"{API_URL}/works/{openalex_id}?{_params([])}"
    doi, ok = validate_doi(pid)
    if ok:
        return f"{API_URL}/works/doi:{doi}?{_params([])}"
    raise InvalidIdentifierError(
        f"{pid} is neither a DOI nor an OpenAlex id",
        how_to_fix=["Pass a DOI (10.xxxx/...) or an OpenAlex work id (W...)"],
    )


def query_url(options: QueryOptions) -> str:
    """Build the works list URL for a query.

    ``sample`` returns a random selection of ``number`` works instead of
    a page.
    """
    number = options.clamped_number()
    params: List[Tuple[str, str]] = [("per-page", str(number))]
    if options.sample:
        params.append(("sample", str(number)))
    else:
        params.append(("page", str(options.clamped_page())))
        params.append(("sort", "publication_date:desc"))

    filters = []
    if options.type and options.type in OA_TO_CM_MAPPINGS:
        filters.append(f"type:{options.type}")
    if options.year:
        filters.append(f"publication_year:{options.year}")
    if options.language:
        filters.append(f"language:{options.language}")
    if options.orcid:
        orcid, ok = validate_orcid(options.orcid)
        if ok:
            filters.append(f"authorships.author.orcid:{orcid}")
    if options.ror:
        ror, ok = validate_ror(options.ror)
        if ok:
            filters.append(f"authorships.institutions.ror:{ror}")
    for attribute, value in QUERY_FLAGS:
        if getattr(options, attribute):
            filters.append(value)
    if filters:
        params.append(("filter", ",".join(filters)))
    return f"{API_URL}/works?{_params(params)}"


def get(pid: str, client: Optional[HttpClient] = None) -> Dict[str, Any]:
    """Return one OpenAlex work object.

    Raises:
        InvalidIdentifierError: neither a DOI nor an OpenAlex id
        NotFoundError: unknown work
    """
    client = client or get_client()
    content = client.get_json(work_url(pid))
    if not isinstance(content, dict) or not content.get("id"):
        raise NotFoundError(f"No OpenAlex work found for {pid}")
    return content


def get_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Dict[str, Any]]:
    client = client or get_client()
    url = query_url(options)
    logger.debug("Querying OpenAlex", url=url)
    return unwrap_items(client.get_json(url), "results")


def _get_batched(entity: str, ids: List[str], client: HttpClient) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    for start in range(0, len(ids), REFERENCE_BATCH_SIZE):
        batch = ids[start:start + REFERENCE_BATCH_SIZE]
        params = [
            ("filter", "ids.openalex:" + "|".join(batch)),
            ("per-page", str(REFERENCE_BATCH_SIZE)),
        ]
        content = client.get_json(f"{API_URL}/{entity}?{_params(params)}")
        results.extend(unwrap_items(content, "results"))
    return results


def get_works(ids: List[str], client: Optional[HttpClient] = None) -> List[Dict[str, Any]]:
    """Resolve OpenAlex work ids in batches, keeping only valid ids."""
    client = client or get_client()
    valid = [v for v, ok in (validate_openalex(i) for i in ids) if ok]
    return _get_batched("works", valid, client)


def get_funders(ids: List[str], client: Optional[HttpClient] = None) -> List[Dict[str, Any]]:
    client = client or get_client()
    valid = [v for v, ok in (validate_openalex(i) for i in ids) if ok]
    return _get_batched("funders", valid, client)


def fetch(pid: str, client: Optional[HttpClient] = None) -> Record:
    """Fetch a work with its cited works and grant funders resolved."""
    client = client or get_client()
    work = get(pid, client)
    referenced = get_works(work.get("referenced_works") or [], client)
    funder_ids = [g.get("funder", "") for g in work.get("grants") or []]
    funders = get_funders(funder_ids, client) if funder_ids else []
    return read(work, referenced_works=referenced, funders=funders)


def fetch_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Record]:
    """Fetch a page of works; cited works are kept as OpenAlex ids."""
    return read_all(get_all(options, client))


def load(filename: PathLike) -> Record:
    return read(load_content(filename, (".json",)))


def load_all(filename: PathLike) -> List[Record]:
    content = load_content(filename, (".json", ".jsonl", ".jsonlines"))
    return read_all(unwrap_items(content, "results"))


# ============================================================================
# Mapping
# ============================================================================


def get_abstract(inverted_index: Optional[Dict[str, List[int]]]) -> str:
    """Rebuild abstract text from an OpenAlex inverted index.

    Example:
        get_abstract({"Hello": [0], "world": [1, 3], "again": [2]})
        # "Hello world again world"
    """
    if not inverted_index:
        return ""
    positions = {}
    for word, indexes in inverted_index.items():
        for index in indexes:
            positions[index] = word
    return " ".join(positions[i] for i in sorted(positions))


def get_contributors(authorships: List[Dict[str, Any]]) -> List[Contributor]:
    contributors: List[Contributor] = []
    for authorship in authorships:
        author = authorship.get("author") or {}
        name = author.get("display_name") or authorship.get("raw_author_name") or ""
        orcid = normalize_orcid(author.get("orcid"))
        if not name and not orcid:
            continue
        if orcid and any(c.id == orcid for c in contributors):
            continue
        affiliations = [
            Affiliation(id=normalize_ror(i.get("ror")), name=i.get("display_name", ""))
            for i in authorship.get("institutions") or []
            if i.get("display_name") or i.get("ror")
        ]
        given_name, family_name, organization = parse_name(name)
        if organization and not orcid:
            contributors.append(
                Contributor(type="Organization", name=organization, contributor_roles=["Author"])
            )
            continue
        contributors.append(
            Contributor(
                id=orcid,
                type="Person",
                name="" if family_name else name,
                given_name=given_name,
                family_name=family_name,
                affiliations=affiliations,
                contributor_roles=["Author"],
            )
        )
    return contributors


def get_container(content: Dict[str, Any]) -> Optional[Container]:
    source = (content.get("primary_location") or {}).get("source") or {}
    biblio = content.get("biblio") or {}
    if not source and not any(biblio.values()):
        return None
    container = Container(
        type=OA_CONTAINER_TYPES.get(source.get("type", ""), ""),
        title=source.get("display_name") or "",
        volume=biblio.get("volume") or "",
        issue=biblio.get("issue") or "",
        first_page=biblio.get("first_page") or "",
        last_page=biblio.get("last_page") or "",
    )
    if source.get("issn_l"):
        container.identifier, container.identifier_type = source["issn_l"], "ISSN"
    elif source.get("homepage_url"):
        container.identifier, container.identifier_type = source["homepage_url"], "URL"
    return container


def get_identifiers(ids: Dict[str, Any]) -> List[Identifier]:
    identifiers = []
    for key, value in ids.items():
        identifier_type = OA_IDENTIFIER_TYPES.get(key)
        if not identifier_type or not value:
            continue
        if identifier_type == "DOI":
            value = normalize_doi(value)
        identifiers.append(Identifier(identifier=str(value), identifier_type=identifier_type))
    return identifiers


def get_license(content: Dict[str, Any]) -> Optional[License]:
    location = content.get("best_oa_location") or content.get("primary_location") or {}
    value = location.get("license")
    if not value:
        return None
    license_id = OA_LICENSES.get(value.lower(), "")
    url = spdx_to_url(license_id)
    if not license_id or not url:
        return None
    return License(id=license_id, url=url)


def get_reference(work: Dict[str, Any], key: str) -> Reference:
    publication_date = work.get("publication_date") or ""
    doi = normalize_doi(work.get("doi"))
    return Reference(
        key=key,
        id=doi or work.get("id", ""),
        title=sanitize(work.get("title") or ""),
        publication_year=str(work.get("publication_year") or publication_date[:4]),
    )


def get_references(
    content: Dict[str, Any], referenced_works: Optional[List[Dict[str, Any]]] = None
) -> List[Reference]:
    if referenced_works is not None:
        references = [get_reference(w, f"ref{i + 1}") for i, w in enumerate(referenced_works)]
        return [r for r in references if r.id or r.title]
    return [
        Reference(key=f"ref{i + 1}", id=OPENALEX_URL + openalex_id)
        for i, (openalex_id, ok) in enumerate(
            validate_openalex(w) for w in content.get("referenced_works") or []
        )
        if ok
    ]


def get_funding_references(
    grants: List[Dict[str, Any]], funders: Optional[List[Dict[str, Any]]] = None
) -> List[FundingReference]:
    by_id = {f.get("id"): f for f in funders or []}
    references = []
    for grant in grants:
        funder = by_id.get(grant.get("funder"), {})
        name = funder.get("display_name") or grant.get("funder_display_name") or ""
        if not name:
            continue
        ror = normalize_ror((funder.get("ids") or {}).get("ror"))
        references.append(
            FundingReference(
                funder_name=name,
                funder_identifier=ror,
                funder_identifier_type="ROR" if ror else "",
                award_number=grant.get("award_id") or "",
            )
        )
    return references


def read(
    content: Dict[str, Any],
    referenced_works: Optional[List[Dict[str, Any]]] = None,
    funders: Optional[List[Dict[str, Any]]] = None,
) -> Record:
    """Convert an OpenAlex work to a Commonmeta record.

    Args:
        content: Work object as returned by the API
        referenced_works: Resolved cited works; when None the references
            carry the OpenAlex ids only
        funders: Resolved funders of the work's grants
    """
    pid = normalize_doi(content.get("doi")) or content.get("id", "")
    if not pid:
        raise ValueError("OpenAlex work has neither DOI nor id")

    oa_type = content.get("type", "")
    work_type = CR_TO_CM_MAPPINGS.get(content.get("type_crossref", ""), "")
    work_type = work_type or OA_TO_CM_MAPPINGS.get(oa_type, "Other")
    additional_type = OA_TO_CM_MAPPINGS.get(oa_type, "")
    if additional_type == work_type:
        additional_type = ""

    primary_location = content.get("primary_location") or {}
    source = primary_location.get("source") or {}
    url = normalize_url(primary_location.get("landing_page_url") or content.get("id"))

    title = sanitize(content.get("title") or content.get("display_name") or "")
    abstract = sanitize(get_abstract(content.get("abstract_inverted_index")))

    subjects = []
    for topic in content.get("topics") or []:
        subfield = (topic.get("subfield") or {}).get("display_name")
        if subfield:
            subjects.append(Subject(subject=subfield))

    files = []
    pdf_url = (content.get("best_oa_location") or {}).get("pdf_url")
    if pdf_url:
        files.append(File(url=pdf_url, mime_type="application/pdf"))

    container = get_container(content)
    relations = []
    if container is not None and container.identifier_type == "ISSN":
        relations.append(Relation(id=issn_as_url(container.identifier), type="IsPartOf"))

    publisher = source.get("host_organization_name")
    return Record(
        id=pid,
        type=work_type,
        additional_type=additional_type,
        container=container,
        contributors=get_contributors(content.get("authorships") or []),
        date=Date(
            published=parse_date(content.get("publication_date")),
            created=parse_date(content.get("created_date")),
            updated=parse_date(content.get("updated_date")),
        ),
        descriptions=[Description(description=abstract, type="Abstract")] if abstract else [],
        files=files,
        funding_references=get_funding_references(content.get("grants") or [], funders),
        identifiers=get_identifiers(content.get("ids") or {}),
        language=content.get("language") or "",
        license=get_license(content),
        provider="OpenAlex",
        publisher=Publisher(name=publisher) if publisher else None,
        references=get_references(content, referenced_works),
        relations=relations,
        subjects=subjects,
        titles=[Title(title=title)] if title else [],
        url=url,
        version=content.get("version") or "",
    )


def read_all(items: List[Dict[str, Any]]) -> List[Record]:
    return read_each(items, read, "openalex.read_all")
