"""
Crossref REST API reader.

Architecture Context
--------------------
    record = fetch("10.7554/elife.01567")
    records = fetch_all(QueryOptions(member="340", number=20, has_orcid=True))

A work is fetched from ``https://api.crossref.org/works/<doi>``; the API
wraps it as ``{"status": "ok", "message-type": "work", "message": {...}}``.
List queries return ``message.items``. Requests carry the polite-pool
``mailto`` when an email is configured.

Design Decisions
----------------
1. **Published date**: published, then issued, then created; date-time
   wins over date-parts within each.
2. **Container identifier**: electronic ISSN, print ISSN, electronic ISBN,
   print ISBN. When both ISSNs exist, the print ISSN is kept as a secondary
   identifier of the record.
3. **Relations by table**: ``relation`` keys are mapped through a fixed
   table in a fixed order, then sorted by type.
"""

import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

from commonmeta.core.config import get_settings
from commonmeta.core.exceptions import InvalidIdentifierError, NotFoundError
from commonmeta.core.http import HttpClient, get_client
from commonmeta.core.logging import get_logger
from commonmeta.formats.base import (
    PathLike,
    QueryOptions,
    first,
    load_content,
    read_each,
    unwrap_items,
)
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
    dedupe_contributors,
)
from commonmeta.ror.reader import map_ror
from commonmeta.utils.dates import get_date_from_date_parts
from commonmeta.utils.doi import normalize_doi, validate_doi
from commonmeta.utils.identifiers import (
    community_slug_as_url,
    issn_as_url,
    normalize_ror,
    normalize_url,
    validate_orcid,
    validate_ror,
    validate_url,
)
from commonmeta.utils.text import sanitize_text, strip_jats_title, words_to_camel_case
from commonmeta.vocabularies.spdx import normalize_cc_url, url_to_spdx

logger = get_logger(__name__)

API_URL = "https://api.crossref.org/works"
MEMBERS_URL = "https://api.crossref.org/members"

# ============================================================================
# Mapping tables
# ============================================================================

CR_TO_CM_MAPPINGS = {
    "book-chapter": "BookChapter",
    "book-part": "BookPart",
    "book-section": "BookSection",
    "book-series": "BookSeries",
    "book-set": "BookSet",
    "book-track": "BookTrack",
    "book": "Book",
    "component": "Component",
    "database": "Database",
    "dataset": "Dataset",
    "dissertation": "Dissertation",
    "edited-book": "Book",
    "grant": "Grant",
    "journal-article": "JournalArticle",
    "journal-issue": "JournalIssue",
    "journal-volume": "JournalVolume",
    "journal": "Journal",
    "monograph": "Book",
    "other": "Other",
    "peer-review": "PeerReview",
    "posted-content": "Article",
    "proceedings-article": "ProceedingsArticle",
    "proceedings-series": "ProceedingsSeries",
    "proceedings": "Proceedings",
    "reference-book": "Book",
    "reference-entry": "Entry",
    "report-component": "ReportComponent",
    "report-series": "ReportSeries",
    "report": "Report",
    "standard": "Standard",
}

# the Crossref type enumeration accepted by the type: filter
CROSSREF_TYPES = tuple(sorted(CR_TO_CM_MAPPINGS))

CR_CITATION_TO_CM_MAPPINGS = {
    "blog-post": "BlogPost",
    "book": "Book",
    "book-chapter": "BookChapter",
    "dataset": "Dataset",
    "dissertation": "Dissertation",
    "journal": "Journal",
    "journal-article": "JournalArticle",
    "patent": "Patent",
    "peer-review": "PeerReview",
    "preprint": "Article",
    "conference-proceedings": "Proceedings",
    "conference-paper": "ProceedingsArticle",
    "protocol": "Other",
    "report": "Report",
    "software": "Software",
    "standard": "Standard",
    "web-resource": "WebPage",
    "other": "Other",
}

CROSSREF_CONTAINER_TYPES = {
    "book-chapter": "book",
    "dataset": "database",
    "journal-article": "journal",
    "journal-issue": "journal",
    "monograph": "book-series",
    "proceedings-article": "proceedings",
    "posted-content": "periodical",
}

CR_TO_CM_CONTAINER_TRANSLATIONS = {
    "book": "Book",
    "book-series": "BookSeries",
    "database": "DataRepository",
    "journal": "Journal",
    "proceedings": "Proceedings",
    "periodical": "Periodical",
}

# relation key -> relation type, in output order before sorting
RELATION_TYPES = (
    ("is-new-version-of", "IsNewVersionOf"),
    ("is-previous-version-of", "IsPreviousVersionOf"),
    ("is-version-of", "IsVersionOf"),
    ("has-version", "HasVersion"),
    ("is-part-of", "IsPartOf"),
    ("has-part", "HasPart"),
    ("is-variant-form-of", "IsVariantFormOf"),
    ("is-original-form-of", "IsOriginalFormOf"),
    ("is-identical-to", "IsIdenticalTo"),
    ("is-translation-of", "IsTranslationOf"),
    ("reviews", "Reviews"),
    ("is-review-of", "Reviews"),
    ("has-review", "HasReview"),
    ("is-reviewed-by", "IsReviewedBy"),
    ("is-preprint-of", "IsPreprintOf"),
    ("has-preprint", "HasPreprint"),
    ("is-supplement-to", "IsSupplementTo"),
    ("is-supplemented-by", "IsSupplementedBy"),
)

QUERY_FLAGS = (
    ("has_orcid", "has-orcid"),
    ("has_ror_id", "has-ror-id"),
    ("has_references", "has-references"),
    ("has_relation", "has-relation"),
    ("has_abstract", "has-abstract"),
    ("has_award", "has-award"),
    ("has_license", "has-license"),
    ("has_archive", "has-archive"),
)

URL_RE = re.compile(r"https?://[^\s<>\"']+")
FUNDER_ID_PREFIX = "10.13039"


# ============================================================================
# Network
# ============================================================================


def _polite(url: str) -> str:
    email = get_settings().email
    if not email:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}mailto={quote(email)}"


def get(doi: str, client: Optional[HttpClient] = None) -> Dict[str, Any]:
    """Return the ``message`` of a Crossref work.

    Raises:
        InvalidIdentifierError: not a DOI
        NotFoundError: unknown DOI
        NetworkFailureError: transport error or status >= 400
    """
    value, ok = validate_doi(doi)
    if not ok:
        raise InvalidIdentifierError(f"{doi} is not a valid DOI")
    client = client or get_client()
    content = client.get_json(_polite(f"{API_URL}/{value}"))
    message = content.get("message") if isinstance(content, dict) else None
    if not isinstance(message, dict):
        raise NotFoundError(f"No Crossref work found for {doi}")
    return message


def fetch(doi: str, match: bool = False, client: Optional[HttpClient] = None) -> Record:
    return read(get(doi, client), match=match)


def get_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Dict[str, Any]]:
    client = client or get_client()
    url = query_url(options)
    logger.debug("Querying Crossref", url=url)
    content = client.get_json(url, headers={"Cache-Control": "private"})
    return unwrap_items(content, "message", "items")


def fetch_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Record]:
    return read_all(get_all(options, client), match=options.match)


def query_url(options: QueryOptions) -> str:
    """Build the works list URL for a query.

    ``sample`` replaces paging; unknown types and invalid ORCID or ROR
    ids are left out of the filter.
    """
    number = options.clamped_number()
    params: List[Tuple[str, str]] = []
    if options.sample:
        params.append(("sample", str(number)))
    else:
        params.append(("rows", str(number)))
        params.append(("offset", str((options.clamped_page() - 1) * number)))
    params.append(("sort", "published"))
    params.append(("order", "desc"))

    filters = []
    if options.member:
        filters.append(f"member:{options.member}")
    if options.type and options.type in CROSSREF_TYPES:
        filters.append(f"type:{options.type}")
    if options.ror:
        ror, _ = validate_ror(options.ror)
        if ror:
            filters.append(f"ror-id:{ror}")
    if options.orcid:
        orcid, _ = validate_orcid(options.orcid)
        if orcid:
            filters.append(f"orcid:{orcid}")
    if options.year:
        filters.append(f"from-pub-date:{options.year}-01-01")
        filters.append(f"until-pub-date:{options.year}-12-31")
    for attribute, name in QUERY_FLAGS:
        if getattr(options, attribute):
            filters.append(f"{name}:true")
    if filters:
        params.append(("filter", ",".join(filters)))
    email = get_settings().email
    if email:
        params.append(("mailto", email))
    return f"{API_URL}?{urlencode(params)}"


def get_member(member_id: str, client: Optional[HttpClient] = None) -> Tuple[str, bool]:
    """Return the primary name of a Crossref member.

    Returns:
        (name, True), or ("", False) when the member is unknown
    """
    if not member_id:
        return "", False
    client = client or get_client()
    content = client.get_json(f"{MEMBERS_URL}/{quote(member_id)}", not_found_ok=True)
    if not content:
        return "", False
    name = (content.get("message") or {}).get("primary-name", "")
    return name, bool(name)


# ============================================================================
# Files
# ============================================================================


def load(filename: PathLike, match: bool = False) -> Record:
    """Load one work from a .json file (bare or in an API envelope)."""
    content = load_content(filename, (".json",))
    if isinstance(content, dict) and isinstance(content.get("message"), dict):
        content = content["message"]
    return read(content, match=match)


def load_all(filename: PathLike, match: bool = False) -> List[Record]:
    """Load works from .jsonl, or from a .json list or ``items`` envelope."""
    content = load_content(filename, (".json", ".jsonl", ".jsonlines"))
    if isinstance(content, dict) and "message" in content:
        items = unwrap_items(content, "message", "items")
    else:
        items = unwrap_items(content, "items")
    return read_all(items, match=match)


# ============================================================================
# Mapping
# ============================================================================


def _date(value: Optional[Dict[str, Any]]) -> str:
    if not value:
        return ""
    return value.get("date-time") or get_date_from_date_parts(value.get("date-parts"))


def get_published_date(content: Dict[str, Any]) -> str:
    for key in ("published", "issued", "created"):
        date = _date(content.get(key))
        if date:
            return date
    return ""


def _typed_values(items: Optional[List[Dict[str, Any]]]) -> Dict[str, str]:
    return {i.get("type", ""): i.get("value", "") for i in items or [] if i.get("value")}


def get_container(content: Dict[str, Any]) -> Tuple[Container, str]:
    """Return the container and the print ISSN when an electronic one was used."""
    identifier, identifier_type, secondary = "", "", ""
    issns = _typed_values(content.get("issn-type"))
    isbns = _typed_values(content.get("isbn-type"))
    if issns:
        identifier_type = "ISSN"
        identifier = issns.get("electronic") or issns.get("print", "")
        if issns.get("electronic") and issns.get("print"):
            secondary = issns["print"]
    elif isbns:
        identifier_type = "ISBN"
        identifier = isbns.get("electronic") or isbns.get("print", "")
    if not identifier:
        identifier_type = ""

    container_type = CROSSREF_CONTAINER_TYPES.get(content.get("type", ""), "")
    title = first(content.get("container-title"), "")
    if not title:
        title = first(content.get("institution"), {}).get("name", "")
    first_page, _, last_page = (content.get("page") or "").partition("-")
    container = Container(
        identifier=identifier,
        identifier_type=identifier_type,
        type=CR_TO_CM_CONTAINER_TRANSLATIONS.get(container_type, ""),
        title=title,
        volume=content.get("volume", ""),
        issue=content.get("issue", ""),
        first_page=first_page,
        last_page=last_page,
    )
    return container, secondary


def get_affiliations(items: List[Dict[str, Any]], match: bool = False) -> List[Affiliation]:
    affiliations = []
    for item in items:
        ror, asserted_by = "", ""
        ids = item.get("id") or []
        if ids and ids[0].get("id-type") == "ROR":
            ror = normalize_ror(ids[0].get("id"))
            asserted_by = ids[0].get("asserted-by", "")
        ror, name, asserted_by = map_ror(ror, item.get("name", ""), asserted_by, match)
        if ror or name:
            affiliations.append(Affiliation(id=ror, name=name, asserted_by=asserted_by))
    return affiliations


def get_contributors(authors: List[Dict[str, Any]], match: bool = False) -> List[Contributor]:
    """Authors with ORCID (https), affiliations and Person/Organization type.

    A later author is dropped when its ORCID equals that of an earlier one,
    or, without ORCID, when its name or its given and family name do.
    """
    contributors: List[Contributor] = []
    for author in authors:
        name = author.get("name", "")
        given = author.get("given", "")
        family = author.get("family", "")
        if not (name or given or family):
            continue
        contributor = Contributor(
            id=normalize_url(author.get("ORCID"), secure=True),
            type="Organization" if name else "Person",
            name=name,
            given_name=given,
            family_name=family,
            affiliations=get_affiliations(author.get("affiliation") or [], match),
            contributor_roles=["Author"],
        )
        contributors.append(contributor)
    return dedupe_contributors(contributors)


def get_funding_references(funders: List[Dict[str, Any]]) -> List[FundingReference]:
    """One reference per award, or one without award for a funder with none."""
    references = []
    for funder in funders:
        doi = funder.get("DOI", "")
        identifier = normalize_doi(doi)
        identifier_type = "Crossref Funder ID" if doi.startswith(FUNDER_ID_PREFIX) else ""
        awards = funder.get("award") or [""]
        for award in awards:
            references.append(
                FundingReference(
                    funder_identifier=identifier,
                    funder_identifier_type=identifier_type if identifier else "",
                    funder_name=funder.get("name", ""),
                    award_number=award,
                )
            )
    return references


def get_references(items: List[Dict[str, Any]]) -> List[Reference]:
    references = []
    for item in items:
        reference_id = normalize_doi(item.get("DOI"))
        unstructured = item.get("unstructured", "")
        if not reference_id and unstructured:
            found = URL_RE.search(unstructured)
            if found:
                reference_id = found.group(0).rstrip(".,;)")
        references.append(
            Reference(
                key=item.get("key", ""),
                id=reference_id,
                type=CR_CITATION_TO_CM_MAPPINGS.get(item.get("type", ""), "Other"),
                title=item.get("article-title", ""),
                publication_year=str(item.get("year") or ""),
                unstructured=unstructured,
            )
        )
    return references


def get_relations(relation: Dict[str, Any], container: Container) -> List[Relation]:
    """Map ``relation`` groups to relations.

    An ISSN relation target has no URL form of its own and becomes the
    container identifier instead.
    """
    relations = []
    for key, relation_type in RELATION_TYPES:
        for item in relation.get(key) or []:
            value = item.get("id", "")
            id_type = item.get("id-type", "")
            relation_id = ""
            if id_type == "doi":
                relation_id = normalize_doi(value)
            elif validate_url(value) == "URL":
                relation_id = value
            elif id_type == "issn":
                container.identifier_type = "ISSN"
                container.identifier = value
            if relation_id:
                relations.append(Relation(id=relation_id, type=relation_type))
    return sorted(relations, key=lambda r: r.type)


def get_titles(content: Dict[str, Any]) -> List[Title]:
    titles = [Title(title=t) for t in content.get("title") or [] if t]
    titles.extend(Title(title=t, type="Subtitle") for t in content.get("subtitle") or [] if t)
    titles.extend(
        Title(title=t, type="TranslatedTitle") for t in content.get("original-title") or [] if t
    )
    return titles


def read(content: Dict[str, Any], match: bool = False) -> Record:
    """Convert a Crossref work (the ``message`` of the API) to a record.

    Args:
        content: Crossref work
        match: Match affiliation names without ROR id against the registry
    """
    doi = normalize_doi(content.get("DOI"))
    if not doi:
        raise InvalidIdentifierError(f"Crossref work without valid DOI: {content.get('DOI')}")
    crossref_type = content.get("type", "")
    record_type = CR_TO_CM_MAPPINGS.get(crossref_type, "Other")

    publisher = None
    member = content.get("member", "")
    if content.get("publisher") or member:
        publisher = Publisher(
            id=f"{MEMBERS_URL}/{member}" if member else "",
            name=content.get("publisher", ""),
        )
    # Crossref has no blog post type, blogs register posted content
    if record_type == "Article" and publisher is not None and publisher.name == "Front Matter":
        record_type = "BlogPost"

    container, print_issn = get_container(content)
    identifiers = [Identifier(identifier=doi, identifier_type="DOI")]
    if print_issn:
        identifiers.append(Identifier(identifier=print_issn, identifier_type="ISSN"))

    descriptions = []
    abstract = sanitize_text(strip_jats_title(content.get("abstract")))
    if abstract:
        descriptions.append(Description(description=abstract, type="Abstract"))

    files = [
        File(url=link.get("URL", ""), mime_type=link.get("content-type", ""))
        for link in content.get("link") or []
        if link.get("content-type") != "unspecified" and link.get("URL")
    ]

    license = None
    license_url = first(content.get("license"), {}).get("URL", "")
    if license_url:
        url, _ = normalize_cc_url(license_url)
        license = License(id=url_to_spdx(url), url=url)

    relations = get_relations(content.get("relation") or {}, container)
    group_title = content.get("group-title", "")
    if group_title and record_type == "BlogPost":
        relations.append(
            Relation(id=community_slug_as_url(words_to_camel_case(group_title)), type="IsPartOf")
        )
    if container.identifier_type == "ISSN":
        relations.append(Relation(id=issn_as_url(container.identifier), type="IsPartOf"))

    subjects = [Subject(subject=s) for s in content.get("subject") or [] if s]
    if group_title:
        subjects.append(Subject(subject=group_title))

    return Record(
        id=doi,
        type=record_type,
        archive_locations=content.get("archive") or [],
        container=container,
        contributors=get_contributors(content.get("author") or [], match),
        date=Date(published=get_published_date(content)),
        descriptions=descriptions,
        files=files,
        funding_references=get_funding_references(content.get("funder") or []),
        identifiers=identifiers,
        language=content.get("language", ""),
        license=license,
        provider="Crossref",
        publisher=publisher,
        references=get_references(content.get("reference") or []),
        relations=relations,
        subjects=subjects,
        titles=get_titles(content),
        url=(content.get("resource") or {}).get("primary", {}).get("URL", ""),
        version=content.get("version", ""),
    )


def read_all(items: List[Dict[str, Any]], match: bool = False) -> List[Record]:
    return read_each(items, lambda item: read(item, match=match), "crossref.read_all")
