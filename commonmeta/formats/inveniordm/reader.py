"""
InvenioRDM reader, including legacy Zenodo records.

Architecture Context
--------------------
    record = fetch("https://rogue-scholar.org/api/records/1xr1m-wnh16")
    records = fetch_all(QueryOptions(host="rogue-scholar.org", community="front_matter"))
    rid = search_by_doi("10.59350/sfzv4-xdb68", host="rogue-scholar.org")

The same reader handles InvenioRDM records (``metadata.creators[].person_or_org``)
and legacy Zenodo records (``metadata.creators[].name`` with ``orcid`` and a
plain-string ``affiliation``).

Design Decisions
----------------
1. **Dates**: a date's ``type`` is either ``{"id": "issued"}`` or a bare
   string; ``issued`` maps to ``published``, with ``publication_date`` as
   fallback.
2. **URL identifier**: an identifier with scheme ``url`` becomes the
   record ``url`` instead of a secondary identifier.
3. **Blog posts**: Front Matter publications typed as preprints are
   Rogue Scholar blog posts and are read as BlogPost.
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

from commonmeta.core.exceptions import InvalidIdentifierError
from commonmeta.core.http import HttpClient, get_client
from commonmeta.core.logging import get_logger
from commonmeta.formats.base import (
    PathLike,
    QueryOptions,
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
from commonmeta.model.types import CONTRIBUTOR_ROLES
from commonmeta.utils.authors import parse_name
from commonmeta.utils.doi import escape_doi, normalize_doi
from commonmeta.utils.identifiers import (
    INVENIORDM_RECORD_RE,
    issn_as_url,
    normalize_id,
    normalize_orcid,
    normalize_ror,
    normalize_url,
    validate_id,
    validate_orcid,
    validate_ror,
)
from commonmeta.utils.text import parse_string, sanitize
from commonmeta.vocabularies.languages import get_language
from commonmeta.vocabularies.spdx import get_license as spdx_license

logger = get_logger(__name__)

DEFAULT_HOST = "rogue-scholar.org"

INVENIO_TO_CM_MAPPINGS = {
    "annotationcollection": "Collection",
    "book": "Book",
    "conferencepaper": "ProceedingsArticle",
    "dataset": "Dataset",
    "drawing": "Image",
    "figure": "Image",
    "image": "Image",
    "image-figure": "Figure",
    "lesson": "InteractiveResource",
    "patent": "Patent",
    "peerreview": "PeerReview",
    "photo": "Image",
    "physicalobject": "PhysicalObject",
    "plot": "Image",
    "poster": "Poster",
    "presentation": "Presentation",
    "preprint": "Article",
    "publication": "JournalArticle",
    "publication-article": "JournalArticle",
    "publication-blogpost": "BlogPost",
    "publication-book": "Book",
    "publication-conferencepaper": "ProceedingsArticle",
    "publication-conferenceproceeding": "Proceedings",
    "publication-journal": "Journal",
    "publication-peerreview": "PeerReview",
    "publication-preprint": "Article",
    "publication-report": "Report",
    "publication-section": "BookChapter",
    "publication-standard": "Standard",
    "publication-thesis": "Dissertation",
    "report": "Report",
    "section": "BookChapter",
    "software": "Software",
    "softwaredocumentation": "Software",
    "taxonomictreatment": "Collection",
    "technicalnote": "Report",
    "thesis": "Dissertation",
    "video": "Audiovisual",
    "workflow": "Workflow",
    "workingpaper": "Report",
    "other": "Other",
}

INVENIO_TO_CM_IDENTIFIER_MAPPINGS = {
    "ark": "ARK",
    "arxiv": "arXiv",
    "ads": "Bibcode",
    "crossreffunderid": "Crossref Funder ID",
    "doi": "DOI",
    "guid": "GUID",
    "handle": "Handle",
    "isbn": "ISBN",
    "issn": "ISSN",
    "pmid": "PMID",
    "purl": "PURL",
    "rid": "RID",
    "url": "URL",
    "urn": "URN",
    "uuid": "UUID",
    "other": "Other",
}

INVENIO_TO_CM_RELATION_MAPPINGS = {
    "issupplementto": "IsSupplementTo",
    "issupplementedby": "IsSupplementedBy",
    "isnewversionof": "IsNewVersionOf",
    "ispreviousversionof": "IsPreviousVersionOf",
    "isversionof": "IsVersionOf",
    "hasversion": "HasVersion",
    "ispartof": "IsPartOf",
    "haspart": "HasPart",
    "isvariantformof": "IsVariantFormOf",
    "isoriginalformof": "IsOriginalFormOf",
    "isidenticalto": "IsIdenticalTo",
    "istranslationof": "IsTranslationOf",
    "isreviewedby": "IsReviewedBy",
    "reviews": "Reviews",
    "haspreprint": "HasPreprint",
    "ispreprintof": "IsPreprintOf",
}

REFERENCE_RELATION_TYPES = ("cites", "references")

# InvenioRDM role ids are lowercase, e.g. "contactperson"
ROLES_BY_ID = {role.lower(): role for role in CONTRIBUTOR_ROLES}

DATE_TYPES = {
    "accepted": "accepted",
    "available": "available",
    "collected": "collected",
    "copyrighted": "copyrighted",
    "created": "created",
    "issued": "published",
    "submitted": "submitted",
    "updated": "updated",
    "valid": "valid",
    "withdrawn": "withdrawn",
    "other": "other",
}


# ============================================================================
# Network
# ============================================================================


def record_url(pid: str) -> str:
    """API URL of a record given its URL, API URL or host-qualified id."""
    match = INVENIORDM_RECORD_RE.match(pid)
    if match is None:
        raise InvalidIdentifierError(
            f"{pid} is not an InvenioRDM record URL",
            how_to_fix=["Pass the record URL, e.g. https://zenodo.org/records/10495720"],
        )
    host, rid = match.groups()
    return f"https://{host}/api/records/{rid}"


def get(pid: str, client: Optional[HttpClient] = None) -> Dict[str, Any]:
    client = client or get_client()
    return client.get_json(record_url(pid))


def fetch(pid: str, client: Optional[HttpClient] = None) -> Record:
    return read(get(pid, client))


def _query(terms: List[str]) -> str:
    return " AND ".join(terms)


def query_url(options: QueryOptions) -> str:
    """Build the records list URL of a host, optionally scoped to a community."""
    host = options.host or DEFAULT_HOST
    if options.community:
        base = f"https://{host}/api/communities/{quote(options.community)}/records"
    else:
        base = f"https://{host}/api/records"
    terms = []
    if options.type:
        terms.append(f"metadata.resource_type.id:{options.type}")
    if options.year:
        terms.append(f"metadata.publication_date:[{options.year}-01-01 TO {options.year}-12-31]")
    if options.orcid:
        orcid, ok = validate_orcid(options.orcid)
        if ok:
            terms.append(f"metadata.creators.person_or_org.identifiers.identifier:{orcid}")
    if options.ror:
        ror, ok = validate_ror(options.ror)
        if ok:
            terms.append(f"metadata.creators.affiliations.id:{ror}")
    if options.has_orcid:
        terms.append("metadata.creators.person_or_org.identifiers.scheme:orcid")
    if options.has_ror_id:
        terms.append("metadata.creators.affiliations.id:*")
    if options.language:
        language = get_language(options.language, "iso639-3")
        if language:
            terms.append(f"metadata.languages.id:{language}")
    if options.subject:
        terms.append(f"metadata.subjects.subject:\"{options.subject}\"")
    params: List[Tuple[str, str]] = []
    if terms:
        params.append(("q", _query(terms)))
    params.extend(
        [
            ("l", "list"),
            ("page", str(options.clamped_page())),
            ("size", str(options.clamped_number())),
            ("sort", "newest"),
        ]
    )
    return f"{base}?{urlencode(params)}"


def get_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Dict[str, Any]]:
    client = client or get_client()
    url = query_url(options)
    logger.debug("Querying InvenioRDM", url=url)
    return unwrap_items(client.get_json(url), "hits", "hits")


def fetch_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Record]:
    return read_all(get_all(options, client))


def _first_hit_id(content: Any) -> str:
    hits = unwrap_items(content, "hits", "hits")
    if not hits:
        return ""
    return parse_string(hits[0].get("id"))


def search_by_doi(
    doi: str,
    host: str = DEFAULT_HOST,
    client: Optional[HttpClient] = None,
    token: str = "",
) -> str:
    """Return the id of the record with this DOI on a host, or "" if none."""
    escaped = escape_doi(doi)
    if not escaped:
        raise InvalidIdentifierError(f"{doi} is not a valid DOI")
    client = client or get_client()
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    content = client.get_json(
        f"https://{host}/api/records?q=doi:{escaped}", not_found_ok=True, headers=headers
    )
    return _first_hit_id(content)


def search_by_slug(
    slug: str,
    host: str = DEFAULT_HOST,
    client: Optional[HttpClient] = None,
    token: str = "",
) -> str:
    """Return the id of the community with this slug on a host, or "" if none."""
    client = client or get_client()
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    content = client.get_json(
        f"https://{host}/api/communities?q=slug:{quote(slug)}", not_found_ok=True, headers=headers
    )
    return _first_hit_id(content)


def load(filename: PathLike) -> Record:
    return read(load_content(filename, (".json",)))


def load_all(filename: PathLike) -> List[Record]:
    content = load_content(filename, (".json", ".jsonl", ".jsonlines"))
    return read_all(unwrap_items(content, "hits", "hits"))


# ============================================================================
# Mapping
# ============================================================================


def _affiliations(items: List[Dict[str, Any]]) -> List[Affiliation]:
    affiliations = []
    for item in items:
        if not item.get("name") and not item.get("id"):
            continue
        affiliations.append(Affiliation(id=normalize_ror(item.get("id")), name=item.get("name", "")))
    return affiliations


def get_contributor(creator: Dict[str, Any], role: str = "Author") -> Contributor:
    """Map an InvenioRDM ``person_or_org`` creator."""
    person_or_org = creator.get("person_or_org") or {}
    contributor_type = {"personal": "Person", "organizational": "Organization"}.get(
        person_or_org.get("type", ""), ""
    )
    pid = ""
    for identifier in person_or_org.get("identifiers") or []:
        scheme = (identifier.get("scheme") or "").lower()
        if scheme == "orcid":
            pid, contributor_type = normalize_orcid(identifier.get("identifier")), "Person"
            break
        if scheme == "ror":
            pid, contributor_type = normalize_ror(identifier.get("identifier")), "Organization"
            break
    name = person_or_org.get("name", "")
    given_name = person_or_org.get("given_name", "")
    family_name = person_or_org.get("family_name", "")
    if not contributor_type:
        contributor_type = "Person" if given_name or family_name else "Organization"
    if contributor_type == "Person" and name and not family_name:
        given_name, family_name, name = parse_name(name)
    if contributor_type == "Person" and family_name:
        name = ""
    role_id = (creator.get("role") or {}).get("id", "")
    return Contributor(
        id=pid,
        type=contributor_type,
        name=name,
        given_name=given_name if contributor_type == "Person" else "",
        family_name=family_name if contributor_type == "Person" else "",
        affiliations=_affiliations(creator.get("affiliations") or []),
        contributor_roles=[role if role == "Author" else (_role(role_id) or role)],
    )


def _role(role_id: str) -> str:
    return ROLES_BY_ID.get(role_id.replace("_", "").replace("-", "").lower(), "")


def get_zenodo_contributor(creator: Dict[str, Any], role: str = "Author") -> Contributor:
    """Map a legacy Zenodo creator (``name``, ``orcid``, ``affiliation``)."""
    given_name, family_name, name = parse_name(creator.get("name", ""))
    orcid = normalize_orcid(creator.get("orcid"))
    is_person = bool(orcid or given_name or family_name)
    if is_person and not family_name and name:
        family_name, name = name, ""
    affiliation = creator.get("affiliation")
    return Contributor(
        id=orcid,
        type="Person" if is_person else "Organization",
        name=name,
        given_name=given_name,
        family_name=family_name,
        affiliations=[Affiliation(name=affiliation)] if isinstance(affiliation, str) and affiliation else [],
        contributor_roles=[role],
    )


def get_contributors(metadata: Dict[str, Any]) -> List[Contributor]:
    contributors: List[Contributor] = []
    items = [(c, "Author") for c in metadata.get("creators") or []]
    items += [(c, "Other") for c in metadata.get("contributors") or []]
    for creator, role in items:
        person_or_org = creator.get("person_or_org") or {}
        if person_or_org.get("name") or person_or_org.get("family_name"):
            contributor = get_contributor(creator, role)
        elif creator.get("name"):
            contributor = get_zenodo_contributor(creator, role)
        else:
            continue
        if contributor.id and any(c.id == contributor.id for c in contributors):
            continue
        contributors.append(contributor)
    return contributors


def _date_type(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("id", "")
    return value.lower() if isinstance(value, str) else ""


def get_dates(metadata: Dict[str, Any]) -> Date:
    date = Date()
    for item in metadata.get("dates") or []:
        key = DATE_TYPES.get(_date_type(item.get("type")))
        if key and item.get("date"):
            setattr(date, key, item["date"])
    if not date.published:
        date.published = metadata.get("publication_date", "")
    return date


def get_funding_references(metadata: Dict[str, Any]) -> List[FundingReference]:
    references = []
    for funding in metadata.get("funding") or []:
        funder = funding.get("funder") or {}
        award = funding.get("award") or {}
        funder_id, funder_id_type = validate_id(funder.get("id"))
        if funder_id_type == "ROR":
            funder_id = normalize_ror(funder_id)
        elif funder_id_type in ("DOI", "Crossref Funder ID"):
            funder_id = normalize_doi(funder_id)
        award_uri = ""
        for identifier in award.get("identifiers") or []:
            award_uri = normalize_url(identifier.get("identifier"), secure=True)
            if award_uri:
                break
        title = award.get("title") or {}
        references.append(
            FundingReference(
                funder_identifier=funder_id,
                funder_identifier_type=funder_id_type,
                funder_name=funder.get("name", ""),
                award_number=award.get("number", ""),
                award_title=title.get("en", "") if isinstance(title, dict) else str(title),
                award_uri=award_uri,
            )
        )
    if references:
        return references
    for grant in metadata.get("grants") or []:
        funder = grant.get("funder") or {}
        funder_id = normalize_doi(funder.get("doi"))
        references.append(
            FundingReference(
                funder_identifier=funder_id,
                funder_identifier_type="Crossref Funder ID" if funder_id else "",
                funder_name=funder.get("name", ""),
                award_number=grant.get("code", ""),
                award_title=grant.get("title", ""),
                award_uri=normalize_url(grant.get("url"), secure=True),
            )
        )
    return references


def get_license(metadata: Dict[str, Any]) -> Optional[License]:
    rights = metadata.get("rights") or []
    value = rights[0] if rights else metadata.get("license")
    if isinstance(value, dict):
        license_id = value.get("id", "")
        url = (value.get("props") or {}).get("url") or value.get("link", "")
    else:
        license_id, url = (value or ""), ""
    result = spdx_license(url=url, license_id=license_id)
    if not result:
        return None
    return License(**result)


def get_container(content: Dict[str, Any]) -> Tuple[Optional[Container], List[Relation]]:
    journal = (content.get("custom_fields") or {}).get("journal:journal") or {}
    if not journal:
        return None, []
    pages = journal.get("pages", "")
    first_page, _, last_page = pages.partition("-")
    container = Container(
        type="Journal",
        title=journal.get("title", ""),
        volume=journal.get("volume", ""),
        issue=journal.get("issue", ""),
        first_page=first_page,
        last_page=last_page,
    )
    relations = []
    if journal.get("issn"):
        container.identifier, container.identifier_type = journal["issn"], "ISSN"
        relations.append(Relation(id=issn_as_url(journal["issn"]), type="IsPartOf"))
    return container, relations


def read(content: Dict[str, Any]) -> Record:
    """Convert an InvenioRDM or legacy Zenodo record to a Commonmeta record."""
    metadata = content.get("metadata") or {}
    pids = content.get("pids") or {}
    pid = normalize_doi(content.get("doi") or (pids.get("doi") or {}).get("identifier"))
    links = content.get("links") or {}
    if not pid:
        pid = normalize_url(links.get("self_html") or links.get("html"), secure=True)
    if not pid:
        raise ValueError("InvenioRDM record has neither DOI nor self link")

    resource_type = metadata.get("resource_type") or {}
    work_type = (
        INVENIO_TO_CM_MAPPINGS.get(resource_type.get("id", ""))
        or INVENIO_TO_CM_MAPPINGS.get(resource_type.get("subtype", ""))
        or INVENIO_TO_CM_MAPPINGS.get(resource_type.get("type", ""))
        or "Other"
    )

    publisher = metadata.get("publisher") or ""
    if isinstance(publisher, dict):
        publisher = publisher.get("name", "")
    if work_type == "Article" and publisher == "Front Matter":
        work_type = "BlogPost"

    url = normalize_url(links.get("self_html"), secure=True)
    identifiers = []
    if content.get("id"):
        identifiers.append(Identifier(identifier=parse_string(content["id"]), identifier_type="RID"))
    for item in metadata.get("identifiers") or []:
        identifier_type = INVENIO_TO_CM_IDENTIFIER_MAPPINGS.get(item.get("scheme", ""))
        if identifier_type == "URL":
            url = normalize_url(item.get("identifier"), secure=True)
        elif identifier_type and item.get("identifier"):
            identifiers.append(Identifier(identifier=item["identifier"], identifier_type=identifier_type))

    languages = metadata.get("languages") or []
    language = languages[0].get("id", "") if languages else metadata.get("language", "")

    subjects = []
    for subject in metadata.get("subjects") or []:
        value = subject.get("subject", "")
        if subject.get("scheme") == "FOS" and not value.startswith("FOS: "):
            value = f"FOS: {value}"
        if value:
            subjects.append(Subject(subject=value))
    if not subjects:
        subjects = [Subject(subject=k) for k in metadata.get("keywords") or [] if k]

    references = []
    container, relations = get_container(content)
    for index, item in enumerate(metadata.get("related_identifiers") or []):
        related_id = normalize_id(item.get("identifier"))
        relation_type = (item.get("relation_type") or {}).get("id", "")
        if not related_id:
            continue
        if relation_type in REFERENCE_RELATION_TYPES:
            references.append(Reference(key=f"ref{index + 1}", id=related_id))
        elif relation_type in INVENIO_TO_CM_RELATION_MAPPINGS:
            relations.append(
                Relation(id=related_id, type=INVENIO_TO_CM_RELATION_MAPPINGS[relation_type])
            )
    for index, item in enumerate(metadata.get("references") or [], start=len(references)):
        identifier = item.get("identifier", "")
        references.append(
            Reference(
                key=f"ref{index + 1}",
                id=normalize_id(identifier),
                unstructured=item.get("reference", ""),
            )
        )

    description = sanitize(metadata.get("description") or "")
    title = sanitize(metadata.get("title") or "")
    custom_fields = content.get("custom_fields") or {}
    return Record(
        id=pid,
        type=work_type,
        container=container,
        content_html=custom_fields.get("rs:content_html") or custom_fields.get("rs:content_text") or "",
        contributors=get_contributors(metadata),
        date=get_dates(metadata),
        descriptions=[Description(description=description, type="Abstract")] if description else [],
        feature_image=custom_fields.get("rs:image", ""),
        funding_references=get_funding_references(metadata),
        identifiers=identifiers,
        language=get_language(language),
        license=get_license(metadata),
        provider="DataCite" if (pids.get("doi") or {}).get("provider") == "datacite" else "",
        publisher=Publisher(name=publisher) if publisher else None,
        references=references,
        relations=relations,
        subjects=subjects,
        titles=[Title(title=title)] if title else [],
        url=url,
        version=metadata.get("version", ""),
    )


def read_all(items: List[Dict[str, Any]]) -> List[Record]:
    return read_each(items, read, "inveniordm.read_all")
