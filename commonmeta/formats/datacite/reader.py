"""
DataCite REST API reader.

Architecture Context
--------------------
    record = fetch("10.5061/dryad.8515")
    records = fetch_all(QueryOptions(client="cern.zenodo", type="dataset"))

The API is JSON:API; a DOI is returned as ``{"data": {"id": ...,
"attributes": {...}}}`` and a list as ``{"data": [...]}``. Only the
attributes are read.

Design Decisions
----------------
1. **Type override**: ``types.resourceType`` wins over
   ``resourceTypeGeneral`` when it is itself a known DataCite type,
   otherwise it becomes ``additionalType``.
2. **Schema drift**: publisher is a string up to schema 4.4 and an object
   from 4.5; affiliations are strings or objects; geo coordinates are
   numbers or strings. All forms are accepted.
3. **Related identifiers**: Cites/References feed ``references``, a fixed
   set of relation types feeds ``relations``, everything else is dropped.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

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
from commonmeta.model.record import (
    Affiliation,
    Container,
    Contributor,
    Date,
    Description,
    FundingReference,
    GeoLocation,
    GeoLocationBox,
    GeoLocationPoint,
    Identifier,
    License,
    Publisher,
    Record,
    Reference,
    Relation,
    Subject,
    Title,
)
from commonmeta.model.types import CONTRIBUTOR_ROLES, IDENTIFIER_TYPES
from commonmeta.utils.dates import parse_datetime
from commonmeta.utils.doi import normalize_doi, validate_doi
from commonmeta.utils.identifiers import (
    issn_as_url,
    normalize_id,
    normalize_orcid,
    normalize_ror,
    normalize_url,
    validate_orcid,
    validate_ror,
)
from commonmeta.utils.text import kebab_case_to_pascal_case, sanitize
from commonmeta.vocabularies.spdx import normalize_cc_url, spdx_to_url, url_to_spdx

logger = get_logger(__name__)

API_URL = "https://api.datacite.org/dois"

# ============================================================================
# Mapping tables
# ============================================================================

# resourceTypeGeneral -> work type
DC_TO_CM_MAPPINGS = {
    "Audiovisual": "Audiovisual",
    "BlogPosting": "BlogPost",
    "Book": "Book",
    "BookChapter": "BookChapter",
    "Collection": "Collection",
    "ComputationalNotebook": "Software",
    "ConferencePaper": "ProceedingsArticle",
    "ConferenceProceeding": "Proceedings",
    "DataPaper": "JournalArticle",
    "Dataset": "Dataset",
    "Dissertation": "Dissertation",
    "Event": "Event",
    "Image": "Image",
    "Instrument": "Instrument",
    "InteractiveResource": "InteractiveResource",
    "Journal": "Journal",
    "JournalArticle": "JournalArticle",
    "Model": "Other",
    "OutputManagementPlan": "Document",
    "PeerReview": "PeerReview",
    "PhysicalObject": "PhysicalObject",
    "Poster": "Poster",
    "Preprint": "Article",
    "Report": "Report",
    "Service": "Other",
    "Software": "Software",
    "Sound": "Sound",
    "Standard": "Standard",
    "StudyRegistration": "StudyRegistration",
    "Text": "Document",
    "Thesis": "Dissertation",
    "Workflow": "Workflow",
    "Other": "Other",
}

DATE_TYPES = {
    "Accepted": "accepted",
    "Available": "available",
    "Collected": "collected",
    "Copyrighted": "copyrighted",
    "Created": "created",
    "Issued": "published",
    "Published": "published",
    "Submitted": "submitted",
    "Updated": "updated",
    "Withdrawn": "withdrawn",
    "Other": "other",
}

DESCRIPTION_TYPES = ("Abstract", "Summary", "Methods", "TechnicalInfo", "Other")
TITLE_TYPES = ("MainTitle", "Subtitle", "TranslatedTitle", "AlternativeTitle")

REFERENCE_RELATION_TYPES = ("Cites", "References")
RELATION_TYPES = (
    "IsNewVersionOf",
    "IsPreviousVersionOf",
    "IsVersionOf",
    "HasVersion",
    "IsPartOf",
    "HasPart",
    "IsVariantFormOf",
    "IsOriginalFormOf",
    "IsIdenticalTo",
    "IsTranslationOf",
    "IsReviewedBy",
    "Reviews",
    "IsPreprintOf",
    "HasPreprint",
    "IsSupplementTo",
    "IsSupplementedBy",
)

# list query flags -> Elasticsearch query terms
QUERY_FLAGS = (
    ("has_orcid", "creators.nameIdentifiers.nameIdentifierScheme:ORCID"),
    ("has_ror_id", "creators.affiliation.affiliationIdentifierScheme:ROR"),
    ("has_references", "relatedIdentifiers.relationType:Cites"),
    ("has_relation", "relatedIdentifiers.relationType:*"),
    ("has_abstract", "descriptions.descriptionType:Abstract"),
    ("has_award", "fundingReferences.funderIdentifier:*"),
    ("has_license", "rightsList.rightsIdentifierScheme:SPDX"),
)


# ============================================================================
# Network
# ============================================================================


def _attributes(data: Any) -> Dict[str, Any]:
    if isinstance(data, dict) and isinstance(data.get("attributes"), dict):
        return data["attributes"]
    return data if isinstance(data, dict) else {}


def get(doi: str, client: Optional[HttpClient] = None) -> Dict[str, Any]:
    """Return the attributes of a DataCite DOI.

    Raises:
        InvalidIdentifierError: not a DOI
        NotFoundError: the response has no attributes
        NetworkFailureError: transport error or status >= 400
    """
    value, ok = validate_doi(doi)
    if not ok:
        raise InvalidIdentifierError(f"{doi} is not a valid DOI")
    client = client or get_client()
    content = client.get_json(f"{API_URL}/{value}")
    attributes = _attributes((content or {}).get("data"))
    if not attributes:
        raise NotFoundError(f"No DataCite metadata found for {doi}")
    return attributes


def fetch(doi: str, client: Optional[HttpClient] = None) -> Record:
    return read(get(doi, client))


def get_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Dict[str, Any]]:
    client = client or get_client()
    url = query_url(options)
    logger.debug("Querying DataCite", url=url)
    content = client.get_json(url)
    return [_attributes(item) for item in unwrap_items(content, "data")]


def fetch_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Record]:
    return read_all(get_all(options, client))


def query_url(options: QueryOptions) -> str:
    """Build the DOI list URL for a query.

    Client ids must look like ``provider.repository`` and are lowercased;
    types are kebab-case resourceTypeGeneral values (``physical-object``).
    Invalid values drop the filter.
    """
    number = options.clamped_number()
    params = [("page[size]", str(number))]
    if options.sample:
        params.append(("random", "true"))
    else:
        params.append(("page[number]", str(options.clamped_page())))
        params.append(("sort", "-published"))

    client_id = options.client.lower()
    if client_id and "." in client_id:
        params.append(("client-id", client_id))
    if options.type and kebab_case_to_pascal_case(options.type) in DC_TO_CM_MAPPINGS:
        params.append(("resource-type-id", options.type))
    ror = ""
    if options.ror:
        ror, _ = validate_ror(options.ror)
        if ror:
            params.append(("affiliation-id", ror))

    query = []
    if options.year:
        query.append(f"publicationYear:{options.year}")
    if options.language:
        query.append(f"language:{options.language}")
    if options.orcid:
        orcid, _ = validate_orcid(options.orcid)
        if orcid:
            query.append(f"creators.nameIdentifiers.nameIdentifier:{orcid}")
    for attribute, term in QUERY_FLAGS:
        if getattr(options, attribute):
            query.append(term)
    if query:
        params.append(("query", " AND ".join(query)))
    if ror or options.has_ror_id:
        params.append(("affiliation", "true"))
    return f"{API_URL}?{urlencode(params, safe='[]:*', quote_via=quote)}"


# ============================================================================
# Files
# ============================================================================


def load(filename: PathLike) -> Record:
    """Load one DOI from a .json file (attributes, or a JSON:API document)."""
    content = load_content(filename, (".json",))
    if isinstance(content, dict) and "data" in content:
        content = content["data"]
    return read(_attributes(content))


def load_all(filename: PathLike) -> List[Record]:
    """Load DOIs from .jsonl, or from a .json list or ``data`` document."""
    content = load_content(filename, (".json", ".jsonl", ".jsonlines"))
    return read_all([_attributes(item) for item in unwrap_items(content, "data")])


# ============================================================================
# Mapping
# ============================================================================


def _affiliations(value: Any) -> List[Affiliation]:
    affiliations = []
    for item in value if isinstance(value, list) else [value]:
        if isinstance(item, str) and item:
            affiliations.append(Affiliation(name=item))
        elif isinstance(item, dict) and (item.get("name") or item.get("affiliationIdentifier")):
            affiliations.append(
                Affiliation(
                    id=normalize_ror(item.get("affiliationIdentifier")),
                    name=item.get("name", ""),
                )
            )
    return affiliations


def get_contributor(item: Dict[str, Any], default_role: str = "Author") -> Contributor:
    """Convert a DataCite creator or contributor."""
    name_type = item.get("nameType") or ""
    contributor_type = name_type[:-2] if name_type.endswith("al") else ""
    pid = ""
    name_identifiers = item.get("nameIdentifiers") or []
    if name_identifiers:
        identifier = name_identifiers[0]
        scheme = identifier.get("nameIdentifierScheme", "")
        if scheme in ("ORCID", "https://orcid.org/", "https://orcid.org"):
            pid = normalize_orcid(identifier.get("nameIdentifier"))
            contributor_type = "Person"
        elif scheme == "ROR":
            pid = normalize_ror(identifier.get("nameIdentifier"))
            contributor_type = "Organization"

    name = item.get("name", "")
    given_name = item.get("givenName", "")
    family_name = item.get("familyName", "")
    if not contributor_type:
        contributor_type = "Person" if given_name or family_name else "Organization"
    if contributor_type == "Person" and (given_name or family_name):
        name = ""
    elif contributor_type == "Person" and name:
        parts = name.split(",")
        if len(parts) == 2:
            family_name, given_name = parts[0].strip(), parts[1].strip()
            name = ""

    role = item.get("contributorType", "")
    return Contributor(
        id=pid,
        type=contributor_type,
        name=name,
        given_name=given_name,
        family_name=family_name,
        affiliations=_affiliations(item.get("affiliation")),
        contributor_roles=[role if role in CONTRIBUTOR_ROLES else default_role],
    )


def get_contributors(content: Dict[str, Any]) -> List[Contributor]:
    """Creators, then contributors, skipping entries without a name."""
    contributors = []
    seen = set()
    for key in ("creators", "contributors"):
        for item in content.get(key) or []:
            if not (item.get("name") or item.get("givenName") or item.get("familyName")):
                continue
            contributor = get_contributor(item)
            if contributor.id and contributor.id in seen:
                continue
            seen.add(contributor.id)
            contributors.append(contributor)
    return contributors


def get_dates(content: Dict[str, Any]) -> Date:
    values: Dict[str, str] = {}
    for item in content.get("dates") or []:
        date_type = item.get("dateType", "")
        value = item.get("date", "")
        if date_type == "Valid":
            values["valid"] = value
        elif date_type in DATE_TYPES and value:
            values[DATE_TYPES[date_type]] = parse_datetime(value) or value
    if not values.get("published") and content.get("publicationYear"):
        values["published"] = str(content["publicationYear"])
    return Date(**values)


def _coordinate(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def get_geo_locations(items: List[Dict[str, Any]]) -> List[GeoLocation]:
    geo_locations = []
    for item in items:
        point = item.get("geoLocationPoint") or {}
        box = item.get("geoLocationBox") or {}
        geo_locations.append(
            GeoLocation(
                geo_location_place=item.get("geoLocationPlace", ""),
                geo_location_point=GeoLocationPoint(
                    point_longitude=_coordinate(point.get("pointLongitude")),
                    point_latitude=_coordinate(point.get("pointLatitude")),
                )
                if point
                else None,
                geo_location_box=GeoLocationBox(
                    east_bound_longitude=_coordinate(box.get("eastBoundLongitude")),
                    west_bound_longitude=_coordinate(box.get("westBoundLongitude")),
                    south_bound_latitude=_coordinate(box.get("southBoundLatitude")),
                    north_bound_latitude=_coordinate(box.get("northBoundLatitude")),
                )
                if box
                else None,
            )
        )
    return geo_locations


def get_identifiers(content: Dict[str, Any], doi: str) -> List[Identifier]:
    identifiers = [Identifier(identifier=doi, identifier_type="DOI")]
    items = [
        (i.get("alternateIdentifier"), i.get("alternateIdentifierType"))
        for i in content.get("alternateIdentifiers") or []
    ]
    items.extend(
        (i.get("identifier"), i.get("identifierType")) for i in content.get("identifiers") or []
    )
    for value, identifier_type in items:
        if not value or normalize_doi(value) == doi:
            continue
        identifiers.append(
            Identifier(
                identifier=value,
                identifier_type=identifier_type if identifier_type in IDENTIFIER_TYPES else "Other",
            )
        )
    return identifiers


def get_publisher(value: Any) -> Optional[Publisher]:
    if isinstance(value, dict) and value.get("name"):
        return Publisher(id=normalize_ror(value.get("publisherIdentifier")), name=value["name"])
    if isinstance(value, str) and value:
        return Publisher(name=value)
    return None


def get_license(rights_list: List[Dict[str, Any]]) -> Optional[License]:
    if not rights_list:
        return None
    rights = rights_list[0]
    url = rights.get("rightsUri", "")
    if not url and rights.get("rightsIdentifier"):
        url = spdx_to_url(rights["rightsIdentifier"])
    if not url:
        return None
    url, _ = normalize_cc_url(url)
    return License(id=url_to_spdx(url), url=url)


def get_references(items: List[Dict[str, Any]]) -> List[Reference]:
    references = []
    for item in items:
        if item.get("relationType") not in REFERENCE_RELATION_TYPES:
            continue
        pid = normalize_id(item.get("relatedIdentifier"))
        if pid:
            references.append(
                Reference(
                    id=pid,
                    type=DC_TO_CM_MAPPINGS.get(item.get("resourceTypeGeneral", ""), ""),
                )
            )
    return references


def get_relations(items: List[Dict[str, Any]]) -> List[Relation]:
    relations = []
    for item in items:
        relation_type = item.get("relationType", "")
        if relation_type not in RELATION_TYPES:
            continue
        if item.get("relatedIdentifierType") == "ISSN":
            pid = issn_as_url(item.get("relatedIdentifier"))
        else:
            pid = normalize_id(item.get("relatedIdentifier"))
        if pid:
            relations.append(Relation(id=pid, type=relation_type))
    return relations


def get_container(content: Dict[str, Any]) -> Optional[Container]:
    value = content.get("container") or {}
    container = Container(
        identifier=value.get("identifier", ""),
        identifier_type=value.get("identifierType", ""),
        type=value.get("type", ""),
        title=value.get("title", ""),
        volume=value.get("volume", ""),
        issue=value.get("issue", ""),
        first_page=value.get("firstPage", ""),
        last_page=value.get("lastPage", ""),
    )
    return container if container.to_dict() else None


def read(content: Dict[str, Any]) -> Record:
    """Convert DataCite attributes to a record.

    Raises:
        InvalidIdentifierError: no valid DOI in the attributes
    """
    doi = normalize_doi(content.get("doi") or content.get("id"))
    if not doi:
        raise InvalidIdentifierError(f"DataCite metadata without valid DOI: {content.get('doi')}")

    types = content.get("types") or {}
    record_type = DC_TO_CM_MAPPINGS.get(types.get("resourceTypeGeneral", ""), "Other")
    additional_type = ""
    resource_type = types.get("resourceType") or ""
    if resource_type in DC_TO_CM_MAPPINGS:
        record_type = DC_TO_CM_MAPPINGS[resource_type]
    elif resource_type and resource_type.lower() != record_type.lower():
        additional_type = resource_type

    descriptions = []
    for item in content.get("descriptions") or []:
        text = sanitize(item.get("description"))
        if not text:
            continue
        description_type = item.get("descriptionType", "")
        descriptions.append(
            Description(
                description=text,
                type=description_type if description_type in DESCRIPTION_TYPES else "Other",
                language=item.get("lang") or "",
            )
        )

    titles = []
    for item in content.get("titles") or []:
        title_type = item.get("titleType", "")
        if not item.get("title"):
            continue
        titles.append(
            Title(
                title=item["title"],
                type=title_type if title_type in TITLE_TYPES and title_type != "MainTitle" else "",
                language=item.get("lang") or "",
            )
        )

    related = content.get("relatedIdentifiers") or []
    return Record(
        id=doi,
        type=record_type,
        additional_type=additional_type,
        container=get_container(content),
        contributors=get_contributors(content),
        date=get_dates(content),
        descriptions=descriptions,
        funding_references=[
            FundingReference(
                funder_identifier=f.get("funderIdentifier", ""),
                funder_identifier_type=f.get("funderIdentifierType", ""),
                funder_name=f.get("funderName", ""),
                award_number=f.get("awardNumber", ""),
                award_title=f.get("awardTitle", ""),
                award_uri=f.get("awardUri", ""),
            )
            for f in content.get("fundingReferences") or []
        ],
        geo_locations=get_geo_locations(content.get("geoLocations") or []),
        identifiers=get_identifiers(content, doi),
        language=content.get("language") or "",
        license=get_license(content.get("rightsList") or []),
        provider="DataCite",
        publisher=get_publisher(content.get("publisher")),
        references=get_references(related),
        relations=get_relations(related),
        subjects=[
            Subject(subject=s["subject"]) for s in content.get("subjects") or [] if s.get("subject")
        ],
        titles=titles,
        url=normalize_url(content.get("url"), secure=True),
        version=content.get("version") or "",
    )


def read_all(items: List[Dict[str, Any]]) -> List[Record]:
    return read_each(items, read, "datacite.read_all")
