"""
DataCite writer: schema 4.5 JSON attributes.

Architecture Context
--------------------
    output = write(record)                 # attributes of one DOI, validated
    output = write_all(records)            # JSON array, best-effort

``commonmeta.registration.datacite`` wraps the attributes in the JSON:API
envelope ``{"data": {"type": "dois", "attributes": ...}}``.

Design Decisions
----------------
1. **Lossy fields**: container, files, references without DOI or URL and
   relation types DataCite does not define are not written (LOSSY_FIELDS).
2. **All dates**: every known date is written with its DataCite dateType,
   ``published`` as ``Issued``.
"""

from typing import Any, Dict, List, Optional

from commonmeta.core.fileio import dump_json
from commonmeta.formats.base import validate_documents
from commonmeta.formats.csl.writer import CM_TO_CSL_MAPPINGS
from commonmeta.formats.schemaorg.writer import CM_TO_SO_MAPPINGS
from commonmeta.model.record import Contributor, Record
from commonmeta.model.schema import check
from commonmeta.utils.doi import validate_doi
from commonmeta.utils.identifiers import validate_id, validate_orcid, validate_ror
from commonmeta.utils.text import compact
from commonmeta.vocabularies.spdx import url_to_spdx

SCHEMA = "datacite-v4.5"
SCHEMA_VERSION = "http://datacite.org/schema/kernel-4"

LOSSY_FIELDS = ("container", "files", "references", "relations", "archiveLocations")

# work type -> resourceTypeGeneral
CM_TO_DC_MAPPINGS = {
    "Article": "Preprint",
    "Audiovisual": "Audiovisual",
    "BlogPost": "Preprint",
    "Book": "Book",
    "BookChapter": "BookChapter",
    "Collection": "Collection",
    "Dataset": "Dataset",
    "Dissertation": "Dissertation",
    "Document": "Text",
    "Entry": "Text",
    "Event": "Event",
    "Figure": "Image",
    "Image": "Image",
    "Instrument": "Instrument",
    "InteractiveResource": "InteractiveResource",
    "Journal": "Journal",
    "JournalArticle": "JournalArticle",
    "LegalDocument": "Text",
    "Manuscript": "Text",
    "Map": "Image",
    "Patent": "Text",
    "Performance": "Audiovisual",
    "PersonalCommunication": "Text",
    "PeerReview": "PeerReview",
    "PhysicalObject": "PhysicalObject",
    "Post": "Text",
    "Poster": "Poster",
    "Presentation": "Audiovisual",
    "Proceedings": "ConferenceProceeding",
    "ProceedingsArticle": "ConferencePaper",
    "Report": "Report",
    "Review": "PeerReview",
    "Software": "Software",
    "Sound": "Sound",
    "Standard": "Standard",
    "StudyRegistration": "StudyRegistration",
    "WebPage": "Text",
    "Workflow": "Workflow",
}

DATE_TYPES = (
    ("created", "Created"),
    ("submitted", "Submitted"),
    ("accepted", "Accepted"),
    ("published", "Issued"),
    ("updated", "Updated"),
    ("available", "Available"),
    ("copyrighted", "Copyrighted"),
    ("collected", "Collected"),
    ("valid", "Valid"),
    ("withdrawn", "Withdrawn"),
    ("other", "Other"),
)

DESCRIPTION_TYPES = ("Abstract", "Methods", "TechnicalInfo", "Other")
TITLE_TYPES = ("AlternativeTitle", "Subtitle", "TranslatedTitle")

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
    "IsSupplementTo",
    "IsSupplementedBy",
)

# identifier type from validate_id -> relatedIdentifierType
RELATED_IDENTIFIER_TYPES = {"DOI": "DOI", "URL": "URL", "ISSN": "ISSN"}


def _name_identifiers(contributor: Contributor) -> List[Dict[str, str]]:
    if not contributor.id:
        return []
    orcid, ok = validate_orcid(contributor.id)
    if ok:
        return [
            {
                "nameIdentifier": f"https://orcid.org/{orcid}",
                "nameIdentifierScheme": "ORCID",
                "schemeUri": "https://orcid.org",
            }
        ]
    _, ok = validate_ror(contributor.id)
    if ok:
        return [
            {
                "nameIdentifier": contributor.id,
                "nameIdentifierScheme": "ROR",
                "schemeUri": "https://ror.org",
            }
        ]
    return []


def convert_contributor(contributor: Contributor) -> Dict[str, Any]:
    if contributor.is_person and contributor.family_name:
        name = ", ".join(p for p in (contributor.family_name, contributor.given_name) if p)
    else:
        name = contributor.display_name
    affiliations = []
    for affiliation in contributor.affiliations:
        if not affiliation.name:
            continue
        item = {"name": affiliation.name}
        if affiliation.id:
            item.update(
                {
                    "affiliationIdentifier": affiliation.id,
                    "affiliationIdentifierScheme": "ROR",
                    "schemeUri": "https://ror.org",
                }
            )
        affiliations.append(item)
    return {
        "name": name,
        "nameType": "Personal" if contributor.is_person else "Organizational",
        "givenName": contributor.given_name,
        "familyName": contributor.family_name,
        "nameIdentifiers": _name_identifiers(contributor),
        "affiliation": affiliations,
    }


def _related_identifier(pid: str, relation_type: str) -> Optional[Dict[str, str]]:
    identifier, identifier_type = validate_id(pid)
    related_type = RELATED_IDENTIFIER_TYPES.get(identifier_type)
    if related_type is None:
        return None
    return {
        "relatedIdentifier": identifier,
        "relatedIdentifierType": related_type,
        "relationType": relation_type,
    }


def convert(record: Record) -> Dict[str, Any]:
    """Convert a record to DataCite attributes (empty values dropped)."""
    doi, _ = validate_doi(record.id)

    creators = []
    contributors = []
    for contributor in record.contributors:
        item = convert_contributor(contributor)
        if "Author" in contributor.contributor_roles:
            creators.append(item)
        else:
            item["contributorType"] = contributor.contributor_roles[0]
            contributors.append(item)

    published = record.date_value()
    publication_year: Any = int(published[:4]) if published[:4].isdigit() else ""

    dates = []
    for key, date_type in DATE_TYPES:
        value = getattr(record.date, key)
        if value:
            dates.append({"date": value, "dateType": date_type})

    related_identifiers = []
    for relation in record.relations:
        if relation.type in RELATION_TYPES:
            item = _related_identifier(relation.id, relation.type)
            if item is not None:
                related_identifiers.append(item)
    for reference in record.references:
        item = _related_identifier(reference.id, "References")
        if item is not None:
            related_identifiers.append(item)

    rights_list = []
    if record.license is not None and record.license.url:
        license_id = record.license.id or url_to_spdx(record.license.url)
        rights_list.append(
            {
                "rightsUri": record.license.url,
                "rightsIdentifier": license_id.lower(),
                "rightsIdentifierScheme": "SPDX",
                "schemeUri": "https://spdx.org/licenses/",
            }
        )

    geo_locations = [g.model_dump(by_alias=True, exclude_none=True) for g in record.geo_locations]

    attributes = {
        "doi": doi,
        "types": {
            "resourceTypeGeneral": CM_TO_DC_MAPPINGS.get(record.type, "Other"),
            "resourceType": record.additional_type,
            "schemaOrg": CM_TO_SO_MAPPINGS.get(record.type, ""),
            "citeproc": CM_TO_CSL_MAPPINGS.get(record.type, ""),
        },
        "creators": creators,
        "titles": [
            {
                "title": t.title,
                "titleType": t.type if t.type in TITLE_TYPES else "",
                "lang": t.language,
            }
            for t in record.titles
        ],
        "publisher": {
            "name": record.publisher.name if record.publisher is not None else "",
            "publisherIdentifier": record.publisher.id if record.publisher is not None else "",
        },
        "publicationYear": publication_year,
        "subjects": [{"subject": s.subject} for s in record.subjects],
        "contributors": contributors,
        "dates": dates,
        "language": record.language,
        "alternateIdentifiers": [
            {"alternateIdentifier": i.identifier, "alternateIdentifierType": i.identifier_type}
            for i in record.identifiers
            if i.identifier != record.id
        ],
        "relatedIdentifiers": related_identifiers,
        "formats": list(dict.fromkeys(f.mime_type for f in record.files if f.mime_type)),
        "version": record.version,
        "rightsList": rights_list,
        "descriptions": [
            {
                "description": d.description,
                "descriptionType": (
                    "Abstract"
                    if d.type in ("", "Summary")
                    else d.type if d.type in DESCRIPTION_TYPES else "Other"
                ),
                "lang": d.language,
            }
            for d in record.descriptions
        ],
        "geoLocations": geo_locations,
        "fundingReferences": [
            {
                "funderName": f.funder_name,
                "funderIdentifier": f.funder_identifier,
                "funderIdentifierType": f.funder_identifier_type,
                "awardNumber": f.award_number,
                "awardTitle": f.award_title,
                "awardUri": f.award_uri,
            }
            for f in record.funding_references
            if f.funder_name
        ],
        "url": record.url,
        "schemaVersion": SCHEMA_VERSION,
    }
    return compact(attributes)


def write(record: Record) -> bytes:
    """Serialize one record as DataCite attributes.

    Raises:
        SchemaValidationError: the attributes do not validate against
            DataCite 4.5; the error carries the serialized output
    """
    document = convert(record)
    output = dump_json(document)
    check(document, SCHEMA, output=output)
    return output


def write_all(records: List[Record], strict: bool = False) -> bytes:
    """Serialize records as a JSON array of attributes, validating each."""
    documents = [convert(r) for r in records]
    return validate_documents(documents, SCHEMA, dump_json(documents), strict)
