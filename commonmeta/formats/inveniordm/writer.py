"""
InvenioRDM writer: record payloads for the InvenioRDM REST API.

Architecture Context
--------------------
    payload = convert(record)        # dict sent by commonmeta.registration.inveniordm
    output = write(record)           # validated JSON
    output = write_all(records)      # JSON array, best-effort

Design Decisions
----------------
1. **Externally registered DOI**: the DOI is always an external pid, the
   record and its metadata are public and files are disabled, since only
   metadata is deposited.
2. **Placeholders**: InvenioRDM requires a title, one creator and an award
   title, so "No title", "No author" and "No title" are written when the
   record has none.
3. **Community relations**: ``IsPartOf`` relations to Rogue Scholar
   communities and ISSNs are expressed through communities and the journal
   custom field instead of related identifiers.
"""

from typing import Any, Dict, List

from commonmeta.core.fileio import dump_json
from commonmeta.formats.base import validate_documents
from commonmeta.model.record import Contributor, FundingReference, Record
from commonmeta.model.schema import check
from commonmeta.utils.dates import parse_date
from commonmeta.utils.doi import validate_doi
from commonmeta.utils.identifiers import validate_id, validate_orcid, validate_ror
from commonmeta.utils.text import compact
from commonmeta.vocabularies.awards import find_award
from commonmeta.vocabularies.languages import get_language
from commonmeta.vocabularies.spdx import url_to_spdx

SCHEMA = "invenio-rdm-v0.1"
COMMUNITY_URL_PREFIX = "https://rogue-scholar.org/api/communities/"
FALLBACK_RESOURCE_TYPE = "publication-other"

CM_TO_INVENIO_MAPPINGS = {
    "Article": "publication-preprint",
    "Audiovisual": "video",
    "BlogPost": "publication-blogpost",
    "Book": "publication-book",
    "BookChapter": "publication-section",
    "Collection": "publication-annotationcollection",
    "Dataset": "dataset",
    "Dissertation": "publication-thesis",
    "Document": "publication",
    "Entry": "publication",
    "Event": "event",
    "Figure": "image-figure",
    "Image": "image",
    "Instrument": "other",
    "Journal": "publication-journal",
    "JournalArticle": "publication-article",
    "LegalDocument": "publication",
    "Manuscript": "publication",
    "Map": "other",
    "Patent": "patent",
    "PeerReview": "publication-peerreview",
    "PersonalCommunication": "publication",
    "PhysicalObject": "physicalobject",
    "Post": "publication",
    "Poster": "poster",
    "Presentation": "presentation",
    "Proceedings": "publication-conferenceproceeding",
    "ProceedingsArticle": "publication-conferencepaper",
    "Report": "publication-report",
    "Review": "publication-peerreview",
    "Software": "software",
    "Sound": "audio",
    "Standard": "publication-standard",
    "WebPage": "publication",
    "Workflow": "workflow",
    "Other": "other",
}

CM_TO_INVENIO_IDENTIFIER_MAPPINGS = {
    "ARK": "ark",
    "arXiv": "arxiv",
    "Bibcode": "ads",
    "Crossref Funder ID": "crossreffunderid",
    "DOI": "doi",
    "GUID": "guid",
    "Handle": "handle",
    "ISBN": "isbn",
    "ISSN": "issn",
    "PMID": "pmid",
    "PURL": "purl",
    "URL": "url",
    "URN": "urn",
    "UUID": "uuid",
    "Other": "other",
}

CM_TO_INVENIO_RELATION_MAPPINGS = {
    "IsSupplementTo": "issupplementto",
    "IsSupplementedBy": "issupplementedby",
    "IsNewVersionOf": "isnewversionof",
    "IsPreviousVersionOf": "ispreviousversionof",
    "IsVersionOf": "isversionof",
    "HasVersion": "hasversion",
    "IsPartOf": "ispartof",
    "HasPart": "haspart",
    "IsVariantFormOf": "isvariantformof",
    "IsOriginalFormOf": "isoriginalformof",
    "IsIdenticalTo": "isidenticalto",
    "IsTranslationOf": "istranslationof",
    "IsReviewedBy": "isreviewedby",
    "Reviews": "reviews",
    "HasPreprint": "haspreprint",
    "IsPreprintOf": "ispreprintof",
}

# Commonmeta date key -> InvenioRDM date type
DATE_TYPES = {"published": "issued", "accessed": "other"}


def _creator(contributor: Contributor) -> Dict[str, Any]:
    identifiers = []
    orcid, ok = validate_orcid(contributor.id)
    if ok:
        identifiers.append({"identifier": orcid, "scheme": "orcid"})
    ror, ok = validate_ror(contributor.id)
    if ok:
        identifiers.append({"identifier": ror, "scheme": "ror"})
    if contributor.is_person:
        person_or_org = {
            "type": "personal",
            "given_name": contributor.given_name,
            "family_name": contributor.family_name or contributor.name,
        }
    else:
        person_or_org = {"type": "organizational", "name": contributor.display_name}
    person_or_org["identifiers"] = identifiers

    affiliations = []
    for affiliation in contributor.affiliations:
        ror, ok = validate_ror(affiliation.id)
        item = {"id": ror, "name": affiliation.name} if ok else {"name": affiliation.name}
        if affiliation.name and item not in affiliations:
            affiliations.append(item)
    return {"person_or_org": person_or_org, "affiliations": affiliations}


def _funding(reference: FundingReference) -> Dict[str, Any]:
    funder: Dict[str, Any] = {"name": reference.funder_name}
    ror, ok = validate_ror(reference.funder_identifier)
    if ok:
        funder["id"] = ror

    award: Dict[str, Any] = {}
    known = find_award(reference.award_number)
    if known is not None:
        award = {"id": str(known["id"])}
    elif reference.award_number:
        award = {
            "number": reference.award_number,
            "title": {"en": reference.award_title or "No title"},
        }
        if reference.award_uri:
            identifier, identifier_type = validate_id(reference.award_uri)
            award["identifiers"] = [
                {
                    "identifier": reference.award_uri if identifier_type == "URL" else identifier,
                    "scheme": (identifier_type or "url").lower(),
                }
            ]
    return {"funder": funder, "award": award}


def _references(record: Record) -> List[Dict[str, str]]:
    references = []
    for reference in record.references:
        identifier, identifier_type = validate_id(reference.id)
        unstructured = reference.unstructured
        if unstructured:
            unstructured = unstructured.replace(reference.id, "", 1).strip()
            if unstructured.endswith(" ."):
                unstructured = unstructured[:-2]
        else:
            unstructured = reference.title or "Unknown title"
        if reference.publication_year and reference.publication_year not in unstructured:
            unstructured += f" ({reference.publication_year})."
        references.append(
            {
                "reference": unstructured,
                "scheme": CM_TO_INVENIO_IDENTIFIER_MAPPINGS.get(identifier_type, ""),
                "identifier": identifier,
            }
        )
    return references


def _related_identifiers(record: Record) -> List[Dict[str, Any]]:
    related = []
    for relation in record.relations:
        identifier, identifier_type = validate_id(relation.id)
        if relation.type == "IsPartOf" and (
            relation.id.startswith(COMMUNITY_URL_PREFIX) or identifier_type == "ISSN"
        ):
            continue
        scheme = CM_TO_INVENIO_IDENTIFIER_MAPPINGS.get(identifier_type)
        relation_type = CM_TO_INVENIO_RELATION_MAPPINGS.get(relation.type)
        if identifier and scheme and relation_type:
            related.append(
                {
                    "identifier": identifier,
                    "scheme": scheme,
                    "relation_type": {"id": relation_type},
                }
            )
    return related


def convert(record: Record) -> Dict[str, Any]:
    """Convert a record to an InvenioRDM payload (empty values dropped)."""
    doi, _ = validate_doi(record.id)

    creators = [_creator(c) for c in record.authors]
    if not creators:
        creators = [{"person_or_org": {"type": "organizational", "name": "No author"}}]

    identifiers = [
        {
            "identifier": i.identifier,
            "scheme": CM_TO_INVENIO_IDENTIFIER_MAPPINGS[i.identifier_type],
        }
        for i in record.identifiers
        if i.identifier != record.id and i.identifier_type in CM_TO_INVENIO_IDENTIFIER_MAPPINGS
    ]
    if record.url:
        identifiers.append({"identifier": record.url, "scheme": "url"})

    dates = []
    for key, value in record.date.model_dump().items():
        if value:
            dates.append({"date": value, "type": {"id": DATE_TYPES.get(key, key)}})

    rights = []
    if record.license is not None:
        license_id = record.license.id or url_to_spdx(record.license.url)
        if license_id:
            rights.append({"id": license_id.lower()})

    journal: Dict[str, str] = {}
    container = record.container
    if container is not None:
        journal = {
            "title": container.title,
            "volume": container.volume,
            "issue": container.issue,
            "pages": container.pages(),
            "issn": container.identifier if container.identifier_type == "ISSN" else "",
        }

    language = get_language(record.language, "iso639-3")
    payload = {
        "pids": {"doi": {"identifier": doi, "provider": "external"}} if doi else {},
        "access": {"record": "public", "files": "public"},
        "files": {"enabled": False},
        "custom_fields": {
            "journal:journal": journal,
            "rs:content_html": record.content_html,
            "rs:image": record.feature_image,
        },
        "metadata": {
            "resource_type": {
                "id": CM_TO_INVENIO_MAPPINGS.get(record.type, FALLBACK_RESOURCE_TYPE)
            },
            "creators": creators,
            "title": record.title or "No title",
            "publisher": record.publisher.name if record.publisher is not None else "",
            "publication_date": parse_date(record.date_value()),
            "subjects": [{"subject": s.subject} for s in record.subjects],
            "dates": dates,
            "languages": [{"id": language}] if language else [],
            "identifiers": identifiers,
            "related_identifiers": _related_identifiers(record),
            "version": record.version,
            "rights": rights,
            "description": record.abstract,
            "funding": [_funding(f) for f in record.funding_references],
            "references": _references(record),
        },
    }
    return compact(payload)


def write(record: Record) -> bytes:
    """Serialize one record as an InvenioRDM payload.

    Raises:
        SchemaValidationError: the payload does not validate; the error
            carries the serialized output
    """
    document = convert(record)
    output = dump_json(document)
    check(document, SCHEMA, output=output)
    return output


def write_all(records: List[Record], strict: bool = False) -> bytes:
    documents = [convert(r) for r in records]
    return validate_documents(documents, SCHEMA, dump_json(documents), strict)
