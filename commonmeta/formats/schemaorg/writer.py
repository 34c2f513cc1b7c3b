"""
Schema.org writer: JSON-LD for landing pages and search engines.

Architecture Context
--------------------
    output = write(record)          # one JSON-LD object
    output = write_all(records)     # JSON array of objects

There is no published JSON Schema for Schema.org, so output is not
validated; ``strict`` only exists for a uniform ``write_all`` signature.

Design Decisions
----------------
1. **Author and editor**: contributors with the Editor role go to
   ``editor``, everyone else with the Author role to ``author``.
2. **Files by type**: datasets list files as ``distribution`` inside a
   ``DataCatalog``, other works as ``encoding`` next to a ``Periodical``.
"""

from typing import Any, Dict, List

from commonmeta.core.fileio import dump_json
from commonmeta.model.record import Contributor, File, Record
from commonmeta.utils.text import compact

SCHEMA_CONTEXT = "http://schema.org"

# work type -> Schema.org type
CM_TO_SO_MAPPINGS = {
    "Article": "Article",
    "Audiovisual": "CreativeWork",
    "BlogPost": "BlogPosting",
    "Book": "Book",
    "BookChapter": "BookChapter",
    "Collection": "CreativeWork",
    "Dataset": "Dataset",
    "Dissertation": "Dissertation",
    "Document": "CreativeWork",
    "Entry": "CreativeWork",
    "Event": "CreativeWork",
    "Figure": "CreativeWork",
    "Image": "CreativeWork",
    "Instrument": "Instrument",
    "JournalArticle": "ScholarlyArticle",
    "LegalDocument": "Legislation",
    "Presentation": "PresentationDigitalDocument",
    "Report": "Report",
    "Software": "SoftwareSourceCode",
    "WebPage": "WebPage",
}


def _person_or_organization(contributor: Contributor) -> Dict[str, Any]:
    if not contributor.is_person:
        return {
            "@id": contributor.id,
            "@type": "Organization",
            "name": contributor.display_name,
        }
    return {
        "@id": contributor.id,
        "@type": "Person",
        "givenName": contributor.given_name,
        "familyName": contributor.family_name,
        "name": contributor.name,
        "affiliation": [
            {"@id": a.id, "@type": "Organization", "name": a.name}
            for a in contributor.affiliations
            if a.name
        ],
    }


def _media_object(file: File) -> Dict[str, Any]:
    return {
        "@type": "MediaObject",
        "contentUrl": file.url,
        "encodingFormat": file.mime_type,
        "name": file.key,
        "sha256": file.checksum[len("sha256:"):] if file.checksum.startswith("sha256:") else "",
        "size": file.size,
    }


def convert(record: Record) -> Dict[str, Any]:
    """Convert a record to a Schema.org JSON-LD object (empty values dropped)."""
    authors = []
    editors = []
    for contributor in record.contributors:
        if "Editor" in contributor.contributor_roles:
            editors.append(_person_or_organization(contributor))
        elif "Author" in contributor.contributor_roles:
            authors.append(_person_or_organization(contributor))

    citations = [
        {
            "@id": r.id,
            "@type": "ScholarlyArticle" if r.type == "JournalArticle" else "CreativeWork",
            "name": r.title,
        }
        for r in record.references
        if r.id
    ]

    document: Dict[str, Any] = {
        "@context": SCHEMA_CONTEXT,
        "@id": record.id,
        "@type": CM_TO_SO_MAPPINGS.get(record.type, "CreativeWork"),
        "additionalType": record.additional_type,
        "author": authors,
        "editor": editors,
        "citation": citations,
        "dateCreated": record.date.created,
        "datePublished": record.date.published,
        "dateModified": record.date.updated,
        "description": record.abstract,
        "identifier": [i.identifier for i in record.identifiers if i.identifier != record.id],
        "inLanguage": record.language,
        "keywords": ", ".join(s.subject for s in record.subjects),
        "license": record.license.url if record.license is not None else "",
        "name": record.title,
        "provider": {"@type": "Organization", "name": record.provider} if record.provider else {},
        "publisher": (
            {"@type": "Organization", "name": record.publisher.name}
            if record.publisher is not None and record.publisher.name
            else {}
        ),
        "url": record.url,
        "version": record.version,
    }

    media = [_media_object(f) for f in record.files]
    container = record.container
    if record.type == "Dataset":
        document["distribution"] = media
        if container is not None and container.title:
            document["includedInDataCatalog"] = {
                "@id": container.identifier,
                "@type": "DataCatalog",
                "name": container.title,
            }
    else:
        document["encoding"] = media
        if container is not None and container.title:
            document["periodical"] = {
                "@type": "Periodical",
                "name": container.title,
                "issn": container.identifier if container.identifier_type == "ISSN" else "",
            }
        if container is not None:
            document["pageStart"] = container.first_page
            document["pageEnd"] = container.last_page
    return compact(document)


def write(record: Record) -> bytes:
    return dump_json(convert(record))


def write_all(records: List[Record], strict: bool = False) -> bytes:
    return dump_json([convert(r) for r in records])
