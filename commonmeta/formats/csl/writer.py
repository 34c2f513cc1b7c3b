"""CSL-JSON writer, validated against the CSL 1.0 input data schema."""

from typing import Any, Dict, List

from commonmeta.core.fileio import dump_json
from commonmeta.formats.base import validate_documents
from commonmeta.model.record import Contributor, Record
from commonmeta.model.schema import check
from commonmeta.utils.dates import get_date_parts
from commonmeta.utils.doi import validate_doi
from commonmeta.utils.text import compact

SCHEMA = "csl-data"

# work type -> CSL type; unmapped types are written as "document"
CM_TO_CSL_MAPPINGS = {
    "Article": "article",
    "JournalArticle": "article-journal",
    "BlogPost": "post-weblog",
    "Book": "book",
    "BookChapter": "chapter",
    "Collection": "collection",
    "Dataset": "dataset",
    "Document": "document",
    "Entry": "entry",
    "Event": "event",
    "Figure": "figure",
    "Image": "graphic",
    "LegalDocument": "legal_case",
    "Manuscript": "manuscript",
    "Map": "map",
    "Audiovisual": "motion_picture",
    "Patent": "patent",
    "Performance": "performance",
    "Journal": "periodical",
    "PersonalCommunication": "personal_communication",
    "Post": "post",
    "ProceedingsArticle": "paper-conference",
    "Report": "report",
    "Review": "review",
    "Software": "software",
    "Presentation": "speech",
    "Standard": "standard",
    "Dissertation": "thesis",
    "WebPage": "webpage",
}


def _name(contributor: Contributor) -> Dict[str, str]:
    if contributor.family_name:
        return compact({"given": contributor.given_name, "family": contributor.family_name})
    return {"literal": contributor.display_name}


def _date(value: str) -> Dict[str, Any]:
    parts = get_date_parts(value)
    return {"date-parts": parts} if parts and parts[0] else {}


def convert(record: Record) -> Dict[str, Any]:
    csl_type = CM_TO_CSL_MAPPINGS.get(record.type, "document")
    if record.type == "Software" and record.version:
        csl_type = "book"
    container = record.container
    doi, _ = validate_doi(record.id)
    return compact(
        {
            "id": record.id,
            "type": csl_type,
            "abstract": record.abstract,
            "accessed": _date(record.date.accessed),
            "author": [_name(c) for c in record.contributors_with_role("Author")],
            "editor": [_name(c) for c in record.contributors_with_role("Editor")],
            "container-title": container.title if container else "",
            "DOI": doi,
            "ISSN": container.identifier
            if container and container.identifier_type == "ISSN"
            else "",
            "issue": container.issue if container else "",
            "issued": _date(record.date.published),
            "keyword": ", ".join(s.subject for s in record.subjects if s.subject),
            "language": record.language,
            "license": record.license.url if record.license else "",
            "page": container.pages() if container else "",
            "publisher": record.publisher.name if record.publisher else "",
            "submitted": _date(record.date.submitted),
            "title": record.title,
            "URL": record.url,
            "version": record.version,
            "volume": container.volume if container else "",
        }
    )


def write(record: Record) -> bytes:
    """Serialize one record as a CSL item.

    Raises:
        SchemaValidationError: the item does not validate
    """
    document = convert(record)
    output = dump_json(document)
    check([document], SCHEMA, output=output)
    return output


def write_all(records: List[Record], strict: bool = False) -> bytes:
    """Serialize records as a CSL array; invalid items are logged unless strict."""
    documents = [convert(r) for r in records]
    return validate_documents(documents, SCHEMA, dump_json(documents), strict, wrap=True)
