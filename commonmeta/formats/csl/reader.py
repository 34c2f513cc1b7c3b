"""
CSL-JSON reader.

CSL items are what reference managers and citeproc processors exchange:

    record = load("references.json")          # one item
    records = load_all("library.json")        # array of items

There is no CSL web API, so ``fetch`` is not offered. Date parts may be
numbers or strings, subjects come as a comma-separated ``keyword`` or as
``categories``, and publisher is a string or ``{"name": ...}``.
"""

from typing import Any, Dict, List, Tuple

from commonmeta.formats.base import PathLike, load_content, read_each, unwrap_items
from commonmeta.model.record import (
    Container,
    Contributor,
    Date,
    Description,
    Identifier,
    License,
    Publisher,
    Record,
    Relation,
    Subject,
    Title,
)
from commonmeta.utils.dates import get_date_from_date_parts, parse_datetime
from commonmeta.utils.doi import normalize_doi
from commonmeta.utils.identifiers import issn_as_url, normalize_url, validate_id
from commonmeta.utils.text import sanitize
from commonmeta.vocabularies.languages import get_language
from commonmeta.vocabularies.spdx import url_to_spdx

# source: https://docs.citationstyles.org/en/stable/specification.html#appendix-iii-types
CSL_TO_CM_MAPPINGS = {
    "article": "Article",
    "article-journal": "JournalArticle",
    "article-magazine": "Article",
    "article-newspaper": "Article",
    "bill": "LegalDocument",
    "book": "Book",
    "broadcast": "Audiovisual",
    "chapter": "BookChapter",
    "classic": "Book",
    "collection": "Collection",
    "dataset": "Dataset",
    "document": "Document",
    "entry": "Entry",
    "entry-dictionary": "Entry",
    "entry-encyclopedia": "Entry",
    "event": "Event",
    "figure": "Figure",
    "graphic": "Image",
    "hearing": "LegalDocument",
    "interview": "Document",
    "legal_case": "LegalDocument",
    "legislation": "LegalDocument",
    "manuscript": "Manuscript",
    "map": "Map",
    "motion_picture": "Audiovisual",
    "musical_score": "Document",
    "pamphlet": "Document",
    "paper-conference": "ProceedingsArticle",
    "patent": "Patent",
    "performance": "Performance",
    "periodical": "Journal",
    "personal_communication": "PersonalCommunication",
    "post": "Post",
    "post-weblog": "BlogPost",
    "regulation": "LegalDocument",
    "report": "Report",
    "review": "Review",
    "review-book": "Review",
    "software": "Software",
    "song": "Audiovisual",
    "speech": "Presentation",
    "standard": "Standard",
    "thesis": "Dissertation",
    "treaty": "LegalDocument",
    "webpage": "WebPage",
}

DOI_NOTE_PREFIX = "DOI: "


def load(filename: PathLike) -> Record:
    return read(load_content(filename, (".json",)))


def load_all(filename: PathLike) -> List[Record]:
    return read_all(unwrap_items(load_content(filename, (".json", ".jsonl", ".jsonlines"))))


def _date(value: Any) -> str:
    if not isinstance(value, dict):
        return ""
    if value.get("date-parts"):
        return get_date_from_date_parts(value["date-parts"])
    return parse_datetime(value.get("date-time") or value.get("raw") or value.get("literal"))


def _contributors(items: List[Dict[str, Any]], role: str) -> List[Contributor]:
    contributors = []
    for item in items:
        literal = item.get("literal", "")
        family = item.get("family", "")
        particle = item.get("non-dropping-particle", "")
        if particle and family:
            family = f"{particle} {family}"
        contributors.append(
            Contributor(
                type="Organization" if literal else "Person",
                name=literal,
                given_name=item.get("given", ""),
                family_name=family,
                contributor_roles=[role],
            )
        )
    return contributors


def _pages(page: Any) -> Tuple[str, str]:
    if not page:
        return "", ""
    parts = str(page).replace("–", "-").split("-")
    first_page = parts[0].strip()
    last_page = parts[1].strip() if len(parts) > 1 else ""
    if last_page.isdigit() and first_page.isdigit() and int(last_page) < int(first_page):
        last_page = ""
    return first_page, last_page


def read(content: Dict[str, Any]) -> Record:
    """Convert a CSL item to a record.

    The id is the DOI (from ``DOI`` or a ``DOI: ...`` note), else the URL,
    else the CSL item id.
    """
    note = content.get("note") or ""
    doi = normalize_doi(content.get("DOI"))
    if not doi and note.startswith(DOI_NOTE_PREFIX):
        doi = normalize_doi(note[len(DOI_NOTE_PREFIX) :])
    url = normalize_url(content.get("URL"), secure=True)
    csl_id = str(content.get("id") or "")
    pid = doi or url or csl_id

    identifiers = []
    if csl_id and csl_id != pid:
        value, identifier_type = validate_id(csl_id)
        if identifier_type != "DOI":
            identifiers.append(
                Identifier(identifier=value or csl_id, identifier_type=identifier_type or "Other")
            )

    relations = []
    issn = (content.get("ISSN") or "")[:9]
    if len(issn) < 9:
        issn = ""
    if issn:
        relations.append(Relation(id=issn_as_url(issn), type="IsPartOf"))

    first_page, last_page = _pages(content.get("page"))
    container = Container(
        type="Periodical" if content.get("container-title") else "",
        title=content.get("container-title", ""),
        identifier=issn,
        identifier_type="ISSN" if issn else "",
        volume=str(content.get("volume") or ""),
        issue=str(content.get("issue") or ""),
        first_page=first_page,
        last_page=last_page,
    )

    license = None
    if content.get("license"):
        license_url = normalize_url(content["license"], secure=True, lower=True)
        license = License(id=url_to_spdx(license_url), url=license_url)

    publisher = content.get("publisher")
    if isinstance(publisher, dict):
        publisher = publisher.get("name")

    if content.get("keyword"):
        subjects = [s.strip() for s in content["keyword"].split(",")]
    else:
        subjects = content.get("categories") or []

    abstract = sanitize(content.get("abstract"))
    return Record(
        id=pid,
        type=CSL_TO_CM_MAPPINGS.get(content.get("type", ""), "Other"),
        container=container if container.to_dict() else None,
        contributors=_contributors(content.get("author") or [], "Author")
        + _contributors(content.get("editor") or [], "Editor"),
        date=Date(
            published=_date(content.get("issued")),
            submitted=_date(content.get("submitted")),
            accessed=_date(content.get("accessed")),
        ),
        descriptions=[Description(description=abstract, type="Abstract")] if abstract else [],
        identifiers=identifiers,
        language=get_language(content.get("language"), "iso639-1"),
        license=license,
        publisher=Publisher(name=publisher) if publisher else None,
        relations=relations,
        subjects=[Subject(subject=s) for s in subjects if s],
        titles=[Title(title=sanitize(content.get("title")))] if content.get("title") else [],
        url=url,
        version=str(content.get("version") or ""),
    )


def read_all(items: List[Dict[str, Any]]) -> List[Record]:
    return read_each(items, read, "csl.read_all")
