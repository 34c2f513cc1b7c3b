"""
Crossref deposit XML writer (schema 5.3.1).

Architecture Context
--------------------
    account = Account(login_id="fm", login_passwd="...", depositor="Front Matter",
                      email="info@front-matter.io", registrant="Front Matter")
    output = write(record, account)          # <doi_batch> with one work
    output = write_all(records, account)     # one batch, bodies concatenated

The batch is what the Crossref deposit endpoint accepts
(``commonmeta.registration.crossref``).

Design Decisions
----------------
1. **Supported types only**: a record whose type has no deposit element
   raises UnsupportedConversionError; write_all logs and skips it.
2. **Prefixed namespaces**: JATS, fundref, AccessIndicators and relations
   elements are written with the prefixes declared on ``doi_batch``.
"""

import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from commonmeta.core.exceptions import UnsupportedConversionError
from commonmeta.core.logging import BatchLogger, get_logger
from commonmeta.model.record import Record
from commonmeta.utils.dates import CROSSREF_DATETIME_FORMAT, get_date_parts
from commonmeta.utils.doi import validate_doi
from commonmeta.utils.identifiers import validate_id
from commonmeta.utils.text import camel_case_string
from commonmeta.vocabularies.fos import is_fos

logger = get_logger(__name__)

SCHEMA_VERSION = "5.3.1"
NAMESPACES = {
    "xmlns": "http://www.crossref.org/schema/5.3.1",
    "xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "xmlns:jats": "http://www.ncbi.nlm.nih.gov/JATS1",
    "xmlns:fr": "http://www.crossref.org/fundref.xsd",
    "xmlns:ai": "http://www.crossref.org/AccessIndicators.xsd",
    "xmlns:rel": "http://www.crossref.org/relations.xsd",
    "xsi:schemaLocation": (
        "http://www.crossref.org/schema/5.3.1 "
        "https://www.crossref.org/schemas/crossref5.3.1.xsd"
    ),
}

# work type -> deposit element
CM_TO_CR_MAPPINGS = {
    "Article": "posted_content",
    "BlogPost": "posted_content",
    "Book": "book",
    "BookChapter": "book",
    "Dataset": "database",
    "Dissertation": "dissertation",
    "JournalArticle": "journal",
    "PeerReview": "peer_review",
    "ProceedingsArticle": "conference",
    "Report": "report-paper",
    "Standard": "standard",
}

INTER_WORK_RELATION_TYPES = (
    "IsPartOf",
    "HasPart",
    "Reviews",
    "HasReview",
    "IsReviewedBy",
    "IsSupplementTo",
    "IsSupplementedBy",
)
INTRA_WORK_RELATION_TYPES = (
    "IsIdenticalTo",
    "IsPreprintOf",
    "HasPreprint",
    "IsTranslationOf",
    "IsVersionOf",
    "HasVersion",
    "IsVariantFormOf",
    "IsOriginalFormOf",
)
RELATIONSHIP_TYPES = {"Reviews": "isReviewOf", "IsReviewedBy": "hasReview"}

# identifier-type values of the relations schema
RELATION_IDENTIFIER_TYPES = (
    "doi",
    "issn",
    "isbn",
    "uri",
    "pmid",
    "pmcid",
    "purl",
    "arxiv",
    "ark",
    "handle",
    "uuid",
    "ecli",
    "accession",
    "other",
)


@dataclass
class Account:
    """Crossref deposit credentials and batch head fields."""

    login_id: str = ""
    login_passwd: str = ""
    depositor: str = ""
    email: str = ""
    registrant: str = ""


# ============================================================================
# Element helpers
# ============================================================================


def _sub(parent: ET.Element, tag: str, text: Optional[str] = None, **attrs: str) -> ET.Element:
    element = ET.SubElement(parent, tag, {k: v for k, v in attrs.items() if v})
    if text:
        element.text = text
    return element


def _date(parent: ET.Element, tag: str, value: str, media_type: str = "") -> None:
    parts = get_date_parts(value)
    if not parts or not parts[0]:
        return
    year, month, day = (parts[0] + [0, 0])[:3]
    element = _sub(parent, tag, media_type=media_type)
    if month:
        _sub(element, "month", f"{month:02d}")
    if day:
        _sub(element, "day", f"{day:02d}")
    _sub(element, "year", f"{year:04d}")


def _contributors(parent: ET.Element, record: Record) -> None:
    if not record.contributors:
        return
    contributors = _sub(parent, "contributors")
    for index, contributor in enumerate(record.contributors):
        sequence = "first" if index == 0 else "additional"
        role = "editor" if "Editor" in contributor.contributor_roles else "author"
        if not contributor.is_person:
            _sub(
                contributors,
                "organization",
                contributor.name,
                sequence=sequence,
                contributor_role=role,
            )
            continue
        person = _sub(contributors, "person_name", sequence=sequence, contributor_role=role)
        _sub(person, "given_name", contributor.given_name)
        _sub(person, "surname", contributor.family_name or contributor.name)
        affiliations = [a for a in contributor.affiliations if a.name]
        if affiliations:
            element = _sub(person, "affiliations")
            for affiliation in affiliations:
                institution = _sub(element, "institution")
                _sub(institution, "institution_name", affiliation.name)
                if affiliation.id:
                    _sub(institution, "institution_id", affiliation.id, type="ror")
        if contributor.id and "orcid.org" in contributor.id:
            _sub(person, "ORCID", contributor.id)


def _titles(parent: ET.Element, record: Record) -> None:
    titles = _sub(parent, "titles")
    for title in record.titles:
        if title.type == "Subtitle":
            _sub(titles, "subtitle", title.title)
        elif title.type == "TranslatedTitle":
            _sub(titles, "original_language_title", title.title, language=title.language)
        elif titles.find("title") is None:
            _sub(titles, "title", title.title)


def _abstracts(parent: ET.Element, record: Record) -> None:
    for description in record.descriptions:
        if description.type not in ("Abstract", ""):
            continue
        abstract = _sub(parent, "jats:abstract")
        _sub(abstract, "jats:p", description.description)


def _fundref(record: Record) -> Optional[ET.Element]:
    if not record.funding_references:
        return None
    program = ET.Element("fr:program", {"name": "fundref"})
    for reference in record.funding_references:
        group = _sub(program, "fr:assertion", name="fundgroup")
        _, identifier_type = validate_id(reference.funder_identifier)
        if identifier_type == "ROR":
            _sub(group, "fr:assertion", reference.funder_identifier, name="ror")
        else:
            funder = _sub(group, "fr:assertion", reference.funder_name, name="funder_name")
            if identifier_type in ("Crossref Funder ID", "DOI"):
                _sub(funder, "fr:assertion", reference.funder_identifier, name="funder_identifier")
        if reference.award_number:
            _sub(group, "fr:assertion", reference.award_number, name="award_number")
    return program


def _access_indicators(record: Record) -> Optional[ET.Element]:
    if record.license is None or not record.license.url:
        return None
    program = ET.Element("ai:program", {"name": "AccessIndicators"})
    for applies_to in ("vor", "tdm"):
        _sub(program, "ai:license_ref", record.license.url, applies_to=applies_to)
    return program


def _relations(record: Record) -> Optional[ET.Element]:
    items = []
    for relation in record.relations:
        identifier, identifier_type = validate_id(relation.id)
        identifier_type = "uri" if identifier_type == "URL" else identifier_type.lower()
        if not identifier or identifier_type not in RELATION_IDENTIFIER_TYPES:
            continue
        if relation.type in INTER_WORK_RELATION_TYPES:
            tag = "rel:inter_work_relation"
        elif relation.type in INTRA_WORK_RELATION_TYPES:
            tag = "rel:intra_work_relation"
        else:
            continue
        item = ET.Element("rel:related_item")
        _sub(
            item,
            tag,
            identifier,
            **{
                "relationship-type": RELATIONSHIP_TYPES.get(
                    relation.type, camel_case_string(relation.type)
                ),
                "identifier-type": identifier_type,
            },
        )
        items.append(item)
    if not items:
        return None
    program = ET.Element("rel:program", {"name": "relations"})
    program.extend(items)
    return program


def _programs(parent: ET.Element, record: Record) -> None:
    for program in (_fundref(record), _access_indicators(record), _relations(record)):
        if program is not None:
            parent.append(program)


def _doi_data(parent: ET.Element, record: Record) -> None:
    doi, _ = validate_doi(record.id)
    element = _sub(parent, "doi_data")
    _sub(element, "doi", doi)
    _sub(element, "resource", record.url or record.id)
    resources = [(record.url, "text/html")] if record.url else []
    for file in record.files:
        mime_type = "text/plain" if file.mime_type == "text/markdown" else file.mime_type
        resources.append((file.url, mime_type))
    resources = [r for r in dict.fromkeys(resources) if r[0]]
    if resources:
        collection = _sub(element, "collection", property="text-mining")
        for url, mime_type in resources:
            item = _sub(collection, "item")
            _sub(item, "resource", url, mime_type=mime_type)


def _citations(parent: ET.Element, record: Record) -> None:
    citations = []
    for index, reference in enumerate(record.references):
        doi, _ = validate_doi(reference.id)
        if not doi and not reference.unstructured:
            continue
        citation = ET.Element("citation", {"key": reference.key or f"ref{index + 1}"})
        _sub(citation, "doi", doi)
        _sub(citation, "article_title", reference.title)
        _sub(citation, "cYear", reference.publication_year)
        _sub(citation, "unstructured_citation", reference.unstructured)
        citations.append(citation)
    if citations:
        _sub(parent, "citation_list").extend(citations)


def _item_number(parent: ET.Element, record: Record) -> None:
    for identifier in record.identifiers:
        if identifier.identifier_type == "UUID":
            _sub(
                parent,
                "item_number",
                identifier.identifier.replace("-", ""),
                item_number_type="uuid",
            )
            return


def _isbn_or_noisbn(parent: ET.Element, record: Record) -> None:
    container = record.container
    if container is not None and container.identifier_type == "ISBN":
        _sub(parent, "isbn", container.identifier, media_type="electronic")
    else:
        _sub(parent, "noisbn", reason="monograph")


def _publisher(parent: ET.Element, record: Record) -> None:
    if record.publisher is not None and record.publisher.name:
        publisher = _sub(parent, "publisher")
        _sub(publisher, "publisher_name", record.publisher.name)


def _pages(parent: ET.Element, record: Record) -> None:
    container = record.container
    if container is None or not (container.first_page or container.last_page):
        return
    pages = _sub(parent, "pages")
    _sub(pages, "first_page", container.first_page or container.last_page)
    if container.first_page:
        _sub(pages, "last_page", container.last_page)


# ============================================================================
# Deposit elements by type
# ============================================================================


def _journal(record: Record) -> ET.Element:
    container = record.container
    journal = ET.Element("journal")
    metadata = _sub(journal, "journal_metadata", language=record.language)
    _sub(metadata, "full_title", container.title if container else "")
    if container is not None and container.identifier_type == "ISSN":
        _sub(metadata, "issn", container.identifier, media_type="electronic")
    if container is not None and (container.volume or container.issue):
        issue = _sub(journal, "journal_issue")
        if container.volume:
            _sub(_sub(issue, "journal_volume"), "volume", container.volume)
        _sub(issue, "issue", container.issue)
    article = _sub(journal, "journal_article", publication_type="full_text")
    _titles(article, record)
    _contributors(article, record)
    _abstracts(article, record)
    _date(article, "publication_date", record.date.published, media_type="online")
    _pages(article, record)
    if any(i.identifier_type == "UUID" for i in record.identifiers):
        _item_number(_sub(article, "publisher_item"), record)
    _programs(article, record)
    if record.archive_locations:
        archives = _sub(article, "archive_locations")
        for name in record.archive_locations:
            _sub(archives, "archive", name=name)
    _doi_data(article, record)
    _citations(article, record)
    return journal


def _posted_content(record: Record) -> ET.Element:
    posted = ET.Element("posted_content", {"type": "other"})
    if record.language:
        posted.set("language", record.language)
    group_title = next((s.subject for s in record.subjects if is_fos(s.subject)), "")
    _sub(posted, "group_title", group_title)
    _contributors(posted, record)
    _titles(posted, record)
    _date(posted, "posted_date", record.date.published, media_type="online")
    if record.publisher is not None and record.publisher.name:
        institution = _sub(posted, "institution")
        _sub(institution, "institution_name", record.publisher.name)
    _item_number(posted, record)
    _abstracts(posted, record)
    _programs(posted, record)
    _doi_data(posted, record)
    _citations(posted, record)
    return posted


def _book(record: Record) -> ET.Element:
    container = record.container
    if record.type == "Book":
        book = ET.Element("book", {"book_type": "monograph"})
        metadata = _sub(book, "book_metadata", language=record.language)
        _contributors(metadata, record)
        _titles(metadata, record)
        _abstracts(metadata, record)
        _date(metadata, "publication_date", record.date.published, media_type="online")
        _isbn_or_noisbn(metadata, record)
        _publisher(metadata, record)
        _programs(metadata, record)
        _doi_data(metadata, record)
        _citations(metadata, record)
        return book
    book = ET.Element("book", {"book_type": "edited_book"})
    metadata = _sub(book, "book_metadata", language=record.language)
    _sub(_sub(metadata, "titles"), "title", container.title if container else "")
    _date(metadata, "publication_date", record.date.published, media_type="online")
    _isbn_or_noisbn(metadata, record)
    _publisher(metadata, record)
    item = _sub(book, "content_item", component_type="chapter")
    _contributors(item, record)
    _titles(item, record)
    _date(item, "publication_date", record.date.published, media_type="online")
    _pages(item, record)
    _programs(item, record)
    _doi_data(item, record)
    _citations(item, record)
    return book


def _database(record: Record) -> ET.Element:
    container = record.container
    database = ET.Element("database")
    metadata = _sub(database, "database_metadata", language=record.language)
    _sub(
        _sub(metadata, "titles"),
        "title",
        (container.title if container and container.title else record.title),
    )
    _publisher(metadata, record)
    dataset = _sub(database, "dataset", dataset_type="record")
    _contributors(dataset, record)
    _titles(dataset, record)
    if record.date.published:
        _date(_sub(dataset, "database_date"), "publication_date", record.date.published)
    _programs(dataset, record)
    _doi_data(dataset, record)
    _citations(dataset, record)
    return database


def _dissertation(record: Record) -> ET.Element:
    dissertation = ET.Element("dissertation", {"publication_type": "full_text"})
    if record.language:
        dissertation.set("language", record.language)
    contributors = ET.Element("contributors")
    _contributors(contributors, record)
    authors = contributors.findall("contributors/person_name")
    if authors:
        dissertation.append(authors[0])
    _titles(dissertation, record)
    _date(dissertation, "approval_date", record.date.published, media_type="online")
    institution_name = (
        record.container.title
        if record.container is not None and record.container.title
        else (record.publisher.name if record.publisher is not None else "")
    )
    if institution_name:
        _sub(_sub(dissertation, "institution"), "institution_name", institution_name)
    _sub(dissertation, "degree", record.additional_type)
    _programs(dissertation, record)
    _doi_data(dissertation, record)
    _citations(dissertation, record)
    return dissertation


def _conference(record: Record) -> ET.Element:
    container = record.container
    title = container.title if container else ""
    conference = ET.Element("conference")
    _sub(_sub(conference, "event_metadata"), "conference_name", title)
    proceedings = _sub(conference, "proceedings_metadata", language=record.language)
    _sub(proceedings, "proceedings_title", title)
    _publisher(proceedings, record)
    _date(proceedings, "publication_date", record.date.published, media_type="online")
    _isbn_or_noisbn(proceedings, record)
    paper = _sub(conference, "conference_paper", publication_type="full_text")
    _contributors(paper, record)
    _titles(paper, record)
    _abstracts(paper, record)
    _date(paper, "publication_date", record.date.published, media_type="online")
    _pages(paper, record)
    _programs(paper, record)
    _doi_data(paper, record)
    _citations(paper, record)
    return conference


def _report(record: Record) -> ET.Element:
    report = ET.Element("report-paper")
    metadata = _sub(report, "report-paper_metadata", language=record.language)
    _contributors(metadata, record)
    _titles(metadata, record)
    _abstracts(metadata, record)
    _date(metadata, "publication_date", record.date.published, media_type="online")
    _publisher(metadata, record)
    _isbn_or_noisbn(metadata, record)
    _programs(metadata, record)
    _doi_data(metadata, record)
    _citations(metadata, record)
    return report


def _standard(record: Record) -> ET.Element:
    standard = ET.Element("standard")
    metadata = _sub(standard, "standard_metadata", language=record.language)
    _contributors(metadata, record)
    _titles(metadata, record)
    doi, _ = validate_doi(record.id)
    designators = _sub(metadata, "designators")
    _sub(_sub(designators, "as_published"), "designator", doi)
    _date(metadata, "approval_date", record.date.published, media_type="online")
    if record.publisher is not None and record.publisher.name:
        body = _sub(metadata, "standards_body")
        _sub(body, "standards_body_name", record.publisher.name)
    _abstracts(metadata, record)
    _programs(metadata, record)
    _doi_data(metadata, record)
    _citations(standard, record)
    return standard


def _peer_review(record: Record) -> ET.Element:
    review = ET.Element("peer_review", {"stage": "pre-publication", "type": "referee-report"})
    if record.language:
        review.set("language", record.language)
    _contributors(review, record)
    _titles(review, record)
    _date(review, "review_date", record.date.published)
    _programs(review, record)
    _doi_data(review, record)
    return review


BUILDERS = {
    "journal": _journal,
    "posted_content": _posted_content,
    "book": _book,
    "database": _database,
    "dissertation": _dissertation,
    "conference": _conference,
    "report-paper": _report,
    "standard": _standard,
    "peer_review": _peer_review,
}


def convert(record: Record) -> ET.Element:
    """Build the deposit element of one record.

    Raises:
        UnsupportedConversionError: no deposit element for the record type
    """
    tag = CM_TO_CR_MAPPINGS.get(record.type)
    if tag is None:
        raise UnsupportedConversionError(
            f"Crossref XML does not support type {record.type} ({record.id})"
        )
    _, ok = validate_doi(record.id)
    if not ok:
        raise UnsupportedConversionError(f"Crossref XML needs a DOI, got {record.id}")
    return BUILDERS[tag](record)


def _batch(elements: List[ET.Element], account: Account) -> bytes:
    root = ET.Element("doi_batch", {"version": SCHEMA_VERSION, **NAMESPACES})
    head = _sub(root, "head")
    _sub(head, "doi_batch_id", str(uuid.uuid4()))
    _sub(head, "timestamp", datetime.now(timezone.utc).strftime(CROSSREF_DATETIME_FORMAT))
    depositor = _sub(head, "depositor")
    _sub(depositor, "depositor_name", account.depositor)
    _sub(depositor, "email_address", account.email)
    _sub(head, "registrant", account.registrant)
    body = _sub(root, "body")
    body.extend(elements)
    ET.indent(root, space="  ")
    xml = ET.tostring(root, encoding="unicode")
    return ('<?xml version="1.0" encoding="UTF-8"?>\n' + xml + "\n").encode("utf-8")


def write(record: Record, account: Optional[Account] = None) -> bytes:
    """Serialize one record as a deposit batch.

    Raises:
        UnsupportedConversionError: record type or id not depositable
    """
    return _batch([convert(record)], account or Account())


def write_all(
    records: List[Record], account: Optional[Account] = None, strict: bool = False
) -> bytes:
    """Serialize records into one batch, skipping records that cannot be deposited."""
    batch = BatchLogger("crossrefxml.write_all")
    elements = []
    for record in records:
        try:
            elements.append(convert(record))
            batch.record_ok()
        except UnsupportedConversionError as e:
            if strict:
                raise
            batch.record_failed(record.id, str(e))
    batch.finish()
    return _batch(elements, account or Account())
