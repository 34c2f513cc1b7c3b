"""
Crossref XML (unixsd) reader.

Architecture Context
--------------------
The Crossref API transforms any registered work into the deposit schema,
wrapped in a query result:

    crossref_result/query_result/body/query
        doi[@type]                      e.g. journal_article, book_content
        crm-item[@name]                 publisher-name, member-id, last-update
        doi_record/crossref/<variant>   journal, book, conference, ...

Bulk files (``.xml``) wrap many results as ``ListRecords/record/metadata``
with ``crossref_metadata`` in place of ``query``.

Design Decisions
----------------
1. **Tagged variant**: the ``crossref`` element holds exactly one
   publication variant (journal, book, conference, posted_content, ...).
   `get_variant` returns the tag and its element; one extractor per tag
   collects the parts shared by all variants into `Parts`, and a single
   pipeline turns parts into a record.
2. **Namespace-free tree**: the deposit schema mixes several namespaces
   (jats, fr, ai, rel). Tags are stripped to their local names after
   parsing so that extractors use plain paths.
3. **Programs by content**: program elements are classified by their
   ``name`` attribute (AccessIndicators, fundref) or, for relations, by
   carrying ``related_item`` children.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from commonmeta.core.exceptions import DecodeFailureError, InvalidIdentifierError
from commonmeta.core.fileio import check_extension, read_file
from commonmeta.core.http import HttpClient, get_client
from commonmeta.formats.base import PathLike, QueryOptions, fetch_each, read_each
from commonmeta.formats.crossref.reader import get_all as get_all_works
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
from commonmeta.model.types import CONTAINER_TYPES, IDENTIFIER_TYPES, RELATION_TYPES
from commonmeta.utils.dates import get_date_from_crossref_parts, parse_date, parse_datetime
from commonmeta.utils.doi import normalize_doi, validate_doi
from commonmeta.utils.identifiers import issn_as_url, normalize_ror, normalize_url, validate_url
from commonmeta.utils.text import sanitize, title_case
from commonmeta.vocabularies.spdx import normalize_cc_url, url_to_spdx

API_URL = "https://api.crossref.org/works/{doi}/transform/application/vnd.crossref.unixsd+xml"
ACCEPT = "application/vnd.crossref.unixsd+xml"

VARIANTS = (
    "book",
    "conference",
    "database",
    "dissertation",
    "journal",
    "peer_review",
    "posted_content",
    "sa_component",
    "standard",
    "report-paper",
)

# doi[@type] -> work type
CR_TO_CM_MAPPINGS = {
    "journal_title": "Journal",
    "journal_issue": "JournalIssue",
    "journal_volume": "JournalVolume",
    "journal_article": "JournalArticle",
    "conference_title": "Proceedings",
    "conference_series": "ProceedingsSeries",
    "conference_paper": "ProceedingsArticle",
    "book_title": "Book",
    "book_series": "BookSeries",
    "book_content": "BookChapter",
    "component": "Component",
    "dissertation": "Dissertation",
    "peer_review": "PeerReview",
    "posted_content": "Article",
    "report-paper_title": "Report",
    "report-paper_series": "ReportSeries",
    "report-paper_content": "ReportComponent",
    "standard_title": "Standard",
    "standard_series": "StandardSeries",
    "database_title": "Database",
    "dataset": "Dataset",
}

# content_item[@component_type] of book_content -> work type
BOOK_COMPONENT_TYPES = {
    "chapter": "BookChapter",
    "section": "BookSection",
    "part": "BookPart",
    "track": "BookTrack",
    "reference_entry": "Entry",
}

# relationship-type values whose title case is not a relation type
RELATIONSHIP_TYPES = {
    "isReviewOf": "Reviews",
    "hasTranslation": "HasVersion",
    "isSameAs": "IsIdenticalTo",
    "isReplacedBy": "IsPreviousVersionOf",
    "replaces": "IsNewVersionOf",
}

UUID_HEX_RE = re.compile(r"^[0-9a-fA-F]{32}$")


# ============================================================================
# Parsing
# ============================================================================


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]
        for key in [k for k in element.attrib if "}" in k]:
            element.attrib[key.split("}", 1)[1]] = element.attrib.pop(key)
    return root


def parse(content: bytes, source: str = "input") -> ET.Element:
    """Parse XML into a namespace-free tree.

    Raises:
        DecodeFailureError: malformed XML
    """
    try:
        return _strip_namespaces(ET.fromstring(content))
    except ET.ParseError as e:
        raise DecodeFailureError(f"Invalid XML in {source}: {e}") from e


def find_queries(root: ET.Element) -> List[ET.Element]:
    """All work results of a document, single or ListRecords."""
    if root.tag in ("query", "crossref_metadata"):
        return [root]
    return [e for e in root.iter() if e.tag in ("query", "crossref_metadata")]


def _text(element: Optional[ET.Element], path: str = "") -> str:
    if element is None:
        return ""
    found = element.find(path) if path else element
    if found is None:
        return ""
    return "".join(found.itertext()).strip()


def _find(element: Optional[ET.Element], path: str) -> Optional[ET.Element]:
    return element.find(path) if element is not None else None


def _findall(element: Optional[ET.Element], path: str) -> List[ET.Element]:
    return element.findall(path) if element is not None else []


# ============================================================================
# Variants
# ============================================================================


@dataclass
class Parts:
    """Sub-trees of a variant that feed the shared pipeline."""

    abstracts: List[ET.Element] = field(default_factory=list)
    archive_locations: Optional[ET.Element] = None
    citation_list: Optional[ET.Element] = None
    container_title: str = ""
    contributors: List[ET.Element] = field(default_factory=list)
    custom_metadata: Optional[ET.Element] = None
    doi_data: Optional[ET.Element] = None
    isbns: List[ET.Element] = field(default_factory=list)
    issns: List[ET.Element] = field(default_factory=list)
    issue: str = ""
    item_number: Optional[ET.Element] = None
    language: str = ""
    pages: Optional[ET.Element] = None
    programs: List[ET.Element] = field(default_factory=list)
    publication_dates: List[ET.Element] = field(default_factory=list)
    publisher_name: str = ""
    subjects: List[str] = field(default_factory=list)
    titles: Optional[ET.Element] = None
    volume: str = ""


def get_variant(query: ET.Element) -> Tuple[str, Optional[ET.Element]]:
    """Return the tag and element of the publication variant of a result."""
    crossref = query.find("doi_record/crossref")
    if crossref is None:
        return "", None
    for child in crossref:
        if child.tag in VARIANTS:
            return child.tag, child
    return "", None


def get_type(doi_type: str, variant: Optional[ET.Element]) -> str:
    """Work type from doi[@type], refined by the variant contents."""
    if doi_type == "book_title" and _find(variant, "book_set_metadata") is not None:
        return "BookSet"
    if doi_type == "book_title" and _find(variant, "book_series_metadata") is not None:
        return "Book"
    if doi_type == "book_content":
        item = _find(variant, "content_item")
        component_type = item.get("component_type", "") if item is not None else ""
        return BOOK_COMPONENT_TYPES.get(component_type, "BookChapter")
    return CR_TO_CM_MAPPINGS.get(doi_type, "Other")


def _programs(element: Optional[ET.Element]) -> List[ET.Element]:
    return _findall(element, "program")


def _journal(variant: ET.Element, work_type: str) -> Parts:
    metadata = variant.find("journal_metadata")
    issue = variant.find("journal_issue")
    parts = Parts(
        container_title=_text(metadata, "full_title"),
        issns=_findall(metadata, "issn"),
        language=(metadata.get("language", "") if metadata is not None else ""),
        issue=_text(issue, "issue"),
        volume=_text(issue, "journal_volume/volume"),
    )
    if work_type == "JournalIssue":
        parts.doi_data = _find(issue, "doi_data")
        parts.publication_dates = _findall(issue, "publication_date")
        return parts
    if work_type == "Journal":
        parts.doi_data = _find(metadata, "doi_data")
        return parts
    article = variant.find("journal_article")
    if article is None:
        return parts
    crossmark = article.find("crossmark")
    parts.abstracts = article.findall("abstract")
    parts.archive_locations = article.find("archive_locations")
    parts.citation_list = article.find("citation_list")
    parts.contributors = _findall(article, "contributors/*")
    parts.custom_metadata = _find(crossmark, "custom_metadata")
    parts.doi_data = article.find("doi_data")
    parts.item_number = article.find("publisher_item/item_number")
    parts.pages = article.find("pages")
    parts.programs = _programs(article)
    parts.publication_dates = article.findall("publication_date")
    parts.titles = article.find("titles")
    return parts


def _book(variant: ET.Element, work_type: str) -> Parts:
    metadata = None
    for tag in ("book_metadata", "book_series_metadata", "book_set_metadata", "edited_book_metadata"):
        metadata = variant.find(tag)
        if metadata is not None:
            break
    item = variant.find("content_item")
    parts = Parts(
        abstracts=_findall(metadata, "abstract"),
        isbns=_findall(metadata, "isbn"),
        language=(metadata.get("language", "") if metadata is not None else ""),
        publisher_name=_text(metadata, "publisher/publisher_name"),
    )
    if item is not None and work_type != "Book":
        parts.container_title = _text(metadata, "titles/title")
        parts.citation_list = item.find("citation_list")
        parts.contributors = _findall(item, "contributors/*")
        parts.doi_data = item.find("doi_data")
        parts.pages = item.find("pages")
        parts.programs = _programs(item)
        parts.publication_dates = item.findall("publication_date") or _findall(
            metadata, "publication_date"
        )
        parts.titles = item.find("titles")
        return parts
    parts.citation_list = _find(item, "citation_list")
    parts.contributors = _findall(metadata, "contributors/*")
    parts.doi_data = _find(metadata, "doi_data")
    parts.programs = _programs(metadata)
    parts.publication_dates = _findall(metadata, "publication_date")
    parts.titles = _find(metadata, "titles")
    return parts


def _conference(variant: ET.Element, work_type: str) -> Parts:
    proceedings = variant.find("proceedings_metadata")
    paper = variant.find("conference_paper")
    parts = Parts(
        container_title=_text(variant, "event_metadata/conference_name")
        or _text(proceedings, "proceedings_title"),
        isbns=_findall(proceedings, "isbn"),
        language=(proceedings.get("language", "") if proceedings is not None else ""),
        publisher_name=_text(proceedings, "publisher/publisher_name"),
    )
    if paper is None or work_type == "Proceedings":
        parts.doi_data = _find(proceedings, "doi_data")
        parts.publication_dates = _findall(proceedings, "publication_date")
        parts.titles = ET.Element("titles")
        ET.SubElement(parts.titles, "title").text = _text(proceedings, "proceedings_title")
        return parts
    parts.abstracts = paper.findall("abstract")
    parts.citation_list = paper.find("citation_list")
    parts.contributors = _findall(paper, "contributors/*")
    parts.custom_metadata = _find(paper.find("crossmark"), "custom_metadata")
    parts.doi_data = paper.find("doi_data")
    parts.pages = paper.find("pages")
    parts.programs = _programs(paper)
    parts.publication_dates = paper.findall("publication_date")
    parts.titles = paper.find("titles")
    return parts


def _as_publication_date(element: Optional[ET.Element]) -> List[ET.Element]:
    return [element] if element is not None else []


def _database(variant: ET.Element, work_type: str) -> Parts:
    metadata = variant.find("database_metadata")
    dataset = variant.find("dataset")
    parts = Parts(
        container_title=_text(metadata, "titles/title"),
        language=(metadata.get("language", "") if metadata is not None else ""),
        publisher_name=_text(metadata, "publisher/publisher_name"),
    )
    if dataset is None:
        parts.doi_data = _find(metadata, "doi_data")
        parts.titles = _find(metadata, "titles")
        return parts
    dates = dataset.find("database_date")
    parts.abstracts = [e for e in dataset.findall("description")] + dataset.findall("abstract")
    parts.citation_list = dataset.find("citation_list")
    parts.contributors = _findall(dataset, "contributors/*")
    parts.doi_data = dataset.find("doi_data")
    parts.programs = _programs(dataset)
    parts.publication_dates = _as_publication_date(
        _find(dates, "publication_date")
    ) or _as_publication_date(_find(dates, "creation_date"))
    parts.titles = dataset.find("titles")
    return parts


def _dissertation(variant: ET.Element, work_type: str) -> Parts:
    return Parts(
        abstracts=variant.findall("abstract"),
        citation_list=variant.find("citation_list"),
        container_title=_text(variant, "institution/institution_name"),
        contributors=variant.findall("person_name"),
        doi_data=variant.find("doi_data"),
        language=variant.get("language", ""),
        programs=_programs(variant),
        publication_dates=_as_publication_date(variant.find("approval_date")),
        titles=variant.find("titles"),
    )


def _peer_review(variant: ET.Element, work_type: str) -> Parts:
    return Parts(
        contributors=_findall(variant, "contributors/*"),
        doi_data=variant.find("doi_data"),
        language=variant.get("language", ""),
        programs=_programs(variant),
        publication_dates=_as_publication_date(variant.find("review_date")),
        titles=variant.find("titles"),
    )


def _posted_content(variant: ET.Element, work_type: str) -> Parts:
    group_title = _text(variant, "group_title")
    return Parts(
        abstracts=variant.findall("abstract"),
        citation_list=variant.find("citation_list"),
        contributors=_findall(variant, "contributors/*"),
        doi_data=variant.find("doi_data"),
        item_number=variant.find("item_number"),
        language=variant.get("language", ""),
        programs=_programs(variant),
        publication_dates=_as_publication_date(variant.find("posted_date")),
        publisher_name=_text(variant, "institution/institution_name"),
        subjects=[group_title] if group_title else [],
        titles=variant.find("titles"),
    )


def _sa_component(variant: ET.Element, work_type: str) -> Parts:
    component = variant.find("component_list/component")
    return Parts(
        doi_data=_find(component, "doi_data"),
        titles=_find(component, "titles"),
        publication_dates=_findall(component, "publication_date"),
    )


def _standard(variant: ET.Element, work_type: str) -> Parts:
    metadata = variant.find("standard_metadata")
    return Parts(
        abstracts=_findall(metadata, "abstract"),
        citation_list=variant.find("citation_list"),
        contributors=_findall(metadata, "contributors/*"),
        doi_data=_find(metadata, "doi_data") if metadata is not None else variant.find("doi_data"),
        language=(metadata.get("language", "") if metadata is not None else ""),
        programs=_programs(metadata),
        publication_dates=_findall(metadata, "publication_date")
        or _as_publication_date(_find(metadata, "approval_date")),
        publisher_name=_text(metadata, "standards_body/standards_body_name"),
        titles=_find(metadata, "titles"),
    )


def _report(variant: ET.Element, work_type: str) -> Parts:
    metadata = variant.find("report-paper_metadata")
    return Parts(
        abstracts=_findall(metadata, "abstract"),
        citation_list=_find(metadata, "citation_list"),
        container_title=_text(metadata, "institution/institution_name"),
        contributors=_findall(metadata, "contributors/*"),
        doi_data=_find(metadata, "doi_data"),
        isbns=_findall(metadata, "isbn"),
        language=(metadata.get("language", "") if metadata is not None else ""),
        programs=_programs(metadata),
        publication_dates=_findall(metadata, "publication_date"),
        publisher_name=_text(metadata, "publisher/publisher_name"),
        titles=_find(metadata, "titles"),
    )


EXTRACTORS: Dict[str, Callable[[ET.Element, str], Parts]] = {
    "book": _book,
    "conference": _conference,
    "database": _database,
    "dissertation": _dissertation,
    "journal": _journal,
    "peer_review": _peer_review,
    "posted_content": _posted_content,
    "sa_component": _sa_component,
    "standard": _standard,
    "report-paper": _report,
}


# ============================================================================
# Shared pipeline
# ============================================================================


def _media_first(elements: List[ET.Element], media_type: str) -> Optional[ET.Element]:
    for element in elements:
        if element.get("media_type") == media_type:
            return element
    return elements[0] if elements else None


def get_contributors(elements: List[ET.Element]) -> List[Contributor]:
    contributors: List[Contributor] = []
    for element in elements:
        if element.tag == "organization":
            name = _text(element)
            if name:
                contributors.append(
                    Contributor(type="Organization", name=name, contributor_roles=["Author"])
                )
            continue
        if element.tag != "person_name":
            continue
        given = _text(element, "given_name")
        family = _text(element, "surname")
        affiliations = []
        for institution in element.findall("affiliations/institution"):
            name = _text(institution, "institution_name")
            ror = ""
            for institution_id in institution.findall("institution_id"):
                if institution_id.get("type", "ror") == "ror":
                    ror = normalize_ror(_text(institution_id))
            if name or ror:
                affiliations.append(Affiliation(id=ror, name=name))
        if not affiliations and _text(element, "affiliation"):
            affiliations.append(Affiliation(name=_text(element, "affiliation")))
        orcid = _text(element, "ORCID")
        role = element.get("contributor_role", "author")
        contributor = Contributor(
            id=normalize_url(orcid, secure=True) if orcid else "",
            type="Person",
            given_name=given,
            family_name=family,
            affiliations=affiliations,
            contributor_roles=[title_case(role) if role in ("author", "editor") else "Author"],
        )
        duplicate = any(
            c.given_name == given and c.family_name and c.family_name == family
            for c in contributors
        )
        if not duplicate:
            contributors.append(contributor)
    return contributors


def get_funding_references(program: ET.Element) -> List[FundingReference]:
    """Fundref assertions, one reference per award number."""
    references = []
    groups = [a for a in program.findall("assertion") if a.get("name") == "fundgroup"]
    if not groups:
        groups = [program]
    for group in groups:
        funder_name, funder_identifier, funder_identifier_type = "", "", ""
        for assertion in group.findall("assertion"):
            if assertion.get("name") == "funder_name":
                funder_name = (assertion.text or "").strip()
                for nested in assertion.findall("assertion"):
                    if nested.get("name") != "funder_identifier":
                        continue
                    value = _text(nested)
                    if nested.get("provider") == "crossref" and not value.startswith("10.13039"):
                        value = "10.13039/" + value
                    funder_identifier = normalize_doi(value) or value
                    if funder_identifier.startswith("https://doi.org/10.13039/"):
                        funder_identifier_type = "Crossref Funder ID"
            elif assertion.get("name") == "ror":
                funder_identifier = normalize_ror(_text(assertion))
                funder_identifier_type = "ROR"
        awards = [_text(a) for a in group.findall("assertion") if a.get("name") == "award_number"]
        for award in awards or [""]:
            references.append(
                FundingReference(
                    funder_identifier=funder_identifier,
                    funder_identifier_type=funder_identifier_type,
                    funder_name=funder_name,
                    award_number=award,
                )
            )
    return references


def get_relation_type(relationship_type: str) -> str:
    relation_type = RELATIONSHIP_TYPES.get(relationship_type) or title_case(relationship_type)
    return relation_type if relation_type in RELATION_TYPES else ""


def get_relations(program: ET.Element) -> List[Relation]:
    relations = []
    for item in program.findall("related_item"):
        relation = item.find("inter_work_relation")
        if relation is None:
            relation = item.find("intra_work_relation")
        if relation is None:
            continue
        value = _text(relation)
        identifier_type = relation.get("identifier-type", "")
        if identifier_type == "doi":
            relation_id = normalize_doi(value)
        elif identifier_type == "issn":
            relation_id = issn_as_url(value)
        elif validate_url(value) == "URL":
            relation_id = value
        else:
            relation_id = ""
        relation_type = get_relation_type(relation.get("relationship-type", ""))
        if relation_id and relation_type:
            relations.append(Relation(id=relation_id, type=relation_type))
    return relations


def get_item_number(element: Optional[ET.Element]) -> Optional[Identifier]:
    """Publisher item number as identifier; 32-digit hex UUIDs get their hyphens back."""
    value = _text(element)
    if not value:
        return None
    number_type = element.get("item_number_type", "")
    identifier_type = "Other"
    for known in IDENTIFIER_TYPES:
        if known.lower() == number_type.lower():
            identifier_type = known
    if identifier_type == "UUID" and UUID_HEX_RE.match(value):
        value = "-".join((value[:8], value[8:12], value[12:16], value[16:20], value[20:]))
    return Identifier(identifier=value, identifier_type=identifier_type)


def get_descriptions(abstracts: List[ET.Element]) -> List[Description]:
    descriptions = []
    for abstract in abstracts:
        paragraphs = abstract.findall("p")
        if paragraphs:
            text = " ".join("".join(p.itertext()).strip() for p in paragraphs)
        else:
            text = "".join(abstract.itertext())
        text = sanitize(text.strip())
        if text:
            descriptions.append(
                Description(
                    description=text,
                    type=title_case(abstract.get("abstract-type", "")) or "Abstract",
                )
            )
    return descriptions


def get_references(citation_list: Optional[ET.Element]) -> List[Reference]:
    references = []
    for citation in _findall(citation_list, "citation"):
        key = citation.get("key", "")
        reference = Reference(
            key=key,
            id=normalize_doi(_text(citation, "doi")),
            title=_text(citation, "article_title"),
            publication_year=_text(citation, "cYear"),
            unstructured=_text(citation, "unstructured_citation"),
        )
        if key and any(r.key == key for r in references):
            continue
        references.append(reference)
    return references


def get_titles(element: Optional[ET.Element]) -> List[Title]:
    titles = []
    if _text(element, "title"):
        titles.append(Title(title=_text(element, "title")))
    if _text(element, "subtitle"):
        titles.append(Title(title=_text(element, "subtitle"), type="Subtitle"))
    original = _find(element, "original_language_title")
    if _text(original):
        titles.append(
            Title(
                title=_text(original),
                type="TranslatedTitle",
                language=original.get("language", ""),
            )
        )
    return titles


def read(query: ET.Element) -> Record:
    """Convert one Crossref XML work result to a record."""
    doi_element = query.find("doi")
    doi = normalize_doi(_text(doi_element))
    if not doi:
        raise InvalidIdentifierError(f"Crossref XML record without valid DOI: {_text(doi_element)}")
    tag, variant = get_variant(query)
    work_type = get_type(doi_element.get("type", "") if doi_element is not None else "", variant)
    parts = EXTRACTORS[tag](variant, work_type) if variant is not None else Parts()

    programs = list(parts.programs) + _programs(parts.custom_metadata)
    access_indicators = next((p for p in programs if p.get("name") == "AccessIndicators"), None)
    fundref = next((p for p in programs if p.get("name") == "fundref"), None)
    relation_programs = [p for p in programs if p.find("related_item") is not None]

    date = Date()
    publication_date = _media_first(parts.publication_dates, "online")
    if publication_date is not None:
        date.published = get_date_from_crossref_parts(
            _text(publication_date, "year"),
            _text(publication_date, "month"),
            _text(publication_date, "day"),
        )
    for assertion in _findall(parts.custom_metadata, "assertion"):
        if assertion.get("name") == "received":
            date.submitted = parse_date(_text(assertion))
        elif assertion.get("name") == "accepted":
            date.accepted = parse_date(_text(assertion))

    identifier, identifier_type = "", ""
    issn = _media_first(parts.issns, "electronic")
    isbn = _media_first(parts.isbns, "electronic")
    if issn is not None:
        identifier, identifier_type = _text(issn), "ISSN"
    elif isbn is not None:
        identifier, identifier_type = _text(isbn), "ISBN"
    container = Container(
        identifier=identifier,
        identifier_type=identifier_type,
        type=CONTAINER_TYPES.get(work_type, ""),
        title=parts.container_title,
        volume=parts.volume,
        issue=parts.issue,
        first_page=_text(parts.pages, "first_page"),
        last_page=_text(parts.pages, "last_page"),
    )

    files = []
    for item in _findall(parts.doi_data, "collection/item"):
        resource = item.find("resource")
        if _text(resource) and resource.get("mime_type"):
            files.append(File(url=_text(resource), mime_type=resource.get("mime_type", "")))

    identifiers = [Identifier(identifier=doi, identifier_type="DOI")]
    item_number = get_item_number(parts.item_number)
    if item_number is not None:
        identifiers.append(item_number)

    license = None
    license_refs = _findall(access_indicators, "license_ref")
    if license_refs:
        license_ref = next((r for r in license_refs if r.get("applies_to") == "vor"), license_refs[0])
        url, _ = normalize_cc_url(_text(license_ref))
        license = License(id=url_to_spdx(url), url=url)

    publisher_id, publisher_name = "", parts.publisher_name
    for item in query.findall("crm-item"):
        name = item.get("name")
        if name == "member-id":
            publisher_id = "https://api.crossref.org/members/" + _text(item)
        elif name == "publisher-name":
            publisher_name = _text(item)
        elif name == "last-update":
            date.updated = parse_datetime(_text(item))

    relations = []
    for program in relation_programs:
        relations.extend(get_relations(program))
    if container.identifier_type == "ISSN":
        relations.append(Relation(id=issn_as_url(container.identifier), type="IsPartOf"))

    return Record(
        id=doi,
        type=work_type,
        archive_locations=[
            a.get("name", "") for a in _findall(parts.archive_locations, "archive") if a.get("name")
        ],
        container=container,
        contributors=get_contributors(parts.contributors),
        date=date,
        descriptions=get_descriptions(parts.abstracts),
        files=files,
        funding_references=get_funding_references(fundref) if fundref is not None else [],
        identifiers=identifiers,
        language=parts.language,
        license=license,
        provider="Crossref",
        publisher=Publisher(id=publisher_id, name=publisher_name)
        if publisher_id or publisher_name
        else None,
        references=get_references(parts.citation_list),
        relations=relations,
        subjects=[Subject(subject=s) for s in parts.subjects],
        titles=get_titles(parts.titles),
        url=_text(parts.doi_data, "resource"),
    )


def read_all(queries: List[ET.Element]) -> List[Record]:
    return read_each(queries, read, "crossrefxml.read_all")


# ============================================================================
# Entry points
# ============================================================================


def get(doi: str, client: Optional[HttpClient] = None) -> ET.Element:
    """Fetch the unixsd XML of a work and return its query element.

    Raises:
        InvalidIdentifierError: not a DOI
        DecodeFailureError: malformed XML or no work in the response
    """
    value, ok = validate_doi(doi)
    if not ok:
        raise InvalidIdentifierError(f"{doi} is not a valid DOI")
    client = client or get_client()
    url = API_URL.format(doi=value)
    response = client.get(url, headers={"Accept": ACCEPT})
    queries = find_queries(parse(response.content, url))
    if not queries:
        raise DecodeFailureError(f"No Crossref work in response for {doi}")
    return queries[0]


def fetch(doi: str, client: Optional[HttpClient] = None) -> Record:
    return read(get(doi, client))


def fetch_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Record]:
    """Query the REST API for DOIs, then fetch each work as XML."""
    client = client or get_client()
    dois = [item.get("DOI", "") for item in get_all_works(options, client) if item.get("DOI")]
    return fetch_each(dois, lambda doi: fetch(doi, client), "crossrefxml.fetch_all")


def load(filename: PathLike) -> Record:
    """Load one work from an .xml file."""
    check_extension(filename, (".xml",))
    queries = find_queries(parse(read_file(filename), str(filename)))
    if not queries:
        raise DecodeFailureError(f"No Crossref work in {filename}")
    return read(queries[0])


def load_all(filename: PathLike) -> List[Record]:
    """Load all works of an .xml file (single result or ListRecords)."""
    check_extension(filename, (".xml",))
    return read_all(find_queries(parse(read_file(filename), str(filename))))
