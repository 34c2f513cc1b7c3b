"""
Schema.org reader: JSON-LD objects and HTML landing pages.

Architecture Context
--------------------
    record = fetch("https://blog.front-matter.io/posts/...")   # landing page
    record = load("work.json")                                  # JSON-LD file

``get(url)`` downloads a landing page, takes the first
``<script type="application/ld+json">`` block and fills whatever it lacks
from ``citation_*``, ``dc.*``, ``og:*`` and ``twitter:*`` meta tags.

Design Decisions
----------------
1. **Delegation**: when the page names a DOI registered with Crossref or
   DataCite, ``fetch`` returns the record from that agency instead, since
   its metadata is richer than anything embedded in HTML.
2. **Loose shapes**: ``author``, ``identifier`` and ``keywords`` may each
   be a single value or a list, and ``keywords`` may be comma-separated.
"""

from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from commonmeta.core.exceptions import DecodeFailureError
from commonmeta.core.fileio import decode_json
from commonmeta.core.http import HttpClient, get_client
from commonmeta.core.logging import get_logger
from commonmeta.formats import crossref, datacite
from commonmeta.formats.base import PathLike, fetch_each, load_content, read_each, unwrap_items
from commonmeta.model.record import (
    Affiliation,
    Container,
    Contributor,
    Date,
    Description,
    File,
    Identifier,
    License,
    Publisher,
    Record,
    Reference,
    Subject,
    Title,
)
from commonmeta.utils.authors import is_personal_name, parse_name
from commonmeta.utils.dates import parse_datetime, strip_milliseconds
from commonmeta.utils.doi import get_doi_ra, validate_doi
from commonmeta.utils.identifiers import (
    normalize_id,
    normalize_orcid,
    normalize_ror,
    normalize_url,
    validate_id,
)
from commonmeta.utils.text import parse_string, sanitize, wrap
from commonmeta.vocabularies.languages import get_language
from commonmeta.vocabularies.spdx import normalize_cc_url, url_to_spdx

logger = get_logger(__name__)

SO_TO_CM_MAPPINGS = {
    "Article": "Article",
    "BlogPosting": "BlogPost",
    "Book": "Book",
    "BookChapter": "BookChapter",
    "CreativeWork": "Other",
    "Dataset": "Dataset",
    "DigitalDocument": "Document",
    "Dissertation": "Dissertation",
    "Instrument": "Instrument",
    "NewsArticle": "Article",
    "Legislation": "LegalDocument",
    "PresentationDigitalDocument": "Presentation",
    "Report": "Report",
    "ScholarlyArticle": "JournalArticle",
    "SoftwareSourceCode": "Software",
    "WebPage": "WebPage",
}

# meta tag fallbacks, in order of preference: (attribute, value)
ID_TAGS = (
    ("name", "citation_doi"),
    ("name", "dc.identifier"),
    ("name", "DC.identifier"),
    ("name", "bepress_citation_doi"),
)
TYPE_TAGS = (("property", "og:type"), ("name", "dc.type"), ("name", "DC.type"))
NAME_TAGS = (
    ("name", "citation_title"),
    ("name", "dc.title"),
    ("name", "DC.title"),
    ("property", "og:title"),
    ("name", "twitter:title"),
)
DESCRIPTION_TAGS = (
    ("name", "citation_abstract"),
    ("name", "dc.description"),
    ("property", "og:description"),
    ("name", "twitter:description"),
)
DATE_PUBLISHED_TAGS = (
    ("name", "citation_publication_date"),
    ("name", "citation_date"),
    ("name", "dc.date"),
    ("property", "article:published_time"),
)
DATE_MODIFIED_TAGS = (
    ("property", "og:updated_time"),
    ("property", "article:modified_time"),
)
AUTHOR_TAGS = (("name", "citation_author"), ("name", "dc.creator"), ("name", "DC.creator"))

# og:type values are lowercase
OG_TYPES = {"article": "Article", "book": "Book", "website": "WebPage"}

DELEGATED_RAS = ("Crossref", "DataCite")


# ============================================================================
# HTML landing pages
# ============================================================================


def _meta(soup: BeautifulSoup, tags: tuple) -> str:
    for attribute, value in tags:
        tag = soup.find("meta", attrs={attribute: value})
        if tag is not None and tag.get("content"):
            return tag["content"].strip()
    return ""


def _json_ld(soup: BeautifulSoup) -> Dict[str, Any]:
    script = soup.find("script", attrs={"type": "application/ld+json"})
    if script is None or not script.string:
        return {}
    try:
        content = decode_json(script.string, "application/ld+json")
    except DecodeFailureError as e:
        logger.warning("Ignoring malformed JSON-LD", error=str(e))
        return {}
    if isinstance(content, list):
        content = content[0] if content else {}
    if isinstance(content, dict) and "@graph" in content:
        graph = [item for item in wrap(content["@graph"]) if isinstance(item, dict)]
        content = next((item for item in graph if item.get("@type") != "WebSite"), {})
    return content if isinstance(content, dict) else {}


def parse_html(html: str, url: str = "") -> Dict[str, Any]:
    """Extract a Schema.org object from a landing page.

    JSON-LD values take precedence; meta tags only fill missing keys.
    """
    soup = BeautifulSoup(html, "lxml")
    content = _json_ld(soup)

    if not content.get("@id"):
        pid = _meta(soup, ID_TAGS)
        doi, ok = validate_doi(pid)
        content["@id"] = f"https://doi.org/{doi}" if ok else url
    if not content.get("@type"):
        meta_type = _meta(soup, TYPE_TAGS)
        content["@type"] = OG_TYPES.get(meta_type.lower(), meta_type) or "WebPage"
    if not content.get("name") and not content.get("headline"):
        title = _meta(soup, NAME_TAGS)
        if not title and soup.title is not None and soup.title.string:
            title = soup.title.string.strip()
        content["name"] = title
    if not content.get("description"):
        content["description"] = _meta(soup, DESCRIPTION_TAGS)
    if not content.get("datePublished"):
        content["datePublished"] = strip_milliseconds(_meta(soup, DATE_PUBLISHED_TAGS))
    if not content.get("dateModified"):
        content["dateModified"] = strip_milliseconds(_meta(soup, DATE_MODIFIED_TAGS))
    if not content.get("author") and not content.get("creator"):
        names = []
        for attribute, value in AUTHOR_TAGS:
            names.extend(
                tag["content"].strip()
                for tag in soup.find_all("meta", attrs={attribute: value})
                if tag.get("content")
            )
        content["author"] = [{"name": name} for name in names]
    if not content.get("inLanguage") and soup.html is not None and soup.html.get("lang"):
        content["inLanguage"] = soup.html["lang"]
    if not content.get("license"):
        link = soup.find("link", rel="license")
        if link is not None and link.get("href"):
            content["license"] = link["href"]
    content.setdefault("url", url)
    return content


def get(url: str, client: Optional[HttpClient] = None) -> Dict[str, Any]:
    """Download a landing page and return its Schema.org object."""
    client = client or get_client()
    html = client.get_text(url, headers={"Accept": "text/html"})
    return parse_html(html, url)


def fetch(url: str, client: Optional[HttpClient] = None) -> Record:
    """Read the metadata of a landing page.

    When the page carries a Crossref or DataCite DOI, the record comes from
    that registration agency.
    """
    content = get(url, client)
    doi, ok = validate_doi(content.get("@id"))
    if ok:
        ra, _ = get_doi_ra(doi)
        if ra == "Crossref":
            return crossref.fetch(doi, client=client)
        if ra == "DataCite":
            return datacite.fetch(doi, client=client)
        if ra:
            content["provider"] = {"@type": "Organization", "name": ra}
    return read(content)


def fetch_all(urls: List[str], client: Optional[HttpClient] = None) -> List[Record]:
    """Fetch landing pages in parallel; pages that fail are logged and skipped."""
    return fetch_each(urls, lambda url: fetch(url, client), "schemaorg.fetch_all")


def load(filename: PathLike) -> Record:
    return read(load_content(filename, (".json",)))


def load_all(filename: PathLike) -> List[Record]:
    return read_all(unwrap_items(load_content(filename, (".json", ".jsonl", ".jsonlines"))))


# ============================================================================
# Mapping
# ============================================================================


def _node_id(item: Dict[str, Any]) -> str:
    for key in ("@id", "identifier", "sameAs"):
        for value in wrap(item.get(key)):
            if isinstance(value, str) and value:
                return value
    return ""


def get_contributor(item: Any, role: str = "Author") -> Contributor:
    """Map a Person or Organization node (or a bare name) to a contributor."""
    if isinstance(item, str):
        item = {"name": item}
    raw_id = _node_id(item)
    _, id_type = validate_id(raw_id)
    pid = ""
    if id_type == "ORCID":
        pid, contributor_type = normalize_orcid(raw_id), "Person"
    elif id_type == "ROR":
        pid, contributor_type = normalize_ror(raw_id), "Organization"
    elif item.get("@type") in ("Person", "Organization"):
        contributor_type = item["@type"]
    elif item.get("familyName") or is_personal_name(item.get("name", "")):
        contributor_type = "Person"
    else:
        contributor_type = "Organization"
    if contributor_type == "Organization":
        return Contributor(
            id=pid,
            type="Organization",
            name=sanitize(item.get("name", "")),
            contributor_roles=[role],
        )

    given_name = item.get("givenName", "")
    family_name = item.get("familyName", "")
    if not family_name and item.get("name"):
        given_name, family_name, _ = parse_name(item["name"])
    affiliations = []
    for affiliation in wrap(item.get("affiliation")):
        if isinstance(affiliation, str):
            affiliation = {"name": affiliation}
        if not isinstance(affiliation, dict) or not affiliation.get("name"):
            continue
        affiliations.append(
            Affiliation(id=normalize_ror(_node_id(affiliation)), name=affiliation["name"])
        )
    return Contributor(
        id=pid,
        type="Person",
        name="" if family_name else item.get("name", ""),
        given_name=given_name,
        family_name=family_name,
        affiliations=affiliations,
        contributor_roles=[role],
    )


def get_contributors(content: Dict[str, Any]) -> List[Contributor]:
    contributors: List[Contributor] = []
    authors = wrap(content.get("author")) or wrap(content.get("creator"))
    for role, items in (("Author", authors), ("Editor", wrap(content.get("editor")))):
        for item in items:
            if not item:
                continue
            contributor = get_contributor(item, role)
            if contributor.id and any(c.id == contributor.id for c in contributors):
                continue
            contributors.append(contributor)
    return contributors


def get_identifiers(content: Dict[str, Any]) -> List[Identifier]:
    identifiers = []
    for value in wrap(content.get("identifier")):
        if isinstance(value, dict):
            value = value.get("value") or value.get("@id") or ""
        if not isinstance(value, str) or not value:
            continue
        identifier, identifier_type = validate_id(value)
        if identifier_type == "DOI":
            identifiers.append(Identifier(identifier=normalize_id(value), identifier_type="DOI"))
        elif identifier_type:
            identifiers.append(Identifier(identifier=identifier, identifier_type=identifier_type))
        else:
            identifiers.append(Identifier(identifier=value, identifier_type="Other"))
    return identifiers


def get_subjects(value: Any) -> List[Subject]:
    if isinstance(value, str):
        value = value.split(",")
    return [Subject(subject=s.strip()) for s in wrap(value) if isinstance(s, str) and s.strip()]


def get_license(value: Any) -> Optional[License]:
    if isinstance(value, dict):
        value = value.get("@id") or value.get("url") or ""
    if isinstance(value, list):
        value = value[0] if value else ""
    if not isinstance(value, str) or not value:
        return None
    url, ok = normalize_cc_url(value)
    if not ok:
        url = normalize_url(value, secure=True)
    return License(id=url_to_spdx(url), url=url)


def _name_of(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("name", "")
    return value if isinstance(value, str) else ""


def get_container(content: Dict[str, Any]) -> Optional[Container]:
    for key, container_type in (
        ("periodical", "Periodical"),
        ("isPartOf", "Periodical"),
        ("includedInDataCatalog", "DataRepository"),
    ):
        value = content.get(key)
        if not value:
            continue
        if isinstance(value, list):
            value = value[0]
        container = Container(type=container_type, title=_name_of(value))
        if isinstance(value, dict):
            issn = value.get("issn")
            if isinstance(issn, list):
                issn = issn[0] if issn else ""
            if issn:
                container.identifier, container.identifier_type = issn, "ISSN"
            elif value.get("@id") or value.get("url"):
                container.identifier = value.get("@id") or value.get("url")
                container.identifier_type = "URL"
        container.first_page = parse_string(content.get("pageStart"))
        container.last_page = parse_string(content.get("pageEnd"))
        return container
    return None


def get_references(value: Any) -> List[Reference]:
    references = []
    for index, item in enumerate(wrap(value)):
        if isinstance(item, str):
            item = {"@id": item}
        if not isinstance(item, dict):
            continue
        pid = normalize_id(item.get("@id") or item.get("url") or "")
        if not pid and not item.get("name"):
            continue
        references.append(
            Reference(
                key=f"ref{index + 1}",
                id=pid,
                type="JournalArticle" if item.get("@type") == "ScholarlyArticle" else "",
                title=_name_of(item),
                unstructured="" if pid else _name_of(item),
            )
        )
    return references


def get_files(content: Dict[str, Any]) -> List[File]:
    files = []
    for item in wrap(content.get("distribution")) + wrap(content.get("encoding")):
        if not isinstance(item, dict) or not item.get("contentUrl"):
            continue
        size = item.get("contentSize") or item.get("size")
        files.append(
            File(
                url=item["contentUrl"],
                key=item.get("name", ""),
                mime_type=item.get("encodingFormat", ""),
                checksum=f"sha256:{item['sha256']}" if item.get("sha256") else "",
                size=int(size) if str(size or "").isdigit() else None,
            )
        )
    return files


def read(content: Dict[str, Any]) -> Record:
    """Convert a Schema.org JSON-LD object to a Commonmeta record."""
    url = normalize_url(content.get("url"))
    pid = normalize_id(_node_id(content)) or url
    if not pid:
        raise ValueError("Schema.org object has neither @id nor url")

    schema_type = content.get("@type", "")
    if isinstance(schema_type, list):
        schema_type = schema_type[0] if schema_type else ""
    work_type = SO_TO_CM_MAPPINGS.get(schema_type, "WebPage")
    additional_type = content.get("additionalType", "")
    if not additional_type and schema_type and schema_type not in SO_TO_CM_MAPPINGS:
        additional_type = schema_type

    title = sanitize(content.get("name") or content.get("headline") or "")
    description = sanitize(content.get("description") or "")

    language = content.get("inLanguage")
    if isinstance(language, dict):
        language = language.get("alternateName") or language.get("name") or ""

    publisher = _name_of(content.get("publisher"))
    provider = _name_of(content.get("provider"))

    version = content.get("version")
    return Record(
        id=pid,
        type=work_type,
        additional_type=additional_type,
        container=get_container(content),
        contributors=get_contributors(content),
        date=Date(
            created=parse_datetime(content.get("dateCreated")),
            published=parse_datetime(content.get("datePublished")),
            updated=parse_datetime(content.get("dateModified")),
        ),
        descriptions=[Description(description=description, type="Abstract")] if description else [],
        files=get_files(content),
        identifiers=get_identifiers(content),
        language=get_language(language) if isinstance(language, str) else "",
        license=get_license(content.get("license")),
        provider=provider,
        publisher=Publisher(name=publisher) if publisher else None,
        references=get_references(content.get("citation")),
        subjects=get_subjects(content.get("keywords")),
        titles=[Title(title=title)] if title else [],
        url=url,
        version=parse_string(version),
    )


def read_all(items: List[Dict[str, Any]]) -> List[Record]:
    return read_each(items, read, "schemaorg.read_all")
