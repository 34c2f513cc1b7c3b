"""
JSON Feed reader for the Rogue Scholar posts API.

Architecture Context
--------------------
    record = fetch("10.59350/sfzv4-xdb68")          # by DOI
    record = fetch("4e4bf150-751f-4245-b4ca-fe69e3c3bb24")   # by post UUID
    records = fetch_all(QueryOptions(community="front_matter", number=50))

A post is a JSON Feed item extended with its ``blog``, ``doi``, ``rid``,
``reference`` and ``relationships``.

Design Decisions
----------------
1. **DOI synthesis**: a post without DOI whose GUID is not a DOI of the
   blog's prefix gets a new random DOI under that prefix. ``read`` never
   checks the resolver, so reading stays offline.
2. **Files**: posts with a Rogue Scholar DOI are available as Markdown,
   PDF, EPUB and JATS XML at fixed URLs.
3. **Awards**: funding comes from the blog, from the post's
   ``funding_references``, or else from ``HasAward`` relationships that
   point at CORDIS or NSF award pages.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlencode, urlparse

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
from commonmeta.utils.authors import parse_name
from commonmeta.utils.dates import get_datetime_from_unix_timestamp
from commonmeta.utils.doi import (
    decode_doi,
    encode_doi,
    is_rogue_scholar_doi,
    normalize_doi,
    validate_doi,
    validate_prefix,
)
from commonmeta.utils.identifiers import (
    ROGUE_SCHOLAR_POST_RE,
    community_slug_as_url,
    issn_as_url,
    normalize_orcid,
    normalize_ror,
    normalize_url,
    validate_uuid,
)
from commonmeta.utils.text import sanitize
from commonmeta.vocabularies.fos import key_to_label
from commonmeta.vocabularies.spdx import url_to_spdx

logger = get_logger(__name__)

API_URL = "https://api.rogue-scholar.org/posts"
PUBLISHER = "Front Matter"

RELATION_TYPES = (
    "IsPartOf",
    "HasPart",
    "IsVariantFormOf",
    "IsOriginalFormOf",
    "IsIdenticalTo",
    "IsTranslationOf",
    "IsReviewedBy",
    "Reviews",
    "HasReview",
    "IsPreprintOf",
    "HasPreprint",
    "IsSupplementTo",
    "IsSupplementedBy",
)

# extension -> mime type of the renditions of a Rogue Scholar post
POST_FILES = (
    ("md", "text/markdown"),
    ("pdf", "application/pdf"),
    ("epub", "application/epub+zip"),
    ("xml", "application/xml"),
)

EUROPEAN_COMMISSION = "https://doi.org/10.13039/501100000780"
NATIONAL_SCIENCE_FOUNDATION = "https://doi.org/10.13039/100000001"


# ============================================================================
# Network
# ============================================================================


def post_url(pid: str) -> str:
    """API URL of a post addressed by DOI, UUID or API URL."""
    if ROGUE_SCHOLAR_POST_RE.match(pid):
        return pid
    doi, ok = validate_doi(pid)
    if ok:
        return f"{API_URL}/{doi}"
    uuid, ok = validate_uuid(pid)
    if ok:
        return f"{API_URL}/{uuid}"
    raise InvalidIdentifierError(f"{pid} is not a DOI, UUID or Rogue Scholar post URL")


def query_url(options: QueryOptions) -> str:
    """Build the posts list URL.

    Unless ``is_archived`` is set only posts flagged as needing an update
    are listed.
    """
    params = []
    if not options.is_archived:
        params.append(("flag", "needs_update"))
    if options.community:
        params.append(("blog_slug", options.community))
    params.append(("per_page", str(options.clamped_number())))
    params.append(("page", str(options.clamped_page())))
    return f"{API_URL}?{urlencode(params)}"


def get(pid: str, client: Optional[HttpClient] = None) -> Dict[str, Any]:
    client = client or get_client()
    return client.get_json(post_url(pid))


def fetch(pid: str, client: Optional[HttpClient] = None) -> Record:
    return read(get(pid, client))


def get_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Dict[str, Any]]:
    client = client or get_client()
    url = query_url(options)
    logger.debug("Querying Rogue Scholar", url=url)
    return unwrap_items(client.get_json(url), "items")


def fetch_all(options: QueryOptions, client: Optional[HttpClient] = None) -> List[Record]:
    return read_all(get_all(options, client))


def load(filename: PathLike) -> Record:
    return read(load_content(filename, (".json",)))


def load_all(filename: PathLike) -> List[Record]:
    content = load_content(filename, (".json", ".jsonl", ".jsonlines"))
    return read_all(unwrap_items(content, "items"))


# ============================================================================
# Mapping
# ============================================================================


def get_contributors(authors: List[Dict[str, Any]]) -> List[Contributor]:
    contributors = []
    for author in authors:
        given_name, family_name, name = parse_name(author.get("name", ""))
        affiliations = [
            Affiliation(id=normalize_ror(a.get("id")), name=a["name"])
            for a in author.get("affiliation") or []
            if a.get("name")
        ]
        contributors.append(
            Contributor(
                id=normalize_orcid(author.get("url")),
                type="Organization" if name else "Person",
                name=name,
                given_name=given_name,
                family_name=family_name,
                affiliations=affiliations,
                contributor_roles=["Author"],
            )
        )
    return contributors


def _funding_reference(item: Dict[str, Any]) -> FundingReference:
    return FundingReference(
        funder_name=item.get("funderName", ""),
        funder_identifier=item.get("funderIdentifier", ""),
        funder_identifier_type=item.get("funderIdentifierType", ""),
        award_number=item.get("awardNumber", ""),
        award_title=item.get("awardTitle", ""),
        award_uri=item.get("awardUri", ""),
    )


def _award_number(url: str) -> str:
    parsed = urlparse(url)
    params = {key.lower(): value for key, value in parse_qs(parsed.query).items()}
    award_ids = params.get("awd_id")
    if award_ids:
        return award_ids[0]
    return parsed.path.rstrip("/").rsplit("/", 1)[-1]


def get_award(urls: List[str]) -> Optional[FundingReference]:
    """Funding reference for a HasAward relationship, if the award is known."""
    if len(urls) == 1:
        prefix, _ = validate_prefix(urls[0])
        if prefix == "10.3030" or urlparse(urls[0]).netloc == "cordis.europa.eu":
            return FundingReference(
                funder_name="European Commission",
                funder_identifier=EUROPEAN_COMMISSION,
                funder_identifier_type="Crossref Funder ID",
                award_number=_award_number(urls[0]),
                award_uri=urls[0],
            )
    elif len(urls) == 2:
        prefix, _ = validate_prefix(urls[0])
        if prefix == "10.13039":
            return FundingReference(
                funder_name=(
                    "National Science Foundation"
                    if urls[0] == NATIONAL_SCIENCE_FOUNDATION
                    else ""
                ),
                funder_identifier=urls[0],
                funder_identifier_type="Crossref Funder ID",
                award_number=_award_number(urls[1]),
                award_uri=urls[1],
            )
    return None


def get_funding_references(content: Dict[str, Any]) -> List[FundingReference]:
    references = []
    funding = (content.get("blog") or {}).get("funding") or {}
    if funding.get("funderName"):
        references.append(_funding_reference(funding))
    if content.get("funding_references"):
        references.extend(_funding_reference(f) for f in content["funding_references"])
        return references
    for relationship in content.get("relationships") or []:
        if relationship.get("type") != "HasAward":
            continue
        award = get_award(relationship.get("urls") or [])
        if award is not None:
            references.append(award)
    return references


def get_id(content: Dict[str, Any]) -> str:
    """DOI of a post: its own, its GUID when minted under the blog prefix, or a new one."""
    if content.get("doi"):
        return normalize_doi(content["doi"])
    prefix = (content.get("blog") or {}).get("prefix", "")
    guid = normalize_doi(content.get("guid"))
    if guid and prefix:
        guid_prefix, _ = validate_prefix(guid)
        if guid_prefix == prefix and decode_doi(guid) != 0:
            return guid
    if prefix:
        return encode_doi(prefix, check_registered=False)
    return normalize_url(content.get("url"), secure=True)


def read(content: Dict[str, Any]) -> Record:
    """Convert a Rogue Scholar post to a Commonmeta record."""
    pid = get_id(content)
    if not pid:
        raise ValueError("Post has neither DOI, blog prefix nor url")
    blog = content.get("blog") or {}

    relations = []
    identifier, identifier_type = blog.get("home_page_url", ""), "URL"
    if blog.get("issn"):
        identifier, identifier_type = blog["issn"], "ISSN"
        relations.append(Relation(id=issn_as_url(blog["issn"]), type="IsPartOf"))
    if blog.get("slug"):
        relations.append(Relation(id=community_slug_as_url(blog["slug"]), type="IsPartOf"))
    container = Container(
        type="Blog",
        title=blog.get("title", ""),
        description=blog.get("description", ""),
        language=blog.get("language", ""),
        license=License(url=blog["license"]) if blog.get("license") else None,
        favicon=blog.get("favicon", ""),
        platform=blog.get("generator", ""),
        identifier=identifier,
        identifier_type=identifier_type,
    )

    identifiers = []
    files = []
    provider = ""
    if is_rogue_scholar_doi(pid):
        doi, _ = validate_doi(pid)
        files = [File(url=f"{API_URL}/{doi}.{ext}", mime_type=mime) for ext, mime in POST_FILES]
        identifiers.append(Identifier(identifier=pid, identifier_type="DOI"))
        provider = "Crossref" if is_rogue_scholar_doi(pid, "crossref") else "DataCite"
    if content.get("id"):
        identifiers.append(Identifier(identifier=content["id"], identifier_type="UUID"))
    if content.get("guid"):
        identifiers.append(Identifier(identifier=content["guid"], identifier_type="GUID"))
    if content.get("rid"):
        identifiers.append(Identifier(identifier=content["rid"], identifier_type="RID"))

    for relationship in content.get("relationships") or []:
        if relationship.get("type") not in RELATION_TYPES:
            continue
        for url in relationship.get("urls") or []:
            relation_id = normalize_doi(url) or normalize_url(url, secure=True, lower=True)
            if relation_id:
                relations.append(Relation(id=relation_id, type=relationship["type"]))

    references = []
    for item in content.get("reference") or []:
        key, reference_id = item.get("key", ""), item.get("id", "")
        if any((key and r.key == key) or (reference_id and r.id == reference_id) for r in references):
            continue
        references.append(
            Reference(
                key=key,
                id=reference_id,
                title=item.get("title", ""),
                publication_year=str(item.get("publicationYear") or ""),
                unstructured=item.get("unstructured", ""),
            )
        )

    subjects = []
    if blog.get("category"):
        label = key_to_label(blog["category"])
        if label:
            subjects.append(Subject(subject=label))
        relations.append(Relation(id=community_slug_as_url(blog["category"]), type="IsPartOf"))
    subjects.extend(Subject(subject=tag) for tag in content.get("tags") or [] if tag)

    license_url = normalize_url(blog.get("license"), secure=True, lower=True)
    description = sanitize(content.get("abstract") or content.get("summary") or "")
    title = sanitize(content.get("title") or "")

    url = content.get("url")
    if blog.get("status") == "archived" and content.get("archive_url"):
        url = content["archive_url"]

    return Record(
        id=pid,
        type="BlogPost",
        container=container,
        content_html=content.get("content_html") or content.get("content_text") or "",
        contributors=get_contributors(content.get("authors") or []),
        date=Date(
            published=get_datetime_from_unix_timestamp(content.get("published_at")),
            updated=get_datetime_from_unix_timestamp(content.get("updated_at")),
        ),
        descriptions=[Description(description=description, type="Abstract")] if description else [],
        feature_image=content.get("image") or "",
        files=files,
        funding_references=get_funding_references(content),
        identifiers=identifiers,
        language=content.get("language") or "",
        license=License(id=url_to_spdx(license_url), url=license_url) if license_url else None,
        provider=provider,
        publisher=Publisher(name=PUBLISHER),
        references=references,
        relations=relations,
        subjects=subjects,
        titles=[Title(title=title)] if title else [],
        url=normalize_url(url, secure=True),
    )


def read_all(items: List[Dict[str, Any]]) -> List[Record]:
    return read_each(items, read, "jsonfeed.read_all")
