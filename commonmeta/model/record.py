"""
The Commonmeta record.

Architecture Context
--------------------
Every format reader produces a `Record`; every writer consumes one. The
models use snake_case attributes and serialize with camelCase keys:

    record = Record(id="https://doi.org/10.7554/elife.01567", type="JournalArticle")
    record.to_dict()   # {"id": ..., "type": "JournalArticle", "identifiers": [...], ...}

Design Decisions
----------------
1. **Normalized at construction**: a validator on `Record` enforces the
   record invariants whenever a record is built, whether by a reader or by
   loading Commonmeta JSON:
   - the primary `id` is present exactly once in `identifiers`
   - identifiers, relations, references, subjects, files and funding
     references are de-duplicated, first occurrence wins
   - every contributor has at least one role (Author when unknown)
   - organizations carry neither given nor family name
2. **Empty means absent**: `to_dict()` drops None, empty strings, empty
   lists and empty objects, so a serialized record only carries what is known.
3. **Open type strings**: `type` and roles are plain strings validated
   against the JSON Schema on write, so readers can pass through values
   without a lossy enum conversion.
"""

import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from commonmeta.model.types import ContributorRole, ContributorType
from commonmeta.utils.doi import normalize_doi
from commonmeta.utils.identifiers import validate_id
from commonmeta.utils.text import compact

COMMONMETA_SCHEMA_URL = "https://commonmeta.org/commonmeta_v0.16"


class CommonmetaModel(BaseModel):
    """Base model: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, dropping empty values."""
        return compact(self.model_dump(by_alias=True, exclude_none=True, mode="json"))


# ============================================================================
# Components
# ============================================================================


class Affiliation(CommonmetaModel):
    id: str = ""
    name: str = ""
    asserted_by: str = ""


class Contributor(CommonmetaModel):
    id: str = ""
    type: str = ContributorType.PERSON.value
    name: str = ""
    given_name: str = ""
    family_name: str = ""
    affiliations: List[Affiliation] = Field(default_factory=list)
    contributor_roles: List[str] = Field(default_factory=list)

    @property
    def is_person(self) -> bool:
        return self.type == ContributorType.PERSON.value

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return " ".join(part for part in (self.given_name, self.family_name) if part)


class License(CommonmetaModel):
    id: str = ""
    url: str = ""


class Container(CommonmetaModel):
    identifier: str = ""
    identifier_type: str = ""
    type: str = ""
    title: str = ""
    description: str = ""
    language: str = ""
    license: Optional[License] = None
    platform: str = ""
    favicon: str = ""
    first_page: str = ""
    last_page: str = ""
    volume: str = ""
    issue: str = ""

    def pages(self) -> str:
        """Return "first-last", "last", "first" or ""."""
        if not self.first_page:
            return self.last_page
        if not self.last_page:
            return self.first_page
        return f"{self.first_page}-{self.last_page}"


class Date(CommonmetaModel):
    """Dates keyed by event. `published` is the canonical publication date."""

    created: str = ""
    submitted: str = ""
    accepted: str = ""
    published: str = ""
    updated: str = ""
    accessed: str = ""
    available: str = ""
    copyrighted: str = ""
    collected: str = ""
    valid: str = ""
    withdrawn: str = ""
    other: str = ""


class Description(CommonmetaModel):
    description: str
    type: str = ""
    language: str = ""


class File(CommonmetaModel):
    bucket: str = ""
    key: str = ""
    checksum: str = ""
    url: str = ""
    size: Optional[int] = None
    mime_type: str = ""


class FundingReference(CommonmetaModel):
    funder_identifier: str = ""
    funder_identifier_type: str = ""
    funder_name: str = ""
    award_number: str = ""
    award_title: str = ""
    award_uri: str = ""


class GeoLocationPoint(CommonmetaModel):
    point_longitude: Optional[float] = None
    point_latitude: Optional[float] = None


class GeoLocationBox(CommonmetaModel):
    east_bound_longitude: Optional[float] = None
    west_bound_longitude: Optional[float] = None
    south_bound_latitude: Optional[float] = None
    north_bound_latitude: Optional[float] = None


class GeoLocation(CommonmetaModel):
    geo_location_place: str = ""
    geo_location_point: Optional[GeoLocationPoint] = None
    geo_location_box: Optional[GeoLocationBox] = None


class Identifier(CommonmetaModel):
    identifier: str
    identifier_type: str


class Publisher(CommonmetaModel):
    id: str = ""
    name: str = ""


class Reference(CommonmetaModel):
    key: str = ""
    id: str = ""
    type: str = ""
    title: str = ""
    publication_year: str = ""
    unstructured: str = ""


class Relation(CommonmetaModel):
    id: str
    type: str


class Subject(CommonmetaModel):
    subject: str


class Title(CommonmetaModel):
    title: str = ""
    type: str = ""
    language: str = ""


# ============================================================================
# De-duplication
# ============================================================================


def _dedupe_by(items: Iterable[Any], keys: Callable[[Any], Tuple[Any, ...]]) -> List[Any]:
    """Keep the first item for any of its non-empty keys."""
    seen = set()
    result = []
    for item in items:
        item_keys = [k for k in keys(item) if k]
        if any(k in seen for k in item_keys):
            continue
        seen.update(item_keys)
        result.append(item)
    return result


def _identifier_key(identifier: Identifier) -> str:
    if identifier.identifier_type == "DOI":
        doi = normalize_doi(identifier.identifier)
        if doi:
            return "doi:" + doi.lower()
    return identifier.identifier


def _contributor_id_key(contributor: Contributor) -> Tuple[str, ...]:
    return ("id:" + contributor.id.lower(),) if contributor.id else ()


def _contributor_keys(contributor: Contributor) -> Tuple[str, ...]:
    if contributor.id:
        return _contributor_id_key(contributor)
    keys = []
    if contributor.given_name and contributor.family_name:
        keys.append(
            "gf:" + contributor.given_name.lower() + "|" + contributor.family_name.lower()
        )
    if contributor.name:
        keys.append("n:" + contributor.name.lower())
    return tuple(keys)


def dedupe_contributors(contributors: List[Contributor]) -> List[Contributor]:
    """Order-preserving de-duplication.

    Contributors with an id (ORCID/ROR) are compared by id only. Without an
    id, a contributor is a duplicate when its given and family name pair, or
    its name, equals that of an earlier contributor without an id.
    """
    return _dedupe_by(contributors, _contributor_keys)


def primary_identifier(pid: str) -> Optional[Identifier]:
    """The identifier entry for a record id, typed by validate_id."""
    if not pid:
        return None
    _, identifier_type = validate_id(pid)
    if identifier_type == "Crossref Funder ID":
        identifier_type = "DOI"
    return Identifier(identifier=pid, identifier_type=identifier_type or "Other")


# ============================================================================
# Record
# ============================================================================


class Record(CommonmetaModel):
    """A Commonmeta record. `id` and `type` are required."""

    id: str
    type: str
    additional_type: str = ""
    archive_locations: List[str] = Field(default_factory=list)
    container: Optional[Container] = None
    content_html: str = ""
    contributors: List[Contributor] = Field(default_factory=list)
    date: Date = Field(default_factory=Date)
    descriptions: List[Description] = Field(default_factory=list)
    feature_image: str = ""
    files: List[File] = Field(default_factory=list)
    funding_references: List[FundingReference] = Field(default_factory=list)
    geo_locations: List[GeoLocation] = Field(default_factory=list)
    identifiers: List[Identifier] = Field(default_factory=list)
    language: str = ""
    license: Optional[License] = None
    provider: str = ""
    publisher: Optional[Publisher] = None
    references: List[Reference] = Field(default_factory=list)
    relations: List[Relation] = Field(default_factory=list)
    subjects: List[Subject] = Field(default_factory=list)
    titles: List[Title] = Field(default_factory=list)
    url: str = ""
    version: str = ""
    schema_version: str = Field(default=COMMONMETA_SCHEMA_URL, alias="schema_version")

    @model_validator(mode="after")
    def _normalize(self) -> "Record":
        primary = primary_identifier(self.id)
        identifiers = list(self.identifiers)
        if primary is not None:
            primary_key = _identifier_key(primary)
            identifiers = [primary] + [i for i in identifiers if _identifier_key(i) != primary_key]
        self.identifiers = _dedupe_by(identifiers, lambda i: (_identifier_key(i),))

        for contributor in self.contributors:
            if not contributor.contributor_roles:
                contributor.contributor_roles = [ContributorRole.AUTHOR.value]
            if contributor.type == ContributorType.ORGANIZATION.value:
                if not contributor.name:
                    contributor.name = contributor.display_name
                contributor.given_name = ""
                contributor.family_name = ""
        # by id only; name rules are applied by the readers
        self.contributors = _dedupe_by(self.contributors, _contributor_id_key)

        self.archive_locations = list(dict.fromkeys(self.archive_locations))
        self.relations = _dedupe_by(self.relations, lambda r: ((r.id, r.type),))
        self.references = _dedupe_by(
            self.references, lambda r: (r.key,) if r.key else (id(r),)
        )
        self.subjects = _dedupe_by(self.subjects, lambda s: (s.subject,))
        self.files = _dedupe_by(self.files, lambda f: (f.url or f.key,))
        self.funding_references = _dedupe_by(
            self.funding_references,
            lambda f: (
                (
                    f.funder_identifier,
                    f.funder_name,
                    f.award_number,
                    f.award_title,
                    f.award_uri,
                ),
            ),
        )
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, content: Any) -> "Record":
        return cls.model_validate_json(content)

    def to_json(self, indent: Optional[int] = None) -> bytes:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False).encode("utf-8")

    @property
    def title(self) -> str:
        """The main title (first entry of `titles`)."""
        return self.titles[0].title if self.titles else ""

    @property
    def abstract(self) -> str:
        return self.descriptions[0].description if self.descriptions else ""

    def contributors_with_role(self, role: str) -> List[Contributor]:
        return [c for c in self.contributors if role in c.contributor_roles]

    @property
    def authors(self) -> List[Contributor]:
        return self.contributors_with_role(ContributorRole.AUTHOR.value)

    def identifier_of_type(self, identifier_type: str) -> str:
        for identifier in self.identifiers:
            if identifier.identifier_type == identifier_type:
                return identifier.identifier
        return ""

    def date_value(self) -> str:
        """Publication date, falling back to available, created, then updated."""
        return (
            self.date.published or self.date.available or self.date.created or self.date.updated
        )
