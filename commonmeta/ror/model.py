"""
ROR v2 organization records.

Architecture Context
--------------------
The registry (https://ror.org) publishes one JSON document per
organization. The same document shape is used by the REST API, the Zenodo
data dump and the catalog installed from it:

    org = ROR.model_validate(item)
    org.display_name     # "Leibniz Universität Hannover"
    org.labels           # {"de": "Leibniz Universität Hannover", "en": "..."}
    org.country_code     # "DE"

Design Decisions
----------------
1. **Keys as published**: ROR uses snake_case keys, so the models carry no
   aliases and round-trip the registry JSON unchanged.
2. **Names by type**: a name is a label (one per language), an alias, an
   acronym, or the single ror_display name. Helpers select by type so
   callers never inspect `types` lists themselves.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import fastavro
from pydantic import BaseModel, ConfigDict, Field

from commonmeta.utils.text import compact

AVRO_SCHEMA_FILE = Path(__file__).parent / "data" / "ror.avsc"

# name types
ROR_DISPLAY = "ror_display"
LABEL = "label"
ALIAS = "alias"
ACRONYM = "acronym"

ORGANIZATION_TYPES = (
    "archive",
    "company",
    "education",
    "facility",
    "funder",
    "government",
    "healthcare",
    "nonprofit",
    "other",
)

# external_ids[].type -> identifier type used in Commonmeta
EXTERNAL_ID_TYPES = {
    "fundref": "Crossref Funder ID",
    "grid": "GRID",
    "isni": "ISNI",
    "wikidata": "Wikidata",
}


class RORModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GeonamesDetails(RORModel):
    continent_code: str = ""
    continent_name: str = ""
    country_code: str = ""
    country_name: str = ""
    country_subdivision_code: str = ""
    country_subdivision_name: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    name: str = ""


class Location(RORModel):
    geonames_id: Optional[int] = None
    geonames_details: GeonamesDetails = Field(default_factory=GeonamesDetails)


class ExternalID(RORModel):
    type: str
    all: List[str] = Field(default_factory=list)
    preferred: Optional[str] = None


class Link(RORModel):
    type: str
    value: str


class Name(RORModel):
    value: str
    types: List[str] = Field(default_factory=list)
    lang: Optional[str] = None


class Relationship(RORModel):
    type: str
    label: str = ""
    id: str


class AdminDate(RORModel):
    date: str = ""
    schema_version: str = ""


class Admin(RORModel):
    created: AdminDate = Field(default_factory=AdminDate)
    last_modified: AdminDate = Field(default_factory=AdminDate)


class ROR(RORModel):
    """One organization of the registry."""

    id: str
    domains: List[str] = Field(default_factory=list)
    established: Optional[int] = None
    external_ids: List[ExternalID] = Field(default_factory=list)
    links: List[Link] = Field(default_factory=list)
    locations: List[Location] = Field(default_factory=list)
    names: List[Name] = Field(default_factory=list)
    relationships: List[Relationship] = Field(default_factory=list)
    status: str = "active"
    types: List[str] = Field(default_factory=list)
    admin: Optional[Admin] = None

    def names_of_type(self, name_type: str) -> List[Name]:
        return [n for n in self.names if name_type in n.types]

    @property
    def display_name(self) -> str:
        """The ror_display name, falling back to the first label."""
        for name_type in (ROR_DISPLAY, LABEL):
            names = self.names_of_type(name_type)
            if names:
                return names[0].value
        return self.names[0].value if self.names else ""

    @property
    def labels(self) -> Dict[str, str]:
        """Language -> label. Labels without a language are skipped."""
        return {n.lang: n.value for n in self.names_of_type(LABEL) if n.lang}

    @property
    def aliases(self) -> List[str]:
        return [n.value for n in self.names_of_type(ALIAS)]

    @property
    def acronyms(self) -> List[str]:
        return [n.value for n in self.names_of_type(ACRONYM)]

    @property
    def country_code(self) -> str:
        """ISO 3166-1 alpha-2 code of the first location."""
        if not self.locations:
            return ""
        return self.locations[0].geonames_details.country_code

    @property
    def last_modified(self) -> str:
        return self.admin.last_modified.date if self.admin else ""

    @property
    def website(self) -> str:
        for link in self.links:
            if link.type == "website":
                return link.value
        return ""

    @property
    def wikipedia_url(self) -> str:
        for link in self.links:
            if link.type == "wikipedia":
                return link.value
        return ""

    def external_id(self, id_type: str) -> Optional[ExternalID]:
        for external_id in self.external_ids:
            if external_id.type == id_type:
                return external_id
        return None

    def matching_names(self) -> List[str]:
        """Names compared against affiliation strings (acronyms excluded)."""
        names = [n.value for n in self.names if ACRONYM not in n.types]
        return list(dict.fromkeys(names))

    def to_dict(self) -> Dict[str, Any]:
        """Registry JSON without empty values."""
        return compact(self.model_dump(mode="json", exclude_none=True))

    def to_avro(self) -> Dict[str, Any]:
        """Complete record with every schema field present, for fastavro."""
        return self.model_dump(mode="json")


class InvenioIdentifier(RORModel):
    identifier: str
    scheme: str = "ror"


class InvenioRDMAffiliation(RORModel):
    """An entry of the InvenioRDM affiliations vocabulary."""

    acronym: Optional[str] = None
    id: str
    country: Optional[str] = None
    identifiers: List[InvenioIdentifier] = Field(default_factory=list)
    name: str
    title: Dict[str, str] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return compact(self.model_dump(mode="json", exclude_none=True))


@lru_cache(maxsize=1)
def avro_schema() -> Dict[str, Any]:
    """Parsed Avro schema of a ROR record."""
    with open(AVRO_SCHEMA_FILE, encoding="utf-8") as f:
        return fastavro.parse_schema(json.load(f))
