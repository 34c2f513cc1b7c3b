"""Countries and cities.

ISO 3166-1 alpha-2 / alpha-3 codes with Geonames country names, the
lowercase country aliases used when extracting countries from affiliation
strings, and a list of major city names.
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Tuple

from commonmeta.core.fileio import decode_yaml, read_file

DATA_FILE = Path(__file__).parent / "data" / "countries.yaml"

# codes that are matched as one region
REGIONS = {
    "GB": "GB-UK",
    "UK": "GB-UK",
    "CN": "CN-HK-TW",
    "HK": "CN-HK-TW",
    "TW": "CN-HK-TW",
    "PR": "US-PR",
    "US": "US-PR",
}


class Country(NamedTuple):
    code: str
    iso3: str
    name: str


class _Vocabulary(NamedTuple):
    countries: Tuple[Country, ...]
    aliases: Dict[str, List[str]]
    cities: FrozenSet[str]


@lru_cache(maxsize=1)
def _load() -> _Vocabulary:
    content = decode_yaml(read_file(DATA_FILE), str(DATA_FILE))
    countries = tuple(
        Country(str(c["code"]), str(c["iso3"]), str(c["name"])) for c in content["countries"]
    )
    aliases = {str(code): [str(n) for n in names] for code, names in content["aliases"].items()}
    cities = frozenset(str(c).lower() for c in content["cities"])
    return _Vocabulary(countries, aliases, cities)


def all_countries() -> Tuple[Country, ...]:
    return _load().countries


def country_aliases() -> Dict[str, List[str]]:
    """Lowercase code -> lowercase names and abbreviations."""
    return _load().aliases


@lru_cache(maxsize=1)
def _index() -> Dict[str, Country]:
    index: Dict[str, Country] = {}
    for country in all_countries():
        index.setdefault(country.code.lower(), country)
        index.setdefault(country.iso3.lower(), country)
        index.setdefault(country.name.lower(), country)
    return index


def get_country(value: Optional[str]) -> Optional[Country]:
    """Find a country by ISO-2 code, ISO-3 code or name (case-insensitive)."""
    if not value:
        return None
    return _index().get(value.strip().lower())


def country_name(code: Optional[str]) -> str:
    country = get_country(code)
    return country.name if country else ""


@lru_cache(maxsize=1)
def iso3_codes() -> FrozenSet[str]:
    return frozenset(c.iso3 for c in all_countries())


def is_country(value: str) -> bool:
    """True when value equals a country name, ISO-2 or ISO-3 code."""
    return get_country(value) is not None


def is_city(value: str) -> bool:
    return value.strip().lower() in _load().cities


def to_region(code: str) -> str:
    """Map a country code to its matching region, e.g. "GB" -> "GB-UK"."""
    return REGIONS.get(code, code)
