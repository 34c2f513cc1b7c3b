"""
Reading ROR organizations: REST API, data dumps, local files.

Architecture Context
--------------------
Organizations are kept as a catalog, a dict of ROR id -> ROR record:

    catalog = load_builtin()                   # installed dump, downloaded on first use
    org = search("https://ror.org/0304hq317")  # local lookup, no network
    org = fetch("https://ror.org/0304hq317")   # ROR REST API v2
    catalog = load_all("ror.avro")             # .avro .json .jsonl .yaml .csv (+ .gz/.zip)

Readers of other formats call map_ror() for every affiliation, which only
uses the local catalog and matcher, so reading never waits on the ROR API.

Design Decisions
----------------
1. **Installed dump**: the full Zenodo dump is stored as Avro in the data
   directory, by `commonmeta install ror` or by the first load_builtin()
   call that finds none. Affiliation mapping degrades to no match while
   the dump cannot be downloaded.
2. **Avro via fastavro**: the dump is written and read with the schema in
   ``ror/data/ror.avsc``.
"""

import csv
import io
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote

import fastavro
from pydantic import ValidationError

from commonmeta.core.config import get_settings
from commonmeta.core.exceptions import (
    CommonmetaError,
    DecodeFailureError,
    InvalidIdentifierError,
    NotFoundError,
)
from commonmeta.core.fileio import (
    check_extension,
    decode_json,
    decode_jsonl,
    decode_yaml,
    download_file,
    read_file,
    uncompress,
    write_file,
)
from commonmeta.core.http import HttpClient, get_client
from commonmeta.core.logging import get_logger
from commonmeta.model.record import Record
from commonmeta.ror.matching import AffiliationMatcher, MatchedOrganization
from commonmeta.ror.model import ROR
from commonmeta.ror.writer import encode_avro, from_csv_row
from commonmeta.utils.identifiers import validate_ror

logger = get_logger(__name__)

INSTALLED_FILENAME = "ror.avro"

API_URL = "https://api.ror.org/v2/organizations"

# ROR data dump versions on Zenodo: version -> (release date, Zenodo record id)
ROR_VERSIONS: Dict[str, Tuple[str, str]] = {
    "v1.59": ("2025-01-23", "14728473"),
    "v1.60": ("2025-02-27", "14797924"),
    "v1.61": ("2025-03-18", "15047759"),
    "v1.62": ("2025-03-27", "15098078"),
    "v1.63": ("2025-04-03", "15132361"),
}
DEFAULT_VERSION = "v1.63"

SUPPORTED_TYPES = ("ROR", "Wikidata", "Crossref Funder ID", "GRID", "ISNI")
EXTENSIONS = (".avro", ".yaml", ".json", ".jsonl", ".csv")

# names known to have no ROR id
MATCH_EXCEPTIONS = ("Front Matter",)

GRID_RE = re.compile(r"^(?:https?://www\.grid\.ac/institutes/)?(grid\.\d+\.[0-9a-f]+)$")
ISNI_RE = re.compile(r"^(?:https?://isni\.org/isni/)?(\d{4}\s?\d{4}\s?\d{4}\s?\d{3}[\dX])$")
WIKIDATA_RE = re.compile(r"^(?:https?://(?:www\.)?wikidata\.org/wiki/)?(Q\d+)$")
FUNDREF_RE = re.compile(r"^(?:(?:https?://(?:dx\.)?doi\.org/)?10\.13039/)?((?:100|5011)\d{5,8})$")

Catalog = Dict[str, ROR]


def validate_organization_id(pid: Optional[str]) -> Tuple[str, str]:
    """Return (id, type) for a ROR, Crossref Funder, GRID, ISNI or Wikidata id.

    Crossref Funder IDs are returned without the 10.13039 DOI prefix, as
    used in ROR external_ids. ISNIs are returned in groups of four digits.
    """
    if not pid:
        return "", ""
    value = pid.strip()
    ror, ok = validate_ror(value)
    if ok:
        return ror, "ROR"
    match = GRID_RE.match(value)
    if match:
        return match.group(1), "GRID"
    match = ISNI_RE.match(value)
    if match:
        digits = match.group(1).replace(" ", "")
        return " ".join(digits[i : i + 4] for i in range(0, 16, 4)), "ISNI"
    match = WIKIDATA_RE.match(value)
    if match:
        return match.group(1), "Wikidata"
    match = FUNDREF_RE.match(value)
    if match:
        return match.group(1), "Crossref Funder ID"
    return "", ""


def to_catalog(records: Iterable[ROR]) -> Catalog:
    return {record.id: record for record in records}


def read(item: Dict[str, Any]) -> ROR:
    """Read one organization from ROR v2 JSON."""
    try:
        return ROR.model_validate(item)
    except ValidationError as e:
        raise DecodeFailureError(f"Invalid ROR record: {e.errors()[0]['msg']}") from e


# ============================================================================
# REST API
# ============================================================================


def fetch(pid: str, client: Optional[HttpClient] = None) -> ROR:
    """Fetch one organization from the ROR API by ROR id or external id.

    Raises:
        InvalidIdentifierError: not a supported organization id
        NotFoundError: no organization or an ambiguous external id
        NetworkFailureError: transport error or status >= 400
    """
    identifier, identifier_type = validate_organization_id(pid)
    if identifier_type not in SUPPORTED_TYPES:
        raise InvalidIdentifierError(f"{pid} is not a supported organization id")
    client = client or get_client()
    if identifier_type == "ROR":
        return read(client.get_json(f"{API_URL}/{identifier}"))
    content = client.get_json(f"{API_URL}?query={quote(identifier)}")
    items = content.get("items") or []
    if content.get("number_of_results") != 1 or not items:
        raise NotFoundError(f"No unique organization found for {pid}")
    return read(items[0])


def match_organization(name: str, client: Optional[HttpClient] = None) -> Optional[ROR]:
    """Ask the ROR affiliation API for the chosen organization of a name.

    Returns None when the API chose no organization.
    """
    client = client or get_client()
    content = client.get_json(f"{API_URL}?affiliation={quote(name)}")
    for item in content.get("items") or []:
        if item.get("chosen"):
            return read(item.get("organization") or {})
    return None


# ============================================================================
# Local catalog
# ============================================================================


def installed_path() -> Path:
    return get_settings().data_dir / INSTALLED_FILENAME


@lru_cache(maxsize=1)
def load_builtin() -> Catalog:
    """Load the organization catalog once per process.

    Reads the installed data dump; without one, the default version is
    downloaded from Zenodo and installed first.

    Raises:
        NetworkFailureError: no installed dump and the download failed
        DecodeFailureError: the installed dump is not valid Avro
    """
    path = installed_path()
    if not path.exists():
        logger.info("No ROR catalog installed, downloading", version=DEFAULT_VERSION)
        return fetch_all(DEFAULT_VERSION, install=True)
    catalog = decode_avro(read_file(path), str(path))
    logger.debug("Loaded ROR catalog", count=len(catalog), source=str(path))
    return catalog


@lru_cache(maxsize=1)
def get_matcher() -> AffiliationMatcher:
    """Affiliation matcher over the installed catalog."""
    return AffiliationMatcher(load_builtin().values())


def clear_cache() -> None:
    load_builtin.cache_clear()
    get_matcher.cache_clear()


def search(pid: str) -> Optional[ROR]:
    """Find an organization in the local catalog by ROR id or external id."""
    identifier, identifier_type = validate_organization_id(pid)
    if identifier_type not in SUPPORTED_TYPES:
        raise InvalidIdentifierError(f"{pid} is not a supported organization id")
    catalog = load_builtin()
    if identifier_type == "ROR":
        return catalog.get(f"https://ror.org/{identifier}")
    for org in catalog.values():
        for external_id in org.external_ids:
            if identifier in external_id.all:
                return org
    return None


def match_affiliation(affiliation: str, active_only: bool = True) -> List[MatchedOrganization]:
    """Match an affiliation string against the local catalog."""
    return get_matcher().match(affiliation, active_only=active_only)


def get_display_name(org: ROR) -> str:
    return org.display_name


def map_ror(
    id: str = "",
    name: str = "",
    asserted_by: str = "",
    match: bool = False,
) -> Tuple[str, str, str]:
    """Complete an affiliation from its ROR id or name.

    - id and name given: returned unchanged
    - only id given: name is the display name of the organization
    - only name given and match: id of the chosen organization, asserted by "ror"

    The affiliation is returned unchanged when the catalog is unavailable.

    Returns:
        (id, name, asserted_by)
    """
    if id and name:
        return id, name, asserted_by
    try:
        if id:
            org = search(id) if validate_ror(id)[1] else None
            if org is None:
                logger.debug("Organization not in local catalog", id=id)
                return id, name, asserted_by
            return id, get_display_name(org), asserted_by
        if name and match and name not in MATCH_EXCEPTIONS:
            for candidate in match_affiliation(name):
                if candidate.chosen:
                    return candidate.organization.id, name, "ror"
    except CommonmetaError as e:
        logger.warning("ROR catalog unavailable", id=id, name=name, error=str(e))
    return id, name, asserted_by


# ============================================================================
# Files
# ============================================================================


def decode_avro(content: bytes, source: str = "input") -> Catalog:
    try:
        records = list(fastavro.reader(io.BytesIO(content)))
    except (ValueError, EOFError) as e:
        raise DecodeFailureError(f"Invalid Avro in {source}: {e}") from e
    return to_catalog(read(item) for item in records)


def decode_csv(content: bytes) -> Catalog:
    """Read the ROR CSV export written by the CSV writer."""
    reader = csv.DictReader(io.StringIO(content.decode("utf-8")))
    return to_catalog(from_csv_row(row) for row in reader)


def load_all(filename: str) -> Catalog:
    """Load a catalog from a ROR file (.avro .json .jsonl .yaml .csv, optionally .gz/.zip).

    Raises:
        InvalidExtensionError: unsupported extension
        IOFailureError: file missing or unreadable
        DecodeFailureError: malformed content
    """
    extension = check_extension(filename, EXTENSIONS)
    content = read_file(filename, Path(filename).with_suffix("").name)
    if extension == ".avro":
        return decode_avro(content, filename)
    if extension == ".csv":
        return decode_csv(content)
    if extension == ".jsonl":
        items = decode_jsonl(content, filename)
    elif extension == ".yaml":
        items = decode_yaml(content, filename) or []
    else:
        items = decode_json(content, filename)
    if isinstance(items, dict):
        items = items.get("items") or []
    return to_catalog(read(item) for item in items)


def basename(version: str) -> str:
    """Name of the data dump of a version, "" for unknown versions."""
    if version not in ROR_VERSIONS:
        return ""
    date, _ = ROR_VERSIONS[version]
    return f"{version}-{date}-ror-data"


def parse_data_version(data_version: str) -> str:
    """Accept "v1.63" or "v1.63-2025-04-03"; return the version."""
    return data_version.split("-", 1)[0] if data_version else DEFAULT_VERSION


def fetch_all(version: str = DEFAULT_VERSION, progress: bool = False, install: bool = True) -> Catalog:
    """Download a ROR data dump from Zenodo.

    With install, the catalog is stored as Avro in the data directory and
    used by load_builtin() from then on.

    Raises:
        ValueError: unknown version
        NetworkFailureError: download failed
    """
    version = parse_data_version(version)
    name = basename(version)
    if not name:
        raise ValueError(f"Unknown ROR data version {version}, expected one of {', '.join(ROR_VERSIONS)}")
    _, zenodo_id = ROR_VERSIONS[version]
    url = f"https://zenodo.org/records/{zenodo_id}/files/{name}.zip?download=1"
    logger.info("Downloading ROR data dump", version=version, url=url)
    content = uncompress(download_file(url, progress=progress), f"{name}_schema_v2.json")
    catalog = to_catalog(read(item) for item in decode_json(content, url))
    if install:
        path = installed_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        write_file(path, encode_avro(catalog))
        clear_cache()
        logger.info("Installed ROR catalog", path=str(path), count=len(catalog))
    return catalog


def extract_all(records: Iterable[Record]) -> Catalog:
    """Organizations of the catalog referenced by affiliations of records."""
    catalog = load_builtin()
    extracted: Catalog = {}
    for record in records:
        for contributor in record.contributors:
            for affiliation in contributor.affiliations:
                ror, ok = validate_ror(affiliation.id)
                if not ok:
                    continue
                org = catalog.get(f"https://ror.org/{ror}")
                if org is not None:
                    extracted.setdefault(org.id, org)
    return dict(sorted(extracted.items()))
