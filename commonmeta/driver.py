"""
Driver: dispatch by (source format, target format, operation).

Architecture Context
--------------------
The CLI calls into this module only; the format packages never call it.

    input ─┬─ identifier ──► <from>.fetch(id)          ─┐
           ├─ file ────────► <from>.load(path)          ├─► Record(s) ─► <to>.write / write_all
           └─ list query ──► <from>.fetch_all(options) ─┘                 │
                                                                          └─► registration.<service>

Design Decisions
----------------
1. **Format detection**: a missing ``from_format`` is detected from the
   identifier (DOI registration agency, OpenAlex id, record URL) or from the
   file content.
2. **Explicit tables**: readers and writers are looked up in READERS and
   WRITERS; an unknown pair raises UnsupportedConversionError before any
   network call.
"""

from __future__ import annotations

from pathlib import Path
from types import ModuleType
from typing import Dict, List, Optional

from commonmeta.core.exceptions import (
    InvalidIdentifierError,
    IOFailureError,
    UnsupportedConversionError,
)
from commonmeta.core.fileio import get_extension, read_file
from commonmeta.core.http import HttpClient
from commonmeta.core.logging import get_logger
from commonmeta.formats import commonmeta as commonmeta_format
from commonmeta.formats import (
    crossref,
    crossrefxml,
    csl,
    datacite,
    inveniordm,
    jsonfeed,
    openalex,
    schemaorg,
)
from commonmeta.formats.base import QueryOptions
from commonmeta.formats.crossrefxml import Account
from commonmeta.model.record import Record
from commonmeta.registration import crossref as crossref_registration
from commonmeta.registration import datacite as datacite_registration
from commonmeta.registration.inveniordm import InvenioRDMClient
from commonmeta.registration.response import APIResponse
from commonmeta.utils.identifiers import find_from_format, normalize_id, validate_openalex

logger = get_logger(__name__)

READERS: Dict[str, ModuleType] = {
    "commonmeta": commonmeta_format,
    "crossref": crossref,
    "crossrefxml": crossrefxml,
    "csl": csl,
    "datacite": datacite,
    "inveniordm": inveniordm,
    "jsonfeed": jsonfeed,
    "openalex": openalex,
    "schemaorg": schemaorg,
}

WRITERS: Dict[str, ModuleType] = {
    "commonmeta": commonmeta_format,
    "crossrefxml": crossrefxml,
    "csl": csl,
    "datacite": datacite,
    "inveniordm": inveniordm,
    "schemaorg": schemaorg,
}

# formats that can be fetched by identifier or queried as a list
FETCHABLE = ("crossref", "crossrefxml", "datacite", "inveniordm", "jsonfeed", "openalex", "schemaorg")
LISTABLE = ("crossref", "crossrefxml", "datacite", "inveniordm", "jsonfeed", "openalex")

# registration targets
SERVICES = ("crossrefxml", "datacite", "inveniordm")


def _reader(name: str, operation: str) -> ModuleType:
    module = READERS.get(name)
    if module is None:
        raise UnsupportedConversionError(
            f"Unsupported input format {name} for {operation}",
            how_to_fix=[f"Use one of: {', '.join(READERS)}"],
        )
    return module


def _writer(name: str) -> ModuleType:
    module = WRITERS.get(name)
    if module is None:
        raise UnsupportedConversionError(
            f"Unsupported output format {name}",
            how_to_fix=[f"Use one of: {', '.join(WRITERS)}"],
        )
    return module


def resolve_input(value: str) -> tuple:
    """Classify a command line input as (identifier, path).

    Raises:
        IOFailureError: neither an identifier nor an existing file
    """
    pid = normalize_id(value)
    if not pid:
        openalex_id, ok = validate_openalex(value)
        if ok:
            pid = openalex_id
    if pid:
        return pid, ""
    if Path(value).is_file():
        return "", value
    raise IOFailureError(f"File not found: {value}", path=value)


def detect_file_format(path: str) -> str:
    _, extension, _ = get_extension(path)
    content = read_file(path)
    return find_from_format(ext=extension, content=content.decode("utf-8", errors="replace"))


# ============================================================================
# Reading
# ============================================================================


def fetch_record(
    pid: str, from_format: str = "", match: bool = False, client: Optional[HttpClient] = None
) -> Record:
    """Fetch one record by identifier, detecting the source format when not given."""
    from_format = from_format or find_from_format(pid=pid)
    if from_format not in FETCHABLE:
        raise UnsupportedConversionError(f"Cannot fetch {pid} from {from_format}")
    if from_format == "crossref":
        return crossref.fetch(pid, match=match, client=client)
    return _reader(from_format, "fetch").fetch(pid, client=client)


def load_record(path: str, from_format: str = "", match: bool = False) -> Record:
    from_format = from_format or detect_file_format(path)
    if from_format == "crossref":
        return crossref.load(path, match=match)
    return _reader(from_format, "load").load(path)


def read_record(value: str, from_format: str = "", match: bool = False) -> Record:
    """Read one record from an identifier or a file.

    Raises:
        IOFailureError: input is neither an identifier nor a file
        UnsupportedConversionError: no reader for the source format
    """
    pid, path = resolve_input(value)
    if pid:
        return fetch_record(pid, from_format, match)
    return load_record(path, from_format, match)


def read_records(
    path: str = "",
    from_format: str = "crossref",
    options: Optional[QueryOptions] = None,
    client: Optional[HttpClient] = None,
) -> List[Record]:
    """Read a list of records from a file, or from a list query when no file is given."""
    options = options or QueryOptions()
    if path:
        from_format = from_format or detect_file_format(path)
        if from_format == "crossref":
            return crossref.load_all(path, match=options.match)
        return _reader(from_format, "load_all").load_all(path)
    if from_format not in LISTABLE:
        raise UnsupportedConversionError(
            f"Format {from_format} does not support list queries",
            how_to_fix=[f"Use one of: {', '.join(LISTABLE)}", "Or pass a file"],
        )
    return _reader(from_format, "fetch_all").fetch_all(options, client=client)


# ============================================================================
# Writing
# ============================================================================


def write_record(record: Record, to_format: str = "commonmeta", account: Optional[Account] = None) -> bytes:
    """Serialize one record; schema failures raise."""
    writer = _writer(to_format)
    if to_format == "crossrefxml":
        return writer.write(record, account)
    return writer.write(record)


def write_records(
    records: List[Record],
    to_format: str = "commonmeta",
    extension: str = ".json",
    account: Optional[Account] = None,
    strict: bool = False,
) -> bytes:
    """Serialize a list of records; schema failures are logged unless strict."""
    writer = _writer(to_format)
    if to_format == "crossrefxml":
        return writer.write_all(records, account, strict=strict)
    if to_format == "commonmeta":
        return writer.write_all(records, extension=extension, strict=strict)
    return writer.write_all(records, strict=strict)


def convert(
    value: str,
    from_format: str = "",
    to_format: str = "commonmeta",
    account: Optional[Account] = None,
    match: bool = False,
) -> bytes:
    """Read one record from an identifier or file and write it in another format."""
    _writer(to_format)
    record = read_record(value, from_format, match)
    return write_record(record, to_format, account)


# ============================================================================
# Registration
# ============================================================================


def register(
    records: List[Record],
    to_format: str,
    mode: str = "upsert",
    host: str = "",
    token: str = "",
    legacy_key: str = "",
    account: Optional[Account] = None,
    client_id: str = "",
    password: str = "",
    development: bool = False,
) -> List[APIResponse]:
    """Register records with a service and return one envelope per record.

    Args:
        mode: "upsert", "create" or "update"; Crossref and DataCite always
            upsert

    Raises:
        UnsupportedConversionError: to_format is not a registration target
    """
    if to_format == "inveniordm":
        client = InvenioRDMClient(host or inveniordm.DEFAULT_HOST, token, legacy_key)
        return client.upsert_all(records, mode)
    if to_format == "crossrefxml":
        return crossref_registration.upsert_all(
            records, account or Account(), legacy_key, development=development
        )
    if to_format == "datacite":
        return datacite_registration.upsert_all(
            records, datacite_registration.Account(client_id, password, development)
        )
    raise UnsupportedConversionError(
        f"Unsupported service {to_format}",
        how_to_fix=[f"Use one of: {', '.join(SERVICES)}"],
    )
