"""
Shared plumbing for the format adapters.

Architecture Context
--------------------
Every format package (crossref, datacite, inveniordm, ...) exposes the same
entry points, built from the helpers here:

    fetch(id)              -> Record        HTTP GET + read
    fetch_all(options)     -> [Record]      query_url + paged GET + read_all
    load(path)             -> Record        file + read
    load_all(path)         -> [Record]      file + read_all
    read(content)          -> Record        pure
    read_all(items)        -> [Record]      pure, log-and-skip
    fetch_each(items)      -> [Record]      parallel GET + read, log-and-skip
    write(record)          -> bytes         validated, raises on failure
    write_all(records)     -> bytes         best-effort, failures logged

Design Decisions
----------------
1. **One options object**: list queries of all origins share QueryOptions,
   each origin picks the fields it understands.
2. **Log and skip**: read_all() logs a failing item at WARNING and goes on
   with the next item; the order of the remaining records is preserved.
   fetch_each() does the same for one request per item on the worker pool
   (core.workers).
3. **Best-effort lists**: list writers validate every document but return
   the serialized bytes even when some documents fail, unless strict.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar, Union

from pydantic import ValidationError

from commonmeta.core.exceptions import CommonmetaError, SchemaValidationError
from commonmeta.core.fileio import (
    JSONL_EXTENSIONS,
    check_extension,
    decode_json,
    decode_jsonl,
    read_file,
)
from commonmeta.core.logging import BatchLogger, get_logger
from commonmeta.core.workers import run_ordered
from commonmeta.model.record import Record
from commonmeta.model.schema import validate

logger = get_logger(__name__)

T = TypeVar("T")
PathLike = Union[str, Path]

# failures of a single item in a list read
READ_ERRORS = (CommonmetaError, ValidationError, ValueError, KeyError, TypeError)

# number of records per page is clamped to this range for all list queries
MIN_NUMBER = 1
MAX_NUMBER = 100


@dataclass
class QueryOptions:
    """Parameters of a list query (the `list` command's flags)."""

    number: int = 10
    page: int = 1
    member: str = ""
    client: str = ""
    type: str = ""
    sample: bool = False
    year: str = ""
    language: str = ""
    orcid: str = ""
    ror: str = ""
    affiliation: str = ""
    community: str = ""
    subject: str = ""
    host: str = ""
    has_orcid: bool = False
    has_ror_id: bool = False
    has_references: bool = False
    has_relation: bool = False
    has_abstract: bool = False
    has_award: bool = False
    has_license: bool = False
    has_archive: bool = False
    is_archived: bool = False
    match: bool = False

    def clamped_number(self) -> int:
        """`number` limited to [MIN_NUMBER, MAX_NUMBER]; non-positive means 10."""
        if self.number <= 0:
            return 10
        return max(MIN_NUMBER, min(self.number, MAX_NUMBER))

    def clamped_page(self) -> int:
        return self.page if self.page > 0 else 1


def item_id(item: Any) -> str:
    """Best-effort id of a foreign item, for log messages."""
    if isinstance(item, str):
        return item
    if isinstance(item, Record):
        return item.id
    if isinstance(item, dict):
        for key in ("id", "DOI", "doi", "guid", "url"):
            value = item.get(key)
            if isinstance(value, str) and value:
                return value
    return ""


def read_each(
    items: Iterable[T],
    read: Callable[[T], Record],
    operation: str = "read_all",
) -> List[Record]:
    """Read items in order, logging and skipping the ones that fail."""
    batch = BatchLogger(operation)
    records = []
    for item in items:
        try:
            records.append(read(item))
            batch.record_ok()
        except READ_ERRORS as e:
            batch.record_failed(item_id(item), str(e))
    batch.finish()
    return records


def fetch_each(
    items: Iterable[T],
    fetch: Callable[[T], Record],
    operation: str = "fetch_all",
    workers: Optional[int] = None,
) -> List[Record]:
    """Fetch items on the worker pool, logging and skipping the ones that fail.

    The remaining records keep the order of the items.
    """
    items = list(items)

    def attempt(item: T) -> Tuple[Optional[Record], Optional[Exception]]:
        try:
            return fetch(item), None
        except READ_ERRORS as e:
            return None, e

    batch = BatchLogger(operation)
    records = []
    for item, (record, error) in zip(items, run_ordered(attempt, items, workers)):
        if error is not None:
            batch.record_failed(item_id(item), str(error))
            continue
        batch.record_ok()
        records.append(record)
    batch.finish()
    return records


def load_content(filename: PathLike, allowed: Tuple[str, ...] = (".json",)) -> Any:
    """Read and decode a JSON or JSON Lines file after checking its extension.

    Raises:
        InvalidExtensionError: extension not in allowed
        IOFailureError: file missing or unreadable
        DecodeFailureError: malformed content
    """
    extension = check_extension(filename, allowed)
    content = read_file(filename)
    if extension in JSONL_EXTENSIONS:
        return decode_jsonl(content, str(filename))
    return decode_json(content, str(filename))


def unwrap_items(content: Any, *keys: str) -> List[Any]:
    """Return the list of items of an API response or a bare list.

    Example:
        unwrap_items({"message": {"items": [...]}}, "message", "items")
    """
    if isinstance(content, list):
        return content
    for key in keys:
        if not isinstance(content, dict):
            return []
        content = content.get(key)
    return content if isinstance(content, list) else []


def validate_documents(
    documents: List[Dict[str, Any]],
    schema: str,
    output: bytes,
    strict: bool = False,
    wrap: bool = False,
) -> bytes:
    """Validate every document of a list, returning output when not strict.

    With wrap, each document is validated as a one-item array, for schemas
    such as csl-data that describe the whole list.

    Raises:
        SchemaValidationError: strict and at least one document is invalid;
            the error carries the output
    """
    errors: List[Tuple[str, str]] = []
    for index, document in enumerate(documents):
        for pointer, message in validate([document] if wrap else document, schema):
            if wrap:
                pointer = pointer[2:]
            errors.append((f"/{index}{pointer.rstrip('/')}", message))
    if errors:
        if strict:
            raise SchemaValidationError(
                f"Validation against {schema} failed", errors=errors, output=output
            )
        logger.warning(
            "Records failed schema validation",
            schema=schema,
            errors=len(errors),
            first=f"{errors[0][0]}: {errors[0][1]}",
        )
    return output


def first(values: Optional[List[T]], default: Any = None) -> Any:
    """First element of a possibly empty list."""
    return values[0] if values else default
