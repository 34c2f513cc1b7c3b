"""DataCite JSON:API attributes (schema 4.5)."""

from commonmeta.formats.datacite.reader import (
    fetch,
    fetch_all,
    get,
    get_all,
    load,
    load_all,
    query_url,
    read,
    read_all,
)
from commonmeta.formats.datacite.writer import convert, write, write_all

__all__ = [
    "convert",
    "fetch",
    "fetch_all",
    "get",
    "get_all",
    "load",
    "load_all",
    "query_url",
    "read",
    "read_all",
    "write",
    "write_all",
]
