"""Crossref XML: UNIXSD query results (read) and deposit batches (write)."""

from commonmeta.formats.crossrefxml.reader import (
    fetch,
    fetch_all,
    get,
    load,
    load_all,
    parse,
    read,
    read_all,
)
from commonmeta.formats.crossrefxml.writer import Account, convert, write, write_all

__all__ = [
    "Account",
    "convert",
    "fetch",
    "fetch_all",
    "get",
    "load",
    "load_all",
    "parse",
    "read",
    "read_all",
    "write",
    "write_all",
]
