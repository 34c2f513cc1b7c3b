"""Crossref REST API JSON (read only)."""

from commonmeta.formats.crossref.reader import (
    fetch,
    fetch_all,
    get,
    get_all,
    get_member,
    load,
    load_all,
    query_url,
    read,
    read_all,
)

__all__ = [
    "fetch",
    "fetch_all",
    "get",
    "get_all",
    "get_member",
    "load",
    "load_all",
    "query_url",
    "read",
    "read_all",
]
