"""OpenAlex works (read only)."""

from commonmeta.formats.openalex.reader import (
    fetch,
    fetch_all,
    get,
    get_abstract,
    get_all,
    get_works,
    load,
    load_all,
    query_url,
    read,
    read_all,
    work_url,
)

__all__ = [
    "fetch",
    "fetch_all",
    "get",
    "get_abstract",
    "get_all",
    "get_works",
    "load",
    "load_all",
    "query_url",
    "read",
    "read_all",
    "work_url",
]
