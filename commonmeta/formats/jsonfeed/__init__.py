"""JSON Feed posts from the Rogue Scholar API (read only)."""

from commonmeta.formats.jsonfeed.reader import (
    fetch,
    fetch_all,
    get,
    get_all,
    get_award,
    get_id,
    load,
    load_all,
    post_url,
    query_url,
    read,
    read_all,
)

__all__ = [
    "fetch",
    "fetch_all",
    "get",
    "get_all",
    "get_award",
    "get_id",
    "load",
    "load_all",
    "post_url",
    "query_url",
    "read",
    "read_all",
]
