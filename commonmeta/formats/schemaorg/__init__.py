"""Schema.org JSON-LD: reader (JSON-LD and HTML landing pages) and writer."""

from commonmeta.formats.schemaorg.writer import CM_TO_SO_MAPPINGS, convert, write, write_all
from commonmeta.formats.schemaorg.reader import (
    SO_TO_CM_MAPPINGS,
    fetch,
    fetch_all,
    get,
    load,
    load_all,
    parse_html,
    read,
    read_all,
)

__all__ = [
    "CM_TO_SO_MAPPINGS",
    "SO_TO_CM_MAPPINGS",
    "convert",
    "fetch",
    "fetch_all",
    "get",
    "load",
    "load_all",
    "parse_html",
    "read",
    "read_all",
    "write",
    "write_all",
]
