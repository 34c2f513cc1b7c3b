"""InvenioRDM records (read and write)."""

from commonmeta.formats.inveniordm.writer import (
    CM_TO_INVENIO_IDENTIFIER_MAPPINGS,
    CM_TO_INVENIO_MAPPINGS,
    convert,
    write,
    write_all,
)
from commonmeta.formats.inveniordm.reader import (
    DEFAULT_HOST,
    fetch,
    fetch_all,
    get,
    get_all,
    load,
    load_all,
    query_url,
    read,
    read_all,
    record_url,
    search_by_doi,
    search_by_slug,
)

__all__ = [
    "CM_TO_INVENIO_IDENTIFIER_MAPPINGS",
    "CM_TO_INVENIO_MAPPINGS",
    "DEFAULT_HOST",
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
    "record_url",
    "search_by_doi",
    "search_by_slug",
    "write",
    "write_all",
]
