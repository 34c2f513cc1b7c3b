"""
Format adapters: one package per external metadata format.

Each package reads its format into a Commonmeta `Record` and, where the
format is a legal write target, writes records back. See
`commonmeta.formats.base` for the shared entry point conventions.
"""

READERS = (
    "commonmeta",
    "crossref",
    "crossrefxml",
    "csl",
    "datacite",
    "inveniordm",
    "jsonfeed",
    "openalex",
    "schemaorg",
)
WRITERS = (
    "commonmeta",
    "crossrefxml",
    "csl",
    "datacite",
    "inveniordm",
    "schemaorg",
)
