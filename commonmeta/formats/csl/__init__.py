"""CSL-JSON (Citation Style Language input data)."""

from commonmeta.formats.csl.reader import load, load_all, read, read_all
from commonmeta.formats.csl.writer import convert, write, write_all

__all__ = ["convert", "load", "load_all", "read", "read_all", "write", "write_all"]
