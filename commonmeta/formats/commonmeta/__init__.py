"""Commonmeta JSON: the canonical format itself."""

from commonmeta.formats.commonmeta.reader import load, load_all, read, read_all
from commonmeta.formats.commonmeta.writer import write, write_all

__all__ = ["load", "load_all", "read", "read_all", "write", "write_all"]
