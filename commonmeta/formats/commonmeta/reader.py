"""Read Commonmeta JSON documents and files."""

from typing import Any, Dict, List

from commonmeta.formats.base import PathLike, load_content, read_each, unwrap_items
from commonmeta.model.record import Record


def read(content: Dict[str, Any]) -> Record:
    """Build a record from a parsed Commonmeta document.

    The record validator re-applies the identifier, contributor and relation
    invariants, so documents written by other tools are normalized too.
    """
    return Record.from_dict(content)


def read_all(content: List[Dict[str, Any]]) -> List[Record]:
    return read_each(content, read, "commonmeta.read_all")


def load(filename: PathLike) -> Record:
    """Load a single record from a .json file.

    Raises:
        InvalidExtensionError: not a .json file
    """
    return read(load_content(filename, (".json",)))


def load_all(filename: PathLike) -> List[Record]:
    """Load a list of records from a .json array or a .jsonl file.

    A .json file holding a single document yields a list of one record.
    """
    content = load_content(filename, (".json", ".jsonl", ".jsonlines"))
    if isinstance(content, dict) and "items" not in content:
        return read_all([content])
    return read_all(unwrap_items(content, "items"))
