"""Write Commonmeta JSON, JSON Lines and YAML."""

from typing import List

from commonmeta.core.exceptions import InvalidExtensionError
from commonmeta.core.fileio import dump_json, dump_jsonl, dump_yaml
from commonmeta.formats.base import validate_documents
from commonmeta.model.record import Record
from commonmeta.model.schema import check

SCHEMA = "commonmeta_v0.16"


def write(record: Record) -> bytes:
    """Serialize one record as Commonmeta JSON.

    Raises:
        SchemaValidationError: the document does not validate; the error
            carries the serialized output
    """
    document = record.to_dict()
    output = dump_json(document)
    check(document, SCHEMA, output=output)
    return output


def write_all(records: List[Record], extension: str = ".json", strict: bool = False) -> bytes:
    """Serialize a list of records.

    Args:
        records: Records to serialize
        extension: ".json" (validated array), ".jsonl" or ".yaml"
        strict: Raise instead of logging when a record fails validation

    Raises:
        InvalidExtensionError: unsupported extension
    """
    documents = [r.to_dict() for r in records]
    if extension == ".json":
        return validate_documents(documents, SCHEMA, dump_json(documents), strict)
    if extension in (".jsonl", ".jsonlines"):
        return dump_jsonl(documents)
    if extension == ".yaml":
        return dump_yaml(documents)
    raise InvalidExtensionError(f"Unsupported file format {extension} for commonmeta")
