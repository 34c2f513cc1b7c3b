"""
JSON Schema validation of written records.

Architecture Context
--------------------
Writers serialize a record and then validate the produced document against
the schema of the target format:

    errors = validate(document, "commonmeta_v0.16")
    # [("/contributors/0/contributorRoles", "[] is too short"), ...]

    check(document, "csl-data", output=output)
    # raises SchemaValidationError carrying the errors and the output bytes

Schemas are bundled in ``model/schemas`` and compiled once per process.

Design Decisions
----------------
1. **Pointer/message pairs**: errors are reported as JSON pointers into the
   document so that CLI users can find the failing element.
2. **Output travels with the error**: list and file writers catch
   SchemaValidationError and still emit ``error.output``; single-record
   writes fail.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional, Tuple

from jsonschema import Draft7Validator

from commonmeta.core.exceptions import SchemaValidationError
from commonmeta.core.logging import get_logger

logger = get_logger(__name__)

SCHEMA_DIR = Path(__file__).parent / "schemas"

SCHEMAS = {
    "commonmeta_v0.16": "commonmeta_v0.16.json",
    "csl-data": "csl-data.json",
    "datacite-v4.5": "datacite-v4.5.json",
    "invenio-rdm-v0.1": "invenio-rdm-v0.1.json",
}
DEFAULT_SCHEMA = "commonmeta_v0.16"


@lru_cache(maxsize=None)
def get_validator(schema: str = DEFAULT_SCHEMA) -> Draft7Validator:
    """Load and compile a bundled schema.

    Raises:
        ValueError: unknown schema name
    """
    filename = SCHEMAS.get(schema)
    if filename is None:
        raise ValueError(f"Unknown schema {schema}, expected one of {', '.join(SCHEMAS)}")
    with open(SCHEMA_DIR / filename, encoding="utf-8") as f:
        schema_data = json.load(f)
    Draft7Validator.check_schema(schema_data)
    return Draft7Validator(schema_data)


def _pointer(path: Any) -> str:
    parts = [str(p).replace("~", "~0").replace("/", "~1") for p in path]
    return "/" + "/".join(parts) if parts else "/"


def validate(document: Any, schema: str = DEFAULT_SCHEMA) -> List[Tuple[str, str]]:
    """Validate a document; return (pointer, message) pairs, empty when valid."""
    validator = get_validator(schema)
    errors = sorted(validator.iter_errors(document), key=lambda e: list(e.absolute_path))
    return [(_pointer(e.absolute_path), e.message) for e in errors]


def check(
    document: Any,
    schema: str = DEFAULT_SCHEMA,
    output: Optional[bytes] = None,
) -> None:
    """Validate a document and raise on failure.

    Raises:
        SchemaValidationError: with the error list and the serialized output
    """
    errors = validate(document, schema)
    if errors:
        logger.debug("Schema validation failed", schema=schema, errors=len(errors))
        raise SchemaValidationError(
            f"Validation against {schema} failed",
            errors=errors,
            output=output,
        )
