"""encode and decode: random DOIs with a Crockford base32 checksum."""

from __future__ import annotations

import typer

from commonmeta.cli.console import safe_cli_command
from commonmeta.core.exceptions import InvalidIdentifierError
from commonmeta.utils.doi import encode_doi, validate_prefix
from commonmeta.utils.identifiers import decode_id


@safe_cli_command
def encode_command(prefix: str = typer.Argument(..., help="DOI prefix, e.g. 10.59350")) -> None:
    """Generate a new DOI for a prefix that is not registered yet."""
    value, ok = validate_prefix(prefix)
    if not ok:
        raise InvalidIdentifierError(f"Invalid prefix {prefix}")
    typer.echo(encode_doi(value))


@safe_cli_command
def decode_command(identifier: str = typer.Argument(..., help="Generated DOI, ROR id or ORCID")) -> None:
    """Decode the number behind a generated DOI, ROR id or ORCID."""
    typer.echo(decode_id(identifier))
