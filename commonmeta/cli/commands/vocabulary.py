"""Vocabulary commands: match, install, import, obtain and transform.

All of them work on the ROR catalog except ``install``, which also
downloads the SPDX license list.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from commonmeta import ror
from commonmeta.cli.console import echo_bytes, emit, safe_cli_command, status
from commonmeta.cli.options import GlobalOptions
from commonmeta.core.exceptions import IOFailureError, UnsupportedConversionError
from commonmeta.core.fileio import get_extension, write_output
from commonmeta.ror.model import ORGANIZATION_TYPES
from commonmeta.ror.reader import INSTALLED_FILENAME, parse_data_version
from commonmeta.ror.writer import AFFILIATIONS_FILE
from commonmeta.vocabularies import spdx

VOCABULARIES = ("spdx", "ror")


def _require_ror(opts: GlobalOptions) -> None:
    if opts.from_format != "ror":
        raise UnsupportedConversionError(
            f"Unsupported vocabulary {opts.from_format or '(none)'}",
            how_to_fix=["Pass --from ror"],
        )


def _require_file(input: Optional[str]) -> str:
    if not input or not Path(input).is_file():
        raise IOFailureError(f"File not found: {input or ''}", path=input or "")
    return input


@safe_cli_command
def match_command(
    ctx: typer.Context,
    affiliation: str = typer.Argument(..., help="Affiliation string"),
) -> None:
    """Match an affiliation string to a ROR organization."""
    opts: GlobalOptions = ctx.obj
    _require_ror(opts)
    chosen = next((m for m in ror.match_affiliation(affiliation) if m.chosen), None)
    if chosen is None:
        typer.echo("No match found")
        return
    if opts.to_format == "inveniordm":
        echo_bytes(ror.write_invenio_rdm(chosen.organization))
    else:
        echo_bytes(ror.write(chosen.organization))


@safe_cli_command
def install_command(
    ctx: typer.Context,
    vocabulary: str = typer.Argument(..., help="spdx or ror"),
) -> None:
    """Download a vocabulary into the data directory."""
    opts: GlobalOptions = ctx.obj
    if vocabulary == "spdx":
        spdx.fetch_all(progress=True)
        filename = spdx.SPDX_FILENAME
    elif vocabulary == "ror":
        version = parse_data_version(opts.data_version)
        ror.fetch_all(version, progress=True, install=True)
        filename = INSTALLED_FILENAME
    else:
        raise ValueError(
            f"Unsupported vocabulary {vocabulary}. Supported vocabularies are: "
            f"{', '.join(VOCABULARIES)}"
        )
    status(f"Saved {vocabulary} file: {filename}")


@safe_cli_command
def import_command(
    ctx: typer.Context,
    input: str = typer.Argument(..., help="ROR data dump (avro, json, jsonl, csv, yaml)"),
) -> None:
    """Import a ROR data dump as InvenioRDM affiliations."""
    opts: GlobalOptions = ctx.obj
    _require_ror(opts)
    catalog = ror.load_all(_require_file(input))
    filename, extension, compress = get_extension(opts.file or AFFILIATIONS_FILE, ".yaml")
    output = ror.write_all_invenio_rdm(catalog, extension)
    path = write_output(filename, output, compress or ("zip" if opts.compress else ""))
    status(f"File written: {path}")


@safe_cli_command
def obtain_command(
    ctx: typer.Context,
    input: str = typer.Argument(..., help="ROR data dump"),
) -> None:
    """Convert a ROR data dump to InvenioRDM affiliations."""
    opts: GlobalOptions = ctx.obj
    _require_ror(opts)
    if opts.to_format != "inveniordm":
        raise UnsupportedConversionError(
            f"Unsupported output format {opts.to_format}",
            how_to_fix=["Pass --to inveniordm"],
        )
    catalog = ror.load_all(_require_file(input))
    _, extension, _ = get_extension(opts.file, ".yaml")
    emit(ror.write_all_invenio_rdm(catalog, extension), opts.file, source=input, compress=opts.compress)


@safe_cli_command
def transform_command(
    ctx: typer.Context,
    input: Optional[str] = typer.Argument(None, help="ROR data dump; omit for the installed catalog"),
) -> None:
    """Filter the ROR catalog by type and country and write it as ROR or InvenioRDM.

    ``--file funders.yaml`` keeps funders only; ``--file affiliations_ror.yaml``
    drops locations.
    """
    opts: GlobalOptions = ctx.obj
    org_type = opts.type if opts.type in ORGANIZATION_TYPES else ""
    if input:
        _require_ror(opts)
        catalog = ror.load_all(_require_file(input))
    else:
        catalog = ror.load_builtin()
    filename, extension, _ = get_extension(opts.file, ".yaml")
    catalog = ror.filter_catalog(
        catalog,
        type=org_type,
        country=opts.country,
        file=Path(filename).name,
        number=opts.number if input else 0,
        page=opts.page,
    )
    if opts.to_format == "inveniordm":
        output = ror.write_all_invenio_rdm(catalog, extension)
    else:
        output = ror.write_all(catalog, extension)
    emit(output, opts.file, source=input or "ROR catalog", compress=opts.compress)
