"""convert and list: read records in one format and write them in another.

Examples:
    commonmeta convert 10.7554/elife.01567 --to datacite
    commonmeta --number 10 --member 78 list --from crossref
    commonmeta --from inveniordm --from-host rogue-scholar.org --community front_matter list
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer

from commonmeta import driver, ror
from commonmeta.cli.console import emit, safe_cli_command, status
from commonmeta.cli.options import GlobalOptions
from commonmeta.core.fileio import get_extension, write_file
from commonmeta.ror.model import ORGANIZATION_TYPES
from commonmeta.ror.reader import DEFAULT_VERSION
from commonmeta.ror.writer import AFFILIATIONS_FILE


@safe_cli_command
def convert_command(
    ctx: typer.Context,
    input: str = typer.Argument(..., help="Identifier (DOI, URL, UUID, OpenAlex id) or file"),
) -> None:
    """Convert one record from one metadata format to another."""
    opts: GlobalOptions = ctx.obj
    output = driver.convert(
        input,
        from_format=opts.from_format,
        to_format=opts.to_format,
        account=opts.account(),
        match=opts.match,
    )
    emit(output, opts.file, source=input, compress=opts.compress)


def _list_organizations(opts: GlobalOptions, input: str) -> None:
    catalog = ror.load_all(input) if input else ror.load_builtin()
    source = input or f"{DEFAULT_VERSION}-ror-data"
    org_type = opts.type if opts.type in ORGANIZATION_TYPES else ""
    filename, extension, _ = get_extension(opts.file, ".json")
    catalog = ror.filter_catalog(
        catalog,
        type=org_type,
        country=opts.country,
        file=Path(filename).name,
        number=opts.number,
        page=opts.page,
    )
    if opts.to_format == "inveniordm":
        output = ror.write_all_invenio_rdm(catalog, extension)
    else:
        output = ror.write_all(catalog, extension)
    emit(output, opts.file, source=source, compress=opts.compress)


@safe_cli_command
def list_command(
    ctx: typer.Context,
    input: Optional[str] = typer.Argument(None, help="File to read; omit to query the API"),
) -> None:
    """List records from a file or an API query and write them in one format.

    Individual records that fail to read or validate are logged and skipped.
    """
    opts: GlobalOptions = ctx.obj
    from_format = opts.from_format or "crossref"
    if from_format == "ror":
        _list_organizations(opts, input or "")
        return

    _, extension, _ = get_extension(opts.file, ".json")
    records = driver.read_records(input or "", from_format, opts.query_options(from_format))
    output = driver.write_records(records, opts.to_format, extension, opts.account())
    emit(output, opts.file, source=input or "", compress=opts.compress)

    if opts.to_format == "inveniordm" and opts.vocabulary:
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        affiliations = ror.write_all_invenio_rdm(ror.extract_all(records), ".yaml")
        header = f"# file generated from {from_format} query on {today}.\n\n".encode("utf-8")
        write_file(AFFILIATIONS_FILE, header + affiliations)
        status(f"Found ROR IDs written to {AFFILIATIONS_FILE}")
