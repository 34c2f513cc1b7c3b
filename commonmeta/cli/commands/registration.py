"""Registration commands: push, put, post, delete and setup.

``push`` creates or updates, ``post`` only creates and ``put`` only updates.
Each prints one JSON envelope per record; a failed record does not stop
the batch.
"""

from __future__ import annotations

from typing import List, Optional

import typer

from commonmeta import driver
from commonmeta.cli.console import echo_json, echo_responses, safe_cli_command
from commonmeta.cli.options import GlobalOptions
from commonmeta.core.exceptions import InvalidIdentifierError
from commonmeta.model.record import Record
from commonmeta.registration.inveniordm import DELETE_LIMIT, InvenioRDMClient
from commonmeta.registration.response import APIResponse
from commonmeta.utils.identifiers import validate_rid


def _records(opts: GlobalOptions, input: Optional[str]) -> List[Record]:
    """One record for an identifier, all records of a file or list query."""
    if input:
        pid, path = driver.resolve_input(input)
        if pid:
            return [driver.fetch_record(pid, opts.from_format, opts.match)]
        return driver.read_records(path, opts.from_format, opts.query_options(opts.from_format))
    from_format = opts.from_format or "crossref"
    return driver.read_records("", from_format, opts.query_options(from_format))


def _register(ctx: typer.Context, input: Optional[str], mode: str) -> None:
    opts: GlobalOptions = ctx.obj
    records = _records(opts, input)
    responses = driver.register(
        records,
        opts.to_format,
        mode=mode,
        host=opts.host,
        token=opts.token,
        legacy_key=opts.legacy_key,
        account=opts.account(),
        client_id=opts.client,
        password=opts.password,
        development=opts.development,
    )
    echo_responses(responses)


@safe_cli_command
def push_command(
    ctx: typer.Context,
    input: Optional[str] = typer.Argument(None, help="Identifier or file; omit for a list query"),
) -> None:
    """Register records, creating or updating them (--to crossrefxml, datacite or inveniordm)."""
    _register(ctx, input, "upsert")


@safe_cli_command
def post_command(
    ctx: typer.Context,
    input: Optional[str] = typer.Argument(None, help="Identifier or file; omit for a list query"),
) -> None:
    """Register new records only."""
    _register(ctx, input, "create")


@safe_cli_command
def put_command(
    ctx: typer.Context,
    input: Optional[str] = typer.Argument(None, help="Identifier or file; omit for a list query"),
) -> None:
    """Update existing records only."""
    _register(ctx, input, "update")


@safe_cli_command
def delete_command(
    ctx: typer.Context,
    rid: str = typer.Argument(..., help="InvenioRDM record id, e.g. 1xr1m-wnh16"),
) -> None:
    """Delete the draft of an InvenioRDM record."""
    opts: GlobalOptions = ctx.obj
    record_id, ok = validate_rid(rid)
    if not ok:
        raise InvalidIdentifierError(f"Invalid InvenioRDM record id {rid}")
    client = InvenioRDMClient(opts.host or driver.inveniordm.DEFAULT_HOST, opts.token, limit=DELETE_LIMIT)
    response = client.delete_draft_record(APIResponse(id=record_id))
    echo_responses([response])


@safe_cli_command
def setup_command(ctx: typer.Context) -> None:
    """Create one InvenioRDM community per OECD Field of Science."""
    opts: GlobalOptions = ctx.obj
    client = InvenioRDMClient(opts.host or driver.inveniordm.DEFAULT_HOST, opts.token)
    echo_json(client.create_subject_communities())
