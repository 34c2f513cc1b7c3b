"""Commonmeta CLI - main application entry point.

Global options are declared once on the root callback and passed to every
command as a GlobalOptions instance in ``ctx.obj``. They precede the
command name:

    commonmeta --to datacite convert 10.7554/elife.01567
    commonmeta --from crossref --number 5 --member 78 list
"""

from __future__ import annotations

import typer

from commonmeta.cli.commands import (
    convert_command,
    decode_command,
    delete_command,
    encode_command,
    import_command,
    install_command,
    list_command,
    match_command,
    obtain_command,
    post_command,
    push_command,
    put_command,
    setup_command,
    transform_command,
    update_ghost_post_command,
    version_command,
)
from commonmeta.cli.options import DEFAULT_TYPE, GlobalOptions
from commonmeta.core.config import get_settings
from commonmeta.core.logging import configure_logging

app = typer.Typer(
    name="commonmeta",
    help="Convert scholarly metadata between formats and register DOIs",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    from_format: str = typer.Option("", "--from", "-f", help="Format to convert from"),
    to_format: str = typer.Option("commonmeta", "--to", "-t", help="Format to convert to"),
    number: int = typer.Option(10, "--number", "-n", help="Number of records"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    member: str = typer.Option("", "--member", "-m", help="Crossref member ID"),
    client: str = typer.Option("", "--client", "-c", help="DataCite client ID"),
    type: str = typer.Option(DEFAULT_TYPE, "--type", help="Work type"),
    year: str = typer.Option("", "--year", "-y", help="Publication year"),
    country: str = typer.Option("", "--country", help="ISO 3166 country code"),
    language: str = typer.Option("", "--language", "-l", help="Language"),
    orcid: str = typer.Option("", "--orcid", help="ORCID iD"),
    affiliation: str = typer.Option("", "--affiliation", help="Affiliation name"),
    ror: str = typer.Option("", "--ror", help="ROR ID"),
    community: str = typer.Option("", "--community", help="InvenioRDM community slug"),
    subject: str = typer.Option("", "--subject", help="Subject"),
    from_host: str = typer.Option("", "--from-host", help="Host to read from"),
    from_token: str = typer.Option("", "--from-token", help="Token for the host to read from"),
    host: str = typer.Option("", "--host", help="Host to register with"),
    token: str = typer.Option("", "--token", help="Token for the host to register with"),
    depositor: str = typer.Option("", "--depositor", help="Crossref depositor name"),
    email: str = typer.Option("", "--email", help="Crossref depositor email"),
    registrant: str = typer.Option("", "--registrant", help="Crossref registrant"),
    legacy_key: str = typer.Option("", "--legacyKey", help="Rogue Scholar legacy database key"),
    password: str = typer.Option("", "--password", help="DataCite password"),
    login_id: str = typer.Option("", "--login_id", help="Crossref login ID"),
    login_passwd: str = typer.Option("", "--login_passwd", help="Crossref login password"),
    has_orcid: bool = typer.Option(False, "--has-orcid", help="Has one or more ORCID iDs"),
    has_ror_id: bool = typer.Option(False, "--has-ror-id", help="Has one or more ROR IDs"),
    has_references: bool = typer.Option(False, "--has-references", help="Has references"),
    has_relation: bool = typer.Option(False, "--has-relation", help="Has relations"),
    has_abstract: bool = typer.Option(False, "--has-abstract", help="Has an abstract"),
    has_award: bool = typer.Option(False, "--has-award", help="Has funding awards"),
    has_license: bool = typer.Option(False, "--has-license", help="Has a license"),
    has_archive: bool = typer.Option(False, "--has-archive", help="Has an archive location"),
    is_archived: bool = typer.Option(False, "--is-archived", help="Is archived"),
    sample: bool = typer.Option(False, "--sample", help="Random sample"),
    match: bool = typer.Option(False, "--match", help="Match affiliations to ROR IDs"),
    file: str = typer.Option("", "--file", help="Output file"),
    vocabulary: bool = typer.Option(False, "--vocabulary", help="Also write an affiliations vocabulary"),
    compress: bool = typer.Option(False, "--compress", help="Compress the output file"),
    development: bool = typer.Option(False, "--development", help="Use test registration endpoints"),
    data_version: str = typer.Option("", "--data-version", help="ROR data version, e.g. v1.63"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Log errors only"),
) -> None:
    """Commonmeta: scholarly metadata conversion and DOI registration."""
    params = dict(ctx.params)
    settings = get_settings()
    level = "DEBUG" if verbose else "ERROR" if quiet else settings.log_level
    configure_logging(level=level, log_file=settings.log_file)
    ctx.obj = GlobalOptions.from_params(params)


# Register commands
app.command("convert", rich_help_panel="Metadata")(convert_command)
app.command("list", rich_help_panel="Metadata")(list_command)
app.command("push", rich_help_panel="Registration")(push_command)
app.command("post", rich_help_panel="Registration")(post_command)
app.command("put", rich_help_panel="Registration")(put_command)
app.command("delete", rich_help_panel="Registration")(delete_command)
app.command("setup", rich_help_panel="Registration")(setup_command)
app.command("match", rich_help_panel="Vocabularies")(match_command)
app.command("install", rich_help_panel="Vocabularies")(install_command)
app.command("import", rich_help_panel="Vocabularies")(import_command)
app.command("obtain", rich_help_panel="Vocabularies")(obtain_command)
app.command("transform", rich_help_panel="Vocabularies")(transform_command)
app.command("encode", rich_help_panel="Identifiers")(encode_command)
app.command("decode", rich_help_panel="Identifiers")(decode_command)
app.command("update-ghost-post", rich_help_panel="System")(update_ghost_post_command)
app.command("version", rich_help_panel="System")(version_command)


def cli_main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    cli_main()
