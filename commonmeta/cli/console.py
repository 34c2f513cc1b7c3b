"""Console output helpers for the CLI."""

from __future__ import annotations

from functools import wraps
from pathlib import Path
from typing import Any, Callable, List, Optional

import typer
from rich.console import Console

from commonmeta.core.exceptions import CommonmetaError
from commonmeta.core.fileio import dump_json, get_extension, write_output
from commonmeta.core.logging import get_logger

logger = get_logger(__name__)

_console: Optional[Console] = None


def get_console() -> Console:
    """Shared stderr console for status messages; records go to stdout."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def status(message: str) -> None:
    get_console().print(f"[green]{message}[/green]")


def error(message: str) -> None:
    typer.echo(f"An error occurred: {message}", err=True)


def echo_bytes(output: bytes) -> None:
    typer.echo(output.decode("utf-8").rstrip("\n"))


def echo_json(data: Any) -> None:
    echo_bytes(dump_json(data))


def generated_header(source: str) -> bytes:
    return f"# file generated from {source}\n\n".encode("utf-8")


def emit(output: bytes, file: str = "", source: str = "", compress: bool = False) -> Optional[Path]:
    """Print output, or write it to `file` (YAML gets a provenance header).

    A trailing .zip or .gz on the file name, or `compress`, compresses the file.
    """
    if not file:
        echo_bytes(output)
        return None
    filename, extension, compression = get_extension(file)
    if compress and not compression:
        compression = "zip"
    if source and extension == ".yaml":
        output = generated_header(source) + output
    path = write_output(filename, output, compression)
    status(f"File written: {path}")
    return path


def echo_responses(responses: List[Any]) -> None:
    echo_json([r.to_dict() for r in responses])


def safe_cli_command(func: Callable[..., Any]) -> Callable[..., Any]:
    """Print ``An error occurred: <message>`` and exit 1 on expected failures."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (CommonmetaError, ValueError) as e:
            logger.debug("Command failed", command=func.__name__, error=repr(e))
            error(str(e))
            raise typer.Exit(code=1)

    return wrapper
