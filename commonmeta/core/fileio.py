"""File input and output helpers.

Handles extension detection with trailing compression suffixes, transparent
gzip/zip decompression on read, compressed output, JSON / JSON Lines / YAML
decoding, and streamed downloads with a rich progress bar.
"""

from __future__ import annotations

import gzip
import io
import json
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import yaml
from rich.console import Console
from rich.progress import BarColumn, DownloadColumn, Progress, TextColumn

from commonmeta.core.exceptions import (
    DecodeFailureError,
    IOFailureError,
    InvalidExtensionError,
    NetworkFailureError,
)
from commonmeta.core.http import HttpClient
from commonmeta.core.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]
COMPRESSIONS = {".gz": "gz", ".zip": "zip"}
JSONL_EXTENSIONS = (".jsonl", ".jsonlines")


def get_extension(filename: Optional[str], default: str = ".json") -> Tuple[str, str, str]:
    """Split a target filename into (filename, extension, compress).

    A trailing ``.gz`` or ``.zip`` is removed from the filename and returned
    as the compression ("gz" or "zip"). Without a filename the default
    extension is returned.

    Example:
        get_extension("funders.yaml.zip")  # ("funders.yaml", ".yaml", "zip")
    """
    if not filename:
        return "", default or ".json", ""
    path = Path(filename)
    compress = COMPRESSIONS.get(path.suffix, "")
    if compress:
        path = path.with_suffix("")
        filename = str(path)
    return filename, path.suffix, compress


def uncompress(content: bytes, name: str = "") -> bytes:
    """Decompress gzip or zip content; other content is returned unchanged."""
    if content[:2] == b"\x1f\x8b":
        return gzip.decompress(content)
    if content[:4] == b"PK\x03\x04":
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            members = [m for m in archive.namelist() if not m.endswith("/")]
            if name:
                members = [m for m in members if m == name or m.endswith("/" + name)]
            return b"".join(archive.read(m) for m in members)
    return content


def read_file(filename: PathLike, member: str = "") -> bytes:
    """Read a file, decompressing .gz and .zip content.

    Raises:
        IOFailureError: If the file cannot be read
    """
    path = Path(filename)
    try:
        content = path.read_bytes()
    except OSError as e:
        raise IOFailureError(f"Could not read file {path}: {e}", path=str(path)) from e
    if path.suffix in COMPRESSIONS:
        return uncompress(content, member)
    return content


def write_file(filename: PathLike, output: bytes) -> Path:
    path = Path(filename)
    try:
        path.write_bytes(output)
    except OSError as e:
        raise IOFailureError(f"Could not write file {path}: {e}", path=str(path)) from e
    return path


def write_gzip_file(filename: PathLike, output: bytes) -> Path:
    """Write `output` to `<filename>.gz`."""
    path = Path(f"{filename}.gz")
    try:
        with gzip.open(path, "wb") as f:
            f.write(output)
    except OSError as e:
        raise IOFailureError(f"Could not write file {path}: {e}", path=str(path)) from e
    return path


def write_zip_file(filename: PathLike, output: bytes) -> Path:
    """Write `output` as the single member of `<filename>.zip`."""
    path = Path(f"{filename}.zip")
    try:
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            info = zipfile.ZipInfo(Path(filename).name, datetime.now().timetuple()[:6])
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, output)
    except OSError as e:
        raise IOFailureError(f"Could not write file {path}: {e}", path=str(path)) from e
    return path


def write_output(filename: PathLike, output: bytes, compress: str = "") -> Path:
    if compress == "gz":
        return write_gzip_file(filename, output)
    if compress == "zip":
        return write_zip_file(filename, output)
    return write_file(filename, output)


def check_extension(filename: PathLike, allowed: Tuple[str, ...]) -> str:
    """Return the (decompressed) extension of filename or raise.

    Raises:
        InvalidExtensionError: extension not in allowed
    """
    _, extension, _ = get_extension(str(filename))
    if extension not in allowed:
        raise InvalidExtensionError(
            f"Invalid file extension {extension or '(none)'} for {Path(filename).name}, "
            f"expected one of {', '.join(allowed)}"
        )
    return extension


def decode_json(content: Union[bytes, str], source: str = "input") -> Any:
    try:
        return json.loads(content)
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeFailureError(f"Invalid JSON in {source}: {e}") from e


def decode_jsonl(content: Union[bytes, str], source: str = "input") -> List[Any]:
    """Decode JSON Lines, skipping blank lines."""
    if isinstance(content, bytes):
        content = content.decode("utf-8")
    items = []
    for number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            items.append(json.loads(line))
        except ValueError as e:
            raise DecodeFailureError(f"Invalid JSON on line {number} of {source}: {e}") from e
    return items


def decode_yaml(content: Union[bytes, str], source: str = "input") -> Any:
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise DecodeFailureError(f"Invalid YAML in {source}: {e}") from e


def load_json(filename: PathLike) -> Any:
    return decode_json(read_file(filename), str(filename))


def load_jsonl(filename: PathLike) -> List[Any]:
    return decode_jsonl(read_file(filename), str(filename))


def dump_json(data: Any, indent: Optional[int] = 2) -> bytes:
    return json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")


def dump_jsonl(items: List[Any]) -> bytes:
    lines = [json.dumps(item, ensure_ascii=False) for item in items]
    return ("\n".join(lines) + "\n").encode("utf-8") if lines else b""


def dump_yaml(data: Any) -> bytes:
    return yaml.safe_dump(
        data, allow_unicode=True, sort_keys=False, default_flow_style=False
    ).encode("utf-8")


def download_file(url: str, progress: bool = False, client: Optional[HttpClient] = None) -> bytes:
    """Download a (large) file, optionally showing a progress bar on stderr.

    Raises:
        NetworkFailureError: Transport error or status >= 400
    """
    client = client or HttpClient(timeout=60)
    response = client.request("GET", url, stream=True)
    total = int(response.headers.get("Content-Length") or 0) or None
    buffer = io.BytesIO()
    try:
        if not progress:
            for chunk in response.iter_content(chunk_size=1 << 16):
                buffer.write(chunk)
            return buffer.getvalue()
        with Progress(
            TextColumn("downloading"),
            BarColumn(),
            DownloadColumn(),
            console=Console(stderr=True),
            transient=True,
        ) as bar:
            task = bar.add_task("download", total=total)
            for chunk in response.iter_content(chunk_size=1 << 16):
                buffer.write(chunk)
                bar.update(task, advance=len(chunk))
    except OSError as e:
        raise NetworkFailureError(f"Download of {url} interrupted: {e}", url=url) from e
    finally:
        response.close()
    logger.info("Downloaded file", url=url, size=buffer.tell())
    return buffer.getvalue()
