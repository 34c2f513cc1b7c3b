"""
Shared pytest fixtures for commonmeta tests.

Fixture Organization
--------------------
- **fixture_path / load_fixture**: files under tests/fixtures
- **settings**: isolated Settings with a temporary data directory
- **ror_catalog**: the organizations of tests/fixtures/ror-catalog.json,
  installed as Avro in that data directory
- **make_response**: fake requests.Response objects for mocked HTTP calls
- **http_client**: HttpClient whose limiter never blocks

No test touches the network: fetchers and registration clients receive a
client whose ``request``/``get_json`` methods are patched.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Optional
from unittest.mock import MagicMock

import pytest
import requests

from commonmeta.core.config import Settings, set_settings
from commonmeta.core.http import HttpClient, TokenBucket
from commonmeta.ror import reader as ror_reader
from commonmeta.ror.writer import encode_avro

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ============================================================================
# Fixture files
# ============================================================================


@pytest.fixture
def fixture_path() -> Callable[[str], Path]:
    """Path of a file in tests/fixtures."""

    def _path(name: str) -> Path:
        return FIXTURES_DIR / name

    return _path


@pytest.fixture
def load_fixture() -> Callable[[str], Any]:
    """Parsed JSON content, or raw text for non-JSON files, of a fixture."""

    def _load(name: str) -> Any:
        path = FIXTURES_DIR / name
        content = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            return json.loads(content)
        return content

    return _load


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture(autouse=True)
def settings(tmp_path: Path) -> Generator[Settings, None, None]:
    """Isolated settings: no user config file, vocabularies under tmp_path.

    One worker, so mocked responses given as a list are consumed in order;
    tests of the thread pool raise ``workers``.
    """
    value = Settings(email="test@example.org", data_dir=tmp_path / "data", workers=1)
    set_settings(value)
    yield value
    set_settings(Settings())


@pytest.fixture(scope="session")
def ror_catalog_avro() -> bytes:
    path = FIXTURES_DIR / "ror-catalog.json"
    items = json.loads(path.read_text(encoding="utf-8"))
    return encode_avro(ror_reader.to_catalog(ror_reader.read(item) for item in items))


@pytest.fixture(autouse=True)
def ror_catalog(settings: Settings, ror_catalog_avro: bytes) -> Generator[Path, None, None]:
    """Installed ROR catalog, so no test downloads the data dump."""
    path = ror_reader.installed_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(ror_catalog_avro)
    ror_reader.clear_cache()
    yield path
    ror_reader.clear_cache()


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def make_response() -> Callable[..., requests.Response]:
    """Build a requests.Response with a status, a JSON or text body and headers."""

    def _make(
        status: int = 200,
        json_data: Any = None,
        text: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        url: str = "https://example.org",
    ) -> requests.Response:
        response = requests.Response()
        response.status_code = status
        response.url = url
        response.reason = "OK" if status < 400 else "Error"
        if json_data is not None:
            response._content = json.dumps(json_data).encode("utf-8")
            response.headers["Content-Type"] = "application/json"
        elif text is not None:
            response._content = text.encode("utf-8")
        else:
            response._content = b""
        response.encoding = "utf-8"
        response.headers.update(headers or {})
        return response

    return _make


@pytest.fixture
def http_client() -> HttpClient:
    """Client with a generous limiter so tests never wait."""
    return HttpClient(limiter=TokenBucket(rate=1000.0, burst=1000))


@pytest.fixture
def mock_client() -> MagicMock:
    """MagicMock limited to the HttpClient interface."""
    return MagicMock(spec=HttpClient)
