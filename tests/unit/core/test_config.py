"""Tests for settings loading."""

from pathlib import Path

import pytest

from commonmeta.core.config import DEFAULT_RATE_LIMITS, Settings, expand_env_vars, load_settings
from commonmeta.core.exceptions import DecodeFailureError


class TestExpandEnvVars:
    """Tests for expand_env_vars()."""

    def test_expands_nested(self, monkeypatch) -> None:
        monkeypatch.setenv("COMMONMETA_EMAIL", "me@example.org")
        data = {"email": "${COMMONMETA_EMAIL}", "list": ["${MISSING:fallback}"]}
        assert expand_env_vars(data) == {"email": "me@example.org", "list": ["fallback"]}


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        settings = load_settings(config_path=tmp_path / "missing.yaml")
        assert settings.timeout == 10.0
        assert settings.rate_limits == DEFAULT_RATE_LIMITS

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "commonmeta.yaml"
        path.write_text(
            "email: info@example.org\n"
            "timeout: 5\n"
            "data_dir: " + str(tmp_path / "vocab") + "\n"
            "rate_limits:\n"
            "  api.crossref.org: [5, 5]\n",
            encoding="utf-8",
        )
        settings = load_settings(config_path=path)
        assert settings.email == "info@example.org"
        assert settings.timeout == 5.0
        assert settings.data_dir == tmp_path / "vocab"
        assert settings.rate_limits["api.crossref.org"] == (5.0, 5)
        assert settings.rate_limits["api.datacite.org"] == DEFAULT_RATE_LIMITS["api.datacite.org"]

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "commonmeta.yaml"
        path.write_text("email: [unclosed\n", encoding="utf-8")
        with pytest.raises(DecodeFailureError):
            load_settings(config_path=path)

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ValueError):
            Settings(timeout=0)
