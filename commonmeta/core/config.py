"""
Configuration for Commonmeta.

Settings are optional: every command works with the defaults below. A
`commonmeta.yaml` in the working directory (or `~/.commonmeta/config.yaml`)
can set the contact email used in the User-Agent, timeouts, rate limits and
the directory that `commonmeta install` writes vocabularies to.

Configuration File
------------------
    email: ${COMMONMETA_EMAIL:info@example.org}
    timeout: 10
    workers: 4                       # parallel fetches and registrations
    data_dir: ~/.commonmeta
    log_level: WARNING
    rate_limits:
      api.crossref.org: [50, 50]     # requests per second, burst
      api.datacite.org: [20, 20]

Values use ${VAR_NAME} or ${VAR_NAME:default} syntax and are expanded
recursively. Tokens and passwords are never read from this file; they are
accepted only as CLI options.

Configuration precedence: 1. CLI options, 2. YAML file, 3. Defaults
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from commonmeta.core.exceptions import DecodeFailureError

CONFIG_FILENAMES = ("commonmeta.yaml", "commonmeta.yml")
DEFAULT_RATE_LIMITS: Dict[str, Tuple[float, int]] = {
    "api.crossref.org": (50.0, 50),
    "api.datacite.org": (20.0, 20),
    "api.ror.org": (30.0, 30),
    "api.openalex.org": (10.0, 10),
    "api.rogue-scholar.org": (10.0, 10),
    "doi.org": (20.0, 20),
}


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Handles nested structures including:
    - Strings with ${VAR_NAME} or ${VAR_NAME:default} syntax
    - Nested dictionaries
    - Nested lists

    Args:
        value: Configuration value (string, dict, list, or primitive)

    Returns:
        Value with all environment variables expanded
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

        def replace_env_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


@dataclass
class Settings:
    """Runtime settings shared by HTTP clients and vocabulary installers."""

    email: str = "info@front-matter.io"
    timeout: float = 10.0
    registration_timeout: float = 30.0
    workers: int = 4
    data_dir: Path = field(default_factory=lambda: Path.home() / ".commonmeta")
    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    rate_limits: Dict[str, Tuple[float, int]] = field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS)
    )

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        self.data_dir = Path(self.data_dir).expanduser()
        if self.log_file is not None:
            self.log_file = Path(self.log_file).expanduser()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Build settings from a parsed YAML mapping, ignoring unknown keys."""
        rate_limits = dict(DEFAULT_RATE_LIMITS)
        for origin, limit in (data.get("rate_limits") or {}).items():
            rate, burst = limit
            rate_limits[origin] = (float(rate), int(burst))
        kwargs: Dict[str, Any] = {"rate_limits": rate_limits}
        for key in ("email", "log_level"):
            if data.get(key):
                kwargs[key] = str(data[key])
        for key in ("timeout", "registration_timeout"):
            if data.get(key) is not None:
                kwargs[key] = float(data[key])
        if data.get("workers") is not None:
            kwargs["workers"] = int(data["workers"])
        for key in ("data_dir", "log_file"):
            if data.get(key):
                kwargs[key] = Path(data[key])
        return cls(**kwargs)


def _find_config_file(base_path: Path) -> Optional[Path]:
    for filename in CONFIG_FILENAMES:
        candidate = base_path / filename
        if candidate.exists():
            return candidate
    candidate = Path.home() / ".commonmeta" / "config.yaml"
    if candidate.exists():
        return candidate
    return None


def load_settings(
    config_path: Optional[Path] = None, base_path: Optional[Path] = None
) -> Settings:
    """
    Load settings from YAML file with environment variable expansion.

    Args:
        config_path: Path to config file. Defaults to commonmeta.yaml in base_path.
        base_path: Directory to search. Defaults to current directory.

    Returns:
        Settings object; defaults when no config file exists.

    Raises:
        DecodeFailureError: If the config file is not valid YAML.
    """
    if config_path is None:
        config_path = _find_config_file(base_path or Path.cwd())
    if config_path is None or not config_path.exists():
        return Settings()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DecodeFailureError(f"Invalid config file {config_path}: {e}") from e
    return Settings.from_dict(expand_env_vars(data))


class _SettingsHolder:
    """Holds the process-wide settings."""

    _settings: Optional[Settings] = None

    @classmethod
    def get(cls) -> Settings:
        if cls._settings is None:
            cls._settings = load_settings()
        return cls._settings

    @classmethod
    def set(cls, settings: Settings) -> None:
        cls._settings = settings


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    return _SettingsHolder.get()


def set_settings(settings: Settings) -> None:
    _SettingsHolder.set(settings)
