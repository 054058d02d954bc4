"""
Configuration cascade for the DataBasin CLI.

Priority (lowest to highest): defaults, config file, environment variables,
explicit overrides (CLI flags).

The config file keeps the camelCase layout shared with other DataBasin tools:

    {
      "apiUrl": "https://api.databasin.example",
      "defaultProject": "N1r8Do",
      "output": {"format": "table"},
      "tokenEfficiency": {"defaultLimit": 100},
      "timeout": 30000,
      "debug": false,
      "cacheTtl": 86400
    }

`timeout` in the file is in milliseconds; everywhere else it is seconds.
"""

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from databasin_cli.core.errors import ConfigError

DEFAULT_API_URL = "http://localhost:9000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_LIMIT = 100
DEFAULT_CACHE_TTL = 24 * 60 * 60

OUTPUT_FORMATS = ("table", "json", "csv")

ENV_API_URL = "DATABASIN_API_URL"
ENV_TOKEN = "DATABASIN_TOKEN"
ENV_DEFAULT_PROJECT = "DATABASIN_DEFAULT_PROJECT"
ENV_DEBUG = "DATABASIN_DEBUG"
ENV_CONFIG_PATH = "DATABASIN_CONFIG_PATH"
ENV_TIMEOUT = "DATABASIN_TIMEOUT"
ENV_OUTPUT_FORMAT = "DATABASIN_OUTPUT_FORMAT"

# Flat camelCase keys in config.json
_FILE_KEY_ALIASES = {
    "apiUrl": "api_url",
    "defaultProject": "default_project",
    "outputFormat": "output_format",
    "defaultLimit": "default_limit",
    "cacheTtl": "cache_ttl",
}

# Nested sections in config.json: (section, key) -> field
_FILE_NESTED_KEYS = {
    ("output", "format"): "output_format",
    ("tokenEfficiency", "defaultLimit"): "default_limit",
}

_MS_PER_SECOND = 1000.0

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass
class CliConfig:
    """Resolved CLI configuration."""

    api_url: str = DEFAULT_API_URL
    default_project: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False
    output_format: str = "table"
    default_limit: int = DEFAULT_LIMIT
    cache_ttl: float = DEFAULT_CACHE_TTL

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        return asdict(self)

    def to_file_dict(self) -> dict[str, Any]:
        """The config.json representation (camelCase, timeout in ms)."""
        data: dict[str, Any] = {
            "apiUrl": self.api_url,
            "output": {"format": self.output_format},
            "tokenEfficiency": {"defaultLimit": self.default_limit},
            "timeout": int(round(self.timeout * _MS_PER_SECOND)),
            "debug": self.debug,
            "cacheTtl": self.cache_ttl,
        }
        if self.default_project:
            data["defaultProject"] = self.default_project
        return data


def get_config_path() -> Path:
    """Config file location (DATABASIN_CONFIG_PATH overrides the default)."""
    override = os.environ.get(ENV_CONFIG_PATH)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".databasin" / "config.json"


def get_config_dir() -> Path:
    """Directory holding config, tokens and cache."""
    if os.environ.get(ENV_CONFIG_PATH):
        return get_config_path().parent
    return Path.home() / ".databasin"


def ensure_config_dir() -> Path:
    """Create the config directory (mode 0700) if it does not exist."""
    config_dir = get_config_dir()
    try:
        config_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
    except OSError as e:
        raise ConfigError(f"Failed to create config directory: {e}", str(config_dir)) from e
    return config_dir


def _file_timeout(value: Any, path: Path) -> float:
    try:
        return float(value) / _MS_PER_SECOND
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timeout in config file: {value!r} (milliseconds expected)", str(path)) from e


def load_config_file(path: Path | None = None) -> dict[str, Any]:
    """
    Read the config file into CliConfig field values.

    Returns {} when the file is absent or empty. Unknown keys are ignored,
    and the file's millisecond timeout is converted to seconds.

    Raises:
        ConfigError: If the file cannot be read or is not a JSON object

    """
    config_path = path or get_config_path()
    if not config_path.exists():
        return {}

    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}", str(config_path)) from e

    if not content.strip():
        return {}

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse config file: {e}", str(config_path)) from e

    if not isinstance(parsed, dict):
        raise ConfigError("Config file must contain a JSON object", str(config_path))

    known = {f.name for f in fields(CliConfig)}
    result: dict[str, Any] = {}
    for key, value in parsed.items():
        if isinstance(value, dict):
            for (section, sub_key), name in _FILE_NESTED_KEYS.items():
                if key == section and sub_key in value:
                    result[name] = value[sub_key]
            continue
        name = _FILE_KEY_ALIASES.get(key, key)
        if name == "timeout":
            result[name] = _file_timeout(value, config_path)
        elif name in known:
            result[name] = value
    return result


def load_config_from_env() -> dict[str, Any]:
    """Collect configuration values from DATABASIN_* environment variables."""
    result: dict[str, Any] = {}

    if os.environ.get(ENV_API_URL):
        result["api_url"] = os.environ[ENV_API_URL]
    if os.environ.get(ENV_DEFAULT_PROJECT):
        result["default_project"] = os.environ[ENV_DEFAULT_PROJECT]
    if os.environ.get(ENV_DEBUG):
        result["debug"] = os.environ[ENV_DEBUG].strip().lower() in _TRUTHY
    if os.environ.get(ENV_OUTPUT_FORMAT):
        result["output_format"] = os.environ[ENV_OUTPUT_FORMAT]

    raw_timeout = os.environ.get(ENV_TIMEOUT)
    if raw_timeout:
        try:
            result["timeout"] = float(raw_timeout)
        except ValueError as e:
            raise ConfigError(f"Invalid {ENV_TIMEOUT} value: {raw_timeout!r}") from e

    return result


def coerce_config_value(name: str, raw: str) -> Any:
    """
    Convert a command-line string to the type of a CliConfig field.

    Raises:
        ConfigError: Unknown field or a value of the wrong shape

    """
    types = {f.name: f.type for f in fields(CliConfig)}
    if name not in types:
        raise ConfigError(f"Unknown configuration option: {name}", f"Valid options: {', '.join(types)}")

    if name in ("timeout", "cache_ttl"):
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from e
    if name == "default_limit":
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if name == "debug":
        lowered = raw.strip().lower()
        if lowered not in _TRUTHY | _FALSY:
            raise ConfigError(f"debug must be true or false, got {raw!r}")
        return lowered in _TRUTHY
    if name == "default_project" and raw == "":
        return None
    return raw


def validate_config(config: CliConfig) -> None:
    """Raise ConfigError for values the client cannot work with."""
    if not config.api_url or not config.api_url.startswith(("http://", "https://")):
        raise ConfigError(f"Invalid API URL: {config.api_url!r}")
    if config.timeout <= 0:
        raise ConfigError(f"Timeout must be positive, got {config.timeout}")
    if config.output_format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"Invalid output format {config.output_format!r} (expected one of: {', '.join(OUTPUT_FORMATS)})"
        )
    if config.default_limit < 1:
        raise ConfigError(f"Default limit must be at least 1, got {config.default_limit}")


def load_config(**overrides: Any) -> CliConfig:
    """
    Build the effective configuration.

    Args:
        **overrides: Explicit values (typically CLI flags). None is ignored.

    Returns:
        Validated CliConfig

    Raises:
        ConfigError: On malformed file, environment or override values

    """
    values: dict[str, Any] = {}
    values.update(load_config_file())
    values.update(load_config_from_env())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = CliConfig(**values)
    except TypeError as e:
        raise ConfigError(f"Unknown configuration option: {e}") from e

    config.api_url = config.api_url.rstrip("/")
    config.timeout = float(config.timeout)
    validate_config(config)
    return config


def save_config(config: CliConfig) -> Path:
    """Persist configuration to the config file with owner-only permissions."""
    validate_config(config)
    ensure_config_dir()
    path = get_config_path()
    try:
        path.write_text(json.dumps(config.to_file_dict(), indent=2) + "\n", encoding="utf-8")
        path.chmod(0o600)
    except OSError as e:
        raise ConfigError(f"Failed to save config file: {e}", str(path)) from e
    return path


def update_config_file(name: str, raw: str) -> CliConfig:
    """
    Set one option in the config file, leaving env and flag values out of it.

    Args:
        name: CliConfig field name (e.g. "default_project")
        raw: Value as typed on the command line

    Returns:
        The configuration as now stored in the file

    """
    stored = CliConfig(**load_config_file())
    setattr(stored, name, coerce_config_value(name, raw))
    stored.api_url = stored.api_url.rstrip("/")
    save_config(stored)
    return stored
