"""Tests for the configuration cascade."""

import json
from pathlib import Path

import pytest

from databasin_cli.core.config import (
    DEFAULT_API_URL,
    CliConfig,
    get_config_dir,
    get_config_path,
    load_config,
    load_config_file,
    save_config,
    update_config_file,
)
from databasin_cli.core.errors import ConfigError


def write_config(data, home: Path) -> Path:
    path = home / ".databasin" / "config.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.api_url == DEFAULT_API_URL
        assert config.timeout == 30.0
        assert config.debug is False
        assert config.default_project is None

    def test_file_overrides_defaults(self, isolated_env: Path) -> None:
        write_config({"apiUrl": "https://file.test/", "defaultProject": "N1r8Do", "timeout": 10000}, isolated_env)
        config = load_config()
        assert config.api_url == "https://file.test"
        assert config.default_project == "N1r8Do"
        assert config.timeout == 10.0

    def test_env_overrides_file(self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write_config({"apiUrl": "https://file.test"}, isolated_env)
        monkeypatch.setenv("DATABASIN_API_URL", "https://env.test")
        monkeypatch.setenv("DATABASIN_TIMEOUT", "12.5")
        monkeypatch.setenv("DATABASIN_DEBUG", "true")
        config = load_config()
        assert config.api_url == "https://env.test"
        assert config.timeout == 12.5
        assert config.debug is True

    def test_overrides_win_and_none_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASIN_API_URL", "https://env.test")
        config = load_config(api_url="https://flag.test", timeout=None)
        assert config.api_url == "https://flag.test"
        assert config.timeout == 30.0

    def test_unknown_file_keys_are_ignored(self, isolated_env: Path) -> None:
        write_config({"apiUrl": "https://file.test", "somethingElse": 1}, isolated_env)
        assert load_config().api_url == "https://file.test"

    def test_config_path_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "custom" / "settings.json"
        path.parent.mkdir()
        path.write_text(json.dumps({"defaultProject": "Custom1"}), encoding="utf-8")
        monkeypatch.setenv("DATABASIN_CONFIG_PATH", str(path))
        assert get_config_path() == path
        assert get_config_dir() == path.parent
        assert load_config().default_project == "Custom1"


class TestInvalidConfig:
    def test_malformed_json(self, isolated_env: Path) -> None:
        write_config("{broken", isolated_env)
        with pytest.raises(ConfigError, match="parse"):
            load_config()

    def test_non_object(self, isolated_env: Path) -> None:
        write_config([1, 2], isolated_env)
        with pytest.raises(ConfigError):
            load_config_file()

    def test_empty_file(self, isolated_env: Path) -> None:
        write_config("   ", isolated_env)
        assert load_config_file() == {}

    def test_bad_timeout_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASIN_TIMEOUT", "soon")
        with pytest.raises(ConfigError, match="DATABASIN_TIMEOUT"):
            load_config()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"api_url": "ftp://nope"},
            {"timeout": 0},
            {"output_format": "xml"},
            {"default_limit": 0},
        ],
    )
    def test_validation(self, overrides: dict) -> None:
        with pytest.raises(ConfigError):
            load_config(**overrides)


class TestSaveConfig:
    def test_round_trip(self) -> None:
        path = save_config(CliConfig(api_url="https://saved.test", default_project="abc"))
        assert path.exists()
        config = load_config()
        assert config.api_url == "https://saved.test"
        assert config.default_project == "abc"

    def test_file_uses_camel_case_and_milliseconds(self, isolated_env: Path) -> None:
        path = save_config(CliConfig(api_url="https://saved.test", timeout=12.5, default_limit=20))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["apiUrl"] == "https://saved.test"
        assert data["timeout"] == 12500
        assert data["output"] == {"format": "table"}
        assert data["tokenEfficiency"] == {"defaultLimit": 20}
        assert "defaultProject" not in data


class TestFileFormat:
    def test_timeout_is_milliseconds(self, isolated_env: Path) -> None:
        write_config({"apiUrl": "https://x.test", "timeout": 30000}, isolated_env)
        assert load_config().timeout == 30.0

    def test_env_timeout_is_seconds(self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        write_config({"timeout": 30000}, isolated_env)
        monkeypatch.setenv("DATABASIN_TIMEOUT", "45")
        assert load_config().timeout == 45.0

    def test_invalid_timeout(self, isolated_env: Path) -> None:
        write_config({"timeout": "soon"}, isolated_env)
        with pytest.raises(ConfigError, match="milliseconds"):
            load_config_file()

    def test_nested_sections(self, isolated_env: Path) -> None:
        write_config(
            {
                "output": {"format": "csv", "colors": True},
                "tokenEfficiency": {"defaultLimit": 25, "warnThreshold": 50000},
                "debug": True,
            },
            isolated_env,
        )
        config = load_config()
        assert config.output_format == "csv"
        assert config.default_limit == 25
        assert config.debug is True


class TestUpdateConfigFile:
    def test_sets_one_option(self, isolated_env: Path) -> None:
        write_config({"apiUrl": "https://file.test", "timeout": 10000}, isolated_env)
        stored = update_config_file("default_project", "N1r8Do")
        assert stored.default_project == "N1r8Do"
        config = load_config()
        assert config.default_project == "N1r8Do"
        assert config.api_url == "https://file.test"
        assert config.timeout == 10.0

    def test_env_values_stay_out_of_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASIN_API_URL", "https://env.test")
        update_config_file("timeout", "15")
        data = json.loads(get_config_path().read_text(encoding="utf-8"))
        assert data["apiUrl"] == DEFAULT_API_URL
        assert data["timeout"] == 15000

    @pytest.mark.parametrize(
        "key,value,expected",
        [
            ("debug", "yes", True),
            ("default_limit", "5", 5),
            ("cache_ttl", "60", 60.0),
            ("output_format", "json", "json"),
        ],
    )
    def test_coercion(self, key: str, value: str, expected) -> None:
        assert getattr(update_config_file(key, value), key) == expected

    @pytest.mark.parametrize(
        "key,value",
        [
            ("nope", "1"),
            ("timeout", "soon"),
            ("default_limit", "many"),
            ("debug", "maybe"),
            ("output_format", "xml"),
        ],
    )
    def test_rejects_bad_values(self, key: str, value: str) -> None:
        with pytest.raises(ConfigError):
            update_config_file(key, value)
        assert not get_config_path().exists()
