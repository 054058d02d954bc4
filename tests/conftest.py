"""Pytest configuration - loads .env for integration tests, shared fixtures."""

import base64
import json
import logging
from collections.abc import Callable
from pathlib import Path

import pytest
from dotenv import load_dotenv

from databasin_cli.core.auth import AuthTokenProvider
from databasin_cli.core.cache import TTLCache
from databasin_cli.core.client import APIClient
from databasin_cli.core.config import CliConfig
from databasin_cli.core.logging import LOGGER_NAME

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

BASE_URL = "https://api.databasin.test"


class CountingLoader:
    """Token loader that hands out a fixed sequence of tokens and counts calls."""

    def __init__(self, *tokens: str):
        self.tokens = list(tokens) or ["token-1"]
        self.calls = 0

    def __call__(self) -> str:
        token = self.tokens[min(self.calls, len(self.tokens) - 1)]
        self.calls += 1
        return token


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_jwt(claims: dict) -> str:
    """Unsigned JWT with the given payload."""

    def segment(data: dict) -> str:
        raw = base64.urlsafe_b64encode(json.dumps(data).encode()).decode()
        return raw.rstrip("=")

    return f"{segment({'alg': 'none', 'typ': 'JWT'})}.{segment(claims)}.signature"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from the real ~/.databasin and DATABASIN_* settings."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in (
        "DATABASIN_API_URL",
        "DATABASIN_TOKEN",
        "DATABASIN_DEFAULT_PROJECT",
        "DATABASIN_DEBUG",
        "DATABASIN_CONFIG_PATH",
        "DATABASIN_TIMEOUT",
        "DATABASIN_OUTPUT_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return home


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def config(base_url: str) -> CliConfig:
    return CliConfig(api_url=base_url, timeout=5.0)


@pytest.fixture
def token_loader() -> CountingLoader:
    return CountingLoader("token-1", "token-2")


@pytest.fixture
def token_provider(token_loader: CountingLoader) -> AuthTokenProvider:
    return AuthTokenProvider(loader=token_loader)


@pytest.fixture
def api_client(config: CliConfig, token_provider: AuthTokenProvider) -> APIClient:
    return APIClient(config, token_provider)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def cache(cache_dir: Path, clock: FakeClock) -> TTLCache:
    return TTLCache(default_ttl=60, cache_dir=cache_dir, clock=clock)


@pytest.fixture
def jwt_factory() -> Callable[[dict], str]:
    return make_jwt


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo setup_logging() so later tests still see records via caplog."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
