"""
Authentication: token sources and the in-memory token provider.

Tokens are looked up in priority order:
1. DATABASIN_TOKEN environment variable
2. Project token file (./.token)
3. User token file (~/.databasin/.token)
"""

import base64
import json
import logging
import os
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from databasin_cli.core.config import ENV_TOKEN, get_config_dir
from databasin_cli.core.errors import AuthError, ConfigError

logger = logging.getLogger(__name__)

TOKEN_FILENAME = ".token"


def get_default_token_path() -> Path:
    """User-wide token location."""
    return get_config_dir() / TOKEN_FILENAME


def get_token_paths() -> list[Path]:
    """Token files checked, highest priority first."""
    return [Path.cwd() / TOKEN_FILENAME, get_default_token_path()]


def _token_from_env() -> str | None:
    token = os.environ.get(ENV_TOKEN, "").strip()
    return token or None


def _token_from_files() -> str | None:
    for path in get_token_paths():
        if not path.exists():
            continue
        try:
            token = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigError(f"Failed to read token file: {e}", str(path)) from e
        if token:
            return token
    return None


def load_token() -> str:
    """
    Load the bearer token from the first source that has one.

    Raises:
        AuthError: If no source yields a token

    """
    token = _token_from_env() or _token_from_files()
    if token:
        return token

    raise AuthError(
        "No authentication token found",
        "Token must be provided via:\n"
        f"  1. Environment variable: {ENV_TOKEN}\n"
        f"  2. Project token file: {Path.cwd() / TOKEN_FILENAME}\n"
        f"  3. User token file: {get_default_token_path()}\n\n"
        "Run 'databasin auth login' to authenticate.",
    )


def has_token() -> bool:
    """Check whether any source holds a token (without reading file contents)."""
    return _token_from_env() is not None or any(p.exists() for p in get_token_paths())


def get_token_source() -> str | None:
    """Describe where the active token comes from, or None."""
    if _token_from_env():
        return f"environment variable ({ENV_TOKEN})"
    for path in get_token_paths():
        if path.exists():
            return str(path)
    return None


def save_token(token: str, path: Path | None = None) -> Path:
    """Write a token file readable only by the owner."""
    token_path = path or get_default_token_path()
    try:
        token_path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        token_path.write_text(token.strip() + "\n", encoding="utf-8")
        token_path.chmod(0o600)
    except OSError as e:
        raise ConfigError(f"Failed to save token file: {e}", str(token_path)) from e
    return token_path


def delete_token(path: Path | None = None) -> bool:
    """Remove a token file. Returns False if there was nothing to delete."""
    token_path = path or get_default_token_path()
    try:
        token_path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise ConfigError(f"Failed to delete token file: {e}", str(token_path)) from e
    return True


# =============================================================================
# JWT inspection (no signature verification, display only)
# =============================================================================


def parse_jwt(token: str) -> dict[str, Any]:
    """Decode the payload section of a JWT."""
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise AuthError(
            "Invalid JWT token: must have 3 parts (header.payload.signature)",
            "Ensure you have a valid JWT token from DataBasin",
        )

    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        decoded = base64.urlsafe_b64decode(payload.encode("ascii"))
        claims = json.loads(decoded)
    except (ValueError, UnicodeError) as e:
        raise AuthError(f"Invalid JWT token: {e}", "Ensure you have a valid JWT token from DataBasin") from e

    if not isinstance(claims, dict):
        raise AuthError("Invalid JWT token: payload is not an object")
    return claims


def token_expiration(token: str) -> datetime | None:
    """Expiry time from the exp claim, or None if absent or unparseable."""
    try:
        exp = parse_jwt(token).get("exp")
    except AuthError:
        return None
    if not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


def token_subject(token: str) -> str | None:
    """The sub claim, if any."""
    try:
        sub = parse_jwt(token).get("sub")
    except AuthError:
        return None
    return str(sub) if sub is not None else None


def is_token_expired(token: str) -> bool:
    """Tokens without exp never expire; unparseable tokens count as expired."""
    try:
        exp = parse_jwt(token).get("exp")
    except AuthError:
        return True
    if not isinstance(exp, (int, float)):
        return False
    return datetime.now(tz=timezone.utc).timestamp() >= exp


def format_token_expiration(token: str, now: datetime | None = None) -> str:
    """Human-readable time left, e.g. '3 days', '5h 30m', '45 minutes'."""
    expiration = token_expiration(token)
    if expiration is None:
        return "No expiration"

    remaining = (expiration - (now or datetime.now(tz=timezone.utc))).total_seconds()
    if remaining <= 0:
        return "Expired"

    hours = int(remaining // 3600)
    minutes = int((remaining % 3600) // 60)
    if hours > 24:
        days = hours // 24
        return f"{days} day{'s' if days != 1 else ''}"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


# =============================================================================
# Token provider
# =============================================================================


class AuthTokenProvider:
    """
    Lazily loaded, in-memory cached bearer token.

    The provider only knows "ask the source, cache the answer, allow a clear".
    Source priority is the loader's business. Invalidation is a plain
    overwrite, so concurrent callers at worst trigger one extra load.
    """

    def __init__(self, loader: Callable[[], str] = load_token):
        self._loader = loader
        self._token: str | None = None

    @property
    def has_cached_token(self) -> bool:
        """Whether a token is currently held in memory."""
        return self._token is not None

    def get_token(self) -> str:
        """Return the cached token, loading it on first use."""
        if self._token is None:
            self._token = self._loader()
            logger.debug("Loaded authentication token")
        return self._token

    def invalidate(self) -> None:
        """Forget the cached token so the next get_token() reloads it."""
        self._token = None
