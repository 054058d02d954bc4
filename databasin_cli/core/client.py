"""
Core HTTP client for the DataBasin API.

Turns one logical API call into a timed, authenticated and retried network
operation:
- Bearer token injection with a single refresh-and-retry on 401
- Bounded retry with a fixed delay on transient transport failures
- Wall-clock timeout that aborts the in-flight request (never retried)
- Token efficiency transforms (count, fields, limit) on GET results
"""

import asyncio
import json
import logging
import time
import urllib.parse
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

import httpx

from databasin_cli.core.auth import AuthTokenProvider
from databasin_cli.core.config import CliConfig, load_config
from databasin_cli.core.efficiency import TokenEfficiencyOptions, apply_token_efficiency
from databasin_cli.core.errors import APIError, CLIError, NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 1.0

# Resent within the retry budget. Timeouts and other transport errors are not.
RETRYABLE_TRANSPORT_ERRORS: tuple[type[Exception], ...] = (
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    httpx.ProxyError,
)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


@dataclass(frozen=True)
class RequestSpec:
    """One attempt's worth of request parameters. Never mutated."""

    method: str
    path: str
    timeout: float
    body: Any = None
    params: dict[str, Any] | None = None
    headers: dict[str, str] | None = None
    skip_auth: bool = False
    retries: int = 0
    retry_delay: float = DEFAULT_RETRY_DELAY
    is_retry_attempt: bool = False


@dataclass
class ResponseMetadata:
    """Diagnostics about the last physical response."""

    status: int
    status_text: str
    headers: dict[str, str] = field(default_factory=dict)
    duration: float = 0.0
    timestamp: str = ""
    attempts: int = 1
    body_is_string: bool = False


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class APIClient:
    """
    Low-level async HTTP client for the DataBasin API.

    Handles:
    - URL and header construction
    - Authentication via an owned AuthTokenProvider
    - Timeout, retry and error classification
    - Token efficiency on GET results

    Example:
        async with APIClient() as client:
            projects = await client.get("/api/my/projects", TokenEfficiencyOptions(count=True))

    """

    def __init__(
        self,
        config: CliConfig | None = None,
        token_provider: AuthTokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retries: int = 0,
    ):
        """
        Initialize the API client.

        Args:
            config: Resolved configuration (loaded from file/env if None)
            token_provider: Token provider (reads DATABASIN_TOKEN/.token files if None)
            transport: Custom httpx transport (tests, alternate stacks)
            retries: Network retry budget for requests that do not set one

        """
        self.config = config or load_config()
        self.token_provider = token_provider or AuthTokenProvider()
        self.base_url = self.config.api_url
        self.default_retries = max(0, retries)
        self.last_response: ResponseMetadata | None = None
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, url: str) -> None:
        self._base_url = url.rstrip("/")

    def clear_token(self) -> None:
        """Force the token to be reloaded on the next authenticated request."""
        self.token_provider.invalidate()

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            # The executor enforces its own wall-clock timeout per attempt.
            self._http = httpx.AsyncClient(transport=self._transport, timeout=None)
        return self._http

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # =========================================================================
    # Request construction
    # =========================================================================

    def build_url(self, path: str, params: dict[str, Any] | None = None) -> str:
        """Join base URL, path and percent-encoded query parameters."""
        url = path if path.startswith(("http://", "https://")) else f"{self.base_url}{path}"
        if params:
            filtered = [(k, _stringify(v)) for k, v in params.items() if v is not None]
            if filtered:
                query = urllib.parse.urlencode(filtered, quote_via=urllib.parse.quote)
                separator = "&" if "?" in url else "?"
                url = f"{url}{separator}{query}"
        return url

    def build_headers(self, spec: RequestSpec) -> dict[str, str]:
        """Default JSON headers, caller overrides, then the bearer token."""
        headers = {**DEFAULT_HEADERS, **(spec.headers or {})}
        if not spec.skip_auth:
            headers["Authorization"] = f"Bearer {self.token_provider.get_token()}"
        return headers

    # =========================================================================
    # Execution
    # =========================================================================

    async def _send(self, spec: RequestSpec, url: str, headers: dict[str, str]) -> httpx.Response:
        content = json.dumps(spec.body).encode("utf-8") if spec.body is not None else None
        return await self._client().request(spec.method, url, content=content, headers=headers)

    async def execute(self, spec: RequestSpec) -> Any:
        """
        Run one logical request to completion.

        Args:
            spec: Request parameters

        Returns:
            Parsed JSON body

        Raises:
            AuthError: No token available (never retried)
            RequestTimeoutError: Wall-clock timeout elapsed (never retried)
            NetworkError: Transport failure after the retry budget is spent
            APIError: Non-2xx response (a first 401 is retried once after
                invalidating the token)

        """
        url = self.build_url(spec.path, spec.params)
        current = spec
        attempts = 0
        network_retries = 0

        while True:
            headers = self.build_headers(current)
            attempts += 1
            started = time.monotonic()
            logger.debug("%s %s (attempt %d)", current.method, url, attempts)

            try:
                response = await asyncio.wait_for(self._send(current, url, headers), timeout=current.timeout)
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                logger.debug("%s %s timed out after %.3fs", current.method, url, current.timeout)
                raise RequestTimeoutError(current.timeout, url) from e
            except RETRYABLE_TRANSPORT_ERRORS as e:
                message = str(e) or type(e).__name__
                if network_retries < current.retries:
                    network_retries += 1
                    logger.warning(
                        "Network error on %s %s: %s. Retrying in %gs (%d/%d)",
                        current.method,
                        url,
                        message,
                        current.retry_delay,
                        network_retries,
                        current.retries,
                    )
                    await asyncio.sleep(current.retry_delay)
                    continue
                raise NetworkError(message, url=url, attempts=attempts) from e
            except httpx.TransportError as e:
                raise NetworkError(str(e) or type(e).__name__, url=url, attempts=attempts) from e

            duration = time.monotonic() - started
            self.last_response = ResponseMetadata(
                status=response.status_code,
                status_text=response.reason_phrase,
                headers=dict(response.headers),
                duration=duration,
                timestamp=datetime.now(tz=timezone.utc).isoformat(),
                attempts=attempts,
            )
            logger.debug(
                "%s %s -> %d %s (%.0fms)",
                current.method,
                url,
                response.status_code,
                response.reason_phrase,
                duration * 1000,
            )

            if response.status_code == 401 and not current.skip_auth and not current.is_retry_attempt:
                logger.debug("401 from %s, refreshing token and retrying once", current.path)
                self.token_provider.invalidate()
                current = replace(current, is_retry_attempt=True)
                continue

            if not response.is_success:
                raise self._http_error(response, current.path)

            return self._parse_body(response, current.path)

    def _http_error(self, response: httpx.Response, endpoint: str) -> APIError:
        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = None

        message = response.reason_phrase or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            # Handle {"message": ...}, {"error": "..."} and {"error": {"message": ...}}
            error_field = body.get("error")
            if isinstance(body.get("message"), str) and body["message"]:
                message = body["message"]
            elif isinstance(error_field, str) and error_field:
                message = error_field
            elif isinstance(error_field, dict) and error_field.get("message"):
                message = str(error_field["message"])

        return APIError(
            message,
            status=response.status_code,
            status_text=response.reason_phrase,
            endpoint=endpoint,
            body=body,
        )

    def _parse_body(self, response: httpx.Response, endpoint: str) -> Any:
        if not response.content.strip():
            return {"success": True}

        try:
            data = response.json()
        except ValueError as e:
            raise APIError(
                f"Invalid JSON response: {e}",
                status=response.status_code,
                status_text=response.reason_phrase,
                endpoint=endpoint,
            ) from e

        if isinstance(data, str):
            # Downstream code assumes objects/arrays; surface the anomaly.
            if self.last_response is not None:
                self.last_response.body_is_string = True
            logger.warning(
                "Response from %s is a bare JSON string (content-type %s): %.100s",
                endpoint,
                response.headers.get("content-type"),
                data,
            )
        return data

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        skip_auth: bool = False,
        retries: int | None = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> Any:
        """Build a RequestSpec from config defaults and execute it."""
        spec = RequestSpec(
            method=method.upper(),
            path=path,
            timeout=self.config.timeout if timeout is None else timeout,
            body=body,
            params=params,
            headers=headers,
            skip_auth=skip_auth,
            retries=self.default_retries if retries is None else max(0, retries),
            retry_delay=retry_delay,
        )
        return await self.execute(spec)

    async def get(
        self,
        path: str,
        efficiency: TokenEfficiencyOptions | None = None,
        **options: Any,
    ) -> Any:
        """Make a GET request and apply token efficiency to the result."""
        data = await self.request("GET", path, **options)
        return apply_token_efficiency(data, efficiency)

    async def post(self, path: str, body: Any = None, **options: Any) -> Any:
        """Make a POST request."""
        return await self.request("POST", path, body, **options)

    async def put(self, path: str, body: Any = None, **options: Any) -> Any:
        """Make a PUT request."""
        return await self.request("PUT", path, body, **options)

    async def delete(self, path: str, body: Any = None, **options: Any) -> Any:
        """Make a DELETE request (a body is allowed, if unusual)."""
        return await self.request("DELETE", path, body, **options)

    async def ping(self) -> bool:
        """Check that the API is reachable with the current credentials."""
        try:
            await self.get("/api/ping")
        except CLIError as e:
            logger.debug("Ping failed: %s", e.message)
            return False
        return True
