"""Tests for the async request executor using mocked HTTP responses."""

import asyncio
import json
import logging
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
import respx

from databasin_cli.core.auth import AuthTokenProvider
from databasin_cli.core.client import APIClient, RequestSpec
from databasin_cli.core.efficiency import TokenEfficiencyOptions
from databasin_cli.core.errors import APIError, AuthError, NetworkError, RequestTimeoutError

BASE_URL = "https://api.databasin.test"


class HangingTransport(httpx.AsyncBaseTransport):
    """Transport whose requests never complete."""

    def __init__(self) -> None:
        self.calls = 0

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        await asyncio.sleep(30)
        return httpx.Response(200, json={})


# =============================================================================
# URL and header construction
# =============================================================================


class TestRequestConstruction:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout,expected", [(None, 5.0), (0, 0), (2.5, 2.5)])
    async def test_request_timeout(self, api_client: APIClient, timeout, expected) -> None:
        api_client.execute = AsyncMock(return_value={})
        await api_client.request("GET", "/api/ping", timeout=timeout)
        spec = api_client.execute.await_args.args[0]
        assert spec.timeout == expected

    def test_build_url_joins_base_and_path(self, api_client: APIClient) -> None:
        assert api_client.build_url("/api/my/projects") == f"{BASE_URL}/api/my/projects"

    def test_build_url_passes_absolute_urls_through(self, api_client: APIClient) -> None:
        assert api_client.build_url("https://other.test/x") == "https://other.test/x"

    def test_build_url_encodes_params(self, api_client: APIClient) -> None:
        url = api_client.build_url(
            "/api/pipeline",
            {"internalID": "N1r8Do", "status": None, "enabled": True, "name": "a b&c"},
        )
        assert url == f"{BASE_URL}/api/pipeline?internalID=N1r8Do&enabled=true&name=a%20b%26c"

    def test_build_url_all_params_none(self, api_client: APIClient) -> None:
        assert api_client.build_url("/api/x", {"a": None}) == f"{BASE_URL}/api/x"

    def test_base_url_strips_trailing_slash(self, api_client: APIClient) -> None:
        api_client.base_url = "https://new.test/"
        assert api_client.build_url("/api/ping") == "https://new.test/api/ping"

    def test_headers_include_bearer_token(self, api_client: APIClient) -> None:
        headers = api_client.build_headers(RequestSpec(method="GET", path="/", timeout=1))
        assert headers["Authorization"] == "Bearer token-1"
        assert headers["Content-Type"] == "application/json"
        assert headers["Accept"] == "application/json"

    def test_skip_auth_omits_authorization(self, api_client: APIClient, token_loader) -> None:
        headers = api_client.build_headers(RequestSpec(method="GET", path="/", timeout=1, skip_auth=True))
        assert "Authorization" not in headers
        assert token_loader.calls == 0

    def test_caller_headers_override_defaults(self, api_client: APIClient) -> None:
        spec = RequestSpec(method="GET", path="/", timeout=1, headers={"Accept": "text/csv"})
        assert api_client.build_headers(spec)["Accept"] == "text/csv"


# =============================================================================
# Response handling
# =============================================================================


class TestResponses:
    @pytest.mark.asyncio
    @respx.mock
    async def test_get_returns_json(self, api_client: APIClient) -> None:
        route = respx.get(f"{BASE_URL}/api/my/projects").mock(
            return_value=httpx.Response(200, json=[{"id": 1}, {"id": 2}])
        )
        async with api_client:
            data = await api_client.get("/api/my/projects")

        assert data == [{"id": 1}, {"id": 2}]
        assert route.calls.last.request.headers["Authorization"] == "Bearer token-1"
        assert api_client.last_response is not None
        assert api_client.last_response.status == 200
        assert api_client.last_response.attempts == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_applies_efficiency(self, api_client: APIClient) -> None:
        respx.get(f"{BASE_URL}/api/connector").mock(return_value=httpx.Response(200, json=[{}, {}, {}]))
        async with api_client:
            data = await api_client.get("/api/connector", TokenEfficiencyOptions(count=True))
        assert data == {"count": 3}

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_sends_json_body(self, api_client: APIClient) -> None:
        route = respx.post(f"{BASE_URL}/api/pipeline/run").mock(
            return_value=httpx.Response(200, json={"status": "running"})
        )
        async with api_client:
            await api_client.post("/api/pipeline/run", {"pipelineID": 7})

        request = route.calls.last.request
        assert json.loads(request.content) == {"pipelineID": 7}

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_body_is_success(self, api_client: APIClient) -> None:
        respx.delete(f"{BASE_URL}/api/connector/9").mock(return_value=httpx.Response(204))
        async with api_client:
            assert await api_client.delete("/api/connector/9") == {"success": True}

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json_raises(self, api_client: APIClient) -> None:
        respx.get(f"{BASE_URL}/api/x").mock(return_value=httpx.Response(200, text="<html>oops</html>"))
        async with api_client:
            with pytest.raises(APIError, match="Invalid JSON"):
                await api_client.get("/api/x")

    @pytest.mark.asyncio
    @respx.mock
    async def test_bare_string_body_is_flagged(
        self, api_client: APIClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        respx.get(f"{BASE_URL}/api/x").mock(return_value=httpx.Response(200, json="just a string"))
        with caplog.at_level(logging.WARNING, logger="databasin_cli"):
            async with api_client:
                data = await api_client.get("/api/x")

        assert data == "just a string"
        assert api_client.last_response.body_is_string is True
        assert "bare JSON string" in caplog.text

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_message_from_body(self, api_client: APIClient) -> None:
        respx.get(f"{BASE_URL}/api/project/abc").mock(
            return_value=httpx.Response(404, json={"message": "No such project"})
        )
        async with api_client:
            with pytest.raises(APIError) as exc_info:
                await api_client.get("/api/project/abc")

        error = exc_info.value
        assert error.message == "No such project"
        assert error.status == 404
        assert error.endpoint == "/api/project/abc"
        assert "projects list" in error.suggestion

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_message_from_nested_error(self, api_client: APIClient) -> None:
        respx.post(f"{BASE_URL}/api/pipeline").mock(
            return_value=httpx.Response(400, json={"error": {"message": "bad config"}})
        )
        async with api_client:
            with pytest.raises(APIError) as exc_info:
                await api_client.post("/api/pipeline", {})

        assert exc_info.value.message == "bad config"
        assert "pipeline configuration" in exc_info.value.suggestion

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_without_json_uses_reason(self, api_client: APIClient) -> None:
        respx.get(f"{BASE_URL}/api/x").mock(return_value=httpx.Response(503, text="down"))
        async with api_client:
            with pytest.raises(APIError) as exc_info:
                await api_client.get("/api/x")

        assert exc_info.value.message == "Service Unavailable"
        assert exc_info.value.to_dict()["status"] == 503


# =============================================================================
# Authentication
# =============================================================================


class TestAuthRecovery:
    @pytest.mark.asyncio
    @respx.mock
    async def test_single_401_refreshes_and_retries(self, config, token_loader) -> None:
        provider = AuthTokenProvider(loader=token_loader)
        provider.invalidate = Mock(wraps=provider.invalidate)
        route = respx.get(f"{BASE_URL}/api/my/account").mock(
            side_effect=[httpx.Response(401, json={"error": "expired"}), httpx.Response(200, json={"id": 1})]
        )

        async with APIClient(config, provider) as client:
            data = await client.get("/api/my/account")

        assert data == {"id": 1}
        assert route.call_count == 2
        assert provider.invalidate.call_count == 1
        assert token_loader.calls == 2
        assert route.calls[0].request.headers["Authorization"] == "Bearer token-1"
        assert route.calls[1].request.headers["Authorization"] == "Bearer token-2"

    @pytest.mark.asyncio
    @respx.mock
    async def test_second_401_fails(self, config, token_loader) -> None:
        provider = AuthTokenProvider(loader=token_loader)
        provider.invalidate = Mock(wraps=provider.invalidate)
        route = respx.get(f"{BASE_URL}/api/my/account").mock(return_value=httpx.Response(401))

        async with APIClient(config, provider) as client:
            with pytest.raises(APIError) as exc_info:
                await client.get("/api/my/account")

        assert exc_info.value.status == 401
        assert route.call_count == 2
        assert provider.invalidate.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_skip_auth_401_is_not_retried(self, api_client: APIClient, token_loader) -> None:
        route = respx.get(f"{BASE_URL}/api/public").mock(return_value=httpx.Response(401))
        async with api_client:
            with pytest.raises(APIError):
                await api_client.get("/api/public", skip_auth=True)

        assert route.call_count == 1
        assert token_loader.calls == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_token_makes_no_request(self, config) -> None:
        def no_token() -> str:
            raise AuthError("No authentication token found")

        route = respx.get(f"{BASE_URL}/api/my/projects").mock(return_value=httpx.Response(200, json=[]))
        async with APIClient(config, AuthTokenProvider(loader=no_token)) as client:
            with pytest.raises(AuthError):
                await client.get("/api/my/projects")

        assert route.call_count == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_refresh_does_not_consume_network_budget(self, api_client: APIClient) -> None:
        route = respx.get(f"{BASE_URL}/api/x").mock(
            side_effect=[
                httpx.Response(401),
                httpx.ConnectError("connection refused"),
                httpx.Response(200, json={"ok": True}),
            ]
        )
        async with api_client:
            data = await api_client.get("/api/x", retries=1, retry_delay=0)

        assert data == {"ok": True}
        assert route.call_count == 3

    def test_clear_token_forces_reload(self, api_client: APIClient, token_loader) -> None:
        api_client.token_provider.get_token()
        api_client.clear_token()
        assert not api_client.token_provider.has_cached_token
        assert api_client.token_provider.get_token() == "token-2"
        assert token_loader.calls == 2


# =============================================================================
# Network retry and timeout
# =============================================================================


class TestRetryAndTimeout:
    @pytest.mark.asyncio
    @respx.mock
    async def test_network_errors_retry_up_to_budget(self, api_client: APIClient) -> None:
        route = respx.get(f"{BASE_URL}/api/x").mock(side_effect=httpx.ConnectError("connection refused"))
        async with api_client:
            with pytest.raises(NetworkError) as exc_info:
                await api_client.get("/api/x", retries=2, retry_delay=0)

        assert route.call_count == 3
        assert exc_info.value.attempts == 3
        assert not isinstance(exc_info.value, RequestTimeoutError)

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_retry_then_success(self, api_client: APIClient) -> None:
        route = respx.get(f"{BASE_URL}/api/x").mock(
            side_effect=[
                httpx.ConnectError("reset"),
                httpx.RemoteProtocolError("server disconnected"),
                httpx.Response(200, json=[1]),
            ]
        )
        async with api_client:
            data = await api_client.get("/api/x", retries=2, retry_delay=0)

        assert data == [1]
        assert route.call_count == 3
        assert api_client.last_response.attempts == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_retry_by_default(self, api_client: APIClient) -> None:
        route = respx.get(f"{BASE_URL}/api/x").mock(side_effect=httpx.ConnectError("refused"))
        async with api_client:
            with pytest.raises(NetworkError):
                await api_client.get("/api/x")
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_default_retries_from_client(self, config, token_provider) -> None:
        route = respx.get(f"{BASE_URL}/api/x").mock(side_effect=httpx.ConnectError("refused"))
        async with APIClient(config, token_provider, retries=1) as client:
            with pytest.raises(NetworkError):
                await client.get("/api/x", retry_delay=0)
        assert route.call_count == 2

    @pytest.mark.asyncio
    @respx.mock
    async def test_unsupported_protocol_is_not_retried(self, api_client: APIClient) -> None:
        route = respx.get(f"{BASE_URL}/api/x").mock(side_effect=httpx.UnsupportedProtocol("bad scheme"))
        async with api_client:
            with pytest.raises(NetworkError):
                await api_client.get("/api/x", retries=3, retry_delay=0)
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_errors_are_not_network_retried(self, api_client: APIClient) -> None:
        route = respx.get(f"{BASE_URL}/api/x").mock(return_value=httpx.Response(500))
        async with api_client:
            with pytest.raises(APIError):
                await api_client.get("/api/x", retries=3, retry_delay=0)
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_timeout_aborts_without_retry(self, config, token_provider) -> None:
        transport = HangingTransport()
        async with APIClient(config, token_provider, transport=transport) as client:
            with pytest.raises(RequestTimeoutError) as exc_info:
                await client.get("/api/slow", timeout=0.05, retries=3, retry_delay=0)

        assert transport.calls == 1
        assert exc_info.value.timeout == 0.05
        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    @respx.mock
    async def test_httpx_timeout_is_terminal(self, api_client: APIClient) -> None:
        route = respx.get(f"{BASE_URL}/api/x").mock(side_effect=httpx.ReadTimeout("read timed out"))
        async with api_client:
            with pytest.raises(RequestTimeoutError):
                await api_client.get("/api/x", retries=2, retry_delay=0)
        assert route.call_count == 1


# =============================================================================
# Ping
# =============================================================================


class TestPing:
    @pytest.mark.asyncio
    @respx.mock
    async def test_ping_ok(self, api_client: APIClient) -> None:
        respx.get(f"{BASE_URL}/api/ping").mock(return_value=httpx.Response(200, json={"status": "ok"}))
        async with api_client:
            assert await api_client.ping() is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_ping_failure_returns_false(self, api_client: APIClient) -> None:
        respx.get(f"{BASE_URL}/api/ping").mock(side_effect=httpx.ConnectError("refused"))
        async with api_client:
            assert await api_client.ping() is False
