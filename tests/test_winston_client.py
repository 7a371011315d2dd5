"""
Unit tests for app/integrations/winston.py.

aiohttp is mocked at the shared-session seam; asyncio.sleep is patched so
retry back-off does not slow the suite down.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from app.integrations.winston import (
    ProviderError,
    ProviderUnavailableError,
    WinstonClient,
    is_provider_error,
)
from tests.conftest import WINSTON_MCP_ERROR, WINSTON_MCP_RESPONSE, WINSTON_REST_RESPONSE

IMAGE_URL = "https://relay.example/uploads/1-abc.png?v=1"


def _response(status=200, body=None):
    mock_resp = MagicMock()
    mock_resp.__aenter__ = AsyncMock(return_value=mock_resp)
    mock_resp.__aexit__ = AsyncMock(return_value=None)
    mock_resp.status = status
    text = body if isinstance(body, str) else json.dumps(body if body is not None else {})
    mock_resp.text = AsyncMock(return_value=text)
    return mock_resp


def _session(*outcomes):
    """Session whose successive .post() calls return/raise the given outcomes."""
    mock_session = MagicMock()
    mock_session.post = MagicMock(side_effect=list(outcomes))
    return mock_session


def _patch_session(mock_session):
    @asynccontextmanager
    async def _fake_request_session():
        yield mock_session

    return patch(
        "app.integrations.http_client.request_session",
        side_effect=_fake_request_session,
    )


@pytest.fixture
def no_sleep():
    with patch("app.integrations.winston.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


# ---------------------------------------------------------------------------
# Request construction
# ---------------------------------------------------------------------------


def test_mcp_request_shape():
    client = WinstonClient(api_key="k-123", mode="mcp")
    url, body, headers = client.build_request(IMAGE_URL)

    assert url == "https://api.gowinston.ai/mcp/v1"
    assert body["jsonrpc"] == "2.0"
    assert body["method"] == "tools/call"
    assert body["params"] == {
        "name": "ai-image-detection",
        "arguments": {"url": IMAGE_URL, "apiKey": "k-123"},
    }
    assert headers["content-type"] == "application/json"


def test_rest_request_shape():
    client = WinstonClient(api_key="k-123", mode="REST")
    url, body, headers = client.build_request(IMAGE_URL)

    assert url == "https://api.gowinston.ai/v2/image-detection"
    assert body == {"url": IMAGE_URL, "version": "2"}
    assert headers["Authorization"] == "Bearer k-123"


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        WinstonClient(api_key="k", mode="grpc")


def test_from_settings():
    from app.config import Settings

    s = Settings(winston_api_key="abc", winston_mode="rest", provider_max_retries=5)
    client = WinstonClient.from_settings(s)
    assert client.api_key == "abc"
    assert client.mode == "rest"
    assert client.max_retries == 5


def test_retry_delay_is_capped():
    client = WinstonClient(api_key="k", retry_initial_delay=1.0, retry_exp_base=2.0, retry_max_delay=5.0)
    assert [client._retry_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]


# ---------------------------------------------------------------------------
# is_provider_error
# ---------------------------------------------------------------------------


def test_is_provider_error():
    assert is_provider_error({"error": {"code": -32602, "message": "bad"}})
    assert is_provider_error(WINSTON_MCP_ERROR)
    assert not is_provider_error(WINSTON_MCP_RESPONSE)
    assert not is_provider_error(WINSTON_REST_RESPONSE)
    assert not is_provider_error("text")


# ---------------------------------------------------------------------------
# detect()
# ---------------------------------------------------------------------------


async def test_detect_success_returns_payload():
    session = _session(_response(200, WINSTON_MCP_RESPONSE))
    with _patch_session(session):
        payload = await WinstonClient(api_key="k").detect(IMAGE_URL)

    assert payload == WINSTON_MCP_RESPONSE
    _, kwargs = session.post.call_args
    assert kwargs["json"]["params"]["arguments"]["url"] == IMAGE_URL


async def test_detect_non_json_body_is_wrapped():
    session = _session(_response(200, "plain text"))
    with _patch_session(session):
        payload = await WinstonClient(api_key="k").detect(IMAGE_URL)
    assert payload == {"body": "plain text"}


async def test_detect_provider_error_envelope_raises():
    session = _session(_response(200, WINSTON_MCP_ERROR))
    with _patch_session(session):
        with pytest.raises(ProviderError) as exc:
            await WinstonClient(api_key="k").detect(IMAGE_URL)
    assert exc.value.payload == WINSTON_MCP_ERROR


async def test_detect_client_error_status_not_retried(no_sleep):
    session = _session(_response(401, {"error": "unauthorized"}))
    with _patch_session(session):
        with pytest.raises(ProviderError) as exc:
            await WinstonClient(api_key="k", mode="rest").detect(IMAGE_URL)
    assert exc.value.status == 401
    assert session.post.call_count == 1
    no_sleep.assert_not_called()


async def test_detect_retries_transient_status(no_sleep):
    session = _session(_response(503, {}), _response(200, WINSTON_REST_RESPONSE))
    with _patch_session(session):
        payload = await WinstonClient(api_key="k", mode="rest", max_retries=2).detect(IMAGE_URL)

    assert payload == WINSTON_REST_RESPONSE
    assert session.post.call_count == 2
    no_sleep.assert_awaited_once_with(1.0)


async def test_detect_transient_status_exhausts_retries(no_sleep):
    session = _session(_response(502, {}), _response(502, {}))
    with _patch_session(session):
        with pytest.raises(ProviderError) as exc:
            await WinstonClient(api_key="k", max_retries=1).detect(IMAGE_URL)
    assert exc.value.status == 502
    assert session.post.call_count == 2


async def test_detect_retries_connection_errors(no_sleep):
    session = _session(
        aiohttp.ClientConnectionError("reset"),
        asyncio.TimeoutError(),
        _response(200, WINSTON_REST_RESPONSE),
    )
    with _patch_session(session):
        payload = await WinstonClient(api_key="k", max_retries=2).detect(IMAGE_URL)
    assert payload == WINSTON_REST_RESPONSE
    assert no_sleep.await_count == 2


async def test_detect_unreachable_after_retries(no_sleep):
    session = _session(
        aiohttp.ClientConnectionError("down"),
        aiohttp.ClientConnectionError("down"),
        aiohttp.ClientConnectionError("down"),
    )
    with _patch_session(session):
        with pytest.raises(ProviderUnavailableError):
            await WinstonClient(api_key="k", max_retries=2).detect(IMAGE_URL)
    assert session.post.call_count == 3
