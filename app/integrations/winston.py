"""
Winston AI image-detection integration.

Two transports are supported:
  - "mcp":  JSON-RPC 2.0 `tools/call` against the MCP endpoint, API key in
            the tool arguments.
  - "rest": POST {url, version} to the v2 image-detection endpoint with a
            Bearer token.

Winston fetches the image itself, so only a public URL is sent. Transient
failures (connection errors, timeouts, 408/429/5xx) are retried with
exponential back-off; everything else is surfaced as ProviderError.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from app.integrations import http_client as http_module

logger = logging.getLogger(__name__)

MODE_MCP = "mcp"
MODE_REST = "rest"

MCP_TOOL_NAME = "ai-image-detection"
RETRYABLE_STATUS_CODES = frozenset([408, 429, 500, 502, 503, 504])


class ProviderError(Exception):
    """Winston answered, but with an error or a non-2xx status."""

    def __init__(self, message: str, status: int | None = None, payload: Any = None):
        super().__init__(message)
        self.status = status
        self.payload = payload


class ProviderUnavailableError(Exception):
    """Winston could not be reached after all retry attempts."""


def is_provider_error(payload: Any) -> bool:
    """True for JSON-RPC error envelopes and MCP tool results flagged isError."""
    if not isinstance(payload, Mapping):
        return False
    if payload.get("error"):
        return True
    result = payload.get("result")
    return isinstance(result, Mapping) and bool(result.get("isError"))


class WinstonClient:
    def __init__(
        self,
        api_key: str,
        mode: str = MODE_MCP,
        mcp_url: str = "https://api.gowinston.ai/mcp/v1",
        rest_url: str = "https://api.gowinston.ai/v2/image-detection",
        model_version: str = "2",
        timeout_sec: float = 30.0,
        max_retries: int = 2,
        retry_initial_delay: float = 1.0,
        retry_max_delay: float = 5.0,
        retry_exp_base: float = 2.0,
    ):
        mode = mode.lower()
        if mode not in (MODE_MCP, MODE_REST):
            raise ValueError(f"Unknown Winston mode: {mode!r}")
        self.api_key = api_key
        self.mode = mode
        self.mcp_url = mcp_url
        self.rest_url = rest_url
        self.model_version = model_version
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.retry_initial_delay = retry_initial_delay
        self.retry_max_delay = retry_max_delay
        self.retry_exp_base = retry_exp_base

    @classmethod
    def from_settings(cls, settings) -> "WinstonClient":
        return cls(
            api_key=settings.winston_api_key,
            mode=settings.winston_mode,
            mcp_url=settings.winston_mcp_url,
            rest_url=settings.winston_rest_url,
            model_version=settings.winston_model_version,
            timeout_sec=settings.provider_timeout_sec,
            max_retries=settings.provider_max_retries,
            retry_initial_delay=settings.provider_retry_initial_delay,
            retry_max_delay=settings.provider_retry_max_delay,
            retry_exp_base=settings.provider_retry_exp_base,
        )

    def build_request(self, image_url: str) -> tuple[str, dict, dict]:
        """Return (endpoint, json body, headers) for one detection call."""
        if self.mode == MODE_REST:
            body = {"url": image_url, "version": self.model_version}
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
            return self.rest_url, body, headers

        body = {
            "jsonrpc": "2.0",
            "id": 2,
            "method": "tools/call",
            "params": {
                "name": MCP_TOOL_NAME,
                "arguments": {"url": image_url, "apiKey": self.api_key},
            },
        }
        headers = {"content-type": "application/json", "accept": "application/json"}
        return self.mcp_url, body, headers

    def _retry_delay(self, attempt: int) -> float:
        delay = self.retry_initial_delay * (self.retry_exp_base ** (attempt - 1))
        return min(delay, self.retry_max_delay)

    async def _post(self, url: str, body: dict, headers: dict) -> tuple[int, Any]:
        async with http_module.request_session() as session:
            async with session.post(
                url,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_sec),
            ) as response:
                text = await response.text()
                try:
                    payload = json.loads(text)
                except ValueError:
                    payload = {"body": text}
                return response.status, payload

    async def detect(self, image_url: str) -> Any:
        """Ask Winston to analyze the image at `image_url`; returns the decoded response body."""
        url, body, headers = self.build_request(image_url)
        attempts = self.max_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                status, payload = await self._post(url, body, headers)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                if attempt == attempts:
                    logger.error(f"[WINSTON] Unreachable after {attempt} attempts: {exc!r}")
                    raise ProviderUnavailableError(str(exc) or exc.__class__.__name__) from exc
                delay = self._retry_delay(attempt)
                logger.info(f"[WINSTON] {exc!r}; retrying in {delay:.1f}s (attempt {attempt}/{attempts})")
                await asyncio.sleep(delay)
                continue

            if status in RETRYABLE_STATUS_CODES and attempt < attempts:
                delay = self._retry_delay(attempt)
                logger.info(f"[WINSTON] HTTP {status}; retrying in {delay:.1f}s (attempt {attempt}/{attempts})")
                await asyncio.sleep(delay)
                continue

            if not 200 <= status < 300:
                logger.error(f"[WINSTON] HTTP {status} from {self.mode} endpoint")
                raise ProviderError(f"Winston API error (HTTP {status})", status=status, payload=payload)
            if is_provider_error(payload):
                logger.warning("[WINSTON] Provider reported an error in the response body")
                raise ProviderError("Winston error", status=status, payload=payload)

            logger.info(f"[WINSTON] {self.mode} call succeeded (attempt {attempt}/{attempts})")
            return payload

        raise RuntimeError("Unreachable retry logic in WinstonClient.detect")
