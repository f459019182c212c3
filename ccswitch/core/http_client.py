"""
ccswitch - Channel HTTP Client

Thin wrapper over httpx.AsyncClient used by both the prober and the executor:
- Exactly one POST per call; no retries (failover happens one level up)
- Hard per-call deadline; an expired call is cancelled and reported as timeout
- Request correlation via X-Request-ID
- Redacted payload logging
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .errors import ChannelRequestError, ErrorKind, classify_exception
from .models import Channel
from ..observability.logging import get_logger


logger = get_logger("ccswitch.http")


@dataclass
class ChannelResponse:
    """HTTP response from a channel with timing metadata."""
    status_code: int
    data: Any
    text: str
    headers: Dict[str, str]
    request_id: str
    latency_ms: int
    raw: Optional[httpx.Response] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def summarize_payload(payload: Dict[str, Any]) -> str:
    """Create a safe payload summary (no secrets, no full prompts)."""
    summary = {}
    for key, value in payload.items():
        if key in ("api_key", "key", "token", "secret", "password", "authorization"):
            summary[key] = "***REDACTED***"
        elif key == "messages" and isinstance(value, list):
            summary[key] = f"[{len(value)} messages]"
        elif isinstance(value, str) and len(value) > 100:
            summary[key] = f"{value[:50]}...({len(value)} chars)"
        else:
            summary[key] = value
    return str(summary)


class ChannelHttpClient:
    """
    Async HTTP client shared by all calls of one router.

    Pass `transport` (e.g. httpx.MockTransport) to fake channel endpoints,
    or `client` to reuse an existing httpx.AsyncClient (which is then not
    closed by this wrapper).
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self.default_headers = headers or {}

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying async client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                headers=self.default_headers,
            )
            self._owns_client = True
        return self._client

    async def close(self):
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "ChannelHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _build_headers(self, channel: Channel, request_id: str) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Request-ID": request_id,
        }
        if channel.api_key:
            headers["Authorization"] = f"Bearer {channel.api_key}"
        return headers

    async def post_json(
        self,
        channel: Channel,
        payload: Dict[str, Any],
        timeout: float,
        step_name: str = "request",
        request_id: Optional[str] = None,
    ) -> ChannelResponse:
        """
        POST `payload` to the channel URL.

        Returns the response for any HTTP status; the caller decides what a
        status means. Transport failures and the deadline raise
        ChannelRequestError.

        Raises:
            ChannelRequestError: on timeout, network failure or an unsendable request
        """
        request_id = request_id or new_request_id()
        client = self._get_client()

        logger.debug(
            f"STEP [{step_name}] POST {channel.url}",
            channel=channel.name,
            payload_summary=summarize_payload(payload),
        )

        try:
            request = client.build_request(
                "POST",
                channel.url,
                json=payload,
                headers=self._build_headers(channel, request_id),
                timeout=timeout,
            )
        except httpx.InvalidURL as e:
            raise classify_exception(e, channel.name) from e
        except ValueError as e:
            # Header values must be ASCII; a bad api_key fails here
            raise ChannelRequestError(
                ErrorKind.CLIENT_ERROR,
                f"Could not build request: {type(e).__name__}",
                channel=channel.name,
            ) from e

        start_time = time.perf_counter()
        try:
            # httpx timeouts apply per phase; wait_for bounds the whole call
            response = await asyncio.wait_for(client.send(request), timeout=timeout)
        except (asyncio.TimeoutError, httpx.HTTPError, httpx.InvalidURL) as e:
            error = classify_exception(e, channel.name)
            logger.debug(
                f"STEP [{step_name}] {channel.name} failed: {error.detail}",
                channel=channel.name,
                error_kind=error.kind.value,
            )
            raise error from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        try:
            data = response.json()
        except ValueError:
            data = None

        logger.debug(
            f"STEP [{step_name}] Response: status={response.status_code}, latency={latency_ms}ms",
            channel=channel.name,
            status_code=response.status_code,
        )

        return ChannelResponse(
            status_code=response.status_code,
            data=data,
            text=response.text,
            headers=dict(response.headers),
            request_id=request_id,
            latency_ms=latency_ms,
            raw=response,
        )


