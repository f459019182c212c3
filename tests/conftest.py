"""
ccswitch - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Fake channel endpoints on httpx.MockTransport
- Isolated metrics registry and tracer per test
"""

import asyncio
import inspect
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from prometheus_client import CollectorRegistry

from ccswitch.core.http_client import ChannelHttpClient
from ccswitch.core.models import Settings
from ccswitch.observability.metrics import MetricsCollector
from ccswitch.observability.tracing import TracingManager
from ccswitch.routing.registry import ChannelRegistry
from ccswitch.routing.router import Router


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )

    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Mock Responses
# ============================================================

@pytest.fixture
def mock_openai_response():
    """Standard mock OpenAI chat response."""
    return {
        "id": "chatcmpl-test123",
        "object": "chat.completion",
        "created": 1234567890,
        "model": "gpt-4",
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": "Hello! I'm a mock response."
                },
                "finish_reason": "stop"
            }
        ],
        "usage": {
            "prompt_tokens": 10,
            "completion_tokens": 8,
            "total_tokens": 18
        }
    }


@pytest.fixture
def mock_anthropic_response():
    """Standard mock Anthropic response."""
    return {
        "id": "msg-test123",
        "type": "message",
        "role": "assistant",
        "content": [
            {
                "type": "text",
                "text": "Hello! I'm a mock Claude response."
            }
        ],
        "model": "claude-3-5-sonnet-20241022",
        "stop_reason": "end_turn",
        "usage": {
            "input_tokens": 10,
            "output_tokens": 8
        }
    }


def chat_body(content: str = "Hello!", model: str = "gpt-4") -> Dict[str, Any]:
    return {
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    }


# ============================================================
# Fake Channel Endpoints
# ============================================================

@dataclass
class FakeCall:
    """One request received by a fake channel."""
    host: str
    kind: str
    payload: Dict[str, Any]
    headers: httpx.Headers


class FakeChannels:
    """
    Scripted channel endpoints keyed by URL host.

    Probes (max_tokens == 1) and real requests are recorded separately so
    tests can assert on both. Hosts with no handler refuse the connection.

    Usage:
        fake_channels.ok("a.test", "Hi")
        fake_channels.status("b.test", 429)
        client = ChannelHttpClient(transport=fake_channels.transport)
    """

    def __init__(self):
        self.handlers: Dict[str, Callable] = {}
        self.probe_handlers: Dict[str, Callable] = {}
        self.calls: List[FakeCall] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def on(self, host: str, handler: Callable, probe: Optional[Callable] = None) -> "FakeChannels":
        self.handlers[host] = handler
        if probe is not None:
            self.probe_handlers[host] = probe
        return self

    def ok(self, host: str, content: str = "Hello!", model: str = "gpt-4", **kwargs) -> "FakeChannels":
        body = chat_body(content, model)
        return self.on(host, lambda request: httpx.Response(200, json=body), **kwargs)

    def status(self, host: str, code: int, body: Any = None,
               headers: Optional[Dict[str, str]] = None, **kwargs) -> "FakeChannels":
        if body is None:
            body = {"error": {"message": f"fake error {code}"}}
        return self.on(
            host,
            lambda request: httpx.Response(code, json=body, headers=headers),
            **kwargs,
        )

    def fail(self, host: str, error_type=httpx.ConnectError, **kwargs) -> "FakeChannels":
        def handler(request):
            raise error_type("fake transport failure", request=request)
        return self.on(host, handler, **kwargs)

    def hang(self, host: str, **kwargs) -> "FakeChannels":
        async def handler(request):
            await asyncio.sleep(3600)
        return self.on(host, handler, **kwargs)

    def calls_to(self, host: str, kind: Optional[str] = None) -> List[FakeCall]:
        return [c for c in self.calls if c.host == host and (kind is None or c.kind == kind)]

    def hosts(self, kind: Optional[str] = None) -> List[str]:
        return [c.host for c in self.calls if kind is None or c.kind == kind]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content or b"{}")
        kind = "probe" if payload.get("max_tokens") == 1 else "request"
        host = request.url.host
        self.calls.append(FakeCall(host, kind, payload, request.headers))

        handler = None
        if kind == "probe":
            handler = self.probe_handlers.get(host)
        handler = handler or self.handlers.get(host)
        if handler is None:
            raise httpx.ConnectError("connection refused", request=request)

        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result


@pytest.fixture
def fake_channels():
    return FakeChannels()


@pytest.fixture
def http_client(fake_channels):
    return ChannelHttpClient(transport=fake_channels.transport)


# ============================================================
# Observability
# ============================================================

@pytest.fixture
def metrics():
    """Metrics collector on a fresh registry."""
    return MetricsCollector(CollectorRegistry())


@pytest.fixture
def tracing():
    return TracingManager(service_name="ccswitch-test")


@pytest.fixture
def make_router(fake_channels, metrics, tracing):
    """
    Factory for routers wired to the fake channels.

    Usage:
        async with make_router([channel_a, channel_b], retry_attempts=2) as router:
            result = await router.route(request)
    """
    def _make(channels, **settings) -> Router:
        settings.setdefault("probe_before_request", False)
        return Router(
            ChannelRegistry(channels),
            Settings(**settings),
            http_client=ChannelHttpClient(transport=fake_channels.transport),
            metrics=metrics,
            tracing=tracing,
        )
    return _make


# ============================================================
# Logging Configuration
# ============================================================

@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    yield


# ============================================================
# Skip Helpers
# ============================================================

requires_integration = pytest.mark.skipif(
    not RUN_INTEGRATION,
    reason="Requires RUN_INTEGRATION=1"
)
