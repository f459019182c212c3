"""
ccswitch - Error Definitions

Error taxonomy for the channel switcher:
- Registry errors (duplicate / missing / invalid channel) surface immediately
- Per-channel failures are classified into an ErrorKind and folded into the
  next attempt; they never escape the router
- Routing errors are the terminal outcomes of one logical request
"""

import asyncio
from enum import Enum
from typing import Any, Optional

import httpx


class ErrorKind(str, Enum):
    """Classification of a single channel failure."""
    TIMEOUT = "timeout"
    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    MALFORMED = "malformed"

    @property
    def is_transient(self) -> bool:
        """
        Transient failures may clear up on their own; channel-specific ones
        will not. Both lead to failover, never to a same-channel retry.
        """
        return self in _TRANSIENT_KINDS

    def describe(self) -> str:
        return _DESCRIPTIONS[self]


_TRANSIENT_KINDS = frozenset({
    ErrorKind.TIMEOUT,
    ErrorKind.NETWORK,
    ErrorKind.SERVER_ERROR,
    ErrorKind.RATE_LIMITED,
})

_DESCRIPTIONS = {
    ErrorKind.TIMEOUT: "timed out",
    ErrorKind.NETWORK: "network error",
    ErrorKind.AUTH: "auth failed",
    ErrorKind.RATE_LIMITED: "rate limited",
    ErrorKind.SERVER_ERROR: "server error",
    ErrorKind.CLIENT_ERROR: "client error",
    ErrorKind.MALFORMED: "malformed response",
}


class CCSwitchError(Exception):
    """Base exception for all ccswitch errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ============================================================
# Configuration / Registry Errors
# ============================================================

class ConfigError(CCSwitchError):
    """Configuration could not be read, parsed or validated."""
    pass


class RegistryError(CCSwitchError):
    """Base class for channel registry contract violations."""
    pass


class DuplicateChannelError(RegistryError):
    """A channel with this name is already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Channel '{name}' already exists")


class ChannelNotFoundError(RegistryError):
    """No channel with this name is registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Channel '{name}' not found")


class InvalidChannelError(RegistryError):
    """A channel record violates a registry invariant."""
    pass


# ============================================================
# Per-Channel Errors
# ============================================================

class ChannelRequestError(CCSwitchError):
    """A single probe or request against a channel failed."""

    def __init__(
        self,
        kind: ErrorKind,
        detail: str,
        channel: str = "",
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
    ):
        self.kind = kind
        self.detail = detail
        self.channel = channel
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(f"[{channel}] {kind.value}: {detail}")


def classify_status(status_code: int) -> Optional[ErrorKind]:
    """
    Map an HTTP status code to an ErrorKind.

    Returns None for 2xx.
    """
    if 200 <= status_code < 300:
        return None
    if status_code in (401, 403):
        return ErrorKind.AUTH
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.CLIENT_ERROR


def summarize_error_body(response: httpx.Response, limit: int = 200) -> str:
    """
    Extract a readable message from an error response.

    Understands the common provider shapes:
        {"error": {"message": "..."}}, {"error": "..."}, {"message": "..."}
    and falls back to the (truncated) body text.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])[:limit]
        if isinstance(error, str) and error:
            return error[:limit]
        if data.get("message"):
            return str(data["message"])[:limit]

    text = response.text.strip()
    if not text:
        return response.reason_phrase or "no response body"
    return text[:limit]


def error_from_response(response: httpx.Response, channel: str = "") -> ChannelRequestError:
    """Build a ChannelRequestError from a non-2xx response."""
    status_code = response.status_code
    kind = classify_status(status_code) or ErrorKind.CLIENT_ERROR

    retry_after = None
    if status_code == 429:
        try:
            retry_after = int(response.headers.get("Retry-After", ""))
        except ValueError:
            retry_after = None

    return ChannelRequestError(
        kind=kind,
        detail=f"HTTP {status_code}: {summarize_error_body(response)}",
        channel=channel,
        status_code=status_code,
        retry_after=retry_after,
    )


def classify_exception(error: BaseException, channel: str = "") -> Optional[ChannelRequestError]:
    """
    Convert a transport-level exception into a ChannelRequestError.

    Returns None for exceptions that are not channel failures; callers
    re-raise those.
    """
    if isinstance(error, ChannelRequestError):
        return error

    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ChannelRequestError(
            ErrorKind.TIMEOUT,
            f"Request timed out ({type(error).__name__})",
            channel=channel,
        )

    if isinstance(error, httpx.HTTPStatusError):
        return error_from_response(error.response, channel)

    if isinstance(error, httpx.DecodingError):
        return ChannelRequestError(
            ErrorKind.MALFORMED,
            f"Could not decode response: {error}",
            channel=channel,
        )

    if isinstance(error, (httpx.RequestError, httpx.InvalidURL)):
        return ChannelRequestError(
            ErrorKind.NETWORK,
            f"{type(error).__name__}: {error}" if str(error) else type(error).__name__,
            channel=channel,
        )

    return None


# ============================================================
# Routing Errors (terminal outcomes)
# ============================================================

class RoutingError(CCSwitchError):
    """A logical request ended without a successful response."""

    def __init__(self, message: str, result: Any = None):
        self.result = result
        super().__init__(message)


class NoEligibleChannelError(RoutingError):
    """No enabled channel serves the requested model."""

    def __init__(self, model: str, result: Any = None):
        self.model = model
        super().__init__(f"No available channels for model '{model}'", result)


class AllChannelsFailedError(RoutingError):
    """Every attempted channel failed; the message lists each failure."""

    def __init__(self, attempts: list, result: Any = None):
        self.attempts = attempts
        summary = "; ".join(a.describe() for a in attempts) or "no channels attempted"
        super().__init__(f"All channels failed: {summary}", result)


class RouteCancelledError(RoutingError):
    """The request was cancelled before any channel succeeded."""

    def __init__(self, result: Any = None):
        super().__init__("Request cancelled", result)
