"""
ccswitch - Core Data Models

Channel records, request/response envelopes and attempt records shared by
the registry, the prober, the executor and the router.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ConfigError, ErrorKind, InvalidChannelError


# Used when neither the request nor the settings name a model
DEFAULT_MODEL_FALLBACK = "gpt-3.5-turbo"


# ============================================================
# Enums
# ============================================================

class AttemptOutcome(str, Enum):
    """Outcome of one probe or request against a channel."""
    SUCCESS = "success"
    UNHEALTHY = "unhealthy"
    FAILED = "failed"


# ============================================================
# Channel
# ============================================================

@dataclass(frozen=True)
class Channel:
    """
    A configured backend endpoint capable of serving chat completions.

    Channels are immutable; the registry replaces them on update.
    """
    name: str
    url: str
    api_key: Optional[str] = None
    model: Optional[str] = None
    enabled: bool = True
    priority: int = 0
    timeout_seconds: Optional[float] = None

    def serves(self, model: str) -> bool:
        """True if this channel accepts requests for `model`."""
        return self.model is None or self.model == model

    @property
    def sort_key(self) -> tuple:
        return (self.priority, self.name)

    def replace(self, **changes: Any) -> "Channel":
        """
        Raises:
            InvalidChannelError: `changes` names a field Channel does not have
        """
        try:
            return dataclasses.replace(self, **changes)
        except TypeError as e:
            raise InvalidChannelError(f"Invalid change for channel '{self.name}': {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "api_key": self.api_key,
            "model": self.model,
            "enabled": self.enabled,
            "priority": self.priority,
            "timeout_seconds": self.timeout_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Channel":
        try:
            name = data["name"]
            url = data["url"]
        except KeyError as e:
            raise ConfigError(f"Channel entry is missing required field {e}") from e

        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ConfigError(
                f"Channel '{name}': 'enabled' must be true or false, got {enabled!r}"
            )

        timeout = data.get("timeout_seconds")
        try:
            priority = int(data.get("priority", 0))
            timeout = float(timeout) if timeout is not None else None
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Channel '{name}' has an invalid value: {e}") from e

        return cls(
            name=name,
            url=url,
            api_key=data.get("api_key"),
            model=data.get("model"),
            enabled=enabled,
            priority=priority,
            timeout_seconds=timeout,
        )


# ============================================================
# Settings
# ============================================================

@dataclass(frozen=True)
class Settings:
    """Global routing settings, consumed read-only by the router."""
    default_model: Optional[str] = None
    timeout_seconds: float = 30.0

    # Maximum number of distinct channels tried for one request
    retry_attempts: int = 3

    # Probe each channel before sending the real request
    probe_before_request: bool = True
    probe_timeout_seconds: Optional[float] = None

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ConfigError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )
        if self.retry_attempts < 1:
            raise ConfigError(
                f"retry_attempts must be at least 1, got {self.retry_attempts}"
            )
        if self.probe_timeout_seconds is not None and self.probe_timeout_seconds <= 0:
            raise ConfigError(
                f"probe_timeout_seconds must be positive, got {self.probe_timeout_seconds}"
            )

    def resolve_model(self, requested: Optional[str]) -> str:
        """Requested model, else the default model, else the built-in fallback."""
        return requested or self.default_model or DEFAULT_MODEL_FALLBACK

    def timeout_for(self, channel: Channel) -> float:
        """Effective request timeout for a channel."""
        if channel.timeout_seconds is not None:
            return channel.timeout_seconds
        return self.timeout_seconds

    def probe_timeout_for(self, channel: Channel) -> float:
        if self.probe_timeout_seconds is not None:
            return self.probe_timeout_seconds
        return self.timeout_for(channel)


# ============================================================
# Request / Response
# ============================================================

@dataclass
class RequestSpec:
    """
    The caller's logical chat-completion request.

    `messages` and `extra` are passed through to the channel untouched, so
    provider-specific fields survive without the router knowing about them.

    Example:
        request = RequestSpec.from_prompt("Hello!", model="gpt-4", temperature=0.2)
    """
    messages: List[Dict[str, Any]]
    model: Optional[str] = None
    max_tokens: Optional[int] = 1000
    temperature: Optional[float] = 0.7
    stream: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_prompt(cls, prompt: str, **params: Any) -> "RequestSpec":
        return cls(messages=[{"role": "user", "content": prompt}], **params)

    def to_payload(self, model: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        payload["model"] = model
        payload["messages"] = self.messages
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        payload["stream"] = self.stream
        return payload


@dataclass
class ChatResponse:
    """Response from the channel that served a request."""
    content: str
    model: str
    usage: Optional[Dict[str, Any]] = None
    raw: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "model": self.model,
            "usage": self.usage,
        }


# ============================================================
# Attempt Records
# ============================================================

@dataclass
class AttemptResult:
    """One probe or execution outcome, kept for the aggregated report."""
    channel_name: str
    outcome: AttemptOutcome
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    status_code: Optional[int] = None
    latency_ms: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCESS

    def describe(self) -> str:
        """Short operator-facing description, e.g. "auth failed on channel A"."""
        if self.succeeded:
            return f"succeeded on channel {self.channel_name}"
        kind = self.error_kind.describe() if self.error_kind else "failed"
        return f"{kind} on channel {self.channel_name}"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "channel": self.channel_name,
            "outcome": self.outcome.value,
        }
        if self.error_kind is not None:
            result["error_kind"] = self.error_kind.value
        if self.detail:
            result["detail"] = self.detail
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.latency_ms is not None:
            result["latency_ms"] = self.latency_ms
        return result
