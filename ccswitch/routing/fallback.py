"""
ccswitch - Failover Chain

Bounded, ordered walk over the eligible channels of one request, and the
RouteResult it produces.

RULE: a channel is tried at most once per request. `max_attempts` bounds
the number of distinct channels, never repeated calls to one channel.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import time

from ..core.errors import (
    AllChannelsFailedError,
    NoEligibleChannelError,
    RouteCancelledError,
    RoutingError,
)
from ..core.models import AttemptResult, Channel, ChatResponse


class RouteFailureKind(str, Enum):
    """Terminal failure outcomes of one logical request."""
    NO_ELIGIBLE_CHANNEL = "no_eligible_channel"
    ALL_CHANNELS_FAILED = "all_channels_failed"
    CANCELLED = "cancelled"


@dataclass
class RouteResult:
    """
    Result of routing one request.

    On success: channel_used, response and prior_failures are set.
    On failure: failure_kind is set and attempts lists every attempt in order.
    """
    success: bool
    model: str
    channel_used: Optional[str] = None
    response: Optional[ChatResponse] = None
    failure_kind: Optional[RouteFailureKind] = None
    attempts: List[AttemptResult] = field(default_factory=list)
    total_duration_ms: int = 0

    @property
    def prior_failures(self) -> List[AttemptResult]:
        """Failed attempts that preceded the terminal outcome."""
        return [a for a in self.attempts if not a.succeeded]

    def to_error(self) -> Optional[RoutingError]:
        if self.success:
            return None
        if self.failure_kind == RouteFailureKind.NO_ELIGIBLE_CHANNEL:
            return NoEligibleChannelError(self.model, result=self)
        if self.failure_kind == RouteFailureKind.CANCELLED:
            return RouteCancelledError(result=self)
        return AllChannelsFailedError(self.prior_failures, result=self)

    def raise_for_failure(self) -> "RouteResult":
        """Raise the matching RoutingError on failure; return self on success."""
        error = self.to_error()
        if error is not None:
            raise error
        return self

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": self.success,
            "model": self.model,
            "total_duration_ms": self.total_duration_ms,
        }
        if self.success:
            result["channel_used"] = self.channel_used
            result["response"] = self.response.to_dict() if self.response else None
            result["prior_failures"] = [a.to_dict() for a in self.prior_failures]
        else:
            result["failure_kind"] = self.failure_kind.value if self.failure_kind else None
            result["attempts"] = [a.to_dict() for a in self.attempts]
        return result


class FailoverChain:
    """
    Ordered channel sequence for one request.

    Usage:
        chain = FailoverChain(registry.eligible_for(model), max_attempts=3)
        while (channel := chain.get_next()) is not None:
            ...
            chain.record_attempt(attempt)
    """

    def __init__(self, channels: List[Channel], max_attempts: int):
        self.channels = list(channels)
        self.max_attempts = max_attempts
        self.attempts: List[AttemptResult] = []
        self.current_index = 0
        self._started_at = time.perf_counter()

    @property
    def limit(self) -> int:
        return min(len(self.channels), self.max_attempts)

    def get_next(self) -> Optional[Channel]:
        """Next channel to try, or None once the chain is exhausted."""
        if self.is_exhausted():
            return None
        channel = self.channels[self.current_index]
        self.current_index += 1
        return channel

    def peek_next(self) -> Optional[Channel]:
        if self.is_exhausted():
            return None
        return self.channels[self.current_index]

    def record_attempt(self, attempt: AttemptResult):
        self.attempts.append(attempt)

    def is_exhausted(self) -> bool:
        return self.current_index >= self.limit

    def remaining_count(self) -> int:
        return max(0, self.limit - self.current_index)

    def _elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._started_at) * 1000)

    def succeed(self, model: str, channel: Channel, response: ChatResponse) -> RouteResult:
        return RouteResult(
            success=True,
            model=model,
            channel_used=channel.name,
            response=response,
            attempts=list(self.attempts),
            total_duration_ms=self._elapsed_ms(),
        )

    def fail(self, model: str, kind: RouteFailureKind) -> RouteResult:
        return RouteResult(
            success=False,
            model=model,
            failure_kind=kind,
            attempts=list(self.attempts),
            total_duration_ms=self._elapsed_ms(),
        )
