"""
ccswitch - Health Probing

Lightweight reachability/authorization check for a channel.

The probe sends the smallest possible completion request (one short user
message, max_tokens=1) and classifies the outcome:

- transport failure or timeout  -> Unhealthy(NETWORK)
- 401/403 auth, 429 rate limit  -> Unhealthy(REJECTED)
- other 4xx except 400          -> Unhealthy(REJECTED)
- 5xx                           -> Unhealthy(SERVER_ERROR)
- 2xx, 400                      -> Healthy

400 counts as healthy: the endpoint answered and accepted the credential,
it only disliked the probe payload (e.g. an unknown placeholder model).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..core.errors import ChannelRequestError, ErrorKind, error_from_response
from ..core.http_client import ChannelHttpClient
from ..core.models import AttemptOutcome, AttemptResult, Channel
from ..observability.logging import get_logger


logger = get_logger(__name__)

PROBE_PLACEHOLDER_MODEL = "test"


class UnhealthyReason(str, Enum):
    """Why a probe considered a channel unusable."""
    NETWORK = "network"
    REJECTED = "rejected"
    SERVER_ERROR = "server_error"


@dataclass
class HealthStatus:
    """Result of probing one channel."""
    channel_name: str
    healthy: bool
    reason: Optional[UnhealthyReason] = None
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    status_code: Optional[int] = None
    latency_ms: Optional[int] = None

    @classmethod
    def from_error(cls, channel_name: str, error: ChannelRequestError,
                   latency_ms: Optional[int] = None) -> "HealthStatus":
        return cls(
            channel_name=channel_name,
            healthy=False,
            reason=reason_for(error.kind),
            error_kind=error.kind,
            detail=error.detail,
            status_code=error.status_code,
            latency_ms=latency_ms,
        )

    def to_attempt(self) -> AttemptResult:
        """Attempt record for the router's report."""
        return AttemptResult(
            channel_name=self.channel_name,
            outcome=AttemptOutcome.SUCCESS if self.healthy else AttemptOutcome.UNHEALTHY,
            error_kind=self.error_kind,
            detail=self.detail,
            status_code=self.status_code,
            latency_ms=self.latency_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "channel": self.channel_name,
            "healthy": self.healthy,
        }
        if self.reason is not None:
            result["reason"] = self.reason.value
        if self.error_kind is not None:
            result["error_kind"] = self.error_kind.value
        if self.detail:
            result["detail"] = self.detail
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.latency_ms is not None:
            result["latency_ms"] = self.latency_ms
        return result


def reason_for(kind: ErrorKind) -> UnhealthyReason:
    if kind in (ErrorKind.TIMEOUT, ErrorKind.NETWORK):
        return UnhealthyReason.NETWORK
    if kind == ErrorKind.SERVER_ERROR:
        return UnhealthyReason.SERVER_ERROR
    return UnhealthyReason.REJECTED


def build_probe_payload(channel: Channel) -> Dict[str, Any]:
    return {
        "model": channel.model or PROBE_PLACEHOLDER_MODEL,
        "messages": [{"role": "user", "content": "Hello"}],
        "max_tokens": 1,
    }


class HealthProber:
    """Probes channels through a shared ChannelHttpClient."""

    def __init__(self, http_client: ChannelHttpClient):
        self.http_client = http_client

    async def probe(self, channel: Channel, timeout: float) -> HealthStatus:
        try:
            response = await self.http_client.post_json(
                channel,
                build_probe_payload(channel),
                timeout=timeout,
                step_name="probe",
            )
        except ChannelRequestError as e:
            logger.warning(
                f"Channel {channel.name} probe failed: {e.detail}",
                channel=channel.name,
                error_kind=e.kind.value,
            )
            return HealthStatus.from_error(channel.name, e)

        if response.is_success or response.status_code == 400:
            logger.debug(
                f"Channel {channel.name} is available (response time: {response.latency_ms}ms)",
                channel=channel.name,
            )
            return HealthStatus(
                channel_name=channel.name,
                healthy=True,
                status_code=response.status_code,
                latency_ms=response.latency_ms,
            )

        error = error_from_response(response.raw, channel.name)
        logger.warning(
            f"Channel {channel.name} returned error: {error.detail}",
            channel=channel.name,
            error_kind=error.kind.value,
            status_code=response.status_code,
        )
        return HealthStatus.from_error(channel.name, error, latency_ms=response.latency_ms)
