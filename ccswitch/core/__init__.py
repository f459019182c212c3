"""
ccswitch Core Module

Data models, the error taxonomy and the channel HTTP client.
"""

from .models import (
    AttemptOutcome,
    AttemptResult,
    Channel,
    ChatResponse,
    RequestSpec,
    Settings,
    DEFAULT_MODEL_FALLBACK,
)

from .errors import (
    ErrorKind,
    CCSwitchError,
    ConfigError,
    RegistryError,
    DuplicateChannelError,
    ChannelNotFoundError,
    InvalidChannelError,
    ChannelRequestError,
    RoutingError,
    NoEligibleChannelError,
    AllChannelsFailedError,
    RouteCancelledError,
    classify_exception,
    classify_status,
)

from .http_client import ChannelHttpClient, ChannelResponse

__all__ = [
    # Models
    "AttemptOutcome",
    "AttemptResult",
    "Channel",
    "ChatResponse",
    "RequestSpec",
    "Settings",
    "DEFAULT_MODEL_FALLBACK",
    # Errors
    "ErrorKind",
    "CCSwitchError",
    "ConfigError",
    "RegistryError",
    "DuplicateChannelError",
    "ChannelNotFoundError",
    "InvalidChannelError",
    "ChannelRequestError",
    "RoutingError",
    "NoEligibleChannelError",
    "AllChannelsFailedError",
    "RouteCancelledError",
    "classify_exception",
    "classify_status",
    # HTTP
    "ChannelHttpClient",
    "ChannelResponse",
]
