"""
ccswitch - Request Executor

Performs the real chat-completion call against one channel and classifies
the outcome as Success(response) or Failed(ErrorKind, detail). Exactly one
outbound call per execution.
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..core.errors import ChannelRequestError, ErrorKind, error_from_response
from ..core.http_client import ChannelHttpClient
from ..core.models import (
    AttemptOutcome,
    AttemptResult,
    Channel,
    ChatResponse,
    RequestSpec,
)
from ..observability.logging import get_logger


logger = get_logger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of one executor call."""
    channel_name: str
    success: bool
    response: Optional[ChatResponse] = None
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    status_code: Optional[int] = None
    latency_ms: Optional[int] = None

    @classmethod
    def failed(cls, channel_name: str, error: ChannelRequestError,
               latency_ms: Optional[int] = None) -> "ExecutionResult":
        return cls(
            channel_name=channel_name,
            success=False,
            error_kind=error.kind,
            detail=error.detail,
            status_code=error.status_code,
            latency_ms=latency_ms,
        )

    def to_attempt(self) -> AttemptResult:
        return AttemptResult(
            channel_name=self.channel_name,
            outcome=AttemptOutcome.SUCCESS if self.success else AttemptOutcome.FAILED,
            error_kind=self.error_kind,
            detail=self.detail,
            status_code=self.status_code,
            latency_ms=self.latency_ms,
        )


def extract_content(data: Any) -> Optional[str]:
    """
    Pull the assistant text out of a chat response body.

    Tried in order:
    - OpenAI:  choices[0].message.content, then choices[0].delta.content
    - Claude:  content as a string, then content[0].text
    - Generic: top-level "text", then top-level "response"
    """
    if not isinstance(data, dict):
        return None

    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0] if isinstance(choices[0], dict) else {}
        for key in ("message", "delta"):
            part = first.get(key)
            if isinstance(part, dict) and isinstance(part.get("content"), str):
                return part["content"]

    content = data.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, dict) and isinstance(first.get("text"), str):
            return first["text"]

    for key in ("text", "response"):
        if isinstance(data.get(key), str):
            return data[key]

    return None


def parse_chat_response(data: Any, model: str) -> ChatResponse:
    """
    Build a ChatResponse from a parsed body.

    Raises:
        ChannelRequestError: MALFORMED if no content can be extracted
    """
    content = extract_content(data)
    if content is None:
        raise ChannelRequestError(
            ErrorKind.MALFORMED,
            "Could not extract content from response",
        )

    return ChatResponse(
        content=content,
        model=data.get("model") or model,
        usage=data.get("usage"),
        raw=data,
    )


class RequestExecutor:
    """Executes chat-completion requests through a shared ChannelHttpClient."""

    def __init__(self, http_client: ChannelHttpClient):
        self.http_client = http_client

    async def execute(
        self,
        channel: Channel,
        request: RequestSpec,
        timeout: float,
        model: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> ExecutionResult:
        """
        Send `request` to `channel`.

        Args:
            channel: Channel to call
            request: The logical request
            timeout: Hard deadline for the call in seconds
            model: Resolved model name (defaults to request.model, then channel.model)
            request_id: Correlation id sent as X-Request-ID

        Returns:
            ExecutionResult; never raises for channel failures
        """
        model = model or request.model or channel.model or ""
        payload = request.to_payload(model)

        logger.info(
            f"Sending request to channel: {channel.name}",
            channel=channel.name,
            model=model,
        )

        try:
            response = await self.http_client.post_json(
                channel,
                payload,
                timeout=timeout,
                step_name="request",
                request_id=request_id,
            )
        except ChannelRequestError as e:
            return ExecutionResult.failed(channel.name, e)

        if not response.is_success:
            error = error_from_response(response.raw, channel.name)
            logger.error(
                f"API request failed with status {response.status_code}: {error.detail}",
                channel=channel.name,
                status_code=response.status_code,
            )
            return ExecutionResult.failed(channel.name, error, latency_ms=response.latency_ms)

        if response.data is None:
            error = ChannelRequestError(
                ErrorKind.MALFORMED,
                f"Failed to parse response: {response.text[:100]!r}",
                channel=channel.name,
                status_code=response.status_code,
            )
            return ExecutionResult.failed(channel.name, error, latency_ms=response.latency_ms)

        try:
            chat_response = parse_chat_response(response.data, model)
        except ChannelRequestError as e:
            e.channel = channel.name
            e.status_code = response.status_code
            return ExecutionResult.failed(channel.name, e, latency_ms=response.latency_ms)

        return ExecutionResult(
            channel_name=channel.name,
            success=True,
            response=chat_response,
            status_code=response.status_code,
            latency_ms=response.latency_ms,
        )
