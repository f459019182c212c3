"""
ccswitch - Router Service

Failover orchestration for one logical chat-completion request:
- Snapshot the registry, resolve the model, compute the eligible order
- Walk the channels strictly in order, probing first unless disabled
- Stop at the first success; otherwise record the failure and move on
- Bound the walk by retry_attempts distinct channels
- Honour an external cancellation event at any point
"""

import asyncio
from typing import Awaitable, Iterable, List, Optional, Tuple, TypeVar

from ..core.errors import RouteCancelledError
from ..core.http_client import ChannelHttpClient, new_request_id
from ..core.models import (
    AttemptResult,
    Channel,
    ChatResponse,
    RequestSpec,
    Settings,
)
from ..observability.logging import LogContext, TimedOperation, get_logger
from ..observability.metrics import MetricsCollector, get_metrics
from ..observability.tracing import (
    TracingManager,
    get_tracing_manager,
    mark_span_error,
    trace_channel_call,
)
from .executor import RequestExecutor
from .fallback import FailoverChain, RouteFailureKind, RouteResult
from .health import HealthProber, HealthStatus
from .registry import ChannelRegistry


logger = get_logger(__name__)

T = TypeVar("T")


async def run_cancellable(call: Awaitable[T], cancel_event: Optional[asyncio.Event]) -> T:
    """
    Await `call` unless `cancel_event` fires first.

    When the event wins, the in-flight call is cancelled and awaited so its
    connection is released before RouteCancelledError is raised.
    """
    if cancel_event is None:
        return await call

    task = asyncio.ensure_future(call)
    if cancel_event.is_set():
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise RouteCancelledError()

    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
        await asyncio.gather(task, waiter, return_exceptions=True)

    if task.cancelled():
        raise RouteCancelledError()
    return task.result()


class Router:
    """
    Failover router over a channel registry.

    Usage:
        async with Router(registry, settings) as router:
            result = await router.route(RequestSpec.from_prompt("Hello"))
            if result.success:
                print(result.response.content)

    The router never mutates the registry it is given; every route works on
    a snapshot taken when the route starts.
    """

    def __init__(
        self,
        registry: ChannelRegistry,
        settings: Optional[Settings] = None,
        http_client: Optional[ChannelHttpClient] = None,
        prober: Optional[HealthProber] = None,
        executor: Optional[RequestExecutor] = None,
        metrics: Optional[MetricsCollector] = None,
        tracing: Optional[TracingManager] = None,
    ):
        """
        Args:
            registry: Channels to route over
            settings: Routing settings (defaults to Settings())
            http_client: Shared HTTP client; created if not given
            prober: Health prober (defaults to one on the shared client)
            executor: Request executor (defaults to one on the shared client)
            metrics: Metrics collector (defaults to the global collector)
            tracing: Tracing manager (defaults to the global manager)
        """
        self.registry = registry
        self.settings = settings or Settings()
        self.http_client = http_client or ChannelHttpClient()
        self.prober = prober or HealthProber(self.http_client)
        self.executor = executor or RequestExecutor(self.http_client)
        self.metrics = metrics or get_metrics()
        self.tracing = tracing or get_tracing_manager()

    async def aclose(self):
        await self.http_client.close()

    async def __aenter__(self) -> "Router":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # ============================================================
    # Routing
    # ============================================================

    async def route(
        self,
        request: RequestSpec,
        cancel_event: Optional[asyncio.Event] = None,
        request_id: Optional[str] = None,
    ) -> RouteResult:
        """
        Route a chat completion request.

        Args:
            request: The logical request
            cancel_event: Set it to abort the in-flight call and stop routing
            request_id: Correlation id (generated if not given)

        Returns:
            RouteResult: success with the channel used and prior failures, or
            a NO_ELIGIBLE_CHANNEL / ALL_CHANNELS_FAILED / CANCELLED failure
        """
        snapshot = self.registry.snapshot()
        model = self.settings.resolve_model(request.model)
        request_id = request_id or new_request_id()

        token = LogContext.set_current(LogContext(request_id=request_id, model=model))
        try:
            with self.tracing.start_span(
                "ccswitch.route",
                attributes={"ccswitch.model": model, "ccswitch.request_id": request_id},
            ) as span:
                result = await self._route(snapshot, request, model, cancel_event, request_id)

                span.set_attribute("ccswitch.attempts", len(result.attempts))
                if result.success:
                    span.set_attribute("ccswitch.channel_used", result.channel_used)
                else:
                    mark_span_error(span, result.failure_kind.value)
        finally:
            LogContext.reset(token)

        outcome = "success" if result.success else result.failure_kind.value
        self.metrics.record_route(model, outcome)
        return result

    async def _route(
        self,
        snapshot: ChannelRegistry,
        request: RequestSpec,
        model: str,
        cancel_event: Optional[asyncio.Event],
        request_id: str,
    ) -> RouteResult:
        chain = FailoverChain(snapshot.eligible_for(model), self.settings.retry_attempts)

        if not chain.channels:
            logger.error(f"No available channels for model '{model}'")
            return chain.fail(model, RouteFailureKind.NO_ELIGIBLE_CHANNEL)

        logger.info(
            f"Making request for model: {model}",
            eligible=[ch.name for ch in chain.channels],
            max_attempts=chain.limit,
        )

        previous: Optional[AttemptResult] = None
        while not chain.is_exhausted():
            channel = chain.get_next()

            if previous is not None:
                reason = previous.error_kind.value if previous.error_kind else previous.outcome.value
                logger.warning(f"Fallback: {previous.channel_name} -> {channel.name} ({reason})")
                self.metrics.record_fallback(previous.channel_name, channel.name, reason)

            try:
                attempt, response = await self._attempt(
                    channel, request, model, cancel_event, request_id
                )
            except RouteCancelledError:
                logger.warning(
                    f"Request cancelled while trying channel {channel.name}",
                    attempted=len(chain.attempts),
                )
                return chain.fail(model, RouteFailureKind.CANCELLED)

            if response is not None:
                logger.info(
                    f"Response from {channel.name}",
                    prior_failures=len(chain.attempts),
                )
                return chain.succeed(model, channel, response)

            chain.record_attempt(attempt)
            previous = attempt

        logger.error(
            "All channels failed: " + "; ".join(a.describe() for a in chain.attempts),
            attempted=len(chain.attempts),
        )
        return chain.fail(model, RouteFailureKind.ALL_CHANNELS_FAILED)

    async def _attempt(
        self,
        channel: Channel,
        request: RequestSpec,
        model: str,
        cancel_event: Optional[asyncio.Event],
        request_id: str,
    ) -> Tuple[AttemptResult, Optional[ChatResponse]]:
        """Probe (optionally) and execute against one channel."""
        ctx = LogContext.get_current()
        if ctx:
            ctx.update(channel=channel.name)

        if self.settings.probe_before_request:
            status = await self._probe(
                channel, model, cancel_event, self.settings.probe_timeout_for(channel)
            )
            if not status.healthy:
                return status.to_attempt(), None

        with trace_channel_call(channel.name, model, "chat", tracing=self.tracing) as span:
            result = await run_cancellable(
                self.executor.execute(
                    channel,
                    request,
                    timeout=self.settings.timeout_for(channel),
                    model=model,
                    request_id=request_id,
                ),
                cancel_event,
            )
            if result.status_code is not None:
                span.set_attribute("http.status_code", result.status_code)
            if not result.success:
                mark_span_error(span, result.error_kind.value)

        attempt = result.to_attempt()
        self.metrics.record_attempt(
            channel.name,
            attempt.outcome.value,
            attempt.error_kind.value if attempt.error_kind else None,
            duration_seconds=(result.latency_ms / 1000) if result.latency_ms is not None else None,
        )

        if result.success:
            return attempt, result.response

        logger.warning(
            f"Channel {channel.name} failed: {attempt.describe()}",
            error_kind=attempt.error_kind.value,
            detail=attempt.detail,
        )
        return attempt, None

    async def _probe(
        self,
        channel: Channel,
        model: str,
        cancel_event: Optional[asyncio.Event],
        timeout: float,
    ) -> HealthStatus:
        logger.debug(f"Testing channel: {channel.name}")

        with trace_channel_call(channel.name, model, "probe", tracing=self.tracing) as span:
            status = await run_cancellable(self.prober.probe(channel, timeout), cancel_event)
            if not status.healthy:
                mark_span_error(span, status.reason.value)

        self.metrics.record_health_check(channel.name, status.healthy)
        if not status.healthy:
            self.metrics.record_attempt(
                channel.name,
                status.to_attempt().outcome.value,
                status.error_kind.value if status.error_kind else None,
            )
        return status

    # ============================================================
    # Channel Testing
    # ============================================================

    async def test_channels(self, names: Optional[Iterable[str]] = None) -> List[HealthStatus]:
        """
        Probe the named channels, or every enabled channel when `names` is None.

        Results follow registry order. Probes are independent and run
        concurrently.

        Raises:
            ChannelNotFoundError: a requested name is not registered
        """
        snapshot = self.registry.snapshot()

        if names is None:
            channels = snapshot.list()
        else:
            wanted = set(names)
            for name in sorted(wanted):
                snapshot.get(name)
            channels = [ch for ch in snapshot.all() if ch.name in wanted]

        async with TimedOperation("test_channels", logger, extra={"channels": len(channels)}):
            statuses = await asyncio.gather(*(
                self._probe(
                    channel,
                    channel.model or "",
                    None,
                    self.settings.probe_timeout_for(channel),
                )
                for channel in channels
            ))
        return list(statuses)
