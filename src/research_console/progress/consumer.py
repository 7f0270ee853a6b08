"""Bridges a run's server-pushed progress events into a ProgressStore."""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Iterable, Mapping, Optional, Protocol

from ..exceptions import CancelRequestError, MalformedEventError, StreamConnectionError
from ..observability import bind_run_context, clear_run_context, get_run_logger, step_context
from .models import DEFAULT_PIPELINE, EstimateEvent, ProgressEvent, StepDefinition, StepEvent, parse_event
from .store import ProgressStore

if TYPE_CHECKING:
    from ..api import CancelAck

logger = logging.getLogger(__name__)

CONNECTION_INTERRUPTED = "Connection interrupted. Attempting to reconnect..."
DEFAULT_FAILURE_DETAIL = "Step failed"


class ProgressTransport(Protocol):
    """Source of progress events and sink for cancel signals."""

    def stream(self, run_id: str) -> AsyncIterator[str]: ...

    async def cancel(self, run_id: str) -> "CancelAck": ...


class ProgressConsumer:
    """Applies a run's event stream to a ProgressStore for the lifetime of one subscription.

    Events are applied one at a time in delivery order. The consumer only
    suspends while waiting for the connection or the next event, so each
    store operation runs to completion before the next event is handled.

    Usage::

        async with ProgressConsumer(run_id, store, client) as consumer:
            await consumer.wait()
    """

    def __init__(
        self,
        run_id: str,
        store: ProgressStore,
        transport: ProgressTransport,
        steps: Iterable[StepDefinition | Mapping[str, Any]] = DEFAULT_PIPELINE,
        on_notice: Optional[Callable[[str | None], None]] = None,
    ):
        self.run_id = run_id
        self.store = store
        self.transport = transport
        self.steps = tuple(steps)
        self.on_notice = on_notice
        self.started_at: int | None = None
        self.connection_error: str | None = None
        self._task: asyncio.Task | None = None
        self._cancel_task: asyncio.Task | None = None
        self._closed = False

    # --- Event handling ---

    def apply(self, event: ProgressEvent) -> None:
        """Dispatch a parsed event to the matching store operation."""
        if isinstance(event, EstimateEvent):
            self.store.set_estimated_time(event.seconds)
        elif isinstance(event, StepEvent):
            with step_context(event.step_id):
                get_run_logger().debug("progress_step_event", status=event.status)
                if event.status == "active":
                    self.store.start_step(event.step_id, event.detail)
                elif event.status == "completed":
                    self.store.complete_step(event.step_id, event.metadata)
                elif event.status == "error":
                    detail = event.detail if event.detail is not None else DEFAULT_FAILURE_DETAIL
                    self.store.fail_step(event.step_id, detail)

    def handle_message(self, raw: str | bytes | Mapping[str, Any]) -> ProgressEvent | None:
        """Parse and apply one raw message. Malformed messages are logged and dropped."""
        self._set_notice(None)
        try:
            event = parse_event(raw)
        except MalformedEventError as e:
            get_run_logger().warning("progress_event_dropped", reason=str(e))
            return None

        self.apply(event)
        return event

    # --- Subscription lifecycle ---

    async def listen(self) -> None:
        """Consume the stream until it ends or the connection fails.

        A connection failure is surfaced through ``connection_error`` and
        ``on_notice``; progress recorded so far is kept.
        """
        bind_run_context(self.run_id)
        run_logger = get_run_logger()
        run_logger.info("progress_subscribed")
        try:
            async for raw in self.transport.stream(self.run_id):
                self.handle_message(raw)
            self._set_notice(None)
            run_logger.info("progress_stream_closed")
        except StreamConnectionError as e:
            run_logger.warning("progress_stream_interrupted", error=str(e))
            self._set_notice(CONNECTION_INTERRUPTED)
        finally:
            clear_run_context()

    def start(self) -> asyncio.Task:
        """Initialize the run's steps and open the subscription."""
        if self._closed:
            raise RuntimeError(f"Consumer for run {self.run_id} is closed")
        self.store.initialize(self.steps)
        self.started_at = int(time.time() * 1000)
        return self._subscribe()

    def reconnect(self) -> asyncio.Task:
        """Open a new subscription after an interruption, keeping recorded progress."""
        if self._closed:
            raise RuntimeError(f"Consumer for run {self.run_id} is closed")
        if self._task and not self._task.done():
            return self._task
        logger.info(f"Reconnecting to progress stream for run {self.run_id}")
        return self._subscribe()

    def _subscribe(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.listen(), name=f"progress-{self.run_id}")
        return self._task

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    async def wait(self) -> None:
        """Wait until the current subscription ends."""
        if self._task:
            await asyncio.wait({self._task})

    def close(self) -> None:
        """Tear down: close the subscription and reset the store exactly once."""
        if self._closed:
            return
        self._closed = True
        if self._task and not self._task.done():
            self._task.cancel()
        self.store.reset()
        logger.debug(f"Closed progress consumer for run {self.run_id}")

    async def aclose(self) -> None:
        """Close and wait for the listening task to finish unwinding."""
        self.close()
        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "ProgressConsumer":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Cancellation ---

    async def cancel_run(self) -> bool:
        """Ask the backend to abandon the run.

        A failure is surfaced as a notice; local progress is left as is.

        Returns:
            True if the backend acknowledged the cancel
        """
        try:
            await self.transport.cancel(self.run_id)
        except CancelRequestError as e:
            logger.warning(f"Cancel failed for run {self.run_id}: {e}")
            self._set_notice(str(e) or "Unable to cancel query")
            return False
        return True

    def request_cancel(self) -> asyncio.Task:
        """Send the cancel signal without waiting for the answer."""
        self._cancel_task = asyncio.create_task(self.cancel_run(), name=f"cancel-{self.run_id}")
        return self._cancel_task

    # --- Timing ---

    def elapsed_seconds(self, now_ms: int | None = None) -> int:
        """Whole seconds since start(), 0 before the run was started."""
        if self.started_at is None:
            return 0
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return round((now_ms - self.started_at) / 1000)

    def remaining_seconds(self, now_ms: int | None = None) -> float | None:
        return self.store.remaining_seconds(self.elapsed_seconds(now_ms))

    def _set_notice(self, notice: str | None) -> None:
        if notice == self.connection_error:
            return
        self.connection_error = notice
        if self.on_notice:
            self.on_notice(notice)
