"""Trigger dispatcher: decides when the corpus is refreshed.

Four triggers funnel into one RefreshService:

1) Startup: one refresh if the corpus is empty
2) Timer: one refresh per tick on a fixed monotonic cadence
3) Event: refresh requests received over the event transport
4) Manual: published to the transport when connected, otherwise run directly

Startup and timer run in a single supervised task. Failures on the
background paths are logged and never stop the loop.
"""

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Optional

from corpus_refresh.core import (
    CorpusStore,
    EventTransport,
    InvalidRequestError,
    RefreshOutcome,
    RefreshPriority,
    RefreshRequest,
    RefreshResult,
    ShuttingDownError,
    TransportUnavailableError,
    pause,
)
from corpus_refresh.use_cases import RefreshService

logger = logging.getLogger(__name__)


@dataclass
class ManualTriggerResult:
    """Answer to a manual refresh request."""

    request_id: str
    batch_size: int
    queued: bool
    outcome: Optional[RefreshOutcome] = None
    total_items: Optional[int] = None


class RefreshDispatcher:
    """Run refreshes on startup, on a timer, on events and on demand."""

    def __init__(
        self,
        refresh_service: RefreshService,
        store: CorpusStore,
        transport: Optional[EventTransport] = None,
        *,
        default_batch_size: int = 200,
        startup_batch_size: Optional[int] = None,
        max_batch_size: int = 1000,
        interval_seconds: float = 3600.0,
        request_subject: str = "items.refresh",
        result_subject: str = "items.refresh.result",
        shutdown: Optional[asyncio.Event] = None,
        shutdown_grace_seconds: float = 30.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.refresh_service = refresh_service
        self.store = store
        self.transport = transport
        self.default_batch_size = default_batch_size
        self.startup_batch_size = (
            default_batch_size if startup_batch_size is None else startup_batch_size
        )
        self.max_batch_size = max_batch_size
        self.interval = interval_seconds
        self.request_subject = request_subject
        self.result_subject = result_subject
        self.shutdown = shutdown or asyncio.Event()
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.startup_complete = asyncio.Event()
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def transport_connected(self) -> bool:
        return self.transport is not None and self.transport.is_connected

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Connect the transport (best effort) and start the background loop."""
        if self._task is not None:
            return
        await self._connect_transport()
        self._task = asyncio.create_task(self._run(), name="refresh-dispatcher")
        self._task.add_done_callback(self._on_task_done)

    async def stop(self) -> None:
        """Signal shutdown, let the current refresh wind down, close the transport."""
        self.shutdown.set()

        if self._task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=self.shutdown_grace_seconds)
            except asyncio.TimeoutError:
                logger.warning(
                    "Refresh loop did not stop within %.0fs, cancelling", self.shutdown_grace_seconds
                )
                self._task.cancel()
                with suppress(asyncio.CancelledError):
                    await self._task

        if self.transport is not None:
            await self.transport.close()

    async def _connect_transport(self) -> None:
        if self.transport is None:
            logger.info("No event transport configured, refreshes run directly")
            return

        try:
            await self.transport.connect()
            await self.transport.subscribe(self.request_subject, self._on_refresh_message)
        except TransportUnavailableError as e:
            logger.warning("Event transport unavailable, continuing in direct mode: %s", e)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Refresh loop terminated unexpectedly", exc_info=exc)

    async def _run(self) -> None:
        try:
            await self.run_startup()
        finally:
            self.startup_complete.set()
        await self._run_timer()

    async def run_startup(self) -> Optional[RefreshResult]:
        """Populate an empty corpus. Returns None when nothing was run."""
        try:
            total = await self.store.count()
        except Exception:
            logger.exception("Could not read corpus size at startup, skipping initial refresh")
            return None

        if total > 0:
            logger.info("Found %d existing items, skipping initial refresh", total)
            return None

        logger.info("No items found, performing initial load")
        request = RefreshRequest(batch_size=self.startup_batch_size)
        return await self.execute(request, trigger="startup")

    async def _run_timer(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval
        logger.info("Refresh timer started with %.0fs interval", self.interval)

        while not self.shutdown.is_set():
            if await pause(max(0.0, next_tick - loop.time()), self.shutdown):
                break
            # The delay can elapse in the same iteration that stop() runs.
            if self.shutdown.is_set():
                break

            self.ticks += 1
            request = RefreshRequest(
                batch_size=self.default_batch_size, priority=RefreshPriority.SCHEDULED
            )
            await self.execute(request, trigger="timer")

            next_tick += self.interval
            now = loop.time()
            if next_tick < now:
                # Overran the interval: fire again right away and restart the cadence.
                next_tick = now

        logger.info("Refresh timer stopped")

    async def execute(self, request: RefreshRequest, trigger: str) -> RefreshResult:
        """Run one refresh for a background trigger, never raising."""
        if self.shutdown.is_set():
            logger.info("Shutdown in progress, not starting %s refresh %s", trigger, request.request_id)
            return RefreshResult(request_id=request.request_id, success=False, error="shutting down")

        logger.info(
            "Processing %s refresh request %s (batch size %d, priority %s)",
            trigger, request.request_id, request.batch_size, request.priority.value,
        )
        try:
            outcome = await self.refresh_service.refresh(request.batch_size, request.request_id)
        except Exception as e:
            logger.exception(
                "Failed to process %s refresh request %s (batch size %d)",
                trigger, request.request_id, request.batch_size,
            )
            return RefreshResult(request_id=request.request_id, success=False, error=str(e))

        return RefreshResult(
            request_id=request.request_id,
            success=outcome.committed,
            processed_count=outcome.success_count,
            failed_count=outcome.fail_count,
            error=None if outcome.committed else "interrupted by shutdown",
        )

    async def _on_refresh_message(self, data: bytes) -> None:
        try:
            request = RefreshRequest.from_json(data)
        except ValueError as e:
            logger.warning("Dropping invalid refresh request message: %s", e)
            return

        try:
            self.validate_batch_size(request.batch_size)
        except InvalidRequestError as e:
            logger.warning("Rejecting refresh request %s: %s", request.request_id, e)
            result = RefreshResult(request_id=request.request_id, success=False, error=str(e))
        else:
            result = await self.execute(request, trigger="event")

        await self._publish_result(result)

    async def _publish_result(self, result: RefreshResult) -> None:
        if not self.transport_connected:
            return
        try:
            await self.transport.publish(self.result_subject, result.to_json())
        except TransportUnavailableError as e:
            logger.warning("Could not publish result for %s: %s", result.request_id, e)

    def validate_batch_size(self, batch_size: int) -> None:
        """Raises InvalidRequestError unless 1 <= batch_size <= max_batch_size."""
        if batch_size < 1 or batch_size > self.max_batch_size:
            raise InvalidRequestError(f"Batch size must be between 1 and {self.max_batch_size}")

    async def trigger_manual(self, batch_size: int) -> ManualTriggerResult:
        """Queue a refresh on the transport, or run it here if that fails.

        Store errors on the direct path propagate to the caller.

        Raises:
            InvalidRequestError: If the batch size is out of range.
            ShuttingDownError: If shutdown started before the refresh could commit.
        """
        self.validate_batch_size(batch_size)
        if self.shutdown.is_set():
            raise ShuttingDownError("Service is shutting down")
        request = RefreshRequest(batch_size=batch_size, priority=RefreshPriority.MANUAL)

        if self.transport_connected:
            try:
                await self.transport.publish(self.request_subject, request.to_json())
                logger.info("Triggered refresh via event transport: %s", request.request_id)
                return ManualTriggerResult(
                    request_id=request.request_id, batch_size=batch_size, queued=True
                )
            except TransportUnavailableError as e:
                logger.warning("Event transport publish failed, performing direct refresh: %s", e)

        logger.info("Performing direct refresh %s with batch size %d", request.request_id, batch_size)
        outcome = await self.refresh_service.refresh(batch_size, request.request_id)
        if not outcome.committed:
            raise ShuttingDownError("Refresh interrupted by shutdown")
        total = await self.store.count()
        return ManualTriggerResult(
            request_id=request.request_id,
            batch_size=batch_size,
            queued=False,
            outcome=outcome,
            total_items=total,
        )
