"""
Rate-governed dispatcher for rate-limited explorer APIs.

Callers from anywhere in the application submit parameter mappings; a single
drain task services them one at a time in FIFO order, spacing dispatch
starts by at least ``1 / rate_per_second``. One dispatcher governs one
remote quota, so every API gets its own instance.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog

from .exceptions import (
    DispatchCancelledError,
    ExplorerError,
    RateLimitedError,
    TransportError,
)
from .models import DispatcherConfig, DispatcherCounters, PendingCall

Adapter = Callable[[Mapping[str, str]], Awaitable[Any]]

logger = structlog.get_logger(__name__)


class RateGovernedDispatcher:
    """
    Serializes outbound calls to one remote API under a fixed rate ceiling.

    Invariants:
    - at most one outbound call in flight
    - dispatch starts are at least ``min_interval`` apart
    - every submitted call resolves exactly once
    - at most one drain task alive per instance
    """

    def __init__(self, config: DispatcherConfig, adapter: Adapter):
        self.config = config
        self._adapter = adapter
        self._queue: deque[PendingCall] = deque()
        self._last_dispatch: float | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._in_flight: PendingCall | None = None
        self._sequence = 0
        self.counters = DispatcherCounters()
        self._log = logger.bind(api=config.api)

    async def __aenter__(self) -> RateGovernedDispatcher:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Fail queued calls and let an in-flight call settle."""
        self.clear()
        task = self._drain_task
        if task is not None and not task.done():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    @property
    def min_interval_ms(self) -> int:
        return self.config.min_interval_ms

    def submit(self, parameters: Mapping[str, str]) -> asyncio.Future[Any]:
        """
        Append a call to the queue and return the future for its outcome.

        The append is synchronous, so the order of ``submit`` calls is the
        service order. Must be called with a running event loop.
        """
        loop = asyncio.get_running_loop()
        self._sequence += 1
        call = PendingCall(
            parameters=dict(parameters),
            future=loop.create_future(),
            sequence=self._sequence,
        )
        self._queue.append(call)
        self._log.debug(
            "Call queued",
            sequence=call.sequence,
            queue_depth=len(self._queue),
        )

        if not self.is_busy():
            self._drain_task = loop.create_task(self._drain())
        return call.future

    async def enqueue(self, parameters: Mapping[str, str]) -> Any:
        """Submit a call and wait for its decoded result."""
        return await self.submit(parameters)

    def queue_depth(self) -> int:
        return len(self._queue)

    def estimated_wait_ms(self) -> int:
        # Ignores the remaining time of the in-flight call.
        return self.queue_depth() * self.min_interval_ms

    def is_busy(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def clear(self) -> None:
        """
        Fail every queued call with DispatchCancelledError and stop draining.

        A call already handed to the adapter is not interrupted; it
        completes and its outcome is still delivered.
        """
        cancelled = self._fail_queued()

        if self._in_flight is None and self._drain_task is not None:
            self._drain_task.cancel()
            self._drain_task = None

        self._log.debug(
            "Queue cleared",
            cancelled=cancelled,
            in_flight=self._in_flight is not None,
        )

    def get_statistics(self) -> dict[str, Any]:
        """Queue statistics for UI polling."""
        return {
            "api": self.config.api,
            "queue_length": self.queue_depth(),
            "is_processing": self.is_busy(),
            "request_delay": self.min_interval_ms,
            "rate_limit_per_second": self.config.rate_per_second,
            "estimated_wait_ms": self.estimated_wait_ms(),
            "dispatched": self.counters.dispatched,
            "succeeded": self.counters.succeeded,
            "failed": self.counters.failed,
            "rate_limited": self.counters.rate_limited,
            "cancelled": self.counters.cancelled,
        }

    def _pacing_delay(self, now: float) -> float:
        if self._last_dispatch is None:
            return 0.0
        elapsed = now - self._last_dispatch
        return max(0.0, self.config.min_interval - elapsed)

    async def _drain(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            while self._queue:
                delay = self._pacing_delay(loop.time())
                if delay > 0:
                    await asyncio.sleep(delay)
                    # clear() may have emptied the queue while we slept
                    continue

                call = self._queue.popleft()
                if call.future.done():
                    # caller gave up before dispatch
                    continue

                self._last_dispatch = loop.time()
                self._in_flight = call
                self.counters.dispatched += 1
                self._log.debug(
                    "Call dispatched",
                    sequence=call.sequence,
                    queue_depth=len(self._queue),
                )
                try:
                    result = await self._adapter(call.parameters)
                except asyncio.CancelledError:
                    if not call.future.done():
                        call.future.cancel()
                    raise
                except Exception as e:
                    self._record_failure(call, e)
                else:
                    self.counters.succeeded += 1
                    if not call.future.done():
                        call.future.set_result(result)
                finally:
                    self._in_flight = None
        except asyncio.CancelledError:
            # teardown: queued calls resolve as cancelled. After clear() a
            # successor task may already own the queue.
            if self._drain_task is asyncio.current_task():
                self._fail_queued()
            raise
        finally:
            if self._drain_task is asyncio.current_task():
                self._drain_task = None

    def _fail_queued(self) -> int:
        pending = list(self._queue)
        self._queue.clear()

        cancelled = 0
        for call in pending:
            if not call.future.done():
                call.future.set_exception(
                    DispatchCancelledError(api=self.config.api)
                )
                cancelled += 1
        self.counters.cancelled += cancelled
        return cancelled

    def _record_failure(self, call: PendingCall, error: Exception) -> None:
        if not isinstance(error, ExplorerError):
            wrapped = TransportError(
                f"{type(error).__name__}: {error}", api=self.config.api
            )
            wrapped.__cause__ = error
            error = wrapped

        self.counters.failed += 1
        if isinstance(error, RateLimitedError):
            self.counters.rate_limited += 1

        self._log.warning(
            "Call failed",
            sequence=call.sequence,
            error_type=type(error).__name__,
            error_message=str(error),
            queue_depth=len(self._queue),
            parameters={
                k: v for k, v in call.parameters.items() if k != "apikey"
            },
        )
        if not call.future.done():
            call.future.set_exception(error)
