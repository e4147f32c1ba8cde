"""Rate-limited FIFO queue that serializes outbound sends.

The messaging backend is a single-account session: concurrent sends risk
out-of-order delivery or backend-side throttling. Every send therefore goes
through one ``SendQueue`` that:

- dispatches jobs in FIFO order,
- keeps at most ``concurrency_limit`` jobs running (1 by default),
- waits at least ``min_interval_ms`` between two consecutive dispatch starts,
- can be paused, resumed and cleared at runtime.

The queue only decides *when* a task runs. A task's result or exception is
delivered unchanged through the future returned by ``submit``.

Notes:
- Per-process only, state is lost on restart.
- Not thread-safe: all calls must happen on the event loop that runs it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal, TypeVar

from signal_gateway.core.errors import QueueClearedError
from signal_gateway.schemas.status import QueueStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

QueueEventKind = Literal["active", "idle", "paused", "resumed", "cleared"]


@dataclass(frozen=True)
class QueueEvent:
    """State transition notification passed to the queue listener.

    Attributes:
        kind: Transition type.
        at: Clock value when it happened (the dispatch start for "active").
        pending: Waiting jobs after the transition.
        running: Running jobs after the transition.
        label: Job label for "active" events.
        count: Discarded jobs for "cleared" events.
    """

    kind: QueueEventKind
    at: float
    pending: int
    running: int
    label: str | None = None
    count: int = 0


QueueListener = Callable[[QueueEvent], None]


@dataclass
class _Entry:
    task: Callable[[], Awaitable[Any]]
    future: asyncio.Future
    label: str | None


class SendQueue:
    """Single-lane send queue with a minimum dispatch interval.

    The dispatcher coroutine is started lazily on the first ``submit`` so the
    queue can be built before an event loop is running.
    """

    def __init__(
        self,
        *,
        concurrency_limit: int = 1,
        min_interval_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        listener: QueueListener | None = None,
    ) -> None:
        """Initialize the queue.

        Args:
            concurrency_limit: Maximum number of tasks running at once.
            min_interval_ms: Minimum time between two dispatch starts.
            clock: Monotonic time source in seconds.
            listener: Optional callback for state transitions.

        Raises:
            ValueError: If concurrency_limit or min_interval_ms are invalid.
        """
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be >= 1")
        if min_interval_ms < 0:
            raise ValueError("min_interval_ms must be >= 0")

        self._concurrency_limit = concurrency_limit
        self._min_interval_ms = min_interval_ms
        self._clock = clock
        self._listener = listener

        self._waiting: deque[_Entry] = deque()
        self._running = 0
        self._running_tasks: set[asyncio.Task] = set()
        self._paused = False
        self._closed = False
        self._last_dispatch: float | None = None
        self._dispatcher: asyncio.Task | None = None
        self._wakeup = asyncio.Event()

    @property
    def concurrency_limit(self) -> int:
        return self._concurrency_limit

    @property
    def min_interval_ms(self) -> int:
        return self._min_interval_ms

    @property
    def paused(self) -> bool:
        return self._paused

    # ------------------------------------------------------------------ #
    # Public API

    def submit(self, task: Callable[[], Awaitable[T]], *, label: str | None = None) -> asyncio.Future:
        """Append a task to the queue.

        Args:
            task: Zero-argument coroutine function performing one send.
            label: Optional identifier used in logs and events.

        Returns:
            Future resolved with the task's result or rejected with its
            exception. Rejected with QueueClearedError if the task is
            discarded before dispatch.

        Raises:
            QueueClearedError: If the queue has been closed.
        """
        if self._closed:
            raise QueueClearedError(
                code="queue_closed",
                message="Send queue is shut down",
            )

        self._ensure_started()
        future = asyncio.get_running_loop().create_future()
        self._waiting.append(_Entry(task=task, future=future, label=label))
        self._wakeup.set()
        return future

    async def enqueue(self, task: Callable[[], Awaitable[T]], *, label: str | None = None) -> T:
        """Submit a task and wait for its result."""
        return await self.submit(task, label=label)

    def status(self) -> QueueStatus:
        return QueueStatus(
            initialized=self._dispatcher is not None,
            pending=self._pending_count(),
            running=self._running,
            paused=self._paused,
            concurrency_limit=self._concurrency_limit,
            min_interval_ms=self._min_interval_ms,
        )

    def pause(self) -> None:
        """Stop dispatching new tasks. Running tasks are not interrupted."""
        if self._paused:
            return
        self._paused = True
        logger.info("send_queue.paused", extra={"pending": self._pending_count()})
        self._emit("paused")

    def resume(self) -> None:
        """Re-enable dispatching."""
        if not self._paused:
            return
        self._paused = False
        self._wakeup.set()
        logger.info("send_queue.resumed", extra={"pending": self._pending_count()})
        self._emit("resumed")

    def clear(self) -> int:
        """Discard every task that has not started yet.

        Returns:
            Number of discarded tasks; their futures fail with QueueClearedError.
        """
        dropped = self._reject_waiting(
            code="queue_cleared",
            message="Send was discarded before dispatch because the queue was cleared",
        )
        logger.info("send_queue.cleared", extra={"dropped": dropped, "running": self._running})
        self._emit("cleared", count=dropped)
        return dropped

    async def close(self) -> None:
        """Stop the dispatcher and wait for running tasks to finish."""
        self._closed = True
        dropped = self._reject_waiting(
            code="queue_closed",
            message="Send was discarded before dispatch because the service is shutting down",
        )

        if self._dispatcher is not None:
            self._dispatcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._dispatcher

        if self._running_tasks:
            await asyncio.gather(*self._running_tasks, return_exceptions=True)

        logger.info("send_queue.closed", extra={"dropped": dropped})

    # ------------------------------------------------------------------ #
    # Dispatch

    def _ensure_started(self) -> None:
        if self._dispatcher is not None:
            return
        self._dispatcher = asyncio.get_running_loop().create_task(self._dispatch_loop())
        logger.info(
            "send_queue.initialized",
            extra={
                "concurrency_limit": self._concurrency_limit,
                "min_interval_ms": self._min_interval_ms,
            },
        )

    def _pending_count(self) -> int:
        return sum(1 for entry in self._waiting if not entry.future.done())

    def _discard_abandoned(self) -> None:
        # Callers that stopped waiting (e.g. client disconnect) cancel their future.
        while self._waiting and self._waiting[0].future.done():
            self._waiting.popleft()

    def _can_dispatch(self) -> bool:
        self._discard_abandoned()
        return (
            not self._paused
            and bool(self._waiting)
            and self._running < self._concurrency_limit
        )

    async def _dispatch_loop(self) -> None:
        interval = self._min_interval_ms / 1000
        while True:
            while not self._can_dispatch():
                self._wakeup.clear()
                await self._wakeup.wait()

            if self._last_dispatch is not None:
                delay = self._last_dispatch + interval - self._clock()
                if delay > 0:
                    await asyncio.sleep(delay)
                    # Paused, cleared or abandoned while sleeping: re-check.
                    continue

            self._start(self._waiting.popleft())

    def _start(self, entry: _Entry) -> None:
        now = self._clock()
        self._last_dispatch = now
        self._running += 1

        task = asyncio.get_running_loop().create_task(self._execute(entry))
        self._running_tasks.add(task)
        task.add_done_callback(self._running_tasks.discard)

        logger.debug(
            "send_queue.task_started",
            extra={"label": entry.label, "pending": self._pending_count(), "running": self._running},
        )
        self._emit("active", at=now, label=entry.label)

    async def _execute(self, entry: _Entry) -> None:
        try:
            result = await entry.task()
        except asyncio.CancelledError:
            if not entry.future.done():
                entry.future.cancel()
            raise
        except Exception as exc:
            if not entry.future.done():
                entry.future.set_exception(exc)
        else:
            if not entry.future.done():
                entry.future.set_result(result)
        finally:
            self._running -= 1
            self._wakeup.set()
            if not self._waiting and self._running == 0:
                logger.debug("send_queue.idle")
                self._emit("idle")

    def _reject_waiting(self, *, code: str, message: str) -> int:
        dropped = 0
        while self._waiting:
            entry = self._waiting.popleft()
            if entry.future.done():
                continue
            entry.future.set_exception(QueueClearedError(code=code, message=message))
            dropped += 1
        return dropped

    def _emit(
        self,
        kind: QueueEventKind,
        *,
        at: float | None = None,
        label: str | None = None,
        count: int = 0,
    ) -> None:
        if self._listener is None:
            return
        event = QueueEvent(
            kind=kind,
            at=self._clock() if at is None else at,
            pending=self._pending_count(),
            running=self._running,
            label=label,
            count=count,
        )
        try:
            self._listener(event)
        except Exception:
            logger.exception("send_queue.listener_failed", extra={"event_kind": kind})
