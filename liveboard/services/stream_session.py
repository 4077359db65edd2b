"""Per-connection event stream sessions.

A session merges two delivery paths into one outbound frame queue:
- pushes from the event bus (fast, but only for writes seen by this process)
- periodic reconciliation against the store (slower, but correct across
  processes): the latest ids are re-read, diffed against the snapshot of
  what this connection was last told, and the missing Created / Updated /
  Deleted events are synthesized

Both paths may report the same change; clients apply events idempotently.
A heartbeat ping keeps intermediaries from timing the connection out.

Lifecycle is ``CONNECTING -> OPEN -> CLOSED``. ``close()`` is idempotent and
flips the state before releasing anything, so timer callbacks and bus
handlers racing with it observe ``CLOSED`` and emit nothing further.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
import uuid
from typing import AsyncIterator, Callable

from liveboard.adapters.events.base import AbstractEventBus
from liveboard.core.config import StreamSettings
from liveboard.core.errors import StreamDeliveryError, UpstreamUnavailableError
from liveboard.core.logging import set_stream_id
from liveboard.schemas import events
from liveboard.schemas.events import (
    DomainEvent,
    Ping,
    QuestionCreated,
    QuestionDeleted,
    QuestionUpdated,
    sse_frame,
)
from liveboard.services.question_service import QuestionService

logger = logging.getLogger(__name__)

_CLOSED_SENTINEL = object()


def _now_ms() -> int:
    return int(time.time() * 1000)


class StreamState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class StreamSession:
    """One subscriber connection on the event stream.

    Args:
        bus: Event bus to subscribe to while open.
        questions: Question service used for reconciliation reads.
        heartbeat_seconds: Interval between ping frames.
        reconcile_seconds: Interval between reconciliation passes.
        reconcile_limit: Number of latest questions tracked.
        queue_size: Max undelivered frames before new ones are dropped.
        on_close: Called once with the session after it closes.
    """

    def __init__(
        self,
        *,
        bus: AbstractEventBus,
        questions: QuestionService,
        heartbeat_seconds: float = 5.0,
        reconcile_seconds: float = 1.5,
        reconcile_limit: int = 20,
        queue_size: int = 256,
        on_close: Callable[["StreamSession"], None] | None = None,
        clock_ms: Callable[[], int] = _now_ms,
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex[:16]
        self._bus = bus
        self._questions = questions
        self._heartbeat_seconds = heartbeat_seconds
        self._reconcile_seconds = reconcile_seconds
        self._reconcile_limit = reconcile_limit
        self._on_close = on_close
        self._clock_ms = clock_ms

        self._state = StreamState.CONNECTING
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._snapshot: dict[str, int] = {}
        self._touched: set[str] = set()
        self._tasks: list[asyncio.Task] = []
        self._frames_sent = 0
        self._frames_dropped = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is StreamState.CLOSED

    @property
    def snapshot(self) -> dict[str, int]:
        """Copy of the last-broadcast ``id -> likes`` view."""
        return dict(self._snapshot)

    async def open(self) -> None:
        """Subscribe, reconcile once, then start heartbeat and reconciliation timers.

        Raises:
            RuntimeError: If the session was already opened or closed.
        """
        if self._state is not StreamState.CONNECTING:
            raise RuntimeError(f"cannot open a stream session in state {self._state.value}")

        # Timer tasks copy the current context, tagging their logs too
        set_stream_id(self.id)
        self._state = StreamState.OPEN
        self._bus.subscribe(self._on_event)

        await self._reconcile_tick()
        if self.closed:
            return

        self._tasks = [
            asyncio.create_task(self._heartbeat_loop(), name=f"stream.{self.id}.heartbeat"),
            asyncio.create_task(self._reconcile_loop(), name=f"stream.{self.id}.reconcile"),
        ]
        logger.info(
            "stream.opened",
            extra={"tracked": len(self._snapshot), "subscribers": self._bus.subscriber_count},
        )

    def close(self, reason: str = "client_disconnect") -> bool:
        """Release every resource exactly once.

        Returns:
            True if this call performed the close, False if already closed.
        """
        if self._state is StreamState.CLOSED:
            return False
        self._state = StreamState.CLOSED

        self._bus.unsubscribe(self._on_event)

        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in self._tasks:
            if task is not current:
                task.cancel()
        self._tasks.clear()
        self._snapshot.clear()

        # Undelivered frames are discarded; the consumer only needs the wake-up
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED_SENTINEL)

        logger.info(
            "stream.closed",
            extra={
                "reason": reason,
                "frames_sent": self._frames_sent,
                "frames_dropped": self._frames_dropped,
            },
        )
        if self._on_close is not None:
            self._on_close(self)
        return True

    async def frames(self) -> AsyncIterator[str]:
        """Yield SSE frames until the session closes.

        Closing the iterator (client disconnect, transport error) closes the
        session.
        """
        try:
            while True:
                item = await self._queue.get()
                if item is _CLOSED_SENTINEL or self.closed:
                    return
                self._frames_sent += 1
                yield item
        finally:
            self.close(reason="transport_closed")

    def _enqueue(self, event: DomainEvent | Ping) -> None:
        try:
            self._queue.put_nowait(sse_frame(event))
        except asyncio.QueueFull as exc:
            raise StreamDeliveryError(
                code="stream_backpressure",
                message="Outbound frame queue is full",
                details={"context": {"event_type": event.type, "queued": self._queue.qsize()}},
            ) from exc

    def _emit(self, event: DomainEvent | Ping) -> bool:
        if self._state is not StreamState.OPEN:
            return False
        try:
            self._enqueue(event)
        except StreamDeliveryError as exc:
            self._frames_dropped += 1
            logger.warning(
                "stream.delivery_failed",
                extra={"error_code": exc.code, "event_type": event.type},
            )
            return False
        return True

    def _on_event(self, event: DomainEvent) -> None:
        if self._state is not StreamState.OPEN:
            return
        self._touched.add(event.payload.id)
        if isinstance(event, QuestionCreated):
            self._snapshot[event.payload.id] = event.payload.likes
        elif isinstance(event, QuestionUpdated):
            self._snapshot[event.payload.id] = event.payload.likes
        elif isinstance(event, QuestionDeleted):
            self._snapshot.pop(event.payload.id, None)
        self._emit(event)

    async def reconcile(self) -> list[DomainEvent]:
        """Diff the store's latest questions against the snapshot and emit the delta.

        Ids that left the tracked window but are still indexed are dropped
        from the snapshot silently; only ids whose index entry is gone yield
        a delete. Ids the bus reported while the store reads were in flight
        are newer than those reads: no event is synthesized for them and the
        bus-applied snapshot value is kept.

        Returns:
            The synthesized events (empty if the session closed meanwhile).

        Raises:
            UpstreamUnavailableError: If the store fails.
        """
        store = self._questions.store
        self._touched = set()
        ids = await store.top_ids(self._reconcile_limit)
        current = await self._questions.hydrate(ids, placeholders=False)
        if self.closed:
            return []

        current_likes = {q.id: q.likes for q in current}
        vanished = [qid for qid in self._snapshot if qid not in current_likes]
        still_indexed: list[bool] = []
        if vanished:
            still_indexed = await store.indexed(vanished)
            if self.closed:
                return []

        touched = self._touched
        synthesized: list[DomainEvent] = []

        # Oldest first so clients that prepend end up newest-on-top
        for question in reversed(current):
            if question.id in touched:
                continue
            previous = self._snapshot.get(question.id)
            if previous is None:
                synthesized.append(events.created(question))
            elif previous != question.likes:
                synthesized.append(events.updated(question.id, question.likes))

        synthesized.extend(
            events.deleted(qid)
            for qid, present in zip(vanished, still_indexed)
            if not present and qid not in touched
        )

        for event in synthesized:
            self._emit(event)

        snapshot = {qid: likes for qid, likes in current_likes.items() if qid not in touched}
        for qid in touched:
            if qid in self._snapshot:
                snapshot[qid] = self._snapshot[qid]
        self._snapshot = snapshot

        if synthesized:
            logger.debug("stream.reconciled", extra={"synthesized": len(synthesized)})
        return synthesized

    async def _reconcile_tick(self) -> None:
        try:
            await self.reconcile()
        except UpstreamUnavailableError as exc:
            logger.warning("stream.reconcile_skipped", extra={"error_code": exc.code})
        except Exception:
            logger.error("stream.reconcile_failed", exc_info=True)

    async def _heartbeat_loop(self) -> None:
        while self._state is StreamState.OPEN:
            await asyncio.sleep(self._heartbeat_seconds)
            self._emit(Ping(t=self._clock_ms()))

    async def _reconcile_loop(self) -> None:
        while self._state is StreamState.OPEN:
            await asyncio.sleep(self._reconcile_seconds)
            if self._state is not StreamState.OPEN:
                return
            await self._reconcile_tick()


class StreamHub:
    """Factory and registry of open stream sessions.

    Owned by the application container so shutdown can close every session
    deterministically instead of relying on process signal handlers.
    """

    def __init__(
        self,
        *,
        bus: AbstractEventBus,
        questions: QuestionService,
        stream_settings: StreamSettings,
    ) -> None:
        self._bus = bus
        self._questions = questions
        self._settings = stream_settings
        self._sessions: dict[str, StreamSession] = {}

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def create_session(self) -> StreamSession:
        session = StreamSession(
            bus=self._bus,
            questions=self._questions,
            heartbeat_seconds=self._settings.heartbeat_seconds,
            reconcile_seconds=self._settings.reconcile_seconds,
            reconcile_limit=self._settings.reconcile_limit,
            queue_size=self._settings.queue_size,
            on_close=self._forget,
        )
        self._sessions[session.id] = session
        return session

    def _forget(self, session: StreamSession) -> None:
        self._sessions.pop(session.id, None)

    def close_all(self, reason: str = "shutdown") -> int:
        """Close every open session; returns how many were closed."""
        closed = 0
        for session in list(self._sessions.values()):
            if session.close(reason=reason):
                closed += 1
        return closed
