"""Background worker draining browser events for the session's lifetime.

Playwright delivers browser, context and page events through callbacks on the
connection's read loop. The drain forwards them into a queue consumed by one
supervised task, so slow bookkeeping never blocks that read loop. Events are
logged and counted but not otherwise acted upon.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BrowserEvent:
    """A single event observed on the connection."""

    kind: str
    detail: dict[str, Any] = field(default_factory=dict)


_STOP = BrowserEvent(kind="__stop__")


class EventDrain:
    """Owns the queue and the task consuming it.

    Attributes:
        processed: Number of events consumed so far
    """

    JOIN_TIMEOUT = 5.0

    def __init__(self) -> None:
        self._queue: asyncio.Queue[BrowserEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self.processed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the drain task on the running loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="agentic-browser-event-drain")
        logger.debug("event_drain_started")

    def publish(self, kind: str, **detail: Any) -> None:
        """Enqueue an event; safe to call from Playwright callbacks."""
        self._queue.put_nowait(BrowserEvent(kind=kind, detail=detail))

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            if event is _STOP:
                break
            self.processed += 1
            logger.debug("browser_event", kind=event.kind, **event.detail)

    async def stop(self) -> None:
        """Signal shutdown and join the task.

        Events queued before the signal are drained first. A task that does
        not finish within JOIN_TIMEOUT is cancelled.
        """
        if self._task is None:
            return
        task, self._task = self._task, None
        if task.done():
            return

        self._queue.put_nowait(_STOP)
        try:
            await asyncio.wait_for(task, timeout=self.JOIN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("event_drain_join_timeout", pending=self._queue.qsize())

        logger.debug("event_drain_stopped", processed=self.processed)

    def attach(self, browser: Any, context: Any) -> None:
        """Subscribe to the target lifecycle events of a browser and context."""
        browser.on("disconnected", lambda _: self.publish("browser_disconnected"))
        context.on("page", self._on_page)
        context.on("close", lambda _: self.publish("context_closed"))

    def _on_page(self, page: Any) -> None:
        self.publish("page_created", url=page.url)
        page.on("close", lambda p: self.publish("page_closed", url=p.url))
        page.on("crash", lambda p: self.publish("page_crashed", url=p.url))
        page.on("framenavigated", self._on_frame_navigated)

    def _on_frame_navigated(self, frame: Any) -> None:
        if frame.parent_frame is None:
            self.publish("page_navigated", url=frame.url)
