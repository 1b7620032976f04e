"""Progress events and the sinks that carry them to a caller.

Every search produces ``progress`` notices, at most one ``results`` event, optional
``error`` notices and exactly one terminal ``complete``. Over HTTP each event is one
Server-Sent Events frame: ``data: {json}\\n\\n``.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol, Sequence

from lodging_search.properties.models import AccommodationResult, SearchCriteria

logger = logging.getLogger(__name__)

PROGRESS = "progress"
RESULTS = "results"
ERROR = "error"
COMPLETE = "complete"

EVENT_TYPES = (PROGRESS, RESULTS, ERROR, COMPLETE)


@dataclass(frozen=True)
class ProgressEvent:
    type: str
    message: Optional[str] = None
    accommodations: tuple[AccommodationResult, ...] = ()
    search_criteria: Optional[dict[str, Any]] = None

    def __post_init__(self) -> None:
        if self.type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type {self.type!r}")

    @classmethod
    def progress(cls, message: str) -> "ProgressEvent":
        return cls(PROGRESS, message=message)

    @classmethod
    def results(
        cls, accommodations: Sequence[AccommodationResult], search_criteria: Optional[dict[str, Any]] = None
    ) -> "ProgressEvent":
        return cls(RESULTS, accommodations=tuple(accommodations), search_criteria=search_criteria)

    @classmethod
    def error(cls, message: str) -> "ProgressEvent":
        return cls(ERROR, message=message)

    @classmethod
    def complete(cls) -> "ProgressEvent":
        return cls(COMPLETE)

    @property
    def is_terminal(self) -> bool:
        return self.type == COMPLETE

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        if self.type in (PROGRESS, ERROR):
            payload["message"] = self.message or ""
        elif self.type == RESULTS:
            payload["accommodations"] = [item.to_dict() for item in self.accommodations]
            payload["searchCriteria"] = self.search_criteria
        return payload

    def to_sse(self) -> str:
        return f"data: {json.dumps(self.to_dict(), ensure_ascii=False)}\n\n"


ProgressSink = Callable[[ProgressEvent], None]


@dataclass
class EventRecorder:
    """Sink that keeps every event it receives."""

    events: list[ProgressEvent] = field(default_factory=list)

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event.type for event in self.events]

    @property
    def messages(self) -> list[str]:
        return [event.message or "" for event in self.events if event.type == PROGRESS]

    def results(self) -> list[ProgressEvent]:
        return [event for event in self.events if event.type == RESULTS]


class QueueSink:
    """Sink that forwards events into an :class:`asyncio.Queue`."""

    def __init__(self, queue: Optional[asyncio.Queue[ProgressEvent]] = None) -> None:
        self.queue: asyncio.Queue[ProgressEvent] = queue if queue is not None else asyncio.Queue()

    def __call__(self, event: ProgressEvent) -> None:
        self.queue.put_nowait(event)


class SearchRunner(Protocol):
    def run(self, criteria: SearchCriteria, emit: ProgressSink) -> Awaitable[Any]: ...


async def iter_events(runner: SearchRunner, criteria: SearchCriteria) -> AsyncIterator[ProgressEvent]:
    """Run a search in the background and yield its events until ``complete``.

    Closing the iterator early (client disconnect) cancels the search.
    """
    sink = QueueSink()
    task = asyncio.create_task(runner.run(criteria, sink))
    getter: Optional[asyncio.Future] = None
    try:
        while True:
            getter = asyncio.ensure_future(sink.queue.get())
            done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                event = getter.result()
                yield event
                if event.is_terminal:
                    break
                continue
            getter.cancel()
            # The run ended; drain what it queued, then stop even if it never completed.
            while not sink.queue.empty():
                event = sink.queue.get_nowait()
                yield event
                if event.is_terminal:
                    return
            failure = None if task.cancelled() else task.exception()
            if failure is not None:
                logger.error("Search task ended without completing", exc_info=failure)
                yield ProgressEvent.error("Search failed. Please try again.")
            yield ProgressEvent.complete()
            return
    finally:
        if getter is not None and not getter.done():
            getter.cancel()
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("Search cancelled before completion")


async def iter_sse(runner: SearchRunner, criteria: SearchCriteria) -> AsyncIterator[str]:
    async for event in iter_events(runner, criteria):
        yield event.to_sse()
