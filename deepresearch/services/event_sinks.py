"""EventSink implementations.

Sinks receive every research event in emission order. ``emit`` is
fire-and-forget: it never blocks and never reports back to the engine.
"""
from __future__ import annotations

import asyncio
from typing import Iterable

from loguru import logger

from deepresearch.models.events import EventType, SSEEvent
from deepresearch.research_core.models.interfaces import EventSink


class ListEventSink:
    """Collects events in memory (tests, CLI replay)."""

    def __init__(self) -> None:
        self.events: list[SSEEvent] = []

    def emit(self, event: SSEEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[SSEEvent]:
        return [e for e in self.events if e.event == event_type]


class QueueEventSink:
    """Feeds an asyncio.Queue consumed by a streaming transport."""

    def __init__(self, queue: asyncio.Queue[SSEEvent | None] | None = None) -> None:
        self.queue: asyncio.Queue[SSEEvent | None] = queue or asyncio.Queue()

    def emit(self, event: SSEEvent) -> None:
        self.queue.put_nowait(event)

    def close(self) -> None:
        self.queue.put_nowait(None)


class LoggingEventSink:
    def __init__(self, topic: str = "") -> None:
        self.topic = topic[:80]

    def emit(self, event: SSEEvent) -> None:
        data = event.data
        if event.event == EventType.ACTIVITY_DELTA:
            logger.info(
                f"[{self.topic}] depth={data.get('depth')} "
                f"{data.get('type')}/{data.get('status')}: {data.get('message')}"
            )
        elif event.event == EventType.SOURCE_DELTA:
            logger.debug(f"[{self.topic}] source: {data.get('url')}")
        elif event.event == EventType.FINISH:
            logger.info(f"[{self.topic}] finished ({len(data.get('text', ''))} chars)")
        else:
            logger.debug(f"[{self.topic}] {event.event.value}: {data}")


class FanoutEventSink:
    """Delivers each event to several sinks; a failing sink does not stop the others."""

    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self.sinks = list(sinks)

    def emit(self, event: SSEEvent) -> None:
        for sink in self.sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.exception(f"Event sink {type(sink).__name__} failed on {event.event.value}")
