"""
Progress/event channel for a single build.

One producer (the build) emits events; one consumer (the transport)
iterates them. The channel enforces the stream contract:

- nothing is delivered after the terminal ``complete``/``error`` event
- progress within a stage never goes backwards and stays within 0-100
- once the consumer disconnects (close()), every further emit is dropped
  and anything still queued is discarded
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

from pydantic import BaseModel

from decknexus.models.events import (
    BuildStage,
    CompleteEvent,
    ConnectedEvent,
    ErrorEvent,
    ProgressEvent,
    StageFinishedEvent,
    StageStartedEvent,
    is_terminal,
)

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Append-only destination for build events."""

    def emit(self, event: BaseModel) -> bool: ...


class NullSink:
    """Discards everything. Used when nobody is listening."""

    def emit(self, event: BaseModel) -> bool:
        return False


class RecordingSink:
    """Keeps every event in order. Handy for callers that want a transcript."""

    def __init__(self) -> None:
        self.events: list[BaseModel] = []

    def emit(self, event: BaseModel) -> bool:
        self.events.append(event)
        return True


_CLOSED = object()


class EventChannel:
    """Single-producer, single-consumer event stream for one build."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._terminated = False
        self._closed = False
        self._stage_progress: dict[BuildStage, float] = {}

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: BaseModel) -> bool:
        """
        Queue an event for the consumer.

        Returns:
            False if the event was dropped (stream ended or consumer gone)
        """
        if self._closed or self._terminated:
            logger.debug("EVENT_DROPPED", extra={"event_type": getattr(event, "type", None)})
            return False

        if isinstance(event, ProgressEvent):
            floor = self._stage_progress.get(event.stage, 0.0)
            value = min(100.0, max(floor, event.progress))
            self._stage_progress[event.stage] = value
            if value != event.progress:
                event = event.model_copy(update={"progress": value})

        if is_terminal(event):
            self._terminated = True

        self._queue.put_nowait(event)
        return True

    def connected(self, message: str) -> bool:
        return self.emit(ConnectedEvent(message=message))

    def stage_started(self, stage: BuildStage, message: str) -> bool:
        return self.emit(StageStartedEvent(stage=stage, message=message))

    def stage_finished(self, stage: BuildStage, message: str, result: dict[str, Any]) -> bool:
        return self.emit(StageFinishedEvent(stage=stage, message=message, result=result))

    def progress(self, stage: BuildStage, progress: float, message: str) -> bool:
        return self.emit(
            ProgressEvent(stage=stage, progress=min(100.0, max(0.0, progress)), message=message)
        )

    def complete(self, result: dict[str, Any]) -> bool:
        return self.emit(CompleteEvent(result=result))

    def fail(self, error: str) -> bool:
        return self.emit(ErrorEvent(error=error))

    def close(self) -> None:
        """Consumer went away: drop queued events and refuse new ones."""
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[BaseModel]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
            if is_terminal(item):
                return
