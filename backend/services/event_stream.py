import json
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from models.content import CompleteEvent, ErrorEvent, ProgressEvent, TextEditorContent

logger = logging.getLogger("event_stream")


class EventSink(ABC):
    """
    Destination of the conversion event stream.

    Any number of progress events may be written, followed by exactly one
    terminal event (error or complete). Writes after the terminal event are
    dropped.
    """

    def __init__(self):
        self.closed = False

    async def progress(self, step: str, progress: int, label: str) -> None:
        if self._dropped("progress"):
            return
        await self._send("progress", ProgressEvent(step=step, progress=progress, label=label).model_dump(mode="json"))

    async def error(self, message: str) -> None:
        if self._dropped("error"):
            return
        self.closed = True
        await self._send("error", ErrorEvent(error=message).model_dump(mode="json"))
        await self._close()

    async def complete(self, content: TextEditorContent, label: str = "Conversion complete!") -> None:
        if self._dropped("complete"):
            return
        self.closed = True
        await self._send("complete", CompleteEvent(content=content, label=label).model_dump(mode="json"))
        await self._close()

    def _dropped(self, kind: str) -> bool:
        if self.closed:
            logger.warning(f"Dropping '{kind}' event written after the terminal event")
        return self.closed

    @abstractmethod
    async def _send(self, kind: str, data: dict) -> None:
        ...

    async def _close(self) -> None:
        pass


class RecordingEventSink(EventSink):
    """Keeps events in memory, in write order."""

    def __init__(self):
        super().__init__()
        self.events: list[dict] = []

    async def _send(self, kind: str, data: dict) -> None:
        self.events.append({"type": kind, "data": data})

    def of_type(self, kind: str) -> list[dict]:
        return [e["data"] for e in self.events if e["type"] == kind]


class QueueEventSink(EventSink):
    """Feeds a Server-Sent Events response through an asyncio queue."""

    def __init__(self):
        super().__init__()
        self._queue: asyncio.Queue[Optional[dict]] = asyncio.Queue()

    async def _send(self, kind: str, data: dict) -> None:
        await self._queue.put({"type": kind, "data": data})

    async def _close(self) -> None:
        await self._queue.put(None)

    async def frames(self) -> AsyncIterator[str]:
        """Yield SSE frames until the terminal event has been sent."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield f"data: {json.dumps(event)}\n\n"
