"""Realtime output stream collection.

One reading task per run consumes the tool's stdout, archives every line and
publishes parsed samples onto a bounded channel drained by a single consumer.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Optional, Tuple

from common.errors import StreamReadError
from common.models.metrics import Sample

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 10

_CLOSED = object()


class LineParser(ABC):
    """Turns one output line into a sample, or None if it is not telemetry.

    Parsers may keep state between lines, so a fresh one is used per run.
    """

    @abstractmethod
    def parse_line(self, line: str) -> Optional[Sample]:
        ...


class RawOutputBuffer:
    """Every line seen on the stream, written only by the reading task."""

    def __init__(self):
        self._lines: list[str] = []
        self._complete = False

    def append(self, line: str) -> None:
        if self._complete:
            raise RuntimeError("Raw output buffer is already complete")
        self._lines.append(line)

    def mark_complete(self) -> None:
        self._complete = True

    @property
    def complete(self) -> bool:
        return self._complete

    @property
    def text(self) -> str:
        """Full captured output; only valid once the reader has finished."""
        if not self._complete:
            raise RuntimeError("Raw output read before stream collection completed")
        return "".join(f"{line}\n" for line in self._lines)

    def __len__(self) -> int:
        return len(self._lines)


class SampleChannel:
    """Bounded single-producer/single-consumer queue that can be closed."""

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def qsize(self) -> int:
        return self._queue.qsize()

    async def put(self, sample: Sample) -> None:
        """Publish a sample, waiting while the consumer is behind."""
        if self._closed:
            raise RuntimeError("Sample channel is closed")
        await self._queue.put(sample)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Consumer sees the closed flag once it drains the queue.
            pass

    def __aiter__(self) -> "SampleChannel":
        return self

    async def __anext__(self) -> Sample:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class StreamCollection:
    """Handle on a running collection: samples, error notification, raw output."""

    def __init__(self, tool: str, queue_size: int, cancel_event: asyncio.Event):
        self.tool = tool
        self.samples = SampleChannel(queue_size)
        self.errors: asyncio.Queue = asyncio.Queue(maxsize=1)
        self.raw = RawOutputBuffer()
        self.cancel_event = cancel_event
        self.sample_count = 0
        self._error: Optional[StreamReadError] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def error(self) -> Optional[StreamReadError]:
        return self._error

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self) -> None:
        """Ask the reading task to stop."""
        self.cancel_event.set()

    async def wait(self) -> str:
        """Wait for the reader to finish and return the captured output.

        This is the only safe point to hand the raw text to a final result
        extractor.
        """
        if self._task is not None:
            await self._task
        return self.raw.text

    def _fail(self, error: StreamReadError) -> None:
        self._error = error
        self.errors.put_nowait(error)


class StreamCollector:
    """Runs a line parser over an output stream in a background task."""

    def __init__(self, parser: LineParser, queue_size: int = DEFAULT_QUEUE_SIZE, tool: str = ""):
        self.parser = parser
        self.queue_size = queue_size
        self.tool = tool or type(parser).__name__

    def start(
        self,
        stream: asyncio.StreamReader,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> StreamCollection:
        """Start reading; must be called from a running event loop."""
        collection = StreamCollection(self.tool, self.queue_size, cancel_event or asyncio.Event())
        collection._task = asyncio.create_task(self._read_loop(stream, collection))
        return collection

    async def _read_loop(self, stream: asyncio.StreamReader, collection: StreamCollection) -> None:
        logger.debug(f"Started {self.tool} stream collection")
        cancel_wait = asyncio.ensure_future(collection.cancel_event.wait())
        try:
            while True:
                completed, data = await self._until_cancelled(stream.readline(), cancel_wait)
                if not completed:
                    logger.info(f"{self.tool} stream collection cancelled")
                    break
                if not data:
                    break

                line = data.decode("utf-8", errors="replace").rstrip("\r\n")
                collection.raw.append(line)

                sample = self.parser.parse_line(line)
                if sample is None:
                    continue

                completed, _ = await self._until_cancelled(collection.samples.put(sample), cancel_wait)
                if not completed:
                    logger.info(f"{self.tool} stream collection cancelled while publishing")
                    break
                collection.sample_count += 1

        except asyncio.CancelledError:
            logger.info(f"{self.tool} stream collection task cancelled")
            raise
        except Exception as e:
            logger.error(f"{self.tool} stream read failed: {e}")
            error = StreamReadError(f"{self.tool} output stream read failed: {e}")
            error.__cause__ = e
            collection._fail(error)
        finally:
            cancel_wait.cancel()
            collection.samples.close()
            collection.raw.mark_complete()
            logger.debug(
                f"{self.tool} stream collection finished: "
                f"{len(collection.raw)} lines, {collection.sample_count} samples"
            )

    @staticmethod
    async def _until_cancelled(awaitable: Awaitable, cancel_wait: asyncio.Future) -> Tuple[bool, Any]:
        """Await an operation unless the cancellation token fires first.

        Cancellation wins over a result that completes at the same time.
        """
        operation = asyncio.ensure_future(awaitable)
        try:
            await asyncio.wait({operation, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            operation.cancel()
            raise

        if cancel_wait.done():
            if operation.done():
                if not operation.cancelled():
                    operation.exception()
            else:
                operation.cancel()
                await asyncio.wait({operation})
            return False, None
        return True, operation.result()
