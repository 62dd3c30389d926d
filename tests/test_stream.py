"""Unit tests for realtime stream collection."""

import asyncio

import pytest

from adapters.stream import RawOutputBuffer, SampleChannel, StreamCollector
from adapters.sysbench import SysbenchAdapter, SysbenchLineParser
from common.errors import StreamReadError
from common.models.metrics import Sample


def sysbench_line(second: int, tps: float) -> str:
    return f"[ {second}s ] thds: 4 tps: {tps:.2f} qps: {tps * 20:.2f} lat (ms,95%): 10.00 err/s: 0.00\n"


class FailingStream:
    """Stream that yields some lines then fails."""

    def __init__(self, lines):
        self._lines = list(lines)

    async def readline(self) -> bytes:
        if self._lines:
            return self._lines.pop(0).encode()
        raise ConnectionResetError("pipe closed")


class TestRawOutputBuffer:
    """Tests for the raw output buffer."""

    def test_text_requires_completion(self):
        buffer = RawOutputBuffer()
        buffer.append("line one")

        with pytest.raises(RuntimeError):
            _ = buffer.text

        buffer.mark_complete()
        assert buffer.text == "line one\n"

    def test_append_after_completion(self):
        buffer = RawOutputBuffer()
        buffer.mark_complete()

        with pytest.raises(RuntimeError):
            buffer.append("late")


@pytest.mark.asyncio
class TestSampleChannel:
    """Tests for the bounded sample channel."""

    async def test_drains_then_stops_after_close(self):
        channel = SampleChannel(maxsize=2)
        await channel.put(Sample(tps=1))
        await channel.put(Sample(tps=2))
        channel.close()

        received = [sample.tps async for sample in channel]

        assert received == [1, 2]

    async def test_put_after_close(self):
        channel = SampleChannel()
        channel.close()

        with pytest.raises(RuntimeError):
            await channel.put(Sample(tps=1))


@pytest.mark.asyncio
class TestStreamCollector:
    """Tests for StreamCollector."""

    async def test_samples_in_arrival_order(self, make_stream):
        text = "".join(sysbench_line(i, 100 + i) for i in range(1, 6))
        collection = StreamCollector(SysbenchLineParser()).start(make_stream(text))

        samples = [sample async for sample in collection.samples]
        raw = await collection.wait()

        assert [s.tps for s in samples] == [101, 102, 103, 104, 105]
        assert raw == text
        assert collection.error is None
        assert collection.sample_count == 5

    async def test_malformed_line_archived(self, make_stream):
        """Test a non-telemetry line yields no sample and is kept verbatim."""
        collection = StreamCollector(SysbenchLineParser()).start(make_stream("garbage text, no markers\n"))

        samples = [sample async for sample in collection.samples]
        raw = await collection.wait()

        assert samples == []
        assert raw == "garbage text, no markers\n"
        assert collection.errors.empty()

    async def test_mixed_lines(self, make_stream, sysbench_output):
        adapter = SysbenchAdapter()
        collection = adapter.start_realtime_collection(make_stream(sysbench_output))

        samples = [sample async for sample in collection.samples]
        raw = await collection.wait()

        assert len(samples) == 2
        assert adapter.parse_final_results(raw).total_transactions == 20000

    async def test_backpressure_bounded_queue(self, make_stream):
        """Test the reader waits while the queue is full."""
        text = "".join(sysbench_line(i, i) for i in range(1, 21))
        collection = StreamCollector(SysbenchLineParser(), queue_size=3).start(make_stream(text))

        await asyncio.sleep(0.05)
        assert collection.samples.qsize() == 3
        assert not collection.done

        samples = [sample async for sample in collection.samples]
        await collection.wait()

        assert len(samples) == 20

    async def test_cancellation_stops_reader(self, make_stream):
        """Test cancelling closes the queue and leaves a valid partial buffer."""
        stream = make_stream(sysbench_line(1, 50) + "[ 2s ] thds: 4 tps: 6", eof=False)
        collection = StreamCollector(SysbenchLineParser()).start(stream)

        first = await asyncio.wait_for(collection.samples.__anext__(), timeout=1)
        collection.cancel()
        raw = await asyncio.wait_for(collection.wait(), timeout=1)
        remaining = [sample async for sample in collection.samples]

        assert first.tps == 50
        assert remaining == []
        assert raw == sysbench_line(1, 50)
        assert collection.samples.closed
        assert collection.error is None

    async def test_cancellation_while_blocked_on_full_queue(self, make_stream):
        text = "".join(sysbench_line(i, i) for i in range(1, 11))
        cancel_event = asyncio.Event()
        collection = StreamCollector(SysbenchLineParser(), queue_size=1).start(make_stream(text), cancel_event)

        await asyncio.sleep(0.05)
        cancel_event.set()
        await asyncio.wait_for(collection.wait(), timeout=1)

        assert collection.done
        assert collection.samples.closed

    async def test_read_failure_reported(self):
        """Test a read failure surfaces on the error channel."""
        stream = FailingStream([sysbench_line(1, 10)])
        collection = StreamCollector(SysbenchLineParser(), tool="sysbench").start(stream)

        samples = [sample async for sample in collection.samples]
        raw = await collection.wait()
        error = collection.errors.get_nowait()

        assert len(samples) == 1
        assert raw == sysbench_line(1, 10)
        assert isinstance(error, StreamReadError)
        assert isinstance(error.__cause__, ConnectionResetError)
        assert collection.error is error

    async def test_invalid_utf8_replaced(self, make_stream):
        stream = asyncio.StreamReader()
        stream.feed_data(b"\xff\xfe broken\n")
        stream.feed_eof()
        collection = StreamCollector(SysbenchLineParser()).start(stream)

        raw = await collection.wait()

        assert "broken" in raw
