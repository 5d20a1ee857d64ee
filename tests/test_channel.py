"""Tests for batched channel delivery."""

from __future__ import annotations

import asyncio

import pytest

from recordlens.errors import DeliveryError
from recordlens.streaming import BatchChannel, collect, send_sequence, stream_batches


async def _produce(items, channel: BatchChannel, batch_size: int) -> int:
    try:
        return await stream_batches(items, channel, batch_size)
    finally:
        await channel.finish()


class TestBatchChannel:
    """Test BatchChannel delivery semantics."""

    def test_batches_arrive_in_order(self) -> None:
        """Should deliver fixed-size batches and a partial final batch."""

        async def run():
            channel: BatchChannel[int] = BatchChannel(capacity=2)
            return await collect(_produce(range(7), channel, 3), channel)

        batches, sent = asyncio.run(run())

        assert batches == [[0, 1, 2], [3, 4, 5], [6]]
        assert sent == 7

    def test_exact_multiple_has_no_empty_batch(self) -> None:
        """No empty trailing batch is sent."""

        async def run():
            channel: BatchChannel[int] = BatchChannel()
            return await collect(_produce(range(4), channel, 2), channel)

        batches, _ = asyncio.run(run())
        assert batches == [[0, 1], [2, 3]]

    def test_empty_source(self) -> None:
        """An empty source delivers nothing."""

        async def run():
            channel: BatchChannel[int] = BatchChannel()
            return await collect(_produce([], channel, 2), channel)

        assert asyncio.run(run()) == ([], 0)

    def test_send_after_close_raises(self) -> None:
        """A closed receiver surfaces as DeliveryError on the next send."""

        async def run():
            channel: BatchChannel[int] = BatchChannel()
            channel.close()
            await channel.send([1])

        with pytest.raises(DeliveryError):
            asyncio.run(run())

    def test_consumer_closing_aborts_producer(self) -> None:
        """Closing mid-stream aborts a producer blocked on a full queue."""

        async def run():
            channel: BatchChannel[int] = BatchChannel(capacity=1)
            producer = asyncio.ensure_future(_produce(range(100), channel, 1))
            received = []
            async for batch in channel:
                received.append(batch)
                if len(received) == 2:
                    channel.close()
            with pytest.raises(DeliveryError):
                await producer
            return received

        received = asyncio.run(run())
        assert received == [[0], [1]]

    def test_producer_error_ends_stream(self) -> None:
        """Consumers stop when a failing producer finishes the channel."""

        def failing():
            yield 1
            raise ValueError("boom")

        async def run():
            channel: BatchChannel[int] = BatchChannel()
            return await collect(_produce(failing(), channel, 5), channel)

        with pytest.raises(ValueError, match="boom"):
            asyncio.run(run())

    def test_send_sequence(self) -> None:
        """Should slice an in-memory list into batches."""

        async def run():
            channel: BatchChannel[str] = BatchChannel(capacity=0)
            try:
                total = await send_sequence(list("abcde"), channel, 2)
            finally:
                await channel.finish()
            return total, [batch async for batch in channel]

        total, batches = asyncio.run(run())
        assert total == 5
        assert batches == [["a", "b"], ["c", "d"], ["e"]]

    def test_invalid_batch_size(self) -> None:
        """Batch sizes must be positive."""

        async def run():
            await stream_batches([1], BatchChannel(), 0)

        with pytest.raises(ValueError):
            asyncio.run(run())
