"""Batched asynchronous delivery between an operation and its consumer."""

from __future__ import annotations

import asyncio
import logging
from itertools import islice
from typing import AsyncIterator, Awaitable, Generic, Iterable, Iterator, List, Tuple, TypeVar

from recordlens.config import CHANNEL_CAPACITY
from recordlens.errors import DeliveryError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_END = object()


class BatchChannel(Generic[T]):
    """FIFO channel of batches with a detectable closed receiver.

    The producer calls :meth:`send` for each batch and :meth:`finish` once it
    is done. The consumer iterates the channel with ``async for`` and may call
    :meth:`close` to stop early, after which the next ``send`` raises
    :class:`DeliveryError`. A ``capacity`` of 0 makes the queue unbounded.
    """

    def __init__(self, capacity: int = CHANNEL_CAPACITY) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self._finished = False
        self.batches_sent = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, batch: List[T]) -> None:
        if self._closed:
            raise DeliveryError("Failed to send batch: receiver closed")
        if self._finished:
            raise DeliveryError("Failed to send batch: channel already finished")
        await self._queue.put(batch)
        self.batches_sent += 1

    async def finish(self) -> None:
        """Mark the end of the stream."""
        if self._finished:
            return
        self._finished = True
        if not self._closed:
            await self._queue.put(_END)

    def close(self) -> None:
        """Receiver side: stop accepting batches and drop anything queued."""
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()

    def __aiter__(self) -> AsyncIterator[List[T]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[List[T]]:
        while not self._closed:
            item = await self._queue.get()
            if item is _END:
                return
            yield item


async def _pull(iterator: Iterator[T], size: int) -> List[T]:
    return await asyncio.to_thread(lambda: list(islice(iterator, size)))


async def stream_batches(items: Iterable[T], channel: BatchChannel[T], batch_size: int) -> int:
    """Send ``items`` over ``channel`` in batches of ``batch_size``.

    Items are pulled from the iterable in a worker thread, so blocking file
    reads never stall the event loop. Returns the number of items sent.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    iterator = iter(items)
    sent = 0
    try:
        while True:
            batch = await _pull(iterator, batch_size)
            if not batch:
                break
            await channel.send(batch)
            sent += len(batch)
            if len(batch) < batch_size:
                break
    finally:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()
    return sent


async def send_sequence(items: List[T], channel: BatchChannel[T], batch_size: int) -> int:
    """Send an in-memory sequence in batches of ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    for start in range(0, len(items), batch_size):
        await channel.send(items[start : start + batch_size])
    return len(items)


async def collect(producer: Awaitable[R], channel: BatchChannel[T]) -> Tuple[List[List[T]], R]:
    """Run ``producer`` while draining ``channel``.

    Returns every delivered batch together with the producer's result. The
    producer's exception, if any, is re-raised after the channel drains.
    """
    task = asyncio.ensure_future(producer)
    batches: List[List[T]] = []
    async for batch in channel:
        batches.append(batch)
    result = await task
    LOGGER.debug("Collected %d batches", len(batches))
    return batches, result
