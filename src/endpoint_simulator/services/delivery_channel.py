"""Bounded FIFO channel between the chunk producer and the transport writer."""

import asyncio
from collections import deque
from typing import Generic, TypeVar

from endpoint_simulator.exceptions import ChannelClosedError

T = TypeVar("T")


class DeliveryChannel(Generic[T]):
    """Bounded queue with one-time close.

    - ``send`` suspends while the queue is full (backpressure)
    - ``receive`` suspends while the queue is empty and still open
    - ``close`` is idempotent; the consumer drains what is left, then stops

    Iterating with ``async for`` yields items until the channel is closed
    and empty.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._closed = False
        self._condition = asyncio.Condition()

    async def send(self, item: T) -> None:
        """Append an item, waiting for free space.

        Raises:
            ChannelClosedError: If the channel is closed before the item fits
        """
        async with self._condition:
            await self._condition.wait_for(
                lambda: self._closed or len(self._items) < self._capacity
            )
            if self._closed:
                raise ChannelClosedError("send on closed channel")
            self._items.append(item)
            self._condition.notify_all()

    async def receive(self) -> T:
        """Pop the oldest item, waiting while the channel is empty and open.

        Raises:
            ChannelClosedError: If the channel is closed and fully drained
        """
        async with self._condition:
            await self._condition.wait_for(lambda: self._items or self._closed)
            if not self._items:
                raise ChannelClosedError("channel closed and drained")
            item = self._items.popleft()
            self._condition.notify_all()
            return item

    async def close(self) -> None:
        async with self._condition:
            if self._closed:
                return
            self._closed = True
            self._condition.notify_all()

    def __aiter__(self) -> "DeliveryChannel[T]":
        return self

    async def __anext__(self) -> T:
        try:
            return await self.receive()
        except ChannelClosedError:
            raise StopAsyncIteration from None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._items)
