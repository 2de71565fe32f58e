"""Bounded admission for concurrent sessions.

The gate limits how many logical sessions may be resolving or streaming at
once. It is independent of the worker count: a single worker can hold many
permits, and waiting sessions cost nothing but a suspended coroutine.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from endpoint_simulator.exceptions import BusyError
from endpoint_simulator.logger import get_logger

logger = get_logger(__name__)


class AdmissionPermit:
    """One acquired slot of an AdmissionGate.

    ``release`` is idempotent, so every exit path of a session may call it
    without returning the slot twice.
    """

    def __init__(self, gate: "AdmissionGate") -> None:
        self._gate = gate
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._gate._release()


class AdmissionGate:
    """Counting permit pool with optional bounded waiting.

    Waiters are admitted in arrival order (``asyncio.Semaphore`` wakes them
    FIFO), so no session starves. With ``timeout`` unset, ``acquire``
    suspends until a permit frees; with it set, ``acquire`` gives up with
    ``BusyError`` after that many seconds.

    Example:
        ```python
        gate = AdmissionGate(limit=100)

        async with gate.permit():
            ...  # at most 100 coroutines are in here at once
        ```
    """

    def __init__(self, limit: int, timeout: float | None = None) -> None:
        """Initialize the gate.

        Args:
            limit: Maximum number of permits held at once
            timeout: Seconds to wait for a permit before raising ``BusyError``;
                None waits indefinitely

        Raises:
            ValueError: If ``limit`` is smaller than 1
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._limit = limit
        self._timeout = timeout
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._peak = 0
        self._waiting = 0

    async def acquire(self) -> AdmissionPermit:
        """Obtain a permit, suspending while none are free.

        Raises:
            BusyError: If a timeout is configured and it elapses first
        """
        self._waiting += 1
        try:
            if self._timeout is None:
                await self._semaphore.acquire()
            else:
                try:
                    async with asyncio.timeout(self._timeout):
                        await self._semaphore.acquire()
                except TimeoutError:
                    logger.warning("admission_rejected", limit=self._limit, timeout=self._timeout)
                    raise BusyError(self._limit, self._timeout) from None
        finally:
            self._waiting -= 1

        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)
        return AdmissionPermit(self)

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[AdmissionPermit]:
        """Scoped acquisition: the permit is released on every exit path."""
        permit = await self.acquire()
        try:
            yield permit
        finally:
            permit.release()

    def _release(self) -> None:
        self._in_flight -= 1
        self._semaphore.release()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def in_flight(self) -> int:
        """Permits currently held."""
        return self._in_flight

    @property
    def available(self) -> int:
        return self._limit - self._in_flight

    @property
    def waiting(self) -> int:
        """Callers currently suspended in ``acquire``."""
        return self._waiting

    @property
    def peak(self) -> int:
        """Highest number of permits ever held at once."""
        return self._peak

    def get_stats(self) -> dict:
        return {
            "limit": self._limit,
            "in_flight": self._in_flight,
            "available": self.available,
            "waiting": self._waiting,
            "peak": self._peak,
        }
