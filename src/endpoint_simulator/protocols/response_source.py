"""Response source protocol.

The File and Database backends share this contract and are selected once
at startup; the rest of the system never knows which one it talks to.
"""

from typing import Protocol, runtime_checkable

from endpoint_simulator.entities import ResolveCriteria, ResponseRecord


@runtime_checkable
class ResponseSource(Protocol):
    """Protocol for canned-answer backends."""

    @property
    def name(self) -> str:
        """Short backend identifier for logs and health output."""
        ...

    async def list_candidates(self) -> list[ResponseRecord]:
        """Return every available record in a stable order.

        Raises:
            RepositoryError: If the source is unreachable or a record is malformed
        """
        ...

    async def resolve(self, criteria: ResolveCriteria) -> ResponseRecord:
        """Pick the record to answer a request with.

        Args:
            criteria: Selection hints; random choice when nothing is pinned

        Raises:
            RepositoryError: If no record can be produced
        """
        ...

    async def count(self) -> int:
        """Return the number of available records."""
        ...

    async def health_check(self) -> bool:
        """Check if the underlying source is reachable."""
        ...
