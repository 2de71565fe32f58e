"""Exception hierarchy for the simulator core.

Repository and admission errors propagate to the handler layer, which maps
them to HTTP status codes. Cache errors never leave the repository layer.
"""


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class RepositoryError(SimulatorError):
    """The response source is unreachable or returned a malformed record."""


class CacheUnavailableError(SimulatorError):
    """The cache store could not be reached or returned garbage."""


class BusyError(SimulatorError):
    """No admission permit became free within the configured timeout."""

    def __init__(self, limit: int, timeout: float) -> None:
        super().__init__(f"All {limit} admission permits busy after waiting {timeout:.3f}s")
        self.limit = limit
        self.timeout = timeout


class ChannelClosedError(SimulatorError):
    """An item was sent to, or awaited from, a closed delivery channel."""
