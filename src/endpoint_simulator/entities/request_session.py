"""Per-request session entity."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .response_record import ResolveCriteria, ResponseRecord

if TYPE_CHECKING:
    from endpoint_simulator.services.admission_gate import AdmissionPermit


class SessionState(str, enum.Enum):
    """Lifecycle of a single completion request."""

    QUEUED = "queued"
    ADMITTED = "admitted"
    RESOLVING = "resolving"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.CANCELLED, SessionState.FAILED)


_TRANSITIONS: dict[SessionState, tuple[SessionState, ...]] = {
    SessionState.QUEUED: (SessionState.ADMITTED, SessionState.CANCELLED, SessionState.FAILED),
    SessionState.ADMITTED: (SessionState.RESOLVING, SessionState.CANCELLED, SessionState.FAILED),
    SessionState.RESOLVING: (SessionState.STREAMING, SessionState.CANCELLED, SessionState.FAILED),
    SessionState.STREAMING: (
        SessionState.COMPLETED,
        SessionState.CANCELLED,
        SessionState.FAILED,
    ),
}


@dataclass
class RequestSession:
    """State owned by the task handling one request.

    The session holds the admission permit from ``ADMITTED`` until it reaches
    a terminal state; ``finish`` releases it exactly once.

    Attributes:
        id: Completion id, also used as the log correlation id
        criteria: Record selection hints from the request
        prompt_text: Concatenated message contents, used for usage estimates
        permit: Admission permit, None until admitted
        record: Chosen response record, None until resolved
        emitted_count: Number of chunks handed to the delivery channel
        state: Current lifecycle state
    """

    id: str
    criteria: ResolveCriteria = field(default_factory=ResolveCriteria)
    prompt_text: str = ""
    permit: AdmissionPermit | None = None
    record: ResponseRecord | None = None
    emitted_count: int = 0
    state: SessionState = SessionState.QUEUED

    @property
    def cancelled(self) -> bool:
        return self.state is SessionState.CANCELLED

    def advance(self, state: SessionState) -> None:
        """Move to a non-terminal state, rejecting illegal transitions."""
        if state not in _TRANSITIONS.get(self.state, ()):
            raise RuntimeError(f"Illegal session transition {self.state.value} -> {state.value}")
        self.state = state

    def finish(self, state: SessionState) -> bool:
        """Enter a terminal state and release the permit.

        Returns:
            True if this call terminated the session, False if it was already terminal
        """
        if not state.is_terminal:
            raise ValueError(f"{state.value} is not a terminal state")
        if self.state.is_terminal:
            return False
        self.advance(state)
        if self.permit is not None:
            self.permit.release()
        return True
