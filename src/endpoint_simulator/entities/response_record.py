"""Response record domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ResponseRecord:
    """A canned question/answer pair loaded from a response source.

    Attributes:
        id: Stable identifier (database key, or file stem plus index)
        prompt_text: The question the answer was written for
        answer_text: The text streamed back to the client
        reference_text: Newline-separated references, empty when none
    """

    id: str
    prompt_text: str
    answer_text: str
    reference_text: str = ""

    @property
    def references(self) -> list[str]:
        """References as a list, one entry per non-blank line."""
        return [line for line in self.reference_text.splitlines() if line.strip()]


@dataclass(frozen=True)
class ResolveCriteria:
    """Request-side hints for picking a record.

    Attributes:
        record_id: Pin the response to this record instead of a random pick
    """

    record_id: str | None = None
