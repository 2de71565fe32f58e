"""Record selection policy shared by both response sources."""

import random

from endpoint_simulator.entities import ResolveCriteria, ResponseRecord
from endpoint_simulator.exceptions import RepositoryError


def select_record(
    candidates: list[ResponseRecord],
    criteria: ResolveCriteria,
    rng: random.Random,
) -> ResponseRecord:
    """Pick a record: the pinned one if requested, otherwise uniformly at random.

    Raises:
        RepositoryError: If there are no candidates or the pinned id is unknown
    """
    if not candidates:
        raise RepositoryError("No responses available")

    if criteria.record_id is not None:
        for record in candidates:
            if record.id == criteria.record_id:
                return record
        raise RepositoryError(f"Unknown response id {criteria.record_id!r}")

    return rng.choice(candidates)
