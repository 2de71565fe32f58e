"""Service layer for business logic.

This layer contains the streaming engine: admission, chunking, delivery
and the per-request state machine. Services depend on protocols
(interfaces), not concrete implementations, making them testable and
flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from endpoint_simulator.services import CompletionService

    service = CompletionService.create(settings, repository)
    ```
"""

from .admission_gate import AdmissionGate, AdmissionPermit
from .chunk_streamer import ChunkStreamer, split_segments
from .completion_service import CompletionService, generate_completion_id, render_answer
from .delivery_channel import DeliveryChannel

__all__ = [
    "AdmissionGate",
    "AdmissionPermit",
    "ChunkStreamer",
    "CompletionService",
    "DeliveryChannel",
    "generate_completion_id",
    "render_answer",
    "split_segments",
]
