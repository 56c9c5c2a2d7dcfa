"""Job entities for the queue and the client-facing lifecycle.

Two records describe the same logical job:
- QueuedJob: one matching attempt inside the job queue
- JobStatus: the client-facing record kept by the lifecycle controller

The queue publishes a QueueEvent on every transition so the controller
can keep its JobStatus in step.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from compute_market.domain.entities.provider import ProviderListing
from compute_market.domain.value_objects.identifiers import JobId, QueueEntryId, ResourceId


class QueueState(Enum):
    """State of a queue entry. Transitions are one-way."""
    PENDING = "pending"         # Waiting for a processing pass
    MATCHING = "matching"       # Being matched (at most one at a time)
    MATCHED = "matched"         # Provider selected, dispatch in progress
    FAILED = "failed"           # No match, escrow or dispatch failure
    DISPATCHED = "dispatched"   # Accepted by the provider's host


QUEUE_TRANSITIONS: dict[QueueState, frozenset[QueueState]] = {
    QueueState.PENDING: frozenset({QueueState.MATCHING}),
    QueueState.MATCHING: frozenset({QueueState.MATCHED, QueueState.FAILED}),
    QueueState.MATCHED: frozenset({QueueState.DISPATCHED, QueueState.FAILED}),
    QueueState.FAILED: frozenset(),
    QueueState.DISPATCHED: frozenset(),
}


class JobState(Enum):
    """Client-facing job state."""
    PENDING = "pending"
    MATCHED = "matched"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


@dataclass(frozen=True)
class JobRequirements:
    """Client constraints on the hardware that may run a job."""
    required_vram: int
    min_compute_rating: int
    max_price_per_second: int   # Smallest currency unit
    timeout_seconds: int
    is_high_priority: bool = False


@dataclass(frozen=True)
class JobPayload:
    """Work handed to the host once a provider is matched."""
    job_id: JobId
    image_reference: str        # Container image
    input_reference: str        # Input data location
    timeout_seconds: int
    client_key: Optional[str] = None


@dataclass(frozen=True)
class JobSubmission:
    """A client's request to run a job."""
    client_key: str
    requirements: JobRequirements
    image_reference: str
    input_reference: str


@dataclass
class QueuedJob:
    """A single matching attempt held by the job queue."""
    id: QueueEntryId
    requirements: JobRequirements
    payload: JobPayload
    created_at: float
    sequence: int = 0                                   # Arrival order tie-breaker
    status: QueueState = QueueState.PENDING
    matched_provider: Optional[ProviderListing] = None
    processed_at: Optional[float] = None
    escrow_reference: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status is QueueState.PENDING

    def transition(self, new_state: QueueState) -> None:
        """Move to a new state, rejecting regressions."""
        if new_state not in QUEUE_TRANSITIONS[self.status]:
            raise ValueError(
                f"Invalid queue transition {self.status.value} -> {new_state.value} for {self.id}"
            )
        self.status = new_state


@dataclass(frozen=True)
class QueueEvent:
    """Published by the queue whenever an entry changes state."""
    entry_id: QueueEntryId
    job_id: JobId
    state: QueueState
    timestamp: float
    provider: Optional[ProviderListing] = None
    error: Optional[str] = None


@dataclass
class JobStatus:
    """Client-facing job record."""
    job_id: JobId
    client_key: str
    status: JobState = JobState.PENDING
    host: Optional[str] = None                  # Host on record, set at match time
    resource_id: Optional[ResourceId] = None
    submitted_at: float = 0.0
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    result_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def elapsed_seconds(self) -> float:
        """Seconds between start and end, zero until both are known."""
        if self.started_at is None or self.ended_at is None:
            return 0.0
        return self.ended_at - self.started_at
