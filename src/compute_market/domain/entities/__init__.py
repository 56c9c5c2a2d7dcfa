"""Domain entities for the compute marketplace.

Entities represent core business objects:
- ProviderListing: hardware offered by a provider
- QueuedJob / JobStatus: queue attempt and client-facing job record
- ReputationUpdate: audit record of a score change
"""

from compute_market.domain.entities.job import (
    JobPayload,
    JobRequirements,
    JobState,
    JobStatus,
    JobSubmission,
    QueuedJob,
    QueueEvent,
    QueueState,
)
from compute_market.domain.entities.provider import (
    HardwareSpec,
    ProviderListing,
    ProviderStatus,
)
from compute_market.domain.entities.reputation import (
    BenchmarkReading,
    JobOutcome,
    ReputationUpdate,
)

__all__ = [
    # Provider
    "HardwareSpec",
    "ProviderListing",
    "ProviderStatus",
    # Job
    "JobPayload",
    "JobRequirements",
    "JobState",
    "JobStatus",
    "JobSubmission",
    "QueuedJob",
    "QueueEvent",
    "QueueState",
    # Reputation
    "BenchmarkReading",
    "JobOutcome",
    "ReputationUpdate",
]
