"""Reputation entities: job outcomes, oracle readings and audit records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from compute_market.domain.value_objects.identifiers import JobId, ResourceId


@dataclass(frozen=True)
class BenchmarkReading:
    """Benchmark and reference price for a hardware model."""
    benchmark_score: float
    reference_price_per_hour: int
    timestamp: float
    source: str                 # e.g., "oracle", "fallback"


@dataclass(frozen=True)
class JobOutcome:
    """Result of a job attempt, fed into the reputation scorer."""
    job_id: JobId
    host: str
    resource_id: ResourceId
    success: bool
    duration_seconds: float
    benchmark: Optional[BenchmarkReading] = None


@dataclass(frozen=True)
class ReputationUpdate:
    """Audit record of one reputation score change."""
    resource_id: ResourceId
    host: str
    old_score: int
    new_score: int
    reason: str
    timestamp: float

    @property
    def delta(self) -> int:
        return self.new_score - self.old_score
