"""Reputation scorer for marketplace providers.

Score arithmetic, always clamped to [min_score, max_score]:
- Success: 50 + max(0, 100 - minutes taken), scaled by benchmark/10000
  when the outcome carries a benchmark reading
- Failure: flat -100
- Oracle recalibration: (benchmark/10000 - 1) * 100

Every call produces and persists a ReputationUpdate, even when the
change is zero. Read-compute-persist is serialised per resource id so
concurrent batches never lose updates.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import defaultdict
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence

from opentelemetry import trace

from compute_market.domain.entities.provider import ProviderListing
from compute_market.domain.entities.reputation import (
    BenchmarkReading,
    JobOutcome,
    ReputationUpdate,
)
from compute_market.domain.errors import OracleUnavailable
from compute_market.domain.value_objects.identifiers import ResourceId
from compute_market.ports.outbound.benchmark_oracle import BenchmarkOracle
from compute_market.ports.outbound.score_store import ScoreStore

if TYPE_CHECKING:
    from compute_market.adapters.outbound.metrics import PrometheusExporter

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SUCCESS_BASE_BONUS = 50
SPEED_BONUS_CAP = 100
FAILURE_PENALTY = 100
ORACLE_ADJUSTMENT_SCALE = 100
BENCHMARK_REFERENCE = 10000

FALLBACK_BENCHMARKS: dict[str, int] = {
    "RTX 3080": 8500,
    "RTX 4090": 15000,
    "Tesla V100": 12000,
}
DEFAULT_BENCHMARK_SCORE = 5000

ORACLE_HOST = "oracle_update"


def fallback_benchmark(
    hardware_model: str,
    default_score: int = DEFAULT_BENCHMARK_SCORE,
    now: Optional[float] = None,
) -> BenchmarkReading:
    """Deterministic benchmark reading used when the oracle is unreachable."""
    return BenchmarkReading(
        benchmark_score=FALLBACK_BENCHMARKS.get(hardware_model, default_score),
        reference_price_per_hour=0,
        timestamp=time.time() if now is None else now,
        source="fallback",
    )


def outcome_change(outcome: JobOutcome) -> float:
    """Score change for a job outcome."""
    if not outcome.success:
        return -FAILURE_PENALTY
    change = SUCCESS_BASE_BONUS + max(0.0, SPEED_BONUS_CAP - outcome.duration_seconds / 60)
    if outcome.benchmark is not None:
        change *= outcome.benchmark.benchmark_score / BENCHMARK_REFERENCE
    return change


def oracle_change(reading: BenchmarkReading) -> float:
    """Score change for a periodic oracle recalibration."""
    return (reading.benchmark_score / BENCHMARK_REFERENCE - 1) * ORACLE_ADJUSTMENT_SCALE


class ReputationScorer:
    """Computes bounded reputation updates and persists them."""

    def __init__(
        self,
        store: ScoreStore,
        oracle: BenchmarkOracle,
        min_score: int = 0,
        max_score: int = 10000,
        default_benchmark_score: int = DEFAULT_BENCHMARK_SCORE,
        clock: Callable[[], float] = time.time,
        metrics: Optional[PrometheusExporter] = None,
    ) -> None:
        self._store = store
        self._oracle = oracle
        self._min_score = min_score
        self._max_score = max_score
        self._default_benchmark = default_benchmark_score
        self._clock = clock
        self._metrics = metrics
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def clamp(self, score: float) -> int:
        """Clamp a score to the configured bounds and round it.

        Raises:
            ValueError: If the score is NaN.
        """
        if math.isnan(score):
            raise ValueError("Reputation score is NaN")
        return int(round(min(max(score, self._min_score), self._max_score)))

    async def update_score(self, outcome: JobOutcome) -> ReputationUpdate:
        """Apply a job outcome to the provider's score.

        Args:
            outcome: Success or failure of a job on the provider.

        Returns:
            The persisted audit record.
        """
        if outcome.success:
            reason = f"Job {outcome.job_id} completed successfully"
        else:
            reason = f"Job {outcome.job_id} failed"
        update = await self._apply(
            outcome.resource_id, outcome.host, outcome_change(outcome), reason
        )
        if self._metrics:
            self._metrics.record_reputation_update("success" if outcome.success else "failure")
        return update

    async def update_score_from_oracle(
        self, resource_id: ResourceId, hardware_model: str
    ) -> ReputationUpdate:
        """Recalibrate a provider's score from the benchmark oracle.

        Oracle failures fall back to the deterministic benchmark table.
        """
        try:
            reading = await self._oracle.fetch_benchmark(hardware_model)
        except OracleUnavailable as e:
            logger.warning(f"Oracle unavailable for {hardware_model}, using fallback: {e}")
            reading = fallback_benchmark(hardware_model, self._default_benchmark, self._clock())
        if not math.isfinite(reading.benchmark_score):
            logger.warning(f"Oracle returned non-finite benchmark for {hardware_model}, using fallback")
            reading = fallback_benchmark(hardware_model, self._default_benchmark, self._clock())

        update = await self._apply(
            resource_id,
            ORACLE_HOST,
            oracle_change(reading),
            f"Oracle benchmark update for {hardware_model} ({reading.source})",
        )
        if self._metrics:
            self._metrics.record_reputation_update("oracle")
        return update

    async def batch_update(self, outcomes: Sequence[JobOutcome]) -> list[ReputationUpdate]:
        """Apply outcomes concurrently.

        A failing outcome is logged and skipped; it never blocks the others.

        Returns:
            Successful updates, in input order.
        """
        results = await asyncio.gather(
            *(self.update_score(outcome) for outcome in outcomes),
            return_exceptions=True,
        )
        updates: list[ReputationUpdate] = []
        for outcome, result in zip(outcomes, results):
            if isinstance(result, BaseException):
                logger.error(f"Reputation update for job {outcome.job_id} failed: {result}")
                continue
            updates.append(result)
        return updates

    async def recalibrate(self, listings: Iterable[ProviderListing]) -> list[ReputationUpdate]:
        """Run an oracle recalibration sweep over provider listings."""
        listings = list(listings)
        results = await asyncio.gather(
            *(
                self.update_score_from_oracle(listing.public_key, listing.specs.gpu_model)
                for listing in listings
            ),
            return_exceptions=True,
        )
        updates: list[ReputationUpdate] = []
        for listing, result in zip(listings, results):
            if isinstance(result, BaseException):
                logger.error(f"Recalibration of {listing.public_key} failed: {result}")
                continue
            updates.append(result)
        logger.info(f"Recalibrated {len(updates)}/{len(listings)} providers")
        return updates

    async def _apply(
        self, resource_id: ResourceId, host: str, change: float, reason: str
    ) -> ReputationUpdate:
        async with self._locks[resource_id]:
            with tracer.start_as_current_span(
                "reputation.update", attributes={"resource.id": resource_id}
            ):
                current = await self._store.get_score(resource_id)
                update = ReputationUpdate(
                    resource_id=resource_id,
                    host=host,
                    old_score=current,
                    new_score=self.clamp(current + change),
                    reason=reason,
                    timestamp=self._clock(),
                )
                await self._store.put_update(update)

        logger.info(
            f"Score for {resource_id}: {update.old_score} -> {update.new_score} ({reason})"
        )
        return update
