"""Job queue that drives jobs through matching and dispatch.

The queue implements:
1. Priority ordering: high-priority jobs first, FIFO within a tier
2. Single-flight processing: at most one pass runs, one job is matching
3. Escrow before dispatch when a ledger is configured
4. Per-job failure containment: errors become the entry's failed status
5. State-change events for subscribers such as the lifecycle controller

Entries are never removed automatically. The queue is an append-mostly
log of attempts; dequeue() of a pending entry is the only removal.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Callable, Optional

from opentelemetry import trace

from compute_market.domain.entities.job import (
    JobPayload,
    JobRequirements,
    QueuedJob,
    QueueEvent,
    QueueState,
)
from compute_market.domain.services.matcher import MatchingEngine
from compute_market.domain.value_objects.identifiers import QueueEntryId, create_queue_entry_id
from compute_market.ports.outbound.provider_directory import ProviderDirectory

if TYPE_CHECKING:
    from compute_market.adapters.outbound.metrics import PrometheusExporter

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

QueueListener = Callable[[QueueEvent], None]


class JobQueue:
    """Priority job queue with single-flight matching and dispatch."""

    def __init__(
        self,
        matcher: MatchingEngine,
        ledger: Optional[ProviderDirectory] = None,
        clock: Callable[[], float] = time.time,
        metrics: Optional[PrometheusExporter] = None,
    ) -> None:
        """Initialize the queue.

        Args:
            matcher: Matching engine used for matching and dispatch.
            ledger: Escrow ledger. Escrow is skipped when None.
            clock: Epoch-seconds clock.
            metrics: Optional Prometheus exporter.
        """
        self._matcher = matcher
        self._ledger = ledger
        self._clock = clock
        self._metrics = metrics
        self._entries: list[QueuedJob] = []
        self._listeners: list[QueueListener] = []
        self._sequence = itertools.count()
        self._processing = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_processing(self) -> bool:
        return self._processing

    def subscribe(self, listener: QueueListener) -> None:
        """Register a callback invoked on every entry state change."""
        self._listeners.append(listener)

    def enqueue(self, requirements: JobRequirements, payload: JobPayload) -> QueueEntryId:
        """Add a job to the queue and make sure a processing pass runs.

        Returns:
            Queue entry id of the new attempt.
        """
        now = self._clock()
        entry = QueuedJob(
            id=create_queue_entry_id(now),
            requirements=requirements,
            payload=payload,
            created_at=now,
            sequence=next(self._sequence),
        )
        self._entries.append(entry)
        logger.info(
            f"Queued {entry.id} for job {payload.job_id} "
            f"(high_priority={requirements.is_high_priority})"
        )
        self._publish(entry)
        self._start_processing()
        return entry.id

    def dequeue(self, entry_id: QueueEntryId) -> bool:
        """Remove a pending entry.

        Returns:
            True if removed, False if unknown or no longer pending.
        """
        for index, entry in enumerate(self._entries):
            if entry.id != entry_id:
                continue
            if not entry.is_pending:
                logger.info(f"Cannot dequeue {entry_id} in state {entry.status.value}")
                return False
            del self._entries[index]
            logger.info(f"Removed {entry_id} from queue")
            self._update_depth()
            return True
        return False

    def get_stats(self) -> dict[str, int]:
        """Count entries by state."""
        stats = {state.value: 0 for state in QueueState}
        for entry in self._entries:
            stats[entry.status.value] += 1
        return stats

    def get_queue(self) -> list[QueuedJob]:
        """Return copies of all entries in current order."""
        return [replace(entry) for entry in self._entries]

    def get_entry(self, entry_id: QueueEntryId) -> Optional[QueuedJob]:
        for entry in self._entries:
            if entry.id == entry_id:
                return replace(entry)
        return None

    async def wait_idle(self) -> None:
        """Wait for the background processing pass, if any, to finish."""
        while self._task is not None and not self._task.done():
            await self._task

    async def process_pending(self) -> int:
        """Run a processing pass inline.

        If a pass is already running, waits for it instead of starting
        a second one.

        Returns:
            Number of entries processed by this call.
        """
        if self._processing:
            await self.wait_idle()
            return 0
        self._processing = True
        try:
            return await self._drain()
        finally:
            self._processing = False

    def _start_processing(self) -> None:
        if self._processing:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, entry waits for process_pending()")
            return
        self._processing = True
        self._task = loop.create_task(self._run_pass())

    async def _run_pass(self) -> None:
        try:
            await self._drain()
        finally:
            self._processing = False

    def _sort(self) -> None:
        self._entries.sort(
            key=lambda e: (not e.requirements.is_high_priority, e.created_at, e.sequence)
        )

    def _next_pending(self) -> Optional[QueuedJob]:
        self._sort()
        return next((entry for entry in self._entries if entry.is_pending), None)

    async def _drain(self) -> int:
        processed = 0
        while (entry := self._next_pending()) is not None:
            await self._process_entry(entry)
            processed += 1
        return processed

    async def _process_entry(self, entry: QueuedJob) -> None:
        entry.transition(QueueState.MATCHING)
        entry.processed_at = self._clock()
        self._publish(entry)
        logger.info(f"Processing {entry.id} (job {entry.payload.job_id})")

        try:
            started = time.perf_counter()
            with tracer.start_as_current_span("queue.match", attributes={"job.id": entry.payload.job_id}):
                match = await self._matcher.find_best_match(entry.requirements)
            if self._metrics:
                self._metrics.observe_match_latency(time.perf_counter() - started)

            if match is None:
                self._fail(entry, "No matching provider available")
                return

            entry.matched_provider = match
            entry.transition(QueueState.MATCHED)
            self._publish(entry)
            logger.info(f"Matched {entry.id} to resource {match.public_key}")

            amount = match.specs.cost_for(entry.payload.timeout_seconds)
            if self._ledger is not None and entry.payload.client_key and amount > 0:
                entry.escrow_reference = await self._ledger.initiate_escrow(
                    entry.payload.client_key, match.public_key, amount
                )
                logger.info(f"Escrow {entry.escrow_reference} locked {amount} for {entry.id}")

            with tracer.start_as_current_span(
                "queue.dispatch",
                attributes={"job.id": entry.payload.job_id, "provider.host": match.host},
            ):
                dispatched = await self._matcher.dispatch_job_to_host(match, entry.payload)

            if not dispatched:
                self._fail(entry, f"Dispatch to host {match.host} failed")
                return

            entry.transition(QueueState.DISPATCHED)
            self._publish(entry)
            if self._metrics:
                self._metrics.record_job_dispatched()
            logger.info(f"Dispatched {entry.id}")
        except asyncio.CancelledError:
            self._fail(entry, "Processing cancelled")
            raise
        except Exception as e:
            logger.exception(f"Error processing {entry.id}")
            self._fail(entry, str(e) or type(e).__name__)

    def _fail(self, entry: QueuedJob, reason: str) -> None:
        if entry.status in (QueueState.FAILED, QueueState.DISPATCHED):
            return
        entry.error = reason
        entry.transition(QueueState.FAILED)
        self._publish(entry)
        if self._metrics:
            self._metrics.record_job_failed("queue")
        logger.warning(f"Entry {entry.id} failed: {reason}")

    def _publish(self, entry: QueuedJob) -> None:
        event = QueueEvent(
            entry_id=entry.id,
            job_id=entry.payload.job_id,
            state=entry.status,
            timestamp=self._clock(),
            provider=entry.matched_provider,
            error=entry.error,
        )
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Queue listener failed for {entry.id}")
        self._update_depth()

    def _update_depth(self) -> None:
        if self._metrics:
            self._metrics.update_queue_depth(self.get_stats())
