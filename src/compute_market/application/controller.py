"""Job lifecycle controller.

Client-facing surface of the marketplace. Owns job identity and status,
validates submissions, enqueues work, handles cancellation and settles
provider-reported results through the reputation scorer.

The controller subscribes to the job queue's state-change events, so the
matched provider's host is on record before any result can be accepted.

Job states: pending -> matched -> executing -> completed | failed
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from compute_market.adapters.outbound.metrics import PrometheusExporter
from compute_market.domain.entities.job import (
    JobPayload,
    JobRequirements,
    JobState,
    JobStatus,
    JobSubmission,
    QueueEvent,
    QueueState,
)
from compute_market.domain.entities.reputation import JobOutcome
from compute_market.domain.errors import JobStateError, UnauthorizedError, ValidationError
from compute_market.domain.services.match_queue import JobQueue
from compute_market.domain.services.reputation_scorer import ReputationScorer
from compute_market.domain.value_objects.identifiers import (
    JobId,
    QueueEntryId,
    ResourceId,
    create_job_id,
)

logger = logging.getLogger(__name__)

UNKNOWN_RESOURCE = ResourceId("unknown")
CANCELLED_REASON = "cancelled by client"


def validate_requirements(requirements: JobRequirements) -> None:
    """Reject requirements with non-positive constraints.

    Raises:
        ValidationError: Naming the first offending field.
    """
    checks = (
        ("required_vram", requirements.required_vram),
        ("min_compute_rating", requirements.min_compute_rating),
        ("max_price_per_second", requirements.max_price_per_second),
        ("timeout_seconds", requirements.timeout_seconds),
    )
    for field, value in checks:
        if value <= 0:
            raise ValidationError(field, f"must be positive, got {value}")


class JobLifecycleController:
    """Tracks client jobs from submission to settlement."""

    def __init__(
        self,
        queue: JobQueue,
        scorer: ReputationScorer,
        retention_seconds: float = 24 * 60 * 60,
        sync_queue_status: bool = True,
        clock: Callable[[], float] = time.time,
        metrics: Optional[PrometheusExporter] = None,
    ) -> None:
        """Initialize the controller.

        Args:
            queue: Job queue used for matching and dispatch.
            scorer: Reputation scorer applied on settlement.
            retention_seconds: How long terminal jobs are kept.
            sync_queue_status: Mirror queue state changes into job status.
                When False only the host, resource and start time are
                recorded and the status stays pending.
            clock: Epoch-seconds clock.
            metrics: Optional Prometheus exporter.
        """
        self._queue = queue
        self._scorer = scorer
        self._retention = retention_seconds
        self._sync_status = sync_queue_status
        self._clock = clock
        self._metrics = metrics
        self._jobs: dict[JobId, JobStatus] = {}
        self._entries: dict[JobId, QueueEntryId] = {}
        self._queue.subscribe(self._on_queue_event)

    def submit_job(self, submission: JobSubmission) -> JobId:
        """Validate and enqueue a job.

        Matching happens asynchronously in the queue.

        Returns:
            The new job id.

        Raises:
            ValidationError: If the requirements are invalid.
        """
        validate_requirements(submission.requirements)

        job_id = create_job_id()
        self._jobs[job_id] = JobStatus(
            job_id=job_id,
            client_key=submission.client_key,
            submitted_at=self._clock(),
        )
        payload = JobPayload(
            job_id=job_id,
            image_reference=submission.image_reference,
            input_reference=submission.input_reference,
            timeout_seconds=submission.requirements.timeout_seconds,
            client_key=submission.client_key,
        )
        self._entries[job_id] = self._queue.enqueue(submission.requirements, payload)

        if self._metrics:
            self._metrics.record_job_submitted()
        logger.info(f"Job {job_id} submitted for client {submission.client_key}")
        return job_id

    def get_job_status(self, job_id: JobId) -> Optional[JobStatus]:
        job = self._jobs.get(job_id)
        return replace(job) if job else None

    def get_active_jobs(self) -> list[JobStatus]:
        return [replace(job) for job in self._jobs.values()]

    def cancel_job(self, job_id: JobId, client_key: str) -> bool:
        """Cancel a job that is still pending.

        Returns:
            True if cancelled. False, with no side effects, if the job is
            unknown, owned by another client, no longer pending, or its
            queue entry can no longer be dequeued.
        """
        job = self._jobs.get(job_id)
        if job is None or job.status is not JobState.PENDING:
            return False
        if job.client_key != client_key:
            logger.warning(f"Client {client_key} may not cancel job {job_id}")
            return False

        entry_id = self._entries.get(job_id)
        if entry_id is None or not self._queue.dequeue(entry_id):
            return False

        job.status = JobState.FAILED
        job.error = CANCELLED_REASON
        job.ended_at = self._clock()
        if self._metrics:
            self._metrics.record_job_cancelled()
        logger.info(f"Job {job_id} cancelled by client")
        return True

    async def handle_job_result(self, job_id: JobId, host: str, result_hash: str) -> JobStatus:
        """Accept a completed result reported by the job's host.

        Marks the job completed and credits the provider. If settlement
        fails, the provider is penalised instead and the job is marked
        failed with the error message.

        Raises:
            UnauthorizedError: If the host is not on record for the job.
            JobStateError: If the job is already completed or failed.
        """
        job = self._authorize(job_id, host)
        resource_id = self._resolve_resource(job_id)

        try:
            job.status = JobState.COMPLETED
            job.ended_at = self._clock()
            job.result_hash = result_hash
            if job.started_at is None:
                job.started_at = job.submitted_at
            await self._scorer.update_score(
                JobOutcome(
                    job_id=job_id,
                    host=host,
                    resource_id=resource_id,
                    success=True,
                    duration_seconds=job.elapsed_seconds,
                )
            )
            if self._metrics:
                self._metrics.record_job_completed(job.elapsed_seconds)
            logger.info(f"Job {job_id} completed by host {host}")
        except Exception as e:
            logger.exception(f"Failed to settle result for job {job_id}")
            await self._settle_failure(job, host, resource_id, str(e) or type(e).__name__)

        return replace(job)

    async def handle_job_failure(self, job_id: JobId, host: str, error: str) -> JobStatus:
        """Accept a failure reported by the job's host.

        Raises:
            UnauthorizedError: If the host is not on record for the job.
            JobStateError: If the job is already completed or failed.
        """
        job = self._authorize(job_id, host)
        await self._settle_failure(job, host, self._resolve_resource(job_id), error)
        return replace(job)

    def cleanup_completed_jobs(self) -> int:
        """Evict terminal jobs older than the retention window.

        Queue entries are not touched.

        Returns:
            Number of evicted jobs.
        """
        cutoff = self._clock() - self._retention
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status.is_terminal and job.ended_at is not None and job.ended_at < cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
            self._entries.pop(job_id, None)
        if expired:
            logger.info(f"Evicted {len(expired)} settled jobs")
        return len(expired)

    def get_queue_stats(self) -> dict[str, int]:
        return self._queue.get_stats()

    def _authorize(self, job_id: JobId, host: str) -> JobStatus:
        job = self._jobs.get(job_id)
        if job is None:
            raise UnauthorizedError(f"Unknown job {job_id}")
        if job.host is None or job.host != host:
            raise UnauthorizedError(f"Host {host} is not on record for job {job_id}")
        if job.status.is_terminal:
            raise JobStateError(f"Job {job_id} is already {job.status.value}")
        return job

    def _resolve_resource(self, job_id: JobId) -> ResourceId:
        entry_id = self._entries.get(job_id)
        for entry in self._queue.get_queue():
            if entry.id == entry_id and entry.matched_provider is not None:
                return entry.matched_provider.public_key
        return UNKNOWN_RESOURCE

    async def _settle_failure(
        self, job: JobStatus, host: str, resource_id: ResourceId, error: str
    ) -> None:
        job.status = JobState.FAILED
        job.error = error
        job.ended_at = self._clock()
        if self._metrics:
            self._metrics.record_job_failed("host")
        logger.warning(f"Job {job.job_id} failed: {error}")
        await self._scorer.update_score(
            JobOutcome(
                job_id=job.job_id,
                host=host,
                resource_id=resource_id,
                success=False,
                duration_seconds=0,
            )
        )

    def _on_queue_event(self, event: QueueEvent) -> None:
        job = self._jobs.get(event.job_id)
        if job is None or job.status.is_terminal:
            return

        if event.state is QueueState.MATCHED and event.provider is not None:
            job.host = event.provider.host
            job.resource_id = event.provider.public_key
            if self._sync_status:
                job.status = JobState.MATCHED
        elif event.state is QueueState.DISPATCHED:
            job.started_at = event.timestamp
            if self._sync_status:
                job.status = JobState.EXECUTING
        elif event.state is QueueState.FAILED and self._sync_status:
            job.status = JobState.FAILED
            job.error = event.error
            job.ended_at = event.timestamp
