"""Inbound port interfaces for the compute marketplace.

Inbound ports define what the core offers to the surrounding request or
transport layer. Adapters implement them with REST, RPC, etc.
"""

from __future__ import annotations

from typing import Protocol

from compute_market.domain.entities.job import JobStatus, JobSubmission
from compute_market.domain.value_objects.identifiers import JobId


class JobLifecycleAPI(Protocol):
    """Client- and host-facing job lifecycle operations."""

    def submit_job(self, submission: JobSubmission) -> JobId:
        """Validate and enqueue a job.

        Args:
            submission: Client key, requirements and payload references.

        Returns:
            JobId assigned to the job.
        """
        ...

    def get_job_status(self, job_id: JobId) -> JobStatus | None:
        """Get a snapshot of a job's status, or None if unknown."""
        ...

    def cancel_job(self, job_id: JobId, client_key: str) -> bool:
        """Cancel a pending job.

        Returns:
            True if cancelled, False otherwise.
        """
        ...

    async def handle_job_result(self, job_id: JobId, host: str, result_hash: str) -> JobStatus:
        """Settle a result reported by the job's host."""
        ...

    async def handle_job_failure(self, job_id: JobId, host: str, error: str) -> JobStatus:
        """Settle a failure reported by the job's host."""
        ...

    def get_active_jobs(self) -> list[JobStatus]:
        """Snapshot of all tracked jobs."""
        ...

    def cleanup_completed_jobs(self) -> int:
        """Evict settled jobs past the retention window."""
        ...

    def get_queue_stats(self) -> dict[str, int]:
        """Queue entry counts by state."""
        ...
