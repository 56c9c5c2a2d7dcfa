"""Marketplace type-safe identifiers.

These value objects provide type safety for job, queue and provider
identifiers using Python's NewType for zero-runtime overhead.
"""

from __future__ import annotations

import time
import uuid
from typing import NewType

# Client-facing job identifier owned by the lifecycle controller
JobId = NewType("JobId", str)

# Queue-local identifier of a single matching attempt
QueueEntryId = NewType("QueueEntryId", str)

# Provider resource identifier (public key / PDA address of the listing)
ResourceId = NewType("ResourceId", str)


def create_job_id() -> JobId:
    """Create a fresh client-facing job identifier."""
    return JobId(f"JOB-{uuid.uuid4().hex[:12]}")


def create_queue_entry_id(now: float | None = None) -> QueueEntryId:
    """Create a queue entry identifier from a timestamp and random suffix."""
    millis = int((time.time() if now is None else now) * 1000)
    return QueueEntryId(f"job_{millis}_{uuid.uuid4().hex[:8]}")
