"""Domain value objects for the compute marketplace.

Value objects are immutable objects without identity, such as the
job, queue entry and resource identifiers.
"""

from compute_market.domain.value_objects.identifiers import (
    JobId,
    QueueEntryId,
    ResourceId,
    create_job_id,
    create_queue_entry_id,
)

__all__ = [
    "JobId",
    "QueueEntryId",
    "ResourceId",
    "create_job_id",
    "create_queue_entry_id",
]
