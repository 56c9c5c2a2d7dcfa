"""Application layer for the compute marketplace.

Composes matching, queueing and reputation into the job lifecycle.
"""

from compute_market.application.controller import (
    JobLifecycleController,
    validate_requirements,
)

__all__ = [
    "JobLifecycleController",
    "validate_requirements",
]
