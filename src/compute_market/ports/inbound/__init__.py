"""Inbound ports - interfaces offered by the compute marketplace."""

from compute_market.ports.inbound.api import JobLifecycleAPI

__all__ = [
    "JobLifecycleAPI",
]
