"""Host execution channel port."""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from compute_market.domain.entities.job import JobPayload
from compute_market.domain.entities.provider import ProviderListing


class HostChannel(Protocol):
    """Protocol for handing a job to a provider's worker node."""

    @abstractmethod
    async def send_job(self, provider: ProviderListing, payload: JobPayload) -> bool:
        """Send a job to the provider's host.

        Returns:
            True if the host accepted the job, False if it declined.

        Raises:
            DispatchFailure: If the host could not be reached.
        """
        ...
