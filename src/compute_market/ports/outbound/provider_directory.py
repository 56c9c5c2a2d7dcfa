"""Provider directory port.

The provider directory is the ledger/RPC client that lists hardware
providers and executes escrow transactions. The marketplace core only
consumes it.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, Sequence

from compute_market.domain.entities.provider import ProviderListing


class ProviderDirectory(Protocol):
    """Protocol for the provider registry and escrow ledger.

    Listings must be returned in a stable order: the matching engine
    breaks score ties by that order.
    """

    @abstractmethod
    async def list_providers(self) -> Sequence[ProviderListing]:
        """Return the current set of provider listings."""
        ...

    @abstractmethod
    async def initiate_escrow(self, client_id: str, provider_id: str, amount: int) -> str:
        """Lock client funds for a job.

        Args:
            client_id: Client wallet / key paying for the job.
            provider_id: Resource id of the matched provider.
            amount: Amount to lock, smallest currency unit.

        Returns:
            Transaction reference.

        Raises:
            LedgerError: If the transaction fails.
        """
        ...
