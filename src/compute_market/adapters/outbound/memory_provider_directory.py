"""In-memory provider directory.

Stands in for the ledger/RPC client during development and tests:
listings are held in insertion order and escrow transactions are
simulated.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional

from compute_market.domain.entities.provider import ProviderListing
from compute_market.domain.errors import LedgerError

logger = logging.getLogger(__name__)


class InMemoryProviderDirectory:
    """In-memory implementation of ProviderDirectory."""

    def __init__(self, listings: Optional[Iterable[ProviderListing]] = None) -> None:
        self._listings: dict[str, ProviderListing] = {}
        self.escrows: list[tuple[str, str, int, str]] = []
        for listing in listings or ():
            self.upsert(listing)

    def upsert(self, listing: ProviderListing) -> None:
        """Add or replace a listing, keeping its original position."""
        self._listings[listing.public_key] = listing

    async def list_providers(self) -> list[ProviderListing]:
        return list(self._listings.values())

    async def initiate_escrow(self, client_id: str, provider_id: str, amount: int) -> str:
        """Simulate locking client funds.

        Raises:
            LedgerError: For unknown providers or non-positive amounts.
        """
        if provider_id not in self._listings:
            raise LedgerError(f"Unknown provider {provider_id}")
        if amount <= 0:
            raise LedgerError(f"Escrow amount must be positive, got {amount}")

        reference = f"escrow-{uuid.uuid4().hex[:16]}"
        self.escrows.append((client_id, provider_id, amount, reference))
        logger.info(f"Escrow {reference}: client={client_id} provider={provider_id} amount={amount}")
        return reference
