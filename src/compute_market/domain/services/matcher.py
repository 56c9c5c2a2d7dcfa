"""Matching engine that picks the best provider for a job.

The engine implements:
1. Availability filter: only Idle providers are considered
2. Hard constraints: VRAM, compute rating and per-second price
3. Additive scoring across four capped components:
   - capability (0-40): over-provisioning rewarded up to 2x the requirement
   - price (0-20): cheaper relative to the client's maximum scores higher
   - reputation (0-30): proportional to the 0-10000 reputation score
   - freshness (0-10): one point lost per six seconds of heartbeat staleness
4. Deterministic selection: strictly highest total, first-seen wins ties

Matching has no side effects. "No capacity" is a normal None result.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from compute_market.domain.entities.job import JobPayload, JobRequirements
from compute_market.domain.entities.provider import ProviderListing
from compute_market.domain.errors import DispatchFailure
from compute_market.ports.outbound.host_channel import HostChannel
from compute_market.ports.outbound.provider_directory import ProviderDirectory

logger = logging.getLogger(__name__)

CAPABILITY_WEIGHT = 20.0      # Per dimension (VRAM, compute)
PRICE_WEIGHT = 20.0
REPUTATION_WEIGHT = 30.0
FRESHNESS_WEIGHT = 10.0
MAX_REPUTATION = 10000


@dataclass(frozen=True)
class MatchScore:
    """Per-component score of a candidate provider."""
    capability: float
    price: float
    reputation: float
    freshness: float

    @property
    def total(self) -> float:
        return self.capability + self.price + self.reputation + self.freshness


def _capped_ratio(offered: float, required: float, weight: float) -> float:
    if required <= 0:
        return weight
    return min(offered / required * weight, weight)


class MatchingEngine:
    """Filters and scores provider listings against job requirements."""

    def __init__(
        self,
        directory: ProviderDirectory,
        host_channel: HostChannel,
        freshness_decay_seconds: float = 6.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the engine.

        Args:
            directory: Source of provider listings.
            host_channel: Execution channel used for dispatch.
            freshness_decay_seconds: Staleness that costs one freshness point.
            clock: Epoch-seconds clock used for freshness.
        """
        self._directory = directory
        self._host_channel = host_channel
        self._freshness_decay = freshness_decay_seconds
        self._clock = clock

    @staticmethod
    def is_eligible(listing: ProviderListing, requirements: JobRequirements) -> bool:
        """Check availability and every hard constraint."""
        if not listing.is_idle:
            return False
        specs = listing.specs
        return (
            specs.vram_gb >= requirements.required_vram
            and specs.compute_rating >= requirements.min_compute_rating
            and specs.price_per_second <= requirements.max_price_per_second
        )

    def score(
        self,
        listing: ProviderListing,
        requirements: JobRequirements,
        now: Optional[float] = None,
    ) -> MatchScore:
        """Score a candidate that already passed the hard constraints."""
        now = self._clock() if now is None else now
        specs = listing.specs

        capability = _capped_ratio(
            specs.vram_gb, requirements.required_vram, CAPABILITY_WEIGHT
        ) + _capped_ratio(
            specs.compute_rating, requirements.min_compute_rating, CAPABILITY_WEIGHT
        )

        if requirements.max_price_per_second > 0:
            price_ratio = float(specs.price_per_second) / float(requirements.max_price_per_second)
        else:
            price_ratio = 0.0
        price = max(PRICE_WEIGHT * (1 - price_ratio), 0.0)

        reputation = listing.reputation_score / MAX_REPUTATION * REPUTATION_WEIGHT

        staleness = now - listing.last_updated
        freshness = min(max(FRESHNESS_WEIGHT - staleness / self._freshness_decay, 0.0), FRESHNESS_WEIGHT)

        return MatchScore(
            capability=capability,
            price=price,
            reputation=reputation,
            freshness=freshness,
        )

    async def find_best_match(self, requirements: JobRequirements) -> Optional[ProviderListing]:
        """Find the best provider for the given requirements.

        Args:
            requirements: Job constraints.

        Returns:
            The highest-scoring eligible listing, or None if none qualifies.
        """
        listings = await self._directory.list_providers()
        candidates = [listing for listing in listings if self.is_eligible(listing, requirements)]
        if not candidates:
            logger.info(f"No eligible provider among {len(listings)} listings")
            return None

        now = self._clock()
        best: Optional[ProviderListing] = None
        best_total = 0.0
        for candidate in candidates:
            total = self.score(candidate, requirements, now).total
            if best is None or total > best_total:
                best, best_total = candidate, total

        logger.debug(
            f"Selected {best.public_key} with score {best_total:.2f} "
            f"from {len(candidates)} candidates"
        )
        return best

    async def dispatch_job_to_host(self, provider: ProviderListing, payload: JobPayload) -> bool:
        """Hand a job to the provider's host.

        Returns:
            True if the host accepted, False if it declined or was unreachable.
        """
        logger.info(f"Dispatching job {payload.job_id} to host {provider.host}")
        try:
            accepted = await self._host_channel.send_job(provider, payload)
        except DispatchFailure as e:
            logger.warning(f"Dispatch of job {payload.job_id} to {provider.host} failed: {e}")
            return False
        if not accepted:
            logger.warning(f"Host {provider.host} declined job {payload.job_id}")
        return accepted
