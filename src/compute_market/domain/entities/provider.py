"""Provider entities describing hardware offered on the marketplace.

Listings are supplied fresh by the provider directory on every matching
call. The core treats them as read-only snapshots: reputation changes are
written through the score store, never into a listing in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from compute_market.domain.value_objects.identifiers import ResourceId

SECONDS_PER_HOUR = 3600


class ProviderStatus(Enum):
    """Provider availability as advertised in its listing."""
    IDLE = "Idle"             # Accepting work
    BUSY = "Busy"             # Running a job
    OFFLINE = "Offline"       # Not reachable
    SUSPENDED = "Suspended"   # Barred from matching


@dataclass(frozen=True)
class HardwareSpec:
    """Hardware specification of a provider's machine."""
    gpu_model: str            # e.g., "NVIDIA RTX 4090"
    vram_gb: int              # GPU memory in GB
    cpu_cores: int
    compute_rating: int       # Synthetic compute benchmark
    price_per_hour: int       # Smallest currency unit

    @property
    def price_per_second(self) -> int:
        """Per-second price, truncated toward zero."""
        return self.price_per_hour // SECONDS_PER_HOUR

    def cost_for(self, seconds: int) -> int:
        """Cost of running for the given number of seconds, truncated."""
        return self.price_per_hour * seconds // SECONDS_PER_HOUR


@dataclass(frozen=True)
class ProviderListing:
    """A provider's current offer."""
    public_key: ResourceId    # Listing address, used as the resource id
    host: str                 # Operator wallet / host address
    specs: HardwareSpec
    status: ProviderStatus
    reputation_score: int     # Bounded 0-10000
    last_updated: float       # Last heartbeat, epoch seconds

    @property
    def is_idle(self) -> bool:
        return self.status is ProviderStatus.IDLE
