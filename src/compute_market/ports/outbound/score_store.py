"""Reputation score persistence port.

No wire format is mandated. The reputation scorer serialises
read-compute-persist per resource id, so stores only need atomic
single calls.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from compute_market.domain.entities.reputation import ReputationUpdate


class ScoreStore(Protocol):
    """Protocol for reading and persisting reputation scores."""

    @abstractmethod
    async def get_score(self, resource_id: str) -> int:
        """Return the current score, or the default for unknown resources."""
        ...

    @abstractmethod
    async def put_update(self, update: ReputationUpdate) -> None:
        """Persist an update: record it and make new_score current."""
        ...
