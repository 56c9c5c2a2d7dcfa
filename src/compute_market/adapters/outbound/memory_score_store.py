"""In-memory reputation score store.

A simple in-memory implementation of ScoreStore for testing and
development. Scores and update history are not persisted across restarts.

Usage:
    store = InMemoryScoreStore(default_score=1000)
    await store.get_score("ResPDA1")  # 1000
"""

from __future__ import annotations

from collections import defaultdict

from compute_market.domain.entities.reputation import ReputationUpdate


class InMemoryScoreStore:
    """In-memory implementation of ScoreStore.

    Keeps the current score per resource and the full audit trail of
    updates in dictionaries.
    """

    def __init__(self, default_score: int = 1000) -> None:
        self._default_score = default_score
        self._scores: dict[str, int] = {}
        self._history: defaultdict[str, list[ReputationUpdate]] = defaultdict(list)

    async def get_score(self, resource_id: str) -> int:
        """Return the current score, or the default for unknown resources."""
        return self._scores.get(resource_id, self._default_score)

    async def put_update(self, update: ReputationUpdate) -> None:
        """Record an update and make its new score current."""
        self._scores[update.resource_id] = update.new_score
        self._history[update.resource_id].append(update)

    def set_score(self, resource_id: str, score: int) -> None:
        """Seed a score without an audit record."""
        self._scores[resource_id] = score

    def history(self, resource_id: str) -> list[ReputationUpdate]:
        """Return the updates recorded for a resource, oldest first."""
        return list(self._history.get(resource_id, []))
