"""Domain services for marketplace business logic.

Services implement core workflows:
- MatchingEngine: filters and scores providers for a job
- JobQueue: priority queue driving matching and dispatch
- ReputationScorer: bounded reputation arithmetic
"""

from compute_market.domain.services.match_queue import JobQueue
from compute_market.domain.services.matcher import MatchingEngine, MatchScore
from compute_market.domain.services.reputation_scorer import (
    ReputationScorer,
    fallback_benchmark,
)

__all__ = [
    "JobQueue",
    "MatchingEngine",
    "MatchScore",
    "ReputationScorer",
    "fallback_benchmark",
]
