"""Outbound ports - interfaces for external collaborators.

Outbound ports define contracts for the systems the marketplace core
depends on: the provider directory, the benchmark oracle, the host
execution channel and reputation persistence.
"""

from compute_market.ports.outbound.benchmark_oracle import BenchmarkOracle
from compute_market.ports.outbound.host_channel import HostChannel
from compute_market.ports.outbound.provider_directory import ProviderDirectory
from compute_market.ports.outbound.score_store import ScoreStore

__all__ = [
    "BenchmarkOracle",
    "HostChannel",
    "ProviderDirectory",
    "ScoreStore",
]
