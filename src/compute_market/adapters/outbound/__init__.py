"""Outbound adapters - implementations of the outbound ports."""

from compute_market.adapters.outbound.http_host_channel import HttpHostChannel
from compute_market.adapters.outbound.http_oracle import HttpBenchmarkOracle
from compute_market.adapters.outbound.memory_provider_directory import InMemoryProviderDirectory
from compute_market.adapters.outbound.memory_score_store import InMemoryScoreStore
from compute_market.adapters.outbound.metrics import PrometheusExporter

__all__ = [
    "HttpBenchmarkOracle",
    "HttpHostChannel",
    "InMemoryProviderDirectory",
    "InMemoryScoreStore",
    "PrometheusExporter",
]
