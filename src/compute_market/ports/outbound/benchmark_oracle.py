"""Benchmark oracle port."""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from compute_market.domain.entities.reputation import BenchmarkReading


class BenchmarkOracle(Protocol):
    """Protocol for the benchmark and reference price feed."""

    @abstractmethod
    async def fetch_benchmark(self, hardware_model: str) -> BenchmarkReading:
        """Fetch the benchmark reading for a hardware model.

        Implementations should fall back to a deterministic reading when
        the feed is unreachable. They may raise OracleUnavailable instead,
        in which case callers apply the fallback table themselves.
        """
        ...
