"""HTTP benchmark oracle adapter.

Queries a price/benchmark feed over HTTP. Any transport, HTTP or payload
error falls back to the deterministic benchmark table, so reputation
updates never abort because the feed is down.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Optional

import httpx

from compute_market.domain.entities.reputation import BenchmarkReading
from compute_market.domain.errors import OracleUnavailable
from compute_market.domain.services.reputation_scorer import (
    DEFAULT_BENCHMARK_SCORE,
    fallback_benchmark,
)

logger = logging.getLogger(__name__)


class HttpBenchmarkOracle:
    """Benchmark oracle backed by an HTTP feed."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 5.0,
        default_score: int = DEFAULT_BENCHMARK_SCORE,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the oracle client.

        Args:
            base_url: Base URL of the benchmark feed
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            default_score: Fallback score for models missing from the table
            client: Shared HTTP client; one is created per request if None
            clock: Epoch-seconds clock for reading timestamps
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.default_score = default_score
        self._client = client
        self._clock = clock

    async def fetch_benchmark(self, hardware_model: str) -> BenchmarkReading:
        """Fetch a reading, falling back to the static table on any failure."""
        try:
            return await self.fetch_live(hardware_model)
        except OracleUnavailable as exc:
            logger.warning(f"Benchmark feed unavailable for {hardware_model}: {exc}")
            return fallback_benchmark(hardware_model, self.default_score, self._clock())

    async def fetch_live(self, hardware_model: str) -> BenchmarkReading:
        """Fetch a reading from the feed.

        Raises:
            OracleUnavailable: If the feed cannot be queried or the payload is invalid.
        """
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        url = f"{self.base_url}/api/benchmarks/{hardware_model}"

        try:
            if self._client is not None:
                response = await self._client.get(url, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, headers=headers)
            response.raise_for_status()
            data: Any = response.json()
        except httpx.HTTPStatusError as exc:
            raise OracleUnavailable(f"feed returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise OracleUnavailable(f"feed request failed: {exc}") from exc
        except ValueError as exc:
            raise OracleUnavailable("feed returned invalid JSON") from exc

        score = data.get("score") if isinstance(data, dict) else None
        if (
            not isinstance(score, (int, float))
            or isinstance(score, bool)
            or not math.isfinite(score)
            or score < 0
        ):
            raise OracleUnavailable(f"feed returned no usable score for {hardware_model}")

        return BenchmarkReading(
            benchmark_score=float(score),
            reference_price_per_hour=int(data.get("price_per_hour") or 0),
            timestamp=self._clock(),
            source="oracle",
        )
