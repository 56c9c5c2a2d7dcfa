"""Pytest configuration and shared fixtures for marketplace tests."""

from __future__ import annotations

from typing import Optional
from unittest.mock import patch

import pytest

from compute_market.adapters.outbound.memory_provider_directory import InMemoryProviderDirectory
from compute_market.adapters.outbound.memory_score_store import InMemoryScoreStore
from compute_market.domain.entities.job import JobPayload, JobRequirements
from compute_market.domain.entities.provider import HardwareSpec, ProviderListing, ProviderStatus
from compute_market.domain.entities.reputation import BenchmarkReading
from compute_market.domain.errors import OracleUnavailable
from compute_market.domain.value_objects.identifiers import JobId, ResourceId
from compute_market.infrastructure.config import Config
from compute_market.infrastructure.container import Container

T0 = 1_700_000_000.0


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingHostChannel:
    """Host channel that records dispatches and answers with a fixed outcome."""

    def __init__(self, accept: bool = True, error: Optional[Exception] = None) -> None:
        self.accept = accept
        self.error = error
        self.sent: list[tuple[ProviderListing, JobPayload]] = []

    async def send_job(self, provider: ProviderListing, payload: JobPayload) -> bool:
        self.sent.append((provider, payload))
        if self.error is not None:
            raise self.error
        return self.accept


class StubOracle:
    """Oracle returning a fixed score, or raising OracleUnavailable."""

    def __init__(self, score: Optional[float] = 10000, now: float = T0) -> None:
        self.score = score
        self.now = now
        self.requests: list[str] = []

    async def fetch_benchmark(self, hardware_model: str) -> BenchmarkReading:
        self.requests.append(hardware_model)
        if self.score is None:
            raise OracleUnavailable("feed down")
        return BenchmarkReading(
            benchmark_score=self.score,
            reference_price_per_hour=0,
            timestamp=self.now,
            source="stub",
        )


def make_listing(
    key: str = "ResPDA1",
    host: str = "HostA",
    vram_gb: int = 24,
    compute_rating: int = 15000,
    price_per_hour: int = 5000,
    status: ProviderStatus = ProviderStatus.IDLE,
    reputation_score: int = 9500,
    last_updated: float = T0,
    gpu_model: str = "RTX 4090",
) -> ProviderListing:
    return ProviderListing(
        public_key=ResourceId(key),
        host=host,
        specs=HardwareSpec(
            gpu_model=gpu_model,
            vram_gb=vram_gb,
            cpu_cores=16,
            compute_rating=compute_rating,
            price_per_hour=price_per_hour,
        ),
        status=status,
        reputation_score=reputation_score,
        last_updated=last_updated,
    )


def make_requirements(
    required_vram: int = 16,
    min_compute_rating: int = 10000,
    max_price_per_second: int = 2,
    timeout_seconds: int = 3600,
    is_high_priority: bool = False,
) -> JobRequirements:
    return JobRequirements(
        required_vram=required_vram,
        min_compute_rating=min_compute_rating,
        max_price_per_second=max_price_per_second,
        timeout_seconds=timeout_seconds,
        is_high_priority=is_high_priority,
    )


def make_payload(job_id: str = "JOB-test", client_key: Optional[str] = None) -> JobPayload:
    return JobPayload(
        job_id=JobId(job_id),
        image_reference="dockerhub/pytorch-model-v2:latest",
        input_reference="s3://client-data-bucket/input-file.zip",
        timeout_seconds=3600,
        client_key=client_key,
    )


@pytest.fixture(autouse=True)
def reset_container():
    """Reset the DI container before each test."""
    Container.reset()
    yield
    Container.reset()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def directory() -> InMemoryProviderDirectory:
    return InMemoryProviderDirectory()


@pytest.fixture
def host_channel() -> RecordingHostChannel:
    return RecordingHostChannel()


@pytest.fixture
def score_store() -> InMemoryScoreStore:
    return InMemoryScoreStore(default_score=1000)


@pytest.fixture
def oracle() -> StubOracle:
    return StubOracle()


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration."""
    return Config()


@pytest.fixture
def container(test_config: Config, directory, host_channel, oracle, score_store) -> Container:
    """Provide a container wired to in-process collaborators."""
    with patch("compute_market.infrastructure.container.get_config", return_value=test_config):
        return Container.create(
            directory=directory,
            host_channel=host_channel,
            oracle=oracle,
            score_store=score_store,
        )


# Pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "property: mark test as property-based test")
