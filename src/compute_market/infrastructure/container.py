"""Dependency injection container for the compute marketplace."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog
from opentelemetry import trace

from compute_market.adapters.outbound.http_host_channel import HttpHostChannel
from compute_market.adapters.outbound.http_oracle import HttpBenchmarkOracle
from compute_market.adapters.outbound.memory_provider_directory import InMemoryProviderDirectory
from compute_market.adapters.outbound.memory_score_store import InMemoryScoreStore
from compute_market.adapters.outbound.metrics import PrometheusExporter
from compute_market.application.controller import JobLifecycleController
from compute_market.domain.services.match_queue import JobQueue
from compute_market.domain.services.matcher import MatchingEngine
from compute_market.domain.services.reputation_scorer import ReputationScorer
from compute_market.infrastructure.config import Config, get_config
from compute_market.infrastructure.logging import setup_logging
from compute_market.infrastructure.metrics import get_metrics
from compute_market.infrastructure.tracing import setup_tracing
from compute_market.ports.outbound.benchmark_oracle import BenchmarkOracle
from compute_market.ports.outbound.host_channel import HostChannel
from compute_market.ports.outbound.provider_directory import ProviderDirectory
from compute_market.ports.outbound.score_store import ScoreStore


@dataclass
class Container:
    """Dependency injection container for marketplace components."""

    config: Config
    logger: structlog.stdlib.BoundLogger
    tracer: trace.Tracer
    metrics: PrometheusExporter
    directory: ProviderDirectory
    score_store: ScoreStore
    matcher: MatchingEngine
    queue: JobQueue
    scorer: ReputationScorer
    controller: JobLifecycleController

    _instance: "Container | None" = None

    @classmethod
    def create(
        cls,
        directory: Optional[ProviderDirectory] = None,
        host_channel: Optional[HostChannel] = None,
        oracle: Optional[BenchmarkOracle] = None,
        score_store: Optional[ScoreStore] = None,
    ) -> "Container":
        """Create and initialize the container with all dependencies.

        External collaborators default to the in-memory directory and
        score store and to the HTTP oracle and host channel.
        """
        if cls._instance is not None:
            return cls._instance

        config = get_config()
        logger = setup_logging(config.observability.log_level, config.observability.log_format)
        tracer = setup_tracing(config)
        metrics = get_metrics()

        directory = directory or InMemoryProviderDirectory()
        host_channel = host_channel or HttpHostChannel(
            config.host_channel.endpoints,
            timeout=config.host_channel.timeout_seconds,
        )
        oracle = oracle or HttpBenchmarkOracle(
            config.oracle.base_url,
            api_key=config.oracle.api_key,
            timeout=config.oracle.timeout_seconds,
            default_score=config.oracle.default_benchmark_score,
        )
        score_store = score_store or InMemoryScoreStore(config.reputation.default_score)

        matcher = MatchingEngine(
            directory,
            host_channel,
            freshness_decay_seconds=config.matching.freshness_decay_seconds,
        )
        queue = JobQueue(
            matcher,
            ledger=directory if config.queue.require_escrow else None,
            metrics=metrics,
        )
        scorer = ReputationScorer(
            score_store,
            oracle,
            min_score=config.reputation.min_score,
            max_score=config.reputation.max_score,
            default_benchmark_score=config.oracle.default_benchmark_score,
            metrics=metrics,
        )
        controller = JobLifecycleController(
            queue,
            scorer,
            retention_seconds=config.lifecycle.retention_hours * 3600,
            sync_queue_status=config.lifecycle.sync_queue_status,
            metrics=metrics,
        )

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
            directory=directory,
            score_store=score_store,
            matcher=matcher,
            queue=queue,
            scorer=scorer,
            controller=controller,
        )

        logger.info(
            "compute_market_container_initialized",
            environment=config.observability.environment,
            require_escrow=config.queue.require_escrow,
        )

        return cls._instance

    @classmethod
    def get(cls) -> "Container":
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
