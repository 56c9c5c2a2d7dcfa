"""Prometheus metrics export for marketplace monitoring.

Exports job lifecycle counters, matching latency, queue depth and
reputation activity in Prometheus format.
"""

from __future__ import annotations

from typing import Mapping, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class PrometheusExporter:
    """Export marketplace metrics to Prometheus."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize Prometheus exporter.

        Args:
            registry: Prometheus collector registry. Creates a private one if None.
        """
        self.registry = registry or CollectorRegistry()

        # Job Metrics
        self.jobs_submitted = Counter(
            'marketplace_jobs_submitted_total',
            'Total jobs submitted',
            registry=self.registry,
        )

        self.jobs_dispatched = Counter(
            'marketplace_jobs_dispatched_total',
            'Total jobs accepted by a host',
            registry=self.registry,
        )

        self.jobs_completed = Counter(
            'marketplace_jobs_completed_total',
            'Total jobs completed',
            registry=self.registry,
        )

        self.jobs_failed = Counter(
            'marketplace_jobs_failed_total',
            'Total job failures',
            ['stage'],
            registry=self.registry,
        )

        self.jobs_cancelled = Counter(
            'marketplace_jobs_cancelled_total',
            'Total jobs cancelled by clients',
            registry=self.registry,
        )

        self.job_duration = Histogram(
            'marketplace_job_duration_seconds',
            'Job execution duration in seconds',
            buckets=(60, 300, 900, 1800, 3600, 7200, 21600),
            registry=self.registry,
        )

        # Queue Metrics
        self.queue_entries = Gauge(
            'marketplace_queue_entries',
            'Queue entries by state',
            ['state'],
            registry=self.registry,
        )

        self.match_latency = Histogram(
            'marketplace_match_latency_seconds',
            'Time spent finding a provider for a job',
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1, 5),
            registry=self.registry,
        )

        # Reputation Metrics
        self.reputation_updates = Counter(
            'marketplace_reputation_updates_total',
            'Reputation updates by kind',
            ['kind'],
            registry=self.registry,
        )

    def record_job_submitted(self) -> None:
        self.jobs_submitted.inc()

    def record_job_dispatched(self) -> None:
        self.jobs_dispatched.inc()

    def record_job_completed(self, duration_seconds: float) -> None:
        """Record a job completion.

        Args:
            duration_seconds: Job execution duration.
        """
        self.jobs_completed.inc()
        self.job_duration.observe(duration_seconds)

    def record_job_failed(self, stage: str) -> None:
        """Record a job failure.

        Args:
            stage: Where it failed ('queue' or 'host').
        """
        self.jobs_failed.labels(stage=stage).inc()

    def record_job_cancelled(self) -> None:
        self.jobs_cancelled.inc()

    def observe_match_latency(self, seconds: float) -> None:
        self.match_latency.observe(seconds)

    def update_queue_depth(self, stats: Mapping[str, int]) -> None:
        for state, count in stats.items():
            self.queue_entries.labels(state=state).set(count)

    def record_reputation_update(self, kind: str) -> None:
        """Record a reputation update ('success', 'failure' or 'oracle')."""
        self.reputation_updates.labels(kind=kind).inc()

    def export_metrics(self) -> str:
        """Export metrics in Prometheus text format."""
        return generate_latest(self.registry).decode('utf-8')
