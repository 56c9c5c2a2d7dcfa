"""Prometheus metrics setup for the compute marketplace."""

from __future__ import annotations

from prometheus_client import start_http_server

from compute_market.adapters.outbound.metrics import PrometheusExporter

_metrics: PrometheusExporter | None = None


def setup_metrics(port: int = 8005, exporter: PrometheusExporter | None = None) -> PrometheusExporter:
    """Serve an exporter's registry over HTTP.

    Args:
        port: Port for the metrics endpoint.
        exporter: Exporter already in use. Defaults to the process exporter.
    """
    global _metrics
    _metrics = exporter or get_metrics()
    start_http_server(port, registry=_metrics.registry)
    return _metrics


def get_metrics() -> PrometheusExporter:
    """Return the process exporter, creating an unserved one if needed."""
    global _metrics
    if _metrics is None:
        _metrics = PrometheusExporter()
    return _metrics
