"""Inbound adapters for the compute marketplace.

Provides the REST API adapter for job submission and host reporting.
"""

from compute_market.adapters.inbound.rest_api import create_app

__all__ = ["create_app"]
