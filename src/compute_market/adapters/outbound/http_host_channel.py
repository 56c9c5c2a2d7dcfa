"""HTTP host execution channel.

Posts jobs to the worker node running on a provider's host. Worker
nodes expose POST /job taking {job_id, image_url, input_data, timeout_sec}
and answer 2xx when they accept the job.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx

from compute_market.domain.entities.job import JobPayload
from compute_market.domain.entities.provider import ProviderListing
from compute_market.domain.errors import DispatchFailure

logger = logging.getLogger(__name__)


class HttpHostChannel:
    """Host channel that dispatches jobs to worker nodes over HTTP."""

    def __init__(
        self,
        endpoints: Mapping[str, str],
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            endpoints: Host address -> worker node base URL
            timeout: Request timeout in seconds
            client: Shared HTTP client; one is created per request if None
        """
        self._endpoints = {host: url.rstrip("/") for host, url in endpoints.items()}
        self.timeout = timeout
        self._client = client

    def register(self, host: str, base_url: str) -> None:
        self._endpoints[host] = base_url.rstrip("/")

    async def send_job(self, provider: ProviderListing, payload: JobPayload) -> bool:
        """Post the job to the provider's worker node.

        Returns:
            True on 2xx, False if the node answered with a client error.

        Raises:
            DispatchFailure: Unknown host, network error or server error.
        """
        base_url = self._endpoints.get(provider.host)
        if base_url is None:
            raise DispatchFailure(f"No endpoint registered for host {provider.host}")

        body = {
            "job_id": payload.job_id,
            "image_url": payload.image_reference,
            "input_data": payload.input_reference,
            "timeout_sec": payload.timeout_seconds,
        }
        try:
            if self._client is not None:
                response = await self._client.post(f"{base_url}/job", json=body, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(f"{base_url}/job", json=body)
        except httpx.HTTPError as exc:
            raise DispatchFailure(f"Host {provider.host} unreachable: {exc}") from exc

        if response.is_success:
            return True
        if response.status_code >= 500:
            raise DispatchFailure(f"Host {provider.host} returned {response.status_code}")
        logger.warning(f"Host {provider.host} rejected job {payload.job_id}: {response.status_code}")
        return False
