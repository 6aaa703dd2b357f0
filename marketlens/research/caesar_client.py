"""
HTTP client for the Caesar research API.

Submits research queries and reads job status back. Every failure
(timeout, network, non-2xx, malformed body) surfaces as ResearchProviderError.
"""
import asyncio
from typing import Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..logger import setup_logger
from ..models import ApiModel, Citation, JobStatus


class ResearchProviderError(Exception):
    """The research provider could not be reached or returned an unusable reply."""


class ProviderStatus(ApiModel):
    """Job state as reported by the provider (or the simulation)."""
    status: JobStatus
    result: Optional[str] = None
    citations: Optional[List[Citation]] = None
    error: Optional[str] = None


class CaesarClient:
    """Async client for the Caesar research endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.caesar.xyz",
        timeout: int = 30,
        retry_attempts: int = 3,
        retry_delay: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.logger = setup_logger("caesar_client")

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": "MarketLens/1.0"
            }
        )

    async def _request(self, method: str, endpoint: str, json: Optional[Dict] = None) -> Dict:
        """Make HTTP request with retry on timeouts."""
        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.request(method, endpoint, json=json)
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise ResearchProviderError(f"Unexpected Caesar response body: {data!r}")
                return data

            except httpx.TimeoutException as e:
                if attempt < self.retry_attempts - 1:
                    self.logger.warning(
                        f"Caesar timeout on attempt {attempt + 1}/{self.retry_attempts}. Retrying..."
                    )
                    await asyncio.sleep(self.retry_delay * (attempt + 1))
                else:
                    raise ResearchProviderError("Caesar request timeout after all retries") from e
            except httpx.HTTPStatusError as e:
                raise ResearchProviderError(
                    f"Caesar {method} {endpoint} failed: {e.response.status_code} - {e.response.text[:200]}"
                ) from e
            except (httpx.HTTPError, ValueError) as e:
                raise ResearchProviderError(f"Caesar {method} {endpoint} failed: {e}") from e

        raise ResearchProviderError("Caesar request failed")

    async def submit(self, query: str, compute_units: int) -> str:
        """
        Submit a research query.

        Returns:
            Provider-side job id
        """
        data = await self._request(
            "POST", "/research", json={"query": query, "compute_units": compute_units}
        )
        job_id = data.get("job_id") or data.get("id")
        if not job_id:
            raise ResearchProviderError(f"Caesar submit response has no job id: {data}")

        self.logger.info(f"Caesar accepted research job {job_id} ({compute_units} CU)")
        return str(job_id)

    async def get_status(self, provider_job_id: str) -> ProviderStatus:
        data = await self._request("GET", f"/research/{provider_job_id}")
        try:
            return ProviderStatus.model_validate(data)
        except ValidationError as e:
            raise ResearchProviderError(f"Malformed Caesar status for {provider_job_id}: {e}") from e

    async def close(self):
        await self.client.aclose()
