"""
Client for querying a search coordinator
"""
import logging
from typing import Any, Dict, Optional
import aiohttp
from shard_search.core.models import AggregateResult


class SearchError(Exception):
    """Raised when the coordinator rejects or fails a request"""


class SearchEngine:
    """
    Client-side entry point that sends queries to the coordinator
    """

    def __init__(self, coordinator_url: str, timeout: float = 120):
        self.coordinator_url = coordinator_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.logger = logging.getLogger("SearchEngine")

    async def search(self, term: str) -> AggregateResult:
        """
        Run a distributed search

        Args:
            term: Query term

        Returns:
            Aggregated hits from every shard that answered

        Raises:
            aiohttp.ClientError: If the coordinator cannot be reached
            SearchError: If the coordinator answers with an error status
        """
        term = term.strip()
        if not term:
            return AggregateResult()

        self.logger.info(f"Starting search: query='{term}'")

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(
                f"{self.coordinator_url}/search",
                data=f"{term}\n",
                headers={"Content-Type": "text/plain; charset=utf-8"}
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise SearchError(f"Search failed with status {response.status}: {error_text}")
                result = AggregateResult.model_validate(await response.json())

        self.logger.info(f"Search completed: {result.total} results found")
        return result

    async def get_coordinator_status(self) -> Dict[str, Any]:
        """Get status of the coordinator"""
        return await self._get_json("/health")

    async def get_shards(self) -> Dict[str, Any]:
        """Get the shards configured on the coordinator"""
        return await self._get_json("/shards")

    async def _get_json(self, path: str, timeout: Optional[float] = 10) -> Dict[str, Any]:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
            async with session.get(f"{self.coordinator_url}{path}") as response:
                if response.status != 200:
                    raise SearchError(f"Request to {path} failed: {response.status}")
                return await response.json()
