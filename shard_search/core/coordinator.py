"""
Search coordinator: fans a query out to every shard and merges the answers
"""
import asyncio
import json
import time
from typing import Dict, List, Optional
import aiohttp
from aiohttp import web
from pydantic import ValidationError
from .config import CoordinatorConfig, ShardAddress
from .models import AggregateResult, SearchHit, ShardOutcome, ShardResponse, ShardStatus
from shard_search.utils.helpers import get_system_info
from shard_search.utils.logger import get_logger


class ShardCallError(Exception):
    """Raised when a shard answers with something other than a valid result"""


class HttpShardTransport:
    """
    Sends search requests to shard workers over HTTP
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def search(self, shard: ShardAddress, query: str) -> List[SearchHit]:
        """
        Ask one shard for its hits

        Raises:
            aiohttp.ClientError: On connection or transport failure
            ShardCallError: On an error status or a malformed response
        """
        session = await self._get_session()
        async with session.post(
            f"{shard.url}/search",
            json={"type": "search", "query": query}
        ) as response:
            if response.status != 200:
                raise ShardCallError(f"shard returned status {response.status}")

            try:
                payload = ShardResponse.model_validate(await response.json(content_type=None))
            except (ValidationError, ValueError) as e:
                raise ShardCallError(f"malformed shard response: {e}") from e

        if payload.total != len(payload.results):
            raise ShardCallError(
                f"shard reported {payload.total} results but sent {len(payload.results)}"
            )
        return payload.results

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()


class SearchCoordinator:
    """
    Central coordinator that distributes each query to all configured shards
    and merges whatever arrives before the per-shard deadline
    """

    def __init__(self, config: CoordinatorConfig, transport=None):
        self.config = config
        self.transport = transport or HttpShardTransport()
        self.logger = get_logger(f"SearchCoordinator-{config.coordinator_id}")
        self.app = web.Application()
        self.setup_routes()
        self.runner: Optional[web.AppRunner] = None
        self.is_running = False
        self.searches_handled = 0

    def setup_routes(self):
        """Setup HTTP routes for the coordinator"""
        self.app.router.add_post('/search', self.handle_search_request)
        self.app.router.add_get('/shards', self.list_shards)
        self.app.router.add_get('/health', self.health_check)

    async def health_check(self, request):
        """Health check endpoint"""
        return web.json_response({
            "status": "healthy",
            "coordinator_id": self.config.coordinator_id,
            "total_shards": len(self.config.shards),
            "search_timeout": self.config.search_timeout,
            "searches_handled": self.searches_handled,
            "system": get_system_info()
        })

    async def list_shards(self, request):
        """List configured shards"""
        return web.json_response({
            "shards": [shard.model_dump() for shard in self.config.shards],
            "total_count": len(self.config.shards)
        })

    async def handle_search_request(self, request):
        """Handle a client query: newline-terminated text or JSON {'query': ...}"""
        try:
            body = await request.text()
        except UnicodeDecodeError:
            return web.json_response({"error": "request body must be UTF-8 text"}, status=400)

        if request.content_type == 'application/json':
            try:
                data = json.loads(body)
            except json.JSONDecodeError:
                return web.json_response({"error": "request body must be valid JSON"}, status=400)
            query = data.get('query', '') if isinstance(data, dict) else None
            if not isinstance(query, str):
                return web.json_response({"error": "query must be a string"}, status=400)
        else:
            query = body.splitlines()[0] if body else ''

        result = await self.handle_query(query.strip())
        return web.json_response(result.model_dump())

    async def handle_query(self, term: str) -> AggregateResult:
        """
        Run a query against every shard and merge the answers

        Args:
            term: Query term

        Returns:
            Hits of every shard that answered in time, fastest shard first
        """
        if not term or not term.strip():
            return AggregateResult()

        self.searches_handled += 1
        self.logger.info(f"Received search request: query='{term}'")
        started = time.monotonic()

        outcomes = await self.distribute_search(term)
        result = self.merge(outcomes)

        self.logger.info(
            f"Query '{term}' - {result.total} results from "
            f"{sum(1 for o in outcomes if o.contributed)}/{len(self.config.shards)} shards "
            f"in {time.monotonic() - started:.2f}s"
        )
        for outcome in outcomes:
            if not outcome.contributed:
                self.logger.warning(
                    f"Query '{term}' - shard {outcome.shard_id} left out ({outcome.status.value}: {outcome.error})"
                )
        return result

    async def distribute_search(self, term: str) -> List[ShardOutcome]:
        """
        Query all shards concurrently

        Returns:
            One outcome per shard, in the order the shards resolved
        """
        if not self.config.shards:
            self.logger.warning("No shards configured")
            return []

        self.logger.debug(f"Distributing search to {len(self.config.shards)} shards")

        tasks = [
            asyncio.ensure_future(self.search_shard(shard, term))
            for shard in self.config.shards
        ]

        outcomes = []
        for next_done in asyncio.as_completed(tasks):
            outcomes.append(await next_done)
        return outcomes

    async def search_shard(self, shard: ShardAddress, term: str) -> ShardOutcome:
        """Search one shard under the configured timeout; never raises"""
        try:
            hits = await asyncio.wait_for(
                self.transport.search(shard, term),
                timeout=self.config.search_timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                f"Shard {shard.shard_id} timed out after {self.config.search_timeout} seconds"
            )
            return ShardOutcome(shard.shard_id, ShardStatus.TIMED_OUT, error="timeout")
        except (aiohttp.ClientError, ShardCallError, OSError) as e:
            self.logger.error(f"Error searching shard {shard.shard_id}: {e}")
            return ShardOutcome(shard.shard_id, ShardStatus.FAILED, error=str(e))

        return ShardOutcome(shard.shard_id, ShardStatus.COMPLETED, hits=list(hits))

    @staticmethod
    def merge(outcomes: List[ShardOutcome]) -> AggregateResult:
        """Concatenate contributing shards' hits in outcome order"""
        results: List[SearchHit] = []
        statuses: Dict[str, str] = {}

        for outcome in outcomes:
            statuses[outcome.shard_id] = outcome.status.value
            if outcome.contributed:
                results.extend(outcome.hits)

        return AggregateResult(total=len(results), results=results, shards=statuses)

    async def start(self):
        """Start the search coordinator"""
        self.logger.info(f"Starting search coordinator on {self.config.host}:{self.config.port}")

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self.config.host, self.config.port)
        try:
            await site.start()
        except OSError:
            await self.runner.cleanup()
            self.runner = None
            raise

        self.is_running = True
        self.logger.info(
            f"Search coordinator started with shards: "
            f"{', '.join(f'{s.shard_id}@{s.host}:{s.port}' for s in self.config.shards)}"
        )

    async def stop(self):
        """Stop the search coordinator"""
        self.logger.info("Stopping search coordinator")
        self.is_running = False

        if self.runner is not None:
            runner, self.runner = self.runner, None
            await runner.cleanup()

        await self.transport.close()

    async def __aenter__(self) -> "SearchCoordinator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
