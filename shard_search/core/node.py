"""
Shard worker: serves one shard's documents over HTTP
"""
import asyncio
import json
from typing import Optional
from aiohttp import web
from .config import ShardConfig, SearchConfig
from shard_search.search.patterns import MatchAlgorithm, get_matcher
from shard_search.search.service import ShardSearchService
from shard_search.storage.loader import load_documents
from shard_search.utils.helpers import get_system_info
from shard_search.utils.logger import get_logger


SEARCH_REQUEST = "search"


class ShardNode:
    """
    A shard worker that loads its documents once and answers search requests
    from the coordinator
    """

    def __init__(
        self,
        config: ShardConfig,
        search_config: Optional[SearchConfig] = None,
        matcher: Optional[MatchAlgorithm] = None
    ):
        self.config = config
        self.search_config = search_config or SearchConfig()
        self.matcher = matcher or get_matcher(config.algorithm)
        self.logger = get_logger(f"ShardNode-{config.shard_id}")
        self.app = web.Application()
        self.setup_routes()
        self.service: Optional[ShardSearchService] = None
        self.runner: Optional[web.AppRunner] = None
        self.is_running = False

    def setup_routes(self):
        """Setup HTTP routes for the shard"""
        self.app.router.add_get('/health', self.health_check)
        self.app.router.add_post('/search', self.handle_search_request)

    def load(self) -> ShardSearchService:
        """
        Load the shard's documents

        Raises:
            DocumentLoadError: If the data file cannot be loaded
        """
        documents = load_documents(self.config.data_file)
        self.service = ShardSearchService(
            self.config.shard_id,
            documents,
            matcher=self.matcher,
            config=self.search_config
        )
        self.logger.info(f"{self.config.shard_id} - loaded {len(self.service)} documents")
        return self.service

    async def health_check(self, request):
        """Health check endpoint"""
        return web.json_response({
            "status": "healthy" if self.service is not None else "loading",
            "shard_id": self.config.shard_id,
            "documents": len(self.service) if self.service is not None else 0,
            "algorithm": self.config.algorithm,
            "system": get_system_info()
        })

    async def handle_search_request(self, request):
        """Handle search request from coordinator"""
        if self.service is None:
            return self._error("documents not loaded", status=503)

        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return self._error("request body must be UTF-8 encoded JSON", status=400)

        if not isinstance(data, dict) or data.get('type') != SEARCH_REQUEST:
            return self._error(f"unsupported request type, expected '{SEARCH_REQUEST}'", status=400)

        query = data.get('query')
        if not isinstance(query, str):
            return self._error("query must be a string", status=400)

        self.logger.info(f"Received search request: query='{query}'")

        # CPU-bound scan runs off the event loop
        loop = asyncio.get_running_loop()
        hits = await loop.run_in_executor(None, self.service.search, query)

        self.logger.info(f"Query '{query}' - {len(hits)} results")

        return web.json_response({
            "shard": self.config.shard_id,
            "total": len(hits),
            "results": [hit.model_dump() for hit in hits],
            "status": "success"
        })

    def _error(self, message: str, status: int):
        self.logger.warning(f"Rejected search request: {message}")
        return web.json_response({
            "shard": self.config.shard_id,
            "error": message,
            "status": "error"
        }, status=status)

    async def start(self):
        """Load documents, then start listening"""
        self.logger.info(f"Starting shard {self.config.shard_id} on {self.config.host}:{self.config.port}")

        # Must finish before the socket is bound
        self.load()

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
        self.logger.info(f"Shard {self.config.shard_id} started successfully")

    async def stop(self):
        """Stop the shard and release the listening socket"""
        if self.runner is None:
            return

        self.logger.info(f"Stopping shard {self.config.shard_id}")
        self.is_running = False
        runner, self.runner = self.runner, None
        await runner.cleanup()

    async def __aenter__(self) -> "ShardNode":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
