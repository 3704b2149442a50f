"""
Sharded Search

Exact substring search over a document collection split across independent
shard workers, with a coordinator that fans each query out and merges the
answers that arrive in time.
"""

__version__ = "0.1.0"

from .core.node import ShardNode
from .core.coordinator import SearchCoordinator
from .search.engine import SearchEngine
from .search.patterns import BoyerMooreMatcher, MatchAlgorithm
from .search.service import ShardSearchService

__all__ = [
    "ShardNode",
    "SearchCoordinator",
    "SearchEngine",
    "BoyerMooreMatcher",
    "MatchAlgorithm",
    "ShardSearchService",
]
