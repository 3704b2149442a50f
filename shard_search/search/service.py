"""
Search over a single shard's in-memory documents
"""
import logging
from typing import Iterable, List, Optional
from shard_search.core.config import SearchConfig
from shard_search.core.models import Document, SearchHit
from shard_search.search.patterns import MatchAlgorithm, BoyerMooreMatcher
from shard_search.utils.helpers import truncate_snippet


class ShardSearchService:
    """
    Scans every document of one shard for a query term.

    Documents are frozen at construction, so concurrent searches need no
    locking.
    """

    def __init__(
        self,
        shard_id: str,
        documents: Iterable[Document],
        matcher: Optional[MatchAlgorithm] = None,
        config: Optional[SearchConfig] = None
    ):
        self.shard_id = shard_id
        self.documents = tuple(documents)
        self.matcher = matcher or BoyerMooreMatcher()
        self.config = config or SearchConfig()
        self.logger = logging.getLogger(f"ShardSearchService-{shard_id}")

    def __len__(self) -> int:
        return len(self.documents)

    def search(self, query: str) -> List[SearchHit]:
        """
        Find documents whose title or abstract contains the query

        Args:
            query: Search term, matched case-insensitively

        Returns:
            Hits in document load order; empty for a blank query
        """
        if not query or not query.strip():
            return []

        term = query.lower()
        hits = [
            self._to_hit(document)
            for document in self.documents
            if self.matches(document, term)
        ]

        self.logger.debug(f"Query '{query}' matched {len(hits)} of {len(self.documents)} documents")
        return hits

    def matches(self, document: Document, term: str) -> bool:
        """Check a document against an already lower-cased term"""
        return (
            self.matcher.contains(document.title.lower(), term)
            or self.matcher.contains(document.abstract.lower(), term)
        )

    def _to_hit(self, document: Document) -> SearchHit:
        return SearchHit(
            title=document.title,
            abstract=truncate_snippet(
                document.abstract,
                self.config.snippet_length,
                self.config.ellipsis
            ),
            label=document.label,
            shard=self.shard_id
        )
