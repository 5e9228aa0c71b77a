"""Query embedding and similarity lookup for guide search."""

import logging
import time
from typing import Any

from guide_api.core.errors import SearchError, ValidationError
from guide_api.knowledge.base import KnowledgeBase
from guide_api.knowledge.embeddings import EmbeddingGenerator
from guide_api.knowledge.index import SimilarityIndex
from guide_api.knowledge.models import Match, RetrievedResult
from guide_api.knowledge.ranking import DEFAULT_RESULT_LIMIT, reconcile
from guide_api.observability import MetricsBackend, get_metrics_backend

logger = logging.getLogger(__name__)

# Several neighbours usually collapse onto the same guide or fail to resolve
DEFAULT_TOP_K = 15

INVALID_QUERY_MESSAGE = "Valid query string is required"


def validate_query(value: Any) -> str:
    """Return the query text, or raise if it is absent, not a string or blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(INVALID_QUERY_MESSAGE)
    return value


class GuideSearchService:
    """Embeds a query and fetches its nearest guide vectors."""

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        index: SimilarityIndex,
        top_k: int = DEFAULT_TOP_K,
        metrics: MetricsBackend | None = None,
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.top_k = top_k
        self.metrics = metrics or get_metrics_backend()

    async def search(self, query: Any) -> list[Match]:
        """Return the index's nearest matches for ``query``, unmodified.

        Raises:
            ValidationError: If the query is not a non-blank string.
            SearchError: If the embedding or index call fails.
        """
        query = validate_query(query)

        start_time = time.perf_counter()
        status_code = 500
        try:
            vector = await self.embedder.embed_query(query)
            status_code = 200
        except Exception as e:
            logger.exception(f"Query embedding failed for: {query[:50]}")
            raise SearchError(f"Embedding failed: {e}") from e
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.metrics.observe_external_api(
                self.embedder.provider, "embed", status_code, duration_ms
            )

        start_time = time.perf_counter()
        status_code = 500
        try:
            matches = await self.index.query(vector, self.top_k)
            status_code = 200
        except Exception as e:
            logger.exception(f"Similarity query failed for: {query[:50]}")
            raise SearchError(f"Similarity query failed: {e}") from e
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.metrics.observe_external_api(
                self.index.backend, "query", status_code, duration_ms
            )

        logger.debug(f"{len(matches)} matches for query: {query[:50]}")
        return matches

    async def find_guides(
        self,
        query: Any,
        knowledge_base: KnowledgeBase,
        limit: int = DEFAULT_RESULT_LIMIT,
    ) -> list[RetrievedResult]:
        """Search and reconcile into at most ``limit`` unique guide entries."""
        matches = await self.search(query)
        results = reconcile(matches, knowledge_base, limit=limit)
        self.metrics.observe_search(len(matches), len(results))
        return results
