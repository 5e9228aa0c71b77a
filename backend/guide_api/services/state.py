"""Service readiness handle and the startup sequence that builds it.

The handle is immutable: startup constructs one ``ServiceState`` and
publishes it on ``app.state``. Request handlers receive it through a
dependency and ask it for what they need; a missing piece raises
``NotReadyError`` naming the blocker.
"""

import logging
from dataclasses import dataclass

from guide_api.core.config import Settings
from guide_api.core.errors import InitializationError, NotReadyError
from guide_api.knowledge.base import KnowledgeBase, load_knowledge_base
from guide_api.knowledge.embeddings import build_embedder
from guide_api.knowledge.index import build_similarity_index
from guide_api.knowledge.search import GuideSearchService

logger = logging.getLogger(__name__)

DATA_NOT_LOADED = "Data not loaded"
SEARCH_NOT_INITIALIZED = "Search services not initialized"


@dataclass(frozen=True)
class ServiceState:
    """What the running process has managed to initialize."""

    knowledge_base: KnowledgeBase | None = None
    search: GuideSearchService | None = None

    @classmethod
    def not_ready(cls) -> "ServiceState":
        return cls()

    @property
    def is_ready(self) -> bool:
        return self.knowledge_base is not None and self.search is not None

    def require_data(self) -> KnowledgeBase:
        if self.knowledge_base is None:
            raise NotReadyError(DATA_NOT_LOADED)
        return self.knowledge_base

    def require_search(self) -> tuple[KnowledgeBase, GuideSearchService]:
        """Return the knowledge base and search service, data checked first."""
        knowledge_base = self.require_data()
        if self.search is None:
            raise NotReadyError(SEARCH_NOT_INITIALIZED)
        return knowledge_base, self.search


async def build_search_service(settings: Settings) -> GuideSearchService:
    """Warm the embedding model and connect the similarity index.

    Raises:
        InitializationError: If a credential is missing or a client fails to start.
    """
    embedder = build_embedder(settings)
    try:
        await embedder.load()
    except Exception as e:
        raise InitializationError(f"Failed to load embedding model: {e}") from e

    index = build_similarity_index(settings)
    return GuideSearchService(embedder, index, top_k=settings.search_top_k)


async def start_services(settings: Settings) -> ServiceState:
    """Run the startup sequence and apply the environment's failure policy.

    Outside production a failure is re-raised so the server aborts. In
    production it is logged and the service keeps whatever was initialized,
    so data-dependent endpoints answer 503 naming the blocker.

    Raises:
        InitializationError: Outside production, on the first failing step.
    """
    knowledge_base: KnowledgeBase | None = None
    try:
        logger.info("Loading guide data...")
        knowledge_base = load_knowledge_base(settings.data_path, settings.data_root_key)

        logger.info("Initializing embedding model and similarity index...")
        search = await build_search_service(settings)
    except InitializationError as e:
        logger.error(f"Initialization failed: {e}")
        if not settings.is_production:
            raise
        return ServiceState(knowledge_base=knowledge_base)

    logger.info("Initialization complete.")
    return ServiceState(knowledge_base=knowledge_base, search=search)
