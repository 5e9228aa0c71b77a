"""Knowledge base module for guide search.

This module loads the structured guide, queries the similarity index and
reconciles the matches back to complete guide entries.
"""

from guide_api.knowledge.base import (
    KeyedCategory,
    KnowledgeBase,
    OrderedCategory,
    load_knowledge_base,
)
from guide_api.knowledge.models import Match, ResolvedEntry, RetrievedResult
from guide_api.knowledge.ranking import reconcile
from guide_api.knowledge.resolver import parse_source_tag, resolve_source_tag
from guide_api.knowledge.search import GuideSearchService, validate_query

__all__ = [
    "GuideSearchService",
    "KeyedCategory",
    "KnowledgeBase",
    "Match",
    "OrderedCategory",
    "ResolvedEntry",
    "RetrievedResult",
    "load_knowledge_base",
    "parse_source_tag",
    "reconcile",
    "resolve_source_tag",
    "validate_query",
]
