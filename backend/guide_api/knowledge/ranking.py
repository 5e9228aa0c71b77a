"""Reconcile similarity matches into a ranked list of unique guide entries."""

import logging
from collections.abc import Iterable

from guide_api.knowledge.base import KnowledgeBase
from guide_api.knowledge.models import Match, RetrievedResult
from guide_api.knowledge.resolver import resolve_source_tag

logger = logging.getLogger(__name__)

# Maximum number of guides returned to the client
DEFAULT_RESULT_LIMIT = 5


def reconcile(
    matches: Iterable[Match],
    knowledge_base: KnowledgeBase,
    limit: int = DEFAULT_RESULT_LIMIT,
) -> list[RetrievedResult]:
    """Resolve, deduplicate and rank similarity matches.

    Matches are walked in the order received. Each unique id keeps the
    occurrence with the highest score; on equal scores the earliest one
    wins. The survivors are stable-sorted by descending score, so the order
    is correct even if the index returned matches out of order.

    Args:
        matches: Matches as returned by the similarity index.
        knowledge_base: Loaded guide used for resolution.
        limit: Maximum number of results.

    Returns:
        At most ``limit`` results, highest score first.
    """
    results: dict[str, RetrievedResult] = {}
    dropped = 0

    for match in matches:
        resolved = resolve_source_tag(match.source_tag, knowledge_base)
        if resolved is None:
            dropped += 1
            continue

        current = results.get(resolved.unique_id)
        if current is not None and current.score >= match.score:
            continue

        # dict keeps first insertion position, which is the stable tie order
        results[resolved.unique_id] = RetrievedResult(
            unique_id=resolved.unique_id,
            score=match.score,
            entry=resolved.entry,
        )

    if dropped:
        logger.debug(f"Dropped {dropped} unresolvable matches")

    ranked = sorted(results.values(), key=lambda r: r.score, reverse=True)
    return ranked[: max(limit, 0)]
