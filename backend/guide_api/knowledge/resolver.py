"""Resolve similarity index source tags back to knowledge base entries.

A source tag has the form ``"<category> > <keyOrIndex>"``. Tags that are
malformed or point at nothing are reported as ``None`` rather than raised:
a single corrupt vector must not fail the whole search.
"""

import logging
import re

from guide_api.knowledge.base import KeyedCategory, KnowledgeBase, OrderedCategory
from guide_api.knowledge.models import ResolvedEntry

logger = logging.getLogger(__name__)

SOURCE_TAG_DELIMITER = " > "

_INDEX_PATTERN = re.compile(r"[0-9]+")


def parse_source_tag(source_tag: str) -> tuple[str, str] | None:
    """Split a source tag into ``(category, key_or_index)``.

    Anything after a second delimiter is ignored, so ``"Engine > 2 > chunk"``
    points at ``("Engine", "2")``.
    """
    if not isinstance(source_tag, str):
        return None

    parts = source_tag.split(SOURCE_TAG_DELIMITER)
    if len(parts) < 2:
        return None
    return parts[0], parts[1]


def resolve_source_tag(
    source_tag: str,
    knowledge_base: KnowledgeBase,
) -> ResolvedEntry | None:
    """Look up the entry a source tag points at.

    Args:
        source_tag: Tag stored as vector metadata.
        knowledge_base: Loaded guide.

    Returns:
        ResolvedEntry with its unique id, or None when the tag is unresolvable.
    """
    parsed = parse_source_tag(source_tag)
    if parsed is None:
        logger.debug(f"Malformed source tag: {source_tag!r}")
        return None

    category, key_or_index = parsed
    container = knowledge_base.get(category)
    if container is None:
        logger.debug(f"Unknown category in source tag: {source_tag!r}")
        return None

    if isinstance(container, OrderedCategory):
        if not _INDEX_PATTERN.fullmatch(key_or_index):
            logger.debug(f"Non-numeric index in source tag: {source_tag!r}")
            return None
        # Longer than any valid index
        digits = key_or_index.lstrip("0") or "0"
        if len(digits) > len(str(len(container.entries))):
            logger.debug(f"Index out of range in source tag: {source_tag!r}")
            return None
        index = int(digits)
        if index >= len(container.entries):
            logger.debug(f"Index out of range in source tag: {source_tag!r}")
            return None
        entry = container.entries[index]
        unique_id = f"{category}-{index}"

    elif isinstance(container, KeyedCategory):
        entry = container.entries.get(key_or_index)
        unique_id = key_or_index

    else:
        return None

    if entry is None:
        logger.debug(f"No entry at source tag: {source_tag!r}")
        return None

    return ResolvedEntry(unique_id=unique_id, entry=dict(entry))
