"""In-memory guide knowledge base.

The guide is a JSON document whose root key holds a mapping of category
names to either an array of entries or an object of keyed entries. The
container kind is fixed per category when the file is loaded.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Union

from guide_api.core.errors import InitializationError

logger = logging.getLogger(__name__)

Entry = dict[str, Any]


@dataclass(frozen=True)
class OrderedCategory:
    """Category stored as an array; entries are addressed by index."""

    name: str
    entries: tuple[Entry | None, ...]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class KeyedCategory:
    """Category stored as an object; entries are addressed by key."""

    name: str
    entries: Mapping[str, Entry | None]

    def __len__(self) -> int:
        return len(self.entries)


CategoryContainer = Union[OrderedCategory, KeyedCategory]


@dataclass(frozen=True)
class KnowledgeBase:
    """Read-only view over the loaded guide.

    ``raw`` keeps the decoded JSON so it can be served back unchanged.
    """

    root_key: str
    categories: Mapping[str, CategoryContainer]
    raw: Mapping[str, Any] = field(repr=False, default_factory=dict)

    def get(self, category: str) -> CategoryContainer | None:
        return self.categories.get(category)

    def __contains__(self, category: object) -> bool:
        return category in self.categories

    def __len__(self) -> int:
        return len(self.categories)

    @property
    def entry_count(self) -> int:
        return sum(len(container) for container in self.categories.values())

    def to_payload(self) -> dict[str, Any]:
        """Return the guide wrapped in its root key, as stored on disk."""
        return {self.root_key: dict(self.raw)}


def build_knowledge_base(raw: Mapping[str, Any], root_key: str) -> KnowledgeBase:
    """Build a knowledge base from the decoded content under ``root_key``.

    Args:
        raw: Mapping of category name to a list or an object of entries.
        root_key: Name of the root key, kept for the ``/data`` payload.

    Returns:
        Immutable KnowledgeBase.

    Raises:
        InitializationError: If a category or entry has an unsupported shape.
    """
    if not isinstance(raw, Mapping):
        raise InitializationError(f"'{root_key}' must be a JSON object of categories")

    categories: dict[str, CategoryContainer] = {}
    for name, value in raw.items():
        if isinstance(value, list):
            _check_entries(name, enumerate(value))
            categories[name] = OrderedCategory(name=name, entries=tuple(value))
        elif isinstance(value, Mapping):
            _check_entries(name, value.items())
            categories[name] = KeyedCategory(
                name=name, entries=MappingProxyType(dict(value))
            )
        else:
            raise InitializationError(
                f"Category '{name}' must be an array or an object, got {type(value).__name__}"
            )

    return KnowledgeBase(
        root_key=root_key,
        categories=MappingProxyType(categories),
        raw=MappingProxyType(dict(raw)),
    )


def _check_entries(category: str, items: Any) -> None:
    for key, entry in items:
        # null slots keep array positions stable and never resolve
        if entry is not None and not isinstance(entry, Mapping):
            raise InitializationError(
                f"Entry '{category} > {key}' must be an object, got {type(entry).__name__}"
            )


def load_knowledge_base(data_path: Path, root_key: str) -> KnowledgeBase:
    """Load the guide from a JSON file.

    Args:
        data_path: Path to the JSON document.
        root_key: Top-level key holding the categories.

    Returns:
        Immutable KnowledgeBase.

    Raises:
        InitializationError: If the file is missing, unreadable or malformed.
    """
    if not data_path.exists():
        raise InitializationError(f"{data_path.name} file not found")

    try:
        with open(data_path, encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, ValueError) as e:
        raise InitializationError(f"Failed to read {data_path}: {e}") from e

    if not isinstance(document, dict) or root_key not in document:
        raise InitializationError(f"{data_path.name} has no '{root_key}' root key")

    knowledge_base = build_knowledge_base(document[root_key], root_key)
    logger.info(
        f"Loaded {len(knowledge_base)} data categories "
        f"({knowledge_base.entry_count} entries) from {data_path}"
    )
    return knowledge_base


def iter_entry_records(knowledge_base: KnowledgeBase) -> Iterator[tuple[str, Entry]]:
    """Yield ``(source_tag, entry)`` for every entry, in storage order.

    Source tags produced here are the ones the path resolver understands,
    so an index built from these records resolves back to the same entries.
    """
    for name, container in knowledge_base.categories.items():
        if isinstance(container, OrderedCategory):
            for index, entry in enumerate(container.entries):
                if entry is not None:
                    yield f"{name} > {index}", entry
        else:
            for key, entry in container.entries.items():
                if entry is not None:
                    yield f"{name} > {key}", entry


def entry_text(source_tag: str, entry: Entry) -> str:
    """Text embedded for an entry: its path followed by every string field.

    Nested lists and objects are walked depth-first in field order.
    """
    parts = [source_tag.replace(" > ", " ")]
    _collect_strings(entry, parts)
    return "\n".join(part for part in parts if part.strip())


def _collect_strings(value: Any, parts: list[str]) -> None:
    if isinstance(value, str):
        parts.append(value)
    elif isinstance(value, Mapping):
        for item in value.values():
            _collect_strings(item, parts)
    elif isinstance(value, list):
        for item in value:
            _collect_strings(item, parts)
