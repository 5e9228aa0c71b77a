"""Tests for resolving similarity source tags to guide entries."""

import pytest

from guide_api.knowledge.base import KnowledgeBase, build_knowledge_base
from guide_api.knowledge.resolver import parse_source_tag, resolve_source_tag


class TestParseSourceTag:
    """Tests for splitting source tags."""

    def test_two_part_tag(self):
        assert parse_source_tag("Engine > 2") == ("Engine", "2")

    def test_ignores_parts_after_second_delimiter(self):
        assert parse_source_tag("Wheels > front > left") == ("Wheels", "front")

    @pytest.mark.parametrize("tag", ["Engine", "", "Engine>2", "Engine -> 2"])
    def test_missing_delimiter(self, tag: str):
        assert parse_source_tag(tag) is None

    def test_non_string_tag(self):
        assert parse_source_tag(None) is None  # type: ignore[arg-type]


class TestOrderedCategoryResolution:
    """Tests for array-backed categories."""

    def test_resolves_index(self, knowledge_base: KnowledgeBase):
        resolved = resolve_source_tag("Engine > 2", knowledge_base)

        assert resolved is not None
        assert resolved.unique_id == "Engine-2"
        assert resolved.entry["title"] == "Drive belt"

    def test_resolves_first_element(self, knowledge_base: KnowledgeBase):
        resolved = resolve_source_tag("Engine > 0", knowledge_base)

        assert resolved is not None
        assert resolved.unique_id == "Engine-0"

    @pytest.mark.parametrize("index", ["3", "99", "-1", "1.0", "two", "", " 1", "１"])
    def test_unresolvable_index(self, knowledge_base: KnowledgeBase, index: str):
        assert resolve_source_tag(f"Engine > {index}", knowledge_base) is None

    def test_null_slot_is_unresolvable(self, knowledge_base: KnowledgeBase):
        assert resolve_source_tag("Electrical > 1", knowledge_base) is None

    def test_leading_zeros_resolve_to_same_id(self, knowledge_base: KnowledgeBase):
        resolved = resolve_source_tag("Engine > 01", knowledge_base)

        assert resolved is not None
        assert resolved.unique_id == "Engine-1"

    def test_trailing_segments_are_ignored(self, knowledge_base: KnowledgeBase):
        resolved = resolve_source_tag("Engine > 2 > chunk", knowledge_base)

        assert resolved is not None
        assert resolved.unique_id == "Engine-2"

    def test_huge_index_is_unresolvable(self, knowledge_base: KnowledgeBase):
        assert resolve_source_tag("Engine > " + "1" * 5000, knowledge_base) is None

    def test_long_zero_padded_index_resolves(self, knowledge_base: KnowledgeBase):
        resolved = resolve_source_tag("Engine > " + "0" * 5000 + "2", knowledge_base)

        assert resolved is not None
        assert resolved.unique_id == "Engine-2"


class TestKeyedCategoryResolution:
    """Tests for object-backed categories."""

    def test_resolves_key(self):
        knowledge_base = build_knowledge_base(
            {"Engine": {"idle_speed": {"title": "Idle speed"}}},
            "bmw_z3_guide",
        )

        resolved = resolve_source_tag("Engine > idle_speed", knowledge_base)

        assert resolved is not None
        assert resolved.unique_id == "idle_speed"
        assert resolved.entry == {"title": "Idle speed"}

    def test_missing_key(self, knowledge_base: KnowledgeBase):
        assert resolve_source_tag("Maintenance > brake_pads", knowledge_base) is None

    def test_numeric_key_is_looked_up_as_key(self):
        knowledge_base = build_knowledge_base(
            {"Recalls": {"2": {"title": "Airbag recall"}}},
            "bmw_z3_guide",
        )

        resolved = resolve_source_tag("Recalls > 2", knowledge_base)

        assert resolved is not None
        assert resolved.unique_id == "2"

    def test_keyed_trailing_segments_are_ignored(self, knowledge_base: KnowledgeBase):
        resolved = resolve_source_tag("Maintenance > idle_speed > x", knowledge_base)

        assert resolved is not None
        assert resolved.unique_id == "idle_speed"

    def test_key_is_case_sensitive(self, knowledge_base: KnowledgeBase):
        assert resolve_source_tag("Maintenance > Idle_Speed", knowledge_base) is None


class TestUnresolvableTags:
    """Malformed tags are dropped, never raised."""

    @pytest.mark.parametrize(
        "tag",
        [
            "Transmission > 0",
            "engine > 0",
            "Engine",
            "",
            " > 0",
        ],
    )
    def test_returns_none(self, knowledge_base: KnowledgeBase, tag: str):
        assert resolve_source_tag(tag, knowledge_base) is None

    def test_resolved_entry_is_a_copy(self, knowledge_base: KnowledgeBase):
        resolved = resolve_source_tag("Engine > 0", knowledge_base)
        assert resolved is not None

        resolved.entry["title"] = "changed"

        again = resolve_source_tag("Engine > 0", knowledge_base)
        assert again is not None
        assert again.entry["title"] == "Checking the oil level"
