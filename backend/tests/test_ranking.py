"""Tests for reconciling matches into ranked, unique guide entries."""

import random

import pytest

from guide_api.knowledge.base import KnowledgeBase, build_knowledge_base
from guide_api.knowledge.models import Match
from guide_api.knowledge.ranking import reconcile
from tests.conftest import make_match


@pytest.fixture
def letter_guide() -> KnowledgeBase:
    """Keyed category whose keys double as unique ids."""
    return build_knowledge_base(
        {
            "Guide": {
                letter: {"title": f"Guide {letter}"}
                for letter in ["A", "B", "C", "D", "E", "F", "G"]
            }
        },
        "bmw_z3_guide",
    )


@pytest.fixture
def scenario_matches() -> list[Match]:
    """15 matches, 10 resolving to 4 guides, interleaved with broken tags."""
    return [
        make_match("Guide > A", 0.9),
        make_match("Unknown > A", 0.88),
        make_match("Guide > A", 0.85),
        make_match("Guide > B", 0.8),
        make_match("Guide > C", 0.7),
        make_match("malformed", 0.65),
        make_match("Guide > B", 0.6),
        make_match("Guide > D", 0.5),
        make_match("Guide > Z", 0.45),
        make_match("Guide > A", 0.4),
        make_match("Guide > C", 0.3),
        make_match("Guide", 0.25),
        make_match("Guide > D", 0.2),
        make_match("", 0.15),
        make_match("Guide > B", 0.1),
    ]


@pytest.mark.rag
class TestReconcile:
    """Tests for dedup, ordering and truncation."""

    def test_scenario_order(self, letter_guide, scenario_matches):
        results = reconcile(scenario_matches, letter_guide)

        assert [(r.unique_id, r.score) for r in results] == [
            ("A", 0.9),
            ("B", 0.8),
            ("C", 0.7),
            ("D", 0.5),
        ]

    def test_highest_score_wins_regardless_of_input_order(
        self, letter_guide, scenario_matches
    ):
        shuffled = list(scenario_matches)
        random.Random(7).shuffle(shuffled)

        for matches in (shuffled, list(reversed(scenario_matches))):
            results = reconcile(matches, letter_guide)
            assert [(r.unique_id, r.score) for r in results] == [
                ("A", 0.9),
                ("B", 0.8),
                ("C", 0.7),
                ("D", 0.5),
            ]

    def test_truncates_to_five(self, letter_guide):
        matches = [
            make_match(f"Guide > {letter}", score)
            for letter, score in zip("ABCDEFG", [0.9, 0.8, 0.7, 0.6, 0.5, 0.4, 0.3])
        ]

        results = reconcile(matches, letter_guide)

        assert len(results) == 5
        assert [r.unique_id for r in results] == ["A", "B", "C", "D", "E"]

    def test_custom_limit(self, letter_guide, scenario_matches):
        results = reconcile(scenario_matches, letter_guide, limit=2)

        assert [r.unique_id for r in results] == ["A", "B"]

    def test_scores_non_increasing(self, letter_guide):
        rng = random.Random(42)
        matches = [
            make_match(f"Guide > {rng.choice('ABCDEFGXYZ')}", round(rng.random(), 3))
            for _ in range(15)
        ]

        results = reconcile(matches, letter_guide)
        scores = [r.score for r in results]

        assert len(results) <= 5
        assert scores == sorted(scores, reverse=True)
        assert len({r.unique_id for r in results}) == len(results)

    def test_out_of_order_input_is_resorted(self, letter_guide):
        matches = [
            make_match("Guide > C", 0.3),
            make_match("Guide > A", 0.9),
            make_match("Guide > B", 0.6),
        ]

        results = reconcile(matches, letter_guide)

        assert [r.unique_id for r in results] == ["A", "B", "C"]

    def test_ties_keep_first_seen_order(self, letter_guide):
        matches = [
            make_match("Guide > C", 0.5),
            make_match("Guide > A", 0.5),
            make_match("Guide > B", 0.5),
        ]

        results = reconcile(matches, letter_guide)

        assert [r.unique_id for r in results] == ["C", "A", "B"]

    def test_equal_duplicate_scores_keep_first(self, knowledge_base):
        matches = [
            make_match("Engine > 1", 0.7),
            make_match("Engine > 01", 0.7),
        ]

        results = reconcile(matches, knowledge_base)

        assert len(results) == 1
        assert results[0].unique_id == "Engine-1"

    def test_no_resolvable_matches(self, knowledge_base):
        matches = [
            make_match("Transmission > 0", 0.9),
            make_match("Engine > 42", 0.8),
            make_match("garbage", 0.7),
        ]

        assert reconcile(matches, knowledge_base) == []

    def test_empty_input(self, knowledge_base):
        assert reconcile([], knowledge_base) == []

    def test_broken_tags_do_not_affect_others(self, knowledge_base):
        clean = [make_match("Engine > 0", 0.9), make_match("Maintenance > idle_speed", 0.8)]
        noisy = [
            make_match("Engine > 9", 0.95),
            clean[0],
            make_match("Maintenance", 0.85),
            clean[1],
            make_match("Electrical > 1", 0.75),
        ]

        assert reconcile(noisy, knowledge_base) == reconcile(clean, knowledge_base)

    def test_mixed_category_kinds(self, knowledge_base):
        matches = [
            make_match("Maintenance > spark_plugs", 0.82),
            make_match("Engine > 2", 0.77),
        ]

        results = reconcile(matches, knowledge_base)

        assert [r.unique_id for r in results] == ["spark_plugs", "Engine-2"]
        assert results[1].entry["title"] == "Drive belt"

    def test_oversized_index_is_dropped(self, knowledge_base):
        matches = [
            make_match("Engine > " + "1" * 5000, 0.99),
            make_match("Engine > 0", 0.9),
        ]

        results = reconcile(matches, knowledge_base)

        assert [r.unique_id for r in results] == ["Engine-0"]


class TestResultPayload:
    """Tests for the response shape of a retrieved result."""

    def test_payload_flattens_entry(self, knowledge_base):
        results = reconcile([make_match("Engine > 1", 0.66)], knowledge_base)

        assert results[0].to_payload() == {
            "id": "Engine-1",
            "title": "Coolant",
            "description": "Top up only when the engine is cold.",
            "score": 0.66,
        }

    def test_entry_id_field_is_kept(self):
        knowledge_base = build_knowledge_base(
            {"Tips": [{"id": "tip-7", "title": "Soft top care", "score": 3}]},
            "bmw_z3_guide",
        )

        payload = reconcile([make_match("Tips > 0", 0.5)], knowledge_base)[0].to_payload()

        assert payload["id"] == "tip-7"
        assert payload["score"] == 0.5
