"""Tests for insertion point selection."""

import pytest

from contextual_cta.anchor_text import AnchorTextGenerator
from contextual_cta.composer import CtaComposer
from contextual_cta.config import InsertionConfig
from contextual_cta.models import Chunk, InsertionPoint, Match, MatchingResult
from contextual_cta.selector import (
    InsertionPointSelector,
    chunk_insertion_score,
    composite_score,
    max_recommended_ctas,
)

from conftest import FakeOracle


@pytest.fixture
def match(data_offer) -> Match:
    return Match("chunk-0", data_offer, 86, 90, 81, 38, match_reasons=("Strong fit", "High priority"))


@pytest.fixture
def composition(match, annotated_chunk):
    composer = CtaComposer(AnchorTextGenerator(FakeOracle()))
    return composer.compose(match, "crm", "blog_creator", chunk=annotated_chunk)


def _points(composition, scores: dict[int, int]) -> list[InsertionPoint]:
    return [
        InsertionPoint(
            chunk_id=f"chunk-{position}",
            position=position,
            cta=composition.primary,
            insertion_score=score,
            contextual_fit=score,
            cta_confidence=score,
            composite_score=score,
        )
        for position, score in scores.items()
    ]


class TestScores:
    """Tests for scoring helpers."""

    def test_composite_score(self):
        """Test the weighted composite with default readability impact."""
        # 80 * 0.4 + 70 * 0.3 + 90 * 0.2 + 80 * 0.1
        assert composite_score(80, 70, 90) == 79

    def test_annotated_chunk_score(self, annotated_chunk):
        """Test annotation-driven suitability."""
        # (30 + 2 * 15 + 10 + 20) * 0.6 + 85 * 0.4
        assert chunk_insertion_score(annotated_chunk) == 88

    def test_unannotated_chunk_uses_patterns(self):
        """Test the keyword patterns when there are no pain points."""
        chunk = Chunk(id="chunk-0", content="We solve the sales data problem", position=0)
        assert chunk_insertion_score(chunk) == 90

    def test_long_chunk_bonus_capped(self):
        """Test the length bonus and the 100 ceiling."""
        chunk = Chunk(id="chunk-0", content="problem solve sales " * 20, position=0)
        assert chunk_insertion_score(chunk) == 100

    @pytest.mark.parametrize("paragraphs,expected", [
        (1, 1), (4, 1), (5, 2), (9, 2), (10, 3), (19, 3), (24, 3), (32, 4), (100, 4),
    ])
    def test_max_recommended_ctas(self, paragraphs, expected):
        """Test the length-scaled cap."""
        assert max_recommended_ctas(paragraphs) == expected


class TestBuildPoints:
    """Tests for InsertionPointSelector.build_points."""

    def test_point_for_matched_chunk(self, annotated_chunk, match, composition):
        """Test that a matched, composed chunk gets a scored point."""
        other = Chunk(id="chunk-1", content="Unmatched paragraph text", position=1)
        matching = MatchingResult(matches=[match], total_chunks=2)

        points = InsertionPointSelector().build_points(
            [annotated_chunk, other], matching, {"chunk-0": composition}
        )

        assert len(points) == 1
        point = points[0]
        assert point.chunk_id == "chunk-0"
        assert point.cta is composition.primary
        assert point.insertion_score == 88
        assert point.contextual_fit == 86
        assert point.cta_confidence == 94
        # 88 * 0.4 + 86 * 0.3 + 94 * 0.2 + 80 * 0.1
        assert point.composite_score == 88
        assert point.reasoning == "Strong fit; High priority"

    def test_choose_cta(self, annotated_chunk, match, composition):
        """Test that a custom chooser picks the inserted CTA."""
        matching = MatchingResult(matches=[match])
        points = InsertionPointSelector().build_points(
            [annotated_chunk], matching, {"chunk-0": composition},
            choose_cta=lambda result: result.alternatives[-1],
        )
        assert points[0].cta is composition.alternatives[-1]


class TestSelect:
    """Tests for InsertionPointSelector.select."""

    def test_cap_and_spacing(self, composition):
        """Test that ten equal points yield three, spaced three apart."""
        points = _points(composition, {i: 90 for i in range(10)})
        selected = InsertionPointSelector().select(points, 10)

        assert [p.position for p in selected] == [0, 3, 6]

    def test_best_first_with_spacing(self, composition):
        """Test greedy selection by score under the spacing rule."""
        points = _points(composition, {0: 70, 1: 95, 2: 90, 3: 60, 4: 85})
        selected = InsertionPointSelector().select(points, 5)

        assert [p.position for p in selected] == [1, 4]

    def test_spacing_invariant(self, composition):
        """Test that no two selected points are closer than the minimum spacing."""
        scores = {i: 60 + (i * 37) % 40 for i in range(20)}
        config = InsertionConfig(max_ctas_per_article=10, min_cta_spacing=4)
        selected = InsertionPointSelector(config).select(_points(composition, scores), 20)

        positions = [p.position for p in selected]
        assert positions == sorted(positions)
        assert all(b - a >= 4 for a, b in zip(positions, positions[1:]))

    def test_threshold(self, composition):
        """Test that points under the threshold are never selected."""
        points = _points(composition, {0: 59, 5: 60})
        selected = InsertionPointSelector().select(points, 10)

        assert [p.position for p in selected] == [5]

    def test_nothing_qualifies(self, composition):
        """Test an empty selection."""
        points = _points(composition, {0: 10, 4: 20})
        assert InsertionPointSelector().select(points, 10) == []

    def test_adaptive_cap(self, composition):
        """Test the length-scaled cap when no hard cap is configured."""
        config = InsertionConfig(max_ctas_per_article=None, min_cta_spacing=1)
        points = _points(composition, {i: 90 for i in range(10)})

        assert len(InsertionPointSelector(config).select(points, 4)) == 1
        assert len(InsertionPointSelector(config).select(points, 12)) == 3

    def test_zero_cap(self, composition):
        """Test that a cap of zero selects nothing."""
        config = InsertionConfig(max_ctas_per_article=0)
        points = _points(composition, {0: 90})
        assert InsertionPointSelector(config).select(points, 10) == []
