"""Tests for data models."""

from pathlib import Path

import pytest

import contextual_cta

from contextual_cta.models import (
    Annotation,
    Chunk,
    ContentFormat,
    Offer,
    OfferCategory,
    round_score,
)


class TestContentFormat:
    """Tests for ContentFormat.from_value."""

    @pytest.mark.parametrize("value,expected", [
        ("html", ContentFormat.HTML),
        ("HTML", ContentFormat.HTML),
        ("md", ContentFormat.MARKDOWN),
        ("txt", ContentFormat.TEXT),
        (ContentFormat.TEXT, ContentFormat.TEXT),
    ])
    def test_aliases(self, value, expected):
        """Test names, aliases and enum members."""
        assert ContentFormat.from_value(value) == expected

    def test_unknown(self):
        """Test that unknown formats raise ValueError."""
        with pytest.raises(ValueError, match="Unsupported content format"):
            ContentFormat.from_value("pdf")


class TestAnnotation:
    """Tests for Annotation."""

    def test_confidence_clamped(self):
        """Test that confidence is forced into 0-100."""
        assert Annotation(confidence_score=140).confidence_score == 100
        assert Annotation(confidence_score=-5).confidence_score == 0

    def test_empty(self):
        """Test the empty annotation."""
        assert Annotation.empty().is_empty
        assert not Annotation(themes=["crm"]).is_empty


class TestChunk:
    """Tests for Chunk."""

    def test_annotation_attached_once(self):
        """Test that a chunk cannot be re-annotated."""
        chunk = Chunk(id="chunk-0", content="one two three", position=0)
        chunk.attach_annotation(Annotation.empty())

        assert chunk.is_annotated
        assert chunk.word_count == 3
        with pytest.raises(ValueError, match="already annotated"):
            chunk.attach_annotation(Annotation.empty())


class TestOffer:
    """Tests for Offer."""

    def test_dict_round_trip(self, data_offer):
        """Test conversion to and from plain dicts."""
        assert Offer.from_dict(data_offer.to_dict()) == data_offer

    def test_from_dict_defaults(self):
        """Test optional fields."""
        offer = Offer.from_dict({
            "id": "x", "title": "X", "url": "https://x.io", "category": "GENERAL",
        })
        assert offer.category == OfferCategory.GENERAL
        assert offer.priority == 5
        assert offer.pain_point_keywords == []

    def test_category_metadata(self):
        """Test category keywords and descriptions."""
        assert "verification" in OfferCategory.DATA_QUALITY_ENRICHMENT.keywords
        assert OfferCategory.GENERAL.description


class TestRoundScore:
    """Tests for score rounding."""

    @pytest.mark.parametrize("value,expected", [(84.5, 85), (85.5, 86), (84.49, 84), (0.0, 0)])
    def test_half_up(self, value, expected):
        """Test that halves always round up."""
        assert round_score(value) == expected


class TestSourceEncoding:
    """Tests for module encoding declarations."""

    @pytest.mark.parametrize("module", [
        "anchor_text", "annotator", "chunker", "composer", "config", "llm_client", "matcher",
        "models", "offer_catalog", "oracle", "pipeline", "selector", "splicer", "utm",
    ])
    def test_utf8_declared(self, module):
        """Test that pipeline modules declare their source encoding."""
        source = Path(contextual_cta.__file__).parent / f"{module}.py"
        first_line = source.read_text(encoding="utf-8").splitlines()[0]
        assert first_line == "# -*- coding: utf-8 -*-"
