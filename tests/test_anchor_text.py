"""Tests for anchor-text generation."""

import pytest

from contextual_cta.anchor_text import (
    ACTION_VERBS,
    AnchorTextError,
    AnchorTextGenerator,
    analyze_context,
    apply_brand_voice,
    fallback_anchor_text,
    refined_confidence,
    truncate_anchor_text,
)
from contextual_cta.config import CompositionConfig
from contextual_cta.models import (
    AnchorStyle,
    AnchorTextRequest,
    Annotation,
    CampaignType,
    Chunk,
    Match,
)

from conftest import FakeOracle


@pytest.fixture
def match(data_offer) -> Match:
    return Match("chunk-0", data_offer, 86, 90, 81, 38)


def _request(match, chunk=None, style=AnchorStyle.BENEFIT_FOCUSED, **kwargs) -> AnchorTextRequest:
    return AnchorTextRequest(
        match=match,
        target_keyword="data quality",
        campaign_type=CampaignType.BLOG_CREATOR,
        style=style,
        chunk=chunk,
        **kwargs,
    )


class TestFallbackTemplates:
    """Tests for template anchor text."""

    @pytest.mark.parametrize("style,expected", [
        (AnchorStyle.BENEFIT_FOCUSED, "Access clean, verified data"),
        (AnchorStyle.QUESTION_BASED, "Tired of dirty data? Start with clean data"),
        (AnchorStyle.PROBLEM_SOLUTION, "Fix your data quality issues with Apollo"),
        (AnchorStyle.VALUE_PROPOSITION, "Get 270M+ verified contacts with Apollo"),
        (AnchorStyle.URGENCY_DRIVEN, "Don't let data quality issues cost you deals"),
    ])
    def test_templates_for_data_offer(self, match, annotated_chunk, style, expected):
        """Test each template style for a data quality offer."""
        result = fallback_anchor_text(_request(match, annotated_chunk, style))

        assert result.anchor_text == expected
        assert result.confidence == 75
        assert result.contextual_fit == 70
        assert result.style == style

    def test_action_oriented_is_deterministic(self, match):
        """Test that the action verb depends only on the offer."""
        first = fallback_anchor_text(_request(match, style=AnchorStyle.ACTION_ORIENTED))
        second = fallback_anchor_text(_request(match, style=AnchorStyle.ACTION_ORIENTED))

        assert first.anchor_text == second.anchor_text
        assert first.anchor_text.split()[0] in ACTION_VERBS
        assert first.anchor_text.endswith("better data quality now")

    def test_value_proposition_without_value_prop(self, match):
        """Test the social-proof variant when value props are disabled."""
        result = fallback_anchor_text(
            _request(match, style=AnchorStyle.VALUE_PROPOSITION, include_value_prop=False)
        )
        assert result.anchor_text == "Join 1M+ sales professionals using Apollo"

    def test_problem_area_without_pain_points(self, match):
        """Test the generic problem area when the chunk has no pain points."""
        result = fallback_anchor_text(_request(match, style=AnchorStyle.PROBLEM_SOLUTION))
        assert result.anchor_text == "Fix your sales challenges with Apollo"

    def test_respects_max_length(self, match):
        """Test that long templates are cut to max_length."""
        result = fallback_anchor_text(_request(match, max_length=15))
        assert result.anchor_text == "Access clean..."
        assert len(result.anchor_text) == 15


class TestRefinement:
    """Tests for refinement helpers."""

    def test_truncate_on_word_boundary(self):
        """Test truncation at the last space past 70% of the limit."""
        text = "Get verified contact data with Apollo today"
        assert truncate_anchor_text(text, 30) == "Get verified contact data..."

    def test_truncate_short_text_unchanged(self):
        """Test that short text is returned as-is."""
        assert truncate_anchor_text("Short", 30) == "Short"

    def test_brand_voices(self):
        """Test each brand voice transformation."""
        assert apply_brand_voice("Get better data now", "professional") == "access better data today"
        assert apply_brand_voice("Tired of dirty data? Start with clean data", "direct") == "Tired of dirty data"
        assert apply_brand_voice("Try it and get results", "consultative") == "explore it and discover results"
        assert apply_brand_voice("Get better data now", "conversational") == "Get better data now"

    def test_refined_confidence_bonuses(self):
        """Test length, brand, action word and number bonuses."""
        # 39 characters, mentions the brand, starts with an action word, has digits
        assert refined_confidence("Get 270M+ verified contacts with Apollo", 75) == 93

    def test_refined_confidence_length_penalty(self):
        """Test the penalty for anchors far from the ideal length."""
        assert refined_confidence("Click", 75) == 65

    def test_refined_confidence_clamped(self):
        """Test that confidence never exceeds 100."""
        assert refined_confidence("Get 270M+ verified contacts with Apollo", 99) == 100


class TestAnalyzeContext:
    """Tests for paragraph context classification."""

    def test_problem_statement(self, match):
        """Test context type, tone, intensity and readiness."""
        chunk = Chunk(
            id="chunk-0",
            content="The problem is critical and every company must consider it carefully.",
            position=0,
        )
        chunk.attach_annotation(Annotation(pain_points=["critical data failures"]))
        context = analyze_context(_request(match, chunk))

        assert context.context_type == "problem_statement"
        assert context.tone == "urgent"
        assert context.pain_point_intensity == "high"
        assert context.solution_readiness == "medium"
        assert context.brand_name == "Apollo"

    def test_defaults_without_chunk(self, match):
        """Test the neutral context when no chunk is supplied."""
        context = analyze_context(_request(match))
        assert context.context_type == "general"
        assert context.pain_point_intensity == "low"


class TestAnchorTextGenerator:
    """Tests for AnchorTextGenerator."""

    def test_oracle_text_refined(self, match, annotated_chunk):
        """Test capitalization and confidence refinement of oracle text."""
        generator = AnchorTextGenerator(FakeOracle())
        result = generator.generate(_request(match, annotated_chunk))

        assert result.anchor_text == "Get verified contact data with Apollo"
        assert result.confidence == 100
        assert result.contextual_fit == 85
        assert result.style == AnchorStyle.BENEFIT_FOCUSED

    def test_oracle_failure_falls_back(self, match, annotated_chunk):
        """Test the template fallback when the oracle fails."""
        oracle = FakeOracle(fail_anchor_styles={AnchorStyle.BENEFIT_FOCUSED})
        result = AnchorTextGenerator(oracle).generate(_request(match, annotated_chunk))

        assert result.anchor_text == "Access clean, verified data"
        assert result.confidence == 78
        assert result.contextual_fit == 70

    def test_oracle_failure_without_fallback(self, match, annotated_chunk):
        """Test that disabling fallback surfaces the failure."""
        oracle = FakeOracle(fail_anchor_styles={AnchorStyle.BENEFIT_FOCUSED})
        generator = AnchorTextGenerator(oracle, allow_fallback=False)

        with pytest.raises(AnchorTextError):
            generator.generate(_request(match, annotated_chunk))

    def test_no_oracle_uses_templates(self, match, annotated_chunk):
        """Test generation without an oracle."""
        result = AnchorTextGenerator().generate(
            _request(match, annotated_chunk, AnchorStyle.PROBLEM_SOLUTION)
        )
        assert result.anchor_text == "Fix your data quality issues with Apollo"

    def test_professional_voice(self, match, annotated_chunk):
        """Test that the configured brand voice is applied."""
        generator = AnchorTextGenerator(FakeOracle(), CompositionConfig(brand_voice="professional"))
        result = generator.generate(_request(match, annotated_chunk))
        assert result.anchor_text == "Access verified contact data with Apollo"

    def test_variations_sorted(self, match, annotated_chunk):
        """Test one result per style, most confident first."""
        oracle = FakeOracle(fail_anchor_styles={AnchorStyle.QUESTION_BASED})
        results = AnchorTextGenerator(oracle).variations(
            _request(match, annotated_chunk),
            [AnchorStyle.QUESTION_BASED, AnchorStyle.BENEFIT_FOCUSED],
        )

        assert [r.style for r in results] == [AnchorStyle.BENEFIT_FOCUSED, AnchorStyle.QUESTION_BASED]
        assert results[0].confidence >= results[1].confidence
