"""Tests for oracle prompts, reply parsers and the Claude-backed client."""

from types import SimpleNamespace

import pytest

from contextual_cta.llm_client import LLMClient, LLMClientError, create_llm_client
from contextual_cta.models import (
    AnchorContext,
    AnchorStyle,
    AnchorTextRequest,
    CampaignType,
    Match,
)
from contextual_cta.oracle import (
    OracleResponseError,
    build_anchor_prompt,
    build_annotation_prompt,
    build_similarity_prompt,
    parse_anchor_text,
    parse_annotation,
    parse_similarity_scores,
)


class TestParseAnnotation:
    """Tests for annotation reply parsing."""

    def test_json_with_surrounding_text(self):
        """Test that JSON embedded in prose is extracted."""
        reply = (
            'Here is the analysis:\n{"themes": ["data quality"], "painPoints": ["bad data"], '
            '"solutionOpportunities": ["enrichment"], "contextClues": ["sales team"], '
            '"confidenceScore": 85, "isCtaCandidate": true}\nThanks!'
        )
        annotation = parse_annotation(reply)

        assert annotation.themes == ["data quality"]
        assert annotation.pain_points == ["bad data"]
        assert annotation.solution_opportunities == ["enrichment"]
        assert annotation.context_clues == ["sales team"]
        assert annotation.confidence_score == 85
        assert annotation.is_candidate is True

    def test_out_of_range_and_wrong_types(self):
        """Test clamping and type tolerance."""
        annotation = parse_annotation(
            '{"themes": "not a list", "confidenceScore": 250, "isCtaCandidate": "yes"}'
        )
        assert annotation.themes == []
        assert annotation.confidence_score == 100
        assert annotation.is_candidate is False

    @pytest.mark.parametrize("reply", ["no json here", "{broken: json}", ""])
    def test_unusable_reply(self, reply):
        """Test that unusable replies raise OracleResponseError."""
        with pytest.raises(OracleResponseError):
            parse_annotation(reply)


class TestParseSimilarityScores:
    """Tests for similarity reply parsing."""

    def test_scores_clamped(self):
        """Test that scores are read in order and clamped."""
        assert parse_similarity_scores("Scores: [85, 120, 42.6]", 3) == [85, 100, 43]

    def test_length_mismatch(self):
        """Test that a reply with the wrong number of scores is rejected."""
        with pytest.raises(OracleResponseError, match="Expected 2 scores, got 3"):
            parse_similarity_scores("[1, 2, 3]", 2)

    def test_no_array(self):
        """Test that a reply without an array is rejected."""
        with pytest.raises(OracleResponseError):
            parse_similarity_scores("eighty-five", 1)


class TestParseAnchorText:
    """Tests for anchor-text reply parsing."""

    def test_defaults(self):
        """Test the default confidence and fit when omitted."""
        result = parse_anchor_text('{"anchorText": "Get clean data"}', AnchorStyle.ACTION_ORIENTED)

        assert result.anchor_text == "Get clean data"
        assert result.confidence == 75
        assert result.contextual_fit == 70
        assert result.style == AnchorStyle.ACTION_ORIENTED

    def test_missing_anchor_text(self):
        """Test that an empty anchor text is rejected."""
        with pytest.raises(OracleResponseError):
            parse_anchor_text('{"anchorText": "  ", "confidence": 90}', AnchorStyle.BENEFIT_FOCUSED)


class TestPrompts:
    """Tests for prompt construction."""

    def test_annotation_prompt(self):
        """Test that the chunk and the category taxonomy are included."""
        prompt = build_annotation_prompt("Our CRM is full of stale contacts.", "Apollo")
        assert '"Our CRM is full of stale contacts."' in prompt
        assert "data_quality_enrichment" in prompt
        assert "isCtaCandidate" in prompt

    def test_similarity_prompt_lists_offers(self, annotated_chunk, offers):
        """Test that offers are numbered in order."""
        prompt = build_similarity_prompt(annotated_chunk, offers)
        assert "1. Data Enrichment:" in prompt
        assert "3. Webinar Replay:" in prompt
        assert "JSON array of 3 integers" in prompt

    def test_anchor_prompt(self, annotated_chunk, data_offer):
        """Test that the request's constraints reach the prompt."""
        request = AnchorTextRequest(
            match=Match("chunk-0", data_offer, 86, 90, 81, 38),
            target_keyword="data quality",
            campaign_type=CampaignType.BLOG_CREATOR,
            style=AnchorStyle.QUESTION_BASED,
            max_length=60,
            chunk=annotated_chunk,
        )
        prompt = build_anchor_prompt(request, AnchorContext(brand_voice="direct"))
        assert "Maximum 60 characters" in prompt
        assert "Style: question_based" in prompt
        assert "Brand voice: direct" in prompt
        assert "Target keyword: data quality" in prompt


class FakeMessages:
    """Stands in for client.messages, replaying canned replies."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        text = self.replies.pop(0)
        return SimpleNamespace(content=[SimpleNamespace(text=text)] if text is not None else [])


@pytest.fixture
def llm_client() -> LLMClient:
    return LLMClient(api_key="test-key")


class TestLLMClient:
    """Tests for the Claude-backed oracle."""

    def test_missing_api_key(self, monkeypatch):
        """Test that a missing key fails at construction."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(LLMClientError, match="No API key provided"):
            create_llm_client()

    def test_annotate(self, llm_client):
        """Test an annotation round through the API."""
        messages = FakeMessages(['{"themes": ["crm"], "confidenceScore": 70, "isCtaCandidate": true}'])
        llm_client.client = SimpleNamespace(messages=messages)

        annotation = llm_client.annotate("Our CRM is a mess.")

        assert annotation.themes == ["crm"]
        assert messages.calls[0]["model"] == llm_client.model
        assert "Our CRM is a mess." in messages.calls[0]["messages"][0]["content"]

    def test_score_similarity(self, llm_client, annotated_chunk, offers):
        """Test similarity scoring through the API."""
        llm_client.client = SimpleNamespace(messages=FakeMessages(["[90, 40, 10]"]))
        assert llm_client.score_similarity(annotated_chunk, offers) == [90, 40, 10]

    def test_score_similarity_without_offers(self, llm_client, annotated_chunk):
        """Test that no call is made for an empty offer list."""
        messages = FakeMessages()
        llm_client.client = SimpleNamespace(messages=messages)
        assert llm_client.score_similarity(annotated_chunk, []) == []
        assert messages.calls == []

    def test_generate_anchor_text(self, llm_client, annotated_chunk, data_offer):
        """Test anchor generation through the API."""
        llm_client.client = SimpleNamespace(messages=FakeMessages([
            '{"anchorText": "Get verified contacts", "confidence": 88, "contextualFit": 80}'
        ]))
        request = AnchorTextRequest(
            match=Match("chunk-0", data_offer, 86, 90, 81, 38),
            target_keyword="crm",
            campaign_type=CampaignType.BLOG_CREATOR,
            chunk=annotated_chunk,
        )
        result = llm_client.generate_anchor_text(request, AnchorContext())

        assert result.anchor_text == "Get verified contacts"
        assert result.confidence == 88

    def test_api_failure_wrapped(self, llm_client):
        """Test that transport errors become LLMClientError."""
        llm_client.client = SimpleNamespace(messages=FakeMessages(error=RuntimeError("timeout")))
        with pytest.raises(LLMClientError, match="LLM API call failed"):
            llm_client.annotate("text")

    def test_empty_response(self, llm_client):
        """Test that an empty completion raises."""
        llm_client.client = SimpleNamespace(messages=FakeMessages([None]))
        with pytest.raises(LLMClientError, match="Empty response"):
            llm_client.annotate("text")
