# -*- coding: utf-8 -*-
"""
Text-understanding oracle interface.

The pipeline delegates three judgments to an external language model:
chunk annotation, chunk/offer similarity, and anchor-text generation.
This module defines the interface those calls go through, the prompts
sent to a completion-style model, and tolerant parsers for its replies.
The oracle is an untrusted boundary: every parser either returns a fully
validated value or raises OracleResponseError.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from .models import (
    AnchorContext,
    AnchorStyle,
    AnchorTextRequest,
    AnchorTextResult,
    Annotation,
    Chunk,
    Offer,
    OfferCategory,
)


class OracleResponseError(Exception):
    """Raised when an oracle reply does not match the expected schema."""
    pass


class TextUnderstandingOracle(ABC):
    """
    External text-understanding capability.

    Implementations may raise any exception on transport failure; callers
    treat every failure as recoverable and fall back to defaults.
    """

    @abstractmethod
    def annotate(self, chunk_text: str) -> Annotation:
        """Return themes, pain points, opportunities and candidacy for a chunk."""

    @abstractmethod
    def score_similarity(self, chunk: Chunk, offers: list[Offer]) -> list[int]:
        """Return one 0-100 similarity score per offer, in offer order."""

    @abstractmethod
    def generate_anchor_text(
        self, request: AnchorTextRequest, context: AnchorContext
    ) -> AnchorTextResult:
        """Return anchor text for the requested style."""


ANNOTATION_SYSTEM_PROMPT = (
    "You are an expert content analyst specializing in B2B sales and marketing "
    "content. You respond with JSON only."
)

SIMILARITY_SYSTEM_PROMPT = (
    "You are an expert content analyst specializing in semantic similarity "
    "analysis for B2B sales and marketing content. You respond with a JSON array only."
)

ANCHOR_SYSTEM_PROMPT = (
    "You are an expert copywriter specializing in B2B SaaS anchor text that "
    "converts. You respond with JSON only."
)


def _category_list() -> str:
    return "\n".join(
        f"- {category.value}: {category.description}" for category in OfferCategory
    )


def build_annotation_prompt(chunk_text: str, brand_name: str = "Apollo") -> str:
    """Build the per-chunk analysis request."""
    return f"""Analyze the following paragraph for themes, pain points, and solution opportunities that could be addressed by {brand_name}.

SOLUTION CATEGORIES:
{_category_list()}

CONTENT TO ANALYZE:
"{chunk_text}"

ANALYSIS REQUIREMENTS:
1. Identify 2-5 main themes in this paragraph
2. Extract specific pain points or challenges mentioned
3. Identify opportunities where the solution categories above could help
4. Note context clues that indicate target audience or use case
5. Rate confidence in analysis (0-100)
6. Determine if this paragraph is suitable for CTA insertion (ends naturally, discusses problems/solutions)

Respond with ONLY valid JSON in this exact format:
{{
  "themes": ["theme1", "theme2"],
  "painPoints": ["pain1", "pain2"],
  "solutionOpportunities": ["opportunity1", "opportunity2"],
  "contextClues": ["clue1", "clue2"],
  "confidenceScore": 85,
  "isCtaCandidate": true
}}"""


def build_similarity_prompt(chunk: Chunk, offers: list[Offer]) -> str:
    """Build the chunk-versus-offers similarity request."""
    annotation = chunk.annotation or Annotation.empty()
    offer_list = "\n".join(
        f"{index + 1}. {offer.title}: {offer.description}"
        for index, offer in enumerate(offers)
    )
    return f"""Rate the semantic similarity between the content chunk and each solution.

CONTENT CHUNK TO ANALYZE:
"{chunk.content}"

CHUNK CONTEXT:
- Themes: {', '.join(annotation.themes)}
- Pain Points: {', '.join(annotation.pain_points)}
- Solution Opportunities: {', '.join(annotation.solution_opportunities)}

SOLUTIONS:
{offer_list}

SCALE (0-100):
- 90-100: content directly discusses this solution's problem or benefit
- 70-89: content themes strongly align with the solution
- 50-69: some thematic overlap
- 30-49: minimal thematic connection
- 0-29: unrelated

Respond with ONLY a JSON array of {len(offers)} integers, one per solution, in order.
Example: [85, 72, 45]"""


def build_anchor_prompt(request: AnchorTextRequest, context: AnchorContext) -> str:
    """Build the anchor-text request for one style."""
    offer = request.match.offer
    annotation = (request.chunk.annotation if request.chunk else None) or Annotation.empty()
    chunk_text = request.chunk.content if request.chunk else ""
    value_prop = (
        "Lead with a concrete value proposition."
        if request.include_value_prop
        else "Do not include a value proposition."
    )
    return f"""Create compelling, contextual anchor text for {context.brand_name} that flows naturally after this paragraph.

CONTENT CONTEXT:
"{chunk_text}"

CONTENT ANALYSIS:
- Themes: {', '.join(annotation.themes)}
- Pain Points: {', '.join(annotation.pain_points)}
- Context Type: {context.context_type}
- Tone: {context.tone}
- Pain Point Intensity: {context.pain_point_intensity}

SOLUTION:
- Title: {offer.title}
- Description: {offer.description}
- Category: {offer.category.value}

REQUIREMENTS:
1. Maximum {request.max_length} characters
2. Natural continuation of the paragraph content
3. Brand voice: {context.brand_voice}
4. Campaign type: {request.campaign_type.value}
5. Target keyword: {request.target_keyword}
6. Style: {request.style.value}
7. {value_prop}

STYLE GUIDELINES:
- question_based: engaging question followed by a benefit
- benefit_focused: lead with a specific value proposition
- action_oriented: strong action verb plus immediate benefit
- problem_solution: acknowledge the problem, present the solution
- value_proposition: highlight unique advantages
- urgency_driven: sense of urgency plus a clear action

Respond with ONLY valid JSON in this exact format:
{{
  "anchorText": "Get 270M+ verified contacts instantly",
  "style": "{request.style.value}",
  "confidence": 92,
  "contextualFit": 88,
  "reasoning": "Flows naturally from the data quality discussion"
}}"""


def _extract_json_object(text: str) -> dict[str, Any]:
    match = re.search(r"\{[\s\S]*\}", text or "")
    if not match:
        raise OracleResponseError("No JSON object found in response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise OracleResponseError(f"Invalid JSON in response: {e}")
    if not isinstance(parsed, dict):
        raise OracleResponseError("Response JSON is not an object")
    return parsed


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _bounded_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(0, min(100, int(round(number))))


def parse_annotation(text: str) -> Annotation:
    """
    Parse an annotation reply.

    Raises:
        OracleResponseError: If no JSON object can be read from the reply.
    """
    data = _extract_json_object(text)
    return Annotation(
        themes=_string_list(data.get("themes")),
        pain_points=_string_list(data.get("painPoints")),
        solution_opportunities=_string_list(data.get("solutionOpportunities")),
        context_clues=_string_list(data.get("contextClues")),
        confidence_score=_bounded_int(data.get("confidenceScore"), 0),
        is_candidate=data.get("isCtaCandidate") is True,
    )


def parse_similarity_scores(text: str, expected: int) -> list[int]:
    """
    Parse a similarity reply into exactly `expected` clamped scores.

    Raises:
        OracleResponseError: If no numeric array is found or its length differs.
    """
    match = re.search(r"\[[\d\s,.]*\]", text or "")
    if not match:
        raise OracleResponseError("No score array found in response")
    try:
        values = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise OracleResponseError(f"Invalid score array: {e}")
    if len(values) != expected:
        raise OracleResponseError(
            f"Expected {expected} scores, got {len(values)}"
        )
    return [_bounded_int(value, 0) for value in values]


def parse_anchor_text(text: str, style: AnchorStyle) -> AnchorTextResult:
    """
    Parse an anchor-text reply.

    Raises:
        OracleResponseError: If the reply has no usable anchor text.
    """
    data = _extract_json_object(text)
    anchor_text = str(data.get("anchorText") or "").strip()
    if not anchor_text:
        raise OracleResponseError("Response has no anchorText")
    return AnchorTextResult(
        anchor_text=anchor_text,
        confidence=_bounded_int(data.get("confidence"), 75),
        contextual_fit=_bounded_int(data.get("contextualFit"), 70),
        style=style,
        reasoning=str(data.get("reasoning") or ""),
    )
