# -*- coding: utf-8 -*-
"""
Anchor-text generation.

Produces the visible link text of a CTA in one of six styles. The oracle
writes the first draft; when it is unavailable or replies with something
unusable, deterministic templates keyed on the offer category take over.
Every draft then goes through the same refinement: brand capitalization,
length limiting on a word boundary, brand voice, and a confidence
adjustment for length, brand mention, action words and numbers.
"""

import logging
import re
import zlib
from typing import Optional

from .config import CompositionConfig
from .models import (
    AnchorContext,
    AnchorStyle,
    AnchorTextRequest,
    AnchorTextResult,
    Annotation,
    Offer,
    OfferCategory,
)
from .oracle import TextUnderstandingOracle

logger = logging.getLogger(__name__)


FALLBACK_CONFIDENCE = 75
FALLBACK_CONTEXTUAL_FIT = 70
IDEAL_ANCHOR_LENGTH = 40

ACTION_WORDS = ["start", "get", "try", "access", "discover", "begin"]
ACTION_VERBS = ["Start", "Begin", "Launch", "Try", "Access", "Discover"]

VALUE_PROPS: dict[OfferCategory, list[str]] = {
    OfferCategory.DATA_QUALITY_ENRICHMENT: [
        "270M+ verified contacts", "Real-time data enrichment", "95% email deliverability",
    ],
    OfferCategory.SALES_PROSPECTING: [
        "270M+ B2B contacts", "73M+ companies", "Advanced search filters",
    ],
    OfferCategory.SALES_ENGAGEMENT: [
        "Multichannel sequences", "AI-powered personalization", "3x higher response rates",
    ],
    OfferCategory.PIPELINE_MANAGEMENT: [
        "Deal tracking automation", "Pipeline visibility", "Forecasting accuracy",
    ],
    OfferCategory.CALL_ASSISTANT: [
        "AI meeting insights", "Automated scheduling", "Call recording & analysis",
    ],
    OfferCategory.REVENUE_OPERATIONS: [
        "Revenue optimization", "Workflow automation", "Performance analytics",
    ],
}
DEFAULT_VALUE_PROPS = ["Sales intelligence platform", "B2B sales automation"]


class AnchorTextError(Exception):
    """Raised when anchor text cannot be produced for a style."""
    pass


def analyze_context(request: AnchorTextRequest, brand_name: str = "Apollo",
                    brand_voice: str = "conversational") -> AnchorContext:
    """Classify the paragraph the anchor will follow."""
    chunk = request.chunk
    content = chunk.content.lower() if chunk else ""
    annotation = (chunk.annotation if chunk else None) or Annotation.empty()
    pain_points = " ".join(annotation.pain_points).lower()

    def has_any(text: str, *words: str) -> bool:
        return any(word in text for word in words)

    context_type = "general"
    if has_any(content, "problem", "challenge", "struggle"):
        context_type = "problem_statement"
    elif has_any(content, "solution", "tool", "platform"):
        context_type = "solution_discussion"
    elif has_any(content, "benefit", "improve", "better"):
        context_type = "benefit_explanation"

    tone = "conversational"
    if has_any(content, "must", "critical", "urgent"):
        tone = "urgent"
    elif has_any(content, "understand", "learn", "consider"):
        tone = "educational"
    elif has_any(content, "organization", "enterprise", "company"):
        tone = "formal"

    if has_any(pain_points, "fail", "crisis", "critical"):
        intensity = "high"
    elif has_any(pain_points, "challenge", "problem"):
        intensity = "medium"
    else:
        intensity = "low"

    if has_any(content, "need", "require", "must have"):
        readiness = "high"
    elif has_any(content, "consider", "explore", "evaluate"):
        readiness = "medium"
    else:
        readiness = "low"

    return AnchorContext(
        context_type=context_type,
        tone=tone,
        pain_point_intensity=intensity,
        solution_readiness=readiness,
        brand_name=brand_name,
        brand_voice=brand_voice,
    )


def _category_phrase(offer: Offer, phrases: dict[str, str], default: str) -> str:
    category = offer.category.value
    for token, phrase in phrases.items():
        if token in category:
            return phrase
    return default


def _problem_area(request: AnchorTextRequest) -> str:
    chunk = request.chunk
    annotation = (chunk.annotation if chunk else None) or Annotation.empty()
    pain_points = " ".join(annotation.pain_points).lower()
    for token, phrase in (
        ("data", "data quality issues"),
        ("email", "email problems"),
        ("prospect", "prospecting challenges"),
        ("outreach", "outreach inefficiencies"),
    ):
        if token in pain_points:
            return phrase
    return "sales challenges"


def _pain_point_question(request: AnchorTextRequest) -> str:
    chunk = request.chunk
    annotation = (chunk.annotation if chunk else None) or Annotation.empty()
    pain_points = " ".join(annotation.pain_points).lower()
    for token, question in (
        ("data", "Tired of dirty data"),
        ("email", "Struggling with email deliverability"),
        ("prospect", "Need more qualified prospects"),
        ("outreach", "Want better outreach results"),
    ):
        if token in pain_points:
            return question
    return "Ready to solve this challenge"


def fallback_anchor_text(request: AnchorTextRequest, brand_name: str = "Apollo") -> AnchorTextResult:
    """
    Template-based anchor text.

    Output depends only on the request, so repeated calls agree.
    """
    offer = request.match.offer
    style = request.style

    if style == AnchorStyle.QUESTION_BASED:
        action = _category_phrase(
            offer,
            {"data": "Start with clean data", "prospect": "Find better prospects",
             "engagement": "Automate your outreach"},
            f"Try {brand_name} free",
        )
        text = f"{_pain_point_question(request)}? {action}"
    elif style == AnchorStyle.BENEFIT_FOCUSED:
        lead = _category_phrase(
            offer, {"data": "Access", "prospect": "Discover", "engagement": "Automate with"}, "Get"
        )
        benefit = _category_phrase(
            offer,
            {"data": "clean, verified data", "prospect": "qualified prospects instantly",
             "engagement": "automated engagement sequences", "pipeline": "pipeline visibility",
             "call": "AI meeting insights"},
            "sales intelligence platform",
        )
        text = f"{lead} {benefit}"
    elif style == AnchorStyle.ACTION_ORIENTED:
        verb = ACTION_VERBS[zlib.crc32(offer.id.encode("utf-8")) % len(ACTION_VERBS)]
        benefit = _category_phrase(
            offer,
            {"data": "data quality", "prospect": "prospecting results",
             "engagement": "engagement rates"},
            "sales performance",
        )
        text = f"{verb} better {benefit} now"
    elif style == AnchorStyle.PROBLEM_SOLUTION:
        text = f"Fix your {_problem_area(request)} with {brand_name}"
    elif style == AnchorStyle.VALUE_PROPOSITION:
        value_prop = VALUE_PROPS.get(offer.category, DEFAULT_VALUE_PROPS)[0]
        if request.include_value_prop:
            text = f"Get {value_prop} with {brand_name}"
        else:
            text = f"Join 1M+ sales professionals using {brand_name}"
    elif style == AnchorStyle.URGENCY_DRIVEN:
        text = f"Don't let {_problem_area(request)} cost you deals"
    else:
        text = f"Try {brand_name}'s {offer.title.lower()} free"

    if len(text) > request.max_length:
        text = text[:request.max_length - 3] + "..."

    return AnchorTextResult(
        anchor_text=text,
        confidence=FALLBACK_CONFIDENCE,
        contextual_fit=FALLBACK_CONTEXTUAL_FIT,
        style=style,
        reasoning=f"Generated from {style.value} template for {offer.category.value}",
    )


def truncate_anchor_text(text: str, max_length: int) -> str:
    """Shorten to max_length, preferring a word boundary, ending with '...'."""
    if len(text) <= max_length:
        return text
    truncated = text[:max_length - 3]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.7:
        return truncated[:last_space] + "..."
    return truncated + "..."


def apply_brand_voice(text: str, brand_voice: str) -> str:
    if brand_voice == "professional":
        text = re.sub(r"\b(get|try)\b", "access", text, flags=re.IGNORECASE)
        text = re.sub(r"\bnow\b", "today", text, flags=re.IGNORECASE)
    elif brand_voice == "direct":
        direct = re.sub(r"\?.*$", "", text)
        direct = re.sub(r"\b(want to|ready to)\b", "", direct, flags=re.IGNORECASE)
        direct = " ".join(direct.split())
        text = direct or text
    elif brand_voice == "consultative":
        text = re.sub(r"\btry\b", "explore", text, flags=re.IGNORECASE)
        text = re.sub(r"\bget\b", "discover", text, flags=re.IGNORECASE)
    return text


def _capitalize(text: str, brand_name: str) -> str:
    if brand_name:
        text = re.sub(rf"\b{re.escape(brand_name)}\b", brand_name, text, flags=re.IGNORECASE)
    return text[:1].upper() + text[1:]


def refined_confidence(anchor_text: str, base_confidence: int, brand_name: str = "Apollo") -> int:
    confidence = base_confidence
    length_diff = abs(len(anchor_text) - IDEAL_ANCHOR_LENGTH)
    if length_diff < 10:
        confidence += 5
    elif length_diff > 30:
        confidence -= 10

    lowered = anchor_text.lower()
    if brand_name and brand_name.lower() in lowered:
        confidence += 5
    if any(word in lowered for word in ACTION_WORDS):
        confidence += 3
    if re.search(r"\d", anchor_text):
        confidence += 5
    return max(0, min(100, confidence))


class AnchorTextGenerator:
    """
    Generates and refines anchor text.

    Args:
        oracle: Anchor-text oracle. When None, templates are used.
        config: Composition configuration (brand name, voice, length).
        allow_fallback: When False, an oracle failure raises AnchorTextError
            instead of falling back to templates.
    """

    def __init__(
        self,
        oracle: Optional[TextUnderstandingOracle] = None,
        config: Optional[CompositionConfig] = None,
        allow_fallback: bool = True,
    ):
        self.oracle = oracle
        self.config = config or CompositionConfig()
        self.allow_fallback = allow_fallback

    def generate(self, request: AnchorTextRequest) -> AnchorTextResult:
        """
        Produce refined anchor text for a request.

        Raises:
            AnchorTextError: If the oracle fails and fallback is disabled.
        """
        brand_name = self.config.brand_name
        context = analyze_context(request, brand_name, self.config.brand_voice)

        draft = None
        if self.oracle is not None:
            try:
                draft = self.oracle.generate_anchor_text(request, context)
            except Exception as e:
                if not self.allow_fallback:
                    raise AnchorTextError(
                        f"Anchor text generation failed for {request.style.value}: {e}"
                    ) from e
                logger.warning(
                    f"Anchor text oracle failed for {request.match.offer.id} "
                    f"({request.style.value}), using template: {e}"
                )
        if draft is None:
            draft = fallback_anchor_text(request, brand_name)

        result = self.refine(draft, request)
        logger.debug(f"Anchor text: {result.anchor_text!r} ({result.confidence}% confidence)")
        return result

    def refine(self, result: AnchorTextResult, request: AnchorTextRequest) -> AnchorTextResult:
        brand_name = self.config.brand_name
        text = _capitalize(" ".join(result.anchor_text.split()), brand_name)
        text = truncate_anchor_text(text, request.max_length)
        text = _capitalize(apply_brand_voice(text, self.config.brand_voice), brand_name)
        return AnchorTextResult(
            anchor_text=text,
            confidence=refined_confidence(text, result.confidence, brand_name),
            contextual_fit=result.contextual_fit,
            style=request.style,
            reasoning=result.reasoning,
        )

    def variations(self, request: AnchorTextRequest, styles: list[AnchorStyle]) -> list[AnchorTextResult]:
        """Anchor text in several styles, most confident first."""
        results = []
        for style in styles:
            styled = AnchorTextRequest(
                match=request.match,
                target_keyword=request.target_keyword,
                campaign_type=request.campaign_type,
                style=style,
                max_length=request.max_length,
                include_value_prop=request.include_value_prop,
                competitor_name=request.competitor_name,
                chunk=request.chunk,
            )
            results.append(self.generate(styled))
        return sorted(results, key=lambda r: r.confidence, reverse=True)
