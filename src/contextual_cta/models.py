# -*- coding: utf-8 -*-
"""
Data models for Contextual CTA.

This module defines the core data structures passed between pipeline stages:
chunks and their annotations, offers and matches, composed CTAs, insertion
points and the final enhanced document.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ContentFormat(Enum):
    """Supported source document formats."""
    HTML = "html"
    MARKDOWN = "markdown"
    TEXT = "text"

    @classmethod
    def from_value(cls, value: "str | ContentFormat") -> "ContentFormat":
        """Resolve a format from an enum member or a string like 'md' or 'HTML'."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        aliases = {"md": "markdown", "txt": "text", "plain": "text", "htm": "html"}
        normalized = aliases.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unsupported content format: {value}")


class OfferCategory(Enum):
    """Closed taxonomy of solution categories an offer can belong to."""
    DATA_QUALITY_ENRICHMENT = "data_quality_enrichment"
    SALES_PROSPECTING = "sales_prospecting"
    SALES_ENGAGEMENT = "sales_engagement"
    PIPELINE_MANAGEMENT = "pipeline_management"
    SALES_INTELLIGENCE = "sales_intelligence"
    REVENUE_OPERATIONS = "revenue_operations"
    CALL_ASSISTANT = "call_assistant"
    INTEGRATIONS = "integrations"
    GENERAL = "general"

    @property
    def keywords(self) -> list[str]:
        """Category keywords used for theme alignment."""
        return CATEGORY_KEYWORDS[self]

    @property
    def description(self) -> str:
        return CATEGORY_DESCRIPTIONS[self]


CATEGORY_KEYWORDS: dict[OfferCategory, list[str]] = {
    OfferCategory.DATA_QUALITY_ENRICHMENT: [
        "data", "quality", "enrichment", "accuracy", "verification", "cleansing",
    ],
    OfferCategory.SALES_PROSPECTING: [
        "prospecting", "leads", "contacts", "discovery", "targeting", "research",
    ],
    OfferCategory.SALES_ENGAGEMENT: [
        "engagement", "outreach", "email", "sequences", "automation", "communication",
    ],
    OfferCategory.PIPELINE_MANAGEMENT: [
        "pipeline", "deals", "management", "tracking", "forecasting", "process",
    ],
    OfferCategory.SALES_INTELLIGENCE: [
        "intelligence", "insights", "analytics", "competitive", "market", "signals",
    ],
    OfferCategory.REVENUE_OPERATIONS: [
        "revenue", "operations", "optimization", "workflow", "efficiency", "performance",
    ],
    OfferCategory.CALL_ASSISTANT: [
        "calls", "meetings", "conversations", "scheduling", "recording", "insights",
    ],
    OfferCategory.INTEGRATIONS: [
        "integration", "api", "connectivity", "systems", "workflow", "automation",
    ],
    OfferCategory.GENERAL: [
        "sales", "marketing", "business", "growth", "efficiency", "productivity",
    ],
}

CATEGORY_DESCRIPTIONS: dict[OfferCategory, str] = {
    OfferCategory.DATA_QUALITY_ENRICHMENT: "Data accuracy, enrichment and contact verification",
    OfferCategory.SALES_PROSPECTING: "Finding leads, contact discovery and targeting research",
    OfferCategory.SALES_ENGAGEMENT: "Outreach, email sequences and communication automation",
    OfferCategory.PIPELINE_MANAGEMENT: "Deal tracking, forecasting and pipeline process",
    OfferCategory.SALES_INTELLIGENCE: "Market insights, buying signals and competitive analytics",
    OfferCategory.REVENUE_OPERATIONS: "Revenue workflow optimization and team performance",
    OfferCategory.CALL_ASSISTANT: "Meeting scheduling, call recording and conversation insights",
    OfferCategory.INTEGRATIONS: "CRM integrations, API connectivity and connected systems",
    OfferCategory.GENERAL: "General sales and marketing productivity and growth",
}


class CampaignType(Enum):
    """Campaign that a CTA is attributed to in analytics."""
    BLOG_CREATOR = "blog_creator"
    REDDIT_CONTENT_CREATOR = "reddit_content_creator"
    COMPETITOR_CONQUESTING = "competitor_conquesting"


class AnchorStyle(Enum):
    """Anchor-text writing styles."""
    QUESTION_BASED = "question_based"
    BENEFIT_FOCUSED = "benefit_focused"
    ACTION_ORIENTED = "action_oriented"
    PROBLEM_SOLUTION = "problem_solution"
    VALUE_PROPOSITION = "value_proposition"
    URGENCY_DRIVEN = "urgency_driven"


# Ordered pool the composer draws alternates from
ALTERNATE_STYLES = [
    AnchorStyle.BENEFIT_FOCUSED,
    AnchorStyle.ACTION_ORIENTED,
    AnchorStyle.QUESTION_BASED,
]


@dataclass
class SourceDocument:
    """Raw document handed to the pipeline."""
    content: str
    content_format: ContentFormat = ContentFormat.HTML


@dataclass
class Annotation:
    """
    Oracle-derived metadata for a chunk.

    The confidence score is clamped to [0, 100] on construction so that a
    misbehaving oracle can never push an out-of-range value downstream.
    """
    themes: list[str] = field(default_factory=list)
    pain_points: list[str] = field(default_factory=list)
    solution_opportunities: list[str] = field(default_factory=list)
    context_clues: list[str] = field(default_factory=list)
    confidence_score: int = 0
    is_candidate: bool = False

    def __post_init__(self):
        try:
            score = int(round(float(self.confidence_score)))
        except (TypeError, ValueError):
            score = 0
        self.confidence_score = max(0, min(100, score))
        self.is_candidate = bool(self.is_candidate)

    @classmethod
    def empty(cls) -> "Annotation":
        """Annotation used when the oracle fails for a chunk."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (
            self.themes
            or self.pain_points
            or self.solution_opportunities
            or self.context_clues
            or self.confidence_score
            or self.is_candidate
        )


@dataclass
class Chunk:
    """
    A paragraph-sized span of a document.

    Attributes:
        id: Identifier unique within the document, e.g. "chunk-0".
        content: Plain text used for analysis (markup stripped).
        position: 0-based index among the document's chunks.
        markup: The raw source text of the span, markup included.
        source_start: Offset of the span in the original document, if known.
        source_end: End offset (exclusive) of the span, if known.
        annotation: Filled in once by the annotator.
    """
    id: str
    content: str
    position: int
    markup: str = ""
    source_start: Optional[int] = None
    source_end: Optional[int] = None
    annotation: Optional[Annotation] = None

    @property
    def word_count(self) -> int:
        """Get word count of this chunk."""
        return len(self.content.split()) if self.content else 0

    @property
    def is_annotated(self) -> bool:
        return self.annotation is not None

    def attach_annotation(self, annotation: Annotation) -> None:
        """
        Attach the chunk's annotation.

        Raises:
            ValueError: If the chunk was already annotated.
        """
        if self.annotation is not None:
            raise ValueError(f"Chunk {self.id} is already annotated")
        self.annotation = annotation


@dataclass
class Offer:
    """A marketable solution from the offer catalog."""
    id: str
    title: str
    description: str
    url: str
    category: OfferCategory
    pain_point_keywords: list[str] = field(default_factory=list)
    solution_keywords: list[str] = field(default_factory=list)
    context_clues: list[str] = field(default_factory=list)
    priority: int = 5
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Offer":
        """
        Build an offer from a plain mapping (JSON record, DataFrame row).

        Raises:
            KeyError: If a required field is absent.
            ValueError: If the category or priority is invalid.
        """
        category = data["category"]
        if not isinstance(category, OfferCategory):
            category = OfferCategory(str(category).strip().lower())
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            description=str(data.get("description") or ""),
            url=str(data["url"]),
            category=category,
            pain_point_keywords=list(data.get("pain_point_keywords") or []),
            solution_keywords=list(data.get("solution_keywords") or []),
            context_clues=list(data.get("context_clues") or []),
            priority=int(data.get("priority", 5)),
            source=data.get("source"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "category": self.category.value,
            "pain_point_keywords": list(self.pain_point_keywords),
            "solution_keywords": list(self.solution_keywords),
            "context_clues": list(self.context_clues),
            "priority": self.priority,
            "source": self.source,
        }


@dataclass(frozen=True)
class Match:
    """Scored pairing of one chunk with one offer."""
    chunk_id: str
    offer: Offer
    confidence_score: int
    semantic_similarity: int
    keyword_score: int
    context_relevance: int
    match_reasons: tuple[str, ...] = ()
    keyword_matches: tuple[str, ...] = ()


@dataclass
class MatchingResult:
    """Output of a matching run over a set of chunks."""
    matches: list[Match] = field(default_factory=list)
    unmatched_chunk_ids: list[str] = field(default_factory=list)
    total_chunks: int = 0
    average_confidence: float = 0.0
    top_solutions: list[str] = field(default_factory=list)

    def matches_for(self, chunk_id: str) -> list[Match]:
        """Matches for a chunk, best first."""
        return [m for m in self.matches if m.chunk_id == chunk_id]

    def best_match(self, chunk_id: str) -> Optional[Match]:
        chunk_matches = self.matches_for(chunk_id)
        return chunk_matches[0] if chunk_matches else None

    @property
    def matched_chunk_ids(self) -> list[str]:
        seen: list[str] = []
        for match in self.matches:
            if match.chunk_id not in seen:
                seen.append(match.chunk_id)
        return seen


@dataclass
class AnchorTextRequest:
    """Request for anchor text in a given style."""
    match: Match
    target_keyword: str
    campaign_type: CampaignType
    style: AnchorStyle = AnchorStyle.BENEFIT_FOCUSED
    max_length: int = 80
    include_value_prop: bool = True
    competitor_name: Optional[str] = None
    chunk: Optional[Chunk] = None


@dataclass
class AnchorTextResult:
    """Generated anchor text with its self-assessed quality."""
    anchor_text: str
    confidence: int
    contextual_fit: int
    style: AnchorStyle
    reasoning: str = ""


@dataclass(frozen=True)
class UTMUrlResult:
    """A tracked URL together with the parameters attached to it."""
    url: str
    base_url: str
    utm_campaign: str
    utm_medium: str
    utm_term: str


@dataclass(frozen=True)
class ContextualCTA:
    """
    Fully composed, ready-to-insert call-to-action.

    Attributes:
        id: Unique per composition (time-derived plus random suffix).
        chunk_id: Chunk this CTA was composed for.
        offer_id: Offer the CTA links to.
        anchor_text: Visible link text.
        target_url: Offer URL with UTM parameters attached.
        rendered_markup: Markup ready to splice, in the document's format.
        confidence: Weighted anchor/match/context confidence (0-100).
    """
    id: str
    chunk_id: str
    offer_id: str
    anchor_text: str
    target_url: str
    rendered_markup: str
    confidence: int
    style: AnchorStyle
    campaign_type: CampaignType
    target_keyword: str
    content_format: ContentFormat
    utm: UTMUrlResult
    anchor_confidence: int = 0
    match_confidence: int = 0
    contextual_fit: int = 0
    competitor_name: Optional[str] = None


@dataclass
class CompositionResult:
    """Primary CTA plus stylistic alternates for one match."""
    primary: ContextualCTA
    alternatives: list[ContextualCTA] = field(default_factory=list)

    @property
    def all_ctas(self) -> list[ContextualCTA]:
        return [self.primary, *self.alternatives]


@dataclass
class CtaValidation:
    """Quality gate outcome for a CTA."""
    is_valid: bool
    quality_score: int
    issues: list[str] = field(default_factory=list)


@dataclass
class InsertionPoint:
    """A chunk selected (or considered) as a CTA insertion site."""
    chunk_id: str
    position: int
    cta: ContextualCTA
    insertion_score: int
    contextual_fit: int
    cta_confidence: int
    readability_impact: int = 20
    composite_score: int = 0
    reasoning: str = ""


@dataclass
class InsertionRecord:
    """Outcome of splicing one CTA into the document."""
    chunk_id: str
    position: int
    cta: ContextualCTA
    original_paragraph: str
    enhanced_paragraph: str
    success: bool
    reason: str = ""
    insertion_position: str = "end_of_paragraph"

    @property
    def cta_id(self) -> str:
        return self.cta.id

    def to_dict(self) -> dict:
        return {
            "cta_id": self.cta.id,
            "chunk_id": self.chunk_id,
            "position": self.position,
            "anchor_text": self.cta.anchor_text,
            "target_url": self.cta.target_url,
            "confidence": self.cta.confidence,
            "original_paragraph": self.original_paragraph,
            "enhanced_paragraph": self.enhanced_paragraph,
            "insertion_position": self.insertion_position,
            "insertion_success": self.success,
            "insertion_reason": self.reason,
        }


@dataclass
class EnhancedDocument:
    """Original and rewritten document plus a record of every insertion."""
    original_content: str
    enhanced_content: str
    content_format: ContentFormat
    insertions: list[InsertionRecord] = field(default_factory=list)
    original_word_count: int = 0
    enhanced_word_count: int = 0
    original_paragraphs: int = 0
    cta_density: int = 0
    average_cta_confidence: int = 0
    insertion_strategy: str = "moderate"

    @property
    def total_insertions(self) -> int:
        """Number of insertions actually performed."""
        return sum(1 for record in self.insertions if record.success)

    @property
    def failed_insertions(self) -> list[InsertionRecord]:
        return [record for record in self.insertions if not record.success]

    def to_dict(self) -> dict:
        return {
            "content_format": self.content_format.value,
            "enhanced_content": self.enhanced_content,
            "total_insertions": self.total_insertions,
            "original_word_count": self.original_word_count,
            "enhanced_word_count": self.enhanced_word_count,
            "metadata": {
                "original_paragraphs": self.original_paragraphs,
                "cta_density": self.cta_density,
                "average_cta_confidence": self.average_cta_confidence,
                "insertion_strategy": self.insertion_strategy,
            },
            "insertions": [record.to_dict() for record in self.insertions],
        }


@dataclass
class ContentAnalysis:
    """Annotated chunks plus document-level summaries."""
    chunks: list[Chunk] = field(default_factory=list)
    candidates: list[Chunk] = field(default_factory=list)
    overall_themes: list[str] = field(default_factory=list)
    overall_pain_points: list[str] = field(default_factory=list)


@dataclass
class AnchorContext:
    """Heuristic read of the paragraph an anchor text will follow."""
    context_type: str = "general"
    tone: str = "conversational"
    pain_point_intensity: str = "low"
    solution_readiness: str = "low"
    brand_name: str = "Apollo"
    brand_voice: str = "conversational"


def round_score(value: float) -> int:
    """Round half up to an int, the way scores are reported everywhere."""
    return int(math.floor(value + 0.5))
