# -*- coding: utf-8 -*-
"""
Centralized configuration for Contextual CTA.

Each pipeline stage has its own configuration dataclass; PipelineConfig
bundles them together with document-level limits and offers presets for
the three insertion strategies.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

from .models import AnchorStyle, OfferCategory


# Insertion strategy
# - "conservative": Fewer CTAs, wider spacing, stricter thresholds.
# - "moderate": Balanced defaults.
# - "aggressive": More CTAs, tighter spacing, looser thresholds.
InsertionStrategy = Literal["conservative", "moderate", "aggressive"]

# Brand voice applied to refined anchor text
BrandVoice = Literal["professional", "conversational", "direct", "consultative"]

DEFAULT_MAX_CONTENT_CHARS = 100_000

# CTA links must point at this host or a subdomain of it; None disables the check
DEFAULT_PROVIDER_DOMAIN = "apollo.io"


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass
class AnnotationConfig:
    """
    Controls how chunks are sent to the oracle and which become candidates.

    Attributes:
        batch_size: Number of chunks annotated concurrently.
        batch_delay: Pause between batches, in seconds.
        min_candidate_confidence: Minimum annotation confidence for a candidate.
        min_candidate_word_count: Minimum chunk length (words) for a candidate.
        max_candidates: Maximum number of candidate chunks kept.
    """
    batch_size: int = 3
    batch_delay: float = 0.5
    min_candidate_confidence: int = 60
    min_candidate_word_count: int = 30
    max_candidates: int = 10

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.batch_delay < 0:
            raise ValueError(f"batch_delay must be >= 0, got {self.batch_delay}")
        _check_range("min_candidate_confidence", self.min_candidate_confidence, 0, 100)
        if self.max_candidates < 1:
            raise ValueError(f"max_candidates must be >= 1, got {self.max_candidates}")


@dataclass
class MatchingConfig:
    """
    Controls chunk-to-offer scoring.

    The three weights conventionally sum to 1 but are not required to.
    """
    min_confidence_threshold: int = 70
    max_matches_per_chunk: int = 2
    semantic_weight: float = 0.4
    keyword_weight: float = 0.3
    context_weight: float = 0.3
    priority_boost: float = 1.2
    high_priority_threshold: int = 9
    min_offer_priority: int = 6
    category_preferences: list[OfferCategory] = field(default_factory=list)
    max_similarity_offers: int = 20
    request_delay: float = 0.3

    def __post_init__(self):
        _check_range("min_confidence_threshold", self.min_confidence_threshold, 0, 100)
        if self.max_matches_per_chunk < 1:
            raise ValueError(
                f"max_matches_per_chunk must be >= 1, got {self.max_matches_per_chunk}"
            )
        for name in ("semantic_weight", "keyword_weight", "context_weight"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.priority_boost < 1:
            raise ValueError(f"priority_boost must be >= 1, got {self.priority_boost}")
        if self.request_delay < 0:
            raise ValueError(f"request_delay must be >= 0, got {self.request_delay}")
        self.category_preferences = [
            c if isinstance(c, OfferCategory) else OfferCategory(c)
            for c in self.category_preferences
        ]


@dataclass
class CompositionConfig:
    """Controls anchor-text generation and CTA confidence weighting."""
    anchor_weight: float = 0.6
    match_weight: float = 0.3
    context_weight: float = 0.1
    default_style: AnchorStyle = AnchorStyle.BENEFIT_FOCUSED
    max_anchor_length: int = 80
    include_value_prop: bool = True
    max_alternatives: int = 2
    brand_name: str = "Apollo"
    brand_voice: BrandVoice = "conversational"
    provider_domain: Optional[str] = DEFAULT_PROVIDER_DOMAIN
    min_valid_confidence: int = 70
    min_anchor_length: int = 10

    def __post_init__(self):
        if not isinstance(self.default_style, AnchorStyle):
            self.default_style = AnchorStyle(self.default_style)
        if self.max_anchor_length < self.min_anchor_length:
            raise ValueError(
                f"max_anchor_length must be >= min_anchor_length, got {self.max_anchor_length}"
            )
        if not 0 <= self.max_alternatives <= 2:
            raise ValueError(f"max_alternatives must be between 0 and 2, got {self.max_alternatives}")
        if self.brand_voice not in ("professional", "conversational", "direct", "consultative"):
            raise ValueError(f"brand_voice must be a known voice, got {self.brand_voice}")


@dataclass
class InsertionConfig:
    """
    Controls which chunks receive CTAs.

    Attributes:
        max_ctas_per_article: Hard cap on insertions. None picks a cap from
            the paragraph count.
        min_cta_spacing: Minimum position gap between two insertions.
        cta_confidence_threshold: Minimum composite insertion score.
        strategy: Label recorded on the enhanced document.
    """
    max_ctas_per_article: Optional[int] = 3
    min_cta_spacing: int = 3
    cta_confidence_threshold: int = 60
    strategy: InsertionStrategy = "moderate"

    def __post_init__(self):
        if self.max_ctas_per_article is not None and self.max_ctas_per_article < 0:
            raise ValueError(
                f"max_ctas_per_article must be >= 0, got {self.max_ctas_per_article}"
            )
        if self.min_cta_spacing < 1:
            raise ValueError(f"min_cta_spacing must be >= 1, got {self.min_cta_spacing}")
        _check_range("cta_confidence_threshold", self.cta_confidence_threshold, 0, 100)
        if self.strategy not in ("conservative", "moderate", "aggressive"):
            raise ValueError(f"strategy must be a known strategy, got {self.strategy}")


@dataclass
class PipelineConfig:
    """Top-level configuration for a CTA insertion run."""
    annotation: AnnotationConfig = field(default_factory=AnnotationConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    composition: CompositionConfig = field(default_factory=CompositionConfig)
    insertion: InsertionConfig = field(default_factory=InsertionConfig)
    max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS

    def __post_init__(self):
        if self.max_content_chars < 1:
            raise ValueError(f"max_content_chars must be >= 1, got {self.max_content_chars}")

    @classmethod
    def conservative(cls, **overrides) -> "PipelineConfig":
        """Few, well-spaced, high-confidence CTAs."""
        config = cls(
            matching=MatchingConfig(min_confidence_threshold=75, max_matches_per_chunk=1),
            insertion=InsertionConfig(
                max_ctas_per_article=2,
                min_cta_spacing=4,
                cta_confidence_threshold=70,
                strategy="conservative",
            ),
        )
        return _apply_overrides(config, overrides)

    @classmethod
    def moderate(cls, **overrides) -> "PipelineConfig":
        """Default balance of coverage and restraint."""
        return _apply_overrides(cls(), overrides)

    @classmethod
    def aggressive(cls, **overrides) -> "PipelineConfig":
        """More CTAs with tighter spacing and looser thresholds."""
        config = cls(
            matching=MatchingConfig(min_confidence_threshold=60, max_matches_per_chunk=3),
            insertion=InsertionConfig(
                max_ctas_per_article=5,
                min_cta_spacing=2,
                cta_confidence_threshold=50,
                strategy="aggressive",
            ),
        )
        return _apply_overrides(config, overrides)

    @classmethod
    def for_strategy(cls, strategy: InsertionStrategy, **overrides) -> "PipelineConfig":
        presets = {
            "conservative": cls.conservative,
            "moderate": cls.moderate,
            "aggressive": cls.aggressive,
        }
        if strategy not in presets:
            raise ValueError(f"strategy must be a known strategy, got {strategy}")
        return presets[strategy](**overrides)


def _apply_overrides(config: PipelineConfig, overrides: dict) -> PipelineConfig:
    """Apply top-level or stage config overrides to a preset."""
    for key, value in overrides.items():
        if not hasattr(config, key):
            raise ValueError(f"Unknown config option: {key}")
        setattr(config, key, value)
    config.__post_init__()
    return config
