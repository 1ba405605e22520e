# -*- coding: utf-8 -*-
"""
CTA composition.

Turns a chunk/offer match into a ready-to-insert CTA: anchor text, a
UTM-tracked URL, markup in the document's format and a weighted overall
confidence. Also produces stylistic alternates, a quality gate and
aggregate analytics over many compositions.
"""

import html
import logging
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

from .anchor_text import AnchorTextGenerator
from .config import CompositionConfig
from .models import (
    ALTERNATE_STYLES,
    AnchorStyle,
    AnchorTextRequest,
    CampaignType,
    Chunk,
    CompositionResult,
    ContentFormat,
    ContextualCTA,
    CtaValidation,
    Match,
    round_score,
)
from .utm import UTM_KEYS, extract_utm_parameters, generate_utm_result

logger = logging.getLogger(__name__)


CTA_CSS_CLASS = "contextual-cta"


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out = []
    while number:
        number, remainder = divmod(number, 36)
        out.append(digits[remainder])
    return "".join(reversed(out))


def new_cta_id(chunk_id: str, kind: str) -> str:
    """Time-derived id with a random suffix so ids never collide within a run."""
    millis = int(time.time() * 1000)
    return f"cta_{chunk_id}_{kind}_{_base36(millis)}_{uuid.uuid4().hex[:6]}"


def render_markup(anchor_text: str, url: str, content_format: ContentFormat) -> str:
    """
    Render a link in the document's format.

    HTML output is a self-contained span so it composes with any
    surrounding markup.
    """
    if content_format == ContentFormat.HTML:
        return (
            f'<span class="{CTA_CSS_CLASS}">'
            f'<a href="{html.escape(url, quote=True)}" target="_blank" rel="noopener noreferrer">'
            f"{html.escape(anchor_text, quote=False)}</a></span>"
        )
    if content_format == ContentFormat.MARKDOWN:
        label = anchor_text.replace("[", "\\[").replace("]", "\\]")
        return f"[{label}]({url})"
    return f"{anchor_text}: {url}"


def render_cta(cta: ContextualCTA, content_format: "ContentFormat | str") -> str:
    """Render an existing CTA in another format."""
    return render_markup(cta.anchor_text, cta.target_url, ContentFormat.from_value(content_format))


@dataclass
class CompositionSummary:
    """Aggregate analytics over a set of compositions."""
    total_ctas: int = 0
    average_confidence: float = 0.0
    style_distribution: dict[str, int] = field(default_factory=dict)
    campaign_distribution: dict[str, int] = field(default_factory=dict)
    high_quality: int = 0
    medium_quality: int = 0
    low_quality: int = 0


class CtaComposer:
    """Composes CTAs for matches."""

    def __init__(
        self,
        anchor_generator: Optional[AnchorTextGenerator] = None,
        config: Optional[CompositionConfig] = None,
    ):
        self.config = config or CompositionConfig()
        self.anchor_generator = anchor_generator or AnchorTextGenerator(config=self.config)

    def compose(
        self,
        match: Match,
        target_keyword: str,
        campaign_type: "CampaignType | str",
        chunk: Optional[Chunk] = None,
        competitor_name: Optional[str] = None,
        content_format: "ContentFormat | str" = ContentFormat.HTML,
    ) -> CompositionResult:
        """
        Compose a primary CTA and up to two alternates for a match.

        Args:
            match: The chunk/offer match to compose for.
            target_keyword: Keyword the article targets (becomes utm_term).
            campaign_type: Campaign the click is attributed to.
            chunk: The matched chunk, used for anchor-text context.
            competitor_name: Competitor for conquesting campaigns.
            content_format: Format the markup is rendered in.

        Returns:
            CompositionResult with the primary CTA and alternates.

        Raises:
            AnchorTextError: If the primary style cannot be generated.
            UTMUrlError: If the offer URL is not absolute.
        """
        campaign = campaign_type if isinstance(campaign_type, CampaignType) else CampaignType(campaign_type)
        content_format = ContentFormat.from_value(content_format)

        primary_style = self.config.default_style
        primary = self._compose_one(
            match, target_keyword, campaign, primary_style, "primary",
            chunk, competitor_name, content_format,
        )

        alternatives = []
        styles = [style for style in ALTERNATE_STYLES if style != primary_style]
        for style in styles[:self.config.max_alternatives]:
            try:
                alternatives.append(self._compose_one(
                    match, target_keyword, campaign, style, "alt",
                    chunk, competitor_name, content_format,
                ))
            except Exception as e:
                logger.warning(f"Skipping {style.value} alternate for {match.chunk_id}: {e}")

        logger.info(
            f"Composed CTA for {match.chunk_id} -> {match.offer.id}: "
            f"{primary.anchor_text!r} ({primary.confidence}%), {len(alternatives)} alternates"
        )
        return CompositionResult(primary=primary, alternatives=alternatives)

    def _compose_one(
        self,
        match: Match,
        target_keyword: str,
        campaign: CampaignType,
        style: AnchorStyle,
        kind: str,
        chunk: Optional[Chunk],
        competitor_name: Optional[str],
        content_format: ContentFormat,
    ) -> ContextualCTA:
        request = AnchorTextRequest(
            match=match,
            target_keyword=target_keyword,
            campaign_type=campaign,
            style=style,
            max_length=self.config.max_anchor_length,
            include_value_prop=self.config.include_value_prop,
            competitor_name=competitor_name,
            chunk=chunk,
        )
        anchor = self.anchor_generator.generate(request)
        utm = generate_utm_result(match.offer.url, campaign, target_keyword, competitor_name)

        confidence = round_score(
            anchor.confidence * self.config.anchor_weight
            + match.confidence_score * self.config.match_weight
            + anchor.contextual_fit * self.config.context_weight
        )
        return ContextualCTA(
            id=new_cta_id(match.chunk_id, kind),
            chunk_id=match.chunk_id,
            offer_id=match.offer.id,
            anchor_text=anchor.anchor_text,
            target_url=utm.url,
            rendered_markup=render_markup(anchor.anchor_text, utm.url, content_format),
            confidence=max(0, min(100, confidence)),
            style=anchor.style,
            campaign_type=campaign,
            target_keyword=target_keyword,
            content_format=content_format,
            utm=utm,
            anchor_confidence=anchor.confidence,
            match_confidence=match.confidence_score,
            contextual_fit=anchor.contextual_fit,
            competitor_name=competitor_name,
        )

    @staticmethod
    def best_cta(result: CompositionResult) -> ContextualCTA:
        """Highest-confidence CTA among the primary and its alternates."""
        best = result.primary
        for cta in result.alternatives:
            if cta.confidence > best.confidence:
                best = cta
        return best

    def validate_cta_quality(self, cta: ContextualCTA) -> CtaValidation:
        """
        Score a CTA against the pre-insertion quality gate.

        Each violation deducts a fixed amount from 100 and is listed as an
        issue. Nothing is rejected here; callers decide what to do.
        """
        config = self.config
        issues = []
        score = 100

        if cta.confidence < config.min_valid_confidence:
            issues.append(f"Low confidence score: {cta.confidence}%")
            score -= 20

        if len(cta.anchor_text) > config.max_anchor_length:
            issues.append(f"Anchor text too long: {len(cta.anchor_text)} characters")
            score -= 10
        elif len(cta.anchor_text) < config.min_anchor_length:
            issues.append(f"Anchor text too short: {len(cta.anchor_text)} characters")
            score -= 15

        parts = urlsplit(cta.target_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            issues.append("Invalid target URL")
            score -= 30
        else:
            domain = (config.provider_domain or "").lower()
            host = (parts.hostname or "").lower()
            if domain and not (host == domain or host.endswith("." + domain)):
                issues.append(f"URL does not point to {domain}")
                score -= 25

        present = extract_utm_parameters(cta.target_url)
        missing = [key for key in UTM_KEYS if key not in present]
        if missing:
            issues.append(f"Missing UTM parameters: {', '.join(missing)}")
            score -= 20

        return CtaValidation(is_valid=not issues, quality_score=max(0, score), issues=issues)

    @staticmethod
    def summarize(results: list[CompositionResult]) -> CompositionSummary:
        """Distribution and quality buckets over primary CTAs."""
        primaries = [result.primary for result in results]
        if not primaries:
            return CompositionSummary()
        return CompositionSummary(
            total_ctas=len(primaries),
            average_confidence=sum(c.confidence for c in primaries) / len(primaries),
            style_distribution=dict(Counter(c.style.value for c in primaries)),
            campaign_distribution=dict(Counter(c.utm.utm_campaign for c in primaries)),
            high_quality=sum(1 for c in primaries if c.confidence >= 80),
            medium_quality=sum(1 for c in primaries if 60 <= c.confidence < 80),
            low_quality=sum(1 for c in primaries if c.confidence < 60),
        )
