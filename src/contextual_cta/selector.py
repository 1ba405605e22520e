# -*- coding: utf-8 -*-
"""
Insertion point selection.

Ranks chunks that have a composed CTA by a composite insertion score and
greedily picks the best ones, subject to a per-article cap and a minimum
position gap between any two picks.
"""

import logging
import re
from typing import Optional

from .config import InsertionConfig
from .models import (
    Annotation,
    Chunk,
    CompositionResult,
    ContextualCTA,
    InsertionPoint,
    MatchingResult,
    round_score,
)

logger = logging.getLogger(__name__)


DEFAULT_READABILITY_IMPACT = 20

CHALLENGE_PATTERN = re.compile(r"challenge|problem|difficult|struggle|issue|pain|obstacle", re.IGNORECASE)
SOLUTION_PATTERN = re.compile(r"solution|solve|fix|improve|optimize|better", re.IGNORECASE)
BUSINESS_PATTERN = re.compile(r"sales|marketing|revenue|customer|lead|prospect|data|pipeline", re.IGNORECASE)


def chunk_insertion_score(chunk: Chunk) -> int:
    """
    Heuristic suitability of a chunk as a CTA site (0-100).

    Annotation signals count first; keyword patterns in the text stand in
    when the annotation found no pain points.
    """
    annotation = chunk.annotation or Annotation.empty()
    score = 30
    score += len(annotation.pain_points) * 15
    score += len(annotation.solution_opportunities) * 10
    if annotation.is_candidate:
        score += 20
    if annotation.confidence_score:
        score = round_score(score * 0.6 + annotation.confidence_score * 0.4)

    if not annotation.pain_points:
        if CHALLENGE_PATTERN.search(chunk.content):
            score += 25
        if SOLUTION_PATTERN.search(chunk.content):
            score += 20
        if BUSINESS_PATTERN.search(chunk.content):
            score += 15

    if chunk.word_count > 50:
        score += 10
    return min(100, score)


def composite_score(
    insertion_score: int,
    contextual_fit: int,
    cta_confidence: int,
    readability_impact: int = DEFAULT_READABILITY_IMPACT,
) -> int:
    return round_score(
        insertion_score * 0.4
        + contextual_fit * 0.3
        + cta_confidence * 0.2
        + (100 - readability_impact) * 0.1
    )


def max_recommended_ctas(total_paragraphs: int) -> int:
    """Cap that scales with article length."""
    if total_paragraphs < 5:
        return 1
    if total_paragraphs < 10:
        return 2
    if total_paragraphs < 20:
        return 3
    return min(4, total_paragraphs // 8)


class InsertionPointSelector:
    """Chooses which chunks receive a CTA."""

    def __init__(self, config: Optional[InsertionConfig] = None):
        self.config = config or InsertionConfig()

    def build_points(
        self,
        chunks: list[Chunk],
        matching: MatchingResult,
        compositions: dict[str, CompositionResult],
        choose_cta=None,
    ) -> list[InsertionPoint]:
        """
        Score every chunk that has both a match and a composition.

        Args:
            chunks: All document chunks.
            matching: Matcher output.
            compositions: Composition per chunk id.
            choose_cta: Picks the CTA to insert from a composition.
                Defaults to the primary CTA.

        Returns:
            Scored insertion points, unfiltered and in document order.
        """
        points = []
        for chunk in chunks:
            match = matching.best_match(chunk.id)
            composition = compositions.get(chunk.id)
            if match is None or composition is None:
                continue
            cta: ContextualCTA = choose_cta(composition) if choose_cta else composition.primary
            insertion = chunk_insertion_score(chunk)
            points.append(InsertionPoint(
                chunk_id=chunk.id,
                position=chunk.position,
                cta=cta,
                insertion_score=insertion,
                contextual_fit=match.confidence_score,
                cta_confidence=cta.confidence,
                readability_impact=DEFAULT_READABILITY_IMPACT,
                composite_score=composite_score(insertion, match.confidence_score, cta.confidence),
                reasoning="; ".join(match.match_reasons),
            ))
        return points

    def cap_for(self, total_paragraphs: int) -> int:
        if self.config.max_ctas_per_article is None:
            return max_recommended_ctas(total_paragraphs)
        return self.config.max_ctas_per_article

    def select(self, points: list[InsertionPoint], total_paragraphs: int) -> list[InsertionPoint]:
        """
        Pick insertion points.

        Points under the threshold are dropped; the rest are taken best
        first while they keep at least min_cta_spacing positions away from
        every point already taken.

        Returns:
            Selected points in document order. Empty when nothing qualifies.
        """
        config = self.config
        cap = self.cap_for(total_paragraphs)
        ranked = sorted(
            (p for p in points if p.composite_score >= config.cta_confidence_threshold),
            key=lambda p: (-p.composite_score, p.position),
        )

        selected: list[InsertionPoint] = []
        for point in ranked:
            if len(selected) >= cap:
                break
            if all(abs(point.position - s.position) >= config.min_cta_spacing for s in selected):
                selected.append(point)

        selected.sort(key=lambda p: p.position)
        logger.info(
            f"Selected {len(selected)} of {len(points)} insertion points "
            f"(cap {cap}, spacing {config.min_cta_spacing})"
        )
        return selected
