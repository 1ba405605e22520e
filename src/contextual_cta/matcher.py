# -*- coding: utf-8 -*-
"""
Chunk-to-offer matching.

Scores each annotated candidate chunk against the offer catalog with three
independent signals:

- Semantic similarity: oracle judgment, or a deterministic keyword
  heuristic when no oracle is configured.
- Keyword score: full and partial keyword containment, normalized by the
  best score the offer's keyword set could reach.
- Context relevance: category, pain-point and opportunity alignment
  against the chunk's annotation.

The weighted sum, boosted for high-priority offers, is the match
confidence. Matches below the configured threshold are never returned.
"""

import logging
import threading
import time
from collections import defaultdict
from typing import Optional

from .annotator import PipelineCancelled
from .config import MatchingConfig
from .models import Annotation, Chunk, Match, MatchingResult, Offer, round_score
from .oracle import TextUnderstandingOracle

logger = logging.getLogger(__name__)


DEFAULT_SEMANTIC_SCORE = 50
TOP_SOLUTIONS_LIMIT = 5
KEYWORD_MATCH_LIMIT = 5


def _annotation(chunk: Chunk) -> Annotation:
    return chunk.annotation or Annotation.empty()


def heuristic_semantic_score(chunk: Chunk, offer: Offer) -> float:
    """
    Keyword-overlap stand-in for oracle similarity.

    Deterministic for identical inputs. Floors at 30 and is shifted up by
    a base of 40.
    """
    annotation = _annotation(chunk)
    text = " ".join([chunk.content, " ".join(annotation.themes), " ".join(annotation.pain_points)]).lower()

    similarity = 0
    for keyword in offer.pain_point_keywords:
        if keyword.lower() in text:
            similarity += 30
    for keyword in offer.solution_keywords:
        if keyword.lower() in text:
            similarity += 20
    for theme in annotation.themes:
        theme_key = "_".join(theme.lower().split())
        if theme_key and theme_key in offer.category.value:
            similarity += 25

    total_keywords = len(offer.pain_point_keywords) + len(offer.solution_keywords)
    normalized = similarity / total_keywords * 2 if total_keywords else 0
    return min(100.0, max(30.0, normalized + 40))


def keyword_score(chunk: Chunk, offer: Offer) -> float:
    """
    Weighted keyword containment score (0-100).

    Pain-point keywords score 30 when every word is present and 15 when
    some are; solution keywords 20 and 10; each context clue with any word
    present adds 5.
    """
    annotation = _annotation(chunk)
    text = " ".join([
        chunk.content,
        " ".join(annotation.themes),
        " ".join(annotation.pain_points),
        " ".join(annotation.solution_opportunities),
    ]).lower()
    words = set(text.split())

    score = 0
    for keywords, full, partial in (
        (offer.pain_point_keywords, 30, 15),
        (offer.solution_keywords, 20, 10),
    ):
        for keyword in keywords:
            keyword_words = keyword.lower().split()
            if not keyword_words:
                continue
            if all(word in words for word in keyword_words):
                score += full
            elif any(word in words for word in keyword_words):
                score += partial

    for clue in offer.context_clues:
        if any(word in words for word in clue.lower().split()):
            score += 5

    max_possible = (
        len(offer.pain_point_keywords) * 30
        + len(offer.solution_keywords) * 20
        + len(offer.context_clues) * 5
    )
    if max_possible == 0:
        return 0.0
    return min(100.0, score / max_possible * 100)


def _alignment(keywords: list[str], terms: list[str], step: int) -> int:
    text = " ".join(terms).lower()
    hits = sum(1 for keyword in keywords if keyword.lower() in text)
    return min(100, hits * step)


def context_relevance(chunk: Chunk, offer: Offer) -> float:
    """Theme (40%), pain-point (35%) and opportunity (25%) alignment."""
    annotation = _annotation(chunk)
    theme = _alignment(offer.category.keywords, annotation.themes, 25)
    pain = _alignment(offer.pain_point_keywords, annotation.pain_points, 20)
    opportunity = _alignment(offer.solution_keywords, annotation.solution_opportunities, 15)
    return min(100.0, theme * 0.4 + pain * 0.35 + opportunity * 0.25)


def match_reasons(offer: Offer, semantic: float, keyword: float, context: float,
                  high_priority_threshold: int = 9) -> list[str]:
    """Human-readable reasons derived from the score bands crossed."""
    reasons = []
    if semantic >= 80:
        reasons.append(
            f"Strong semantic similarity ({round_score(semantic)}%) - content themes align well with solution purpose"
        )
    elif semantic >= 60:
        reasons.append(
            f"Moderate semantic similarity ({round_score(semantic)}%) - some thematic overlap detected"
        )

    if keyword >= 70:
        reasons.append(
            f"High keyword relevance ({round_score(keyword)}%) - multiple pain point/solution keywords match"
        )
    elif keyword >= 40:
        reasons.append(
            f"Moderate keyword relevance ({round_score(keyword)}%) - some keyword matches found"
        )

    if context >= 70:
        reasons.append(
            f"Strong contextual fit ({round_score(context)}%) - solution category aligns with content context"
        )

    if offer.priority >= high_priority_threshold:
        reasons.append("High-priority solution - core product offering")

    if not reasons:
        reasons.append("Basic relevance match - solution may address content themes")
    return reasons


def keyword_matches(chunk: Chunk, offer: Offer) -> list[str]:
    annotation = _annotation(chunk)
    text = " ".join([chunk.content, " ".join(annotation.themes), " ".join(annotation.pain_points)]).lower()
    found = [f'Pain Point: "{kw}"' for kw in offer.pain_point_keywords if kw.lower() in text]
    found += [f'Solution: "{kw}"' for kw in offer.solution_keywords if kw.lower() in text]
    return found[:KEYWORD_MATCH_LIMIT]


class ContentOfferMatcher:
    """
    Matches annotated chunks to catalog offers.

    Args:
        oracle: Similarity oracle. When None, the keyword heuristic is used.
        config: Matching configuration.
    """

    def __init__(
        self,
        oracle: Optional[TextUnderstandingOracle] = None,
        config: Optional[MatchingConfig] = None,
    ):
        self.oracle = oracle
        self.config = config or MatchingConfig()

    def filter_offers(self, offers: list[Offer]) -> list[Offer]:
        """
        Drop low-priority and non-preferred offers, best first.

        Offers in a preferred category rank as if their priority were two
        higher.
        """
        preferences = self.config.category_preferences
        eligible = [o for o in offers if o.priority >= self.config.min_offer_priority]
        if preferences:
            eligible = [o for o in eligible if o.category in preferences]
        return sorted(
            eligible,
            key=lambda o: o.priority + (2 if o.category in preferences else 0),
            reverse=True,
        )

    def semantic_scores(self, chunk: Chunk, offers: list[Offer]) -> list[float]:
        """Oracle similarity per offer, 50 each if the oracle fails."""
        if self.oracle is None:
            return [heuristic_semantic_score(chunk, offer) for offer in offers]
        try:
            scores = self.oracle.score_similarity(chunk, offers)
            if len(scores) != len(offers):
                raise ValueError(f"Expected {len(offers)} scores, got {len(scores)}")
            return [float(max(0, min(100, score))) for score in scores]
        except Exception as e:
            logger.warning(f"Semantic similarity failed for {chunk.id}: {e}")
            return [float(DEFAULT_SEMANTIC_SCORE)] * len(offers)

    def match_chunk(self, chunk: Chunk, offers: list[Offer]) -> list[Match]:
        """
        Score one chunk against already-filtered offers.

        Returns:
            Up to max_matches_per_chunk matches at or above the threshold,
            best first.
        """
        config = self.config
        if not offers:
            return []

        semantic = self.semantic_scores(chunk, offers)
        matches = []
        for offer, semantic_score in zip(offers, semantic):
            kw_score = keyword_score(chunk, offer)
            ctx_score = context_relevance(chunk, offer)
            base = (
                semantic_score * config.semantic_weight
                + kw_score * config.keyword_weight
                + ctx_score * config.context_weight
            )
            multiplier = config.priority_boost if offer.priority >= config.high_priority_threshold else 1.0
            confidence = round_score(min(100.0, base * multiplier))
            logger.debug(
                f"{chunk.id} x {offer.id}: semantic={semantic_score:.1f} "
                f"keyword={kw_score:.1f} context={ctx_score:.1f} confidence={confidence}"
            )
            # Threshold applies to the stored (rounded) score
            if confidence < config.min_confidence_threshold:
                continue
            matches.append(Match(
                chunk_id=chunk.id,
                offer=offer,
                confidence_score=confidence,
                semantic_similarity=round_score(semantic_score),
                keyword_score=round_score(kw_score),
                context_relevance=round_score(ctx_score),
                match_reasons=tuple(match_reasons(
                    offer, semantic_score, kw_score, ctx_score, config.high_priority_threshold
                )),
                keyword_matches=tuple(keyword_matches(chunk, offer)),
            ))

        matches.sort(key=lambda m: m.confidence_score, reverse=True)
        return matches[:config.max_matches_per_chunk]

    def match(
        self,
        chunks: list[Chunk],
        offers: list[Offer],
        cancel_event: Optional[threading.Event] = None,
    ) -> MatchingResult:
        """
        Match candidate chunks to offers.

        Args:
            chunks: Annotated candidate chunks.
            offers: The full offer catalog.
            cancel_event: Set by the caller to abandon the run.

        Returns:
            MatchingResult with matches in chunk order, best first per chunk.

        Raises:
            PipelineCancelled: If cancel_event is set between chunks.
        """
        eligible_offers = self.filter_offers(offers)[:self.config.max_similarity_offers]
        logger.info(
            f"Matching {len(chunks)} chunks against {len(eligible_offers)} of {len(offers)} offers"
        )

        all_matches: list[Match] = []
        unmatched: list[str] = []
        for index, chunk in enumerate(chunks):
            if cancel_event is not None and cancel_event.is_set():
                raise PipelineCancelled("Run cancelled during matching")
            if index > 0 and self.oracle is not None and self.config.request_delay > 0:
                if cancel_event is not None:
                    if cancel_event.wait(self.config.request_delay):
                        raise PipelineCancelled("Run cancelled during matching")
                else:
                    time.sleep(self.config.request_delay)

            chunk_matches = self.match_chunk(chunk, eligible_offers)
            if chunk_matches:
                all_matches.extend(chunk_matches)
            else:
                unmatched.append(chunk.id)

        result = MatchingResult(
            matches=all_matches,
            unmatched_chunk_ids=unmatched,
            total_chunks=len(chunks),
            average_confidence=(
                sum(m.confidence_score for m in all_matches) / len(all_matches)
                if all_matches else 0.0
            ),
            top_solutions=top_solutions(all_matches),
        )
        logger.info(
            f"Matching complete: {len(all_matches)} matches, {len(unmatched)} unmatched chunks"
        )
        return result


def top_solutions(matches: list[Match], limit: int = TOP_SOLUTIONS_LIMIT) -> list[str]:
    """Offer ids ranked by their average match confidence."""
    scores = defaultdict(list)
    for match in matches:
        scores[match.offer.id].append(match.confidence_score)
    ranked = sorted(scores.items(), key=lambda item: sum(item[1]) / len(item[1]), reverse=True)
    return [offer_id for offer_id, _ in ranked[:limit]]
