# -*- coding: utf-8 -*-
"""
Chunk annotation.

Sends chunks to the text-understanding oracle in fixed-size batches with
a pause between batches. At most `batch_size` oracle calls are in flight
at once. A failed call only affects its own chunk, which receives an
empty annotation.
"""

import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .config import AnnotationConfig
from .models import Annotation, Chunk, ContentAnalysis
from .oracle import TextUnderstandingOracle

logger = logging.getLogger(__name__)


OVERALL_THEME_LIMIT = 8
OVERALL_PAIN_POINT_LIMIT = 5


class PipelineCancelled(Exception):
    """Raised when the caller cancels a run."""
    pass


class ChunkAnnotator:
    """Attaches oracle annotations to chunks and picks CTA candidates."""

    def __init__(
        self,
        oracle: Optional[TextUnderstandingOracle],
        config: Optional[AnnotationConfig] = None,
    ):
        self.oracle = oracle
        self.config = config or AnnotationConfig()

    def annotate(
        self,
        chunks: list[Chunk],
        cancel_event: Optional[threading.Event] = None,
    ) -> list[Chunk]:
        """
        Annotate every chunk that has no annotation yet.

        Args:
            chunks: Chunks in document order.
            cancel_event: Set by the caller to abandon the run. Calls already
                in flight for the current batch are awaited first.

        Returns:
            The same chunk list, each chunk carrying an annotation.

        Raises:
            PipelineCancelled: If cancel_event is set before or between batches.
        """
        pending = [chunk for chunk in chunks if not chunk.is_annotated]
        if self.oracle is None:
            logger.warning("No oracle configured, attaching empty annotations")
            for chunk in pending:
                chunk.attach_annotation(Annotation.empty())
            return chunks

        batch_size = self.config.batch_size
        batches = [pending[i:i + batch_size] for i in range(0, len(pending), batch_size)]
        logger.info(f"Annotating {len(pending)} chunks in {len(batches)} batches")

        with ThreadPoolExecutor(max_workers=batch_size) as executor:
            for index, batch in enumerate(batches):
                _raise_if_cancelled(cancel_event)

                futures = [executor.submit(self.oracle.annotate, chunk.content) for chunk in batch]
                for chunk, future in zip(batch, futures):
                    try:
                        annotation = future.result()
                    except Exception as e:
                        logger.warning(f"Annotation failed for {chunk.id}: {e}")
                        annotation = Annotation.empty()
                    chunk.attach_annotation(annotation)

                if index < len(batches) - 1 and self.config.batch_delay > 0:
                    self._pause(cancel_event)

        return chunks

    def _pause(self, cancel_event: Optional[threading.Event]) -> None:
        waiter = cancel_event or threading.Event()
        if waiter.wait(self.config.batch_delay):
            raise PipelineCancelled("Run cancelled during annotation")

    def identify_candidates(self, chunks: list[Chunk]) -> list[Chunk]:
        """
        Pick chunks suitable for a CTA.

        The oracle's candidacy flag is necessary but not sufficient: the
        chunk also needs enough confidence, at least one pain point or
        solution opportunity, and enough words.
        """
        config = self.config
        candidates = [
            chunk
            for chunk in chunks
            if chunk.annotation is not None
            and chunk.annotation.is_candidate
            and chunk.annotation.confidence_score >= config.min_candidate_confidence
            and (chunk.annotation.pain_points or chunk.annotation.solution_opportunities)
            and chunk.word_count >= config.min_candidate_word_count
        ]
        candidates.sort(key=lambda c: c.annotation.confidence_score, reverse=True)
        return candidates[:config.max_candidates]

    def analyze(
        self,
        chunks: list[Chunk],
        cancel_event: Optional[threading.Event] = None,
    ) -> ContentAnalysis:
        """Annotate chunks and summarize the document."""
        self.annotate(chunks, cancel_event)
        candidates = self.identify_candidates(chunks)
        analysis = ContentAnalysis(
            chunks=chunks,
            candidates=candidates,
            overall_themes=top_terms(
                (c.annotation.themes for c in chunks if c.annotation), OVERALL_THEME_LIMIT
            ),
            overall_pain_points=top_terms(
                (c.annotation.pain_points for c in chunks if c.annotation), OVERALL_PAIN_POINT_LIMIT
            ),
        )
        failed = sum(1 for c in chunks if c.annotation is None or c.annotation.is_empty)
        logger.info(
            f"Annotation complete: {len(candidates)} candidates, {failed} empty annotations"
        )
        return analysis


def top_terms(term_lists, limit: int) -> list[str]:
    """Most frequent terms across lists, ties in first-seen order."""
    counts = Counter()
    for terms in term_lists:
        counts.update(terms)
    return [term for term, _ in counts.most_common(limit)]


def _raise_if_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise PipelineCancelled("Run cancelled during annotation")
