# -*- coding: utf-8 -*-
"""
Document splicing.

Writes selected CTAs back into the original document at the end of their
paragraphs. Insertions run from the last paragraph to the first, so each
one only shifts text that has already been handled and chunk offsets stay
valid throughout. Only the targeted paragraphs change; everything else is
kept byte-for-byte.

Paragraphs are located by their recorded source offsets. When the
document no longer matches those offsets, the paragraph is searched for
by its first 50 characters, and failing that the CTA goes to the nearest
paragraph boundary at the chunk's proportional position in the document.
"""

import logging
import re
from typing import Optional

from .chunker import html_to_text, strip_markdown
from .models import (
    Chunk,
    ContentFormat,
    EnhancedDocument,
    InsertionPoint,
    InsertionRecord,
    SourceDocument,
    round_score,
)

logger = logging.getLogger(__name__)


SNIPPET_CHARS = 50

CLOSING_BLOCK_PATTERN = re.compile(r"</(p|div)\s*>", re.IGNORECASE)
TRAILING_CLOSING_PATTERN = re.compile(r"</(p|div)\s*>\s*$", re.IGNORECASE)
BLANK_LINE_PATTERN = re.compile(r"\n[ \t]*\n")
ENDING_PUNCTUATION = ".!?:;"


class SpliceError(Exception):
    """Raised when a CTA cannot be placed in the document."""
    pass


def count_words(content: str, content_format: ContentFormat) -> int:
    if content_format == ContentFormat.HTML:
        return len(html_to_text(content).split())
    if content_format == ContentFormat.MARKDOWN:
        return len(strip_markdown(content).split())
    return len(content.split())


def _paragraph_end(content: str, index: int) -> int:
    """End of the blank-line-delimited paragraph containing index."""
    boundary = BLANK_LINE_PATTERN.search(content, index)
    end = boundary.start() if boundary else len(content.rstrip())
    return max(index, end)


def _needs_period(content: str, index: int) -> bool:
    preceding = content[:index].rstrip()
    return bool(preceding) and preceding[-1].isalnum()


class Splicer:
    """Inserts composed CTAs into a document in its original format."""

    def __init__(self, strategy: str = "moderate"):
        self.strategy = strategy

    def splice(
        self,
        document: SourceDocument,
        chunks: list[Chunk],
        insertions: list[InsertionPoint],
    ) -> EnhancedDocument:
        """
        Apply insertions to a document.

        Args:
            document: The original document.
            chunks: All chunks of the document, in order.
            insertions: Selected insertion points.

        Returns:
            EnhancedDocument with one record per requested insertion. A
            failed insertion is recorded with success=False and skipped.
        """
        content_format = ContentFormat.from_value(document.content_format)
        content = document.content
        chunk_by_id = {chunk.id: chunk for chunk in chunks}

        records = []
        for point in sorted(insertions, key=lambda p: p.position, reverse=True):
            chunk = chunk_by_id.get(point.chunk_id)
            try:
                if chunk is None:
                    raise SpliceError(f"Unknown chunk {point.chunk_id}")
                content, record = self._insert(content, content_format, chunk, point, len(chunks))
            except Exception as e:
                logger.warning(f"Skipping CTA insertion for {point.chunk_id}: {e}")
                record = InsertionRecord(
                    chunk_id=point.chunk_id,
                    position=point.position,
                    cta=point.cta,
                    original_paragraph=chunk.content if chunk else "",
                    enhanced_paragraph=chunk.content if chunk else "",
                    success=False,
                    reason=str(e),
                )
            records.append(record)

        records.sort(key=lambda r: r.position)
        succeeded = [r for r in records if r.success]
        enhanced = EnhancedDocument(
            original_content=document.content,
            enhanced_content=content,
            content_format=content_format,
            insertions=records,
            original_word_count=count_words(document.content, content_format),
            enhanced_word_count=count_words(content, content_format),
            original_paragraphs=len(chunks),
            cta_density=round_score(len(succeeded) / len(chunks) * 100) if chunks else 0,
            average_cta_confidence=(
                round_score(sum(r.cta.confidence for r in succeeded) / len(succeeded))
                if succeeded else 0
            ),
            insertion_strategy=self.strategy,
        )
        logger.info(
            f"Spliced {enhanced.total_insertions} of {len(insertions)} CTAs into "
            f"{content_format.value} document"
        )
        return enhanced

    def _insert(
        self,
        content: str,
        content_format: ContentFormat,
        chunk: Chunk,
        point: InsertionPoint,
        total_chunks: int,
    ) -> tuple[str, InsertionRecord]:
        span = self._locate_by_offset(content, chunk)
        reason = "Inserted at recorded paragraph position"
        if span is None:
            span = self._locate_by_text(content, content_format, chunk)
            reason = "Inserted after matching paragraph text"
        if span is None:
            span = self._locate_by_proportion(content, content_format, chunk.position, total_chunks)
            reason = "Inserted at proportional document position"
            logger.debug(f"{chunk.id}: paragraph not found, using proportional position")

        start, end = span
        if content_format != ContentFormat.HTML:
            # Sentence chunks end mid-paragraph; CTAs go after the whole paragraph
            end = _paragraph_end(content, end)
        paragraph = content[start:end]
        markup = point.cta.rendered_markup

        if content_format == ContentFormat.MARKDOWN:
            index = end
            addition = f"\n\n{markup}"
        elif content_format == ContentFormat.HTML:
            closing = TRAILING_CLOSING_PATTERN.search(paragraph)
            index = start + closing.start() if closing else end
            addition = f" {markup}"
        else:
            index = end
            addition = f" {markup}"

        if content_format != ContentFormat.MARKDOWN and _needs_period(content, index):
            addition = "." + addition

        new_content = content[:index] + addition + content[index:]
        enhanced_paragraph = new_content[start:end + len(addition)]
        record = InsertionRecord(
            chunk_id=chunk.id,
            position=chunk.position,
            cta=point.cta,
            original_paragraph=paragraph,
            enhanced_paragraph=enhanced_paragraph,
            success=True,
            reason=reason,
        )
        return new_content, record

    @staticmethod
    def _locate_by_offset(content: str, chunk: Chunk) -> Optional[tuple[int, int]]:
        start, end = chunk.source_start, chunk.source_end
        if start is None or end is None or not chunk.markup:
            return None
        if content[start:end] == chunk.markup:
            return start, end
        return None

    def _locate_by_text(
        self, content: str, content_format: ContentFormat, chunk: Chunk
    ) -> Optional[tuple[int, int]]:
        """Find the paragraph by its leading text, nearest the recorded offset."""
        snippet = chunk.content[:SNIPPET_CHARS]
        if not snippet:
            return None
        if content_format == ContentFormat.HTML:
            pattern = re.compile(
                r"<(p|div)\b[^>]*>[^<]*" + re.escape(snippet) + r"[^<]*</\1\s*>", re.IGNORECASE
            )
            candidates = [(m.start(), m.end()) for m in pattern.finditer(content)]
        else:
            candidates = []
            for m in re.finditer(re.escape(snippet), content):
                boundary = BLANK_LINE_PATTERN.search(content, m.end())
                end = boundary.start() if boundary else len(content.rstrip())
                candidates.append((m.start(), max(end, m.end())))
        if not candidates:
            return None
        expected = chunk.source_start or 0
        return min(candidates, key=lambda span: abs(span[0] - expected))

    @staticmethod
    def _locate_by_proportion(
        content: str, content_format: ContentFormat, position: int, total_chunks: int
    ) -> tuple[int, int]:
        """
        Nearest paragraph boundary at the chunk's share of the document.

        Raises:
            SpliceError: If the document has no usable boundary.
        """
        if not content.strip():
            raise SpliceError("Document is empty")
        fraction = (position + 1) / max(total_chunks, 1)
        target = min(len(content), int(len(content) * fraction))

        if content_format == ContentFormat.HTML:
            closings = list(CLOSING_BLOCK_PATTERN.finditer(content))
            if not closings:
                raise SpliceError("No paragraph boundary found for proportional insertion")
            closing = min(closings, key=lambda m: abs(m.end() - target))
            return closing.start(), closing.end()

        boundaries = [m.start() for m in BLANK_LINE_PATTERN.finditer(content)]
        boundaries.append(len(content.rstrip()))
        end = min(boundaries, key=lambda b: abs(b - target))
        return end, end
