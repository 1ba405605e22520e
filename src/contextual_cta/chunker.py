# -*- coding: utf-8 -*-
"""
Document chunking.

Splits HTML, Markdown or plain text into ordered paragraph-sized chunks.
Each chunk keeps the exact source span it came from so the splicer can
write CTAs back by offset instead of re-matching text.
"""

import logging
import re
from typing import Iterator, Optional

from bs4 import BeautifulSoup

from .config import DEFAULT_MAX_CONTENT_CHARS
from .models import Chunk, ContentFormat, SourceDocument

logger = logging.getLogger(__name__)


# Spans with this many characters or fewer are too thin to annotate
MIN_CHUNK_CHARS = 50

# Sentence fallback limits; sentences must be longer than paragraph chunks
SENTENCE_MIN_CHARS = 80
MAX_SENTENCE_CHUNKS = 50

# Elements whose start ends the paragraph before them
BLOCK_TAGS = [
    "address", "article", "aside", "blockquote", "div", "dl", "figure", "footer",
    "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "li", "main",
    "nav", "ol", "p", "pre", "section", "table", "ul",
]
PARAGRAPH_TAGS = ("p", "div")

BLANK_LINE_PATTERN = re.compile(r"\n[ \t]*\n\s*")
MARKDOWN_HEADING_PATTERN = re.compile(r"^\s{0,3}#{1,6}\s")
FENCE_LINE_PATTERN = re.compile(r"^[ \t]{0,3}(?:```|~~~)", re.MULTILINE)
FENCED_BLOCK_PATTERN = re.compile(
    r"^[ \t]{0,3}(```|~~~).*?^[ \t]{0,3}\1[^\n]*$", re.MULTILINE | re.DOTALL
)
SENTENCE_SPLIT_PATTERN = re.compile(r"\.\s+")


class ContentValidationError(ValueError):
    """Raised when a document fails input validation."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


def validate_content(
    content: Optional[str],
    max_chars: int = DEFAULT_MAX_CONTENT_CHARS,
) -> str:
    """
    Check document-level preconditions.

    Args:
        content: Raw document content.
        max_chars: Size ceiling in characters.

    Returns:
        The content, unchanged.

    Raises:
        ContentValidationError: If content is empty or too large.
    """
    if content is None or not content.strip():
        raise ContentValidationError("Content is required", code="content_required")
    if len(content) > max_chars:
        raise ContentValidationError(
            f"Content too large. Maximum size is {max_chars:,} characters.",
            code="content_too_large",
        )
    return content


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def html_to_text(fragment: str) -> str:
    """Strip tags and decode entities from an HTML fragment."""
    if "<" not in fragment and "&" not in fragment:
        return normalize_whitespace(fragment)
    soup = BeautifulSoup(fragment, "lxml")
    return normalize_whitespace(soup.get_text())


def strip_markdown(text: str) -> str:
    """Remove headings, emphasis, inline code and link markup from Markdown."""
    lines = [line for line in text.splitlines() if not MARKDOWN_HEADING_PATTERN.match(line)]
    text = "\n".join(lines)
    text = re.sub(r"!\[([^\]]*)\]\([^)]*\)", r"\1", text)
    text = re.sub(r"\[([^\]]*)\]\([^)]*\)", r"\1", text)
    text = re.sub(r"\*\*(.+?)\*\*", r"\1", text)
    text = re.sub(r"__(.+?)__", r"\1", text)
    text = re.sub(r"(?<!\w)\*(?!\s)(.+?)(?<!\s)\*", r"\1", text)
    text = re.sub(r"(?<!\w)_(?!\s)(.+?)(?<!\s)_(?!\w)", r"\1", text)
    text = re.sub(r"`([^`]*)`", r"\1", text)
    return normalize_whitespace(text)


def blank_line_spans(content: str) -> Iterator[tuple[int, int]]:
    """
    Yield (start, end) offsets of blank-line-delimited blocks.

    Offsets exclude the leading and trailing whitespace of each block.
    """
    separators = list(BLANK_LINE_PATTERN.finditer(content))
    starts = [0] + [sep.end() for sep in separators]
    ends = [sep.start() for sep in separators] + [len(content)]

    for start, end in zip(starts, ends):
        block = content[start:end]
        stripped = block.strip()
        if not stripped:
            continue
        offset = start + (len(block) - len(block.lstrip()))
        yield offset, offset + len(stripped)


def html_block_spans(content: str) -> list[tuple[int, int, str]]:
    """
    Find <p> and <div> paragraphs in HTML with their exact source offsets.

    The document is parsed with BeautifulSoup's html.parser, which records
    where each tag starts. A paragraph runs from its start tag to its own
    closing tag, or, when the closing tag is omitted (valid for <p> in
    HTML5), up to the next block-level element. A <div> that only wraps
    other blocks ends up with no text of its own and is dropped by the
    length filter.

    Returns:
        (start, end, text) per paragraph, in document order.
    """
    soup = BeautifulSoup(content, "html.parser")
    line_starts = [0] + [m.end() for m in re.finditer("\n", content)]

    blocks = []
    for tag in soup.find_all(BLOCK_TAGS):
        if tag.sourceline is None:
            continue
        start = line_starts[tag.sourceline - 1] + tag.sourcepos
        if content[start:start + len(tag.name) + 1].lower() != f"<{tag.name}":
            logger.debug(f"Source position of <{tag.name}> does not line up, skipping")
            continue
        blocks.append((start, tag.name))

    spans = []
    for index, (start, name) in enumerate(blocks):
        if name not in PARAGRAPH_TAGS:
            continue
        limit = blocks[index + 1][0] if index + 1 < len(blocks) else len(content)
        region = content[start:limit]
        closing = re.search(rf"</{name}\s*>", region, re.IGNORECASE)
        end = start + (closing.end() if closing else len(region.rstrip()))
        spans.append((start, end, html_to_text(content[start:end])))
    return spans


class Chunker:
    """
    Splits a document into ordered chunks.

    Headings, fragments of MIN_CHUNK_CHARS characters or fewer, and any
    text outside the chunk spans remain in the source document untouched;
    they simply never become chunks.
    """

    def __init__(self, max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS):
        self.max_content_chars = max_content_chars

    def chunk(self, document: SourceDocument) -> list[Chunk]:
        """
        Chunk a document.

        Args:
            document: Content and its format.

        Returns:
            Chunks with contiguous positions starting at 0.

        Raises:
            ContentValidationError: If the content is empty, oversized, or
                yields no usable paragraphs.
        """
        content = validate_content(document.content, self.max_content_chars)
        content_format = ContentFormat.from_value(document.content_format)

        if content_format == ContentFormat.HTML:
            spans = self._html_spans(content)
        elif content_format == ContentFormat.MARKDOWN:
            spans = self._markdown_spans(content)
        else:
            spans = self._text_spans(content)

        spans = [span for span in spans if len(span[2]) > MIN_CHUNK_CHARS]

        if not spans:
            logger.info("No paragraph blocks found, falling back to sentence splitting")
            spans = self._sentence_spans(content, content_format)

        if not spans:
            raise ContentValidationError(
                "No valid paragraphs found in content", code="no_valid_paragraphs"
            )

        chunks = [
            Chunk(
                id=f"chunk-{position}",
                content=text,
                position=position,
                markup=content[start:end] if start is not None else text,
                source_start=start,
                source_end=end,
            )
            for position, (start, end, text) in enumerate(spans)
        ]
        logger.info(f"Chunked {content_format.value} document into {len(chunks)} chunks")
        return chunks

    def _html_spans(self, content: str) -> list[tuple[int, int, str]]:
        spans = html_block_spans(content)
        if spans:
            return spans
        logger.debug("No <p>/<div> blocks found, splitting HTML on blank lines")
        return [
            (start, end, html_to_text(content[start:end]))
            for start, end in blank_line_spans(content)
        ]

    def _markdown_spans(self, content: str) -> list[tuple[int, int, str]]:
        spans = []
        in_fence = False
        for start, end in blank_line_spans(content):
            block = content[start:end]
            fences = len(FENCE_LINE_PATTERN.findall(block))
            inside = in_fence or fences > 0
            if fences % 2:
                in_fence = not in_fence
            if inside:
                continue
            text = strip_markdown(block)
            if text:
                spans.append((start, end, text))
        return spans

    def _text_spans(self, content: str) -> list[tuple[int, int, str]]:
        return [
            (start, end, normalize_whitespace(content[start:end]))
            for start, end in blank_line_spans(content)
        ]

    def _sentence_spans(
        self, content: str, content_format: ContentFormat
    ) -> list[tuple[Optional[int], Optional[int], str]]:
        if content_format == ContentFormat.HTML:
            plain = html_to_text(content)
        elif content_format == ContentFormat.MARKDOWN:
            plain = strip_markdown(FENCED_BLOCK_PATTERN.sub("", content))
        else:
            plain = normalize_whitespace(content)

        spans = []
        cursor = 0
        for sentence in SENTENCE_SPLIT_PATTERN.split(plain):
            sentence = sentence.strip()
            if len(sentence) <= SENTENCE_MIN_CHARS:
                continue
            # Span covers the sentence's own full stop when the source has one
            words = r"\s+".join(re.escape(word) for word in sentence.split())
            located = re.compile(words + r"\.?").search(content, cursor)
            if located:
                cursor = located.end()
                spans.append((located.start(), located.end(), sentence))
            else:
                spans.append((None, None, sentence))
            if len(spans) >= MAX_SENTENCE_CHUNKS:
                break
        return spans


def chunk_document(
    content: str,
    content_format: "ContentFormat | str" = ContentFormat.HTML,
    max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS,
) -> list[Chunk]:
    """Convenience wrapper around Chunker.chunk."""
    document = SourceDocument(content=content, content_format=ContentFormat.from_value(content_format))
    return Chunker(max_content_chars).chunk(document)
