# -*- coding: utf-8 -*-
"""
LLM client for contextual CTA insertion.

This module provides the Anthropic Claude implementation of the
text-understanding oracle: chunk annotation, chunk/offer similarity
scoring and anchor-text generation.
"""

import logging
import os
from typing import Optional

try:
    import anthropic
except ImportError:
    anthropic = None  # type: ignore

from .models import AnchorContext, AnchorTextRequest, AnchorTextResult, Annotation, Chunk, Offer
from .oracle import (
    ANCHOR_SYSTEM_PROMPT,
    ANNOTATION_SYSTEM_PROMPT,
    SIMILARITY_SYSTEM_PROMPT,
    TextUnderstandingOracle,
    build_anchor_prompt,
    build_annotation_prompt,
    build_similarity_prompt,
    parse_anchor_text,
    parse_annotation,
    parse_similarity_scores,
)

logger = logging.getLogger(__name__)


DEFAULT_MODEL = "claude-sonnet-4-20250514"


class LLMClientError(Exception):
    """Raised when LLM operations fail."""
    pass


class LLMClient(TextUnderstandingOracle):
    """
    Oracle backed by the Anthropic Claude API.

    The API key is resolved once, at construction. A missing key or a
    missing anthropic package fails here rather than on the first call.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        brand_name: str = "Apollo",
        timeout: float = 60.0,
    ):
        """
        Initialize the LLM client.

        Args:
            api_key: API key for the LLM provider. If None, reads from ANTHROPIC_API_KEY env var.
            model: Model identifier to use.
            brand_name: Brand the annotation prompt analyzes opportunities for.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model
        self.brand_name = brand_name

        if not self.api_key:
            raise LLMClientError(
                "No API key provided. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

        if anthropic is None:
            raise LLMClientError(
                "anthropic package not installed. Run: pip install anthropic"
            )

        import httpx
        http_client = httpx.Client(
            timeout=httpx.Timeout(timeout, connect=30.0),
            follow_redirects=True,
        )
        self.client = anthropic.Anthropic(
            api_key=self.api_key,
            http_client=http_client,
        )

    def _complete(self, system: str, prompt: str, max_tokens: int = 1000) -> str:
        """
        Run a single completion and return its text.

        Raises:
            LLMClientError: If the API call fails or returns no text.
        """
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise LLMClientError(f"LLM API call failed: {e}")

        if not response.content:
            raise LLMClientError("Empty response from LLM")
        return response.content[0].text

    def annotate(self, chunk_text: str) -> Annotation:
        """
        Annotate a chunk of content.

        Raises:
            LLMClientError: If the API call fails.
            OracleResponseError: If the reply is not valid annotation JSON.
        """
        text = self._complete(
            ANNOTATION_SYSTEM_PROMPT,
            build_annotation_prompt(chunk_text, self.brand_name),
        )
        return parse_annotation(text)

    def score_similarity(self, chunk: Chunk, offers: list[Offer]) -> list[int]:
        """
        Score semantic similarity between a chunk and each offer.

        Raises:
            LLMClientError: If the API call fails.
            OracleResponseError: If the reply is not a same-length score array.
        """
        if not offers:
            return []
        text = self._complete(
            SIMILARITY_SYSTEM_PROMPT,
            build_similarity_prompt(chunk, offers),
            max_tokens=200,
        )
        return parse_similarity_scores(text, len(offers))

    def generate_anchor_text(
        self, request: AnchorTextRequest, context: AnchorContext
    ) -> AnchorTextResult:
        """
        Generate anchor text for one style.

        Raises:
            LLMClientError: If the API call fails.
            OracleResponseError: If the reply has no usable anchor text.
        """
        text = self._complete(
            ANCHOR_SYSTEM_PROMPT,
            build_anchor_prompt(request, context),
            max_tokens=400,
        )
        logger.debug(f"Anchor text reply for {request.match.offer.id}: {text[:200]}")
        return parse_anchor_text(text, request.style)


def create_llm_client(
    api_key: Optional[str] = None,
    model: str = DEFAULT_MODEL,
    brand_name: str = "Apollo",
) -> LLMClient:
    """
    Factory function to create an LLM client.

    Args:
        api_key: Optional API key. If None, uses environment variable.
        model: Model to use.
        brand_name: Brand the prompts are written for.

    Returns:
        Configured LLMClient instance.
    """
    return LLMClient(api_key=api_key, model=model, brand_name=brand_name)
