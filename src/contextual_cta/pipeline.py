# -*- coding: utf-8 -*-
"""
End-to-end CTA insertion.

Runs one document through chunking, annotation, matching, composition,
insertion point selection and splicing. Per-chunk, per-offer and
per-insertion failures are recovered inside the stages. Only input
validation failures, cancellation and a generic wrapped failure ever
reach the caller.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from .anchor_text import AnchorTextGenerator
from .annotator import ChunkAnnotator, PipelineCancelled
from .chunker import Chunker, ContentValidationError
from .composer import CtaComposer
from .config import PipelineConfig
from .matcher import ContentOfferMatcher
from .models import (
    CampaignType,
    CompositionResult,
    ContentAnalysis,
    ContentFormat,
    CtaValidation,
    EnhancedDocument,
    InsertionPoint,
    MatchingResult,
    Offer,
    SourceDocument,
)
from .oracle import TextUnderstandingOracle
from .selector import InsertionPointSelector
from .splicer import Splicer

logger = logging.getLogger(__name__)


GENERIC_FAILURE_MESSAGE = "CTA insertion failed. Please try again."


class PipelineError(Exception):
    """Raised when a run fails for an unexpected reason."""
    pass


@dataclass
class PipelineResult:
    """Everything a run produced, stage by stage."""
    document: EnhancedDocument
    analysis: ContentAnalysis
    matching: MatchingResult
    compositions: dict[str, CompositionResult] = field(default_factory=dict)
    insertion_points: list[InsertionPoint] = field(default_factory=list)
    selected: list[InsertionPoint] = field(default_factory=list)
    validations: dict[str, CtaValidation] = field(default_factory=dict)

    @property
    def total_insertions(self) -> int:
        return self.document.total_insertions


class CtaInsertionPipeline:
    """
    Inserts contextual CTAs into one document at a time.

    Args:
        oracle: Text-understanding oracle shared by annotation, matching and
            anchor-text generation. With no oracle, chunks are not annotated
            and no CTA is inserted.
        config: Pipeline configuration.
    """

    def __init__(
        self,
        oracle: Optional[TextUnderstandingOracle] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.oracle = oracle
        self.config = config or PipelineConfig()
        self.chunker = Chunker(self.config.max_content_chars)
        self.annotator = ChunkAnnotator(oracle, self.config.annotation)
        self.matcher = ContentOfferMatcher(oracle, self.config.matching)
        self.composer = CtaComposer(
            AnchorTextGenerator(oracle, self.config.composition),
            self.config.composition,
        )
        self.selector = InsertionPointSelector(self.config.insertion)
        self.splicer = Splicer(self.config.insertion.strategy)

    def run(
        self,
        content: str,
        offers: list[Offer],
        target_keyword: str,
        campaign_type: "CampaignType | str" = CampaignType.BLOG_CREATOR,
        content_format: "ContentFormat | str" = ContentFormat.HTML,
        competitor_name: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PipelineResult:
        """
        Insert CTAs into a document.

        Args:
            content: Raw document content.
            offers: Offer catalog.
            target_keyword: Keyword the article targets.
            campaign_type: Campaign the CTAs are attributed to.
            content_format: html, markdown or text.
            competitor_name: Competitor for conquesting campaigns.
            cancel_event: Set by the caller to abandon the run.

        Returns:
            PipelineResult whose document holds the rewritten content.

        Raises:
            ContentValidationError: For missing, oversized or unusable input.
            PipelineCancelled: If cancel_event was set.
            PipelineError: For any other failure.
        """
        try:
            return self._run(
                content, offers, target_keyword, campaign_type,
                content_format, competitor_name, cancel_event,
            )
        except (ContentValidationError, PipelineCancelled):
            raise
        except Exception as e:
            logger.exception(f"CTA insertion failed: {e}")
            raise PipelineError(GENERIC_FAILURE_MESSAGE) from e

    def _run(
        self,
        content: str,
        offers: list[Offer],
        target_keyword: str,
        campaign_type: "CampaignType | str",
        content_format: "ContentFormat | str",
        competitor_name: Optional[str],
        cancel_event: Optional[threading.Event],
    ) -> PipelineResult:
        if not target_keyword or not target_keyword.strip():
            raise ContentValidationError("Target keyword is required", code="missing_field")
        if not offers:
            raise ContentValidationError("At least one offer is required", code="missing_field")
        try:
            campaign = campaign_type if isinstance(campaign_type, CampaignType) else CampaignType(campaign_type)
            content_format = ContentFormat.from_value(content_format)
        except ValueError as e:
            raise ContentValidationError(str(e), code="missing_field")

        document = SourceDocument(content=content, content_format=content_format)
        chunks = self.chunker.chunk(document)

        analysis = self.annotator.analyze(chunks, cancel_event)
        matching = self.matcher.match(analysis.candidates, offers, cancel_event)

        compositions: dict[str, CompositionResult] = {}
        validations: dict[str, CtaValidation] = {}
        for chunk in analysis.candidates:
            match = matching.best_match(chunk.id)
            if match is None:
                continue
            if cancel_event is not None and cancel_event.is_set():
                raise PipelineCancelled("Run cancelled during composition")
            try:
                composition = self.composer.compose(
                    match,
                    target_keyword,
                    campaign,
                    chunk=chunk,
                    competitor_name=competitor_name,
                    content_format=content_format,
                )
            except Exception as e:
                logger.warning(f"Composition failed for {chunk.id}: {e}")
                continue
            compositions[chunk.id] = composition
            for cta in composition.all_ctas:
                validation = self.composer.validate_cta_quality(cta)
                validations[cta.id] = validation
                if not validation.is_valid:
                    logger.debug(f"CTA {cta.id} quality {validation.quality_score}: {validation.issues}")

        points = self.selector.build_points(
            chunks, matching, compositions, choose_cta=self.composer.best_cta
        )
        selected = self.selector.select(points, len(chunks))
        enhanced = self.splicer.splice(document, chunks, selected)

        return PipelineResult(
            document=enhanced,
            analysis=analysis,
            matching=matching,
            compositions=compositions,
            insertion_points=points,
            selected=selected,
            validations=validations,
        )
