"""
Contextual CTA

Inserts contextually relevant calls-to-action into long-form articles:
- Splits HTML, Markdown or plain text into paragraph chunks
- Annotates chunks with themes and pain points via a language model
- Matches chunks to an offer catalog and composes UTM-tracked CTAs
- Splices the CTAs back into the document without disturbing the rest
"""

__version__ = "1.0.0"
__author__ = "Contextual CTA Team"

from .config import (
    AnnotationConfig,
    CompositionConfig,
    InsertionConfig,
    MatchingConfig,
    PipelineConfig,
)

from .models import (
    AnchorStyle,
    Annotation,
    CampaignType,
    Chunk,
    CompositionResult,
    ContentAnalysis,
    ContentFormat,
    ContextualCTA,
    CtaValidation,
    EnhancedDocument,
    InsertionPoint,
    InsertionRecord,
    Match,
    MatchingResult,
    Offer,
    OfferCategory,
    SourceDocument,
)

from .oracle import OracleResponseError, TextUnderstandingOracle
from .chunker import Chunker, ContentValidationError, chunk_document
from .annotator import ChunkAnnotator, PipelineCancelled
from .matcher import ContentOfferMatcher
from .anchor_text import AnchorTextError, AnchorTextGenerator
from .utm import UTMUrlError, build_utm_parameters, generate_utm_url
from .composer import CtaComposer, render_cta
from .selector import InsertionPointSelector
from .splicer import Splicer
from .pipeline import CtaInsertionPipeline, PipelineError, PipelineResult
from .offer_catalog import OfferCatalogError, load_offers

__all__ = [
    # Configuration
    "AnnotationConfig",
    "CompositionConfig",
    "InsertionConfig",
    "MatchingConfig",
    "PipelineConfig",
    # Models
    "AnchorStyle",
    "Annotation",
    "CampaignType",
    "Chunk",
    "CompositionResult",
    "ContentAnalysis",
    "ContentFormat",
    "ContextualCTA",
    "CtaValidation",
    "EnhancedDocument",
    "InsertionPoint",
    "InsertionRecord",
    "Match",
    "MatchingResult",
    "Offer",
    "OfferCategory",
    "SourceDocument",
    # Oracle
    "OracleResponseError",
    "TextUnderstandingOracle",
    # Pipeline stages
    "Chunker",
    "ContentValidationError",
    "chunk_document",
    "ChunkAnnotator",
    "PipelineCancelled",
    "ContentOfferMatcher",
    "AnchorTextError",
    "AnchorTextGenerator",
    "UTMUrlError",
    "build_utm_parameters",
    "generate_utm_url",
    "CtaComposer",
    "render_cta",
    "InsertionPointSelector",
    "Splicer",
    "CtaInsertionPipeline",
    "PipelineError",
    "PipelineResult",
    # Offer catalog
    "OfferCatalogError",
    "load_offers",
]
