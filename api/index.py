"""
FastAPI wrapper for Contextual CTA - Vercel Serverless Function.

This module exposes CTA insertion as a REST API for deployment on Vercel.
"""

import os
import tempfile
from enum import Enum
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from contextual_cta import __version__
from contextual_cta.chunker import ContentValidationError
from contextual_cta.config import PipelineConfig
from contextual_cta.llm_client import LLMClientError, create_llm_client
from contextual_cta.models import Offer
from contextual_cta.offer_catalog import OfferCatalogError, load_offers, parse_offer_records
from contextual_cta.pipeline import CtaInsertionPipeline, PipelineError, PipelineResult

app = FastAPI(
    title="Contextual CTA API",
    description="Inserts contextually relevant calls-to-action into long-form articles",
    version=__version__,
)

# Enable CORS for all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ContentFormatEnum(str, Enum):
    """Source document format."""
    html = "html"
    markdown = "markdown"
    text = "text"


class CampaignTypeEnum(str, Enum):
    """Campaign the CTAs are attributed to."""
    blog_creator = "blog_creator"
    reddit_content_creator = "reddit_content_creator"
    competitor_conquesting = "competitor_conquesting"


class StrategyEnum(str, Enum):
    """Insertion strategy preset."""
    conservative = "conservative"
    moderate = "moderate"
    aggressive = "aggressive"


class OfferInput(BaseModel):
    """Single offer from the catalog."""
    id: str
    title: str
    description: str = ""
    url: str
    category: str
    pain_point_keywords: list[str] = Field(default_factory=list)
    solution_keywords: list[str] = Field(default_factory=list)
    context_clues: list[str] = Field(default_factory=list)
    priority: int = Field(5, ge=1, le=10)


class InsertCtasRequest(BaseModel):
    """Request model for CTA insertion."""
    content: str = Field(..., description="Article content")
    content_format: ContentFormatEnum = Field(ContentFormatEnum.html, description="Format of content")
    target_keyword: str = Field(..., description="Keyword the article targets")
    campaign_type: CampaignTypeEnum = Field(CampaignTypeEnum.blog_creator)
    competitor_name: Optional[str] = Field(None, description="Competitor for conquesting campaigns")
    strategy: StrategyEnum = Field(StrategyEnum.moderate)
    offers: list[OfferInput] = Field(..., description="Offer catalog to match against")


class InsertionOutput(BaseModel):
    """One attempted CTA insertion."""
    cta_id: str
    chunk_id: str
    position: int
    anchor_text: str
    target_url: str
    confidence: int
    insertion_success: bool
    insertion_reason: str


class InsertCtasResponse(BaseModel):
    """Response model for CTA insertion."""
    success: bool
    enhanced_content: str
    total_insertions: int
    original_word_count: int
    enhanced_word_count: int
    cta_density: int
    average_cta_confidence: int
    insertion_strategy: str
    insertions: list[InsertionOutput]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


def _to_response(result: PipelineResult) -> InsertCtasResponse:
    document = result.document
    return InsertCtasResponse(
        success=True,
        enhanced_content=document.enhanced_content,
        total_insertions=document.total_insertions,
        original_word_count=document.original_word_count,
        enhanced_word_count=document.enhanced_word_count,
        cta_density=document.cta_density,
        average_cta_confidence=document.average_cta_confidence,
        insertion_strategy=document.insertion_strategy,
        insertions=[
            InsertionOutput(
                cta_id=record.cta_id,
                chunk_id=record.chunk_id,
                position=record.position,
                anchor_text=record.cta.anchor_text,
                target_url=record.cta.target_url,
                confidence=record.cta.confidence,
                insertion_success=record.success,
                insertion_reason=record.reason,
            )
            for record in document.insertions
        ],
    )


def _run_pipeline(
    content: str,
    content_format: str,
    target_keyword: str,
    campaign_type: str,
    competitor_name: Optional[str],
    strategy: str,
    offers: list[Offer],
) -> InsertCtasResponse:
    try:
        oracle = create_llm_client()
    except LLMClientError as e:
        raise HTTPException(status_code=500, detail=str(e))

    pipeline = CtaInsertionPipeline(oracle, PipelineConfig.for_strategy(strategy))
    try:
        result = pipeline.run(
            content,
            offers,
            target_keyword=target_keyword,
            campaign_type=campaign_type,
            content_format=content_format,
            competitor_name=competitor_name,
        )
    except ContentValidationError as e:
        raise HTTPException(status_code=400, detail={"code": e.code, "message": str(e)})
    except PipelineError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _to_response(result)


@app.get("/api/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@app.post("/api/insert-ctas", response_model=InsertCtasResponse)
def insert_ctas(request: InsertCtasRequest):
    """
    Insert CTAs into an article.

    Chunks the article, matches paragraphs against the supplied offers and
    returns the article with CTAs spliced in.
    """
    try:
        offers = parse_offer_records([offer.model_dump() for offer in request.offers])
    except OfferCatalogError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _run_pipeline(
        request.content,
        request.content_format.value,
        request.target_keyword,
        request.campaign_type.value,
        request.competitor_name,
        request.strategy.value,
        offers,
    )


@app.post("/api/insert-ctas/file", response_model=InsertCtasResponse)
def insert_ctas_with_offers_file(
    content: str = Form(...),
    target_keyword: str = Form(...),
    offers_file: UploadFile = File(...),
    content_format: ContentFormatEnum = Form(ContentFormatEnum.html),
    campaign_type: CampaignTypeEnum = Form(CampaignTypeEnum.blog_creator),
    competitor_name: Optional[str] = Form(None),
    strategy: StrategyEnum = Form(StrategyEnum.moderate),
):
    """Insert CTAs using an uploaded offer catalog (JSON, CSV or Excel)."""
    if not offers_file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    suffix = Path(offers_file.filename).suffix.lower()
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        tmp.write(offers_file.file.read())
        tmp_path = Path(tmp.name)

    try:
        offers = load_offers(tmp_path)
    except OfferCatalogError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        if tmp_path.exists():
            os.unlink(tmp_path)

    return _run_pipeline(
        content,
        content_format.value,
        target_keyword,
        campaign_type.value,
        competitor_name,
        strategy.value,
        offers,
    )


@app.get("/api/info")
def api_info():
    """Get API information and usage instructions."""
    return {
        "name": "Contextual CTA API",
        "version": __version__,
        "description": "Contextual call-to-action insertion for long-form articles",
        "endpoints": {
            "GET /api/health": "Health check",
            "POST /api/insert-ctas": "Insert CTAs using a JSON offer list",
            "POST /api/insert-ctas/file": "Insert CTAs using an uploaded offer catalog file",
            "GET /api/info": "This endpoint",
        },
        "documentation": "/docs",
        "openapi": "/openapi.json",
    }
