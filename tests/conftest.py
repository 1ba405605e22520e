"""
Pytest fixtures and configuration for Contextual CTA tests.
"""

import threading
import time
from pathlib import Path

import pytest

from contextual_cta.config import AnnotationConfig, MatchingConfig, PipelineConfig
from contextual_cta.models import (
    AnchorContext,
    AnchorTextRequest,
    AnchorTextResult,
    Annotation,
    Chunk,
    Offer,
    OfferCategory,
)
from contextual_cta.oracle import TextUnderstandingOracle


def data_quality_annotation() -> Annotation:
    return Annotation(
        themes=["data quality", "email outreach"],
        pain_points=["bad data", "bounced emails"],
        solution_opportunities=["data enrichment"],
        context_clues=["sales team"],
        confidence_score=85,
        is_candidate=True,
    )


def gardening_annotation() -> Annotation:
    return Annotation(
        themes=["gardening"],
        pain_points=["weeds"],
        solution_opportunities=["mulch"],
        context_clues=["homeowners"],
        confidence_score=80,
        is_candidate=True,
    )


class FakeOracle(TextUnderstandingOracle):
    """
    Deterministic oracle for tests.

    Chunks mentioning gardening get an off-topic annotation and low
    similarity; everything else reads as a data quality paragraph.
    """

    def __init__(self, fail_on=(), fail_anchor_styles=(), delay: float = 0.0,
                 similarity: int = 90, fail_similarity: bool = False):
        self.fail_on = tuple(fail_on)
        self.fail_anchor_styles = set(fail_anchor_styles)
        self.delay = delay
        self.similarity = similarity
        self.fail_similarity = fail_similarity
        self.annotate_calls: list[str] = []
        self.similarity_calls = 0
        self.anchor_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def annotate(self, chunk_text: str) -> Annotation:
        with self._lock:
            self.annotate_calls.append(chunk_text)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if any(marker in chunk_text for marker in self.fail_on):
                raise RuntimeError("oracle unavailable")
            if "garden" in chunk_text.lower():
                return gardening_annotation()
            return data_quality_annotation()
        finally:
            with self._lock:
                self.in_flight -= 1

    def score_similarity(self, chunk: Chunk, offers: list[Offer]) -> list[int]:
        self.similarity_calls += 1
        if self.fail_similarity:
            raise RuntimeError("similarity endpoint down")
        if "garden" in chunk.content.lower():
            return [10] * len(offers)
        return [self.similarity] * len(offers)

    def generate_anchor_text(self, request: AnchorTextRequest, context: AnchorContext) -> AnchorTextResult:
        self.anchor_calls += 1
        if request.style in self.fail_anchor_styles:
            raise RuntimeError(f"cannot write {request.style.value}")
        return AnchorTextResult(
            anchor_text="get verified contact data with apollo",
            confidence=90,
            contextual_fit=85,
            style=request.style,
        )


PARAGRAPHS = [
    "Sales teams lose hours every week because bad data creeps into the CRM. Contact "
    "records go stale, phone numbers change, and nobody owns verification, so reps end "
    "up calling the wrong people and chasing leads that left months ago.",
    "Bounced emails are the most visible symptom of the problem. When a quarter of a "
    "sequence never reaches an inbox, sender reputation drops and even the good "
    "addresses start landing in spam folders for the whole sales team.",
    "Most companies try to fix this with a yearly cleanup project. An intern exports "
    "the database into a spreadsheet, deletes obvious duplicates, and imports it back, "
    "but by the next quarter the same bad data has returned in force.",
    "Continuous enrichment works better than periodic cleanup. Every new contact is "
    "checked against fresh sources at the moment it enters the system, and existing "
    "records are refreshed whenever a job change or bounce signal appears.",
    "The payoff shows up quickly in pipeline numbers. Reps spend their time on real "
    "conversations instead of research, reply rates climb, and forecasts become "
    "something leadership can actually trust when planning the next quarter.",
]


@pytest.fixture
def paragraphs() -> list[str]:
    return list(PARAGRAPHS)


@pytest.fixture
def sample_html(paragraphs) -> str:
    """Article with a heading and five substantial paragraphs."""
    body = "\n".join(f"<p>{p}</p>" for p in paragraphs)
    return f"<h1>Why Data Quality Matters</h1>\n{body}\n<footer>Posted in Sales</footer>\n"


@pytest.fixture
def sample_markdown(paragraphs) -> str:
    return "# Why Data Quality Matters\n\n" + "\n\n".join(paragraphs) + "\n"


@pytest.fixture
def sample_text(paragraphs) -> str:
    return "\n\n".join(paragraphs) + "\n"


@pytest.fixture
def data_offer() -> Offer:
    return Offer(
        id="data-enrichment",
        title="Data Enrichment",
        description="Keep CRM records accurate with automatic enrichment and verification",
        url="https://www.apollo.io/product/data-enrichment",
        category=OfferCategory.DATA_QUALITY_ENRICHMENT,
        pain_point_keywords=["bad data", "bounced emails"],
        solution_keywords=["data enrichment", "verification"],
        context_clues=["sales team"],
        priority=9,
    )


@pytest.fixture
def engagement_offer() -> Offer:
    return Offer(
        id="sequences",
        title="Email Sequences",
        description="Automated multichannel outreach sequences",
        url="https://www.apollo.io/product/sequences",
        category=OfferCategory.SALES_ENGAGEMENT,
        pain_point_keywords=["low reply rates"],
        solution_keywords=["email sequences"],
        priority=7,
    )


@pytest.fixture
def low_priority_offer() -> Offer:
    return Offer(
        id="webinar",
        title="Webinar Replay",
        description="Recorded product webinar",
        url="https://www.apollo.io/webinars",
        category=OfferCategory.GENERAL,
        pain_point_keywords=["bad data"],
        priority=3,
    )


@pytest.fixture
def offers(data_offer, engagement_offer, low_priority_offer) -> list[Offer]:
    return [data_offer, engagement_offer, low_priority_offer]


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def fast_config() -> PipelineConfig:
    """Pipeline config with delays disabled."""
    return PipelineConfig(
        annotation=AnnotationConfig(batch_delay=0),
        matching=MatchingConfig(request_delay=0),
    )


@pytest.fixture
def annotated_chunk() -> Chunk:
    chunk = Chunk(id="chunk-0", content=PARAGRAPHS[0], position=0, markup=PARAGRAPHS[0])
    chunk.attach_annotation(data_quality_annotation())
    return chunk


@pytest.fixture
def offers_csv(tmp_path: Path) -> Path:
    """Create a sample offer catalog CSV file."""
    csv_path = tmp_path / "offers.csv"
    csv_path.write_text(
        "id,title,description,url,category,pain_point_keywords,solution_keywords,priority\n"
        "data-enrichment,Data Enrichment,Accurate CRM data,https://www.apollo.io/enrich,"
        "data_quality_enrichment,bad data;bounced emails,data enrichment|verification,9\n"
        "sequences,Email Sequences,Automated outreach,https://www.apollo.io/sequences,"
        "sales_engagement,low reply rates,email sequences,7\n"
    )
    return csv_path
