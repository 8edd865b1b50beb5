"""Core data models for the Smart Invoice Splitter."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, validator
from pydantic.alias_generators import to_camel


class OutcomeStatus(str, Enum):
    """Terminal state of one analysis call."""

    SUCCESS = "success"
    FALLBACK = "fallback"


class AnalysisPath(str, Enum):
    """Strategy the orchestrator used for a document."""

    EMPTY = "empty"
    SINGLE_PAGE = "single_page"
    VISION = "vision"
    TEXT = "text"


class SplitterModel(BaseModel):
    """Immutable base with camelCase serialisation aliases."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class Page(SplitterModel):
    """A single rendered page handed over by the parsing stage."""

    page_number: int = Field(..., ge=1)
    content: str = ""
    image: Optional[str] = Field(
        default=None,
        description="Base64 encoded page image for vision analysis"
    )
    image_media_type: str = "image/png"

    @property
    def has_image(self) -> bool:
        return bool(self.image)


class BoundaryDecision(SplitterModel):
    """Outcome of comparing two adjacent pages."""

    page_a_index: int = Field(..., ge=0)
    page_b_index: int = Field(..., ge=0)
    same_document: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str = ""
    error: Optional[str] = Field(
        default=None,
        description="Set when the comparison failed and this is the default verdict"
    )
    call_error: Optional[Exception] = Field(
        default=None,
        exclude=True,
        repr=False,
        description="Exception raised by the model call itself, if any"
    )

    class Config:
        arbitrary_types_allowed = True

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def call_failed(self) -> bool:
        """True when the model could not be reached, as opposed to answering badly."""
        return self.call_error is not None


class ContainerDetection(SplitterModel):
    """Result of scanning text for expense-report export signatures."""

    is_expensify_export: bool
    expensify_confidence: float = Field(..., ge=0.0, le=1.0)
    expensify_reason: Optional[str] = None
    expensify_indicators: List[str] = Field(default_factory=list)


class PageGroup(SplitterModel):
    """A contiguous run of pages that belong to one transaction."""

    invoice_number: int = Field(..., ge=1)
    pages: List[int]
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str = ""
    is_expensify_export: bool = False
    expensify_confidence: float = Field(default=0.1, ge=0.0, le=1.0)
    expensify_indicators: List[str] = Field(default_factory=list)
    expensify_reason: Optional[str] = None

    @validator("pages")
    def ascending_pages(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("A page group needs at least one page")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("Pages must be strictly ascending")
        return v

    @property
    def start_page(self) -> int:
        return self.pages[0]

    @property
    def end_page(self) -> int:
        return self.pages[-1]

    @property
    def page_count(self) -> int:
        """Number of pages in this group."""
        return len(self.pages)

    @property
    def page_range(self) -> str:
        """String representation of page range."""
        if self.start_page == self.end_page:
            return str(self.start_page)
        return f"{self.start_page}-{self.end_page}"


class PageAnalysisResult(SplitterModel):
    """Partition of a document into invoice groups."""

    page_groups: List[PageGroup] = Field(default_factory=list)
    total_invoices: int = Field(default=0, ge=0)

    @validator("total_invoices", always=True)
    def set_total_invoices(cls, v: int, values: dict) -> int:
        if "page_groups" in values:
            return len(values["page_groups"])
        return v

    @property
    def transaction_groups(self) -> List[PageGroup]:
        """Groups that hold actual transactions, skipping container exports."""
        return [g for g in self.page_groups if not g.is_expensify_export]


@dataclass
class RawPageGroup:
    """One group as proposed by the text classifier, before validation."""

    pages: List[int]
    invoice_number: Optional[int] = None
    confidence: Optional[Any] = None
    reasoning: Optional[str] = None


@dataclass
class RawPartition:
    """Unvalidated partition returned by the batch text classifier."""

    total_invoices: int
    page_groups: List[RawPageGroup] = field(default_factory=list)


@dataclass
class SplitOutcome:
    """Terminal result of one orchestrator run."""

    status: OutcomeStatus
    result: PageAnalysisResult
    path: AnalysisPath
    error: Optional[str] = None
    processing_time: float = 0.0

    @property
    def is_fallback(self) -> bool:
        return self.status == OutcomeStatus.FALLBACK
