"""
Entry point for splitting a multi-page document into invoices.

The orchestrator picks the vision path (pairwise comparison of adjacent
pages) when any page carries an image and the text path (one batched
classification) otherwise. Whatever goes wrong inside the chosen path is
turned into a single low-confidence group covering the whole document, so
callers always receive a result.
"""

import logging
import time
from typing import List, Optional, Sequence

from .batch_classifier import BatchTextClassifier
from .config import Settings, SplitterConfig
from .exceptions import ValidationError
from .group_assembler import (
    assemble_from_decisions,
    assemble_from_partition,
    empty_result,
    fallback_result,
    single_page_result,
    validate_partition,
)
from .llm import OllamaCapability
from .models import (
    AnalysisPath,
    BoundaryDecision,
    OutcomeStatus,
    Page,
    PageAnalysisResult,
    SplitOutcome,
)
from .pair_classifier import PairBoundaryClassifier

logger = logging.getLogger(__name__)


def select_path(pages: Sequence[Page]) -> AnalysisPath:
    if not pages:
        return AnalysisPath.EMPTY
    if len(pages) == 1:
        return AnalysisPath.SINGLE_PAGE
    if any(page.has_image for page in pages):
        return AnalysisPath.VISION
    return AnalysisPath.TEXT


class SplitOrchestrator:
    """
    Splits a document's pages into invoice groups.

    Holds only immutable configuration, so one instance can serve many
    documents.
    """

    def __init__(self, config: SplitterConfig):
        self.config = config
        self.pair_classifier = PairBoundaryClassifier(
            config.capability, excerpt_chars=config.pair_excerpt_chars
        )
        self.batch_classifier = BatchTextClassifier(
            config.capability, page_chars=config.batch_page_chars
        )

    def analyze_pages(self, pages: Sequence[Page]) -> PageAnalysisResult:
        """Analyze pages and return the partition; never raises on model failure."""
        return self.split(pages).result

    def split(self, pages: Sequence[Page]) -> SplitOutcome:
        start_time = time.time()
        ordered = sorted(pages, key=lambda p: p.page_number)
        path = select_path(ordered)

        logger.info(f"Starting invoice analysis for {len(ordered)} pages ({path.value} path)")

        try:
            result = self._run_path(path, ordered)

            issues = validate_partition(result, [p.page_number for p in ordered])
            if issues:
                raise ValidationError(
                    f"Invalid partition: {'; '.join(issues)}", {"issues": issues}
                )

        except Exception as e:
            logger.error(f"Invoice analysis failed: {e}", exc_info=True)
            return SplitOutcome(
                status=OutcomeStatus.FALLBACK,
                result=fallback_result(ordered, e),
                path=path,
                error=str(e),
                processing_time=time.time() - start_time,
            )

        logger.info(f"Invoice analysis completed: {result.total_invoices} invoices detected")
        return SplitOutcome(
            status=OutcomeStatus.SUCCESS,
            result=result,
            path=path,
            processing_time=time.time() - start_time,
        )

    def _run_path(self, path: AnalysisPath, pages: List[Page]) -> PageAnalysisResult:
        if path == AnalysisPath.EMPTY:
            return empty_result()
        if path == AnalysisPath.SINGLE_PAGE:
            return single_page_result(pages[0])
        if path == AnalysisPath.VISION:
            return self._run_vision(pages)
        return assemble_from_partition(pages, self.batch_classifier.classify(pages))

    def _run_vision(self, pages: List[Page]) -> PageAnalysisResult:
        decisions: List[BoundaryDecision] = []
        # One model call at a time, in page order
        for i in range(len(pages) - 1):
            decisions.append(
                self.pair_classifier.compare(pages[i], pages[i + 1], index_a=i, index_b=i + 1)
            )

        # Failed pairs merge as usual; a model that could not be called at all is escalated
        if all(d.call_failed for d in decisions):
            raise decisions[-1].call_error

        return assemble_from_decisions(
            pages, decisions, threshold=self.config.boundary_confidence_threshold
        )


def analyze_pages(pages: Sequence[Page], config: SplitterConfig) -> PageAnalysisResult:
    return SplitOrchestrator(config).analyze_pages(pages)


def create_splitter(
    settings: Optional[Settings] = None,
    verify_models: bool = False
) -> SplitOrchestrator:
    """
    Build an orchestrator backed by Ollama.

    Args:
        settings: Settings to use; read from the environment if omitted
        verify_models: Check the configured models exist (and pull them)
    """
    settings = settings or Settings()
    capability = OllamaCapability.from_settings(settings)
    if verify_models:
        capability.ensure_models()
    return SplitOrchestrator(SplitterConfig.from_settings(settings, capability))
