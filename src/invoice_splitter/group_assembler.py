"""
Assembly of page groups from boundary decisions or a proposed partition.

Everything here is pure: the functions take pages plus model output and
return a ``PageAnalysisResult`` whose groups are contiguous, ordered,
numbered from 1 and annotated with the container heuristic.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .container_heuristic import annotate_group
from .exceptions import ValidationError
from .models import (
    BoundaryDecision,
    Page,
    PageAnalysisResult,
    PageGroup,
    RawPageGroup,
    RawPartition,
)

logger = logging.getLogger(__name__)

BOUNDARY_CONFIDENCE_THRESHOLD = 0.6

VISION_GROUP_CONFIDENCE = 0.8
FIRST_GROUP_REASONING = "First document in PDF"
BOUNDARY_REASONING = "Boundary detected via vision analysis"

SINGLE_PAGE_CONFIDENCE = 1.0
SINGLE_PAGE_REASONING = "Single page document"

TEXT_GROUP_CONFIDENCE = 0.7
TEXT_GROUP_REASONING = "Grouped by text analysis"
UNASSIGNED_CONFIDENCE = 0.5
UNASSIGNED_REASONING = "Pages not assigned by text analysis"

FALLBACK_CONFIDENCE = 0.3


def _build_group(
    invoice_number: int,
    pages: Sequence[Page],
    confidence: float,
    reasoning: str
) -> PageGroup:
    group = PageGroup(
        invoice_number=invoice_number,
        pages=[p.page_number for p in pages],
        confidence=confidence,
        reasoning=reasoning,
    )
    return annotate_group(group, pages)


def empty_result() -> PageAnalysisResult:
    return PageAnalysisResult(page_groups=[])


def single_page_result(page: Page) -> PageAnalysisResult:
    group = _build_group(1, [page], SINGLE_PAGE_CONFIDENCE, SINGLE_PAGE_REASONING)
    return PageAnalysisResult(page_groups=[group])


def fallback_result(pages: Sequence[Page], error: BaseException) -> PageAnalysisResult:
    """One low-confidence group spanning every input page."""
    if not pages:
        return empty_result()

    by_number = {}
    for page in pages:
        by_number.setdefault(page.page_number, page)
    ordered = [by_number[n] for n in sorted(by_number)]

    group = _build_group(
        1,
        ordered,
        FALLBACK_CONFIDENCE,
        f"Analysis failed ({error}), treating as single invoice",
    )
    return PageAnalysisResult(page_groups=[group])


def boundary_indices(
    decisions: Iterable[BoundaryDecision],
    threshold: float = BOUNDARY_CONFIDENCE_THRESHOLD
) -> List[int]:
    """
    Start index of every group, always beginning with 0.

    A split needs a "different document" verdict at or above the threshold;
    "same document" verdicts never split, whatever their confidence.
    """
    boundaries = [0]
    for i, decision in enumerate(decisions):
        if not decision.same_document and decision.confidence >= threshold:
            boundaries.append(i + 1)
    return boundaries


def assemble_from_decisions(
    pages: Sequence[Page],
    decisions: Sequence[BoundaryDecision],
    threshold: float = BOUNDARY_CONFIDENCE_THRESHOLD
) -> PageAnalysisResult:
    """Build groups from one decision per adjacent page pair (vision path)."""
    if not pages:
        return empty_result()
    if len(pages) == 1:
        return single_page_result(pages[0])
    if len(decisions) != len(pages) - 1:
        raise ValidationError(
            f"Expected {len(pages) - 1} boundary decisions, got {len(decisions)}"
        )

    boundaries = boundary_indices(decisions, threshold)
    ends = boundaries[1:] + [len(pages)]

    groups = []
    for number, (start, end) in enumerate(zip(boundaries, ends), 1):
        reasoning = FIRST_GROUP_REASONING if number == 1 else BOUNDARY_REASONING
        groups.append(
            _build_group(number, pages[start:end], VISION_GROUP_CONFIDENCE, reasoning)
        )

    logger.info(f"Vision analysis produced {len(groups)} groups from {len(pages)} pages")
    return PageAnalysisResult(page_groups=groups)


def _group_confidence(raw: RawPageGroup) -> float:
    value = raw.confidence
    if isinstance(value, (int, float)) and not isinstance(value, bool) and 0.0 <= value <= 1.0:
        return float(value)
    return TEXT_GROUP_CONFIDENCE


def _consecutive_runs(indices: List[int]) -> List[List[int]]:
    runs: List[List[int]] = []
    for index in indices:
        if runs and index == runs[-1][-1] + 1:
            runs[-1].append(index)
        else:
            runs.append([index])
    return runs


def assemble_from_partition(
    pages: Sequence[Page],
    partition: RawPartition
) -> PageAnalysisResult:
    """
    Build groups from the text classifier's proposed partition.

    The model's grouping is kept as proposed, with the repairs needed for a
    valid partition: a page claimed twice stays with its first group, emptied
    groups are dropped, and each run of pages the model left out (usually
    skipped container pages) becomes its own group.

    Raises:
        ValidationError: If the proposal names unknown pages, a group is not
            contiguous, or no group is proposed at all.
    """
    if not pages:
        return empty_result()

    positions = {page.page_number: i for i, page in enumerate(pages)}

    unknown = sorted({
        n for raw in partition.page_groups for n in raw.pages if n not in positions
    })
    if unknown:
        raise ValidationError(
            f"Text analysis referenced pages not in the document: {unknown}",
            {"unknown_pages": unknown},
        )

    claimed = set()
    proposals: List[Tuple[List[int], Optional[RawPageGroup]]] = []
    for raw in partition.page_groups:
        kept = []
        for number in raw.pages:
            if number in claimed:
                logger.warning(f"Page {number} appears in multiple groups, keeping first")
                continue
            claimed.add(number)
            kept.append(positions[number])

        if not kept:
            continue
        kept.sort()
        if kept[-1] - kept[0] + 1 != len(kept):
            raise ValidationError(
                f"Group has non-consecutive pages: {[pages[i].page_number for i in kept]}"
            )
        proposals.append((kept, raw))

    if not proposals:
        raise ValidationError("Text analysis proposed no page groups")

    unassigned = [i for i, page in enumerate(pages) if page.page_number not in claimed]
    for run in _consecutive_runs(unassigned):
        logger.info(
            f"Pages {[pages[i].page_number for i in run]} were not assigned, "
            f"keeping them as a separate group"
        )
        proposals.append((run, None))

    proposals.sort(key=lambda proposal: proposal[0][0])

    groups = []
    for number, (indices, raw) in enumerate(proposals, 1):
        if raw is None:
            confidence, reasoning = UNASSIGNED_CONFIDENCE, UNASSIGNED_REASONING
        else:
            confidence = _group_confidence(raw)
            reasoning = raw.reasoning or TEXT_GROUP_REASONING
        groups.append(_build_group(number, [pages[i] for i in indices], confidence, reasoning))

    if partition.total_invoices != len(groups):
        logger.debug(
            f"Model reported {partition.total_invoices} invoices, assembled {len(groups)}"
        )
    return PageAnalysisResult(page_groups=groups)


def validate_partition(result: PageAnalysisResult, page_numbers: Sequence[int]) -> List[str]:
    """
    List every structural problem of a result against the input pages.

    An empty list means the result is a valid partition: each input page in
    exactly one group, groups contiguous in input order and numbered from 1.
    """
    issues = []
    positions = {n: i for i, n in enumerate(page_numbers)}

    if result.total_invoices != len(result.page_groups):
        issues.append(
            f"totalInvoices ({result.total_invoices}) != pageGroups count "
            f"({len(result.page_groups)})"
        )
    if bool(result.page_groups) != bool(page_numbers):
        issues.append("Groups must be empty exactly when the document has no pages")

    seen = set()
    duplicates = set()
    for group in result.page_groups:
        for n in group.pages:
            if n in seen:
                duplicates.add(n)
            seen.add(n)
    if duplicates:
        issues.append(f"Pages appear in multiple groups: {sorted(duplicates)}")

    missing = sorted(set(page_numbers) - seen)
    if missing:
        issues.append(f"Pages missing from all groups: {missing}")
    unknown = sorted(seen - set(page_numbers))
    if unknown:
        issues.append(f"Pages not in the document: {unknown}")

    previous_start = -1
    for expected, group in enumerate(result.page_groups, 1):
        if group.invoice_number != expected:
            issues.append(f"Group {expected} is numbered {group.invoice_number}")
        indices = [positions[n] for n in group.pages if n in positions]
        if indices and indices != list(range(indices[0], indices[0] + len(indices))):
            issues.append(f"Group {expected} has non-consecutive pages: {group.pages}")
        if indices:
            if indices[0] <= previous_start:
                issues.append(f"Group {expected} is out of order")
            previous_start = indices[0]

    return issues
