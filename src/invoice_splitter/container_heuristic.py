"""
Detection of expense-report container pages.

Exported expense reports (Expensify and similar) wrap the actual receipts in
summary pages carrying report-level metadata. Those signals are usually
spread over a whole container section, so detection runs on the joined text
of a page group rather than on single pages.
"""

import re
from typing import Iterable

from .models import ContainerDetection, Page, PageGroup

# Minimum number of distinct indicators for a positive detection
MIN_INDICATORS = 2
# Indicator count that maps to full confidence
FULL_CONFIDENCE_INDICATORS = 5
BASELINE_CONFIDENCE = 0.1

CONTAINER_PATTERNS = {
    "Expensify brand mention": re.compile(r"expensify", re.IGNORECASE),
    "Expensify domain": re.compile(r"expensify\.com", re.IGNORECASE),
    "Created timestamp (UTC)": re.compile(r"created:[^\n]*\butc\b", re.IGNORECASE),
    "Submitted timestamp (UTC)": re.compile(r"submitted:[^\n]*\butc\b", re.IGNORECASE),
    "Approval record": re.compile(r"approved[^\n]*\butc\b|approved\s+by", re.IGNORECASE),
    "Export target": re.compile(r"exported\s+to\s+\S+", re.IGNORECASE),
    # Report IDs are case-sensitive: "R00" plus at least five alphanumerics
    "Report ID": re.compile(r"\bR00[A-Za-z0-9]{5,}\b"),
    "Expense report phrase": re.compile(r"expense\s+report", re.IGNORECASE),
    "Receipt thumbnails": re.compile(
        r"thumbnails?|receipt\s+preview|image\s+preview", re.IGNORECASE
    ),
}


def detect_container(text: str) -> ContainerDetection:
    """
    Score text against known export-container signatures.

    Each pattern counts at most once. Two or more indicators flag the text as
    an export; confidence then scales with the count, otherwise it stays at a
    small non-zero baseline to show the check ran.
    """
    text = text or ""
    indicators = [
        name for name, pattern in CONTAINER_PATTERNS.items()
        if pattern.search(text)
    ]
    count = len(indicators)

    if count >= MIN_INDICATORS:
        return ContainerDetection(
            is_expensify_export=True,
            expensify_confidence=min(count / FULL_CONFIDENCE_INDICATORS, 1.0),
            expensify_reason=(
                f"Found {count} expense report export indicators: "
                f"{', '.join(indicators)}"
            ),
            expensify_indicators=indicators,
        )

    return ContainerDetection(
        is_expensify_export=False,
        expensify_confidence=BASELINE_CONFIDENCE,
        expensify_indicators=indicators,
    )


def group_text(pages: Iterable[Page]) -> str:
    return "\n\n".join(page.content for page in pages)


def annotate_group(group: PageGroup, pages: Iterable[Page]) -> PageGroup:
    """Return a copy of the group carrying the container detection for its pages."""
    detection = detect_container(group_text(pages))
    return group.model_copy(update=detection.model_dump())
