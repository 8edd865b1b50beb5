"""
Single-call text classification of a whole document.

Used when no page image is available: every page's (truncated) text goes to
the model in one request and the model proposes the full partition. Nothing
is recovered here; errors propagate to the orchestrator's fallback.
"""

import logging
from typing import Any, Dict, List

from .exceptions import MalformedResponseError
from .llm import ModelCapability
from .models import Page, RawPageGroup, RawPartition
from .prompts import BATCH_SYSTEM_PROMPT
from .responses import parse_json_response, response_text

logger = logging.getLogger(__name__)

USER_PROMPT_NAME = "document-splitter-user-prompt"
TRUNCATION_MARKER = "..."


def build_pages_content(pages: List[Page], max_chars: int) -> str:
    """Join page texts under ``=== PAGE n ===`` headers, truncating each page."""
    sections = []
    for page in pages:
        content = page.content[:max_chars]
        suffix = TRUNCATION_MARKER if len(page.content) > max_chars else ""
        sections.append(f"=== PAGE {page.page_number} ===\n{content}{suffix}\n")
    return "\n".join(sections)


def _parse_group(entry: Any, position: int) -> RawPageGroup:
    if not isinstance(entry, dict):
        raise MalformedResponseError(f"pageGroups[{position}] is not an object")

    pages = entry.get("pages")
    if not isinstance(pages, list) or not all(
        isinstance(p, int) and not isinstance(p, bool) for p in pages
    ):
        raise MalformedResponseError(f"pageGroups[{position}].pages is not a list of integers")

    reasoning = entry.get("reasoning")
    return RawPageGroup(
        pages=pages,
        invoice_number=entry.get("invoiceNumber"),
        confidence=entry.get("confidence"),
        reasoning=reasoning if isinstance(reasoning, str) else None,
    )


def partition_from_payload(payload: Dict[str, Any]) -> RawPartition:
    """
    Check the response shape and convert it to a ``RawPartition``.

    Raises:
        MalformedResponseError: If ``totalInvoices`` is missing or falsy, or
            ``pageGroups`` is not a list of well-formed group objects.
    """
    if not payload.get("totalInvoices") or not isinstance(payload.get("pageGroups"), list):
        raise MalformedResponseError("Invalid response structure from LLM")

    groups = [_parse_group(entry, i) for i, entry in enumerate(payload["pageGroups"])]
    return RawPartition(total_invoices=payload["totalInvoices"], page_groups=groups)


class BatchTextClassifier:
    """Proposes a complete partition from page text in one model call."""

    def __init__(self, capability: ModelCapability, page_chars: int = 2000):
        self.capability = capability
        self.page_chars = page_chars

    def classify(self, pages: List[Page]) -> RawPartition:
        pages_content = build_pages_content(pages, self.page_chars)
        user_content = self.capability.prompt_template(
            USER_PROMPT_NAME, {"pagesContent": pages_content}
        )

        raw = self.capability.chat([
            {"role": "system", "content": BATCH_SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ])

        text = response_text(raw)
        logger.debug(f"Raw response: {text[:300]}...")

        partition = partition_from_payload(parse_json_response(text))
        logger.info(
            f"Text analysis proposed {partition.total_invoices} invoices "
            f"in {len(partition.page_groups)} groups"
        )
        return partition
