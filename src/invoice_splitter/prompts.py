"""
Prompts for invoice boundary detection.

Pair prompts are plain ``str.format`` templates. Templates served through
``PromptLibrary`` use ``{{variable}}`` placeholders so that literal JSON
braces in the prompt body need no escaping.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .exceptions import PromptNotFoundError

logger = logging.getLogger(__name__)


PAIR_SYSTEM_PROMPT = (
    "You compare two consecutive pages of a scanned expense document and decide "
    "whether they belong to the SAME receipt/invoice or to DIFFERENT ones. "
    "Always respond with valid JSON only - no explanations or markdown formatting."
)

PAIR_COMPARISON_PROMPT = """Do these two consecutive pages belong to the same document?

PAGE {page_a_number} (excerpt):
{page_a_text}

---

PAGE {page_b_number} (excerpt):
{page_b_text}

{image_note}
DECISION CRITERIA:
- SAME document if: same transaction ID, continuation markers ("continued", "page 2 of 3"), totals building across pages, same merchant layout with no new header
- DIFFERENT document if: different transaction IDs, a new merchant header, a complete transaction (with total) already on the first page followed by a new one
- A shared expense report number or container header is NOT evidence of the same document

Respond with JSON:
{{
  "sameDocument": true or false,
  "confidence": 0.0-1.0,
  "reasoning": "brief explanation"
}}"""

VISION_IMAGE_NOTE = (
    "The page images are attached in the same order (first image = page {page_a_number}, "
    "second image = page {page_b_number}). Use layout, logos and headers as well as the text.\n"
)

BATCH_SYSTEM_PROMPT = """You are an expert document analyst specializing in individual receipt/invoice identification. Your primary expertise is detecting separate transactions within document containers and avoiding incorrect grouping.

CORE PRINCIPLE: Distinguish between DOCUMENT CONTAINERS and INDIVIDUAL TRANSACTIONS.

CRITICAL UNDERSTANDING:
- Document containers (expense reports, compilations) hold multiple separate transactions
- Container headers like "Nota spese n° 107" or "Expense Report #123" are NOT transaction identifiers
- Look for TRANSACTION-LEVEL identifiers within each page (receipt numbers, transaction times, totals)
- Each complete transaction should be treated as a separate receipt, regardless of container

CONTAINER PAGES:
- Expense report export pages show signals such as "Created: ... UTC", "Submitted: ... UTC", "Approved by", "Exported to", report IDs like "R00xxxxx", the phrase "expense report", or receipt thumbnails
- Skip pages that match 3 or more of these signals; they are not receipts

Your analysis should be precise and methodical:
1. IGNORE document-level headers and focus on transaction-level details
2. Look for complete transaction cycles on individual pages
3. Identify unique transaction markers (receipt numbers, transaction times, totals, payment methods)
4. Separate receipts even if they share the same expense report number or vendor
5. Only group pages when there's clear evidence of multi-page continuation of the SAME transaction
6. When in doubt, separate rather than group - it's better to over-split than under-split

CRITICAL: Container headers are NOT reasons to group transactions together.

Always respond with valid JSON only - no explanations or markdown formatting."""

DOCUMENT_SPLITTER_USER_PROMPT = """Analyze the following pages and identify every individual receipt or invoice.

{{pagesContent}}

Return a JSON object with this exact structure:
{
  "totalInvoices": <number of receipts/invoices found>,
  "pageGroups": [
    {
      "invoiceNumber": 1,
      "pages": [1, 2],
      "confidence": 0.0-1.0,
      "reasoning": "why these pages form one transaction"
    }
  ]
}

Rules:
- Each page number may appear in at most one group
- Pages inside a group must be consecutive
- totalInvoices must equal the number of pageGroups"""


@dataclass
class PromptTemplate:
    """A named prompt with ``{{variable}}`` placeholders."""

    name: str
    prompt: str
    version: int = 1

    PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

    def compile(self, variables: Optional[Dict[str, Any]] = None) -> str:
        """Replace placeholders; unknown ones are left untouched."""
        variables = variables or {}

        def substitute(match: "re.Match") -> str:
            key = match.group(1)
            if key in variables:
                return str(variables[key])
            return match.group(0)

        return self.PLACEHOLDER.sub(substitute, self.prompt)

    @property
    def variables(self) -> List[str]:
        return self.PLACEHOLDER.findall(self.prompt)


class PromptLibrary:
    """Library of prompt templates resolved by name."""

    TEMPLATES = {
        "document-splitter-user-prompt": PromptTemplate(
            name="document-splitter-user-prompt",
            prompt=DOCUMENT_SPLITTER_USER_PROMPT,
        ),
    }

    def __init__(self, templates: Optional[Dict[str, PromptTemplate]] = None):
        self.templates = dict(self.TEMPLATES)
        if templates:
            self.templates.update(templates)

    def get(self, name: str) -> PromptTemplate:
        template = self.templates.get(name)
        if template is None:
            raise PromptNotFoundError(name)
        return template

    def render(self, name: str, variables: Optional[Dict[str, Any]] = None) -> str:
        template = self.get(name)
        logger.debug(f"Rendering prompt {name} (version {template.version})")
        return template.compile(variables)
