"""
Pairwise boundary classification between adjacent pages.

Each adjacent pair is shown to the model (with both page images when they
exist) and the model decides whether the two pages belong to the same
document. Failures never leave this module: they become a low-confidence
"same document" decision, which the assembler will not split on.
"""

import logging
from typing import Any, Dict, Optional

from .exceptions import ValidationError
from .llm import ImageInput, ModelCapability
from .models import BoundaryDecision, Page
from .prompts import (
    PAIR_COMPARISON_PROMPT,
    PAIR_SYSTEM_PROMPT,
    VISION_IMAGE_NOTE,
)
from .responses import parse_json_response, response_text

logger = logging.getLogger(__name__)

FAILED_COMPARISON_CONFIDENCE = 0.3
FAILED_COMPARISON_REASONING = "Comparison failed"

DEFAULT_SAME_DOCUMENT = True
DEFAULT_CONFIDENCE = 0.5


def truncate_excerpt(text: str, limit: int) -> str:
    return (text or "")[:limit]


def coerce_same_document(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"sameDocument must be a boolean, got {value!r}")


def coerce_confidence(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"confidence must be a number, got {value!r}")
    try:
        confidence = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"confidence must be a number, got {value!r}") from e
    if not 0.0 <= confidence <= 1.0:
        raise ValidationError(f"confidence {confidence} is outside [0, 1]")
    return confidence


def decision_from_payload(
    payload: Dict[str, Any],
    index_a: int,
    index_b: int
) -> BoundaryDecision:
    """Build a decision from parsed JSON, filling in defaults for missing fields."""
    same = payload.get("sameDocument")
    confidence = payload.get("confidence")
    reasoning = payload.get("reasoning")

    return BoundaryDecision(
        page_a_index=index_a,
        page_b_index=index_b,
        same_document=DEFAULT_SAME_DOCUMENT if same is None else coerce_same_document(same),
        confidence=DEFAULT_CONFIDENCE if confidence is None else coerce_confidence(confidence),
        reasoning="" if reasoning is None else str(reasoning),
    )


class PairBoundaryClassifier:
    """Asks the model whether two adjacent pages belong to the same document."""

    def __init__(self, capability: ModelCapability, excerpt_chars: int = 1000):
        """
        Args:
            capability: Model provider
            excerpt_chars: Characters of each page's text shown to the model
        """
        self.capability = capability
        self.excerpt_chars = excerpt_chars

    def compare(
        self,
        page_a: Page,
        page_b: Page,
        index_a: Optional[int] = None,
        index_b: Optional[int] = None
    ) -> BoundaryDecision:
        """
        Compare two adjacent pages.

        ``index_a``/``index_b`` are the pages' positions in the input sequence
        and default to ``page_number - 1``. Adjacency is the caller's
        responsibility.
        """
        if index_a is None:
            index_a = page_a.page_number - 1
        if index_b is None:
            index_b = page_b.page_number - 1

        try:
            raw = self._request(page_a, page_b)
        except Exception as e:
            return self._failed_decision(page_a, page_b, index_a, index_b, e, call_error=e)

        try:
            text = response_text(raw)
            logger.debug(
                f"Pair {page_a.page_number}/{page_b.page_number} raw response: {text[:300]}"
            )
            decision = decision_from_payload(parse_json_response(text), index_a, index_b)
        except Exception as e:
            return self._failed_decision(page_a, page_b, index_a, index_b, e)

        logger.debug(
            f"Pages {page_a.page_number}/{page_b.page_number}: "
            f"same={decision.same_document} confidence={decision.confidence:.2f}"
        )
        return decision

    def _request(self, page_a: Page, page_b: Page) -> Any:
        use_vision = page_a.has_image and page_b.has_image
        prompt = self._build_prompt(page_a, page_b, use_vision)

        if use_vision:
            return self.capability.chat_with_vision(
                prompt,
                [
                    ImageInput(page_a.image, page_a.image_media_type),
                    ImageInput(page_b.image, page_b.image_media_type),
                ],
                PAIR_SYSTEM_PROMPT,
            )
        return self.capability.chat([
            {"role": "system", "content": PAIR_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ])

    def _failed_decision(
        self,
        page_a: Page,
        page_b: Page,
        index_a: int,
        index_b: int,
        error: Exception,
        call_error: Optional[Exception] = None
    ) -> BoundaryDecision:
        logger.warning(
            f"Comparison of pages {page_a.page_number} and {page_b.page_number} "
            f"failed, keeping them together: {error}"
        )
        return BoundaryDecision(
            page_a_index=index_a,
            page_b_index=index_b,
            same_document=True,
            confidence=FAILED_COMPARISON_CONFIDENCE,
            reasoning=FAILED_COMPARISON_REASONING,
            error=str(error) or type(error).__name__,
            call_error=call_error,
        )

    def _build_prompt(self, page_a: Page, page_b: Page, use_vision: bool) -> str:
        image_note = ""
        if use_vision:
            image_note = VISION_IMAGE_NOTE.format(
                page_a_number=page_a.page_number,
                page_b_number=page_b.page_number,
            )
        return PAIR_COMPARISON_PROMPT.format(
            page_a_number=page_a.page_number,
            page_a_text=truncate_excerpt(page_a.content, self.excerpt_chars),
            page_b_number=page_b.page_number,
            page_b_text=truncate_excerpt(page_b.content, self.excerpt_chars),
            image_note=image_note,
        )
