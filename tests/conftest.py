"""Shared fixtures and test doubles for the splitter tests."""

import base64
import json
import re
from typing import Any, Dict, List, Optional, Tuple

import pytest

from invoice_splitter.models import Page
from invoice_splitter.prompts import PromptLibrary

PAIR_PAGE_PATTERN = re.compile(r"PAGE (\d+) \(excerpt\)")

FAKE_IMAGE = base64.b64encode(b"\x89PNG fake page image").decode("ascii")

RECEIPT_TEXTS = [
    "CAFE ROMA\nReceipt #1001\n2x Espresso 5.00\nTOTAL 5.00\nPaid by card",
    "GRAND HOTEL\nInvoice No. 2024-118\nRoom 412, 2 nights\nSubtotal 300.00",
    "GRAND HOTEL\nInvoice No. 2024-118 (continued)\nCity tax 6.00\nTOTAL 306.00",
    "CITY TAXI\nFare receipt 88812\nTOTAL 23.40",
    "BOOKSTORE\nOrder #A-77\nTOTAL 19.99",
    "PHARMACY\nReceipt 5521\nTOTAL 8.10",
]


def make_pages(count: int, with_images: bool = False, contents: Optional[List[str]] = None) -> List[Page]:
    """Build ``count`` pages numbered from 1."""
    pages = []
    for i in range(count):
        if contents is not None:
            content = contents[i]
        else:
            content = RECEIPT_TEXTS[i % len(RECEIPT_TEXTS)]
        pages.append(
            Page(
                page_number=i + 1,
                content=content,
                image=FAKE_IMAGE if with_images else None,
            )
        )
    return pages


class ScriptedCapability:
    """
    Capability double driven by a script.

    Pair comparisons are answered from ``pair_answers`` keyed by the two page
    numbers found in the prompt; batch requests get ``batch_answer``. Any
    configured ``error`` is raised on every call.
    """

    DEFAULT_PAIR_ANSWER = {"sameDocument": True, "confidence": 0.9, "reasoning": "continuation"}

    def __init__(
        self,
        pair_answers: Optional[Dict[Tuple[int, int], Any]] = None,
        batch_answer: Any = None,
        error: Optional[Exception] = None
    ):
        self.pair_answers = pair_answers or {}
        self.batch_answer = batch_answer
        self.error = error
        self.calls: List[Tuple[str, Any]] = []
        self.prompts = PromptLibrary()

    def chat(self, messages):
        self.calls.append(("chat", messages))
        if self.error:
            raise self.error
        pair = self._pair_in(messages[-1]["content"])
        if pair:
            return self._encode(self.pair_answers.get(pair, self.DEFAULT_PAIR_ANSWER))
        return self._encode(self.batch_answer)

    def chat_with_vision(self, prompt, images, system_prompt=None):
        self.calls.append(("chat_with_vision", prompt))
        if self.error:
            raise self.error
        pair = self._pair_in(prompt)
        return self._encode(self.pair_answers.get(pair, self.DEFAULT_PAIR_ANSWER))

    def prompt_template(self, name, variables):
        return self.prompts.render(name, variables)

    @property
    def compared_pairs(self) -> List[Tuple[int, int]]:
        pairs = []
        for kind, payload in self.calls:
            text = payload if kind == "chat_with_vision" else payload[-1]["content"]
            pair = self._pair_in(text)
            if pair:
                pairs.append(pair)
        return pairs

    @staticmethod
    def _pair_in(text: str) -> Optional[Tuple[int, int]]:
        numbers = [int(n) for n in PAIR_PAGE_PATTERN.findall(text)]
        if len(numbers) == 2:
            return numbers[0], numbers[1]
        return None

    @staticmethod
    def _encode(answer: Any) -> Any:
        if isinstance(answer, (dict, list)) and not (
            isinstance(answer, list) and answer and isinstance(answer[0], dict) and "type" in answer[0]
        ):
            return json.dumps(answer)
        return answer


def different(confidence: float) -> Dict[str, Any]:
    return {"sameDocument": False, "confidence": confidence, "reasoning": "new receipt header"}


def same(confidence: float) -> Dict[str, Any]:
    return {"sameDocument": True, "confidence": confidence, "reasoning": "continued totals"}


@pytest.fixture
def receipt_pages():
    """Four text-only receipt pages."""
    return make_pages(4)


@pytest.fixture
def image_pages():
    """Four pages that all carry an image."""
    return make_pages(4, with_images=True)
