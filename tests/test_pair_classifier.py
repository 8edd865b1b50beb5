"""Tests for pairwise boundary classification."""

import json
from unittest.mock import Mock

import pytest

from invoice_splitter.exceptions import ModelInvocationError
from invoice_splitter.llm import ImageInput
from invoice_splitter.models import Page
from invoice_splitter.pair_classifier import PairBoundaryClassifier
from invoice_splitter.prompts import PAIR_SYSTEM_PROMPT

from conftest import FAKE_IMAGE


@pytest.fixture
def capability():
    """Mock capability answering 'different document' with high confidence."""
    mock = Mock()
    answer = json.dumps({"sameDocument": False, "confidence": 0.85, "reasoning": "new header"})
    mock.chat.return_value = answer
    mock.chat_with_vision.return_value = answer
    return mock


@pytest.fixture
def text_pair():
    return (
        Page(page_number=3, content="CAFE ROMA\nReceipt #1001\nTOTAL 5.00"),
        Page(page_number=4, content="CITY TAXI\nFare receipt 88812\nTOTAL 23.40"),
    )


@pytest.fixture
def image_pair():
    return (
        Page(page_number=1, content="GRAND HOTEL\nInvoice No. 2024-118", image=FAKE_IMAGE),
        Page(page_number=2, content="City tax 6.00\nTOTAL 306.00", image=FAKE_IMAGE,
             image_media_type="image/jpeg"),
    )


class TestPairBoundaryClassifier:
    """Test cases for PairBoundaryClassifier."""

    def test_vision_call_when_both_pages_have_images(self, capability, image_pair):
        """Two imaged pages go through one vision call with both images."""
        classifier = PairBoundaryClassifier(capability)

        decision = classifier.compare(*image_pair)

        capability.chat.assert_not_called()
        capability.chat_with_vision.assert_called_once()
        prompt, images, system_prompt = capability.chat_with_vision.call_args.args
        assert images == [
            ImageInput(FAKE_IMAGE, "image/png"),
            ImageInput(FAKE_IMAGE, "image/jpeg"),
        ]
        assert system_prompt == PAIR_SYSTEM_PROMPT
        assert "GRAND HOTEL" in prompt
        assert "City tax 6.00" in prompt
        assert "first image = page 1" in prompt

        assert decision.same_document is False
        assert decision.confidence == 0.85
        assert decision.reasoning == "new header"
        assert decision.page_a_index == 0
        assert decision.page_b_index == 1
        assert decision.failed is False

    def test_text_call_when_an_image_is_missing(self, capability, image_pair, text_pair):
        """A pair with a missing image uses the text-only call."""
        classifier = PairBoundaryClassifier(capability)
        page_without_image = Page(page_number=2, content="City tax 6.00")

        classifier.compare(image_pair[0], page_without_image)

        capability.chat_with_vision.assert_not_called()
        messages = capability.chat.call_args.args[0]
        assert [m["role"] for m in messages] == ["system", "user"]
        assert "City tax 6.00" in messages[1]["content"]
        assert "first image" not in messages[1]["content"]

    def test_explicit_indices(self, capability, text_pair):
        """Caller-supplied indices are carried into the decision."""
        decision = PairBoundaryClassifier(capability).compare(*text_pair, index_a=5, index_b=6)

        assert (decision.page_a_index, decision.page_b_index) == (5, 6)

    def test_excerpts_are_truncated(self, capability):
        """Only the configured prefix of each page is sent."""
        classifier = PairBoundaryClassifier(capability, excerpt_chars=1000)
        page_a = Page(page_number=1, content="A" * 1500)
        page_b = Page(page_number=2, content="B" * 1500)

        classifier.compare(page_a, page_b)

        prompt = capability.chat.call_args.args[0][1]["content"]
        assert "A" * 1000 in prompt
        assert "A" * 1001 not in prompt
        assert "B" * 1001 not in prompt

    def test_missing_fields_use_defaults(self, capability, text_pair):
        """An empty object means same document at 0.5 with no reasoning."""
        capability.chat.return_value = "{}"

        decision = PairBoundaryClassifier(capability).compare(*text_pair)

        assert decision.same_document is True
        assert decision.confidence == 0.5
        assert decision.reasoning == ""
        assert decision.failed is False

    def test_fenced_response(self, capability, text_pair):
        """Markdown-fenced JSON is accepted."""
        capability.chat.return_value = (
            '```json\n{"sameDocument": true, "confidence": 0.95, "reasoning": "page 2 of 2"}\n```'
        )

        decision = PairBoundaryClassifier(capability).compare(*text_pair)

        assert decision.same_document is True
        assert decision.confidence == 0.95

    def test_content_blocks_response(self, capability, text_pair):
        """List-of-blocks content is normalised before parsing."""
        capability.chat.return_value = [
            {"type": "text", "text": '{"sameDocument": false, "confidence": 0.7}'}
        ]

        decision = PairBoundaryClassifier(capability).compare(*text_pair)

        assert decision.same_document is False
        assert decision.confidence == 0.7

    def test_string_boolean_is_accepted(self, capability, text_pair):
        """'false' as a string is read as False."""
        capability.chat.return_value = '{"sameDocument": "false", "confidence": "0.9"}'

        decision = PairBoundaryClassifier(capability).compare(*text_pair)

        assert decision.same_document is False
        assert decision.confidence == 0.9

    def test_invocation_error_gives_conservative_merge(self, capability, text_pair):
        """A failing model call never escapes and keeps the pages together."""
        capability.chat.side_effect = ModelInvocationError("chat", "connection refused")

        decision = PairBoundaryClassifier(capability).compare(*text_pair)

        assert decision.same_document is True
        assert decision.confidence == 0.3
        assert decision.reasoning == "Comparison failed"
        assert decision.failed is True
        assert decision.call_failed is True
        assert decision.call_error is capability.chat.side_effect
        assert "connection refused" in decision.error
        assert "callError" not in decision.model_dump(by_alias=True)

    def test_unexpected_error_gives_conservative_merge(self, capability, image_pair):
        """Arbitrary runtime errors are recovered the same way."""
        capability.chat_with_vision.side_effect = RuntimeError("boom")

        decision = PairBoundaryClassifier(capability).compare(*image_pair)

        assert decision.same_document is True
        assert decision.confidence == 0.3
        assert decision.error == "boom"
        assert decision.call_failed is True

    @pytest.mark.parametrize("response", [
        "not json at all",
        '{"sameDocument": false, "confidence": 1.7}',
        '{"sameDocument": false, "confidence": "high"}',
        '{"sameDocument": "maybe", "confidence": 0.9}',
        "[true, 0.9]",
    ])
    def test_bad_responses_give_conservative_merge(self, capability, text_pair, response):
        """Unparseable or out-of-contract answers fall back to a merge."""
        capability.chat.return_value = response

        decision = PairBoundaryClassifier(capability).compare(*text_pair)

        assert decision.same_document is True
        assert decision.confidence == 0.3
        assert decision.reasoning == "Comparison failed"
        assert decision.failed is True
        assert decision.call_failed is False
