"""
Normalisation of raw model responses.

Providers hand back message content either as a plain string or as a list of
content blocks (``[{"type": "text", "text": "..."}]``). Both are tagged here
once, so call sites only ever deal with a normalised string.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from .exceptions import MalformedResponseError


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class Blocks:
    blocks: List[Dict[str, Any]]


ResponseContent = Union[PlainText, Blocks]

# ws* [ "```" ["json"] ws* ] body [ ws* "```" ] ws*
FENCED_JSON_PATTERN = re.compile(
    r"^\s*(?:```(?:json)?[ \t]*\r?\n?)?(?P<body>.*?)(?:\s*```)?\s*$",
    re.DOTALL | re.IGNORECASE,
)


def to_response_content(raw: Any) -> ResponseContent:
    """Tag a raw provider value as plain text or a list of blocks."""
    if isinstance(raw, (PlainText, Blocks)):
        return raw
    if isinstance(raw, str):
        return PlainText(raw)
    if isinstance(raw, list):
        return Blocks([b if isinstance(b, dict) else {"type": "unknown", "value": b} for b in raw])
    if raw is None:
        return PlainText("")
    if isinstance(raw, dict):
        return Blocks([raw])
    return PlainText(str(raw))


def extract_text(content: ResponseContent) -> str:
    """Collapse tagged content into one string."""
    if isinstance(content, PlainText):
        return content.text

    texts = [
        block["text"]
        for block in content.blocks
        if block.get("type") == "text" and isinstance(block.get("text"), str)
    ]
    if texts:
        return "\n".join(texts)
    # No text blocks; keep whatever the provider sent so parsing can report it
    return json.dumps(content.blocks, default=str)


def response_text(raw: Any) -> str:
    return extract_text(to_response_content(raw))


def strip_code_fence(text: str) -> str:
    match = FENCED_JSON_PATTERN.match(text)
    return match.group("body") if match else text.strip()


def parse_json_response(text: str) -> Dict[str, Any]:
    """
    Decode a model response into a JSON object.

    Accepts an optional surrounding markdown fence with an optional ``json``
    tag. Anything else around the object is a malformed response.

    Raises:
        MalformedResponseError: If the body is not a JSON object.
    """
    body = strip_code_fence(text)
    if not body:
        raise MalformedResponseError("empty response")

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"invalid JSON ({e.msg})", body[:200]) from e

    if not isinstance(parsed, dict):
        raise MalformedResponseError(
            f"expected a JSON object, got {type(parsed).__name__}", body[:200]
        )
    return parsed
