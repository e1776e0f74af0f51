"""
Normalization of provider response bodies into a single reply string.

Provider payloads come in several shapes depending on the API flavour and
version. Each shape is handled by a named strategy that returns the text it
found or None; strategies run in a fixed order and the first non-blank
result wins.
"""

import json
import logging
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

ExtractionStrategy = Callable[[Any], Optional[str]]

EMPTY_RESPONSE_MESSAGE = "応答テキストを取得できませんでした（レスポンスが空です）"
FALLBACK_HEADER = "【応答テキストを取得できませんでした。生レスポンス（抜粋）】"
FALLBACK_DUMP_CHARS = 2000


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def _join(texts: List[str]) -> Optional[str]:
    joined = "\n".join(t for t in texts if t)
    return joined if joined.strip() else None


def _part_text(part: Any) -> Optional[str]:
    """Text of a content part given as {'text': str} or {'text': {'value': str}}."""
    text = _get(part, "text")
    value = _get(text, "value")
    if isinstance(value, str):
        return value
    if isinstance(text, str):
        return text
    return None


def _content_texts(content: Any) -> Optional[str]:
    if not isinstance(content, list):
        return None
    return _join([t for t in (_part_text(c) for c in content) if t])


def from_output_message(data: Any) -> Optional[str]:
    """output[] entry with type 'message' -> its output_text parts."""
    output = _get(data, "output")
    if not isinstance(output, list):
        return None
    message = next((item for item in output if _get(item, "type") == "message"), None)
    content = _get(message, "content")
    if not isinstance(content, list):
        return None
    texts = [
        part["text"]
        for part in content
        if _get(part, "type") == "output_text" and isinstance(part.get("text"), str)
    ]
    return _join(texts)


def from_output_text(data: Any) -> Optional[str]:
    """Top-level output_text convenience string."""
    text = _get(data, "output_text")
    return text if isinstance(text, str) and text.strip() else None


def from_output_message_content(data: Any) -> Optional[str]:
    """output.message.content[] when output is an object."""
    return _content_texts(_get(_get(_get(data, "output"), "message"), "content"))


def from_first_output_content(data: Any) -> Optional[str]:
    """output[0].content[] regardless of the item type."""
    output = _get(data, "output")
    if not isinstance(output, list) or not output:
        return None
    return _content_texts(_get(output[0], "content"))


def from_chat_choices(data: Any) -> Optional[str]:
    """Chat Completions choices[0].message.content."""
    choices = _get(data, "choices")
    if not isinstance(choices, list) or not choices:
        return None
    content = _get(_get(choices[0], "message"), "content")
    return content if isinstance(content, str) and content.strip() else None


STRATEGIES: List[Tuple[str, ExtractionStrategy]] = [
    ("output_message", from_output_message),
    ("output_text", from_output_text),
    ("output_message_content", from_output_message_content),
    ("first_output_content", from_first_output_content),
    ("chat_choices", from_chat_choices),
]


def extract_reply_text(data: Any) -> Optional[str]:
    """Run the strategies in order and return the first hit, or None."""
    for name, strategy in STRATEGIES:
        text = strategy(data)
        if text is not None and text.strip():
            logger.debug("Reply extracted with strategy %s (%d chars)", name, len(text))
            return text
    return None


def fallback_reply(data: Any) -> str:
    """Diagnostic reply carrying the start of the raw JSON."""
    dump = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    return f"{FALLBACK_HEADER}\n{dump[:FALLBACK_DUMP_CHARS]}\n"


def is_empty_body(data: Any) -> bool:
    """True for null, false, 0 and "". Empty objects and arrays are not empty bodies."""
    if isinstance(data, (dict, list)):
        return False
    return not data


def normalize_reply(data: Any) -> str:
    """Turn any decoded provider body into reply text. Never raises."""
    if is_empty_body(data):
        return EMPTY_RESPONSE_MESSAGE
    text = extract_reply_text(data)
    if text is None:
        logger.warning("No reply text found in provider response, returning raw dump")
        return fallback_reply(data)
    return text
