"""Tagged union over the shapes a remote agent may answer a stream request with.

The classifier checks shapes in a fixed priority order and the first match
wins:

1. ``DATA_STREAM``   - object exposing ``process_data_stream`` callbacks
2. ``BYTE_STREAM``   - object whose ``body`` yields raw bytes
3. ``PLAIN_TEXT``    - a ``str``
4. ``TEXT_FIELD``    - object or mapping with a truthy ``text``
5. ``CONTENT_FIELD`` - object or mapping with a truthy ``content``
6. ``OPAQUE``        - anything else, serialized to JSON
"""

import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ReplyKind(Enum):
    """Shapes of a remote stream reply."""

    DATA_STREAM = "data_stream"
    BYTE_STREAM = "byte_stream"
    PLAIN_TEXT = "plain_text"
    TEXT_FIELD = "text_field"
    CONTENT_FIELD = "content_field"
    OPAQUE = "opaque"

    @property
    def is_incremental(self) -> bool:
        return self in (ReplyKind.DATA_STREAM, ReplyKind.BYTE_STREAM)


@dataclass(frozen=True)
class RemoteReply:
    """A classified reply.

    For incremental kinds ``payload`` is the source to drain (the protocol
    object or the byte body). For every other kind it is the final text.
    """

    kind: ReplyKind
    payload: Any


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return to_json(value)


def to_json(value: Any) -> str:
    """Serialize an arbitrary reply for display."""
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def _is_byte_element(value: Any) -> bool:
    if isinstance(value, str | bytes | bytearray | memoryview):
        return True
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 255


def _is_byte_source(body: Any) -> bool:
    if isinstance(body, bytes | bytearray | memoryview):
        return True
    if isinstance(body, str | Mapping):
        return False
    # Materialized sequences are checked up front; iterators are checked as they are read
    if isinstance(body, Sequence):
        return all(_is_byte_element(item) for item in body)
    return hasattr(body, "__aiter__") or hasattr(body, "__iter__")


def _match_data_stream(raw: Any) -> RemoteReply | None:
    if callable(getattr(raw, "process_data_stream", None)):
        return RemoteReply(ReplyKind.DATA_STREAM, raw)
    return None


def _match_byte_stream(raw: Any) -> RemoteReply | None:
    if isinstance(raw, str):
        return None
    body = _field(raw, "body")
    if body is not None and _is_byte_source(body):
        return RemoteReply(ReplyKind.BYTE_STREAM, body)
    return None


def _match_plain_text(raw: Any) -> RemoteReply | None:
    if isinstance(raw, str):
        return RemoteReply(ReplyKind.PLAIN_TEXT, raw)
    return None


def _match_text_field(raw: Any) -> RemoteReply | None:
    text = _field(raw, "text")
    if text:
        return RemoteReply(ReplyKind.TEXT_FIELD, _as_text(text))
    return None


def _match_content_field(raw: Any) -> RemoteReply | None:
    content = _field(raw, "content")
    if content:
        return RemoteReply(ReplyKind.CONTENT_FIELD, _as_text(content))
    return None


def _match_opaque(raw: Any) -> RemoteReply:
    return RemoteReply(ReplyKind.OPAQUE, to_json(raw))


REPLY_MATCHERS: tuple[Callable[[Any], RemoteReply | None], ...] = (
    _match_data_stream,
    _match_byte_stream,
    _match_plain_text,
    _match_text_field,
    _match_content_field,
    _match_opaque,
)


def classify_reply(raw: Any) -> RemoteReply | None:
    """
    Classify a stream reply.

    Args:
        raw: Whatever the remote stream primitive returned

    Returns:
        The first matching shape, or None when the reply carries nothing usable
    """
    if raw is None or (isinstance(raw, str | bytes) and not raw):
        return None

    for matcher in REPLY_MATCHERS:
        reply = matcher(raw)
        if reply is not None:
            return reply

    return None


def normalize_generate_result(raw: Any) -> str:
    """Text of a non-streaming reply: the string itself, its ``text``, or JSON."""
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    text = _field(raw, "text")
    if text:
        return _as_text(text)
    return to_json(raw)
