"""Incremental reader for the agent server's streaming response.

The server frames every part on its own line. Two framings are understood:

- data stream protocol: ``<code>:<json>`` where ``0`` is a text part, ``3`` an
  error part and ``d`` the finish part;
- server-sent events: ``data: {"type": "text-delta", ...}`` terminated by
  ``data: [DONE]``.

Any other part is ignored.
"""

import inspect
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from mastra_chat.domain.exceptions import StreamTransportError

logger = logging.getLogger(__name__)

TEXT_PART = "text"
ERROR_PART = "error"
FINISH_PART = "finish"

_DATA_STREAM_CODES = {
    "0": TEXT_PART,
    "3": ERROR_PART,
    "d": FINISH_PART,
}

_SSE_TYPES = {
    "text-delta": TEXT_PART,
    "text": TEXT_PART,
    "error": ERROR_PART,
    "finish": FINISH_PART,
}


@dataclass(frozen=True)
class StreamPart:
    """One decoded part of the stream."""

    kind: str
    value: Any


def _sse_text(payload: dict[str, Any]) -> Any:
    for key in ("textDelta", "delta", "text"):
        if key in payload:
            return payload[key]
    inner = payload.get("payload")
    if isinstance(inner, dict):
        return _sse_text(inner)
    return ""


def parse_stream_line(line: str) -> StreamPart | None:
    """
    Decode a single line of the stream.

    Args:
        line: Raw line without its terminator

    Returns:
        The decoded part, or None for blank, unknown or undecodable lines
    """
    line = line.strip()
    if not line:
        return None

    if line.startswith("data:"):
        data = line[5:].strip()
        if not data or data == "[DONE]":
            return None
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.debug(f"Skipping undecodable event: {data[:80]}")
            return None
        if not isinstance(payload, dict):
            return None
        kind = _SSE_TYPES.get(str(payload.get("type", "")))
        if kind is None:
            return None
        if kind == TEXT_PART:
            return StreamPart(kind, _sse_text(payload))
        if kind == ERROR_PART:
            return StreamPart(kind, payload.get("error", payload))
        return StreamPart(kind, payload)

    code, sep, raw = line.partition(":")
    if not sep:
        logger.debug(f"Skipping unframed line: {line[:80]}")
        return None
    kind = _DATA_STREAM_CODES.get(code)
    if kind is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug(f"Skipping undecodable {kind} part: {raw[:80]}")
        return None
    return StreamPart(kind, value)


async def _invoke(callback: Callable[[Any], Any] | None, value: Any) -> None:
    if callback is None:
        return
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class DataStreamResponse:
    """Open streaming response that dispatches parts to callbacks."""

    def __init__(self, response: httpx.Response, client: httpx.AsyncClient | None = None):
        self._response = response
        self._client = client
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    async def process_data_stream(
        self,
        on_text_part: Callable[[str], Any],
        on_error_part: Callable[[Any], Any] | None = None,
        on_finish_part: Callable[[Any], Any] | None = None,
    ) -> None:
        """
        Read the stream to the end, dispatching each part in arrival order.

        Args:
            on_text_part: Called with every text fragment
            on_error_part: Called with every error part
            on_finish_part: Called with the finish part, if the server sends one

        Raises:
            StreamTransportError: If the connection breaks mid-stream
        """
        try:
            async for line in self._response.aiter_lines():
                part = parse_stream_line(line)
                if part is None:
                    continue
                if part.kind == TEXT_PART:
                    await _invoke(on_text_part, part.value if isinstance(part.value, str) else str(part.value))
                elif part.kind == ERROR_PART:
                    await _invoke(on_error_part, part.value)
                elif part.kind == FINISH_PART:
                    await _invoke(on_finish_part, part.value)
        except (httpx.TransportError, httpx.StreamError) as e:
            raise StreamTransportError(f"Stream interrupted: {e}") from e
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Close the response and the client that opened it."""
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        if self._client is not None:
            await self._client.aclose()
