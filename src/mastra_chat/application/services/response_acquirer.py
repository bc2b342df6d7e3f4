"""Streaming-with-fallback acquisition of agent replies."""

import codecs
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any

from mastra_chat.domain.exceptions import FallbackError, StopChunkDelivery, StreamUnsupportedError
from mastra_chat.domain.interfaces import IAgentHandle
from mastra_chat.domain.models import (
    ChatTurn,
    Message,
    MessageRole,
    ReplyKind,
    StreamOutcome,
    classify_reply,
    normalize_generate_result,
)

from .connection_manager import ConnectionManager
from .message_factory import MessageFactory

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "Sorry, I couldn't process your request. Please try again."
EMPTY_RESPONSE_MESSAGE = "I'm sorry, I couldn't generate a response for your query."
NO_RESPONSE_BODY = "No response body"

ChunkCallback = Callable[[str], None]


class ChunkSink:
    """One-way delivery of text fragments to the caller.

    A callback that raises ``StopChunkDelivery`` is detached quietly; any other
    exception from the callback is logged and also detaches it. Either way the
    acquisition carries on.
    """

    def __init__(self, callback: ChunkCallback | None = None):
        self._callback = callback

    @property
    def attached(self) -> bool:
        return self._callback is not None

    def detach(self) -> None:
        self._callback = None

    def __call__(self, chunk: str) -> None:
        if self._callback is None:
            return
        try:
            self._callback(chunk)
        except StopChunkDelivery:
            logger.debug("Chunk receiver stopped listening")
            self._callback = None
        except Exception as e:
            logger.warning(f"Chunk receiver failed, detaching it: {e}")
            self._callback = None


class _Accumulator:
    """Collects forwarded fragments and records whether streaming produced any."""

    def __init__(self, sink: ChunkSink):
        self._sink = sink
        self._parts: list[str] = []
        self.streamed = False

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def forward(self, fragment: str) -> None:
        self.streamed = True
        if not fragment:
            return
        self._parts.append(fragment)
        self._sink(fragment)


def _to_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    if isinstance(chunk, bytes | bytearray | memoryview):
        return bytes(chunk)
    if isinstance(chunk, int) and not isinstance(chunk, bool) and 0 <= chunk <= 255:
        return bytes([chunk])
    raise TypeError(f"Unsupported element in response body: {type(chunk).__name__}")


async def _iterate_bytes(body: Any) -> AsyncIterator[bytes]:
    if isinstance(body, bytes | bytearray | memoryview):
        yield bytes(body)
        return
    if hasattr(body, "__aiter__"):
        async for chunk in body:
            yield _to_bytes(chunk)
        return
    for chunk in body:
        yield _to_bytes(chunk)


def is_no_response_body(error: BaseException) -> bool:
    """Whether a stream failure only means the endpoint cannot stream."""
    return isinstance(error, StreamUnsupportedError) or NO_RESPONSE_BODY in str(error)


class ResponseAcquirer:
    """Turns one user message into one assistant message.

    Tries the stream first, falls back to a single non-streaming call when the
    stream is unsupported, fails or yields nothing, and always returns a
    message. Every piece of text that ends up in the returned message is also
    passed to ``on_chunk``, in order.
    """

    def __init__(self, connections: ConnectionManager, message_factory: MessageFactory | None = None):
        self._connections = connections
        self._messages = message_factory or MessageFactory()
        self._consumers: dict[ReplyKind, Callable[[Any, _Accumulator], Awaitable[None]]] = {
            ReplyKind.DATA_STREAM: self._consume_data_stream,
            ReplyKind.BYTE_STREAM: self._consume_byte_stream,
            ReplyKind.PLAIN_TEXT: self._consume_whole_text,
            ReplyKind.TEXT_FIELD: self._consume_whole_text,
            ReplyKind.CONTENT_FIELD: self._consume_whole_text,
            ReplyKind.OPAQUE: self._consume_whole_text,
        }

    async def acquire(self, content: str, on_chunk: ChunkCallback | ChunkSink | None = None) -> Message:
        """
        Get the assistant reply for a user message.

        Args:
            content: Raw user text
            on_chunk: Receives each text fragment in arrival order

        Returns:
            The assistant message; an apology message on any failure
        """
        sink = on_chunk if isinstance(on_chunk, ChunkSink) else ChunkSink(on_chunk)

        try:
            if not await self._connections.ensure_ready():
                logger.warning("Agent connection is not configured; skipping remote call")
                return self._apology(sink, reason="not_configured")

            handle = self._connections.state.handle
            if handle is None:
                logger.warning("Agent connection was reset while sending; skipping remote call")
                return self._apology(sink, reason="not_configured")

            turns = [ChatTurn(role=MessageRole.USER, content=content)]

            outcome = await self._stream(handle, turns, sink)
            full_content = outcome.content
            source = "stream"

            if not outcome.streamed:
                full_content = await self._fallback(handle, turns, sink)
                source = "generate"

            if not full_content:
                full_content = EMPTY_RESPONSE_MESSAGE
                sink(EMPTY_RESPONSE_MESSAGE)
                source = "empty"

            return self._messages.make(MessageRole.ASSISTANT, full_content, metadata={"source": source})

        except Exception as e:
            logger.error(f"Error handling message: {e}")
            return self._apology(sink, reason=type(e).__name__)

    def _apology(self, sink: ChunkSink, reason: str) -> Message:
        sink(APOLOGY_MESSAGE)
        return self._messages.make(
            MessageRole.ASSISTANT,
            APOLOGY_MESSAGE,
            metadata={"source": "error", "error": reason},
        )

    async def _stream(self, handle: IAgentHandle, turns: Sequence[ChatTurn], sink: ChunkSink) -> StreamOutcome:
        accumulator = _Accumulator(sink)

        try:
            raw = await handle.stream(turns)
            reply = classify_reply(raw)
            if reply is None:
                logger.info("Stream returned nothing usable; falling back to generate")
            else:
                logger.debug(f"Stream reply shape: {reply.kind.value}")
                await self._consumers[reply.kind](reply.payload, accumulator)
        except Exception as e:
            if is_no_response_body(e):
                logger.info(f"Streaming not available from this endpoint ({e}); falling back to generate")
            else:
                logger.error(f"Error in streaming: {e}")

        return StreamOutcome(content=accumulator.text, streamed=accumulator.streamed)

    async def _fallback(self, handle: IAgentHandle, turns: Sequence[ChatTurn], sink: ChunkSink) -> str:
        try:
            raw = await handle.generate(turns)
        except Exception as e:
            logger.error(f"Error in fallback generate: {e}")
            raise FallbackError(f"Fallback generate failed: {e}") from e

        text = normalize_generate_result(raw)
        if text:
            sink(text)
        return text

    async def _consume_data_stream(self, source: Any, accumulator: _Accumulator) -> None:
        def on_text_part(text: str) -> None:
            if text:
                accumulator.forward(text)

        def on_error_part(error: Any) -> None:
            logger.warning(f"Stream error part: {error}")

        await source.process_data_stream(on_text_part=on_text_part, on_error_part=on_error_part)

    async def _consume_byte_stream(self, body: Any, accumulator: _Accumulator) -> None:
        # Incremental decoder keeps split multi-byte sequences for the next read
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        async for chunk in _iterate_bytes(body):
            accumulator.forward(decoder.decode(chunk))
        tail = decoder.decode(b"", final=True)
        if tail:
            accumulator.forward(tail)

    async def _consume_whole_text(self, text: str, accumulator: _Accumulator) -> None:
        accumulator.forward(text)
