"""HTTP transport for the remote agent server."""

from .data_stream import DataStreamResponse, StreamPart, parse_stream_line
from .mastra_client import MastraAgent, MastraClient

__all__ = [
    "DataStreamResponse",
    "MastraAgent",
    "MastraClient",
    "StreamPart",
    "parse_stream_line",
]
