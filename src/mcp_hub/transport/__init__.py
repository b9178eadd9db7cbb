"""
Couche transport de MCP Hub: descripteurs, canaux et multiplexeur SSE.
"""

from .config import (
    StdioTransport,
    StreamTransport,
    TransportConfig,
    normalize_base_path,
    is_stream_transport,
)
from .channel import BaseChannel, SSEChannel
from .stdio import StdioChannel
from .multiplexer import ChannelMultiplexer

__all__ = [
    "StdioTransport",
    "StreamTransport",
    "TransportConfig",
    "normalize_base_path",
    "is_stream_transport",
    "BaseChannel",
    "SSEChannel",
    "StdioChannel",
    "ChannelMultiplexer",
]
