"""mcp_hub.transport.config

Descripteurs de transport (ensemble fermé): stdio ou flux HTTP multiplexé (SSE).

`StreamTransport.channel_lookup` n'est renseigné qu'une fois le multiplexeur
construit; un serveur qui démarre sans lui doit échouer (erreur fatale).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Literal, Optional, Union

from ..core.constants import DEFAULT_BASE_PATH, DEFAULT_SSE_HOST, SSE_KEEPALIVE_SECONDS

if TYPE_CHECKING:
    from .channel import BaseChannel


ChannelLookup = Callable[[str], Optional["BaseChannel"]]
TransportType = Literal["stdio", "sse"]


@dataclass(frozen=True)
class StdioTransport:
    """Un canal stdio exclusif, non partagé, par processus."""

    type: Literal["stdio"] = "stdio"


@dataclass(frozen=True)
class StreamTransport:
    """Flux SSE multiplexé: un listener HTTP, un canal par identifiant de serveur."""

    port: int
    base_path: str = DEFAULT_BASE_PATH
    channel_lookup: Optional[ChannelLookup] = field(default=None, compare=False, repr=False)
    host: str = DEFAULT_SSE_HOST
    keepalive_seconds: float = SSE_KEEPALIVE_SECONDS
    type: Literal["sse"] = "sse"


TransportConfig = Union[StdioTransport, StreamTransport]


def normalize_base_path(base_path: str | None) -> str:
    """Normalise un préfixe d'URL: `""`, ou `/segment` sans slash final."""

    if not base_path:
        return ""
    path = "/" + base_path.strip().strip("/")
    return "" if path == "/" else path


def is_stream_transport(config: TransportConfig) -> bool:
    return isinstance(config, StreamTransport)
