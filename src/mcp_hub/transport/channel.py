"""mcp_hub.transport.channel

Canaux de transport: une connexion pair longue durée, identifiée par un id de serveur.

- `BaseChannel`: liaison d'un handler de messages (posée par `ToolServer.connect`).
- `SSEChannel`: file d'événements SSE alimentée par `send()`, consommée par le flux
  `EventSourceResponse` ouvert par le multiplexeur. Les messages entrants arrivent par POST.

Un serveur ne fait qu'emprunter un canal SSE: seul le multiplexeur le crée et le détruit.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import Receive, Scope, Send

from ..core.exceptions import ChannelNotBoundError

logger = logging.getLogger(__name__)

JsonDict = dict[str, object]
MessageHandler = Callable[[JsonDict], Awaitable[None]]
SSEEvent = dict[str, str]


class BaseChannel(ABC):
    """Canal générique: un handler de messages au plus, remplacé à chaque `bind`."""

    def __init__(self, server_id: str):
        self.server_id = server_id
        self._handler: Optional[MessageHandler] = None

    def bind(self, handler: MessageHandler) -> None:
        self._handler = handler

    def unbind(self) -> None:
        self._handler = None

    @property
    def is_bound(self) -> bool:
        return self._handler is not None

    async def dispatch(self, message: JsonDict) -> None:
        """Transmet un message entrant au handler lié."""
        if self._handler is None:
            raise ChannelNotBoundError(self.server_id)
        await self._handler(message)

    @abstractmethod
    async def send(self, message: JsonDict) -> None:
        """Écrit un message sortant vers le pair."""


class SSEChannel(BaseChannel):
    """
    Canal SSE d'un serveur.

    Les réponses envoyées par le serveur sont mises en file sous forme d'événements
    `{"event": ..., "data": ...}`, encodés par sse-starlette; `close()` termine le flux.
    """

    def __init__(self, server_id: str, endpoint: str):
        super().__init__(server_id)
        self.endpoint = endpoint
        self._queue: asyncio.Queue[Optional[SSEEvent]] = asyncio.Queue()
        self._closed = False
        self.messages_sent = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def endpoint_event(self) -> SSEEvent:
        """Premier événement du flux: l'URL à laquelle le pair doit POSTer ses messages."""
        return {"event": "endpoint", "data": self.endpoint}

    async def send(self, message: JsonDict) -> None:
        if self._closed:
            logger.debug(f"Canal {self.server_id} fermé, message ignoré")
            return
        await self._queue.put({"event": "message", "data": json.dumps(message, ensure_ascii=False)})
        self.messages_sent += 1

    async def next_event(self) -> Optional[SSEEvent]:
        """Attend le prochain événement à écrire (None une fois le canal fermé)."""
        return await self._queue.get()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        """
        Traite un message POSTé par le pair.

        Répond `202 Accepted` dès que le message est valide, puis le transmet au
        handler. Une exception du handler remonte donc APRÈS l'envoi des en-têtes.

        Raises:
            ChannelNotBoundError: si aucun serveur n'est connecté à ce canal
        """
        if not self.is_bound:
            raise ChannelNotBoundError(self.server_id)

        request = Request(scope, receive)
        try:
            message = await request.json()
        except (ValueError, UnicodeDecodeError):
            response = JSONResponse({"error": "Invalid JSON message"}, status_code=400)
            await response(scope, receive, send)
            return

        if not isinstance(message, dict):
            response = JSONResponse({"error": "Message must be a JSON object"}, status_code=400)
            await response(scope, receive, send)
            return

        await Response("Accepted", status_code=202, media_type="text/plain")(scope, receive, send)
        await self.dispatch(message)
