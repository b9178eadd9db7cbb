"""mcp_hub.transport.multiplexer

Multiplexeur de canaux SSE: un seul listener HTTP pour N serveurs MCP logiques.

Routes (préfixées par `base_path`):
- `GET  {base_path}/sse/{server_id}`: ouvre le flux d'événements du serveur
- `POST {base_path}/messages/{server_id}`: délivre un message au canal enregistré

Règles:
- Un canal par id; une nouvelle connexion remplace la précédente (last-connection-wins).
- La déconnexion du pair (détectée par sse-starlette) est le seul chemin de retrait
  d'un canal (hors `stop()`).
- Un message pour un id inconnu donne un 404 structuré, jamais une erreur interne.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

from ..core.constants import (
    DEFAULT_BASE_PATH,
    DEFAULT_SSE_HOST,
    GRACEFUL_SHUTDOWN_TIMEOUT,
    SSE_KEEPALIVE_SECONDS,
)
from ..core.exceptions import BindError
from .channel import SSEChannel
from .config import normalize_base_path

logger = logging.getLogger(__name__)

# sse-starlette pose `Connection: keep-alive` et `X-Accel-Buffering: no`
SSE_HEADERS = {"Cache-Control": "no-cache"}


class _EmbeddedServer(uvicorn.Server):
    """Serveur uvicorn hébergé dans une boucle existante: pas de gestion des signaux."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class _MessageEndpoint:
    """
    Endpoint ASGI brut pour les POST de messages.

    Suit l'envoi des en-têtes: un 500 n'est écrit que si aucune réponse n'a commencé.
    """

    def __init__(self, multiplexer: "ChannelMultiplexer"):
        self._multiplexer = multiplexer

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        server_id = scope.get("path_params", {}).get("server_id", "")
        await self._multiplexer.post_message(server_id, scope, receive, send)


class ChannelMultiplexer:
    """
    Gère le listener HTTP partagé et la table des canaux SSE.

    La table `server_id -> SSEChannel` n'est modifiée que par ce composant; les
    serveurs y accèdent en lecture via `get_channel` (le `channel_lookup`).
    """

    def __init__(
        self,
        port: int,
        base_path: str = DEFAULT_BASE_PATH,
        host: str = DEFAULT_SSE_HOST,
        keepalive_seconds: float = SSE_KEEPALIVE_SECONDS,
    ):
        self.host = host
        self.port = port
        self.base_path = normalize_base_path(base_path)
        self.keepalive_seconds = keepalive_seconds
        self._channels: dict[str, SSEChannel] = {}
        self._server: Optional[_EmbeddedServer] = None
        self._serve_task: Optional[asyncio.Task] = None
        self.app = self._create_app()
        logger.info(f"Multiplexeur SSE initialisé (port={port}, base_path='{self.base_path}')")

    # ------------------------------------------------------------------
    # Application HTTP
    # ------------------------------------------------------------------

    def _create_app(self) -> FastAPI:
        app = FastAPI(title="MCP Hub SSE", docs_url=None, redoc_url=None, openapi_url=None)

        @app.get(self.base_path + "/sse/{server_id}")
        async def sse_endpoint(server_id: str):
            return self.open_channel(server_id)

        app.router.routes.append(
            Route(
                self.base_path + "/messages/{server_id}",
                endpoint=_MessageEndpoint(self),
                methods=["POST"],
            )
        )
        return app

    def endpoint_for(self, server_id: str) -> str:
        return f"{self.base_path}/messages/{server_id}"

    # ------------------------------------------------------------------
    # Cycle de vie du listener
    # ------------------------------------------------------------------

    @property
    def is_listening(self) -> bool:
        return self._server is not None

    def _bind_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            raise BindError(
                f"Impossible d'écouter sur {self.host}:{self.port}: {e}",
                host=self.host,
                port=self.port,
            ) from e
        sock.set_inheritable(True)
        return sock

    async def start(self) -> None:
        """
        Lie le listener et attend qu'uvicorn accepte les connexions.

        Raises:
            BindError: port indisponible (fatal, non retenté)
        """
        if self._server is not None:
            logger.warning("Multiplexeur déjà démarré")
            return

        sock = self._bind_socket()
        # Port 0: on expose le port réellement attribué
        self.port = sock.getsockname()[1]

        config = uvicorn.Config(
            app=self.app,
            log_config=None,
            lifespan="off",
            timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_TIMEOUT,
        )
        server = _EmbeddedServer(config=config)
        serve_task = asyncio.create_task(server.serve(sockets=[sock]), name="mcp-hub-sse")

        while not server.started:
            if serve_task.done():
                sock.close()
                exc = serve_task.exception() if not serve_task.cancelled() else None
                raise BindError(
                    f"Le listener SSE s'est arrêté au démarrage: {exc}",
                    host=self.host,
                    port=self.port,
                )
            await asyncio.sleep(0.01)

        self._server = server
        self._serve_task = serve_task
        logger.info(f"🚀 Multiplexeur SSE à l'écoute sur http://{self.host}:{self.port}{self.base_path}")

    async def stop(self) -> None:
        """Ferme le listener et vide la table des canaux, sans prévenir les pairs un à un."""
        for channel in self._channels.values():
            channel.close()
        self._channels.clear()

        server, task = self._server, self._serve_task
        self._server = None
        self._serve_task = None
        if server is None or task is None:
            return

        server.should_exit = True
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Multiplexeur SSE arrêté")

    # ------------------------------------------------------------------
    # Table des canaux
    # ------------------------------------------------------------------

    def get_channel(self, server_id: str) -> Optional[SSEChannel]:
        return self._channels.get(server_id)

    def channel_ids(self) -> list[str]:
        return list(self._channels)

    def _on_disconnect(self, server_id: str, channel: SSEChannel) -> None:
        channel.close()
        # Un pair remplacé ne doit pas retirer le canal de son successeur.
        if self._channels.get(server_id) is channel:
            del self._channels[server_id]
            logger.info(f"Connexion SSE fermée: {server_id}")

    def open_channel(self, server_id: str) -> EventSourceResponse:
        """
        Ouvre le canal SSE de `server_id` et retourne la réponse de flux.

        Le canal est enregistré immédiatement (en écrasant l'éventuel précédent);
        le premier événement (`endpoint`) part dès l'envoi des en-têtes. À la
        déconnexion du pair, sse-starlette annule le générateur: le `finally`
        retire alors le canal.
        """
        channel = SSEChannel(server_id, endpoint=self.endpoint_for(server_id))
        previous = self._channels.get(server_id)
        if previous is not None:
            logger.warning(f"Nouvelle connexion SSE pour {server_id}: le canal précédent est remplacé")
        self._channels[server_id] = channel
        logger.info(f"Connexion SSE établie: {server_id}")

        async def event_generator() -> AsyncIterator[dict]:
            try:
                yield channel.endpoint_event()
                while True:
                    event = await channel.next_event()
                    if event is None:
                        break
                    yield event
            finally:
                self._on_disconnect(server_id, channel)

        return EventSourceResponse(
            event_generator(),
            headers=SSE_HEADERS,
            ping=self.keepalive_seconds,
        )

    async def post_message(self, server_id: str, scope: Scope, receive: Receive, send: Send) -> None:
        """Route un message POSTé vers le canal de `server_id` (404 si absent)."""
        channel = self._channels.get(server_id)
        if channel is None:
            logger.error(f"Transport introuvable pour le serveur {server_id}")
            response = JSONResponse(
                {"error": f"Transport for server {server_id} not found"},
                status_code=404,
            )
            await response(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await channel.handle_post_message(scope, receive, tracking_send)
            logger.debug(f"Message traité pour {server_id}")
        except Exception as e:
            logger.error(f"Erreur de traitement du message pour {server_id}: {e}")
            # Les en-têtes ne peuvent pas être envoyés deux fois.
            if not response_started:
                response = JSONResponse({"error": "Internal server error"}, status_code=500)
                await response(scope, receive, send)
