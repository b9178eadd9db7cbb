"""mcp_hub.features.mcp.base.instance

Contrat commun des serveurs MCP hébergés: `start(transport)`, `stop()`, `is_running()`.

Cycle de vie: Stopped (initial) <-> Running, sans état terminal.
- `start` en cours d'exécution et `stop` à l'arrêt: avertissement, aucun effet.
- `stop` conserve l'état métier; il désactive les outils et annule les tâches
  périodiques avant de rendre la main.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Protocol

from pydantic import BaseModel

from ....core.constants import JSONRPC_INVALID_REQUEST
from ....core.exceptions import McpRequestError, TransportConfigError
from ....core.jsonrpc import JsonDict, tool_error
from ....transport.channel import BaseChannel
from ....transport.config import StreamTransport, TransportConfig
from ....transport.stdio import StdioChannel
from .server import EmptyArguments, PromptArgument, PromptRenderer, ResourceReader, ToolServer

logger = logging.getLogger(__name__)


class ServerInstance(Protocol):
    """Capacité minimale attendue par le gestionnaire multi-serveurs."""

    async def start(self, transport_config: TransportConfig) -> None: ...

    async def stop(self) -> None: ...

    def is_running(self) -> bool: ...


class BaseServerInstance(ABC):
    """
    Base des serveurs MCP (notes, timer, produits...).

    Les sous-classes déclarent leurs outils dans `_register_tools()` via `self._tool(...)`,
    qui insère la vérification du flag d'activation avant chaque handler. Ressources et
    prompts (optionnels) suivent le même schéma: `_resource`, `_resource_template`, `_prompt`;
    à l'arrêt ils répondent par une erreur JSON-RPC.
    """

    server_id: str = ""
    display_name: str = ""
    version: str = "1.0.0"

    def __init__(self, server_id: Optional[str] = None):
        if server_id is not None:
            self.server_id = server_id
        self.server = ToolServer(self.display_name or f"{self.server_id}-server", self.version)
        self._enabled = False
        self._stdio_channel: Optional[StdioChannel] = None
        self._register_tools()
        self._register_resources()
        self._register_prompts()

    # ------------------------------------------------------------------
    # Outils
    # ------------------------------------------------------------------

    @abstractmethod
    def _register_tools(self) -> None:
        """Déclare les outils du serveur via `self._tool(...)`."""

    def _tool(
        self,
        name: str,
        description: str,
        input_model: type[BaseModel] = EmptyArguments,
    ) -> Callable[[Callable[[BaseModel], Awaitable[JsonDict]]], Callable]:
        def decorator(handler: Callable[[BaseModel], Awaitable[JsonDict]]):
            async def guarded(args: BaseModel) -> JsonDict:
                if not self._enabled:
                    return self._disabled_result()
                return await handler(args)

            self.server.tool(name, description, input_model)(guarded)
            return handler

        return decorator

    def _disabled_message(self) -> str:
        label = self.server_id.capitalize() or "Server"
        return f"{label} server is currently disabled"

    def _disabled_result(self) -> JsonDict:
        return tool_error(self._disabled_message())

    def _check_enabled(self) -> None:
        if not self._enabled:
            raise McpRequestError(self._disabled_message(), JSONRPC_INVALID_REQUEST)

    # ------------------------------------------------------------------
    # Ressources et prompts
    # ------------------------------------------------------------------

    def _register_resources(self) -> None:
        pass

    def _register_prompts(self) -> None:
        pass

    def _resource(self, uri: str, name: str, description: str) -> Callable[[ResourceReader], ResourceReader]:
        def decorator(reader: ResourceReader):
            async def guarded(requested_uri: str) -> str:
                self._check_enabled()
                return await reader(requested_uri)

            self.server.resource(uri, name, description)(guarded)
            return reader

        return decorator

    def _resource_template(
        self,
        uri_template: str,
        name: str,
        description: str,
    ) -> Callable[[ResourceReader], ResourceReader]:
        def decorator(reader: ResourceReader):
            async def guarded(requested_uri: str, **params: str) -> str:
                self._check_enabled()
                return await reader(requested_uri, **params)

            self.server.resource_template(uri_template, name, description)(guarded)
            return reader

        return decorator

    def _prompt(
        self,
        name: str,
        description: str,
        arguments: tuple[PromptArgument, ...] = (),
    ) -> Callable[[PromptRenderer], PromptRenderer]:
        def decorator(renderer: PromptRenderer):
            async def guarded(args: dict) -> list:
                self._check_enabled()
                return await renderer(args)

            self.server.prompt(name, description, arguments)(guarded)
            return renderer

        return decorator

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _resolve_channel(self, transport_config: TransportConfig) -> BaseChannel:
        if isinstance(transport_config, StreamTransport):
            if transport_config.channel_lookup is None:
                raise TransportConfigError(
                    "Le transport SSE requiert une fonction channel_lookup (multiplexeur non initialisé)",
                    server_id=self.server_id,
                )
            channel = transport_config.channel_lookup(self.server_id)
            if channel is None:
                raise TransportConfigError(
                    f"Aucun canal SSE ouvert pour le serveur {self.server_id}",
                    server_id=self.server_id,
                )
            return channel

        if self._stdio_channel is None:
            self._stdio_channel = StdioChannel(self.server_id)
        await self._stdio_channel.open()
        return self._stdio_channel

    # ------------------------------------------------------------------
    # Cycle de vie
    # ------------------------------------------------------------------

    async def start(self, transport_config: TransportConfig) -> None:
        if self._enabled:
            logger.warning(f"Serveur {self.server_id} déjà démarré")
            return

        try:
            channel = await self._resolve_channel(transport_config)
        except TransportConfigError as e:
            logger.error(f"Échec du démarrage du serveur {self.server_id}: {e}")
            raise

        self.server.connect(channel)
        self._enabled = True
        logger.info(f"Serveur {self.server_id} démarré (transport={transport_config.type})")

    async def stop(self) -> None:
        if not self._enabled:
            logger.warning(f"Serveur {self.server_id} déjà arrêté")
            return

        await self._on_stop()
        self._enabled = False
        logger.info(f"Serveur {self.server_id} arrêté")

    async def _on_stop(self) -> None:
        """Libère les ressources propres au serveur (tâches périodiques, clients HTTP)."""

    def is_running(self) -> bool:
        return self._enabled
