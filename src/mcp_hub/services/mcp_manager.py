"""
Gestionnaire multi-serveurs MCP.

Possède le multiplexeur SSE (transport stream) et les instances créées depuis le registre.

Ordonnancement:
- `start()`: multiplexeur d'abord (attendu), puis toutes les instances en parallèle
- `stop()`: toutes les instances en parallèle, puis le multiplexeur

L'échec d'une instance pendant un start/stop global est journalisé avec son id et
n'empêche pas les autres; un `toggle_server(id)` ciblé propage son erreur.
"""
import asyncio
import logging
from dataclasses import replace
from typing import Dict, Optional

from ..core.models import ServerStatus
from ..features.mcp.base import ServerInstance
from ..features.mcp.registry import SERVER_REGISTRY, ServerRegistry
from ..transport import ChannelMultiplexer, StreamTransport, TransportConfig

logger = logging.getLogger(__name__)


class MultiServerManager:
    """Héberge les serveurs MCP du registre sur un transport commun."""

    def __init__(self, transport_config: TransportConfig, registry: ServerRegistry = SERVER_REGISTRY):
        self._multiplexer: Optional[ChannelMultiplexer] = None
        if isinstance(transport_config, StreamTransport):
            self._multiplexer = ChannelMultiplexer(
                port=transport_config.port,
                base_path=transport_config.base_path,
                host=transport_config.host,
                keepalive_seconds=transport_config.keepalive_seconds,
            )
            transport_config = replace(transport_config, channel_lookup=self._multiplexer.get_channel)

        self._transport_config = transport_config
        self._paths: Dict[str, Optional[str]] = {}
        self.servers: Dict[str, ServerInstance] = {}
        self.is_running = False
        self._initialize(registry)

    def _initialize(self, registry: ServerRegistry) -> None:
        logger.info("Initialisation des serveurs MCP")
        for entry in registry:
            try:
                self.servers[entry.id] = entry.factory()
            except Exception as e:
                logger.error(f"❌ Échec d'initialisation du serveur MCP {entry.id}: {e}")
                continue
            self._paths[entry.id] = entry.path
            logger.info(f"Serveur MCP initialisé: {entry.id}")

    @property
    def multiplexer(self) -> Optional[ChannelMultiplexer]:
        return self._multiplexer

    @property
    def transport_config(self) -> TransportConfig:
        return self._transport_config

    async def _start_one(self, server_id: str, server: ServerInstance) -> None:
        try:
            await server.start(self._transport_config)
            logger.info(f"Serveur MCP démarré: {server_id}")
        except Exception as e:
            logger.error(f"❌ Échec du démarrage du serveur MCP {server_id}: {e}")

    async def _stop_one(self, server_id: str, server: ServerInstance) -> None:
        try:
            await server.stop()
            logger.info(f"Serveur MCP arrêté: {server_id}")
        except Exception as e:
            logger.error(f"❌ Échec de l'arrêt du serveur MCP {server_id}: {e}")

    async def start(self) -> None:
        """
        Démarre le multiplexeur puis toutes les instances.

        Raises:
            BindError: le listener SSE n'a pas pu être lié (fatal)
        """
        if self.is_running:
            logger.warning("Serveurs MCP déjà démarrés")
            return

        if self._multiplexer is not None:
            await self._multiplexer.start()

        await asyncio.gather(*(self._start_one(sid, server) for sid, server in self.servers.items()))
        self.is_running = True
        running = sum(1 for server in self.servers.values() if server.is_running())
        logger.info(f"✅ Serveurs MCP démarrés ({running}/{len(self.servers)})")

    async def stop(self) -> None:
        if not self.is_running:
            logger.warning("Serveurs MCP non démarrés")
            return

        await asyncio.gather(*(self._stop_one(sid, server) for sid, server in self.servers.items()))
        self.is_running = False

        if self._multiplexer is not None:
            await self._multiplexer.stop()
        logger.info("Serveurs MCP arrêtés")

    async def toggle_server(self, server_id: str) -> None:
        """Démarre ou arrête un serveur selon son état; une erreur est propagée."""
        server = self.servers.get(server_id)
        if server is None:
            logger.warning(f"Serveur MCP introuvable: {server_id}")
            return

        try:
            if server.is_running():
                await server.stop()
            else:
                await server.start(self._transport_config)
        except Exception as e:
            logger.error(f"❌ Échec du basculement du serveur MCP {server_id}: {e}")
            raise
        logger.info(f"Serveur MCP basculé: {server_id} (running={server.is_running()})")

    def get_status(self) -> Dict[str, bool]:
        return {server_id: server.is_running() for server_id, server in self.servers.items()}

    def get_server_details(self) -> Dict[str, dict]:
        """Statut détaillé par serveur (transport, chemin d'exposition)."""
        details = {}
        for server_id, server in self.servers.items():
            path = self._paths.get(server_id)
            if self._multiplexer is not None:
                path = f"{self._multiplexer.base_path}/sse/{server_id}"
            details[server_id] = ServerStatus(
                id=server_id,
                is_running=server.is_running(),
                transport=self._transport_config.type,
                path=path,
            ).to_dict()
        return details
