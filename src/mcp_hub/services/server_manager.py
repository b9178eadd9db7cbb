"""
Contrôleur du cycle de vie du processus.

Façade consommée par l'API de contrôle: start / stop / toggle / toggle_server /
cleanup / get_status autour d'un unique MultiServerManager.
"""
import logging
from typing import Any, Dict

from .mcp_manager import MultiServerManager

logger = logging.getLogger(__name__)


class ProcessLifecycleController:
    def __init__(self, manager: MultiServerManager):
        self.manager = manager
        self.is_running = False
        logger.info("Initialisation du contrôleur de cycle de vie")

    async def start(self) -> None:
        if self.is_running:
            logger.warning("Bridge déjà démarré, démarrage ignoré")
            return

        try:
            await self.manager.start()
        except Exception as e:
            logger.error(f"❌ Échec du démarrage du bridge: {e}")
            raise
        self.is_running = True
        logger.info("Bridge démarré")

    async def stop(self) -> None:
        if not self.is_running:
            logger.warning("Bridge non démarré, arrêt ignoré")
            return

        try:
            await self.manager.stop()
        except Exception as e:
            logger.error(f"❌ Échec de l'arrêt du bridge: {e}")
            raise
        self.is_running = False
        logger.info("Bridge arrêté")

    async def toggle(self) -> None:
        if self.is_running:
            await self.stop()
        else:
            await self.start()

    async def toggle_server(self, server_id: str) -> None:
        await self.manager.toggle_server(server_id)

    async def cleanup(self) -> None:
        """Arrêt de fin de processus: ne lève jamais."""
        logger.info("Nettoyage du bridge")
        if not self.is_running:
            return
        try:
            await self.stop()
        except Exception as e:
            logger.error(f"Erreur pendant le nettoyage du bridge: {e}")
            self.is_running = False
        logger.info("Nettoyage du bridge terminé")

    def get_status(self) -> Dict[str, Any]:
        return {"is_running": self.is_running, "mcp": self.manager.get_status()}
