"""
Diffusion du statut du bridge aux clients WebSocket.
"""
import logging
from typing import Any, Dict, Set, TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = logging.getLogger(__name__)


class StatusBroadcaster:
    """Gère les connexions WebSocket de `/ws/status`."""

    def __init__(self):
        self.active_connections: Set["WebSocket"] = set()

    async def connect(self, websocket: "WebSocket"):
        await websocket.accept()
        self.active_connections.add(websocket)

    def disconnect(self, websocket: "WebSocket"):
        self.active_connections.discard(websocket)

    async def broadcast(self, status: Dict[str, Any]):
        """
        Diffuse un statut à toutes les connexions actives.

        Les connexions en erreur sont retirées sans interrompre la diffusion.
        """
        message = {"type": "status", "data": status}
        disconnected = set()

        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.debug(f"Client WebSocket perdu pendant la diffusion: {e}")
                disconnected.add(connection)

        for conn in disconnected:
            self.active_connections.discard(conn)

    async def send_to(self, websocket: "WebSocket", status: Dict[str, Any]) -> bool:
        try:
            await websocket.send_json({"type": "status", "data": status})
            return True
        except Exception:
            self.active_connections.discard(websocket)
            return False

    def get_connection_count(self) -> int:
        return len(self.active_connections)
