"""
Route WebSocket de suivi du statut.
"""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/status")
async def status_websocket(websocket: WebSocket):
    """
    Envoie le statut à la connexion, puis à chaque action de pilotage.

    Reçoit:
    - `{"type": "status"}`: renvoie le statut courant
    """
    controller = websocket.app.state.controller
    broadcaster = websocket.app.state.broadcaster
    await broadcaster.connect(websocket)

    try:
        await broadcaster.send_to(websocket, controller.get_status())
        while True:
            data = await websocket.receive_json()
            if isinstance(data, dict) and data.get("type") == "status":
                await broadcaster.send_to(websocket, controller.get_status())
            else:
                logger.debug(f"Message WebSocket ignoré: {data!r}")
    except WebSocketDisconnect:
        broadcaster.disconnect(websocket)
    except Exception as e:
        logger.warning(f"⚠️ Erreur WebSocket: {e}")
        broadcaster.disconnect(websocket)
