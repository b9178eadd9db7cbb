"""
Routes de pilotage du bridge: statut, start / stop / toggle global et par serveur.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from ...core.exceptions import McpHubError
from ...services.server_manager import ProcessLifecycleController
from ...services.websocket_manager import StatusBroadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


def get_controller(request: Request) -> ProcessLifecycleController:
    return request.app.state.controller


def get_broadcaster(request: Request) -> StatusBroadcaster:
    return request.app.state.broadcaster


async def _run_action(action, label: str, controller: ProcessLifecycleController, broadcaster: StatusBroadcaster):
    """Exécute une action de cycle de vie, diffuse le statut et le retourne."""
    try:
        await action()
    except McpHubError as e:
        logger.error(f"❌ Action '{label}' échouée: {e}")
        raise HTTPException(status_code=500, detail=e.message)
    except Exception as e:
        logger.error(f"❌ Action '{label}' échouée: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        await broadcaster.broadcast(controller.get_status())
    return controller.get_status()


@router.get("/status")
async def get_status(controller: ProcessLifecycleController = Depends(get_controller)):
    """Statut global et booléen de chaque serveur."""
    return controller.get_status()


@router.get("/servers")
async def get_servers(controller: ProcessLifecycleController = Depends(get_controller)):
    """Détail par serveur: état, transport, chemin d'exposition."""
    return controller.manager.get_server_details()


@router.post("/start")
async def start_bridge(
    controller: ProcessLifecycleController = Depends(get_controller),
    broadcaster: StatusBroadcaster = Depends(get_broadcaster),
):
    return await _run_action(controller.start, "start", controller, broadcaster)


@router.post("/stop")
async def stop_bridge(
    controller: ProcessLifecycleController = Depends(get_controller),
    broadcaster: StatusBroadcaster = Depends(get_broadcaster),
):
    return await _run_action(controller.stop, "stop", controller, broadcaster)


@router.post("/toggle")
async def toggle_bridge(
    controller: ProcessLifecycleController = Depends(get_controller),
    broadcaster: StatusBroadcaster = Depends(get_broadcaster),
):
    return await _run_action(controller.toggle, "toggle", controller, broadcaster)


@router.post("/servers/{server_id}/toggle")
async def toggle_server(
    server_id: str,
    controller: ProcessLifecycleController = Depends(get_controller),
    broadcaster: StatusBroadcaster = Depends(get_broadcaster),
):
    """Bascule un seul serveur; un id inconnu est ignoré (statut inchangé)."""

    async def action():
        await controller.toggle_server(server_id)

    return await _run_action(action, f"toggle {server_id}", controller, broadcaster)
