"""
Route de health check.
"""
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Health check: état du bridge et du listener SSE."""
    controller = request.app.state.controller
    multiplexer = controller.manager.multiplexer
    return {
        "status": "ok",
        "bridge_running": controller.is_running,
        "transport": controller.manager.transport_config.type,
        "sse": {
            "listening": multiplexer.is_listening,
            "port": multiplexer.port,
            "channels": multiplexer.channel_ids(),
        } if multiplexer is not None else None,
    }
