"""
Services de MCP Hub: gestion multi-serveurs, cycle de vie et diffusion du statut.
"""

from .mcp_manager import MultiServerManager
from .server_manager import ProcessLifecycleController
from .websocket_manager import StatusBroadcaster

__all__ = [
    "MultiServerManager",
    "ProcessLifecycleController",
    "StatusBroadcaster",
]
