"""
MCP - Serveurs d'outils hébergés et leur registre.

Modules:
- base: dispatcher JSON-RPC et contrat de cycle de vie
- servers: serveurs notes, timer et produits
- registry: registre immuable des serveurs
"""

from .base import BaseServerInstance, ServerInstance, ToolServer
from .registry import (
    SERVER_REGISTRY,
    ServerRegistration,
    ServerRegistry,
    build_registry,
    default_registry,
    select_servers,
)
from .servers import NotesServer, ProductSearchServer, TimerServer

__all__ = [
    "BaseServerInstance",
    "ServerInstance",
    "ToolServer",
    "SERVER_REGISTRY",
    "ServerRegistration",
    "ServerRegistry",
    "build_registry",
    "default_registry",
    "select_servers",
    "NotesServer",
    "ProductSearchServer",
    "TimerServer",
]
