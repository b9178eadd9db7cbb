"""
MCP Base Module - Fonctionnalités communes aux serveurs MCP hébergés.
"""

from .server import ToolServer, ToolDefinition, EmptyArguments, PromptArgument
from .instance import ServerInstance, BaseServerInstance

__all__ = [
    "ToolServer",
    "ToolDefinition",
    "EmptyArguments",
    "PromptArgument",
    "ServerInstance",
    "BaseServerInstance",
]
