"""
Cœur métier de MCP Hub.
Modules indépendants sans dépendances externes au package.
"""

from .exceptions import (
    McpHubError,
    ConfigurationError,
    TransportConfigError,
    BindError,
    ChannelNotBoundError,
    CatalogError,
    McpRequestError,
)
from .models import Note, CountdownTimer, ServerStatus

__all__ = [
    # Exceptions
    "McpHubError",
    "ConfigurationError",
    "TransportConfigError",
    "BindError",
    "ChannelNotBoundError",
    "CatalogError",
    "McpRequestError",
    # Modèles
    "Note",
    "CountdownTimer",
    "ServerStatus",
]
