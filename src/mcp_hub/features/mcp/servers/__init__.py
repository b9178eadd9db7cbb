"""
Serveurs MCP hébergés par le hub.
"""

from .notes import NotesServer
from .timer import TimerServer
from .products import ProductSearchServer

__all__ = [
    "NotesServer",
    "TimerServer",
    "ProductSearchServer",
]
