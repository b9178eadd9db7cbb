"""
Dataclasses métier pour MCP Hub.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any


@dataclass
class Note:
    """Note conservée en mémoire par le serveur notes."""
    id: str
    title: str
    content: str
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convertit la note en dictionnaire."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class CountdownTimer:
    """Compte à rebours géré par le serveur timer (durées en secondes)."""
    id: str
    name: str
    duration: int
    remaining: int
    is_running: bool = False
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convertit le timer en dictionnaire."""
        return {
            "id": self.id,
            "name": self.name,
            "duration": self.duration,
            "remaining": self.remaining,
            "is_running": self.is_running,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ServerStatus:
    """État détaillé d'un serveur MCP hébergé."""
    id: str
    is_running: bool
    transport: str
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convertit le statut en dictionnaire."""
        return {
            "is_running": self.is_running,
            "transport": self.transport,
            "path": self.path,
        }
