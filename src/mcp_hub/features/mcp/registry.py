"""
Registre des serveurs MCP hébergés.

Défini une fois, immuable: chaque entrée associe un id unique, une fabrique
sans argument et des options (dont le chemin d'exposition).
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Tuple

from ...core.exceptions import ConfigurationError
from ..catalog import ProductCatalogClient
from .base import ServerInstance
from .servers import NotesServer, ProductSearchServer, TimerServer

ServerFactory = Callable[[], ServerInstance]


@dataclass(frozen=True)
class ServerRegistration:
    id: str
    factory: ServerFactory
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Copie figée des options
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @property
    def path(self) -> Optional[str]:
        return self.options.get("path")


ServerRegistry = Tuple[ServerRegistration, ...]


def build_registry(entries: Iterable[ServerRegistration]) -> ServerRegistry:
    """
    Construit un registre immuable.

    Raises:
        ConfigurationError: si deux entrées partagent le même id
    """
    registry = []
    seen = set()
    for entry in entries:
        if entry.id in seen:
            raise ConfigurationError(f"Id de serveur dupliqué dans le registre: {entry.id}", config_key="servers")
        seen.add(entry.id)
        registry.append(entry)
    return tuple(registry)


def select_servers(registry: ServerRegistry, enabled: Optional[Sequence[str]]) -> ServerRegistry:
    """
    Restreint le registre aux ids demandés (ordre du registre conservé).

    Une liste vide ou None conserve tout le registre.

    Raises:
        ConfigurationError: si un id demandé est inconnu
    """
    if not enabled:
        return registry
    known = {entry.id for entry in registry}
    unknown = [server_id for server_id in enabled if server_id not in known]
    if unknown:
        raise ConfigurationError(f"Serveurs inconnus: {', '.join(unknown)}", config_key="servers.enabled")
    return tuple(entry for entry in registry if entry.id in enabled)


def default_registry(catalog_factory: Optional[Callable[[], ProductCatalogClient]] = None) -> ServerRegistry:
    """Registre des serveurs livrés (products, notes, timer)."""

    def products_factory() -> ProductSearchServer:
        return ProductSearchServer(catalog=catalog_factory() if catalog_factory else None)

    return build_registry(
        [
            ServerRegistration(id="products", factory=products_factory, options={"path": "/products"}),
            ServerRegistration(id="notes", factory=NotesServer, options={"path": "/notes"}),
            ServerRegistration(id="timer", factory=TimerServer, options={"path": "/timer"}),
        ]
    )


SERVER_REGISTRY: ServerRegistry = default_registry()
