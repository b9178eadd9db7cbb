"""
MCP Hub - Application FastAPI Factory.

Racine de composition: construit le gestionnaire multi-serveurs, le contrôleur de
cycle de vie et le diffuseur de statut, puis les range dans `app.state`.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .api.router import api_router
from .config.settings import Settings, build_transport_config
from .features.catalog import ProductCatalogClient
from .features.mcp.registry import ServerRegistry, default_registry, select_servers
from .services.mcp_manager import MultiServerManager
from .services.server_manager import ProcessLifecycleController
from .services.websocket_manager import StatusBroadcaster

logger = logging.getLogger(__name__)


def build_registry_from_settings(settings: Settings) -> ServerRegistry:
    """Registre livré, restreint à `[servers] enabled`, catalogue configuré."""
    products = settings.products

    def catalog_factory() -> ProductCatalogClient:
        return ProductCatalogClient(
            base_url=products.base_url,
            website_url=products.website_url,
            api_url=products.api_url,
            timeout_ms=products.timeout_ms,
            default_limit=products.default_limit,
        )

    return select_servers(default_registry(catalog_factory), settings.enabled_servers)


def build_controller(settings: Settings, registry: Optional[ServerRegistry] = None) -> ProcessLifecycleController:
    if registry is None:
        registry = build_registry_from_settings(settings)
    manager = MultiServerManager(build_transport_config(settings.transport), registry=registry)
    return ProcessLifecycleController(manager)


def create_app(
    settings: Optional[Settings] = None,
    controller: Optional[ProcessLifecycleController] = None,
) -> FastAPI:
    """
    Factory pour créer l'application de contrôle.

    Args:
        settings: Configuration (défauts si absente)
        controller: Contrôleur déjà construit (tests)

    Returns:
        Instance configurée de FastAPI
    """
    settings = settings or Settings()
    controller = controller or build_controller(settings)
    broadcaster = StatusBroadcaster()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Gestion du cycle de vie de l'application."""
        if settings.control.autostart:
            try:
                await controller.start()
            except Exception as e:
                logger.error(f"❌ Démarrage automatique du bridge échoué: {e}")
        yield
        await controller.cleanup()

    app = FastAPI(
        title="MCP Hub",
        description="Bridge MCP multi-serveurs (stdio / SSE multiplexé)",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.controller = controller
    app.state.broadcaster = broadcaster

    app.include_router(api_router)
    return app
