"""
Point d'entrée pour `python -m mcp_hub` (et le script `mcp-hub`).
"""
import argparse
import dataclasses
import logging
import sys

import uvicorn

from .config.loader import load_config
from .config.logging import setup_logging
from .config.settings import LOG_LEVELS, Settings, resolve_log_level
from .core.exceptions import ConfigurationError
from .transport.config import normalize_base_path
from .main import build_controller, build_registry_from_settings, create_app

logger = logging.getLogger("mcp_hub")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MCP Hub - bridge MCP multi-serveurs")
    parser.add_argument("--config", default=None, help="Chemin du fichier TOML (défaut: ./config.toml)")
    parser.add_argument("--transport", choices=["stdio", "sse"], default=None, help="Transport des serveurs MCP")
    parser.add_argument("--port", type=int, default=None, help="Port du listener SSE (0 = éphémère)")
    parser.add_argument("--base-path", default=None, help="Préfixe des routes SSE (ex: /mcp)")
    parser.add_argument("--control-port", type=int, default=None, help="Port de l'API de contrôle")
    parser.add_argument(
        "--server",
        action="append",
        default=None,
        metavar="ID",
        help="Serveur à héberger (répétable; défaut: tous)",
    )
    parser.add_argument("--no-autostart", action="store_true", help="Ne pas démarrer le bridge au lancement")
    parser.add_argument("--log-level", type=str.upper, choices=sorted(LOG_LEVELS), default=None)
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Les arguments CLI priment sur le TOML."""
    transport = settings.transport
    if args.transport is not None:
        transport = dataclasses.replace(transport, type=args.transport)
    if args.port is not None:
        transport = dataclasses.replace(transport, port=args.port)
    if args.base_path is not None:
        transport = dataclasses.replace(transport, base_path=normalize_base_path(args.base_path))

    control = settings.control
    if args.control_port is not None:
        control = dataclasses.replace(control, port=args.control_port)
    if args.no_autostart:
        control = dataclasses.replace(control, autostart=False)

    enabled = tuple(args.server) if args.server else settings.enabled_servers
    return dataclasses.replace(settings, transport=transport, control=control, enabled_servers=enabled)


def main(argv=None):
    """Fonction principale."""
    args = build_parser().parse_args(argv)

    try:
        settings = apply_overrides(Settings.from_config(load_config(args.config)), args)
        setup_logging(resolve_log_level(settings, args.log_level))
        registry = build_registry_from_settings(settings)
    except ConfigurationError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    if settings.transport.type == "stdio" and len(registry) > 1:
        print(
            "❌ Le transport stdio ne peut servir qu'un seul serveur: choisissez-le avec --server",
            file=sys.stderr,
        )
        return 2

    app = create_app(settings, controller=build_controller(settings, registry))
    logger.info(
        f"🚀 Démarrage de MCP Hub (transport={settings.transport.type}, "
        f"contrôle sur {settings.control.host}:{settings.control.port})"
    )
    uvicorn.run(
        app,
        host=settings.control.host,
        port=settings.control.port,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
