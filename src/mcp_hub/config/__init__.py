"""
Configuration de MCP Hub.
"""

from .loader import load_config, default_config_path
from .settings import (
    Settings,
    TransportSettings,
    ControlSettings,
    ProductsSettings,
    build_transport_config,
    resolve_log_level,
)
from .logging import setup_logging

__all__ = [
    "load_config",
    "default_config_path",
    "Settings",
    "TransportSettings",
    "ControlSettings",
    "ProductsSettings",
    "build_transport_config",
    "resolve_log_level",
    "setup_logging",
]
