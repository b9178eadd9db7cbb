"""mcp_hub.config.settings

Dataclasses de configuration, construites depuis le TOML chargé.

Propriétés:
- Fallback robuste si section absente/incomplète
- Validation/clamp des types pour éviter un crash au démarrage
"""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple

from ..core.constants import (
    DEFAULT_BASE_PATH,
    DEFAULT_CATALOG_API_URL,
    DEFAULT_CATALOG_BASE_URL,
    DEFAULT_CATALOG_TIMEOUT_MS,
    DEFAULT_CATALOG_WEBSITE_URL,
    DEFAULT_CONTROL_HOST,
    DEFAULT_CONTROL_PORT,
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_SSE_HOST,
    DEFAULT_SSE_PORT,
    SSE_KEEPALIVE_SECONDS,
)
from ..transport.config import StdioTransport, StreamTransport, TransportConfig, normalize_base_path

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _clamp_int(value: object, *, default: int, min_value: int, max_value: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        v = value
    elif isinstance(value, float) and not isinstance(value, bool):
        v = int(value)
    else:
        return default
    return min(max(v, min_value), max_value)


def _clamp_float(value: object, *, default: float, min_value: float, max_value: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return min(max(float(value), min_value), max_value)
    return default


def _str_or(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    obj = config.get(name)
    return obj if isinstance(obj, dict) else {}


@dataclass(frozen=True)
class TransportSettings:
    """Section `[transport]`."""

    type: Literal["stdio", "sse"] = "sse"
    host: str = DEFAULT_SSE_HOST
    port: int = DEFAULT_SSE_PORT
    base_path: str = DEFAULT_BASE_PATH
    keepalive_seconds: float = SSE_KEEPALIVE_SECONDS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransportSettings":
        defaults = cls()
        type_obj = data.get("type", defaults.type)
        transport_type: Literal["stdio", "sse"]
        if isinstance(type_obj, str) and type_obj.strip().lower() == "stdio":
            transport_type = "stdio"
        else:
            transport_type = "sse"

        base_path_obj = data.get("base_path", defaults.base_path)
        return cls(
            type=transport_type,
            host=_str_or(data.get("host"), defaults.host),
            port=_clamp_int(data.get("port", defaults.port), default=defaults.port, min_value=0, max_value=65535),
            base_path=normalize_base_path(base_path_obj if isinstance(base_path_obj, str) else defaults.base_path),
            keepalive_seconds=_clamp_float(
                data.get("keepalive_seconds", defaults.keepalive_seconds),
                default=defaults.keepalive_seconds,
                min_value=0.1,
                max_value=300.0,
            ),
        )


@dataclass(frozen=True)
class ControlSettings:
    """Section `[control]`: API HTTP de pilotage."""

    host: str = DEFAULT_CONTROL_HOST
    port: int = DEFAULT_CONTROL_PORT
    autostart: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ControlSettings":
        defaults = cls()
        return cls(
            host=_str_or(data.get("host"), defaults.host),
            port=_clamp_int(data.get("port", defaults.port), default=defaults.port, min_value=0, max_value=65535),
            autostart=bool(data.get("autostart", defaults.autostart)),
        )


@dataclass(frozen=True)
class ProductsSettings:
    """Section `[products]`: client du catalogue."""

    base_url: str = DEFAULT_CATALOG_BASE_URL
    website_url: str = DEFAULT_CATALOG_WEBSITE_URL
    api_url: str = DEFAULT_CATALOG_API_URL
    timeout_ms: float = DEFAULT_CATALOG_TIMEOUT_MS
    default_limit: int = DEFAULT_SEARCH_LIMIT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductsSettings":
        defaults = cls()
        return cls(
            base_url=_str_or(data.get("base_url"), defaults.base_url),
            website_url=_str_or(data.get("website_url"), defaults.website_url),
            api_url=_str_or(data.get("api_url"), defaults.api_url),
            timeout_ms=_clamp_float(
                data.get("timeout_ms", defaults.timeout_ms),
                default=defaults.timeout_ms,
                min_value=100.0,
                max_value=120_000.0,
            ),
            default_limit=_clamp_int(
                data.get("default_limit", defaults.default_limit),
                default=defaults.default_limit,
                min_value=1,
                max_value=100,
            ),
        )


@dataclass(frozen=True)
class Settings:
    """Configuration globale de MCP Hub."""

    transport: TransportSettings = field(default_factory=TransportSettings)
    control: ControlSettings = field(default_factory=ControlSettings)
    products: ProductsSettings = field(default_factory=ProductsSettings)
    log_level: str = "INFO"
    enabled_servers: Tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Settings":
        """Crée une instance depuis la configuration chargée."""
        level_obj = _section(config, "logging").get("level", "INFO")
        log_level = level_obj.upper() if isinstance(level_obj, str) and level_obj.upper() in LOG_LEVELS else "INFO"

        enabled_obj = _section(config, "servers").get("enabled", [])
        enabled: Tuple[str, ...] = ()
        if isinstance(enabled_obj, list):
            enabled = tuple(s for s in enabled_obj if isinstance(s, str) and s)

        return cls(
            transport=TransportSettings.from_dict(_section(config, "transport")),
            control=ControlSettings.from_dict(_section(config, "control")),
            products=ProductsSettings.from_dict(_section(config, "products")),
            log_level=log_level,
            enabled_servers=enabled,
        )


def build_transport_config(settings: TransportSettings) -> TransportConfig:
    """Descripteur de transport correspondant à la section `[transport]`."""
    if settings.type == "stdio":
        return StdioTransport()
    return StreamTransport(
        port=settings.port,
        base_path=settings.base_path,
        host=settings.host,
        keepalive_seconds=settings.keepalive_seconds,
    )


def resolve_log_level(settings: Settings, override: Optional[str] = None) -> str:
    """Priorité: argument CLI > variable MCP_HUB_LOG_LEVEL > TOML."""
    for candidate in (override, os.environ.get("MCP_HUB_LOG_LEVEL")):
        if candidate and candidate.upper() in LOG_LEVELS:
            return candidate.upper()
    return settings.log_level
