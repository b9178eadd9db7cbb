"""
Exceptions personnalisées pour MCP Hub.
"""


class McpHubError(Exception):
    """Exception de base pour toutes les erreurs du bridge."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code or "unknown_error"
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"[{self.code}] {self.message} - Détails: {self.details}"
        return f"[{self.code}] {self.message}"


class ConfigurationError(McpHubError):
    """Erreur de configuration (fichier invalide, registre incohérent)."""

    def __init__(self, message: str, config_key: str = None):
        super().__init__(
            message=message,
            code="config_error",
            details={"key": config_key} if config_key else {}
        )


class TransportConfigError(McpHubError):
    """
    Transport inutilisable au démarrage d'un serveur.

    Fatale: le multiplexeur n'a pas été démarré, ou aucun canal n'est ouvert
    pour ce serveur. Jamais retentée automatiquement.
    """

    def __init__(self, message: str, server_id: str = None):
        super().__init__(
            message=message,
            code="transport_config_error",
            details={"server_id": server_id} if server_id else {}
        )


class BindError(McpHubError):
    """Impossible de lier le listener HTTP au port demandé."""

    def __init__(self, message: str, host: str = None, port: int = None):
        super().__init__(
            message=message,
            code="bind_error",
            details={"host": host, "port": port}
        )
        self.port = port


class ChannelNotBoundError(McpHubError):
    """Message reçu sur un canal qu'aucun serveur n'a encore connecté."""

    def __init__(self, server_id: str):
        super().__init__(
            message=f"Aucun serveur connecté au canal {server_id}",
            code="channel_not_bound",
            details={"server_id": server_id}
        )


class CatalogError(McpHubError):
    """Erreur de l'API catalogue produits (HTTP, réseau, JSON invalide)."""

    def __init__(self, message: str, status_code: int = None, endpoint: str = None):
        details = {}
        if status_code is not None:
            details["status_code"] = status_code
        if endpoint:
            details["endpoint"] = endpoint
        super().__init__(
            message=message,
            code="catalog_error",
            details=details
        )
        self.status_code = status_code


class McpRequestError(McpHubError):
    """
    Requête MCP refusée par un handler (ressource inconnue, prompt inconnu...).

    Convertie par le dispatcher en erreur JSON-RPC avec `rpc_code`.
    """

    def __init__(self, message: str, rpc_code: int):
        super().__init__(
            message=message,
            code="mcp_request_error",
            details={"rpc_code": rpc_code}
        )
        self.rpc_code = rpc_code
