"""
Constantes globales pour MCP Hub.
"""

# ============================================================================
# TRANSPORT
# ============================================================================
DEFAULT_TRANSPORT = "sse"
DEFAULT_SSE_HOST = "127.0.0.1"
DEFAULT_SSE_PORT = 3000
DEFAULT_BASE_PATH = ""
SSE_KEEPALIVE_SECONDS = 15.0  # Ping ": ping" si aucun message pendant ce délai
GRACEFUL_SHUTDOWN_TIMEOUT = 1  # secondes accordées à uvicorn pour fermer les flux

# Limite d'une ligne JSON-RPC lue sur stdin (défaut asyncio: 64KiB)
STDIO_STREAM_LIMIT = 8 * 1024 * 1024  # 8 MiB

# ============================================================================
# CONTROL API
# ============================================================================
DEFAULT_CONTROL_HOST = "127.0.0.1"
DEFAULT_CONTROL_PORT = 8765

# ============================================================================
# PROTOCOLE MCP / JSON-RPC 2.0
# ============================================================================
DEFAULT_MCP_PROTOCOL_VERSION = "2024-11-05"

JSONRPC_PARSE_ERROR = -32700
JSONRPC_INVALID_REQUEST = -32600
JSONRPC_METHOD_NOT_FOUND = -32601
JSONRPC_INVALID_PARAMS = -32602
JSONRPC_INTERNAL_ERROR = -32603

# ============================================================================
# SERVEURS
# ============================================================================
TIMER_TICK_SECONDS = 1.0  # Décrément d'un compte à rebours

DEFAULT_CATALOG_BASE_URL = "https://www.bitrefill.com/api"
DEFAULT_CATALOG_API_URL = "https://api.bitrefill.com/v2"  # outil `ping`
DEFAULT_CATALOG_WEBSITE_URL = "https://www.bitrefill.com"
DEFAULT_CATALOG_TIMEOUT_MS = 10000.0
DEFAULT_SEARCH_LIMIT = 6

# Catégories exposées par l'outil `categories` (sous-ensemble du catalogue)
PRODUCT_CATEGORIES = {
    "gift-cards": [
        "apparel",
        "electronics",
        "entertainment",
        "food",
        "games",
        "travel",
    ],
    "refill": [
        "mobile-topup",
        "data-bundle",
    ],
    "esims": [
        "esim",
    ],
}
