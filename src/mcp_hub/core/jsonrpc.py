"""mcp_hub.core.jsonrpc

Construction des enveloppes JSON-RPC 2.0 et des résultats d'outils MCP.

Module sans I/O, partagé par la couche transport et les serveurs MCP.
"""

from __future__ import annotations

import json


JsonDict = dict[str, object]


def jsonrpc_result(*, req_id: object | None, result: object) -> JsonDict:
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def jsonrpc_error(*, code: int, message: str, req_id: object | None, data: object | None = None) -> JsonDict:
    error: JsonDict = {"code": int(code), "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": req_id, "error": error}


def extract_request_id(obj: object) -> object | None:
    if isinstance(obj, dict) and "id" in obj:
        return obj.get("id")
    return None


def is_notification(obj: object) -> bool:
    """Une requête JSON-RPC sans `id` est une notification: aucune réponse attendue."""
    return isinstance(obj, dict) and "method" in obj and "id" not in obj


def text_content(text: str) -> JsonDict:
    return {"type": "text", "text": text}


def tool_result(text: str) -> JsonDict:
    """Enveloppe de succès d'un outil: `{content: [...]}`."""
    return {"content": [text_content(text)]}


def tool_error(text: str) -> JsonDict:
    """Enveloppe d'erreur d'un outil: toujours bien formée, jamais levée."""
    return {"content": [text_content(text)], "isError": True}


def tool_json_result(payload: object) -> JsonDict:
    return tool_result(json.dumps(payload, ensure_ascii=False, indent=2))


def resource_text(uri: str, text: str, mime_type: str = "application/json") -> JsonDict:
    """Résultat de `resources/read` pour un contenu texte."""
    return {"contents": [{"uri": uri, "mimeType": mime_type, "text": text}]}


def prompt_message(role: str, text: str) -> JsonDict:
    return {"role": role, "content": text_content(text)}
