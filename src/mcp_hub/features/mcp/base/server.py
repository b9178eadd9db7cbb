"""mcp_hub.features.mcp.base.server

Serveur MCP minimal (JSON-RPC 2.0) indépendant du transport.

- Enregistrement d'outils: nom, description, modèle pydantic d'entrée, handler async
- Enregistrement de ressources (URI fixe ou modèle `scheme://chemin/{param}`) et de prompts
- Méthodes servies: `initialize`, `notifications/initialized`, `ping`, `tools/list`,
  `tools/call`, `resources/list`, `resources/templates/list`, `resources/read`,
  `prompts/list`, `prompts/get`
- `connect(channel)`: lie le serveur à un canal; chaque réponse repart sur ce canal

Les arguments d'un outil sont validés par son modèle AVANT l'appel du handler.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from ....core.constants import (
    DEFAULT_MCP_PROTOCOL_VERSION,
    JSONRPC_INTERNAL_ERROR,
    JSONRPC_INVALID_PARAMS,
    JSONRPC_INVALID_REQUEST,
    JSONRPC_METHOD_NOT_FOUND,
)
from ....core.exceptions import McpRequestError
from ....core.jsonrpc import (
    JsonDict,
    extract_request_id,
    is_notification,
    jsonrpc_error,
    jsonrpc_result,
    resource_text,
    tool_error,
)
from ....transport.channel import BaseChannel

logger = logging.getLogger(__name__)

ToolHandler = Callable[[BaseModel], Awaitable[JsonDict]]
ResourceReader = Callable[..., Awaitable[str]]
PromptRenderer = Callable[[dict], Awaitable[list]]


class EmptyArguments(BaseModel):
    """Entrée des outils sans paramètre."""

    model_config = ConfigDict(extra="ignore")


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler

    def to_dict(self) -> JsonDict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_model.model_json_schema(),
        }


@dataclass(frozen=True)
class ResourceDefinition:
    uri: str
    name: str
    description: str
    reader: ResourceReader
    mime_type: str = "application/json"

    def to_dict(self) -> JsonDict:
        return {
            "uri": self.uri,
            "mimeType": self.mime_type,
            "name": self.name,
            "description": self.description,
        }


def _template_pattern(uri_template: str) -> re.Pattern:
    """`scheme://categories/{product_type}` -> regex à groupes nommés (un segment par paramètre)."""
    parts = re.split(r"\{(\w+)\}", uri_template)
    regex = "".join(re.escape(part) if i % 2 == 0 else f"(?P<{part}>[^/]+)" for i, part in enumerate(parts))
    return re.compile(f"^{regex}$")


@dataclass(frozen=True)
class ResourceTemplateDefinition:
    uri_template: str
    name: str
    description: str
    reader: ResourceReader
    mime_type: str = "application/json"
    pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "pattern", _template_pattern(self.uri_template))

    def match(self, uri: str) -> Optional[dict]:
        m = self.pattern.match(uri)
        return m.groupdict() if m else None

    def to_dict(self) -> JsonDict:
        return {
            "uriTemplate": self.uri_template,
            "mimeType": self.mime_type,
            "name": self.name,
            "description": self.description,
        }


@dataclass(frozen=True)
class PromptArgument:
    name: str
    description: str
    required: bool = False


@dataclass(frozen=True)
class PromptDefinition:
    name: str
    description: str
    renderer: PromptRenderer
    arguments: tuple[PromptArgument, ...] = ()

    def to_dict(self) -> JsonDict:
        data: JsonDict = {"name": self.name, "description": self.description}
        if self.arguments:
            data["arguments"] = [
                {"name": arg.name, "description": arg.description, "required": arg.required}
                for arg in self.arguments
            ]
        return data


class ToolServer:
    """Dispatcher JSON-RPC des outils d'un serveur MCP."""

    def __init__(self, name: str, version: str = "1.0.0"):
        self.name = name
        self.version = version
        self._tools: dict[str, ToolDefinition] = {}
        self._resources: dict[str, ResourceDefinition] = {}
        self._resource_templates: list[ResourceTemplateDefinition] = []
        self._prompts: dict[str, PromptDefinition] = {}
        self._channel: Optional[BaseChannel] = None
        self.client_initialized = False

    @property
    def channel(self) -> Optional[BaseChannel]:
        return self._channel

    def tool(
        self,
        name: str,
        description: str,
        input_model: type[BaseModel] = EmptyArguments,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Décorateur d'enregistrement d'un outil (un nom = un outil)."""

        def decorator(handler: ToolHandler) -> ToolHandler:
            self._tools[name] = ToolDefinition(
                name=name,
                description=description,
                input_model=input_model,
                handler=handler,
            )
            return handler

        return decorator

    def tool_names(self) -> list[str]:
        return list(self._tools)

    def list_tools(self) -> list[JsonDict]:
        return [tool.to_dict() for tool in self._tools.values()]

    def resource(
        self,
        uri: str,
        name: str,
        description: str,
        mime_type: str = "application/json",
    ) -> Callable[[ResourceReader], ResourceReader]:
        """Décorateur d'une ressource à URI fixe; le lecteur reçoit l'URI et retourne le texte."""

        def decorator(reader: ResourceReader) -> ResourceReader:
            self._resources[uri] = ResourceDefinition(uri, name, description, reader, mime_type)
            return reader

        return decorator

    def resource_template(
        self,
        uri_template: str,
        name: str,
        description: str,
        mime_type: str = "application/json",
    ) -> Callable[[ResourceReader], ResourceReader]:
        """Décorateur d'un modèle de ressource; le lecteur reçoit l'URI et les paramètres extraits."""

        def decorator(reader: ResourceReader) -> ResourceReader:
            self._resource_templates.append(
                ResourceTemplateDefinition(uri_template, name, description, reader, mime_type)
            )
            return reader

        return decorator

    def prompt(
        self,
        name: str,
        description: str,
        arguments: tuple[PromptArgument, ...] = (),
    ) -> Callable[[PromptRenderer], PromptRenderer]:
        def decorator(renderer: PromptRenderer) -> PromptRenderer:
            self._prompts[name] = PromptDefinition(name, description, renderer, tuple(arguments))
            return renderer

        return decorator

    async def read_resource(self, uri: str) -> JsonDict:
        """
        Lit une ressource: URI fixe d'abord, puis modèles dans l'ordre d'enregistrement.

        Raises:
            McpRequestError: aucune ressource ne correspond (ou le lecteur refuse l'URI)
        """
        resource = self._resources.get(uri)
        if resource is not None:
            return resource_text(uri, await resource.reader(uri), resource.mime_type)

        for template in self._resource_templates:
            params = template.match(uri)
            if params is not None:
                return resource_text(uri, await template.reader(uri, **params), template.mime_type)

        raise McpRequestError(f"Resource not found: {uri}", JSONRPC_INVALID_REQUEST)

    async def get_prompt(self, name: str, arguments: dict) -> JsonDict:
        prompt = self._prompts.get(name)
        if prompt is None:
            raise McpRequestError(f"Unknown prompt: {name}", JSONRPC_INVALID_PARAMS)
        missing = [arg.name for arg in prompt.arguments if arg.required and arg.name not in arguments]
        if missing:
            raise McpRequestError(
                f"Missing required arguments for prompt '{name}': {', '.join(missing)}",
                JSONRPC_INVALID_PARAMS,
            )
        return {"description": prompt.description, "messages": await prompt.renderer(arguments)}

    def connect(self, channel: BaseChannel) -> None:
        """Lie le serveur au canal (remplace toute liaison précédente du canal)."""
        channel.bind(self._on_message)
        self._channel = channel

    async def _on_message(self, message: JsonDict) -> None:
        response = await self.handle_message(message)
        if response is not None and self._channel is not None:
            await self._channel.send(response)

    async def handle_message(self, message: object) -> Optional[JsonDict]:
        """
        Traite un message JSON-RPC entrant.

        Returns:
            La réponse à renvoyer au pair, ou None pour une notification
        """
        req_id = extract_request_id(message)
        if (
            not isinstance(message, dict)
            or message.get("jsonrpc") != "2.0"
            or not isinstance(message.get("method"), str)
        ):
            return jsonrpc_error(code=JSONRPC_INVALID_REQUEST, message="Invalid Request", req_id=req_id)

        method = str(message.get("method"))
        params = message.get("params")
        params_dict: dict = params if isinstance(params, dict) else {}

        if is_notification(message):
            if method == "notifications/initialized":
                self.client_initialized = True
            else:
                logger.debug(f"[{self.name}] notification ignorée: {method}")
            return None

        if method == "initialize":
            protocol_version = DEFAULT_MCP_PROTOCOL_VERSION
            if isinstance(params_dict.get("protocolVersion"), str):
                protocol_version = str(params_dict.get("protocolVersion"))
            return jsonrpc_result(
                req_id=req_id,
                result={
                    "protocolVersion": protocol_version,
                    "capabilities": {"tools": {}, "resources": {}, "prompts": {}},
                    "serverInfo": {"name": self.name, "version": self.version},
                },
            )

        if method == "ping":
            return jsonrpc_result(req_id=req_id, result={})

        if method == "tools/list":
            return jsonrpc_result(req_id=req_id, result={"tools": self.list_tools()})

        if method == "tools/call":
            tool_name = params_dict.get("name")
            arguments = params_dict.get("arguments")
            if not isinstance(tool_name, str):
                return jsonrpc_error(
                    code=JSONRPC_INVALID_PARAMS,
                    message="Invalid params: missing tool name",
                    req_id=req_id,
                )
            return await self.call_tool(tool_name, arguments if isinstance(arguments, dict) else {}, req_id=req_id)

        if method == "resources/list":
            resources = [resource.to_dict() for resource in self._resources.values()]
            return jsonrpc_result(req_id=req_id, result={"resources": resources})

        if method == "resources/templates/list":
            templates = [template.to_dict() for template in self._resource_templates]
            return jsonrpc_result(req_id=req_id, result={"resourceTemplates": templates})

        if method == "prompts/list":
            prompts = [prompt.to_dict() for prompt in self._prompts.values()]
            return jsonrpc_result(req_id=req_id, result={"prompts": prompts})

        if method in {"resources/read", "prompts/get"}:
            return await self._handle_lookup(method, params_dict, req_id)

        return jsonrpc_error(code=JSONRPC_METHOD_NOT_FOUND, message=f"Method not found: {method}", req_id=req_id)

    async def _handle_lookup(self, method: str, params: dict, req_id: object | None) -> JsonDict:
        """`resources/read` et `prompts/get`: les refus du handler deviennent des erreurs JSON-RPC."""
        try:
            if method == "resources/read":
                uri = params.get("uri")
                if not isinstance(uri, str):
                    raise McpRequestError("Invalid params: missing resource uri", JSONRPC_INVALID_PARAMS)
                return jsonrpc_result(req_id=req_id, result=await self.read_resource(uri))

            name = params.get("name")
            if not isinstance(name, str):
                raise McpRequestError("Invalid params: missing prompt name", JSONRPC_INVALID_PARAMS)
            arguments = params.get("arguments")
            result = await self.get_prompt(name, arguments if isinstance(arguments, dict) else {})
            return jsonrpc_result(req_id=req_id, result=result)
        except McpRequestError as e:
            return jsonrpc_error(code=e.rpc_code, message=e.message, req_id=req_id)
        except Exception as e:
            logger.error(f"[{self.name}] échec de {method}: {e}")
            return jsonrpc_error(code=JSONRPC_INTERNAL_ERROR, message=f"Internal error: {e}", req_id=req_id)

    async def call_tool(self, name: str, arguments: dict, *, req_id: object | None = None) -> JsonDict:
        tool = self._tools.get(name)
        if tool is None:
            return jsonrpc_error(
                code=JSONRPC_INVALID_PARAMS,
                message=f"Invalid params: unknown tool '{name}'",
                req_id=req_id,
            )

        try:
            args = tool.input_model.model_validate(arguments)
        except ValidationError as e:
            return jsonrpc_error(
                code=JSONRPC_INVALID_PARAMS,
                message=f"Invalid params for tool '{name}'",
                req_id=req_id,
                data=e.errors(include_url=False, include_context=False, include_input=False),
            )

        try:
            result = await tool.handler(args)
        except Exception as e:
            logger.error(f"[{self.name}] échec de l'outil {name}: {e}")
            result = tool_error(f"Tool {name} failed: {e}")

        return jsonrpc_result(req_id=req_id, result=result)
