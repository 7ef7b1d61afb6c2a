"""JSON-RPC dispatcher that routes protocol messages onto the catalog."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import (
    INVALID_REQUEST,
    HandlerError,
    MCPError,
    MethodNotFoundError,
    ProtocolParseError,
    ValidationError,
)
from .registry import CapabilityRegistry
from .schema import (
    CallToolParams,
    CapabilityKind,
    InitializeParams,
    InvocationRequest,
    InvocationResult,
    JsonRpcRequest,
    JsonRpcResponse,
    ReadResourceParams,
    ResourceContents,
    ResourceDescriptor,
    ToolDescriptor,
    ToolInputModel,
)

logger = logging.getLogger(__name__)

SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]


class DispatchPhase(str, Enum):
    RECEIVED = "received"
    PARSED = "parsed"
    RESOLVED = "resolved"
    VALIDATED = "validated"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


_TERMINAL_PHASES = frozenset({DispatchPhase.COMPLETED, DispatchPhase.FAILED})


@dataclass
class DispatchTrace:
    """Phases one message passed through, in order."""

    method: str | None = None
    phases: list[DispatchPhase] = field(default_factory=list)

    def advance(self, phase: DispatchPhase) -> None:
        if self.phases and self.phases[-1] in _TERMINAL_PHASES:
            raise RuntimeError(f"dispatch already finished in phase {self.phases[-1].value}")
        self.phases.append(phase)

    @property
    def outcome(self) -> DispatchPhase | None:
        return self.phases[-1] if self.phases else None


@dataclass(frozen=True)
class ServerInfo:
    name: str
    version: str


MethodHandler = Callable[[JsonRpcRequest, DispatchTrace], Awaitable[dict[str, Any]]]


def parse_body(body: bytes) -> Any:
    """Decode an HTTP body into a JSON value."""
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise ProtocolParseError(f"Parse error: {exc}") from exc


def validate_arguments(tool: ToolDescriptor, arguments: Mapping[str, Any]) -> ToolInputModel:
    """Validate arguments against the tool's declared input schema."""
    try:
        return tool.input_model.model_validate(dict(arguments))
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid arguments for tool {tool.name}",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def _params(model: type[BaseModel], request: JsonRpcRequest) -> Any:
    try:
        return model.model_validate(request.params or {})
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid params for {request.method}",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def _peek_id(message: Any) -> Any:
    if isinstance(message, Mapping):
        candidate = message.get("id")
        if isinstance(candidate, (str, int)) and not isinstance(candidate, bool):
            return candidate
    return None


class Dispatcher:
    """Resolves protocol messages against a sealed registry and runs them.

    Each message moves through ``received -> parsed -> resolved -> validated
    -> executing`` and ends in ``completed`` or ``failed``. Every request-scoped
    failure becomes a JSON-RPC error response; nothing escapes to the caller
    except cancellation.
    """

    def __init__(self, registry: CapabilityRegistry, server_info: ServerInfo):
        if not registry.sealed:
            raise RuntimeError("registry must be sealed before dispatching")
        self.registry = registry
        self.server_info = server_info
        self._methods: dict[str, MethodHandler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "resources/list": self._list_resources,
            "resources/templates/list": self._list_resource_templates,
            "resources/read": self._read_resource,
        }

    async def handle_body(
        self,
        body: bytes,
        *,
        session_id: str = "system",
        traces: list[DispatchTrace] | None = None,
    ) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Dispatch an undecoded HTTP body; ``None`` means nothing to send back."""
        try:
            payload = parse_body(body)
        except ProtocolParseError as exc:
            logger.warning("unparseable body: %s", exc, extra={"session_id": session_id})
            return JsonRpcResponse(id=None, error=exc.to_error_payload()).to_wire()
        return await self.dispatch_payload(payload, session_id=session_id, traces=traces)

    async def dispatch_payload(
        self,
        payload: Any,
        *,
        session_id: str = "system",
        traces: list[DispatchTrace] | None = None,
    ) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Dispatch a decoded message or batch."""
        if isinstance(payload, list):
            if not payload:
                error = ProtocolParseError("Invalid Request: empty batch", code=INVALID_REQUEST)
                return JsonRpcResponse(id=None, error=error.to_error_payload()).to_wire()
            replies = []
            for message in payload:
                reply = await self._dispatch_traced(message, session_id, traces)
                if reply is not None:
                    replies.append(reply.to_wire())
            return replies or None
        reply = await self._dispatch_traced(payload, session_id, traces)
        return reply.to_wire() if reply is not None else None

    async def _dispatch_traced(
        self, message: Any, session_id: str, traces: list[DispatchTrace] | None
    ) -> JsonRpcResponse | None:
        trace = DispatchTrace()
        if traces is not None:
            traces.append(trace)
        return await self.dispatch(message, session_id=session_id, trace=trace)

    async def dispatch(
        self,
        message: Any,
        *,
        session_id: str = "system",
        trace: DispatchTrace | None = None,
    ) -> JsonRpcResponse | None:
        """Dispatch one decoded JSON-RPC message."""
        trace = trace if trace is not None else DispatchTrace()
        trace.advance(DispatchPhase.RECEIVED)
        request_id = _peek_id(message)
        request: JsonRpcRequest | None = None
        try:
            request = self._parse(message)
            trace.method = request.method
            trace.advance(DispatchPhase.PARSED)
            if request.is_notification:
                return self._accept_notification(request, trace, session_id)
            handler = self._methods.get(request.method)
            if handler is None:
                raise MethodNotFoundError(
                    f"Method not found: {request.method}", details={"method": request.method}
                )
            result = await handler(request, trace)
        except MCPError as exc:
            trace.advance(DispatchPhase.FAILED)
            logger.info(
                "dispatch failed method=%s id=%s error=%s message=%s",
                trace.method,
                request_id,
                exc.error_type,
                exc.message,
                extra={"session_id": session_id},
            )
            if request is not None and request.is_notification:
                return None
            return JsonRpcResponse(id=request_id, error=exc.to_error_payload())
        trace.advance(DispatchPhase.COMPLETED)
        logger.info(
            "dispatch completed method=%s id=%s",
            request.method,
            request.id,
            extra={"session_id": session_id},
        )
        return JsonRpcResponse(id=request.id, result=result)

    @staticmethod
    def _parse(message: Any) -> JsonRpcRequest:
        if not isinstance(message, Mapping):
            raise ProtocolParseError(
                "Invalid Request: expected a JSON-RPC object", code=INVALID_REQUEST
            )
        try:
            return JsonRpcRequest.model_validate(message)
        except PydanticValidationError as exc:
            raise ProtocolParseError(
                "Invalid Request",
                code=INVALID_REQUEST,
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

    def _accept_notification(
        self, request: JsonRpcRequest, trace: DispatchTrace, session_id: str
    ) -> None:
        trace.advance(DispatchPhase.COMPLETED)
        logger.debug(
            "notification accepted method=%s", request.method, extra={"session_id": session_id}
        )
        return None

    @staticmethod
    def _untargeted(trace: DispatchTrace) -> None:
        trace.advance(DispatchPhase.RESOLVED)
        trace.advance(DispatchPhase.VALIDATED)
        trace.advance(DispatchPhase.EXECUTING)

    # ----- protocol methods -------------------------------------------------

    async def _initialize(self, request: JsonRpcRequest, trace: DispatchTrace) -> dict[str, Any]:
        params = _params(InitializeParams, request)
        self._untargeted(trace)
        version = params.protocol_version
        if version not in SUPPORTED_PROTOCOL_VERSIONS:
            version = LATEST_PROTOCOL_VERSION
        return {
            "protocolVersion": version,
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {"listChanged": False},
            },
            "serverInfo": {"name": self.server_info.name, "version": self.server_info.version},
        }

    async def _ping(self, request: JsonRpcRequest, trace: DispatchTrace) -> dict[str, Any]:
        self._untargeted(trace)
        return {}

    async def _list_tools(self, request: JsonRpcRequest, trace: DispatchTrace) -> dict[str, Any]:
        self._untargeted(trace)
        return {"tools": [tool.to_definition() for tool in self.registry.list_tools()]}

    async def _list_resources(
        self, request: JsonRpcRequest, trace: DispatchTrace
    ) -> dict[str, Any]:
        self._untargeted(trace)
        return {
            "resources": [
                resource.to_definition() for resource in self.registry.list_resources()
            ]
        }

    async def _list_resource_templates(
        self, request: JsonRpcRequest, trace: DispatchTrace
    ) -> dict[str, Any]:
        self._untargeted(trace)
        return {"resourceTemplates": []}

    async def _call_tool(self, request: JsonRpcRequest, trace: DispatchTrace) -> dict[str, Any]:
        params: CallToolParams = _params(CallToolParams, request)
        invocation = InvocationRequest(
            target=params.name,
            kind=CapabilityKind.TOOL,
            arguments=params.arguments or {},
        )
        tool = self.registry.resolve(invocation.kind, invocation.target)
        trace.advance(DispatchPhase.RESOLVED)
        arguments = validate_arguments(tool, invocation.arguments)
        trace.advance(DispatchPhase.VALIDATED)
        trace.advance(DispatchPhase.EXECUTING)
        result = await self._execute_tool(tool, arguments)
        return result.to_wire()

    async def _read_resource(
        self, request: JsonRpcRequest, trace: DispatchTrace
    ) -> dict[str, Any]:
        params: ReadResourceParams = _params(ReadResourceParams, request)
        invocation = InvocationRequest(
            target=params.uri, kind=CapabilityKind.RESOURCE, arguments={}
        )
        resource = self.registry.resolve(invocation.kind, invocation.target)
        trace.advance(DispatchPhase.RESOLVED)
        trace.advance(DispatchPhase.VALIDATED)
        trace.advance(DispatchPhase.EXECUTING)
        contents = self._render_resource(resource)
        return {"contents": [contents.to_wire()]}

    # ----- execution --------------------------------------------------------

    async def _execute_tool(
        self, tool: ToolDescriptor, arguments: ToolInputModel
    ) -> InvocationResult:
        try:
            outcome = tool.handler(arguments)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except MCPError:
            raise
        except Exception as exc:
            logger.exception("tool handler raised name=%s", tool.name)
            raise HandlerError(
                f"Tool {tool.name} failed: {exc}", details={"name": tool.name}
            ) from exc
        if isinstance(outcome, InvocationResult):
            return outcome
        if isinstance(outcome, BaseModel):
            return InvocationResult(content=[], structured_content=outcome.model_dump())
        raise HandlerError(
            f"Tool {tool.name} returned unsupported result {type(outcome).__name__}",
            details={"name": tool.name},
        )

    @staticmethod
    def _render_resource(resource: ResourceDescriptor) -> ResourceContents:
        try:
            return resource.read()
        except MCPError:
            raise
        except Exception as exc:
            logger.exception("resource render raised uri=%s", resource.uri)
            raise HandlerError(
                f"Resource {resource.uri} failed: {exc}", details={"uri": resource.uri}
            ) from exc
