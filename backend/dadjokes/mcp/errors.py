"""Error taxonomy for catalog registration and request dispatch."""

from __future__ import annotations

from typing import Any, Mapping

# JSON-RPC 2.0 reserved codes plus the MCP resource-not-found extension.
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
RESOURCE_NOT_FOUND = -32002


class MCPError(Exception):
    """Raised when a request cannot be fulfilled; maps onto a JSON-RPC error."""

    code: int = INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        details: Mapping[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = dict(details or {})

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_error_payload(self) -> dict[str, Any]:
        """Return the JSON-RPC ``error`` member for this failure."""
        data: dict[str, Any] = {"type": self.error_type}
        if self.details:
            data["details"] = self.details
        return {"code": self.code, "message": self.message, "data": data}


class ProtocolParseError(MCPError):
    """Malformed envelope; fatal to the request that carried it."""

    code = PARSE_ERROR


class MethodNotFoundError(MCPError):
    code = METHOD_NOT_FOUND


class NotFoundError(MCPError):
    """Unknown tool name or resource URI."""

    code = INVALID_PARAMS


class ValidationError(MCPError):
    """Arguments failed the tool's input schema."""

    code = INVALID_PARAMS


class HandlerError(MCPError):
    """A tool or resource handler raised while executing."""

    code = INTERNAL_ERROR


class OutOfRangeError(MCPError, IndexError):
    """Index outside the capability provider's bounds."""

    code = INVALID_PARAMS


class RegistrationError(Exception):
    """Base class for catalog construction failures. Fatal at startup."""


class DuplicateIdentifierError(RegistrationError):
    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"duplicate {kind} identifier {identifier!r}")


class UnresolvedTemplateError(RegistrationError):
    def __init__(self, tool_name: str, uri: str):
        self.tool_name = tool_name
        self.uri = uri
        super().__init__(
            f"tool {tool_name!r} renders into {uri!r} which is not a registered resource"
        )


class RegistrySealedError(RegistrationError):
    """Raised when registering after the catalog accepted traffic."""
