"""Model Context Protocol catalog, dispatcher and HTTP transport."""

from .dispatcher import Dispatcher, DispatchPhase, DispatchTrace, ServerInfo
from .errors import (
    DuplicateIdentifierError,
    HandlerError,
    MCPError,
    NotFoundError,
    OutOfRangeError,
    ProtocolParseError,
    ValidationError,
)
from .registry import CapabilityRegistry
from .schema import (
    CapabilityKind,
    InvocationResult,
    ResourceDescriptor,
    ToolAnnotations,
    ToolDescriptor,
    ToolInputModel,
    ToolOutputModel,
)
from .session import ProtocolSession
from .transport import StreamableHTTPTransport
from .widget import WidgetConfig, widget_resource

__all__ = [
    "CapabilityKind",
    "CapabilityRegistry",
    "DispatchPhase",
    "DispatchTrace",
    "Dispatcher",
    "DuplicateIdentifierError",
    "HandlerError",
    "InvocationResult",
    "MCPError",
    "NotFoundError",
    "OutOfRangeError",
    "ProtocolParseError",
    "ProtocolSession",
    "ResourceDescriptor",
    "ServerInfo",
    "StreamableHTTPTransport",
    "ToolAnnotations",
    "ToolDescriptor",
    "ToolInputModel",
    "ToolOutputModel",
    "ValidationError",
    "WidgetConfig",
    "widget_resource",
]
