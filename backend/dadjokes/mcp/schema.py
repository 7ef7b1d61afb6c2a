"""Catalog descriptors and JSON-RPC wire models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

JSONRPC_VERSION = "2.0"

OUTPUT_TEMPLATE_META = "openai/outputTemplate"
INVOKING_META = "openai/toolInvocation/invoking"
INVOKED_META = "openai/toolInvocation/invoked"


class CapabilityKind(str, Enum):
    """Independent identifier namespaces held by the registry."""

    TOOL = "tool"
    RESOURCE = "resource"


class ToolInputModel(BaseModel):
    """Base class with common config for tool argument schemas."""

    model_config = ConfigDict(extra="forbid")


class ToolOutputModel(BaseModel):
    """Base class for structured tool outputs."""

    model_config = ConfigDict(extra="forbid")


class ToolAnnotations(BaseModel):
    """Behaviour hints a client may use to decide how to surface a tool."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    destructive: bool = Field(default=False, alias="destructiveHint")
    open_world: bool = Field(default=False, alias="openWorldHint")
    read_only: bool = Field(default=True, alias="readOnlyHint")


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class InvocationResult(BaseModel):
    """Result of a completed tool call."""

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent] = Field(default_factory=list)
    structured_content: dict[str, Any] | None = Field(
        default=None, alias="structuredContent"
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ResourceContents(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    mime_type: str | None = Field(default=None, alias="mimeType")
    text: str
    meta: dict[str, Any] | None = Field(default=None, alias="_meta")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


ToolHandler = Callable[
    [ToolInputModel],
    Union[ToolOutputModel, InvocationResult, Awaitable[Union[ToolOutputModel, InvocationResult]]],
]
ResourceRenderFn = Callable[[], str]


@dataclass(frozen=True)
class ToolDescriptor:
    """Declarative definition of a callable tool."""

    name: str
    description: str
    input_model: type[ToolInputModel]
    handler: ToolHandler
    title: str | None = None
    output_model: type[ToolOutputModel] | None = None
    output_template: str | None = None
    invocation_messages: Mapping[str, str] = field(default_factory=dict)
    annotations: ToolAnnotations = field(default_factory=ToolAnnotations)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "invocation_messages", MappingProxyType(dict(self.invocation_messages))
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()

    def meta(self) -> dict[str, Any]:
        meta: dict[str, Any] = {}
        if self.output_template:
            meta[OUTPUT_TEMPLATE_META] = self.output_template
        if "invoking" in self.invocation_messages:
            meta[INVOKING_META] = self.invocation_messages["invoking"]
        if "invoked" in self.invocation_messages:
            meta[INVOKED_META] = self.invocation_messages["invoked"]
        return meta

    def to_definition(self) -> dict[str, Any]:
        """Render the entry returned by ``tools/list``."""
        definition: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "annotations": self.annotations.model_dump(by_alias=True),
        }
        if self.title:
            definition["title"] = self.title
        if self.output_model is not None:
            definition["outputSchema"] = self.output_model.model_json_schema()
        meta = self.meta()
        if meta:
            definition["_meta"] = meta
        return definition


@dataclass(frozen=True)
class ResourceDescriptor:
    """Declarative definition of a readable, URI-addressed resource."""

    name: str
    uri: str
    render: ResourceRenderFn
    title: str | None = None
    description: str | None = None
    mime_type: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))

    def to_definition(self) -> dict[str, Any]:
        definition: dict[str, Any] = {"uri": self.uri, "name": self.name}
        if self.title:
            definition["title"] = self.title
        if self.description:
            definition["description"] = self.description
        if self.mime_type:
            definition["mimeType"] = self.mime_type
        return definition

    def read(self) -> ResourceContents:
        return ResourceContents(
            uri=self.uri,
            mime_type=self.mime_type,
            text=self.render(),
            meta=dict(self.meta) or None,
        )


Descriptor = Union[ToolDescriptor, ResourceDescriptor]


@dataclass(frozen=True)
class InvocationRequest:
    """One resolved call; lives for the duration of a single dispatch."""

    target: str
    kind: CapabilityKind
    arguments: Mapping[str, Any]


# ----- JSON-RPC envelopes ---------------------------------------------------


# JSON-RPC ids are strings or numbers; booleans are not coerced.
RequestId = Union[StrictStr, StrictInt]


class JsonRpcRequest(BaseModel):
    """Inbound request or notification (notifications carry no id)."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    method: str = Field(..., min_length=1)
    id: RequestId | None = None
    params: dict[str, Any] | None = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class JsonRpcResponse(BaseModel):
    """Outbound response envelope carrying either a result or an error."""

    model_config = ConfigDict(extra="forbid")

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId | None = None
    result: dict[str, Any] | None = None
    error: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _validate_payloads(self) -> "JsonRpcResponse":
        if self.result is None and self.error is None:
            raise ValueError("json-rpc response requires result or error payload")
        if self.result is not None and self.error is not None:
            raise ValueError("json-rpc response cannot include both result and error")
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error
        else:
            payload["result"] = self.result
        return payload


class CallToolParams(BaseModel):
    name: str = Field(..., min_length=1)
    arguments: dict[str, Any] | None = None


class ReadResourceParams(BaseModel):
    uri: str = Field(..., min_length=1)


class InitializeParams(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    protocol_version: str | None = Field(default=None, alias="protocolVersion")
