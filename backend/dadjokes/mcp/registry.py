"""Registry that stores tool and resource descriptors."""

from __future__ import annotations

import logging
from typing import Mapping

from .errors import (
    RESOURCE_NOT_FOUND,
    DuplicateIdentifierError,
    NotFoundError,
    RegistrySealedError,
    UnresolvedTemplateError,
)
from .schema import CapabilityKind, Descriptor, ResourceDescriptor, ToolDescriptor

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """In-memory catalog of tools and resources, fixed once traffic starts.

    Tools are keyed by name and resources by URI. The two namespaces are
    independent, so a tool and a resource may share an identifier. Resource
    names must also be unique since clients display them.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._resources: dict[str, ResourceDescriptor] = {}
        self._resource_names: set[str] = set()
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, descriptor: Descriptor) -> None:
        """Add a descriptor to the namespace matching its kind."""
        if self._sealed:
            raise RegistrySealedError("catalog is sealed; registration is startup-only")
        if isinstance(descriptor, ToolDescriptor):
            self._register_tool(descriptor)
        elif isinstance(descriptor, ResourceDescriptor):
            self._register_resource(descriptor)
        else:
            raise TypeError(f"unsupported descriptor type {type(descriptor).__name__}")

    def _register_tool(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            raise DuplicateIdentifierError(CapabilityKind.TOOL.value, descriptor.name)
        self._tools[descriptor.name] = descriptor
        logger.info(
            "tool registered name=%s output_template=%s",
            descriptor.name,
            descriptor.output_template,
        )

    def _register_resource(self, descriptor: ResourceDescriptor) -> None:
        if descriptor.uri in self._resources:
            raise DuplicateIdentifierError(CapabilityKind.RESOURCE.value, descriptor.uri)
        if descriptor.name in self._resource_names:
            raise DuplicateIdentifierError(CapabilityKind.RESOURCE.value, descriptor.name)
        self._resources[descriptor.uri] = descriptor
        self._resource_names.add(descriptor.name)
        logger.info(
            "resource registered name=%s uri=%s mime_type=%s",
            descriptor.name,
            descriptor.uri,
            descriptor.mime_type,
        )

    def seal(self) -> None:
        """Check render-target links and freeze the catalog."""
        for tool in self._tools.values():
            if tool.output_template and tool.output_template not in self._resources:
                raise UnresolvedTemplateError(tool.name, tool.output_template)
        self._sealed = True
        logger.info(
            "catalog sealed tools=%s resources=%s",
            list(self._tools),
            list(self._resources),
        )

    def resolve(self, kind: CapabilityKind, identifier: str) -> Descriptor:
        """Return the descriptor registered under ``identifier``."""
        if kind is CapabilityKind.TOOL:
            tool = self._tools.get(identifier)
            if tool is None:
                raise NotFoundError(
                    f"Tool {identifier} not found", details={"name": identifier}
                )
            return tool
        resource = self._resources.get(identifier)
        if resource is None:
            raise NotFoundError(
                f"Resource {identifier} not found",
                code=RESOURCE_NOT_FOUND,
                details={"uri": identifier},
            )
        return resource

    def list_tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def list_resources(self) -> list[ResourceDescriptor]:
        return list(self._resources.values())

    def describe(self) -> Mapping[str, list[str]]:
        """Return identifiers per kind (mainly for diagnostics)."""
        return {
            CapabilityKind.TOOL.value: list(self._tools),
            CapabilityKind.RESOURCE.value: list(self._resources),
        }
