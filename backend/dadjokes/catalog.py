"""Joke tools and resources exposed over MCP."""

from __future__ import annotations

from pydantic import Field, create_model, field_validator

from .jokes import JokeProvider
from .mcp.registry import CapabilityRegistry
from .mcp.schema import (
    ResourceDescriptor,
    ToolAnnotations,
    ToolDescriptor,
    ToolInputModel,
    ToolOutputModel,
)
from .mcp.widget import WidgetConfig, widget_resource

JOKE_TOOL = "tell-me-a-joke"
RANDOM_JOKE_TOOL = "tell-me-a-random-joke"
COUNT_RESOURCE = "jokes_count"
COUNT_RESOURCE_URI = "jokes://count"

_INVOCATION_MESSAGES = {
    "invoking": "Displaying a joke",
    "invoked": "Displayed a joke",
}
_READ_ONLY = ToolAnnotations(destructive=False, open_world=False, read_only=True)


class JokeLookupInput(ToolInputModel):
    id: int = Field(..., ge=0, description="joke id")

    @field_validator("id", mode="before")
    @classmethod
    def _reject_bool(cls, value: object) -> object:
        if isinstance(value, bool):
            raise ValueError("id must be an integer")
        return value


class RandomJokeInput(ToolInputModel):
    """Takes no arguments."""


class JokeOutput(ToolOutputModel):
    joke: str


def joke_lookup_input(count: int) -> type[JokeLookupInput]:
    """Bind the ``id`` upper bound to the size of the corpus."""
    return create_model(
        "JokeLookupInput",
        __base__=JokeLookupInput,
        id=(int, Field(..., ge=0, le=count - 1, description="joke id")),
    )


def _lookup_description(count: int) -> str:
    if count == 0:
        return "Tells a joke according to its index. No jokes are available."
    return f"Tells a joke according to its index. Valid ids 0-{count - 1}"


def build_catalog(provider: JokeProvider, widget: WidgetConfig | None = None) -> CapabilityRegistry:
    """Register the joke catalog and seal it."""
    widget = widget or WidgetConfig()
    registry = CapabilityRegistry()

    registry.register(
        ResourceDescriptor(
            name=COUNT_RESOURCE,
            uri=COUNT_RESOURCE_URI,
            title="Jokes Count Resource",
            mime_type="text/plain",
            render=lambda: f"I know {provider.count()} jokes",
        )
    )
    registry.register(widget_resource(widget))

    def tell_joke(payload: JokeLookupInput) -> JokeOutput:
        return JokeOutput(joke=provider.get(payload.id))

    def tell_random_joke(_payload: RandomJokeInput) -> JokeOutput:
        return JokeOutput(joke=provider.random())

    count = provider.count()
    registry.register(
        ToolDescriptor(
            name=JOKE_TOOL,
            title="Joke Teller",
            description=_lookup_description(count),
            input_model=joke_lookup_input(count),
            output_model=JokeOutput,
            handler=tell_joke,
            output_template=widget.uri,
            invocation_messages=_INVOCATION_MESSAGES,
            annotations=_READ_ONLY,
        )
    )
    registry.register(
        ToolDescriptor(
            name=RANDOM_JOKE_TOOL,
            title="Random Joke Teller",
            description="Tells a random joke",
            input_model=RandomJokeInput,
            output_model=JokeOutput,
            handler=tell_random_joke,
            output_template=widget.uri,
            invocation_messages=_INVOCATION_MESSAGES,
            annotations=_READ_ONLY,
        )
    )
    registry.seal()
    return registry
