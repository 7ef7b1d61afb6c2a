"""Widget resources: static documents populated client-side from tool output.

The document never calls a tool. Once hosted, it reads the most recent tool
output from the host binding (``window.openai.toolOutput``) and writes one
field of it into a placeholder, falling back to a fixed string when the field
is missing.
"""

from __future__ import annotations

import html
import json
from dataclasses import dataclass
from string import Template
from typing import Literal, get_args

from .schema import ResourceDescriptor

WidgetSignalMode = Literal["immediate", "event"]

WIDGET_MIME_TYPE = "text/html+skybridge"
PREFERS_BORDER_META = "openai/widgetPrefersBorder"
SET_GLOBALS_EVENT = "openai:set_globals"

_DOCUMENT = Template(
    """
<style>
  #$element_id { height: 300px; }
  #$element_id p { color: green; font-size: 48px }
</style>
<div id="$element_id">
  <p>$fallback_html</p>
</div>
<script>
  (function () {
    var container = document.querySelector('#$element_id p');
    var field = $field_json;
    var fallback = $fallback_json;
    function render() {
      var host = window.openai;
      var output = host ? host.toolOutput : null;
      if (output && output[field]) {
        container.textContent = output[field];
      } else {
        container.textContent = fallback;
      }
    }
    render();$listener
  })();
</script>
"""
)

_LISTENER = """
    window.addEventListener('$event', render, { passive: true });"""


def _js_literal(value: str) -> str:
    return json.dumps(value).replace("</", "<\\/")


@dataclass(frozen=True)
class WidgetConfig:
    """How the widget document binds to its paired tool's output.

    ``immediate`` reads the host binding once when the document loads;
    ``event`` also re-reads it on every ``openai:set_globals`` event.
    """

    uri: str = "ui://widget/joke4.html"
    name: str = "joke-widget"
    title: str | None = None
    output_field: str = "joke"
    signal_mode: WidgetSignalMode = "immediate"
    fallback_text: str = "Wait for it..."
    element_id: str = "dad-joke"
    prefers_border: bool = True

    def __post_init__(self) -> None:
        if self.signal_mode not in get_args(WidgetSignalMode):
            raise ValueError(
                f"signal_mode must be one of {get_args(WidgetSignalMode)}, got {self.signal_mode!r}"
            )
        if not self.fallback_text:
            raise ValueError("fallback_text must not be empty")


def render_widget(config: WidgetConfig) -> str:
    """Return the static markup for ``config``; identical on every call."""
    listener = ""
    if config.signal_mode == "event":
        listener = Template(_LISTENER).substitute(event=SET_GLOBALS_EVENT)
    return _DOCUMENT.substitute(
        element_id=config.element_id,
        fallback_html=html.escape(config.fallback_text),
        field_json=_js_literal(config.output_field),
        fallback_json=_js_literal(config.fallback_text),
        listener=listener,
    )


def widget_resource(config: WidgetConfig) -> ResourceDescriptor:
    """Build the resource descriptor serving the widget document."""
    document = render_widget(config)
    return ResourceDescriptor(
        name=config.name,
        uri=config.uri,
        title=config.title,
        mime_type=WIDGET_MIME_TYPE,
        meta={PREFERS_BORDER_META: config.prefers_border},
        render=lambda: document,
    )
