"""
Compose Studio Kernel — Host Render Adapter

Materializes a VNode tree into host UI: a HostContainer holding HostElement /
HostText nodes. Interactive props become event listeners that route back into
the runtime; everything else becomes attributes or a style map.

The host tree serializes to HTML for display surfaces. Listeners are emitted
as `data-on-<event>="<element id>"` so a client can send an interaction back
by element id.
"""

from __future__ import annotations

import re
import weakref
from collections.abc import Callable
from html import escape as _html_escape
from typing import Any

from studio.kernel.interpreter import is_number, to_js_string
from studio.kernel.types import EvalError, VNode

# Style properties that take bare numbers
UNITLESS_PROPERTIES: set[str] = {
    "flex",
    "flexGrow",
    "flexShrink",
    "fontWeight",
    "lineHeight",
    "opacity",
    "order",
    "zIndex",
}

# Elements with no closing tag
VOID_TAGS: set[str] = {"img", "br", "hr", "input", "meta", "link"}

ATTRIBUTE_ALIASES: dict[str, str] = {"className": "class", "htmlFor": "for"}

_CAMEL_RE = re.compile(r"(?<!^)([A-Z])")
_TAG_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9-]*$")

# Registry so external renderers can resolve a target id, like getElementById
_CONTAINERS: weakref.WeakValueDictionary[str, HostContainer] = weakref.WeakValueDictionary()


def escape(text: str) -> str:
    """HTML-escape user content."""
    return _html_escape(str(text), quote=True)


# ---------------------------------------------------------------------------
# Host nodes
# ---------------------------------------------------------------------------


class HostText:
    """A literal text leaf."""

    __slots__ = ("text",)

    def __init__(self, text: str) -> None:
        self.text = text

    def to_html(self) -> str:
        return escape(self.text)

    def to_dict(self) -> str:
        return self.text


class HostElement:
    """A concrete element with attributes, style, listeners and children."""

    def __init__(self, tag: str, element_id: str) -> None:
        self.tag = tag
        self.id = element_id
        self.attributes: dict[str, str] = {}
        self.style: dict[str, Any] = {}
        self.listeners: dict[str, Callable[..., Any]] = {}
        self.children: list[HostElement | HostText] = []

    def set_attribute(self, name: str, value: Any) -> None:
        self.attributes[name] = to_js_string(value)

    def add_event_listener(self, event: str, handler: Callable[..., Any]) -> None:
        self.listeners[event] = handler

    def append_child(self, node: HostElement | HostText) -> None:
        self.children.append(node)

    def dispatch_event(self, event: str) -> bool:
        handler = self.listeners.get(event)
        if handler is None:
            return False
        handler({"type": event, "target": self.id})
        return True

    def walk(self):
        yield self
        for child in self.children:
            if isinstance(child, HostElement):
                yield from child.walk()

    @property
    def text_content(self) -> str:
        return "".join(c.text if isinstance(c, HostText) else c.text_content for c in self.children)

    def to_html(self) -> str:
        parts = [self.tag]
        for name, value in self.attributes.items():
            parts.append(f'{ATTRIBUTE_ALIASES.get(name, name)}="{escape(value)}"')
        if self.style:
            parts.append(f'style="{escape(style_to_css(self.style))}"')
        for event in self.listeners:
            parts.append(f'data-on-{event}="{escape(self.id)}"')
        open_tag = "<" + " ".join(parts) + ">"
        if self.tag in VOID_TAGS:
            return open_tag
        inner = "".join(c.to_html() for c in self.children)
        return f"{open_tag}{inner}</{self.tag}>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tag": self.tag,
            "attributes": dict(self.attributes),
            "style": dict(self.style),
            "events": sorted(self.listeners),
            "children": [c.to_dict() for c in self.children],
        }


class HostContainer:
    """
    Render target identified by `id`. Rendering always clears it first,
    so repeated renders replace output rather than append.
    """

    def __init__(self, target_id: str = "preview-surface") -> None:
        self.id = target_id
        self.children: list[HostElement | HostText] = []
        self._next_id = 0
        _CONTAINERS[target_id] = self

    def clear(self) -> None:
        self.children = []
        self._next_id = 0

    def create_element(self, tag: str) -> HostElement:
        if not _TAG_RE.match(tag):
            raise ValueError(f"Invalid tag name: {tag!r}")
        element = HostElement(tag, f"{self.id}-{self._next_id}")
        self._next_id += 1
        return element

    def append_child(self, node: HostElement | HostText) -> None:
        self.children.append(node)

    def find(self, element_id: str) -> HostElement | None:
        for child in self.children:
            if isinstance(child, HostElement):
                for element in child.walk():
                    if element.id == element_id:
                        return element
        return None

    def dispatch(self, element_id: str, event: str = "click") -> bool:
        """Fire `event` on an element. Returns False when nothing is listening."""
        element = self.find(element_id)
        if element is None:
            return False
        return element.dispatch_event(event)

    @property
    def is_empty(self) -> bool:
        return not self.children

    def to_html(self) -> str:
        return "".join(c.to_html() for c in self.children)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "children": [c.to_dict() for c in self.children]}


def get_container(target_id: str) -> HostContainer | None:
    """Resolve a live container by id."""
    return _CONTAINERS.get(target_id)


# ---------------------------------------------------------------------------
# Materialization
# ---------------------------------------------------------------------------


def style_to_css(style: dict[str, Any]) -> str:
    declarations = []
    for name, value in style.items():
        if value is None:
            continue
        prop = _CAMEL_RE.sub(r"-\1", name).lower()
        if is_number(value) and name not in UNITLESS_PROPERTIES:
            text = f"{to_js_string(value)}px"
        else:
            text = to_js_string(value)
        declarations.append(f"{prop}: {text}")
    return "; ".join(declarations)


def create_element(node: VNode | str | Any, container: HostContainer) -> HostElement | HostText:
    """Recursive walk: text leaves stay text, nodes become host elements."""
    if not isinstance(node, VNode):
        return HostText(to_js_string(node))

    element = container.create_element(node.tag)
    for key, value in node.props.items():
        if value is None:
            continue
        if key.startswith("on") and len(key) > 2 and callable(value):
            element.add_event_listener(key[2:].lower(), value)
        elif key == "style" and isinstance(value, dict):
            element.style.update(value)
        else:
            element.set_attribute(key, value)

    for child in node.children:
        element.append_child(create_element(child, container))
    return element


def render_node(node: VNode, container: HostContainer) -> HostElement | HostText:
    """Replace the container's content with the materialized tree."""
    container.clear()
    root = create_element(node, container)
    container.append_child(root)
    return root


def render_error(error: EvalError, container: HostContainer) -> HostElement:
    """Replace the container's content with a visible error box."""
    container.clear()
    box = container.create_element("pre")
    box.set_attribute("className", "text-red-400 font-mono text-xs p-2 bg-red-900/20 rounded")
    detail = f"DSL Runtime Error:\n{error.message}"
    if error.trace:
        detail += f"\n\n{error.trace}"
    box.append_child(HostText(detail))
    container.append_child(box)
    return box
