"""
Target-label resolution: turns recorded DOM nodes into readable names
such as '"Sign up" button' or '"Email" email field'.
"""

import re
from typing import Dict, Optional

from .events import UNKNOWN_TARGET, ElementRole, NodeInfo, NodeType

PII_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}|(?:\d[ -]*?){13,16}")
GENERATED_ID_PATTERN = re.compile(r"^[a-z0-9]{8,}$", re.IGNORECASE)

MAX_TEXT_CONTENT = 100
MAX_INLINE_TEXT = 50
INTERACTIVE_TAGS = frozenset({"button", "a", "input", "select", "textarea"})


def redact(text: Optional[str]) -> str:
    """Mask e-mail addresses and card-like digit runs."""
    if not text:
        return ""
    return PII_PATTERN.sub("[REDACTED]", text)


def truncate(text: str, limit: int = MAX_INLINE_TEXT) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


def _is_generated_id(value: str) -> bool:
    return bool(GENERATED_ID_PATTERN.match(value)) or value.startswith(":r")


def semantic_name(info: Optional[NodeInfo]) -> str:
    """
    Best-effort readable label for a DOM node.

    Precedence: element-specific rules first (button/link text, field
    placeholder/name, image file), then aria-label, a non-generated id,
    the first meaningful class, and finally the bare tag name.
    """
    if info is None:
        return UNKNOWN_TARGET

    tag = info.tag or "element"
    text = redact(info.text_content) if info.text_content else ""

    if tag == "button" or info.role == "button":
        if text:
            return f'"{text}" button'
        if info.aria_label:
            return f'"{info.aria_label}" button'
        return "button"

    if tag == "a":
        if text:
            return f'"{text}" link'
        if info.aria_label:
            return f'"{info.aria_label}" link'
        if info.href:
            return f"link to {info.href.rstrip('/').split('/')[-1] or info.href}"
        return "link"

    if tag == "input":
        input_type = info.type or "text"
        for candidate in (info.placeholder, info.name, info.aria_label):
            if candidate:
                return f'"{candidate}" {input_type} field'
        return f"{input_type} input field"

    if tag == "textarea":
        for candidate in (info.placeholder, info.name):
            if candidate:
                return f'"{candidate}" text area'
        return "text area"

    if tag == "select":
        return f'"{info.name}" dropdown' if info.name else "dropdown"

    if tag == "img":
        if info.src:
            filename = info.src.split("/")[-1].split("?")[0]
            return f"image ({filename or 'image'})"
        return "image"

    if tag in ("div", "span") and text and len(text) < MAX_INLINE_TEXT:
        return f'"{text}"'

    if info.aria_label:
        return f'"{info.aria_label}" {tag}'

    if info.id and not _is_generated_id(info.id):
        return f"#{info.id} {tag}"

    if info.class_name:
        classes = [
            c for c in info.class_name.split()
            if len(c) > 2 and not c.startswith("_") and not GENERATED_ID_PATTERN.match(c)
        ]
        if classes:
            return f".{classes[0]} {tag}"

    return tag


def element_role(info: Optional[NodeInfo]) -> ElementRole:
    if info is None:
        return ElementRole.OTHER
    tag = info.tag
    if tag == "a" or info.href:
        return ElementRole.LINK
    if tag == "input":
        if info.type == "submit":
            return ElementRole.SUBMIT
        if info.type == "checkbox":
            return ElementRole.CHECKBOX
        if info.type == "radio":
            return ElementRole.RADIO
        return ElementRole.FIELD
    if tag == "button" or info.role == "button":
        return ElementRole.SUBMIT if info.type == "submit" else ElementRole.BUTTON
    if tag in ("textarea", "select"):
        return ElementRole.FIELD
    if tag in ("video", "audio"):
        return ElementRole.MEDIA
    return ElementRole.OTHER


def is_interactive(info: Optional[NodeInfo]) -> bool:
    return info is not None and (info.tag in INTERACTIVE_TAGS or info.role == "button")


def _attr(attributes: dict, name: str) -> Optional[str]:
    """Attribute value as text; rrweb may record numbers or bare `true`."""
    value = attributes.get(name)
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    return str(value)


def build_node_map(node: Optional[dict], node_map: Dict[int, NodeInfo]) -> None:
    """Index every element of a serialized rrweb node tree by node id."""
    # Iterative walk: recorded DOM trees can be deeper than the recursion limit.
    stack = [node]
    while stack:
        current = stack.pop()
        if not isinstance(current, dict):
            continue

        children = current.get("childNodes") or []
        if current.get("id") is not None and current.get("type") == NodeType.ELEMENT:
            attributes = current.get("attributes")
            if not isinstance(attributes, dict):
                attributes = {}
            info = NodeInfo(
                tag_name=str(current.get("tagName") or ""),
                id=_attr(attributes, "id"),
                class_name=_attr(attributes, "class"),
                type=_attr(attributes, "type"),
                placeholder=_attr(attributes, "placeholder"),
                name=_attr(attributes, "name"),
                role=_attr(attributes, "role"),
                aria_label=_attr(attributes, "aria-label"),
                href=_attr(attributes, "href"),
                src=_attr(attributes, "src"),
            )
            text = " ".join(
                str(child.get("textContent")).strip()
                for child in children
                if isinstance(child, dict)
                and child.get("type") == NodeType.TEXT
                and child.get("textContent")
                and str(child.get("textContent")).strip()
            ).strip()
            if text and len(text) < MAX_TEXT_CONTENT:
                info.text_content = text
            node_map[current["id"]] = info

        stack.extend(reversed(children))


def find_title(node: Optional[dict]) -> str:
    """Return the text of the first <title> element, or ''."""
    stack = [node]
    while stack:
        current = stack.pop()
        if not isinstance(current, dict):
            continue
        children = current.get("childNodes") or []
        if current.get("tagName") == "title" and children:
            first = children[0]
            if isinstance(first, dict) and first.get("textContent"):
                return str(first["textContent"]).strip()
        stack.extend(reversed(children))
    return ""
