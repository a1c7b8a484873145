"""Immutable presentational tree produced by the template renderer."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Iterator, Optional, Tuple, Union


@dataclass(frozen=True)
class Node:
    tag: str
    attrs: Tuple[Tuple[str, str], ...] = ()
    children: Tuple[Union["Node", str], ...] = ()

    def attr(self, name: str) -> Optional[str]:
        for key, value in self.attrs:
            if key == name:
                return value
        return None


Child = Union[Node, str, None]


def _attr_name(name: str) -> str:
    if name == "class_":
        return "class"
    return name.rstrip("_").replace("_", "-")


def el(tag: str, *children: Child, **attrs: Optional[str]) -> Node:
    """Build a node, dropping ``None`` children and ``None``/``False`` attributes."""
    return Node(
        tag=tag,
        attrs=tuple(
            (_attr_name(key), str(value))
            for key, value in attrs.items()
            if value is not None and value is not False
        ),
        children=tuple(child for child in children if child is not None),
    )


def iter_text(node: Union[Node, str]) -> Iterator[str]:
    if isinstance(node, str):
        yield node
        return
    for child in node.children:
        yield from iter_text(child)


def text_content(node: Node) -> str:
    return " ".join(part for part in iter_text(node) if part)


def find_all(node: Node, tag: str) -> Iterator[Node]:
    if node.tag == tag:
        yield node
    for child in node.children:
        if isinstance(child, Node):
            yield from find_all(child, tag)


def to_html(node: Union[Node, str]) -> str:
    if isinstance(node, str):
        return escape(node, quote=False)
    attrs = "".join(f' {key}="{escape(value)}"' for key, value in node.attrs)
    inner = "".join(to_html(child) for child in node.children)
    return f"<{node.tag}{attrs}>{inner}</{node.tag}>"
