"""
Node Model - Typed, non-owning handles onto a parsed Rust tree.

An AstNode pairs a tree-sitter node with the source buffer of its tree and a
category tag. It never copies the tree and is only meaningful while the
SyntaxTree it came from is alive.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from tree_sitter import Node

from solguard.core.parser import SyntaxTree
from solguard.core.span_mapper import Span

_WHITESPACE = re.compile(r"\s+")
_ATTRIBUTE = re.compile(r"^\s*([A-Za-z_][\w:]*)\s*(.*?)\s*$", re.DOTALL)
_DELIMITERS = {"(": ")", "[": "]", "{": "}"}
_COMMENTS = {"line_comment", "block_comment"}


class NodeType(str, Enum):
    FILE = "File"
    FUNCTION = "Function"
    STRUCT = "Struct"
    ENUM = "Enum"
    BLOCK = "Block"
    EXPRESSION = "Expression"
    OTHER = "Other"

    def __str__(self) -> str:
        return self.value


class RefKind(str, Enum):
    """Tag of the reference held by a node."""

    FILE = "file"
    FUNCTION = "function"
    ASSOCIATED_FUNCTION = "associated_function"
    STRUCT = "struct"
    ENUM = "enum"
    BLOCK = "block"
    EXPRESSION = "expression"
    OTHER = "other"


FUNCTION_KINDS = frozenset({RefKind.FUNCTION, RefKind.ASSOCIATED_FUNCTION})


def node_text(node: Node, source: bytes) -> str:
    """Extract source text for a node."""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def iter_subtree(node: Node) -> Iterator[Node]:
    """Pre-order walk of a subtree, in source order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def has_unsafe_modifier(item: Node, source: bytes) -> bool:
    """True for an item declared `unsafe` (`unsafe fn`, `unsafe impl`, ...)."""
    for child in item.children:
        if child.type == "unsafe":
            return True
        if child.type == "function_modifiers" and "unsafe" in node_text(child, source).split():
            return True
    return False


@dataclass(frozen=True)
class Attribute:
    """An outer attribute such as ``#[account(mut)]``."""

    name: str
    tokens: str
    text: str

    def is_ident(self, name: str) -> bool:
        return self.name == name


@dataclass(frozen=True)
class FieldInfo:
    """A named struct field."""

    name: str
    type_text: str
    attributes: tuple[Attribute, ...] = ()

    def account_attributes(self) -> list[Attribute]:
        return [attr for attr in self.attributes if attr.is_ident("account")]


def parse_attribute(item: Node, source: bytes) -> Attribute:
    """Split an ``attribute_item`` into path and token text."""
    inner = next((c for c in item.named_children if c.type == "attribute"), None)
    if inner is not None:
        text = node_text(inner, source)
    else:
        text = node_text(item, source).strip().lstrip("#!").strip()
        if text.startswith("[") and text.endswith("]"):
            text = text[1:-1]

    match = _ATTRIBUTE.match(text)
    if match is None:
        return Attribute(name="", tokens=text, text=text)

    name, rest = match.group(1), match.group(2)
    if rest[:1] in _DELIMITERS and rest.endswith(_DELIMITERS[rest[0]]):
        tokens = rest[1:-1].strip()
    elif rest.startswith("="):
        tokens = rest[1:].strip()
    else:
        tokens = rest
    return Attribute(name=name, tokens=tokens, text=text)


@dataclass(frozen=True, eq=False)
class NodeRef:
    """Non-owning reference into a parsed tree.

    ``node`` is None only for the OTHER kind.
    """

    kind: RefKind
    node: Node | None = None
    source: bytes = b""

    @property
    def text(self) -> str:
        if self.node is None:
            return ""
        return node_text(self.node, self.source)

    def structural_key(self) -> tuple[str, str, str]:
        if self.node is None:
            return (self.kind.value, "", "")
        return (self.kind.value, self.node.type, _WHITESPACE.sub(" ", self.text).strip())


@dataclass(frozen=True, eq=False)
class AstNode:
    """A node of the tree together with its category and display name."""

    node_type: NodeType
    data: NodeRef
    name: str | None = None
    _key: tuple[str, str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_key", self.data.structural_key())

    # ── Constructors ──

    @classmethod
    def from_file(cls, ast: SyntaxTree) -> AstNode:
        return cls(NodeType.FILE, NodeRef(RefKind.FILE, ast.root, ast.source))

    @classmethod
    def from_function(cls, node: Node, source: bytes) -> AstNode:
        return cls(NodeType.FUNCTION, NodeRef(RefKind.FUNCTION, node, source), _item_name(node, source))

    @classmethod
    def from_associated_function(cls, node: Node, source: bytes) -> AstNode:
        return cls(
            NodeType.FUNCTION,
            NodeRef(RefKind.ASSOCIATED_FUNCTION, node, source),
            _item_name(node, source),
        )

    @classmethod
    def from_struct(cls, node: Node, source: bytes) -> AstNode:
        return cls(NodeType.STRUCT, NodeRef(RefKind.STRUCT, node, source), _item_name(node, source))

    @classmethod
    def from_enum(cls, node: Node, source: bytes) -> AstNode:
        return cls(NodeType.ENUM, NodeRef(RefKind.ENUM, node, source), _item_name(node, source))

    @classmethod
    def from_block(cls, node: Node, source: bytes) -> AstNode:
        return cls(NodeType.BLOCK, NodeRef(RefKind.BLOCK, node, source))

    @classmethod
    def from_expression(cls, node: Node, source: bytes) -> AstNode:
        return cls(NodeType.EXPRESSION, NodeRef(RefKind.EXPRESSION, node, source))

    @classmethod
    def other(cls, name: str | None = None) -> AstNode:
        return cls(NodeType.OTHER, NodeRef(RefKind.OTHER), name)

    # ── Identity ──

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AstNode):
            return NotImplemented
        return self.node_type == other.node_type and self._key == other._key

    def __hash__(self) -> int:
        return hash((self.node_type, self._key))

    # ── Basic accessors ──

    @property
    def kind(self) -> RefKind:
        return self.data.kind

    @property
    def ts_node(self) -> Node | None:
        return self.data.node

    @property
    def source(self) -> bytes:
        return self.data.source

    @property
    def text(self) -> str:
        return self.data.text

    def name_or_default(self) -> str:
        return self.name if self.name is not None else "unnamed"

    def is_function(self) -> bool:
        return self.data.kind in FUNCTION_KINDS

    def snippet(self) -> str:
        """Cheap placeholder used when no source mapping is available."""
        kind = self.data.kind
        if kind in FUNCTION_KINDS:
            return f"fn {self.name_or_default()}(...)"
        if kind is RefKind.STRUCT:
            return f"struct {self.name_or_default()}"
        if kind is RefKind.ENUM:
            return f"enum {self.name_or_default()}"
        if kind is RefKind.BLOCK:
            return "{ ... }"
        return "..."

    def span(self) -> Span | None:
        if self.data.node is None:
            return None
        return Span.from_node(self.data.node, self.data.source)

    # ── Syntactic surface ──

    def child(self, field_name: str) -> Node | None:
        if self.data.node is None:
            return None
        return self.data.node.child_by_field_name(field_name)

    def child_text(self, field_name: str) -> str | None:
        child = self.child(field_name)
        return node_text(child, self.source) if child is not None else None

    def attributes(self) -> list[Attribute]:
        """Outer attributes attached to this item."""
        node = self.data.node
        if node is None:
            return []

        items: list[Node] = []
        sibling = node.prev_named_sibling
        while sibling is not None and (sibling.type == "attribute_item" or sibling.type in _COMMENTS):
            if sibling.type == "attribute_item":
                items.append(sibling)
            sibling = sibling.prev_named_sibling
        items.reverse()
        items.extend(c for c in node.named_children if c.type == "attribute_item")
        return [parse_attribute(item, self.source) for item in items]

    def fields(self) -> list[FieldInfo]:
        """Named fields of a struct, each with its own attributes."""
        body = self.child("body")
        if body is None or body.type != "field_declaration_list":
            return []

        fields: list[FieldInfo] = []
        pending: list[Attribute] = []
        for child in body.named_children:
            if child.type == "attribute_item":
                pending.append(parse_attribute(child, self.source))
            elif child.type == "field_declaration":
                name = child.child_by_field_name("name")
                field_type = child.child_by_field_name("type")
                fields.append(
                    FieldInfo(
                        name=node_text(name, self.source) if name is not None else "",
                        type_text=node_text(field_type, self.source) if field_type is not None else "",
                        attributes=tuple(pending),
                    )
                )
                pending = []
        return fields

    def visibility(self) -> str:
        node = self.data.node
        if node is None:
            return ""
        for child in node.children:
            if child.type == "visibility_modifier":
                return _WHITESPACE.sub("", node_text(child, self.source))
        return ""

    def is_public(self) -> bool:
        """True only for a bare ``pub``; ``pub(crate)`` and friends are restricted."""
        return self.visibility() == "pub"

    def is_unsafe_fn(self) -> bool:
        node = self.data.node
        if node is None or not self.is_function():
            return False
        return has_unsafe_modifier(node, self.source)

    def parameters(self) -> list[tuple[str, str]]:
        """Typed parameters as ``(pattern, type)`` text pairs; ``self`` is skipped."""
        params = self.child("parameters")
        if params is None:
            return []
        typed: list[tuple[str, str]] = []
        for child in params.named_children:
            if child.type != "parameter":
                continue
            pattern = child.child_by_field_name("pattern")
            param_type = child.child_by_field_name("type")
            typed.append((
                node_text(pattern, self.source) if pattern is not None else "",
                node_text(param_type, self.source) if param_type is not None else "",
            ))
        return typed

    def return_type_text(self) -> str | None:
        return self.child_text("return_type")

    def body(self) -> Node | None:
        if self.data.kind in (RefKind.BLOCK, RefKind.EXPRESSION):
            return self.data.node
        return self.child("body")


def _item_name(node: Node, source: bytes) -> str | None:
    name = node.child_by_field_name("name")
    return node_text(name, source) if name is not None else None
