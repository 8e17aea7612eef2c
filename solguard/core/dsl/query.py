"""
Query Engine - Composable queries over a parsed Rust file.

A query holds an ordered list of AstNode results. Every operator returns a
new query of the same class and leaves the receiver untouched, so
subclasses that add domain filters keep chaining.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import TypeVar

from tree_sitter import Node

from solguard.core.dsl.node import AstNode, RefKind, has_unsafe_modifier, iter_subtree, node_text
from solguard.core.parser import SyntaxTree
from solguard.core.span_mapper import SpanMapper
from solguard.models.finding_models import Finding, Location
from solguard.models.rule_models import Severity

logger = logging.getLogger("solguard.query")

Q = TypeVar("Q", bound="AstQuery")

NodePredicate = Callable[[AstNode], bool]


class AstQuery:
    """Ordered, possibly duplicated, collection of query results."""

    def __init__(self, results: Iterable[AstNode] = ()) -> None:
        self._results: tuple[AstNode, ...] = tuple(results)

    # ── Construction ──

    @classmethod
    def new(cls: type[Q], ast: SyntaxTree) -> Q:
        """Start a query at the root of a file."""
        return cls([AstNode.from_file(ast)])

    @classmethod
    def from_nodes(cls: type[Q], nodes: Iterable[AstNode]) -> Q:
        return cls(nodes)

    @classmethod
    def from_node(cls: type[Q], node: AstNode) -> Q:
        return cls([node])

    def _derive(self: Q, nodes: Iterable[AstNode]) -> Q:
        return type(self)(nodes)

    def _narrow(self: Q, predicate: NodePredicate) -> Q:
        return self._derive(node for node in self._results if predicate(node))

    # ── Access ──

    def results(self) -> tuple[AstNode, ...]:
        return self._results

    def nodes(self) -> tuple[AstNode, ...]:
        return self._results

    def __iter__(self) -> Iterator[AstNode]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        names = ", ".join(f"{n.node_type}:{n.name_or_default()}" for n in self._results)
        return f"{type(self).__name__}([{names}])"

    # ── Structural extraction ──

    def functions(self: Q) -> Q:
        """All functions reachable from File results, including inline modules and impl blocks."""
        logger.debug("Searching for functions recursively in all modules")
        found: list[AstNode] = []
        for node in self._results:
            if node.kind is RefKind.FILE and node.ts_node is not None:
                _collect_functions(node.ts_node, node.source, found)
        return self._derive(found)

    def structs(self: Q) -> Q:
        """Struct items directly under File results."""
        logger.debug("Searching for structs")
        found: list[AstNode] = []
        for node in self._results:
            if node.kind is not RefKind.FILE or node.ts_node is None:
                continue
            for item in node.ts_node.named_children:
                if item.type == "struct_item":
                    struct = AstNode.from_struct(item, node.source)
                    logger.debug(f"Found struct: {struct.name_or_default()}")
                    found.append(struct)
        return self._derive(found)

    # ── Narrowing ──

    def with_name(self: Q, name: str) -> Q:
        logger.debug(f"Filtering by name: {name}")
        return self._narrow(lambda node: node.name is not None and node.name == name)

    def public_functions(self: Q) -> Q:
        logger.debug("Filtering for public functions only")
        return self._narrow(lambda node: node.is_function() and node.is_public())

    def uses_unsafe(self: Q) -> Q:
        logger.debug("Searching for unsafe code")
        return self._narrow(_uses_unsafe)

    def calls_to(self: Q, function_name: str) -> Q:
        logger.debug(f"Searching for calls to: {function_name}")

        def calls(node: AstNode) -> bool:
            if not (node.is_function() or node.kind is RefKind.BLOCK):
                return False
            body = node.body()
            return body is not None and _has_call_to(body, node.source, function_name)

        return self._narrow(calls)

    def filter(self: Q, predicate: NodePredicate) -> Q:
        """Keep results matching an arbitrary predicate."""
        logger.debug("Applying custom predicate")
        return self._narrow(predicate)

    # ── Combinators ──

    def or_(self: Q, other: AstQuery) -> Q:
        """Union by concatenation; duplicates are kept."""
        logger.debug("Combining queries with OR")
        return self._derive((*self._results, *other.results()))

    def and_(self: Q, other: AstQuery) -> Q:
        """Keep results structurally equal to some result of ``other``."""
        logger.debug("Combining queries with AND")
        keep = set(other.results())
        return self._narrow(lambda node: node in keep)

    def not_(self: Q) -> Q:
        """Negation is not supported: the result is always empty.

        Computing "everything that did not match" would need the candidate
        set of the previous stage, which queries do not keep.
        """
        logger.debug("Negating query - returning empty result")
        return self._derive(())

    __or__ = or_
    __and__ = and_
    __invert__ = not_

    # ── Terminals ──

    def exists(self) -> bool:
        return bool(self._results)

    def count(self) -> int:
        return len(self._results)

    def collect(self) -> list[AstNode]:
        return list(self._results)

    def to_findings(self, severity: Severity, message: str, file_path: str) -> list[Finding]:
        """Findings with placeholder snippets and first-line locations."""
        logger.debug(f"Converting {len(self._results)} results to findings")
        return [
            Finding(
                description=f"{message} in '{node.name}'" if node.name is not None else message,
                severity=severity,
                location=Location.fallback(file_path),
                code_snippet=node.snippet(),
            )
            for node in self._results
        ]

    def to_findings_with_span_extractor(
        self,
        severity: Severity,
        title: str,
        description: str,
        file_path: str,
        span_extractor: SpanMapper,
    ) -> list[Finding]:
        """Findings with exact locations and source snippets."""
        logger.debug(f"Converting {len(self._results)} results to findings with precise locations")
        findings: list[Finding] = []
        for node in self._results:
            span = node.span()
            if span is not None:
                location = span_extractor.extract_location(span)
                snippet = span_extractor.extract_snippet(span)
            else:
                location = Location.fallback(file_path)
                snippet = node.snippet()

            if node.name is not None:
                text = f"{title} in '{node.name}'. {description}"
            else:
                text = f"{title}: {description}"

            findings.append(
                Finding(description=text, severity=severity, location=location, code_snippet=snippet)
            )
        return findings


def _collect_functions(container: Node, source: bytes, found: list[AstNode]) -> None:
    for item in container.named_children:
        if item.type == "function_item":
            func = AstNode.from_function(item, source)
            logger.debug(f"Found function: {func.name_or_default()}")
            found.append(func)
        elif item.type == "mod_item":
            body = item.child_by_field_name("body")
            # `mod foo;` lives in another file.
            if body is not None:
                _collect_functions(body, source, found)
        elif item.type == "impl_item":
            body = item.child_by_field_name("body")
            if body is None:
                continue
            for impl_item in body.named_children:
                if impl_item.type == "function_item":
                    func = AstNode.from_associated_function(impl_item, source)
                    logger.debug(f"Found impl function: {func.name_or_default()}")
                    found.append(func)


def _contains_unsafe(node: Node, source: bytes) -> bool:
    """An `unsafe { }` block or a nested `unsafe fn` item anywhere below ``node``."""
    for child in iter_subtree(node):
        if child.type == "unsafe_block":
            return True
        if child.type == "function_item" and has_unsafe_modifier(child, source):
            return True
    return False


def _uses_unsafe(node: AstNode) -> bool:
    if node.is_function():
        if node.is_unsafe_fn():
            return True
        body = node.body()
        return body is not None and _contains_unsafe(body, node.source)
    if node.kind is RefKind.BLOCK and node.ts_node is not None:
        return _contains_unsafe(node.ts_node, node.source)
    return False


def callee_name(call: Node, source: bytes) -> str | None:
    """Identifier of a call's callee, or the method name of a method call."""
    function = call.child_by_field_name("function")
    if function is None:
        return None
    if function.type == "identifier":
        return node_text(function, source)
    if function.type == "generic_function":
        function = function.child_by_field_name("function")
        if function is None or function.type != "field_expression":
            return None
    if function.type == "field_expression":
        method = function.child_by_field_name("field")
        return node_text(method, source) if method is not None else None
    return None


def _has_call_to(body: Node, source: bytes, function_name: str) -> bool:
    return any(
        child.type == "call_expression" and callee_name(child, source) == function_name
        for child in iter_subtree(body)
    )
