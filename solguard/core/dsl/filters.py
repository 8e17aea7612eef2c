"""
Solana / Anchor Filters - Domain predicates layered on the query engine.

Each heuristic is a plain predicate over one AstNode, so it can be handed to
``AstQuery.filter`` directly; SolanaQuery exposes them as chainable query
stages. All checks read the syntactic surface only (attribute token text,
type text, identifiers). There is no symbol resolution.
"""

from __future__ import annotations

import logging
import re

from tree_sitter import Node

from solguard.core.dsl.node import AstNode, FieldInfo, RefKind, iter_subtree, node_text
from solguard.core.dsl.query import AstQuery

logger = logging.getLogger("solguard.filters")

# Field types that do not verify anything about the account by themselves.
UNCHECKED_ACCOUNT_TYPES = ("AccountInfo", "UncheckedAccount", "SystemAccount")

# Field names that suggest the account should have signed the transaction.
SIGNER_NAME_KEYWORDS = ("authority", "signer", "owner", "admin")

DUPLICATE_GUARD_MARKERS = ("constraint", "seeds", "bump", "!=", "key()")

OWNER_MACROS = {"require", "assert", "assert_eq"}

_SIGNER_TYPE = re.compile(r"\bSigner\b")
_INT_SUFFIX = re.compile(r"(?:[iu](?:8|16|32|64|128|size))$")
_FLOAT_SUFFIX = re.compile(r"f(?:32|64)$")


# ── Struct predicates ──


def derives_accounts(node: AstNode) -> bool:
    """Struct carries ``#[derive(...)]`` whose tokens mention ``Accounts``."""
    if node.kind is not RefKind.STRUCT:
        return False
    for attr in node.attributes():
        if attr.is_ident("derive") and "Accounts" in attr.tokens:
            logger.debug(f"Found struct deriving Accounts: {node.name_or_default()}")
            return True
    return False


def _has_duplicate_guard(field: FieldInfo, constraints: list[str]) -> bool:
    for attr in field.account_attributes():
        if any(marker in attr.tokens for marker in DUPLICATE_GUARD_MARKERS):
            logger.debug(f"Field {field.name} has constraint that prevents duplication: {attr.tokens}")
            return True
    # A constraint on another field (or on the struct) may compare this one.
    for constraint in constraints:
        if field.name and field.name in constraint and "!=" in constraint:
            logger.debug(f"Field {field.name} is protected by constraint: {constraint}")
            return True
    return False


def has_duplicate_mutable_accounts(node: AstNode) -> bool:
    """Two or more mutable account fields without anything telling them apart."""
    if node.kind is not RefKind.STRUCT:
        return False

    fields = node.fields()
    constraints = [
        attr.tokens
        for attr in node.attributes()
        if "constraint" in attr.tokens
    ]
    constraints.extend(
        attr.tokens
        for field in fields
        for attr in field.account_attributes()
        if "constraint" in attr.tokens
    )

    unconstrained = 0
    for field in fields:
        is_mutable = any("mut" in attr.tokens for attr in field.account_attributes())
        if not is_mutable:
            continue
        if not _has_duplicate_guard(field, constraints):
            logger.debug(f"Found mutable account without constraints: {field.name}")
            unconstrained += 1

    if unconstrained >= 2:
        logger.debug(
            f"Struct '{node.name_or_default()}' has {unconstrained} mutable accounts without constraints"
        )
        return True
    return False


def _needs_signer_evidence(field: FieldInfo) -> bool:
    if "AccountLoader" in field.type_text:
        return False
    if any(t in field.type_text for t in UNCHECKED_ACCOUNT_TYPES):
        return True
    name = field.name.lower()
    return any(keyword in name for keyword in SIGNER_NAME_KEYWORDS)


def _has_signer_evidence(field: FieldInfo) -> bool:
    if _SIGNER_TYPE.search(field.type_text):
        return True
    return any("signer" in attr.tokens for attr in field.account_attributes())


def has_missing_signer_checks(node: AstNode) -> bool:
    """Some field that should be a signer has no signer attribute or Signer type."""
    if node.kind is not RefKind.STRUCT:
        return False
    for field in node.fields():
        if _needs_signer_evidence(field) and not _has_signer_evidence(field):
            logger.debug(f"Field '{field.name}' may need signer verification")
            return True
    return False


# ── Owner checks ──


def _struct_has_owner_check(node: AstNode) -> bool:
    for field in node.fields():
        for attr in field.account_attributes():
            tokens = attr.tokens
            if "owner" in tokens or "address" in tokens or ("constraint" in tokens and "owner" in tokens):
                return True
    return False


def _body_has_owner_check(body: Node, source: bytes) -> bool:
    found = False
    for child in iter_subtree(body):
        if child.type == "binary_expression":
            operator = child.child_by_field_name("operator")
            if operator is None or operator.type != "==":
                continue
            left = child.child_by_field_name("left")
            right = child.child_by_field_name("right")
            sides = [node_text(side, source) for side in (left, right) if side is not None]
            if any("owner" in side for side in sides):
                logger.debug("Found owner check in binary expression")
                found = True
        elif child.type == "macro_invocation":
            macro = child.child_by_field_name("macro")
            if macro is None or node_text(macro, source) not in OWNER_MACROS:
                continue
            tokens = [c for c in child.named_children if c.type == "token_tree"]
            if any("owner" in node_text(t, source) for t in tokens):
                logger.debug(f"Found owner check in {node_text(macro, source)}! macro")
                found = True
    return found


def has_owner_check(node: AstNode) -> bool:
    """Account constraints (structs) or explicit comparisons (functions) about the owner."""
    if node.kind is RefKind.STRUCT:
        found = _struct_has_owner_check(node)
    elif node.is_function():
        body = node.body()
        found = body is not None and _body_has_owner_check(body, node.source)
    else:
        return False
    if found:
        logger.debug(f"Found owner check in: {node.name_or_default()}")
    return found


# ── Function predicates ──


def anchor_instructions(node: AstNode) -> bool:
    """Public function taking a ``Context`` parameter."""
    if not node.is_function() or not node.is_public():
        return False
    return any("Context" in param_type for _, param_type in node.parameters())


def missing_error_handling(node: AstNode) -> bool:
    """Public function whose return type does not mention ``Result``."""
    if not node.is_function() or not node.is_public():
        return False
    return_type = node.return_type_text()
    if return_type is None:
        logger.debug(f"Function {node.name_or_default()} has no return type")
        return True
    return "Result" not in return_type


def _literal_value(text: str, is_float: bool) -> float | None:
    cleaned = text.replace("_", "")
    try:
        if cleaned[:2].lower() in ("0x", "0o", "0b"):
            return float(int(_INT_SUFFIX.sub("", cleaned), 0))
        cleaned = _FLOAT_SUFFIX.sub("", _INT_SUFFIX.sub("", cleaned))
        return float(cleaned) if is_float else float(int(cleaned, 10))
    except ValueError:
        return None


def _nonzero_literal(node: Node, source: bytes) -> bool | None:
    """True/False for numeric literals, None for anything else."""
    if node.type not in ("integer_literal", "float_literal"):
        return None
    value = _literal_value(node_text(node, source), node.type == "float_literal")
    if value is None:
        return None
    return value != 0


def _unwrap(expr: Node) -> Node:
    while True:
        if expr.type == "parenthesized_expression" and expr.named_child_count:
            expr = expr.named_children[0]
        elif expr.type == "type_cast_expression":
            value = expr.child_by_field_name("value")
            if value is None:
                return expr
            expr = value
        else:
            return expr


class UnsafeDivisionFinder:
    """Walks a function body in source order looking for unguarded divisors."""

    def __init__(self, source: bytes) -> None:
        self.source = source
        self.safe_variables: set[str] = set()
        self.found = False

    def visit(self, body: Node) -> bool:
        self._visit(body)
        return self.found

    def _visit(self, node: Node) -> None:
        if node.type == "binary_expression":
            self._visit_binary(node)
        for child in node.children:
            self._visit(child)
        # A binding takes effect only after its initializer was checked.
        if node.type == "let_declaration":
            self._visit_let(node)

    def _visit_let(self, local: Node) -> None:
        pattern = local.child_by_field_name("pattern")
        if pattern is None or pattern.type != "identifier":
            return
        name = node_text(pattern, self.source)
        value = local.child_by_field_name("value")
        if value is not None and _nonzero_literal(value, self.source):
            self.safe_variables.add(name)
        else:
            # Shadowing rebinding drops what we knew about the old value.
            self.safe_variables.discard(name)

    def _visit_binary(self, expr: Node) -> None:
        operator = expr.child_by_field_name("operator")
        if operator is None or operator.type != "/":
            return
        divisor = expr.child_by_field_name("right")
        if divisor is not None and self.is_potentially_dangerous(divisor):
            logger.debug(f"Found unsafe division: {node_text(expr, self.source)}")
            self.found = True

    def is_potentially_dangerous(self, expr: Node) -> bool:
        expr = _unwrap(expr)
        kind = expr.type
        if kind in ("integer_literal", "float_literal"):
            return _nonzero_literal(expr, self.source) is False
        if kind == "identifier":
            return node_text(expr, self.source) not in self.safe_variables
        if kind in ("scoped_identifier", "call_expression", "field_expression"):
            return True
        if kind == "binary_expression":
            operator = expr.child_by_field_name("operator")
            return operator is not None and operator.type == "-"
        return False


def has_unsafe_divisions(node: AstNode) -> bool:
    if not node.is_function():
        return False
    body = node.body()
    if body is None:
        return False
    return UnsafeDivisionFinder(node.source).visit(body)


class SolanaQuery(AstQuery):
    """AstQuery with the Solana / Anchor filters as chainable stages."""

    def derives_accounts(self) -> SolanaQuery:
        logger.debug("Filtering structs that derive Accounts")
        return self._narrow(derives_accounts)

    def has_duplicate_mutable_accounts(self) -> SolanaQuery:
        logger.debug("Filtering structs with duplicate mutable accounts")
        return self._narrow(has_duplicate_mutable_accounts)

    def has_missing_signer_checks(self) -> SolanaQuery:
        logger.debug("Filtering structs with missing signer checks")
        return self._narrow(has_missing_signer_checks)

    def has_owner_check(self) -> SolanaQuery:
        logger.debug("Filtering for owner checks")
        return self._narrow(has_owner_check)

    def anchor_instructions(self) -> SolanaQuery:
        logger.debug("Filtering Anchor instruction functions")
        return self._narrow(anchor_instructions)

    def has_unsafe_divisions(self) -> SolanaQuery:
        logger.debug("Filtering functions with unsafe division operations")
        return self._narrow(has_unsafe_divisions)

    def missing_error_handling(self) -> SolanaQuery:
        logger.debug("Filtering functions with missing error handling")
        return self._narrow(missing_error_handling)
