"""
Unsafe Code Rule - Flags functions that use `unsafe`.

Triggers when a function is declared `unsafe fn` or contains an `unsafe { }`
block anywhere in its body. Calling an unsafe function is only possible from
such a block, so the enclosing function is what gets reported.
"""

from __future__ import annotations

import logging

from solguard.core.dsl.builders import RuleBuilder
from solguard.core.dsl.filters import SolanaQuery
from solguard.core.parser import SyntaxTree
from solguard.core.rule import Rule
from solguard.core.span_mapper import SpanMapper
from solguard.models.rule_models import RuleType, Severity

logger = logging.getLogger("solguard.rules.unsafe_code")

RULE_ID = "solana-unsafe-code"


def create_rule() -> Rule:
    return (
        RuleBuilder()
        .id(RULE_ID)
        .title("Unsafe Code Usage")
        .description("Using unsafe code in Solana programs can lead to security vulnerabilities")
        .severity(Severity.HIGH)
        .rule_type(RuleType.SOLANA)
        .tags(["security", "unsafe"])
        .reference("https://doc.rust-lang.org/book/ch20-01-unsafe-rust.html")
        .recommendations([
            "Avoid using unsafe code in Solana programs unless absolutely necessary",
            "If unsafe is required, document why it is needed and which invariants it relies on",
            "Consider using safe alternatives like checked arithmetic operations",
        ])
        .dsl_query(_query)
        .build()
    )


def _query(ast: SyntaxTree, _file_path: str, _span_mapper: SpanMapper) -> SolanaQuery:
    logger.debug("Analyzing unsafe code")
    return SolanaQuery.new(ast).functions().uses_unsafe()
