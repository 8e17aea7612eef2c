"""
Division By Zero Rule - Divisions whose divisor is not known to be non-zero.

Integer division by zero aborts the whole transaction. A divisor is trusted
only when it is a non-zero literal or a local bound to one.
"""

from __future__ import annotations

import logging

from solguard.core.dsl.builders import RuleBuilder
from solguard.core.dsl.filters import SolanaQuery
from solguard.core.parser import SyntaxTree
from solguard.core.rule import Rule
from solguard.core.span_mapper import SpanMapper
from solguard.models.rule_models import RuleType, Severity

logger = logging.getLogger("solguard.rules.division_by_zero")

RULE_ID = "solana-division-by-zero"


def create_rule() -> Rule:
    return (
        RuleBuilder()
        .id(RULE_ID)
        .title("Division Without Zero Check")
        .description("Detects division operations without zero verification")
        .severity(Severity.MEDIUM)
        .rule_type(RuleType.SOLANA)
        .tags(["arithmetic", "security"])
        .recommendations([
            "Check the divisor against zero before dividing",
            "Use checked_div() and handle the None case explicitly",
        ])
        .dsl_query(_query)
        .build()
    )


def _query(ast: SyntaxTree, _file_path: str, _span_mapper: SpanMapper) -> SolanaQuery:
    logger.debug("Analyzing unsafe divisions")
    return SolanaQuery.new(ast).functions().has_unsafe_divisions()
