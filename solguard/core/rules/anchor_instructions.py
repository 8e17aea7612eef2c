"""
Anchor Instructions Rule - Inventory of program entry points.

Public functions taking a `Context<...>` are instruction handlers; listing
them gives reviewers the attack surface of the program.
"""

from __future__ import annotations

import logging

from solguard.core.dsl.builders import RuleBuilder
from solguard.core.dsl.filters import SolanaQuery
from solguard.core.parser import SyntaxTree
from solguard.core.rule import Rule
from solguard.core.span_mapper import SpanMapper
from solguard.models.rule_models import RuleType, Severity

logger = logging.getLogger("solguard.rules.anchor_instructions")

RULE_ID = "anchor-instructions"


def create_rule() -> Rule:
    return (
        RuleBuilder()
        .id(RULE_ID)
        .title("Anchor Instructions Detection")
        .description(
            "Detects functions that are Anchor program instructions (public functions with Context parameter)"
        )
        .severity(Severity.LOW)
        .rule_type(RuleType.SOLANA)
        .tag("anchor")
        .dsl_query(_query)
        .build()
    )


def _query(ast: SyntaxTree, _file_path: str, _span_mapper: SpanMapper) -> SolanaQuery:
    logger.debug("Analyzing Anchor instructions")
    return SolanaQuery.new(ast).functions().anchor_instructions()
