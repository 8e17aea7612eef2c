"""
Duplicate Mutable Accounts Rule - Several mutable accounts that may alias.

Anchor does not stop the same account from being passed for two mutable
fields. Unless a constraint tells them apart, writes to one silently
overwrite the other.
"""

from __future__ import annotations

import logging

from solguard.core.dsl.builders import RuleBuilder
from solguard.core.dsl.filters import SolanaQuery
from solguard.core.parser import SyntaxTree
from solguard.core.rule import Rule
from solguard.core.span_mapper import SpanMapper
from solguard.models.rule_models import RuleType, Severity

logger = logging.getLogger("solguard.rules.duplicate_mutable_accounts")

RULE_ID = "duplicate-mutable-accounts"


def create_rule() -> Rule:
    return (
        RuleBuilder()
        .id(RULE_ID)
        .title("Duplicate Mutable Accounts")
        .description(
            "Detects account structs with multiple mutable references to the same account type, "
            "which can lead to unexpected behavior"
        )
        .severity(Severity.MEDIUM)
        .rule_type(RuleType.SOLANA)
        .tags(["security", "accounts", "anchor"])
        .recommendations([
            "Add constraints to ensure accounts are different: "
            "#[account(constraint = account1.key() != account2.key())]",
            "Use a single mutable account reference instead of multiple ones when possible",
            "Validate in the instruction handler that the same account is not passed twice",
        ])
        .dsl_query(_query)
        .build()
    )


def _query(ast: SyntaxTree, _file_path: str, _span_mapper: SpanMapper) -> SolanaQuery:
    logger.debug("Analyzing duplicate mutable accounts")
    return SolanaQuery.new(ast).structs().derives_accounts().has_duplicate_mutable_accounts()
