"""
Owner Check Rule - Accounts structs that validate account ownership.

Reports every Accounts struct with an `owner`/`address` constraint so that
auditors can review that the expected program or key is enforced.
"""

from __future__ import annotations

import logging

from solguard.core.dsl.builders import RuleBuilder
from solguard.core.dsl.filters import SolanaQuery
from solguard.core.parser import SyntaxTree
from solguard.core.rule import Rule
from solguard.core.span_mapper import SpanMapper
from solguard.models.rule_models import RuleType, Severity

logger = logging.getLogger("solguard.rules.owner_check")

RULE_ID = "owner-check"


def create_rule() -> Rule:
    return (
        RuleBuilder()
        .id(RULE_ID)
        .title("Owner Check Validation")
        .description("Detects structs that implement owner checks for account validation")
        .severity(Severity.MEDIUM)
        .rule_type(RuleType.SOLANA)
        .tags(["accounts", "anchor"])
        .reference("https://solana.com/developers/courses/program-security/owner-checks")
        .dsl_query(_query)
        .build()
    )


def _query(ast: SyntaxTree, _file_path: str, _span_mapper: SpanMapper) -> SolanaQuery:
    logger.debug("Analyzing owner checks")
    return SolanaQuery.new(ast).structs().derives_accounts().has_owner_check()
