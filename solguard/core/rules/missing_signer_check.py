"""
Missing Signer Check Rule - Accounts structs whose authorities never sign.

An account typed `AccountInfo`, `UncheckedAccount` or `SystemAccount`, or
named like an authority, must either be a `Signer<'info>` or carry
`#[account(signer)]`. Otherwise anyone can pass an arbitrary account in its
place.
"""

from __future__ import annotations

import logging

from solguard.core.dsl.builders import RuleBuilder
from solguard.core.dsl.filters import SolanaQuery
from solguard.core.parser import SyntaxTree
from solguard.core.rule import Rule
from solguard.core.span_mapper import SpanMapper
from solguard.models.rule_models import RuleType, Severity

logger = logging.getLogger("solguard.rules.missing_signer_check")

RULE_ID = "missing-signer-check"


def create_rule() -> Rule:
    return (
        RuleBuilder()
        .id(RULE_ID)
        .title("Missing Signer Check")
        .description("Detects Anchor account fields that may need signer verification")
        .severity(Severity.HIGH)
        .rule_type(RuleType.SOLANA)
        .tags(["security", "accounts", "anchor"])
        .reference("https://solana.com/developers/courses/program-security/signer-auth")
        .recommendations([
            "Use Signer<'info> for accounts that must authorize the instruction",
            "Add #[account(signer)] to AccountInfo or UncheckedAccount fields that must sign",
        ])
        .dsl_query(_query)
        .build()
    )


def _query(ast: SyntaxTree, _file_path: str, _span_mapper: SpanMapper) -> SolanaQuery:
    logger.debug("Analyzing missing signer checks")
    return SolanaQuery.new(ast).structs().derives_accounts().has_missing_signer_checks()
