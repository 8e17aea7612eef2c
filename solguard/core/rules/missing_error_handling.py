"""
Missing Error Handling Rule - Public functions that cannot report failure.
"""

from __future__ import annotations

import logging

from solguard.core.dsl.builders import RuleBuilder
from solguard.core.dsl.filters import SolanaQuery
from solguard.core.parser import SyntaxTree
from solguard.core.rule import Rule
from solguard.core.span_mapper import SpanMapper
from solguard.models.rule_models import RuleType, Severity

logger = logging.getLogger("solguard.rules.missing_error_handling")

RULE_ID = "solana-missing-error-handling"


def create_rule() -> Rule:
    return (
        RuleBuilder()
        .id(RULE_ID)
        .title("Missing Error Handling in Public Functions")
        .description(
            "Detects public functions that don't return Result<T> and may fail silently. "
            "In Solana contracts, proper error handling is essential for security and debugging."
        )
        .severity(Severity.LOW)
        .rule_type(RuleType.SOLANA)
        .tags(["error-handling", "best-practices"])
        .recommendations([
            "Change the return type to Result<T, YourErrorType> to handle potential failures",
            "Use Anchor's Result<()> for instruction handlers to properly propagate errors",
            "Implement custom error types using #[error_code] for better error reporting",
            "Propagate errors with the ? operator or explicit error returns",
        ])
        .dsl_query(_query)
        .build()
    )


def _query(ast: SyntaxTree, _file_path: str, _span_mapper: SpanMapper) -> SolanaQuery:
    logger.debug("Analyzing missing error handling")
    return SolanaQuery.new(ast).functions().missing_error_handling()
