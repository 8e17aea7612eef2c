"""
Rule Engine - Registers rules and runs them against parsed files.

Two phases: rules are added (and filtered by configuration) while the
registry is open; the first execution freezes it. A failing rule is logged
and skipped, so one broken rule never hides the findings of the others.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from solguard.core.errors import RegistryFrozenError
from solguard.core.parser import SyntaxTree
from solguard.core.rule import Rule
from solguard.models.finding_models import Finding
from solguard.models.rule_models import RuleEngineConfig

# Import all rule modules
from solguard.core.rules import (
    anchor_instructions,
    division_by_zero,
    duplicate_mutable_accounts,
    missing_error_handling,
    missing_signer_check,
    owner_check,
    unsafe_code,
)

logger = logging.getLogger("solguard.engine")

RuleFactory = Callable[[], Rule]

# Built-in catalogue, in registration order
BUILTIN_RULES: dict[str, RuleFactory] = {
    unsafe_code.RULE_ID: unsafe_code.create_rule,
    missing_signer_check.RULE_ID: missing_signer_check.create_rule,
    duplicate_mutable_accounts.RULE_ID: duplicate_mutable_accounts.create_rule,
    division_by_zero.RULE_ID: division_by_zero.create_rule,
    owner_check.RULE_ID: owner_check.create_rule,
    missing_error_handling.RULE_ID: missing_error_handling.create_rule,
    anchor_instructions.RULE_ID: anchor_instructions.create_rule,
}


class RuleEngine:
    """Owns the rule registry and executes it."""

    def __init__(self, config: RuleEngineConfig | None = None) -> None:
        self.config = config or RuleEngineConfig()
        self._pending: list[Rule] = []
        self._rules: tuple[Rule, ...] | None = None

    @property
    def frozen(self) -> bool:
        return self._rules is not None

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules if self._rules is not None else tuple(self._pending)

    def rule_count(self) -> int:
        return len(self.rules)

    def get_rule(self, rule_id: str) -> Rule | None:
        return next((rule for rule in self.rules if rule.id == rule_id), None)

    # ── Registration ──

    def add_rule(self, rule: Rule) -> bool:
        """Register a rule unless the configuration excludes it.

        Returns True when the rule was kept.
        """
        if self.frozen:
            raise RegistryFrozenError(f"Cannot add rule {rule.id}: registry is frozen")

        if rule.severity in self.config.ignore_severities:
            logger.debug(f"Ignoring rule {rule.id} due to severity {rule.severity.value}")
            return False
        if rule.id in self.config.ignore_rules:
            logger.debug(f"Ignoring rule {rule.id} due to ID match")
            return False
        if rule.rule_type not in self.config.include_rule_types:
            logger.debug(f"Ignoring rule {rule.id} due to rule type {rule.rule_type.value}")
            return False

        logger.debug(f"Adding rule: {rule.id}")
        self._pending.append(rule)
        return True

    def load_builtin_rules(self) -> None:
        logger.debug("Loading built-in rules")
        for factory in BUILTIN_RULES.values():
            self.add_rule(factory())
        logger.info(f"Loaded {self.rule_count()} built-in rules")

    def load_yaml_rules(self, templates_path: str | os.PathLike[str]) -> None:
        """Declarative rule templates. Not supported yet: nothing is registered."""
        logger.debug(f"Loading YAML rules from {templates_path}")
        logger.info("YAML rule loading not implemented yet")

    def freeze(self) -> tuple[Rule, ...]:
        """Close registration. Idempotent."""
        if self._rules is None:
            self._rules = tuple(self._pending)
            self._pending = []
            logger.debug(f"Rule registry frozen with {len(self._rules)} rules")
        return self._rules

    # ── Execution ──

    def execute_rules(
        self,
        ast: SyntaxTree,
        file_path: str,
        source_text: str | None = None,
    ) -> list[Finding]:
        """Run every registered rule on one file and collect the findings."""
        rules = self.freeze()
        logger.debug(f"Executing {len(rules)} rules on {file_path}")

        findings: list[Finding] = []
        for rule in rules:
            try:
                rule_findings = rule.check(ast, file_path, source_text)
            except Exception as e:
                # Rule failures should not crash the engine
                logger.warning(f"Error executing rule {rule.id}: {type(e).__name__}: {e}")
                continue
            logger.debug(f"Rule {rule.id} found {len(rule_findings)} issues")
            findings.extend(rule_findings)

        return findings


def create_rule_engine(config: RuleEngineConfig | None = None) -> RuleEngine:
    return RuleEngine(config)
