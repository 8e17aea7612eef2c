"""
Rule - Immutable, shareable analysis rule.

A rule is created once and never changes afterwards. Its check function is a
pure traversal of the tree it is given, so a single Rule may be invoked from
several threads at once.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from solguard.core.parser import SyntaxTree
from solguard.models.finding_models import Finding
from solguard.models.rule_models import RuleType, Severity

# (ast, file_path, source_text) -> findings
CheckFn = Callable[[SyntaxTree, str, str], list[Finding]]


@dataclass(frozen=True)
class Rule:
    id: str
    title: str
    description: str
    severity: Severity
    rule_type: RuleType
    check_fn: CheckFn = field(repr=False, compare=False)
    recommendations: tuple[str, ...] = ()
    references: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    enabled: bool = True

    def check(self, ast: SyntaxTree, file_path: str, source_text: str | None = None) -> list[Finding]:
        """Run the rule against one file.

        ``source_text`` defaults to the text the tree was parsed from.
        Exceptions propagate to the caller.
        """
        return self.check_fn(ast, file_path, source_text if source_text is not None else ast.text)
