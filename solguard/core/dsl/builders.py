"""
Rule Builder - Fluent construction of Rule values.

A rule needs exactly one query, supplied through one of three entry points:

    query(fn(ast) -> findings)                           raw findings
    visitor(fn(ast, file_path, span_mapper) -> findings) hand-written walk
    dsl_query(fn(ast, file_path, span_mapper) -> AstQuery)

DSL results are turned into findings with the rule's own severity, title
and description, with locations resolved through the span mapper.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from solguard.core.dsl.query import AstQuery
from solguard.core.errors import RuleBuildError
from solguard.core.parser import SyntaxTree
from solguard.core.rule import CheckFn, Rule
from solguard.core.span_mapper import SpanMapper
from solguard.models.finding_models import Finding
from solguard.models.rule_models import RuleType, Severity

logger = logging.getLogger("solguard.builder")

RawQueryFn = Callable[[SyntaxTree], list[Finding]]
VisitorFn = Callable[[SyntaxTree, str, SpanMapper], list[Finding]]
DslQueryFn = Callable[[SyntaxTree, str, SpanMapper], AstQuery]
FindingTransform = Callable[[Finding], Finding]
FindingFilter = Callable[[Finding], bool]


class RuleBuilder:
    """Accumulates rule metadata and a query, then builds an immutable Rule."""

    def __init__(self) -> None:
        self._id = ""
        self._title = ""
        self._description = ""
        self._severity = Severity.MEDIUM
        self._rule_type = RuleType.SOLANA
        self._tags: list[str] = []
        self._references: list[str] = []
        self._recommendations: list[str] = []
        self._enabled = True
        self._queries: list[tuple[str, Callable]] = []
        self._transforms: list[FindingTransform] = []
        self._filters: list[FindingFilter] = []

    # ── Metadata ──

    def id(self, rule_id: str) -> RuleBuilder:
        self._id = rule_id
        return self

    def title(self, title: str) -> RuleBuilder:
        self._title = title
        return self

    def description(self, description: str) -> RuleBuilder:
        self._description = description
        return self

    def severity(self, severity: Severity) -> RuleBuilder:
        self._severity = severity
        return self

    def rule_type(self, rule_type: RuleType) -> RuleBuilder:
        self._rule_type = rule_type
        return self

    def tag(self, tag: str) -> RuleBuilder:
        self._tags.append(tag)
        return self

    def tags(self, tags: Iterable[str]) -> RuleBuilder:
        self._tags.extend(tags)
        return self

    def reference(self, reference: str) -> RuleBuilder:
        self._references.append(reference)
        return self

    def references(self, references: Iterable[str]) -> RuleBuilder:
        self._references.extend(references)
        return self

    def recommendation(self, recommendation: str) -> RuleBuilder:
        self._recommendations.append(recommendation)
        return self

    def recommendations(self, recommendations: Iterable[str]) -> RuleBuilder:
        self._recommendations.extend(recommendations)
        return self

    def enabled(self, enabled: bool) -> RuleBuilder:
        self._enabled = enabled
        return self

    # ── Query entry points ──

    def query(self, query_fn: RawQueryFn) -> RuleBuilder:
        self._queries.append(("query", query_fn))
        return self

    def visitor(self, visitor_fn: VisitorFn) -> RuleBuilder:
        self._queries.append(("visitor", visitor_fn))
        return self

    def dsl_query(self, dsl_fn: DslQueryFn) -> RuleBuilder:
        self._queries.append(("dsl", dsl_fn))
        return self

    # ── Post-processing ──

    def transform(self, transform_fn: FindingTransform) -> RuleBuilder:
        """Rewrite each finding before it is returned."""
        self._transforms.append(transform_fn)
        return self

    def filter(self, filter_fn: FindingFilter) -> RuleBuilder:
        """Drop findings for which ``filter_fn`` returns False."""
        self._filters.append(filter_fn)
        return self

    # ── Build ──

    def build(self) -> Rule:
        logger.debug(f"Building rule: {self._id}")

        if not self._id:
            raise RuleBuildError("Rule id is required")
        if not self._queries:
            raise RuleBuildError(f"Rule '{self._id}' has no query")
        if len(self._queries) > 1:
            raise RuleBuildError(f"Rule '{self._id}' has more than one query")

        if self._references:
            logger.debug(f"References for rule {self._id}: {self._references}")
        if self._tags:
            logger.debug(f"Tags for rule {self._id}: {self._tags}")
        if not self._enabled:
            logger.info(f"Rule {self._id} is disabled by default")

        return Rule(
            id=self._id,
            title=self._title,
            description=self._description,
            severity=self._severity,
            rule_type=self._rule_type,
            check_fn=self._make_check_fn(),
            recommendations=tuple(self._recommendations),
            references=tuple(self._references),
            tags=tuple(self._tags),
            enabled=self._enabled,
        )

    def _make_check_fn(self) -> CheckFn:
        kind, query_fn = self._queries[0]
        rule_id = self._id
        title = self._title
        description = self._description
        severity = self._severity
        recommendations = list(self._recommendations)
        transforms = tuple(self._transforms)
        filters = tuple(self._filters)
        enabled = self._enabled

        def check(ast: SyntaxTree, file_path: str, source_text: str) -> list[Finding]:
            logger.debug(f"Executing rule {rule_id} in {file_path}")
            span_mapper = SpanMapper(source_text, file_path)

            if kind == "query":
                findings = query_fn(ast)
            elif kind == "visitor":
                findings = query_fn(ast, file_path, span_mapper)
            else:
                results: AstQuery = query_fn(ast, file_path, span_mapper)
                findings = [
                    finding.model_copy(
                        update={
                            "rule_id": rule_id,
                            "title": title,
                            "recommendations": list(recommendations),
                        }
                    )
                    for finding in results.to_findings_with_span_extractor(
                        severity, title, description, file_path, span_mapper
                    )
                ]

            for transform_fn in transforms:
                findings = [transform_fn(finding) for finding in findings]
            for filter_fn in filters:
                findings = [finding for finding in findings if filter_fn(finding)]

            if not enabled:
                logger.debug(f"Rule {rule_id} is disabled, {len(findings)} findings discarded")
                return []
            return findings

        return check
