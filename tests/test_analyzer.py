"""
Tests for the Analyzer - end-to-end analysis of files and directories.
"""

import pytest

from solguard.core.analyzer import Analyzer, create_analyzer
from solguard.core.errors import RegistryFrozenError
from solguard.core.dsl.builders import RuleBuilder
from solguard.core.rule_engine import RuleEngine
from solguard.models.finding_models import Finding, Location
from solguard.models.rule_models import RuleEngineConfig, Severity


def _by_rule(findings):
    grouped = {}
    for finding in findings:
        grouped.setdefault(finding.rule_id, []).append(finding)
    return grouped


def test_end_to_end_single_file(parse, end_to_end_program):
    analyzer = create_analyzer()
    result = analyzer.analyze_files([("lib.rs", parse(end_to_end_program))])
    grouped = _by_rule(result.findings)

    assert grouped["missing-signer-check"][0].severity is Severity.HIGH
    assert grouped["anchor-instructions"][0].severity is Severity.LOW
    assert grouped["solana-division-by-zero"][0].severity is Severity.MEDIUM
    assert grouped["solana-missing-error-handling"][0].severity is Severity.LOW

    signer = grouped["missing-signer-check"][0]
    assert signer.location.line == 2
    assert signer.code_snippet.startswith("pub struct Ctx<'info>")


def test_stats(parse, vulnerable_anchor_program, clean_anchor_program):
    analyzer = Analyzer()
    result = analyzer.analyze_files([
        ("vault.rs", parse(vulnerable_anchor_program)),
        ("counter.rs", parse(clean_anchor_program)),
    ])
    stats = result.stats
    assert stats.files_analyzed == 2
    assert stats.files_failed == 0
    assert stats.rules_executed == 7
    assert stats.total_time_ms >= 0
    assert stats.findings_by_severity == {Severity.HIGH: 2, Severity.MEDIUM: 2, Severity.LOW: 2}
    assert sum(stats.findings_by_severity.values()) == len(result.findings)


def test_ignored_severity_is_not_reported(parse, vulnerable_anchor_program):
    analyzer = Analyzer(RuleEngineConfig(ignore_severities={Severity.LOW, Severity.MEDIUM}))
    result = analyzer.analyze_files([("vault.rs", parse(vulnerable_anchor_program))])
    assert {f.severity for f in result.findings} == {Severity.HIGH}
    assert result.stats.rules_executed == 2


def test_registry_is_frozen_after_construction():
    analyzer = Analyzer()
    rule = RuleBuilder().id("late").query(lambda ast: []).build()
    with pytest.raises(RegistryFrozenError):
        analyzer.rule_engine.add_rule(rule)


def test_missing_templates_path_is_tolerated(tmp_path):
    analyzer = Analyzer(RuleEngineConfig(custom_templates_path=tmp_path / "missing"))
    assert analyzer.rule_engine.rule_count() == 7


def test_analyze_directory_skips_unparsable_files(tmp_path, vulnerable_anchor_program):
    programs = tmp_path / "programs" / "vault" / "src"
    programs.mkdir(parents=True)
    (programs / "lib.rs").write_text(vulnerable_anchor_program)
    (programs / "broken.rs").write_text("pub fn broken( {\n")
    (programs / "notes.txt").write_text("pub fn ignored() {}\n")

    result = Analyzer().analyze_directory(tmp_path)

    assert result.stats.files_analyzed == 1
    assert result.stats.files_failed == 1
    assert {f.location.file for f in result.findings} == {str(programs / "lib.rs")}
    assert len(result.findings) == 6


def _mixed_severity_rule():
    def query(ast):
        return [
            Finding(description="minor", severity=Severity.LOW, location=Location.fallback("lib.rs")),
            Finding(description="major", severity=Severity.HIGH, location=Location.fallback("lib.rs")),
        ]

    return RuleBuilder().id("mixed").severity(Severity.HIGH).query(query).build()


@pytest.mark.parametrize("ignored, expected", [
    (set(), ["minor", "major"]),
    ({Severity.LOW}, ["major"]),
])
def test_analyze_file_drops_findings_with_ignored_severity(parse, ignored, expected):
    analyzer = Analyzer(RuleEngineConfig(ignore_severities=ignored))
    engine = RuleEngine(analyzer.config)
    assert engine.add_rule(_mixed_severity_rule())
    engine.freeze()
    analyzer.rule_engine = engine

    findings = analyzer.analyze_file("lib.rs", parse("fn f() {}\n"))

    assert [f.description for f in findings] == expected
