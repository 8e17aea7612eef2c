"""
Tests for the rule engine - registration, configuration filtering,
freezing and failure isolation.
"""

import pytest

from solguard.core.dsl.builders import RuleBuilder
from solguard.core.errors import RegistryFrozenError
from solguard.core.rule_engine import BUILTIN_RULES, RuleEngine, create_rule_engine
from solguard.models.finding_models import Finding, Location
from solguard.models.rule_models import RuleEngineConfig, RuleType, Severity

EXPECTED_BUILTINS = {
    "solana-unsafe-code": Severity.HIGH,
    "missing-signer-check": Severity.HIGH,
    "duplicate-mutable-accounts": Severity.MEDIUM,
    "solana-division-by-zero": Severity.MEDIUM,
    "owner-check": Severity.MEDIUM,
    "solana-missing-error-handling": Severity.LOW,
    "anchor-instructions": Severity.LOW,
}


def _static_rule(rule_id, severity=Severity.LOW, rule_type=RuleType.SOLANA):
    finding = Finding(
        description=rule_id,
        severity=severity,
        location=Location(file="lib.rs", line=1),
    )
    return (
        RuleBuilder()
        .id(rule_id)
        .severity(severity)
        .rule_type(rule_type)
        .query(lambda ast: [finding])
        .build()
    )


def _failing_rule(rule_id):
    def boom(ast):
        raise RuntimeError("query failed")

    return RuleBuilder().id(rule_id).query(boom).build()


def test_builtin_catalogue_ids_and_severities():
    engine = create_rule_engine()
    engine.load_builtin_rules()
    assert {rule.id: rule.severity for rule in engine.rules} == EXPECTED_BUILTINS
    assert list(BUILTIN_RULES) == list(EXPECTED_BUILTINS)


def test_ignore_severities():
    engine = RuleEngine(RuleEngineConfig(ignore_severities={Severity.LOW}))
    engine.load_builtin_rules()
    assert all(rule.severity is not Severity.LOW for rule in engine.rules)
    assert engine.rule_count() == 5


def test_ignore_rules():
    engine = RuleEngine(RuleEngineConfig(ignore_rules={"owner-check"}))
    engine.load_builtin_rules()
    assert engine.get_rule("owner-check") is None
    assert engine.get_rule("missing-signer-check") is not None


def test_include_rule_types():
    engine = RuleEngine(RuleEngineConfig(include_rule_types={RuleType.ANCHOR}))
    assert engine.add_rule(_static_rule("anchor-only", rule_type=RuleType.ANCHOR))
    assert not engine.add_rule(_static_rule("solana-only", rule_type=RuleType.SOLANA))
    assert [rule.id for rule in engine.rules] == ["anchor-only"]


def test_add_rule_after_execution_is_rejected(parse):
    engine = RuleEngine()
    engine.add_rule(_static_rule("first"))
    engine.execute_rules(parse("fn a() {}\n"), "lib.rs")
    assert engine.frozen
    with pytest.raises(RegistryFrozenError):
        engine.add_rule(_static_rule("late"))


def test_freeze_is_idempotent():
    engine = RuleEngine()
    engine.add_rule(_static_rule("first"))
    assert engine.freeze() == engine.freeze()
    assert engine.rule_count() == 1


def test_failing_rule_does_not_stop_others(parse, caplog):
    engine = RuleEngine()
    engine.add_rule(_static_rule("before"))
    engine.add_rule(_failing_rule("broken"))
    engine.add_rule(_static_rule("after"))

    with caplog.at_level("WARNING", logger="solguard.engine"):
        findings = engine.execute_rules(parse("fn a() {}\n"), "lib.rs")

    assert [f.description for f in findings] == ["before", "after"]
    assert "broken" in caplog.text


def test_load_yaml_rules_registers_nothing(tmp_path):
    engine = RuleEngine()
    engine.load_yaml_rules(tmp_path)
    assert engine.rule_count() == 0


def test_execute_builtin_rules(parse, vulnerable_anchor_program):
    engine = RuleEngine()
    engine.load_builtin_rules()
    findings = engine.execute_rules(parse(vulnerable_anchor_program), "programs/vault/src/lib.rs")
    by_rule = {}
    for finding in findings:
        by_rule.setdefault(finding.rule_id, []).append(finding)

    assert len(by_rule["solana-unsafe-code"]) == 1
    assert len(by_rule["missing-signer-check"]) == 1
    assert len(by_rule["duplicate-mutable-accounts"]) == 1
    assert len(by_rule["solana-division-by-zero"]) == 1
    assert len(by_rule["solana-missing-error-handling"]) == 1
    assert len(by_rule["anchor-instructions"]) == 1
    assert "owner-check" not in by_rule
    assert all(f.location.file == "programs/vault/src/lib.rs" for f in findings)


def test_clean_program_has_no_findings(parse, clean_anchor_program):
    engine = RuleEngine()
    engine.load_builtin_rules()
    assert engine.execute_rules(parse(clean_anchor_program), "lib.rs") == []
