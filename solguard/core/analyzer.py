"""
Analyzer - Runs the rule engine over a batch of parsed files.

Per-file failures are logged and counted; the batch always completes and
reports whatever could be computed.
"""

from __future__ import annotations

import logging
import os
import time
from collections import Counter
from collections.abc import Sequence
from pathlib import Path

from solguard.core.parser import RustParser, SyntaxTree
from solguard.core.rule_engine import RuleEngine
from solguard.models.finding_models import AnalysisResult, AnalysisStats, Finding
from solguard.models.rule_models import RuleEngineConfig

logger = logging.getLogger("solguard.analyzer")


class Analyzer:
    """Analyzer for Solana / Anchor programs."""

    def __init__(
        self,
        config: RuleEngineConfig | None = None,
        parser: RustParser | None = None,
    ) -> None:
        self.config = config or RuleEngineConfig()
        self.parser = parser or RustParser()
        self.rule_engine = RuleEngine(self.config)
        self.rule_engine.load_builtin_rules()

        templates_path = self.config.custom_templates_path
        if templates_path is not None:
            if templates_path.is_dir():
                self.rule_engine.load_yaml_rules(templates_path)
            else:
                logger.warning(
                    f"Custom templates path does not exist or is not a directory: {templates_path}"
                )

        self.rule_engine.freeze()

    def analyze_file(
        self,
        file_path: str,
        ast: SyntaxTree,
        source_text: str | None = None,
    ) -> list[Finding]:
        """Run every registered rule on one file.

        Findings whose severity is ignored by the configuration are dropped.
        """
        logger.debug(f"Analyzing file: {file_path}")
        findings = [
            f
            for f in self.rule_engine.execute_rules(ast, file_path, source_text)
            if f.severity not in self.config.ignore_severities
        ]
        logger.debug(f"Found {len(findings)} issues in {file_path}")
        return findings

    def analyze_files(self, files: Sequence[tuple[str | Path, SyntaxTree]]) -> AnalysisResult:
        logger.info(f"Starting analysis of {len(files)} files")
        start = time.monotonic()

        all_findings: list[Finding] = []
        failed = 0
        for path, ast in files:
            file_path = str(path)
            try:
                findings = self.analyze_file(file_path, ast)
            except Exception as e:
                logger.warning(f"Error analyzing {file_path}: {e}")
                failed += 1
                continue
            all_findings.extend(findings)

        elapsed = (time.monotonic() - start) * 1000
        stats = AnalysisStats(
            files_analyzed=len(files) - failed,
            files_failed=failed,
            rules_executed=self.rule_engine.rule_count(),
            total_time_ms=round(elapsed, 2),
            findings_by_severity=dict(Counter(f.severity for f in all_findings)),
        )

        logger.info(f"Analysis completed: {len(all_findings)} findings in {stats.total_time_ms}ms")
        return AnalysisResult(findings=all_findings, stats=stats)

    def analyze_directory(self, directory: str | os.PathLike[str]) -> AnalysisResult:
        """Parse every Rust file below ``directory`` and analyze them."""
        logger.info(f"Starting analysis on directory: {directory}")
        parsed, errors = self.parser.walk_with_errors(directory)
        result = self.analyze_files(parsed)
        result.stats.files_failed += len(errors)
        return result


def create_analyzer(config: RuleEngineConfig | None = None) -> Analyzer:
    return Analyzer(config)
