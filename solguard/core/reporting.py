"""
Reporting - Renders findings grouped by severity.

ConsoleReporter writes through logging; MarkdownReporter produces a report
document. Both order groups HIGH, MEDIUM, LOW, INFORMATIONAL.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from solguard.models.finding_models import AnalysisStats, Finding
from solguard.models.rule_models import Severity

logger = logging.getLogger("solguard.report")


def group_by_severity(findings: list[Finding]) -> dict[Severity, list[Finding]]:
    """Findings per severity, most severe first; empty groups are omitted."""
    groups: dict[Severity, list[Finding]] = {}
    for severity in Severity.ordered():
        matching = [f for f in findings if f.severity is severity]
        if matching:
            groups[severity] = matching
    return groups


class ConsoleReporter:
    """Logs a summary and every finding at INFO level."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def render(self, findings: list[Finding], stats: AnalysisStats) -> str:
        lines: list[str] = []

        for severity in Severity.ordered():
            count = stats.findings_by_severity.get(severity)
            if count:
                lines.append(f"- {severity.value.capitalize()}: {count}")

        if not findings:
            lines.append("No vulnerabilities found")
        else:
            lines.append(f"Found {len(findings)} vulnerabilities:")
            index = 1
            for severity, group in group_by_severity(findings).items():
                lines.append(f"----- {severity.value.capitalize()} Severity Findings -----")
                for finding in group:
                    lines.append(f"{index}.\t{finding.description} ({finding.location})")
                    index += 1

        for line in lines:
            self.log.info(line)
        return "\n".join(lines)


class MarkdownReporter:
    """Builds a Markdown audit report."""

    def __init__(self, target: str = "") -> None:
        self.target = target

    def render(self, findings: list[Finding], stats: AnalysisStats) -> str:
        out: list[str] = ["# SolGuard Security Report", ""]
        if self.target:
            out.append(f"**Target:** `{self.target}`  ")
        out.append(f"**Generated:** {time.strftime('%Y-%m-%d %H:%M:%S')}  ")
        out.append(f"**Files analyzed:** {stats.files_analyzed}  ")
        out.append(f"**Rules executed:** {stats.rules_executed}  ")
        out.append(f"**Total findings:** {len(findings)}")
        out.append("")

        out.append("## Summary")
        out.append("")
        out.append("| Severity | Count |")
        out.append("|----------|-------|")
        for severity in Severity.ordered():
            out.append(f"| {severity.value.capitalize()} | {stats.findings_by_severity.get(severity, 0)} |")
        out.append("")

        if not findings:
            out.append("No vulnerabilities found.")
            return "\n".join(out) + "\n"

        index = 1
        for severity, group in group_by_severity(findings).items():
            out.append(f"## {severity.value.capitalize()} Severity")
            out.append("")
            for finding in group:
                heading = finding.title or finding.rule_id or "Finding"
                out.append(f"### {index}. {heading}")
                out.append("")
                if finding.rule_id:
                    out.append(f"**Rule:** `{finding.rule_id}`  ")
                out.append(f"**Location:** `{finding.location}`")
                out.append("")
                out.append(finding.description)
                out.append("")
                if finding.code_snippet:
                    out.append("```rust")
                    out.append(finding.code_snippet)
                    out.append("```")
                    out.append("")
                if finding.recommendations:
                    out.append("**Recommendations:**")
                    out.append("")
                    out.extend(f"- {rec}" for rec in finding.recommendations)
                    out.append("")
                index += 1

        return "\n".join(out)

    def save(self, path: str | os.PathLike[str], findings: list[Finding], stats: AnalysisStats) -> Path:
        """Write the report; a path without a Markdown extension gets ``.md``."""
        output = Path(path)
        if output.suffix not in (".md", ".markdown"):
            output = output.with_suffix(".md")
        output.write_text(self.render(findings, stats), encoding="utf-8")
        logger.info(f"Markdown report saved to: {output}")
        return output
