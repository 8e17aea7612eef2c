"""
Finding Data Models - Locations, findings and analysis statistics.

Findings are plain data: they own copies of everything they report and
outlive the syntax tree they were produced from.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from solguard.models.rule_models import Severity


class Location(BaseModel):
    """A position in a source file. Line and columns are 1-indexed."""

    file: str = Field(..., description="File path")
    line: int = Field(..., ge=1, description="Start line")
    column: int | None = Field(default=None, description="Start column")
    end_line: int | None = Field(default=None, description="End line")
    end_column: int | None = Field(default=None, description="End column")

    @classmethod
    def fallback(cls, file: str) -> Location:
        """Location used when a node carries no position data."""
        return cls(file=file, line=1)

    def format_location(self) -> str:
        if self.column is None:
            return f"{self.file}:{self.line}"
        if self.end_line is not None and self.end_column is not None and self.end_line != self.line:
            return f"{self.file}:{self.line}:{self.column}-{self.end_line}:{self.end_column}"
        if self.end_column is not None and self.end_column != self.column:
            return f"{self.file}:{self.line}:{self.column}-{self.end_column}"
        return f"{self.file}:{self.line}:{self.column}"

    def __str__(self) -> str:
        return self.format_location()


class Finding(BaseModel):
    """A single reported issue."""

    description: str
    severity: Severity
    location: Location
    code_snippet: str | None = None
    rule_id: str = Field(default="", description="Rule that produced the finding")
    title: str = Field(default="", description="Short rule title")
    recommendations: list[str] = Field(default_factory=list)


class AnalysisStats(BaseModel):
    """Aggregate numbers for one analysis run."""

    files_analyzed: int = 0
    files_failed: int = 0
    rules_executed: int = 0
    total_time_ms: float = 0.0
    findings_by_severity: dict[Severity, int] = Field(default_factory=dict)


class AnalysisResult(BaseModel):
    """Findings of an analysis run plus its statistics."""

    findings: list[Finding] = Field(default_factory=list)
    stats: AnalysisStats = Field(default_factory=AnalysisStats)
