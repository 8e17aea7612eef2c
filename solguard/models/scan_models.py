"""
Scan Request/Response Models - API contract schemas.

These are the public-facing Pydantic models used by the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from solguard.models.finding_models import AnalysisStats, Finding


class FileInput(BaseModel):
    """A single file submitted for scanning."""

    path: str = Field(..., description="File path (absolute or relative)")
    content: str = Field(..., description="File source content")


class ScanRequest(BaseModel):
    """Request body for /scan."""

    files: list[FileInput] = Field(default_factory=list)
    markdown_report: bool = Field(
        default=False, description="Also render the findings as a Markdown report"
    )


class ScanError(BaseModel):
    """A file that could not be analyzed."""

    path: str
    reason: str


class ScanResponse(BaseModel):
    """Response body for /scan."""

    message: Literal["scan_complete", "error"]
    findings: list[Finding] = Field(default_factory=list)
    stats: AnalysisStats | None = None
    errors: list[ScanError] = Field(default_factory=list)
    report: str | None = Field(default=None, description="Markdown report, when requested")
    detail: str = ""
