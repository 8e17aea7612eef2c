"""
SolGuard - POST /scan endpoint.

Accepts {"files": [{"path", "content"}]}, parses each file with tree-sitter,
runs the rule engine over everything that parsed and returns the findings.
Files that are too large or fail to parse are reported in "errors".
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter

from solguard.config import settings
from solguard.core.analyzer import Analyzer
from solguard.core.errors import ParseError
from solguard.core.parser import RustParser, SyntaxTree
from solguard.core.reporting import MarkdownReporter
from solguard.models.rule_models import RuleEngineConfig
from solguard.models.scan_models import ScanError, ScanRequest, ScanResponse

logger = logging.getLogger("solguard.scan")
router = APIRouter()

# Shared singleton; tree-sitter parsers are cheap but not free
_parser = RustParser(settings.source_extension)


@lru_cache(maxsize=1)
def get_analyzer() -> Analyzer:
    """Analyzer built once from settings, with its registry frozen."""
    return Analyzer(RuleEngineConfig.from_settings(settings), _parser)


@router.post("/scan", response_model=ScanResponse)
async def scan_code(req: ScanRequest) -> ScanResponse:
    """Scan Solana / Anchor sources for vulnerabilities."""
    if not req.files:
        return ScanResponse(message="error", detail="No files provided")

    logger.info(f"Scan request: {len(req.files)} files")

    parsed: list[tuple[str, SyntaxTree]] = []
    errors: list[ScanError] = []
    for file in req.files:
        size = len(file.content.encode("utf-8"))
        if size > settings.max_file_size_bytes:
            logger.warning(f"Rejected {file.path}: {size} bytes")
            errors.append(ScanError(
                path=file.path,
                reason=f"File exceeds maximum size of {settings.max_file_size_bytes} bytes",
            ))
            continue
        try:
            parsed.append((file.path, _parser.parse_text(file.content, file.path)))
        except ParseError as e:
            logger.warning(str(e))
            errors.append(ScanError(path=file.path, reason=e.reason))

    result = get_analyzer().analyze_files(parsed)
    result.stats.files_failed += len(errors)

    report = None
    if req.markdown_report:
        target = ", ".join(file.path for file in req.files)
        report = MarkdownReporter(target=target).render(result.findings, result.stats)

    return ScanResponse(
        message="scan_complete",
        findings=result.findings,
        stats=result.stats,
        errors=errors,
        report=report,
    )
