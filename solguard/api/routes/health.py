"""
Health Check Route - GET /health
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from solguard.api.routes.scan import get_analyzer

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": request.app.version,
        "rules": get_analyzer().rule_engine.rule_count(),
    }
