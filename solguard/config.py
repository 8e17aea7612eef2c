"""
SolGuard Configuration - pydantic-settings based.

All settings are read from SOLGUARD_* environment variables or a .env file.
List values are given as JSON, e.g. SOLGUARD_IGNORE_RULES='["owner-check"]'.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from solguard.models.rule_models import RuleType, Severity


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Rule selection ──
    ignore_severities: list[Severity] = Field(
        default_factory=list, description="Severities whose rules and findings are dropped"
    )
    ignore_rules: list[str] = Field(
        default_factory=list, description="Rule IDs that are never registered"
    )
    include_rule_types: list[RuleType] = Field(
        default_factory=lambda: list(RuleType), description="Rule types to register"
    )
    custom_templates_path: Path | None = Field(
        default=None, description="Directory with declarative rule templates"
    )

    # ── Scanning ──
    source_extension: str = Field(default=".rs", description="Extension of source files to walk")
    max_file_size_bytes: int = Field(
        default=500_000, description="Max file size to accept (bytes)"
    )

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Root log level")

    model_config = {
        "env_prefix": "SOLGUARD_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance - imported by other modules
settings = Settings()
