"""
Rule Data Models - Severities, rule types and rule engine configuration.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from solguard.config import Settings


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFORMATIONAL = "informational"

    @property
    def rank(self) -> int:
        """Sort key: HIGH sorts first."""
        return SEVERITY_ORDER[self]

    @classmethod
    def ordered(cls) -> list[Severity]:
        """All severities, most severe first."""
        return sorted(cls, key=lambda s: s.rank)

    @classmethod
    def parse(cls, value: str) -> Severity:
        """Parse a case-insensitive severity name."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown severity level: {value}") from None


SEVERITY_ORDER: dict[Severity, int] = {
    Severity.HIGH: 0,
    Severity.MEDIUM: 1,
    Severity.LOW: 2,
    Severity.INFORMATIONAL: 3,
}


class RuleType(str, Enum):
    SOLANA = "solana"
    ANCHOR = "anchor"
    GENERAL = "general"


class RuleEngineConfig(BaseModel):
    """Registration-time filters applied by the rule engine."""

    ignore_severities: set[Severity] = Field(
        default_factory=set, description="Rules with these severities are dropped"
    )
    ignore_rules: set[str] = Field(
        default_factory=set, description="Rule IDs that are never registered"
    )
    include_rule_types: set[RuleType] = Field(
        default_factory=lambda: set(RuleType),
        description="Only rules of these types are registered",
    )
    custom_templates_path: Path | None = Field(
        default=None, description="Directory holding declarative rule templates"
    )

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> RuleEngineConfig:
        return cls(
            ignore_severities=set(settings.ignore_severities),
            ignore_rules=set(settings.ignore_rules),
            include_rule_types=set(settings.include_rule_types),
            custom_templates_path=settings.custom_templates_path,
        )
