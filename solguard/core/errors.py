"""
SolGuard exception hierarchy.
"""

from __future__ import annotations


class SolGuardError(Exception):
    """Base class for all SolGuard errors."""


class ParseError(SolGuardError):
    """A source file could not be read or parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to parse {path}: {reason}")
        self.path = path
        self.reason = reason


class RuleBuildError(SolGuardError):
    """A rule was built without the components it requires."""


class RegistryFrozenError(SolGuardError):
    """A rule was added after the registry started executing."""
