"""Exception hierarchy for the metrics scope tree."""

from __future__ import annotations


class StatScopeError(Exception):
    """Base error raised by the statscope core."""


class InvalidTagError(StatScopeError, ValueError):
    """Raised when a tag, name part or metric name would corrupt an identity."""


class ConfigurationError(StatScopeError, ValueError):
    """Raised when a scope tree is built with unusable options."""


class ReporterError(StatScopeError, RuntimeError):
    """Raised when the attached reporter fails outside of a flush pass."""
