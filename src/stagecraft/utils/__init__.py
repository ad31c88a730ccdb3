"""Shared utilities for error reporting and logging."""

from .errors import FoundationError, ProblemDetail

__all__ = ["FoundationError", "ProblemDetail"]
