"""Shared utilities for logging, hashing and error reporting."""

from .errors import FoundationError, ProblemDetail

__all__ = ["FoundationError", "ProblemDetail"]
