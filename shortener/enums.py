"""Shared enums for the URL shortener.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus", "ResolveSource"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Outcome labels for shorten requests."""

    CREATED = "created"
    EXISTING = "existing"
    VALIDATION_ERROR = "validation_error"
    ERROR = "error"


class ResolveSource(StrEnum):
    """Where a resolve request got its answer from."""

    CACHE = "cache"
    NEGATIVE_CACHE = "negative_cache"
    STORE = "store"
    NOT_FOUND = "not_found"
    ERROR = "error"
