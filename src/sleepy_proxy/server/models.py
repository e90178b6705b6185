"""Pydantic response models for the sleepy-proxy HTTP adapter."""
from __future__ import annotations

from pydantic import BaseModel

from sleepy_proxy import __version__


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "sleepy-proxy"
    version: str = __version__
    container_count: int = 0
    resource_count: int = 0


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str = ""


__all__ = [
    "ErrorResponse",
    "HealthResponse",
]
