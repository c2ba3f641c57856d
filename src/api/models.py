# src/api/models.py - v1
"""HTTP response bodies other than AddressRecord."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from cepgateway.core.errors import ErrorCode


class ErrorResponse(BaseModel):
    """Stable error body returned for every failed request."""

    code: ErrorCode
    message: str
    details: dict[str, Any] | None = None
    request_id: str
    timestamp: datetime
    path: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime


class ProviderHealthResponse(BaseModel):
    providers: dict[str, bool]
    timestamp: datetime
