# src/core/errors.py - v1
"""Closed error taxonomy for CEP lookups.

Every failure that leaves the lookup core is one of four ``ErrorCode`` values,
carried by a :class:`LookupFailure` inside a :class:`CepLookupError`. Adapters
raise it, the orchestrator surfaces it, the HTTP layer renders it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ConfigurationError(Exception):
    """Raised when settings or the provider set are internally inconsistent."""


class ErrorCode(str, Enum):
    """Failure classification shared by all providers and the orchestrator."""

    INVALID_CEP = "INVALID_CEP"
    CEP_NOT_FOUND = "CEP_NOT_FOUND"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_CEP: "Invalid CEP. A CEP must contain 8 numeric digits.",
    ErrorCode.CEP_NOT_FOUND: "CEP not found in any of the available providers.",
    ErrorCode.UPSTREAM_UNAVAILABLE: "All CEP providers are temporarily unavailable.",
    ErrorCode.GATEWAY_TIMEOUT: "Timed out while querying the CEP providers. Try again.",
}

HTTP_STATUS_BY_ERROR_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_CEP: 400,
    ErrorCode.CEP_NOT_FOUND: 404,
    ErrorCode.UPSTREAM_UNAVAILABLE: 503,
    ErrorCode.GATEWAY_TIMEOUT: 504,
}


class LookupFailure(BaseModel):
    """Typed failure built where it is detected. Never mutated afterwards."""

    model_config = ConfigDict(frozen=True)

    code: ErrorCode
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_ERROR_CODE[self.code]


class CepLookupError(Exception):
    """Exception carrying a LookupFailure across an async boundary."""

    def __init__(self, failure: LookupFailure) -> None:
        self.failure = failure
        super().__init__(f"{failure.code.value}: {failure.message}")

    @property
    def code(self) -> ErrorCode:
        return self.failure.code

    @property
    def details(self) -> dict[str, Any]:
        return self.failure.details


def lookup_error(
    code: ErrorCode,
    details: dict[str, Any] | None = None,
    message: str | None = None,
) -> CepLookupError:
    """Build a CepLookupError, falling back to the default message for *code*.

    Args:
        code: Taxonomy classification.
        details: Structured detail bag (cep, provider, status, ...).
        message: Custom message. Defaults to ERROR_MESSAGES[code].

    Returns:
        Ready-to-raise CepLookupError.
    """
    failure = LookupFailure(
        code=code,
        message=message or ERROR_MESSAGES[code],
        details=dict(details or {}),
    )
    return CepLookupError(failure)
