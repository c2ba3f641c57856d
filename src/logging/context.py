# src/logging/context.py - v1
"""Contextual logging support: attach request_id, cep and provider to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per inbound request; each asyncio task sees its own copy.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_cep: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cep", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    cep: str | None = None
    provider: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        cep=_cep.get(),
        provider=_provider.get(),
    )


def set_request_context(request_id: str) -> None:
    """Bind the correlation id of the inbound request."""
    _request_id.set(request_id)


def set_lookup_context(cep: str) -> None:
    _cep.set(cep)


def set_provider_context(provider: str | None) -> None:
    """Bind the provider currently being attempted (None once the cascade ends)."""
    _provider.set(provider)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _cep.set(None)
    _provider.set(None)
