# src/api/routes.py - v1
"""CEP lookup and health endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from cepgateway.api.models import ErrorResponse, HealthResponse, ProviderHealthResponse
from cepgateway.cep.orchestrator import CepService
from cepgateway.cep.validation import normalize_cep
from cepgateway.core.models import AddressRecord

cep_router = APIRouter(tags=["cep"])
health_router = APIRouter(tags=["health"])


def _service(request: Request) -> CepService:
    return request.app.state.service


@cep_router.get(
    "/cep/{code}",
    response_model=AddressRecord,
    summary="Look up an address by CEP",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid CEP"},
        404: {"model": ErrorResponse, "description": "CEP not found"},
        503: {"model": ErrorResponse, "description": "Upstream providers unavailable"},
        504: {"model": ErrorResponse, "description": "Upstream providers timed out"},
    },
)
async def find_address(code: str, request: Request) -> AddressRecord:
    """Accepts 8 digits with or without hyphen (01310-100 or 01310100)."""
    cep = normalize_cep(code)
    return await _service(request).find_address(cep)


@health_router.get("", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(timestamp=datetime.now(timezone.utc))


@health_router.get("/providers", response_model=ProviderHealthResponse)
async def provider_health(request: Request) -> ProviderHealthResponse:
    status = await _service(request).provider_status()
    return ProviderHealthResponse(
        providers=status, timestamp=datetime.now(timezone.utc)
    )
