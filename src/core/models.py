# src/core/models.py - v1
"""Domain models: AddressRecord, ProviderDescriptor, SelectionOutcome, AttemptResult."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from cepgateway.core.errors import LookupFailure

if TYPE_CHECKING:
    from cepgateway.providers.base_provider import BaseCepProvider


class AddressRecord(BaseModel):
    """Normalized address returned by any provider.

    Optional fields are ``None`` when the producing provider does not carry
    them, never an empty string.
    """

    model_config = ConfigDict(frozen=True)

    cep: str = Field(pattern=r"^\d{8}$")
    street: str
    neighborhood: str
    city: str
    state: str = Field(min_length=2, max_length=2)
    complement: str | None = None
    ibge_code: str | None = None
    gia_code: str | None = None
    ddd_code: str | None = None
    siafi_code: str | None = None
    source: str | None = None
    timestamp: datetime | None = None

    def content(self) -> dict[str, str | None]:
        """Address fields without provenance and fetch time."""
        return self.model_dump(exclude={"source", "timestamp"})


@dataclass(frozen=True)
class ProviderDescriptor:
    """A provider and its relative weight within one descriptor set."""

    provider: BaseCepProvider
    weight: float

    @property
    def name(self) -> str:
        return self.provider.name


@dataclass(frozen=True)
class SelectionOutcome:
    """Attempt order for a single lookup."""

    ordered: tuple[BaseCepProvider, ...]
    primary_index: int
    draw: float
    total_weight: float

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.ordered]


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one provider attempt: exactly one of address/failure is set."""

    provider: str
    address: AddressRecord | None = None
    failure: LookupFailure | None = None

    @property
    def ok(self) -> bool:
        return self.address is not None
