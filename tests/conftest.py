# tests/conftest.py - v1
"""Shared test fixtures for unit tests.

Provides a scripted fake provider, a sample address and deterministic random
sources. No network access: HTTP adapters are driven through httpx.MockTransport.
"""

from __future__ import annotations

from typing import Iterable

import pytest

from cepgateway.cache.memory_store import MemoryCacheStore
from cepgateway.core.errors import ErrorCode, lookup_error
from cepgateway.core.models import AddressRecord, ProviderDescriptor
from cepgateway.providers.base_provider import BaseCepProvider
from cepgateway.providers.selector import ProviderSelector


class FakeProvider(BaseCepProvider):
    """Provider returning a scripted outcome and recording its calls.

    ``outcome`` is either an AddressRecord, an ErrorCode (raised as a
    CepLookupError) or any other exception instance (raised as-is).
    """

    def __init__(self, name: str, outcome: object = None, available: bool = True) -> None:
        self._name = name
        self.outcome = outcome
        self.available = available
        self.calls: list[str] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def find_by_cep(self, cep: str) -> AddressRecord:
        self.calls.append(cep)
        if isinstance(self.outcome, AddressRecord):
            return self.outcome
        if isinstance(self.outcome, ErrorCode):
            raise lookup_error(
                self.outcome,
                {"cep": cep, "provider": self._name},
                f"{self.outcome.value} from {self._name}",
            )
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        raise AssertionError(f"FakeProvider {self._name} has no outcome scripted")

    async def is_available(self) -> bool:
        return self.available

    async def aclose(self) -> None:
        self.closed = True


def fixed_random(*values: float):
    """Random source replaying *values* in a loop."""
    sequence = list(values)
    state = {"i": 0}

    def _next() -> float:
        value = sequence[state["i"] % len(sequence)]
        state["i"] += 1
        return value

    return _next


def make_descriptors(
    providers: Iterable[BaseCepProvider], weights: Iterable[float]
) -> list[ProviderDescriptor]:
    return [ProviderDescriptor(provider=p, weight=w) for p, w in zip(providers, weights)]


# === FIXTURES ===


@pytest.fixture
def sample_address() -> AddressRecord:
    """Avenida Paulista as ViaCEP reports it."""
    return AddressRecord(
        cep="01310100",
        street="Avenida Paulista",
        complement="de 612 a 1510 - lado par",
        neighborhood="Bela Vista",
        city="São Paulo",
        state="SP",
        ibge_code="3550308",
        gia_code="1004",
        ddd_code="11",
        siafi_code="7107",
    )


@pytest.fixture
def memory_cache() -> MemoryCacheStore:
    return MemoryCacheStore(default_ttl=300, max_entries=100)


@pytest.fixture
def primary_first_selector() -> ProviderSelector:
    """Selector whose draw always lands on the first provider (weights 70/30)."""
    return ProviderSelector(random_source=fixed_random(0.3))


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def descriptors_for():
    """Factory pairing providers with weights."""
    return make_descriptors


@pytest.fixture
def random_sequence():
    """Factory for deterministic random sources."""
    return fixed_random
