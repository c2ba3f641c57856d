# src/providers/base_provider.py - v1
"""Abstract CEP provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from cepgateway.core.models import AddressRecord


class BaseCepProvider(ABC):
    """Unified interface for all upstream address-lookup services."""

    @abstractmethod
    async def find_by_cep(self, cep: str) -> AddressRecord:
        """Query the upstream once for a canonical 8-digit CEP.

        Raises:
            CepLookupError: Classified failure (not found, invalid,
                unavailable or timeout).
        """

    @abstractmethod
    async def is_available(self) -> bool:
        """Best-effort availability probe. Never raises."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs, details and provenance."""

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
