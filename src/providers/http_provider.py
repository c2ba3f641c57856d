# src/providers/http_provider.py - v1
"""Shared httpx plumbing for JSON-over-HTTP CEP providers.

Concrete adapters only describe their URL layout, their not-found sentinel and
how their payload maps onto AddressRecord. Transport errors, status codes and
timeouts are classified here so every adapter reports them identically:

    404 / in-body sentinel   -> CEP_NOT_FOUND
    400                      -> INVALID_CEP
    5xx / network error      -> UPSTREAM_UNAVAILABLE
    timeout budget exceeded  -> GATEWAY_TIMEOUT
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError

from cepgateway.core.errors import CepLookupError, ErrorCode, lookup_error
from cepgateway.core.models import AddressRecord
from cepgateway.providers.base_provider import BaseCepProvider

logger = logging.getLogger(__name__)

# Known-good CEP (Avenida Paulista) used by availability probes.
PROBE_CEP = "01310100"


def none_if_empty(value: Any) -> str | None:
    """Map missing or blank upstream values to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class HttpCepProvider(BaseCepProvider):
    """Base adapter issuing exactly one GET per lookup."""

    display_name: str = "http"

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 5.0,
        probe_timeout_s: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._probe_timeout_s = probe_timeout_s
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(timeout_s),
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )

    @property
    def name(self) -> str:
        return self.display_name

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    @abstractmethod
    def _lookup_url(self, cep: str) -> str:
        """Absolute URL for a lookup of *cep*."""

    @abstractmethod
    def _to_address(self, payload: dict[str, Any]) -> AddressRecord:
        """Map a successful upstream payload onto AddressRecord."""

    def _is_not_found_payload(self, payload: dict[str, Any]) -> bool:
        """Whether a 200 body actually means 'CEP does not exist'."""
        return False

    async def find_by_cep(self, cep: str) -> AddressRecord:
        url = self._lookup_url(cep)
        logger.debug("Querying %s: %s", self.name, url)

        try:
            response = await asyncio.wait_for(
                self._client.get(url), timeout=self._timeout_s
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.error("Timeout querying %s for CEP %s", self.name, cep)
            raise lookup_error(
                ErrorCode.GATEWAY_TIMEOUT,
                {"cep": cep, "provider": self.name, "timeout": self._timeout_s},
                f"Timed out querying {self.name}",
            ) from e
        except httpx.HTTPError as e:
            logger.error("Error querying %s: %s", self.name, e)
            raise lookup_error(
                ErrorCode.UPSTREAM_UNAVAILABLE,
                {"cep": cep, "provider": self.name, "error": str(e) or type(e).__name__},
                f"Error querying provider {self.name}",
            ) from e

        if not response.is_success:
            raise self._status_error(cep, response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("%s returned a non-JSON body for CEP %s", self.name, cep)
            raise lookup_error(
                ErrorCode.UPSTREAM_UNAVAILABLE,
                {"cep": cep, "provider": self.name, "status": response.status_code},
                f"Provider {self.name} returned an unreadable response",
            ) from e

        if not isinstance(payload, dict):
            raise lookup_error(
                ErrorCode.UPSTREAM_UNAVAILABLE,
                {"cep": cep, "provider": self.name, "status": response.status_code},
                f"Provider {self.name} returned an unreadable response",
            )

        if self._is_not_found_payload(payload):
            logger.warning("CEP %s not found in %s", cep, self.name)
            raise lookup_error(
                ErrorCode.CEP_NOT_FOUND,
                {"cep": cep, "provider": self.name},
                f"CEP {cep} not found in provider {self.name}",
            )

        try:
            return self._to_address(payload)
        except (KeyError, TypeError, ValidationError) as e:
            logger.error("Unexpected %s payload for CEP %s: %s", self.name, cep, e)
            raise lookup_error(
                ErrorCode.UPSTREAM_UNAVAILABLE,
                {"cep": cep, "provider": self.name, "error": str(e)},
                f"Provider {self.name} returned an incomplete address",
            ) from e

    def _status_error(self, cep: str, status: int) -> CepLookupError:
        details = {"cep": cep, "provider": self.name, "status": status}

        if status == 404:
            logger.warning("CEP %s not found in %s (404)", cep, self.name)
            return lookup_error(
                ErrorCode.CEP_NOT_FOUND,
                details,
                f"CEP {cep} not found in provider {self.name}",
            )

        if status == 400:
            logger.warning("CEP %s rejected as invalid by %s", cep, self.name)
            return lookup_error(
                ErrorCode.INVALID_CEP,
                details,
                f"CEP rejected as invalid by {self.name}",
            )

        if status >= 500:
            logger.error("%s answered %d", self.name, status)
            return lookup_error(
                ErrorCode.UPSTREAM_UNAVAILABLE,
                details,
                f"Provider {self.name} temporarily unavailable",
            )

        logger.error("%s answered unexpected status %d", self.name, status)
        return lookup_error(
            ErrorCode.UPSTREAM_UNAVAILABLE,
            details,
            f"Error querying provider {self.name}",
        )

    async def is_available(self) -> bool:
        try:
            response = await asyncio.wait_for(
                self._client.get(
                    self._lookup_url(PROBE_CEP), timeout=self._probe_timeout_s
                ),
                timeout=self._probe_timeout_s,
            )
        except Exception as e:
            logger.debug("%s availability probe failed: %s", self.name, e)
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._client.aclose()
