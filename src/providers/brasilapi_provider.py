# src/providers/brasilapi_provider.py - v1
"""BrasilAPI CEP v1 adapter (https://brasilapi.com.br).

BrasilAPI signals absence with HTTP 404 and format errors with HTTP 400. It
carries no complement nor municipal codes, so those fields are always None.
"""

from __future__ import annotations

from typing import Any

from cepgateway.core.models import AddressRecord
from cepgateway.providers.http_provider import HttpCepProvider


class BrasilApiProvider(HttpCepProvider):
    """BrasilAPI endpoint: ``{base_url}/{cep}``."""

    display_name = "BrasilAPI"

    def __init__(
        self, base_url: str = "https://brasilapi.com.br/api/cep/v1", **kwargs: Any,
    ) -> None:
        super().__init__(base_url=base_url, **kwargs)

    def _lookup_url(self, cep: str) -> str:
        return f"{self._base_url}/{cep}"

    def _to_address(self, payload: dict[str, Any]) -> AddressRecord:
        return AddressRecord(
            cep=str(payload["cep"]).replace("-", ""),
            street=payload.get("street") or "",
            neighborhood=payload.get("neighborhood") or "",
            city=payload["city"],
            state=payload["state"],
            source=self.name,
        )
