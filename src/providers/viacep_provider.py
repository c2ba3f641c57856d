# src/providers/viacep_provider.py - v1
"""ViaCEP adapter (https://viacep.com.br).

ViaCEP answers 200 with ``{"erro": true}`` for codes that do not exist, and
carries the municipal IBGE/GIA/DDD/SIAFI codes.
"""

from __future__ import annotations

from typing import Any

from cepgateway.core.models import AddressRecord
from cepgateway.providers.http_provider import HttpCepProvider, none_if_empty


class ViaCepProvider(HttpCepProvider):
    """ViaCEP JSON endpoint: ``{base_url}/{cep}/json/``."""

    display_name = "ViaCEP"

    def __init__(
        self, base_url: str = "https://viacep.com.br/ws", **kwargs: Any,
    ) -> None:
        super().__init__(base_url=base_url, **kwargs)

    def _lookup_url(self, cep: str) -> str:
        return f"{self._base_url}/{cep}/json/"

    def _is_not_found_payload(self, payload: dict[str, Any]) -> bool:
        return payload.get("erro") in (True, "true", "True")

    def _to_address(self, payload: dict[str, Any]) -> AddressRecord:
        return AddressRecord(
            cep=str(payload["cep"]).replace("-", ""),
            street=payload.get("logradouro") or "",
            complement=none_if_empty(payload.get("complemento")),
            neighborhood=payload.get("bairro") or "",
            city=payload["localidade"],
            state=payload["uf"],
            ibge_code=none_if_empty(payload.get("ibge")),
            gia_code=none_if_empty(payload.get("gia")),
            ddd_code=none_if_empty(payload.get("ddd")),
            siafi_code=none_if_empty(payload.get("siafi")),
            source=self.name,
        )
