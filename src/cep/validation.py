# src/cep/validation.py - v1
"""Normalize raw CEP input into the canonical 8-digit form."""

from __future__ import annotations

import re

from cepgateway.core.errors import ErrorCode, lookup_error

_CEP_PATTERN = re.compile(r"^[0-9]{5}-?[0-9]{3}$")
_REPEATED_DIGITS = re.compile(r"^(\d)\1{7}$")


def normalize_cep(raw: str | None) -> str:
    """Validate and strip a CEP given with or without hyphen.

    Args:
        raw: User input, e.g. "01310-100" or " 01310100 ".

    Returns:
        The 8-digit canonical code.

    Raises:
        CepLookupError: INVALID_CEP when missing, malformed, or made of a
            single repeated digit.
    """
    if not raw or not raw.strip():
        raise lookup_error(
            ErrorCode.INVALID_CEP, {"received": raw}, "CEP is required"
        )

    value = raw.strip()
    if not _CEP_PATTERN.match(value):
        raise lookup_error(
            ErrorCode.INVALID_CEP,
            {"received": value, "expected_format": "12345-678 or 12345678"},
            "Invalid CEP. A CEP must contain 8 numeric digits (with or without hyphen).",
        )

    cep = value.replace("-", "")
    if _REPEATED_DIGITS.match(cep):
        raise lookup_error(
            ErrorCode.INVALID_CEP,
            {"received": value, "reason": "all digits are equal"},
            "Invalid CEP. A CEP cannot have all digits equal.",
        )
    return cep
