"""cepgateway: Brazilian postal code (CEP) lookup with weighted provider fallback."""

from cepgateway.version import __version__

__all__ = ["__version__"]
