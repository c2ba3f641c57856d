# src/providers/selector.py - v1
"""Weighted-random provider ordering.

One draw picks the primary provider proportionally to its weight; every other
provider follows in descending weight order so the cascade can still reach it.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Callable, Sequence

from cepgateway.core.errors import ConfigurationError
from cepgateway.core.models import ProviderDescriptor, SelectionOutcome

logger = logging.getLogger(__name__)

RandomSource = Callable[[], float]


class ProviderSelector:
    """Produces a full attempt order for each lookup.

    Args:
        random_source: Callable returning floats in [0, 1). Defaults to
            ``random.random``; tests inject a fixed sequence.
    """

    def __init__(self, random_source: RandomSource | None = None) -> None:
        self._random = random_source or random.random
        self._request_count = 0
        self._lock = threading.Lock()

    def set_random_source(self, random_source: RandomSource) -> None:
        """Replace the random source (deterministic replay in tests)."""
        self._random = random_source

    def select(self, descriptors: Sequence[ProviderDescriptor]) -> SelectionOutcome:
        """Order providers for one lookup: weighted primary, rest by weight.

        Args:
            descriptors: Providers with relative weights, in configured order.

        Returns:
            SelectionOutcome containing every provider exactly once.

        Raises:
            ConfigurationError: Empty set, negative weight, or non-positive total.
        """
        if not descriptors:
            raise ConfigurationError("At least one provider must be configured")

        if any(d.weight < 0 for d in descriptors):
            raise ConfigurationError("Provider weights must not be negative")

        total_weight = sum(d.weight for d in descriptors)
        if total_weight <= 0:
            raise ConfigurationError("The sum of provider weights must be greater than zero")

        with self._lock:
            self._request_count += 1
            request_no = self._request_count

        draw = self._random() * total_weight
        primary_index = self._primary_index(descriptors, draw)

        remaining = [d for i, d in enumerate(descriptors) if i != primary_index]
        # sorted() is stable: equal weights keep their configured order.
        remaining = sorted(remaining, key=lambda d: d.weight, reverse=True)

        ordered = (descriptors[primary_index].provider,) + tuple(
            d.provider for d in remaining
        )

        logger.debug(
            "Request #%d: order=[%s] (draw=%.3f/%s)",
            request_no,
            " -> ".join(p.name for p in ordered),
            draw,
            total_weight,
        )

        return SelectionOutcome(
            ordered=ordered,
            primary_index=primary_index,
            draw=draw,
            total_weight=total_weight,
        )

    @staticmethod
    def _primary_index(descriptors: Sequence[ProviderDescriptor], draw: float) -> int:
        accumulated = 0.0
        for i, descriptor in enumerate(descriptors):
            accumulated += descriptor.weight
            if draw < accumulated:
                return i
        # Draw outside [0, total): fall back to the last provider that carries weight.
        return max(i for i, d in enumerate(descriptors) if d.weight > 0)

    def get_stats(self) -> dict[str, int]:
        """Observability counters. Never consulted by select()."""
        with self._lock:
            return {"total_requests": self._request_count}

    def reset_stats(self) -> None:
        with self._lock:
            self._request_count = 0
