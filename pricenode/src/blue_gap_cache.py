"""Shared ARS blue-market gap cache.

The ARS transformer scales official ARS rates by the blue-market sell gap
(blue price / official price). PriceNode computes the gap from the configured
blue-market source once per pass and stores it here; the transformer reads
from here. A stale or missing gap means the transformer cannot compute an
adjustment.
"""

import logging
import time
from statistics import fmean
from typing import ClassVar, Iterable

from .RateSample import RateSample

logger = logging.getLogger(__name__)


class BlueMarketGapCache:
    """Process-wide cache for the ARS blue-market gap multiplier.

    Uses class variables for singleton-like behavior across all instances.
    """

    _gap: ClassVar[float | None] = None
    _timestamp: ClassVar[float] = 0.0
    _ttl: ClassVar[float] = 900.0  # 15 minutes staleness threshold

    @classmethod
    def set(cls, gap: float) -> None:
        """Update the cached gap multiplier.

        :param gap: Blue price divided by official price.
        :raises ValueError: If gap is not positive.
        """
        if not gap > 0:
            raise ValueError(f"Blue-market gap must be positive, got {gap}")
        cls._gap = gap
        cls._timestamp = time.time()
        logger.debug(f"ARS blue-market gap updated: {gap:.6f}")

    @classmethod
    def get(cls) -> float | None:
        """Get the cached gap if fresh.

        :returns: The cached gap, or None if cache is empty or stale.
        """
        if cls._gap is None:
            return None
        if time.time() - cls._timestamp > cls._ttl:
            logger.debug("ARS blue-market gap cache is stale")
            return None
        return cls._gap

    @classmethod
    def clear(cls) -> None:
        """Forget the cached gap."""
        cls._gap = None
        cls._timestamp = 0.0


def compute_gap(
    blue_samples: Iterable[RateSample],
    official_samples: Iterable[RateSample],
    currency: str = "ARS",
) -> float | None:
    """Compute the blue-market gap from two sets of samples.

    Only pairs quoted in ``currency`` by both sides are compared.

    :param blue_samples: Samples from the blue-market source.
    :param official_samples: Samples from all other sources.
    :param currency: Counter currency of the compared pairs.
    :returns: Mean over shared pairs of blue price / mean official price, or
        None if the two sides share no positively priced pair.
    """
    blue = {s.pair: s.price for s in blue_samples if s.counter_currency == currency and s.price > 0}
    official: dict[tuple[str, str], list[float]] = {}
    for s in official_samples:
        if s.pair in blue and s.price > 0:
            official.setdefault(s.pair, []).append(s.price)
    if not official:
        return None

    return fmean(blue[p] / fmean(official[p]) for p in sorted(official))
