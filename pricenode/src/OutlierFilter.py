"""OutlierFilter: Standard-deviation based inlier selection.

Algorithm:
    1. Compute mean and population standard deviation of the sample prices
    2. Inlier range = [mean - k * stddev, mean + k * stddev] (inclusive)
    3. Keep samples inside the range
    4. If nothing survives, fall back to the unfiltered input

Filtering never reduces a non-empty input to zero samples.

.. code-block:: python

    >>> samples = [RateSample("BTC", "USD", p, 0, "src") for p in (30000, 30010, 100000)]
    >>> result = OutlierFilter(std_dev_multiplier=1.1).filter(samples)
    >>> [s.price for s in result.inliers]
    [30000, 30010]
    >>> [s.price for s in result.outliers]
    [100000]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from statistics import fmean, pstdev
from typing import Sequence

from .RateSample import RateSample

logger = logging.getLogger(__name__)


@dataclass
class FilterResult:
    """Outcome of an outlier filtering run.

    :ivar inliers: Samples kept, in input order.
    :ivar outliers: Samples removed, in input order.
    :ivar lower_bound: Lower end of the inlier range.
    :ivar upper_bound: Upper end of the inlier range.
    :ivar fallback: True if the range excluded everything and the unfiltered
        input was returned instead.
    """

    inliers: list[RateSample]
    lower_bound: float
    upper_bound: float
    outliers: list[RateSample] = field(default_factory=list)
    fallback: bool = False


class OutlierFilter:
    """Removes samples whose price is too far from the mean.

    :ivar std_dev_multiplier: Width of the inlier range in standard deviations.
    """

    DEFAULT_STD_DEV_MULTIPLIER = 1.1

    def __init__(self, std_dev_multiplier: float = DEFAULT_STD_DEV_MULTIPLIER) -> None:
        """Initialize the filter.

        :param std_dev_multiplier: Range half-width in standard deviations.
        :raises ValueError: If the multiplier is not positive.
        """
        if not std_dev_multiplier > 0:
            raise ValueError("std_dev_multiplier must be positive")
        self.std_dev_multiplier = std_dev_multiplier

    def find_inlier_range(self, prices: Sequence[float]) -> tuple[float, float]:
        """Compute the closed inlier range for a list of prices.

        :param prices: Non-empty list of prices.
        :returns: Tuple of (lower_bound, upper_bound).
        :raises ValueError: If prices is empty.
        """
        if not prices:
            raise ValueError("Cannot compute inlier range of no prices")
        mean = fmean(prices)
        spread = self.std_dev_multiplier * pstdev(prices, mu=mean)
        return mean - spread, mean + spread

    def filter(self, samples: Sequence[RateSample], context: str = "") -> FilterResult:
        """Split samples into inliers and outliers.

        :param samples: Non-empty list of same-pair samples.
        :param context: Label used in diagnostics (e.g., "BTC/USD").
        :returns: FilterResult with at least one inlier.
        """
        prices = [s.price for s in samples]
        lower, upper = self.find_inlier_range(prices)

        inliers = [s for s in samples if lower <= s.price <= upper]
        if not inliers:
            logger.error(
                f"{context}: could not filter, revert to plain average. "
                f"lowerBound={lower}, upperBound={upper}, "
                f"stdDev={self.std_dev_multiplier}, prices={prices}"
            )
            return FilterResult(
                inliers=list(samples),
                lower_bound=lower,
                upper_bound=upper,
                fallback=True,
            )

        outliers = [s for s in samples if not lower <= s.price <= upper]
        return FilterResult(
            inliers=inliers,
            lower_bound=lower,
            upper_bound=upper,
            outliers=outliers,
        )
