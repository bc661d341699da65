"""RateAggregator: Per-pair consensus over all sources.

Algorithm:
    1. Group samples by (base, counter) pair
    2. Single sample: pass it through unchanged, source tag included
    3. Several samples: drop outliers, average the survivors and tag the
       result with ``AGGREGATE_PROVIDER`` and the current time

Pairs are independent; the resulting table is read-only.

.. code-block:: python

    >>> aggregator = RateAggregator(OutlierFilter(1.1))
    >>> table = aggregator.aggregate([
    ...     RateSample("BTC", "USD", 30000.0, 1, "a"),
    ...     RateSample("BTC", "USD", 30010.0, 1, "b"),
    ...     RateSample("BTC", "USD", 100000.0, 1, "rogue"),
    ... ])
    >>> table[("BTC", "USD")].price
    30005.0
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from statistics import fmean
from types import MappingProxyType
from typing import Iterable, Mapping

from .gated_logging import GatedLogging
from .OutlierFilter import OutlierFilter
from .RateSample import AGGREGATE_PROVIDER, RateSample

logger = logging.getLogger(__name__)

# (base, counter) -> consensus sample
ConsensusTable = Mapping[tuple[str, str], RateSample]


class RateAggregator:
    """Reconciles samples from several sources into one rate per pair.

    :ivar outlier_filter: Filter applied to pairs quoted by several sources.
    :ivar gated_logging: Gate limiting how often outlier details are logged.
    """

    def __init__(
        self,
        outlier_filter: OutlierFilter | None = None,
        gated_logging: GatedLogging | None = None,
    ) -> None:
        self.outlier_filter = outlier_filter or OutlierFilter()
        self.gated_logging = gated_logging or GatedLogging()

    def aggregate(self, samples: Iterable[RateSample]) -> ConsensusTable:
        """Build the consensus table for one pass.

        :param samples: Samples from all sources (duplicates allowed).
        :returns: Read-only mapping from (base, counter) to consensus sample.
        """
        log_details = self.gated_logging.gating_operation()

        groups: dict[tuple[str, str], list[RateSample]] = defaultdict(list)
        for sample in samples:
            groups[sample.pair].append(sample)

        table: dict[tuple[str, str], RateSample] = {}
        for pair, group in groups.items():
            if len(group) == 1:
                table[pair] = group[0]
            else:
                table[pair] = self._consensus(pair, group, log_details)

        logger.debug(f"Aggregated {len(table)} pairs from {sum(map(len, groups.values()))} samples")
        return MappingProxyType(table)

    def _consensus(
        self, pair: tuple[str, str], group: list[RateSample], log_details: bool
    ) -> RateSample:
        """Average the inlier prices of a multi-source pair."""
        context = f"{pair[0]}/{pair[1]}"
        result = self.outlier_filter.filter(group, context=context)
        price = fmean(s.price for s in result.inliers)

        if log_details:
            for outlier in result.outliers:
                logger.info(
                    f"{outlier.provider} {context} outlier price removed: {outlier.price}, "
                    f"lower/upper bounds: {result.lower_bound}/{result.upper_bound}, "
                    f"consensus price: {price}"
                )

        return RateSample(pair[0], pair[1], price, int(time.time()), AGGREGATE_PROVIDER)
