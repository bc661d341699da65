"""MetadataCollector: Per-source freshness and count summary.

For each source the snapshot carries ``<prefix>Ts`` and ``<prefix>Count``.
The timestamp comes from the first sample tagged with the source's canonical
name. Clients treat a timestamp of 0, or one outside their tolerance window,
as "price unavailable" for that source.

.. code-block:: python

    >>> MetadataCollector().collect(kraken, kraken.current_samples())
    {'krakenTs': 1700000000, 'krakenCount': 12}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Collection

from .RateSample import RateSample

if TYPE_CHECKING:
    from .sources import BaseSource

logger = logging.getLogger(__name__)


class MetadataCollector:
    """Builds the metadata entries of one source."""

    def collect(
        self, source: BaseSource, samples: Collection[RateSample] | None
    ) -> dict[str, int]:
        """Summarize one source's samples.

        Never raises: an unavailable source yields timestamp 0.

        :param source: Source collaborator.
        :param samples: Samples read from that source this pass.
        :returns: Ordered mapping with the timestamp key then the count key.
        """
        timestamp = 0
        if samples:
            try:
                timestamp = self.get_timestamp(source, samples)
            except Exception as e:
                logger.error(f"[{source.canonical_name}] {e}")
                logger.debug("Metadata timestamp failure", exc_info=True)

        prefix = source.metadata_prefix
        return {
            f"{prefix}Ts": timestamp,
            f"{prefix}Count": len(samples) if samples else 0,
        }

    @staticmethod
    def get_timestamp(source: BaseSource, samples: Collection[RateSample]) -> int:
        """Timestamp of the first sample tagged with the source's name.

        Samples are scanned in (base, counter) order so the choice does not
        depend on set iteration order.

        :raises ValueError: If no sample carries the source's name.
        """
        for sample in sorted(samples, key=lambda s: (s.pair, s.provider)):
            if sample.provider.startswith(source.canonical_name):
                return sample.timestamp
        raise ValueError(f"No exchange rate data found for {source.canonical_name}")
