"""SnapshotBuilder: Assemble the price snapshot served to clients.

Pipeline for one pass:
    1. Evict stale caches and read every source once
    2. Aggregate all samples into one consensus rate per pair, minus samples
       a transformer withholds
    3. Translate the consensus table against the pivot currency
    4. Run the currency transformers
    5. Sort rates by (base, counter) and prepend per-source metadata

The result is an ordered mapping: ``<prefix>Ts`` / ``<prefix>Count`` for each
source in configuration order, then ``data`` with the rate list. An unavailable
source or a missing bridge rate shrinks the snapshot but never fails it.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Sequence

from .MetadataCollector import MetadataCollector
from .PivotTranslator import PivotTranslator
from .RateAggregator import RateAggregator
from .RateSample import RateSample
from .RateTransformer import TransformerRegistry

if TYPE_CHECKING:
    from .sources import BaseSource

logger = logging.getLogger(__name__)

DATA_KEY = "data"


class SnapshotBuilder:
    """Runs the aggregation pipeline over a fixed list of sources.

    :ivar sources: Source collaborators in metadata order.
    :ivar aggregator: Per-pair consensus.
    :ivar translator: Pivot-currency translation.
    :ivar transformers: Post-translation transformers.
    :ivar metadata_collector: Per-source metadata.
    """

    def __init__(
        self,
        sources: Sequence[BaseSource],
        aggregator: RateAggregator,
        translator: PivotTranslator,
        transformers: TransformerRegistry | None = None,
        metadata_collector: MetadataCollector | None = None,
    ) -> None:
        """Initialize the builder.

        :raises ValueError: If two sources share a canonical name.
        """
        names = [s.canonical_name for s in sources]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate source names: {duplicates}")

        self.sources = list(sources)
        self.aggregator = aggregator
        self.translator = translator
        self.transformers = transformers or TransformerRegistry(pivot=translator.pivot)
        self.metadata_collector = metadata_collector or MetadataCollector()

    def build(self) -> dict[str, Any]:
        """Build one snapshot.

        :returns: Ordered mapping of metadata entries followed by ``data``.
        """
        reads = self.read_sources()

        table = self.aggregator.aggregate(self.consensus_samples(reads))
        rates = self.translator.to_pivot(table)
        rates = [self.transformers.apply(rate, self.source_for(rate)) for rate in rates]
        rates.sort(key=lambda r: r.pair)

        snapshot: dict[str, Any] = {}
        for source in self.sources:
            snapshot.update(
                self.metadata_collector.collect(source, reads[source.canonical_name])
            )
        snapshot[DATA_KEY] = rates

        logger.debug(
            f"Snapshot built: {len(table)} consensus pairs, {len(rates)} pivot rates"
        )
        return snapshot

    def read_sources(self) -> dict[str, frozenset[RateSample]]:
        """Read each source's cache once.

        :returns: Dict mapping canonical name to that source's samples.
        """
        reads: dict[str, frozenset[RateSample]] = {}
        for source in self.sources:
            try:
                source.evict_stale_cache()
                reads[source.canonical_name] = frozenset(source.current_samples() or ())
            except Exception as e:
                logger.warning(f"[{source.canonical_name}] Unavailable: {e}")
                reads[source.canonical_name] = frozenset()
        return reads

    def consensus_samples(self, reads: dict[str, frozenset[RateSample]]) -> list[RateSample]:
        """Samples that enter aggregation, minus those a transformer withholds."""
        return [
            sample
            for source in self.sources
            for sample in reads[source.canonical_name]
            if not self.transformers.withheld(source, sample)
        ]

    def source_for(self, rate: RateSample) -> BaseSource | None:
        """Return the source named by the rate's provider tag.

        An exact name match wins; otherwise the longest name prefixing the tag.
        """
        best: BaseSource | None = None
        for source in self.sources:
            if rate.provider == source.canonical_name:
                return source
            if rate.provider.startswith(source.canonical_name) and (
                best is None or len(source.canonical_name) > len(best.canonical_name)
            ):
                best = source
        return best


def snapshot_to_json(snapshot: dict[str, Any], indent: int | None = None) -> str:
    """Serialize a snapshot, rates as objects with fixed key order."""
    payload = {
        key: [rate.to_dict() for rate in value] if key == DATA_KEY else value
        for key, value in snapshot.items()
    }
    return json.dumps(payload, indent=indent)
