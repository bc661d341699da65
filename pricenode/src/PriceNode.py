"""PriceNode: Main orchestrator for the pivot-currency price snapshot.

Architecture:
    - Each source polls its market into its own cache (RefreshCoordinator)
    - Every pass reads the caches once and builds a snapshot (SnapshotBuilder):
      outlier-filtered consensus, pivot translation, currency transformers,
      per-source metadata
    - Snapshots are published as JSON to a file or stdout
    - Failed sources enter exponential backoff and age out of the snapshot
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import tempfile
from itertools import chain
from typing import Any, Sequence

from .blue_gap_cache import BlueMarketGapCache, compute_gap
from .currency_registry import CurrencyRegistry, StaticCurrencyRegistry
from .gated_logging import GatedLogging
from .OutlierFilter import OutlierFilter
from .PivotTranslator import PivotTranslator
from .RateAggregator import RateAggregator
from .RateTransformer import ArsBlueRateTransformer, BaseRateTransformer, TransformerRegistry
from .RefreshCoordinator import RefreshCoordinator
from .SnapshotBuilder import SnapshotBuilder, snapshot_to_json
from .sources import BaseSource

logger = logging.getLogger(__name__)


class PriceNode:
    """Main orchestrator for pivot-denominated price snapshots.

    :ivar sources: Source collaborators in metadata order.
    :ivar refresh_period: Seconds between passes.
    :ivar output_path: Snapshot file, or None for stdout.
    :ivar blue_source_name: Canonical name of the ARS blue-market source, if any.
    """

    def __init__(
        self,
        sources: Sequence[BaseSource],
        currency_registry: CurrencyRegistry | None = None,
        pivot: str = "XMR",
        bridge_crypto: str = "BTC",
        bridge_fiat: str = "USD",
        outlier_std_deviation: float = OutlierFilter.DEFAULT_STD_DEV_MULTIPLIER,
        transformers: Sequence[BaseRateTransformer] = (),
        blue_source_name: str | None = None,
        refresh_period: int = 60,
        fetch_timeout: float = 10.0,
        output_path: str | None = None,
    ) -> None:
        """Initialize the price node.

        :param sources: Source collaborators.
        :param currency_registry: Crypto/fiat classification (default: static lists).
        :param pivot: Pivot currency code (default: XMR).
        :param bridge_crypto: Crypto bridge currency code (default: BTC).
        :param bridge_fiat: Fiat bridge currency code (default: USD).
        :param outlier_std_deviation: Outlier filter width (default: 1.1).
        :param transformers: Extra currency transformers.
        :param blue_source_name: Enables the ARS blue-market transformer using
            this source.
        :param refresh_period: Seconds between passes (default: 60).
        :param fetch_timeout: Timeout for one source refresh (default: 10.0).
        :param output_path: Snapshot file path, None for stdout.
        :raises ValueError: If the configuration is invalid.
        """
        if not sources:
            raise ValueError("At least one source must be configured")
        if refresh_period < 1:
            raise ValueError("refresh_period must be at least 1 second")

        self.sources = list(sources)
        self.refresh_period = refresh_period
        self.output_path = output_path
        self.blue_source_name = blue_source_name

        transformer_list = list(transformers)
        if blue_source_name is not None:
            if blue_source_name not in {s.canonical_name for s in self.sources}:
                raise ValueError(f"Unknown ARS blue-market source '{blue_source_name}'")
            transformer_list.append(ArsBlueRateTransformer(blue_source_name))

        gated_logging = GatedLogging()
        translator = PivotTranslator(
            currency_registry or StaticCurrencyRegistry(),
            pivot=pivot,
            bridge_crypto=bridge_crypto,
            bridge_fiat=bridge_fiat,
        )
        self.builder = SnapshotBuilder(
            sources=self.sources,
            aggregator=RateAggregator(OutlierFilter(outlier_std_deviation), gated_logging),
            translator=translator,
            transformers=TransformerRegistry(transformer_list, pivot=translator.pivot),
        )
        self.coordinator = RefreshCoordinator(fetch_timeout=fetch_timeout)

        logger.info(
            f"PriceNode initialized: sources={[s.canonical_name for s in self.sources]}, "
            f"pivot={translator.pivot}, bridges={translator.bridge_crypto}/{translator.bridge_fiat}, "
            f"refresh_period={self.refresh_period}s"
        )

    async def refresh(self) -> dict[str, bool]:
        """Refresh all source caches and derived shared state.

        :returns: Dict mapping source name to refresh outcome.
        """
        outcomes = await self.coordinator.refresh_all(self.sources)
        failed = [name for name, ok in outcomes.items() if not ok]
        if failed:
            logger.warning(f"Refresh failed for: {failed}")
        self.update_blue_gap()
        return outcomes

    def update_blue_gap(self) -> float | None:
        """Recompute the ARS blue-market gap from the current caches.

        :returns: The new gap, or None if it could not be computed.
        """
        if self.blue_source_name is None:
            return None

        blue = [s for s in self.sources if s.canonical_name == self.blue_source_name]
        others = [s for s in self.sources if s.canonical_name != self.blue_source_name]
        gap = compute_gap(
            blue[0].current_samples(),
            chain.from_iterable(s.current_samples() for s in others),
        )
        if gap is None:
            logger.debug("No overlapping ARS rates to compute the blue-market gap")
            return None

        BlueMarketGapCache.set(gap)
        return gap

    def snapshot(self) -> dict[str, Any]:
        """Build a snapshot from the current caches."""
        return self.builder.build()

    async def run_once(self) -> dict[str, Any]:
        """Refresh all sources, then build a snapshot."""
        await self.refresh()
        return self.snapshot()

    def publish(self, snapshot: dict[str, Any]) -> None:
        """Write a snapshot as JSON to the output path or stdout.

        The file is replaced atomically so readers never see a partial snapshot.
        """
        payload = snapshot_to_json(snapshot, indent=2)
        if self.output_path is None:
            sys.stdout.write(payload + "\n")
            sys.stdout.flush()
            return

        directory = os.path.dirname(os.path.abspath(self.output_path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".snapshot-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
            os.replace(tmp_path, self.output_path)
        except BaseException:
            os.unlink(tmp_path)
            raise
        logger.debug(f"Snapshot written to {self.output_path}")

    async def run(self) -> None:
        """Run the refresh and publish loop until cancelled."""
        logger.info(f"Starting refresh loop for {len(self.sources)} sources")
        try:
            while True:
                snapshot = await self.run_once()
                self.publish(snapshot)
                logger.info(
                    f"Published {len(snapshot['data'])} rates "
                    f"from {len(self.sources)} sources"
                )
                await asyncio.sleep(self.refresh_period)
        finally:
            # Clean up shared HTTP client
            await BaseSource.close_shared_client()
