"""
Price Node - Pivot-Currency Rate Aggregation Module

This module reconciles spot rates from several sources into one snapshot:
- RateSample: Immutable quote for one currency pair
- OutlierFilter: Standard-deviation inlier selection
- RateAggregator: Per-pair consensus across sources
- PivotTranslator: Re-expresses every rate against the pivot currency
- TransformerRegistry: Per-currency post-processing hooks
- MetadataCollector: Per-source freshness summary
- SnapshotBuilder: Assembles the snapshot payload
- PriceNode: Main orchestrator for refresh and publish loops
- sources: Modular rate source implementations
"""

from .MetadataCollector import MetadataCollector
from .OutlierFilter import FilterResult, OutlierFilter
from .PivotTranslator import PivotTranslator, invert_price
from .PriceNode import PriceNode
from .RateAggregator import ConsensusTable, RateAggregator
from .RateSample import AGGREGATE_PROVIDER, RateSample
from .RateTransformer import ArsBlueRateTransformer, BaseRateTransformer, TransformerRegistry
from .SnapshotBuilder import SnapshotBuilder, snapshot_to_json

__version__ = "1.0.0"

__all__ = [
    "AGGREGATE_PROVIDER",
    "ArsBlueRateTransformer",
    "BaseRateTransformer",
    "ConsensusTable",
    "FilterResult",
    "MetadataCollector",
    "OutlierFilter",
    "PivotTranslator",
    "PriceNode",
    "RateAggregator",
    "RateSample",
    "SnapshotBuilder",
    "TransformerRegistry",
    "invert_price",
    "snapshot_to_json",
]
