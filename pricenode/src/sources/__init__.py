"""
Rate source collaborators.

Each source polls one market into its own cache; the aggregation pass reads
the caches.

Usage:
    from pricenode.src.sources import get_source, get_available_sources

    # Get list of available source kinds
    available = get_available_sources()
    # ['jsonfeed']

    # Create and refresh a source
    source = get_source("jsonfeed", "KRAKEN", url="https://example.com/rates.json")
    await source.refresh()
    samples = source.current_samples()
"""

# Import base classes and utilities
from .base import (
    SOURCE_REGISTRY,
    BaseSource,
    SourceConfigError,
    SourceError,
    SourceHealth,
    SourceHTTPError,
    get_available_sources,
    get_source,
    register_source,
)

# Import all source implementations to trigger registration
from .jsonfeed import JsonFeedSource

__all__ = [
    # Base classes
    "BaseSource",
    "SourceHealth",
    "SourceError",
    "SourceConfigError",
    "SourceHTTPError",
    # Registry functions
    "register_source",
    "get_source",
    "get_available_sources",
    "SOURCE_REGISTRY",
    # Source implementations
    "JsonFeedSource",
]
