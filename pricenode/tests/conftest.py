"""Shared fixtures for price node tests."""

import pytest

from pricenode.src.blue_gap_cache import BlueMarketGapCache
from pricenode.src.RateSample import RateSample
from pricenode.src.sources import BaseSource, SourceError


class StubSource(BaseSource):
    """Source serving preset samples, or failing on demand."""

    kind = "stub"

    def __init__(self, canonical_name, samples=(), error=None, **kwargs):
        super().__init__(canonical_name, **kwargs)
        self.next_samples = set(samples)
        self.error = error
        self.fetch_count = 0
        if samples:
            self.record_success(self.next_samples)

    async def fetch_samples(self):
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        return set(self.next_samples)


class BrokenSource(StubSource):
    """Source whose cache read raises."""

    def current_samples(self):
        raise SourceError("cache unavailable")


def rate(base, counter, price, ts=1_700_000_000, provider="TEST"):
    return RateSample(base, counter, price, ts, provider)


@pytest.fixture
def stub_source():
    return StubSource


@pytest.fixture
def broken_source():
    return BrokenSource


@pytest.fixture
def make_rate():
    return rate


@pytest.fixture(autouse=True)
def clear_blue_gap():
    BlueMarketGapCache.clear()
    yield
    BlueMarketGapCache.clear()
