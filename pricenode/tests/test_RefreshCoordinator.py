"""Unit tests for RefreshCoordinator."""

import asyncio

import pytest

from pricenode.src.RateSample import RateSample
from pricenode.src.RefreshCoordinator import RefreshCoordinator
from pricenode.src.sources import SourceError

SAMPLE = RateSample("BTC", "USD", 30000.0, 1, "A")


class TestRefreshCoordinator:
    """Test concurrent source refresh."""

    def test_invalid_timeout(self) -> None:
        """Timeout must be positive."""
        with pytest.raises(ValueError, match="fetch_timeout must be positive"):
            RefreshCoordinator(fetch_timeout=0)

    def test_refreshes_all_sources(self, stub_source) -> None:
        """Every due source is refreshed once."""
        a = stub_source("A")
        a.next_samples = {SAMPLE}
        b = stub_source("B", error=SourceError("down"))

        outcomes = asyncio.run(RefreshCoordinator().refresh_all([a, b]))

        assert outcomes == {"A": True, "B": False}
        assert a.fetch_count == 1
        assert b.fetch_count == 1

    def test_skips_sources_in_backoff(self, stub_source) -> None:
        """Sources in backoff are not refreshed."""
        a = stub_source("A")
        a.record_failure()

        outcomes = asyncio.run(RefreshCoordinator().refresh_all([a]))

        assert outcomes == {}
        assert a.fetch_count == 0

    def test_timeout_recorded_as_failure(self, stub_source) -> None:
        """A hanging source times out and backs off."""

        class SlowSource(stub_source):
            async def fetch_samples(self):
                await asyncio.sleep(10)
                return {SAMPLE}

        slow = SlowSource("SLOW")
        outcomes = asyncio.run(RefreshCoordinator(fetch_timeout=0.01).refresh_all([slow]))

        assert outcomes == {"SLOW": False}
        assert slow.health.consecutive_failures == 1

    def test_unexpected_error_recorded_as_failure(self, stub_source) -> None:
        """Errors outside SourceError do not escape the coordinator."""
        source = stub_source("A", error=RuntimeError("bug"))

        outcomes = asyncio.run(RefreshCoordinator().refresh_all([source]))

        assert outcomes == {"A": False}
        assert source.health.total_failures == 1
