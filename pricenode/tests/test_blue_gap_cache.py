"""Unit tests for the ARS blue-market gap cache."""

from unittest.mock import patch

import pytest

from pricenode.src.blue_gap_cache import BlueMarketGapCache, compute_gap
from pricenode.src.RateSample import RateSample


class TestBlueMarketGapCache:
    """Test gap caching."""

    def test_empty_cache(self) -> None:
        """Nothing cached returns None."""
        assert BlueMarketGapCache.get() is None

    def test_set_and_get(self) -> None:
        """A fresh gap is returned."""
        BlueMarketGapCache.set(1.9)
        assert BlueMarketGapCache.get() == 1.9

    @patch("pricenode.src.blue_gap_cache.time.time")
    def test_stale_gap_ignored(self, mock_time) -> None:
        """A gap older than the TTL is treated as unavailable."""
        mock_time.return_value = 1000.0
        BlueMarketGapCache.set(1.9)

        mock_time.return_value = 1000.0 + 901
        assert BlueMarketGapCache.get() is None

    def test_non_positive_gap_rejected(self) -> None:
        """The gap must be positive."""
        with pytest.raises(ValueError):
            BlueMarketGapCache.set(0.0)


class TestComputeGap:
    """Test gap computation from samples."""

    def test_ratio_of_shared_pairs(self) -> None:
        """Gap is blue price over mean official price."""
        blue = [RateSample("BTC", "ARS", 18_000_000.0, 1, "BLUE")]
        official = [
            RateSample("BTC", "ARS", 9_000_000.0, 1, "KRAKEN"),
            RateSample("BTC", "ARS", 11_000_000.0, 1, "POLO"),
            RateSample("BTC", "USD", 30_000.0, 1, "POLO"),
        ]
        assert compute_gap(blue, official) == pytest.approx(1.8)

    def test_mean_of_per_pair_ratios(self) -> None:
        """Each shared pair weighs equally, whatever its price level."""
        blue = [
            RateSample("BTC", "ARS", 18_000_000.0, 1, "BLUE"),
            RateSample("USD", "ARS", 2000.0, 1, "BLUE"),
        ]
        official = [
            RateSample("BTC", "ARS", 10_000_000.0, 1, "KRAKEN"),
            RateSample("USD", "ARS", 1000.0, 1, "KRAKEN"),
        ]
        assert compute_gap(blue, official) == pytest.approx(1.9)

    def test_no_overlap(self) -> None:
        """Without a shared ARS pair there is no gap."""
        blue = [RateSample("BTC", "ARS", 18_000_000.0, 1, "BLUE")]
        official = [RateSample("USDT", "ARS", 1000.0, 1, "KRAKEN")]
        assert compute_gap(blue, official) is None
