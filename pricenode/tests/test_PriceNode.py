"""Unit tests for PriceNode."""

import asyncio
import json

import pytest

from pricenode.src.blue_gap_cache import BlueMarketGapCache
from pricenode.src.PriceNode import PriceNode
from pricenode.src.RateSample import RateSample


@pytest.fixture
def kraken(stub_source):
    source = stub_source("KRAKEN")
    source.next_samples = {
        RateSample("XMR", "BTC", 0.0065, 100, "KRAKEN"),
        RateSample("BTC", "USD", 30000.0, 100, "KRAKEN"),
        RateSample("BTC", "ARS", 10_000_000.0, 100, "KRAKEN"),
    }
    return source


@pytest.fixture
def blue(stub_source):
    source = stub_source("BLUE")
    source.next_samples = {RateSample("BTC", "ARS", 18_000_000.0, 100, "BLUE")}
    return source


class TestPriceNodeInit:
    """Test configuration validation."""

    def test_requires_sources(self) -> None:
        """At least one source is needed."""
        with pytest.raises(ValueError, match="At least one source"):
            PriceNode(sources=[])

    def test_invalid_refresh_period(self, kraken) -> None:
        """Refresh period must be at least one second."""
        with pytest.raises(ValueError, match="refresh_period"):
            PriceNode(sources=[kraken], refresh_period=0)

    def test_invalid_multiplier(self, kraken) -> None:
        """Non-positive outlier multiplier is rejected at startup."""
        with pytest.raises(ValueError, match="std_dev_multiplier must be positive"):
            PriceNode(sources=[kraken], outlier_std_deviation=0)

    def test_unknown_blue_source(self, kraken) -> None:
        """The blue-market source must be configured."""
        with pytest.raises(ValueError, match="Unknown ARS blue-market source"):
            PriceNode(sources=[kraken], blue_source_name="BLUE")


class TestPriceNodeRun:
    """Test refresh and snapshot passes."""

    def test_run_once(self, kraken) -> None:
        """A pass refreshes sources then builds a snapshot."""
        snapshot = asyncio.run(PriceNode(sources=[kraken]).run_once())

        assert snapshot["krakenTs"] == 100
        assert snapshot["krakenCount"] == 3
        assert [r.pair for r in snapshot["data"]] == [
            ("BTC", "XMR"),
            ("XMR", "ARS"),
            ("XMR", "USD"),
        ]

    def test_blue_gap_applied(self, kraken, blue) -> None:
        """ARS rates land on the blue-market price, premium applied once."""
        node = PriceNode(sources=[kraken, blue], blue_source_name="BLUE")
        snapshot = asyncio.run(node.run_once())

        assert BlueMarketGapCache.get() == pytest.approx(1.8)
        assert snapshot["blueCount"] == 1
        xmr_ars = next(r for r in snapshot["data"] if r.pair == ("XMR", "ARS"))
        assert xmr_ars.price == pytest.approx(0.0065 * 18_000_000.0)

    def test_blue_feed_used_without_gap(self, kraken, stub_source) -> None:
        """Without an official ARS quote the blue feed is the ARS consensus."""
        kraken.next_samples = {
            RateSample("XMR", "BTC", 0.0065, 100, "KRAKEN"),
            RateSample("BTC", "USD", 30000.0, 100, "KRAKEN"),
        }
        blue = stub_source("BLUE")
        blue.next_samples = {RateSample("BTC", "ARS", 18_000_000.0, 100, "BLUE")}
        node = PriceNode(sources=[kraken, blue], blue_source_name="BLUE")
        snapshot = asyncio.run(node.run_once())

        assert BlueMarketGapCache.get() is None
        xmr_ars = next(r for r in snapshot["data"] if r.pair == ("XMR", "ARS"))
        assert xmr_ars.price == pytest.approx(0.0065 * 18_000_000.0)

    def test_no_gap_without_blue_source(self, kraken) -> None:
        """Without a blue source the gap is never computed."""
        node = PriceNode(sources=[kraken])
        asyncio.run(node.run_once())
        assert node.update_blue_gap() is None
        assert BlueMarketGapCache.get() is None

    def test_publish_to_file(self, kraken, tmp_path) -> None:
        """Snapshots are written as JSON to the output path."""
        output = tmp_path / "snapshot.json"
        node = PriceNode(sources=[kraken], output_path=str(output))
        node.publish(asyncio.run(node.run_once()))

        payload = json.loads(output.read_text())
        assert payload["krakenCount"] == 3
        assert payload["data"][0]["baseCurrencyCode"] == "BTC"
        assert list(tmp_path.iterdir()) == [output]

    def test_publish_to_stdout(self, kraken, capsys) -> None:
        """Without an output path the snapshot goes to stdout."""
        node = PriceNode(sources=[kraken])
        node.publish(asyncio.run(node.run_once()))

        payload = json.loads(capsys.readouterr().out)
        assert list(payload) == ["krakenTs", "krakenCount", "data"]
