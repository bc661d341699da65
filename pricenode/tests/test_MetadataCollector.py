"""Unit tests for MetadataCollector."""

from pricenode.src.MetadataCollector import MetadataCollector
from pricenode.src.RateSample import RateSample


class TestMetadataCollector:
    """Test per-source metadata entries."""

    def test_timestamp_and_count(self, stub_source) -> None:
        """Timestamp comes from the source's own samples."""
        source = stub_source("KRAKEN")
        samples = {
            RateSample("BTC", "USD", 30000.0, 111, "KRAKEN"),
            RateSample("BTC", "EUR", 28000.0, 111, "KRAKEN"),
        }
        entry = MetadataCollector().collect(source, samples)

        assert entry == {"krakenTs": 111, "krakenCount": 2}
        assert list(entry) == ["krakenTs", "krakenCount"]

    def test_provider_prefix_match(self, stub_source) -> None:
        """Provider tags extending the canonical name match."""
        source = stub_source("POLO", metadata_prefix="poloniex")
        samples = [RateSample("ETH", "BTC", 0.05, 222, "POLO-spot")]
        assert MetadataCollector().collect(source, samples) == {
            "poloniexTs": 222,
            "poloniexCount": 1,
        }

    def test_first_sample_in_pair_order(self, stub_source) -> None:
        """The first sample by (base, counter) provides the timestamp."""
        source = stub_source("KRAKEN")
        samples = [
            RateSample("ETH", "BTC", 0.05, 300, "KRAKEN"),
            RateSample("BTC", "USD", 30000.0, 200, "KRAKEN"),
        ]
        assert MetadataCollector().collect(source, samples)["krakenTs"] == 200

    def test_absent_source(self, stub_source) -> None:
        """Scenario: empty source shows count 0 and timestamp 0."""
        entry = MetadataCollector().collect(stub_source("KRAKEN"), frozenset())
        assert entry == {"krakenTs": 0, "krakenCount": 0}

    def test_none_samples(self, stub_source) -> None:
        """None is treated as no samples."""
        entry = MetadataCollector().collect(stub_source("KRAKEN"), None)
        assert entry == {"krakenTs": 0, "krakenCount": 0}

    def test_no_matching_provider(self, stub_source, caplog) -> None:
        """Samples not tagged with the source name give timestamp 0, count kept."""
        source = stub_source("KRAKEN")
        samples = [RateSample("BTC", "USD", 30000.0, 111, "OTHER")]
        entry = MetadataCollector().collect(source, samples)

        assert entry == {"krakenTs": 0, "krakenCount": 1}
        assert "No exchange rate data found for KRAKEN" in caplog.text
