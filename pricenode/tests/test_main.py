"""Unit tests for CLI helpers."""

import pytest

from pricenode.main import get_version, parse_currency_list, parse_source_specs


class TestParseSourceSpecs:
    """Test --sources parsing."""

    def test_empty(self) -> None:
        """No value gives no sources."""
        assert parse_source_specs(None) == []
        assert parse_source_specs("") == []

    def test_default_kind(self) -> None:
        """Entries without a kind use jsonfeed."""
        assert parse_source_specs("KRAKEN=https://a.example/r.json") == [
            ("jsonfeed", "KRAKEN", "https://a.example/r.json"),
        ]

    def test_explicit_kind_and_spacing(self) -> None:
        """Kinds are lower-cased, whitespace trimmed."""
        specs = parse_source_specs(" JsonFeed:BLUE = https://b.example/ars.json , POLO=https://c.example?x=1 ")
        assert specs == [
            ("jsonfeed", "BLUE", "https://b.example/ars.json"),
            ("jsonfeed", "POLO", "https://c.example?x=1"),
        ]

    def test_invalid_entry(self) -> None:
        """Entries without NAME=URL are rejected."""
        with pytest.raises(ValueError, match="Invalid source 'KRAKEN'"):
            parse_source_specs("KRAKEN")
        with pytest.raises(ValueError, match="Invalid source"):
            parse_source_specs("=https://a.example")


class TestParseCurrencyList:
    """Test currency list parsing."""

    def test_default(self) -> None:
        """Empty input gives the default list."""
        assert parse_currency_list(None, ("BTC",)) == ["BTC"]

    def test_upper_cased(self) -> None:
        """Codes are trimmed and upper-cased."""
        assert parse_currency_list("btc, xmr,,eth", ("X",)) == ["BTC", "XMR", "ETH"]


class TestGetVersion:
    """Test version reporting."""

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """PRICENODE_VERSION takes precedence."""
        monkeypatch.setenv("PRICENODE_VERSION", "2.3.4-build7")
        assert get_version() == "2.3.4-build7"

    def test_package_version(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Falls back to the package version."""
        monkeypatch.delenv("PRICENODE_VERSION", raising=False)
        assert get_version() == "1.0.0"
