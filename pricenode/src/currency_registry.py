"""Currency classification used by pivot translation.

The aggregation core only needs to know whether a code is a crypto or a fiat
currency. ``StaticCurrencyRegistry`` answers from configured code lists; any
object with the same two methods can be used instead.
"""

from __future__ import annotations

from typing import Iterable, Protocol

DEFAULT_CRYPTO_CURRENCIES = (
    "BCH", "BTC", "DAI", "DOGE", "ETH", "LTC", "USDC", "USDT", "XMR",
)

DEFAULT_FIAT_CURRENCIES = (
    "ARS", "AUD", "BRL", "CAD", "CHF", "CNY", "CZK", "DKK", "EUR", "GBP",
    "HKD", "HUF", "INR", "JPY", "KRW", "MXN", "NOK", "NZD", "PLN", "RUB",
    "SEK", "SGD", "TRY", "USD", "ZAR",
)


class CurrencyRegistry(Protocol):
    """Classifies currency codes as crypto or fiat."""

    def is_crypto(self, code: str) -> bool: ...

    def is_fiat(self, code: str) -> bool: ...


class StaticCurrencyRegistry:
    """Currency registry backed by fixed code lists.

    :raises ValueError: If a code is listed as both crypto and fiat.
    """

    def __init__(
        self,
        crypto_codes: Iterable[str] = DEFAULT_CRYPTO_CURRENCIES,
        fiat_codes: Iterable[str] = DEFAULT_FIAT_CURRENCIES,
    ) -> None:
        self.crypto_codes = frozenset(c.upper() for c in crypto_codes)
        self.fiat_codes = frozenset(c.upper() for c in fiat_codes)
        overlap = self.crypto_codes & self.fiat_codes
        if overlap:
            raise ValueError(f"Currencies listed as both crypto and fiat: {sorted(overlap)}")

    def is_crypto(self, code: str) -> bool:
        return code.upper() in self.crypto_codes

    def is_fiat(self, code: str) -> bool:
        return code.upper() in self.fiat_codes
