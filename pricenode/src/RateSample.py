"""RateSample: One quoted price for a currency pair from one source.

A sample is an immutable value: two samples are equal when all five fields are
equal. Derived rates (consensus, pivot translation, transformers) are always
new instances.

.. code-block:: python

    >>> sample = RateSample("BTC", "USD", 30000.0, 1700000000, "KRAKEN")
    >>> sample.pair
    ('BTC', 'USD')
    >>> list(sample.to_dict())
    ['baseCurrencyCode', 'counterCurrencyCode', 'price', 'timestampSec', 'provider']
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

# Provider tag for rates synthesized from more than one source.
AGGREGATE_PROVIDER = "PriceNode-Aggregate"


@dataclass(frozen=True)
class RateSample:
    """Spot price of ``base_currency`` expressed in ``counter_currency``.

    :ivar base_currency: Base currency code (e.g., "BTC").
    :ivar counter_currency: Counter currency code (e.g., "USD").
    :ivar price: Units of counter currency per one unit of base currency.
    :ivar timestamp: Observation time in epoch seconds.
    :ivar provider: Originating source name, or ``AGGREGATE_PROVIDER``.
    """

    base_currency: str
    counter_currency: str
    price: float
    timestamp: int
    provider: str

    def __post_init__(self) -> None:
        if self.base_currency == self.counter_currency:
            raise ValueError(
                f"Base and counter currency must differ, got {self.base_currency}"
            )
        if not math.isfinite(self.price) or self.price < 0:
            raise ValueError(
                f"Invalid price {self.price} for {self.base_currency}/{self.counter_currency}"
            )

    @property
    def pair(self) -> tuple[str, str]:
        """Return the directional (base, counter) key."""
        return (self.base_currency, self.counter_currency)

    def __str__(self) -> str:
        return f"{self.base_currency}/{self.counter_currency}={self.price} ({self.provider})"

    def with_price(self, price: float) -> RateSample:
        """Return a copy of this sample carrying a different price."""
        return RateSample(
            self.base_currency,
            self.counter_currency,
            price,
            self.timestamp,
            self.provider,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format used by the snapshot payload.

        Key order is fixed: base, counter, price, timestamp, provider.
        """
        return {
            "baseCurrencyCode": self.base_currency,
            "counterCurrencyCode": self.counter_currency,
            "price": self.price,
            "timestampSec": self.timestamp,
            "provider": self.provider,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_provider: str = "") -> RateSample:
        """Parse a sample from its wire format.

        :param data: Mapping with the ``to_dict()`` keys.
        :param default_provider: Provider tag used when ``provider`` is absent.
        :returns: New RateSample instance.
        :raises ValueError: If a field is missing or invalid.
        """
        try:
            return cls(
                str(data["baseCurrencyCode"]).upper(),
                str(data["counterCurrencyCode"]).upper(),
                float(data["price"]),
                int(data["timestampSec"]),
                str(data.get("provider") or default_provider),
            )
        except (KeyError, TypeError, OverflowError) as e:
            raise ValueError(f"Malformed rate entry {data!r}: {e}") from e
