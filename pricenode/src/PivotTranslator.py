"""PivotTranslator: Re-express consensus rates against a pivot currency.

Every currency found in the consensus table gets exactly one rate with the
pivot on one side. Precedence for a currency ``C``:

    1. ``C`` is the crypto bridge and pivot/bridge exists: invert it
       (8 decimals, half-up, inverse of 0 is 0) and emit bridge/pivot
    2. A direct pivot/C or C/pivot rate exists: use it unchanged
    3. ``C`` is crypto: C/pivot = (C/fiat-bridge) / (pivot/fiat-bridge), or
       failing that (C/crypto-bridge) / (pivot/crypto-bridge)
    4. ``C`` is fiat: pivot/C = (pivot/crypto-bridge) * (crypto-bridge/C),
       timestamped with the crypto-bridge/C sample
    5. Otherwise skip with a warning

A currency whose intermediate rates are missing is skipped on its own; the
rest of the pass is unaffected.

.. code-block:: python

    >>> translator = PivotTranslator(registry, pivot="XMR", bridge_crypto="BTC", bridge_fiat="USD")
    >>> rates = translator.to_pivot({
    ...     ("XMR", "BTC"): RateSample("XMR", "BTC", 0.0065, 1, "a"),
    ...     ("BTC", "USD"): RateSample("BTC", "USD", 30000.0, 2, "b"),
    ... })
    >>> [(r.base_currency, r.counter_currency, r.price) for r in rates]
    [('BTC', 'XMR', 153.84615385), ('XMR', 'USD', 195.0)]
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, localcontext

from .currency_registry import CurrencyRegistry
from .RateAggregator import ConsensusTable
from .RateSample import RateSample

logger = logging.getLogger(__name__)

INVERSE_DECIMALS = Decimal("0.00000001")


def invert_price(price: float) -> float:
    """Return ``1 / price`` rounded half-up to 8 decimal places.

    :param price: Price to invert.
    :returns: The inverse, or 0.0 if price is not positive.
    """
    if price <= 0:
        return 0.0
    with localcontext() as ctx:
        ctx.prec = 60
        inverse = Decimal(1) / Decimal(price)
        return float(inverse.quantize(INVERSE_DECIMALS, rounding=ROUND_HALF_UP))


class PivotTranslator:
    """Translates a consensus table into pivot-denominated rates.

    :ivar pivot: Currency every output rate is expressed against.
    :ivar bridge_crypto: Crypto intermediary (e.g., "BTC").
    :ivar bridge_fiat: Fiat/stable intermediary (e.g., "USD").
    """

    def __init__(
        self,
        currency_registry: CurrencyRegistry,
        pivot: str = "XMR",
        bridge_crypto: str = "BTC",
        bridge_fiat: str = "USD",
    ) -> None:
        """Initialize the translator.

        :param currency_registry: Crypto/fiat classification.
        :param pivot: Pivot currency code.
        :param bridge_crypto: Crypto bridge currency code.
        :param bridge_fiat: Fiat bridge currency code.
        :raises ValueError: If a code is empty or the three codes are not distinct.
        """
        codes = [pivot, bridge_crypto, bridge_fiat]
        if not all(codes):
            raise ValueError("pivot and bridge currencies must be non-empty")
        codes = [c.upper() for c in codes]
        if len(set(codes)) != 3:
            raise ValueError(f"pivot and bridge currencies must be distinct, got {codes}")

        self.currency_registry = currency_registry
        self.pivot, self.bridge_crypto, self.bridge_fiat = codes

    def to_pivot(self, table: ConsensusTable) -> list[RateSample]:
        """Translate every currency of the table against the pivot.

        :param table: Consensus table from RateAggregator.
        :returns: Rates sorted by (base, counter), one per currency.
        """
        currencies = {code for pair in table for code in pair}
        currencies.discard(self.pivot)

        translated: dict[tuple[str, str], RateSample] = {}
        for code in sorted(currencies):
            rate = self.translate(code, table)
            if rate is not None:
                translated.setdefault(rate.pair, rate)

        return [translated[pair] for pair in sorted(translated)]

    def translate(self, code: str, table: ConsensusTable) -> RateSample | None:
        """Derive the pivot rate of a single currency.

        :param code: Currency to translate (not the pivot).
        :param table: Consensus table.
        :returns: Pivot-denominated rate, or None if it cannot be derived.
        """
        pivot_crypto = table.get((self.pivot, self.bridge_crypto))

        if code == self.bridge_crypto and pivot_crypto is not None:
            return RateSample(
                self.bridge_crypto,
                self.pivot,
                invert_price(pivot_crypto.price),
                pivot_crypto.timestamp,
                pivot_crypto.provider,
            )

        direct = table.get((self.pivot, code)) or table.get((code, self.pivot))
        if direct is not None:
            return direct

        if self.currency_registry.is_crypto(code):
            return self._translate_crypto(code, table)
        if self.currency_registry.is_fiat(code):
            return self._translate_fiat(code, table)

        logger.warning(f"{code} is neither crypto nor fiat, skipping")
        return None

    def _translate_crypto(self, code: str, table: ConsensusTable) -> RateSample | None:
        for bridge in (self.bridge_fiat, self.bridge_crypto):
            code_rate = table.get((code, bridge))
            pivot_rate = table.get((self.pivot, bridge))
            if code_rate is None or pivot_rate is None or pivot_rate.price <= 0:
                continue
            return RateSample(
                code,
                self.pivot,
                code_rate.price / pivot_rate.price,
                pivot_rate.timestamp,
                pivot_rate.provider,
            )

        logger.warning(
            f"No {code}/{self.bridge_fiat} or {code}/{self.bridge_crypto} rate "
            f"with matching {self.pivot} rate available, skipping {code}"
        )
        return None

    def _translate_fiat(self, code: str, table: ConsensusTable) -> RateSample | None:
        bridge_rate = table.get((self.bridge_crypto, code))
        if bridge_rate is None:
            logger.warning(f"No {self.bridge_crypto}/{code} rate available")
            return None
        pivot_rate = table.get((self.pivot, self.bridge_crypto))
        if pivot_rate is None:
            logger.warning(f"No {self.pivot}/{self.bridge_crypto} rate available")
            return None

        # Timestamp of the fiat leg, the slower-updating input.
        return RateSample(
            self.pivot,
            code,
            pivot_rate.price * bridge_rate.price,
            bridge_rate.timestamp,
            pivot_rate.provider,
        )
