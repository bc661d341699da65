"""Post-translation rate transformers.

A transformer is bound to one currency code and may replace a translated rate
whose non-pivot side is that currency. It receives the source collaborator the
rate came from (or None for aggregate and derived rates), so it can leave a
native feed's rate alone while adjusting everything else.

Returning None means "cannot compute"; the original rate is kept. The registry
never drops a rate.

.. code-block:: python

    class MyTransformer(BaseRateTransformer):
        currency = "VES"

        def apply(self, source, rate):
            return rate.with_price(rate.price * 1.05)

    registry = TransformerRegistry([MyTransformer()], pivot="XMR")
    rate = registry.apply(rate, source=None)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, ClassVar, Iterable

from .blue_gap_cache import BlueMarketGapCache
from .gated_logging import GatedLogging
from .RateSample import RateSample

if TYPE_CHECKING:
    from .sources import BaseSource

logger = logging.getLogger(__name__)


class BaseRateTransformer(ABC):
    """Abstract base class for rate transformers.

    :cvar currency: Currency code this transformer applies to.
    """

    currency: ClassVar[str] = ""

    @abstractmethod
    def apply(self, source: BaseSource | None, rate: RateSample) -> RateSample | None:
        """Transform a pivot-denominated rate.

        :param source: Source collaborator the rate came from, if any.
        :param rate: Rate to transform.
        :returns: Replacement rate, the same rate for "no change", or None if
            the adjustment cannot be computed.
        """

    def withholds(self, source: BaseSource) -> bool:
        """Whether ``source``'s samples in this currency stay out of the consensus.

        A transformer whose adjustment is derived from a native feed withholds
        that feed while the adjustment can be computed, so the feed is not
        counted twice.
        """
        return False


class TransformerRegistry:
    """Ordered, currency-keyed set of transformers.

    :ivar pivot: Pivot currency; the other side of a rate selects the transformer.
    """

    def __init__(self, transformers: Iterable[BaseRateTransformer] = (), pivot: str = "XMR") -> None:
        """Initialize the registry.

        :param transformers: Transformers in invocation order.
        :param pivot: Pivot currency code.
        :raises ValueError: If a transformer has no currency or two share one.
        """
        self.pivot = pivot.upper()
        self._transformers: dict[str, BaseRateTransformer] = {}
        for transformer in transformers:
            code = transformer.currency.upper()
            if not code:
                raise ValueError(
                    f"Transformer {type(transformer).__name__} must define a 'currency'"
                )
            if code in self._transformers:
                raise ValueError(
                    f"Currency {code} claimed by both "
                    f"{type(self._transformers[code]).__name__} and {type(transformer).__name__}"
                )
            self._transformers[code] = transformer

    def __len__(self) -> int:
        return len(self._transformers)

    @property
    def currencies(self) -> list[str]:
        """Currencies with a registered transformer, in insertion order."""
        return list(self._transformers)

    def get(self, rate: RateSample) -> BaseRateTransformer | None:
        """Return the transformer for the non-pivot side of ``rate``."""
        code = rate.counter_currency if rate.base_currency == self.pivot else rate.base_currency
        return self._transformers.get(code)

    def withheld(self, source: BaseSource, sample: RateSample) -> bool:
        """Whether a raw sample from ``source`` is kept out of the consensus."""
        for code in (sample.base_currency, sample.counter_currency):
            transformer = self._transformers.get(code)
            if transformer is not None and transformer.withholds(source):
                return True
        return False

    def apply(self, rate: RateSample, source: BaseSource | None = None) -> RateSample:
        """Run the matching transformer, if any.

        :param rate: Pivot-denominated rate.
        :param source: Source collaborator the rate came from, if any.
        :returns: The transformed rate, or ``rate`` unchanged.
        """
        transformer = self.get(rate)
        if transformer is None:
            return rate

        try:
            transformed = transformer.apply(source, rate)
        except Exception as e:
            logger.warning(
                f"{type(transformer).__name__} failed on "
                f"{rate.base_currency}/{rate.counter_currency}: {e}"
            )
            return rate

        return rate if transformed is None else transformed


class ArsBlueRateTransformer(BaseRateTransformer):
    """Applies the ARS blue-market premium to official ARS rates.

    Rates from the blue-market source itself already carry the premium and
    pass through unchanged. While the gap is known, the blue source's ARS
    samples are withheld from the consensus; the premium then reaches the
    output only through the gap.

    :ivar blue_source_name: Canonical name of the blue-market source.
    """

    currency = "ARS"

    def __init__(
        self,
        blue_source_name: str = "BLUE",
        gap_provider: Callable[[], float | None] = BlueMarketGapCache.get,
        gated_logging: GatedLogging | None = None,
    ) -> None:
        """Initialize the transformer.

        :param blue_source_name: Canonical name of the blue-market source.
        :param gap_provider: Returns the sell gap multiplier, or None if unknown.
        :param gated_logging: Gate for transformation log lines.
        """
        self.blue_source_name = blue_source_name
        self.gap_provider = gap_provider
        self.gated_logging = gated_logging or GatedLogging()

    def withholds(self, source: BaseSource) -> bool:
        return source.canonical_name == self.blue_source_name and self.gap_provider() is not None

    def apply(self, source: BaseSource | None, rate: RateSample) -> RateSample | None:
        if source is not None and source.canonical_name == self.blue_source_name:
            return rate

        gap = self.gap_provider()
        if gap is None:
            return None

        # ARS as base means the price is in the other currency per ARS.
        price = rate.price / gap if rate.base_currency == self.currency else rate.price * gap
        blue_rate = rate.with_price(price)
        self.gated_logging.maybe_log_info(
            f"{rate.base_currency}/{rate.counter_currency} transformed "
            f"from {rate.price} to {blue_rate.price}"
        )
        return blue_rate
