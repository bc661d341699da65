"""JSON feed source.

Polls a URL serving rates in the snapshot wire format, either a bare list of
rate objects or a mapping holding them under ``data``:

    {"data": [{"baseCurrencyCode": "BTC", "counterCurrencyCode": "USD",
               "price": 30000.0, "timestampSec": 1700000000, "provider": "KRAKEN"}]}

This covers upstream price nodes and any adapter that re-publishes a market in
this format.
"""

import logging

from ..RateSample import RateSample
from .base import BaseSource, SourceConfigError, SourceError, register_source

logger = logging.getLogger(__name__)


@register_source
class JsonFeedSource(BaseSource):
    """Source reading rate objects from a JSON endpoint.

    :ivar url: Feed URL.
    """

    kind = "jsonfeed"

    def __init__(self, canonical_name: str, url: str = "", **kwargs) -> None:
        """Initialize the source.

        :param canonical_name: Source name.
        :param url: Feed URL.
        :raises SourceConfigError: If url is empty.
        """
        super().__init__(canonical_name, **kwargs)
        if not url:
            raise SourceConfigError(f"[{canonical_name}] jsonfeed source needs a URL")
        self.url = url

    async def fetch_samples(self) -> set[RateSample]:
        response = await self._get(self.url)
        try:
            payload = response.json()
        except ValueError as e:
            raise SourceError(f"Invalid JSON from {self.url}: {e}") from e

        entries = payload.get("data") if isinstance(payload, dict) else payload
        if not isinstance(entries, list):
            raise SourceError(f"No rate list in response from {self.url}")

        samples: set[RateSample] = set()
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning(f"[{self.canonical_name}] Skipping non-object entry: {entry!r}")
                continue
            try:
                samples.add(RateSample.from_dict(entry, default_provider=self.canonical_name))
            except ValueError as e:
                logger.warning(f"[{self.canonical_name}] Skipping entry: {e}")
        return samples
