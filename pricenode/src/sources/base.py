"""Base source interface, sample cache and shared HTTP client management.

Every source polls one market on its own schedule and keeps the last good
result in a local cache. The aggregation pass only ever reads that cache
through ``current_samples()``, so a slow or failing upstream never blocks a
snapshot.

A shared httpx.AsyncClient is used across all sources to avoid connection
overhead. Failed refreshes put the source into exponential backoff.

.. code-block:: python

    @register_source
    class MySource(BaseSource):
        kind = "mysource"

        async def fetch_samples(self) -> set[RateSample]:
            response = await self._get("https://api.example.com/rates")
            return {
                RateSample("BTC", quote, price, int(time.time()), self.canonical_name)
                for quote, price in response.json().items()
            }
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

import httpx

from ..RateSample import RateSample

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """Base exception for source errors."""

    pass


class SourceConfigError(SourceError):
    """Raised when source configuration is invalid (e.g., missing URL)."""

    pass


class SourceHTTPError(SourceError):
    """Raised when HTTP request fails.

    :ivar status_code: HTTP status code from the failed request.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


@dataclass
class SourceHealth:
    """Refresh health of a single source.

    :ivar consecutive_failures: Number of consecutive failed refreshes.
    :ivar backoff_until: Unix timestamp when backoff period ends.
    :ivar total_failures: Total failures since start.
    :ivar total_successes: Total successes since start.
    """

    consecutive_failures: int = 0
    backoff_until: float = 0.0
    total_failures: int = 0
    total_successes: int = 0


class BaseSource(ABC):
    """Abstract base class for rate sources.

    Subclasses must implement:
        - kind: Class variable naming the source type in the registry
        - fetch_samples(): Async method returning the market's current samples

    :cvar kind: Registry key of this source type.
    :cvar DEFAULT_TIMEOUT: Default HTTP request timeout in seconds.
    :cvar DEFAULT_CACHE_TTL: Seconds before cached samples are evicted.
    :ivar canonical_name: Name matched against sample provider tags.
    :ivar metadata_prefix: Prefix of this source's snapshot metadata keys.
    :ivar health: Refresh health and backoff state.
    """

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    kind: ClassVar[str] = ""

    DEFAULT_TIMEOUT = 10.0
    DEFAULT_CACHE_TTL = 300.0  # 5 minutes
    BASE_BACKOFF_SECONDS = 5.0
    MAX_BACKOFF_SECONDS = 300.0  # 5 minutes

    def __init__(
        self,
        canonical_name: str,
        metadata_prefix: str | None = None,
        cache_ttl: float | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the source.

        :param canonical_name: Source name, used as provider tag of its samples.
        :param metadata_prefix: Metadata key prefix (default: name lowercased).
        :param cache_ttl: Seconds before cached samples are evicted (default: 300).
        :param timeout: Request timeout in seconds (default: 10).
        :raises SourceConfigError: If canonical_name is empty.
        """
        if not canonical_name:
            raise SourceConfigError(f"{type(self).__name__} needs a canonical name")
        self.canonical_name = canonical_name
        self.metadata_prefix = metadata_prefix or canonical_name.lower()
        self.cache_ttl = cache_ttl or self.DEFAULT_CACHE_TTL
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.health = SourceHealth()
        self._samples: frozenset[RateSample] = frozenset()
        self._refreshed_at = 0.0

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.canonical_name!r})"

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        :returns: Shared httpx.AsyncClient instance.
        """
        if BaseSource._shared_client is None or BaseSource._shared_client.is_closed:
            BaseSource._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
                follow_redirects=True,
            )
        return BaseSource._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        if BaseSource._shared_client is not None and not BaseSource._shared_client.is_closed:
            await BaseSource._shared_client.aclose()
        BaseSource._shared_client = None

    @abstractmethod
    async def fetch_samples(self) -> set[RateSample]:
        """Fetch the current samples from the upstream market.

        :returns: Set of samples.
        :raises SourceError: If the upstream cannot be read.
        """
        pass

    def current_samples(self) -> frozenset[RateSample]:
        """Return the cached samples as one point-in-time read.

        :returns: Cached samples, empty if unavailable.
        """
        return self._samples

    def evict_stale_cache(self) -> None:
        """Drop cached samples older than ``cache_ttl``."""
        if self._samples and time.time() - self._refreshed_at > self.cache_ttl:
            logger.warning(
                f"[{self.canonical_name}] Evicting {len(self._samples)} stale samples"
            )
            self._samples = frozenset()

    def is_due(self) -> bool:
        """Check if the source is outside its backoff period."""
        return time.time() >= self.health.backoff_until

    def record_failure(self) -> float:
        """Record a failed refresh and apply exponential backoff.

        :returns: The backoff duration in seconds.
        """
        self.health.consecutive_failures += 1
        self.health.total_failures += 1
        backoff_seconds = min(
            self.BASE_BACKOFF_SECONDS * (2 ** (self.health.consecutive_failures - 1)),
            self.MAX_BACKOFF_SECONDS,
        )
        self.health.backoff_until = time.time() + backoff_seconds
        return backoff_seconds

    def record_success(self, samples: set[RateSample] | frozenset[RateSample]) -> None:
        """Store freshly fetched samples and reset the failure counter."""
        self._samples = frozenset(samples)
        self._refreshed_at = time.time()
        self.health.consecutive_failures = 0
        self.health.backoff_until = 0.0
        self.health.total_successes += 1

    async def refresh(self) -> bool:
        """Fetch new samples into the cache.

        Failures keep the previous cache (until it is evicted as stale) and
        put the source into backoff.

        :returns: True if the cache was updated.
        """
        try:
            samples = await self.fetch_samples()
        except SourceError as e:
            backoff = self.record_failure()
            logger.warning(f"[{self.canonical_name}] Refresh failed: {e}, backoff {backoff:.1f}s")
            return False

        if not samples:
            backoff = self.record_failure()
            logger.warning(f"[{self.canonical_name}] Refresh returned no samples, backoff {backoff:.1f}s")
            return False

        self.record_success(samples)
        logger.debug(f"[{self.canonical_name}] Cached {len(samples)} samples")
        return True

    async def _get(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Make an HTTP GET request using the shared client.

        :param url: Request URL.
        :param params: Optional query parameters.
        :param headers: Optional request headers.
        :returns: httpx.Response object.
        :raises SourceHTTPError: On non-2xx response.
        :raises SourceError: On network/timeout errors.
        """
        client = self.get_shared_client()
        try:
            response = await client.get(
                url,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise SourceError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise SourceError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise SourceHTTPError(response.status_code, response.text[:200])
        return response


# Registry of available source types (populated by subclass imports)
SOURCE_REGISTRY: dict[str, type[BaseSource]] = {}


def register_source(cls: type[BaseSource]) -> type[BaseSource]:
    """Decorator to register a source class in the global registry.

    :param cls: Source class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If the source has no kind defined.
    """
    if not cls.kind:
        raise ValueError(f"Source {cls.__name__} must define a 'kind' class variable")
    SOURCE_REGISTRY[cls.kind] = cls
    return cls


def get_source(kind: str, canonical_name: str, **kwargs) -> BaseSource:
    """Create a source instance by kind.

    :param kind: Source type (e.g., "jsonfeed").
    :param canonical_name: Canonical name of the new source.
    :param kwargs: Type-specific constructor arguments.
    :returns: Source instance.
    :raises ValueError: If kind is unknown.
    """
    if kind not in SOURCE_REGISTRY:
        available = ", ".join(sorted(SOURCE_REGISTRY.keys()))
        raise ValueError(f"Unknown source kind '{kind}'. Available: {available}")
    return SOURCE_REGISTRY[kind](canonical_name=canonical_name, **kwargs)


def get_available_sources() -> list[str]:
    """Get list of available source kinds.

    :returns: Sorted list of registered source kinds.
    """
    return sorted(SOURCE_REGISTRY.keys())
