"""RefreshCoordinator: Concurrent refresh of all source caches.

Architecture:
    - Skips sources still in backoff
    - Refreshes all due sources concurrently, each under its own timeout
    - Records timeouts and unexpected exceptions as source failures
    - Returns per-source outcome for logging
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .sources import BaseSource

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Refreshes source caches concurrently.

    :ivar fetch_timeout: Timeout for one source refresh in seconds.
    """

    def __init__(self, fetch_timeout: float = 10.0) -> None:
        """Initialize the coordinator.

        :param fetch_timeout: Timeout for one source refresh (default: 10.0).
        :raises ValueError: If fetch_timeout is not positive.
        """
        if fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")
        self.fetch_timeout = fetch_timeout

    async def refresh_all(self, sources: Sequence[BaseSource]) -> dict[str, bool]:
        """Refresh every source that is not in backoff.

        :param sources: Sources to refresh.
        :returns: Dict mapping canonical name to True (refreshed) or False
            (failed). Sources in backoff are omitted.
        """
        due = [s for s in sources if s.is_due()]
        skipped = [s.canonical_name for s in sources if s not in due]
        if skipped:
            logger.debug(f"Sources in backoff: {skipped}")
        if not due:
            return {}

        outcomes = await asyncio.gather(*(self._refresh_one(s) for s in due))
        return {s.canonical_name: ok for s, ok in zip(due, outcomes, strict=True)}

    async def _refresh_one(self, source: BaseSource) -> bool:
        """Refresh a single source with timeout.

        :param source: Source to refresh.
        :returns: True if the cache was updated.
        """
        try:
            return await asyncio.wait_for(source.refresh(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            backoff = source.record_failure()
            logger.warning(f"[{source.canonical_name}] Refresh timeout, backoff {backoff:.1f}s")
        except Exception as e:
            backoff = source.record_failure()
            logger.warning(f"[{source.canonical_name}] Refresh error: {e}, backoff {backoff:.1f}s")
        return False
