"""Rate-limited diagnostic logging.

Verbose diagnostics (outlier removal, applied transformations) are useful but
noisy when every snapshot request triggers an aggregation pass. A gate opens at
most once per window; callers check it once per pass and log details only when
it is open.

This is the only process-wide mutable state of the aggregation core and may be
touched by overlapping requests, so the "last opened at" timestamp is swapped
under a lock.
"""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class GatedLogging:
    """Opens a logging gate at most once per ``window_seconds``.

    :ivar window_seconds: Minimum seconds between two gate openings.
    """

    DEFAULT_WINDOW_SECONDS = 600.0  # 10 minutes

    def __init__(self, window_seconds: float = DEFAULT_WINDOW_SECONDS) -> None:
        if window_seconds < 0:
            raise ValueError("window_seconds must not be negative")
        self.window_seconds = window_seconds
        self._last_opened = 0.0
        self._lock = threading.Lock()

    def gating_operation(self) -> bool:
        """Try to open the gate.

        :returns: True if the window has elapsed since the last opening; the
            gate is then marked as opened now.
        """
        now = time.time()
        with self._lock:
            if now - self._last_opened < self.window_seconds:
                return False
            self._last_opened = now
            return True

    def maybe_log_info(self, message: str) -> None:
        """Log ``message`` at INFO level if the gate opens."""
        if self.gating_operation():
            logger.info(message)
