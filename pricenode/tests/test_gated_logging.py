"""Unit tests for GatedLogging."""

import threading
from unittest.mock import patch

import pytest

from pricenode.src.gated_logging import GatedLogging


class TestGatedLogging:
    """Test the rate-limited logging gate."""

    @patch("pricenode.src.gated_logging.time.time")
    def test_opens_once_per_window(self, mock_time) -> None:
        """Gate opens first, then stays closed until the window elapses."""
        gate = GatedLogging(window_seconds=60)

        mock_time.return_value = 1000.0
        assert gate.gating_operation() is True
        assert gate.gating_operation() is False

        mock_time.return_value = 1059.0
        assert gate.gating_operation() is False

        mock_time.return_value = 1060.0
        assert gate.gating_operation() is True

    def test_negative_window_rejected(self) -> None:
        """A negative window is invalid."""
        with pytest.raises(ValueError):
            GatedLogging(window_seconds=-1)

    def test_maybe_log_info(self, caplog: pytest.LogCaptureFixture) -> None:
        """Only the first message inside a window is logged."""
        caplog.set_level("INFO")
        gate = GatedLogging(window_seconds=3600)
        gate.maybe_log_info("first")
        gate.maybe_log_info("second")
        assert "first" in caplog.text
        assert "second" not in caplog.text

    def test_concurrent_callers_open_once(self) -> None:
        """Overlapping callers see the gate open exactly once."""
        gate = GatedLogging(window_seconds=3600)
        results: list[bool] = []
        lock = threading.Lock()

        def worker() -> None:
            opened = gate.gating_operation()
            with lock:
                results.append(opened)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert len(results) == 16
