from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator


class FakeClock:
    """Controllable replacement for ``alooper.stopwatch.utc_now``."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> Generator[FakeClock, None, None]:
    """Patch the stopwatch clock so tests control the passage of time."""
    fake = FakeClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))
    with patch("alooper.stopwatch.utc_now", side_effect=fake):
        yield fake


@pytest.fixture
def mock_callback() -> Mock:
    """Create a mock callback function for testing callbacks.

    Returns:
        A Mock object that can be used as a loop callback.
    """
    return Mock()
