r"""alooper - Bounded retry loops with attempt limits, timeouts and callbacks.

This package replaces hand-written ``while``/``for`` retry code with a
configurable loop that counts attempts, enforces a maximum number of
attempts and/or a timeout, records whether each iteration succeeded and
reports the aggregate outcome through callbacks.

Key Features:
    - Stop on the first success, on the first failure, or run to the limit
    - Attempt limits (1000 by default) and explicit unbounded loops
    - Absolute (deadline) or relative (duration) timeouts
    - Per-iteration and aggregate outcome callbacks
    - Immutable state snapshots handed to every callback
    - Fatal errors reported by the action stop the loop and are returned

Example:
    ```pycon
    >>> from datetime import timedelta
    >>> from alooper import Looper
    >>> looper = Looper.loop_until_success_or_limit(timedelta(seconds=5))
    >>> looper.loop(
    ...     action=lambda snapshot: None,
    ...     test=lambda snapshot: snapshot.attempts == 3,
    ...     on_success=lambda snapshot: print(f"ready after {snapshot.attempts} attempts"),
    ... )
    ready after 3 attempts

    ```
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "AttemptLimit",
    "CallbackConfig",
    "LoopConfig",
    "LoopSnapshot",
    "LoopState",
    "LoopStatus",
    "Looper",
    "Stopwatch",
    "__version__",
]

from importlib.metadata import PackageNotFoundError, version

from alooper.callbacks import LoopSnapshot
from alooper.core.config import DEFAULT_MAX_ATTEMPTS, AttemptLimit, LoopConfig
from alooper.loop.config import CallbackConfig
from alooper.looper import Looper
from alooper.state import LoopState, LoopStatus
from alooper.stopwatch import Stopwatch

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
