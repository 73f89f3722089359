r"""Callback types and data structures for loop observability.

Every callable supplied to a loop (the action, the test and the outcome
callbacks) receives a ``LoopSnapshot``: an immutable view of the loop
state taken at the moment of the call. Callbacks never get access to the
live counters, so they cannot change the course of the loop by mutating
them.

The outcome callbacks are:
- on_each_success: Called after every iteration whose test succeeded
- on_each_failed: Called after every iteration whose test failed
- on_all_success: Called at the end if every recorded test succeeded
- on_all_failed: Called at the end if every recorded test failed
- on_some_success: Called at the end if at least one test succeeded
- on_some_failed: Called at the end if at least one test failed

Example:
    ```pycon
    >>> from alooper import Looper
    >>> from alooper.callbacks import LoopSnapshot
    >>> def report(snapshot: LoopSnapshot) -> None:
    ...     print(f"succeeded after {snapshot.attempts} attempts")
    ...
    >>> looper = Looper.loop_until_success_or_limit(5)
    >>> looper.loop(test=lambda snapshot: snapshot.attempts >= 3, on_success=report)
    succeeded after 3 attempts

    ```
"""

from __future__ import annotations

__all__ = ["Action", "ErrorReportingAction", "LoopCallback", "LoopSnapshot", "LoopTest"]

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from datetime import datetime

    from alooper.state import LoopStatus


@dataclass(frozen=True)
class LoopSnapshot:
    """Immutable view of a loop state passed to callbacks.

    Attributes:
        attempts: Number of attempts started.
        index: Number of iterations completed (action and test run).
        done: Whether the loop was explicitly marked successful.
        failed: Whether the loop was explicitly marked failed.
        status: The termination status at the time of the snapshot.
        limited: Whether the number of attempts is bounded.
        max_attempts_allowed: The attempt bound, or None if unbounded.
        all_tests_successful: True while no recorded test has failed.
        some_tests_successful: True once any recorded test has succeeded.
        all_tests_failed: True while no recorded test has succeeded.
        some_tests_failed: True once any recorded test has failed.
        test_results: The recorded test results in iteration order.
        start_time: When the loop started timing, if it has.
        end_time: When the loop stopped timing, if it has.
        timeout: The instant at which the loop times out, if any.
        elapsed_time: Time the loop had run when the snapshot was taken.
    """

    attempts: int
    index: int
    done: bool
    failed: bool
    status: LoopStatus
    limited: bool
    max_attempts_allowed: int | None
    all_tests_successful: bool
    some_tests_successful: bool
    all_tests_failed: bool
    some_tests_failed: bool
    test_results: tuple[bool, ...]
    start_time: datetime | None
    end_time: datetime | None
    timeout: datetime | None
    elapsed_time: timedelta = timedelta(0)


Action = Callable[[LoopSnapshot], None]
ErrorReportingAction = Callable[[LoopSnapshot], Optional[Exception]]
LoopTest = Callable[[LoopSnapshot], bool]
LoopCallback = Callable[[LoopSnapshot], None]
