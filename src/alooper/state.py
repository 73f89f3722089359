r"""Loop state machine tracking attempts, outcomes and termination.

A ``LoopState`` owns the attempt counter, the per-iteration test results
and the stopwatch of one loop run. It decides whether another attempt is
permitted by combining the explicit done and failed flags, the attempt
limit and the timeout.

Example:
    ```pycon
    >>> from alooper.state import LoopState, LoopStatus
    >>> state = LoopState()
    >>> state.set_max_attempts_allowed(2)
    >>> while state.attempt():
    ...     state.add_test_result(False)
    ...     state.increment_index()
    ...
    >>> state.attempts, state.status
    (2, <LoopStatus.EXHAUSTED: 'exhausted'>)

    ```
"""

from __future__ import annotations

__all__ = ["LoopState", "LoopStatus"]

import logging
from enum import Enum
from typing import TYPE_CHECKING

from alooper.callbacks import LoopSnapshot
from alooper.core.config import AttemptLimit
from alooper.stopwatch import Stopwatch

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from alooper.stopwatch import TimeoutValue

logger: logging.Logger = logging.getLogger(__name__)


class LoopStatus(Enum):
    """Termination status of a loop.

    Attributes:
        RUNNING: Another attempt is permitted.
        DONE: The loop was explicitly marked successful.
        FAILED: The loop was explicitly marked failed.
        EXHAUSTED: The maximum number of attempts has been started.
        TIMED_OUT: The timeout instant has been reached.
    """

    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    EXHAUSTED = "exhausted"
    TIMED_OUT = "timed_out"


class LoopState:
    r"""Mutable state of a bounded loop.

    The state is owned by a single loop driver and is not thread-safe.
    Callers that need a stable view use ``snapshot()`` or ``copy()``.

    Termination is evaluated fresh on every call in a fixed order:
    explicit outcomes (done, then failed) take priority over the attempt
    limit, which takes priority over the timeout.

    Attributes:
        attempts: Number of attempts started.
        index: Number of iterations completed.
        done: Explicit success flag.
        failed: Explicit failure flag.
        limit: The attempt limit, bounded at 1000 by default.
        all_tests_successful: True while no recorded test has failed.
        some_tests_successful: True once any recorded test has succeeded.
        all_tests_failed: True while no recorded test has succeeded.
        some_tests_failed: True once any recorded test has failed.
        test_results: Recorded test results indexed by iteration.
        stopwatch: The stopwatch timing the loop.
    """

    def __init__(self, limit: AttemptLimit | None = None) -> None:
        self.attempts = 0
        self.index = 0
        self.done = False
        self.failed = False
        self.limit = limit if limit is not None else AttemptLimit()
        self.all_tests_successful = True
        self.some_tests_successful = False
        self.all_tests_failed = True
        self.some_tests_failed = False
        self.test_results: list[bool] = []
        self.stopwatch = Stopwatch.unstarted()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(attempts={self.attempts}, index={self.index}, "
            f"status={self.status.value}, limit={self.limit.max_attempts})"
        )

    @property
    def status(self) -> LoopStatus:
        """The termination status, evaluated now."""
        if self.done:
            return LoopStatus.DONE
        if self.failed:
            return LoopStatus.FAILED
        if not self.limit.allows(self.attempts):
            return LoopStatus.EXHAUSTED
        if self.stopwatch.timed_out():
            return LoopStatus.TIMED_OUT
        return LoopStatus.RUNNING

    def is_needed(self) -> bool:
        """Indicate whether another attempt is permitted."""
        return self.status is LoopStatus.RUNNING

    def is_not_needed(self) -> bool:
        return not self.is_needed()

    def has_happened(self) -> bool:
        return self.is_not_needed()

    def has_not_happened(self) -> bool:
        return self.is_needed()

    def attempt(self) -> bool:
        """Start an attempt if one is permitted.

        The stopwatch starts on the first call, so a relative timeout is
        measured from the first attempt. When no attempt is permitted the
        stopwatch is ended.

        Returns:
            True if an attempt was started and counted.
        """
        self.stopwatch.start_if_needed()
        status = self.status
        if status is LoopStatus.RUNNING:
            self.attempts += 1
            return True
        logger.debug(f"Loop attempt refused after {self.attempts} attempts ({status.value})")
        self.stopwatch.end()
        return False

    def mark_done(self, done: bool = True) -> None:
        """Set the explicit success flag."""
        self.done = done

    def mark_failed(self, failed: bool = True) -> None:
        """Set the explicit failure flag."""
        self.failed = failed

    def has_succeeded(self) -> bool:
        return self.done

    def has_failed(self) -> bool:
        return self.failed

    def add_test_result(self, result: bool) -> None:
        """Record the test result of the current iteration.

        The result is stored at position ``index`` and folded into the
        aggregate outcome flags.

        Args:
            result: Whether the test of the current iteration succeeded.
        """
        result = bool(result)
        if self.index < len(self.test_results):
            self.test_results[self.index] = result
        else:
            self.test_results.append(result)
        self.all_tests_successful = self.all_tests_successful and result
        self.some_tests_successful = self.some_tests_successful or result
        self.all_tests_failed = self.all_tests_failed and not result
        self.some_tests_failed = self.some_tests_failed or not result

    def increment_index(self) -> None:
        self.index += 1

    def is_all_tests_successful(self) -> bool:
        return self.all_tests_successful

    def is_some_tests_successful(self) -> bool:
        return self.some_tests_successful

    def is_all_tests_failed(self) -> bool:
        return self.all_tests_failed

    def is_some_tests_failed(self) -> bool:
        return self.some_tests_failed

    def set_attempt_limit(self, limit: AttemptLimit) -> None:
        self.limit = limit

    def set_max_attempts_allowed(self, max_attempts: int) -> None:
        """Bound the loop to ``max_attempts`` attempts.

        Args:
            max_attempts: The maximum number of attempts, must be > 0.

        Raises:
            ValueError: If max_attempts is <= 0. Use
                ``set_infinite_loops_permitted()`` to lift the limit.
        """
        self.limit = AttemptLimit.bounded(max_attempts)

    def set_infinite_loops_permitted(self) -> None:
        """Remove the attempt limit."""
        self.limit = AttemptLimit.unbounded()

    def is_limited(self) -> bool:
        return self.limit.is_bounded

    @property
    def max_attempts_allowed(self) -> int | None:
        return self.limit.max_attempts

    def set_timeout(self, timeout: TimeoutValue) -> None:
        """Configure the timeout of the loop.

        Args:
            timeout: A timezone-aware ``datetime`` deadline, or a
                ``timedelta`` or number of seconds measured from the
                first attempt.
        """
        self.stopwatch.set_timeout(timeout)

    @property
    def timeout(self) -> datetime | None:
        return self.stopwatch.timeout

    def timed_out(self) -> bool:
        return self.stopwatch.timed_out()

    def start_timer(self) -> None:
        self.stopwatch.restart()

    def stop_timer(self) -> None:
        self.stopwatch.end()

    @property
    def start_time(self) -> datetime | None:
        return self.stopwatch.start_time

    @property
    def end_time(self) -> datetime | None:
        return self.stopwatch.end_time

    def elapsed_time(self) -> timedelta:
        """Return the time the loop has run so far, or ran in total."""
        return self.stopwatch.split_time()

    def reset(self) -> None:
        """Prepare the state for another run.

        Counters and explicit flags are cleared and the stopwatch is
        blanked. The attempt limit, the timeout configuration, the
        aggregate outcome flags and the recorded results are kept.
        """
        self.attempts = 0
        self.index = 0
        self.done = False
        self.failed = False
        self.stopwatch.blank()

    def copy(self) -> LoopState:
        """Return an independent copy of the state."""
        state = LoopState(limit=self.limit)
        state.attempts = self.attempts
        state.index = self.index
        state.done = self.done
        state.failed = self.failed
        state.all_tests_successful = self.all_tests_successful
        state.some_tests_successful = self.some_tests_successful
        state.all_tests_failed = self.all_tests_failed
        state.some_tests_failed = self.some_tests_failed
        state.test_results = list(self.test_results)
        state.stopwatch = self.stopwatch.copy()
        return state

    def snapshot(self) -> LoopSnapshot:
        """Return an immutable view of the state."""
        return LoopSnapshot(
            attempts=self.attempts,
            index=self.index,
            done=self.done,
            failed=self.failed,
            status=self.status,
            limited=self.is_limited(),
            max_attempts_allowed=self.max_attempts_allowed,
            all_tests_successful=self.all_tests_successful,
            some_tests_successful=self.some_tests_successful,
            all_tests_failed=self.all_tests_failed,
            some_tests_failed=self.some_tests_failed,
            test_results=tuple(self.test_results),
            start_time=self.start_time,
            end_time=self.end_time,
            timeout=self.timeout,
            elapsed_time=self.elapsed_time(),
        )
