r"""Looper: a configurable replacement for hand-written retry loops.

A ``Looper`` repeats an action until a test succeeds (or fails), a
maximum number of attempts is reached or a timeout elapses, and then
reports the aggregate outcome through callbacks.

Example:
    ```pycon
    >>> from alooper import Looper
    >>> looper = Looper.loop_until_success_or_limit(10)
    >>> looper.loop(test=lambda snapshot: snapshot.attempts >= 4)
    >>> looper.attempts()
    4
    >>> looper.snapshot().some_tests_successful
    True

    ```
"""

from __future__ import annotations

__all__ = ["Looper"]

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from alooper.core.config import DEFAULT_MAX_ATTEMPTS, LoopConfig
from alooper.loop.config import CallbackConfig
from alooper.loop.executor import LoopExecutor
from alooper.state import LoopState

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from alooper.callbacks import (
        Action,
        ErrorReportingAction,
        LoopCallback,
        LoopSnapshot,
        LoopTest,
    )
    from alooper.stopwatch import TimeoutValue

logger: logging.Logger = logging.getLogger(__name__)


def do_nothing(snapshot: LoopSnapshot) -> None:
    """Default action: does nothing."""


def return_false(snapshot: LoopSnapshot) -> bool:
    """Default test: never succeeds, so the loop runs until a limit."""
    return False


class Looper:
    r"""Bounded loop with a stop policy and outcome callbacks.

    The looper owns a ``LoopState``. Running a loop that already reached a
    terminal state performs no iteration; call ``reset()`` first to run
    it again with the same configuration.

    Args:
        config: The termination policy. Defaults to ``LoopConfig()``:
            stop on the first success, at most 1000 attempts, no timeout.
        callbacks: The outcome callbacks. Defaults to none.

    Example:
        ```pycon
        >>> from alooper import Looper
        >>> results = []
        >>> looper = (
        ...     Looper.loop_until_limit(3)
        ...     .with_test(lambda snapshot: snapshot.attempts % 2 == 1)
        ...     .with_some_tests_failed_action(lambda snapshot: results.append("some failed"))
        ...     .with_some_tests_successful_action(lambda snapshot: results.append("some ok"))
        ... )
        >>> looper.loop()
        >>> looper.attempts(), results
        (3, ['some ok', 'some failed'])

        ```
    """

    def __init__(
        self,
        config: LoopConfig | None = None,
        callbacks: CallbackConfig | None = None,
    ) -> None:
        self._config = config if config is not None else LoopConfig()
        self._callbacks = replace(callbacks) if callbacks is not None else CallbackConfig()
        self._state = LoopState(limit=self._config.attempt_limit)
        if self._config.timeout is not None:
            self._state.set_timeout(self._config.timeout)
        self._action: Action = do_nothing
        self._test: LoopTest = return_false
        self._exception: Exception | None = None

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(stop_on_success={self._config.stop_on_success}, "
            f"stop_on_failure={self._config.stop_on_failure}, state={self._state!r})"
        )

    @classmethod
    def from_config(
        cls, config: LoopConfig, callbacks: CallbackConfig | None = None
    ) -> Looper:
        return cls(config=config, callbacks=callbacks)

    @classmethod
    def factory(cls, max_attempts: int | None = None) -> Looper:
        """Create a looper with the default policy.

        Args:
            max_attempts: Optional attempt limit replacing the default of
                1000.

        Returns:
            A new looper.
        """
        looper = cls()
        if max_attempts is not None:
            looper.with_max_attempts(max_attempts)
        return looper

    @classmethod
    def loop_until_success(cls) -> Looper:
        """Create an unbounded looper that stops on the first success."""
        return (
            cls()
            .with_stop_on_success(True)
            .with_stop_on_failure(False)
            .with_infinite_loops_permitted()
        )

    @classmethod
    def loop_until_limit(cls, limit: int) -> Looper:
        """Create a looper that runs exactly ``limit`` attempts."""
        return (
            cls().with_stop_on_success(False).with_stop_on_failure(False).with_max_attempts(limit)
        )

    @classmethod
    def loop_until_success_or_limit(
        cls, limit: int | TimeoutValue = DEFAULT_MAX_ATTEMPTS
    ) -> Looper:
        """Create a looper that stops on the first success or at a limit.

        Args:
            limit: An ``int`` bounds the number of attempts. A
                ``datetime``, a ``timedelta`` or a ``float`` number of
                seconds sets a timeout instead and lifts the attempt limit.

        Returns:
            A new looper.
        """
        looper = cls.loop_until_success()
        if isinstance(limit, int) and not isinstance(limit, bool):
            return looper.with_max_attempts(limit)
        return looper.with_timeout(limit)

    @classmethod
    def loop_until_failure(cls) -> Looper:
        """Create an unbounded looper that stops on the first failure."""
        return (
            cls()
            .with_stop_on_success(False)
            .with_stop_on_failure(True)
            .with_infinite_loops_permitted()
        )

    @classmethod
    def loop_until_failure_or_limit(cls, limit: int = DEFAULT_MAX_ATTEMPTS) -> Looper:
        return cls.loop_until_failure().with_max_attempts(limit)

    @property
    def config(self) -> LoopConfig:
        return self._config

    @property
    def callbacks(self) -> CallbackConfig:
        return self._callbacks

    @property
    def state(self) -> LoopState:
        """The live loop state."""
        return self._state

    def with_max_attempts(self, max_attempts: int) -> Looper:
        """Bound the loop to ``max_attempts`` attempts.

        Raises:
            ValueError: If max_attempts is <= 0. Use
                ``with_infinite_loops_permitted()`` for an unbounded loop.
        """
        self._state.set_max_attempts_allowed(max_attempts)
        self._config = self._config.merge(max_attempts=max_attempts)
        return self

    def with_infinite_loops_permitted(self) -> Looper:
        self._state.set_infinite_loops_permitted()
        self._config = replace(self._config, max_attempts=None)
        return self

    def with_timeout(self, timeout: TimeoutValue) -> Looper:
        """Stop the loop once ``timeout`` is reached.

        Args:
            timeout: A timezone-aware ``datetime`` deadline, or a
                ``timedelta`` or number of seconds measured from the first
                attempt.

        An absolute deadline takes precedence over a relative timeout.
        Once one is set, a later relative timeout is ignored and
        ``config.timeout`` keeps reporting the deadline.
        """
        self._state.set_timeout(timeout)
        deadline = self._state.stopwatch.timeout_instant
        self._config = self._config.merge(timeout=deadline if deadline is not None else timeout)
        return self

    def with_stop_on_success(self, stop_on_success: bool) -> Looper:
        self._config = replace(self._config, stop_on_success=stop_on_success)
        return self

    def with_stop_on_failure(self, stop_on_failure: bool) -> Looper:
        self._config = replace(self._config, stop_on_failure=stop_on_failure)
        return self

    def with_action(self, action: Action) -> Looper:
        self._action = action
        return self

    def with_test(self, test: LoopTest) -> Looper:
        self._test = test
        return self

    def with_successful_test_action(self, callback: LoopCallback) -> Looper:
        self._callbacks.on_each_success = callback
        return self

    def with_failed_test_action(self, callback: LoopCallback) -> Looper:
        self._callbacks.on_each_failed = callback
        return self

    def with_all_tests_successful_action(self, callback: LoopCallback) -> Looper:
        self._callbacks.on_all_success = callback
        return self

    def with_some_tests_successful_action(self, callback: LoopCallback) -> Looper:
        self._callbacks.on_some_success = callback
        return self

    def with_all_tests_failed_action(self, callback: LoopCallback) -> Looper:
        self._callbacks.on_all_failed = callback
        return self

    def with_some_tests_failed_action(self, callback: LoopCallback) -> Looper:
        self._callbacks.on_some_failed = callback
        return self

    def loop(
        self,
        action: Action | None = None,
        test: LoopTest | None = None,
        *,
        on_success: LoopCallback | None = None,
        on_failure: LoopCallback | None = None,
    ) -> None:
        """Run the loop.

        Args:
            action: Work performed at each iteration. Replaces the
                configured action if given; defaults to doing nothing.
            test: Predicate deciding whether an iteration succeeded.
                Replaces the configured test if given; defaults to always
                False, so the loop runs until a limit.
            on_success: Optional callback registered as the
                some-tests-successful action.
            on_failure: Optional callback registered as the
                all-tests-failed action.

        Callbacks registered through ``on_success``, ``on_failure`` or the
        ``with_*_action`` methods stay registered for later calls; omitting
        them does not clear them. Build a new looper to drop them.
        """
        self._configure(action, test, on_success, on_failure)
        self._exception = None
        self._executor().run(self._action, self._test)

    def loop_with_exception_handling(
        self,
        action: ErrorReportingAction,
        test: LoopTest | None = None,
    ) -> Exception | None:
        """Run the loop with an action that can report a fatal error.

        The action returns None to continue, or an exception to stop the
        loop at once. In that case the test and the outcome callbacks are
        skipped, and the exception is returned and kept in
        ``exception``.

        Args:
            action: Work performed at each iteration.
            test: Optional predicate deciding whether an iteration
                succeeded.

        Returns:
            The exception reported by the action, or None.

        Example:
            ```pycon
            >>> from alooper import Looper
            >>> looper = Looper.factory(5)
            >>> error = looper.loop_with_exception_handling(
            ...     lambda snapshot: ValueError("broken") if snapshot.attempts == 2 else None
            ... )
            >>> error
            ValueError('broken')
            >>> looper.attempts(), looper.successful_loops(), looper.has_exception()
            (2, 1, True)

            ```
        """
        self._configure(None, test, None, None)
        self._exception = self._executor().run_with_error_handling(action, self._test)
        if self._exception is not None:
            logger.debug(
                f"Loop stopped by a fatal error after {self.attempts()} attempts: "
                f"{self._exception!r}"
            )
        return self._exception

    def has_exception(self) -> bool:
        return self._exception is not None

    @property
    def exception(self) -> Exception | None:
        """The fatal error reported by the last run, if any."""
        return self._exception

    def reset(self) -> None:
        """Prepare the looper to run again with the same configuration."""
        self._state.reset()
        self._exception = None

    def attempts(self) -> int:
        return self._state.attempts

    def successful_loops(self) -> int:
        """The number of iterations that completed their test."""
        return self._state.index

    def elapsed_time(self) -> timedelta:
        return self._state.elapsed_time()

    @property
    def start_time(self) -> datetime | None:
        return self._state.start_time

    @property
    def end_time(self) -> datetime | None:
        return self._state.end_time

    def is_limited(self) -> bool:
        return self._state.is_limited()

    def is_infinite_loops_permitted(self) -> bool:
        return not self._state.is_limited()

    def snapshot(self) -> LoopSnapshot:
        return self._state.snapshot()

    def _configure(
        self,
        action: Action | None,
        test: LoopTest | None,
        on_success: LoopCallback | None,
        on_failure: LoopCallback | None,
    ) -> None:
        if action is not None:
            self._action = action
        if test is not None:
            self._test = test
        if on_success is not None:
            self._callbacks.on_some_success = on_success
        if on_failure is not None:
            self._callbacks.on_all_failed = on_failure

    def _executor(self) -> LoopExecutor:
        return LoopExecutor(self._config, self._callbacks, self._state)
