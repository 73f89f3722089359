r"""Loop executor driving the iterations of a bounded loop.

This module provides the LoopExecutor class that runs an action and a
test repeatedly while the loop state permits another attempt, records
each test result and fires the outcome callbacks.
"""

from __future__ import annotations

__all__ = ["LoopExecutor"]

import logging
from typing import TYPE_CHECKING

from alooper.loop.config import CallbackConfig
from alooper.loop.manager import CallbackManager
from alooper.state import LoopState
from alooper.utils.structured_logging import log_structured

if TYPE_CHECKING:
    from alooper.callbacks import Action, ErrorReportingAction, LoopTest
    from alooper.core.config import LoopConfig

logger: logging.Logger = logging.getLogger(__name__)


class LoopExecutor:
    """Executes the iterations of a bounded loop.

    Each iteration runs the action, then the test, records the test
    result in the state, applies the stop-on-success and stop-on-failure
    policy, and invokes the matching per-iteration callback. Once the
    state refuses another attempt, the stopwatch is stopped and the
    aggregate callbacks are invoked.

    The action, the test and the callbacks all receive a snapshot of the
    state. Exceptions they raise propagate to the caller after the
    stopwatch has been stopped.

    Attributes:
        config: Loop configuration. Its attempt limit and timeout only
            seed a state created by the executor; the stop policy is read
            at every iteration.
        state: The loop state being driven.
        callbacks: Manager for invoking callbacks.

    Example:
        ```pycon
        >>> from alooper.core.config import LoopConfig
        >>> from alooper.loop import CallbackConfig, LoopExecutor
        >>> from alooper.state import LoopState
        >>> state = LoopState()
        >>> state.set_max_attempts_allowed(4)
        >>> executor = LoopExecutor(LoopConfig(), CallbackConfig(), state)
        >>> executor.run(lambda snapshot: None, lambda snapshot: snapshot.attempts == 2)
        >>> state.attempts, state.test_results
        (2, [False, True])

        ```
    """

    def __init__(
        self,
        loop_config: LoopConfig,
        callback_config: CallbackConfig | None = None,
        state: LoopState | None = None,
    ) -> None:
        self.config = loop_config
        if state is None:
            state = LoopState(limit=loop_config.attempt_limit)
            if loop_config.timeout is not None:
                state.set_timeout(loop_config.timeout)
        self.state = state
        self.callbacks: CallbackManager = CallbackManager(
            callback_config if callback_config is not None else CallbackConfig()
        )

    def run(self, action: Action, test: LoopTest) -> None:
        """Run the loop until the state refuses another attempt.

        Args:
            action: Work performed at each iteration.
            test: Predicate deciding whether an iteration succeeded.
        """
        try:
            while self.state.attempt():
                action(self.state.snapshot())
                self._record(test)
        finally:
            self.state.stop_timer()
        self._complete()

    def run_with_error_handling(
        self, action: ErrorReportingAction, test: LoopTest
    ) -> Exception | None:
        """Run the loop with an action that can report a fatal error.

        The first time the action returns an exception, the loop stops
        immediately: the test is not run for that iteration, no outcome
        callback is invoked and the exception is returned. Exhausting the
        attempts or timing out is not an error and returns None.

        Args:
            action: Work performed at each iteration. Returns None on
                success or an exception describing a fatal error.
            test: Predicate deciding whether an iteration succeeded.

        Returns:
            The exception returned by the action, or None.
        """
        try:
            while self.state.attempt():
                error = action(self.state.snapshot())
                if error is not None:
                    logger.debug(
                        f"Loop action reported a fatal error on attempt "
                        f"{self.state.attempts}: {error!r}"
                    )
                    return error
                self._record(test)
        finally:
            self.state.stop_timer()
        self._complete()
        return None

    def _record(self, test: LoopTest) -> None:
        result = bool(test(self.state.snapshot()))
        self.state.add_test_result(result)
        if result and self.config.stop_on_success:
            logger.debug(f"Loop test succeeded on attempt {self.state.attempts}, stopping")
            self.state.mark_done()
        elif not result and self.config.stop_on_failure:
            logger.debug(f"Loop test failed on attempt {self.state.attempts}, stopping")
            self.state.mark_failed()
        self.callbacks.on_test_result(self.state, result)
        self.state.increment_index()

    def _complete(self) -> None:
        state = self.state
        log_structured(
            logger,
            logging.DEBUG,
            f"Loop ended after {state.attempts} attempts ({state.status.value})",
            attempts=state.attempts,
            loop_status=state.status.value,
            successful_loops=state.index,
            elapsed_ms=int(state.elapsed_time().total_seconds() * 1000),
        )
        self.callbacks.on_loop_end(state)
