r"""Callback manager for orchestrating loop lifecycle events.

This module provides the CallbackManager class that handles invocation
of user-defined callbacks after each iteration and once the loop ends.
"""

from __future__ import annotations

__all__ = ["CallbackManager"]

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from alooper.loop.config import CallbackConfig
    from alooper.state import LoopState

logger: logging.Logger = logging.getLogger(__name__)


class CallbackManager:
    """Manages callback invocations during the loop lifecycle.

    Each callback receives a fresh snapshot of the loop state, never the
    live state. Exceptions raised by callbacks propagate to the caller of
    the loop.

    Attributes:
        callbacks: Configuration containing callback functions for lifecycle events.
    """

    def __init__(self, callbacks: CallbackConfig) -> None:
        self.callbacks = callbacks

    def on_test_result(self, state: LoopState, result: bool) -> None:
        """Invoke the per-iteration callback matching a test result.

        Args:
            state: The live loop state.
            result: The test result of the iteration.
        """
        callback = self.callbacks.on_each_success if result else self.callbacks.on_each_failed
        if callback is not None:
            callback(state.snapshot())

    def on_loop_end(self, state: LoopState) -> None:
        """Invoke every aggregate callback whose outcome holds.

        The callbacks are considered in the order all-success, all-failed,
        some-success, some-failed. They are independent notifications, so
        a single successful iteration fires both all-success and
        some-success.

        Args:
            state: The live loop state, after the loop ended.
        """
        outcomes = (
            ("all_success", state.all_tests_successful, self.callbacks.on_all_success),
            ("all_failed", state.all_tests_failed, self.callbacks.on_all_failed),
            ("some_success", state.some_tests_successful, self.callbacks.on_some_success),
            ("some_failed", state.some_tests_failed, self.callbacks.on_some_failed),
        )
        for name, holds, callback in outcomes:
            if holds and callback is not None:
                logger.debug(f"Invoking on_{name} callback after {state.attempts} attempts")
                callback(state.snapshot())
