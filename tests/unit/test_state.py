r"""Unit tests for the LoopState state machine."""

from __future__ import annotations

import dataclasses
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest
from coola.equality import objects_are_equal

from alooper.core.config import DEFAULT_MAX_ATTEMPTS, AttemptLimit
from alooper.state import LoopState, LoopStatus

if TYPE_CHECKING:
    from tests.conftest import FakeClock


def run_until_refused(state: LoopState, result: bool = False) -> None:
    while state.attempt():
        state.add_test_result(result)
        state.increment_index()


###############################
#     Tests for LoopState     #
###############################


def test_loop_state_defaults() -> None:
    state = LoopState()
    assert state.attempts == 0
    assert state.index == 0
    assert not state.done
    assert not state.failed
    assert state.is_limited()
    assert state.max_attempts_allowed == DEFAULT_MAX_ATTEMPTS
    assert state.all_tests_successful
    assert not state.some_tests_successful
    assert state.all_tests_failed
    assert not state.some_tests_failed
    assert state.test_results == []
    assert state.start_time is None
    assert state.end_time is None
    assert state.status is LoopStatus.RUNNING
    assert state.is_needed()


def test_loop_state_custom_limit() -> None:
    state = LoopState(limit=AttemptLimit.bounded(3))
    assert state.max_attempts_allowed == 3


def test_loop_state_attempt_counts_and_starts_stopwatch() -> None:
    state = LoopState()
    assert state.attempt()
    assert state.attempts == 1
    assert state.start_time is not None
    assert state.end_time is None


@pytest.mark.parametrize("max_attempts", [1, 2, 10])
def test_loop_state_attempt_respects_limit(max_attempts: int) -> None:
    state = LoopState()
    state.set_max_attempts_allowed(max_attempts)
    run_until_refused(state)
    assert state.attempts == max_attempts
    assert state.index == max_attempts
    assert state.status is LoopStatus.EXHAUSTED
    assert state.end_time is not None


def test_loop_state_default_limit_is_1000() -> None:
    state = LoopState()
    run_until_refused(state)
    assert state.attempts == 1000


def test_loop_state_refused_attempt_does_not_count() -> None:
    state = LoopState()
    state.set_max_attempts_allowed(1)
    assert state.attempt()
    assert not state.attempt()
    assert not state.attempt()
    assert state.attempts == 1


def test_loop_state_unbounded() -> None:
    state = LoopState()
    state.set_infinite_loops_permitted()
    assert not state.is_limited()
    assert state.max_attempts_allowed is None
    for _ in range(DEFAULT_MAX_ATTEMPTS + 5):
        assert state.attempt()
    assert state.attempts == DEFAULT_MAX_ATTEMPTS + 5


def test_loop_state_set_attempt_limit() -> None:
    state = LoopState()
    state.set_attempt_limit(AttemptLimit.unbounded())
    assert not state.is_limited()
    state.set_attempt_limit(AttemptLimit.bounded(4))
    assert state.max_attempts_allowed == 4


@pytest.mark.parametrize("max_attempts", [0, -1, -100])
def test_loop_state_set_max_attempts_rejects_non_positive(max_attempts: int) -> None:
    state = LoopState()
    with pytest.raises(ValueError, match=r"max_attempts must be > 0"):
        state.set_max_attempts_allowed(max_attempts)
    assert state.max_attempts_allowed == DEFAULT_MAX_ATTEMPTS


def test_loop_state_mark_done_stops_attempts() -> None:
    state = LoopState()
    assert state.attempt()
    state.mark_done()
    assert state.has_succeeded()
    assert state.status is LoopStatus.DONE
    assert not state.attempt()
    assert state.attempts == 1
    assert state.end_time is not None


def test_loop_state_mark_done_false_resumes() -> None:
    state = LoopState()
    state.mark_done()
    state.mark_done(False)
    assert state.is_needed()


def test_loop_state_mark_failed_stops_attempts() -> None:
    state = LoopState()
    state.mark_failed()
    assert state.has_failed()
    assert state.status is LoopStatus.FAILED
    assert not state.attempt()
    assert state.attempts == 0


def test_loop_state_needed_synonyms() -> None:
    state = LoopState()
    assert state.has_not_happened()
    assert not state.has_happened()
    assert not state.is_not_needed()
    state.mark_done()
    assert state.has_happened()
    assert state.is_not_needed()
    assert not state.has_not_happened()


def test_loop_state_done_takes_priority_over_failed() -> None:
    state = LoopState()
    state.mark_failed()
    state.mark_done()
    assert state.status is LoopStatus.DONE


def test_loop_state_explicit_outcome_takes_priority_over_timeout(clock: FakeClock) -> None:
    state = LoopState()
    state.set_timeout(timedelta(seconds=1))
    assert state.attempt()
    clock.advance(2)
    assert state.timed_out()
    state.mark_done()
    assert state.status is LoopStatus.DONE


def test_loop_state_exhausted_takes_priority_over_timeout(clock: FakeClock) -> None:
    state = LoopState()
    state.set_max_attempts_allowed(1)
    state.set_timeout(timedelta(seconds=1))
    assert state.attempt()
    clock.advance(2)
    assert state.status is LoopStatus.EXHAUSTED


def test_loop_state_timeout_measured_from_first_attempt(clock: FakeClock) -> None:
    state = LoopState()
    state.set_timeout(timedelta(seconds=3))
    clock.advance(60)
    assert state.attempt()
    assert state.timeout == clock.now + timedelta(seconds=3)
    clock.advance(2)
    assert state.attempt()
    clock.advance(1)
    assert state.status is LoopStatus.TIMED_OUT
    assert not state.attempt()
    assert state.attempts == 2
    assert state.end_time >= state.timeout


def test_loop_state_absolute_timeout_in_past_prevents_attempts(clock: FakeClock) -> None:
    state = LoopState()
    state.set_timeout(clock.now - timedelta(seconds=1))
    assert not state.attempt()
    assert state.attempts == 0


def test_loop_state_is_needed_does_not_end_stopwatch(clock: FakeClock) -> None:
    state = LoopState()
    state.set_timeout(timedelta(seconds=1))
    state.attempt()
    clock.advance(2)
    assert not state.is_needed()
    assert state.end_time is None


def test_loop_state_add_test_result_success() -> None:
    state = LoopState()
    state.add_test_result(True)
    assert state.test_results == [True]
    assert state.is_all_tests_successful()
    assert state.is_some_tests_successful()
    assert not state.is_all_tests_failed()
    assert not state.is_some_tests_failed()


def test_loop_state_add_test_result_failure() -> None:
    state = LoopState()
    state.add_test_result(False)
    assert state.test_results == [False]
    assert not state.is_all_tests_successful()
    assert not state.is_some_tests_successful()
    assert state.is_all_tests_failed()
    assert state.is_some_tests_failed()


def test_loop_state_aggregate_flags_are_monotone() -> None:
    state = LoopState()
    for result in (False, True, True):
        state.add_test_result(result)
        state.increment_index()
    assert state.test_results == [False, True, True]
    assert not state.all_tests_successful
    assert state.some_tests_successful
    assert not state.all_tests_failed
    assert state.some_tests_failed


def test_loop_state_add_test_result_coerces_to_bool() -> None:
    state = LoopState()
    state.add_test_result(1)
    assert state.test_results == [True]


def test_loop_state_add_test_result_overwrites_current_index() -> None:
    state = LoopState()
    state.add_test_result(False)
    state.add_test_result(True)
    assert state.test_results == [True]


def test_loop_state_reset() -> None:
    state = LoopState()
    state.set_max_attempts_allowed(3)
    run_until_refused(state)
    state.mark_done()
    state.reset()
    assert state.attempts == 0
    assert state.index == 0
    assert not state.done
    assert not state.failed
    assert state.start_time is None
    assert state.end_time is None
    assert state.max_attempts_allowed == 3
    assert state.all_tests_failed
    assert state.some_tests_failed
    assert state.test_results == [False, False, False]


def test_loop_state_reset_allows_rerun_to_original_limit() -> None:
    state = LoopState()
    state.set_max_attempts_allowed(5)
    run_until_refused(state)
    assert not state.attempt()
    state.reset()
    run_until_refused(state)
    assert state.attempts == 5


def test_loop_state_reset_restarts_relative_timeout(clock: FakeClock) -> None:
    state = LoopState()
    state.set_timeout(timedelta(seconds=1))
    state.attempt()
    clock.advance(5)
    assert not state.attempt()
    state.reset()
    assert state.attempt()
    assert state.timeout == clock.now + timedelta(seconds=1)


def test_loop_state_timers(clock: FakeClock) -> None:
    state = LoopState()
    state.start_timer()
    assert state.start_time == clock.now
    clock.advance(3)
    assert state.elapsed_time() == timedelta(seconds=3)
    state.stop_timer()
    clock.advance(3)
    assert state.end_time - state.start_time == timedelta(seconds=3)
    assert state.elapsed_time() == timedelta(seconds=3)


def test_loop_state_elapsed_time_unstarted() -> None:
    assert LoopState().elapsed_time() == timedelta(0)


def test_loop_state_copy_is_independent() -> None:
    state = LoopState()
    state.attempt()
    state.add_test_result(True)
    copied = state.copy()
    state.attempt()
    state.add_test_result(False)
    state.stop_timer()
    assert copied.attempts == 1
    assert copied.test_results == [True]
    assert copied.end_time is None
    assert copied.stopwatch is not state.stopwatch
    assert copied.all_tests_successful


def test_loop_state_copy_matches_original(clock: FakeClock) -> None:
    state = LoopState()
    state.set_max_attempts_allowed(7)
    state.attempt()
    state.add_test_result(False)
    state.increment_index()
    assert objects_are_equal(state.copy().snapshot(), state.snapshot())


def test_loop_state_snapshot() -> None:
    state = LoopState()
    state.set_max_attempts_allowed(2)
    state.attempt()
    state.add_test_result(True)
    state.increment_index()
    snapshot = state.snapshot()
    assert snapshot.attempts == 1
    assert snapshot.index == 1
    assert snapshot.status is LoopStatus.RUNNING
    assert snapshot.limited
    assert snapshot.max_attempts_allowed == 2
    assert snapshot.test_results == (True,)
    assert snapshot.start_time == state.start_time
    assert snapshot.end_time is None


def test_loop_state_snapshot_elapsed_time_while_running(clock: FakeClock) -> None:
    state = LoopState()
    state.attempt()
    clock.advance(2.5)
    snapshot = state.snapshot()
    assert snapshot.end_time is None
    assert snapshot.elapsed_time == timedelta(seconds=2.5)


def test_loop_state_snapshot_elapsed_time_after_stop(clock: FakeClock) -> None:
    state = LoopState()
    state.attempt()
    clock.advance(4)
    state.stop_timer()
    clock.advance(10)
    assert state.snapshot().elapsed_time == timedelta(seconds=4)


def test_loop_state_snapshot_elapsed_time_unstarted() -> None:
    assert LoopState().snapshot().elapsed_time == timedelta(0)


def test_loop_state_snapshot_is_frozen() -> None:
    snapshot = LoopState().snapshot()
    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.attempts = 5


def test_loop_state_snapshot_does_not_follow_state() -> None:
    state = LoopState()
    snapshot = state.snapshot()
    state.attempt()
    state.add_test_result(True)
    assert snapshot.attempts == 0
    assert snapshot.test_results == ()


def test_loop_state_repr() -> None:
    assert repr(LoopState()) == "LoopState(attempts=0, index=0, status=running, limit=1000)"
