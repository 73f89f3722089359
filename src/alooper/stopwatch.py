r"""Stopwatch used to time loop runs and enforce timeouts.

The stopwatch records a start and an end instant and optionally carries a
timeout, either as an absolute instant or as a duration relative to the
moment timing actually starts. Instants are timezone-aware UTC ``datetime``
objects and durations are ``timedelta`` objects.

Example:
    ```pycon
    >>> from datetime import timedelta
    >>> from alooper.stopwatch import Stopwatch
    >>> watch = Stopwatch()
    >>> watch.set_timeout(timedelta(seconds=30))
    >>> watch.timed_out()
    False
    >>> watch.duration() >= timedelta(0)
    True

    ```
"""

from __future__ import annotations

__all__ = ["Stopwatch", "TimeoutValue", "utc_now"]

import copy
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, TypeVar, Union

from alooper.core.validation import validate_timeout

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")

TimeoutValue = Union[datetime, timedelta, float, int]


def utc_now() -> datetime:
    """Return the current instant as a timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


class Stopwatch:
    r"""Track the start and end instants of a timed operation.

    A stopwatch created with ``Stopwatch()`` starts immediately. A
    stopwatch created with ``Stopwatch.unstarted()`` has no start time
    until ``start()`` or ``start_if_needed()`` is called, which lets a
    relative timeout be measured from first use instead of from
    construction.

    The end time is set at most once: ``end()`` is idempotent and
    ``duration()`` finalizes the stopwatch.

    Attributes:
        start_time: The instant timing started, or None if unstarted.
        end_time: The instant timing ended, or None while running.
        timeout_instant: The absolute timeout, or None.
        timeout_duration: The timeout relative to the start time, or None.

    Example:
        ```pycon
        >>> from datetime import timedelta
        >>> from alooper.stopwatch import Stopwatch
        >>> watch = Stopwatch.unstarted()
        >>> watch.set_timeout(timedelta(minutes=1))
        >>> watch.timeout is None
        True
        >>> watch.start_if_needed()
        >>> watch.timeout - watch.start_time
        datetime.timedelta(seconds=60)

        ```
    """

    def __init__(self) -> None:
        self.start_time: datetime | None = utc_now()
        self.end_time: datetime | None = None
        self.timeout_instant: datetime | None = None
        self.timeout_duration: timedelta | None = None

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(start_time={self.start_time}, "
            f"end_time={self.end_time}, timeout={self.timeout})"
        )

    @classmethod
    def unstarted(cls) -> Stopwatch:
        """Create a stopwatch that has not started timing yet.

        Returns:
            A stopwatch whose start time is None.
        """
        watch = cls()
        watch.start_time = None
        return watch

    @property
    def timeout(self) -> datetime | None:
        """The instant at which the stopwatch times out.

        An absolute timeout instant takes precedence. Otherwise a
        relative timeout is resolved against the start time, so it is
        None until the stopwatch starts. A relative timeout ending past
        ``datetime.max`` is never reached and also resolves to None.
        """
        if self.timeout_instant is not None:
            return self.timeout_instant
        if self.timeout_duration is None or self.start_time is None:
            return None
        try:
            return self.start_time + self.timeout_duration
        except OverflowError:
            return None

    @property
    def is_started(self) -> bool:
        return self.start_time is not None

    @property
    def is_ended(self) -> bool:
        return self.end_time is not None

    def start(self) -> None:
        """Start timing now, discarding any previous end time."""
        self.restart()

    def start_if_needed(self) -> None:
        """Start timing unless the stopwatch is already started."""
        if self.start_time is None:
            self.start_time = utc_now()

    def end(self) -> None:
        """Record the end time if it has not been recorded yet."""
        if self.end_time is None:
            self.end_time = utc_now()

    def stop(self) -> None:
        self.end()

    def set_timeout(self, timeout: TimeoutValue) -> None:
        """Configure the timeout of the stopwatch.

        Args:
            timeout: A timezone-aware ``datetime`` sets the absolute
                timeout instant. A ``timedelta`` or a number of seconds
                sets a timeout relative to the start time.

        Raises:
            TypeError: If ``timeout`` has an unsupported type.
            ValueError: If ``timeout`` is a naive datetime, a negative
                duration or a non-finite number of seconds.
        """
        validate_timeout(timeout)
        if isinstance(timeout, datetime):
            self.timeout_instant = timeout
        elif isinstance(timeout, timedelta):
            self.timeout_duration = timeout
        else:
            try:
                self.timeout_duration = timedelta(seconds=timeout)
            except OverflowError:
                self.timeout_duration = timedelta.max

    def timed_out(self) -> bool:
        """Indicate whether the timeout instant has been reached.

        This is a pure query: it never modifies the stopwatch. Use
        ``end_if_timed_out()`` to also freeze the end time.

        Returns:
            False if no timeout instant is known, otherwise True if the
            current time is at or after the timeout instant.
        """
        timeout = self.timeout
        if timeout is None:
            return False
        return utc_now() >= timeout

    def end_if_timed_out(self) -> bool:
        """End the stopwatch if the timeout instant has been reached.

        The recorded end time is the time of this call, so it can trail
        the exact timeout instant by however long it took to observe it.

        Returns:
            True if the stopwatch timed out.
        """
        if self.timed_out():
            self.end()
            return True
        return False

    def duration(self) -> timedelta:
        """Finalize the stopwatch and return the elapsed time.

        Returns:
            The time between start and end, or zero if the stopwatch was
            never started.
        """
        self.end()
        if self.start_time is None:
            return timedelta(0)
        return self.end_time - self.start_time

    def split_time(self) -> timedelta:
        """Return the time elapsed so far without ending the stopwatch."""
        if self.start_time is None:
            return timedelta(0)
        return (self.end_time or utc_now()) - self.start_time

    def lap_time(self) -> timedelta:
        return self.split_time()

    def restart(self) -> None:
        """Clear the end time and start timing again now.

        The timeout configuration is kept; a relative timeout is measured
        from the new start time.
        """
        self.end_time = None
        self.start_time = utc_now()

    def reset(self) -> None:
        self.restart()

    def blank(self) -> None:
        """Clear both the start and the end time."""
        self.start_time = None
        self.end_time = None

    def time(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Time a single call of ``func``.

        Args:
            func: The callable to time.
            *args: Positional arguments passed to ``func``.
            **kwargs: Keyword arguments passed to ``func``.

        Returns:
            The value returned by ``func``.

        Example:
            ```pycon
            >>> from alooper.stopwatch import Stopwatch
            >>> watch = Stopwatch()
            >>> watch.time(sum, [1, 2, 3])
            6
            >>> watch.is_ended
            True

            ```
        """
        self.restart()
        try:
            return func(*args, **kwargs)
        finally:
            self.stop()

    def copy(self) -> Stopwatch:
        """Return an independent copy of the stopwatch."""
        return copy.copy(self)
