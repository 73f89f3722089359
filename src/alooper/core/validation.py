r"""Parameter validation utilities for loop configuration.

This module provides validation functions for loop parameters to ensure
they meet the required constraints before being used by a loop.
"""

from __future__ import annotations

__all__ = ["validate_max_attempts", "validate_timeout"]

import math
from datetime import datetime, timedelta
from typing import Any


def validate_max_attempts(max_attempts: int) -> None:
    """Validate the maximum number of attempts.

    Args:
        max_attempts: Maximum number of attempts a loop may start.
            Must be an integer > 0. Unbounded loops are configured
            explicitly, not with a non-positive value.

    Raises:
        TypeError: If max_attempts is not an integer.
        ValueError: If max_attempts is <= 0.

    Example:
        ```pycon
        >>> from alooper.core.validation import validate_max_attempts
        >>> validate_max_attempts(10)
        >>> validate_max_attempts(0)
        Traceback (most recent call last):
        ...
        ValueError: max_attempts must be > 0, got 0

        ```
    """
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int):
        msg = f"max_attempts must be an int, got {type(max_attempts).__qualname__}"
        raise TypeError(msg)
    if max_attempts <= 0:
        msg = f"max_attempts must be > 0, got {max_attempts}"
        raise ValueError(msg)


def validate_timeout(timeout: Any) -> None:
    """Validate a loop timeout.

    Args:
        timeout: Either a timezone-aware ``datetime`` (absolute timeout),
            a ``timedelta`` or a number of seconds (relative timeout).
            Relative timeouts must be finite and >= 0.

    Raises:
        TypeError: If timeout has an unsupported type.
        ValueError: If timeout is a naive datetime, a negative duration
            or a non-finite number of seconds.

    Example:
        ```pycon
        >>> from datetime import timedelta
        >>> from alooper.core.validation import validate_timeout
        >>> validate_timeout(2.5)
        >>> validate_timeout(timedelta(seconds=3))
        >>> validate_timeout(-1)
        Traceback (most recent call last):
        ...
        ValueError: timeout must be >= 0, got -1

        ```
    """
    if isinstance(timeout, datetime):
        if timeout.tzinfo is None or timeout.utcoffset() is None:
            msg = f"timeout must be a timezone-aware datetime, got {timeout!r}"
            raise ValueError(msg)
        return
    if isinstance(timeout, timedelta):
        if timeout < timedelta(0):
            msg = f"timeout must be >= 0, got {timeout}"
            raise ValueError(msg)
        return
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        msg = (
            "timeout must be a datetime, a timedelta or a number of seconds, "
            f"got {type(timeout).__qualname__}"
        )
        raise TypeError(msg)
    if isinstance(timeout, float) and not math.isfinite(timeout):
        msg = f"timeout must be a finite number of seconds, got {timeout}"
        raise ValueError(msg)
    if timeout < 0:
        msg = f"timeout must be >= 0, got {timeout}"
        raise ValueError(msg)
