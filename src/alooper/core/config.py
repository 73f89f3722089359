r"""Configuration dataclasses and defaults for loops.

This module provides the default loop policy, the attempt limit type
and a dataclass-based configuration object used to build a ``Looper``.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_STOP_ON_FAILURE",
    "DEFAULT_STOP_ON_SUCCESS",
    "AttemptLimit",
    "LoopConfig",
]

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from alooper.core.validation import validate_max_attempts, validate_timeout

if TYPE_CHECKING:
    from alooper.stopwatch import TimeoutValue

# Default maximum number of attempts
# Guards against accidental infinite loops when no limit is configured
DEFAULT_MAX_ATTEMPTS = 1000

# By default a loop stops on its first successful test
DEFAULT_STOP_ON_SUCCESS = True

# By default a failed test is recorded and the loop keeps going
DEFAULT_STOP_ON_FAILURE = False


@dataclass(frozen=True)
class AttemptLimit:
    """Bound on the number of attempts a loop may start.

    A limit is either bounded by a positive number of attempts or
    unbounded. Use the ``bounded`` and ``unbounded`` constructors rather
    than encoding "no limit" in the sign of an integer.

    Args:
        max_attempts: The maximum number of attempts, or None for an
            unbounded loop.

    Example:
        ```pycon
        >>> from alooper.core.config import AttemptLimit
        >>> limit = AttemptLimit.bounded(3)
        >>> limit.allows(2), limit.allows(3)
        (True, False)
        >>> AttemptLimit.unbounded().allows(10**9)
        True

        ```
    """

    max_attempts: int | None = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        if self.max_attempts is not None:
            validate_max_attempts(self.max_attempts)

    @classmethod
    def bounded(cls, max_attempts: int) -> AttemptLimit:
        return cls(max_attempts=max_attempts)

    @classmethod
    def unbounded(cls) -> AttemptLimit:
        return cls(max_attempts=None)

    @property
    def is_bounded(self) -> bool:
        return self.max_attempts is not None

    def allows(self, attempts: int) -> bool:
        """Indicate whether another attempt may start.

        Args:
            attempts: The number of attempts already started.

        Returns:
            True if starting attempt number ``attempts + 1`` is permitted.
        """
        return self.max_attempts is None or attempts < self.max_attempts


@dataclass
class LoopConfig:
    """Configuration for the termination policy of a loop.

    Args:
        stop_on_success: Whether a successful test ends the loop.
        stop_on_failure: Whether a failed test ends the loop.
        max_attempts: Maximum number of attempts, must be > 0. Use None
            for an unbounded loop.
        timeout: Optional timeout. A timezone-aware ``datetime`` is an
            absolute deadline, a ``timedelta`` or a number of seconds is
            measured from the first attempt.

    Example:
        ```pycon
        >>> from alooper.core.config import LoopConfig
        >>> config = LoopConfig()
        >>> config.max_attempts
        1000
        >>> config.merge(max_attempts=5).max_attempts
        5
        >>> config.max_attempts  # Original unchanged
        1000

        ```
    """

    stop_on_success: bool = DEFAULT_STOP_ON_SUCCESS
    stop_on_failure: bool = DEFAULT_STOP_ON_FAILURE
    max_attempts: int | None = DEFAULT_MAX_ATTEMPTS
    timeout: TimeoutValue | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            TypeError: If a parameter has an unsupported type.
            ValueError: If any parameter fails validation.
        """
        if self.max_attempts is not None:
            validate_max_attempts(self.max_attempts)
        if self.timeout is not None:
            validate_timeout(self.timeout)

    @property
    def attempt_limit(self) -> AttemptLimit:
        return AttemptLimit(max_attempts=self.max_attempts)

    def merge(self, **overrides: Any) -> LoopConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied, so ``max_attempts``
        cannot be lifted to unbounded through ``merge``.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new LoopConfig instance with overrides applied.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary format.

        Returns:
            Dictionary with the loop configuration parameters.
        """
        return {
            "stop_on_success": self.stop_on_success,
            "stop_on_failure": self.stop_on_failure,
            "max_attempts": self.max_attempts,
            "timeout": self.timeout,
        }
