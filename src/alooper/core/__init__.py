r"""Core configuration and validation shared by the loop components."""

from __future__ import annotations

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_STOP_ON_FAILURE",
    "DEFAULT_STOP_ON_SUCCESS",
    "AttemptLimit",
    "LoopConfig",
    "validate_max_attempts",
    "validate_timeout",
]

from alooper.core.config import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_STOP_ON_FAILURE,
    DEFAULT_STOP_ON_SUCCESS,
    AttemptLimit,
    LoopConfig,
)
from alooper.core.validation import validate_max_attempts, validate_timeout
