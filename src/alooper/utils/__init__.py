r"""Utility functions shared by the loop components."""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_correlation_id",
    "correlation_id",
    "get_correlation_id",
    "log_structured",
    "set_correlation_id",
]

from alooper.utils.structured_logging import (
    StructuredFormatter,
    clear_correlation_id,
    correlation_id,
    get_correlation_id,
    log_structured,
    set_correlation_id,
)
