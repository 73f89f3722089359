r"""Structured logging utilities for machine-readable log output.

This module provides a JSON log formatter and correlation IDs that tag
every log record emitted while a loop runs. It is opt-in: nothing is
configured until a handler uses ``StructuredFormatter``.

Example:
    Enable structured logging for alooper:

    ```python
    import logging
    from alooper.utils.structured_logging import StructuredFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger("alooper")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    ```

    Tag the records of one loop run:

    ```python
    from alooper import Looper
    from alooper.utils.structured_logging import correlation_id

    with correlation_id("sync-job-42"):
        Looper.loop_until_success_or_limit(10).loop(test=check_ready)
    ```
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "clear_correlation_id",
    "correlation_id",
    "get_correlation_id",
    "log_structured",
    "set_correlation_id",
]

import contextvars
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Generator

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "alooper_correlation_id", default=None
)

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_FIELDS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


def get_correlation_id() -> str | None:
    """Get the current correlation ID.

    Returns:
        The current correlation ID, or None if not set.
    """
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context.

    The ID is stored in a context variable, so it does not leak between
    threads.

    Args:
        correlation_id: The correlation ID to set (e.g. a job or trace ID).

    Example:
        ```pycon
        >>> from alooper.utils.structured_logging import (
        ...     clear_correlation_id,
        ...     get_correlation_id,
        ...     set_correlation_id,
        ... )
        >>> set_correlation_id("job-456")
        >>> get_correlation_id()
        'job-456'
        >>> clear_correlation_id()

        ```
    """
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID for the current context."""
    _correlation_id.set(None)


@contextmanager
def correlation_id(value: str) -> Generator[str, None, None]:
    """Set a correlation ID for the duration of a ``with`` block.

    The previous correlation ID is restored on exit, so blocks can nest.

    Args:
        value: The correlation ID to use inside the block.

    Example:
        ```pycon
        >>> from alooper.utils.structured_logging import correlation_id, get_correlation_id
        >>> with correlation_id("outer"):
        ...     with correlation_id("inner"):
        ...         print(get_correlation_id())
        ...     print(get_correlation_id())
        ...
        inner
        outer
        >>> get_correlation_id() is None
        True

        ```
    """
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Standard fields in the JSON output:
        - timestamp: ISO 8601 UTC timestamp with millisecond precision
        - level: Log level name
        - logger: Logger name
        - message: Log message
        - correlation_id: Optional correlation ID
        - module, function, line: Where the record originated

    Any field passed through ``extra`` is added as is, which is how the
    loop executor reports ``attempts``, ``loop_status``,
    ``successful_loops`` and ``elapsed_ms``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        current_id = get_correlation_id()
        if current_id is not None:
            log_data["correlation_id"] = current_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_FIELDS:
                log_data[key] = value

        return json.dumps(log_data, default=str)

    def formatTime(  # noqa: N802
        self, record: logging.LogRecord, datefmt: str | None = None
    ) -> str:
        """Format the record creation time as ISO 8601 in UTC.

        Args:
            record: The log record.
            datefmt: Ignored, the format is always ISO 8601.

        Returns:
            The formatted timestamp, e.g. ``2024-01-31T12:00:00.123Z``.
        """
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return created.strftime("%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z"


def log_structured(
    logger: logging.Logger,
    level: int,
    message: str,
    **extra: Any,
) -> None:
    """Log a message with structured data.

    The extra fields are included in the JSON output when the handler
    uses ``StructuredFormatter``.

    Args:
        logger: Logger to use.
        level: Log level (e.g., logging.INFO).
        message: Log message.
        **extra: Additional structured fields to include in the log.
    """
    logger.log(level, message, extra=extra)
