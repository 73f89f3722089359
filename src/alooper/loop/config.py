r"""Configuration dataclass for loop outcome callbacks."""

from __future__ import annotations

__all__ = ["CallbackConfig"]

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from alooper.callbacks import LoopCallback


@dataclass
class CallbackConfig:
    """Configuration for callbacks.

    Per-iteration callbacks run after the test of an iteration. Aggregate
    callbacks run once, after the loop ends, for every aggregate outcome
    that holds; several of them can fire for the same run.

    Attributes:
        on_each_success: Optional callback invoked after each successful test.
        on_each_failed: Optional callback invoked after each failed test.
        on_all_success: Optional callback invoked if all tests succeeded.
        on_all_failed: Optional callback invoked if all tests failed.
        on_some_success: Optional callback invoked if any test succeeded.
        on_some_failed: Optional callback invoked if any test failed.
    """

    on_each_success: LoopCallback | None = None
    on_each_failed: LoopCallback | None = None
    on_all_success: LoopCallback | None = None
    on_all_failed: LoopCallback | None = None
    on_some_success: LoopCallback | None = None
    on_some_failed: LoopCallback | None = None

    def merge(self, **overrides: Any) -> CallbackConfig:
        """Create a new config with the non-None overrides applied."""
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def to_dict(self) -> dict[str, Any]:
        return {field.name: getattr(self, field.name) for field in fields(self)}
