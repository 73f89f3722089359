r"""Loop package driving bounded loops.

Public API:
    - CallbackConfig: Configuration for outcome callbacks
    - CallbackManager: Manager for callback invocations
    - LoopExecutor: Executor running the iterations of a loop
"""

from __future__ import annotations

__all__ = ["CallbackConfig", "CallbackManager", "LoopExecutor"]

from alooper.loop.config import CallbackConfig
from alooper.loop.executor import LoopExecutor
from alooper.loop.manager import CallbackManager
