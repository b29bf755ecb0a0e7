"""Cooperative checkpoints shared by the long-running pixel loops.

Each loop does a bounded amount of work, then reaches a checkpoint:
progress is reported, the interpreter is handed to other threads so a
host UI can repaint or set the cancel flag, and the flag is polled.
"""

from __future__ import annotations

import time
from typing import Optional

from tilelut.core.types import CancelCheck, ProgressCallback
from tilelut.errors import Cancelled


def check_cancel(cancel_check: Optional[CancelCheck]) -> None:
    """Raise if cancellation requested."""
    if cancel_check is not None and cancel_check():
        raise Cancelled("Cancelled.")


def emit_progress(
    callback: Optional[ProgressCallback],
    stage: str,
    fraction: float,
    message: str = "",
) -> None:
    """Emit progress update if callback is provided."""
    if callback is not None:
        callback(stage, fraction, message)


def yield_to_host() -> None:
    """Give other threads a chance to run before the loop resumes."""
    time.sleep(0)


def checkpoint(
    callback: Optional[ProgressCallback],
    cancel_check: Optional[CancelCheck],
    stage: str,
    fraction: float,
    message: str = "",
) -> None:
    """Report progress, yield, then poll for cancellation."""
    emit_progress(callback, stage, fraction, message)
    yield_to_host()
    check_cancel(cancel_check)
