"""Task hand-off between a Device and whoever schedules work on it."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from periphctl.core.device import Device

Task = Callable[["Device"], Any]


class TaskExecutor(Protocol):
    def execute(self, device: Device, task: Any) -> Any:
        """Run task against device and return whatever the task produces."""


class InlineExecutor:
    """Runs each task right away, without queueing or retries."""

    def execute(self, device: Device, task: Task) -> Any:
        return task(device)
