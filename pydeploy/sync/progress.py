"""Progress tracking for deployments.

The engine reports to a :class:`SyncProgressTracker`, which turns the
reports into :class:`SyncProgressInfo` events for a display callback.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .operations import OperationResult, OperationStatus


class PhaseEvent(str, Enum):
    """Phases of applying an edit script, in execution order."""

    CREATE_FOLDER = "create folder"
    UPLOAD = "upload"
    REPLACE = "replace"
    DELETE_FILE = "delete file"
    DELETE_FOLDER = "delete folder"


class SyncProgressEvent(str, Enum):
    """Events sent to the progress callback."""

    PLAN_READY = "plan_ready"
    OPERATION_COMPLETE = "operation_complete"
    APPLY_COMPLETE = "apply_complete"


@dataclass
class SyncProgressInfo:
    """Snapshot of deployment progress."""

    event: SyncProgressEvent
    phase: Optional[PhaseEvent] = None
    path: str = ""
    operations_done: int = 0
    operations_total: int = 0
    bytes_done: int = 0
    bytes_total: int = 0


class SyncProgressTracker:
    """Counts completed operations and transferred bytes."""

    def __init__(
        self, callback: Optional[Callable[[SyncProgressInfo], None]] = None
    ) -> None:
        self.callback = callback
        self.operations_done = 0
        self.operations_total = 0
        self.bytes_done = 0
        self.bytes_total = 0

    def _emit(
        self,
        event: SyncProgressEvent,
        phase: Optional[PhaseEvent] = None,
        path: str = "",
    ) -> None:
        if self.callback is None:
            return
        self.callback(
            SyncProgressInfo(
                event=event,
                phase=phase,
                path=path,
                operations_done=self.operations_done,
                operations_total=self.operations_total,
                bytes_done=self.bytes_done,
                bytes_total=self.bytes_total,
            )
        )

    def on_plan(self, operations_total: int, bytes_total: int) -> None:
        """Reset the counters for the operations about to be applied."""
        self.operations_done = 0
        self.operations_total = operations_total
        self.bytes_done = 0
        self.bytes_total = bytes_total
        self._emit(SyncProgressEvent.PLAN_READY)

    def on_operation(self, phase: PhaseEvent, result: OperationResult) -> None:
        self.operations_done += 1
        if (
            phase in (PhaseEvent.UPLOAD, PhaseEvent.REPLACE)
            and result.status == OperationStatus.APPLIED
        ):
            self.bytes_done += result.entry.size or 0
        self._emit(SyncProgressEvent.OPERATION_COMPLETE, phase, result.entry.name)

    def on_complete(self) -> None:
        self._emit(SyncProgressEvent.APPLY_COMPLETE)
