"""CLI progress display for deployments.

This module provides a Rich-based progress display that works with
the SyncProgressTracker from the sync engine.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .sync.progress import SyncProgressEvent, SyncProgressInfo, SyncProgressTracker
from .utils import format_size


class DeployProgressDisplay:
    """Rich-based progress display for deployments.

    Shows one bar over all remote operations, with the current phase and
    path plus uploaded/total bytes. The bar is only live while the edit
    script is being applied, so it never overlaps the hashing spinner.
    """

    def __init__(self) -> None:
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def create_tracker(self) -> SyncProgressTracker:
        """Create a SyncProgressTracker that updates this display."""
        return SyncProgressTracker(callback=self._handle_event)

    def _format_bytes(self, info: SyncProgressInfo) -> str:
        return f"{format_size(info.bytes_done)}/{format_size(info.bytes_total)}"

    def _start(self, info: SyncProgressInfo) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("[cyan]{task.fields[bytes_info]}"),
            TimeElapsedColumn(),
            refresh_per_second=4,
        )
        self._progress.start()
        self._task = self._progress.add_task(
            "Deploying",
            total=info.operations_total,
            bytes_info=self._format_bytes(info),
        )

    def _stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None

    def _handle_event(self, info: SyncProgressInfo) -> None:
        """Handle a progress event from the tracker."""
        if info.event == SyncProgressEvent.PLAN_READY:
            self._stop()
            if info.operations_total > 0:
                self._start(info)
            return

        if self._progress is None or self._task is None:
            return

        if info.event == SyncProgressEvent.OPERATION_COMPLETE:
            phase = info.phase.value if info.phase else ""
            self._progress.update(
                self._task,
                description=f"{phase}: {info.path}",
                completed=info.operations_done,
                bytes_info=self._format_bytes(info),
            )

        elif info.event == SyncProgressEvent.APPLY_COMPLETE:
            self._progress.update(
                self._task,
                description="Changes applied",
                completed=info.operations_done,
                bytes_info=self._format_bytes(info),
            )
            self._stop()

    def __enter__(self) -> "DeployProgressDisplay":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._stop()
