"""Core sync engine: diffs inventories and applies the result to the server."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..exceptions import (
    DeployNotFoundError,
    DeployPermissionError,
    DeployStateDecodeError,
    DeploySyncError,
    DeployTransferError,
)
from ..models import EditScript, Entry, Inventory
from ..output import OutputFormatter
from ..timings import Timings
from ..utils import format_size, format_timestamp_ms, pluralize
from .comparator import HashDiff
from .ignore import IncludeExcludeFilter
from .operations import OperationResult, OperationStatus, SyncOperations
from .progress import PhaseEvent, SyncProgressTracker
from .protocols import TransferClientProtocol
from .scanner import DirectoryScanner
from .state import decode_inventory, write_state_file
from .target import DeployTarget

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 54


Operation = Callable[[Entry], OperationResult]


@dataclass
class AppliedResult:
    """What :meth:`SyncEngine.apply` did to the server."""

    results: list[OperationResult] = field(default_factory=list)

    bytes_uploaded: int = 0
    """Bytes sent by the upload and replace phases"""

    def count(self, status: OperationStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def applied(self) -> int:
        return self.count(OperationStatus.APPLIED)

    @property
    def already_absent(self) -> int:
        return self.count(OperationStatus.ALREADY_ABSENT)


@dataclass
class DeployResult:
    """Outcome of a full deployment run."""

    script: EditScript
    applied: Optional[AppliedResult] = None
    bootstrap: bool = False
    dry_run: bool = False
    state_saved: bool = False
    timings: Timings = field(default_factory=Timings)

    @property
    def bytes_transferred(self) -> int:
        return self.applied.bytes_uploaded if self.applied else 0

    def to_dict(self) -> dict:
        return {
            "upload": [e.name for e in self.script.upload],
            "replace": [e.name for e in self.script.replace],
            "delete": [e.name for e in self.script.delete],
            "size_upload": self.script.size_upload,
            "size_replace": self.script.size_replace,
            "size_delete": self.script.size_delete,
            "bootstrap": self.bootstrap,
            "dry_run": self.dry_run,
            "state_saved": self.state_saved,
            "timings": self.timings.as_dict(),
        }


class SyncEngine:
    """Deploys a local tree to a remote store using a stored inventory."""

    def __init__(
        self,
        client: TransferClientProtocol,
        output: Optional[OutputFormatter] = None,
        max_workers: int = 1,
        progress_tracker: Optional[SyncProgressTracker] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Transfer client (not yet connected)
            output: Output formatter for displaying progress/status
            max_workers: Number of threads used to hash local files
            progress_tracker: Receives plan and per-operation progress
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.max_workers = max_workers
        self.progress_tracker = progress_tracker
        self.diff_tool = HashDiff()

    def build_inventory(self, target: DeployTarget) -> Inventory:
        """Scan and hash the local tree of a target."""
        scanner = DirectoryScanner(
            IncludeExcludeFilter(include=target.include, exclude=target.exclude),
            max_workers=self.max_workers,
            output=self.output,
        )
        if self.output.quiet or self.output.json_output:
            return scanner.build_inventory(target.local, [target.state_name])

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            task = progress.add_task("Hashing local files...", total=None)
            inventory = scanner.build_inventory(target.local, [target.state_name])
            progress.update(task, description=f"Found {len(inventory)} entries")
        return inventory

    def load_previous_inventory(self, state_name: str) -> tuple[Inventory, bool]:
        """Fetch and decode the state document from the server.

        A missing or unreadable document means this is the first deployment:
        the previous inventory is empty so everything gets uploaded.

        Args:
            state_name: Root-relative path of the state document

        Returns:
            Tuple of (previous inventory, bootstrap flag)
        """
        try:
            previous = decode_inventory(self.client.download_to_memory(state_name))
        except (DeployNotFoundError, DeployStateDecodeError) as e:
            logger.info(f"No usable state document: {e}")
        except DeployTransferError as e:
            logger.warning(f"Could not download state document: {e}")
        else:
            self.output.info(SEPARATOR)
            self.output.info(
                f"Last published on 📅 {format_timestamp_ms(previous.generated_time)}"
            )
            return previous, False

        self.output.info(SEPARATOR)
        self.output.info(
            f'No file exists on the server "{state_name}" - '
            "this must be your first publish! 🎉"
        )
        self.output.info(
            "The first publish will take a while... but once the initial sync "
            "is done only differences are published!"
        )
        self.output.info(
            "If you get this message and its NOT your first publish, "
            "something is wrong."
        )
        return Inventory.empty(), True

    def apply(
        self,
        script: EditScript,
        operations: SyncOperations,
        state_name: Optional[str] = None,
    ) -> AppliedResult:
        """Apply an edit script in the fixed phase order.

        Folders are created first, then new files are uploaded, then changed
        files are overwritten, then removed files and finally removed folders
        (deepest first) are deleted. The state document is skipped in every
        phase; it is written separately once everything else succeeded.

        Args:
            script: Edit script to apply
            operations: Per-entry operations bound to the connected client
            state_name: Root-relative path of the state document

        Returns:
            AppliedResult listing every operation outcome

        Raises:
            DeploySyncError: On the first operation that fails. Entries
                applied before it stay applied.
        """

        def keep(entries: tuple[Entry, ...]) -> list[Entry]:
            return [e for e in entries if e.name != state_name]

        deleted_folders = sorted(
            keep(script.folders(script.delete)),
            key=lambda e: (-e.depth, e.name),
        )
        phases: list[tuple[PhaseEvent, list[Entry], Operation]] = [
            (
                PhaseEvent.CREATE_FOLDER,
                keep(script.folders(script.upload)),
                operations.create_folder,
            ),
            (
                PhaseEvent.UPLOAD,
                keep(script.files(script.upload)),
                operations.upload_file,
            ),
            # Overwrites run after new uploads; the old file stays live until then
            (
                PhaseEvent.REPLACE,
                keep(script.files(script.replace)),
                operations.upload_file,
            ),
            (
                PhaseEvent.DELETE_FILE,
                keep(script.files(script.delete)),
                operations.remove_file,
            ),
            (PhaseEvent.DELETE_FOLDER, deleted_folders, operations.remove_folder),
        ]

        if self.progress_tracker is not None:
            self.progress_tracker.on_plan(
                sum(len(entries) for _, entries, _ in phases),
                sum(
                    entry.size or 0
                    for phase, entries, _ in phases
                    if phase in (PhaseEvent.UPLOAD, PhaseEvent.REPLACE)
                    for entry in entries
                ),
            )

        applied = AppliedResult()
        for phase, entries, operation in phases:
            for entry in entries:
                result = operation(entry)
                applied.results.append(result)

                if result.status == OperationStatus.FAILED:
                    assert result.error is not None
                    self._report_failure(phase, entry, result.error, applied)
                    raise DeploySyncError(entry.name, phase.value, result.error)

                if result.status == OperationStatus.ALREADY_ABSENT:
                    logger.debug(f"{entry.name} was already absent on the server")
                elif phase in (PhaseEvent.UPLOAD, PhaseEvent.REPLACE):
                    applied.bytes_uploaded += entry.size or 0

                if self.progress_tracker is not None:
                    self.progress_tracker.on_operation(phase, result)

        if self.progress_tracker is not None:
            self.progress_tracker.on_complete()
        return applied

    def _report_failure(
        self,
        phase: PhaseEvent,
        entry: Entry,
        error: DeployTransferError,
        applied: AppliedResult,
    ) -> None:
        done = len(applied.results) - 1
        logger.error(f"{phase.value} failed for {entry.name}: {error}")
        if isinstance(error, DeployPermissionError):
            self.output.warning(
                f"Error {error.code}, you don't have access to upload {entry.name}"
            )
        self.output.warning(
            f"Stopped after {done} {pluralize(done, 'change', 'changes')}; "
            "the server is partially updated and the state document was not saved"
        )

    def deploy(self, target: DeployTarget, dry_run: bool = False) -> DeployResult:
        """Deploy one target.

        Args:
            target: Deploy target
            dry_run: Only compute and show the changes

        Returns:
            DeployResult with the edit script and timings

        Raises:
            ValueError: If the local folder is missing
            DeployInventoryError: If the local tree cannot be scanned
            DeployConnectError: If the server cannot be reached
            DeploySyncError: If applying a change fails
        """
        if not target.local.exists():
            raise ValueError(f"Local directory does not exist: {target.local}")
        if not target.local.is_dir():
            raise ValueError(f"Local path is not a directory: {target.local}")

        timings = Timings()
        timings.start("total")

        timings.start("hash")
        current = self.build_inventory(target)
        timings.end("hash")

        result = DeployResult(script=EditScript(), dry_run=dry_run, timings=timings)
        try:
            timings.start("connecting")
            self.client.connect()
            timings.end("connecting")

            if target.dangerous_clean_slate and not dry_run:
                self.output.info(SEPARATOR)
                self.output.info(
                    "🗑️ Removing all files on the server because "
                    "'dangerous-clean-slate' was set, this will make the "
                    "deployment very slow..."
                )
                self.client.wipe_root()
                self.output.info("Clear complete")
                previous, result.bootstrap = Inventory.empty(), True
            else:
                previous, result.bootstrap = self.load_previous_inventory(
                    target.state_name
                )

            result.script = self.diff_tool.diff(previous, current)
            self._display_plan(result.script, dry_run)

            if dry_run:
                return result

            operations = SyncOperations(self.client, target.local)
            timings.start("upload")
            result.applied = self.apply(result.script, operations, target.state_name)

            self.output.info(SEPARATOR)
            self.output.info(
                "🎉 Sync complete. Saving current server state to "
                f'"{target.state_name}"'
            )
            state_file = write_state_file(target.local, target.state_name, current)
            try:
                operations.upload_state(state_file, target.state_name)
            except DeployTransferError as e:
                raise DeploySyncError(target.state_name, "save state", e) from e
            result.state_saved = True
            timings.end("upload")
        finally:
            self.client.close()
            timings.end("total")
            if not self.output.quiet:
                self._display_timings(result)

        return result

    def _display_plan(self, script: EditScript, dry_run: bool) -> None:
        total = script.total_count
        self.output.info(SEPARATOR)
        prefix = "Would make" if dry_run else "Making"
        self.output.info(
            f"{prefix} changes to {total} {pluralize(total, 'file', 'files')} "
            "to sync server state"
        )
        self.output.info(
            f"Uploading: {format_size(script.size_upload)} -- "
            f"Deleting: {format_size(script.size_delete)} -- "
            f"Replacing: {format_size(script.size_replace)}"
        )
        if dry_run:
            for label, entries in (
                ("↑ Upload", script.upload),
                ("↻ Replace", script.replace),
                ("✗ Delete", script.delete),
            ):
                for entry in entries:
                    self.output.info(f"  {label}: {entry.name}")
        self.output.info(SEPARATOR)

    def _display_timings(self, result: DeployResult) -> None:
        timings = result.timings
        upload_seconds = timings.get_time("upload")
        if upload_seconds:
            speed = f"{format_size(result.bytes_transferred / upload_seconds)}/second"
        else:
            speed = "n/a"

        self.output.info(SEPARATOR)
        self.output.info(
            f"Time spent hashing:     {timings.get_time_formatted('hash')}"
        )
        self.output.info(
            f"Time spent connecting:  {timings.get_time_formatted('connecting')}"
        )
        if not result.dry_run:
            self.output.info(
                f"Time spent deploying:   {timings.get_time_formatted('upload')} "
                f"({speed})"
            )
        self.output.info(SEPARATOR)
        self.output.info(
            f"Total time:             {timings.get_time_formatted('total')}"
        )
        self.output.info(SEPARATOR)
