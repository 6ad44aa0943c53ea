"""Per-entry remote operations with working-directory bookkeeping."""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..exceptions import DeployNotFoundError, DeployTransferError
from ..models import Entry
from ..utils import split_remote_path
from .protocols import TransferClientProtocol

logger = logging.getLogger(__name__)


class OperationStatus(str, Enum):
    """Outcome of one remote operation."""

    APPLIED = "applied"
    """The change was made"""

    ALREADY_ABSENT = "already_absent"
    """Nothing to remove, the target did not exist"""

    FAILED = "failed"
    """The operation failed and the run must stop"""


@dataclass
class OperationResult:
    """Result of applying one entry to the remote store."""

    status: OperationStatus
    entry: Entry
    error: Optional[DeployTransferError] = None

    @property
    def ok(self) -> bool:
        return self.status != OperationStatus.FAILED


class RemoteCursor:
    """Moves the session's working directory and brings it back to the root.

    The transfer session has one working directory shared by every
    operation. Each entry operation enters the folders of its path, acts on
    the base name and then climbs back up the same number of levels, so the
    next operation starts from the root again.
    """

    def __init__(self, client: TransferClientProtocol):
        self.client = client

    @contextmanager
    def at(self, folders: list[str]) -> Generator[None, None, None]:
        """Enter ``folders`` (creating them if missing) for the block.

        Args:
            folders: Folder components relative to the root
        """
        if not folders:
            logger.debug("  no need to change dir")
            yield
            return

        logger.debug(f"  changing dir to {'/'.join(folders)}")
        self.client.ensure_remote_directory("/".join(folders))
        try:
            yield
        finally:
            for _ in folders:
                self.client.change_to_parent()


class SyncOperations:
    """Applies single entries of an edit script to the remote store.

    Failures are returned as :class:`OperationResult` values rather than
    raised, so "already absent" and real failures can be told apart.
    """

    def __init__(self, client: TransferClientProtocol, local_root: Path):
        """Initialize sync operations.

        Args:
            client: Connected transfer client
            local_root: Local synchronized root (source of uploads)
        """
        self.client = client
        self.local_root = local_root
        self.cursor = RemoteCursor(client)

    def create_folder(self, entry: Entry) -> OperationResult:
        logger.info(f'creating folder "{entry.name}/"')
        folders, _ = split_remote_path(entry.name + "/")
        try:
            with self.cursor.at(folders):
                pass
        except DeployTransferError as e:
            return OperationResult(OperationStatus.FAILED, entry, e)
        return OperationResult(OperationStatus.APPLIED, entry)

    def upload_file(self, entry: Entry) -> OperationResult:
        """Upload (or overwrite) one file, creating its folders first."""
        logger.info(f'uploading "{entry.name}"')
        folders, file_name = split_remote_path(entry.name)
        try:
            with self.cursor.at(folders):
                if file_name is not None:
                    self.client.upload_file(self.local_root / entry.name, file_name)
        except DeployTransferError as e:
            return OperationResult(OperationStatus.FAILED, entry, e)
        return OperationResult(OperationStatus.APPLIED, entry)

    def remove_file(self, entry: Entry) -> OperationResult:
        logger.info(f"removing {entry.name}...")
        folders, file_name = split_remote_path(entry.name)
        status = OperationStatus.APPLIED
        try:
            with self.cursor.at(folders):
                try:
                    self.client.remove_file(file_name or entry.name)
                except DeployNotFoundError:
                    logger.debug("  could not remove file. It doesn't exist!")
                    status = OperationStatus.ALREADY_ABSENT
        except DeployTransferError as e:
            return OperationResult(OperationStatus.FAILED, entry, e)
        return OperationResult(status, entry)

    def remove_folder(self, entry: Entry) -> OperationResult:
        """Remove one folder from inside its parent."""
        logger.info(f'removing folder "{entry.name}/"')
        parents, folder_name = split_remote_path(entry.name.rstrip("/"))
        status = OperationStatus.APPLIED
        try:
            with self.cursor.at(parents):
                try:
                    self.client.remove_directory(folder_name or entry.name)
                except DeployNotFoundError as e:
                    # FTP uses 550 for both a missing and a non-empty folder
                    logger.debug(f"  could not remove folder: {e}")
                    status = OperationStatus.ALREADY_ABSENT
        except DeployTransferError as e:
            return OperationResult(OperationStatus.FAILED, entry, e)
        return OperationResult(status, entry)

    def upload_state(self, local_path: Path, state_name: str) -> None:
        """Upload the state document to its place below the root.

        Raises:
            DeployTransferError: If the upload fails
        """
        folders, file_name = split_remote_path(state_name)
        with self.cursor.at(folders):
            self.client.upload_file(local_path, file_name or state_name)
