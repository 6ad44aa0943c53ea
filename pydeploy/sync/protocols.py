"""Interfaces of the collaborators used by the sync engine."""

from pathlib import Path
from typing import Protocol, Union


class TransferClientProtocol(Protocol):
    """Remote file store session.

    The session has a single mutable working directory. Directory-relative
    operations act on it, so calls must never be issued concurrently.
    Removal and download raise ``DeployNotFoundError`` when the target does
    not exist; other failures raise ``DeployTransferError``.
    """

    def connect(self) -> None: ...

    def ensure_remote_directory(self, path: str) -> None:
        """Create every component of ``path`` and change into it."""
        ...

    def upload_file(self, local_path: Union[str, Path], remote_name: str) -> None: ...

    def download_to_memory(self, remote_path: str) -> bytes: ...

    def remove_file(self, remote_name: str) -> None: ...

    def remove_directory(self, remote_name: str) -> None: ...

    def change_to_parent(self) -> None: ...

    def wipe_root(self) -> None:
        """Remove everything below the synchronization root."""
        ...

    def close(self) -> None: ...
