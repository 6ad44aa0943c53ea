"""Directory scanning: builds the content-addressed inventory of a local tree."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..exceptions import DeployHashError, DeployInventoryError
from ..models import Entry, Inventory
from ..output import OutputFormatter
from ..utils import DEFAULT_HASH_ALGORITHM, calculate_file_hash
from .ignore import IncludeExcludeFilter

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """A regular file found during the walk, before it is hashed."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""


class DirectoryScanner:
    """Walks a local directory and produces an :class:`Inventory`.

    Folders become folder entries, regular files become file entries with
    their size and content hash. Rules apply to each path on its own: an
    excluded folder is still walked so children that match no exclude
    pattern are kept. Symbolic links are not supported: they are
    reported as a warning and left out. Any filesystem error aborts the
    scan, including a file that disappears while the tree is walked.

    Examples:
        >>> scanner = DirectoryScanner(IncludeExcludeFilter(exclude=["*.tmp"]))
        >>> inventory = scanner.build_inventory(Path("/site"))  # doctest: +SKIP
    """

    def __init__(
        self,
        rules: Optional[IncludeExcludeFilter] = None,
        max_workers: int = 1,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize directory scanner.

        Args:
            rules: Include/exclude rules (keeps everything if omitted)
            max_workers: Number of threads used to hash files
            hash_algorithm: hashlib algorithm for fingerprints
            output: Output formatter for warnings
        """
        self.rules = rules or IncludeExcludeFilter()
        self.max_workers = max(1, max_workers)
        self.hash_algorithm = hash_algorithm
        self.output = output or OutputFormatter(quiet=True)
        self.skipped_links: list[str] = []

    def build_inventory(
        self, root: Path, ignore_names: Iterable[str] = ()
    ) -> Inventory:
        """Scan a directory tree and hash every file in it.

        Args:
            root: Synchronized root directory
            ignore_names: Root-relative paths never to inventory
                (e.g. the state document)

        Returns:
            Inventory sorted by path

        Raises:
            DeployInventoryError: If the tree cannot be walked
            DeployHashError: If a file cannot be read
        """
        self.skipped_links = []
        folders, files = self.scan_local(root, set(ignore_names))

        hashes = self._hash_files(files)

        entries = [Entry.folder(name) for name in folders]
        entries.extend(
            Entry.file(f.relative_path, f.size, hashes[f.relative_path])
            for f in files
        )
        entries.sort(key=lambda entry: entry.name)

        logger.debug(
            f"Built inventory of {len(folders)} folder(s) and {len(files)} "
            f"file(s) under {root}"
        )
        return Inventory(entries=tuple(entries))

    def scan_local(
        self, root: Path, ignore_names: Optional[set[str]] = None
    ) -> tuple[list[str], list[LocalFile]]:
        """Recursively list folders and files below the root.

        Args:
            root: Directory to scan
            ignore_names: Root-relative paths to leave out

        Returns:
            Tuple of (folder paths, files) in discovery order
        """
        ignore_names = ignore_names or set()
        folders: list[str] = []
        files: list[LocalFile] = []
        self._walk(root, "", ignore_names, folders, files)
        return folders, files

    def _walk(
        self,
        directory: Path,
        prefix: str,
        ignore_names: set[str],
        folders: list[str],
        files: list[LocalFile],
    ) -> None:
        try:
            with os.scandir(directory) as it:
                items = sorted(it, key=lambda item: item.name)
        except OSError as e:
            raise DeployInventoryError(
                f"Cannot read directory {directory}: {e}", path=str(directory)
            ) from e

        for item in items:
            relative_path = f"{prefix}{item.name}"
            if relative_path in ignore_names:
                continue
            keep = self.rules.should_keep(relative_path)

            try:
                if item.is_symlink():
                    if keep:
                        self._warn_symlink(relative_path)
                    continue

                if item.is_dir(follow_symlinks=False):
                    # Exclusion is per path; children are matched on their own
                    if keep:
                        folders.append(relative_path)
                    self._walk(
                        Path(item.path),
                        f"{relative_path}/",
                        ignore_names,
                        folders,
                        files,
                    )
                elif not keep:
                    continue
                elif item.is_file(follow_symlinks=False):
                    stat = item.stat(follow_symlinks=False)
                    files.append(
                        LocalFile(
                            path=Path(item.path),
                            relative_path=relative_path,
                            size=stat.st_size,
                        )
                    )
                else:
                    logger.debug(f"Skipping special file: {relative_path}")
            except OSError as e:
                raise DeployInventoryError(
                    f"Cannot read {relative_path}: {e}", path=relative_path
                ) from e

    def _warn_symlink(self, relative_path: str) -> None:
        self.skipped_links.append(relative_path)
        message = f"Currently unable to handle symbolic links: {relative_path}"
        logger.warning(message)
        self.output.warning(message)

    def _hash_files(self, files: list[LocalFile]) -> dict[str, str]:
        """Hash files, in parallel when more than one worker is configured.

        Args:
            files: Files to hash

        Returns:
            Mapping of relative path to hex digest
        """
        if self.max_workers > 1 and len(files) > 1:
            logger.debug(f"Hashing {len(files)} files with {self.max_workers} workers")
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                digests = list(executor.map(self._hash_one, files))
        else:
            digests = [self._hash_one(f) for f in files]

        return {f.relative_path: digest for f, digest in zip(files, digests)}

    def _hash_one(self, local_file: LocalFile) -> str:
        try:
            return calculate_file_hash(local_file.path, self.hash_algorithm)
        except DeployHashError as e:
            # Report the root-relative path rather than the absolute one
            raise DeployHashError(
                local_file.relative_path, str(e.__cause__ or e)
            ) from e
