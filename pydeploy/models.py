"""Value objects shared by the scanner, the diff engine and the sync engine."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

STATE_FORMAT_VERSION = "1.0.0"


class EntryType(str, Enum):
    """Kind of a filesystem object under the synchronized root."""

    FILE = "file"
    FOLDER = "folder"


@dataclass(frozen=True)
class Entry:
    """One file or folder, addressed by its root-relative path."""

    type: EntryType
    """Entry kind"""

    name: str
    """Root-relative path using forward slashes"""

    size: Optional[int] = None
    """Size in bytes (files only)"""

    hash: Optional[str] = None
    """Hex content digest (files only)"""

    def __post_init__(self) -> None:
        if not isinstance(self.type, EntryType):
            object.__setattr__(self, "type", EntryType(self.type))
        if not self.name:
            raise ValueError("Entry name must not be empty")
        if self.type == EntryType.FILE:
            if self.size is None or self.hash is None:
                raise ValueError(f"File entry {self.name!r} needs size and hash")
        elif self.size is not None or self.hash is not None:
            raise ValueError(f"Folder entry {self.name!r} cannot have size or hash")

    @classmethod
    def file(cls, name: str, size: int, hash: str) -> "Entry":
        return cls(EntryType.FILE, name, size, hash)

    @classmethod
    def folder(cls, name: str) -> "Entry":
        return cls(EntryType.FOLDER, name)

    @property
    def is_file(self) -> bool:
        return self.type == EntryType.FILE

    @property
    def is_folder(self) -> bool:
        return self.type == EntryType.FOLDER

    @property
    def depth(self) -> int:
        """Number of path components (``a/b/c`` has depth 3)."""
        return len([part for part in self.name.split("/") if part])


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Inventory:
    """Immutable snapshot of the synchronized tree.

    Entry order is discovery order; it only matters for serialization.
    Paths must be unique.
    """

    entries: tuple[Entry, ...] = ()
    version: str = STATE_FORMAT_VERSION
    generated_time: int = field(default_factory=_now_ms)
    """Snapshot creation time in epoch milliseconds"""

    def __post_init__(self) -> None:
        entries = tuple(self.entries)
        object.__setattr__(self, "entries", entries)
        seen: set[str] = set()
        for entry in entries:
            if entry.name in seen:
                raise ValueError(f"Duplicate path in inventory: {entry.name}")
            seen.add(entry.name)

    @classmethod
    def empty(cls) -> "Inventory":
        """Inventory used when no previous state is known (bootstrap)."""
        return cls(entries=())

    def by_name(self) -> dict[str, Entry]:
        return {entry.name: entry for entry in self.entries}

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def total_size(self) -> int:
        return sum(entry.size or 0 for entry in self.entries if entry.is_file)


def _sum_sizes(entries: Iterable[Entry]) -> int:
    return sum(entry.size or 0 for entry in entries if entry.is_file)


@dataclass(frozen=True)
class EditScript:
    """Categorized changes turning a previous inventory into the current one."""

    upload: tuple[Entry, ...] = ()
    """Entries present in current only"""

    replace: tuple[Entry, ...] = ()
    """Files present in both with different content"""

    delete: tuple[Entry, ...] = ()
    """Entries present in previous only"""

    size_upload: int = 0
    size_replace: int = 0
    size_delete: int = 0

    @classmethod
    def build(
        cls,
        upload: Iterable[Entry],
        replace: Iterable[Entry],
        delete: Iterable[Entry],
    ) -> "EditScript":
        """Create a script, computing the byte totals from file entries."""
        upload = tuple(upload)
        replace = tuple(replace)
        delete = tuple(delete)
        return cls(
            upload=upload,
            replace=replace,
            delete=delete,
            size_upload=_sum_sizes(upload),
            size_replace=_sum_sizes(replace),
            size_delete=_sum_sizes(delete),
        )

    @property
    def total_count(self) -> int:
        return len(self.upload) + len(self.replace) + len(self.delete)

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0

    @property
    def bytes_to_transfer(self) -> int:
        return self.size_upload + self.size_replace

    @staticmethod
    def folders(entries: Iterable[Entry]) -> tuple[Entry, ...]:
        return tuple(entry for entry in entries if entry.is_folder)

    @staticmethod
    def files(entries: Iterable[Entry]) -> tuple[Entry, ...]:
        return tuple(entry for entry in entries if entry.is_file)
