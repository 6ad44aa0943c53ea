"""Inventory comparison logic for deployments."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import EditScript, Entry, Inventory

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    """Actions that can be taken for a path."""

    UPLOAD = "upload"
    """Entry is new on the local side"""

    REPLACE = "replace"
    """File content changed"""

    DELETE = "delete"
    """Entry no longer exists locally"""

    SKIP = "skip"
    """No action needed"""


@dataclass
class SyncDecision:
    """Represents a decision about one entry."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    entry: Entry
    """Entry the action applies to"""

    @property
    def relative_path(self) -> str:
        return self.entry.name


class HashDiff:
    """Compares two inventories by path, size and content hash."""

    def compare(self, previous: Inventory, current: Inventory) -> list[SyncDecision]:
        """Classify every path found in either inventory.

        Args:
            previous: Inventory that was last deployed
            current: Inventory of the local tree

        Returns:
            List of SyncDecision objects ordered by path. A path whose kind
            changed yields a DELETE for the old entry followed by an UPLOAD
            for the new one.
        """
        previous_map = previous.by_name()
        current_map = current.by_name()

        decisions: list[SyncDecision] = []
        for path in sorted(set(previous_map) | set(current_map)):
            decisions.extend(
                self._compare_single_path(
                    previous_map.get(path), current_map.get(path)
                )
            )
        return decisions

    def _compare_single_path(
        self, old: Optional[Entry], new: Optional[Entry]
    ) -> list[SyncDecision]:
        # Case 1: only exists locally
        if old is None and new is not None:
            return [SyncDecision(SyncAction.UPLOAD, f"New {new.type.value}", new)]

        # Case 2: only exists on the server
        if new is None and old is not None:
            return [SyncDecision(SyncAction.DELETE, f"Deleted {old.type.value}", old)]

        assert old is not None and new is not None

        # Case 3: kind changed, cannot be replaced in place
        if old.type != new.type:
            return [
                SyncDecision(
                    SyncAction.DELETE,
                    f"Changed from {old.type.value} to {new.type.value}",
                    old,
                ),
                SyncDecision(
                    SyncAction.UPLOAD,
                    f"Changed from {old.type.value} to {new.type.value}",
                    new,
                ),
            ]

        if new.is_folder:
            return [SyncDecision(SyncAction.SKIP, "Folder exists", new)]

        if old.hash != new.hash or old.size != new.size:
            reason = (
                f"Content changed ({old.size} -> {new.size} bytes)"
                if old.size != new.size
                else "Content changed (same size)"
            )
            return [SyncDecision(SyncAction.REPLACE, reason, new)]

        return [SyncDecision(SyncAction.SKIP, "Files are identical", new)]

    def diff(self, previous: Inventory, current: Inventory) -> EditScript:
        """Compute the edit script from previous to current.

        Each category is ordered by ascending path, independent of the
        input entry order, so the same inventories always give the same
        script.

        Args:
            previous: Inventory that was last deployed
            current: Inventory of the local tree

        Returns:
            EditScript with byte totals over file entries

        Examples:
            >>> previous = Inventory.empty()
            >>> current = Inventory((Entry.file("a.txt", 10, "h1"),))
            >>> script = HashDiff().diff(previous, current)
            >>> [e.name for e in script.upload], script.size_upload
            (['a.txt'], 10)
        """
        upload: list[Entry] = []
        replace: list[Entry] = []
        delete: list[Entry] = []

        for decision in self.compare(previous, current):
            logger.debug(
                f"{decision.action.value}: {decision.relative_path} "
                f"({decision.reason})"
            )
            if decision.action == SyncAction.UPLOAD:
                upload.append(decision.entry)
            elif decision.action == SyncAction.REPLACE:
                replace.append(decision.entry)
            elif decision.action == SyncAction.DELETE:
                delete.append(decision.entry)

        return EditScript.build(upload=upload, replace=replace, delete=delete)
