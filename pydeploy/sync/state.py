"""State document codec.

The state document records the inventory that was last deployed. It is
stored as a JSON file inside the synchronized tree and uploaded to the
server at the end of every successful run, so the next run can diff
against it::

    {
        "description": "DO NOT DELETE THIS FILE. ...",
        "version": "1.0.0",
        "generatedTime": 1700000000000,
        "data": [
            {"type": "folder", "name": "docs"},
            {"type": "file", "name": "docs/a.txt", "size": 10, "hash": "..."}
        ]
    }
"""

import json
import logging
from pathlib import Path
from typing import Any

from ..exceptions import DeployStateDecodeError
from ..models import STATE_FORMAT_VERSION, Entry, EntryType, Inventory

logger = logging.getLogger(__name__)

SYNC_FILE_DESCRIPTION = (
    "DO NOT DELETE THIS FILE. This file is used to keep track of which files "
    "have been synced in the most recent deployment. If you delete this file "
    "a resync will need to be done (which can take a while) - read more: "
    "https://github.com/SamKirkland/FTP-Deploy-Action"
)


def inventory_to_dict(inventory: Inventory) -> dict[str, Any]:
    """Convert an inventory to the state document structure."""
    data = []
    for entry in inventory.entries:
        record: dict[str, Any] = {"type": entry.type.value, "name": entry.name}
        if entry.is_file:
            record["size"] = entry.size
            record["hash"] = entry.hash
        data.append(record)

    return {
        "description": SYNC_FILE_DESCRIPTION,
        "version": inventory.version,
        "generatedTime": inventory.generated_time,
        "data": data,
    }


def encode_inventory(inventory: Inventory) -> bytes:
    """Serialize an inventory to state document bytes (UTF-8 JSON)."""
    return json.dumps(inventory_to_dict(inventory), indent=4).encode("utf-8")


def _entry_from_record(index: int, record: Any) -> Entry:
    if not isinstance(record, dict):
        raise DeployStateDecodeError(f"data[{index}] is not an object")

    name = record.get("name")
    if not isinstance(name, str) or not name:
        raise DeployStateDecodeError(f"data[{index}] has no valid name")

    try:
        entry_type = EntryType(record.get("type"))
    except ValueError as e:
        raise DeployStateDecodeError(
            f"data[{index}] ({name}) has unknown type {record.get('type')!r}"
        ) from e

    if entry_type == EntryType.FOLDER:
        return Entry.folder(name)

    size = record.get("size")
    file_hash = record.get("hash")
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise DeployStateDecodeError(f"data[{index}] ({name}) has an invalid size")
    if not isinstance(file_hash, str) or not file_hash:
        raise DeployStateDecodeError(f"data[{index}] ({name}) has no hash")
    return Entry.file(name, size, file_hash)


def inventory_from_dict(document: Any) -> Inventory:
    """Build an inventory from a parsed state document.

    Raises:
        DeployStateDecodeError: If the structure is invalid
    """
    if not isinstance(document, dict):
        raise DeployStateDecodeError("State document is not a JSON object")

    version = document.get("version")
    if not isinstance(version, str):
        raise DeployStateDecodeError("State document has no version")
    if version.split(".")[0] != STATE_FORMAT_VERSION.split(".")[0]:
        raise DeployStateDecodeError(f"Unsupported state document version {version}")

    if document.get("description") != SYNC_FILE_DESCRIPTION:
        logger.debug("State document description marker differs")

    generated_time = document.get("generatedTime")
    if isinstance(generated_time, bool) or not isinstance(generated_time, (int, float)):
        raise DeployStateDecodeError("State document has no generatedTime")

    data = document.get("data")
    if not isinstance(data, list):
        raise DeployStateDecodeError("State document has no data list")

    entries = tuple(_entry_from_record(i, record) for i, record in enumerate(data))
    try:
        return Inventory(
            entries=entries,
            version=version,
            generated_time=int(generated_time),
        )
    except ValueError as e:
        raise DeployStateDecodeError(str(e)) from e


def decode_inventory(data: bytes) -> Inventory:
    """Parse state document bytes.

    Args:
        data: Raw document as downloaded

    Returns:
        The stored inventory

    Raises:
        DeployStateDecodeError: If the document is malformed or truncated
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DeployStateDecodeError(f"State document is not valid JSON: {e}") from e
    return inventory_from_dict(document)


def write_state_file(root: Path, state_name: str, inventory: Inventory) -> Path:
    """Write the encoded inventory into the synchronized tree.

    Args:
        root: Synchronized root directory
        state_name: Root-relative path of the state document
        inventory: Inventory to persist

    Returns:
        Path of the written file
    """
    state_file = root / state_name
    state_file.parent.mkdir(parents=True, exist_ok=True)
    state_file.write_bytes(encode_inventory(inventory))
    logger.debug(
        f"Saved sync state with {len(inventory)} entries to {state_file}"
    )
    return state_file
