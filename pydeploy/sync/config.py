"""Loading deploy targets from JSON files."""

import json
import logging
from pathlib import Path
from typing import Any

from ..exceptions import DeployConfigError
from .target import DeployTarget

logger = logging.getLogger(__name__)


class SyncConfigError(DeployConfigError):
    """A deploy target file is invalid."""

    pass


def load_targets_from_json(path: Path) -> list[DeployTarget]:
    """Load deploy targets from a JSON file.

    The file holds a list of target objects (or a single object), e.g.::

        [
            {
                "local": "./public",
                "server": "ftp.example.com",
                "username": "deploy",
                "server-dir": "public_html/",
                "exclude": ["**/*.map"]
            }
        ]

    Relative "local" paths are resolved against the file's folder.

    Args:
        path: JSON file to read

    Returns:
        List of DeployTarget objects

    Raises:
        SyncConfigError: If the file cannot be read or a target is invalid
    """
    try:
        with open(path, encoding="utf-8") as f:
            data: Any = json.load(f)
    except OSError as e:
        raise SyncConfigError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SyncConfigError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise SyncConfigError(f"{path} must contain a list of deploy targets")

    targets: list[DeployTarget] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise SyncConfigError(f"Target #{index} in {path} is not an object")
        try:
            target = DeployTarget.from_dict(item)
        except KeyError as e:
            raise SyncConfigError(
                f"Target #{index} in {path} is missing required key {e}"
            ) from e
        except (TypeError, ValueError) as e:
            raise SyncConfigError(f"Target #{index} in {path} is invalid: {e}") from e

        if not target.local.is_absolute():
            target.local = (path.parent / target.local).resolve()
        targets.append(target)

    logger.debug(f"Loaded {len(targets)} deploy target(s) from {path}")
    return targets
