"""Sync engine for PyDeploy - incremental deployment of a local tree."""

from .comparator import HashDiff, SyncAction, SyncDecision
from .config import SyncConfigError, load_targets_from_json
from .engine import AppliedResult, DeployResult, SyncEngine
from .ignore import DEFAULT_EXCLUDES, IgnoreRule, IncludeExcludeFilter
from .operations import (
    OperationResult,
    OperationStatus,
    RemoteCursor,
    SyncOperations,
)
from .progress import (
    PhaseEvent,
    SyncProgressEvent,
    SyncProgressInfo,
    SyncProgressTracker,
)
from .protocols import TransferClientProtocol
from .scanner import DirectoryScanner, LocalFile
from .state import (
    SYNC_FILE_DESCRIPTION,
    decode_inventory,
    encode_inventory,
    write_state_file,
)
from .target import DeployTarget

__all__ = [
    "SyncEngine",
    "DeployResult",
    "AppliedResult",
    "PhaseEvent",
    "SyncProgressEvent",
    "SyncProgressInfo",
    "SyncProgressTracker",
    "DeployTarget",
    "SyncConfigError",
    "load_targets_from_json",
    "DirectoryScanner",
    "LocalFile",
    "HashDiff",
    "SyncAction",
    "SyncDecision",
    "IncludeExcludeFilter",
    "IgnoreRule",
    "DEFAULT_EXCLUDES",
    "SyncOperations",
    "RemoteCursor",
    "OperationResult",
    "OperationStatus",
    "TransferClientProtocol",
    "SYNC_FILE_DESCRIPTION",
    "encode_inventory",
    "decode_inventory",
    "write_state_file",
]
