"""PyDeploy - incremental FTP deployment of a local directory tree."""

from .exceptions import (
    DeployConfigError,
    DeployConnectError,
    DeployError,
    DeployHashError,
    DeployInventoryError,
    DeployNotFoundError,
    DeployPermissionError,
    DeployStateDecodeError,
    DeploySyncError,
    DeployTransferError,
)
from .ftp_client import FtpClient
from .models import EditScript, Entry, EntryType, Inventory
from .utils import calculate_file_hash

__version__ = "0.1.0"

__all__ = [
    "FtpClient",
    "Entry",
    "EntryType",
    "Inventory",
    "EditScript",
    "DeployError",
    "DeployConfigError",
    "DeployConnectError",
    "DeployHashError",
    "DeployInventoryError",
    "DeployNotFoundError",
    "DeployPermissionError",
    "DeployStateDecodeError",
    "DeploySyncError",
    "DeployTransferError",
    "calculate_file_hash",
]
