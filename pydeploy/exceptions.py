"""Custom exceptions for PyDeploy."""

from typing import Optional


class DeployError(Exception):
    """Base exception for all PyDeploy errors."""

    pass


class DeployConfigError(DeployError):
    """Configuration is missing or invalid."""

    pass


class DeployInventoryError(DeployError):
    """The local tree could not be walked."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class DeployHashError(DeployInventoryError):
    """A local file could not be opened or read while hashing."""

    def __init__(self, path: str, reason: Optional[str] = None):
        message = f"Failed to hash {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, path=path)


class DeployStateDecodeError(DeployError):
    """The state document is malformed or truncated."""

    pass


class DeployTransferError(DeployError):
    """A remote operation failed."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        code: Optional[int] = None,
    ):
        super().__init__(message)
        self.path = path
        self.code = code


class DeployConnectError(DeployTransferError):
    """Connecting or logging in to the server failed."""

    pass


class DeployNotFoundError(DeployTransferError):
    """Remote file or folder does not exist (or is not accessible)."""

    pass


class DeployPermissionError(DeployTransferError):
    """The server refused the operation (e.g. reply 553 on upload)."""

    pass


class DeploySyncError(DeployError):
    """A fatal error while applying the edit script.

    Carries the entry path, the phase it failed in and the underlying
    transfer error so the run can be diagnosed and retried.
    """

    def __init__(self, path: str, phase: str, cause: Exception):
        super().__init__(f"{phase} failed for {path}: {cause}")
        self.path = path
        self.phase = phase
        self.cause = cause
