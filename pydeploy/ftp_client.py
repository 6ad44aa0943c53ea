"""FTP/FTPS client used to reach the deployment target."""

from __future__ import annotations

import ftplib
import io
import logging
from pathlib import Path
from typing import NoReturn

from .exceptions import (
    DeployConnectError,
    DeployNotFoundError,
    DeployPermissionError,
    DeployTransferError,
)
from .utils import DEFAULT_FTP_PORT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

# FTP reply codes with a meaning for the sync engine
REPLY_FILE_UNAVAILABLE = 550
REPLY_NAME_NOT_ALLOWED = 553


def _reply_code(error: BaseException) -> int | None:
    """Extract the three-digit FTP reply code from an ftplib error."""
    text = str(error)
    if len(text) >= 3 and text[:3].isdigit():
        return int(text[:3])
    return None


class FtpClient:
    """Client for a single FTP session.

    The session keeps one working directory. ``server_dir`` is entered
    right after login and becomes the synchronization root; all paths
    passed to the other methods are relative to the current directory.

    Examples:
        >>> with FtpClient("ftp.example.com", "user", "secret") as client:
        ...     data = client.download_to_memory(".ftp-deploy-sync-state.json")
    """

    def __init__(
        self,
        host: str,
        username: str = "anonymous",
        password: str = "",
        port: int = DEFAULT_FTP_PORT,
        secure: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        server_dir: str = "./",
        verbose: bool = False,
    ):
        """Initialize FTP client.

        Args:
            host: Server host name
            username: Login user
            password: Login password
            port: Control connection port (default: 21)
            secure: Use explicit FTPS (AUTH TLS) when True
            timeout: Socket timeout in seconds
            server_dir: Remote folder used as the synchronization root
            verbose: Print the FTP conversation (ftplib debug level 1)
        """
        self.host = host
        self.username = username
        self.password = password
        self.port = port
        self.secure = secure
        self.timeout = timeout
        self.server_dir = server_dir
        self.verbose = verbose

        self._ftp: ftplib.FTP | None = None
        self._root: str | None = None

    def __enter__(self) -> FtpClient:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._ftp is not None

    def _get_ftp(self) -> ftplib.FTP:
        if self._ftp is None:
            raise DeployTransferError("Not connected to the server")
        return self._ftp

    def _raise_for(self, error: BaseException, action: str, path: str) -> NoReturn:
        """Translate an ftplib error into a PyDeploy exception."""
        code = _reply_code(error)
        message = f"Could not {action} {path!r}: {error}"
        if code == REPLY_FILE_UNAVAILABLE:
            raise DeployNotFoundError(message, path=path, code=code) from error
        if code == REPLY_NAME_NOT_ALLOWED:
            raise DeployPermissionError(message, path=path, code=code) from error
        raise DeployTransferError(message, path=path, code=code) from error

    def connect(self) -> None:
        """Open the connection, log in and enter the server directory.

        Raises:
            DeployConnectError: If the server cannot be reached or login fails
            DeployTransferError: If the server directory cannot be entered;
                the session is closed before the error propagates
        """
        ftp: ftplib.FTP = (
            ftplib.FTP_TLS(timeout=self.timeout)
            if self.secure
            else ftplib.FTP(timeout=self.timeout)
        )
        if self.verbose:
            ftp.set_debuglevel(1)

        try:
            logger.debug(f"Connecting to {self.host}:{self.port}")
            ftp.connect(self.host, self.port)
            ftp.login(self.username, self.password)
            if self.secure:
                ftp.prot_p()  # type: ignore[attr-defined]
        except ftplib.all_errors as e:
            ftp.close()
            raise DeployConnectError(
                f"Failed to connect to {self.host}:{self.port}: {e}",
                code=_reply_code(e),
            ) from e

        self._ftp = ftp
        try:
            if self.server_dir.strip() not in ("", ".", "./"):
                self.ensure_remote_directory(self.server_dir)
            try:
                self._root = ftp.pwd()
            except ftplib.all_errors as e:
                self._raise_for(e, "read working directory", self.server_dir)
        except DeployTransferError:
            self.close()
            raise
        logger.debug(f"Synchronization root is {self._root}")

    def ensure_remote_directory(self, path: str) -> None:
        """Create each folder of ``path`` if needed and change into it.

        Args:
            path: Folder path, relative to the working directory unless it
                starts with "/"
        """
        ftp = self._get_ftp()
        try:
            if path.startswith("/"):
                ftp.cwd("/")
            for part in path.split("/"):
                if part in ("", "."):
                    continue
                try:
                    ftp.cwd(part)
                except ftplib.error_perm:
                    logger.debug(f"Creating remote folder {part}")
                    ftp.mkd(part)
                    ftp.cwd(part)
        except ftplib.all_errors as e:
            self._raise_for(e, "create folder", path)

    def upload_file(self, local_path: str | Path, remote_name: str) -> None:
        """Upload a local file into the working directory.

        An existing remote file with the same name is overwritten.
        """
        ftp = self._get_ftp()
        try:
            f = open(local_path, "rb")
        except OSError as e:
            raise DeployTransferError(
                f"Could not read {local_path}: {e}", path=str(local_path)
            ) from e

        with f:
            try:
                ftp.storbinary(f"STOR {remote_name}", f)
            except ftplib.all_errors as e:
                self._raise_for(e, "upload", remote_name)

    def download_to_memory(self, remote_path: str) -> bytes:
        """Download a remote file and return its content.

        Raises:
            DeployNotFoundError: If the file does not exist
        """
        ftp = self._get_ftp()
        buffer = io.BytesIO()
        try:
            ftp.retrbinary(f"RETR {remote_path}", buffer.write)
        except ftplib.all_errors as e:
            self._raise_for(e, "download", remote_path)
        return buffer.getvalue()

    def remove_file(self, remote_name: str) -> None:
        ftp = self._get_ftp()
        try:
            ftp.delete(remote_name)
        except ftplib.all_errors as e:
            self._raise_for(e, "remove file", remote_name)

    def remove_directory(self, remote_name: str) -> None:
        """Remove an empty remote folder."""
        ftp = self._get_ftp()
        try:
            ftp.rmd(remote_name)
        except ftplib.all_errors as e:
            self._raise_for(e, "remove folder", remote_name)

    def change_to_parent(self) -> None:
        ftp = self._get_ftp()
        try:
            ftp.cwd("..")
        except ftplib.all_errors as e:
            self._raise_for(e, "change to", "..")

    def wipe_root(self) -> None:
        """Remove every file and folder below the synchronization root."""
        ftp = self._get_ftp()
        try:
            if self._root:
                ftp.cwd(self._root)
        except ftplib.all_errors as e:
            self._raise_for(e, "enter", self._root or "")
        self._clear_working_dir(self._root or ".")

    def _list_working_dir(self) -> list[tuple[str, bool]]:
        """List (name, is_folder) pairs of the working directory."""
        ftp = self._get_ftp()
        try:
            return [
                (name, facts.get("type") == "dir")
                for name, facts in ftp.mlsd(facts=["type"])
                if facts.get("type") in ("dir", "file")
            ]
        except ftplib.error_perm:
            logger.debug("MLSD not supported, falling back to NLST")

        try:
            names = ftp.nlst()
        except ftplib.error_perm as e:
            # Some servers answer NLST on an empty folder with 550
            if _reply_code(e) == REPLY_FILE_UNAVAILABLE:
                return []
            raise

        entries = []
        for name in names:
            name = name.rsplit("/", 1)[-1]
            if name in (".", ".."):
                continue
            try:
                ftp.cwd(name)
            except ftplib.error_perm:
                entries.append((name, False))
            else:
                ftp.cwd("..")
                entries.append((name, True))
        return entries

    def _clear_working_dir(self, path: str) -> None:
        """Empty the working directory.

        Args:
            path: Display path of the working directory for error messages
        """
        ftp = self._get_ftp()
        try:
            for name, is_folder in self._list_working_dir():
                if is_folder:
                    ftp.cwd(name)
                    self._clear_working_dir(f"{path.rstrip('/')}/{name}")
                    ftp.cwd("..")
                    ftp.rmd(name)
                else:
                    ftp.delete(name)
                logger.debug(f"Removed {name}")
        except ftplib.all_errors as e:
            self._raise_for(e, "clear", path)

    def close(self) -> None:
        """Close the session. Safe to call more than once."""
        if self._ftp is None:
            return
        ftp, self._ftp = self._ftp, None
        try:
            ftp.quit()
        except ftplib.all_errors as e:
            logger.debug(f"QUIT failed, closing socket: {e}")
            ftp.close()
