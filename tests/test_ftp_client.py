"""Tests for the FTP client."""

import ftplib
from unittest.mock import MagicMock, patch

import pytest

from pydeploy.exceptions import (
    DeployConnectError,
    DeployNotFoundError,
    DeployPermissionError,
    DeployTransferError,
)
from pydeploy.ftp_client import FtpClient, _reply_code
from pydeploy.output import OutputFormatter
from pydeploy.sync import DeployTarget, SyncEngine


@pytest.fixture
def mock_ftp():
    """Patch ftplib.FTP and return the session mock."""
    with patch("pydeploy.ftp_client.ftplib.FTP") as ftp_class:
        ftp = MagicMock()
        ftp.pwd.return_value = "/"
        ftp_class.return_value = ftp
        yield ftp


@pytest.fixture
def client(mock_ftp):
    client = FtpClient("ftp.example.com", "user", "secret")
    client.connect()
    return client


class TestReplyCode:
    """Tests for reply code parsing."""

    def test_parse(self):
        assert _reply_code(ftplib.error_perm("550 No such file")) == 550

    def test_no_code(self):
        assert _reply_code(OSError("timed out")) is None


class TestConnect:
    """Tests for connecting."""

    def test_connect_and_login(self, mock_ftp):
        client = FtpClient("ftp.example.com", "user", "secret", port=2121)
        client.connect()

        mock_ftp.connect.assert_called_once_with("ftp.example.com", 2121)
        mock_ftp.login.assert_called_once_with("user", "secret")
        assert client.connected

    def test_connect_failure(self, mock_ftp):
        mock_ftp.login.side_effect = ftplib.error_perm("530 Login incorrect")
        client = FtpClient("ftp.example.com", "user", "wrong")

        with pytest.raises(DeployConnectError) as exc_info:
            client.connect()

        assert exc_info.value.code == 530
        assert not client.connected
        mock_ftp.close.assert_called_once()

    def test_server_dir_is_entered(self, mock_ftp):
        client = FtpClient("ftp.example.com", server_dir="public_html/site/")
        client.connect()
        cwd_calls = [c.args[0] for c in mock_ftp.cwd.call_args_list]
        assert cwd_calls == ["public_html", "site"]

    def test_server_dir_failure_closes_session(self, mock_ftp):
        """Test that the session is closed when the root cannot be entered."""
        mock_ftp.cwd.side_effect = ftplib.error_perm("550 Permission denied")
        mock_ftp.mkd.side_effect = ftplib.error_perm("550 Permission denied")
        client = FtpClient("ftp.example.com", server_dir="www")

        with pytest.raises(DeployNotFoundError):
            client.connect()

        assert not client.connected
        mock_ftp.quit.assert_called_once()

    def test_pwd_failure_closes_session(self, mock_ftp):
        mock_ftp.pwd.side_effect = ftplib.error_temp("421 Timeout")
        client = FtpClient("ftp.example.com")

        with pytest.raises(DeployTransferError):
            client.connect()

        assert not client.connected
        mock_ftp.quit.assert_called_once()

    def test_engine_run_with_failing_server_dir(self, mock_ftp, site):
        """Test that a deploy leaves no open session behind."""
        mock_ftp.cwd.side_effect = ftplib.error_perm("550 Permission denied")
        mock_ftp.mkd.side_effect = ftplib.error_perm("550 Permission denied")
        client = FtpClient("ftp.example.com", server_dir="www")
        engine = SyncEngine(client, OutputFormatter(quiet=True))

        with pytest.raises(DeployTransferError):
            engine.deploy(DeployTarget(local=site, server="ftp.example.com"))

        assert not client.connected
        mock_ftp.quit.assert_called_once()

    def test_secure_uses_tls(self):
        tls = MagicMock(spec=ftplib.FTP_TLS)
        with patch("pydeploy.ftp_client.ftplib.FTP_TLS") as tls_class:
            tls.pwd.return_value = "/"
            tls_class.return_value = tls

            FtpClient("ftp.example.com", secure=True).connect()

        tls.prot_p.assert_called_once()

    def test_not_connected(self):
        with pytest.raises(DeployTransferError, match="Not connected"):
            FtpClient("ftp.example.com").remove_file("a.txt")

    def test_context_manager_closes(self, mock_ftp):
        with FtpClient("ftp.example.com") as client:
            assert client.connected
        mock_ftp.quit.assert_called_once()
        assert not client.connected

    def test_close_is_idempotent(self, client, mock_ftp):
        client.close()
        client.close()
        mock_ftp.quit.assert_called_once()


class TestOperations:
    """Tests for file operations and error mapping."""

    def test_ensure_remote_directory_creates_missing(self, client, mock_ftp):
        mock_ftp.cwd.side_effect = [ftplib.error_perm("550 not found"), None, None]

        client.ensure_remote_directory("docs/img")

        mock_ftp.mkd.assert_called_once_with("docs")
        assert [c.args[0] for c in mock_ftp.cwd.call_args_list] == [
            "docs",
            "docs",
            "img",
        ]

    def test_upload_file(self, client, mock_ftp, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("alpha")

        client.upload_file(path, "a.txt")

        assert mock_ftp.storbinary.call_args[0][0] == "STOR a.txt"

    def test_upload_553_is_permission_error(self, client, mock_ftp, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("alpha")
        mock_ftp.storbinary.side_effect = ftplib.error_perm("553 Not allowed")

        with pytest.raises(DeployPermissionError) as exc_info:
            client.upload_file(path, "a.txt")

        assert exc_info.value.code == 553

    def test_upload_missing_local_file(self, client, tmp_path):
        with pytest.raises(DeployTransferError, match="Could not read"):
            client.upload_file(tmp_path / "missing.txt", "missing.txt")

    def test_download_to_memory(self, client, mock_ftp):
        def retr(command, callback):
            callback(b"hello ")
            callback(b"world")

        mock_ftp.retrbinary.side_effect = retr

        assert client.download_to_memory("state.json") == b"hello world"
        assert mock_ftp.retrbinary.call_args[0][0] == "RETR state.json"

    def test_download_missing_is_not_found(self, client, mock_ftp):
        mock_ftp.retrbinary.side_effect = ftplib.error_perm("550 No such file")
        with pytest.raises(DeployNotFoundError):
            client.download_to_memory("state.json")

    def test_remove_file_missing_is_not_found(self, client, mock_ftp):
        mock_ftp.delete.side_effect = ftplib.error_perm("550 No such file")
        with pytest.raises(DeployNotFoundError) as exc_info:
            client.remove_file("a.txt")
        assert exc_info.value.path == "a.txt"

    def test_temporary_error_is_transfer_error(self, client, mock_ftp):
        mock_ftp.rmd.side_effect = ftplib.error_temp("421 Service not available")
        with pytest.raises(DeployTransferError) as exc_info:
            client.remove_directory("docs")
        assert not isinstance(exc_info.value, DeployNotFoundError)
        assert exc_info.value.code == 421

    def test_change_to_parent(self, client, mock_ftp):
        client.change_to_parent()
        mock_ftp.cwd.assert_called_with("..")

    def test_wipe_root_with_mlsd(self, client, mock_ftp):
        mock_ftp.mlsd.side_effect = [
            iter(
                [
                    (".", {"type": "cdir"}),
                    ("a.txt", {"type": "file"}),
                    ("sub", {"type": "dir"}),
                ]
            ),
            iter([("b.txt", {"type": "file"})]),
        ]

        client.wipe_root()

        assert [c.args[0] for c in mock_ftp.delete.call_args_list] == [
            "a.txt",
            "b.txt",
        ]
        mock_ftp.rmd.assert_called_once_with("sub")

    def test_wipe_root_falls_back_to_nlst(self, client, mock_ftp):
        mock_ftp.mlsd.side_effect = ftplib.error_perm("500 Unknown command")
        mock_ftp.nlst.return_value = ["a.txt"]
        # cwd("/") for the root, then entering "a.txt" fails
        mock_ftp.cwd.side_effect = [None, ftplib.error_perm("550 Not a directory")]

        client.wipe_root()

        mock_ftp.delete.assert_called_once_with("a.txt")

    def test_wipe_root_empty_nlst_reply(self, client, mock_ftp):
        """Test that a 550 listing of an empty folder counts as empty."""
        mock_ftp.mlsd.side_effect = ftplib.error_perm("500 Unknown command")
        mock_ftp.nlst.side_effect = ftplib.error_perm("550 No files found")

        client.wipe_root()

        mock_ftp.delete.assert_not_called()
        mock_ftp.rmd.assert_not_called()

    def test_wipe_root_nlst_other_error(self, client, mock_ftp):
        mock_ftp.mlsd.side_effect = ftplib.error_perm("500 Unknown command")
        mock_ftp.nlst.side_effect = ftplib.error_perm("530 Not logged in")

        with pytest.raises(DeployTransferError) as exc_info:
            client.wipe_root()

        assert exc_info.value.code == 530

    def test_wipe_root_failure_reports_path(self, client, mock_ftp):
        """Test that a failed clear names the folder without asking the server."""
        mock_ftp.mlsd.side_effect = [
            iter([("sub", {"type": "dir"})]),
            iter([("b.txt", {"type": "file"})]),
        ]
        mock_ftp.delete.side_effect = ftplib.error_temp("421 Timeout")
        mock_ftp.pwd.reset_mock()

        with pytest.raises(DeployTransferError) as exc_info:
            client.wipe_root()

        assert exc_info.value.path == "/sub"
        mock_ftp.pwd.assert_not_called()
