"""Shared fixtures: an in-memory remote store with FTP working-directory rules."""

from pathlib import Path
from typing import Optional, Union

import pytest

from pydeploy.exceptions import DeployNotFoundError, DeployTransferError
from pydeploy.output import OutputFormatter


class FakeTransferClient:
    """Remote store kept in nested dicts (folders) and bytes (files).

    Mirrors the behavior the sync engine relies on: a single working
    directory, NotFound on missing targets, and ``..`` to climb back up.
    Failures can be injected per (operation, full path).
    """

    def __init__(self) -> None:
        self.tree: dict = {}
        self.cwd: list[str] = []
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.connected = False
        self.closed = False

    def __enter__(self) -> "FakeTransferClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Helpers for tests

    def put(self, path: str, content: Union[bytes, str] = b"") -> None:
        """Store a file at a root-relative path, creating its folders."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        *folders, name = path.split("/")
        node = self.tree
        for folder in folders:
            node = node.setdefault(folder, {})
        node[name] = content

    def get(self, path: str) -> Optional[Union[bytes, dict]]:
        node: Union[bytes, dict] = self.tree
        for part in path.split("/"):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def files(self) -> set[str]:
        found: set[str] = set()

        def walk(node: dict, prefix: str) -> None:
            for name, child in node.items():
                if isinstance(child, dict):
                    walk(child, f"{prefix}{name}/")
                else:
                    found.add(f"{prefix}{name}")

        walk(self.tree, "")
        return found

    def folders(self) -> set[str]:
        found: set[str] = set()

        def walk(node: dict, prefix: str) -> None:
            for name, child in node.items():
                if isinstance(child, dict):
                    found.add(f"{prefix}{name}")
                    walk(child, f"{prefix}{name}/")

        walk(self.tree, "")
        return found

    def _full(self, name: str) -> str:
        return "/".join([*self.cwd, name])

    def _here(self) -> dict:
        node = self.tree
        for part in self.cwd:
            node = node[part]
        return node

    def _record(self, operation: str, path: str) -> None:
        self.calls.append((operation, path))
        failure = self.failures.get((operation, path))
        if failure is not None:
            raise failure

    # TransferClientProtocol

    def connect(self) -> None:
        self._record("connect", "")
        self.connected = True

    def ensure_remote_directory(self, path: str) -> None:
        self._record("ensure", self._full(path))
        for part in path.split("/"):
            if part in ("", "."):
                continue
            here = self._here()
            child = here.setdefault(part, {})
            if not isinstance(child, dict):
                raise DeployTransferError(
                    f"{self._full(part)} is a file", path=part, code=550
                )
            self.cwd.append(part)

    def upload_file(self, local_path: Union[str, Path], remote_name: str) -> None:
        self._record("upload", self._full(remote_name))
        self._here()[remote_name] = Path(local_path).read_bytes()

    def download_to_memory(self, remote_path: str) -> bytes:
        self._record("download", self._full(remote_path))
        node = self.get(self._full(remote_path))
        if not isinstance(node, bytes):
            raise DeployNotFoundError(
                f"550 {remote_path}: No such file", path=remote_path, code=550
            )
        return node

    def remove_file(self, remote_name: str) -> None:
        self._record("remove_file", self._full(remote_name))
        here = self._here()
        if not isinstance(here.get(remote_name), bytes):
            raise DeployNotFoundError(
                f"550 {remote_name}: No such file", path=remote_name, code=550
            )
        del here[remote_name]

    def remove_directory(self, remote_name: str) -> None:
        self._record("remove_directory", self._full(remote_name))
        here = self._here()
        node = here.get(remote_name)
        if not isinstance(node, dict):
            raise DeployNotFoundError(
                f"550 {remote_name}: No such directory", path=remote_name, code=550
            )
        if node:
            # Real servers answer RMD on a non-empty folder with 550 too
            raise DeployNotFoundError(
                f"550 {remote_name}: Directory not empty", path=remote_name, code=550
            )
        del here[remote_name]

    def change_to_parent(self) -> None:
        self._record("cdup", "/".join(self.cwd))
        if not self.cwd:
            raise DeployTransferError("Already at the root")
        self.cwd.pop()

    def wipe_root(self) -> None:
        self._record("wipe", "")
        self.tree.clear()
        self.cwd = []

    def close(self) -> None:
        self._record("close", "")
        self.closed = True


@pytest.fixture
def fake_client():
    """Create an empty in-memory remote store."""
    return FakeTransferClient()


@pytest.fixture
def quiet_output():
    """Create an output formatter that prints nothing."""
    return OutputFormatter(quiet=True)


@pytest.fixture
def site(tmp_path):
    """Create a small local site to deploy."""
    root = tmp_path / "site"
    (root / "docs").mkdir(parents=True)
    (root / "index.html").write_text("<h1>home</h1>")
    (root / "docs" / "a.txt").write_text("alpha")
    (root / "docs" / "b.txt").write_text("bravo")
    return root
