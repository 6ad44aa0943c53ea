"""Tests for utility functions."""

import hashlib
import io
import json
from datetime import datetime
from unittest.mock import patch

import pytest
from rich.console import Console

from pydeploy.exceptions import DeployHashError
from pydeploy.output import OutputFormatter
from pydeploy.timings import Timings
from pydeploy.utils import (
    calculate_file_hash,
    format_size,
    format_timestamp_ms,
    pluralize,
    split_remote_path,
)


class TestCalculateFileHash:
    """Tests for calculate_file_hash."""

    def test_sha256_by_default(self, tmp_path):
        """Test that the default digest is sha256."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello world")
        assert calculate_file_hash(path) == hashlib.sha256(b"hello world").hexdigest()

    def test_empty_file(self, tmp_path):
        """Test hashing an empty file."""
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert calculate_file_hash(path) == hashlib.sha256(b"").hexdigest()

    def test_small_chunks(self, tmp_path):
        """Test that chunked reading gives the same digest."""
        data = b"x" * 10_000
        path = tmp_path / "big"
        path.write_bytes(data)
        assert (
            calculate_file_hash(path, chunk_size=7)
            == hashlib.sha256(data).hexdigest()
        )

    def test_other_algorithm(self, tmp_path):
        """Test choosing md5."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"abc")
        assert calculate_file_hash(path, "md5") == hashlib.md5(b"abc").hexdigest()

    def test_unsupported_algorithm(self, tmp_path):
        """Test that unknown algorithms are rejected."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"abc")
        with pytest.raises(ValueError, match="Unsupported"):
            calculate_file_hash(path, "crc32")

    def test_missing_file(self, tmp_path):
        """Test that an unreadable file raises DeployHashError."""
        with pytest.raises(DeployHashError) as exc_info:
            calculate_file_hash(tmp_path / "missing.txt")
        assert "missing.txt" in str(exc_info.value)


class TestSplitRemotePath:
    """Tests for split_remote_path."""

    def test_nested_file(self):
        assert split_remote_path("folder/other/file.txt") == (
            ["folder", "other"],
            "file.txt",
        )

    def test_root_file(self):
        assert split_remote_path("file.txt") == ([], "file.txt")

    def test_folder_path(self):
        """Test that a trailing slash means there is no file part."""
        assert split_remote_path("folder/other/") == (["folder", "other"], None)

    def test_empty_components_dropped(self):
        assert split_remote_path("a//b/c.txt") == (["a", "b"], "c.txt")


class TestFormatting:
    """Tests for formatting helpers."""

    def test_format_size(self):
        assert format_size(0) == "0 B"
        assert format_size(512) == "512 B"
        assert format_size(1536) == "1.5 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"
        assert format_size(2 * 1024**3) == "2.0 GB"

    def test_pluralize(self):
        assert pluralize(1, "file", "files") == "file"
        assert pluralize(0, "file", "files") == "files"
        assert pluralize(2, "file", "files") == "files"

    def test_format_timestamp_ms(self):
        """Test that milliseconds are converted to local time."""
        expected = datetime.fromtimestamp(1_700_000_000).strftime(
            "%A, %B %d, %Y %H:%M"
        )
        assert format_timestamp_ms(1_700_000_000_000) == expected


class TestTimings:
    """Tests for the run report stopwatches."""

    def test_start_end(self):
        with patch("pydeploy.timings.time.perf_counter", side_effect=[10.0, 12.5]):
            timings = Timings()
            timings.start("hash")
            timings.end("hash")
        assert timings.get_time("hash") == 2.5
        assert timings.get_time_formatted("hash") == "2.5 seconds"
        assert timings.as_dict() == {"hash": 2.5}

    def test_unfinished_step(self):
        timings = Timings()
        timings.start("upload")
        assert timings.get_time("upload") is None
        assert timings.get_time_formatted("upload") == "💣 Failed"

    def test_end_without_start(self):
        timings = Timings()
        timings.end("never")
        assert timings.as_dict() == {}


class TestOutputFormatter:
    """Tests for OutputFormatter."""

    def test_info(self):
        buffer = io.StringIO()
        out = OutputFormatter(console=Console(file=buffer, width=200))
        out.info("Uploading [docs]")
        assert "Uploading [docs]" in buffer.getvalue()

    def test_quiet_suppresses_info(self):
        buffer = io.StringIO()
        out = OutputFormatter(quiet=True, console=Console(file=buffer))
        out.info("hidden")
        out.success("hidden")
        assert buffer.getvalue() == ""

    def test_output_json(self, capsys):
        OutputFormatter(json_output=True).output_json({"upload": ["a.txt"]})
        assert json.loads(capsys.readouterr().out) == {"upload": ["a.txt"]}
