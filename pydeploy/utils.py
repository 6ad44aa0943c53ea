"""Utility functions for PyDeploy."""

import hashlib
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .exceptions import DeployHashError

# =============================================================================
# Constants for file operations
# =============================================================================

# Read size used when streaming a file through the hash (1 MB)
HASH_CHUNK_SIZE: int = 1024 * 1024

# Algorithm used for content fingerprints
DEFAULT_HASH_ALGORITHM: str = "sha256"

SUPPORTED_HASH_ALGORITHMS: tuple[str, ...] = ("md5", "sha1", "sha256", "sha512")

# Name of the state document stored at the root of the synchronized tree
DEFAULT_STATE_NAME: str = ".ftp-deploy-sync-state.json"

# Default FTP control port and timeout
DEFAULT_FTP_PORT: int = 21
DEFAULT_TIMEOUT: float = 30.0


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_file_hash(
    file_path: Union[str, Path],
    algorithm: str = DEFAULT_HASH_ALGORITHM,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Calculate the content fingerprint of a local file.

    The file is streamed in chunks so memory stays bounded for large files.

    Args:
        file_path: Path of the file to hash
        algorithm: Name of the hashlib algorithm (default: sha256)
        chunk_size: Number of bytes read per iteration

    Returns:
        Lowercase hexadecimal digest

    Raises:
        DeployHashError: If the file cannot be opened or read

    Examples:
        >>> calculate_file_hash("empty.txt")  # doctest: +SKIP
        'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    if algorithm not in SUPPORTED_HASH_ALGORITHMS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    digest = hashlib.new(algorithm)
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
    except OSError as e:
        raise DeployHashError(str(file_path), e.strerror or str(e)) from e

    return digest.hexdigest()


# =============================================================================
# Remote path utilities
# =============================================================================


def split_remote_path(full_path: str) -> tuple[list[str], Optional[str]]:
    """Split a root-relative path into its folder components and file name.

    A trailing slash means the path names a folder, so there is no file part.

    Args:
        full_path: Path such as "folder/other/file.txt" or "folder/other/"

    Returns:
        Tuple of (folders, file_name); file_name is None for folder paths

    Examples:
        >>> split_remote_path("folder/other/file.txt")
        (['folder', 'other'], 'file.txt')
        >>> split_remote_path("file.txt")
        ([], 'file.txt')
        >>> split_remote_path("folder/other/")
        (['folder', 'other'], None)
    """
    parts = full_path.split("/")
    file_name = parts.pop()
    folders = [part for part in parts if part]
    return folders, file_name or None


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: float) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{int(size_bytes)} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def pluralize(count: int, singular: str, plural: str) -> str:
    """Pick the singular or plural word for a count.

    Examples:
        >>> pluralize(1, "file", "files")
        'file'
        >>> pluralize(0, "file", "files")
        'files'
    """
    return singular if count == 1 else plural


def format_timestamp_ms(timestamp_ms: int) -> str:
    """Render an epoch-milliseconds timestamp in local time.

    Args:
        timestamp_ms: Milliseconds since the Unix epoch

    Returns:
        String such as "Monday, January 15, 2025 10:30"
    """
    dt = datetime.fromtimestamp(timestamp_ms / 1000)
    return dt.strftime("%A, %B %d, %Y %H:%M")
