"""Distribution archive extraction.

This module handles:
- Detecting archive compression
- Extraction with path traversal checks
- SHA-256 verification of archives
"""

from __future__ import annotations

import hashlib
import logging
import subprocess
import tarfile
from pathlib import Path

from oxbuild.errors import ArchiveIOError

logger = logging.getLogger(__name__)

ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

# Chunk size for hashing (bytes)
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB


def compute_file_sha256(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Compute SHA256 checksum of a file.

    Args:
        file_path: Path to the file.
        chunk_size: Size of chunks to read.

    Returns:
        SHA256 hex digest.
    """
    sha256 = hashlib.sha256()
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.hexdigest()


def verify_sha256(file_path: Path, expected: str) -> None:
    """Verify an archive against its expected digest.

    Raises:
        ArchiveIOError: If the file cannot be read or the digest differs.
    """
    try:
        actual = compute_file_sha256(file_path)
    except OSError as e:
        raise ArchiveIOError(
            f"Failed to read {file_path}: {e}", code="read_error", path=file_path
        ) from e
    if actual != expected.lower():
        raise ArchiveIOError(
            f"Checksum mismatch for {file_path}: expected {expected}, got {actual}",
            code="checksum_mismatch",
            path=file_path,
        )


def is_zstd(archive_path: Path) -> bool:
    """Return True if the file starts with the zstd frame magic."""
    with archive_path.open("rb") as f:
        return f.read(len(ZSTD_MAGIC)) == ZSTD_MAGIC


def _check_members(archive_path: Path, tar: tarfile.TarFile) -> None:
    members = tar.getmembers()
    if not members:
        raise ArchiveIOError(
            f"Archive {archive_path} is empty", code="empty_archive", path=archive_path
        )
    for member in members:
        member_path = Path(member.name)
        if member_path.is_absolute() or ".." in member_path.parts:
            raise ArchiveIOError(
                f"Refusing to extract {member.name}: path traversal detected",
                code="path_traversal",
                path=archive_path,
            )


def _extract_zstd(archive_path: Path, dest_dir: Path) -> None:
    # tarfile has no zstd support; use the system tar (list args, no shell)
    result = subprocess.run(
        ["tar", "-xf", str(archive_path.resolve()), "-C", str(dest_dir.resolve())],
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise ArchiveIOError(
            f"Failed to extract {archive_path}: {result.stderr.strip()}",
            code="tar_error",
            path=archive_path,
        )


def extract_archive(archive_path: Path, dest_dir: Path) -> Path:
    """Decompress and extract a distribution archive.

    Args:
        archive_path: Path to the archive file.
        dest_dir: Destination directory for extraction (created if missing).

    Returns:
        The destination directory.

    Raises:
        ArchiveIOError: If the archive cannot be read or extracted.
    """
    logger.info("Extracting %s to %s", archive_path.name, dest_dir)

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)

        if is_zstd(archive_path):
            _extract_zstd(archive_path, dest_dir)
        else:
            with tarfile.open(archive_path, "r:*") as tar:
                _check_members(archive_path, tar)
                tar.extractall(dest_dir, filter="data")

    except tarfile.TarError as e:
        raise ArchiveIOError(
            f"Failed to extract {archive_path}: {e}",
            code="tar_error",
            path=archive_path,
        ) from e
    except OSError as e:
        raise ArchiveIOError(
            f"OS error extracting {archive_path}: {e}",
            code="os_error",
            path=archive_path,
        ) from e

    return dest_dir


__all__ = [
    "ZSTD_MAGIC",
    "compute_file_sha256",
    "extract_archive",
    "is_zstd",
    "verify_sha256",
]
