"""Utility functions for digikam-select."""

import os
import re
from datetime import datetime
from pathlib import Path
from typing import Generator, Iterable
import logging

import psutil

logger = logging.getLogger(__name__)

JPEG_PATTERN = re.compile(r'\.jpe?g$', re.IGNORECASE)


def is_jpeg(file_name: str) -> bool:
    """Check whether a file name carries a JPEG extension (any case)."""
    return bool(JPEG_PATTERN.search(file_name))


def is_readable_file(file_path: Path) -> bool:
    """
    Check that a path is an existing, readable regular file.

    Args:
        file_path: Path to check

    Returns:
        True if the file can be opened for reading
    """
    return file_path.is_file() and os.access(file_path, os.R_OK)


def path_exists(path: Path) -> bool:
    """Like Path.exists(), but also true for dangling symlinks."""
    return os.path.lexists(path)


def get_file_size(file_path: Path) -> int:
    """
    Get file size in bytes.

    Args:
        file_path: Path to file

    Returns:
        File size in bytes, 0 if error
    """
    try:
        return file_path.stat().st_size
    except OSError as e:
        logger.error(f"Failed to get size for {file_path}: {e}")
        return 0


def format_bytes(bytes_value: int) -> str:
    """
    Format bytes as human-readable string.

    Args:
        bytes_value: Size in bytes

    Returns:
        Formatted string like "1.2GB"
    """
    if bytes_value == 0:
        return "0B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(bytes_value)

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    return f"{size:.1f}{units[unit_index]}"


def get_available_space(path: Path) -> int:
    """
    Get available disk space for a path in bytes.

    Args:
        path: Path to check

    Returns:
        Available space in bytes
    """
    try:
        usage = psutil.disk_usage(str(path))
        return usage.free
    except OSError as e:
        logger.error(f"Failed to get disk space for {path}: {e}")
        return 0


def ensure_directory(path: Path) -> bool:
    """
    Ensure directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure

    Returns:
        True if directory exists or was created successfully
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except OSError as e:
        logger.error(f"Failed to create directory {path}: {e}")
        return False


def find_files(directory: Path) -> Generator[Path, None, None]:
    """
    Recursively yield regular files and symlinks below a directory.

    Symlinked directories are reported as entries, not descended into.
    """
    if not directory.exists() or not directory.is_dir():
        logger.warning(f"Directory does not exist or is not a directory: {directory}")
        return

    for dirpath, dirnames, filenames in os.walk(str(directory)):
        base = Path(dirpath)
        for dirname in dirnames:
            if (base / dirname).is_symlink():
                yield base / dirname
        for filename in filenames:
            yield base / filename


def total_size(paths: Iterable[Path]) -> int:
    """Sum the sizes of the given files, ignoring ones that cannot be read."""
    return sum(get_file_size(p) for p in paths if p.is_file())


def cleanup_empty_directories(directory: Path) -> int:
    """
    Remove empty directories recursively.

    The root directory itself is never removed.

    Args:
        directory: Root directory to clean up

    Returns:
        Number of directories removed
    """
    removed_count = 0

    # Walk bottom-up to remove empty directories
    for dirpath, dirnames, filenames in os.walk(str(directory), topdown=False):
        dir_path = Path(dirpath)
        if dir_path == directory:
            continue

        # Skip if directory has files
        if filenames:
            continue

        # Skip if directory has subdirectories (that weren't empty)
        if any(os.path.lexists(dir_path / dirname) for dirname in dirnames):
            continue

        try:
            dir_path.rmdir()
            logger.debug(f"Removed empty directory: {dir_path}")
            removed_count += 1
        except OSError as e:
            logger.debug(f"Could not remove directory {dir_path}: {e}")

    return removed_count


def get_current_timestamp():
    """Get current timestamp as ISO string."""
    return datetime.now().isoformat()
