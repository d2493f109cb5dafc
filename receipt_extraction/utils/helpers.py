"""
Helper Utilities Module.

This module provides small utility functions used throughout the
receipt extraction system.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - format_file_size: Human-readable byte counts
    - clamp_unit: Clamp a score into the [0, 1] range
"""

from pathlib import Path
from typing import Union


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/scans")
        PosixPath('outputs/scans')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the lowercase file extension from a filepath, including the dot.

    Example:
        >>> get_file_extension("receipt.JPG")
        '.jpg'
        >>> get_file_extension("noextension")
        ''
    """
    return Path(filepath).suffix.lower()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes.

    Returns:
        Human-readable file size string.

    Example:
        >>> format_file_size(1536)
        '1.5 KB'
        >>> format_file_size(10485760)
        '10.0 MB'
    """
    size = float(size_bytes)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"


def clamp_unit(value: float) -> float:
    """Clamp a confidence or progress value into [0, 1]."""
    return max(0.0, min(1.0, float(value)))
