"""Metadata and naming utilities for uploaded files."""

import time
from pathlib import Path


def extract_filename(storage_path: str) -> str:
    """Extract filename from storage path.

    Args:
        storage_path: Full path (e.g., 'uploads/cat.png').

    Returns:
        Filename (e.g., 'cat.png').
    """
    return Path(storage_path).name


def derivative_name(filename: str, width: int, height: int) -> str:
    """Build the thumbnail filename for an upload.

    The geometry prefix is height first: a 317x262 profile
    turns 'cat.png' into '262x317-cat.png'.

    Args:
        filename: Stored filename of the original upload.
        width: Thumbnail width in pixels.
        height: Thumbnail height in pixels.

    Returns:
        Thumbnail filename.
    """
    return f'{height}x{width}-{filename}'


def build_public_id(prefix: str, original_name: str) -> str:
    """Build a collision-free remote object identifier.

    Args:
        prefix: Namespace of uploaded objects (e.g., 'file').
        original_name: Client-side filename of the upload.

    Returns:
        Identifier like 'file/1760000000000-logo.png'.
    """
    millis = time.time_ns() // 1_000_000
    return f'{prefix}/{millis}-{extract_filename(original_name)}'
