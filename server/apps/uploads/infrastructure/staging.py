"""Removal of staging files landed by the upload transport."""

import logging
import os
from pathlib import Path

from server.apps.uploads.exceptions import CleanupError

logger = logging.getLogger(__name__)


def remove_staging_file(path: str | Path) -> None:
    """Delete a staging file from local disk.

    Args:
        path: Staging file path.

    Raises:
        CleanupError: If the file is missing or cannot be removed.
    """
    try:
        os.remove(path)
    except OSError as exc:
        raise CleanupError(str(path), exc) from exc
    logger.info('Staging file removed: %s', path)
