"""Thumbnail generation for locally stored images."""

import logging
import os
import secrets
from pathlib import Path
from typing import Final

from PIL import Image

from server.apps.uploads.exceptions import TransformError

# Modes each output format can store without conversion
_STORABLE_MODES: Final[dict[str, frozenset[str]]] = {
    'JPEG': frozenset(('RGB', 'L', 'CMYK')),
    'BMP': frozenset(('RGB', 'L', '1', 'P')),
}

_FALLBACK_FORMAT: Final = 'PNG'

logger = logging.getLogger(__name__)


def generate_thumbnail(
    source_path: str | Path,
    target_path: str | Path,
    width: int,
    height: int,
) -> tuple[int, int]:
    """Resize an image to exactly the requested geometry.

    The resize ignores the source aspect ratio. The result is encoded
    into a temporary file beside the target and renamed into place, so
    the target either holds a complete thumbnail or does not exist.

    Args:
        source_path: Local path of the source image.
        target_path: Path to write the thumbnail to.
        width: Thumbnail width in pixels.
        height: Thumbnail height in pixels.

    Returns:
        Geometry (width, height) of the source image.

    Raises:
        TransformError: If the source cannot be decoded or the
            thumbnail cannot be written.
    """
    source = Path(source_path)
    target = Path(target_path)
    temp_path = target.with_name(f'.{target.name}.{secrets.token_hex(4)}.tmp')

    logger.info(
        'Generating %dx%d thumbnail: %s -> %s',
        width,
        height,
        source,
        target,
    )
    try:
        if width <= 0 or height <= 0:
            raise ValueError(f'Invalid thumbnail geometry {width}x{height}')
        with Image.open(source) as image:
            source_size = image.size
            output_format = _output_format(target, image.format)
            resized = image.resize((width, height), Image.Resampling.LANCZOS)
        _convert_for_format(resized, output_format).save(
            temp_path,
            format=output_format,
        )
        os.replace(temp_path, target)
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.exception('Thumbnail generation failed: %s', source)
        temp_path.unlink(missing_ok=True)
        raise TransformError(str(source), str(target), exc) from exc

    logger.info('Thumbnail generated: %s', target)
    return source_size


def _output_format(target: Path, source_format: str | None) -> str:
    """Pick the encoder matching the target extension.

    Formats Pillow can only read fall through to the source format,
    then to PNG.

    Args:
        target: Thumbnail path.
        source_format: Format Pillow detected for the source.

    Returns:
        Pillow format name with a registered encoder.
    """
    by_extension = Image.registered_extensions().get(target.suffix.lower())
    for candidate in (by_extension, source_format):
        if candidate in Image.SAVE:
            return candidate
    return _FALLBACK_FORMAT


def _convert_for_format(image: Image.Image, output_format: str) -> Image.Image:
    """Convert image mode when the encoder cannot store it.

    Args:
        image: Resized image.
        output_format: Pillow format name.

    Returns:
        Image in a mode the encoder accepts.
    """
    allowed_modes = _STORABLE_MODES.get(output_format)
    if allowed_modes is None or image.mode in allowed_modes:
        return image
    return image.convert('RGB')
