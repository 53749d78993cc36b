"""Resize, crop, encode and write helpers shared by the level and pack pipelines."""

import io
import logging
import os
import tempfile
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)


class ImageProcessingError(Exception):
    """Image could not be decoded or encoded."""
    pass


def decode_image(data: bytes, mode: str = "RGBA") -> Image.Image:
    """Decode raw image bytes (any Pillow-readable format) into ``mode``.

    Raises:
        ImageProcessingError: If the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageProcessingError(f"Cannot decode image: {e}") from e
    if image.mode != mode:
        image = image.convert(mode)
    return image


def encode_webp(image: Image.Image, quality: int) -> bytes:
    """Encode an image as WebP at the given quality."""
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    buffer = io.BytesIO()
    try:
        image.save(buffer, "WEBP", quality=quality)
    except (OSError, ValueError) as e:
        raise ImageProcessingError(f"Cannot encode WebP: {e}") from e
    return buffer.getvalue()


def center_crop_height(image: Image.Image, max_height: int) -> Image.Image:
    """Keep the full width and the middle ``min(max_height, height)`` rows."""
    w, h = image.size
    crop_height = min(max_height, h)
    top = (h - crop_height) // 2
    return image.crop((0, top, w, top + crop_height))


def crop_to_fill(
    image: Image.Image,
    target_width: int,
    target_height: int,
) -> Image.Image:
    """Scale and center-crop image to fill target dimensions exactly.

    Scales to cover the entire target area, then crops excess.
    No letterboxing - image fills the entire space.

    Args:
        image: Source image
        target_width: Target width in pixels
        target_height: Target height in pixels

    Returns:
        Image cropped to exact target dimensions
    """
    w, h = image.size

    # Scale to cover the target - use max, not min
    scale = max(target_width / w, target_height / h)

    new_w = max(target_width, round(w * scale))
    new_h = max(target_height, round(h * scale))
    resized = image.resize((new_w, new_h), Image.Resampling.LANCZOS)

    left = (new_w - target_width) // 2
    top = (new_h - target_height) // 2
    return resized.crop((left, top, left + target_width, top + target_height))


def atomic_write_bytes(path: Path, payload: bytes) -> None:
    """Write ``payload`` to ``path`` through a temp file in the same directory.

    A reader never sees a partially written file under the final name.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    logger.debug(f"Wrote {path} ({len(payload)} bytes)")
