"""Pack banner compositor.

A banner is a ``PACK_CANVAS_SIZE`` canvas split into one slice per level.
Each slice is a parallelogram whose top edge is shifted right by the canvas
height, giving the angled look::

        xs+H          xe+H
         ___________
        /          /
       /          /
      /__________/
     xs          xe

The level's full thumbnail is drawn zoomed out (``PACK_DEZOOM``) behind the
slice clip, slices are separated by white strokes along the shared edge, and
the result is cropped to ``PACK_OUTPUT_HEIGHT`` rows around the middle.
"""

import logging
import math
from typing import Callable, Optional, Sequence

from PIL import Image, ImageChops, ImageDraw

from levelthumbs import config
from levelthumbs.client import FetchError
from levelthumbs.config import Directories
from levelthumbs.images.gradient import render_background
from levelthumbs.images.processor import (
    ImageProcessingError,
    atomic_write_bytes,
    decode_image,
    encode_webp,
)
from levelthumbs.models import Level, Pack, PackTier
from levelthumbs.scheduler import DERIVED, FAILED, BatchReport, run_bounded

logger = logging.getLogger(__name__)

ImageLoader = Callable[[Level], Optional[Image.Image]]


def slice_polygon(index: int, thumbnail_width: float, canvas_height: int) -> list[tuple[float, float]]:
    """Corners of slice ``index``: top-left, top-right, bottom-right, bottom-left."""
    x_start = index * thumbnail_width
    x_end = (index + 1) * thumbnail_width
    return [
        (x_start + canvas_height, 0),
        (x_end + canvas_height, 0),
        (x_end, canvas_height),
        (x_start, canvas_height),
    ]


def dezoomed_source_box(
    image_size: tuple[int, int],
    destination_width: float,
    dezoom: float = config.PACK_DEZOOM,
) -> tuple[tuple[float, float, float, float], float]:
    """Centered source window for a destination box ``destination_width`` wide.

    The destination height keeps the image aspect ratio; the source window is
    the destination box enlarged by ``1 / dezoom``. The window may extend past
    the image bounds.

    Returns:
        ((sx, sy, sw, sh), destination_height)
    """
    w, h = image_size
    destination_height = destination_width * (h / w)
    source_width = destination_width / dezoom
    source_height = destination_height / dezoom
    sx = (w - source_width) / 2
    sy = (h - source_height) / 2
    return (sx, sy, source_width, source_height), destination_height


def draw_image_region(
    canvas: Image.Image,
    image: Image.Image,
    source: tuple[float, float, float, float],
    destination: tuple[float, float, float, float],
    mask: Optional[Image.Image] = None,
) -> None:
    """Draw ``source`` rect of ``image`` scaled into ``destination`` rect of ``canvas``.

    Like canvas ``drawImage``: the part of the source rect outside the image
    is dropped and the destination shrinks in proportion. Rects are
    ``(x, y, width, height)``. ``mask`` (mode L, canvas size) limits where
    pixels land.
    """
    sx, sy, sw, sh = source
    dx, dy, dw, dh = destination
    if sw <= 0 or sh <= 0 or dw <= 0 or dh <= 0:
        return
    kx = dw / sw
    ky = dh / sh

    # Clip source to the image
    iw, ih = image.size
    sx0, sy0 = max(sx, 0.0), max(sy, 0.0)
    sx1, sy1 = min(sx + sw, iw), min(sy + sh, ih)
    if sx1 <= sx0 or sy1 <= sy0:
        return

    # Matching destination, then clip that to the canvas
    cw, ch = canvas.size
    dx0 = dx + (sx0 - sx) * kx
    dy0 = dy + (sy0 - sy) * ky
    dx1 = dx + (sx1 - sx) * kx
    dy1 = dy + (sy1 - sy) * ky
    cx0, cy0 = max(dx0, 0.0), max(dy0, 0.0)
    cx1, cy1 = min(dx1, cw), min(dy1, ch)
    if cx1 <= cx0 or cy1 <= cy0:
        return

    # Snap to whole canvas pixels and map back to the source
    px0, py0 = math.floor(cx0), math.floor(cy0)
    px1, py1 = math.ceil(cx1), math.ceil(cy1)
    box = (
        sx + (px0 - dx) / kx,
        sy + (py0 - dy) / ky,
        sx + (px1 - dx) / kx,
        sy + (py1 - dy) / ky,
    )
    box = (max(box[0], 0.0), max(box[1], 0.0), min(box[2], iw), min(box[3], ih))
    if box[2] <= box[0] or box[3] <= box[1]:
        return

    if image.mode != "RGBA":
        image = image.convert("RGBA")
    region = image.resize(
        (px1 - px0, py1 - py0), Image.Resampling.BILINEAR, box=box
    )

    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    layer.paste(region, (px0, py0))
    if mask is not None:
        layer.putalpha(ImageChops.multiply(layer.getchannel("A"), mask))
    canvas.alpha_composite(layer)


def render_pack_banner(
    levels: Sequence[Level],
    color: Optional[str],
    load_image: ImageLoader,
    canvas_size: tuple[int, int] = config.PACK_CANVAS_SIZE,
    dezoom: float = config.PACK_DEZOOM,
    label: str = "pack",
) -> Image.Image:
    """Composite the full-height banner for ``levels`` (already in banner order).

    Levels whose image can't be loaded are left out; the background shows
    through their slice.
    """
    if not levels:
        raise ValueError("A pack banner needs at least one level")

    canvas_width, canvas_height = canvas_size
    thumbnail_width = canvas_width / len(levels)

    canvas = render_background(color, canvas_width, canvas_height)

    for i, level in enumerate(levels):
        image = load_image(level)
        if image is None:
            logger.warning(f"No thumbnail for level {level.level_id} in {label}, leaving slice empty")
            continue

        polygon = slice_polygon(i, thumbnail_width, canvas_height)
        mask = Image.new("L", canvas.size, 0)
        ImageDraw.Draw(mask).polygon(polygon, fill=255)

        destination_width = thumbnail_width + canvas_height
        source_box, destination_height = dezoomed_source_box(image.size, destination_width, dezoom)
        draw_image_region(
            canvas,
            image,
            source_box,
            (i * thumbnail_width, 0, destination_width, destination_height),
            mask=mask,
        )

        # Divider along the shared edge with the next slice
        if i < len(levels) - 1:
            top_right, bottom_right = polygon[1], polygon[2]
            ImageDraw.Draw(canvas).line(
                [top_right, bottom_right],
                fill=config.PACK_DIVIDER_COLOR,
                width=config.PACK_DIVIDER_WIDTH,
            )

    return canvas


def crop_banner(canvas: Image.Image, output_height: int = config.PACK_OUTPUT_HEIGHT) -> Image.Image:
    """Keep ``output_height`` rows around the vertical middle."""
    w, h = canvas.size
    top = (h - output_height) // 2
    return canvas.crop((0, top, w, top + output_height))


def make_level_loader(directories: Directories, client, pack_id: str = "") -> ImageLoader:
    """Loader that reads the cached full image, falling back to the remote PNG.

    Both paths decode to RGBA so the compositor sees a single raster format.
    """

    def load(level: Level) -> Optional[Image.Image]:
        local_path = directories.level_paths(level.level_id).full
        try:
            return decode_image(local_path.read_bytes(), "RGBA")
        except (OSError, ImageProcessingError) as e:
            logger.warning(
                f"Failed to load local thumbnail for level {level.level_id} in pack {pack_id}: {e}"
            )

        try:
            return decode_image(client.fetch_pack_fallback(level.level_id), "RGBA")
        except (FetchError, ImageProcessingError) as e:
            logger.warning(f"Failed to load thumbnail for level {level.level_id} in pack {pack_id}: {e}")
            return None

    return load


def process_pack(pack: Pack, tier: PackTier, directories: Directories, client) -> str:
    """Render, crop, encode and write one pack banner. Returns a scheduler outcome."""
    levels = pack.sorted_levels()
    loader = make_level_loader(directories, client, pack.id)
    try:
        banner = render_pack_banner(levels, tier.color, loader, label=f"pack {pack.id}")
        payload = encode_webp(crop_banner(banner), config.CARD_QUALITY)
        atomic_write_bytes(directories.pack_path(pack.id), payload)
    except (ImageProcessingError, OSError, ValueError) as e:
        logger.warning(f"Failed to build banner for pack {pack.id}: {e}")
        return FAILED
    return DERIVED


def clear_pack_directory(directories: Directories) -> int:
    """Create the packs directory, or delete the regular files already in it."""
    directory = directories.packs
    if not directory.exists():
        directory.mkdir(parents=True, exist_ok=True)
        return 0

    removed = 0
    for path in directory.iterdir():
        if path.is_file() and not path.is_symlink():
            path.unlink()
            removed += 1
    logger.info(f"Cleared {removed} existing pack banner(s) from {directory}")
    return removed


def process_packs_thumbnails(
    client,
    directories: Directories,
    limit: int = config.CONCURRENT_LIMIT,
) -> BatchReport:
    """Regenerate every pack banner.

    Raises:
        FetchError, MetadataError: If the pack tiers can't be fetched
    """
    clear_pack_directory(directories)
    tiers = client.fetch_pack_tiers()

    jobs = [(pack, tier) for tier in tiers for pack in tier.packs if pack.levels]

    report = run_bounded(
        jobs,
        lambda job: process_pack(job[0], job[1], directories, client),
        limit,
        label="packs",
        describe=lambda job: f"pack {job[0].id}",
    )
    logger.info(report.summary())
    return report
