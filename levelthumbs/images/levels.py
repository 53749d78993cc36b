"""Per-level thumbnail generation.

For each level four files are kept on disk::

    levels/full/{id}.webp         full size, re-encoded from the remote thumbnail
    levels/cards/{id}.webp        center strip, CARD_HEIGHT rows
    og/levels/full/{id}.webp      OG_FULL_SIZE cover crop
    og/levels/cards/{id}.webp     OG_CARD_SIZE cover crop

A file's presence means it was completely written (writes go through a temp
file), so a re-run only produces what is missing.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from levelthumbs import config
from levelthumbs.client import FetchError
from levelthumbs.config import Directories, LevelPaths
from levelthumbs.images.processor import (
    ImageProcessingError,
    atomic_write_bytes,
    center_crop_height,
    crop_to_fill,
    decode_image,
    encode_webp,
)
from levelthumbs.models import Level
from levelthumbs.scheduler import DERIVED, FAILED, SKIPPED, BatchReport, run_bounded

logger = logging.getLogger(__name__)


class LevelState(Enum):
    NEED_CHECK = "need_check"
    HAVE_LOCAL_FULL = "have_local_full"
    NEED_REMOTE_FETCH = "need_remote_fetch"
    RESOLVED = "resolved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class LevelResolution:
    state: LevelState
    source: Optional[bytes] = None
    # HAVE_LOCAL_FULL or NEED_REMOTE_FETCH once resolved
    origin: Optional[LevelState] = None


def fetch_remote_full(level_id: int, paths: LevelPaths, client) -> LevelResolution:
    """Fetch the remote thumbnail, store it as the full image and read it back.

    The returned bytes are exactly what is on disk.
    """
    try:
        remote = client.fetch_level_thumbnail(level_id)
    except FetchError as e:
        if e.status == 404:
            logger.info(f"Remote thumbnail not found for level {level_id}, skipping.")
            return LevelResolution(LevelState.SKIPPED)
        logger.warning(f"Failed to fetch remote thumbnail for level {level_id}: {e}")
        return LevelResolution(LevelState.FAILED)

    try:
        full = encode_webp(decode_image(remote, "RGBA"), config.FULL_QUALITY)
    except ImageProcessingError as e:
        logger.warning(f"Remote thumbnail for level {level_id} is not a usable image: {e}")
        return LevelResolution(LevelState.FAILED)

    atomic_write_bytes(paths.full, full)
    return LevelResolution(
        LevelState.RESOLVED, paths.full.read_bytes(), origin=LevelState.NEED_REMOTE_FETCH
    )


def resolve_level_source(level_id: int, paths: LevelPaths, client) -> LevelResolution:
    """Find the source image for a level.

    Prefers the cached full image; otherwise fetches the remote thumbnail.

    Returns:
        LevelResolution in state RESOLVED (with source), SKIPPED or FAILED
    """
    if paths.all_exist():
        logger.debug(f"Level {level_id} skipped")
        return LevelResolution(LevelState.SKIPPED)

    if paths.full.exists():
        try:
            source = paths.full.read_bytes()
        except OSError as e:
            logger.warning(
                f"Failed to read existing full image for level {level_id}, "
                f"falling back to remote fetch: {e}"
            )
        else:
            return LevelResolution(LevelState.RESOLVED, source, origin=LevelState.HAVE_LOCAL_FULL)

    return fetch_remote_full(level_id, paths, client)


def derive_variants(source: bytes, paths: LevelPaths) -> list[str]:
    """Write the card and open graph variants that don't exist yet.

    Returns:
        Names of the variants written
    """
    written = []
    image = None

    def load():
        nonlocal image
        if image is None:
            image = decode_image(source, "RGBA")
        return image

    if not paths.card.exists():
        card = center_crop_height(load(), config.CARD_HEIGHT)
        atomic_write_bytes(paths.card, encode_webp(card, config.CARD_QUALITY))
        written.append("card")

    for name, path, size in (
        ("og_full", paths.og_full, config.OG_FULL_SIZE),
        ("og_card", paths.og_card, config.OG_CARD_SIZE),
    ):
        if path.exists():
            continue
        resized = crop_to_fill(load(), *size)
        atomic_write_bytes(path, encode_webp(resized, config.CARD_QUALITY))
        written.append(name)

    return written


def process_level(level: Level, directories: Directories, client) -> str:
    """Resolve and derive one level. Returns a scheduler outcome."""
    paths = directories.level_paths(level.level_id)
    resolution = resolve_level_source(level.level_id, paths, client)

    if resolution.state is LevelState.SKIPPED:
        return SKIPPED
    if resolution.state is LevelState.FAILED:
        return FAILED

    try:
        written = derive_variants(resolution.source, paths)
    except ImageProcessingError as e:
        if resolution.origin is not LevelState.HAVE_LOCAL_FULL:
            logger.warning(f"Failed to derive thumbnails for level {level.level_id}: {e}")
            return FAILED

        # Cached full image is corrupt: drop it and refetch once
        logger.warning(f"Cached full image for level {level.level_id} is unreadable, refetching: {e}")
        paths.full.unlink(missing_ok=True)
        resolution = fetch_remote_full(level.level_id, paths, client)
        if resolution.state is LevelState.SKIPPED:
            return SKIPPED
        if resolution.state is LevelState.FAILED:
            return FAILED
        try:
            written = derive_variants(resolution.source, paths)
        except (ImageProcessingError, OSError) as e:
            logger.warning(f"Failed to derive thumbnails for level {level.level_id}: {e}")
            return FAILED
    except OSError as e:
        logger.warning(f"Failed to derive thumbnails for level {level.level_id}: {e}")
        return FAILED

    if written:
        logger.debug(f"Level {level.level_id}: wrote {', '.join(written)}")
    return DERIVED


def ensure_level_directories(directories: Directories) -> None:
    for directory in directories.level_dirs():
        directory.mkdir(parents=True, exist_ok=True)


def process_levels_thumbnails(
    client,
    directories: Directories,
    limit: int = config.CONCURRENT_LIMIT,
) -> BatchReport:
    """Generate missing level thumbnails for every ranked level.

    Raises:
        FetchError, MetadataError: If the level lists can't be fetched
    """
    ensure_level_directories(directories)
    levels = client.fetch_levels()

    report = run_bounded(
        levels,
        lambda level: process_level(level, directories, client),
        limit,
        label="levels",
        describe=lambda level: f"level {level.level_id}",
    )
    logger.info(report.summary())
    return report
