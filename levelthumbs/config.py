"""Endpoints, sizes and on-disk layout for the thumbnail pipeline."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the working directory if present
_env_path = Path.cwd() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

LEVELS_API_URL = "https://api.aredl.net/v2/api/aredl/levels"
PLAT_LEVELS_API_URL = "https://api.aredl.net/v2/api/arepl/levels"
PACKS_API_URL = "https://api.aredl.net/v2/api/aredl/pack-tiers?v=thumbnails"
PLAT_PACKS_API_URL = "https://api.aredl.net/v2/api/arepl/pack-tiers?v=thumbnails"
THUMBNAIL_BASE_URL = os.environ.get(
    "LEVELTHUMBS_THUMBNAIL_URL", "https://levelthumbs.prevter.me/thumbnail"
).rstrip("/")

IMAGE_EXT = "webp"

# Level variants
CARD_HEIGHT = 200
OG_FULL_SIZE = (1200, 630)
OG_CARD_SIZE = (400, 48)
FULL_QUALITY = 50
CARD_QUALITY = 70

# Pack banners
PACK_CANVAS_SIZE = (1920, 300)
PACK_OUTPUT_HEIGHT = CARD_HEIGHT
PACK_DEZOOM = 0.45
PACK_DIVIDER_WIDTH = 10
PACK_DIVIDER_COLOR = "white"

CONCURRENT_LIMIT = int(os.environ.get("LEVELTHUMBS_CONCURRENCY", "5"))
REQUEST_TIMEOUT = float(os.environ.get("LEVELTHUMBS_TIMEOUT", "30"))


def default_root() -> Path:
    """Output root: LEVELTHUMBS_ROOT, or the current working directory."""
    return Path(os.environ.get("LEVELTHUMBS_ROOT") or Path.cwd()).resolve()


@dataclass(frozen=True)
class LevelPaths:
    """The four derived files of a single level."""
    full: Path
    card: Path
    og_full: Path
    og_card: Path

    def variants(self) -> dict[str, Path]:
        return {
            "full": self.full,
            "card": self.card,
            "og_full": self.og_full,
            "og_card": self.og_card,
        }

    def all_exist(self) -> bool:
        return all(path.exists() for path in self.variants().values())


@dataclass(frozen=True)
class Directories:
    """Output directory layout rooted at ``root``."""
    root: Path
    levels_full: Path
    levels_cards: Path
    og_levels_full: Path
    og_levels_cards: Path
    packs: Path

    def level_dirs(self) -> list[Path]:
        return [self.levels_full, self.levels_cards, self.og_levels_full, self.og_levels_cards]

    def level_paths(self, level_id: int) -> LevelPaths:
        name = f"{level_id}.{IMAGE_EXT}"
        return LevelPaths(
            full=self.levels_full / name,
            card=self.levels_cards / name,
            og_full=self.og_levels_full / name,
            og_card=self.og_levels_cards / name,
        )

    def pack_path(self, pack_id: str) -> Path:
        return self.packs / f"{pack_id}.{IMAGE_EXT}"


def build_directories(root: Optional[Path] = None) -> Directories:
    """Build the output layout under ``root`` (default: :func:`default_root`)."""
    root = Path(root).resolve() if root is not None else default_root()
    return Directories(
        root=root,
        levels_full=root / "levels" / "full",
        levels_cards=root / "levels" / "cards",
        og_levels_full=root / "og" / "levels" / "full",
        og_levels_cards=root / "og" / "levels" / "cards",
        packs=root / "packs",
    )
