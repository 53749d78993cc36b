"""Level and pack metadata as returned by the leaderboard API."""

from dataclasses import dataclass, field
from typing import Any, Optional


class MetadataError(Exception):
    """Metadata payload is missing required fields."""
    pass


@dataclass
class Level:
    level_id: int
    position: int
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Level":
        try:
            return cls(
                level_id=int(data["level_id"]),
                position=int(data["position"]),
                name=str(data.get("name") or ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MetadataError(f"Invalid level record {data!r}: {e}") from e


@dataclass
class Pack:
    id: str
    name: str = ""
    levels: list[Level] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Pack":
        if "id" not in data:
            raise MetadataError(f"Pack record without id: {data!r}")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            levels=[Level.from_dict(level) for level in data.get("levels") or []],
        )

    def sorted_levels(self) -> list[Level]:
        """Levels in banner order (ascending position, ties keep API order)."""
        return sorted(self.levels, key=lambda level: level.position)


@dataclass
class PackTier:
    id: str = ""
    name: str = ""
    color: Optional[str] = None
    placement: int = 0
    packs: list[Pack] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackTier":
        color = data.get("color")
        try:
            placement = int(data.get("placement") or 0)
        except (TypeError, ValueError) as e:
            raise MetadataError(f"Invalid pack tier placement in {data!r}: {e}") from e
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            color=color if isinstance(color, str) else None,
            placement=placement,
            packs=[Pack.from_dict(pack) for pack in data.get("packs") or []],
        )


def parse_levels(payload: Any) -> list[Level]:
    if not isinstance(payload, list):
        raise MetadataError(f"Expected a list of levels, got {type(payload).__name__}")
    return [Level.from_dict(item) for item in payload]


def parse_pack_tiers(payload: Any) -> list[PackTier]:
    if not isinstance(payload, list):
        raise MetadataError(f"Expected a list of pack tiers, got {type(payload).__name__}")
    return [PackTier.from_dict(item) for item in payload]
