from __future__ import annotations

import io
import threading

from PIL import Image

from levelthumbs.client import FetchError
from levelthumbs.models import Level, PackTier


def png_bytes(size: tuple[int, int], color) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, "PNG")
    return buffer.getvalue()


class FakeClient:
    """In-memory stand-in for ThumbnailClient.

    ``thumbnails`` maps level id to bytes or to an HTTP status (int) to fail with.
    """

    def __init__(
        self,
        levels: list[Level] | None = None,
        tiers: list[PackTier] | None = None,
        thumbnails: dict | None = None,
        fallbacks: dict | None = None,
    ) -> None:
        self.levels = levels or []
        self.tiers = tiers or []
        self.thumbnails = thumbnails or {}
        self.fallbacks = fallbacks or {}
        self.thumbnail_calls: list[int] = []
        self.fallback_calls: list[int] = []
        self._lock = threading.Lock()

    def fetch_levels(self) -> list[Level]:
        return list(self.levels)

    def fetch_pack_tiers(self) -> list[PackTier]:
        return list(self.tiers)

    @staticmethod
    def _serve(table: dict, level_id: int) -> bytes:
        value = table.get(level_id, 404)
        if isinstance(value, int):
            raise FetchError(f"status {value}", value)
        return value

    def fetch_level_thumbnail(self, level_id: int) -> bytes:
        with self._lock:
            self.thumbnail_calls.append(level_id)
        return self._serve(self.thumbnails, level_id)

    def fetch_pack_fallback(self, level_id: int) -> bytes:
        with self._lock:
            self.fallback_calls.append(level_id)
        return self._serve(self.fallbacks, level_id)

    def close(self) -> None:
        pass
