"""HTTP client for the leaderboard API and the remote thumbnail service."""

import logging
from typing import Any, Optional

import requests

from levelthumbs import __version__
from levelthumbs import config
from levelthumbs.models import Level, PackTier, parse_levels, parse_pack_tiers

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Request failed or returned a non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ThumbnailClient:
    """Client for level/pack metadata and level thumbnail images."""

    def __init__(
        self,
        thumbnail_base_url: str = config.THUMBNAIL_BASE_URL,
        timeout: float = config.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            thumbnail_base_url: Base URL of the remote thumbnail service
            timeout: Per-request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.thumbnail_base_url = thumbnail_base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", f"levelthumbs/{__version__}")

    def _get(self, url: str) -> requests.Response:
        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Request failed: {url} ({e})") from e

        if not response.ok:
            raise FetchError(
                f"Request failed: {url} (status {response.status_code})",
                response.status_code,
            )
        return response

    def fetch_json(self, url: str) -> Any:
        response = self._get(url)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {url}: {e}", response.status_code) from e

    def fetch_bytes(self, url: str) -> bytes:
        return self._get(url).content

    def fetch_levels(self) -> list[Level]:
        """Fetch and merge the classic and platformer level lists."""
        logger.info("Fetching levels...")
        levels = parse_levels(self.fetch_json(config.LEVELS_API_URL))
        levels += parse_levels(self.fetch_json(config.PLAT_LEVELS_API_URL))
        return levels

    def fetch_pack_tiers(self) -> list[PackTier]:
        """Fetch and merge the classic and platformer pack tiers."""
        logger.info("Fetching packs...")
        tiers = parse_pack_tiers(self.fetch_json(config.PACKS_API_URL))
        tiers += parse_pack_tiers(self.fetch_json(config.PLAT_PACKS_API_URL))
        return tiers

    def fetch_level_thumbnail(self, level_id: int) -> bytes:
        """High resolution thumbnail used as the source of every level variant."""
        return self.fetch_bytes(f"{self.thumbnail_base_url}/{level_id}/high")

    def fetch_pack_fallback(self, level_id: int) -> bytes:
        """Thumbnail used by the banner compositor when the local cache misses."""
        return self.fetch_bytes(f"{self.thumbnail_base_url}/{level_id}.png")

    def close(self) -> None:
        self._session.close()
