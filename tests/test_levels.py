from __future__ import annotations

import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from PIL import Image

from levelthumbs import config
from levelthumbs.config import build_directories
from levelthumbs.images.levels import (
    LevelState,
    derive_variants,
    process_level,
    process_levels_thumbnails,
    resolve_level_source,
)
from levelthumbs.models import Level
from levelthumbs.scheduler import DERIVED, FAILED, SKIPPED
from tests.fakes import FakeClient, png_bytes


def _size(path: Path) -> tuple[int, int]:
    with Image.open(path) as image:
        return image.size


class LevelPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.directories = build_directories(self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_generates_all_variants(self) -> None:
        client = FakeClient(
            levels=[Level(level_id=101, position=1)],
            thumbnails={101: png_bytes((640, 360), (200, 30, 30))},
        )

        report = process_levels_thumbnails(client, self.directories, limit=2)

        paths = self.directories.level_paths(101)
        self.assertEqual(report.count(DERIVED), 1)
        self.assertEqual(paths.full, self.root / "levels" / "full" / "101.webp")
        self.assertEqual(_size(paths.full), (640, 360))
        self.assertEqual(_size(paths.card), (640, config.CARD_HEIGHT))
        self.assertEqual(_size(paths.og_full), config.OG_FULL_SIZE)
        self.assertEqual(_size(paths.og_card), config.OG_CARD_SIZE)

    def test_second_run_writes_nothing(self) -> None:
        client = FakeClient(
            levels=[Level(level_id=1, position=1), Level(level_id=2, position=2)],
            thumbnails={1: png_bytes((320, 240), "red"), 2: png_bytes((320, 240), "blue")},
        )
        process_levels_thumbnails(client, self.directories, limit=2)
        files = sorted(p for p in self.root.rglob("*") if p.is_file())
        mtimes = {p: p.stat().st_mtime_ns for p in files}
        client.thumbnail_calls.clear()

        report = process_levels_thumbnails(client, self.directories, limit=2)

        self.assertEqual(report.count(SKIPPED), 2)
        self.assertEqual(client.thumbnail_calls, [])
        self.assertEqual(sorted(p for p in self.root.rglob("*") if p.is_file()), files)
        self.assertEqual({p: p.stat().st_mtime_ns for p in files}, mtimes)

    def test_processed_count_covers_every_outcome(self) -> None:
        client = FakeClient(
            levels=[Level(level_id=i, position=i) for i in range(1, 5)],
            thumbnails={
                1: png_bytes((300, 300), "green"),
                2: 404,
                3: 500,
                4: b"not an image",
            },
        )

        report = process_levels_thumbnails(client, self.directories, limit=3)

        self.assertEqual(report.processed, 4)
        self.assertEqual(report.count(DERIVED), 1)
        self.assertEqual(report.count(SKIPPED), 1)
        self.assertEqual(report.count(FAILED), 2)
        for level_id in (2, 3, 4):
            paths = self.directories.level_paths(level_id)
            self.assertFalse(any(p.exists() for p in paths.variants().values()))

    def test_existing_full_image_is_used_without_fetching(self) -> None:
        paths = self.directories.level_paths(7)
        paths.full.parent.mkdir(parents=True)
        buffer = io.BytesIO()
        Image.new("RGB", (500, 400), "purple").save(buffer, "WEBP")
        paths.full.write_bytes(buffer.getvalue())
        client = FakeClient()

        resolution = resolve_level_source(7, paths, client)

        self.assertIs(resolution.state, LevelState.RESOLVED)
        self.assertEqual(resolution.source, buffer.getvalue())
        self.assertEqual(client.thumbnail_calls, [])

    def test_remote_source_matches_file_on_disk(self) -> None:
        paths = self.directories.level_paths(8)
        client = FakeClient(thumbnails={8: png_bytes((100, 80), "orange")})

        resolution = resolve_level_source(8, paths, client)

        self.assertIs(resolution.state, LevelState.RESOLVED)
        self.assertEqual(resolution.source, paths.full.read_bytes())
        self.assertEqual(list(paths.full.parent.glob("*.tmp")), [])

    def test_unreadable_cache_falls_back_to_remote(self) -> None:
        paths = self.directories.level_paths(3)
        paths.full.parent.mkdir(parents=True)
        paths.full.write_bytes(b"stale")
        client = FakeClient(thumbnails={3: png_bytes((120, 90), "teal")})
        real_read_bytes = Path.read_bytes
        reads: list[Path] = []

        def read_bytes(path: Path) -> bytes:
            reads.append(path)
            if len(reads) == 1:
                raise PermissionError("denied")
            return real_read_bytes(path)

        with mock.patch.object(Path, "read_bytes", autospec=True, side_effect=read_bytes):
            resolution = resolve_level_source(3, paths, client)

        self.assertIs(resolution.state, LevelState.RESOLVED)
        self.assertIs(resolution.origin, LevelState.NEED_REMOTE_FETCH)
        self.assertEqual(client.thumbnail_calls, [3])
        self.assertEqual(paths.full.read_bytes(), resolution.source)
        self.assertNotEqual(resolution.source, b"stale")

    def test_corrupt_cache_is_replaced_from_remote(self) -> None:
        paths = self.directories.level_paths(4)
        paths.full.parent.mkdir(parents=True)
        paths.full.write_bytes(b"truncated webp")
        client = FakeClient(thumbnails={4: png_bytes((320, 240), "navy")})

        outcome = process_level(Level(level_id=4, position=1), self.directories, client)

        self.assertEqual(outcome, DERIVED)
        self.assertEqual(client.thumbnail_calls, [4])
        self.assertEqual(_size(paths.full), (320, 240))
        self.assertTrue(paths.all_exist())

    def test_corrupt_cache_without_remote_is_removed(self) -> None:
        paths = self.directories.level_paths(5)
        paths.full.parent.mkdir(parents=True)
        paths.full.write_bytes(b"truncated webp")

        outcome = process_level(Level(level_id=5, position=1), self.directories, FakeClient())

        self.assertEqual(outcome, SKIPPED)
        self.assertFalse(paths.full.exists())

    def test_undecodable_remote_image_is_not_refetched(self) -> None:
        client = FakeClient(thumbnails={6: b"garbage"})

        outcome = process_level(Level(level_id=6, position=1), self.directories, client)

        self.assertEqual(outcome, FAILED)
        self.assertEqual(client.thumbnail_calls, [6])

    def test_not_found_is_skipped(self) -> None:
        resolution = resolve_level_source(9, self.directories.level_paths(9), FakeClient())

        self.assertIs(resolution.state, LevelState.SKIPPED)
        self.assertIsNone(resolution.source)

    def test_card_keeps_short_images_whole(self) -> None:
        paths = self.directories.level_paths(11)
        source = png_bytes((400, 120), "white")

        written = derive_variants(source, paths)

        self.assertEqual(written, ["card", "og_full", "og_card"])
        self.assertEqual(_size(paths.card), (400, 120))

    def test_only_missing_variants_are_written(self) -> None:
        paths = self.directories.level_paths(12)
        paths.card.parent.mkdir(parents=True)
        paths.card.write_bytes(b"existing")

        written = derive_variants(png_bytes((400, 300), "gray"), paths)

        self.assertEqual(written, ["og_full", "og_card"])
        self.assertEqual(paths.card.read_bytes(), b"existing")


if __name__ == "__main__":
    unittest.main()
