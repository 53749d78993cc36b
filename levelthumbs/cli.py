#!/usr/bin/env python3
"""levelthumbs CLI - regenerate level thumbnails and pack banners."""

import logging
import sys
from pathlib import Path

import click

from levelthumbs import __version__, config
from levelthumbs.client import FetchError, ThumbnailClient
from levelthumbs.models import MetadataError

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def _run(root, concurrency, verbose, levels: bool, packs: bool) -> None:
    """Run the requested phases; levels always finish before packs start."""
    from levelthumbs.images.levels import process_levels_thumbnails
    from levelthumbs.images.packs import process_packs_thumbnails

    _setup_logging(verbose)
    directories = config.build_directories(root)
    client = ThumbnailClient()

    try:
        if levels:
            process_levels_thumbnails(client, directories, concurrency)
        if packs:
            process_packs_thumbnails(client, directories, concurrency)
    except (FetchError, MetadataError) as e:
        logger.error(f"Failed to update thumbnails: {e}")
        sys.exit(1)
    finally:
        client.close()

    logger.info("All thumbnails updated.")


def common_options(func):
    func = click.option("--verbose", "-v", is_flag=True, help="Debug logging")(func)
    func = click.option(
        "--concurrency",
        type=click.IntRange(min=1),
        default=config.CONCURRENT_LIMIT,
        show_default=True,
        help="Maximum levels/packs processed at once",
    )(func)
    func = click.option(
        "--root",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Output root (default: LEVELTHUMBS_ROOT or current directory)",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__)
def cli():
    """levelthumbs - thumbnail generator for the level leaderboard.

    Builds level thumbnails (full, card, open graph) and pack banners.
    """
    pass


@cli.command()
@common_options
def update(root, concurrency, verbose):
    """Update level thumbnails, then rebuild every pack banner."""
    _run(root, concurrency, verbose, levels=True, packs=True)


@cli.command()
@common_options
def levels(root, concurrency, verbose):
    """Generate missing level thumbnails only."""
    _run(root, concurrency, verbose, levels=True, packs=False)


@cli.command()
@common_options
def packs(root, concurrency, verbose):
    """Rebuild pack banners from the current level cache."""
    _run(root, concurrency, verbose, levels=False, packs=True)


if __name__ == "__main__":
    cli()
