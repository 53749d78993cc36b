"""Entry point for python -m levelthumbs

Usage:
  python -m levelthumbs update
  python -m levelthumbs levels --concurrency 8
  python -m levelthumbs packs --root /srv/thumbnails
"""

from levelthumbs.cli import cli

if __name__ == "__main__":
    cli()
