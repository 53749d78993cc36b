"""levelthumbs - thumbnail and pack banner generator for the level leaderboard."""

__version__ = "0.1.0"
