#!/usr/bin/env python3
"""Setup script for levelthumbs package."""

from setuptools import setup, find_packages

setup(
    name="levelthumbs",
    version="0.1.0",
    description="Level thumbnail and pack banner generator for the level leaderboard",
    author="levelthumbs contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click>=8.0.0",
        "Pillow>=10.0.0",
        "numpy>=1.24",
        "requests>=2.28.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "levelthumbs=levelthumbs.cli:cli",
        ],
    },
    python_requires=">=3.10",
)
