"""Data models for games."""

from __future__ import annotations

import re

from bracketeer.core.types import MongoDocument

PLATFORMS = (
    "PC",
    "PlayStation 5",
    "PlayStation 4",
    "Xbox Series X/S",
    "Xbox One",
    "Nintendo Switch",
    "Mobile (iOS)",
    "Mobile (Android)",
)

GAME_MODES = (
    "1v1",
    "2v2",
    "3v3",
    "4v4",
    "5v5",
    "Team Deathmatch",
    "Search & Destroy",
    "Battle Royale",
    "Free for All",
)


class Game(MongoDocument, total=False):
    """A game supported by the platform."""

    name: str
    shortName: str
    iconUrl: str
    bannerUrl: str
    platforms: list[str]
    supportedModes: list[str]
    isActive: bool


def make_short_name(name: str) -> str:
    """Derive a URL-friendly short name from a game's full name."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
