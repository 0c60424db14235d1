"""RPG combat and dungeon-crawl simulation core."""

from .characters import (
    ATTRIBUTE_NAMES,
    Attributes,
    Character,
    CharacterUpdate,
    CombatStats,
    derive_combat_stats,
    level_for_xp,
)
from .repository import CharacterRepository

__all__ = [
    "ATTRIBUTE_NAMES",
    "Attributes",
    "Character",
    "CharacterRepository",
    "CharacterUpdate",
    "CombatStats",
    "derive_combat_stats",
    "level_for_xp",
]
