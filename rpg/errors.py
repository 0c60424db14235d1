"""Error kinds raised by the simulation core."""

from __future__ import annotations

__all__ = [
    "CatalogLookupError",
    "CharacterNotFound",
    "DungeonNotFound",
    "GameError",
    "InsufficientResource",
    "InvalidAction",
    "ItemNotFound",
    "LevelRequirementNotMet",
    "MonsterNotFound",
    "NoActiveSession",
    "SessionAlreadyActive",
]


class GameError(RuntimeError):
    """Base class for failures callers are expected to translate for users."""


class CharacterNotFound(GameError):
    def __init__(self, character_id: str) -> None:
        super().__init__(f"Character '{character_id}' does not exist")
        self.character_id = character_id


class CatalogLookupError(GameError, KeyError):
    """Raised when a catalog lookup by identifier misses."""

    category = "entry"

    def __init__(self, key: str) -> None:
        super().__init__(f"Unknown {self.category} '{key}'")
        self.key = key

    def __str__(self) -> str:
        # KeyError would otherwise quote the message.
        return str(self.args[0])


class DungeonNotFound(CatalogLookupError):
    category = "dungeon"


class MonsterNotFound(CatalogLookupError):
    category = "monster"


class ItemNotFound(CatalogLookupError):
    category = "item"


class LevelRequirementNotMet(GameError):
    def __init__(self, required: int, actual: int) -> None:
        super().__init__(f"You need to be level {required} to enter this dungeon (currently {actual})")
        self.required = required
        self.actual = actual


class NoActiveSession(GameError):
    def __init__(self, character_id: str) -> None:
        super().__init__(f"No active dungeon session found for '{character_id}'")
        self.character_id = character_id


class SessionAlreadyActive(GameError):
    """A second active session would exist for one character."""


class InvalidAction(GameError, ValueError):
    """Malformed combat action, event choice or out-of-state request."""


class InsufficientResource(GameError):
    """The character cannot pay the mana or item cost of an action."""
