"""Registries for catalog content."""

from __future__ import annotations

from typing import Dict, Generic, Iterable, Iterator, Sequence, TypeVar

from rpg.errors import CatalogLookupError, DungeonNotFound, ItemNotFound, MonsterNotFound

from .models import Dungeon, Item, Monster, Skill

__all__ = [
    "DungeonRegistry",
    "ItemRegistry",
    "MonsterRegistry",
    "SkillRegistry",
]

T = TypeVar("T")


class BaseRegistry(Generic[T]):
    """Utility container for validated content entries."""

    not_found: type[CatalogLookupError] = CatalogLookupError

    def __init__(self) -> None:
        self._entries: Dict[str, T] = {}
        self._aliases: Dict[str, str] = {}

    @staticmethod
    def _normalise(value: str) -> str:
        return value.strip().lower()

    def register(self, key: str, entry: T, *, aliases: Iterable[str] = ()) -> None:
        identifier = self._normalise(key)
        if identifier in self._entries:
            raise ValueError(f"Duplicate entry '{key}'")
        self._entries[identifier] = entry
        self._aliases[identifier] = identifier
        for alias in aliases:
            self._aliases.setdefault(self._normalise(alias), identifier)

    def get(self, name: str) -> T:
        if not name:
            raise self.not_found(str(name))
        identifier = self._normalise(name)
        target = self._aliases.get(identifier, identifier)
        try:
            return self._entries[target]
        except KeyError:
            raise self.not_found(name) from None

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str) or not name:
            return False
        identifier = self._normalise(name)
        return self._aliases.get(identifier, identifier) in self._entries

    def values(self) -> Sequence[T]:
        return tuple(self._entries.values())

    def keys(self) -> Sequence[str]:
        return tuple(self._entries.keys())

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


class _NamedRegistry(BaseRegistry[T]):
    """Registry that also resolves entries by their display name."""

    def register(self, key: str, entry: T, *, aliases: Iterable[str] = ()) -> None:
        alias_set = list(aliases)
        alias_set.append(getattr(entry, "name", key))
        super().register(key, entry, aliases=alias_set)


class MonsterRegistry(_NamedRegistry[Monster]):
    not_found = MonsterNotFound


class ItemRegistry(_NamedRegistry[Item]):
    not_found = ItemNotFound


class DungeonRegistry(_NamedRegistry[Dungeon]):
    not_found = DungeonNotFound


class SkillRegistry(_NamedRegistry[Skill]):
    """Skills have no dedicated error kind; a miss is an invalid action."""
