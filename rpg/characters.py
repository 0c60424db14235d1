"""Character records, partial updates and derived combat stats."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Mapping, Optional

from .content.models import ATTRIBUTE_NAMES, Accessory, Armor, Weapon
from .content.registry import ItemRegistry
from .errors import InsufficientResource

__all__ = [
    "ATTRIBUTE_NAMES",
    "Attributes",
    "Character",
    "CharacterUpdate",
    "CombatStats",
    "derive_combat_stats",
    "level_for_xp",
]

POOL_CAPS: Mapping[str, str] = {"health": "max_health", "mana": "max_mana"}
COUNTER_FIELDS: tuple[str, ...] = ("level", "xp", "gold", "max_health", "max_mana")
UPDATABLE_FIELDS: frozenset[str] = frozenset(
    (*COUNTER_FIELDS, *POOL_CAPS, *ATTRIBUTE_NAMES)
)
WEAPON_SLOT = "weapon"


def level_for_xp(xp: int) -> int:
    """Canonical progression curve: ``floor(sqrt(xp / 100)) + 1``."""

    return math.isqrt(max(0, int(xp)) // 100) + 1


@dataclass(frozen=True)
class Attributes:
    """Base attributes for a character."""

    strength: int = 10
    intelligence: int = 10
    defense: int = 5
    agility: int = 5
    luck: int = 5

    def with_increments(self, increments: Mapping[str, int]) -> "Attributes":
        values = self.to_dict()
        for name, delta in increments.items():
            if name not in values:
                raise ValueError(f"Unknown attribute '{name}'")
            values[name] = max(0, values[name] + int(delta))
        return Attributes(**values)

    def to_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in ATTRIBUTE_NAMES}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Attributes":
        return cls(**{name: int(data.get(name, getattr(cls, name))) for name in ATTRIBUTE_NAMES})  # type: ignore[arg-type]


@dataclass(frozen=True)
class CharacterUpdate:
    """Partial update: absolute ``set`` values, then relative ``increment`` deltas.

    ``items`` holds inventory quantity deltas keyed by item id.
    """

    set: Mapping[str, int] = field(default_factory=dict)
    increment: Mapping[str, int] = field(default_factory=dict)
    items: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = (set(self.set) | set(self.increment)) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported character fields: {', '.join(sorted(unknown))}")

    @property
    def is_empty(self) -> bool:
        return not (self.set or self.increment or self.items)


@dataclass(frozen=True)
class Character:
    """Persistent representation of a character."""

    character_id: str
    name: str = "Unnamed Adventurer"
    level: int = 1
    xp: int = 0
    gold: int = 0
    health: int = 100
    max_health: int = 100
    mana: int = 50
    max_mana: int = 50
    attributes: Attributes = field(default_factory=Attributes)
    equipment: Mapping[str, str] = field(default_factory=dict)
    inventory: Mapping[str, int] = field(default_factory=dict)
    skills: tuple[str, ...] = ()

    def item_quantity(self, item_id: str) -> int:
        return int(self.inventory.get(item_id.lower(), 0))

    def apply(
        self,
        update: CharacterUpdate,
        *,
        health_cap: Optional[int] = None,
        mana_cap: Optional[int] = None,
        items: Optional[ItemRegistry] = None,
    ) -> "Character":
        """Return a copy with ``update`` applied and pools clamped to ``[0, cap]``.

        Caps default to the updated ``max_health``/``max_mana``. With ``items``
        the caps include equipment bonuses; explicit caps win over both.
        """

        values: Dict[str, int] = {name: getattr(self, name) for name in (*COUNTER_FIELDS, *POOL_CAPS)}
        values.update({name: getattr(self.attributes, name) for name in ATTRIBUTE_NAMES})
        for name, value in update.set.items():
            values[name] = int(value)
        for name, delta in update.increment.items():
            values[name] += int(delta)

        for name in ("xp", "gold"):
            values[name] = max(0, values[name])
        values["level"] = max(1, values["level"])
        values["max_health"] = max(1, values["max_health"])
        values["max_mana"] = max(0, values["max_mana"])
        if items is not None and (health_cap is None or mana_cap is None):
            equipped = derive_combat_stats(
                replace(self, max_health=values["max_health"], max_mana=values["max_mana"]), items
            )
            health_cap = equipped.max_health if health_cap is None else health_cap
            mana_cap = equipped.max_mana if mana_cap is None else mana_cap
        caps = {
            "health": health_cap if health_cap is not None else values["max_health"],
            "mana": mana_cap if mana_cap is not None else values["max_mana"],
        }
        for pool, cap in caps.items():
            values[pool] = min(max(0, values[pool]), max(0, cap))

        inventory = dict(self.inventory)
        for item_id, delta in update.items.items():
            key = item_id.lower()
            quantity = inventory.get(key, 0) + int(delta)
            if quantity < 0:
                raise InsufficientResource(f"Not enough '{item_id}' in inventory")
            if quantity == 0:
                inventory.pop(key, None)
            else:
                inventory[key] = quantity

        attributes = Attributes(**{name: max(0, values.pop(name)) for name in ATTRIBUTE_NAMES})
        return replace(self, attributes=attributes, inventory=inventory, **values)

    def to_dict(self) -> Dict[str, object]:
        return {
            "character_id": self.character_id,
            "name": self.name,
            "level": self.level,
            "xp": self.xp,
            "gold": self.gold,
            "health": self.health,
            "max_health": self.max_health,
            "mana": self.mana,
            "max_mana": self.max_mana,
            "attributes": self.attributes.to_dict(),
            "equipment": dict(self.equipment),
            "inventory": dict(self.inventory),
            "skills": list(self.skills),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Character":
        equipment_raw = data.get("equipment") or {}
        inventory_raw = data.get("inventory") or {}
        skills_raw: Iterable[object] = data.get("skills") or ()  # type: ignore[assignment]
        return cls(
            character_id=str(data["character_id"]),
            name=str(data.get("name", "Unnamed Adventurer")),
            level=int(data.get("level", 1)),  # type: ignore[arg-type]
            xp=int(data.get("xp", 0)),  # type: ignore[arg-type]
            gold=int(data.get("gold", 0)),  # type: ignore[arg-type]
            health=int(data.get("health", 100)),  # type: ignore[arg-type]
            max_health=int(data.get("max_health", 100)),  # type: ignore[arg-type]
            mana=int(data.get("mana", 50)),  # type: ignore[arg-type]
            max_mana=int(data.get("max_mana", 50)),  # type: ignore[arg-type]
            attributes=Attributes.from_dict(dict(data.get("attributes") or {})),  # type: ignore[arg-type]
            equipment={str(slot): str(item) for slot, item in dict(equipment_raw).items() if item},  # type: ignore[arg-type]
            inventory={str(item).lower(): int(qty) for item, qty in dict(inventory_raw).items()},  # type: ignore[arg-type]
            skills=tuple(str(skill).lower() for skill in skills_raw),
        )


@dataclass(frozen=True)
class CombatStats:
    """Attributes and pools with equipment bonuses folded in."""

    health: int
    max_health: int
    mana: int
    max_mana: int
    strength: int
    intelligence: int
    defense: int
    agility: int
    luck: int
    weapon: Weapon | None = None

    def stat_total(self, names: Iterable[str]) -> int:
        return sum(int(getattr(self, name)) for name in names)


def derive_combat_stats(character: Character, items: ItemRegistry) -> CombatStats:
    """Recompute combat stats from the character's equipped item ids.

    Raises :class:`~rpg.errors.ItemNotFound` when an equipped id is missing
    from the catalog.
    """

    totals = character.attributes.to_dict()
    max_health = character.max_health
    max_mana = character.max_mana
    weapon: Weapon | None = None

    for slot, item_id in character.equipment.items():
        if not item_id:
            continue
        item = items.get(item_id)
        if isinstance(item, Weapon):
            if slot == WEAPON_SLOT:
                weapon = item
        elif isinstance(item, Armor):
            totals["defense"] += item.defense
            max_health += item.health_bonus
            max_mana += item.mana_bonus
        elif isinstance(item, Accessory):
            for stat, bonus in item.stat_bonus.items():
                totals[stat] += bonus

    max_health = max(1, max_health)
    max_mana = max(0, max_mana)
    return CombatStats(
        health=min(max(0, character.health), max_health),
        max_health=max_health,
        mana=min(max(0, character.mana), max_mana),
        max_mana=max_mana,
        weapon=weapon,
        **totals,
    )
