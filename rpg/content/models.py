"""Schema models for catalog content."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, Mapping, MutableMapping, Sequence, Tuple, Union

from rpg.rng import weighted_key

__all__ = [
    "Accessory",
    "Armor",
    "BuffEffect",
    "Consumable",
    "DamageEffect",
    "Dungeon",
    "DungeonEvent",
    "EncounterTable",
    "EventChoice",
    "FloorReward",
    "HealEffect",
    "Item",
    "LootEntry",
    "Monster",
    "SchemaError",
    "Skill",
    "SkillEffect",
    "Weapon",
]

ATTRIBUTE_NAMES: tuple[str, ...] = ("strength", "intelligence", "defense", "agility", "luck")


class SchemaError(ValueError):
    """Raised when content data fails validation."""


def _coerce_mapping(name: str, value: object) -> MutableMapping[str, object]:
    if isinstance(value, MutableMapping):
        return value
    if isinstance(value, Mapping):
        return dict(value)
    raise SchemaError(f"{name} must be a mapping")


def _coerce_sequence(name: str, value: object) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return value
    raise SchemaError(f"{name} must be a sequence")


def _coerce_tags(name: str, value: object) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(str(tag).strip().lower() for tag in _coerce_sequence(name, value))


def _coerce_int(name: str, value: object, *, minimum: int | None = None) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise SchemaError(f"{name} must be an integer") from exc
    if minimum is not None and number < minimum:
        raise SchemaError(f"{name} must be at least {minimum}")
    return number


def _coerce_float(name: str, value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise SchemaError(f"{name} must be a number") from exc


# -- items -----------------------------------------------------------------


@dataclass(frozen=True)
class Item:
    """Static data shared by every catalog item."""

    key: str
    name: str
    kind: str = "misc"
    rarity: str = "common"
    value: int = 0
    level: int = 1
    description: str | None = None

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "Item":
        mapping = _coerce_mapping("item", data)
        kind = str(mapping.get("type", "misc")).strip().lower()
        item_cls = ITEM_TYPES.get(kind)
        if item_cls is None:
            raise SchemaError(f"Unknown item type '{kind}' for '{key}'")
        return item_cls(**item_cls._parse_fields(key, mapping))

    @classmethod
    def _parse_fields(cls, key: str, mapping: Mapping[str, object]) -> Dict[str, object]:
        description_raw = mapping.get("description")
        return {
            "key": str(key).lower(),
            "name": str(mapping.get("name") or key),
            "kind": str(mapping.get("type", "misc")).strip().lower(),
            "rarity": str(mapping.get("rarity", "common")).lower(),
            "value": _coerce_int("value", mapping.get("value", 0), minimum=0),
            "level": _coerce_int("level", mapping.get("level", 1), minimum=1),
            "description": str(description_raw) if description_raw is not None else None,
        }


@dataclass(frozen=True)
class Weapon(Item):
    attack: int = 0
    crit_rate: float | None = None
    crit_damage: float | None = None
    weapon_type: str = "sword"
    element: str | None = None

    @classmethod
    def _parse_fields(cls, key: str, mapping: Mapping[str, object]) -> Dict[str, object]:
        fields = super()._parse_fields(key, mapping)
        crit_rate = mapping.get("crit_rate")
        crit_damage = mapping.get("crit_damage")
        element = mapping.get("element")
        fields.update(
            attack=_coerce_int("attack", mapping.get("attack", 0), minimum=0),
            crit_rate=_coerce_float("crit_rate", crit_rate) if crit_rate is not None else None,
            crit_damage=_coerce_float("crit_damage", crit_damage) if crit_damage is not None else None,
            weapon_type=str(mapping.get("weapon_type", "sword")).lower(),
            element=str(element).lower() if element else None,
        )
        return fields


@dataclass(frozen=True)
class Armor(Item):
    slot: str = "chest"
    defense: int = 0
    health_bonus: int = 0
    mana_bonus: int = 0

    @classmethod
    def _parse_fields(cls, key: str, mapping: Mapping[str, object]) -> Dict[str, object]:
        fields = super()._parse_fields(key, mapping)
        fields.update(
            slot=str(mapping.get("slot", "chest")).lower(),
            defense=_coerce_int("defense", mapping.get("defense", 0), minimum=0),
            health_bonus=_coerce_int("health_bonus", mapping.get("health_bonus", 0)),
            mana_bonus=_coerce_int("mana_bonus", mapping.get("mana_bonus", 0)),
        )
        return fields


@dataclass(frozen=True)
class Accessory(Item):
    slot: str = "ring"
    stat_bonus: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def _parse_fields(cls, key: str, mapping: Mapping[str, object]) -> Dict[str, object]:
        fields = super()._parse_fields(key, mapping)
        bonus_raw = mapping.get("stat_bonus", {}) or {}
        bonuses: dict[str, int] = {}
        for stat, value in _coerce_mapping("stat_bonus", bonus_raw).items():
            stat_name = str(stat).lower()
            if stat_name not in ATTRIBUTE_NAMES:
                raise SchemaError(f"Unknown stat '{stat}' in stat_bonus for '{key}'")
            bonuses[stat_name] = _coerce_int(f"stat_bonus.{stat}", value)
        fields.update(slot=str(mapping.get("slot", "ring")).lower(), stat_bonus=bonuses)
        return fields


@dataclass(frozen=True)
class Consumable(Item):
    effect: str = "none"
    effect_value: int = 0

    @classmethod
    def _parse_fields(cls, key: str, mapping: Mapping[str, object]) -> Dict[str, object]:
        fields = super()._parse_fields(key, mapping)
        fields.update(
            effect=str(mapping.get("effect", "none")).lower(),
            effect_value=_coerce_int("effect_value", mapping.get("effect_value", 0)),
        )
        return fields


ITEM_TYPES: Mapping[str, type[Item]] = {
    "weapon": Weapon,
    "armor": Armor,
    "accessory": Accessory,
    "consumable": Consumable,
    "misc": Item,
}


# -- monsters ----------------------------------------------------------------


@dataclass(frozen=True)
class LootEntry:
    item: str
    chance: float
    quantity: int = 1

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "LootEntry":
        mapping = _coerce_mapping("loot entry", data)
        item = mapping.get("item") or mapping.get("item_id") or mapping.get("id")
        if not item:
            raise SchemaError("loot entries require an item")
        chance = _coerce_float("chance", mapping.get("chance", 0))
        if not 0 <= chance <= 100:
            raise SchemaError("loot chance must be between 0 and 100")
        return cls(
            item=str(item).lower(),
            chance=chance,
            quantity=_coerce_int("quantity", mapping.get("quantity", 1), minimum=1),
        )


@dataclass(frozen=True)
class Monster:
    """Static data describing a monster that can appear in encounters."""

    key: str
    name: str
    level: int
    health: int
    attack: int
    defense: int
    xp_reward: int = 0
    gold_reward: int = 0
    loot_table: Sequence[LootEntry] = field(default_factory=tuple)
    weaknesses: Sequence[str] = field(default_factory=tuple)
    resistances: Sequence[str] = field(default_factory=tuple)
    description: str = ""

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "Monster":
        mapping = _coerce_mapping("monster", data)
        loot_raw = mapping.get("loot_table", ()) or ()
        loot = tuple(
            LootEntry.from_mapping(entry) for entry in _coerce_sequence("loot_table", loot_raw)
        )
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            level=_coerce_int("level", mapping.get("level", 1), minimum=1),
            health=_coerce_int("health", mapping.get("health", 1), minimum=1),
            attack=_coerce_int("attack", mapping.get("attack", 1), minimum=1),
            defense=_coerce_int("defense", mapping.get("defense", 0), minimum=0),
            xp_reward=_coerce_int("xp_reward", mapping.get("xp_reward", 0), minimum=0),
            gold_reward=_coerce_int("gold_reward", mapping.get("gold_reward", 0), minimum=0),
            loot_table=loot,
            weaknesses=_coerce_tags("weaknesses", mapping.get("weaknesses", ())),
            resistances=_coerce_tags("resistances", mapping.get("resistances", ())),
            description=str(mapping.get("description", "")),
        )


# -- dungeons ------------------------------------------------------------------


@dataclass(frozen=True)
class FloorReward:
    item: str
    chance: float
    floor: int

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "FloorReward":
        mapping = _coerce_mapping("reward", data)
        item = mapping.get("item") or mapping.get("item_id") or mapping.get("id")
        if not item:
            raise SchemaError("reward entries require an item")
        return cls(
            item=str(item).lower(),
            chance=_coerce_float("chance", mapping.get("chance", 0)),
            floor=_coerce_int("floor", mapping.get("floor", 1), minimum=1),
        )


@dataclass(frozen=True)
class Dungeon:
    """Domain model describing an enterable dungeon."""

    key: str
    name: str
    min_level: int
    max_floors: int
    monsters: Sequence[Monster]
    rewards: Sequence[FloorReward] = field(default_factory=tuple)
    description: str = ""

    def monsters_for_floor(self, floor: int) -> Sequence[Monster]:
        """Eligible monsters whose level lies within ``[floor-1, floor+2]``.

        Falls back to every eligible monster when none fit the band so an
        encounter can always be produced.
        """

        low = max(1, floor - 1)
        high = floor + 2
        band = tuple(monster for monster in self.monsters if low <= monster.level <= high)
        return band or tuple(self.monsters)

    def rewards_for_floor(self, floor: int) -> Sequence[FloorReward]:
        return tuple(reward for reward in self.rewards if reward.floor == floor)


# -- skills ----------------------------------------------------------------------


@dataclass(frozen=True)
class HealEffect:
    resource: str = "health"
    coefficient: float = 0.8
    flat: int = 20


@dataclass(frozen=True)
class DamageEffect:
    stats: Tuple[str, ...] = ("strength", "intelligence")
    coefficient: float = 0.7
    flat: int = 10
    element: str | None = None


@dataclass(frozen=True)
class BuffEffect:
    status: str = "defending"
    damage_taken_multiplier: float = 0.5


SkillEffect = Union[HealEffect, DamageEffect, BuffEffect]


def _parse_effect(key: str, raw: object) -> SkillEffect:
    if raw is None:
        return DamageEffect()
    mapping = _coerce_mapping(f"{key}.effect", raw)
    kind = str(mapping.get("type", "")).lower()
    if kind == "heal":
        resource = str(mapping.get("resource", "health")).lower()
        if resource not in {"health", "mana"}:
            raise SchemaError(f"Heal effect for '{key}' must restore health or mana")
        return HealEffect(
            resource=resource,
            coefficient=_coerce_float("coefficient", mapping.get("coefficient", 0.8)),
            flat=_coerce_int("flat", mapping.get("flat", 20)),
        )
    if kind == "damage":
        stats = _coerce_tags("stats", mapping.get("stats", ("strength", "intelligence")))
        unknown = set(stats) - set(ATTRIBUTE_NAMES)
        if unknown:
            raise SchemaError(f"Unknown stats {sorted(unknown)} in damage effect for '{key}'")
        element = mapping.get("element")
        return DamageEffect(
            stats=stats or ("strength", "intelligence"),
            coefficient=_coerce_float("coefficient", mapping.get("coefficient", 0.7)),
            flat=_coerce_int("flat", mapping.get("flat", 10)),
            element=str(element).lower() if element else None,
        )
    if kind == "buff":
        return BuffEffect(
            status=str(mapping.get("status", "defending")).lower(),
            damage_taken_multiplier=_coerce_float(
                "damage_taken_multiplier", mapping.get("damage_taken_multiplier", 0.5)
            ),
        )
    raise SchemaError(f"Unknown skill effect type '{kind}' for '{key}'")


@dataclass(frozen=True)
class Skill:
    """A combat skill; ``effect`` is fixed when the content is authored."""

    key: str
    name: str
    cost: int
    effect: SkillEffect = field(default_factory=DamageEffect)
    description: str = ""

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, object]) -> "Skill":
        mapping = _coerce_mapping("skill", data)
        return cls(
            key=str(key).lower(),
            name=str(mapping.get("name") or key),
            cost=_coerce_int("cost", mapping.get("cost", 0), minimum=0),
            effect=_parse_effect(str(key), mapping.get("effect")),
            description=str(mapping.get("description", "")),
        )


# -- events ----------------------------------------------------------------------


@dataclass(frozen=True)
class EventChoice:
    key: str
    text: str
    effect: str = "none"
    value: int = 0

    def matches(self, choice: str) -> bool:
        wanted = choice.strip().casefold()
        return wanted in {self.key.casefold(), self.text.casefold()}


@dataclass(frozen=True)
class DungeonEvent:
    key: str
    name: str
    description: str
    choices: Tuple[EventChoice, ...]

    def find_choice(self, choice: str) -> EventChoice | None:
        for candidate in self.choices:
            if candidate.matches(choice):
                return candidate
        return None


# -- tables ----------------------------------------------------------------------


class EncounterTable:
    """Weighted table used to select an encounter type or entry."""

    def __init__(self, entries: Mapping[str, float]) -> None:
        cleaned: dict[str, float] = {}
        for key, value in entries.items():
            weight = float(value)
            if weight > 0:
                cleaned[str(key)] = weight
        if not cleaned:
            raise SchemaError("Encounter table must contain at least one positive weight entry")
        self._entries = cleaned

    def roll(self, rng: random.Random | None = None) -> str:
        return weighted_key(self._entries, rng)
