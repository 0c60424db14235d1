"""Catalog schemas, registries and loaders."""

from .loader import DEFAULT_CONTENT_PATH, ContentLibrary, ContentLoadError
from .models import (
    Accessory,
    Armor,
    BuffEffect,
    Consumable,
    DamageEffect,
    Dungeon,
    DungeonEvent,
    EncounterTable,
    EventChoice,
    FloorReward,
    HealEffect,
    Item,
    LootEntry,
    Monster,
    SchemaError,
    Skill,
    SkillEffect,
    Weapon,
)
from .registry import DungeonRegistry, ItemRegistry, MonsterRegistry, SkillRegistry

__all__ = [
    "Accessory",
    "Armor",
    "BuffEffect",
    "Consumable",
    "ContentLibrary",
    "ContentLoadError",
    "DEFAULT_CONTENT_PATH",
    "DamageEffect",
    "Dungeon",
    "DungeonEvent",
    "DungeonRegistry",
    "EncounterTable",
    "EventChoice",
    "FloorReward",
    "HealEffect",
    "Item",
    "ItemRegistry",
    "LootEntry",
    "Monster",
    "MonsterRegistry",
    "SchemaError",
    "Skill",
    "SkillEffect",
    "SkillRegistry",
    "Weapon",
]
