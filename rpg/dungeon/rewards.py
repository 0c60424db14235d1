"""Reward rolls and settlement against character records."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

from rpg.characters import Character, CharacterUpdate, derive_combat_stats, level_for_xp
from rpg.combat import MonsterInstance
from rpg.content import ContentLibrary, Dungeon
from rpg.repository import CharacterRepository
from rpg.rng import roll_percent

__all__ = [
    "LEVEL_UP_INCREMENTS",
    "Reward",
    "Settlement",
    "completion_reward",
    "roll_floor_rewards",
    "roll_monster_loot",
    "settle",
    "settle_character",
    "victory_reward",
]

log = logging.getLogger(__name__)

# Applied once per level gained.
LEVEL_UP_INCREMENTS: Mapping[str, int] = {
    "strength": 2,
    "intelligence": 2,
    "defense": 1,
    "agility": 1,
    "luck": 1,
    "max_health": 5,
    "max_mana": 3,
}

COMPLETION_GOLD_BASE = 100
COMPLETION_GOLD_PER_FLOOR = 50


@dataclass(frozen=True)
class Reward:
    """Gold, xp and item quantities owed to a character."""

    gold: int = 0
    xp: int = 0
    items: Mapping[str, int] = field(default_factory=dict)

    def __add__(self, other: "Reward") -> "Reward":
        if not isinstance(other, Reward):
            return NotImplemented
        items: Dict[str, int] = dict(self.items)
        for item_id, quantity in other.items.items():
            items[item_id] = items.get(item_id, 0) + quantity
        return Reward(gold=self.gold + other.gold, xp=self.xp + other.xp, items=items)

    @property
    def is_empty(self) -> bool:
        return not (self.gold or self.xp or any(self.items.values()))


@dataclass(frozen=True)
class Settlement:
    character: Character
    reward: Reward
    levels_gained: int = 0


def settle_character(
    character: Character,
    reward: Reward,
    library: ContentLibrary,
    *,
    health_cap: Optional[int] = None,
    mana_cap: Optional[int] = None,
) -> Settlement:
    """Return ``character`` with ``reward`` credited and any level-ups applied.

    Every granted item id must exist in the catalog. Each level gained applies
    :data:`LEVEL_UP_INCREMENTS`; gaining at least one level restores health
    and mana to the new maximum. Nothing is persisted here.
    """

    items = {}
    for item_id, quantity in reward.items.items():
        if quantity:
            items[library.item(item_id).key] = int(quantity)

    credited = character.apply(
        CharacterUpdate(increment={"gold": reward.gold, "xp": reward.xp}, items=items),
        health_cap=health_cap,
        mana_cap=mana_cap,
    )

    target_level = level_for_xp(credited.xp)
    levels_gained = max(0, target_level - credited.level)
    if not levels_gained:
        return Settlement(character=credited, reward=reward)

    increments: Dict[str, int] = {}
    for _ in range(levels_gained):
        for name, delta in LEVEL_UP_INCREMENTS.items():
            increments[name] = increments.get(name, 0) + delta
    leveled = credited.apply(CharacterUpdate(set={"level": target_level}, increment=increments))
    extra_health = (health_cap - character.max_health) if health_cap is not None else 0
    extra_mana = (mana_cap - character.max_mana) if mana_cap is not None else 0
    healed = replace(
        leveled,
        health=max(1, leveled.max_health + extra_health),
        mana=max(0, leveled.max_mana + extra_mana),
    )
    log.info(
        "%s reached level %s (+%s)", character.character_id, target_level, levels_gained
    )
    return Settlement(character=healed, reward=reward, levels_gained=levels_gained)


async def settle(
    repository: CharacterRepository,
    character_id: str,
    reward: Reward,
    library: ContentLibrary,
) -> Settlement:
    """Credit ``reward`` to a stored character and persist the result."""

    character = await repository.require(character_id)
    stats = derive_combat_stats(character, library.items)
    settlement = settle_character(
        character, reward, library, health_cap=stats.max_health, mana_cap=stats.max_mana
    )
    await repository.save(settlement.character)
    return settlement


def roll_monster_loot(monster: MonsterInstance, rng: random.Random | None = None) -> Dict[str, int]:
    """Roll each loot-table entry once; one draw per entry."""

    generator = rng or random.Random()
    drops: Dict[str, int] = {}
    for entry in monster.loot_table:
        if roll_percent(generator) < entry.chance:
            drops[entry.item] = drops.get(entry.item, 0) + entry.quantity
    return drops


def roll_floor_rewards(dungeon: Dungeon, floor: int, rng: random.Random | None = None) -> Dict[str, int]:
    """Roll the dungeon's reward entries for ``floor``; one draw per entry."""

    generator = rng or random.Random()
    drops: Dict[str, int] = {}
    for entry in dungeon.rewards_for_floor(floor):
        if roll_percent(generator) < entry.chance:
            drops[entry.item] = drops.get(entry.item, 0) + 1
    return drops


def completion_reward(floor: int) -> Reward:
    gold = COMPLETION_GOLD_BASE + floor * COMPLETION_GOLD_PER_FLOOR
    return Reward(gold=gold, xp=gold * 2)


def victory_reward(monster: MonsterInstance, rng: random.Random | None = None) -> Reward:
    """Xp, gold and rolled loot for defeating ``monster``."""

    return Reward(
        gold=monster.gold_reward,
        xp=monster.xp_reward,
        items=roll_monster_loot(monster, rng),
    )
