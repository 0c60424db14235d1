"""Combat math for single attacks."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Sequence, Tuple

from .characters import CombatStats
from .content.models import LootEntry, Monster, Weapon
from .errors import InvalidAction
from .rng import roll_percent, uniform

__all__ = [
    "ACTION_KINDS",
    "CombatAction",
    "CombatResult",
    "DEFAULT_CRIT_DAMAGE",
    "DEFAULT_CRIT_RATE",
    "MonsterInstance",
    "WEAKNESS_MULTIPLIER",
    "compute_attack_damage",
    "compute_monster_attack",
    "defense_factor",
]

DEFAULT_CRIT_RATE = 5.0
DEFAULT_CRIT_DAMAGE = 150.0
WEAKNESS_MULTIPLIER = 1.5
VARIANCE_RANGE = (0.9, 1.1)
DEFAULT_ELEMENT = "physical"
MAGIC_WEAPON_TYPES = frozenset({"staff"})

ACTION_KINDS = ("attack", "defend", "skill", "item")


@dataclass
class MonsterInstance:
    """Mutable copy of a catalog monster fighting inside a session."""

    key: str
    name: str
    level: int
    health: int
    max_health: int
    attack: int
    defense: int
    xp_reward: int = 0
    gold_reward: int = 0
    loot_table: Sequence[LootEntry] = field(default_factory=tuple)
    weaknesses: Sequence[str] = field(default_factory=tuple)
    resistances: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def from_definition(cls, monster: Monster) -> "MonsterInstance":
        return cls(
            key=monster.key,
            name=monster.name,
            level=monster.level,
            health=monster.health,
            max_health=monster.health,
            attack=monster.attack,
            defense=monster.defense,
            xp_reward=monster.xp_reward,
            gold_reward=monster.gold_reward,
            loot_table=tuple(monster.loot_table),
            weaknesses=tuple(monster.weaknesses),
            resistances=tuple(monster.resistances),
        )

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "key": self.key,
            "name": self.name,
            "level": self.level,
            "health": self.health,
            "max_health": self.max_health,
            "attack": self.attack,
            "defense": self.defense,
            "xp_reward": self.xp_reward,
            "gold_reward": self.gold_reward,
            "loot_table": [
                {"item": entry.item, "chance": entry.chance, "quantity": entry.quantity}
                for entry in self.loot_table
            ],
            "weaknesses": list(self.weaknesses),
            "resistances": list(self.resistances),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "MonsterInstance":
        loot_raw = data.get("loot_table") or []
        return cls(
            key=str(data["key"]),
            name=str(data.get("name", data["key"])),
            level=int(data.get("level", 1)),  # type: ignore[arg-type]
            health=max(0, int(data["health"])),  # type: ignore[arg-type]
            max_health=int(data.get("max_health", data["health"])),  # type: ignore[arg-type]
            attack=int(data.get("attack", 1)),  # type: ignore[arg-type]
            defense=int(data.get("defense", 0)),  # type: ignore[arg-type]
            xp_reward=int(data.get("xp_reward", 0)),  # type: ignore[arg-type]
            gold_reward=int(data.get("gold_reward", 0)),  # type: ignore[arg-type]
            loot_table=tuple(LootEntry.from_mapping(entry) for entry in loot_raw),  # type: ignore[union-attr]
            weaknesses=tuple(str(tag) for tag in data.get("weaknesses") or ()),  # type: ignore[union-attr]
            resistances=tuple(str(tag) for tag in data.get("resistances") or ()),  # type: ignore[union-attr]
        )


@dataclass(frozen=True)
class CombatAction:
    """A tagged choice: ``attack``, ``defend``, ``skill`` or ``item``."""

    kind: str
    skill_id: str | None = None
    item_id: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in ACTION_KINDS:
            raise InvalidAction(f"Unknown combat action '{self.kind}'")
        if self.kind == "skill" and not self.skill_id:
            raise InvalidAction("Skill actions require a skill id")
        if self.kind == "item" and not self.item_id:
            raise InvalidAction("Item actions require an item id")

    @classmethod
    def attack(cls) -> "CombatAction":
        return cls("attack")

    @classmethod
    def defend(cls) -> "CombatAction":
        return cls("defend")

    @classmethod
    def skill(cls, skill_id: str) -> "CombatAction":
        return cls("skill", skill_id=skill_id)

    @classmethod
    def item(cls, item_id: str) -> "CombatAction":
        return cls("item", item_id=item_id)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "CombatAction":
        kind = str(data.get("type") or data.get("kind") or "").strip().lower()
        skill_id = data.get("skill_id")
        item_id = data.get("item_id")
        return cls(
            kind,
            skill_id=str(skill_id) if skill_id else None,
            item_id=str(item_id) if item_id else None,
        )


@dataclass(frozen=True)
class CombatResult:
    damage: int
    is_critical: bool = False
    is_weakness_break: bool = False
    status_effects: Tuple[str, ...] = ()
    message: str = ""


def defense_factor(defense: int | float) -> float:
    """Diminishing-returns mitigation; defense never negates damage fully."""

    return 100 / (100 + max(0, defense))


def _roll_variance(rng: random.Random | None) -> float:
    return uniform(VARIANCE_RANGE[0], VARIANCE_RANGE[1], rng)


def _describe_hit(damage: int, is_critical: bool, is_weakness_break: bool) -> str:
    message = f"Dealt {damage} damage"
    if is_critical:
        message += " (Critical Hit!)"
    if is_weakness_break:
        message += " (Weakness Break!)"
    return message


def compute_attack_damage(
    attacker: CombatStats,
    target_defense: int,
    weapon: Weapon | None = None,
    target_weaknesses: Iterable[str] | None = None,
    *,
    rng: random.Random | None = None,
) -> CombatResult:
    """Resolve a character's attack against a target with ``target_defense``.

    Draws twice from ``rng``: the critical roll, then the variance roll.
    """

    generator = rng or random.Random()
    uses_intellect = weapon is not None and weapon.weapon_type in MAGIC_WEAPON_TYPES
    primary = attacker.intelligence if uses_intellect else attacker.strength
    weapon_attack = weapon.attack if weapon is not None else 0

    damage = (primary * 0.5 + weapon_attack) * defense_factor(target_defense)

    crit_rate = DEFAULT_CRIT_RATE
    crit_damage = DEFAULT_CRIT_DAMAGE
    if weapon is not None:
        if weapon.crit_rate is not None:
            crit_rate = weapon.crit_rate
        if weapon.crit_damage is not None:
            crit_damage = weapon.crit_damage
    is_critical = roll_percent(generator) < crit_rate
    if is_critical:
        damage *= crit_damage / 100

    is_weakness_break = False
    if weapon is not None and target_weaknesses:
        element = weapon.element or DEFAULT_ELEMENT
        if element in {weakness.lower() for weakness in target_weaknesses}:
            is_weakness_break = True
            damage *= WEAKNESS_MULTIPLIER

    damage *= _roll_variance(generator)
    final = max(1, math.floor(damage))
    return CombatResult(
        damage=final,
        is_critical=is_critical,
        is_weakness_break=is_weakness_break,
        message=_describe_hit(final, is_critical, is_weakness_break),
    )


def compute_monster_attack(
    monster: MonsterInstance,
    defender: CombatStats,
    *,
    rng: random.Random | None = None,
) -> CombatResult:
    """Resolve a monster's plain attack; monsters never crit or weakness-break."""

    damage = monster.attack * defense_factor(defender.defense) * _roll_variance(rng)
    final = max(1, math.floor(damage))
    return CombatResult(damage=final, message=f"{monster.name} attacks for {final} damage!")
