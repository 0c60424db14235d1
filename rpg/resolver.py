"""Resolve one combat turn: the character's action, then the monster's reply."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Tuple

from .characters import Character, CombatStats
from .combat import (
    WEAKNESS_MULTIPLIER,
    CombatAction,
    CombatResult,
    MonsterInstance,
    compute_attack_damage,
    compute_monster_attack,
)
from .content import BuffEffect, Consumable, ContentLibrary, DamageEffect, HealEffect, Skill
from .errors import CatalogLookupError, InsufficientResource, InvalidAction

__all__ = ["DEFEND_MULTIPLIER", "TurnResult", "resolve_turn"]

log = logging.getLogger(__name__)

DEFEND_MULTIPLIER = 0.5


@dataclass(frozen=True)
class TurnResult:
    actor_result: CombatResult
    monster_result: CombatResult | None
    character_health: int
    character_mana: int
    monster_health: int
    mana_spent: int = 0

    @property
    def monster_defeated(self) -> bool:
        return self.monster_health <= 0

    @property
    def character_defeated(self) -> bool:
        return self.character_health <= 0


@dataclass(frozen=True)
class _ActionOutcome:
    result: CombatResult
    health: int
    mana: int
    damage_taken_multiplier: float = 1.0
    mana_spent: int = 0


def resolve_turn(
    character: Character,
    stats: CombatStats,
    action: CombatAction,
    monster: MonsterInstance,
    library: ContentLibrary,
    *,
    rng: random.Random | None = None,
) -> TurnResult:
    """Resolve ``action`` against ``monster`` and the counter-attack, if any.

    Nothing is mutated: the caller applies the returned health values. All
    validation happens before the first random draw, so a rejected action
    leaves no trace.
    """

    generator = rng or random.Random()
    outcome = _resolve_action(character, stats, action, monster, library, generator)

    monster_health = max(0, monster.health - outcome.result.damage)
    health = outcome.health
    monster_result: CombatResult | None = None
    if monster_health > 0:
        attack = compute_monster_attack(monster, stats, rng=generator)
        taken = attack.damage
        message = attack.message
        if outcome.damage_taken_multiplier != 1.0:
            taken = math.floor(attack.damage * outcome.damage_taken_multiplier)
            message += " (Reduced by defense!)"
        health = max(0, health - taken)
        monster_result = CombatResult(damage=taken, message=message)

    log.debug(
        "Turn %s vs %s: dealt %s, took %s",
        action.kind,
        monster.key,
        outcome.result.damage,
        monster_result.damage if monster_result else 0,
    )
    return TurnResult(
        actor_result=outcome.result,
        monster_result=monster_result,
        character_health=health,
        character_mana=outcome.mana,
        monster_health=monster_health,
        mana_spent=outcome.mana_spent,
    )


def _resolve_action(
    character: Character,
    stats: CombatStats,
    action: CombatAction,
    monster: MonsterInstance,
    library: ContentLibrary,
    rng: random.Random,
) -> _ActionOutcome:
    if action.kind == "attack":
        result = compute_attack_damage(
            stats,
            monster.defense,
            stats.weapon,
            monster.weaknesses,
            rng=rng,
        )
        return _ActionOutcome(result=result, health=stats.health, mana=stats.mana)
    if action.kind == "defend":
        result = CombatResult(
            damage=0,
            status_effects=("defending",),
            message="Defending! Incoming damage reduced by 50%",
        )
        return _ActionOutcome(
            result=result,
            health=stats.health,
            mana=stats.mana,
            damage_taken_multiplier=DEFEND_MULTIPLIER,
        )
    if action.kind == "skill":
        return _resolve_skill(character, stats, str(action.skill_id), monster, library)
    if action.kind == "item":
        return _resolve_item(character, stats, str(action.item_id), library)
    raise InvalidAction(f"Unknown combat action '{action.kind}'")


def _lookup_skill(character: Character, skill_id: str, library: ContentLibrary) -> Skill:
    key = skill_id.strip().lower()
    if key not in character.skills:
        raise InvalidAction(f"{character.name} does not know the skill '{skill_id}'")
    try:
        return library.skill(key)
    except CatalogLookupError:
        raise InvalidAction(f"Unknown skill '{skill_id}'") from None


def _resolve_skill(
    character: Character,
    stats: CombatStats,
    skill_id: str,
    monster: MonsterInstance,
    library: ContentLibrary,
) -> _ActionOutcome:
    skill = _lookup_skill(character, skill_id, library)
    if stats.mana < skill.cost:
        raise InsufficientResource(
            f"Not enough mana for {skill.name}: need {skill.cost}, have {stats.mana}"
        )
    health = stats.health
    mana = stats.mana - skill.cost
    effect = skill.effect

    if isinstance(effect, HealEffect):
        amount = max(0, math.floor(stats.intelligence * effect.coefficient + effect.flat))
        if effect.resource == "mana":
            restored = min(stats.max_mana, mana + amount) - mana
            mana += restored
            message = f"{skill.name} restored {restored} MP"
        else:
            restored = min(stats.max_health, health + amount) - health
            health += restored
            message = f"{skill.name} restored {restored} HP"
        result = CombatResult(damage=0, message=message)
        return _ActionOutcome(result=result, health=health, mana=mana, mana_spent=skill.cost)

    if isinstance(effect, DamageEffect):
        damage = stats.stat_total(effect.stats) * effect.coefficient + effect.flat
        weakness = bool(effect.element) and effect.element in {tag.lower() for tag in monster.weaknesses}
        if weakness:
            damage *= WEAKNESS_MULTIPLIER
        final = max(1, math.floor(damage))
        message = f"{skill.name} dealt {final} damage"
        if weakness:
            message += " (Weakness Break!)"
        result = CombatResult(damage=final, is_weakness_break=weakness, message=message)
        return _ActionOutcome(result=result, health=health, mana=mana, mana_spent=skill.cost)

    if isinstance(effect, BuffEffect):
        statuses: Tuple[str, ...] = (effect.status,)
        result = CombatResult(damage=0, status_effects=statuses, message=f"{skill.name} is active")
        return _ActionOutcome(
            result=result,
            health=health,
            mana=mana,
            damage_taken_multiplier=effect.damage_taken_multiplier,
            mana_spent=skill.cost,
        )

    raise TypeError(f"Unhandled skill effect {type(effect).__name__}")


def _resolve_item(
    character: Character,
    stats: CombatStats,
    item_id: str,
    library: ContentLibrary,
) -> _ActionOutcome:
    if character.item_quantity(item_id) < 1:
        raise InsufficientResource(f"{character.name} has no '{item_id}' to use")
    item = library.item(item_id)
    if not isinstance(item, Consumable):
        raise InvalidAction(f"{item.name} cannot be used in combat")
    # Consumables in combat are not specialised yet: the turn passes and
    # nothing is consumed.
    result = CombatResult(damage=0, message=f"Used {item.name}")
    return _ActionOutcome(result=result, health=stats.health, mana=stats.mana)
