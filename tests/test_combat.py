"""Unit coverage for combat math."""

from __future__ import annotations

import pytest

from conftest import ScriptedRandom
from rpg.characters import Character, CombatStats, derive_combat_stats
from rpg.combat import (
    CombatAction,
    MonsterInstance,
    compute_attack_damage,
    compute_monster_attack,
    defense_factor,
)
from rpg.content import Weapon
from rpg.errors import InvalidAction


def _stats(**overrides) -> CombatStats:
    values = dict(
        health=100,
        max_health=100,
        mana=50,
        max_mana=50,
        strength=20,
        intelligence=30,
        defense=5,
        agility=5,
        luck=5,
    )
    values.update(overrides)
    return CombatStats(**values)


def _weapon(**overrides) -> Weapon:
    values = dict(key="blade", name="Blade", kind="weapon", attack=10, crit_rate=0)
    values.update(overrides)
    return Weapon(**values)


def test_attack_damage_matches_formula() -> None:
    rng = ScriptedRandom([0.99, 0.0])
    result = compute_attack_damage(_stats(), 10, _weapon(), rng=rng)

    # (20 * 0.5 + 10) * 100 / 110 * 0.9
    assert result.damage == 16
    assert result.is_critical is False
    assert result.is_weakness_break is False
    assert result.message == "Dealt 16 damage"
    assert rng.pending == 0


def test_zero_defense_leaves_damage_unmitigated() -> None:
    assert defense_factor(0) == 1
    result = compute_attack_damage(_stats(), 0, _weapon(attack=13), rng=ScriptedRandom([0.99, 0.25]))
    # 23 * 0.95
    assert result.damage == 21


def test_damage_never_drops_below_one() -> None:
    weakling = _stats(strength=0)
    result = compute_attack_damage(weakling, 10_000, None, rng=ScriptedRandom([0.99, 0.0]))
    assert result.damage == 1

    monster = MonsterInstance(key="gnat", name="Gnat", level=1, health=1, max_health=1, attack=1, defense=0)
    counter = compute_monster_attack(monster, _stats(defense=500), rng=ScriptedRandom([0.0]))
    assert counter.damage == 1


def test_more_defense_never_means_more_damage() -> None:
    previous = None
    for defense in (0, 5, 10, 25, 50, 100, 250):
        result = compute_attack_damage(_stats(), defense, _weapon(), rng=ScriptedRandom([0.99, 0.6]))
        if previous is not None:
            assert result.damage <= previous
        previous = result.damage


def test_staff_scales_with_intelligence() -> None:
    staff = _weapon(weapon_type="staff", attack=0)
    result = compute_attack_damage(_stats(), 0, staff, rng=ScriptedRandom([0.99, 0.6]))
    assert result.damage == 15


def test_crit_uses_weapon_rates_and_default_when_absent() -> None:
    bow = _weapon(crit_rate=15, crit_damage=200)
    crit = compute_attack_damage(_stats(), 0, bow, rng=ScriptedRandom([0.1, 0.6]))
    assert crit.is_critical is True
    assert crit.damage == 40
    assert crit.message == "Dealt 40 damage (Critical Hit!)"

    # Default crit rate is 5%: a draw of 4.0 crits, 6.0 does not.
    plain = _weapon(crit_rate=None)
    assert compute_attack_damage(_stats(), 0, plain, rng=ScriptedRandom([0.04, 0.5])).is_critical
    assert not compute_attack_damage(_stats(), 0, plain, rng=ScriptedRandom([0.06, 0.5])).is_critical


def test_zero_crit_rate_never_crits() -> None:
    result = compute_attack_damage(_stats(), 0, _weapon(crit_rate=0), rng=ScriptedRandom([0.0, 0.6]))
    assert result.is_critical is False


def test_weakness_break_stacks_with_crit() -> None:
    flame = _weapon(element="fire", crit_rate=100, crit_damage=150)
    result = compute_attack_damage(_stats(), 0, flame, ["Fire"], rng=ScriptedRandom([0.0, 0.6]))

    # 20 * 1.5 * 1.5
    assert result.damage == 45
    assert result.is_critical and result.is_weakness_break
    assert result.message == "Dealt 45 damage (Critical Hit!) (Weakness Break!)"


def test_weapon_without_element_counts_as_physical() -> None:
    result = compute_attack_damage(_stats(), 0, _weapon(), ["physical"], rng=ScriptedRandom([0.99, 0.6]))
    assert result.is_weakness_break is True
    assert result.damage == 30


def test_monster_attack_is_mitigated_by_defense() -> None:
    monster = MonsterInstance(key="orc", name="Orc", level=4, health=90, max_health=90, attack=21, defense=10)
    result = compute_monster_attack(monster, _stats(defense=5), rng=ScriptedRandom([0.6]))
    assert result.damage == 20
    assert result.message == "Orc attacks for 20 damage!"
    assert result.is_critical is False


def test_derived_stats_fold_in_equipment(library) -> None:
    character = Character(
        character_id="hero",
        equipment={"weapon": "training_sword", "head": "iron_helm", "ring": "lucky_charm"},
    )
    stats = derive_combat_stats(character, library.items)
    assert stats.weapon is not None and stats.weapon.key == "training_sword"
    assert stats.defense == 10
    assert stats.max_health == 120
    assert stats.luck == 9
    assert stats.strength == 11


def test_combat_action_validation() -> None:
    assert CombatAction.from_mapping({"type": "Skill", "skill_id": "heal"}) == CombatAction.skill("heal")
    with pytest.raises(InvalidAction):
        CombatAction("dance")
    with pytest.raises(InvalidAction):
        CombatAction("skill")
    with pytest.raises(InvalidAction):
        CombatAction.from_mapping({"type": "item"})
