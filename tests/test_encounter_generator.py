from __future__ import annotations

import pytest

from conftest import ScriptedRandom
from rpg.content import ContentLibrary, EncounterTable
from rpg.dungeon.generator import (
    DUNGEON_EVENTS,
    ENCOUNTER_WEIGHTS,
    EncounterGenerator,
    get_event,
    resolve_event_choice,
)
from rpg.errors import InvalidAction


@pytest.fixture
def default_library() -> ContentLibrary:
    return ContentLibrary.load_default()


def test_encounter_weights_are_fixed() -> None:
    assert dict(ENCOUNTER_WEIGHTS) == {"monster": 70, "treasure": 20, "event": 10}


def test_monster_encounter_prefers_floor_band(default_library) -> None:
    generator = EncounterGenerator(default_library)
    dungeon = default_library.dungeon("goblin_caves")

    # Floor 1 band is [1, 3]: slime, goblin and cave bat, never the orc.
    seen = set()
    for index in range(3):
        rng = ScriptedRandom([0.1, index / 3 + 0.01])
        encounter = generator.generate(dungeon, 1, rng)
        assert encounter.kind == "monster"
        assert encounter.monster is not None
        assert encounter.monster.health == encounter.monster.max_health
        seen.add(encounter.monster.key)
    assert seen == {"slime", "goblin", "cave_bat"}


def test_monster_band_falls_back_to_every_monster(default_library) -> None:
    dungeon = default_library.dungeon("crystal_depths")
    # Nothing in Crystal Depths is level 1-3.
    assert [monster.key for monster in dungeon.monsters_for_floor(1)] == [
        monster.key for monster in dungeon.monsters
    ]


def test_each_encounter_is_a_fresh_instance(default_library) -> None:
    generator = EncounterGenerator(default_library)
    dungeon = default_library.dungeon("goblin_caves")
    first = generator.generate(dungeon, 1, ScriptedRandom([0.0, 0.0]))
    second = generator.generate(dungeon, 1, ScriptedRandom([0.0, 0.0]))
    first.monster.health = 0
    assert second.monster.health == second.monster.max_health


def test_treasure_amounts_scale_with_floor(default_library) -> None:
    generator = EncounterGenerator(default_library)
    dungeon = default_library.dungeon("goblin_caves")

    gold = generator.generate(dungeon, 2, ScriptedRandom([0.75, 0.1, 0.5]))
    assert gold.kind == "treasure"
    assert gold.treasure.gold == 150
    assert gold.treasure_tag == "gold:150"

    xp = generator.generate(dungeon, 3, ScriptedRandom([0.75, 0.5, 0.2]))
    assert xp.treasure.xp == 80
    assert xp.treasure.gold == 0

    item = generator.generate(dungeon, 1, ScriptedRandom([0.75, 0.9]))
    assert dict(item.treasure.items) == {"health_potion": 1}


def test_event_encounter_picks_from_catalog(default_library) -> None:
    generator = EncounterGenerator(default_library)
    dungeon = default_library.dungeon("goblin_caves")
    encounter = generator.generate(dungeon, 1, ScriptedRandom([0.95, 0.7]))
    assert encounter.kind == "event"
    assert encounter.event.key == "ancient_shrine"


def test_custom_tables_override_weights(default_library) -> None:
    generator = EncounterGenerator(default_library, encounter_table=EncounterTable({"event": 1}))
    dungeon = default_library.dungeon("goblin_caves")
    for value in (0.0, 0.5, 0.99):
        assert generator.generate(dungeon, 1, ScriptedRandom(default=value)).kind == "event"


def test_every_event_offers_named_choices() -> None:
    for event in DUNGEON_EVENTS:
        assert len(event.choices) >= 2
        assert {choice.effect for choice in event.choices} <= {"heal", "mana", "none"}


def test_resolve_event_choice_matches_key_or_text() -> None:
    fountain = get_event("mysterious_fountain")
    assert resolve_event_choice(fountain, "DRINK").effect == "heal"
    assert resolve_event_choice(fountain, "drink from the fountain").value == 50
    assert resolve_event_choice(fountain, "ignore").effect == "none"
    with pytest.raises(InvalidAction):
        resolve_event_choice(fountain, "swim")
    with pytest.raises(InvalidAction):
        get_event("haunted_mirror")
