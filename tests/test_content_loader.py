from __future__ import annotations

import json

import pytest

from conftest import TEST_CONTENT, write_content
from rpg.content import (
    BuffEffect,
    ContentLibrary,
    ContentLoadError,
    DamageEffect,
    HealEffect,
    SchemaError,
    Skill,
    Weapon,
)
from rpg.errors import DungeonNotFound, ItemNotFound, MonsterNotFound


def test_default_content_loads() -> None:
    library = ContentLibrary.load_default()

    caves = library.dungeon("Goblin Caves")
    assert caves.key == "goblin_caves"
    assert caves.min_level == 1
    assert {monster.key for monster in caves.monsters} >= {"slime", "goblin"}
    assert library.dungeon("crystal_depths").min_level == 10

    assert isinstance(library.item("flame_blade"), Weapon)
    assert library.item("rusty_sword").crit_rate is None
    assert isinstance(library.skill("heal").effect, HealEffect)
    assert isinstance(library.skill("shield_wall").effect, BuffEffect)
    assert library.skill("power_strike").effect == DamageEffect()


def test_lookups_raise_typed_errors(library) -> None:
    with pytest.raises(DungeonNotFound):
        library.dungeon("nowhere")
    with pytest.raises(MonsterNotFound):
        library.monster("dragon")
    with pytest.raises(ItemNotFound) as excinfo:
        library.item("dragon_egg")
    assert str(excinfo.value) == "Unknown item 'dragon_egg'"
    # Lookup errors remain KeyErrors for callers that only know mappings.
    with pytest.raises(KeyError):
        library.item("")


def test_json_content_is_supported(tmp_path) -> None:
    base = write_content(tmp_path / "content")
    (base / "items" / "extra.json").write_text(
        json.dumps({"id": "mana_potion", "type": "consumable", "name": "Mana Potion", "effect": "mana"}),
        encoding="utf-8",
    )
    library = ContentLibrary.load_from_path(base)
    assert library.item("mana_potion").effect == "mana"


@pytest.mark.parametrize(
    ("relative", "payload", "message"),
    [
        ("dungeons/broken.yaml", {"id": "broken", "monsters": ["dragon"]}, "Unknown monster 'dragon'"),
        ("dungeons/empty.yaml", {"id": "empty", "monsters": []}, "at least one monster"),
        ("dungeons/flat.yaml", {"id": "flat", "max_floors": 0, "monsters": ["brute"]}, "at least 1"),
        (
            "dungeons/greedy.yaml",
            {"id": "greedy", "monsters": ["brute"], "rewards": [{"item": "crown", "chance": 5, "floor": 1}]},
            "Unknown item 'crown'",
        ),
        (
            "monsters/hoarder.yaml",
            {"id": "hoarder", "level": 1, "health": 5, "attack": 1, "loot_table": [{"item": "crown", "chance": 5}]},
            "Unknown item 'crown'",
        ),
        ("items/odd.yaml", {"id": "odd", "type": "relic"}, "Unknown item type 'relic'"),
        ("monsters/dup.yaml", {"id": "brute", "level": 1, "health": 5, "attack": 1}, "Duplicate entry"),
    ],
)
def test_invalid_content_is_rejected(tmp_path, relative, payload, message) -> None:
    base = write_content(tmp_path / "content", {**TEST_CONTENT, relative: payload})
    with pytest.raises(ContentLoadError, match=message):
        ContentLibrary.load_from_path(base)


def test_unparseable_file_reports_its_path(tmp_path) -> None:
    base = write_content(tmp_path / "content")
    broken = base / "skills" / "broken.yaml"
    broken.write_text("- id: [unterminated", encoding="utf-8")
    with pytest.raises(ContentLoadError) as excinfo:
        ContentLibrary.load_from_path(base)
    assert excinfo.value.path == broken


def test_skill_effect_schema() -> None:
    fireball = Skill.from_mapping(
        "fireball",
        {"cost": 20, "effect": {"type": "damage", "stats": ["Intelligence"], "element": "Fire"}},
    )
    assert fireball.effect == DamageEffect(stats=("intelligence",), element="fire")
    with pytest.raises(SchemaError):
        Skill.from_mapping("dance", {"effect": {"type": "dance"}})
    with pytest.raises(SchemaError):
        Skill.from_mapping("drain", {"effect": {"type": "heal", "resource": "gold"}})
    with pytest.raises(SchemaError):
        Skill.from_mapping("smash", {"effect": {"type": "damage", "stats": ["charisma"]}})
