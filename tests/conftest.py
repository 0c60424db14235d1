from __future__ import annotations

import random
from pathlib import Path
from typing import Iterable

import pytest
import yaml

from rpg.content import ContentLibrary


class ScriptedRandom(random.Random):
    """Random source whose ``random()`` replays queued floats."""

    def __init__(self, values: Iterable[float] = (), *, default: float = 0.5) -> None:
        super().__init__(0)
        self._values = list(values)
        self._default = default

    def queue(self, *values: float) -> None:
        self._values.extend(values)

    @property
    def pending(self) -> int:
        return len(self._values)

    def random(self) -> float:
        if self._values:
            return self._values.pop(0)
        return self._default


TEST_CONTENT = {
    "items/gear.yaml": [
        {"id": "training_sword", "type": "weapon", "name": "Training Sword", "attack": 10, "crit_rate": 0},
        {"id": "ember_staff", "type": "weapon", "name": "Ember Staff", "attack": 4, "weapon_type": "staff", "element": "fire"},
        {"id": "iron_helm", "type": "armor", "name": "Iron Helm", "slot": "head", "defense": 5, "health_bonus": 20},
        {"id": "lucky_charm", "type": "accessory", "name": "Lucky Charm", "stat_bonus": {"luck": 4, "strength": 1}},
        {"id": "health_potion", "type": "consumable", "name": "Health Potion", "effect": "heal", "effect_value": 50},
    ],
    "monsters/arena.yaml": [
        {
            "id": "training_dummy",
            "name": "Training Dummy",
            "level": 10,
            "health": 20,
            "attack": 10,
            "defense": 10,
            "xp_reward": 50,
            "gold_reward": 30,
            "loot_table": [{"item": "health_potion", "chance": 50}],
            "weaknesses": ["fire"],
        },
        {
            "id": "brute",
            "name": "Brute",
            "level": 3,
            "health": 500,
            "attack": 400,
            "defense": 0,
        },
    ],
    "skills/skills.yaml": [
        {"id": "heal", "name": "Heal", "cost": 15, "effect": {"type": "heal", "resource": "health"}},
        {
            "id": "fireball",
            "name": "Fireball",
            "cost": 20,
            "effect": {"type": "damage", "stats": ["intelligence"], "coefficient": 1.2, "flat": 15, "element": "fire"},
        },
        {"id": "shield_wall", "name": "Shield Wall", "cost": 8, "effect": {"type": "buff", "status": "shielded", "damage_taken_multiplier": 0.25}},
        {"id": "power_strike", "name": "Power Strike", "cost": 10},
    ],
    "dungeons/trial_hall.yaml": {
        "id": "trial_hall",
        "name": "Trial Hall",
        "min_level": 10,
        "max_floors": 2,
        "monsters": ["training_dummy"],
        "rewards": [{"item": "health_potion", "chance": 100, "floor": 1}],
    },
    "dungeons/brute_den.yaml": {
        "id": "brute_den",
        "name": "Brute Den",
        "min_level": 1,
        "max_floors": 1,
        "monsters": ["brute"],
    },
}


def write_content(base: Path, files: dict[str, object] | None = None) -> Path:
    for relative, payload in (files or TEST_CONTENT).items():
        path = base / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return base


@pytest.fixture
def content_path(tmp_path: Path) -> Path:
    return write_content(tmp_path / "content")


@pytest.fixture
def library(content_path: Path) -> ContentLibrary:
    return ContentLibrary.load_from_path(content_path)


@pytest.fixture
def scripted() -> ScriptedRandom:
    return ScriptedRandom()
