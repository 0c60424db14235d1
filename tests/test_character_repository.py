import asyncio
import json
from dataclasses import replace

import pytest

from rpg import Attributes, Character, CharacterRepository, CharacterUpdate
from rpg.errors import CharacterNotFound, InsufficientResource


def _make_character(character_id: str = "hero", **overrides) -> Character:
    values = dict(
        character_id=character_id,
        name="Aria",
        level=3,
        xp=450,
        gold=120,
        health=80,
        attributes=Attributes(strength=14, intelligence=9),
        equipment={"weapon": "training_sword"},
        inventory={"health_potion": 2},
        skills=("heal",),
    )
    values.update(overrides)
    return Character(**values)


def test_repository_round_trips_characters(tmp_path) -> None:
    async def scenario() -> None:
        storage = tmp_path / "characters.json"
        repository = CharacterRepository(storage)
        character = _make_character()
        await repository.save(character)

        assert await repository.exists("hero") is True
        assert await repository.get("hero") == character
        assert await repository.get("ghost") is None

        reloaded = CharacterRepository(storage)
        assert await reloaded.get("hero") == character
        assert set(await reloaded.list_characters()) == {"hero"}

    asyncio.run(scenario())


def test_repository_detects_external_updates(tmp_path) -> None:
    async def scenario() -> None:
        storage = tmp_path / "characters.json"
        repository_a = CharacterRepository(storage)
        repository_b = CharacterRepository(storage)

        await repository_a.save(_make_character(name="Aria"))
        assert (await repository_b.get("hero")).name == "Aria"

        await repository_b.save(_make_character(name="Aria the Bold", gold=999))
        updated = await repository_a.get("hero")
        assert updated.name == "Aria the Bold"
        assert updated.gold == 999

    asyncio.run(scenario())


def test_update_sets_then_increments_and_clamps(tmp_path) -> None:
    async def scenario() -> None:
        repository = CharacterRepository(tmp_path / "characters.json")
        await repository.save(_make_character())

        updated = await repository.update(
            "hero",
            CharacterUpdate(
                set={"health": 90},
                increment={"health": 50, "gold": -500, "strength": 2, "mana": -80},
                items={"health_potion": -2, "mana_potion": 1},
            ),
        )
        assert updated.health == 100
        assert updated.mana == 0
        assert updated.gold == 0
        assert updated.attributes.strength == 16
        assert dict(updated.inventory) == {"mana_potion": 1}
        assert await repository.get("hero") == updated

        capped = await repository.update("hero", CharacterUpdate(increment={"health": 15}), health_cap=120)
        assert capped.health == 115

    asyncio.run(scenario())


def test_update_rejects_missing_items_and_characters(tmp_path) -> None:
    async def scenario() -> None:
        repository = CharacterRepository(tmp_path / "characters.json")
        character = _make_character()
        await repository.save(character)

        with pytest.raises(InsufficientResource):
            await repository.update("hero", CharacterUpdate(items={"health_potion": -3}))
        assert await repository.get("hero") == character

        with pytest.raises(CharacterNotFound):
            await repository.update("ghost", CharacterUpdate(increment={"gold": 1}))
        with pytest.raises(ValueError):
            CharacterUpdate(set={"name": 1})

    asyncio.run(scenario())


def test_delete_removes_character(tmp_path) -> None:
    async def scenario() -> None:
        repository = CharacterRepository(tmp_path / "characters.json")
        await repository.save(_make_character())
        await repository.save(replace(_make_character("rival"), name="Rival"))

        await repository.delete("hero")
        assert await repository.exists("hero") is False
        assert await repository.exists("rival") is True

    asyncio.run(scenario())


def test_corrupt_storage_is_treated_as_empty(tmp_path) -> None:
    async def scenario() -> None:
        storage = tmp_path / "characters.json"
        storage.write_text("{not json", encoding="utf-8")
        repository = CharacterRepository(storage)
        assert await repository.get("hero") is None

        await repository.save(_make_character())
        assert "hero" in json.loads(storage.read_text(encoding="utf-8"))
        assert not (tmp_path / ".characters.json.tmp").exists()

    asyncio.run(scenario())


def test_update_with_catalog_caps_pools_at_equipped_maximum(tmp_path, library) -> None:
    async def scenario() -> None:
        repository = CharacterRepository(tmp_path / "characters.json")
        await repository.save(_make_character(health=110, equipment={"head": "iron_helm"}))

        healed = await repository.update(
            "hero", CharacterUpdate(increment={"health": 50}), items=library.items
        )
        assert healed.health == 120

        grown = await repository.update(
            "hero", CharacterUpdate(increment={"max_health": 5, "health": 50}), items=library.items
        )
        assert grown.health == 125

        plain = await repository.update("hero", CharacterUpdate(increment={"gold": 1}))
        assert plain.health == 105

    asyncio.run(scenario())
