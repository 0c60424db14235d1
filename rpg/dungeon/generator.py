"""Room encounter generation and the fixed dungeon event catalog."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Mapping, Tuple

from rpg.combat import MonsterInstance
from rpg.content import ContentLibrary, Dungeon, DungeonEvent, EncounterTable, EventChoice
from rpg.errors import InvalidAction
from rpg.rng import pick

from .rewards import Reward

__all__ = [
    "DUNGEON_EVENTS",
    "ENCOUNTER_WEIGHTS",
    "Encounter",
    "EncounterGenerator",
    "TREASURE_ITEM",
    "TREASURE_WEIGHTS",
    "get_event",
    "resolve_event_choice",
]

log = logging.getLogger(__name__)

ENCOUNTER_WEIGHTS: Mapping[str, float] = {"monster": 70, "treasure": 20, "event": 10}
TREASURE_WEIGHTS: Mapping[str, float] = {"gold": 40, "xp": 30, "item": 30}
TREASURE_ITEM = "health_potion"

DUNGEON_EVENTS: Tuple[DungeonEvent, ...] = (
    DungeonEvent(
        key="mysterious_fountain",
        name="Mysterious Fountain",
        description="A glowing fountain bubbles in the center of the room.",
        choices=(
            EventChoice(key="drink", text="Drink from the fountain", effect="heal", value=50),
            EventChoice(key="ignore", text="Ignore it"),
        ),
    ),
    DungeonEvent(
        key="ancient_shrine",
        name="Ancient Shrine",
        description="An ancient shrine hums with forgotten power.",
        choices=(
            EventChoice(key="pray", text="Pray at the shrine", effect="mana", value=30),
            EventChoice(key="leave", text="Leave it alone"),
        ),
    ),
)


def get_event(key: str) -> DungeonEvent:
    for event in DUNGEON_EVENTS:
        if event.key == key:
            return event
    raise InvalidAction(f"Unknown dungeon event '{key}'")


def resolve_event_choice(event: DungeonEvent, choice: str) -> EventChoice:
    """Match ``choice`` against the event's choices by key or text."""

    selected = event.find_choice(choice)
    if selected is None:
        options = ", ".join(candidate.key for candidate in event.choices)
        raise InvalidAction(f"'{choice}' is not a choice for {event.name} (options: {options})")
    return selected


@dataclass(frozen=True)
class Encounter:
    """What a room holds once generated."""

    kind: str
    summary: str
    monster: MonsterInstance | None = None
    treasure: Reward | None = None
    treasure_tag: str | None = None
    event: DungeonEvent | None = None


class EncounterGenerator:
    """Roll the contents of the next room in a dungeon."""

    def __init__(
        self,
        library: ContentLibrary,
        *,
        encounter_table: EncounterTable | None = None,
        treasure_table: EncounterTable | None = None,
    ) -> None:
        self.library = library
        self.encounter_table = encounter_table or EncounterTable(ENCOUNTER_WEIGHTS)
        self.treasure_table = treasure_table or EncounterTable(TREASURE_WEIGHTS)

    def generate(self, dungeon: Dungeon, floor: int, rng: random.Random | None = None) -> Encounter:
        generator = rng or random.Random()
        kind = self.encounter_table.roll(generator)
        if kind == "monster":
            encounter = self._monster(dungeon, floor, generator)
        elif kind == "treasure":
            encounter = self._treasure(floor, generator)
        else:
            encounter = self._event(generator)
        log.debug("Generated %s encounter on floor %s of %s", encounter.kind, floor, dungeon.key)
        return encounter

    def _monster(self, dungeon: Dungeon, floor: int, rng: random.Random) -> Encounter:
        definition = pick(dungeon.monsters_for_floor(floor), rng)
        monster = MonsterInstance.from_definition(definition)
        return Encounter(
            kind="monster",
            summary=f"A {monster.name} (level {monster.level}) blocks the way!",
            monster=monster,
        )

    def _treasure(self, floor: int, rng: random.Random) -> Encounter:
        kind = self.treasure_table.roll(rng)
        if kind == "gold":
            amount = int(50 + floor * 25 + rng.random() * 100)
            return Encounter(
                kind="treasure",
                summary=f"You found {amount} gold!",
                treasure=Reward(gold=amount),
                treasure_tag=f"gold:{amount}",
            )
        if kind == "xp":
            amount = int(25 + floor * 15 + rng.random() * 50)
            return Encounter(
                kind="treasure",
                summary=f"Ancient knowledge grants you {amount} XP!",
                treasure=Reward(xp=amount),
                treasure_tag=f"xp:{amount}",
            )
        item = self.library.item(TREASURE_ITEM)
        return Encounter(
            kind="treasure",
            summary=f"You found a {item.name}!",
            treasure=Reward(items={item.key: 1}),
            treasure_tag=f"item:{item.key}",
        )

    def _event(self, rng: random.Random) -> Encounter:
        event = pick(DUNGEON_EVENTS, rng)
        return Encounter(kind="event", summary=event.description, event=event)
