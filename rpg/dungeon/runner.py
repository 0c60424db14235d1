"""Dungeon session state machine driving rooms, fights and rewards."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from rpg.characters import Character, CharacterUpdate, CombatStats, derive_combat_stats
from rpg.combat import CombatAction, MonsterInstance
from rpg.content import ContentLibrary, Dungeon, DungeonEvent, EventChoice
from rpg.errors import InvalidAction, LevelRequirementNotMet, NoActiveSession
from rpg.repository import CharacterRepository
from rpg.resolver import TurnResult, resolve_turn
from rpg.sessions import CharacterLocks

from .generator import EncounterGenerator, get_event, resolve_event_choice
from .rewards import Reward, completion_reward, roll_floor_rewards, settle_character, victory_reward
from .state import DungeonSession, FloorProgress, SessionRepository

__all__ = ["CombatTurnReport", "DungeonRunner", "RoomReport"]

log = logging.getLogger(__name__)

FLEE_HEALTH_PENALTY = 10
DEFEAT_HEALTH = 1


@dataclass(frozen=True)
class RoomReport:
    """Outcome of one ``progress_room`` call."""

    kind: str
    message: str
    session: DungeonSession
    character: Character
    monster: MonsterInstance | None = None
    event: DungeonEvent | None = None
    choice: EventChoice | None = None
    reward: Reward | None = None
    progress: FloorProgress | None = None
    levels_gained: int = 0

    @property
    def awaiting_choice(self) -> bool:
        return self.event is not None and self.choice is None

    @property
    def completed(self) -> bool:
        return self.session.status == "completed"


@dataclass(frozen=True)
class CombatTurnReport:
    """Outcome of one ``resolve_combat_turn`` call."""

    outcome: str
    turn: TurnResult
    session: DungeonSession
    character: Character
    reward: Reward | None = None
    progress: FloorProgress | None = None
    levels_gained: int = 0

    @property
    def completed(self) -> bool:
        return self.session.status == "completed"


class DungeonRunner:
    """Coordinate the catalog, both stores and the per-character locks.

    Every operation loads the character and the session once, works on
    in-memory copies and writes the character then the session at the very
    end. A failure before that point leaves both stores untouched, and a
    failed session write rolls the character record back.
    """

    def __init__(
        self,
        library: ContentLibrary,
        characters: CharacterRepository,
        sessions: SessionRepository,
        *,
        locks: CharacterLocks | None = None,
        rng_factory: Callable[[], random.Random] | None = None,
        generator: EncounterGenerator | None = None,
    ) -> None:
        self.library = library
        self.characters = characters
        self.sessions = sessions
        self.locks = locks or CharacterLocks()
        self._rng_factory = rng_factory or random.Random
        self.generator = generator or EncounterGenerator(library)

    # -- public operations -------------------------------------------------
    async def get_session(self, character_id: str) -> Optional[DungeonSession]:
        return await self.sessions.load_active(character_id)

    async def start_dungeon(self, character_id: str, dungeon_id: str) -> DungeonSession:
        async with self.locks.hold(character_id):
            character = await self.characters.require(character_id)
            dungeon = self.library.dungeon(dungeon_id)
            if character.level < dungeon.min_level:
                raise LevelRequirementNotMet(dungeon.min_level, character.level)
            self._check_equipment(character)

            previous = await self.sessions.load_active(character.character_id)
            if previous is not None:
                await self.sessions.deactivate(previous.session_id)
                log.info(
                    "Abandoned session %s of %s in %s",
                    previous.session_id,
                    character.character_id,
                    previous.dungeon_key,
                )

            session = DungeonSession.begin(
                character.character_id,
                dungeon.key,
                health=character.health,
                mana=character.mana,
            )
            await self.sessions.save(session)
            log.info("%s entered %s (session %s)", character.character_id, dungeon.key, session.session_id)
            return session

    async def progress_room(self, character_id: str, choice: str | None = None) -> RoomReport:
        async with self.locks.hold(character_id):
            character, session = await self._load(character_id)
            loaded = character
            if session.in_combat:
                raise InvalidAction("Finish the current fight before moving on")
            dungeon = self.library.dungeon(session.dungeon_key)
            self._check_equipment(character)

            if session.pending_event is not None:
                event = get_event(session.pending_event)
                if choice is None:
                    return RoomReport(
                        kind="event",
                        message=event.description,
                        session=session,
                        character=character,
                        event=event,
                    )
                return await self._resolve_event(character, session, dungeon, event, choice)

            rng = self._rng_factory()
            encounter = self.generator.generate(dungeon, session.floor, rng)

            if encounter.kind == "monster":
                session.current_monster = encounter.monster
                await self._commit(loaded, character, session)
                return RoomReport(
                    kind="monster",
                    message=encounter.summary,
                    session=session,
                    character=character,
                    monster=encounter.monster,
                )

            if encounter.kind == "treasure":
                if encounter.treasure_tag:
                    session.treasures_found.append(encounter.treasure_tag)
                progress, bonus = self._count_room(session, dungeon, rng)
                reward = (encounter.treasure or Reward()) + bonus
                character, levels = self._settle(character, reward)
                await self._commit(loaded, character, session)
                return RoomReport(
                    kind="treasure",
                    message=encounter.summary,
                    session=session,
                    character=character,
                    reward=reward,
                    progress=progress,
                    levels_gained=levels,
                )

            event = encounter.event
            assert event is not None
            if choice is None:
                session.pending_event = event.key
                await self._commit(loaded, character, session)
                return RoomReport(
                    kind="event",
                    message=event.description,
                    session=session,
                    character=character,
                    event=event,
                )
            return await self._resolve_event(character, session, dungeon, event, choice, rng=rng)

    async def resolve_combat_turn(self, character_id: str, action: CombatAction) -> CombatTurnReport:
        async with self.locks.hold(character_id):
            character, session = await self._load(character_id)
            loaded = character
            monster = session.current_monster
            if monster is None:
                raise InvalidAction("There is nothing to fight right now")
            dungeon = self.library.dungeon(session.dungeon_key)
            stats = derive_combat_stats(character, self.library.items)

            rng = self._rng_factory()
            turn = resolve_turn(character, stats, action, monster, self.library, rng=rng)
            character = self._apply_pools(character, stats, turn.character_health, turn.character_mana)
            monster.health = turn.monster_health

            if turn.monster_defeated:
                session.current_monster = None
                reward = victory_reward(monster, rng)
                progress, bonus = self._count_room(session, dungeon, rng)
                reward += bonus
                character, levels = self._settle(character, reward)
                await self._commit(loaded, character, session)
                log.info("%s defeated %s", character.character_id, monster.key)
                return CombatTurnReport(
                    outcome="victory",
                    turn=turn,
                    session=session,
                    character=character,
                    reward=reward,
                    progress=progress,
                    levels_gained=levels,
                )

            if turn.character_defeated:
                session.end("defeated")
                character = self._apply_pools(character, stats, DEFEAT_HEALTH, character.mana)
                await self._commit(loaded, character, session)
                log.info("%s was defeated by %s in %s", character.character_id, monster.key, dungeon.key)
                return CombatTurnReport(outcome="defeat", turn=turn, session=session, character=character)

            await self._commit(loaded, character, session)
            return CombatTurnReport(outcome="ongoing", turn=turn, session=session, character=character)

    async def flee(self, character_id: str) -> DungeonSession:
        async with self.locks.hold(character_id):
            character, session = await self._load(character_id)
            loaded = character
            stats = derive_combat_stats(character, self.library.items)
            session.end("fled")
            character = self._apply_pools(
                character, stats, character.health - FLEE_HEALTH_PENALTY, character.mana
            )
            await self._commit(loaded, character, session)
            log.info("%s fled from %s", character.character_id, session.dungeon_key)
            return session

    # -- helpers -----------------------------------------------------------
    async def _load(self, character_id: str) -> Tuple[Character, DungeonSession]:
        character = await self.characters.require(character_id)
        session = await self.sessions.load_active(character.character_id)
        if session is None:
            raise NoActiveSession(character_id)
        return character, session

    async def _commit(self, loaded: Character, character: Character, session: DungeonSession) -> None:
        """Write the character then the session.

        When the session write fails the character record is put back to
        ``loaded``, so a retried operation cannot credit the same room twice.
        """

        session.health = character.health
        session.mana = character.mana
        await self.characters.save(character)
        try:
            await self.sessions.save(session)
        except Exception:
            log.warning(
                "Session write failed for %s; restoring character record", character.character_id
            )
            await self.characters.save(loaded)
            raise

    def _check_equipment(self, character: Character) -> None:
        """Raise :class:`~rpg.errors.ItemNotFound` for an unknown equipped id."""

        derive_combat_stats(character, self.library.items)

    async def _resolve_event(
        self,
        character: Character,
        session: DungeonSession,
        dungeon: Dungeon,
        event: DungeonEvent,
        choice: str,
        *,
        rng: random.Random | None = None,
    ) -> RoomReport:
        loaded = character
        selected = resolve_event_choice(event, choice)
        stats = derive_combat_stats(character, self.library.items)
        message = f"You chose to {selected.text.lower()}."
        if selected.effect == "heal":
            character = self._apply_pools(character, stats, character.health + selected.value, character.mana)
            message = f"Restored {selected.value} health!"
        elif selected.effect == "mana":
            character = self._apply_pools(character, stats, character.health, character.mana + selected.value)
            message = f"Restored {selected.value} mana!"
        session.pending_event = None

        progress, bonus = self._count_room(session, dungeon, rng or self._rng_factory())
        character, levels = self._settle(character, bonus)
        await self._commit(loaded, character, session)
        return RoomReport(
            kind="event",
            message=message,
            session=session,
            character=character,
            event=event,
            choice=selected,
            reward=bonus if not bonus.is_empty else None,
            progress=progress,
            levels_gained=levels,
        )

    def _count_room(
        self, session: DungeonSession, dungeon: Dungeon, rng: random.Random
    ) -> Tuple[FloorProgress, Reward]:
        """Count a cleared room and return what clearing the floor earned."""

        progress = session.clear_room(dungeon.max_floors)
        reward = Reward()
        if progress.floor_cleared:
            reward += Reward(items=roll_floor_rewards(dungeon, progress.floor, rng))
            log.debug("%s cleared floor %s of %s", session.character_id, progress.floor, dungeon.key)
        if progress.dungeon_completed:
            reward += completion_reward(progress.floor)
            log.info("%s completed %s", session.character_id, dungeon.key)
        return progress, reward

    def _settle(self, character: Character, reward: Reward) -> Tuple[Character, int]:
        if reward.is_empty:
            return character, 0
        stats = derive_combat_stats(character, self.library.items)
        settlement = settle_character(
            character,
            reward,
            self.library,
            health_cap=stats.max_health,
            mana_cap=stats.max_mana,
        )
        return settlement.character, settlement.levels_gained

    @staticmethod
    def _apply_pools(character: Character, stats: CombatStats, health: int, mana: int) -> Character:
        return character.apply(
            CharacterUpdate(set={"health": health, "mana": mana}),
            health_cap=stats.max_health,
            mana_cap=stats.max_mana,
        )
