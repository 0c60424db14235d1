"""Dungeon session records and their persistent store."""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional, Tuple

from rpg.combat import MonsterInstance
from rpg.errors import SessionAlreadyActive
from rpg.repository import JsonDocument

__all__ = [
    "FIRST_FLOOR_ROOMS",
    "MAX_ROOMS_PER_FLOOR",
    "SESSION_SCHEMA_VERSION",
    "DungeonSession",
    "FloorProgress",
    "SessionRepository",
    "SessionStatus",
    "rooms_for_floor",
]

log = logging.getLogger(__name__)

SESSION_SCHEMA_VERSION = 1
FIRST_FLOOR_ROOMS = 5
MAX_ROOMS_PER_FLOOR = 7

SessionStatus = Literal["active", "completed", "fled", "defeated", "abandoned"]
SESSION_STATUSES: tuple[str, ...] = ("active", "completed", "fled", "defeated", "abandoned")


def rooms_for_floor(floor: int) -> int:
    """Rooms required to clear ``floor``: five on entry, then ``min(7, 3 + floor)``."""

    if floor <= 1:
        return FIRST_FLOOR_ROOMS
    return min(MAX_ROOMS_PER_FLOOR, 3 + floor)


@dataclass(frozen=True)
class FloorProgress:
    """What counting one cleared room did to the session."""

    floor: int
    floor_cleared: bool = False
    dungeon_completed: bool = False


@dataclass
class DungeonSession:
    """Mutable progress of one character's run through a dungeon."""

    session_id: str
    character_id: str
    dungeon_key: str
    health: int
    mana: int
    status: SessionStatus = "active"
    floor: int = 1
    rooms_cleared: int = 0
    total_rooms: int = FIRST_FLOOR_ROOMS
    treasures_found: List[str] = field(default_factory=list)
    current_monster: Optional[MonsterInstance] = None
    pending_event: Optional[str] = None
    version: int = SESSION_SCHEMA_VERSION

    @classmethod
    def begin(cls, character_id: str, dungeon_key: str, *, health: int, mana: int) -> "DungeonSession":
        return cls(
            session_id=secrets.token_hex(8),
            character_id=str(character_id),
            dungeon_key=dungeon_key,
            health=health,
            mana=mana,
        )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def in_combat(self) -> bool:
        return self.is_active and self.current_monster is not None

    def clear_room(self, max_floors: int) -> FloorProgress:
        """Count one cleared room and roll over to the next floor when done."""

        self.rooms_cleared += 1
        if self.rooms_cleared < self.total_rooms:
            return FloorProgress(floor=self.floor)
        cleared_floor = self.floor
        if cleared_floor >= max_floors:
            self.end("completed")
            return FloorProgress(floor=cleared_floor, floor_cleared=True, dungeon_completed=True)
        self.floor += 1
        self.rooms_cleared = 0
        self.total_rooms = rooms_for_floor(self.floor)
        return FloorProgress(floor=cleared_floor, floor_cleared=True)

    def end(self, status: SessionStatus) -> None:
        if status == "active":
            raise ValueError("Cannot end a session with status 'active'")
        self.status = status
        self.current_monster = None
        self.pending_event = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "version": self.version,
            "session_id": self.session_id,
            "character_id": self.character_id,
            "dungeon_key": self.dungeon_key,
            "status": self.status,
            "is_active": self.is_active,
            "floor": self.floor,
            "rooms_cleared": self.rooms_cleared,
            "total_rooms": self.total_rooms,
            "treasures_found": list(self.treasures_found),
            "health": self.health,
            "mana": self.mana,
        }
        if self.current_monster is not None:
            data["current_monster"] = self.current_monster.to_dict()
        if self.pending_event is not None:
            data["pending_event"] = self.pending_event
        return data

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "DungeonSession":
        version = int(raw.get("version", 1))  # type: ignore[arg-type]
        if version > SESSION_SCHEMA_VERSION:
            raise ValueError(f"Unsupported session schema version {version}")
        status = str(raw.get("status", "active"))
        if status not in SESSION_STATUSES:
            raise ValueError(f"Unknown session status '{status}'")
        monster_raw = raw.get("current_monster")
        pending_event = raw.get("pending_event")
        return cls(
            session_id=str(raw["session_id"]),
            character_id=str(raw["character_id"]),
            dungeon_key=str(raw["dungeon_key"]),
            health=int(raw.get("health", 0)),  # type: ignore[arg-type]
            mana=int(raw.get("mana", 0)),  # type: ignore[arg-type]
            status=status,  # type: ignore[arg-type]
            floor=int(raw.get("floor", 1)),  # type: ignore[arg-type]
            rooms_cleared=int(raw.get("rooms_cleared", 0)),  # type: ignore[arg-type]
            total_rooms=int(raw.get("total_rooms", FIRST_FLOOR_ROOMS)),  # type: ignore[arg-type]
            treasures_found=[str(tag) for tag in raw.get("treasures_found") or ()],  # type: ignore[union-attr]
            current_monster=(
                MonsterInstance.from_dict(monster_raw) if isinstance(monster_raw, Mapping) else None
            ),
            pending_event=str(pending_event) if isinstance(pending_event, str) else None,
            version=SESSION_SCHEMA_VERSION,
        )


class SessionRepository:
    """Concurrency-safe storage for dungeon sessions keyed by session id.

    The document keeps every session ever started under ``sessions`` and an
    ``active`` index mapping character ids to their one active session id,
    so lookups by character never scan the history.
    """

    def __init__(self, storage_path: Path) -> None:
        self._document = JsonDocument(storage_path)
        self._lock = asyncio.Lock()

    async def _tables(self) -> Tuple[Dict[str, object], Dict[str, str]]:
        cache = await self._document.load()
        cache.setdefault("version", SESSION_SCHEMA_VERSION)
        sessions = cache.get("sessions")
        if not isinstance(sessions, dict):
            sessions = {}
            cache["sessions"] = sessions
        active = cache.get("active")
        if not isinstance(active, dict):
            active = self._index_active(sessions)
            cache["active"] = active
        return sessions, active

    def _index_active(self, sessions: Mapping[str, object]) -> Dict[str, str]:
        # Documents written before the index existed are scanned once.
        active: Dict[str, str] = {}
        for session_id, payload in sessions.items():
            session = self._decode(session_id, payload)
            if session is not None and session.is_active:
                active[session.character_id] = session.session_id
        return active

    @staticmethod
    def _decode(session_id: str, payload: object) -> Optional[DungeonSession]:
        if not isinstance(payload, Mapping):
            return None
        try:
            return DungeonSession.from_dict(payload)
        except (KeyError, TypeError, ValueError):
            log.warning("Skipping malformed session record %s", session_id)
            return None

    def _find_active(
        self, sessions: Mapping[str, object], active: Mapping[str, str], character_id: str
    ) -> Optional[DungeonSession]:
        session_id = active.get(character_id)
        if session_id is None:
            return None
        session = self._decode(session_id, sessions.get(session_id))
        if session is None or not session.is_active or session.character_id != character_id:
            return None
        return session

    async def get(self, session_id: str) -> Optional[DungeonSession]:
        async with self._lock:
            sessions, _ = await self._tables()
            return self._decode(session_id, sessions.get(session_id))

    async def load_active(self, character_id: str) -> Optional[DungeonSession]:
        async with self._lock:
            sessions, active = await self._tables()
            return self._find_active(sessions, active, str(character_id))

    async def list_for_character(self, character_id: str) -> tuple[DungeonSession, ...]:
        async with self._lock:
            sessions, _ = await self._tables()
            found = []
            for session_id, payload in sessions.items():
                session = self._decode(session_id, payload)
                if session is not None and session.character_id == str(character_id):
                    found.append(session)
            return tuple(found)

    async def save(self, session: DungeonSession) -> None:
        """Persist ``session``.

        Raises :class:`~rpg.errors.SessionAlreadyActive` when this would leave
        two active sessions for the same character.
        """

        async with self._lock:
            sessions, active = await self._tables()
            if session.is_active:
                current = self._find_active(sessions, active, session.character_id)
                if current is not None and current.session_id != session.session_id:
                    raise SessionAlreadyActive(
                        f"Character '{session.character_id}' already has active session {current.session_id}"
                    )
                active[session.character_id] = session.session_id
            elif active.get(session.character_id) == session.session_id:
                del active[session.character_id]
            sessions[session.session_id] = session.to_dict()
            await self._document.persist()

    async def deactivate(self, session_id: str, *, status: SessionStatus = "abandoned") -> Optional[DungeonSession]:
        async with self._lock:
            sessions, active = await self._tables()
            session = self._decode(session_id, sessions.get(session_id))
            if session is None or not session.is_active:
                return session
            session.end(status)
            sessions[session_id] = session.to_dict()
            if active.get(session.character_id) == session_id:
                del active[session.character_id]
            await self._document.persist()
            return session
