"""Dungeon sessions, encounters and rewards."""

from .generator import DUNGEON_EVENTS, Encounter, EncounterGenerator, resolve_event_choice
from .rewards import Reward, Settlement, settle, settle_character
from .runner import CombatTurnReport, DungeonRunner, RoomReport
from .state import DungeonSession, FloorProgress, SessionRepository, rooms_for_floor

__all__ = [
    "CombatTurnReport",
    "DUNGEON_EVENTS",
    "DungeonRunner",
    "DungeonSession",
    "Encounter",
    "EncounterGenerator",
    "FloorProgress",
    "Reward",
    "RoomReport",
    "SessionRepository",
    "Settlement",
    "resolve_event_choice",
    "rooms_for_floor",
    "settle",
    "settle_character",
]
