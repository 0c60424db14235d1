"""Concurrency-safe persistence helpers for characters."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from .characters import Character, CharacterUpdate
from .content.registry import ItemRegistry
from .errors import CharacterNotFound

__all__ = ["CharacterRepository", "JsonDocument"]

log = logging.getLogger(__name__)


class JsonDocument:
    """A JSON object on disk cached in memory.

    The cache is reloaded whenever the file's mtime/size serial changes, so
    several stores pointed at the same path observe each other's writes.
    Writes go to a temporary file that then replaces the target. Callers are
    responsible for serialising access.
    """

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = storage_path
        self._cache: Dict[str, object] = {}
        self._loaded = False
        self._storage_serial: Optional[tuple[int, int]] = None

    @property
    def path(self) -> Path:
        return self._storage_path

    async def load(self) -> Dict[str, object]:
        current_serial = await self._current_storage_serial()
        if self._loaded and self._storage_serial == current_serial:
            return self._cache
        self._cache = {}
        if current_serial is not None:
            data = await asyncio.to_thread(self._storage_path.read_text, encoding="utf-8")
            if data.strip():
                try:
                    raw = json.loads(data)
                except json.JSONDecodeError:
                    log.warning("Ignoring corrupt storage file %s", self._storage_path)
                else:
                    if isinstance(raw, dict):
                        self._cache = raw
                    else:
                        log.warning("Ignoring non-object storage file %s", self._storage_path)
        self._loaded = True
        self._storage_serial = current_serial
        return self._cache

    async def persist(self) -> None:
        text = json.dumps(self._cache, indent=2, sort_keys=True)
        try:
            await asyncio.to_thread(self._write_atomic, text)
        except OSError:
            # The cache now holds unsaved changes; reread the file next time.
            self._loaded = False
            raise
        self._storage_serial = await self._current_storage_serial()
        self._loaded = True

    def _write_atomic(self, text: str) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self._storage_path.with_name(f".{self._storage_path.name}.tmp")
        temporary.write_text(text, encoding="utf-8")
        os.replace(temporary, self._storage_path)

    async def _current_storage_serial(self) -> Optional[tuple[int, int]]:
        if not self._storage_path.exists():
            return None
        stat_result = await asyncio.to_thread(self._storage_path.stat)
        mtime_ns = getattr(stat_result, "st_mtime_ns", None) or int(
            stat_result.st_mtime * 1_000_000_000
        )
        return (mtime_ns, stat_result.st_size)


class CharacterRepository:
    """Store characters keyed by character id, backed by disk."""

    def __init__(self, storage_path: Path) -> None:
        self._document = JsonDocument(storage_path)
        self._lock = asyncio.Lock()

    async def get(self, character_id: str) -> Optional[Character]:
        async with self._lock:
            cache = await self._document.load()
            raw = cache.get(str(character_id))
            return Character.from_dict(raw) if isinstance(raw, dict) else None

    async def require(self, character_id: str) -> Character:
        character = await self.get(character_id)
        if character is None:
            raise CharacterNotFound(character_id)
        return character

    async def exists(self, character_id: str) -> bool:
        async with self._lock:
            cache = await self._document.load()
            return str(character_id) in cache

    async def save(self, character: Character) -> None:
        async with self._lock:
            cache = await self._document.load()
            cache[character.character_id] = character.to_dict()
            await self._document.persist()

    async def update(
        self,
        character_id: str,
        update: CharacterUpdate,
        *,
        items: Optional[ItemRegistry] = None,
        health_cap: Optional[int] = None,
        mana_cap: Optional[int] = None,
    ) -> Character:
        """Apply a partial update (absolute sets and increments) and persist it.

        Pass the item catalog as ``items`` so health and mana clamp to the
        equipment-derived maximum instead of the base one.
        """

        async with self._lock:
            cache = await self._document.load()
            raw = cache.get(str(character_id))
            if not isinstance(raw, dict):
                raise CharacterNotFound(character_id)
            character = Character.from_dict(raw).apply(
                update, health_cap=health_cap, mana_cap=mana_cap, items=items
            )
            cache[character.character_id] = character.to_dict()
            await self._document.persist()
            return character

    async def delete(self, character_id: str) -> None:
        async with self._lock:
            cache = await self._document.load()
            if str(character_id) in cache:
                del cache[str(character_id)]
                await self._document.persist()

    async def list_characters(self) -> Dict[str, Character]:
        """Return every stored character keyed by id, skipping malformed rows."""

        async with self._lock:
            cache = await self._document.load()
            characters: Dict[str, Character] = {}
            for character_id, payload in cache.items():
                if not isinstance(payload, dict):
                    continue
                try:
                    characters[character_id] = Character.from_dict(payload)
                except (KeyError, TypeError, ValueError):
                    log.warning("Skipping malformed character record %s", character_id)
            return characters
