"""Structured content loading helpers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, MutableMapping, Sequence

import yaml

from .models import Dungeon, FloorReward, Item, Monster, SchemaError, Skill
from .registry import DungeonRegistry, ItemRegistry, MonsterRegistry, SkillRegistry

__all__ = ["DEFAULT_CONTENT_PATH", "ContentLibrary", "ContentLoadError"]

log = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".json", ".yaml", ".yml")
DEFAULT_CONTENT_PATH = Path(__file__).with_name("data")


class ContentLoadError(RuntimeError):
    """Raised when content could not be loaded from disk."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        if path is not None:
            message = f"{message} (source: {path})"
        super().__init__(message)
        self.path = path


@dataclass(frozen=True)
class ContentLibrary:
    """Read-only catalog bundling all loaded content registries.

    Built once at startup and handed to the components that need it; nothing
    mutates it afterwards.
    """

    base_path: Path
    monsters: MonsterRegistry
    items: ItemRegistry
    skills: SkillRegistry
    dungeons: DungeonRegistry

    @classmethod
    def load_from_path(cls, base_path: Path) -> "ContentLibrary":
        loader = _ContentLoader(base_path)
        return loader.load()

    @classmethod
    def load_default(cls) -> "ContentLibrary":
        return cls.load_from_path(DEFAULT_CONTENT_PATH)

    def monster(self, key: str) -> Monster:
        return self.monsters.get(key)

    def item(self, key: str) -> Item:
        return self.items.get(key)

    def skill(self, key: str) -> Skill:
        return self.skills.get(key)

    def dungeon(self, key: str) -> Dungeon:
        return self.dungeons.get(key)


class _ContentLoader:
    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path

    # -- public entrypoint -------------------------------------------------
    def load(self) -> ContentLibrary:
        monsters = self._load_simple("monsters", MonsterRegistry(), Monster.from_mapping)
        items = self._load_simple("items", ItemRegistry(), Item.from_mapping)
        skills = self._load_simple("skills", SkillRegistry(), Skill.from_mapping)
        for monster in monsters:
            for entry in monster.loot_table:
                if entry.item not in items:
                    raise ContentLoadError(
                        f"Unknown item '{entry.item}' in loot table of monster '{monster.key}'",
                        path=self.base_path / "monsters",
                    )
        dungeons = self._load_dungeons(monsters, items)
        log.debug(
            "Loaded %s monsters, %s items, %s skills and %s dungeons from %s",
            len(monsters),
            len(items),
            len(skills),
            len(dungeons),
            self.base_path,
        )
        return ContentLibrary(
            base_path=self.base_path,
            monsters=monsters,
            items=items,
            skills=skills,
            dungeons=dungeons,
        )

    # -- concrete loaders --------------------------------------------------
    def _load_simple(self, category: str, registry, factory):
        for file_path, (key, data) in self._iter_entries(category):
            try:
                entry = factory(key, data)
            except SchemaError as exc:
                raise ContentLoadError(str(exc), path=file_path) from exc
            try:
                registry.register(entry.key, entry)
            except ValueError as exc:
                raise ContentLoadError(str(exc), path=file_path) from exc
        return registry

    def _load_dungeons(self, monsters: MonsterRegistry, items: ItemRegistry) -> DungeonRegistry:
        registry = DungeonRegistry()
        for file_path, (key, data) in self._iter_entries("dungeons"):
            try:
                dungeon = self._build_dungeon(file_path, key, data, monsters, items)
            except SchemaError as exc:
                raise ContentLoadError(str(exc), path=file_path) from exc
            try:
                registry.register(dungeon.key, dungeon)
            except ValueError as exc:
                raise ContentLoadError(str(exc), path=file_path) from exc
        return registry

    # -- helpers -----------------------------------------------------------
    def _iter_entries(self, category: str) -> Iterable[tuple[Path, tuple[str, MutableMapping[str, object]]]]:
        path = self.base_path / category
        if not path.exists():
            return []
        files = sorted(
            file_path
            for file_path in path.iterdir()
            if file_path.is_file() and file_path.suffix.lower() in SUPPORTED_EXTENSIONS
        )
        entries: list[tuple[Path, tuple[str, MutableMapping[str, object]]]] = []
        for file_path in files:
            raw = self._load_structured(file_path)
            if isinstance(raw, MutableMapping):
                mapping = dict(raw)
                key = self._extract_key(file_path, mapping)
                entries.append((file_path, (key, mapping)))
            elif isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
                for index, element in enumerate(raw):
                    if not isinstance(element, MutableMapping):
                        raise ContentLoadError(
                            f"Expected mapping entries in {category} definition",
                            path=file_path,
                        )
                    mapping = dict(element)
                    key = self._extract_key(file_path, mapping, suffix=str(index))
                    entries.append((file_path, (key, mapping)))
            elif raw is None:
                continue
            else:
                raise ContentLoadError(
                    f"Unsupported structure in {category} content: expected mapping or list of mappings",
                    path=file_path,
                )
        return entries

    def _load_structured(self, file_path: Path) -> object:
        try:
            text = file_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ContentLoadError("Unable to read content file", path=file_path) from exc
        suffix = file_path.suffix.lower()
        try:
            if suffix == ".json":
                return json.loads(text)
            if suffix in {".yaml", ".yml"}:
                return yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ContentLoadError("Failed to parse structured content", path=file_path) from exc
        raise ContentLoadError(
            f"Unsupported file extension '{file_path.suffix}' for content file",
            path=file_path,
        )

    def _extract_key(
        self,
        file_path: Path,
        mapping: Mapping[str, object],
        *,
        suffix: str | None = None,
    ) -> str:
        for field in ("id", "key", "slug"):
            value = mapping.get(field)
            if isinstance(value, str) and value.strip():
                return value
        stem = file_path.stem
        if suffix is not None:
            stem = f"{stem}-{suffix}"
        return stem

    def _build_dungeon(
        self,
        file_path: Path,
        key: str,
        data: MutableMapping[str, object],
        monsters: MonsterRegistry,
        items: ItemRegistry,
    ) -> Dungeon:
        name = str(data.get("name") or key)
        try:
            min_level = int(data.get("min_level", 1))  # type: ignore[arg-type]
            max_floors = int(data.get("max_floors", 1))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ContentLoadError("min_level and max_floors must be integers", path=file_path) from exc
        if min_level < 1 or max_floors < 1:
            raise ContentLoadError("min_level and max_floors must be at least 1", path=file_path)
        monster_refs = self._resolve_monsters(file_path, data.get("monsters", []), monsters)
        if not monster_refs:
            raise ContentLoadError(f"Dungeon '{name}' must list at least one monster", path=file_path)
        rewards_raw = data.get("rewards", []) or []
        if not isinstance(rewards_raw, Sequence) or isinstance(rewards_raw, (str, bytes)):
            raise ContentLoadError("rewards must be a sequence", path=file_path)
        rewards = tuple(FloorReward.from_mapping(entry) for entry in rewards_raw)  # type: ignore[arg-type]
        for reward in rewards:
            if reward.item not in items:
                raise ContentLoadError(
                    f"Unknown item '{reward.item}' referenced in dungeon rewards",
                    path=file_path,
                )
        return Dungeon(
            key=str(key).lower(),
            name=name,
            min_level=min_level,
            max_floors=max_floors,
            monsters=monster_refs,
            rewards=rewards,
            description=str(data.get("description", "")),
        )

    def _resolve_monsters(
        self,
        file_path: Path,
        raw: object,
        registry: MonsterRegistry,
    ) -> tuple[Monster, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
            raise ContentLoadError("Expected a sequence of monster references", path=file_path)
        resolved: list[Monster] = []
        for element in raw:
            if isinstance(element, str):
                identifier = element
            elif isinstance(element, Mapping):
                identifier = element.get("id") or element.get("key") or element.get("name")
            else:
                raise ContentLoadError("Invalid monster reference entry", path=file_path)
            if not identifier:
                raise ContentLoadError("Missing identifier for monster reference", path=file_path)
            try:
                resolved.append(registry.get(str(identifier)))
            except KeyError as exc:
                raise ContentLoadError(
                    f"Unknown monster '{identifier}' referenced in dungeon",
                    path=file_path,
                ) from exc
        return tuple(resolved)
