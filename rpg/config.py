"""Environment-driven settings and bootstrap helpers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .content import DEFAULT_CONTENT_PATH, ContentLibrary
from .dungeon.runner import DungeonRunner
from .dungeon.state import SessionRepository
from .repository import CharacterRepository

__all__ = ["Settings", "configure_logging", "create_runner", "load_settings"]

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
CHARACTERS_FILE = "characters.json"
SESSIONS_FILE = "sessions.json"


@dataclass(frozen=True)
class Settings:
    content_path: Path = DEFAULT_CONTENT_PATH
    data_path: Path = Path("data")
    log_level: str = "INFO"

    @property
    def characters_path(self) -> Path:
        return self.data_path / CHARACTERS_FILE

    @property
    def sessions_path(self) -> Path:
        return self.data_path / SESSIONS_FILE


def load_settings() -> Settings:
    """Read settings from ``.env`` and the process environment."""

    load_dotenv(find_dotenv(usecwd=True))
    content_path = os.getenv("RPG_CONTENT_PATH")
    data_path = os.getenv("RPG_DATA_PATH")
    log_level = os.getenv("RPG_LOG_LEVEL") or "INFO"
    if logging.getLevelName(log_level.upper()) == f"Level {log_level.upper()}":
        raise RuntimeError(f"RPG_LOG_LEVEL '{log_level}' is not a valid logging level.")
    return Settings(
        content_path=Path(content_path) if content_path else DEFAULT_CONTENT_PATH,
        data_path=Path(data_path) if data_path else Path("data"),
        log_level=log_level.upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def create_runner(settings: Settings | None = None) -> DungeonRunner:
    """Load the catalog and wire both stores into a :class:`DungeonRunner`."""

    settings = settings or load_settings()
    library = ContentLibrary.load_from_path(settings.content_path)
    logging.getLogger(__name__).info(
        "Loaded %s dungeons from %s", len(library.dungeons), settings.content_path
    )
    return DungeonRunner(
        library,
        CharacterRepository(settings.characters_path),
        SessionRepository(settings.sessions_path),
    )
