"""Database package for the stash manager."""
from stash_manager.database.engine import (
    get_engine,
    get_session,
    get_session_context,
    init_db,
    close_db,
)
from stash_manager.database.models import (
    Character,
    CharacterCreate,
)
from stash_manager.database.repositories import CharacterRepository

__all__ = [
    "get_engine",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
    "Character",
    "CharacterCreate",
    "CharacterRepository",
]
