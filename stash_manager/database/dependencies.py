"""
FastAPI dependencies for database access.

Provides dependency injection for database repositories,
enabling clean separation of concerns and easy testing.
"""
from fastapi import Depends
from sqlmodel import Session

from stash_manager.database.engine import get_session
from stash_manager.database.repositories import CharacterRepository


def get_character_repo(
    session: Session = Depends(get_session)
) -> CharacterRepository:
    """Dependency for CharacterRepository."""
    return CharacterRepository(session)


def get_db_session(
    session: Session = Depends(get_session)
) -> Session:
    """Dependency for raw database session (when repository pattern not needed)."""
    return session
