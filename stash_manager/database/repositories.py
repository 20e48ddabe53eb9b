"""
Repository pattern for database access.

Provides clean abstractions for the character queries the import needs.
"""
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from stash_manager.database.models import Character, CharacterCreate


# =============================================================================
# CHARACTER REPOSITORY
# =============================================================================

class CharacterRepository:
    """Repository for Character operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: CharacterCreate) -> Character:
        """Insert a new character and assign its id."""
        character = Character(
            name=data.name,
            level=data.level,
            character_class=data.character_class,
            is_expansion=data.is_expansion,
            has_died=data.has_died,
            is_hardcore=data.is_hardcore,
            is_ladder=data.is_ladder,
            saved_at=data.saved_at,
        )
        self.session.add(character)
        self.session.flush()
        self.session.refresh(character)
        return character

    def get_by_id(self, character_id: int) -> Optional[Character]:
        """Get a character by ID."""
        result = self.session.exec(
            select(Character).where(Character.id == character_id)
        )
        return result.first()

    def get_by_name(self, name: str) -> Optional[Character]:
        """Get a character by exact name."""
        result = self.session.exec(
            select(Character).where(Character.name == name).limit(1)
        )
        return result.first()

    def get_all(self, limit: int = 100) -> List[Character]:
        """Get characters, most recently saved first."""
        result = self.session.exec(
            select(Character)
            .order_by(Character.saved_at.desc(), Character.id.desc())
            .limit(limit)
        )
        return list(result.all())

    def count_by_name(self, name: str) -> int:
        """Number of rows stored under ``name``."""
        result = self.session.exec(
            select(func.count()).select_from(Character).where(Character.name == name)
        )
        return result.one()
