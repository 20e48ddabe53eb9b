"""
Database models for the stash manager.

Uses SQLModel (SQLAlchemy + Pydantic) for type-safe database access.
All datetimes are timezone-aware UTC, in memory and when read back.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field

from stash_manager.d2.models import CharacterData

logger = logging.getLogger(__name__)

# saved_at used when last-played cannot be converted
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def timestamp_to_datetime(seconds: int) -> datetime:
    """Convert epoch seconds to a UTC datetime, falling back to EPOCH."""
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.debug(f"Timestamp {seconds} out of range, using epoch")
        return EPOCH


class UTCDateTime(TypeDecorator):
    """
    DateTime column that always hands back aware UTC values.

    SQLite keeps no offset, so values are normalized to UTC on the way in
    and tagged as UTC on the way out. Naive values are taken as UTC.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# =============================================================================
# CHARACTER MODEL
# =============================================================================

class Character(SQLModel, table=True):
    """
    Persisted character summary.

    One row per character name; the UNIQUE constraint on ``name`` is what
    keeps concurrent imports of the same character from creating duplicates.
    """
    __tablename__ = "characters"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Summary mirrored from the save header
    name: str = Field(unique=True, index=True)
    level: int = Field(default=1, ge=0, le=99)
    character_class: str
    is_expansion: bool = Field(default=False)
    has_died: bool = Field(default=False)
    is_hardcore: bool = Field(default=False)
    is_ladder: bool = Field(default=False)
    saved_at: datetime = Field(default=EPOCH, sa_column=Column(UTCDateTime, nullable=False))

    # Metadata
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(UTCDateTime, nullable=False))


class CharacterCreate(SQLModel):
    """Model for creating a new character."""
    name: str
    level: int
    character_class: str
    is_expansion: bool = False
    has_died: bool = False
    is_hardcore: bool = False
    is_ladder: bool = False
    saved_at: datetime = EPOCH

    @classmethod
    def from_character_data(cls, character_data: CharacterData) -> "CharacterCreate":
        """Build the persisted summary of a decoded character."""
        header = character_data.header
        status = header.status
        return cls(
            name=header.name,
            level=header.level,
            character_class=header.character_class,
            is_expansion=status.expansion,
            has_died=status.died,
            is_hardcore=status.hardcore,
            is_ladder=status.ladder,
            saved_at=timestamp_to_datetime(header.last_played),
        )
