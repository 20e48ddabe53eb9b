"""
Character Import Service

Turns a character export into a persisted character, at most once per
character name.

Lookup and insert run in the same session but are not one atomic step.
Two imports of the same new name can both miss the lookup; the UNIQUE
constraint on ``characters.name`` rejects the second insert, which then
rolls back and returns the row the first one created.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session

from stash_manager.core.errors import StashError, StorageError
from stash_manager.d2.models import CharacterData
from stash_manager.database.engine import get_session_context
from stash_manager.database.models import Character, CharacterCreate
from stash_manager.database.repositories import CharacterRepository

logger = logging.getLogger(__name__)


class ImportStatus(str, Enum):
    """
    Outcome of an import.

    UPDATED means a character with the same name already existed and was
    returned as stored. Its fields are not refreshed from the export.
    """
    CREATED = "Created"
    UPDATED = "Updated"


@dataclass
class ImportResult:
    character: Character
    status: ImportStatus

    @property
    def message(self) -> str:
        return f"{self.status.value} character '{self.character.name}'"


def import_character(session: Session, character_json: str) -> ImportResult:
    """
    Import a character export into storage.

    Args:
        session: Open database session; the caller commits
        character_json: Interchange JSON text

    Returns:
        ImportResult with the stored character and whether it was created

    Raises:
        CharacterDecodeError: the text is not a valid character export
        StorageError: the lookup or insert failed
    """
    character_data = CharacterData.from_json_str(character_json)
    new_character = CharacterCreate.from_character_data(character_data)
    logger.debug(f"Importing character {new_character.name!r} ({new_character.character_class}, level {new_character.level})")

    repo = CharacterRepository(session)
    try:
        existing = repo.get_by_name(new_character.name)
    except SQLAlchemyError as e:
        raise StorageError(f"Character lookup failed: {e}", operation="lookup") from e

    if existing is not None:
        logger.info(f"Character {existing.name!r} already stored as #{existing.id}")
        return ImportResult(character=existing, status=ImportStatus.UPDATED)

    try:
        character = repo.create(new_character)
    except IntegrityError:
        # Lost the race against a concurrent import of the same name
        session.rollback()
        logger.warning(f"Concurrent import of {new_character.name!r}, using the stored row")
        return _refetch(repo, new_character.name)
    except SQLAlchemyError as e:
        raise StorageError(f"Character insert failed: {e}", operation="insert") from e

    logger.info(f"Created character {character.name!r} as #{character.id}")
    return ImportResult(character=character, status=ImportStatus.CREATED)


def _refetch(repo: CharacterRepository, name: str) -> ImportResult:
    try:
        existing = repo.get_by_name(name)
    except SQLAlchemyError as e:
        raise StorageError(f"Character lookup failed: {e}", operation="lookup") from e
    if existing is None:
        raise StorageError(f"Character {name!r} violated a constraint but is not stored", operation="insert")
    return ImportResult(character=existing, status=ImportStatus.UPDATED)


def import_character_message(
    character_json: str,
    session_factory: Optional[sessionmaker] = None,
) -> str:
    """
    Run one import and describe the outcome.

    Holds a single session for the call and commits it on success. Errors
    are returned as their message rather than raised.
    """
    try:
        with get_session_context(session_factory) as session:
            result = import_character(session, character_json)
            message = result.message
    except StashError as e:
        logger.warning(f"Import failed: {e.code.value} - {e.message}")
        return e.message
    except SQLAlchemyError as e:
        # Raised by the commit in get_session_context
        logger.error(f"Import commit failed: {e}")
        return StorageError(f"Character import could not be saved: {e}").message

    return message
