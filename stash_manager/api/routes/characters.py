"""
Character API Routes

Imports character exports, inspects binary saves and lists stored
characters.
"""
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel
from sqlmodel import Session

from stash_manager.core.errors import CharacterDecodeError, CharacterNotFoundError
from stash_manager.database.dependencies import get_character_repo, get_db_session
from stash_manager.database.models import Character
from stash_manager.database.repositories import CharacterRepository
from stash_manager.services.import_service import import_character
from stash_manager.services.save_service import inspect_save_bytes

router = APIRouter()


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class CharacterResponse(BaseModel):
    """Stored character summary."""
    id: int
    name: str
    level: int
    character_class: str
    is_expansion: bool
    has_died: bool
    is_hardcore: bool
    is_ladder: bool
    saved_at: str
    created_at: str
    updated_at: str

    @classmethod
    def from_character(cls, character: Character) -> "CharacterResponse":
        return cls(
            id=character.id,
            name=character.name,
            level=character.level,
            character_class=character.character_class,
            is_expansion=character.is_expansion,
            has_died=character.has_died,
            is_hardcore=character.is_hardcore,
            is_ladder=character.is_ladder,
            saved_at=character.saved_at.isoformat(),
            created_at=character.created_at.isoformat(),
            updated_at=character.updated_at.isoformat(),
        )


class ImportResponse(BaseModel):
    """Outcome of a character import."""
    status: str
    message: str
    character: CharacterResponse


class StatusResponse(BaseModel):
    expansion: bool
    died: bool
    hardcore: bool
    ladder: bool


class SaveHeaderResponse(BaseModel):
    """Header decoded from a binary save."""
    version: int
    name: str
    character_class: str
    level: int
    status: StatusResponse
    created_at: int
    last_played_at: int


# =============================================================================
# ROUTES
# =============================================================================

@router.post("/import", response_model=ImportResponse)
def import_json(
    file: UploadFile = File(...),
    session: Session = Depends(get_db_session),
):
    """
    Import a character from its JSON export.

    A character whose name is already stored is returned as stored with
    status "Updated"; nothing about it is changed.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    if not file.filename.lower().endswith(".json"):
        raise HTTPException(status_code=400, detail="File must be a JSON character export")

    try:
        character_json = file.file.read().decode("utf-8")
    except UnicodeDecodeError:
        raise CharacterDecodeError("Character export is not valid UTF-8 text") from None

    result = import_character(session, character_json)

    return ImportResponse(
        status=result.status.value,
        message=result.message,
        character=CharacterResponse.from_character(result.character),
    )


@router.post("/inspect", response_model=SaveHeaderResponse)
def inspect_save_upload(file: UploadFile = File(...)):
    """Decode the header of an uploaded .d2s save without storing it."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    header = inspect_save_bytes(file.filename, file.file.read())
    status = header.status

    return SaveHeaderResponse(
        version=header.version,
        name=header.name,
        character_class=header.character_class.display_name,
        level=header.level,
        status=StatusResponse(**status.model_dump()),
        created_at=header.created_at,
        last_played_at=header.last_played_at,
    )


@router.get("", response_model=List[CharacterResponse])
def list_characters(
    limit: int = Query(100, ge=1, le=1000),
    char_repo: CharacterRepository = Depends(get_character_repo),
):
    """List stored characters, most recently played first."""
    return [CharacterResponse.from_character(c) for c in char_repo.get_all(limit=limit)]


@router.get("/{character_id}", response_model=CharacterResponse)
def get_character(
    character_id: int,
    char_repo: CharacterRepository = Depends(get_character_repo),
):
    """Get one stored character."""
    character = char_repo.get_by_id(character_id)
    if character is None:
        raise CharacterNotFoundError(character_id)
    return CharacterResponse.from_character(character)
