"""
Character save header decoder.

Reads the fixed-offset header of a .d2s character save. All integers are
little-endian and all offsets are absolute from the start of the file.
The layout is chosen from the version field that follows the magic
signature; saves written by legacy clients are rejected.
"""
import logging
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from stash_manager.core.errors import (
    IncompleteSaveError,
    InvalidFormatError,
    MalformedSaveError,
    UnsupportedVersionError,
)
from stash_manager.d2.models import CharacterClass, CharacterDataHeader, CharacterStatus
from stash_manager.d2.save_file import MAGIC_SIGNATURE, RawSave, SaveKind

logger = logging.getLogger(__name__)

VERSION_OFFSET = 0x04
# Versions up to and including this one use the pre-Resurrected layout.
LEGACY_VERSION_THRESHOLD = 0x61

NAME_FIELD_SIZE = 16
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 15
SKILLS_SIZE = 40
MAX_LEVEL = 99


@dataclass(frozen=True)
class HeaderLayout:
    """Absolute offsets of the header fields for one range of versions."""
    name: str
    min_version: int
    status: int
    progression: int
    active_arms: int
    character_class: int
    level: int
    created_at: int
    last_played_at: int
    assigned_skills: int
    character_name: int

    @property
    def required_size(self) -> int:
        """Smallest buffer holding every field of this layout."""
        return max(
            self.assigned_skills + SKILLS_SIZE,
            self.character_name + NAME_FIELD_SIZE,
        )


RESURRECTED_LAYOUT = HeaderLayout(
    name="resurrected",
    min_version=LEGACY_VERSION_THRESHOLD + 1,
    status=0x24,
    progression=0x25,
    active_arms=0x26,
    character_class=0x28,
    # 0x29..0x2B padding
    level=0x2B,
    created_at=0x2C,
    last_played_at=0x30,
    # 0x34..0x38 padding
    assigned_skills=0x38,
    character_name=0x10B,
)

# Newest first.
SUPPORTED_LAYOUTS: Tuple[HeaderLayout, ...] = (RESURRECTED_LAYOUT,)


@dataclass(frozen=True)
class SaveHeader:
    """Header fields decoded from a character save."""
    version: int
    name: str
    status_byte: int
    character_class: CharacterClass
    level: int
    created_at: int
    last_played_at: int
    progression: int = 0
    active_arms: int = 0

    @property
    def status(self) -> CharacterStatus:
        return CharacterStatus.from_byte(self.status_byte)

    def to_character_header(self) -> CharacterDataHeader:
        """Project onto the interchange header shape."""
        return CharacterDataHeader(
            identifier=self.name,
            name=self.name,
            level=self.level,
            character_class=self.character_class.display_name,
            status=self.status,
            created=self.created_at,
            last_played=self.last_played_at,
        )


def read_bytes(data: bytes, offset: int, size: int) -> bytes:
    """Slice ``size`` bytes at ``offset`` or raise IncompleteSaveError."""
    if offset + size > len(data):
        raise IncompleteSaveError(offset, size, len(data))
    return data[offset:offset + size]


def read_u8(data: bytes, offset: int) -> int:
    return read_bytes(data, offset, 1)[0]


def read_u16(data: bytes, offset: int) -> int:
    return struct.unpack("<H", read_bytes(data, offset, 2))[0]


def read_u32(data: bytes, offset: int) -> int:
    return struct.unpack("<I", read_bytes(data, offset, 4))[0]


def select_layout(version: int) -> HeaderLayout:
    """Pick the header layout for a save version."""
    for layout in SUPPORTED_LAYOUTS:
        if version >= layout.min_version:
            return layout
    raise UnsupportedVersionError(version)


def parse_character_name(field: bytes) -> str:
    """
    Extract the name from a fixed 16-byte name field.

    The name is the run of non-null bytes at the start of the field, at
    most 15 long. Runs shorter than two bytes or holding control bytes
    are rejected.
    """
    run = field[:NAME_MAX_LENGTH].split(b"\x00", 1)[0]
    if len(run) < NAME_MIN_LENGTH:
        raise MalformedSaveError(
            "name",
            f"Character name must be {NAME_MIN_LENGTH}-{NAME_MAX_LENGTH} bytes, found {len(run)}",
        )
    if any(byte < 0x20 or byte == 0x7F for byte in run):
        raise MalformedSaveError("name", f"Character name contains control bytes: {run!r}")
    try:
        return run.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedSaveError("name", f"Character name is not valid UTF-8: {e}") from e


def parse_class_code(code: int, offset: Optional[int] = None) -> CharacterClass:
    try:
        return CharacterClass(code)
    except ValueError:
        raise MalformedSaveError(
            "class", f"Invalid character class code: {code}", offset=offset
        ) from None


def parse_character(data: bytes) -> SaveHeader:
    """
    Decode the header of a character save buffer.

    Args:
        data: Full contents of a .d2s file

    Returns:
        SaveHeader with the raw status byte

    Raises:
        InvalidFormatError: magic signature mismatch
        UnsupportedVersionError: legacy save version
        IncompleteSaveError: buffer ends before a header field
        MalformedSaveError: bad class code or name
    """
    magic = read_bytes(data, 0, len(MAGIC_SIGNATURE))
    if magic != MAGIC_SIGNATURE:
        raise InvalidFormatError(
            "Character save signature does not match",
            details={"signature": magic.hex()},
        )

    version = read_u32(data, VERSION_OFFSET)
    logger.debug(f"Save version: {version}")
    layout = select_layout(version)

    # Reject truncated buffers before decoding any field.
    if len(data) < layout.required_size:
        raise IncompleteSaveError(0, layout.required_size, len(data))

    status_byte = read_u8(data, layout.status)
    progression = read_u8(data, layout.progression)
    active_arms = read_u16(data, layout.active_arms)
    character_class = parse_class_code(
        read_u8(data, layout.character_class), offset=layout.character_class
    )
    level = read_u8(data, layout.level)
    if level > MAX_LEVEL:
        raise MalformedSaveError("level", f"Character level out of range: {level}", offset=layout.level)
    created_at = read_u32(data, layout.created_at)
    last_played_at = read_u32(data, layout.last_played_at)
    name = parse_character_name(read_bytes(data, layout.character_name, NAME_FIELD_SIZE))

    return SaveHeader(
        version=version,
        name=name,
        status_byte=status_byte,
        character_class=character_class,
        level=level,
        created_at=created_at,
        last_played_at=last_played_at,
        progression=progression,
        active_arms=active_arms,
    )


def decode_save(save: RawSave) -> SaveHeader:
    """Decode a loaded character save."""
    if save.kind != SaveKind.CHARACTER:
        raise InvalidFormatError(
            f"Expected a character save, got {save.kind.value}",
            details={"kind": save.kind.value, "path": str(save.path)},
        )
    return parse_character(save.data)
