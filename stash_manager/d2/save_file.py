"""
Save file detection and loading.

A save is identified by its file extension and then checked against the
magic signature at the start of the file. Header fields are read at absolute
offsets, so the whole file is loaded into memory in one read.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Union

from stash_manager.core.errors import (
    InvalidFormatError,
    SaveIOError,
    UnsupportedSaveKindError,
)

logger = logging.getLogger(__name__)

MAGIC_SIGNATURE = bytes([0x55, 0xAA, 0x55, 0xAA])


class SaveKind(str, Enum):
    """Kinds of save files the game writes."""
    CHARACTER = "character"
    SHARED_STASH = "shared_stash"
    PLUGY_STASH = "plugy_stash"  # recognized, no decoder yet


EXTENSION_KINDS: Dict[str, SaveKind] = {
    "d2s": SaveKind.CHARACTER,
    "d2i": SaveKind.SHARED_STASH,
    "sss": SaveKind.PLUGY_STASH,
    "d2x": SaveKind.PLUGY_STASH,
}

# Kinds whose magic signature can be validated.
SIGNATURES: Dict[SaveKind, bytes] = {
    SaveKind.CHARACTER: MAGIC_SIGNATURE,
    SaveKind.SHARED_STASH: MAGIC_SIGNATURE,
}


@dataclass(frozen=True)
class RawSave:
    """A save file whose magic signature has been validated."""
    kind: SaveKind
    path: Path
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def detect_save_kind(path: Union[str, Path]) -> SaveKind:
    """
    Map a file extension to a SaveKind.

    Raises:
        InvalidFormatError: missing, non-UTF-8 or unrecognized extension
    """
    suffix = Path(path).suffix
    if not suffix:
        raise InvalidFormatError("Save file has no extension", details={"path": str(path)})

    extension = suffix[1:]
    try:
        extension.encode("utf-8")
    except UnicodeEncodeError:
        # os.fsdecode() maps undecodable bytes to lone surrogates
        raise InvalidFormatError(
            "Save file extension is not valid UTF-8", details={"path": str(path)}
        ) from None

    kind = EXTENSION_KINDS.get(extension.lower())
    if kind is None:
        raise InvalidFormatError(
            "Save file extension is not valid",
            details={"path": str(path), "extension": extension},
        )
    return kind


def validate_save_kind(kind: SaveKind, data: bytes) -> None:
    """
    Check the magic signature expected for ``kind``.

    Raises:
        UnsupportedSaveKindError: no signature is known for this kind
        InvalidFormatError: the buffer does not start with the signature
    """
    signature = SIGNATURES.get(kind)
    if signature is None:
        raise UnsupportedSaveKindError(kind.value)

    header = data[:len(signature)]
    if len(header) < len(signature):
        raise InvalidFormatError(
            "Save file is not the right type or is corrupted",
            details={"kind": kind.value, "size": len(data)},
        )
    if header != signature:
        raise InvalidFormatError(
            "Save file signature does not match",
            details={"kind": kind.value, "signature": header.hex()},
        )


def read_save_bytes(path: Path) -> bytes:
    """Read the whole file, wrapping OS failures in SaveIOError."""
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise SaveIOError(str(path), e.strerror or str(e)) from e


def load_save_from_path(path: Union[str, Path]) -> RawSave:
    """
    Detect, read and validate a save file.

    Args:
        path: Location of a .d2s or .d2i file

    Returns:
        RawSave holding the validated buffer
    """
    path = Path(path)
    kind = detect_save_kind(path)
    data = read_save_bytes(path)
    validate_save_kind(kind, data)

    logger.debug(f"Loaded {kind.value} save {path} ({len(data)} bytes)")
    return RawSave(kind=kind, path=path, data=data)
