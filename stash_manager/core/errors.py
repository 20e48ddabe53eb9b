"""
D2 Stash Manager - Custom Error Types
Structured exceptions for save decoding, import and storage errors.
"""
from typing import Dict, Any, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the stash manager."""
    # General errors
    UNKNOWN = "UNKNOWN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Save file errors
    SAVE_IO_ERROR = "SAVE_IO_ERROR"
    SAVE_INVALID_FORMAT = "SAVE_INVALID_FORMAT"
    SAVE_UNSUPPORTED_KIND = "SAVE_UNSUPPORTED_KIND"
    SAVE_UNSUPPORTED_VERSION = "SAVE_UNSUPPORTED_VERSION"
    SAVE_INCOMPLETE = "SAVE_INCOMPLETE"
    SAVE_MALFORMED = "SAVE_MALFORMED"

    # Character errors
    CHARACTER_NOT_FOUND = "CHARACTER_NOT_FOUND"
    CHARACTER_DECODE_FAILED = "CHARACTER_DECODE_FAILED"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"


class StashError(Exception):
    """
    Base exception for all stash manager errors.

    Provides structured error information with:
    - Error code for programmatic handling
    - Human-readable message
    - Additional context details
    - Recovery hints for the frontend
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.UNKNOWN,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
        recovery_hint: Optional[str] = None,
        http_status: int = 500
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON response."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "recoverable": self.recoverable,
                "recovery_hint": self.recovery_hint
            }
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# =============================================================================
# Save File Errors
# =============================================================================

class SaveFileError(StashError):
    """Errors raised while loading or decoding a binary save file."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.SAVE_INVALID_FORMAT,
        message: str = "Save file error",
        **kwargs
    ):
        super().__init__(code=code, message=message, http_status=400, **kwargs)


class SaveIOError(SaveFileError):
    """Raised when a save file cannot be opened or fully read."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code=ErrorCode.SAVE_IO_ERROR,
            message=f"Could not read save file: {reason}",
            details={"path": path},
            recovery_hint="Check that the file exists and is readable"
        )


class InvalidFormatError(SaveFileError):
    """Raised for bad extensions and magic signature mismatches."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.SAVE_INVALID_FORMAT, **kwargs):
        kwargs.setdefault("recovery_hint", "Select a .d2s character save or a .d2i shared stash")
        super().__init__(code=code, message=message, **kwargs)


class UnsupportedSaveKindError(InvalidFormatError):
    """Raised when a recognized save kind has no decoder yet."""

    def __init__(self, kind: str):
        super().__init__(
            message=f"Save file type is not supported: {kind}",
            code=ErrorCode.SAVE_UNSUPPORTED_KIND,
            details={"kind": kind},
        )


class UnsupportedVersionError(SaveFileError):
    """Raised when the save was written by a legacy game version."""

    def __init__(self, version: int):
        super().__init__(
            code=ErrorCode.SAVE_UNSUPPORTED_VERSION,
            message=f"Version {version} not supported",
            details={"version": version},
            recovery_hint="Open and save the character with a current game client"
        )


class SaveParseError(SaveFileError):
    """Structural decode failure of a save buffer."""


class IncompleteSaveError(SaveParseError):
    """Raised when a fixed-offset read runs past the end of the buffer."""

    def __init__(self, offset: int, size: int, available: int):
        super().__init__(
            code=ErrorCode.SAVE_INCOMPLETE,
            message=f"Incomplete save: needed {size} byte(s) at 0x{offset:X}, buffer has {available}",
            details={"offset": offset, "size": size, "available": available},
            recovery_hint="The file is truncated; re-copy it from the game's save folder"
        )


class MalformedSaveError(SaveParseError):
    """Raised when a field does not decode to a legal value."""

    def __init__(self, field: str, message: str, offset: Optional[int] = None):
        details: Dict[str, Any] = {"field": field}
        if offset is not None:
            details["offset"] = offset
        super().__init__(
            code=ErrorCode.SAVE_MALFORMED,
            message=message,
            details=details,
        )


# =============================================================================
# Character Errors
# =============================================================================

class CharacterDecodeError(StashError):
    """Raised when interchange text fails schema deserialization."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(
            code=ErrorCode.CHARACTER_DECODE_FAILED,
            message=message,
            details={"errors": errors or []},
            http_status=422,
            recovery_hint="Export the character again from the save viewer"
        )


class CharacterNotFoundError(StashError):
    """Raised when no stored character has the requested id."""

    def __init__(self, character_id: Optional[int] = None):
        details = {}
        if character_id is not None:
            details["character_id"] = character_id
        super().__init__(
            code=ErrorCode.CHARACTER_NOT_FOUND,
            message="Character not found",
            details=details,
            http_status=404,
            recovery_hint="Import the character from its JSON export"
        )


# =============================================================================
# Database Errors
# =============================================================================

class StorageError(StashError):
    """Raised when a lookup or insert fails at the persistence layer."""

    def __init__(self, message: str = "Database error", operation: Optional[str] = None):
        details = {}
        if operation:
            details["operation"] = operation
        super().__init__(
            code=ErrorCode.DATABASE_ERROR,
            message=message,
            details=details,
            http_status=500,
            recoverable=False,
            recovery_hint="Please try again later"
        )
