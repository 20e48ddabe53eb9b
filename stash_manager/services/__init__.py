"""Services for importing and inspecting characters."""
from stash_manager.services.import_service import (
    ImportResult,
    ImportStatus,
    import_character,
    import_character_message,
)
from stash_manager.services.save_service import inspect_save, inspect_save_bytes

__all__ = [
    "ImportResult",
    "ImportStatus",
    "import_character",
    "import_character_message",
    "inspect_save",
    "inspect_save_bytes",
]
