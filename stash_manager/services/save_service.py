"""
Save Inspection Service

Loads a binary save from disk or from uploaded bytes and decodes its header.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from stash_manager.d2.parser import SaveHeader, decode_save
from stash_manager.d2.save_file import detect_save_kind, load_save_from_path

logger = logging.getLogger(__name__)


def inspect_save(path: Union[str, Path]) -> SaveHeader:
    """Load and decode the character save at ``path``."""
    save = load_save_from_path(path)
    header = decode_save(save)
    logger.info(f"Decoded {header.name!r} (level {header.level} {header.character_class.display_name}) from {save.path.name}")
    return header


def inspect_save_bytes(filename: str, data: bytes) -> SaveHeader:
    """
    Decode uploaded save content.

    The content is written to a temporary file carrying the upload's
    extension so it goes through the same detection and validation as a
    save read from disk. The file is removed afterwards.
    """
    # Fail on the extension before touching the filesystem
    detect_save_kind(filename)

    suffix = Path(filename).suffix
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        tmp.write(data)
        tmp_path = tmp.name

    try:
        return inspect_save(tmp_path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
