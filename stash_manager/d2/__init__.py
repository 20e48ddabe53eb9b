"""Save file formats: binary character saves and the JSON character export."""
from stash_manager.d2.models import (
    CharacterClass,
    CharacterData,
    CharacterDataHeader,
    CharacterStatus,
    ItemData,
    ItemQuality,
    ItemRarity,
    MagicProperty,
    WeaponDamage,
)
from stash_manager.d2.parser import SaveHeader, decode_save, parse_character
from stash_manager.d2.save_file import RawSave, SaveKind, detect_save_kind, load_save_from_path

__all__ = [
    "CharacterClass",
    "CharacterData",
    "CharacterDataHeader",
    "CharacterStatus",
    "ItemData",
    "ItemQuality",
    "ItemRarity",
    "MagicProperty",
    "WeaponDamage",
    "SaveHeader",
    "decode_save",
    "parse_character",
    "RawSave",
    "SaveKind",
    "detect_save_kind",
    "load_save_from_path",
]
