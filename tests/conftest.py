"""
D2 Stash Manager - Test Configuration and Fixtures
Shared test utilities and fixtures for pytest.
"""
import copy
import json
import struct
import sys
import os
from pathlib import Path
from typing import Any, Dict

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from stash_manager.database.engine import (  # noqa: E402
    create_db_engine,
    drop_all_tables,
    init_db,
    make_session_factory,
)

FIXTURES = Path(__file__).parent / "fixtures"

# Values written into the synthetic test.d2s
ALINA = {
    "name": b"Alina",
    "version": 99,
    "status": 0x20,  # expansion
    "progression": 0x0F,
    "active_arms": 0,
    "class_code": 1,  # Sorceress
    "level": 81,
    "created": 1650000000,
    "last_played": 1690000000,
    "size": 2912,
}


def build_d2s(**overrides) -> bytes:
    """Build a character save buffer with the header fields at their offsets."""
    fields = {**ALINA, **overrides}
    data = bytearray(fields["size"])
    data[0x00:0x04] = bytes([0x55, 0xAA, 0x55, 0xAA])
    struct.pack_into("<I", data, 0x04, fields["version"])
    data[0x24] = fields["status"]
    data[0x25] = fields["progression"]
    struct.pack_into("<H", data, 0x26, fields["active_arms"])
    data[0x28] = fields["class_code"]
    data[0x2B] = fields["level"]
    struct.pack_into("<I", data, 0x2C, fields["created"])
    struct.pack_into("<I", data, 0x30, fields["last_played"])
    name = fields["name"]
    data[0x10B:0x10B + len(name)] = name
    return bytes(data)


# ==================== Save File Fixtures ====================

@pytest.fixture
def d2s_bytes() -> bytes:
    """Header of a level 81 expansion Sorceress named Alina."""
    return build_d2s()


@pytest.fixture
def d2s_path(tmp_path, d2s_bytes) -> Path:
    """The same save written to test.d2s."""
    path = tmp_path / "test.d2s"
    path.write_bytes(d2s_bytes)
    return path


# ==================== Character Export Fixtures ====================

@pytest.fixture
def character_json() -> str:
    """Character export for Alina with one item of each quality."""
    return (FIXTURES / "test_character.json").read_text(encoding="utf-8")


@pytest.fixture
def character_dict(character_json) -> Dict[str, Any]:
    return json.loads(character_json)


@pytest.fixture
def simple_item() -> Dict[str, Any]:
    """A rune, the smallest valid item."""
    return {
        "identified": 1, "socketed": 0, "new": 0, "is_ear": 0, "starter_item": 0,
        "simple_item": 1, "ethereal": 0, "personalized": 0, "given_runeword": 0,
        "version": "101", "location_id": 0, "equipped_id": 0, "position_x": 0,
        "position_y": 0, "alt_position_id": 0, "type": "r30", "type_id": 4,
        "type_name": "Ber Rune", "nr_of_items_in_sockets": 0,
        "inv_width": 1, "inv_height": 1, "inv_file": "invrBer",
        "categories": ["rune", "socket", "misc", "any"],
    }


@pytest.fixture
def make_item(simple_item):
    """Factory for non-simple items of a given quality."""
    def _make(quality: int, **fields) -> Dict[str, Any]:
        item = copy.deepcopy(simple_item)
        item.update({
            "simple_item": 0,
            "type": "rin",
            "type_id": 5,
            "type_name": "Ring",
            "inv_file": "invrin",
            "categories": ["ring", "misc"],
            "quality": quality,
        })
        item.update(fields)
        return item
    return _make


# ==================== Database Fixtures ====================

@pytest.fixture
def engine():
    """In-memory SQLite database with all tables created."""
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    yield engine
    drop_all_tables(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()
