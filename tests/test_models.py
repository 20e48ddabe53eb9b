"""Tests for the character export models."""
import copy
import itertools
import json

import pytest
from pydantic import ValidationError

from stash_manager.core.errors import CharacterDecodeError, ErrorCode
from stash_manager.d2.models import (
    CharacterClass,
    CharacterData,
    CharacterDataHeader,
    CharacterStatus,
    ItemData,
    ItemQuality,
    ItemRarity,
    MagicItem,
    NormalItem,
    RareItem,
    SetItem,
    SimpleItem,
    UniqueItem,
    socket_depth,
)


SET_ATTRIBUTES = [[{"id": 80, "name": "item_magicbonus", "values": [10]}]]


def _fields(exc_info) -> list:
    return [error["field"] for error in exc_info.value.details["errors"]]


class TestCharacterStatus:
    """Status byte packing."""

    def test_round_trip_all_combinations(self):
        for hardcore, died, expansion, ladder in itertools.product([False, True], repeat=4):
            status = CharacterStatus(hardcore=hardcore, died=died, expansion=expansion, ladder=ladder)
            assert CharacterStatus.from_byte(status.to_byte()) == status

    def test_bit_positions(self):
        assert CharacterStatus(hardcore=True, died=False, expansion=False, ladder=False).to_byte() == 0x04
        assert CharacterStatus(hardcore=False, died=True, expansion=False, ladder=False).to_byte() == 0x08
        assert CharacterStatus(hardcore=False, died=False, expansion=True, ladder=False).to_byte() == 0x20
        assert CharacterStatus(hardcore=False, died=False, expansion=False, ladder=True).to_byte() == 0x40

    def test_unused_bits_are_ignored(self):
        status = CharacterStatus.from_byte(0x20 | 0x01 | 0x02 | 0x10 | 0x80)
        assert status == CharacterStatus(hardcore=False, died=False, expansion=True, ladder=False)
        assert status.to_byte() == 0x20


class TestCharacterClass:

    def test_from_name_is_case_insensitive(self):
        assert CharacterClass.from_name("sorceress") == CharacterClass.SORCERESS
        assert CharacterClass.from_name("Assassin") == CharacterClass.ASSASSIN

    def test_unknown_name_fails(self):
        with pytest.raises(ValueError):
            CharacterClass.from_name("Warlock")

    def test_display_names(self):
        assert [c.display_name for c in CharacterClass] == [
            "Amazon", "Sorceress", "Necromancer", "Paladin", "Barbarian", "Druid", "Assassin",
        ]


class TestCharacterData:
    """Deserializing a full export."""

    def test_deserialize_character(self, character_json):
        character = CharacterData.from_json_str(character_json)

        assert character.header.name == "Alina"
        assert character.header.character_class == "Sorceress"
        assert character.header.level == 81
        assert character.header.status.expansion is True
        assert character.attributes["strength"] == 156
        assert len(character.items) == 6
        assert character.corpse_items == []
        assert len(character.merc_items) == 1
        assert len(character.all_items()) == 7

    def test_unknown_fields_are_ignored(self, character_dict):
        character_dict["header"]["title"] = "Countess"
        character_dict["skills"] = [{"id": 36, "points": 20}]
        character = CharacterData.from_json_str(json.dumps(character_dict))
        assert character.header.name == "Alina"

    def test_missing_header_fails(self, character_dict):
        del character_dict["header"]
        with pytest.raises(CharacterDecodeError) as exc_info:
            CharacterData.from_json_str(json.dumps(character_dict))

        assert exc_info.value.code == ErrorCode.CHARACTER_DECODE_FAILED
        assert "header" in _fields(exc_info)
        assert "header" in exc_info.value.message

    @pytest.mark.parametrize("key", ["attributes", "items", "corpse_items", "merc_items"])
    def test_missing_top_level_field_fails(self, character_dict, key):
        del character_dict[key]
        with pytest.raises(CharacterDecodeError) as exc_info:
            CharacterData.from_json_str(json.dumps(character_dict))
        assert key in _fields(exc_info)

    def test_nested_error_path(self, character_dict):
        del character_dict["items"][2]["inv_file"]
        with pytest.raises(CharacterDecodeError) as exc_info:
            CharacterData.from_json_str(json.dumps(character_dict))
        assert "items -> 2 -> inv_file" in _fields(exc_info)

    def test_wrong_field_type_fails(self, character_dict):
        character_dict["header"]["level"] = "eighty-one"
        with pytest.raises(CharacterDecodeError) as exc_info:
            CharacterData.from_json_str(json.dumps(character_dict))
        assert "header -> level" in _fields(exc_info)

    @pytest.mark.parametrize("section,key,value,path", [
        ("header", "level", "81", "header -> level"),
        ("header", "level", 81.0, "header -> level"),
        ("header", "created", "1650000000", "header -> created"),
        ("status", "hardcore", "yes", "header -> status -> hardcore"),
        ("status", "expansion", 1, "header -> status -> expansion"),
        ("attributes", "strength", "156", "attributes -> strength"),
        ("item", "identified", True, "items -> 0 -> identified"),
        ("item", "version", 101, "items -> 0 -> version"),
    ])
    def test_wrong_json_type_is_not_coerced(self, character_dict, section, key, value, path):
        target = {
            "header": character_dict["header"],
            "status": character_dict["header"]["status"],
            "attributes": character_dict["attributes"],
            "item": character_dict["items"][0],
        }[section]
        target[key] = value
        with pytest.raises(CharacterDecodeError) as exc_info:
            CharacterData.from_json_str(json.dumps(character_dict))
        assert path in _fields(exc_info)

    def test_malformed_json_fails(self):
        with pytest.raises(CharacterDecodeError):
            CharacterData.from_json_str("{\"header\": ")

    def test_negative_attribute_fails(self, character_dict):
        character_dict["attributes"]["gold"] = -1
        with pytest.raises(CharacterDecodeError) as exc_info:
            CharacterData.from_json_str(json.dumps(character_dict))
        assert "attributes -> gold" in _fields(exc_info)

    def test_error_serializes(self, character_dict):
        del character_dict["header"]
        with pytest.raises(CharacterDecodeError) as exc_info:
            CharacterData.from_json_str(json.dumps(character_dict))
        payload = exc_info.value.to_dict()
        assert payload["error"]["code"] == "CHARACTER_DECODE_FAILED"
        assert payload["error"]["details"]["errors"][0]["field"] == "header"


class TestCharacterDataHeader:

    @pytest.fixture
    def header(self, character_dict):
        return character_dict["header"]

    def test_class_name_is_normalized(self, header):
        header["class"] = "sorceress"
        assert CharacterDataHeader.model_validate(header).character_class == "Sorceress"

    def test_class_code(self, header):
        assert CharacterDataHeader.model_validate(header).class_code == CharacterClass.SORCERESS

    def test_unknown_class_fails(self, header):
        header["class"] = "Monk"
        with pytest.raises(ValidationError):
            CharacterDataHeader.model_validate(header)

    @pytest.mark.parametrize("level", [-1, 100])
    def test_level_out_of_range(self, header, level):
        header["level"] = level
        with pytest.raises(ValidationError):
            CharacterDataHeader.model_validate(header)

    def test_name_too_long(self, header):
        header["name"] = "A" * 16
        with pytest.raises(ValidationError):
            CharacterDataHeader.model_validate(header)

    def test_name_limit_counts_bytes(self, header):
        """Fifteen two-byte characters do not fit the save's name field."""
        header["name"] = "Ä" * 15
        with pytest.raises(ValidationError, match="15 bytes"):
            CharacterDataHeader.model_validate(header)

    def test_multibyte_name_within_limit(self, header):
        header["name"] = "Äline"
        assert CharacterDataHeader.model_validate(header).name == "Äline"

    def test_empty_name(self, header):
        header["name"] = ""
        with pytest.raises(ValidationError):
            CharacterDataHeader.model_validate(header)


class TestItemQualityFields:
    """Quality-dependent optional groups."""

    def test_set_item_without_magic_affixes(self, make_item):
        """A set item needs its set bonuses; magic prefix/suffix may be absent."""
        item = ItemData.model_validate(make_item(
            ItemRarity.SET, set_id=63, set_attributes=SET_ATTRIBUTES,
        ))
        assert item.quality == ItemRarity.SET
        assert item.magic_prefix is None
        assert item.magic_suffix is None
        assert len(item.set_attributes) == 1
        assert item.set_attributes[0][0].values == [10]

    def test_set_item_requires_set_attributes(self, make_item):
        with pytest.raises(ValidationError, match="set_attributes"):
            ItemData.model_validate(make_item(ItemRarity.SET, set_id=63))

    def test_set_item_rejects_empty_set_attributes(self, make_item):
        with pytest.raises(ValidationError, match="set_attributes"):
            ItemData.model_validate(make_item(ItemRarity.SET, set_id=63, set_attributes=[]))

    def test_set_item_requires_set_id(self, make_item):
        with pytest.raises(ValidationError, match="set_id"):
            ItemData.model_validate(make_item(ItemRarity.SET, set_attributes=SET_ATTRIBUTES))

    def test_set_error_path_in_character(self, character_dict):
        del character_dict["items"][1]["set_attributes"]
        with pytest.raises(CharacterDecodeError) as exc_info:
            CharacterData.from_json_str(json.dumps(character_dict))
        assert "items -> 1" in _fields(exc_info)
        assert "set_attributes" in exc_info.value.message

    def test_unique_requires_unique_id(self, make_item):
        with pytest.raises(ValidationError, match="unique_id"):
            ItemData.model_validate(make_item(ItemRarity.UNIQUE, unique_name="Nagelring"))

    @pytest.mark.parametrize("quality", [ItemRarity.RARE, ItemRarity.CRAFTED])
    def test_rare_requires_name(self, make_item, quality):
        with pytest.raises(ValidationError, match="rare_name"):
            ItemData.model_validate(make_item(quality))

    def test_runeword_requires_id(self, make_item):
        with pytest.raises(ValidationError, match="runeword_id"):
            ItemData.model_validate(make_item(ItemRarity.NORMAL, given_runeword=1))

    def test_non_simple_item_requires_quality(self, make_item):
        item = make_item(ItemRarity.NORMAL)
        del item["quality"]
        with pytest.raises(ValidationError, match="quality"):
            ItemData.model_validate(item)

    def test_simple_item_has_no_quality(self, simple_item):
        item = ItemData.model_validate(simple_item)
        assert item.quality is None
        assert item.rarity is None

    def test_magic_item_needs_no_affix_ids(self, make_item):
        """A magic item with neither affix recorded is still valid."""
        item = ItemData.model_validate(make_item(ItemRarity.MAGIC))
        assert item.magic_prefix is None

    @pytest.mark.parametrize("quality", [0, 9])
    def test_quality_out_of_range(self, make_item, quality):
        with pytest.raises(ValidationError):
            ItemData.model_validate(make_item(quality))

    @pytest.mark.parametrize("item_quality,expected", [
        (0, ItemQuality.NORMAL),
        (1, ItemQuality.EXCEPTIONAL),
        (2, ItemQuality.ELITE),
    ])
    def test_item_quality_tiers(self, make_item, item_quality, expected):
        item = ItemData.model_validate(make_item(ItemRarity.NORMAL, item_quality=item_quality))
        assert item.item_quality is expected

    def test_item_quality_out_of_range(self, make_item):
        with pytest.raises(ValidationError):
            ItemData.model_validate(make_item(ItemRarity.NORMAL, item_quality=3))

    def test_flags_are_bytes(self, simple_item):
        simple_item["ethereal"] = 2
        with pytest.raises(ValidationError):
            ItemData.model_validate(simple_item)

    def test_durability_and_quantity_are_optional(self, make_item):
        item = ItemData.model_validate(make_item(ItemRarity.NORMAL))
        assert item.max_durability is None
        assert item.current_durability is None
        assert item.quantity is None


class TestSocketedItems:
    """Recursive socketed items."""

    def test_runeword_sockets(self, character_json):
        sword = CharacterData.from_json_str(character_json).items[0]
        assert sword.runeword_name == "Spirit"
        assert [rune.type_name for rune in sword.socketed_items] == [
            "Tal Rune", "Thul Rune", "Ort Rune", "Amn Rune",
        ]
        assert socket_depth(sword) == 1

    def test_more_items_than_sockets_fails(self, make_item, simple_item):
        with pytest.raises(ValidationError, match="exceed"):
            ItemData.model_validate(make_item(
                ItemRarity.NORMAL, socketed=1, total_nr_of_sockets=1,
                socketed_items=[simple_item, copy.deepcopy(simple_item)],
            ))

    def test_nested_sockets_fail(self, make_item, simple_item):
        """A socketed item holding its own socketed items is rejected."""
        jewel = make_item(ItemRarity.MAGIC, socketed_items=[simple_item])
        with pytest.raises(ValidationError, match="cannot hold"):
            ItemData.model_validate(make_item(
                ItemRarity.NORMAL, socketed=1, total_nr_of_sockets=2, socketed_items=[jewel],
            ))

    def test_socket_depth_without_sockets(self, simple_item):
        assert socket_depth(ItemData.model_validate(simple_item)) == 0


class TestItemVariants:
    """Typed per-quality views."""

    @pytest.fixture
    def items(self, character_json):
        character = CharacterData.from_json_str(character_json)
        return [item.as_variant() for item in character.items + character.merc_items]

    def test_variant_kinds(self, items):
        assert [type(v) for v in items] == [
            NormalItem, SetItem, UniqueItem, MagicItem, RareItem, SimpleItem, NormalItem,
        ]
        assert [v.kind for v in items] == [
            "normal", "set", "unique", "magic", "rare", "simple", "normal",
        ]

    def test_runeword_variant(self, items):
        sword = items[0]
        assert sword.rarity == ItemRarity.NORMAL
        assert sword.runeword.name == "Spirit"
        assert len(sword.runeword.attributes) == 2
        assert all(isinstance(rune, SimpleItem) for rune in sword.socketed)
        assert sword.common.base_damage.maxdam == 15

    def test_set_variant(self, items):
        amulet = items[1]
        assert amulet.set_id == 63
        assert amulet.set_name == "Tal Rasha's Adjudication"
        assert len(amulet.set_attributes) == 1
        assert amulet.set_attributes[0][0].name == "item_magicbonus"

    def test_unique_variant(self, items):
        shako = items[2]
        assert shako.unique_name == "Harlequin Crest"
        assert shako.common.item_quality is ItemQuality.ELITE
        assert shako.common.total_sockets == 1
        assert shako.socketed == ()

    def test_magic_variant(self, items):
        charm = items[3]
        assert charm.prefix_id is None
        assert charm.suffix_name == "of Vita"

    def test_rare_variant(self, items):
        ring = items[4]
        assert ring.rarity == ItemRarity.RARE
        assert (ring.name, ring.name2) == ("Dread", "Loop")
        assert ring.magical_name_ids == (None, 605, None, 302, None, None)

    def test_common_fields(self, items):
        thresher = items[6].common
        assert thresher.ethereal is True
        assert thresher.personalized_name == "Alina"
        assert thresher.base_damage.twohandmaxdam == 141
        assert (thresher.reqstr, thresher.reqdex) == (152, 118)
        assert thresher.categories == ("pole", "mele", "weap")

    def test_crafted_is_rare_variant(self, make_item):
        variant = ItemData.model_validate(make_item(ItemRarity.CRAFTED, rare_name="Gore")).as_variant()
        assert isinstance(variant, RareItem)
        assert variant.rarity == ItemRarity.CRAFTED
