"""
Character interchange models.

Pydantic schema for the JSON export of a character: header, attributes and
the three item lists. Items keep the flat field layout of the export; the
quality-dependent groups are checked on validation and can be viewed as a
typed variant through ``ItemData.as_variant()``.
"""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Annotated, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from stash_manager.core.errors import CharacterDecodeError


U8 = Annotated[int, Field(ge=0, le=0xFF)]
U16 = Annotated[int, Field(ge=0, le=0xFFFF)]
U32 = Annotated[int, Field(ge=0, le=0xFFFFFFFF)]
I32 = Annotated[int, Field(ge=-0x80000000, le=0x7FFFFFFF)]
Flag = Annotated[int, Field(ge=0, le=1)]

# Socketed items (gems, runes, jewels) cannot hold further items.
MAX_SOCKET_DEPTH = 1


# =============================================================================
# CHARACTER
# =============================================================================

class CharacterClass(IntEnum):
    """Playable classes, valued by their save file code."""
    AMAZON = 0
    SORCERESS = 1
    NECROMANCER = 2
    PALADIN = 3
    BARBARIAN = 4
    DRUID = 5
    ASSASSIN = 6

    @property
    def display_name(self) -> str:
        return self.name.title()

    @classmethod
    def from_name(cls, name: str) -> "CharacterClass":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid character class: {name!r}") from None


STATUS_HARDCORE = 1 << 2
STATUS_DIED = 1 << 3
STATUS_EXPANSION = 1 << 5
STATUS_LADDER = 1 << 6


class CharacterStatus(BaseModel):
    """Character flags, packed into a single byte in the save file."""
    model_config = ConfigDict(frozen=True)

    expansion: bool
    died: bool
    hardcore: bool
    ladder: bool

    @classmethod
    def from_byte(cls, value: int) -> "CharacterStatus":
        """Unpack the status byte; bits without a meaning are ignored."""
        return cls(
            expansion=bool(value & STATUS_EXPANSION),
            died=bool(value & STATUS_DIED),
            hardcore=bool(value & STATUS_HARDCORE),
            ladder=bool(value & STATUS_LADDER),
        )

    def to_byte(self) -> int:
        value = 0
        if self.hardcore:
            value |= STATUS_HARDCORE
        if self.died:
            value |= STATUS_DIED
        if self.expansion:
            value |= STATUS_EXPANSION
        if self.ladder:
            value |= STATUS_LADDER
        return value


class CharacterDataHeader(BaseModel):
    """Identity and summary of a character."""
    model_config = ConfigDict(populate_by_name=True)

    identifier: str
    name: str = Field(min_length=1, max_length=15)
    level: int = Field(ge=0, le=99)
    character_class: str = Field(alias="class")
    status: CharacterStatus
    created: U32
    last_played: U32

    @field_validator("name")
    @classmethod
    def _fits_name_field(cls, value: str) -> str:
        # The save file holds at most 15 bytes of UTF-8
        if len(value.encode("utf-8")) > 15:
            raise ValueError("name must encode to at most 15 bytes")
        return value

    @field_validator("character_class")
    @classmethod
    def _known_class(cls, value: str) -> str:
        return CharacterClass.from_name(value).display_name

    @property
    def class_code(self) -> CharacterClass:
        return CharacterClass.from_name(self.character_class)


CharacterDataAttributes = Dict[str, U32]


# =============================================================================
# ITEMS
# =============================================================================

class ItemQuality(IntEnum):
    """Base item tier."""
    NORMAL = 0
    EXCEPTIONAL = 1
    ELITE = 2


class ItemRarity(IntEnum):
    """The save format's item quality field."""
    LOW = 1
    NORMAL = 2
    SUPERIOR = 3
    MAGIC = 4
    SET = 5
    RARE = 6
    UNIQUE = 7
    CRAFTED = 8


class WeaponDamage(BaseModel):
    mindam: Optional[U8] = None
    maxdam: Optional[U8] = None
    twohandmindam: Optional[U8] = None
    twohandmaxdam: Optional[U8] = None


class MagicProperty(BaseModel):
    """A single affix or modifier on an item."""
    id: U32
    name: str
    values: List[I32]
    description: Optional[str] = None
    visible: Optional[bool] = None
    op_value: Optional[U32] = None
    op_stats: Optional[List[str]] = None


class ItemData(BaseModel):
    """
    One item as exported by the save viewer.

    Which optional groups are present depends on ``simple_item``,
    ``quality`` and ``type``. A missing group means the item does not have
    it; only the groups the save format always writes for a given quality
    are required.
    """

    # Flags
    identified: Flag
    socketed: Flag
    new: Flag
    is_ear: Flag
    starter_item: Flag
    simple_item: Flag
    ethereal: Flag
    personalized: Flag
    personalized_name: Optional[str] = None
    given_runeword: Flag
    version: str

    # Placement
    location_id: U8
    equipped_id: U8
    position_x: U8
    position_y: U8
    alt_position_id: U8

    # Type
    type: str
    type_id: U8
    type_name: str
    quest_difficulty: Optional[U8] = None
    nr_of_items_in_sockets: U8

    # Extended data
    id: Optional[U32] = None
    level: Optional[U8] = None
    quality: Optional[ItemRarity] = None
    multiple_pictures: Optional[U8] = None
    picture_id: Optional[U8] = None
    class_specific: Optional[U8] = None
    low_quality_id: Optional[U8] = None
    timestamp: Optional[U8] = None
    defense_rating: Optional[U16] = None
    max_durability: Optional[U16] = None
    current_durability: Optional[U16] = None
    total_nr_of_sockets: Optional[U8] = None
    quantity: Optional[U16] = None

    # Magic
    magic_prefix: Optional[U16] = None
    magic_prefix_name: Optional[str] = None
    magic_suffix: Optional[U16] = None
    magic_suffix_name: Optional[str] = None

    # Runeword
    runeword_id: Optional[U16] = None
    runeword_name: Optional[str] = None
    runeword_attributes: Optional[List[MagicProperty]] = None

    # Set
    set_id: Optional[U16] = None
    set_name: Optional[str] = None
    set_list_count: Optional[U8] = None
    set_attributes: Optional[List[List[MagicProperty]]] = None
    set_attributes_num_req: Optional[U8] = None
    set_attributes_ids_req: Optional[U8] = None

    # Rare / crafted
    rare_name: Optional[str] = None
    rare_name2: Optional[str] = None
    magical_name_ids: Optional[List[Optional[U16]]] = None

    # Unique
    unique_id: Optional[U16] = None
    unique_name: Optional[str] = None

    magic_attributes: Optional[List[MagicProperty]] = None
    combined_magic_attributes: Optional[List[MagicProperty]] = None
    socketed_items: Optional[List["ItemData"]] = None
    base_damage: Optional[WeaponDamage] = None
    reqstr: Optional[U8] = None
    reqdex: Optional[U8] = None

    # Inventory graphics
    inv_width: U8
    inv_height: U8
    inv_file: str
    inv_transform: Optional[U8] = None
    transform_color: Optional[str] = None
    item_quality: Optional[ItemQuality] = None
    categories: List[str]
    file_index: Optional[U8] = None
    auto_affix_id: Optional[U8] = None
    rare_name_id: Optional[U8] = None
    rare_name_id2: Optional[U8] = None

    # Pre-rendered display text
    displayed_magic_attributes: Optional[List[MagicProperty]] = None
    displayed_runeword_attributes: Optional[List[MagicProperty]] = None
    displayed_combined_magic_attributes: Optional[List[MagicProperty]] = None

    @model_validator(mode="after")
    def _check_quality_fields(self) -> "ItemData":
        if self.simple_item:
            return self

        if self.quality is None:
            raise ValueError("non-simple items require a quality")
        if self.quality == ItemRarity.SET:
            if self.set_id is None:
                raise ValueError("set items require set_id")
            if not self.set_attributes:
                raise ValueError("set items require a non-empty set_attributes list")
        elif self.quality == ItemRarity.UNIQUE and self.unique_id is None:
            raise ValueError("unique items require unique_id")
        elif self.quality in (ItemRarity.RARE, ItemRarity.CRAFTED) and self.rare_name is None:
            raise ValueError("rare and crafted items require rare_name")

        if self.given_runeword and self.runeword_id is None:
            raise ValueError("runeword items require runeword_id")
        return self

    @model_validator(mode="after")
    def _check_sockets(self) -> "ItemData":
        if not self.socketed_items:
            return self

        if self.total_nr_of_sockets is not None and len(self.socketed_items) > self.total_nr_of_sockets:
            raise ValueError(
                f"{len(self.socketed_items)} socketed items exceed "
                f"{self.total_nr_of_sockets} sockets"
            )
        if socket_depth(self) > MAX_SOCKET_DEPTH:
            raise ValueError("socketed items cannot hold socketed items")
        return self

    @property
    def rarity(self) -> Optional[ItemRarity]:
        return None if self.simple_item else self.quality

    def as_variant(self) -> "ItemVariant":
        """Return the typed view of this item for its quality."""
        common = ItemCommon.from_item(self)
        socketed = tuple(child.as_variant() for child in self.socketed_items or [])
        runeword = None
        if self.given_runeword:
            runeword = Runeword(
                id=self.runeword_id,
                name=self.runeword_name,
                attributes=tuple(self.runeword_attributes or []),
            )
        magic = tuple(self.magic_attributes or [])

        if self.simple_item:
            return SimpleItem(common=common)
        if self.quality == ItemRarity.MAGIC:
            return MagicItem(
                common=common,
                socketed=socketed,
                prefix_id=self.magic_prefix,
                prefix_name=self.magic_prefix_name,
                suffix_id=self.magic_suffix,
                suffix_name=self.magic_suffix_name,
                magic_attributes=magic,
            )
        if self.quality in (ItemRarity.RARE, ItemRarity.CRAFTED):
            return RareItem(
                common=common,
                socketed=socketed,
                rarity=self.quality,
                name=self.rare_name,
                name2=self.rare_name2,
                magical_name_ids=tuple(self.magical_name_ids or []),
                magic_attributes=magic,
            )
        if self.quality == ItemRarity.SET:
            return SetItem(
                common=common,
                socketed=socketed,
                set_id=self.set_id,
                set_name=self.set_name,
                set_list_count=self.set_list_count,
                set_attributes=tuple(tuple(tier) for tier in self.set_attributes),
                magic_attributes=magic,
            )
        if self.quality == ItemRarity.UNIQUE:
            return UniqueItem(
                common=common,
                socketed=socketed,
                unique_id=self.unique_id,
                unique_name=self.unique_name,
                magic_attributes=magic,
            )
        return NormalItem(
            common=common,
            socketed=socketed,
            rarity=self.quality,
            runeword=runeword,
            magic_attributes=magic,
        )


ItemData.model_rebuild()


def socket_depth(item: ItemData) -> int:
    """Number of socket levels below ``item`` (0 when nothing is socketed)."""
    if not item.socketed_items:
        return 0
    return 1 + max(socket_depth(child) for child in item.socketed_items)


# =============================================================================
# ITEM VARIANTS
# =============================================================================

@dataclass(frozen=True)
class ItemCommon:
    """Placement and identity fields every item carries."""
    type: str
    type_name: str
    type_id: int
    location_id: int
    equipped_id: int
    position_x: int
    position_y: int
    alt_position_id: int
    inv_width: int
    inv_height: int
    inv_file: str
    identified: bool
    ethereal: bool
    starter: bool
    personalized_name: Optional[str] = None
    level: Optional[int] = None
    item_quality: Optional[ItemQuality] = None
    defense_rating: Optional[int] = None
    current_durability: Optional[int] = None
    max_durability: Optional[int] = None
    quantity: Optional[int] = None
    total_sockets: Optional[int] = None
    base_damage: Optional[WeaponDamage] = None
    reqstr: Optional[int] = None
    reqdex: Optional[int] = None
    categories: Tuple[str, ...] = ()

    @classmethod
    def from_item(cls, item: ItemData) -> "ItemCommon":
        return cls(
            type=item.type,
            type_name=item.type_name,
            type_id=item.type_id,
            location_id=item.location_id,
            equipped_id=item.equipped_id,
            position_x=item.position_x,
            position_y=item.position_y,
            alt_position_id=item.alt_position_id,
            inv_width=item.inv_width,
            inv_height=item.inv_height,
            inv_file=item.inv_file,
            identified=bool(item.identified),
            ethereal=bool(item.ethereal),
            starter=bool(item.starter_item),
            personalized_name=item.personalized_name if item.personalized else None,
            level=item.level,
            item_quality=item.item_quality,
            defense_rating=item.defense_rating,
            current_durability=item.current_durability,
            max_durability=item.max_durability,
            quantity=item.quantity,
            total_sockets=item.total_nr_of_sockets,
            base_damage=item.base_damage,
            reqstr=item.reqstr,
            reqdex=item.reqdex,
            categories=tuple(item.categories),
        )


@dataclass(frozen=True)
class Runeword:
    id: int
    name: Optional[str]
    attributes: Tuple[MagicProperty, ...] = ()


@dataclass(frozen=True)
class SimpleItem:
    """Gems, runes, potions and other items without extended data."""
    common: ItemCommon
    kind: str = field(default="simple", init=False)


@dataclass(frozen=True)
class NormalItem:
    """Low quality, normal and superior items; the only ones a runeword can go into."""
    common: ItemCommon
    rarity: ItemRarity
    socketed: Tuple["ItemVariant", ...] = ()
    runeword: Optional[Runeword] = None
    magic_attributes: Tuple[MagicProperty, ...] = ()
    kind: str = field(default="normal", init=False)


@dataclass(frozen=True)
class MagicItem:
    common: ItemCommon
    socketed: Tuple["ItemVariant", ...] = ()
    prefix_id: Optional[int] = None
    prefix_name: Optional[str] = None
    suffix_id: Optional[int] = None
    suffix_name: Optional[str] = None
    magic_attributes: Tuple[MagicProperty, ...] = ()
    kind: str = field(default="magic", init=False)


@dataclass(frozen=True)
class RareItem:
    """Rare and crafted items."""
    common: ItemCommon
    rarity: ItemRarity
    name: str
    socketed: Tuple["ItemVariant", ...] = ()
    name2: Optional[str] = None
    magical_name_ids: Tuple[Optional[int], ...] = ()
    magic_attributes: Tuple[MagicProperty, ...] = ()
    kind: str = field(default="rare", init=False)


@dataclass(frozen=True)
class SetItem:
    common: ItemCommon
    set_id: int
    set_attributes: Tuple[Tuple[MagicProperty, ...], ...]
    socketed: Tuple["ItemVariant", ...] = ()
    set_name: Optional[str] = None
    set_list_count: Optional[int] = None
    magic_attributes: Tuple[MagicProperty, ...] = ()
    kind: str = field(default="set", init=False)


@dataclass(frozen=True)
class UniqueItem:
    common: ItemCommon
    unique_id: int
    socketed: Tuple["ItemVariant", ...] = ()
    unique_name: Optional[str] = None
    magic_attributes: Tuple[MagicProperty, ...] = ()
    kind: str = field(default="unique", init=False)


ItemVariant = Union[SimpleItem, NormalItem, MagicItem, RareItem, SetItem, UniqueItem]


# =============================================================================
# CHARACTER DATA
# =============================================================================

class CharacterData(BaseModel):
    """A full character export."""
    header: CharacterDataHeader
    attributes: CharacterDataAttributes
    items: List[ItemData]
    corpse_items: List[ItemData]
    merc_items: List[ItemData]

    @classmethod
    def from_json_str(cls, s: str) -> "CharacterData":
        """
        Deserialize an interchange document.

        Validation is strict: values of the wrong JSON type are rejected
        rather than coerced.

        Raises:
            CharacterDecodeError: with one entry per failing field path
        """
        try:
            return cls.model_validate_json(s, strict=True)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field_path = " -> ".join(str(loc) for loc in error.get("loc", []))
                errors.append({
                    "field": field_path,
                    "message": error.get("msg", "Invalid value"),
                    "type": error.get("type", "validation_error"),
                })
            first = errors[0] if errors else {"field": "", "message": str(e)}
            message = f"Invalid character data at '{first['field']}': {first['message']}"
            raise CharacterDecodeError(message, errors=errors) from e

    def all_items(self) -> List[ItemData]:
        """Inventory, corpse and mercenary items, without socketed children."""
        return [*self.items, *self.corpse_items, *self.merc_items]
