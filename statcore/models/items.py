"""Item related domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ._validation import FieldSpec, ModelValidator, is_non_empty_str, is_numeric_mapping, validate_payload
from .stats import Effect


class Rarity(str, Enum):
    """Ordered item quality."""

    COMMON = "common"
    RARE = "rare"
    LEGENDARY = "legendary"
    IMMORTAL = "immortal"

    @property
    def order_index(self) -> int:
        return _RARITY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.order_index < other.order_index

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.order_index <= other.order_index

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.order_index > other.order_index

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.order_index >= other.order_index

    @classmethod
    def from_value(cls, value: "Rarity | str | None") -> "Rarity":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.COMMON
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.COMMON


_RARITY_ORDER: tuple[Rarity, ...] = (
    Rarity.COMMON,
    Rarity.RARE,
    Rarity.LEGENDARY,
    Rarity.IMMORTAL,
)


class ItemCategory(str, Enum):
    """Broad item categories. Herbs and pills are the consumables."""

    WEAPON = "weapon"
    ARMOR = "armor"
    ACCESSORY = "accessory"
    RING = "ring"
    ARTIFACT = "artifact"
    HERB = "herb"
    PILL = "pill"
    MATERIAL = "material"
    RECIPE = "recipe"
    ADVANCED = "advanced"

    @property
    def is_equipment(self) -> bool:
        return self in _EQUIPMENT_CATEGORIES

    @property
    def is_consumable(self) -> bool:
        return self in (ItemCategory.HERB, ItemCategory.PILL)

    @classmethod
    def from_value(
        cls, value: "ItemCategory | str | None", *, default: "ItemCategory" = None
    ) -> "ItemCategory":
        if isinstance(value, cls):
            return value
        fallback = default or cls.MATERIAL
        if value is None:
            return fallback
        normalized = str(value).strip().lower()
        if normalized == "consumable":
            return cls.PILL
        for member in cls:
            if member.value == normalized:
                return member
        return fallback


_EQUIPMENT_CATEGORIES = frozenset(
    {
        ItemCategory.WEAPON,
        ItemCategory.ARMOR,
        ItemCategory.ACCESSORY,
        ItemCategory.RING,
        ItemCategory.ARTIFACT,
    }
)


class EquipmentSlot(str, Enum):
    """Equipment positions available to a cultivator."""

    WEAPON = "weapon"
    HEAD = "head"
    SHOULDER = "shoulder"
    CHEST = "chest"
    GLOVES = "gloves"
    LEGS = "legs"
    BOOTS = "boots"
    RING1 = "ring1"
    RING2 = "ring2"
    RING3 = "ring3"
    RING4 = "ring4"
    ACCESSORY1 = "accessory1"
    ACCESSORY2 = "accessory2"
    ARTIFACT1 = "artifact1"
    ARTIFACT2 = "artifact2"
    ARTIFACT3 = "artifact3"

    @classmethod
    def from_value(
        cls, value: "EquipmentSlot | str | None", *, default: "EquipmentSlot | None" = None
    ) -> "EquipmentSlot":
        if isinstance(value, cls):
            return value
        if value is None:
            if default is not None:
                return default
            raise ValueError("Equipment slot cannot be None")
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        if default is not None:
            return default
        raise ValueError(f"Unknown equipment slot: {value}")


@dataclass(frozen=True, slots=True)
class Item:
    key: str
    name: str
    category: ItemCategory = ItemCategory.MATERIAL
    rarity: Rarity = Rarity.COMMON
    level: int = 0
    effect: Optional[Effect] = None
    permanent_effect: Optional[Effect] = None
    equippable: bool = False
    slot: Optional[EquipmentSlot] = None
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", ItemCategory.from_value(self.category))
        object.__setattr__(self, "rarity", Rarity.from_value(self.rarity))
        try:
            level = int(self.level)
        except (TypeError, ValueError):
            level = 0
        object.__setattr__(self, "level", max(0, level))
        object.__setattr__(self, "effect", Effect.coerce(self.effect))
        object.__setattr__(self, "permanent_effect", Effect.coerce(self.permanent_effect))
        if self.slot is not None and not isinstance(self.slot, EquipmentSlot):
            try:
                slot = EquipmentSlot.from_value(self.slot)
            except ValueError:
                slot = None
            object.__setattr__(self, "slot", slot)
        if self.description is None:
            object.__setattr__(self, "description", "")

    @property
    def is_equipment(self) -> bool:
        return self.equippable or self.category.is_equipment

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Item":
        payload = dict(data)
        if "key" not in payload and "id" in payload:
            payload["key"] = payload.pop("id")
        if "key" not in payload and "name" in payload:
            payload["key"] = payload["name"]
        if "category" not in payload:
            for alias in ("type", "item_type"):
                if alias in payload:
                    payload["category"] = payload.pop(alias)
                    break
        if "level" not in payload and "enchant_level" in payload:
            payload["level"] = payload.pop("enchant_level")
        if "permanent_effect" not in payload and "permanentEffect" in payload:
            payload["permanent_effect"] = payload.pop("permanentEffect")
        if "equippable" not in payload and "isEquippable" in payload:
            payload["equippable"] = payload.pop("isEquippable")
        if "slot" not in payload:
            for alias in ("equipment_slot", "equipmentSlot"):
                if alias in payload:
                    payload["slot"] = payload.pop(alias)
                    break
        payload = validate_payload(cls, payload)
        known: Dict[str, Any] = {
            name: payload[name]
            for name in (
                "key",
                "name",
                "category",
                "rarity",
                "level",
                "effect",
                "permanent_effect",
                "equippable",
                "slot",
                "description",
            )
            if name in payload
        }
        return cls(**known)


class ItemValidator(ModelValidator):
    model = Item
    fields = {
        "key": FieldSpec(is_non_empty_str, "a non-empty string key"),
        "name": FieldSpec(is_non_empty_str, "a non-empty string name"),
        "category": FieldSpec((ItemCategory, str), "an item category", required=False),
        "rarity": FieldSpec((Rarity, str), "an item rarity", required=False, allow_none=True),
        "level": FieldSpec(int, "an integer enchantment level", required=False),
        "effect": FieldSpec(
            (Effect, is_numeric_mapping), "a mapping of effect values", required=False, allow_none=True
        ),
        "permanent_effect": FieldSpec(
            (Effect, is_numeric_mapping),
            "a mapping of permanent effect values",
            required=False,
            allow_none=True,
        ),
        "equippable": FieldSpec(bool, "an equippable flag", required=False),
        "slot": FieldSpec((EquipmentSlot, str), "an equipment slot", required=False, allow_none=True),
        "description": FieldSpec(str, "a textual description", required=False, allow_none=True),
    }


Item.validator = ItemValidator


__all__ = [
    "EquipmentSlot",
    "Item",
    "ItemCategory",
    "ItemValidator",
    "Rarity",
]
