"""Progression-related domain models: realms, techniques and characters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from ._validation import (
    FieldSpec,
    MappingSpec,
    ModelValidator,
    SequenceSpec,
    is_finite_number,
    is_mapping,
    is_non_empty_str,
    is_numeric_mapping,
    validate_payload,
)
from .items import EquipmentSlot, Item
from .stats import Effect, PercentModifiers, SPIRITUAL_ROOT_NAMES, SpiritualRoots, StatBundle

log = logging.getLogger(__name__)

MAX_TIER_LEVEL = 9


class Realm(str, Enum):
    """Cultivation realms in ascending order of power."""

    QI_REFINING = "QiRefining"
    FOUNDATION = "Foundation"
    GOLDEN_CORE = "GoldenCore"
    NASCENT_SOUL = "NascentSoul"
    SPIRIT_SEVERING = "SpiritSevering"
    DAO_COMBINING = "DaoCombining"
    LONGEVITY_REALM = "LongevityRealm"

    @property
    def order_index(self) -> int:
        return REALM_ORDER.index(self)

    @classmethod
    def from_value(cls, value: "Realm | str") -> Optional["Realm"]:
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().replace(" ", "").replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return None


REALM_ORDER: Tuple[Realm, ...] = tuple(Realm)


def resolve_tier(
    value: "int | str | Realm | None", *, tier_count: Optional[int] = len(REALM_ORDER)
) -> int:
    """Return a valid tier index for ``value``, falling back to the first tier.

    With ``tier_count=None`` any non-negative index is kept; the balance
    tables bound it when they look the tier up.
    """

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, Realm):
        index = value.order_index
    elif isinstance(value, int):
        index = value
    else:
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            index = int(text)
        else:
            realm = Realm.from_value(text)
            if realm is None:
                return 0
            index = realm.order_index
    if index >= 0 and (tier_count is None or index < tier_count):
        return index
    return 0


def clamp_tier_level(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        return 1
    return max(1, min(MAX_TIER_LEVEL, level))


class TechniqueGrade(str, Enum):
    """Technique quality, lowest to highest."""

    YELLOW = "yellow"
    MYSTIC = "mystic"
    EARTH = "earth"
    HEAVEN = "heaven"

    @classmethod
    def from_value(cls, value: "TechniqueGrade | str | None") -> "TechniqueGrade":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.YELLOW
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.YELLOW


class TechniqueType(str, Enum):
    """Mental techniques are switched on one at a time; body techniques are permanent."""

    MENTAL = "mental"
    BODY = "body"

    @classmethod
    def from_value(cls, value: "TechniqueType | str | None") -> "TechniqueType":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.MENTAL
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.MENTAL


def _freeze_weights(value: Any) -> Mapping[str, float]:
    weights: Dict[str, float] = {}
    if isinstance(value, str):
        if value in SPIRITUAL_ROOT_NAMES:
            weights[value] = 1.0
    elif isinstance(value, Mapping):
        for name, weight in value.items():
            if name not in SPIRITUAL_ROOT_NAMES:
                continue
            try:
                weights[name] = max(0.0, float(weight))
            except (TypeError, ValueError):
                continue
    elif isinstance(value, (list, tuple, set, frozenset)):
        for name in value:
            if name in SPIRITUAL_ROOT_NAMES:
                weights[name] = 1.0
    return MappingProxyType(weights)


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True, slots=True)
class Technique:
    """A cultivation technique with flat, percentage and exp-rate bonuses."""

    key: str
    name: str
    grade: TechniqueGrade = TechniqueGrade.YELLOW
    type: TechniqueType = TechniqueType.MENTAL
    effect: Effect = field(default_factory=Effect)
    percent: PercentModifiers = field(default_factory=PercentModifiers)
    exp_rate: float = 0.0
    root_affinity: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "grade", TechniqueGrade.from_value(self.grade))
        object.__setattr__(self, "type", TechniqueType.from_value(self.type))
        object.__setattr__(self, "effect", Effect.coerce(self.effect) or Effect())
        if not isinstance(self.percent, PercentModifiers):
            object.__setattr__(self, "percent", PercentModifiers.from_mapping(self.percent))
        object.__setattr__(self, "exp_rate", _as_float(self.exp_rate))
        object.__setattr__(self, "root_affinity", _freeze_weights(self.root_affinity))

    @property
    def is_mental(self) -> bool:
        return self.type is TechniqueType.MENTAL

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Technique":
        payload = dict(data)
        payload.setdefault("key", payload.pop("id", payload.get("name")))
        if "effect" not in payload and "effects" in payload:
            payload["effect"] = payload.pop("effects")
        if "root_affinity" not in payload:
            for alias in ("spiritual_root", "spiritualRoot"):
                if alias in payload:
                    payload["root_affinity"] = payload.pop(alias)
                    break
        if "exp_rate" not in payload and "expRate" in payload:
            payload["exp_rate"] = payload.pop("expRate")
        payload = validate_payload(cls, payload)
        effect_payload = dict(payload.get("effect") or {})
        percent_payload = dict(payload.get("percent") or {})
        for name in list(effect_payload):
            if name.endswith("Percent") or name.endswith("_percent"):
                percent_payload.setdefault(name, effect_payload.pop(name))
        if "expRate" in effect_payload and "exp_rate" not in payload:
            payload["exp_rate"] = effect_payload.pop("expRate")
        return cls(
            key=payload["key"],
            name=payload["name"],
            grade=payload.get("grade"),
            type=payload.get("type"),
            effect=Effect.from_mapping(effect_payload),
            percent=PercentModifiers.from_mapping(percent_payload),
            exp_rate=payload.get("exp_rate", 0.0),
            root_affinity=payload.get("root_affinity") or {},
        )


class TechniqueValidator(ModelValidator):
    model = Technique
    fields = {
        "key": FieldSpec(is_non_empty_str, "a non-empty string key"),
        "name": FieldSpec(is_non_empty_str, "a non-empty string name"),
        "grade": FieldSpec((TechniqueGrade, str), "a technique grade", required=False),
        "type": FieldSpec((TechniqueType, str), "a technique type", required=False),
        "effect": FieldSpec(is_numeric_mapping, "a mapping of flat bonuses", required=False),
        "percent": FieldSpec(is_numeric_mapping, "a mapping of percentage bonuses", required=False),
        "exp_rate": FieldSpec(is_finite_number, "a numeric exp rate", required=False),
        "root_affinity": FieldSpec(
            (str, MappingSpec(str, (int, float)), SequenceSpec(str)),
            "a spiritual root or mapping of root weights",
            required=False,
            allow_none=True,
        ),
    }


Technique.validator = TechniqueValidator


@dataclass(frozen=True, slots=True)
class Talent:
    """Innate talent chosen at character creation."""

    key: str
    name: str
    effect: Effect = field(default_factory=Effect)
    exp_rate: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "effect", Effect.coerce(self.effect) or Effect())
        object.__setattr__(self, "exp_rate", _as_float(self.exp_rate))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Talent":
        return cls(**_bonus_payload(cls, data))


@dataclass(frozen=True, slots=True)
class Title:
    """An honorific granting flat bonuses while equipped."""

    key: str
    name: str
    effect: Effect = field(default_factory=Effect)
    exp_rate: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "effect", Effect.coerce(self.effect) or Effect())
        object.__setattr__(self, "exp_rate", _as_float(self.exp_rate))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Title":
        return cls(**_bonus_payload(cls, data))


@dataclass(frozen=True, slots=True)
class TitleSet:
    """Extra bonus granted when every member title is unlocked."""

    key: str
    name: str
    titles: FrozenSet[str] = frozenset()
    effect: Effect = field(default_factory=Effect)
    exp_rate: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "titles", frozenset(str(entry) for entry in self.titles if entry))
        object.__setattr__(self, "effect", Effect.coerce(self.effect) or Effect())
        object.__setattr__(self, "exp_rate", _as_float(self.exp_rate))

    def is_active(self, title: str | None, unlocked: FrozenSet[str]) -> bool:
        if not title or title not in self.titles:
            return False
        return self.titles <= unlocked

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TitleSet":
        payload = _bonus_payload(cls, data)
        return cls(titles=frozenset(data.get("titles") or ()), **payload)


class BonusSourceValidator(ModelValidator):
    fields = {
        "key": FieldSpec(is_non_empty_str, "a non-empty string key"),
        "name": FieldSpec(is_non_empty_str, "a non-empty string name"),
        "effect": FieldSpec(is_numeric_mapping, "a mapping of flat bonuses", required=False),
        "exp_rate": FieldSpec(is_finite_number, "a numeric exp rate", required=False),
    }


class TalentValidator(BonusSourceValidator):
    model = Talent


class TitleValidator(BonusSourceValidator):
    model = Title


class TitleSetValidator(BonusSourceValidator):
    model = TitleSet
    fields = {
        **BonusSourceValidator.fields,
        "titles": FieldSpec(SequenceSpec(str, allow_empty=False), "a list of member titles"),
    }


Talent.validator = TalentValidator
Title.validator = TitleValidator
TitleSet.validator = TitleSetValidator


def _bonus_payload(cls: type[Any], data: Mapping[str, Any]) -> Dict[str, Any]:
    payload = dict(data)
    payload.setdefault("key", payload.pop("id", payload.get("name")))
    if "effect" not in payload and "effects" in payload:
        payload["effect"] = payload.pop("effects")
    if "exp_rate" not in payload and "expRate" in payload:
        payload["exp_rate"] = payload.pop("expRate")
    payload = validate_payload(cls, payload)
    effect_payload = dict(payload.get("effect") or {})
    exp_rate = payload.get("exp_rate", effect_payload.pop("expRate", 0.0))
    return {
        "key": payload["key"],
        "name": payload["name"],
        "effect": Effect.from_mapping(effect_payload),
        "exp_rate": exp_rate,
    }


@dataclass(frozen=True, slots=True)
class Dwelling:
    """Cultivation dwelling (grotto) bonuses."""

    exp_rate_bonus: float = 0.0
    array_enhancement: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "exp_rate_bonus", _as_float(self.exp_rate_bonus))
        object.__setattr__(self, "array_enhancement", _as_float(self.array_enhancement))

    @property
    def total_bonus(self) -> float:
        return self.exp_rate_bonus + self.array_enhancement

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "Dwelling":
        if not mapping:
            return NO_DWELLING
        return cls(
            exp_rate_bonus=mapping.get("exp_rate_bonus", mapping.get("expRateBonus", 0.0)),
            array_enhancement=mapping.get(
                "array_enhancement", mapping.get("spiritArrayEnhancement", 0.0)
            ),
        )


NO_DWELLING = Dwelling()


def _freeze_equipped(value: Any) -> Mapping[EquipmentSlot, str]:
    equipped: Dict[EquipmentSlot, str] = {}
    if isinstance(value, Mapping):
        for slot, item_key in value.items():
            if not item_key:
                continue
            try:
                equipped[EquipmentSlot.from_value(slot)] = str(item_key)
            except ValueError:
                continue
    return MappingProxyType(equipped)


def _freeze_inventory(value: Any) -> Mapping[str, Item]:
    inventory: Dict[str, Item] = {}
    if isinstance(value, Mapping):
        entries = value.values()
    elif isinstance(value, (list, tuple)):
        entries = value
    else:
        entries = ()
    for entry in entries:
        item = entry if isinstance(entry, Item) else Item.from_dict(entry)
        inventory[item.key] = item
    return MappingProxyType(inventory)


@dataclass(frozen=True, slots=True)
class Character:
    """Immutable snapshot of everything the engine reads about a character."""

    tier: int = 0
    tier_level: int = 1
    base_stats: StatBundle = field(default_factory=StatBundle)
    known_techniques: Tuple[str, ...] = ()
    active_technique: Optional[str] = None
    talent: Optional[str] = None
    title: Optional[str] = None
    unlocked_titles: FrozenSet[str] = frozenset()
    equipped: Mapping[EquipmentSlot, str] = field(default_factory=dict)
    inventory: Mapping[str, Item] = field(default_factory=dict)
    natal_item: Optional[str] = None
    dwelling: Dwelling = NO_DWELLING
    spiritual_roots: SpiritualRoots = field(default_factory=SpiritualRoots)
    method_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "tier", resolve_tier(self.tier, tier_count=None))
        object.__setattr__(self, "tier_level", clamp_tier_level(self.tier_level))
        if not isinstance(self.base_stats, StatBundle):
            object.__setattr__(self, "base_stats", StatBundle.from_mapping(self.base_stats))
        object.__setattr__(
            self, "known_techniques", tuple(str(key) for key in self.known_techniques if key)
        )
        object.__setattr__(
            self, "unlocked_titles", frozenset(str(key) for key in self.unlocked_titles if key)
        )
        object.__setattr__(self, "equipped", _freeze_equipped(self.equipped))
        object.__setattr__(self, "inventory", _freeze_inventory(self.inventory))
        if not isinstance(self.dwelling, Dwelling):
            object.__setattr__(self, "dwelling", Dwelling.from_mapping(self.dwelling))
        if not isinstance(self.spiritual_roots, SpiritualRoots):
            object.__setattr__(
                self, "spiritual_roots", SpiritualRoots.from_mapping(self.spiritual_roots)
            )
        try:
            count = int(self.method_count or 0)
        except (TypeError, ValueError):
            count = 0
        object.__setattr__(self, "method_count", max(0, count))

    def equipped_items(self) -> Tuple[Tuple[Item, bool], ...]:
        """Return ``(item, is_natal)`` for every equipped key found in the inventory."""

        items = []
        for slot, item_key in self.equipped.items():
            item = self.inventory.get(item_key)
            if item is None:
                log.debug("Equipped item %r in slot %s is not in the inventory", item_key, slot.value)
                continue
            items.append((item, item_key == self.natal_item))
        return tuple(items)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Character":
        payload = dict(data)
        aliases = {
            "realm": "tier",
            "realm_level": "tier_level",
            "realmLevel": "tier_level",
            "techniques": "known_techniques",
            "cultivation_arts": "known_techniques",
            "active_art": "active_technique",
            "activeArtId": "active_technique",
            "talent_id": "talent",
            "title_id": "title",
            "natal_artifact": "natal_item",
            "grotto": "dwelling",
            "spiritualRoots": "spiritual_roots",
            "golden_core_method_count": "method_count",
        }
        for alias, name in aliases.items():
            if alias in payload and name not in payload:
                payload[name] = payload.pop(alias)
        if "base_stats" not in payload:
            stat_keys = (*StatBundle.__slots__, "hp", "maxHp")
            stats = {key: payload.pop(key) for key in list(payload) if key in stat_keys}
            if stats:
                payload["base_stats"] = stats
        payload = validate_payload(cls, payload)
        known = {name: payload[name] for name in CharacterValidator.fields if name in payload}
        return cls(**known)


class CharacterValidator(ModelValidator):
    model = Character
    fields = {
        "tier": FieldSpec((int, str, Realm), "a tier index or realm name", required=False),
        "tier_level": FieldSpec(int, "an integer tier level", required=False),
        "base_stats": FieldSpec(
            (StatBundle, is_numeric_mapping), "a mapping of base stats", required=False
        ),
        "known_techniques": FieldSpec(SequenceSpec(str), "a list of technique keys", required=False),
        "active_technique": FieldSpec(str, "a technique key", required=False, allow_none=True),
        "talent": FieldSpec(str, "a talent key", required=False, allow_none=True),
        "title": FieldSpec(str, "a title key", required=False, allow_none=True),
        "unlocked_titles": FieldSpec(SequenceSpec(str), "a list of title keys", required=False),
        "equipped": FieldSpec(MappingSpec(str, str), "a mapping of slots to item keys", required=False),
        "inventory": FieldSpec(
            (MappingSpec(str, (Item, is_mapping)), SequenceSpec((Item, is_mapping))),
            "item payloads",
            required=False,
        ),
        "natal_item": FieldSpec(str, "an item key", required=False, allow_none=True),
        "dwelling": FieldSpec((Dwelling, is_numeric_mapping), "dwelling bonuses", required=False),
        "spiritual_roots": FieldSpec(
            (SpiritualRoots, is_numeric_mapping), "a mapping of root weights", required=False
        ),
        "method_count": FieldSpec(int, "an integer method count", required=False, allow_none=True),
    }


Character.validator = CharacterValidator


__all__ = [
    "Character",
    "Dwelling",
    "MAX_TIER_LEVEL",
    "NO_DWELLING",
    "REALM_ORDER",
    "Realm",
    "Talent",
    "Technique",
    "TechniqueGrade",
    "TechniqueType",
    "Title",
    "TitleSet",
    "clamp_tier_level",
    "resolve_tier",
]
