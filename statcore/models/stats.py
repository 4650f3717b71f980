"""Stat bundles and effect records shared by every engine stage."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

# Combat stats, in display order.
STAT_NAMES: tuple[str, ...] = (
    "attack",
    "defense",
    "max_hp",
    "spirit",
    "physique",
    "speed",
)

# Effect fields, in the order they are scaled, priced and rendered.
EFFECT_FIELDS: tuple[str, ...] = (
    "attack",
    "defense",
    "hp",
    "max_hp",
    "spirit",
    "physique",
    "speed",
    "exp",
    "lifespan",
    "max_lifespan",
)

# Effect fields that scale with realm power.
COMBAT_EFFECT_FIELDS: tuple[str, ...] = (
    "attack",
    "defense",
    "hp",
    "spirit",
    "physique",
    "speed",
)

# Effect field that feeds each combat stat when an effect is counted as a bonus.
STAT_SOURCE_FIELDS: Dict[str, str] = {
    "attack": "attack",
    "defense": "defense",
    "max_hp": "hp",
    "spirit": "spirit",
    "physique": "physique",
    "speed": "speed",
}

_FIELD_ALIASES: Dict[str, str] = {
    "maxHp": "max_hp",
    "maxhp": "max_hp",
    "maxLifespan": "max_lifespan",
    "health": "hp",
}

SPIRITUAL_ROOT_NAMES: tuple[str, ...] = ("metal", "wood", "water", "fire", "earth")


def _coerce_optional(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def canonical_field(name: str) -> str:
    return _FIELD_ALIASES.get(name, name)


@dataclass(frozen=True, slots=True)
class Effect:
    """Sparse numeric effect bundle with a fixed set of optional fields."""

    attack: Optional[float] = None
    defense: Optional[float] = None
    hp: Optional[float] = None
    max_hp: Optional[float] = None
    spirit: Optional[float] = None
    physique: Optional[float] = None
    speed: Optional[float] = None
    exp: Optional[float] = None
    lifespan: Optional[float] = None
    max_lifespan: Optional[float] = None

    def __post_init__(self) -> None:
        for name in EFFECT_FIELDS:
            object.__setattr__(self, name, _coerce_optional(getattr(self, name)))

    def get(self, name: str, default: float = 0.0) -> float:
        value = getattr(self, canonical_field(name), None)
        return default if value is None else value

    def has(self, name: str) -> bool:
        return getattr(self, canonical_field(name), None) is not None

    def present(self) -> Iterator[Tuple[str, float]]:
        for name in EFFECT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                yield name, value

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in EFFECT_FIELDS)

    def to_mapping(self) -> Dict[str, float]:
        return dict(self.present())

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "Effect":
        if not mapping:
            return cls()
        data: dict[str, Optional[float]] = {}
        for raw_key, value in mapping.items():
            key = canonical_field(str(raw_key))
            if key in EFFECT_FIELDS:
                data[key] = _coerce_optional(value)
        return cls(**data)

    @classmethod
    def coerce(cls, value: "Effect | Mapping[str, Any] | None") -> Optional["Effect"]:
        if value is None or isinstance(value, Effect):
            return value
        return cls.from_mapping(value)


@dataclass(frozen=True, slots=True)
class StatBundle:
    """Final or intermediate combat stats. Values are integers."""

    attack: int = 0
    defense: int = 0
    max_hp: int = 0
    spirit: int = 0
    physique: int = 0
    speed: int = 0

    def __post_init__(self) -> None:
        for name in STAT_NAMES:
            value = getattr(self, name)
            try:
                number = float(value)
            except (TypeError, ValueError):
                number = 0.0
            object.__setattr__(self, name, math.floor(number) if math.isfinite(number) else 0)

    def get(self, name: str, default: int = 0) -> int:
        if name in STAT_NAMES:
            return getattr(self, name)
        return default

    def items(self) -> Iterator[Tuple[str, int]]:
        for name in STAT_NAMES:
            yield name, getattr(self, name)

    def to_mapping(self) -> Dict[str, int]:
        return dict(self.items())

    def added(self, other: "StatBundle") -> "StatBundle":
        return StatBundle(**{name: getattr(self, name) + getattr(other, name) for name in STAT_NAMES})

    def subtracted(self, other: "StatBundle") -> "StatBundle":
        return StatBundle(**{name: getattr(self, name) - getattr(other, name) for name in STAT_NAMES})

    def scaled(self, factor: float) -> "StatBundle":
        return StatBundle(**{name: getattr(self, name) * factor for name in STAT_NAMES})

    def non_negative(self) -> "StatBundle":
        return StatBundle(**{name: max(0, getattr(self, name)) for name in STAT_NAMES})

    @property
    def magnitude(self) -> float:
        """Rough overall power used by the synergy limiter."""

        return (
            self.attack
            + self.defense
            + self.max_hp / 10
            + self.spirit
            + self.physique
            + self.speed
        )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "StatBundle":
        if not mapping:
            return cls()
        data: dict[str, Any] = {}
        for raw_key, value in mapping.items():
            key = canonical_field(str(raw_key))
            if key == "hp":
                key = "max_hp"
            if key in STAT_NAMES:
                data[key] = value
        return cls(**data)

    @classmethod
    def from_effect(cls, effect: Effect | None, factor: float = 1.0) -> "StatBundle":
        """Project an effect onto combat stats, flooring each scaled value."""

        if effect is None:
            return cls()
        data = {}
        for stat, source in STAT_SOURCE_FIELDS.items():
            data[stat] = math.floor(effect.get(source) * factor)
        return cls(**data)


@dataclass(frozen=True, slots=True)
class PercentModifiers:
    """Fractional per-stat multipliers, e.g. ``attack=0.1`` for +10%."""

    attack: float = 0.0
    defense: float = 0.0
    max_hp: float = 0.0
    spirit: float = 0.0
    physique: float = 0.0
    speed: float = 0.0

    def __post_init__(self) -> None:
        for name in STAT_NAMES:
            object.__setattr__(self, name, _coerce_optional(getattr(self, name)) or 0.0)

    def items(self) -> Iterator[Tuple[str, float]]:
        for name in STAT_NAMES:
            yield name, getattr(self, name)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "PercentModifiers":
        if not mapping:
            return cls()
        data: dict[str, Any] = {}
        for raw_key, value in mapping.items():
            key = str(raw_key)
            if key.endswith("Percent"):
                key = key[: -len("Percent")]
            elif key.endswith("_percent"):
                key = key[: -len("_percent")]
            key = canonical_field(key)
            if key == "hp":
                key = "max_hp"
            if key in STAT_NAMES:
                data[key] = value
        return cls(**data)


@dataclass(frozen=True, slots=True)
class SpiritualRoots:
    """Elemental root distribution. Defaults to all zero."""

    metal: float = 0.0
    wood: float = 0.0
    water: float = 0.0
    fire: float = 0.0
    earth: float = 0.0

    def __post_init__(self) -> None:
        for name in SPIRITUAL_ROOT_NAMES:
            value = _coerce_optional(getattr(self, name)) or 0.0
            object.__setattr__(self, name, max(0.0, value))

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in SPIRITUAL_ROOT_NAMES)

    def get(self, name: str) -> float:
        if name in SPIRITUAL_ROOT_NAMES:
            return getattr(self, name)
        return 0.0

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "SpiritualRoots":
        if not mapping:
            return NO_ROOTS
        return cls(**{key: mapping[key] for key in SPIRITUAL_ROOT_NAMES if key in mapping})


NO_ROOTS = SpiritualRoots()
EMPTY_EFFECT = Effect()


__all__ = [
    "COMBAT_EFFECT_FIELDS",
    "EFFECT_FIELDS",
    "EMPTY_EFFECT",
    "Effect",
    "NO_ROOTS",
    "PercentModifiers",
    "SPIRITUAL_ROOT_NAMES",
    "STAT_NAMES",
    "STAT_SOURCE_FIELDS",
    "SpiritualRoots",
    "StatBundle",
    "canonical_field",
]
