"""Static balance tables: realm scales, rarity data and content definitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from .catalog import DEFAULT_CATALOG, ReferenceCatalog
from .config import DEFAULT_SETTINGS, BalanceSettings
from .models.items import Rarity
from .models.progression import (
    REALM_ORDER,
    Realm,
    Talent,
    Technique,
    TechniqueGrade,
    Title,
    TitleSet,
    resolve_tier,
)
from .models.stats import COMBAT_EFFECT_FIELDS, Effect

log = logging.getLogger(__name__)

# Multiplier applied to the soft-cap and synergy limits for unknown tiers.
UNKNOWN_SOFT_CAP_FACTOR = 0.8
UNKNOWN_SYNERGY_FACTOR = 1.0


@dataclass(frozen=True, slots=True)
class TierScale:
    """Baseline stats for one realm."""

    name: str
    base_attack: float
    base_defense: float
    base_max_hp: float
    base_spirit: float
    base_physique: float
    base_speed: float
    max_exp: float = 0.0
    base_lifespan: float = 0.0
    multiplier: float = 1.0
    soft_cap_factor: float = UNKNOWN_SOFT_CAP_FACTOR
    synergy_factor: float = UNKNOWN_SYNERGY_FACTOR

    def base_for(self, field_name: str) -> float:
        if field_name in ("hp", "max_hp"):
            return self.base_max_hp
        return float(getattr(self, f"base_{field_name}", 0.0))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TierScale":
        aliases = {
            "baseMaxHp": "base_max_hp",
            "baseAttack": "base_attack",
            "baseDefense": "base_defense",
            "baseSpirit": "base_spirit",
            "basePhysique": "base_physique",
            "baseSpeed": "base_speed",
            "maxExpBase": "max_exp",
            "baseMaxLifespan": "base_lifespan",
        }
        payload = {aliases.get(str(key), str(key)): value for key, value in data.items()}
        known = {name: payload[name] for name in cls.__slots__ if name in payload}
        for name, value in known.items():
            if name != "name":
                known[name] = float(value)
        return cls(**known)


@dataclass(frozen=True, slots=True)
class RarityConfig:
    """Value ranges, floors and prices for a rarity."""

    percent_min: float
    percent_max: float
    equipment_floor: Effect = field(default_factory=Effect)
    consumable_floor: Effect = field(default_factory=Effect)
    sell_base_price: float = 10.0
    multiplier: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "equipment_floor", Effect.coerce(self.equipment_floor) or Effect())
        object.__setattr__(self, "consumable_floor", Effect.coerce(self.consumable_floor) or Effect())

    @property
    def percent_mean(self) -> float:
        return (self.percent_min + self.percent_max) / 2

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, base: "RarityConfig | None" = None) -> "RarityConfig":
        """Build a config, letting ``data`` override only the keys it names."""

        aliases = {
            "percentRange": "percent_range",
            "equipmentFloor": "equipment_floor",
            "consumableFloor": "consumable_floor",
            "sellBasePrice": "sell_base_price",
        }
        payload = {aliases.get(str(key), str(key)): value for key, value in data.items()}
        if "percent_range" in payload:
            low, high = payload.pop("percent_range")
            payload.setdefault("percent_min", low)
            payload.setdefault("percent_max", high)
        values: dict[str, Any] = {}
        for name in ("percent_min", "percent_max", "sell_base_price", "multiplier"):
            if name in payload:
                values[name] = float(payload[name])
        for name in ("equipment_floor", "consumable_floor"):
            if name in payload:
                values[name] = Effect.from_mapping(payload[name])
        if base is not None:
            return replace(base, **values)
        values.setdefault("percent_min", 0.0)
        values.setdefault("percent_max", values["percent_min"])
        return cls(**values)


def _equipment_floor(value: float) -> Effect:
    return Effect(max_hp=value, **{name: value for name in COMBAT_EFFECT_FIELDS})


def _freeze(mapping: Mapping[Any, Any] | Iterable[Tuple[Any, Any]]) -> Mapping[Any, Any]:
    return MappingProxyType(dict(mapping))


def _index(entries: Iterable[Any]) -> Mapping[str, Any]:
    return MappingProxyType({entry.key: entry for entry in entries})


@dataclass(frozen=True, slots=True)
class BalanceTables:
    """Immutable bundle of every table the engine reads.

    Lookups never raise: unknown tiers fall back to the first realm, unknown
    rarities to ``common`` and unknown content keys to ``None``.
    """

    tiers: Tuple[TierScale, ...]
    rarities: Mapping[Rarity, RarityConfig]
    grade_exp_multipliers: Mapping[TechniqueGrade, float] = field(default_factory=dict)
    catalog: ReferenceCatalog = DEFAULT_CATALOG
    techniques: Mapping[str, Technique] = field(default_factory=dict)
    talents: Mapping[str, Talent] = field(default_factory=dict)
    titles: Mapping[str, Title] = field(default_factory=dict)
    title_sets: Mapping[str, TitleSet] = field(default_factory=dict)
    settings: BalanceSettings = DEFAULT_SETTINGS

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError("Balance tables need at least one tier")
        object.__setattr__(self, "tiers", tuple(self.tiers))
        for name in ("rarities", "grade_exp_multipliers", "techniques", "talents", "titles", "title_sets"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, _freeze(value))

    # -- tiers -------------------------------------------------------------

    def tier_index(self, tier: "int | str | Realm | None") -> int:
        if tier is not None and not _is_known_tier(tier, len(self.tiers)):
            log.debug("Unknown tier %r, using %s", tier, self.tiers[0].name)
        return resolve_tier(tier, tier_count=len(self.tiers))

    def tier_scale(self, tier: "int | str | Realm | None") -> TierScale:
        return self.tiers[self.tier_index(tier)]

    def tier_multiplier(self, tier: "int | str | Realm | None") -> float:
        return self.tier_scale(tier).multiplier

    def soft_cap_factor(self, tier: "int | str | Realm | None") -> float:
        index = resolve_tier(tier, tier_count=len(self.tiers))
        if tier is not None and not _is_known_tier(tier, len(self.tiers)):
            log.debug("Unknown tier %r for soft cap, using %s", tier, UNKNOWN_SOFT_CAP_FACTOR)
            return UNKNOWN_SOFT_CAP_FACTOR
        return self.tiers[index].soft_cap_factor

    def synergy_factor(self, tier: "int | str | Realm | None") -> float:
        index = resolve_tier(tier, tier_count=len(self.tiers))
        if tier is not None and not _is_known_tier(tier, len(self.tiers)):
            log.debug("Unknown tier %r for synergy, using %s", tier, UNKNOWN_SYNERGY_FACTOR)
            return UNKNOWN_SYNERGY_FACTOR
        return self.tiers[index].synergy_factor

    # -- rarities ----------------------------------------------------------

    def rarity_config(self, rarity: "Rarity | str | None") -> RarityConfig:
        resolved = Rarity.from_value(rarity)
        config = self.rarities.get(resolved)
        if config is None:
            log.debug("No rarity data for %r, using common", rarity)
            config = self.rarities[Rarity.COMMON]
        return config

    # -- content -----------------------------------------------------------

    def technique(self, key: str | None) -> Optional[Technique]:
        return _lookup(self.techniques, key, "technique")

    def talent(self, key: str | None) -> Optional[Talent]:
        return _lookup(self.talents, key, "talent")

    def title(self, key: str | None) -> Optional[Title]:
        return _lookup(self.titles, key, "title")

    def grade_multiplier(self, grade: "TechniqueGrade | str | None") -> float:
        return float(self.grade_exp_multipliers.get(TechniqueGrade.from_value(grade), 1.0))


def _is_known_tier(tier: Any, tier_count: int) -> bool:
    if isinstance(tier, Realm):
        return tier.order_index < tier_count
    if isinstance(tier, bool):
        return False
    if isinstance(tier, int):
        return 0 <= tier < tier_count
    text = str(tier).strip()
    if text.lstrip("-").isdigit():
        return 0 <= int(text) < tier_count
    realm = Realm.from_value(text)
    return realm is not None and realm.order_index < tier_count


def _lookup(table: Mapping[str, Any], key: str | None, kind: str) -> Any:
    if not key:
        return None
    value = table.get(key)
    if value is None:
        log.debug("Unknown %s %r", kind, key)
    return value


_TIER_ROWS: Sequence[Tuple[float, ...]] = (
    # max_hp, attack, defense, spirit, physique, speed, max_exp, lifespan
    (100, 10, 5, 5, 10, 10, 250, 120),
    (500, 50, 25, 25, 50, 30, 1_250, 300),
    (2_500, 200, 100, 100, 200, 50, 6_250, 800),
    (10_000, 1_000, 500, 500, 1_000, 100, 31_250, 2_000),
    (50_000, 5_000, 2_500, 2_500, 5_000, 800, 156_250, 5_000),
    (250_000, 25_000, 12_500, 12_500, 25_000, 4_000, 781_250, 12_500),
    (1_250_000, 125_000, 62_500, 62_500, 125_000, 20_000, 3_906_250, 31_250),
)
_TIER_MULTIPLIERS = (1.0, 1.3, 2.0, 3.0, 4.5, 6.5, 10.0)
_SOFT_CAP_FACTORS = (0.6, 0.7, 0.8, 0.9, 1.0, 1.1, 1.2)
_SYNERGY_FACTORS = (0.8, 0.85, 0.9, 0.95, 1.0, 1.05, 1.1)

DEFAULT_TIERS: Tuple[TierScale, ...] = tuple(
    TierScale(
        name=realm.value,
        base_max_hp=row[0],
        base_attack=row[1],
        base_defense=row[2],
        base_spirit=row[3],
        base_physique=row[4],
        base_speed=row[5],
        max_exp=row[6],
        base_lifespan=row[7],
        multiplier=multiplier,
        soft_cap_factor=soft_cap,
        synergy_factor=synergy,
    )
    for realm, row, multiplier, soft_cap, synergy in zip(
        REALM_ORDER, _TIER_ROWS, _TIER_MULTIPLIERS, _SOFT_CAP_FACTORS, _SYNERGY_FACTORS
    )
)

DEFAULT_RARITIES: Mapping[Rarity, RarityConfig] = MappingProxyType(
    {
        Rarity.COMMON: RarityConfig(
            percent_min=0.25,
            percent_max=0.40,
            equipment_floor=_equipment_floor(50),
            consumable_floor=Effect(hp=100, exp=50, spirit=5, physique=5, max_hp=10),
            sell_base_price=10,
            multiplier=1.0,
        ),
        Rarity.RARE: RarityConfig(
            percent_min=0.50,
            percent_max=0.80,
            equipment_floor=_equipment_floor(200),
            consumable_floor=Effect(hp=500, exp=300, spirit=20, physique=20, max_hp=50),
            sell_base_price=50,
            multiplier=1.5,
        ),
        Rarity.LEGENDARY: RarityConfig(
            percent_min=0.90,
            percent_max=1.40,
            equipment_floor=_equipment_floor(400),
            consumable_floor=Effect(hp=2000, exp=1500, spirit=100, physique=100, max_hp=200),
            sell_base_price=300,
            multiplier=2.5,
        ),
        Rarity.IMMORTAL: RarityConfig(
            percent_min=1.20,
            percent_max=1.80,
            equipment_floor=_equipment_floor(1000),
            consumable_floor=Effect(hp=8000, exp=6000, spirit=1500, physique=1500, max_hp=1000),
            sell_base_price=2000,
            multiplier=6.0,
        ),
    }
)

DEFAULT_GRADE_EXP_MULTIPLIERS: Mapping[TechniqueGrade, float] = MappingProxyType(
    {
        TechniqueGrade.YELLOW: 1.0,
        TechniqueGrade.MYSTIC: 1.2,
        TechniqueGrade.EARTH: 1.5,
        TechniqueGrade.HEAVEN: 2.0,
    }
)

DEFAULT_TECHNIQUES: Tuple[Technique, ...] = (
    Technique(
        key="breathing-method",
        name="Breathing Method",
        grade="yellow",
        type="mental",
        effect={"spirit": 5},
        exp_rate=0.1,
        root_affinity={"wood": 1.0},
    ),
    Technique(
        key="iron-body-art",
        name="Iron Body Art",
        grade="yellow",
        type="body",
        effect={"defense": 10, "hp": 50},
        root_affinity={"earth": 1.0},
    ),
    Technique(
        key="five-elements-sutra",
        name="Five Elements Sutra",
        grade="mystic",
        type="mental",
        effect={"attack": 20, "spirit": 20},
        percent={"attack": 0.05, "spirit": 0.05},
        exp_rate=0.3,
        root_affinity={"metal": 1, "wood": 1, "water": 1, "fire": 1, "earth": 1},
    ),
    Technique(
        key="nine-suns-scripture",
        name="Nine Suns Scripture",
        grade="earth",
        type="mental",
        effect={"attack": 120, "physique": 60},
        percent={"attack": 0.15, "max_hp": 0.1},
        exp_rate=0.6,
        root_affinity={"fire": 1.0},
    ),
    Technique(
        key="heaven-devouring-canon",
        name="Heaven Devouring Canon",
        grade="heaven",
        type="mental",
        effect={"attack": 500, "defense": 300, "spirit": 400},
        percent={"attack": 0.25, "defense": 0.2, "spirit": 0.2},
        exp_rate=1.0,
        root_affinity={"water": 1.0, "metal": 0.5},
    ),
)

DEFAULT_TALENTS: Tuple[Talent, ...] = (
    Talent(key="sword-heart", name="Sword Heart", effect={"attack": 15, "speed": 5}),
    Talent(key="spirit-vein", name="Spirit Vein", effect={"spirit": 10}, exp_rate=0.2),
    Talent(key="iron-bones", name="Iron Bones", effect={"defense": 10, "hp": 80}),
)

DEFAULT_TITLES: Tuple[Title, ...] = (
    Title(key="outer-disciple", name="Outer Disciple", effect={"defense": 5}),
    Title(key="inner-disciple", name="Inner Disciple", effect={"attack": 10, "defense": 10}, exp_rate=0.05),
    Title(key="core-disciple", name="Core Disciple", effect={"attack": 30, "spirit": 20}, exp_rate=0.1),
)

DEFAULT_TITLE_SETS: Tuple[TitleSet, ...] = (
    TitleSet(
        key="sect-ascension",
        name="Sect Ascension",
        titles=frozenset({"outer-disciple", "inner-disciple", "core-disciple"}),
        effect={"attack": 50, "defense": 50},
        exp_rate=0.1,
    ),
)

DEFAULT_TABLES = BalanceTables(
    tiers=DEFAULT_TIERS,
    rarities=DEFAULT_RARITIES,
    grade_exp_multipliers=DEFAULT_GRADE_EXP_MULTIPLIERS,
    catalog=DEFAULT_CATALOG,
    techniques=_index(DEFAULT_TECHNIQUES),
    talents=_index(DEFAULT_TALENTS),
    titles=_index(DEFAULT_TITLES),
    title_sets=_index(DEFAULT_TITLE_SETS),
    settings=DEFAULT_SETTINGS,
)


__all__ = [
    "BalanceTables",
    "DEFAULT_GRADE_EXP_MULTIPLIERS",
    "DEFAULT_RARITIES",
    "DEFAULT_TABLES",
    "DEFAULT_TIERS",
    "RarityConfig",
    "TierScale",
    "UNKNOWN_SOFT_CAP_FACTOR",
    "UNKNOWN_SYNERGY_FACTOR",
]
