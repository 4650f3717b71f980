"""Scale raw item effects to a character's realm, level and rarity."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, NamedTuple, Optional

from .models.items import Rarity
from .models.progression import Realm, clamp_tier_level
from .models.stats import Effect
from .tables import DEFAULT_TABLES, BalanceTables

log = logging.getLogger(__name__)

# Fields whose magnitude tracks realm power on equipment.
EQUIPMENT_POWER_FIELDS: tuple[str, ...] = (
    "attack",
    "defense",
    "hp",
    "max_hp",
    "spirit",
    "physique",
    "speed",
)

# Fields that never scale with the realm.
TIER_INDEPENDENT_FIELDS: frozenset[str] = frozenset({"lifespan", "max_lifespan"})

# Pill purity below this value grants no extra potency.
PURITY_BASELINE = 60


class ScaledConsumable(NamedTuple):
    effect: Optional[Effect]
    permanent_effect: Optional[Effect]


def _level_multiplier(tier_level: Any, step: float) -> float:
    return 1 + (clamp_tier_level(tier_level) - 1) * step


def tier_equipment_multiplier(
    tier: "int | str | Realm | None",
    tier_level: int = 1,
    *,
    tables: BalanceTables | None = None,
) -> float:
    """Return the combined realm and level multiplier applied to loot."""

    tables = tables or DEFAULT_TABLES
    return tables.tier_multiplier(tier) * _level_multiplier(tier_level, tables.settings.tier_level_step)


def scale_equipment(
    effect: Optional[Effect],
    tier: "int | str | Realm | None",
    tier_level: int = 1,
    rarity: "Rarity | str | None" = Rarity.COMMON,
    *,
    tables: BalanceTables | None = None,
) -> Optional[Effect]:
    """Bring an equipment effect into the band expected for the realm.

    Each power field is lifted to at least 80% of the realm target and the
    scaled rarity floor, then capped by the realm ceiling. ``exp`` and the
    lifespan fields are carried over untouched.
    """

    if effect is None or effect.is_empty:
        return effect
    tables = tables or DEFAULT_TABLES
    settings = tables.settings
    scale = tables.tier_scale(tier)
    config = tables.rarity_config(rarity)
    level = _level_multiplier(tier_level, settings.tier_level_step)
    multiplier = scale.multiplier

    scaled: Dict[str, float] = {}
    for name, value in effect.present():
        if name not in EQUIPMENT_POWER_FIELDS:
            scaled[name] = value
            continue
        base = scale.base_for(name)
        target = base * config.percent_mean * level * multiplier
        ceiling = base * config.percent_max * level * multiplier
        result = max(value * multiplier, settings.equipment_floor_ratio * target)
        floor = config.equipment_floor.get(name) * multiplier
        result = max(result, floor)
        ceiling = max(ceiling, settings.equipment_ceiling_ratio * floor)
        scaled[name] = math.floor(min(result, ceiling))
    return Effect(**scaled)


def _scale_consumable_bundle(
    effect: Optional[Effect], factor: float, floors: Effect
) -> Optional[Effect]:
    if effect is None or effect.is_empty:
        return effect
    scaled: Dict[str, float] = {}
    for name, value in effect.present():
        if name in TIER_INDEPENDENT_FIELDS:
            scaled[name] = value
            continue
        result = math.floor(value * factor)
        if floors.has(name):
            result = max(result, math.floor(floors.get(name)))
        scaled[name] = result
    if not scaled:
        return effect
    return Effect(**scaled)


def scale_consumable(
    effect: Optional[Effect],
    permanent_effect: Optional[Effect],
    tier: "int | str | Realm | None",
    tier_level: int = 1,
    rarity: "Rarity | str | None" = Rarity.COMMON,
    *,
    tables: BalanceTables | None = None,
) -> ScaledConsumable:
    """Scale both bundles of a herb or pill and apply the rarity minimums."""

    tables = tables or DEFAULT_TABLES
    factor = tier_equipment_multiplier(tier, tier_level, tables=tables)
    floors = tables.rarity_config(rarity).consumable_floor
    return ScaledConsumable(
        _scale_consumable_bundle(effect, factor, floors),
        _scale_consumable_bundle(permanent_effect, factor, floors),
    )


def multiply_effect(effect: Optional[Effect], factor: float) -> Optional[Effect]:
    """Multiply every present field by ``factor`` and floor the result."""

    if effect is None:
        return None
    return Effect(**{name: math.floor(value * factor) for name, value in effect.present()})


def _keep_non_empty(adjusted: Optional[Effect], original: Optional[Effect]) -> Optional[Effect]:
    if adjusted is None or adjusted.is_empty:
        return original
    return adjusted


def adjust_pill_by_rarity(
    effect: Optional[Effect],
    permanent_effect: Optional[Effect],
    rarity: "Rarity | str | None",
    *,
    tables: BalanceTables | None = None,
) -> ScaledConsumable:
    tables = tables or DEFAULT_TABLES
    multiplier = tables.rarity_config(rarity).multiplier
    if Rarity.from_value(rarity) is Rarity.COMMON or multiplier == 1:
        return ScaledConsumable(effect, permanent_effect)
    return ScaledConsumable(
        _keep_non_empty(multiply_effect(effect, multiplier), effect),
        _keep_non_empty(multiply_effect(permanent_effect, multiplier), permanent_effect),
    )


def purity_multipliers(purity: float) -> tuple[float, float]:
    """Return ``(temporary, permanent)`` potency for a pill purity (0-100)."""

    excess = max(PURITY_BASELINE, min(100.0, float(purity))) - PURITY_BASELINE
    return 1.5 + excess * 0.025, 1.0 + excess * 0.0125


def adjust_pill_by_purity(
    effect: Optional[Effect],
    permanent_effect: Optional[Effect],
    purity: float,
) -> ScaledConsumable:
    temporary, permanent = purity_multipliers(purity)
    return ScaledConsumable(
        multiply_effect(effect, temporary),
        multiply_effect(permanent_effect, permanent),
    )


__all__ = [
    "EQUIPMENT_POWER_FIELDS",
    "PURITY_BASELINE",
    "ScaledConsumable",
    "TIER_INDEPENDENT_FIELDS",
    "adjust_pill_by_purity",
    "adjust_pill_by_rarity",
    "multiply_effect",
    "purity_multipliers",
    "scale_consumable",
    "scale_equipment",
    "tier_equipment_multiplier",
]
