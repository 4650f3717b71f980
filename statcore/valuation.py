"""Item valuation and display helpers."""

from __future__ import annotations

import logging
import math
from types import MappingProxyType
from typing import Mapping, Optional

from .aggregation import item_stats
from .models.items import Item, ItemCategory
from .models.stats import EFFECT_FIELDS, Effect, StatBundle
from .tables import DEFAULT_TABLES, BalanceTables

log = logging.getLogger(__name__)

TEMPORARY_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "attack": 2.0,
        "defense": 1.5,
        "hp": 0.5,
        "spirit": 1.5,
        "physique": 1.5,
        "speed": 2.0,
        "exp": 0.1,
    }
)

PERMANENT_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "attack": 10.0,
        "defense": 8.0,
        "max_hp": 3.0,
        "spirit": 8.0,
        "physique": 8.0,
        "speed": 10.0,
    }
)

# Fraction of the base price added for equippable items.
EQUIPMENT_PRICE_BONUS: Mapping[ItemCategory, float] = MappingProxyType(
    {
        ItemCategory.WEAPON: 1.5,
        ItemCategory.ARMOR: 1.2,
        ItemCategory.ARTIFACT: 2.0,
        ItemCategory.RING: 1.3,
        ItemCategory.ACCESSORY: 1.3,
    }
)

CATEGORY_PRICE_MULTIPLIERS: Mapping[ItemCategory, float] = MappingProxyType(
    {
        ItemCategory.HERB: 0.5,
        ItemCategory.PILL: 0.5,
        ItemCategory.MATERIAL: 0.3,
    }
)

STAT_LABELS: Mapping[str, str] = MappingProxyType(
    {
        "attack": "ATK",
        "defense": "DEF",
        "hp": "HP",
        "max_hp": "MAXHP",
        "spirit": "SPI",
        "physique": "PHY",
        "speed": "SPD",
        "exp": "EXP",
        "lifespan": "LIFE",
        "max_lifespan": "MAXLIFE",
    }
)


def _weighted(effect: Optional[Effect], weights: Mapping[str, float]) -> float:
    if effect is None:
        return 0.0
    return sum(effect.get(name) * weight for name, weight in weights.items())


def attribute_value(item: Item, *, tables: BalanceTables | None = None) -> float:
    """Return the rarity-weighted worth of an item's effects, floored when finite."""

    tables = tables or DEFAULT_TABLES
    multiplier = tables.rarity_config(item.rarity).multiplier
    value = _weighted(item.effect, TEMPORARY_WEIGHTS) + _weighted(item.permanent_effect, PERMANENT_WEIGHTS)
    value *= multiplier
    if not math.isfinite(value):
        return value
    return math.floor(value)


def compute_sell_price(item: Item, *, tables: BalanceTables | None = None) -> int:
    """Return what a merchant pays for ``item``. Never less than 1."""

    tables = tables or DEFAULT_TABLES
    base_price = tables.rarity_config(item.rarity).sell_base_price
    equipment_bonus = 0.0
    if item.equippable:
        equipment_bonus = base_price * EQUIPMENT_PRICE_BONUS.get(item.category, 0.0)
    level_multiplier = 1 + item.level * tables.settings.enchant_step
    category_multiplier = CATEGORY_PRICE_MULTIPLIERS.get(item.category, 1.0)

    total = (base_price + attribute_value(item, tables=tables) + equipment_bonus) * level_multiplier
    total *= category_multiplier
    if not math.isfinite(total):
        log.debug("Non-finite sell price for %r, using 1", item.key)
        return 1
    return max(1, math.floor(total))


def _format_amount(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def attribute_preview(effect: Optional[Effect]) -> str:
    """Return a compact ``" [ATK+10 DEF+5]"`` suffix, or an empty string."""

    if effect is None:
        return ""
    parts = []
    for name in EFFECT_FIELDS:
        if not effect.has(name):
            continue
        value = effect.get(name)
        sign = "+" if value >= 0 else "-"
        parts.append(f"{STAT_LABELS[name]}{sign}{_format_amount(abs(value))}")
    if not parts:
        return ""
    return f" [{' '.join(parts)}]"


def compare_item_stats(
    candidate: Item,
    current: Optional[Item] = None,
    *,
    candidate_natal: bool = False,
    current_natal: bool = False,
    tables: BalanceTables | None = None,
) -> StatBundle:
    """Return how each stat changes when ``candidate`` replaces ``current``."""

    tables = tables or DEFAULT_TABLES
    gained = item_stats(candidate, candidate_natal, tables.settings)
    if current is None:
        return gained
    return gained.subtracted(item_stats(current, current_natal, tables.settings))


__all__ = [
    "CATEGORY_PRICE_MULTIPLIERS",
    "EQUIPMENT_PRICE_BONUS",
    "PERMANENT_WEIGHTS",
    "STAT_LABELS",
    "TEMPORARY_WEIGHTS",
    "attribute_preview",
    "attribute_value",
    "compare_item_stats",
    "compute_sell_price",
]
