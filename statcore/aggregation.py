"""Aggregate bonuses into final character stats.

Total stats are produced by an ordered pipeline of named stages:

``base``
    base stats plus technique, equipment, talent and title bonuses
``active_technique``
    flat then percentage bonuses of the active mental technique
``method_count``
    the synergy-limited method count multiplier

Each stage is a plain function ``(stats, character, tables) -> StatBundle``
and can be called on its own.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, NamedTuple, Optional, Sequence, Tuple

from .config import DEFAULT_SETTINGS, BalanceSettings
from .cultivation import root_affinity_multiplier, title_effect
from .models.items import Item
from .models.progression import Character, Realm, clamp_tier_level
from .models.stats import StatBundle
from .tables import DEFAULT_TABLES, BalanceTables

log = logging.getLogger(__name__)

Stage = Callable[[StatBundle, Character, BalanceTables], StatBundle]


# ---------------------------------------------------------------------------
# Equipment soft cap
# ---------------------------------------------------------------------------


def soft_cap_factor(
    tier: "int | str | Realm | None",
    tier_level: int,
    equipped_count: int,
    *,
    tables: BalanceTables | None = None,
) -> float:
    tables = tables or DEFAULT_TABLES
    settings = tables.settings
    level = 1 + (clamp_tier_level(tier_level) - 1) * settings.soft_cap_level_step
    crowding = max(
        settings.soft_cap_count_min,
        1 - (max(0, equipped_count) - settings.soft_cap_count_baseline) * settings.soft_cap_count_step,
    )
    return tables.soft_cap_factor(tier) * level * crowding


def apply_soft_cap(
    raw: float,
    tier: "int | str | Realm | None",
    tier_level: int,
    equipped_count: int,
    *,
    tables: BalanceTables | None = None,
) -> float:
    """Discount the part of an equipment bonus above the realm threshold."""

    tables = tables or DEFAULT_TABLES
    settings = tables.settings
    cap = soft_cap_factor(tier, tier_level, equipped_count, tables=tables)
    threshold = settings.soft_cap_threshold * cap
    if raw <= threshold:
        return raw
    rate = min(
        settings.soft_cap_discount_max,
        settings.soft_cap_discount_base + cap * settings.soft_cap_discount_slope,
    )
    return math.floor(threshold + (raw - threshold) * rate)


# ---------------------------------------------------------------------------
# Bonus aggregation
# ---------------------------------------------------------------------------


def item_stats(item: Item, natal: bool = False, settings: BalanceSettings = DEFAULT_SETTINGS) -> StatBundle:
    """Return an item's combat contribution, boosted when it is the natal item."""

    factor = settings.natal_multiplier if natal else 1.0
    return StatBundle.from_effect(item.effect, factor)


class StatSources(NamedTuple):
    techniques: StatBundle
    equipment: StatBundle
    talent: StatBundle
    title: StatBundle

    @property
    def total(self) -> StatBundle:
        return self.techniques.added(self.equipment).added(self.talent).added(self.title)


def _is_active_mental(character: Character, key: str, tables: BalanceTables) -> bool:
    if key != character.active_technique:
        return False
    technique = tables.technique(key)
    return technique is not None and technique.is_mental


def _technique_bonus(character: Character, tables: BalanceTables) -> StatBundle:
    total = StatBundle()
    for key in character.known_techniques:
        if _is_active_mental(character, key, tables):
            continue
        technique = tables.technique(key)
        if technique is None:
            continue
        affinity = root_affinity_multiplier(technique, character.spiritual_roots, tables.settings)
        total = total.added(StatBundle.from_effect(technique.effect, affinity))
    return total


def _equipment_bonus(character: Character, tables: BalanceTables) -> StatBundle:
    items = character.equipped_items()
    raw = StatBundle()
    for item, natal in items:
        raw = raw.added(item_stats(item, natal, tables.settings))
    return StatBundle(
        **{
            name: apply_soft_cap(
                value, character.tier, character.tier_level, len(items), tables=tables
            )
            for name, value in raw.items()
        }
    )


def aggregate_by_source(character: Character, *, tables: BalanceTables | None = None) -> StatSources:
    tables = tables or DEFAULT_TABLES
    talent = tables.talent(character.talent)
    return StatSources(
        techniques=_technique_bonus(character, tables),
        equipment=_equipment_bonus(character, tables),
        talent=StatBundle.from_effect(talent.effect if talent is not None else None),
        title=StatBundle.from_effect(
            title_effect(character.title, character.unlocked_titles, tables=tables)
        ),
    )


def aggregate(character: Character, *, tables: BalanceTables | None = None) -> StatBundle:
    """Return the summed bonus of techniques, equipment, talent and title.

    The active mental technique is left out; ``apply_active_technique``
    handles it.
    """

    return aggregate_by_source(character, tables=tables).total


# ---------------------------------------------------------------------------
# Active technique
# ---------------------------------------------------------------------------


def apply_active_technique(
    stats: StatBundle, character: Character, *, tables: BalanceTables | None = None
) -> StatBundle:
    tables = tables or DEFAULT_TABLES
    technique = tables.technique(character.active_technique)
    if technique is None or not technique.is_mental:
        return stats
    affinity = root_affinity_multiplier(technique, character.spiritual_roots, tables.settings)
    flat = stats.added(StatBundle.from_effect(technique.effect, affinity))
    return StatBundle(
        **{name: math.floor(value * (1 + getattr(technique.percent, name))) for name, value in flat.items()}
    )


# ---------------------------------------------------------------------------
# Method count and synergy limiter
# ---------------------------------------------------------------------------


def method_count_multiplier(count: int, settings: BalanceSettings = DEFAULT_SETTINGS) -> float:
    return 1.0 + max(0, count) * settings.method_count_step


def synergy_multiplier(
    stats: StatBundle, character: Character, *, tables: BalanceTables | None = None
) -> float:
    """Return the capped method count multiplier for ``stats``, within ``[1, cap]``."""

    tables = tables or DEFAULT_TABLES
    settings = tables.settings
    if character.method_count <= 0:
        return 1.0
    raw = method_count_multiplier(character.method_count, settings)
    pressure = settings.synergy_magnitude_numerator / (
        max(0.0, stats.magnitude) + settings.synergy_magnitude_offset
    )
    pressure = min(settings.synergy_limit_max, max(settings.synergy_limit_min, pressure))
    level = 1 + (character.tier_level - 1) * settings.synergy_level_step
    limit = tables.synergy_factor(character.tier) * level * pressure
    effective = min(settings.synergy_cap, 1 + (raw - 1) * limit)
    return max(1.0, effective)


def apply_method_count_bonus(
    stats: StatBundle, character: Character, *, tables: BalanceTables | None = None
) -> StatBundle:
    if character.method_count <= 0:
        return stats
    return stats.scaled(synergy_multiplier(stats, character, tables=tables))


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def apply_base_stats(
    stats: StatBundle, character: Character, *, tables: BalanceTables | None = None
) -> StatBundle:
    return stats.added(character.base_stats).added(aggregate(character, tables=tables))


STAT_PIPELINE: Tuple[Tuple[str, Stage], ...] = (
    ("base", lambda stats, character, tables: apply_base_stats(stats, character, tables=tables)),
    (
        "active_technique",
        lambda stats, character, tables: apply_active_technique(stats, character, tables=tables),
    ),
    (
        "method_count",
        lambda stats, character, tables: apply_method_count_bonus(stats, character, tables=tables),
    ),
)


def run_pipeline(
    character: Character,
    stages: Sequence[Tuple[str, Stage]] = STAT_PIPELINE,
    *,
    tables: BalanceTables | None = None,
    initial: Optional[StatBundle] = None,
) -> StatBundle:
    tables = tables or DEFAULT_TABLES
    stats = initial if initial is not None else StatBundle()
    for name, stage in stages:
        stats = stage(stats, character, tables)
        log.debug("Stage %s -> %s", name, stats.to_mapping())
    return stats


def compute_total_stats(character: Character, *, tables: BalanceTables | None = None) -> StatBundle:
    return run_pipeline(character, tables=tables).non_negative()


__all__ = [
    "STAT_PIPELINE",
    "StatSources",
    "aggregate",
    "aggregate_by_source",
    "apply_active_technique",
    "apply_base_stats",
    "apply_method_count_bonus",
    "apply_soft_cap",
    "compute_total_stats",
    "item_stats",
    "method_count_multiplier",
    "run_pipeline",
    "soft_cap_factor",
    "synergy_multiplier",
]
