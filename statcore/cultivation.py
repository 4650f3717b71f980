"""Cultivation speed and the bonuses derived from roots and titles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from .config import DEFAULT_SETTINGS, BalanceSettings
from .models.progression import Character, Technique, TitleSet
from .models.stats import EFFECT_FIELDS, Effect, SpiritualRoots
from .tables import DEFAULT_TABLES, BalanceTables

log = logging.getLogger(__name__)


def root_affinity_multiplier(
    technique: Optional[Technique],
    roots: SpiritualRoots,
    settings: BalanceSettings = DEFAULT_SETTINGS,
) -> float:
    """Return the factor a technique gains from matching spiritual roots.

    The technique's root weights are dotted with the character's roots and
    normalised by the total weight, so the factor is always at least 1.
    """

    if technique is None or not technique.root_affinity:
        return 1.0
    total_weight = sum(technique.root_affinity.values())
    if total_weight <= 0:
        return 1.0
    weighted = sum(weight * roots.get(name) for name, weight in technique.root_affinity.items())
    return 1.0 + max(0.0, weighted / total_weight) * settings.root_affinity_step


def spiritual_root_exp_multiplier(
    roots: SpiritualRoots, settings: BalanceSettings = DEFAULT_SETTINGS
) -> float:
    return 1.0 + roots.total * settings.root_exp_step


def spiritual_root_breakthrough_bonus(
    roots: SpiritualRoots, settings: BalanceSettings = DEFAULT_SETTINGS
) -> float:
    return roots.total * settings.root_breakthrough_step


def active_title_sets(
    title: Optional[str],
    unlocked: Iterable[str],
    *,
    tables: BalanceTables | None = None,
) -> Tuple[TitleSet, ...]:
    """Return every title set containing ``title`` whose members are all unlocked."""

    tables = tables or DEFAULT_TABLES
    if not title:
        return ()
    owned: FrozenSet[str] = frozenset(unlocked) | {title}
    return tuple(
        title_set
        for _, title_set in sorted(tables.title_sets.items())
        if title_set.is_active(title, owned)
    )


def _sum_effects(effects: Iterable[Effect]) -> Effect:
    totals: Dict[str, float] = {}
    for effect in effects:
        for name, value in effect.present():
            totals[name] = totals.get(name, 0.0) + value
    return Effect(**{name: totals[name] for name in EFFECT_FIELDS if name in totals})


def title_effect(
    title: Optional[str],
    unlocked: Iterable[str] = (),
    *,
    tables: BalanceTables | None = None,
) -> Effect:
    """Return the equipped title's effect with active set bonuses folded in."""

    tables = tables or DEFAULT_TABLES
    definition = tables.title(title)
    if definition is None:
        return Effect()
    sets = active_title_sets(title, unlocked, tables=tables)
    return _sum_effects([definition.effect, *(entry.effect for entry in sets)])


def title_exp_rate(
    title: Optional[str],
    unlocked: Iterable[str] = (),
    *,
    tables: BalanceTables | None = None,
) -> float:
    tables = tables or DEFAULT_TABLES
    definition = tables.title(title)
    if definition is None:
        return 0.0
    sets = active_title_sets(title, unlocked, tables=tables)
    return definition.exp_rate + sum(entry.exp_rate for entry in sets)


@dataclass(frozen=True, slots=True)
class ExpRate:
    """Per-source cultivation speed bonuses and their compounded total."""

    technique: float = 0.0
    talent: float = 0.0
    title: float = 0.0
    dwelling: float = 0.0
    root_affinity: float = 1.0

    @property
    def sources(self) -> Tuple[float, ...]:
        return (self.technique, self.talent, self.title, self.dwelling)

    @property
    def multiplier(self) -> float:
        product = 1.0
        for source in self.sources:
            product *= 1.0 + source
        return product

    @property
    def total(self) -> float:
        return self.multiplier - 1.0

    def breakdown(self) -> Dict[str, float]:
        return {
            "technique": self.technique,
            "talent": self.talent,
            "title": self.title,
            "dwelling": self.dwelling,
            "root_affinity": self.root_affinity,
            "total": self.total,
        }


def compute_exp_rate(character: Character, *, tables: BalanceTables | None = None) -> ExpRate:
    tables = tables or DEFAULT_TABLES
    technique = tables.technique(character.active_technique)
    affinity = root_affinity_multiplier(technique, character.spiritual_roots, tables.settings)
    technique_rate = 0.0
    if technique is not None:
        technique_rate = technique.exp_rate * tables.grade_multiplier(technique.grade) * affinity

    talent = tables.talent(character.talent)
    talent_rate = talent.exp_rate if talent is not None else 0.0
    title_rate = title_exp_rate(character.title, character.unlocked_titles, tables=tables)

    return ExpRate(
        technique=max(0.0, technique_rate),
        talent=max(0.0, talent_rate),
        title=max(0.0, title_rate),
        dwelling=max(0.0, character.dwelling.total_bonus),
        root_affinity=affinity,
    )


__all__ = [
    "ExpRate",
    "active_title_sets",
    "compute_exp_rate",
    "root_affinity_multiplier",
    "spiritual_root_breakthrough_bonus",
    "spiritual_root_exp_multiplier",
    "title_effect",
    "title_exp_rate",
]
