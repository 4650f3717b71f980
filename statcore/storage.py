"""TOML loading for balance content and engine snapshots.

Balance content lives in a single TOML document.  Every section is optional
and replaces or extends the matching part of :data:`DEFAULT_TABLES`::

    [balance]                 tuning constants (see ``BalanceSettings``)
    [[tiers]]                 realm scales, in ascending order
    [rarities.<name>]         rarity ranges, floors and prices
    [grade_exp_multipliers]   technique grade -> exp multiplier
    [catalog.<name>]          canonical item effects
    [known_items.<name>]      secondary item effects
    [techniques.<key>]        technique definitions
    [talents.<key>]           talent definitions
    [titles.<key>]            title definitions
    [title_sets.<key>]        title set definitions

Character and item snapshots are read from their own files, either at the top
level or under a ``[character]`` / ``[item]`` table.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, TypeVar

import tomllib

from .catalog import CatalogEntry, ReferenceCatalog
from .config import BALANCE_FILE_ENV, BalanceSettings
from .models._validation import ModelValidationError
from .models.items import Item, Rarity
from .models.progression import Character, Talent, Technique, TechniqueGrade, Title, TitleSet
from .tables import DEFAULT_TABLES, BalanceTables, RarityConfig, TierScale

log = logging.getLogger(__name__)

T = TypeVar("T")


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise RuntimeError(f"Missing TOML file at {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise RuntimeError(f"Invalid TOML in {path}: {exc}") from exc


def _section(payload: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = payload.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ModelValidationError(BalanceTables, [f"[{name}] must be a table"])
    return value


def _definitions(
    payload: Mapping[str, Any],
    name: str,
    factory: Callable[[Mapping[str, Any]], T],
    existing: Mapping[str, T],
) -> Mapping[str, T]:
    section = _section(payload, name)
    if not section:
        return existing
    merged: Dict[str, T] = dict(existing)
    for key, data in section.items():
        if not isinstance(data, Mapping):
            raise ModelValidationError(BalanceTables, [f"[{name}.{key}] must be a table"])
        entry = {"key": str(key), "name": str(key), **data}
        merged[str(key)] = factory(entry)
    log.info("Loaded %d %s definition(s)", len(section), name.replace("_", " "))
    return MappingProxyType(merged)


def _tiers(payload: Mapping[str, Any], existing: tuple[TierScale, ...]) -> tuple[TierScale, ...]:
    rows = payload.get("tiers")
    if rows is None:
        return existing
    if not isinstance(rows, list) or not rows:
        raise ModelValidationError(TierScale, ["[[tiers]] must be a non-empty array of tables"])
    tiers = []
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise ModelValidationError(TierScale, [f"tier #{index} must be a table"])
        data = dict(row)
        data.setdefault("name", f"tier-{index}")
        try:
            tiers.append(TierScale.from_dict(data))
        except (TypeError, ValueError) as exc:
            raise ModelValidationError(TierScale, [f"tier #{index}: {exc}"]) from exc
    return tuple(tiers)


def _rarities(
    payload: Mapping[str, Any], existing: Mapping[Rarity, RarityConfig]
) -> Mapping[Rarity, RarityConfig]:
    section = _section(payload, "rarities")
    if not section:
        return existing
    known = {member.value for member in Rarity}
    merged = dict(existing)
    for name, data in section.items():
        normalized = str(name).strip().lower()
        if normalized not in known:
            log.warning("Skipping unknown rarity %r", name)
            continue
        if not isinstance(data, Mapping):
            raise ModelValidationError(RarityConfig, [f"[rarities.{name}] must be a table"])
        rarity = Rarity(normalized)
        try:
            merged[rarity] = RarityConfig.from_dict(data, base=existing.get(rarity))
        except (TypeError, ValueError) as exc:
            raise ModelValidationError(RarityConfig, [f"{name}: {exc}"]) from exc
    return MappingProxyType(merged)


def _grade_multipliers(
    payload: Mapping[str, Any], existing: Mapping[TechniqueGrade, float]
) -> Mapping[TechniqueGrade, float]:
    section = _section(payload, "grade_exp_multipliers")
    if not section:
        return existing
    merged = dict(existing)
    for grade, value in section.items():
        try:
            merged[TechniqueGrade(str(grade).strip().lower())] = float(value)
        except (TypeError, ValueError) as exc:
            raise ModelValidationError(TechniqueGrade, [f"{grade}: {exc}"]) from exc
    return MappingProxyType(merged)


def _catalog(payload: Mapping[str, Any], existing: ReferenceCatalog) -> ReferenceCatalog:
    entries = _section(payload, "catalog")
    known_items = _section(payload, "known_items")
    if not entries and not known_items:
        return existing
    loaded = ReferenceCatalog.from_entries(
        entries=(CatalogEntry.from_dict(str(name), data) for name, data in entries.items()),
        known_items=(CatalogEntry.from_dict(str(name), data) for name, data in known_items.items()),
    )
    log.info("Loaded %d catalog and %d known item entries", len(entries), len(known_items))
    return existing.merged(loaded)


def tables_from_mapping(
    payload: Mapping[str, Any], *, base: BalanceTables = DEFAULT_TABLES
) -> BalanceTables:
    """Overlay a decoded balance document on ``base``."""

    settings = base.settings
    if "balance" in payload:
        settings = BalanceSettings.from_mapping(_section(payload, "balance"))
    return replace(
        base,
        tiers=_tiers(payload, base.tiers),
        rarities=_rarities(payload, base.rarities),
        grade_exp_multipliers=_grade_multipliers(payload, base.grade_exp_multipliers),
        catalog=_catalog(payload, base.catalog),
        techniques=_definitions(payload, "techniques", Technique.from_dict, base.techniques),
        talents=_definitions(payload, "talents", Talent.from_dict, base.talents),
        titles=_definitions(payload, "titles", Title.from_dict, base.titles),
        title_sets=_definitions(payload, "title_sets", TitleSet.from_dict, base.title_sets),
        settings=settings,
    )


def load_tables(path: Path | str, *, base: BalanceTables = DEFAULT_TABLES) -> BalanceTables:
    path = Path(path).expanduser()
    log.info("Loading balance tables from %s", path)
    return tables_from_mapping(_read_toml(path), base=base)


def load_tables_from_env(*, base: BalanceTables = DEFAULT_TABLES) -> BalanceTables:
    """Load the balance document named by ``STATCORE_BALANCE_FILE``, if any."""

    path = os.getenv(BALANCE_FILE_ENV)
    if not path:
        log.debug("%s is not set, using built-in balance tables", BALANCE_FILE_ENV)
        return base
    return load_tables(path, base=base)


def _snapshot(path: Path | str, section: str) -> Mapping[str, Any]:
    payload = _read_toml(Path(path).expanduser())
    nested = payload.get(section)
    if isinstance(nested, Mapping):
        return nested
    return payload


def load_character(path: Path | str) -> Character:
    return Character.from_dict(_snapshot(path, "character"))


def load_item(path: Path | str) -> Item:
    return Item.from_dict(_snapshot(path, "item"))


__all__ = [
    "load_character",
    "load_item",
    "load_tables",
    "load_tables_from_env",
    "tables_from_mapping",
]
