"""Reference catalog: canonical effects for named items.

Items that share a name must always resolve to the same numbers, no matter
what a generator proposed for them.  A name found in the catalog is resolved
from the catalog alone; the smaller table of known items is only consulted for
names the catalog lacks.  A non-empty bundle replaces the supplied bundle
wholesale, never field by field.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, NamedTuple, Optional

from .models.stats import Effect

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    name: str
    effect: Optional[Effect] = None
    permanent_effect: Optional[Effect] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "effect", Effect.coerce(self.effect))
        object.__setattr__(self, "permanent_effect", Effect.coerce(self.permanent_effect))

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "CatalogEntry":
        effect = data.get("effect")
        permanent = data.get("permanent_effect", data.get("permanentEffect"))
        return cls(name=name, effect=effect, permanent_effect=permanent)


class ResolvedEffects(NamedTuple):
    effect: Optional[Effect]
    permanent_effect: Optional[Effect]


def _has_values(effect: Optional[Effect]) -> bool:
    return effect is not None and not effect.is_empty


def _index(entries: Iterable[CatalogEntry]) -> Mapping[str, CatalogEntry]:
    return MappingProxyType({entry.name: entry for entry in entries})


@dataclass(frozen=True, slots=True)
class ReferenceCatalog:
    """Static name to effect lookup, read-only after construction."""

    entries: Mapping[str, CatalogEntry] = field(default_factory=dict)
    known_items: Mapping[str, CatalogEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("entries", "known_items"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[CatalogEntry] = (),
        known_items: Iterable[CatalogEntry] = (),
    ) -> "ReferenceCatalog":
        return cls(entries=_index(entries), known_items=_index(known_items))

    def __contains__(self, name: object) -> bool:
        return name in self.entries or name in self.known_items

    def lookup(self, name: str) -> Optional[CatalogEntry]:
        entry = self.entries.get(name)
        return entry if entry is not None else self.known_items.get(name)

    def merged(self, other: "ReferenceCatalog") -> "ReferenceCatalog":
        """Return a catalog where ``other`` overrides entries of the same name."""

        return ReferenceCatalog(
            entries={**self.entries, **other.entries},
            known_items={**self.known_items, **other.known_items},
        )

    def resolve(
        self,
        name: str,
        effect: Optional[Effect] = None,
        permanent_effect: Optional[Effect] = None,
    ) -> ResolvedEffects:
        entry = self.lookup(name)
        if entry is None:
            return ResolvedEffects(Effect.coerce(effect), Effect.coerce(permanent_effect))
        log.debug("Resolved %r from the reference catalog", name)
        return ResolvedEffects(
            entry.effect if _has_values(entry.effect) else Effect.coerce(effect),
            entry.permanent_effect
            if _has_values(entry.permanent_effect)
            else Effect.coerce(permanent_effect),
        )


def _entry(
    name: str,
    effect: Mapping[str, float] | None = None,
    permanent: Mapping[str, float] | None = None,
) -> CatalogEntry:
    return CatalogEntry(name=name, effect=effect, permanent_effect=permanent)


DEFAULT_CATALOG = ReferenceCatalog.from_entries(
    entries=(
        _entry("Refining Stone"),
        _entry("Hemostatic Grass", {"hp": 200}),
        _entry("Spirit Gathering Grass"),
        _entry("Iron Sword", {"attack": 50}),
        _entry("Coarse Cloth Robe", {"defense": 30, "hp": 100}),
        _entry("Qi Gathering Pill", {"exp": 150}),
        _entry(
            "Foundation Building Pill",
            {"exp": 500},
            {"spirit": 30, "physique": 30, "max_hp": 100},
        ),
        _entry(
            "Realm Breaking Pill",
            {"exp": 10000},
            {"spirit": 50, "physique": 50, "attack": 30, "defense": 30},
        ),
    ),
    known_items=(
        _entry("Hemostatic Grass", {"hp": 20}),
        _entry("Qi Restoring Grass", {"hp": 30}),
        _entry("Spirit Focusing Flower", {"hp": 50, "spirit": 5}),
        _entry("Blood Ginseng", {"hp": 80}),
        _entry(
            "Millennium Lingzhi",
            {"hp": 150},
            {"max_hp": 40, "spirit": 20, "physique": 15, "max_lifespan": 30},
        ),
        _entry(
            "Myriad-Year Immortal Grass",
            {"hp": 300},
            {"max_hp": 100, "spirit": 100, "physique": 80, "speed": 50, "max_lifespan": 200},
        ),
        _entry("Healing Pill", {"hp": 50}),
        _entry("Body Tempering Pill", None, {"physique": 20}),
        _entry("Spirit Focusing Pill", None, {"spirit": 20}),
        _entry(
            "Immortal Spirit Pill",
            {"exp": 2000, "spirit": 50, "physique": 50},
            {
                "max_lifespan": 300,
                "spirit": 300,
                "attack": 300,
                "defense": 300,
                "physique": 300,
                "speed": 300,
            },
        ),
    ),
)


def resolve_effect(
    name: str,
    effect: Optional[Effect] = None,
    permanent_effect: Optional[Effect] = None,
    *,
    catalog: ReferenceCatalog | None = None,
) -> ResolvedEffects:
    """Return the canonical ``(effect, permanent_effect)`` for an item name."""

    if catalog is None:
        catalog = DEFAULT_CATALOG
    return catalog.resolve(name, effect, permanent_effect)


__all__ = [
    "CatalogEntry",
    "DEFAULT_CATALOG",
    "ReferenceCatalog",
    "ResolvedEffects",
    "resolve_effect",
]
