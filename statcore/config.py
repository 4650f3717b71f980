"""Balance configuration utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

log = logging.getLogger(__name__)

BALANCE_FILE_ENV = "STATCORE_BALANCE_FILE"


@dataclass(frozen=True, slots=True)
class BalanceSettings:
    """Tuning constants for scaling, soft caps and the synergy limiter."""

    tier_level_step: float = 0.08
    equipment_floor_ratio: float = 0.8
    equipment_ceiling_ratio: float = 1.5

    soft_cap_threshold: float = 1000.0
    soft_cap_level_step: float = 0.01
    soft_cap_count_baseline: int = 8
    soft_cap_count_step: float = 0.05
    soft_cap_count_min: float = 0.5
    soft_cap_discount_base: float = 0.5
    soft_cap_discount_slope: float = 0.3
    soft_cap_discount_max: float = 0.8

    synergy_cap: float = 10.0
    synergy_level_step: float = 0.005
    synergy_magnitude_numerator: float = 100_000.0
    synergy_magnitude_offset: float = 10_000.0
    synergy_limit_min: float = 0.5
    synergy_limit_max: float = 1.0

    natal_multiplier: float = 1.5
    root_affinity_step: float = 0.005
    root_exp_step: float = 0.001
    root_breakthrough_step: float = 0.0005
    enchant_step: float = 0.2
    method_count_step: float = 0.1

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "BalanceSettings":
        settings = cls()
        if not data:
            return settings
        overrides: dict[str, Any] = {}
        for spec in fields(cls):
            if spec.name not in data:
                continue
            raw = data[spec.name]
            caster = int if spec.type in ("int", int) else float
            try:
                overrides[spec.name] = caster(raw)
            except (TypeError, ValueError):
                log.warning("Ignoring invalid balance value %s=%r", spec.name, raw)
        unknown = set(data) - {spec.name for spec in fields(cls)}
        if unknown:
            log.debug("Ignoring unknown balance keys: %s", ", ".join(sorted(unknown)))
        return replace(settings, **overrides)


DEFAULT_SETTINGS = BalanceSettings()


__all__ = ["BALANCE_FILE_ENV", "BalanceSettings", "DEFAULT_SETTINGS"]
