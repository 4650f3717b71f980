from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from statcore.config import BalanceSettings
from statcore.tables import DEFAULT_TABLES


def test_from_mapping_casts_and_ignores_bad_values() -> None:
    settings = BalanceSettings.from_mapping(
        {
            "soft_cap_threshold": "1500",
            "soft_cap_count_baseline": 10.0,
            "natal_multiplier": "strong",
            "bogus": 1,
        }
    )

    assert settings.soft_cap_threshold == pytest.approx(1500.0)
    assert settings.soft_cap_count_baseline == 10
    assert isinstance(settings.soft_cap_count_baseline, int)
    assert settings.natal_multiplier == pytest.approx(1.5)


def test_from_mapping_without_data_keeps_defaults() -> None:
    assert BalanceSettings.from_mapping(None) == BalanceSettings()
    assert BalanceSettings.from_mapping({}) == BalanceSettings()


def test_tables_lookups_never_raise() -> None:
    tables = DEFAULT_TABLES

    assert tables.tier_scale("Immortal Emperor") is tables.tiers[0]
    assert tables.tier_scale(-1) is tables.tiers[0]
    assert tables.tier_multiplier(6) == pytest.approx(10.0)
    assert tables.soft_cap_factor(42) == pytest.approx(0.8)
    assert tables.synergy_factor(42) == pytest.approx(1.0)
    assert tables.rarity_config("mythic") is tables.rarity_config("common")
    assert tables.technique("missing") is None
    assert tables.talent(None) is None
    assert tables.grade_multiplier("heaven") == pytest.approx(2.0)
    assert tables.grade_multiplier("unknown") == pytest.approx(1.0)


def test_default_tier_scales_match_realm_progression() -> None:
    golden_core = DEFAULT_TABLES.tier_scale("GoldenCore")

    assert golden_core.base_attack == 200
    assert golden_core.base_for("hp") == 2500
    assert golden_core.base_for("max_hp") == 2500
    assert golden_core.multiplier == pytest.approx(2.0)
    assert [tier.multiplier for tier in DEFAULT_TABLES.tiers] == [1.0, 1.3, 2.0, 3.0, 4.5, 6.5, 10.0]
