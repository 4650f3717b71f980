from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from statcore.cultivation import title_effect
from statcore.models._validation import ModelValidationError
from statcore.models.items import ItemCategory, Rarity
from statcore.models.stats import Effect
from statcore.config import BALANCE_FILE_ENV
from statcore.storage import (
    load_character,
    load_item,
    load_tables,
    load_tables_from_env,
    tables_from_mapping,
)
from statcore.tables import DEFAULT_TABLES

BALANCE_TOML = """
[balance]
soft_cap_threshold = 2000

[rarities.common]
sell_base_price = 20

[rarities.mythic]
sell_base_price = 1

[grade_exp_multipliers]
earth = 1.75

[catalog."Iron Sword"]
effect = { attack = 75 }

[techniques.storm-art]
name = "Storm Art"
grade = "earth"
type = "mental"
effect = { attack = 5, attackPercent = 0.1 }
expRate = 0.4
spiritual_root = "water"

[titles.wanderer]
name = "Wanderer"
effect = { speed = 3 }
exp_rate = 0.05

[title_sets.lonely-road]
titles = ["wanderer"]
effect = { speed = 7 }
"""

CHARACTER_TOML = """
[character]
realm = "Foundation"
realm_level = 3
attack = 50
known_techniques = ["iron-body-art"]
natal_item = "sword"

[character.equipped]
weapon = "sword"

[[character.inventory]]
key = "sword"
name = "Jade Sword"
category = "weapon"
rarity = "rare"
effect = { attack = 120 }
"""


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_load_tables_overlays_defaults(tmp_path: Path) -> None:
    tables = load_tables(_write(tmp_path / "balance.toml", BALANCE_TOML))

    assert tables.settings.soft_cap_threshold == pytest.approx(2000)
    assert tables.settings.natal_multiplier == pytest.approx(1.5)
    common = tables.rarity_config("common")
    assert common.sell_base_price == pytest.approx(20)
    assert common.percent_min == pytest.approx(0.25)
    assert set(tables.rarities) == set(Rarity)
    assert tables.grade_multiplier("earth") == pytest.approx(1.75)
    assert tables.grade_multiplier("heaven") == pytest.approx(2.0)
    assert tables.tiers == DEFAULT_TABLES.tiers


def test_load_tables_merges_content(tmp_path: Path) -> None:
    tables = load_tables(_write(tmp_path / "balance.toml", BALANCE_TOML))

    assert tables.catalog.resolve("Iron Sword").effect == Effect(attack=75)
    assert tables.catalog.resolve("Hemostatic Grass").effect == Effect(hp=200)

    storm = tables.technique("storm-art")
    assert storm is not None
    assert storm.name == "Storm Art"
    assert storm.percent.attack == pytest.approx(0.1)
    assert storm.exp_rate == pytest.approx(0.4)
    assert dict(storm.root_affinity) == {"water": 1.0}
    assert tables.technique("breathing-method") is not None

    assert title_effect("wanderer", (), tables=tables) == Effect(speed=10)


def test_tiers_section_replaces_realm_scales() -> None:
    tables = tables_from_mapping(
        {
            "tiers": [
                {"name": "Mortal", "baseAttack": 1, "baseDefense": 1, "baseMaxHp": 10,
                 "baseSpirit": 1, "basePhysique": 1, "baseSpeed": 1},
                {"name": "Immortal", "base_attack": 100, "base_defense": 100, "base_max_hp": 1000,
                 "base_spirit": 100, "base_physique": 100, "base_speed": 100, "multiplier": 5},
            ]
        }
    )

    assert [tier.name for tier in tables.tiers] == ["Mortal", "Immortal"]
    assert tables.tier_multiplier(1) == pytest.approx(5.0)
    assert tables.tier_scale(5).name == "Mortal"


def test_incomplete_tier_is_rejected() -> None:
    with pytest.raises(ModelValidationError):
        tables_from_mapping({"tiers": [{"name": "Broken", "baseAttack": 1}]})


def test_malformed_definition_is_rejected() -> None:
    with pytest.raises(ModelValidationError):
        tables_from_mapping({"techniques": {"bad": {"name": "Bad", "effect": {"attack": "lots"}}}})
    with pytest.raises(ModelValidationError):
        tables_from_mapping({"title_sets": {"empty": {"titles": []}}})


def test_missing_balance_file_raises(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        load_tables(tmp_path / "absent.toml")


def test_invalid_balance_file_raises(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        load_tables(_write(tmp_path / "broken.toml", "[balance\n"))


def test_tables_from_env_default_without_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(BALANCE_FILE_ENV, raising=False)

    assert load_tables_from_env() is DEFAULT_TABLES


def test_tables_from_env_loads_configured_file(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    path = _write(tmp_path / "balance.toml", "[balance]\ntier_level_step = 0.05\n")
    monkeypatch.setenv(BALANCE_FILE_ENV, str(path))

    tables = load_tables_from_env()

    assert tables.settings.tier_level_step == pytest.approx(0.05)
    assert tables.tiers == DEFAULT_TABLES.tiers


def test_load_character_reads_nested_table(tmp_path: Path) -> None:
    character = load_character(_write(tmp_path / "hero.toml", CHARACTER_TOML))

    assert character.tier == 1
    assert character.tier_level == 3
    assert character.base_stats.attack == 50
    ((item, natal),) = character.equipped_items()
    assert item.name == "Jade Sword"
    assert item.rarity is Rarity.RARE
    assert natal


def test_load_item_reads_top_level_document(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "herb.toml",
        'key = "herb"\nname = "Blood Ginseng"\ntype = "herb"\neffect = { hp = 80 }\n',
    )

    item = load_item(path)

    assert item.category is ItemCategory.HERB
    assert item.effect == Effect(hp=80)


def test_load_item_rejects_invalid_payload(tmp_path: Path) -> None:
    path = _write(tmp_path / "bad.toml", 'key = "bad"\nname = "Bad"\nlevel = "high"\n')

    with pytest.raises(ModelValidationError):
        load_item(path)
