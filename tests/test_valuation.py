from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from statcore.models.items import Item, Rarity
from statcore.models.stats import Effect, StatBundle
from statcore.valuation import attribute_preview, attribute_value, compare_item_stats, compute_sell_price


def test_item_without_effects_still_sells_for_something() -> None:
    dust = Item(key="dust", name="Dust")

    assert compute_sell_price(dust) == 3
    assert compute_sell_price(Item(key="scroll", name="Scroll", category="recipe")) == 10


def test_weapon_price_includes_equipment_bonus() -> None:
    sword = Item(key="sword", name="Sword", category="weapon", effect={"attack": 50}, equippable=True)

    assert attribute_value(sword) == 100
    assert compute_sell_price(sword) == 125


def test_enchant_level_raises_price() -> None:
    sword = Item(
        key="sword", name="Sword", category="weapon", level=5, effect={"attack": 50}, equippable=True
    )

    assert compute_sell_price(sword) == 250


def test_equipment_bonus_requires_equippable_flag() -> None:
    display_sword = Item(key="sword", name="Sword", category="weapon", effect={"attack": 50})

    assert display_sword.is_equipment
    assert compute_sell_price(display_sword) == 110


def test_consumables_are_discounted() -> None:
    pill = Item(
        key="pill",
        name="Pill",
        category="pill",
        rarity=Rarity.LEGENDARY,
        effect={"exp": 1000},
        permanent_effect={"spirit": 10},
    )

    assert attribute_value(pill) == 450
    assert compute_sell_price(pill) == 375


def test_permanent_max_hp_is_weighted() -> None:
    pill = Item(key="pill", name="Pill", category="pill", rarity="rare", permanent_effect={"max_hp": 100})

    assert compute_sell_price(pill) == 250


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), -1000.0])
def test_degenerate_values_fall_back_to_minimum_price(value: float) -> None:
    item = Item(key="odd", name="Odd", effect=Effect(attack=value))

    assert compute_sell_price(item) == 1


@pytest.mark.parametrize("rarity", list(Rarity))
@pytest.mark.parametrize("category", ["weapon", "herb", "material", "advanced"])
def test_sell_price_is_at_least_one(rarity: Rarity, category: str) -> None:
    assert compute_sell_price(Item(key="x", name="X", category=category, rarity=rarity)) >= 1


def test_attribute_preview_formats_present_fields() -> None:
    assert attribute_preview(Effect(attack=10, defense=5)) == " [ATK+10 DEF+5]"
    assert attribute_preview(Effect(hp=-3.5, exp=20)) == " [HP-3.5 EXP+20]"
    assert attribute_preview(Effect()) == ""
    assert attribute_preview(None) == ""


def test_compare_item_stats_reports_difference() -> None:
    candidate = Item(key="new", name="New", category="weapon", effect={"attack": 60})
    current = Item(key="old", name="Old", category="weapon", effect={"attack": 40, "defense": 10})

    assert compare_item_stats(candidate, current) == StatBundle(attack=20, defense=-10)
    assert compare_item_stats(candidate) == StatBundle(attack=60)
    assert compare_item_stats(candidate, current, candidate_natal=True).attack == 50
