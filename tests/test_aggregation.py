from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from statcore.aggregation import (
    STAT_PIPELINE,
    aggregate,
    aggregate_by_source,
    apply_active_technique,
    apply_method_count_bonus,
    apply_soft_cap,
    compute_total_stats,
    item_stats,
    method_count_multiplier,
    run_pipeline,
    soft_cap_factor,
    synergy_multiplier,
)
from statcore.models.items import Item
from statcore.models.progression import Character, Technique
from statcore.models.stats import StatBundle
from statcore.tables import DEFAULT_TABLES, TierScale

ALL_TITLES = ("outer-disciple", "inner-disciple", "core-disciple")


@pytest.fixture
def disciple() -> Character:
    return Character(
        tier=0,
        tier_level=1,
        base_stats=StatBundle(attack=10, defense=5, max_hp=100, spirit=5, physique=10, speed=10),
        known_techniques=("iron-body-art", "breathing-method"),
        active_technique="breathing-method",
        talent="sword-heart",
        title="inner-disciple",
        unlocked_titles=frozenset(ALL_TITLES),
        equipped={"weapon": "sword", "chest": "robe"},
        inventory=[
            Item(key="sword", name="Jade Sword", category="weapon", effect={"attack": 40}),
            Item(key="robe", name="Silk Robe", category="armor", effect={"defense": 20, "hp": 100}),
        ],
        natal_item="sword",
        spiritual_roots={"earth": 100},
    )


def test_soft_cap_discounts_crowded_equipment() -> None:
    assert soft_cap_factor(2, 1, 12) == pytest.approx(0.64)

    capped = apply_soft_cap(5000, 2, 1, 12)

    assert capped == 3657
    assert 640 < capped < 5000


def test_soft_cap_leaves_values_at_or_below_threshold() -> None:
    assert apply_soft_cap(640, 2, 1, 12) == 640
    assert apply_soft_cap(100, 2, 1, 12) == 100
    assert apply_soft_cap(0, 6, 9, 0) == 0


@pytest.mark.parametrize(("tier", "tier_level", "count"), [(0, 1, 1), (2, 1, 12), (6, 9, 0), (99, 3, 30)])
def test_soft_cap_is_monotonic_and_never_exceeds_input(tier: int, tier_level: int, count: int) -> None:
    previous = None
    for raw in range(0, 40_000, 125):
        capped = apply_soft_cap(raw, tier, tier_level, count)
        assert capped <= raw
        if previous is not None:
            assert capped >= previous
        previous = capped


def test_item_stats_applies_natal_multiplier() -> None:
    item = Item(key="ring", name="Ring", category="ring", effect={"attack": 11, "hp": 7, "exp": 100})

    assert item_stats(item) == StatBundle(attack=11, max_hp=7)
    assert item_stats(item, natal=True) == StatBundle(attack=16, max_hp=10)


def test_aggregate_by_source_breaks_down_each_bonus(disciple: Character) -> None:
    sources = aggregate_by_source(disciple)

    assert sources.techniques == StatBundle(defense=15, max_hp=75)
    assert sources.equipment == StatBundle(attack=60, defense=20, max_hp=100)
    assert sources.talent == StatBundle(attack=15, speed=5)
    assert sources.title == StatBundle(attack=60, defense=60)
    assert aggregate(disciple) == StatBundle(attack=135, defense=95, max_hp=175, speed=5)


def test_aggregate_counts_every_technique_but_the_active_mental_one(disciple: Character) -> None:
    body_active = replace(disciple, active_technique="iron-body-art")

    assert aggregate_by_source(body_active).techniques == StatBundle(defense=15, max_hp=75, spirit=5)


def test_aggregate_skips_missing_and_unknown_references(disciple: Character) -> None:
    broken = replace(
        disciple,
        equipped={**{slot.value: key for slot, key in disciple.equipped.items()}, "ring4": "ghost"},
        known_techniques=(*disciple.known_techniques, "lost-scroll"),
    )

    assert aggregate(broken) == aggregate(disciple)
    assert aggregate(replace(disciple, talent="nobody", title="nobody")) == StatBundle(
        attack=60, defense=35, max_hp=175
    )


def test_equipment_sum_is_soft_capped(disciple: Character) -> None:
    slots = ["weapon", "head", "shoulder", "chest", "gloves", "legs", "boots", "ring1", "ring2", "ring3"]
    inventory = [
        Item(key=f"blade-{index}", name="Blade", category="weapon", effect={"attack": 200})
        for index in range(len(slots))
    ]
    character = replace(
        disciple,
        equipped={slot: f"blade-{index}" for index, slot in enumerate(slots)},
        inventory=inventory,
        natal_item=None,
    )

    equipment = aggregate_by_source(character).equipment

    assert equipment.attack == apply_soft_cap(2000, 0, 1, 10)
    assert equipment.attack < 2000


def test_active_technique_applies_flat_before_percent() -> None:
    focus = Technique(
        key="focus",
        name="Focus",
        type="mental",
        effect={"attack": 10},
        percent={"attack": 0.5, "max_hp": 0.25},
    )
    tables = replace(DEFAULT_TABLES, techniques={"focus": focus})
    character = Character(active_technique="focus")

    stats = apply_active_technique(StatBundle(attack=90, max_hp=1000), character, tables=tables)

    assert stats.attack == 150
    assert stats.max_hp == 1250


def test_body_technique_is_not_applied_as_active() -> None:
    stance = Technique(key="stance", name="Stance", type="body", effect={"attack": 10})
    tables = replace(DEFAULT_TABLES, techniques={"stance": stance})
    character = Character(known_techniques=("stance",), active_technique="stance")
    stats = StatBundle(attack=90)

    assert apply_active_technique(stats, character, tables=tables) is stats
    assert aggregate(character, tables=tables).attack == 10


def test_method_count_is_inactive_at_zero() -> None:
    stats = StatBundle(attack=100)

    assert apply_method_count_bonus(stats, Character(tier=2)) is stats
    assert synergy_multiplier(stats, Character(tier=2)) == 1.0


def test_method_count_bonus_is_limited_by_synergy() -> None:
    character = Character(tier=2, method_count=50)
    stats = StatBundle(attack=500, defense=300, max_hp=5000, spirit=200, physique=200, speed=100)

    multiplier = synergy_multiplier(stats, character)

    assert method_count_multiplier(50) == pytest.approx(6.0)
    assert multiplier == pytest.approx(5.5)
    assert multiplier < method_count_multiplier(50)
    assert apply_method_count_bonus(StatBundle(attack=101), character).attack == 555


def test_synergy_hard_cap_for_strong_characters() -> None:
    character = Character(tier=6, tier_level=9, method_count=1000)

    assert synergy_multiplier(StatBundle(attack=10**6), character) == pytest.approx(10.0)


@pytest.mark.parametrize("tier", [0, 3, 6, 99])
@pytest.mark.parametrize("count", [0, 1, 7, 50, 10_000])
@pytest.mark.parametrize("stats", [StatBundle(), StatBundle(attack=10**7, max_hp=10**8)])
def test_synergy_multiplier_stays_within_bounds(tier: int, count: int, stats: StatBundle) -> None:
    multiplier = synergy_multiplier(stats, Character(tier=tier, method_count=count))

    assert 1.0 <= multiplier <= 10.0


def test_compute_total_stats_runs_every_stage(disciple: Character) -> None:
    total = compute_total_stats(disciple)

    assert total == StatBundle(attack=145, defense=100, max_hp=275, spirit=10, physique=10, speed=15)


def test_pipeline_stages_can_run_individually(disciple: Character) -> None:
    names = [name for name, _ in STAT_PIPELINE]
    base_only = run_pipeline(disciple, STAT_PIPELINE[:1])

    assert names == ["base", "active_technique", "method_count"]
    assert base_only == disciple.base_stats.added(aggregate(disciple))
    assert run_pipeline(disciple) == compute_total_stats(disciple)


def test_total_stats_are_never_negative() -> None:
    cursed = Item(key="curse", name="Cursed Band", category="ring", effect={"attack": -500})
    character = Character(equipped={"ring1": "curse"}, inventory=[cursed])

    assert compute_total_stats(character).attack == 0


def test_character_beyond_default_realms_uses_injected_tier() -> None:
    ascended = TierScale(
        name="Ascension",
        base_attack=500_000,
        base_defense=250_000,
        base_max_hp=5_000_000,
        base_spirit=250_000,
        base_physique=500_000,
        base_speed=100_000,
        multiplier=15.0,
        soft_cap_factor=2.0,
        synergy_factor=1.2,
    )
    tables = replace(DEFAULT_TABLES, tiers=DEFAULT_TABLES.tiers + (ascended,))
    character = Character(
        tier=7,
        equipped={"weapon": "blade"},
        inventory=[Item(key="blade", name="Sky Blade", category="weapon", effect={"attack": 3000})],
    )

    assert character.tier == 7
    assert tables.tier_scale(character.tier) is ascended
    assert soft_cap_factor(character.tier, 1, 8, tables=tables) == pytest.approx(2.0)
    equipment = aggregate_by_source(character, tables=tables).equipment
    assert equipment.attack == apply_soft_cap(3000, 7, 1, 1, tables=tables)
    assert equipment.attack > apply_soft_cap(3000, 0, 1, 1, tables=tables)
