from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from statcore.config import BALANCE_FILE_ENV
from statcore.utils import format_number, main

SWORD_TOML = """
key = "sword"
name = "Jade Sword"
category = "weapon"
equippable = true
effect = { attack = 50 }
"""

CHARACTER_TOML = """
[character]
realm = "QiRefining"
attack = 10
defense = 5
hp = 100
active_technique = "breathing-method"
talent = "spirit-vein"
"""

EQUIPPED_TOML = """
[character]
realm = "QiRefining"
attack = 10

[character.equipped]
weapon = "sword"

[[character.inventory]]
key = "sword"
name = "Jade Sword"
category = "weapon"
effect = { attack = 50 }
"""


@pytest.fixture
def sword_file(tmp_path: Path) -> Path:
    path = tmp_path / "sword.toml"
    path.write_text(SWORD_TOML, encoding="utf-8")
    return path


@pytest.fixture
def character_file(tmp_path: Path) -> Path:
    path = tmp_path / "hero.toml"
    path.write_text(CHARACTER_TOML, encoding="utf-8")
    return path


def test_format_number_uses_apostrophes() -> None:
    assert format_number(1234567) == "1'234'567"
    assert format_number(-9876) == "-9'876"
    assert format_number(12) == "12"


def test_price_command(sword_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["price", str(sword_file)]) == 0

    output = capsys.readouterr().out
    assert "Jade Sword (common) [ATK+50]" in output
    assert "Sell price: 125" in output


def test_price_command_with_custom_tables(
    sword_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    tables = tmp_path / "balance.toml"
    tables.write_text("[rarities.common]\nsell_base_price = 20\n", encoding="utf-8")

    assert main(["--tables", str(tables), "price", str(sword_file)]) == 0
    assert "Sell price: 150" in capsys.readouterr().out


def test_scale_command(sword_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["scale", str(sword_file), "--tier", "GoldenCore", "--rarity", "legendary"])

    assert code == 0
    output = capsys.readouterr().out
    assert "GoldenCore level 1 (legendary)" in output
    assert "ATK+800" in output


def test_scale_command_uses_catalog(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "iron.toml"
    path.write_text('name = "Iron Sword"\ncategory = "weapon"\neffect = { attack = 1 }\n', encoding="utf-8")

    assert main(["scale", str(path)]) == 0
    assert "ATK+50" in capsys.readouterr().out


def test_stats_command(character_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["stats", str(character_file), "--breakdown"]) == 0

    output = capsys.readouterr().out
    assert "QiRefining level 1" in output
    assert "spirit" in output
    assert "talent: spirit 10" in output


def test_stats_command_counts_equipped_items(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "warrior.toml"
    path.write_text(EQUIPPED_TOML, encoding="utf-8")

    assert main(["stats", str(path), "--breakdown"]) == 0

    output = capsys.readouterr().out
    assert "equipment: attack 50" in output
    assert any(line.split() == ["attack", "60"] for line in output.splitlines())


def test_balance_file_from_environment(
    sword_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    tables = tmp_path / "balance.toml"
    tables.write_text("[rarities.common]\nsell_base_price = 20\n", encoding="utf-8")
    monkeypatch.setenv(BALANCE_FILE_ENV, str(tables))

    assert main(["price", str(sword_file)]) == 0
    assert "Sell price: 150" in capsys.readouterr().out


def test_exp_rate_command(character_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["exp-rate", str(character_file)]) == 0

    output = capsys.readouterr().out
    assert "talent" in output
    assert "Total: +32.0%" in output


def test_missing_file_reports_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["price", str(tmp_path / "absent.toml")]) == 1
    assert "Missing" in capsys.readouterr().err


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()
