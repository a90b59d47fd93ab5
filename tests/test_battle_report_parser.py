"""Golden tests for Battle Report parsing."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from analysis.categories import FieldDataType, RunType
from core.parsers.battle_report import compute_battle_report_checksum, parse_battle_report

pytestmark = [pytest.mark.unit, pytest.mark.golden]

TAB_REPORT = "\n".join(
    [
        "Battle Report",
        "Battle Date\tDec 07, 2025 21:59",
        "Game Time\t10h 24m 52s",
        "Real Time\t2h 17m 23s",
        "Tier\t7",
        "Wave\t1301",
        "Killed By\tBoss",
        "Coins earned\t17.55M",
        "Cash earned\t$55.90M",
        "Combat",
        "Damage dealt\t1.20q",
        "Orb Damage\t400.00T",
        "Enemies Destroyed",
        "Total Enemies\t12,345",
        "Tagged by Deathwave\t3,000",
    ]
)


def test_parse_colon_separated_report() -> None:
    """Extract metadata and keep unknown labels from `Label: Value` lines."""

    raw_text = (
        "Battle Report\n"
        "Battle Date: 2025-12-01 13:45:00\n"
        "Tier: 6\n"
        "Wave: 1234\n"
        "Real Time: 1h 2m 3s\n"
        "Coins Earned: 999999\n"
        "Some New Label: 12\n"
    )

    parsed = parse_battle_report(raw_text)

    assert parsed.checksum == compute_battle_report_checksum(raw_text)
    assert parsed.battle_date == datetime(2025, 12, 1, 13, 45, 0, tzinfo=timezone.utc)
    assert (parsed.tier, parsed.tier_label, parsed.run_type) == (6, "6", RunType.farm)
    assert parsed.wave == 1234
    assert parsed.real_time_seconds == 3723
    assert parsed.fields["coinsEarned"].value == 999_999
    assert parsed.fields["someNewLabel"].value == 12


def test_parse_tab_separated_report() -> None:
    """Type every tab-separated field and skip section headers."""

    parsed = parse_battle_report(TAB_REPORT)

    assert parsed.battle_date == datetime(2025, 12, 7, 21, 59, tzinfo=timezone.utc)
    assert parsed.real_time_seconds == 8243
    assert parsed.fields["gameTime"].data_type == FieldDataType.duration
    assert parsed.fields["killedBy"].value == "Boss"
    assert parsed.fields["cashEarned"].value == pytest.approx(55_900_000.0)
    assert parsed.fields["damageDealt"].value == pytest.approx(1.2e15)
    assert parsed.fields["totalEnemies"].value == 12_345
    assert parsed.fields["taggedByDeathwave"].original_key == "Tagged by Deathwave"
    assert "combat" not in parsed.fields
    assert "battleReport" not in parsed.fields


def test_tournament_tier_marks_run_type() -> None:
    """Treat `N+` tiers as tournament runs of tier N."""

    parsed = parse_battle_report("Tier\t11+\nWave\t500\n")

    assert (parsed.tier, parsed.tier_label, parsed.run_type) == (11, "11+", RunType.tournament)
    assert parsed.fields["tier"].data_type == FieldDataType.string


def test_first_occurrence_wins_and_missing_metadata() -> None:
    """Keep the first value of a repeated label and tolerate missing headers."""

    parsed = parse_battle_report("Coins Earned: 10\nCoins Earned: 20\n")

    assert parsed.fields["coinsEarned"].value == 10
    assert (parsed.battle_date, parsed.tier, parsed.wave, parsed.real_time_seconds) == (
        None,
        None,
        None,
        0,
    )


def test_checksum_ignores_newline_style() -> None:
    """Produce the same checksum for CRLF and LF pastes."""

    assert compute_battle_report_checksum("Tier: 1\r\nWave: 2\r\n") == compute_battle_report_checksum(
        "Tier: 1\nWave: 2"
    )
    assert compute_battle_report_checksum("Tier: 1") != compute_battle_report_checksum("Tier: 2")
