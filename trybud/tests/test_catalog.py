import pytest

from trybud.core.errors import InvalidDurationError, InvalidParametersError
from trybud.features.catalog.service import (
    DAILY_YIELD_BPS,
    list_tiers,
    projected_yield,
    quest_type_label,
    stake_to_usdc,
    tier_for,
    usdc_to_stake,
)
from trybud.models.quest import QuestType


def test_two_week_tier():
    tier = tier_for(14)
    assert tier.stake_amount == 20_000_000
    assert tier.label == "2 Week Challenge"
    assert tier.badge == "Silver"


@pytest.mark.parametrize("days", [0, 1, 6, 8, 21, 60, 91, -7])
def test_unpublished_duration_rejected(days):
    with pytest.raises(InvalidDurationError):
        tier_for(days)


def test_invalid_duration_is_a_parameter_error():
    """Callers catching parameter errors also see bad durations."""
    with pytest.raises(InvalidParametersError):
        tier_for(21)


def test_tiers_are_fixed_and_ordered():
    tiers = list_tiers()
    assert [t.duration_days for t in tiers] == [7, 14, 30, 90]
    assert [t.stake_amount for t in tiers] == [10_000_000, 20_000_000, 50_000_000, 100_000_000]
    assert [t.badge for t in tiers] == ["Bronze", "Silver", "Gold", "Platinum"]


def test_tiers_are_immutable():
    tier = tier_for(7)
    with pytest.raises(Exception):
        tier.stake_amount = 1


def test_quest_type_labels():
    assert quest_type_label(QuestType.JOB_APPLICATIONS) == "Job Applications"
    assert quest_type_label(QuestType.SKILL_BUILDING) == "Skill Building"
    # Wire tags resolve through the same table
    assert quest_type_label("InterviewPrep") == "Interview Prep"


def test_stake_conversion():
    assert stake_to_usdc(50_000_000) == 5.0
    assert usdc_to_stake(20) == 200_000_000
    assert usdc_to_stake(0.00000019) == 1  # floors sub-unit remainder


def test_projected_yield_uses_whole_daily_basis_points():
    assert DAILY_YIELD_BPS == 1
    assert projected_yield(10_000_000, 7) == 7_000
    assert projected_yield(100_000_000, 90) == 900_000
