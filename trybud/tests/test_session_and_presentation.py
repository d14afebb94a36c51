from datetime import datetime, timezone

import pytest

from trybud.core.errors import InvalidParametersError, UnauthenticatedError
from trybud.features.presentation.service import (
    build_dashboard,
    build_quest_card,
    celebration,
    progress_message,
)
from trybud.models.quest import Quest, QuestStatus, QuestType

OWNER = "GWALLET"
NOW = datetime(2024, 1, 8, tzinfo=timezone.utc)


def _quest(quest_id=1, days_completed=0, status=QuestStatus.ACTIVE, duration_days=7, stake=10_000_000):
    return Quest(
        id=quest_id,
        owner=OWNER,
        type=QuestType.JOB_APPLICATIONS,
        daily_target=5,
        duration_days=duration_days,
        grace_days=1,
        stake_amount=stake,
        status=status,
        days_completed=days_completed,
    )


# Session store

def test_award_points_accumulates(sessions):
    sessions.award_points(OWNER)
    session = sessions.award_points(OWNER)
    assert session.bonus_points == 200


def test_award_explicit_amount(sessions):
    assert sessions.award_points(OWNER, 35).bonus_points == 35


@pytest.mark.parametrize("amount", [0, -10])
def test_award_rejects_non_positive(sessions, amount):
    with pytest.raises(InvalidParametersError):
        sessions.award_points(OWNER, amount)
    assert sessions.get(OWNER).bonus_points == 0


def test_sessions_are_per_wallet(sessions):
    sessions.award_points(OWNER)
    assert sessions.get("GOTHER").bonus_points == 0


def test_session_requires_wallet(sessions):
    with pytest.raises(UnauthenticatedError):
        sessions.get("")


def test_first_observation_is_baseline(sessions):
    assert sessions.observe_stage(OWNER, 3) is False
    assert sessions.observe_stage(OWNER, 3) is False
    assert sessions.observe_stage(OWNER, 4) is True
    assert sessions.observe_stage(OWNER, 4) is False
    assert sessions.observe_stage(OWNER, 2) is False


def test_reset_clears_session(sessions):
    sessions.award_points(OWNER)
    sessions.observe_stage(OWNER, 1)
    sessions.reset(OWNER)
    session = sessions.get(OWNER)
    assert session.bonus_points == 0
    assert session.last_stage is None


# Presentation

def test_quest_card():
    card = build_quest_card(_quest(days_completed=3))
    assert card["typeLabel"] == "Job Applications"
    assert card["tierLabel"] == "1 Week Sprint"
    assert card["badge"] == "Bronze"
    assert card["stakeUsdc"] == 1.0
    assert card["progressLabel"] == "3/7 days"
    assert card["targetLabel"] == "5/day"
    assert card["canLog"] is True


def test_card_cannot_log_when_full_or_terminal():
    assert build_quest_card(_quest(days_completed=7))["canLog"] is False
    assert build_quest_card(_quest(days_completed=2, status=QuestStatus.FAILED))["canLog"] is False


def test_celebration_only_on_stage_cross():
    assert celebration(450, 480) is None
    banner = celebration(450, 500)
    assert banner == {"stage": 1, "label": "Getting Started", "message": "LEVEL UP!"}


def test_progress_message():
    assert progress_message(2900) == "2900 pts to go!"
    assert progress_message(0) == "Level Up!"


def test_dashboard_view_model(sessions):
    quests = [
        _quest(1, days_completed=4),
        _quest(2, days_completed=7, status=QuestStatus.COMPLETED),
        _quest(3, days_completed=2, duration_days=14, stake=20_000_000),
    ]
    sessions.award_points(OWNER)

    view = build_dashboard(quests, OWNER, sessions, next_level_score=3500, now=NOW)

    assert view["stats"]["points"] == 13 * 50 + 100
    assert view["stats"]["activities"] == 13
    assert view["stats"]["stakedUsdc"] == 3.0
    assert view["stats"]["projectedYieldUsdc"] == pytest.approx((7_000 + 28_000) / 10_000_000)
    assert view["buddy"] == {
        "stage": 1,
        "label": "Getting Started",
        "nextLabel": "Rising Star",
        "levelUp": False,
    }
    assert view["progress"]["pointsToGo"] == 2750
    assert view["progress"]["displayPercent"] == 21.4
    assert view["progress"]["milestoneLabel"] == "Executive"
    assert view["progress"]["message"] == "2750 pts to go!"
    assert [card["id"] for card in view["quests"]] == [1, 3]
    assert len(view["recentActivity"]) == 10


def test_dashboard_level_up_fires_once(sessions):
    quests = [_quest(1, days_completed=5)]
    first = build_dashboard(quests, OWNER, sessions, next_level_score=3500, now=NOW)
    assert first["buddy"]["stage"] == 0
    assert first["buddy"]["levelUp"] is False

    sessions.award_points(OWNER, 300)
    second = build_dashboard(quests, OWNER, sessions, next_level_score=3500, now=NOW)
    assert second["buddy"]["stage"] == 1
    assert second["buddy"]["levelUp"] is True

    third = build_dashboard(quests, OWNER, sessions, next_level_score=3500, now=NOW)
    assert third["buddy"]["levelUp"] is False


def test_dashboard_display_percent_clamped(sessions):
    quests = [_quest(1, days_completed=90, duration_days=90, stake=100_000_000)]
    view = build_dashboard(quests, OWNER, sessions, next_level_score=3500, now=NOW)
    assert view["progress"]["percent"] > 100
    assert view["progress"]["displayPercent"] == 100.0
    assert view["progress"]["message"] == "Level Up!"


def test_dashboard_at_max_stage_has_no_next_label(sessions):
    sessions.award_points(OWNER, 5000)
    view = build_dashboard([], OWNER, sessions, next_level_score=3500, now=NOW)
    assert view["buddy"]["stage"] == 5
    assert view["buddy"]["nextLabel"] is None
