import pytest

from trybud.core.errors import InvalidParametersError, UnknownStageError
from trybud.features.leveling.engine import LevelingEngine
from trybud.models.quest import Quest, QuestStatus, QuestType


def _quest(days_completed: int, status: QuestStatus = QuestStatus.ACTIVE, quest_id: int = 1) -> Quest:
    return Quest(
        id=quest_id,
        owner="GWALLET",
        type=QuestType.JOB_APPLICATIONS,
        daily_target=5,
        duration_days=7,
        grace_days=1,
        stake_amount=10_000_000,
        status=status,
        days_completed=days_completed,
    )


def test_points_for_quest_set():
    quests = [_quest(3, quest_id=1), _quest(2, quest_id=2)]
    assert LevelingEngine.points_for_quest_set(quests) == 250


def test_points_include_terminal_quests_and_bonus():
    quests = [_quest(7, QuestStatus.COMPLETED), _quest(1, QuestStatus.FAILED, quest_id=2)]
    assert LevelingEngine.points_for_quest_set(quests, bonus_points=100) == 500


def test_points_for_empty_set():
    assert LevelingEngine.points_for_quest_set([]) == 0
    assert LevelingEngine.points_for_quest_set([], bonus_points=300) == 300


def test_negative_bonus_rejected():
    with pytest.raises(InvalidParametersError):
        LevelingEngine.points_for_quest_set([], bonus_points=-1)


@pytest.mark.parametrize(
    "points,stage",
    [
        (0, 0),
        (499, 0),
        (500, 1),
        (999, 1),
        (1000, 2),
        (1999, 2),
        (2000, 3),
        (3499, 3),
        (3500, 4),
        (4999, 4),
        (5000, 5),
        (1_000_000, 5),
    ],
)
def test_stage_boundaries(points, stage):
    assert LevelingEngine.stage_for(points) == stage


def test_stage_is_monotonic_and_total():
    previous = 0
    for points in range(0, 6001):
        stage = LevelingEngine.stage_for(points)
        assert 0 <= stage <= 5
        assert stage >= previous
        previous = stage


def test_negative_points_rejected():
    with pytest.raises(InvalidParametersError):
        LevelingEngine.stage_for(-1)


def test_stage_labels():
    assert LevelingEngine.stage_label(0) == "Job Seeker"
    assert LevelingEngine.stage_label(3) == "Professional"
    assert LevelingEngine.stage_label(5) == "Wealthy Entrepreneur"


@pytest.mark.parametrize("stage", [-1, 6, 99, True, 2.0])
def test_unknown_stage_never_clamps(stage):
    with pytest.raises(UnknownStageError):
        LevelingEngine.stage_label(stage)


def test_stage_increase_detection():
    assert LevelingEngine.stage_increased(450, 500) is True
    assert LevelingEngine.stage_increased(500, 950) is False
    assert LevelingEngine.stage_increased(1200, 600) is False


def test_next_stage_threshold():
    assert LevelingEngine.next_stage_threshold(0) == 500
    assert LevelingEngine.next_stage_threshold(3500) == 5000
    assert LevelingEngine.next_stage_threshold(5000) is None


def test_settlement_eligibility_honours_grace():
    assert LevelingEngine.settlement_eligible(6, 7, 1) is True
    assert LevelingEngine.settlement_eligible(7, 7, 0) is True
    assert LevelingEngine.settlement_eligible(5, 7, 1) is False
    assert LevelingEngine.settlement_eligible(6, 7, 0) is False
