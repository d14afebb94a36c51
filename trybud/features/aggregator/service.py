"""
Quest State Aggregator

Folds a user's quest snapshots plus session bonus points into dashboard
metrics. Everything here is recomputed from its inputs on each call.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from trybud.core.config import settings
from trybud.core.errors import InvalidParametersError
from trybud.features.leveling.engine import LevelingEngine
from trybud.models.quest import DerivedMetrics, Quest


def compute_metrics(
    quests: Iterable[Quest],
    bonus_points: int = 0,
    next_level_score: Optional[int] = None,
) -> DerivedMetrics:
    """
    Compute DerivedMetrics for one user.

    Terminal quests still count toward activity and points: the effort was
    performed even if the stake was later forfeited.

    progress_percent is the raw ratio against the milestone and may exceed
    100; clamping is left to the caller.
    """
    milestone = settings.NEXT_LEVEL_SCORE if next_level_score is None else next_level_score
    if milestone <= 0:
        raise InvalidParametersError(f"next_level_score must be positive, got {milestone}")

    snapshot = list(quests)
    total_points = LevelingEngine.points_for_quest_set(snapshot, bonus_points)
    activity_count = sum(quest.days_completed for quest in snapshot)

    return DerivedMetrics(
        total_points=total_points,
        activity_count=activity_count,
        progress_percent=100 * total_points / milestone,
        points_to_next_level=max(0, milestone - total_points),
        buddy_stage=LevelingEngine.stage_for(total_points),
    )


def actionable_quests(quests: Iterable[Quest]) -> List[Quest]:
    """Quests the user can still log activity against."""
    return [quest for quest in quests if quest.is_active]


def total_staked(quests: Iterable[Quest]) -> int:
    """Stake currently locked by active quests, in stake units."""
    return sum(quest.stake_amount for quest in quests if quest.is_active)


def activity_feed(
    quests: Sequence[Quest],
    limit: int = 10,
    now: Optional[datetime] = None,
) -> List[dict]:
    """
    One entry per credited day, newest first.

    Quest snapshots carry no per-day timestamps, so day ``i`` of a quest is
    dated ``i`` days back from ``now``.
    """
    if limit < 0:
        raise InvalidParametersError(f"limit must be non-negative, got {limit}")
    reference = now or datetime.now(timezone.utc)
    entries: List[dict] = []
    for quest in quests:
        for day in range(quest.days_completed):
            entries.append(
                {
                    "id": f"{quest.id}-day{day}",
                    "questId": quest.id,
                    "points": LevelingEngine.POINTS_PER_DAY,
                    "date": (reference - timedelta(days=day)).date().isoformat(),
                }
            )
    entries.sort(key=lambda entry: entry["date"], reverse=True)
    return entries[:limit]
