"""
Points & Leveling Engine

Pure, deterministic mapping from logged activity to points and from points
to buddy stage. No external calls, no state, no side effects.

Scoring rules:
- Every credited quest day is worth 50 points
- Session bonus points are added on top, independent of quest data
- Stage thresholds: 500 / 1000 / 2000 / 3500 / 5000 (stages 0..5)
"""

from bisect import bisect_right
from typing import Iterable, Optional

from trybud.core.errors import InvalidParametersError, UnknownStageError
from trybud.models.quest import Quest


class LevelingEngine:
    """Pure points and stage computation."""

    POINTS_PER_DAY = 50

    # Lower bound of stages 1..5; stage 0 is everything below the first entry.
    STAGE_THRESHOLDS = (500, 1000, 2000, 3500, 5000)

    STAGE_LABELS = (
        "Job Seeker",
        "Getting Started",
        "Rising Star",
        "Professional",
        "Executive",
        "Wealthy Entrepreneur",
    )

    MAX_STAGE = len(STAGE_THRESHOLDS)

    @staticmethod
    def points_for_quest_set(quests: Iterable[Quest], bonus_points: int = 0) -> int:
        """
        Total points for a set of quests.

        Args:
            quests: Quest snapshots, active and terminal alike
            bonus_points: Out-of-band points from session reward actions

        Returns:
            sum(days_completed * 50) + bonus_points
        """
        if bonus_points < 0:
            raise InvalidParametersError(f"bonus_points must be non-negative, got {bonus_points}")
        earned = sum(quest.days_completed * LevelingEngine.POINTS_PER_DAY for quest in quests)
        return earned + bonus_points

    @staticmethod
    def stage_for(points: int) -> int:
        """Stage 0..5 for a non-negative point total."""
        if points < 0:
            raise InvalidParametersError(f"points must be non-negative, got {points}")
        return bisect_right(LevelingEngine.STAGE_THRESHOLDS, points)

    @staticmethod
    def stage_label(stage: int) -> str:
        if isinstance(stage, bool) or not isinstance(stage, int) or not 0 <= stage <= LevelingEngine.MAX_STAGE:
            raise UnknownStageError(f"Unknown buddy stage: {stage!r}")
        return LevelingEngine.STAGE_LABELS[stage]

    @staticmethod
    def stage_increased(previous_points: int, new_points: int) -> bool:
        """True when a points update crosses into a higher stage."""
        return LevelingEngine.stage_for(new_points) > LevelingEngine.stage_for(previous_points)

    @staticmethod
    def next_stage_threshold(points: int) -> Optional[int]:
        """Points needed to enter the next stage, or None at the top stage."""
        stage = LevelingEngine.stage_for(points)
        if stage >= LevelingEngine.MAX_STAGE:
            return None
        return LevelingEngine.STAGE_THRESHOLDS[stage]

    @staticmethod
    def settlement_eligible(days_completed: int, duration_days: int, grace_days: int) -> bool:
        """A quest succeeds when the missed days fit inside its grace allowance."""
        return days_completed >= duration_days - grace_days
