"""
Presentation Adapter

Turns engine output into display-ready view models for the dashboard.
Colors, animation and layout stay with the client; this only decides
numbers, labels and flags.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from trybud.core.config import settings
from trybud.features.aggregator.service import (
    actionable_quests,
    activity_feed,
    compute_metrics,
    total_staked,
)
from trybud.features.catalog.service import (
    projected_yield,
    quest_type_label,
    stake_to_usdc,
    tier_for,
)
from trybud.features.leveling.engine import LevelingEngine
from trybud.features.session.service import SessionStore
from trybud.models.quest import Quest

RECENT_ACTIVITY_LIMIT = 10


def build_quest_card(quest: Quest) -> dict:
    tier = tier_for(quest.duration_days)
    return {
        "id": quest.id,
        "title": f"Quest #{quest.id}",
        "typeLabel": quest_type_label(quest.type),
        "tierLabel": tier.label,
        "badge": tier.badge,
        "stakeUsdc": stake_to_usdc(quest.stake_amount),
        "progressLabel": f"{quest.days_completed}/{quest.duration_days} days",
        "targetLabel": f"{quest.daily_target}/day",
        "status": quest.status.tag,
        "canLog": quest.is_active and quest.days_completed < quest.duration_days,
    }


def celebration(previous_points: int, new_points: int) -> Optional[dict]:
    """Level-up banner content when a points update crosses a stage, else None."""
    if not LevelingEngine.stage_increased(previous_points, new_points):
        return None
    stage = LevelingEngine.stage_for(new_points)
    return {"stage": stage, "label": LevelingEngine.stage_label(stage), "message": "LEVEL UP!"}


def progress_message(points_to_go: int) -> str:
    return f"{points_to_go} pts to go!" if points_to_go > 0 else "Level Up!"


def build_dashboard(
    quests: Sequence[Quest],
    owner: str,
    sessions: SessionStore,
    *,
    next_level_score: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Dashboard view model for one wallet.

    Reads bonus points from the session and records the displayed stage so
    the level-up flag fires once per stage increase.
    """
    milestone = settings.NEXT_LEVEL_SCORE if next_level_score is None else next_level_score
    session = sessions.get(owner)
    metrics = compute_metrics(quests, session.bonus_points, milestone)
    stage = metrics.buddy_stage
    level_up = sessions.observe_stage(owner, stage)

    active = actionable_quests(quests)
    expected_yield = sum(projected_yield(quest.stake_amount, quest.duration_days) for quest in active)
    next_stage = stage + 1 if stage < LevelingEngine.MAX_STAGE else None

    return {
        "stats": {
            "points": metrics.total_points,
            "activities": metrics.activity_count,
            "stakedUsdc": stake_to_usdc(total_staked(quests)),
            "projectedYieldUsdc": stake_to_usdc(expected_yield),
        },
        "buddy": {
            "stage": stage,
            "label": LevelingEngine.stage_label(stage),
            "nextLabel": LevelingEngine.stage_label(next_stage) if next_stage is not None else None,
            "levelUp": level_up,
        },
        "progress": {
            "percent": metrics.progress_percent,
            "displayPercent": round(min(100.0, max(0.0, metrics.progress_percent)), 1),
            "points": metrics.total_points,
            "target": milestone,
            "pointsToGo": metrics.points_to_next_level,
            "milestoneLabel": LevelingEngine.stage_label(LevelingEngine.stage_for(milestone)),
            "message": progress_message(metrics.points_to_next_level),
        },
        "quests": [build_quest_card(quest) for quest in active],
        "recentActivity": activity_feed(quests, RECENT_ACTIVITY_LIMIT, now=now),
    }
