"""
Dashboard API Endpoints

GET  /v1/dashboard          - view model for the connected wallet
GET  /v1/dashboard/metrics  - raw derived metrics
POST /v1/session/bonus      - award session bonus points
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from trybud.api.dependencies import get_controller, get_sessions, wallet_address
from trybud.core.errors import UnauthenticatedError
from trybud.features.aggregator.service import compute_metrics
from trybud.features.leveling.engine import LevelingEngine
from trybud.features.presentation.service import build_dashboard, celebration
from trybud.features.quests.service import QuestLifecycleController
from trybud.features.session.service import SessionStore

router = APIRouter(tags=["dashboard"])


class BonusRequest(BaseModel):
    amount: Optional[int] = Field(default=None, ge=1)


def _require(actor: Optional[str]) -> str:
    if actor is None:
        raise UnauthenticatedError("Wallet address required")
    return actor


@router.get("/v1/dashboard")
async def get_dashboard(
    actor: Optional[str] = Depends(wallet_address),
    controller: QuestLifecycleController = Depends(get_controller),
    sessions: SessionStore = Depends(get_sessions),
) -> dict:
    """
    Dashboard for the connected wallet.

    Returns:
        {
            "data": {
                "stats": {"points": 250, "activities": 5, "stakedUsdc": 10.0, ...},
                "buddy": {"stage": 0, "label": "Job Seeker", "levelUp": false, ...},
                "progress": {"percent": 7.14, "pointsToGo": 3250, "message": "3250 pts to go!", ...},
                "quests": [...],
                "recentActivity": [...]
            }
        }
    """
    owner = _require(actor)
    quests = await controller.load_quests(owner)
    return {"data": build_dashboard(quests, owner, sessions)}


@router.get("/v1/dashboard/metrics")
async def get_metrics(
    actor: Optional[str] = Depends(wallet_address),
    controller: QuestLifecycleController = Depends(get_controller),
    sessions: SessionStore = Depends(get_sessions),
) -> dict:
    owner = _require(actor)
    quests = await controller.load_quests(owner)
    metrics = compute_metrics(quests, sessions.get(owner).bonus_points)
    return {"data": metrics.to_dict()}


@router.post("/v1/session/bonus")
async def award_bonus(
    req: BonusRequest,
    actor: Optional[str] = Depends(wallet_address),
    controller: QuestLifecycleController = Depends(get_controller),
    sessions: SessionStore = Depends(get_sessions),
) -> dict:
    """Manual reward trigger; points are session-local and additive."""
    owner = _require(actor)
    quests = await controller.load_quests(owner)
    before = LevelingEngine.points_for_quest_set(quests, sessions.get(owner).bonus_points)
    if sessions.get(owner).last_stage is None:
        sessions.observe_stage(owner, LevelingEngine.stage_for(before))
    session = sessions.award_points(owner, req.amount)
    after = LevelingEngine.points_for_quest_set(quests, session.bonus_points)
    # Shares the session stage baseline with the dashboard so a level-up is announced once
    leveled_up = sessions.observe_stage(owner, LevelingEngine.stage_for(after))
    return {
        "data": {
            "bonusPoints": session.bonus_points,
            "totalPoints": after,
            "awarded": after - before,
            "celebration": celebration(before, after) if leveled_up else None,
        }
    }
