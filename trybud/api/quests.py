from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from trybud.api.dependencies import get_controller, wallet_address
from trybud.core.errors import UnauthenticatedError
from trybud.features.quests.service import QuestLifecycleController
from trybud.models.quest import QuestType

router = APIRouter(prefix="/v1/quests", tags=["quests"])


class CreateQuestRequest(BaseModel):
    quest_type: QuestType
    daily_target: int = Field(..., ge=1)
    duration_days: int
    grace_days: Optional[int] = Field(default=None, ge=0)


class LogActivityRequest(BaseModel):
    activities_count: int = Field(..., ge=1)
    verification_token: str = Field(..., min_length=1)


@router.get("")
async def list_quests(
    actor: Optional[str] = Depends(wallet_address),
    controller: QuestLifecycleController = Depends(get_controller),
):
    """All quests owned by the connected wallet, active and terminal."""
    if actor is None:
        raise UnauthenticatedError("Wallet address required")
    quests = await controller.load_quests(actor)
    return {"data": [quest.to_dict() for quest in quests]}


@router.post("", status_code=201)
async def create_quest(
    req: CreateQuestRequest,
    actor: Optional[str] = Depends(wallet_address),
    controller: QuestLifecycleController = Depends(get_controller),
):
    quest, emitted = await controller.create_quest(
        actor=actor,
        quest_type=req.quest_type,
        daily_target=req.daily_target,
        duration_days=req.duration_days,
        grace_days=req.grace_days,
    )
    return {"data": quest.to_dict(), "emitted": emitted}


@router.get("/{quest_id}")
async def get_quest(quest_id: int, controller: QuestLifecycleController = Depends(get_controller)):
    quest = await controller.get_quest(quest_id)
    return {"data": quest.to_dict()}


@router.post("/{quest_id}/activity")
async def log_activity(
    quest_id: int,
    req: LogActivityRequest,
    actor: Optional[str] = Depends(wallet_address),
    controller: QuestLifecycleController = Depends(get_controller),
):
    quest, entry, emitted = await controller.log_activity(
        actor=actor,
        quest_id=quest_id,
        activities_count=req.activities_count,
        verification_token=req.verification_token,
    )
    return {"data": quest.to_dict(), "entry": entry.to_dict(), "emitted": emitted}


@router.post("/{quest_id}/settle")
async def settle_quest(
    quest_id: int,
    actor: Optional[str] = Depends(wallet_address),
    controller: QuestLifecycleController = Depends(get_controller),
):
    quest, emitted = await controller.settle_quest(actor=actor, quest_id=quest_id)
    return {"data": quest.to_dict(), "emitted": emitted}


@router.post("/{quest_id}/cancel")
async def cancel_quest(
    quest_id: int,
    actor: Optional[str] = Depends(wallet_address),
    controller: QuestLifecycleController = Depends(get_controller),
):
    quest, emitted = await controller.cancel_quest(actor=actor, quest_id=quest_id)
    return {"data": quest.to_dict(), "emitted": emitted}
