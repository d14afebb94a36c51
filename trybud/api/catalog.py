from fastapi import APIRouter, Depends

from trybud.api.dependencies import get_controller
from trybud.features.catalog.service import QUEST_TYPE_LABELS, list_tiers, projected_yield, stake_to_usdc
from trybud.features.quests.service import QuestLifecycleController

router = APIRouter(tags=["catalog"])


@router.get("/v1/catalog/tiers")
def get_tiers():
    """Published duration/stake tiers, shortest first."""
    return {
        "data": [
            {
                **tier.to_dict(),
                "stakeUsdc": stake_to_usdc(tier.stake_amount),
                "projectedYield": projected_yield(tier.stake_amount, tier.duration_days),
            }
            for tier in list_tiers()
        ]
    }


@router.get("/v1/catalog/quest-types")
def get_quest_types():
    return {
        "data": [
            {"tag": quest_type.tag, "code": quest_type.code, "label": label}
            for quest_type, label in QUEST_TYPE_LABELS.items()
        ]
    }


@router.get("/v1/pool")
async def get_pool(controller: QuestLifecycleController = Depends(get_controller)):
    stats = await controller.ledger.get_pool_stats()
    return {"data": stats.to_dict()}
