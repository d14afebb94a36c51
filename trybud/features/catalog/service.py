from __future__ import annotations

import math
from typing import Dict, List

from trybud.core.errors import InvalidDurationError
from trybud.models.quest import DurationTier, QuestType

# Stake amounts are in 7-decimal stablecoin units (10_000_000 == 1 USDC).
STAKE_UNITS_PER_USDC = 10_000_000

DURATION_TIERS: tuple[DurationTier, ...] = (
    DurationTier(duration_days=7, stake_amount=10_000_000, label="1 Week Sprint", badge="Bronze"),
    DurationTier(duration_days=14, stake_amount=20_000_000, label="2 Week Challenge", badge="Silver"),
    DurationTier(duration_days=30, stake_amount=50_000_000, label="Monthly Mission", badge="Gold"),
    DurationTier(duration_days=90, stake_amount=100_000_000, label="Quarter Quest", badge="Platinum"),
)

_TIERS_BY_DURATION: Dict[int, DurationTier] = {tier.duration_days: tier for tier in DURATION_TIERS}

QUEST_TYPE_LABELS: Dict[QuestType, str] = {
    QuestType.JOB_APPLICATIONS: "Job Applications",
    QuestType.INTERVIEW_PREP: "Interview Prep",
    QuestType.NETWORKING: "Networking",
    QuestType.SKILL_BUILDING: "Skill Building",
}

# Simplified ledger yield: 5% APY in whole basis points per day.
ANNUAL_YIELD_PERCENT = 5
DAILY_YIELD_BPS = ANNUAL_YIELD_PERCENT * 100 // 365


def tier_for(duration_days: int) -> DurationTier:
    """Return the published tier for a duration; never rounds to a neighbour."""
    tier = _TIERS_BY_DURATION.get(duration_days) if isinstance(duration_days, int) else None
    if tier is None:
        allowed = ", ".join(str(d) for d in _TIERS_BY_DURATION)
        raise InvalidDurationError(f"Invalid duration {duration_days!r}; expected one of {allowed} days")
    return tier


def list_tiers() -> List[DurationTier]:
    return list(DURATION_TIERS)


def quest_type_label(quest_type: QuestType) -> str:
    return QUEST_TYPE_LABELS[QuestType.from_wire(quest_type)]


def stake_to_usdc(amount: int) -> float:
    return int(amount) / STAKE_UNITS_PER_USDC


def usdc_to_stake(usdc: float) -> int:
    return math.floor(usdc * STAKE_UNITS_PER_USDC)


def projected_yield(stake_amount: int, duration_days: int) -> int:
    """Yield a successful quest earns on its stake, in stake units."""
    return stake_amount * DAILY_YIELD_BPS * duration_days // 10_000
