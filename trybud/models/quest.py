"""
Quest domain model.

Quests are ledger snapshots: frozen, replaced wholesale on every read or
write, never mutated in place. Status and type carry one canonical Python
representation; the ledger's wire forms (tag strings, numeric codes, tagged
objects) are folded into it by ``from_wire`` at the adapter boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class _WireEnum(str, Enum):
    """Enum with a ledger tag and a numeric code per member."""

    @property
    def tag(self) -> str:
        return self.value

    @property
    def code(self) -> int:
        return list(type(self)).index(self)

    @classmethod
    def from_wire(cls, raw: Any):
        """Accept a member, tag string, numeric code or ``{"tag": ...}`` object."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, dict):
            raw = raw.get("tag")
        if isinstance(raw, bool):
            raise ValueError(f"Invalid {cls.__name__}: {raw!r}")
        if isinstance(raw, int):
            members = list(cls)
            if 0 <= raw < len(members):
                return members[raw]
            raise ValueError(f"Invalid {cls.__name__} code: {raw}")
        if isinstance(raw, str):
            if raw.isdigit():
                return cls.from_wire(int(raw))
            for member in cls:
                if raw == member.value or raw.upper() == member.name:
                    return member
        raise ValueError(f"Invalid {cls.__name__}: {raw!r}")


class QuestType(_WireEnum):
    JOB_APPLICATIONS = "JobApplications"
    INTERVIEW_PREP = "InterviewPrep"
    NETWORKING = "Networking"
    SKILL_BUILDING = "SkillBuilding"


class QuestStatus(_WireEnum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not QuestStatus.ACTIVE


@dataclass(frozen=True)
class DurationTier:
    """One published duration/stake pairing. Stake is in 7-decimal units."""

    duration_days: int
    stake_amount: int
    label: str
    badge: str

    def to_dict(self) -> dict:
        return {
            "durationDays": self.duration_days,
            "stakeAmount": self.stake_amount,
            "label": self.label,
            "badge": self.badge,
        }


@dataclass(frozen=True)
class Quest:
    """A staked commitment as last reported by the ledger."""

    id: int
    owner: str
    type: QuestType
    daily_target: int
    duration_days: int
    grace_days: int
    stake_amount: int
    status: QuestStatus = QuestStatus.ACTIVE
    days_completed: int = 0
    start_time: int = 0  # epoch seconds, ledger clock
    end_time: int = 0
    yield_accrued: int = 0

    @property
    def is_active(self) -> bool:
        return self.status is QuestStatus.ACTIVE

    @property
    def remaining_days(self) -> int:
        return max(0, self.duration_days - self.days_completed)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner": self.owner,
            "type": self.type.tag,
            "dailyTarget": self.daily_target,
            "durationDays": self.duration_days,
            "graceDays": self.grace_days,
            "stakeAmount": self.stake_amount,
            "status": self.status.tag,
            "daysCompleted": self.days_completed,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "yieldAccrued": self.yield_accrued,
        }

    @classmethod
    def from_wire(cls, data: dict) -> "Quest":
        """Build a quest from a ledger payload (snake_case, as the contract emits)."""
        return cls(
            id=int(data["id"]),
            owner=str(data.get("user") or data["owner"]),
            type=QuestType.from_wire(data["quest_type"]),
            daily_target=int(data["daily_target"]),
            duration_days=int(data["duration_days"]),
            grace_days=int(data["grace_days"]),
            stake_amount=int(data["stake_amount"]),
            status=QuestStatus.from_wire(data["status"]),
            days_completed=int(data.get("days_completed", 0)),
            start_time=int(data.get("start_time", 0)),
            end_time=int(data.get("end_time", 0)),
            yield_accrued=int(data.get("yield_accrued", 0)),
        )


@dataclass(frozen=True)
class ActivityLogEntry:
    """Audit record of one accepted log call. The ledger keeps the durable copy."""

    quest_id: int
    activities_count: int
    verification_token: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "questId": self.quest_id,
            "activitiesCount": self.activities_count,
            "verificationToken": self.verification_token,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class DerivedMetrics:
    """Dashboard metrics, recomputed from quest snapshots on every read."""

    total_points: int
    activity_count: int
    progress_percent: float  # raw ratio, may exceed 100
    points_to_next_level: int
    buddy_stage: int

    def to_dict(self) -> dict:
        return {
            "totalPoints": self.total_points,
            "activityCount": self.activity_count,
            "progressPercent": self.progress_percent,
            "pointsToNextLevel": self.points_to_next_level,
            "buddyStage": self.buddy_stage,
        }


@dataclass(frozen=True)
class PoolStats:
    community_pool: int
    yield_pool: int

    def to_dict(self) -> dict:
        return {"communityPool": self.community_pool, "yieldPool": self.yield_pool}


@dataclass
class QuestSession:
    """
    Session-scoped state for one wallet. Local to the process, never synced.
    """

    owner: str
    bonus_points: int = 0
    last_stage: Optional[int] = None
