from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from trybud.core.config import settings
from trybud.core.errors import (
    ForbiddenError,
    InvalidParametersError,
    LedgerRejectedError,
    QuestAlreadyCompleteError,
    QuestExpiredError,
    QuestNotActiveError,
    QuestNotFoundError,
    SettlementNotDueError,
    UnauthenticatedError,
)
from trybud.core.logging import log_event
from trybud.features.catalog.service import tier_for
from trybud.features.leveling.engine import LevelingEngine
from trybud.features.quests.ledger import SECONDS_PER_DAY, QuestLedger
from trybud.models.quest import ActivityLogEntry, Quest, QuestStatus, QuestType


class QuestLifecycleController:
    """
    Create, log, settle and cancel quests against the ledger.

    Local validation runs before any remote call. Each mutation is a single
    ledger call with no retry; on failure the ledger error propagates and
    nothing is changed. Terminal quests are never touched again.
    """

    def __init__(
        self,
        ledger: QuestLedger,
        *,
        clock: Optional[Callable[[], float]] = None,
        max_daily_target: Optional[int] = None,
        max_grace_days: Optional[int] = None,
    ):
        self._ledger = ledger
        self._clock = clock or time.time
        self._max_daily_target = max_daily_target if max_daily_target is not None else settings.MAX_DAILY_TARGET
        self._max_grace_days = max_grace_days if max_grace_days is not None else settings.MAX_GRACE_DAYS

    @property
    def ledger(self) -> QuestLedger:
        return self._ledger

    async def create_quest(
        self,
        *,
        actor: Optional[str],
        quest_type: QuestType,
        daily_target: int,
        duration_days: int,
        grace_days: Optional[int] = None,
    ) -> Tuple[Quest, List[dict]]:
        """Validate, lock the stake on the ledger and return the minted quest."""
        owner = self._require_actor(actor)
        grace = settings.DEFAULT_GRACE_DAYS if grace_days is None else grace_days
        try:
            kind = QuestType.from_wire(quest_type)
        except ValueError as e:
            raise InvalidParametersError(str(e)) from e
        if not _is_int(daily_target) or not 1 <= daily_target <= self._max_daily_target:
            raise InvalidParametersError(f"daily_target must be between 1 and {self._max_daily_target}, got {daily_target!r}")
        if not _is_int(grace) or not 0 <= grace <= self._max_grace_days:
            raise InvalidParametersError(f"grace_days must be between 0 and {self._max_grace_days}, got {grace!r}")
        tier = tier_for(duration_days)

        try:
            quest_id = await self._ledger.create_quest(owner, kind, daily_target, tier.duration_days, grace)
        except LedgerRejectedError as e:
            log_event("warning", "quest.create_failed", user_id=owner, error_code=e.code, extra={"reason": e.message})
            raise
        # The stake is already locked; a failed re-read must not report the create as failed.
        try:
            quest = await self._ledger.get_quest(quest_id)
        except (LedgerRejectedError, QuestNotFoundError) as e:
            log_event("warning", "quest.reread_failed", user_id=owner, quest_id=quest_id, error_code=e.code, extra={"reason": e.message})
            start = int(self._clock())
            quest = Quest(
                id=quest_id,
                owner=owner,
                type=kind,
                daily_target=daily_target,
                duration_days=tier.duration_days,
                grace_days=grace,
                stake_amount=tier.stake_amount,
                start_time=start,
                end_time=start + tier.duration_days * SECONDS_PER_DAY,
            )

        log_event(
            "info",
            "quest.created",
            user_id=owner,
            quest_id=quest.id,
            event_type="quest.created",
            extra={"duration_days": quest.duration_days, "stake_amount": quest.stake_amount},
        )
        emitted = [
            {
                "type": "quest.created",
                "payload": {
                    "userId": owner,
                    "questId": quest.id,
                    "questType": quest.type.tag,
                    "durationDays": quest.duration_days,
                    "stakeAmount": quest.stake_amount,
                },
            }
        ]
        return quest, emitted

    async def log_activity(
        self,
        *,
        actor: Optional[str],
        quest_id: int,
        activities_count: int,
        verification_token: str,
    ) -> Tuple[Quest, ActivityLogEntry, List[dict]]:
        """
        Credit one day of progress for an accepted log.

        Exactly one day is granted per successful call; activities_count is
        kept on the ActivityLogEntry for audit and does not scale the credit.
        """
        owner = self._require_actor(actor)
        if not _is_int(activities_count) or activities_count < 1:
            raise InvalidParametersError(f"activities_count must be at least 1, got {activities_count!r}")
        if not verification_token or not verification_token.strip():
            raise InvalidParametersError("verification_token is required")

        quest = await self.get_quest(quest_id)
        self._require_owner(quest, owner)
        if not quest.is_active:
            raise QuestNotActiveError(f"Quest {quest_id} is {quest.status.tag}")
        if self._clock() >= quest.end_time:
            raise QuestExpiredError(f"Quest {quest_id} ended at {quest.end_time}; settle it instead")
        if quest.days_completed >= quest.duration_days:
            raise QuestAlreadyCompleteError(
                f"Quest {quest_id} already has {quest.days_completed}/{quest.duration_days} days"
            )

        try:
            updated = await self._ledger.log_activity(quest_id, activities_count, verification_token)
        except LedgerRejectedError as e:
            log_event("warning", "quest.log_failed", user_id=owner, quest_id=quest_id, error_code=e.code, extra={"reason": e.message})
            raise

        entry = ActivityLogEntry(
            quest_id=quest_id,
            activities_count=activities_count,
            verification_token=verification_token,
            timestamp=datetime.fromtimestamp(self._clock(), timezone.utc),
        )
        log_event(
            "info",
            "quest.activity_logged",
            user_id=owner,
            quest_id=quest_id,
            event_type="quest.activity_logged",
            extra={"days_completed": updated.days_completed, "activities_count": activities_count},
        )
        emitted = [
            {
                "type": "quest.activity_logged",
                "payload": {
                    "userId": owner,
                    "questId": quest_id,
                    "daysCompleted": updated.days_completed,
                    "pointsEarned": LevelingEngine.POINTS_PER_DAY,
                },
            }
        ]
        return updated, entry, emitted

    async def settle_quest(self, *, actor: Optional[str], quest_id: int) -> Tuple[Quest, List[dict]]:
        """
        Trigger ledger settlement of an expired quest (idempotent).

        The ledger decides the outcome and moves the stake; this method only
        reflects it. Settling a terminal quest returns it unchanged.
        """
        self._require_actor(actor)
        quest = await self.get_quest(quest_id)
        if quest.status.is_terminal:
            return quest, []
        if self._clock() < quest.end_time:
            raise SettlementNotDueError(f"Quest {quest_id} runs until {quest.end_time}")

        expected_success = LevelingEngine.settlement_eligible(quest.days_completed, quest.duration_days, quest.grace_days)
        try:
            settled = await self._ledger.settle_quest(quest_id)
        except LedgerRejectedError as e:
            log_event("warning", "quest.settle_failed", user_id=quest.owner, quest_id=quest_id, error_code=e.code, extra={"reason": e.message})
            raise

        if (settled.status is QuestStatus.COMPLETED) != expected_success:
            log_event(
                "warning",
                "quest.settlement_mismatch",
                user_id=quest.owner,
                quest_id=quest_id,
                extra={"ledger_status": settled.status.tag, "expected_success": expected_success},
            )
        log_event(
            "info",
            "quest.settled",
            user_id=quest.owner,
            quest_id=quest_id,
            event_type="quest.settled",
            extra={"status": settled.status.tag, "yield_accrued": settled.yield_accrued},
        )
        emitted = [
            {
                "type": "quest.settled",
                "payload": {
                    "userId": quest.owner,
                    "questId": quest_id,
                    "status": settled.status.tag,
                    "yieldAccrued": settled.yield_accrued,
                },
            }
        ]
        return settled, emitted

    async def cancel_quest(self, *, actor: Optional[str], quest_id: int) -> Tuple[Quest, List[dict]]:
        owner = self._require_actor(actor)
        quest = await self.get_quest(quest_id)
        self._require_owner(quest, owner)
        if not quest.is_active:
            raise QuestNotActiveError(f"Quest {quest_id} is {quest.status.tag}")

        try:
            cancelled = await self._ledger.cancel_quest(quest_id)
        except LedgerRejectedError as e:
            log_event("warning", "quest.cancel_failed", user_id=owner, quest_id=quest_id, error_code=e.code, extra={"reason": e.message})
            raise

        log_event("info", "quest.cancelled", user_id=owner, quest_id=quest_id, event_type="quest.cancelled")
        emitted = [
            {
                "type": "quest.cancelled",
                "payload": {"userId": owner, "questId": quest_id, "stakeForfeited": cancelled.stake_amount},
            }
        ]
        return cancelled, emitted

    async def get_quest(self, quest_id: int) -> Quest:
        return await self._ledger.get_quest(quest_id)

    async def load_quests(self, owner: str) -> List[Quest]:
        """
        Bulk read of every quest owned by a wallet, in ledger order.

        Ids whose quest has vanished are skipped; other ledger errors
        propagate to the caller.
        """
        if not owner or not owner.strip():
            return []
        quest_ids = await self._ledger.list_quest_ids(owner)
        results = await asyncio.gather(
            *(self._ledger.get_quest(quest_id) for quest_id in quest_ids),
            return_exceptions=True,
        )

        quests: List[Quest] = []
        for quest_id, result in zip(quest_ids, results):
            if isinstance(result, QuestNotFoundError):
                log_event("warning", "quest.missing", user_id=owner, quest_id=quest_id)
                continue
            if isinstance(result, BaseException):
                raise result
            quests.append(result)
        return quests

    @staticmethod
    def _require_actor(actor: Optional[str]) -> str:
        if not actor or not actor.strip():
            raise UnauthenticatedError("Wallet address required")
        return actor.strip()

    @staticmethod
    def _require_owner(quest: Quest, owner: str) -> None:
        if quest.owner != owner:
            raise ForbiddenError(f"Quest {quest.id} does not belong to this wallet")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
