"""
Quest Ledger adapters.

The ledger is the authoritative store of quests and stakes. The engine only
talks to it through ``QuestLedger``; two implementations live here:

- ``InMemoryQuestLedger`` reproduces the on-chain contract rules and backs
  development and tests.
- ``HttpQuestLedger`` speaks JSON to a ledger gateway over httpx.

Wire representations of status and type (tag string, numeric code, tagged
object) are normalized to the model enums here and nowhere else.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Set
from urllib.parse import quote

import httpx

from trybud.core.errors import (
    LedgerRejectedError,
    QuestNotFoundError,
    StakeTransferFailedError,
)
from trybud.features.catalog.service import projected_yield, tier_for
from trybud.features.leveling.engine import LevelingEngine
from trybud.models.quest import PoolStats, Quest, QuestStatus, QuestType

SECONDS_PER_DAY = 86_400


class QuestLedger(ABC):
    """Remote quest store. Every method is one round trip; none retry."""

    @abstractmethod
    async def create_quest(
        self,
        owner: str,
        quest_type: QuestType,
        daily_target: int,
        duration_days: int,
        grace_days: int,
    ) -> int:
        """Lock the stake and mint a quest. Returns the new quest id."""

    @abstractmethod
    async def list_quest_ids(self, owner: str) -> List[int]:
        pass

    @abstractmethod
    async def get_quest(self, quest_id: int) -> Quest:
        pass

    @abstractmethod
    async def log_activity(self, quest_id: int, activities_count: int, verification_token: str) -> Quest:
        pass

    @abstractmethod
    async def settle_quest(self, quest_id: int) -> Quest:
        """Run the ledger's expiry handling and return the settled quest."""

    @abstractmethod
    async def cancel_quest(self, quest_id: int) -> Quest:
        pass

    @abstractmethod
    async def get_pool_stats(self) -> PoolStats:
        pass

    async def aclose(self) -> None:
        return None


class InMemoryQuestLedger(QuestLedger):
    """
    Process-local ledger with the contract's bookkeeping.

    Stakes move into the yield pool at creation. On success the owner is
    paid stake + projected yield + 1% of the community pool; on failure or
    cancellation the stake moves to the community pool.

    ``fail_next`` names operations that should be rejected once, letting
    tests exercise remote failures without touching state.
    """

    COMMUNITY_BONUS_DIVISOR = 100

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time
        self._quests: Dict[int, Quest] = {}
        self._owner_quests: Dict[str, List[int]] = {}
        self._activity_log: Dict[int, List[dict]] = {}
        self._counter = 0
        self._community_pool = 0
        self._yield_pool = 0
        self._lock = asyncio.Lock()
        self.fail_next: Set[str] = set()
        self.payouts: Dict[int, int] = {}

    async def create_quest(self, owner, quest_type, daily_target, duration_days, grace_days) -> int:
        async with self._lock:
            self._maybe_fail("create_quest", StakeTransferFailedError)
            tier = tier_for(duration_days)
            now = int(self._clock())
            self._counter += 1
            quest = Quest(
                id=self._counter,
                owner=owner,
                type=QuestType.from_wire(quest_type),
                daily_target=daily_target,
                duration_days=duration_days,
                grace_days=grace_days,
                stake_amount=tier.stake_amount,
                start_time=now,
                end_time=now + duration_days * SECONDS_PER_DAY,
            )
            self._quests[quest.id] = quest
            self._owner_quests.setdefault(owner, []).append(quest.id)
            self._yield_pool += quest.stake_amount
            return quest.id

    async def list_quest_ids(self, owner: str) -> List[int]:
        self._maybe_fail("list_quest_ids", LedgerRejectedError)
        return list(self._owner_quests.get(owner, []))

    async def get_quest(self, quest_id: int) -> Quest:
        self._maybe_fail("get_quest", LedgerRejectedError)
        return self._require(quest_id)

    async def log_activity(self, quest_id, activities_count, verification_token) -> Quest:
        async with self._lock:
            self._maybe_fail("log_activity", LedgerRejectedError)
            quest = self._require(quest_id)
            if not quest.is_active:
                raise LedgerRejectedError(f"Quest {quest_id} not active")
            if int(self._clock()) >= quest.end_time:
                raise LedgerRejectedError(f"Quest {quest_id} expired")
            if quest.days_completed >= quest.duration_days:
                raise LedgerRejectedError(f"Quest {quest_id} has no days left to credit")
            updated = replace(quest, days_completed=quest.days_completed + 1)
            self._quests[quest_id] = updated
            self._activity_log.setdefault(quest_id, []).append(
                {
                    "activities_count": activities_count,
                    "verification_token": verification_token,
                    "timestamp": int(self._clock()),
                }
            )
            return updated

    async def settle_quest(self, quest_id: int) -> Quest:
        async with self._lock:
            self._maybe_fail("settle_quest", LedgerRejectedError)
            quest = self._require(quest_id)
            if not quest.is_active:
                raise LedgerRejectedError(f"Quest {quest_id} not active")
            if int(self._clock()) < quest.end_time:
                raise LedgerRejectedError(f"Quest {quest_id} not finished yet")

            if LevelingEngine.settlement_eligible(quest.days_completed, quest.duration_days, quest.grace_days):
                yield_share = projected_yield(quest.stake_amount, quest.duration_days)
                bonus = self._community_pool // self.COMMUNITY_BONUS_DIVISOR
                self._yield_pool -= quest.stake_amount + yield_share
                self._community_pool -= bonus
                self.payouts[quest_id] = quest.stake_amount + yield_share + bonus
                settled = replace(quest, status=QuestStatus.COMPLETED, yield_accrued=yield_share)
            else:
                self._forfeit(quest)
                settled = replace(quest, status=QuestStatus.FAILED)

            self._quests[quest_id] = settled
            return settled

    async def cancel_quest(self, quest_id: int) -> Quest:
        async with self._lock:
            self._maybe_fail("cancel_quest", LedgerRejectedError)
            quest = self._require(quest_id)
            if not quest.is_active:
                raise LedgerRejectedError(f"Quest {quest_id} not active")
            self._forfeit(quest)
            cancelled = replace(quest, status=QuestStatus.CANCELLED)
            self._quests[quest_id] = cancelled
            return cancelled

    async def get_pool_stats(self) -> PoolStats:
        return PoolStats(community_pool=self._community_pool, yield_pool=self._yield_pool)

    def activity_log(self, quest_id: int) -> List[dict]:
        return list(self._activity_log.get(quest_id, []))

    def _forfeit(self, quest: Quest) -> None:
        self._yield_pool -= quest.stake_amount
        self._community_pool += quest.stake_amount

    def _require(self, quest_id: int) -> Quest:
        quest = self._quests.get(quest_id)
        if quest is None:
            raise QuestNotFoundError(f"Quest {quest_id} not found")
        return quest

    def _maybe_fail(self, operation: str, error_cls) -> None:
        if operation in self.fail_next:
            self.fail_next.discard(operation)
            raise error_cls(f"Ledger rejected {operation}")


class HttpQuestLedger(QuestLedger):
    """JSON/HTTP client for a ledger gateway in front of the quest contract."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def create_quest(self, owner, quest_type, daily_target, duration_days, grace_days) -> int:
        body = {
            "user": owner,
            "quest_type": {"tag": QuestType.from_wire(quest_type).tag},
            "daily_target": daily_target,
            "duration_days": duration_days,
            "grace_days": grace_days,
        }
        data = await self._request("POST", "/quests", json=body, error_cls=StakeTransferFailedError, not_found=False)
        return int(data["quest_id"])

    async def list_quest_ids(self, owner: str) -> List[int]:
        data = await self._request("GET", f"/users/{quote(owner, safe='')}/quests")
        return [int(quest_id) for quest_id in data["quest_ids"]]

    async def get_quest(self, quest_id: int) -> Quest:
        data = await self._request("GET", f"/quests/{quest_id}")
        return self._parse_quest(data)

    async def log_activity(self, quest_id, activities_count, verification_token) -> Quest:
        body = {"activities_count": activities_count, "verification_hash": verification_token}
        data = await self._request("POST", f"/quests/{quest_id}/activity", json=body)
        return self._parse_quest(data)

    async def settle_quest(self, quest_id: int) -> Quest:
        data = await self._request("POST", f"/quests/{quest_id}/complete")
        return self._parse_quest(data)

    async def cancel_quest(self, quest_id: int) -> Quest:
        data = await self._request("POST", f"/quests/{quest_id}/cancel")
        return self._parse_quest(data)

    async def get_pool_stats(self) -> PoolStats:
        data = await self._request("GET", "/pool")
        return PoolStats(community_pool=int(data["community_pool"]), yield_pool=int(data["yield_pool"]))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        error_cls=LedgerRejectedError,
        not_found: bool = True,
    ) -> dict:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise error_cls(f"Ledger unreachable: {exc}") from exc

        if not_found and response.status_code == 404:
            raise QuestNotFoundError(f"Ledger resource not found: {path}")
        if response.is_error:
            raise error_cls(f"Ledger rejected {method} {path}: {response.status_code} {response.text[:200]}")
        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(f"Ledger returned malformed JSON for {method} {path}") from exc

    @staticmethod
    def _parse_quest(data: dict) -> Quest:
        try:
            return Quest.from_wire(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerRejectedError(f"Ledger returned malformed quest: {exc}") from exc
