from __future__ import annotations

from typing import Dict, Optional

from trybud.core.config import settings
from trybud.core.errors import InvalidParametersError, UnauthenticatedError
from trybud.models.quest import QuestSession


class SessionStore:
    """Per-wallet bonus points and last-seen buddy stage, held in process memory."""

    def __init__(self, award_points: Optional[int] = None):
        self._sessions: Dict[str, QuestSession] = {}
        self._award_points = award_points if award_points is not None else settings.BONUS_AWARD_POINTS

    def get(self, owner: str) -> QuestSession:
        return self._ensure_session(owner)

    def award_points(self, owner: str, amount: Optional[int] = None) -> QuestSession:
        """Add bonus points; they survive quest list refreshes."""
        points = self._award_points if amount is None else amount
        if points <= 0:
            raise InvalidParametersError(f"Bonus points must be positive, got {points}")
        session = self._ensure_session(owner)
        session.bonus_points += points
        return session

    def observe_stage(self, owner: str, stage: int) -> bool:
        """
        Record the stage currently shown to the user.

        Returns True exactly once per stage increase. The first observation
        only sets the baseline, so a returning user is not congratulated for
        progress made in an earlier session.
        """
        session = self._ensure_session(owner)
        previous = session.last_stage
        session.last_stage = stage
        return previous is not None and stage > previous

    def reset(self, owner: str) -> None:
        self._sessions.pop(owner, None)

    def _ensure_session(self, owner: str) -> QuestSession:
        if not owner or not owner.strip():
            raise UnauthenticatedError("Wallet address required")
        if owner not in self._sessions:
            self._sessions[owner] = QuestSession(owner=owner)
        return self._sessions[owner]


# Singleton store used by routes
session_store = SessionStore()
