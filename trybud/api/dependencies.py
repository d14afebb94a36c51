from __future__ import annotations

from typing import Optional

from fastapi import Header

from trybud.core.config import Settings, settings
from trybud.features.quests.ledger import HttpQuestLedger, InMemoryQuestLedger, QuestLedger
from trybud.features.quests.service import QuestLifecycleController
from trybud.features.session.service import SessionStore, session_store

WALLET_HEADER = "X-Wallet-Address"

_controller: Optional[QuestLifecycleController] = None


def build_ledger(settings_obj: Optional[Settings] = None) -> QuestLedger:
    cfg = settings_obj or settings
    backend = cfg.LEDGER_BACKEND.lower()
    if backend == "http":
        if not cfg.LEDGER_URL:
            raise RuntimeError("LEDGER_URL is required when LEDGER_BACKEND=http")
        return HttpQuestLedger(cfg.LEDGER_URL, timeout=cfg.LEDGER_TIMEOUT_SECONDS)
    return InMemoryQuestLedger()


def get_controller() -> QuestLifecycleController:
    global _controller
    if _controller is None:
        _controller = QuestLifecycleController(build_ledger())
    return _controller


def set_controller(controller: Optional[QuestLifecycleController]) -> None:
    """Swap the process-wide controller (tests, alternate ledgers)."""
    global _controller
    _controller = controller


def get_sessions() -> SessionStore:
    return session_store


def wallet_address(x_wallet_address: Optional[str] = Header(default=None)) -> Optional[str]:
    """Acting wallet, or None when no wallet is connected."""
    if x_wallet_address is None or not x_wallet_address.strip():
        return None
    return x_wallet_address.strip()


async def close_controller() -> None:
    """Release the ledger of the current controller, if one was ever built."""
    global _controller
    if _controller is None:
        return
    controller, _controller = _controller, None
    await controller.ledger.aclose()
