"""
Health endpoints for TryBud.

Liveness only; the ledger is an external collaborator and is not probed here.
"""

from fastapi import APIRouter

from trybud.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok", "ledger": settings.LEDGER_BACKEND}
