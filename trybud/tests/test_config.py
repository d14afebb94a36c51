"""Tests for ledger configuration validation and ledger selection."""

import logging
from types import SimpleNamespace

import pytest

from trybud.api.dependencies import build_ledger
from trybud.core.config import cors_origins, validate_config
from trybud.features.quests.ledger import HttpQuestLedger, InMemoryQuestLedger


def make_settings(**overrides):
    defaults = dict(
        ENV="development",
        CONFIG_STRICT=False,
        LEDGER_BACKEND="memory",
        LEDGER_URL=None,
        LEDGER_TIMEOUT_SECONDS=10.0,
        NEXT_LEVEL_SCORE=3500,
        CORS_ALLOWED_ORIGINS="http://localhost:3000",
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def test_memory_backend_passes():
    assert validate_config(strict=True, settings_obj=make_settings()) is True


def test_unknown_backend_always_fails():
    with pytest.raises(RuntimeError):
        validate_config(strict=False, settings_obj=make_settings(LEDGER_BACKEND="sqlite"))


def test_http_without_url_fails_in_strict_mode():
    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=make_settings(LEDGER_BACKEND="http"))


def test_http_without_url_warns_otherwise(caplog):
    logger = logging.getLogger("trybud.test_config")
    with caplog.at_level(logging.WARNING, logger="trybud.test_config"):
        validate_config(strict=False, settings_obj=make_settings(LEDGER_BACKEND="http"), logger=logger)
    assert any("LEDGER_URL" in r.getMessage() for r in caplog.records)


def test_non_positive_milestone_rejected_in_strict_mode():
    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=make_settings(NEXT_LEVEL_SCORE=0))


def test_strict_flag_defaults_to_settings():
    with pytest.raises(RuntimeError):
        validate_config(settings_obj=make_settings(CONFIG_STRICT=True, LEDGER_BACKEND="http"))


def test_cors_origins_split():
    cfg = make_settings(CORS_ALLOWED_ORIGINS="http://a.test, http://b.test,,")
    assert cors_origins(cfg) == ["http://a.test", "http://b.test"]


def test_build_ledger_selects_backend():
    assert isinstance(build_ledger(make_settings()), InMemoryQuestLedger)
    ledger = build_ledger(make_settings(LEDGER_BACKEND="HTTP", LEDGER_URL="http://ledger.test"))
    assert isinstance(ledger, HttpQuestLedger)


def test_build_http_ledger_requires_url():
    with pytest.raises(RuntimeError):
        build_ledger(make_settings(LEDGER_BACKEND="http"))


@pytest.mark.asyncio
async def test_close_controller_does_not_build_one(monkeypatch):
    from trybud.api import dependencies

    monkeypatch.setattr(dependencies, "_controller", None)
    monkeypatch.setattr(dependencies, "build_ledger", lambda *args: pytest.fail("ledger built at shutdown"))

    await dependencies.close_controller()
    assert dependencies._controller is None


@pytest.mark.asyncio
async def test_close_controller_releases_ledger(controller, ledger, monkeypatch):
    from trybud.api import dependencies

    closed = []

    async def aclose():
        closed.append(True)

    monkeypatch.setattr(ledger, "aclose", aclose)
    monkeypatch.setattr(dependencies, "_controller", controller)

    await dependencies.close_controller()
    assert closed == [True]
    assert dependencies._controller is None
