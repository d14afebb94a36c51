import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

LEDGER_BACKENDS = ("memory", "http")


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Quest ledger
    LEDGER_BACKEND: str = "memory"  # memory | http
    LEDGER_URL: Optional[str] = None
    LEDGER_TIMEOUT_SECONDS: float = 10.0

    # Progression
    NEXT_LEVEL_SCORE: int = 3500
    BONUS_AWARD_POINTS: int = 100

    # Quest parameter limits
    DEFAULT_GRACE_DAYS: int = 1
    MAX_DAILY_TARGET: int = 10
    MAX_GRACE_DAYS: int = 3

    # HTTP
    CORS_ALLOWED_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def cors_origins(settings_obj: Optional[Settings] = None) -> list[str]:
    cfg = settings_obj or settings
    return [origin.strip() for origin in cfg.CORS_ALLOWED_ORIGINS.split(",") if origin.strip()]


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate ledger configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    An unknown ledger backend is always fatal.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("trybud")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    backend = (cfg.LEDGER_BACKEND or "").lower()
    if backend not in LEDGER_BACKENDS:
        raise RuntimeError(f"Unknown LEDGER_BACKEND: {cfg.LEDGER_BACKEND!r} (expected one of {', '.join(LEDGER_BACKENDS)})")

    if backend == "http" and not cfg.LEDGER_URL:
        message = "Missing required configuration: LEDGER_URL"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    if cfg.NEXT_LEVEL_SCORE <= 0:
        message = "NEXT_LEVEL_SCORE must be positive"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
