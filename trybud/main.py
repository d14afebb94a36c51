import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Load env from the project .env before settings are read
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from trybud.api import catalog, dashboard, health, quests
from trybud.api.dependencies import close_controller
from trybud.core.config import cors_origins, settings, validate_config
from trybud.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_error_handler,
    unhandled_exception_handler,
)
from trybud.core.logging import configure_logging
from trybud.core.middleware.request_id import RequestIdMiddleware

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("trybud")
    logger.info("Starting TryBud backend (ledger=%s)...", settings.LEDGER_BACKEND)
    app.state.startup_time = time.time()
    try:
        yield
    finally:
        await close_controller()
        logging.getLogger("trybud").info("Stopping TryBud backend...")


app = FastAPI(title="TryBud - Quest Engine", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(catalog.router)
app.include_router(quests.router)
app.include_router(dashboard.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("trybud.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
