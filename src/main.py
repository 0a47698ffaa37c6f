"""familyquest - household chores as a family game."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.auth_router import router as auth_router
from src.interface.error_handlers import register_error_handlers
from src.interface.family_router import router as family_router
from src.interface.side_quest_router import router as side_quest_router
from src.interface.state_router import router as state_router
from src.interface.task_router import router as task_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()

    if settings.is_production and settings.secret_key == "dev-secret-change-me":
        logger.warning("startup_validation", extra={"stage": "secret_key", "status": "default"})

    await init_db()
    logger.info("Database initialized")
    yield
    # Shutdown
    await close_connection()


app = FastAPI(
    title="familyquest",
    description="Household chores as a family game",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_error_handlers(app)

# Register routers
app.include_router(auth_router)
app.include_router(family_router)
app.include_router(task_router)
app.include_router(side_quest_router)
app.include_router(state_router)


@app.get("/api/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
