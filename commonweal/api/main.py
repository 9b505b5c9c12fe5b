"""
commonweal.api.main — FastAPI application entry point
========================================================

Run with::

    uvicorn commonweal.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from commonweal import __version__  # noqa: E402
from commonweal.api.auth import router as auth_router  # noqa: E402
from commonweal.api.deps import get_config, get_engine  # noqa: E402
from commonweal.api.errors import install_error_handlers  # noqa: E402
from commonweal.api.routes.donations import router as donations_router  # noqa: E402
from commonweal.api.routes.events import router as events_router  # noqa: E402
from commonweal.api.routes.initiatives import router as initiatives_router  # noqa: E402
from commonweal.api.routes.messages import router as messages_router  # noqa: E402
from commonweal.api.routes.notifications import router as notifications_router  # noqa: E402
from commonweal.api.routes.users import router as users_router  # noqa: E402
from commonweal.config import configure_logging  # noqa: E402
from commonweal.database.engine import init_db, run_db  # noqa: E402
from commonweal.services.reminder_service import dispatch_due_reminders  # noqa: E402
from commonweal.services.retention_service import purge_expired_notifications  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: create tables, then run the maintenance jobs once."""
    cfg = get_config()
    configure_logging(cfg.log_level)

    engine = get_engine()
    await run_db(init_db, engine)
    await run_db(purge_expired_notifications, engine)
    await run_db(dispatch_due_reminders, engine)
    logger.info("%s API started — engine ready (%s)", cfg.community_name, engine.url.database)
    yield
    logger.info("%s API shutting down", cfg.community_name)


app = FastAPI(
    title="Commonweal Community API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(initiatives_router, prefix="/api")
app.include_router(events_router, prefix="/api")
app.include_router(donations_router, prefix="/api")
app.include_router(messages_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
