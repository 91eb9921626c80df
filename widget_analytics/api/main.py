import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from widget_analytics import __version__
from widget_analytics.adapters.sqlite.migrator import SQLiteMigrator
from widget_analytics.api.deps import get_rules, get_settings
from widget_analytics.api.errors import ErrorBodyException, error_body_handler
from widget_analytics.app_shell.config import validate_ops_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules, validate and migrate on startup (fail-fast)
    try:
        rules = get_rules()
        validate_ops_rules(rules, settings.data_dir)
        applied = SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()
        logger.info(
            "Rules loaded from %s; %d migration(s) applied", settings.rules_path, len(applied)
        )
    except (OSError, ValueError, RuntimeError) as e:
        logger.critical("Startup failed: %s", e)
        sys.exit(1)

    yield


app = FastAPI(
    title="Widget Analytics API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_exception_handler(ErrorBodyException, error_body_handler)

# --- Routers ---
from widget_analytics.api.routes import analytics, events  # noqa: E402

app.include_router(events.router, prefix="/events", tags=["Events"])
app.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])


# CORS: the widget is embedded on agency sites, so ingest is cross-origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "widget-analytics"}
