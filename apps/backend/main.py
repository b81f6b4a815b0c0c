# apps/backend/main.py

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

# -----------------------------------------------------------------------------
# Paths
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent  # .../apps/backend

# -----------------------------------------------------------------------------
# Load .env (MUST be before importing anything that needs env)
# -----------------------------------------------------------------------------
ENV_PATH = BASE_DIR / ".env"
load_dotenv(ENV_PATH, override=False)

from portal_analytics import __version__  # noqa: E402
from portal_analytics.core.config import settings  # noqa: E402
from portal_analytics.core.cors import DashboardCORSMiddleware  # noqa: E402

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("portal_analytics")

# -----------------------------------------------------------------------------
# Create app
# -----------------------------------------------------------------------------
app = FastAPI(title=settings.app_name, version=__version__)

# -----------------------------------------------------------------------------
# CORS (dashboard origins; the tracker endpoint handles its own)
# -----------------------------------------------------------------------------
API_PREFIX = "/api"
TRACKER_PATHS = [f"{API_PREFIX}/analytics/ingest"]

app.add_middleware(
    DashboardCORSMiddleware,
    public_paths=TRACKER_PATHS,
    allow_origins=settings.cors_origin_list,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Tenant-ID", "X-Organization-Id", "Authorization"],
)

# -----------------------------------------------------------------------------
# DB init (import AFTER dotenv)
# -----------------------------------------------------------------------------
_db_init_error = None
try:
    from portal_analytics.db import Base, engine  # noqa: E402
    import portal_analytics.models  # noqa: E402,F401  (registers tables)
except Exception as e:
    Base = None  # type: ignore
    engine = None  # type: ignore
    _db_init_error = repr(e)
    logger.error("database init failed: %s", _db_init_error)

if Base is not None and engine is not None:

    @app.on_event("startup")
    def _startup_create_tables():
        # Minimal & safe: create tables if they don't exist
        Base.metadata.create_all(bind=engine)


# -----------------------------------------------------------------------------
# Routers (import AFTER dotenv)
# -----------------------------------------------------------------------------
try:
    from portal_analytics.api.routes import router as api_router  # noqa: E402
except Exception as e:
    # If this fails, server will still boot and /debug/runtime will show why.
    api_router = None
    _router_import_error = repr(e)
    logger.error("api router import failed: %s", _router_import_error)
else:
    _router_import_error = None

if api_router is not None:
    app.include_router(api_router, prefix=API_PREFIX)


# -----------------------------------------------------------------------------
# Basic health check
# -----------------------------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok"}


# -----------------------------------------------------------------------------
# Runtime debug (which file is running + whether config is visible)
# -----------------------------------------------------------------------------
@app.get("/debug/runtime")
def debug_runtime():
    return {
        "main_file": __file__,
        "cwd": os.getcwd(),
        "sys_executable": sys.executable,
        "version": __version__,
        "env_path": str(ENV_PATH),
        "env_exists": ENV_PATH.exists(),
        "openai_key_present": bool(settings.openai_api_key),
        "database_url_present": bool(settings.database_url),
        "dashboard_token_present": bool(settings.dashboard_api_token),
        "router_import_error": _router_import_error,
        "db_init_error": _db_init_error,
    }
