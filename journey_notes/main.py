"""
FastAPI main application entry point.

  GET/POST  /api/folders...   folder tree (routers/folders.py)
  GET/POST  /api/notes...     notes, editor buffer, chat context (routers/notes.py)
  GET       /api/health       liveness / readiness probes

Run with:
    python -m journey_notes.main
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from journey_notes.config import get_settings
from journey_notes.database import close_db, connect_db, get_database
from journey_notes.notes import NotesApp
from journey_notes.routers import folders, notes
from journey_notes.routers.deps import set_notes_app
from journey_notes.sqlite_db import FOLDER_STORE, NOTE_STORE

# ============================================================
# Logging Configuration
# ============================================================
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# aiosqlite logs every statement at DEBUG
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ============================================================
# Application Lifespan (startup/shutdown)
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store, load notes data, and tear both down on exit."""
    logger.info("Starting up notes application...")

    store = await connect_db()
    notes_app = NotesApp(store, settings=get_settings())
    await notes_app.initialize()
    set_notes_app(notes_app)

    yield

    logger.info("Shutting down notes application...")
    set_notes_app(None)
    await notes_app.wait_for_cleanup()
    await close_db()


# ============================================================
# Create FastAPI Application
# ============================================================
app = FastAPI(
    title="Journey Notes API",
    description="Hierarchical folders and notes with cascading delete and unsaved-change protection",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)


# ============================================================
# API Routes (all mounted under /api)
# ============================================================
app.include_router(folders.router, prefix="/api/folders", tags=["Folders"])
app.include_router(notes.router, prefix="/api/notes", tags=["Notes"])


# ============================================================
# Health Check Endpoints
# ============================================================
@app.get("/api/health")
async def health_check() -> dict:
    """Liveness probe: the process is running."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/api/health/ready")
async def readiness_check():
    """Readiness probe: the store answers a ping."""
    checks: dict = {}
    try:
        store = get_database()
        await store.ping()
        checks["database"] = "ok"
        checks["folders"] = await store.count(FOLDER_STORE)
        checks["notes"] = await store.count(NOTE_STORE)
    except Exception as e:
        checks["database"] = f"error: {e}"

    if checks["database"].startswith("error"):
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}


# ============================================================
# Run with Uvicorn (for development)
# ============================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "journey_notes.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
