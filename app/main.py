"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from app.config import get_settings
from app.db import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    await init_db()
    logger.info("DB ready at %s", settings.db_abs_path)
    yield
    await close_db()
    logger.info("DB closed")


app = FastAPI(
    title="playlist-editor",
    version="0.1.0",
    lifespan=lifespan,
)

# Session middleware (signed cookie holding the acting user's identity).
app.add_middleware(SessionMiddleware, secret_key=get_settings().secret_key)

# Routers
from app.routes_editor import router as editor_router  # noqa: E402
from app.routes_store import router as store_router  # noqa: E402

app.include_router(store_router)
app.include_router(editor_router)


@app.get("/health")
async def health():
    """Simple health-check endpoint."""
    return JSONResponse({"status": "ok", "version": app.version})
