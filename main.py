"""
Social Monitor - FastAPI Backend
Main application entry point: accounts, posts, image proxy, mood reports and mirrored media.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import settings, validate_media_settings
from database import engine, Base
import models  # noqa: F401
from routers import (
    health,
    accounts,
    posts,
    report,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Social Monitor API...")
    media_root = validate_media_settings()
    print(f"🖼️ Mirroring media under {media_root.resolve()}")
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    yield
    # Shutdown
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Social Monitor API",
    description="Monitor scraped social accounts, posts and comment moods",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(posts.router, prefix="/posts", tags=["Posts"])
app.include_router(report.router, prefix="/report", tags=["Report"])

# Mirrored images are served straight from disk
app.mount(
    settings.MEDIA_PUBLIC_PREFIX,
    StaticFiles(directory=settings.MEDIA_ROOT, check_dir=False),
    name="media",
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Social Monitor API",
        "version": "0.1.0",
        "status": "running"
    }
