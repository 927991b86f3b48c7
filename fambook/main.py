import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from fambook.config import settings
from fambook.database import dispose_db, init_db
from fambook.errors import register_exception_handlers

# Routers
from fambook.routers import (
    albums_router,
    comments_router,
    families_router,
    life_events_router,
    maintenance_router,
    memories_router,
    notifications_router,
    posts_router,
    roots_router,
    special_days_router,
    upload_router,
    users_router,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# -----------------------
# AUTO-CREATE MEDIA FOLDERS
# -----------------------
def ensure_media_folders():
    """
    Create the local media root and its top-level folders.
    StaticFiles refuses to mount a missing directory.
    """
    base = settings.LOCAL_MEDIA_PATH

    for folder in (base, os.path.join(base, "albums"), os.path.join(base, "profiles")):
        os.makedirs(folder, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (%s)", settings.PROJECT_NAME, settings.ENV)
    init_db()
    yield
    logger.info("Shutting down %s", settings.PROJECT_NAME)
    dispose_db()


# -----------------------
# CREATE APP
# -----------------------
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Backend API for Fambook, a private social network for families.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# -----------------------
# STATIC MEDIA FILES
# -----------------------
if settings.STORAGE_BACKEND == "local":
    ensure_media_folders()
    app.mount("/media", StaticFiles(directory=settings.LOCAL_MEDIA_PATH), name="media")

# -----------------------
# ROUTES
# -----------------------
app.include_router(families_router.router)
app.include_router(roots_router.router)
app.include_router(posts_router.router)
app.include_router(comments_router.router)
app.include_router(albums_router.router)
app.include_router(memories_router.router)
app.include_router(notifications_router.router)
app.include_router(special_days_router.router)
app.include_router(users_router.router)
app.include_router(life_events_router.router)
app.include_router(upload_router.router)
app.include_router(maintenance_router.router)


# -----------------------
# HEALTH CHECK
# -----------------------
@app.get("/")
def root():
    return {"success": True, "message": "Fambook API is running!"}
