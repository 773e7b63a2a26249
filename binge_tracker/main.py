"""FastAPI application entry point for binge-tracker."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import get_session_maker, init_database
from .routers import shows_router, timeline_router, settings_router
from .routers.settings import get_refresh_interval, get_tmdb_api_key
from .services.refresh import RefreshOrchestrator
from .services.scheduler import RefreshScheduler
from .services.store import SQLShowStore
from .services.tmdb import TMDBService

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting binge-tracker...")
    init_database()
    logger.info("Database initialized")

    SessionLocal = get_session_maker()
    db = SessionLocal()
    try:
        api_key = get_tmdb_api_key(db)
        interval = get_refresh_interval(db)
    finally:
        db.close()

    store = SQLShowStore(SessionLocal)
    catalog = TMDBService(api_key=api_key)
    orchestrator = RefreshOrchestrator(store, catalog)
    scheduler = RefreshScheduler(orchestrator, interval_minutes=interval)

    app.state.store = store
    app.state.catalog = catalog
    app.state.orchestrator = orchestrator
    app.state.scheduler = scheduler

    # Cold launch: refetch everything once, in the background
    launch_task = None
    if settings.refresh_on_startup:
        launch_task = asyncio.create_task(orchestrator.on_app_launch())
    scheduler.start()

    yield

    # Shutdown
    scheduler.stop()
    if launch_task is not None and not launch_task.done():
        launch_task.cancel()
    await catalog.close()
    logger.info("Shutting down binge-tracker...")


# Create FastAPI application
app = FastAPI(
    title="Binge Tracker",
    description="Tracks followed TV shows and when each season is ready to binge",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(shows_router)
app.include_router(timeline_router)
app.include_router(settings_router)


@app.get("/")
async def root():
    return {
        "message": "Binge Tracker API",
        "docs": "/docs",
        "version": "0.1.0",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "binge_tracker.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
