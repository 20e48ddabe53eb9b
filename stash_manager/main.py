"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stash_manager import __version__
from stash_manager.config import get_settings
from stash_manager.middleware.error_handler import setup_error_handlers

settings = get_settings()
logger = logging.getLogger("stash_manager")


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    """Apply the configured log level to the stash_manager loggers."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.setLevel(level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events - startup and shutdown."""
    configure_logging()

    # Startup: Initialize database
    from stash_manager.database.engine import init_db
    init_db()
    logger.info("Starting up D2 Stash Manager")

    yield  # Application runs here

    # Shutdown: Close database connections
    from stash_manager.database.engine import close_db
    close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title="D2 Stash Manager",
    description="Import and browse Diablo II: Resurrected characters",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for the desktop frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "tauri://localhost",
        "http://localhost:1420",
        "http://127.0.0.1:1420",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_error_handlers(app, debug=settings.DEBUG)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "online", "app": "D2 Stash Manager", "version": __version__}


@app.get("/health")
def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "debug_mode": settings.DEBUG,
    }


# Routes
from stash_manager.api.routes import characters  # noqa: E402
app.include_router(characters.router, prefix="/api/characters", tags=["characters"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("stash_manager.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
