"""
FastAPI main application for AgroConnect.
"""

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from agroconnect.config import get_settings
from agroconnect.db import init_db, close_db
from agroconnect.error_handling import ErrorHandler

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    logger.info("Starting AgroConnect API...")
    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down AgroConnect API...")
    await close_db()


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Build the application; tests pass use_lifespan=False to skip database start-up"""
    app = FastAPI(
        title="AgroConnect API",
        description="Marketplace connecting agricultural producers and technicians",
        version=VERSION,
        lifespan=lifespan if use_lifespan else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    ErrorHandler(include_details=settings.is_development).install(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": VERSION
        }

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "AgroConnect API",
            "docs": "/docs",
            "health": "/health"
        }

    # Import and include routers
    from agroconnect.routers import activities, announcements, auth, documents, offers, reviews, users

    app.include_router(auth.router, prefix="/api", tags=["auth"])
    app.include_router(announcements.router, prefix="/api", tags=["announcements"])
    app.include_router(offers.router, prefix="/api", tags=["offers"])
    app.include_router(reviews.router, prefix="/api", tags=["reviews"])
    app.include_router(documents.router, prefix="/api", tags=["documents"])
    app.include_router(activities.router, prefix="/api", tags=["activities"])
    app.include_router(users.router, prefix="/api", tags=["users"])

    return app


app = create_app()
