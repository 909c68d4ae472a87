"""Sharing Image - Main FastAPI Application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from sharing_image.api.v1.router import api_router
from sharing_image.core.config import settings
from sharing_image.core.database import init_db, close_db
from sharing_image.core.errors import SharingImageError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting Sharing Image v%s", settings.VERSION)

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    yield

    # Cleanup
    logger.info("Shutting down Sharing Image...")
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Sharing Image",
        description="Social sharing image templates and generator",
        version=settings.VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SharingImageError)
    async def handle_service_error(request: Request, exc: SharingImageError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "services": {
                "database": True,
                "uploads": settings.UPLOADS_PATH.exists(),
                "format": settings.IMAGE_FORMAT,
            },
        }

    # Include API router
    app.include_router(api_router, prefix="/v1")

    # Serve generated images
    uploads_path = settings.UPLOADS_PATH
    if uploads_path.exists():
        app.mount(settings.UPLOADS_URL, StaticFiles(directory=str(uploads_path)), name="uploads")
        logger.info("Uploads mounted at %s: %s", settings.UPLOADS_URL, uploads_path)

    return app


# Create app instance
app = create_app()


def main():
    """Run the application."""
    import uvicorn

    uvicorn.run(
        "sharing_image.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )


if __name__ == "__main__":
    main()
