"""Main API router for v1."""

from fastapi import APIRouter

from sharing_image.api.v1.endpoints import templates, generator, attachments, configuration

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(templates.router, prefix="/templates", tags=["Templates"])
api_router.include_router(generator.router, prefix="/generator", tags=["Generator"])
api_router.include_router(attachments.router, prefix="/attachments", tags=["Attachments"])
api_router.include_router(configuration.router, prefix="/config", tags=["Configuration"])
