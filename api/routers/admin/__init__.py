"""Admin routes package.

Import the router via get_router() to avoid circular imports.
"""

from fastapi import APIRouter

_router = None


def get_router() -> APIRouter:
    """Create and return the combined ingestion admin router."""
    global _router
    if _router is not None:
        return _router

    from api.routers.admin.ingest import router as ingest_router
    from api.routers.admin.pipeline_settings import router as settings_router
    from api.routers.admin.streams import router as streams_router

    combined = APIRouter()
    combined.include_router(ingest_router)
    combined.include_router(settings_router)
    combined.include_router(streams_router)
    _router = combined
    return _router
