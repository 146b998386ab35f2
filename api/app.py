"""FastAPI application factory."""

from fastapi import FastAPI

from api import middleware
from api.lifespan import lifespan
from db.config import settings


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan if use_lifespan else None,
    )
    app.add_middleware(middleware.TimingMiddleware)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    _register_routers(app)
    return app


def _register_routers(app: FastAPI) -> None:
    # Import routers here to avoid circular imports
    from api.routers.admin import get_router as get_admin_router

    app.include_router(get_admin_router())
