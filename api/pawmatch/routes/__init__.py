from fastapi import APIRouter, FastAPI

from .match import router as match_router
from .profile import router as profile_router
from .swipe import router as swipe_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(profile_router, tags=["profiles"])
    app.include_router(swipe_router, tags=["swipe"])
    app.include_router(match_router, tags=["matches"])


__all__ = ["include_modular_routers", "APIRouter"]
