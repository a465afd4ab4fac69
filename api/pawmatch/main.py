import logging
import os
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .database import Base, SessionLocal
from .database import engine as db_engine
from .domain import Profile
from .routes import include_modular_routers
from .services.engine import SwipeEngine
from .services.sessions import EngineRegistry, default_engine_factory

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="PawMatch API")
include_modular_routers(app)

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8081",
    "http://127.0.0.1:8081",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

engine_factory = default_engine_factory


def _make_engine(swiper: Profile) -> SwipeEngine:
    return engine_factory(swiper)


def wait_for_db(max_attempts: int = 20, delay_seconds: float = 1.5) -> None:
    last_err: Exception | None = None
    for _ in range(max_attempts):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
                db.commit()
            return
        except OperationalError as exc:
            last_err = exc
            logger.warning("[REPO] database not ready, retrying in %.1fs", delay_seconds)
            time.sleep(delay_seconds)
    if last_err:
        raise last_err


def init_db() -> None:
    from . import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=db_engine)


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    init_db()
    app.state.engines = EngineRegistry(_make_engine)
    logger.info("[ENGINE] registry ready")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    registry = getattr(app.state, "engines", None)
    if registry is not None:
        await registry.close_all()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
