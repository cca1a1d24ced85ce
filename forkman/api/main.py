"""
forkman.api.main — FastAPI application entry point
=====================================================

Run with::

    uvicorn forkman.api.main:app --reload --port 8000

or ``python -m forkman.api.main`` to use ``dashboard_port`` from config.yaml.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from forkman.api.deps import get_engine  # noqa: E402
from forkman.api.routes.economy import admin_router, public_router  # noqa: E402
from forkman.database.seed import seed_default_events  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine and seed the catalog."""
    engine = get_engine()
    seed_default_events(engine)
    logger.info("Forkman API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Forkman API shutting down")


app = FastAPI(
    title="Forkman Economy API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(public_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


def main() -> None:
    """Serve the API on the ``dashboard_port`` from config.yaml."""
    import uvicorn

    from forkman.api.deps import get_config

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )
    uvicorn.run(app, host="0.0.0.0", port=get_config().dashboard_port)


if __name__ == "__main__":
    main()
