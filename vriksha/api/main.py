"""
vriksha.api.main — FastAPI application entry point
===================================================

Run with::

    uvicorn vriksha.api.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from vriksha.api.deps import get_config, get_store  # noqa: E402
from vriksha.api.routes.insights import router as insights_router  # noqa: E402
from vriksha.api.routes.saplings import router as saplings_router  # noqa: E402
from vriksha.api.routes.snapshots import router as snapshots_router  # noqa: E402
from vriksha.api.routes.social import router as social_router  # noqa: E402
from vriksha.api.routes.users import router as users_router  # noqa: E402
from vriksha.config import configure_logging  # noqa: E402
from vriksha.errors import (  # noqa: E402
    ExternalServiceError,
    NotFoundError,
    ValidationError,
    VrikshaError,
)

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[VrikshaError], int] = {
    ValidationError: 422,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ExternalServiceError: status.HTTP_502_BAD_GATEWAY,
}


def _cors_origins() -> list[str]:
    """Comma-separated ``CORS_ALLOW_ORIGINS``, else ``FRONTEND_URL``, else none."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — configure logging and warm the store."""
    cfg = get_config()
    configure_logging(cfg.log_level)
    store = get_store()
    logger.info(
        "%s API started — %d users, %d saplings",
        cfg.community_name, len(store.get_all_users()), len(store.get_all_saplings()),
    )
    yield
    logger.info("Vriksha API shutting down")


app = FastAPI(
    title="Vriksha Tracker API",
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


@app.exception_handler(VrikshaError)
async def vriksha_error_handler(request: Request, exc: VrikshaError) -> JSONResponse:
    code = next(
        (sc for cls, sc in _ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    return JSONResponse(status_code=code, content=exc.to_dict())


# Mount routers
app.include_router(users_router, prefix="/api")
app.include_router(saplings_router, prefix="/api")
app.include_router(social_router, prefix="/api")
app.include_router(insights_router, prefix="/api")
app.include_router(snapshots_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
