"""
FastAPI application entry point for the FratRank backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fratrank.config import get_settings
from fratrank.errors import FratRankError
from fratrank.routes import router

logger = logging.getLogger(__name__)


async def handle_fratrank_error(request: Request, exc: FratRankError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="FratRank Backend (FastAPI)", version="0.1.0")
    app.add_exception_handler(FratRankError, handle_fratrank_error)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
