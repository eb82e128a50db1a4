"""
FastAPI application entry point for the Message in a Bottle backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from backend.admin_routes import router as admin_router
from backend.config import get_settings
from backend.routes import router, site_router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = FastAPI(title="Message in a Bottle API", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(admin_router, prefix=settings.api_prefix)
    app.include_router(site_router)
    return app


app = create_app()
