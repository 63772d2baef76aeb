"""Punto de entrada de la API usando FastAPI.

`create_app` monta la aplicación, configura CORS y logging y registra los
routers. El `JobService` se construye una sola vez en el arranque (o se
inyecta desde fuera, p.ej. en los tests) y se guarda en `app.state`.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from atomera.api.v1.jobs import router as jobs_router
from atomera.core.config import get_settings
from atomera.core.logging_conf import configure_logging
from atomera.services.job_service import JobService

logger = logging.getLogger(__name__)


def create_app(job_service: Optional[JobService] = None) -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = job_service or JobService(settings=settings)
        app.state.job_service = service
        logger.info("%s started (%s)", settings.app_name, settings.environment)
        try:
            yield
        finally:
            # Al apagar, las simulaciones pendientes se cancelan.
            await service.shutdown()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS configurable via `settings.allowed_origins` (definido en .env)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(o) for o in settings.allowed_origins],
        allow_credentials=settings.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(jobs_router, prefix="/api/v1")
    return app


app = create_app()
