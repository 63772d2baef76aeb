"""Dependencias compartidas de FastAPI."""

from fastapi import Request

from atomera.services.job_service import JobService


def get_job_service(request: Request) -> JobService:
    """Devuelve el servicio creado en el arranque de la aplicación."""
    return request.app.state.job_service
