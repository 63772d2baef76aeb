from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from atomera.api.deps import get_job_service
from atomera.core.enums import JobStatus
from atomera.models.job import Job, JobCreate, JobUpdate
from atomera.services.job_service import JobService
from atomera.services.results_service import JobNotCompletedError, build_results

router = APIRouter(prefix="/jobs", tags=["jobs"])


def job_payload(job: Job) -> dict:
    """Job en camelCase más el progreso y mensaje de su estado."""
    payload = job.model_dump(mode="json", by_alias=True)
    payload["progress"] = job.status.progress
    payload["message"] = job.status.message
    payload["isTerminal"] = job.status.is_terminal
    return payload


def get_job_or_404(job_id: str, service: JobService) -> Job:
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found.",
        )
    return job


@router.post(
    "",
    summary="Submit a protein + ligand binding affinity job",
    status_code=status.HTTP_201_CREATED,
)
async def create_job(
    data: JobCreate, service: JobService = Depends(get_job_service)
) -> dict:
    # La simulación arranca en segundo plano; la respuesta sale en `queued`.
    job = service.create_job(data)
    return job_payload(job)


@router.get("", summary="List jobs, most recently updated first")
async def list_jobs(
    q: Optional[str] = Query(None, description="Search by job name or id"),
    status_filter: Optional[JobStatus] = Query(None, alias="status"),
    service: JobService = Depends(get_job_service),
) -> list[dict]:
    return [job_payload(job) for job in service.search_jobs(q, status_filter)]


@router.get("/stats", summary="Number of jobs per status")
async def job_stats(service: JobService = Depends(get_job_service)) -> dict:
    return service.count_by_status()


@router.get("/{job_id}", summary="Get job status")
async def get_job_status(
    job_id: str, service: JobService = Depends(get_job_service)
) -> dict:
    return job_payload(get_job_or_404(job_id, service))


@router.patch("/{job_id}", summary="Rename a job or edit its notes")
async def update_job(
    job_id: str, data: JobUpdate, service: JobService = Depends(get_job_service)
) -> dict:
    job = service.update_job(job_id, **data.model_dump(exclude_unset=True))
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found.",
        )
    return job_payload(job)


@router.delete(
    "/{job_id}",
    summary="Delete a job",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_job(
    job_id: str, service: JobService = Depends(get_job_service)
) -> Response:
    if not service.delete_job(job_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found.",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{job_id}/results", summary="Binding affinity results of a completed job")
async def get_job_results(
    job_id: str, service: JobService = Depends(get_job_service)
) -> dict:
    job = get_job_or_404(job_id, service)
    try:
        results = build_results(job)
    except JobNotCompletedError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    return results.model_dump(mode="json", by_alias=True)
