"""Resumen de resultados de un job completado.

Reúne lo que muestra la página de resultados: afinidad, tiempo de
ejecución, número de poses y la mejor pose (la de puntuación más negativa).
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from atomera.core.enums import JobStatus
from atomera.models.job import CamelModel, Job, Pose


class JobNotCompletedError(Exception):
    """Se pidieron resultados de un job que todavía no ha terminado bien."""

    def __init__(self, job: Job) -> None:
        super().__init__(f"Job {job.id} is {job.status.value}, not completed")
        self.job = job


class JobResults(CamelModel):
    job_id: str
    name: str
    completed_at: datetime
    binding_affinity: float
    binding_affinity_display: str
    runtime: int
    runtime_display: str
    pose_count: int
    best_pose: Optional[Pose] = None
    poses: List[Pose]


def format_binding_affinity(affinity: float) -> str:
    return f"{affinity:.2f} kcal/mol"


def format_runtime(runtime_ms: int) -> str:
    return f"{runtime_ms / 1000:.1f}s"


def build_results(job: Job) -> JobResults:
    """Construye el resumen; lanza JobNotCompletedError si no aplica."""
    if job.status != JobStatus.COMPLETED or not job.has_results:
        raise JobNotCompletedError(job)

    poses = sorted(job.poses, key=lambda pose: pose.rank)
    best_pose = min(poses, key=lambda pose: pose.score)
    return JobResults(
        job_id=job.id,
        name=job.name,
        completed_at=job.updated,
        binding_affinity=job.binding_affinity,
        binding_affinity_display=format_binding_affinity(job.binding_affinity),
        runtime=job.runtime,
        runtime_display=format_runtime(job.runtime),
        pose_count=len(poses),
        best_pose=best_pose,
        poses=poses,
    )
