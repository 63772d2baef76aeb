"""Servicio que gestiona los jobs y simula su procesamiento.

No hay cálculo real de afinidad: cada job creado lanza una tarea asyncio
que espera un rato en cola, pasa a `running`, espera otro rato y termina en
`completed` (con resultados aleatorios) o `failed`. La colección vive en
memoria y se vuelca completa al slot persistente después de cada cambio.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import random
import secrets
import string
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from atomera.core.config import Settings, get_settings
from atomera.core.enums import JobStatus, can_transition
from atomera.models.job import Job, JobCreate, Pose, utcnow
from atomera.services.storage_service import KeyValueStorage, StorageError

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]

# Rangos de los resultados inventados
RUNTIME_RANGE_MS = (5000, 20000)
AFFINITY_CENTER = -8.2  # kcal/mol
AFFINITY_SPREAD = 2.0
POSE_COUNT_RANGE = (5, 20)
POSE_SCORE_RANGE = (-9.0, -6.0)

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


class JobService:
    """
    Gestión de jobs: CRUD, persistencia y simulación del ciclo de vida.

    Todas las dependencias se inyectan para poder aislar los tests:
    `storage` es el slot duradero, `rng` cualquier objeto con `.random()`,
    `sleep` la corrutina de espera (en segundos) y `clock` devuelve el
    instante actual. La colección se carga al construir el servicio.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[SleepFunc] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.storage = storage or KeyValueStorage(
            base_dir=self.settings.storage_dir,
            max_bytes=self.settings.storage_max_bytes,
        )
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or utcnow

        # Más reciente primero; `list_jobs` reordena de todos modos.
        self._jobs: List[Job] = []
        # Tareas de simulación en curso, por id de job
        self._simulations: Dict[str, asyncio.Task] = {}

        self.load()

    # ---------- PERSISTENCIA ----------

    def load(self) -> None:
        """Carga la colección desde el slot; nunca lanza excepciones."""
        key = self.settings.storage_key
        try:
            raw = self.storage.get_item(key)
        except StorageError:
            logger.exception("Failed to read jobs from storage slot %r", key)
            self._jobs = []
            return

        if raw is None:
            self._jobs = []
            return

        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise ValueError(f"expected a JSON array, got {type(records).__name__}")
            # pydantic convierte las fechas ISO-8601 de vuelta a datetime
            jobs = [Job.model_validate(record) for record in records]
        except (ValueError, TypeError):
            logger.exception("Failed to load jobs from storage slot %r", key)
            self._jobs = []
            return

        self._jobs = jobs
        logger.info("Loaded %d jobs from storage slot %r", len(jobs), key)

    def save(self) -> None:
        """Vuelca la colección completa; los fallos sólo se registran."""
        key = self.settings.storage_key
        payload = json.dumps([job.to_storage() for job in self._jobs])
        try:
            self.storage.set_item(key, payload)
        except (StorageError, OSError):
            # La memoria sigue siendo la fuente de verdad para esta sesión.
            logger.exception("Failed to save jobs to storage slot %r", key)

    # ---------- CRUD ----------

    def create_job(self, data: Union[JobCreate, Dict[str, Any]]) -> Job:
        """Crea un job en cola y arranca su simulación.

        Debe llamarse con un event loop en marcha (handlers de FastAPI,
        tests asíncronos); la simulación no bloquea al llamante.
        """
        if not isinstance(data, JobCreate):
            data = JobCreate.model_validate(data)

        now = self._clock()
        job = Job(
            id=self.generate_id(),
            status=JobStatus.QUEUED,
            created=now,
            updated=now,
            **data.model_dump(),
        )
        self._jobs.insert(0, job)
        self.save()
        logger.info("Created job %s (%s)", job.id, job.name)

        self._start_simulation(job.id)
        return job.model_copy(deep=True)

    def get_job(self, job_id: str) -> Optional[Job]:
        """Devuelve una copia del job o None si no existe."""
        index = self._index_of(job_id)
        if index is None:
            return None
        return self._jobs[index].model_copy(deep=True)

    def list_jobs(self) -> List[Job]:
        """Copias de todos los jobs, el último modificado primero."""
        snapshot = [job.model_copy(deep=True) for job in self._jobs]
        return sorted(snapshot, key=lambda job: job.updated, reverse=True)

    def update_job(self, job_id: str, **fields: Any) -> Optional[Job]:
        """Fusiona `fields` en el job y refresca `updated`.

        `id`, `created` y `updated` no se pueden sobrescribir. Devuelve None
        (sin guardar nada) si el job no existe.
        """
        index = self._index_of(job_id)
        if index is None:
            logger.debug("Update ignored, job %s not found", job_id)
            return None

        for frozen in ("id", "created", "updated"):
            fields.pop(frozen, None)

        current = self._jobs[index]
        # Nunca retroceder, aunque el reloj del sistema lo haga
        now = max(self._clock(), current.updated)
        updated = Job.model_validate({**current.model_dump(), **fields, "updated": now})

        # Al frente: ante empates de `updated`, gana el último modificado
        del self._jobs[index]
        self._jobs.insert(0, updated)
        self.save()
        return updated.model_copy(deep=True)

    def delete_job(self, job_id: str) -> bool:
        index = self._index_of(job_id)
        if index is None:
            return False

        del self._jobs[index]
        self.save()
        logger.info("Deleted job %s", job_id)
        return True

    def generate_id(self) -> str:
        """`job_` + 9 caracteres aleatorios en base 36 + reloj en base 36."""
        while True:
            random_part = "".join(secrets.choice(_BASE36) for _ in range(9))
            job_id = f"job_{random_part}{_to_base36(int(time.time() * 1000))}"
            if self._index_of(job_id) is None:
                return job_id

    # ---------- CONSULTAS PARA EL LISTADO ----------

    def search_jobs(
        self,
        query: Optional[str] = None,
        status: Optional[Union[JobStatus, str]] = None,
    ) -> List[Job]:
        """Filtra por texto (nombre o id, sin mayúsculas) y por estado."""
        jobs = self.list_jobs()

        if query and query.strip():
            needle = query.lower()
            jobs = [
                job
                for job in jobs
                if needle in job.name.lower() or needle in job.id.lower()
            ]

        if status is not None:
            wanted = JobStatus(status)
            jobs = [job for job in jobs if job.status == wanted]

        return jobs

    def count_by_status(self) -> Dict[str, int]:
        counts = {"total": len(self._jobs)}
        for status in JobStatus:
            counts[status.value] = sum(1 for job in self._jobs if job.status == status)
        return counts

    # ---------- SIMULACIÓN ----------

    def simulation_for(self, job_id: str) -> Optional[asyncio.Task]:
        """Tarea de simulación en curso para el job, si la hay."""
        return self._simulations.get(job_id)

    async def wait_for_simulations(self) -> None:
        """Espera a que terminen todas las simulaciones en curso."""
        while self._simulations:
            await asyncio.gather(*list(self._simulations.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancela las simulaciones pendientes al apagar la aplicación."""
        tasks = list(self._simulations.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d in-flight simulations", len(tasks))
        self._simulations.clear()

    def _start_simulation(self, job_id: str) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run_simulation(job_id), name=f"simulate-{job_id}")
        self._simulations[job_id] = task
        task.add_done_callback(lambda _task: self._simulations.pop(job_id, None))

    async def _run_simulation(self, job_id: str) -> None:
        try:
            await self._simulate_job_progress(job_id)
        except Exception:
            logger.exception("Simulation for job %s crashed", job_id)

    async def _simulate_job_progress(self, job_id: str) -> None:
        settings = self.settings

        # 1) Espera en cola
        await self._sleep(
            self._uniform(settings.queue_delay_min_ms, settings.queue_delay_max_ms) / 1000
        )
        if self._advance(job_id, JobStatus.RUNNING) is None:
            return

        # 2) "Cálculo"
        await self._sleep(
            self._uniform(settings.run_delay_min_ms, settings.run_delay_max_ms) / 1000
        )

        # 3) Resultado: 90 % de éxito con los valores por defecto
        if self._rng.random() > settings.failure_rate:
            job = self._advance(
                job_id, JobStatus.COMPLETED, **self._generate_results(job_id)
            )
        else:
            job = self._advance(job_id, JobStatus.FAILED)

        if job is not None:
            logger.info("Job %s finished with status %s", job_id, job.status.value)

    def _advance(self, job_id: str, target: JobStatus, **fields: Any) -> Optional[Job]:
        """Mueve el job a `target` si el ciclo de vida lo permite.

        Devuelve None si el job ya no existe (borrado durante la simulación)
        o si su estado actual no admite el paso; en ambos casos la
        simulación se detiene sin tocar nada.
        """
        index = self._index_of(job_id)
        if index is None:
            logger.info("Job %s no longer exists, dropping %s transition", job_id, target.value)
            return None

        current = self._jobs[index].status
        if not can_transition(current, target):
            logger.warning(
                "Job %s is %s, refusing transition to %s", job_id, current.value, target.value
            )
            return None

        return self.update_job(job_id, status=target, **fields)

    def _generate_results(self, job_id: str) -> Dict[str, Any]:
        runtime = math.floor(self._uniform(*RUNTIME_RANGE_MS))
        binding_affinity = AFFINITY_CENTER + self._uniform(-AFFINITY_SPREAD, AFFINITY_SPREAD)
        count = math.floor(self._uniform(*POSE_COUNT_RANGE))
        # Las puntuaciones no se ordenan: el rank es el orden de generación.
        poses = [
            Pose(rank=i, score=self._uniform(*POSE_SCORE_RANGE), id=f"pose_{i}_{job_id}")
            for i in range(1, count + 1)
        ]
        return {"runtime": runtime, "binding_affinity": binding_affinity, "poses": poses}

    # ---------- AUXILIARES ----------

    def _uniform(self, low: float, high: float) -> float:
        """Valor en [low, high) a partir de `rng.random()`."""
        return low + self._rng.random() * (high - low)

    def _index_of(self, job_id: str) -> Optional[int]:
        for index, job in enumerate(self._jobs):
            if job.id == job_id:
                return index
        return None
