"""Enumeraciones compartidas y la máquina de estados de los jobs."""

from enum import Enum


class JobStatus(str, Enum):
    """Estados posibles de un job de afinidad de unión."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return not JOB_TRANSITIONS[self]

    @property
    def progress(self) -> int:
        """Porcentaje aproximado que se muestra en la barra de progreso."""
        return STATUS_PROGRESS[self]

    @property
    def message(self) -> str:
        return STATUS_MESSAGES[self]


class InputType(str, Enum):
    """Cómo se entregó la proteína o el ligando."""

    FILE = "file"
    TEXT = "text"


# Transiciones permitidas; los estados terminales no tienen salida.
JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

STATUS_PROGRESS: dict[JobStatus, int] = {
    JobStatus.QUEUED: 10,
    JobStatus.RUNNING: 50,
    JobStatus.COMPLETED: 100,
    JobStatus.FAILED: 100,
}

STATUS_MESSAGES: dict[JobStatus, str] = {
    JobStatus.QUEUED: "Job is in queue, waiting to be processed...",
    JobStatus.RUNNING: "Running binding affinity analysis...",
    JobStatus.COMPLETED: "Analysis completed successfully!",
    JobStatus.FAILED: "Job failed to complete. Please check your inputs.",
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    """True si `current -> target` es un paso válido del ciclo de vida."""
    return target in JOB_TRANSITIONS[current]
