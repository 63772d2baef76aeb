"""Definición del modelo de datos de un Job.

Un job representa un envío proteína + ligando y el estado simulado de su
análisis. Los atributos usan snake_case en Python, pero se serializan en
camelCase (`proteinInput`, `bindingAffinity`...) para que el formato
persistido sea el mismo que guardaba el front-end en localStorage.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from atomera.core.enums import InputType, JobStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base común: alias camelCase y posibilidad de poblar por nombre."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Pose(CamelModel):
    """Una conformación candidata; rank 1 es la primera generada."""

    rank: int
    score: float
    id: str


class Job(CamelModel):
    """Modelo principal que describe el estado de un job."""

    id: str
    name: str
    protein_input: str
    protein_type: InputType
    ligand_input: str
    ligand_type: InputType
    notes: Optional[str] = None

    status: JobStatus = JobStatus.QUEUED  # Estado actual en el ciclo de vida
    created: datetime = Field(default_factory=utcnow)
    updated: datetime = Field(default_factory=utcnow)

    # Sólo presentes cuando status == completed
    runtime: Optional[int] = None  # milisegundos
    binding_affinity: Optional[float] = None  # kcal/mol
    poses: Optional[List[Pose]] = None

    @field_validator("created", "updated")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Fechas ISO sin desfase se guardaron en UTC; así nunca se mezclan
        # valores naive y aware al comparar.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def has_results(self) -> bool:
        return (
            self.runtime is not None
            and self.binding_affinity is not None
            and bool(self.poses)
        )

    def to_storage(self) -> dict:
        """Representación JSON-serializable con claves camelCase."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class JobCreate(CamelModel):
    """Datos que envía el usuario al crear un job."""

    name: str
    protein_input: str
    protein_type: InputType
    ligand_input: str
    ligand_type: InputType
    notes: Optional[str] = None

    @field_validator("name", "protein_input", "ligand_input")
    @classmethod
    def check_required(cls, value: str) -> str:
        # Sólo se comprueba que no esté vacío; el contenido nunca se interpreta.
        if not value.strip():
            raise ValueError("field is required")
        return value


class JobUpdate(CamelModel):
    """Campos editables por el cliente a través de la API."""

    name: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("name must not be blank")
        return value
