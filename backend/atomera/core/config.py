"""Carga de configuración de la aplicación.

Usa `pydantic-settings` para leer valores desde `.env` o variables de
entorno con el prefijo `ATOMERA_`. Los tiempos de simulación por defecto
son los de producción; sólo conviene tocarlos para demos o pruebas.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Contenedor tipado para todas las opciones configurables."""

    app_name: str = "Atomera API"
    environment: str = "development"
    log_level: str = "INFO"

    # Directorio donde vive el "slot" persistente (equivalente a localStorage)
    storage_dir: Path = Path("data")
    # Clave con espacio de nombres bajo la que se guarda la colección de jobs
    storage_key: str = "atomera_jobs"
    # Límite opcional en bytes por slot; None = sin límite
    storage_max_bytes: Optional[int] = None

    # Espera en cola antes de pasar a `running` (milisegundos)
    queue_delay_min_ms: float = 1000
    queue_delay_max_ms: float = 3000
    # Duración simulada del cálculo antes del resultado (milisegundos)
    run_delay_min_ms: float = 5000
    run_delay_max_ms: float = 10000
    # Probabilidad de que un job termine en `failed`
    failure_rate: float = 0.1

    # CORS: lista JSON o cadena separada por comas
    allowed_origins: Annotated[list[str], NoDecode] = ["*"]
    allow_credentials: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="ATOMERA_", case_sensitive=False
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        if value.strip().startswith("["):
            return json.loads(value)
        return [s.strip() for s in value.split(",") if s.strip()]


@lru_cache
def get_settings() -> Settings:
    """Crea (y memoriza) la configuración de forma perezosa.

    Sólo se construye una instancia por proceso, evitando relecturas
    repetidas de `.env`.
    """
    return Settings()
