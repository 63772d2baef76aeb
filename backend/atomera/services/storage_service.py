"""Almacenamiento clave-valor duradero basado en archivos.

Es el equivalente en servidor del `localStorage` del navegador: cada clave
es un "slot" que guarda una cadena. Cada slot vive en su propio archivo JSON
dentro de `base_dir`; las escrituras pasan por un archivo temporal y
`os.replace`, de modo que un corte a mitad de escritura nunca deja un slot
a medias.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional

from atomera.core.config import get_settings


class StorageError(Exception):
    """Error genérico al leer o escribir un slot."""


class StorageQuotaExceededError(StorageError):
    """El valor supera el límite configurado para un slot."""


# Marca "tomar el valor de la configuración"; None significa sin límite.
FROM_SETTINGS: Any = object()


class KeyValueStorage:
    """Slots de texto persistidos en disco, uno por clave."""

    def __init__(
        self,
        base_dir: Path | None = None,
        max_bytes: Optional[int] = FROM_SETTINGS,
    ) -> None:
        if base_dir is None or max_bytes is FROM_SETTINGS:
            settings = get_settings()
            base_dir = base_dir or settings.storage_dir
            if max_bytes is FROM_SETTINGS:
                max_bytes = settings.storage_max_bytes
        self.base_dir = base_dir
        self.max_bytes = max_bytes
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path_for_key(self, key: str) -> Path:
        """Construye una ruta segura para una clave arbitraria."""
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.base_dir / f"{safe_key}.json"

    def get_item(self, key: str) -> Optional[str]:
        """Devuelve el contenido del slot o None si no existe."""
        path = self._path_for_key(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Cannot read slot {key!r}: {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        """Sustituye el contenido completo del slot."""
        data = value.encode("utf-8")
        if self.max_bytes is not None and len(data) > self.max_bytes:
            raise StorageQuotaExceededError(
                f"Slot {key!r} needs {len(data)} bytes, quota is {self.max_bytes}"
            )

        path = self._path_for_key(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Cannot write slot {key!r}: {exc}") from exc

    def remove_item(self, key: str) -> None:
        """Borra el slot; no hace nada si no existe."""
        path = self._path_for_key(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot remove slot {key!r}: {exc}") from exc
