"""Configuración mínima de `logging` para el proceso."""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
HANDLER_NAME = "atomera-console"


def configure_logging(level: str = "INFO") -> None:
    """Instala un handler de consola en el logger raíz.

    Es idempotente: si el handler ya existe (p.ej. al crear varias apps en
    los tests) sólo se actualiza el nivel.
    """
    root = logging.getLogger()
    if not any(h.get_name() == HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level.upper())
