import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from atomera.core.config import Settings
from atomera.services.job_service import JobService
from atomera.services.storage_service import KeyValueStorage


class ScriptedRandom:
    """Devuelve los valores indicados en orden y luego `default`."""

    def __init__(self, values, default=0.5):
        self._values = list(values)
        self.default = default

    def random(self):
        if self._values:
            return self._values.pop(0)
        return self.default


class InstantSleep:
    """Registra las esperas pedidas y cede el control sin esperar."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        await asyncio.sleep(0)


class GatedSleep:
    """Cada espera queda bloqueada hasta que el test la libera."""

    def __init__(self):
        self.calls = []
        self._gates = []

    async def __call__(self, seconds):
        gate = asyncio.Event()
        self.calls.append(seconds)
        self._gates.append(gate)
        await gate.wait()

    @property
    def pending(self):
        return sum(1 for gate in self._gates if not gate.is_set())

    def release(self, index):
        self._gates[index].set()


class TickingClock:
    """Reloj falso que avanza un segundo en cada llamada."""

    def __init__(self, start=datetime(2026, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


class RecordingStorage(KeyValueStorage):
    """Guarda el historial de estados de cada job en cada escritura."""

    def __init__(self, base_dir):
        super().__init__(base_dir=base_dir)
        self.status_history = {}

    def set_item(self, key, value):
        super().set_item(key, value)
        for record in json.loads(value):
            history = self.status_history.setdefault(record["id"], [])
            if not history or history[-1] != record["status"]:
                history.append(record["status"])


async def settle(rounds: int = 10) -> None:
    """Deja correr las tareas pendientes del event loop."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settings(tmp_path):
    return Settings(storage_dir=tmp_path / "data")


@pytest.fixture
def storage(settings):
    return KeyValueStorage(base_dir=settings.storage_dir)


@pytest.fixture
def gated_sleep():
    return GatedSleep()


@pytest.fixture
def service(storage, settings, gated_sleep):
    return JobService(storage=storage, settings=settings, sleep=gated_sleep)


@pytest.fixture
def job_data():
    return {
        "name": "T1",
        "protein_input": "seq",
        "protein_type": "text",
        "ligand_input": "CCO",
        "ligand_type": "text",
    }
