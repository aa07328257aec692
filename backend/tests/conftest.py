# =============================================================================
# ZAPP COMMESSE v1.0 - TEST CONFIGURATION
# =============================================================================
# Global fixtures e configurazioni per pytest
# =============================================================================

import os
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Generator, Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient

# Imposta ambiente di test PRIMA di importare l'app
os.environ["TESTING"] = "true"
os.environ["COMMESSE_STORE"] = "memory"

from commesse.dependencies import set_pipeline
from commesse.main import app
from commesse.persistence.repositories import MemoryCommesseRepository
from commesse.services.commesse.models import Commessa, RegolaNotifica
from commesse.services.commesse.pipeline import PipelineStore
from commesse.services.notifications import NotificationChannel, NotificationDispatcher


FIXED_NOW = datetime(2025, 6, 1, 10, 0, 0)


# =============================================================================
# DOUBLES
# =============================================================================

class FlakyRepository(MemoryCommesseRepository):
    """
    Store in memoria con errori iniettabili.

    - fail_on: nomi delle operazioni di scrittura che devono fallire
    - gate: se impostato, le scritture attendono l'evento prima di procedere
    - gate_on: limita l'attesa a queste operazioni (vuoto = tutte)
    - writes: scritture andate a buon fine, in ordine
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on = set()
        self.gate: Optional[threading.Event] = None
        self.gate_on = set()
        self.writes: List[tuple] = []

    def _check(self, operazione: str) -> None:
        if self.gate is not None and (not self.gate_on or operazione in self.gate_on):
            self.gate.wait(5)
        if operazione in self.fail_on:
            raise ConnectionError(f"{operazione}: connessione al database persa")

    def update_fase(self, fase_id, changes):
        self._check('update_fase')
        super().update_fase(fase_id, changes)
        self.writes.append(('update_fase', fase_id, dict(changes)))

    def update_commessa(self, commessa_id, changes):
        self._check('update_commessa')
        super().update_commessa(commessa_id, changes)
        self.writes.append(('update_commessa', commessa_id, dict(changes)))

    def delete_fasi(self, commessa_id):
        self._check('delete_fasi')
        self.writes.append(('delete_fasi', commessa_id))
        return super().delete_fasi(commessa_id)

    def delete_comunicazioni(self, commessa_id):
        self._check('delete_comunicazioni')
        self.writes.append(('delete_comunicazioni', commessa_id))
        return super().delete_comunicazioni(commessa_id)

    def delete_commessa(self, commessa_id):
        self._check('delete_commessa')
        self.writes.append(('delete_commessa', commessa_id))
        return super().delete_commessa(commessa_id)


class RecordingChannel(NotificationChannel):
    """Canale che registra le consegne invece di inviarle."""

    def __init__(self, name: str, fail_for: Iterable[str] = ()):
        self.name = name
        self.fail_for = set(fail_for)
        self.sent: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def deliver(self, regola, event_type, payload):
        if regola.recipient_name in self.fail_for:
            raise RuntimeError("gateway non raggiungibile")
        with self._lock:
            self.sent.append({
                'event_type': event_type,
                'recipient': regola.recipient_name,
                'payload': dict(payload),
            })
        return regola.recipient_phone or regola.recipient_email


def attendi(condizione: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Polling per effetti prodotti da thread in background."""
    limite = time.monotonic() + timeout
    while time.monotonic() < limite:
        if condizione():
            return True
        time.sleep(0.01)
    return condizione()


# =============================================================================
# PIPELINE FIXTURES
# =============================================================================

@pytest.fixture
def store() -> FlakyRepository:
    return FlakyRepository()


@pytest.fixture
def whatsapp() -> RecordingChannel:
    return RecordingChannel('whatsapp')


@pytest.fixture
def email() -> RecordingChannel:
    return RecordingChannel('email')


@pytest.fixture
def dispatcher(store, whatsapp, email) -> Generator[NotificationDispatcher, None, None]:
    d = NotificationDispatcher(store, {'whatsapp': whatsapp, 'email': email}, max_workers=2)
    yield d
    d.shutdown(timeout=5)


@pytest.fixture
def pipeline(store, dispatcher) -> Generator[PipelineStore, None, None]:
    p = PipelineStore(store, dispatcher, max_workers=2, clock=lambda: FIXED_NOW)
    yield p
    if store.gate is not None:
        store.gate.set()
    p.shutdown(timeout=5)


@pytest.fixture
def carica(store, pipeline) -> Callable[..., None]:
    """Inserisce commesse e regole nello store e ricarica la cache."""
    def _carica(*commesse: Commessa, regole: Iterable[RegolaNotifica] = ()) -> None:
        for commessa in commesse:
            store.add_commessa(commessa)
        for regola in regole:
            store.add_regola(regola)
        pipeline.load()
    return _carica


# =============================================================================
# CLIENT FIXTURES
# =============================================================================

@pytest.fixture
def client(pipeline) -> Generator[TestClient, None, None]:
    """TestClient con la pipeline di test come singleton."""
    set_pipeline(pipeline)
    yield TestClient(app)
    set_pipeline(None)


# =============================================================================
# MARKER CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """
    Configura marker personalizzati.
    """
    config.addinivalue_line(
        "markers", "integration: test di integrazione (richiedono DB)"
    )
    config.addinivalue_line(
        "markers", "unit: test unitari isolati"
    )
