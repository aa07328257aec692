# =============================================================================
# ZAPP COMMESSE v1.0 - MEMORY REPOSITORY
# =============================================================================
# Backing store in-process (COMMESSE_STORE=memory): sviluppo locale e test
# =============================================================================

import copy
import threading
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import CommesseStore
from ...services.commesse.models import Commessa, Comunicazione, RegolaNotifica


class MemoryCommesseRepository(CommesseStore):
    """
    Implementazione thread-safe in memoria.

    Conserva copie profonde: chi legge o scrive non condivide mai oggetti
    con il contenuto del repository.
    """

    def __init__(self, commesse: Optional[List[Commessa]] = None,
                 regole: Optional[List[RegolaNotifica]] = None):
        self._lock = threading.RLock()
        self._commesse: Dict[str, Commessa] = {}
        self._comunicazioni: List[Comunicazione] = []
        self._regole: List[RegolaNotifica] = []
        for commessa in commesse or []:
            self.add_commessa(commessa)
        for regola in regole or []:
            self.add_regola(regola)

    # Seed
    def add_commessa(self, commessa: Commessa) -> None:
        with self._lock:
            self._commesse[commessa.id] = copy.deepcopy(commessa)

    def add_regola(self, regola: RegolaNotifica) -> None:
        with self._lock:
            if regola.id is None:
                regola = copy.deepcopy(regola)
                regola.id = str(uuid.uuid4())
            self._regole.append(regola)

    # -------------------------------------------------------------------------
    # LETTURA
    # -------------------------------------------------------------------------

    def get_commessa(self, commessa_id: str) -> Optional[Commessa]:
        with self._lock:
            commessa = self._commesse.get(commessa_id)
            return copy.deepcopy(commessa) if commessa else None

    def list_commesse(self) -> List[Commessa]:
        with self._lock:
            return [copy.deepcopy(c) for c in self._commesse.values()]

    def _proprietario_fase(self, fase_id: str) -> Optional[str]:
        with self._lock:
            for commessa in self._commesse.values():
                if commessa.fase(fase_id) is not None:
                    return commessa.id
            return None

    # -------------------------------------------------------------------------
    # SCRITTURA
    # -------------------------------------------------------------------------

    def update_fase(self, fase_id: str, changes: Dict[str, Any]) -> None:
        with self._lock:
            owner = self._proprietario_fase(fase_id)
            if owner is None:
                raise LookupError(f"Fase {fase_id} non presente")
            fase = self._commesse[owner].fase(fase_id)
            for key, value in changes.items():
                setattr(fase, key, value)

    def update_commessa(self, commessa_id: str, changes: Dict[str, Any]) -> None:
        with self._lock:
            commessa = self._commesse.get(commessa_id)
            if commessa is None:
                raise LookupError(f"Commessa {commessa_id} non presente")
            for key, value in changes.items():
                setattr(commessa, key, value)

    def delete_fasi(self, commessa_id: str) -> int:
        with self._lock:
            commessa = self._commesse.get(commessa_id)
            if commessa is None:
                return 0
            count = len(commessa.fasi)
            commessa.fasi = []
            return count

    def delete_comunicazioni(self, commessa_id: str) -> int:
        with self._lock:
            before = len(self._comunicazioni)
            self._comunicazioni = [c for c in self._comunicazioni if c.commessa_id != commessa_id]
            return before - len(self._comunicazioni)

    def delete_commessa(self, commessa_id: str) -> bool:
        with self._lock:
            return self._commesse.pop(commessa_id, None) is not None

    # -------------------------------------------------------------------------
    # COMUNICAZIONI E REGOLE
    # -------------------------------------------------------------------------

    def add_comunicazione(self, comunicazione: Comunicazione) -> Comunicazione:
        with self._lock:
            salvata = copy.deepcopy(comunicazione)
            salvata.id = salvata.id or str(uuid.uuid4())
            salvata.created_at = salvata.created_at or datetime.now()
            self._comunicazioni.append(salvata)
            return copy.deepcopy(salvata)

    def list_comunicazioni(self, commessa_id: str) -> List[Comunicazione]:
        with self._lock:
            return [copy.deepcopy(c) for c in self._comunicazioni if c.commessa_id == commessa_id]

    def get_notification_rules(self, event_type: str) -> List[RegolaNotifica]:
        with self._lock:
            return [
                copy.deepcopy(r) for r in self._regole
                if r.event_type == event_type and r.is_active
            ]
