# =============================================================================
# ZAPP COMMESSE v1.0 - CACHE OTTIMISTICA
# =============================================================================
# Vista in memoria delle commesse, aggiornata in modo ottimistico.
# =============================================================================

import copy
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from .models import Commessa


@dataclass(frozen=True)
class Snapshot:
    """
    Stato di una singola commessa prima di un commit ottimistico.

    `committed` è l'oggetto pubblicato dal commit: il ripristino avviene
    solo se la cache contiene ancora esattamente quell'oggetto.
    """
    commessa_id: str
    previous: Optional[Commessa]
    committed: Optional[Commessa]


class OptimisticCache:
    """
    Mappa id -> Commessa con aggiornamento copy-on-write.

    Ogni scrittura costruisce una nuova mappa e la sostituisce per intero:
    la mappa pubblicata non viene mai modificata. Commit e ripristino
    toccano una sola chiave: le altre commesse non vengono mai riportate
    indietro. Le letture restituiscono copie profonde.
    """

    def __init__(self, commesse: Optional[Iterable[Commessa]] = None):
        self._lock = threading.Lock()
        self._state: Dict[str, Commessa] = {c.id: c for c in (commesse or [])}

    # -------------------------------------------------------------------------
    # LETTURA
    # -------------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Commessa]:
        """Stato corrente (immutabile per convenzione: non modificarlo)."""
        return self._state

    def get(self, commessa_id: str) -> Optional[Commessa]:
        commessa = self._state.get(commessa_id)
        return copy.deepcopy(commessa) if commessa else None

    def all(self) -> List[Commessa]:
        return [copy.deepcopy(c) for c in self._state.values()]

    def find_by_fase(self, fase_id: str) -> Optional[Commessa]:
        for commessa in self._state.values():
            if commessa.fase(fase_id) is not None:
                return copy.deepcopy(commessa)
        return None

    # -------------------------------------------------------------------------
    # SCRITTURA (sostituzione dell'intera struttura)
    # -------------------------------------------------------------------------

    def commit(self, commessa_id: str, patch: Callable[[Commessa], Commessa]) -> Snapshot:
        """
        Applica ottimisticamente una patch alla commessa.

        Returns:
            Lo snapshot della sola commessa, da usare per il rollback.
        """
        with self._lock:
            current = self._state.get(commessa_id)
            if current is None:
                return Snapshot(commessa_id, None, None)
            committed = patch(copy.deepcopy(current))
            nuovo = dict(self._state)
            nuovo[commessa_id] = committed
            self._state = nuovo
            return Snapshot(commessa_id, current, committed)

    def restore(self, snapshot: Snapshot) -> bool:
        """
        Rimette la commessa com'era prima del commit.

        Non fa nulla se nel frattempo la commessa è stata eliminata,
        riconciliata o modificata da un altro commit.

        Returns:
            True se il ripristino è avvenuto
        """
        with self._lock:
            if snapshot.committed is None:
                return False
            if self._state.get(snapshot.commessa_id) is not snapshot.committed:
                return False
            nuovo = dict(self._state)
            nuovo[snapshot.commessa_id] = snapshot.previous
            self._state = nuovo
            return True

    def reconcile(self, commessa: Commessa) -> None:
        """Sostituisce la commessa con la versione letta dal backing store (se ancora in cache)."""
        with self._lock:
            if commessa.id not in self._state:
                return
            nuovo = dict(self._state)
            nuovo[commessa.id] = copy.deepcopy(commessa)
            self._state = nuovo

    def remove(self, commessa_id: str) -> None:
        with self._lock:
            if commessa_id not in self._state:
                return
            nuovo = dict(self._state)
            del nuovo[commessa_id]
            self._state = nuovo

    def replace_all(self, commesse: Iterable[Commessa]) -> None:
        with self._lock:
            self._state = {c.id: copy.deepcopy(c) for c in commesse}
