# =============================================================================
# ZAPP COMMESSE v1.0 - PIPELINE STORE
# =============================================================================
# Punto di ingresso delle mutazioni su commesse e fasi.
#
# Protocollo per ogni mutazione:
#   1. validazione (rifiuto = nessuna scrittura, nessuna notifica)
#   2. snapshot della commessa + commit ottimistico in cache (visibile subito)
#   3. scrittura durevole su thread pool
#   4. successo: reconcile dal backing store + notifica fire-and-forget
#      fallimento: restore della sola commessa (se non superata) + PersistenceError
# =============================================================================

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...config import config
from ...exceptions import (
    CommessaNotFoundError,
    FaseNotFoundError,
    MessaggioNonValidoError,
    NessunaModificaError,
    NotificationDispatchError,
    PersistenceError,
)
from ...persistence.repositories.base import CommesseStore
from ..notifications.dispatcher import NotificationDispatcher
from .cache import OptimisticCache, Snapshot
from .constants import StatusClass, URGENT_MESSAGE_MAX_LENGTH
from .deletion import EliminazioneResult, elimina_commessa
from .models import Commessa, Fase
from .queries import filtra_commesse
from .validation import (
    valida_campi_commessa,
    valida_cambio_stato,
    valida_priorita,
    valida_programmazione,
)


logger = logging.getLogger('commesse.pipeline')


class MutationHandle:
    """
    Esito di una mutazione accettata.

    `commessa` è lo stato ottimistico già visibile in cache; `result()`
    attende la scrittura durevole e ritorna la commessa riconciliata,
    oppure solleva PersistenceError dopo il rollback.
    """

    def __init__(self, commessa: Commessa, future: Optional[Future] = None,
                 skipped: bool = False, reason: Optional[str] = None):
        self.commessa = commessa
        self.skipped = skipped
        self.reason = reason
        self._future = future

    @classmethod
    def skip(cls, commessa: Commessa, reason: str) -> 'MutationHandle':
        return cls(commessa, skipped=True, reason=reason)

    def done(self) -> bool:
        return self._future is None or self._future.done()

    def result(self, timeout: Optional[float] = None) -> Commessa:
        """
        Raises:
            PersistenceError: scrittura fallita, cache già ripristinata
            concurrent.futures.TimeoutError: scrittura ancora in corso
        """
        if self._future is None:
            return self.commessa
        return self._future.result(timeout)


class PipelineStore:
    """Stato autorevole delle commesse con cache ottimistica."""

    def __init__(self, store: CommesseStore, dispatcher: NotificationDispatcher,
                 max_workers: Optional[int] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.dispatcher = dispatcher
        self.cache = OptimisticCache()
        self._clock = clock or datetime.now
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.WRITE_WORKERS,
            thread_name_prefix='commesse-write'
        )

    # -------------------------------------------------------------------------
    # LETTURA
    # -------------------------------------------------------------------------

    def load(self) -> int:
        """Ricarica la cache dal backing store. Ritorna il numero di commesse."""
        commesse = self.store.list_commesse()
        self.cache.replace_all(commesse)
        logger.info("Cache commesse caricata: %d commesse", len(commesse))
        return len(commesse)

    def get_commessa(self, commessa_id: str) -> Commessa:
        commessa = self.cache.get(commessa_id)
        if commessa is None:
            raise CommessaNotFoundError(extra={'commessa_id': commessa_id})
        return commessa

    def list_commesse(self, q: Optional[str] = None,
                      status_class: str = StatusClass.ACTIVE,
                      include_archived: bool = False) -> List[Commessa]:
        return filtra_commesse(self.cache.all(), q, status_class, include_archived)

    def _trova_fase(self, fase_id: str) -> Tuple[Commessa, Fase]:
        commessa = self.cache.find_by_fase(fase_id)
        if commessa is None:
            raise FaseNotFoundError(extra={'fase_id': fase_id})
        return commessa, commessa.fase(fase_id)

    # -------------------------------------------------------------------------
    # MUTAZIONI FASE
    # -------------------------------------------------------------------------

    def apply_phase_status_change(self, fase_id: str, new_status: str) -> MutationHandle:
        """
        Cambia lo stato di una fase.

        Raises:
            FaseNotFoundError, FaseBloccataError, StatoNonValidoError
        """
        commessa, fase = self._trova_fase(fase_id)
        try:
            mutazione = valida_cambio_stato(fase, new_status, commessa.fasi_ordinate(), self._clock())
        except NessunaModificaError as e:
            return MutationHandle.skip(commessa, e.detail)

        def notify(riconciliata: Commessa) -> None:
            self.dispatcher.notify_cambio_stato(
                riconciliata, riconciliata.fase(fase_id) or fase,
                mutazione.old_status, mutazione.new_status
            )

        logger.info("Fase %s: %s -> %s", fase_id, mutazione.old_status, mutazione.new_status)
        return self._submit(
            commessa.id,
            _patch_fase(fase_id, mutazione.changes),
            lambda: self.store.update_fase(fase_id, mutazione.changes),
            notify,
            'cambio_stato',
        )

    def schedule_phase(self, fase_id: str, data: date) -> MutationHandle:
        """
        Programma una fase; l'eventuale passaggio a "programmata" avviene
        nella stessa scrittura.
        """
        commessa, fase = self._trova_fase(fase_id)
        try:
            mutazione = valida_programmazione(fase, data, commessa.fasi_ordinate())
        except NessunaModificaError as e:
            return MutationHandle.skip(commessa, e.detail)

        def notify(riconciliata: Commessa) -> None:
            self.dispatcher.notify_programmazione(
                riconciliata, riconciliata.fase(fase_id) or fase,
                data, mutazione.is_reschedule
            )

        logger.info("Fase %s programmata per %s%s", fase_id, data.isoformat(),
                    " (riprogrammazione)" if mutazione.is_reschedule else "")
        return self._submit(
            commessa.id,
            _patch_fase(fase_id, mutazione.changes),
            lambda: self.store.update_fase(fase_id, mutazione.changes),
            notify,
            'programmazione',
        )

    # -------------------------------------------------------------------------
    # MUTAZIONI COMMESSA
    # -------------------------------------------------------------------------

    def apply_priority_change(self, commessa_id: str, new_priority: str,
                              sent_by: Optional[str] = None) -> MutationHandle:
        commessa = self.get_commessa(commessa_id)
        try:
            mutazione = valida_priorita(commessa, new_priority)
        except NessunaModificaError as e:
            return MutationHandle.skip(commessa, e.detail)

        old_priority = mutazione.old_values['priority']

        def notify(riconciliata: Commessa) -> None:
            self.dispatcher.notify_cambio_priorita(riconciliata, old_priority, new_priority, sent_by)

        logger.info("Commessa %s priorità: %s -> %s", commessa.number, old_priority, new_priority)
        return self._submit(
            commessa_id,
            _patch_commessa(mutazione.changes),
            lambda: self.store.update_commessa(commessa_id, mutazione.changes),
            notify,
            'cambio_priorita',
        )

    def update_commessa_fields(self, commessa_id: str, changes: Dict[str, Any]) -> MutationHandle:
        """Modifica i campi editabili della commessa (nessuna notifica)."""
        commessa = self.get_commessa(commessa_id)
        try:
            mutazione = valida_campi_commessa(commessa, changes)
        except NessunaModificaError as e:
            return MutationHandle.skip(commessa, e.detail)

        return self._submit(
            commessa_id,
            _patch_commessa(mutazione.changes),
            lambda: self.store.update_commessa(commessa_id, mutazione.changes),
            None,
            'modifica_campi',
        )

    def archive_commessa(self, commessa_id: str) -> MutationHandle:
        commessa = self.get_commessa(commessa_id)
        if commessa.archived:
            return MutationHandle.skip(commessa, "Commessa già archiviata")

        changes = {'archived': True}
        return self._submit(
            commessa_id,
            _patch_commessa(changes),
            lambda: self.store.update_commessa(commessa_id, changes),
            None,
            'archiviazione',
        )

    def send_urgent_message(self, commessa_id: str, message: str,
                            sender_id: Optional[str] = None) -> Future:
        """
        Invia una comunicazione urgente ai destinatari configurati.

        Nessuna scrittura sulla commessa: il messaggio viene registrato
        tra le comunicazioni dal dispatcher.
        """
        testo = (message or '').strip()
        if not testo:
            raise MessaggioNonValidoError(detail="Il messaggio non può essere vuoto")
        if len(testo) > URGENT_MESSAGE_MAX_LENGTH:
            raise MessaggioNonValidoError(
                detail=f"Messaggio troppo lungo (max {URGENT_MESSAGE_MAX_LENGTH} caratteri)",
                extra={'lunghezza': len(testo)}
            )
        commessa = self.get_commessa(commessa_id)
        return self.dispatcher.notify_messaggio_urgente(commessa, testo, sender_id)

    def delete_commessa(self, commessa_id: str) -> EliminazioneResult:
        return elimina_commessa(self.store, self.cache, commessa_id)

    # -------------------------------------------------------------------------
    # PROTOCOLLO
    # -------------------------------------------------------------------------

    def _submit(self, commessa_id: str, patch: Callable[[Commessa], Commessa],
                write: Callable[[], None],
                notify: Optional[Callable[[Commessa], None]],
                operazione: str) -> MutationHandle:
        snapshot = self.cache.commit(commessa_id, patch)
        ottimistica = self.cache.get(commessa_id)
        future = self._executor.submit(
            self._persist, commessa_id, snapshot, write, notify, operazione
        )
        return MutationHandle(ottimistica, future)

    def _persist(self, commessa_id: str, snapshot: Snapshot,
                 write: Callable[[], None],
                 notify: Optional[Callable[[Commessa], None]],
                 operazione: str) -> Optional[Commessa]:
        try:
            write()
        except Exception as e:
            if not self.cache.restore(snapshot) and self.cache.get(commessa_id) is not None:
                # superata da un commit successivo: vale il backing store
                self._reconcile(commessa_id)
            logger.warning("Scrittura %s fallita per commessa %s, cache ripristinata: %s",
                           operazione, commessa_id, e)
            raise PersistenceError(extra={'commessa_id': commessa_id, 'operazione': operazione}) from e

        riconciliata = self._reconcile(commessa_id)
        if riconciliata is None:
            logger.info("Commessa %s eliminata durante %s, nessuna notifica", commessa_id, operazione)
            return None

        if notify is not None:
            try:
                notify(riconciliata)
            except Exception as e:
                errore = NotificationDispatchError(detail=str(e), extra={'commessa_id': commessa_id})
                logger.error("Notifica %s non accodata: %s", operazione, errore.to_dict())

        return riconciliata

    def _reconcile(self, commessa_id: str) -> Optional[Commessa]:
        """Allinea la cache al backing store; se la rilettura fallisce resta lo stato ottimistico."""
        try:
            dal_store = self.store.get_commessa(commessa_id)
        except Exception as e:
            logger.warning("Rilettura commessa %s fallita, mantengo stato ottimistico: %s",
                           commessa_id, e)
            dal_store = None

        if dal_store is not None:
            self.cache.reconcile(dal_store)
            return dal_store
        return self.cache.get(commessa_id)

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self._executor.shutdown(wait=True)
        self.dispatcher.shutdown(timeout)


def _patch_fase(fase_id: str, changes: Dict[str, Any]) -> Callable[[Commessa], Commessa]:
    def patch(commessa: Commessa) -> Commessa:
        fase = commessa.fase(fase_id)
        if fase is not None:
            for key, value in changes.items():
                setattr(fase, key, value)
        return commessa
    return patch


def _patch_commessa(changes: Dict[str, Any]) -> Callable[[Commessa], Commessa]:
    def patch(commessa: Commessa) -> Commessa:
        for key, value in changes.items():
            setattr(commessa, key, value)
        return commessa
    return patch
