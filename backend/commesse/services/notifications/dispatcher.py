# =============================================================================
# ZAPP COMMESSE v1.0 - NOTIFICATION DISPATCHER
# =============================================================================
# Invio notifiche asincrono e best-effort sugli eventi della pipeline.
# Ogni invio gira su un thread pool dedicato: gli errori vengono solo
# loggati e non raggiungono mai la mutazione che li ha generati.
# =============================================================================

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Set

from ...config import config
from ...exceptions import NotificationDispatchError
from ...persistence.repositories.base import CommesseStore
from ..commesse.models import Commessa, Comunicazione, Fase
from .channels import NotificationChannel
from .rules import risolvi_regole
from .templates import EventType, payload_base


logger = logging.getLogger('commesse.notifiche')


# Tipo comunicazione registrato sulla commessa
COMMUNICATION_TYPES = {
    EventType.CAMBIO_PRIORITA: 'cambio_priorita',
    EventType.URGENTE: 'comunicazione_urgente',
}


@dataclass
class DispatchResult:
    """Risultato di un invio (uno per evento)."""
    event_type: str
    commessa_id: str
    results: List[Dict[str, Any]] = field(default_factory=list)
    skipped: bool = False

    @property
    def sent_via(self) -> List[str]:
        return sorted({r['channel'] for r in self.results if r['success']})

    @property
    def sent_to(self) -> List[str]:
        return [r['to'] for r in self.results if r['success']]

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r['success'])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event_type': self.event_type,
            'commessa_id': self.commessa_id,
            'skipped': self.skipped,
            'inviati': len(self.results) - self.failed,
            'falliti': self.failed,
            'results': self.results,
        }


class NotificationDispatcher:
    """
    Dispatcher fire-and-forget.

    Ogni metodo notify_* restituisce subito un Future; il chiamante non
    deve attenderlo. Gli errori dell'intero invio sono loggati dal
    done-callback, quelli per destinatario finiscono nel DispatchResult.
    Nessun retry.
    """

    def __init__(self, store: CommesseStore,
                 channels: Dict[str, NotificationChannel],
                 max_workers: Optional[int] = None):
        self.store = store
        self.channels = channels
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.NOTIFY_WORKERS,
            thread_name_prefix='commesse-notify'
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # EVENTI
    # -------------------------------------------------------------------------

    def notify_cambio_stato(self, commessa: Commessa, fase: Fase,
                            old_status: str, new_status: str) -> Future:
        return self.dispatch(EventType.CAMBIO_STATO, commessa, {
            'fase_id': fase.id,
            'phase_type': fase.phase_type,
            'phase_order': fase.phase_order,
            'old_status': old_status,
            'new_status': new_status,
        })

    def notify_programmazione(self, commessa: Commessa, fase: Fase,
                              scheduled_date: date, is_reschedule: bool) -> Future:
        return self.dispatch(EventType.CALENDARIZZAZIONE, commessa, {
            'fase_id': fase.id,
            'phase_type': fase.phase_type,
            'scheduled_date': scheduled_date.isoformat(),
            'is_reschedule': is_reschedule,
        })

    def notify_cambio_priorita(self, commessa: Commessa, old_priority: Optional[str],
                               new_priority: str, sent_by: Optional[str] = None) -> Future:
        return self.dispatch(EventType.CAMBIO_PRIORITA, commessa, {
            'old_priority': old_priority,
            'new_priority': new_priority,
        }, sent_by=sent_by)

    def notify_messaggio_urgente(self, commessa: Commessa, message: str,
                                 sent_by: Optional[str] = None) -> Future:
        return self.dispatch(EventType.URGENTE, commessa, {'message': message}, sent_by=sent_by)

    def notify_scadenza(self, commessa: Commessa, days_remaining: int) -> Future:
        return self.dispatch(EventType.SCADENZA, commessa, {'days_remaining': days_remaining})

    # -------------------------------------------------------------------------
    # INVIO
    # -------------------------------------------------------------------------

    def dispatch(self, event_type: str, commessa: Commessa,
                 extra: Dict[str, Any], sent_by: Optional[str] = None) -> Future:
        """Accoda l'invio e ritorna subito."""
        payload = payload_base(commessa)
        payload.update(extra)

        future = self._executor.submit(self._deliver, event_type, payload, sent_by)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            errore = NotificationDispatchError(detail=str(exc), extra={'causa': type(exc).__name__})
            logger.error("Notifica non inviata: %s", errore.to_dict())

    def _deliver(self, event_type: str, payload: Dict[str, Any],
                 sent_by: Optional[str]) -> DispatchResult:
        result = DispatchResult(event_type=event_type, commessa_id=payload['commessa_id'])

        regole = risolvi_regole(self.store, event_type)
        if not regole:
            logger.info("Nessuna regola attiva per %s", event_type)
            result.skipped = True
            return result

        for regola in regole:
            channel = self.channels.get(regola.channel)
            esito = {'name': regola.recipient_name, 'channel': regola.channel,
                     'to': None, 'success': False}
            if channel is None:
                esito['error'] = f"Canale {regola.channel} non disponibile"
            else:
                try:
                    esito['to'] = channel.deliver(regola, event_type, payload)
                    esito['success'] = True
                except Exception as e:
                    esito['error'] = str(e)
                    logger.warning("Invio %s a %s fallito: %s",
                                   regola.channel, regola.recipient_name, e)
            result.results.append(esito)

        if event_type in COMMUNICATION_TYPES:
            self._registra_comunicazione(event_type, payload, result, sent_by)

        logger.info("Notifica %s commessa %s: %d inviati, %d falliti",
                    event_type, payload.get('commessa_number'),
                    len(result.results) - result.failed, result.failed)
        return result

    def _registra_comunicazione(self, event_type: str, payload: Dict[str, Any],
                                result: DispatchResult, sent_by: Optional[str]) -> None:
        comunicazione = Comunicazione(
            commessa_id=payload['commessa_id'],
            communication_type=COMMUNICATION_TYPES[event_type],
            content=payload.get('message'),
            old_value=payload.get('old_priority'),
            new_value=payload.get('new_priority'),
            sent_via=result.sent_via,
            sent_to=result.sent_to,
            sent_by=sent_by,
            metadata={'event_type': event_type, 'results': result.results},
        )
        try:
            self.store.add_comunicazione(comunicazione)
        except Exception as e:
            logger.warning("Comunicazione non registrata per commessa %s: %s",
                           payload['commessa_id'], e)

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def wait_pending(self, timeout: Optional[float] = None) -> bool:
        """Attende gli invii in corso. True se tutti completati entro il timeout."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, timeout: Optional[float] = None) -> None:
        pending = self.pending_count()
        if pending:
            logger.info("Shutdown notifiche: attendo %d invii in corso", pending)
        self.wait_pending(timeout)
        self._executor.shutdown(wait=False, cancel_futures=True)
