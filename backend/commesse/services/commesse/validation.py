# =============================================================================
# ZAPP COMMESSE v1.0 - VALIDAZIONE TRANSIZIONI
# =============================================================================
# Regole di blocco fasi e validazione delle mutazioni richieste.
# Funzioni pure: nessun accesso a cache o backing store.
# =============================================================================

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from ...exceptions import (
    CampoNonModificabileError,
    FaseBloccataError,
    NessunaModificaError,
    PrioritaNonValidaError,
    StatoNonValidoError,
)
from .constants import (
    OrderType,
    Priority,
    allowed_statuses,
    is_completed,
    scheduling_transition,
    started_status,
)
from .models import Commessa, Fase


# Campi commessa modificabili dall'utente
EDITABLE_FIELDS = frozenset({
    'title', 'article', 'notes', 'description', 'type',
    'delivery_mode', 'intervention_type', 'diameter', 'smoke_inlet',
    'deadline', 'payment_on_delivery', 'payment_amount', 'warranty',
    'shipping_address', 'shipping_city', 'shipping_province',
    'shipping_postal_code', 'shipping_country',
})


@dataclass
class MutazioneFase:
    """Descrittore di una scrittura su una fase, con i timestamp derivati."""
    fase_id: str
    commessa_id: str
    changes: Dict[str, Any]
    old_status: str
    new_status: str
    is_reschedule: bool = False


@dataclass
class MutazioneCommessa:
    """Descrittore di una scrittura sulla testata commessa."""
    commessa_id: str
    changes: Dict[str, Any]
    old_values: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# BLOCCO FASI
# =============================================================================

def fase_precedente(fase: Fase, fasi: Iterable[Fase]) -> Optional[Fase]:
    for f in fasi:
        if f.phase_order == fase.phase_order - 1:
            return f
    return None


def is_locked(fase: Fase, fasi: Iterable[Fase]) -> bool:
    """
    True se la fase non può ricevere mutazioni di stato o programmazione.

    La fase 1 non è mai bloccata; la fase k>1 è bloccata finché la fase
    k-1 non ha uno stato nel set Completed. Mai persistito: ricalcolato
    a ogni lettura.
    """
    if fase.phase_order <= 1:
        return False
    precedente = fase_precedente(fase, fasi)
    if precedente is None:
        # sequenza non contigua: nessun predecessore da cui sbloccare
        return True
    return not is_completed(precedente.status)


def _verifica_blocco(fase: Fase, fasi: List[Fase]) -> None:
    if is_locked(fase, fasi):
        precedente = fase_precedente(fase, fasi)
        raise FaseBloccataError(extra={
            'fase_id': fase.id,
            'phase_order': fase.phase_order,
            'stato_fase_precedente': precedente.status if precedente else None,
        })


# =============================================================================
# CAMBIO STATO FASE
# =============================================================================

def valida_cambio_stato(fase: Fase, nuovo_stato: str, fasi: List[Fase],
                        now: datetime) -> MutazioneFase:
    """
    Valida un cambio stato e costruisce la mutazione.

    Controlli in ordine: fase bloccata, stato fuori vocabolario, stato
    invariato. Entrando nello stato di lavorazione valorizza started_at
    (se vuoto); entrando in uno stato Completed valorizza completed_at,
    mai prima di started_at.

    Raises:
        FaseBloccataError, StatoNonValidoError, NessunaModificaError
    """
    _verifica_blocco(fase, fasi)

    ammessi = allowed_statuses(fase.phase_type)
    if nuovo_stato not in ammessi:
        raise StatoNonValidoError(
            detail=f"Stato '{nuovo_stato}' non ammesso per fase {fase.phase_type}",
            extra={'fase_id': fase.id, 'stati_ammessi': list(ammessi)}
        )

    if nuovo_stato == fase.status:
        raise NessunaModificaError(extra={'fase_id': fase.id, 'stato': nuovo_stato})

    changes: Dict[str, Any] = {'status': nuovo_stato}
    started_at = fase.started_at

    if nuovo_stato == started_status(fase.phase_type) and started_at is None:
        started_at = now
        changes['started_at'] = now

    if is_completed(nuovo_stato):
        changes['completed_at'] = max(now, started_at) if started_at else now

    return MutazioneFase(
        fase_id=fase.id,
        commessa_id=fase.commessa_id,
        changes=changes,
        old_status=fase.status,
        new_status=nuovo_stato,
    )


# =============================================================================
# PROGRAMMAZIONE FASE
# =============================================================================

def valida_programmazione(fase: Fase, data: date, fasi: List[Fase]) -> MutazioneFase:
    """
    Valida la programmazione di una fase.

    Per l'installazione ancora "da programmare" lo stato passa a
    "programmata" nella stessa scrittura. La mutazione è marcata come
    riprogrammazione se esisteva già una data.
    """
    _verifica_blocco(fase, fasi)

    if data == fase.scheduled_date:
        raise NessunaModificaError(extra={'fase_id': fase.id, 'scheduled_date': data.isoformat()})

    changes: Dict[str, Any] = {'scheduled_date': data}
    nuovo_stato = fase.status

    transizione = scheduling_transition(fase.phase_type)
    if transizione and fase.status == transizione[0]:
        nuovo_stato = transizione[1]
        changes['status'] = nuovo_stato

    return MutazioneFase(
        fase_id=fase.id,
        commessa_id=fase.commessa_id,
        changes=changes,
        old_status=fase.status,
        new_status=nuovo_stato,
        is_reschedule=fase.scheduled_date is not None,
    )


# =============================================================================
# TESTATA COMMESSA
# =============================================================================

def valida_priorita(commessa: Commessa, nuova_priorita: str) -> MutazioneCommessa:
    if nuova_priorita not in Priority.ALL:
        raise PrioritaNonValidaError(
            detail=f"Priorità '{nuova_priorita}' non valida",
            extra={'priorita_ammesse': Priority.ALL}
        )
    if nuova_priorita == commessa.priority:
        raise NessunaModificaError(extra={'commessa_id': commessa.id, 'priority': nuova_priorita})

    return MutazioneCommessa(
        commessa_id=commessa.id,
        changes={'priority': nuova_priorita},
        old_values={'priority': commessa.priority},
    )


def valida_campi_commessa(commessa: Commessa, modifiche: Dict[str, Any]) -> MutazioneCommessa:
    """
    Valida una modifica ai campi editabili della commessa.

    I campi invariati vengono scartati; se non resta nulla la richiesta
    è un no-op.
    """
    non_ammessi = sorted(set(modifiche) - EDITABLE_FIELDS)
    if non_ammessi:
        raise CampoNonModificabileError(
            detail=f"Campi non modificabili: {', '.join(non_ammessi)}",
            extra={'campi': non_ammessi}
        )

    if 'type' in modifiche and modifiche['type'] not in OrderType.ALL:
        raise CampoNonModificabileError(
            detail=f"Tipologia '{modifiche['type']}' non valida",
            extra={'tipologie_ammesse': OrderType.ALL}
        )

    if not modifiche.get('title', commessa.title):
        raise CampoNonModificabileError(detail="Il titolo non può essere vuoto")

    changes = {k: v for k, v in modifiche.items() if getattr(commessa, k) != v}
    if not changes:
        raise NessunaModificaError(extra={'commessa_id': commessa.id})

    return MutazioneCommessa(
        commessa_id=commessa.id,
        changes=changes,
        old_values={k: getattr(commessa, k) for k in changes},
    )
