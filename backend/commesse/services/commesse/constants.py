"""
Costanti commesse - Tipi fase, vocabolari stati, priorità, etichette.

Unica fonte di verità consultata sia dalla validazione che dal rendering
delle notifiche.
"""

from typing import Dict, FrozenSet, Optional, Tuple


class PhaseType:
    """Tipi di fase di una commessa"""
    PRODUCTION = 'production'
    SHIPPING = 'shipping'
    INSTALLATION = 'installation'
    MAINTENANCE = 'maintenance'
    REPAIR = 'repair'

    ALL = [PRODUCTION, SHIPPING, INSTALLATION, MAINTENANCE, REPAIR]

    LABELS = {
        PRODUCTION: 'Produzione',
        SHIPPING: 'Spedizione',
        INSTALLATION: 'Installazione',
        MAINTENANCE: 'Manutenzione',
        REPAIR: 'Riparazione',
    }


class PhaseStatus:
    """Stati fase (tutti i vocabolari)"""
    DA_FARE = 'da_fare'
    IN_LAVORAZIONE = 'in_lavorazione'
    IN_TEST = 'in_test'
    STANDBY = 'standby'
    BLOCCATO = 'bloccato'
    PRONTO = 'pronto'
    DA_PREPARARE = 'da_preparare'
    SPEDITO = 'spedito'
    DA_PROGRAMMARE = 'da_programmare'
    PROGRAMMATA = 'programmata'
    DA_COMPLETARE = 'da_completare'
    COMPLETATA = 'completata'

    # Stati "fatto" ai fini del blocco fasi, condivisi tra tipi
    COMPLETED: FrozenSet[str] = frozenset({
        'pronto', 'completato', 'completata', 'spedito', 'completed', 'closed',
    })

    LABELS = {
        DA_FARE: 'Da fare',
        IN_LAVORAZIONE: 'In lavorazione',
        IN_TEST: 'In test',
        STANDBY: 'Standby',
        BLOCCATO: 'Bloccato',
        PRONTO: 'Pronto',
        DA_PREPARARE: 'Da preparare',
        SPEDITO: 'Spedito',
        DA_PROGRAMMARE: 'Da programmare',
        PROGRAMMATA: 'Programmata',
        DA_COMPLETARE: 'Da completare',
        COMPLETATA: 'Completata',
        'completato': 'Completato',
        'completed': 'Completato',
        'closed': 'Chiuso',
    }


# Vocabolario chiuso per tipo fase (ordine = flusso di lavoro)
PHASE_STATUSES: Dict[str, Tuple[str, ...]] = {
    PhaseType.PRODUCTION: (
        PhaseStatus.DA_FARE, PhaseStatus.IN_LAVORAZIONE, PhaseStatus.IN_TEST,
        PhaseStatus.STANDBY, PhaseStatus.BLOCCATO, PhaseStatus.PRONTO,
    ),
    PhaseType.SHIPPING: (
        PhaseStatus.DA_PREPARARE, PhaseStatus.IN_LAVORAZIONE,
        PhaseStatus.PRONTO, PhaseStatus.SPEDITO,
    ),
    PhaseType.INSTALLATION: (
        PhaseStatus.DA_PROGRAMMARE, PhaseStatus.PROGRAMMATA,
        PhaseStatus.DA_COMPLETARE, PhaseStatus.COMPLETATA,
    ),
    PhaseType.MAINTENANCE: (
        PhaseStatus.DA_PROGRAMMARE, PhaseStatus.IN_LAVORAZIONE, PhaseStatus.COMPLETATA,
    ),
    PhaseType.REPAIR: (
        PhaseStatus.DA_PROGRAMMARE, PhaseStatus.IN_LAVORAZIONE, PhaseStatus.COMPLETATA,
    ),
}

# Stato "lavoro iniziato": entrandoci si valorizza started_at
STARTED_STATUS: Dict[str, str] = {
    PhaseType.PRODUCTION: PhaseStatus.IN_LAVORAZIONE,
    PhaseType.SHIPPING: PhaseStatus.IN_LAVORAZIONE,
    PhaseType.INSTALLATION: PhaseStatus.DA_COMPLETARE,
    PhaseType.MAINTENANCE: PhaseStatus.IN_LAVORAZIONE,
    PhaseType.REPAIR: PhaseStatus.IN_LAVORAZIONE,
}

# Stato iniziale "da programmare" -> stato "programmata" (solo installazione)
SCHEDULING_TRANSITION: Dict[str, Tuple[str, str]] = {
    PhaseType.INSTALLATION: (PhaseStatus.DA_PROGRAMMARE, PhaseStatus.PROGRAMMATA),
}


class OrderType:
    """Tipologie commessa"""
    SUPPLY = 'supply'
    INTERVENTION = 'intervention'
    SPAREPARTS = 'spareparts'

    ALL = [SUPPLY, INTERVENTION, SPAREPARTS]

    LABELS = {
        SUPPLY: 'Fornitura',
        INTERVENTION: 'Intervento',
        SPAREPARTS: 'Ricambi',
    }


class Priority:
    """Priorità commessa"""
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'

    ALL = [LOW, MEDIUM, HIGH, URGENT]
    DEFAULT = MEDIUM

    LABELS = {
        LOW: 'Bassa',
        MEDIUM: 'Media',
        HIGH: 'Alta',
        URGENT: 'Urgente',
    }

    # Peso per sorting (più alto = più importante, non impostata = 0)
    WEIGHT = {
        LOW: 1,
        MEDIUM: 2,
        HIGH: 3,
        URGENT: 4,
    }


class StatusClass:
    """Filtro lista commesse"""
    ACTIVE = 'active'
    COMPLETED = 'completed'
    ALL = 'all'

    VALUES = [ACTIVE, COMPLETED, ALL]


# Limite messaggio urgente
URGENT_MESSAGE_MAX_LENGTH = 500


# =============================================================================
# FUNZIONI DI ACCESSO
# =============================================================================

def allowed_statuses(phase_type: str) -> Tuple[str, ...]:
    """Vocabolario stati per tipo fase (tupla vuota se tipo sconosciuto)."""
    return PHASE_STATUSES.get(phase_type, ())


def is_completed(status: Optional[str]) -> bool:
    """True se lo stato appartiene al set Completed."""
    return status in PhaseStatus.COMPLETED


def started_status(phase_type: str) -> Optional[str]:
    return STARTED_STATUS.get(phase_type)


def scheduling_transition(phase_type: str) -> Optional[Tuple[str, str]]:
    """(stato_da_programmare, stato_programmata) o None se il tipo non lo prevede."""
    return SCHEDULING_TRANSITION.get(phase_type)


def priority_weight(priority: Optional[str]) -> int:
    return Priority.WEIGHT.get(priority, 0)


def status_label(status: Optional[str]) -> str:
    if not status:
        return 'N/D'
    return PhaseStatus.LABELS.get(status, status)


def phase_label(phase_type: Optional[str]) -> str:
    if not phase_type:
        return 'N/D'
    return PhaseType.LABELS.get(phase_type, phase_type)


def order_type_label(order_type: Optional[str]) -> str:
    if not order_type:
        return 'N/D'
    return OrderType.LABELS.get(order_type, order_type)


def priority_label(priority: Optional[str]) -> str:
    if not priority:
        return 'N/D'
    return Priority.LABELS.get(priority, priority)
