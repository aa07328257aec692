# =============================================================================
# ZAPP COMMESSE v1.0 - COMMESSE SERVICE
# =============================================================================
#   constants.py  - vocabolari fasi/stati, priorità, etichette
#   models.py     - Commessa, Fase, Comunicazione, RegolaNotifica
#   validation.py - blocco fasi e validazione mutazioni
#   cache.py      - OptimisticCache (copy-on-write)
#   pipeline.py   - PipelineStore, MutationHandle
#   deletion.py   - eliminazione a cascata
#   queries.py    - filtro e ordinamento lista
#
# pipeline e deletion si importano dal modulo: dipendono dai repository,
# che a loro volta importano i modelli di questo package.
# =============================================================================

from .constants import (
    PhaseType,
    PhaseStatus,
    OrderType,
    Priority,
    StatusClass,
    allowed_statuses,
    is_completed,
)
from .models import Commessa, Fase, Comunicazione, RegolaNotifica
from .validation import is_locked

__all__ = [
    'PhaseType',
    'PhaseStatus',
    'OrderType',
    'Priority',
    'StatusClass',
    'allowed_statuses',
    'is_completed',
    'Commessa',
    'Fase',
    'Comunicazione',
    'RegolaNotifica',
    'is_locked',
]
