# =============================================================================
# ZAPP COMMESSE v1.0 - ELIMINAZIONE A CASCATA
# =============================================================================
# Ordine: fasi -> comunicazioni -> commessa. Sequenza best-effort, non
# transazionale: un errore dopo la rimozione dei dipendenti lascia la
# commessa parziale e viene segnalato, mai ricreato.
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...exceptions import CommessaNotFoundError, PartialDeletionError, PersistenceError
from ...persistence.repositories.base import CommesseStore
from .cache import OptimisticCache


logger = logging.getLogger('commesse.eliminazione')


@dataclass
class EliminazioneResult:
    """Risultato eliminazione commessa."""
    commessa_id: str
    fasi_eliminate: int = 0
    comunicazioni_eliminate: int = 0
    commessa_eliminata: bool = False
    partial: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'commessa_id': self.commessa_id,
            'fasi_eliminate': self.fasi_eliminate,
            'comunicazioni_eliminate': self.comunicazioni_eliminate,
            'commessa_eliminata': self.commessa_eliminata,
            'partial': self.partial,
            'error': self.error,
        }


def elimina_commessa(store: CommesseStore, cache: OptimisticCache,
                     commessa_id: str) -> EliminazioneResult:
    """
    Elimina la commessa e tutte le righe dipendenti.

    Raises:
        CommessaNotFoundError: commessa assente in cache e nel backing store
        PersistenceError: primo step fallito, nulla è stato rimosso

    Returns:
        EliminazioneResult (partial=True se interrotta dopo il primo step)
    """
    if cache.get(commessa_id) is None and store.get_commessa(commessa_id) is None:
        raise CommessaNotFoundError(extra={'commessa_id': commessa_id})

    result = EliminazioneResult(commessa_id=commessa_id)

    try:
        result.fasi_eliminate = store.delete_fasi(commessa_id)
    except Exception as e:
        logger.warning("Eliminazione commessa %s annullata: %s", commessa_id, e)
        raise PersistenceError(
            detail="Eliminazione non riuscita, nessun dato rimosso",
            extra={'commessa_id': commessa_id}
        ) from e

    step = 'comunicazioni'
    try:
        result.comunicazioni_eliminate = store.delete_comunicazioni(commessa_id)
        step = 'commessa'
        store.delete_commessa(commessa_id)
        result.commessa_eliminata = True
    except Exception as e:
        result.partial = True
        result.error = str(e)
        errore = PartialDeletionError(extra={
            'commessa_id': commessa_id,
            'step_fallito': step,
            'fasi_eliminate': result.fasi_eliminate,
            'comunicazioni_eliminate': result.comunicazioni_eliminate,
            'causa': str(e),
        })
        logger.error("Eliminazione parziale: %s", errore.to_dict())
        _riallinea(store, cache, commessa_id)
        return result

    cache.remove(commessa_id)
    logger.info("Commessa %s eliminata (%d fasi, %d comunicazioni)",
                commessa_id, result.fasi_eliminate, result.comunicazioni_eliminate)
    return result


def _riallinea(store: CommesseStore, cache: OptimisticCache, commessa_id: str) -> None:
    """Dopo un'eliminazione parziale la cache riflette ciò che resta nel backing store."""
    try:
        residua = store.get_commessa(commessa_id)
    except Exception as e:
        logger.warning("Rilettura commessa %s dopo eliminazione parziale fallita: %s", commessa_id, e)
        return
    if residua is None:
        cache.remove(commessa_id)
    else:
        cache.reconcile(residua)
