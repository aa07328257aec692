# =============================================================================
# ZAPP COMMESSE v1.0 - TEST FACTORIES
# =============================================================================
# Factory Boy factories per generazione dati di test
# =============================================================================

from .commesse import CommessaFactory, FaseFactory, RegolaNotificaFactory

__all__ = [
    "CommessaFactory",
    "FaseFactory",
    "RegolaNotificaFactory",
]
