# =============================================================================
# ZAPP COMMESSE v1.0
# =============================================================================
# Pipeline fasi commesse: blocco fasi, aggiornamento ottimistico con
# rollback, notifiche best-effort, eliminazione a cascata.
# =============================================================================

__version__ = "1.0.0"
