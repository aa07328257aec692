# =============================================================================
# ZAPP COMMESSE v1.0 - SCHEDULER SERVICE
# =============================================================================

from .deadline_scheduler import (
    esegui_controllo_scadenze,
    init_scadenze_scheduler,
    shutdown_scadenze_scheduler,
    get_scadenze_scheduler_status,
)

__all__ = [
    'esegui_controllo_scadenze',
    'init_scadenze_scheduler',
    'shutdown_scadenze_scheduler',
    'get_scadenze_scheduler_status',
]
