# =============================================================================
# ZAPP COMMESSE v1.0 - SERVICES PACKAGE
# =============================================================================
#   services/commesse/      - pipeline fasi, cache, validazione, query
#   services/notifications/ - dispatcher notifiche
#   services/scheduler/     - job scadenze imminenti
# =============================================================================
