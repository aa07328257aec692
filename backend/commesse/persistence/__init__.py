# =============================================================================
# ZAPP COMMESSE v1.0 - PERSISTENCE PACKAGE
# =============================================================================
#   database_pg.py            - pool PostgreSQL e init schema
#   persistence/repositories/ - backing store (PostgreSQL e memoria)
# =============================================================================
