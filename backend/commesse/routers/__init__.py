# =============================================================================
# ZAPP COMMESSE v1.0 - ROUTERS PACKAGE
# =============================================================================

from . import commesse

__all__ = [
    'commesse',
]
