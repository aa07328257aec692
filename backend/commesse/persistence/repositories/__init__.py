# =============================================================================
# ZAPP COMMESSE v1.0 - REPOSITORIES PACKAGE
# =============================================================================
#   - base.py: CommesseStore (interfaccia), BaseRepository
#   - commesse.py: CommesseRepository (PostgreSQL)
#   - memory.py: MemoryCommesseRepository
# =============================================================================

from .base import BaseRepository, CommesseStore
from .commesse import CommesseRepository, commesse_repository
from .memory import MemoryCommesseRepository

__all__ = [
    'BaseRepository',
    'CommesseStore',
    'CommesseRepository',
    'commesse_repository',
    'MemoryCommesseRepository',
]
