# =============================================================================
# ZAPP COMMESSE v1.0 - DEPENDENCIES
# =============================================================================
# Costruzione e accesso all'istanza singleton della pipeline
# =============================================================================

import logging
from typing import Optional

from .config import config
from .database_pg import close_pool, init_database
from .persistence.repositories import MemoryCommesseRepository, commesse_repository
from .services.commesse.pipeline import PipelineStore
from .services.notifications import NotificationDispatcher, default_channels


logger = logging.getLogger('commesse.pipeline')

_pipeline: Optional[PipelineStore] = None


def build_pipeline() -> PipelineStore:
    """Crea pipeline, dispatcher e backing store secondo configurazione."""
    if config.COMMESSE_STORE == 'memory':
        store = MemoryCommesseRepository()
    else:
        init_database()
        store = commesse_repository

    dispatcher = NotificationDispatcher(store, default_channels())
    pipeline = PipelineStore(store, dispatcher)
    pipeline.load()
    logger.info("Pipeline commesse pronta (store=%s)", config.COMMESSE_STORE)
    return pipeline


def set_pipeline(pipeline: Optional[PipelineStore]) -> None:
    global _pipeline
    _pipeline = pipeline


def get_pipeline() -> PipelineStore:
    """Dependency FastAPI."""
    if _pipeline is None:
        raise RuntimeError("Pipeline commesse non inizializzata")
    return _pipeline


def close_pipeline() -> None:
    """Attende scritture e notifiche in corso, poi rilascia le risorse."""
    global _pipeline
    if _pipeline is not None:
        _pipeline.shutdown(timeout=config.WRITE_TIMEOUT_SEC)
        _pipeline = None
    if config.COMMESSE_STORE != 'memory':
        close_pool()
