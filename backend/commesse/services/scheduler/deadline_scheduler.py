# =============================================================================
# ZAPP COMMESSE v1.0 - SCHEDULER SCADENZE
# =============================================================================
# Controllo giornaliero delle commesse in scadenza e invio notifiche
# scadenza_imminente. Orario da configurazione (default 07:00).
# =============================================================================

import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ...config import config
from ..commesse.pipeline import PipelineStore
from ..commesse.queries import trova_scadenze_imminenti


logger = logging.getLogger('commesse.scheduler')

JOB_ID = 'scadenze_imminenti'

# Scheduler globale
_scheduler: Optional[BackgroundScheduler] = None
_pipeline: Optional[PipelineStore] = None
_last_run: Optional[datetime] = None
_last_result: Optional[Dict[str, Any]] = None


def esegui_controllo_scadenze(pipeline: PipelineStore, oggi: Optional[date] = None,
                              giorni: Optional[int] = None) -> Dict[str, Any]:
    """
    Notifica le commesse attive con scadenza entro `giorni`.

    Returns:
        Dict con numero commesse notificate e relativi id
    """
    oggi = oggi or date.today()
    giorni = config.SCADENZE_GIORNI_PREAVVISO if giorni is None else giorni

    scadenze = trova_scadenze_imminenti(pipeline.cache.all(), oggi, giorni)
    for commessa, giorni_mancanti in scadenze:
        pipeline.dispatcher.notify_scadenza(commessa, giorni_mancanti)

    logger.info("Controllo scadenze %s: %d commesse entro %d giorni",
                oggi.isoformat(), len(scadenze), giorni)
    return {
        'success': True,
        'notificate': len(scadenze),
        'commesse': [c.id for c, _ in scadenze],
        'data': oggi.isoformat(),
    }


def _run_controllo():
    """Job schedulato: mai solleva, registra l'esito."""
    global _last_run, _last_result

    _last_run = datetime.now()
    if _pipeline is None:
        _last_result = {'success': False, 'error': 'Pipeline non inizializzata'}
        logger.error("Controllo scadenze saltato: pipeline non inizializzata")
        return

    try:
        _last_result = esegui_controllo_scadenze(_pipeline)
    except Exception as e:
        _last_result = {'success': False, 'error': str(e), 'timestamp': _last_run.isoformat()}
        logger.exception("Errore controllo scadenze")


def init_scadenze_scheduler(pipeline: PipelineStore) -> bool:
    """
    Avvia il job giornaliero.

    Returns:
        True se inizializzato
    """
    global _scheduler, _pipeline

    if config.TESTING or not config.SCADENZE_ENABLED:
        logger.info("Scheduler scadenze disabilitato")
        return False

    _pipeline = pipeline
    _scheduler = BackgroundScheduler(
        timezone='Europe/Rome',
        job_defaults={
            'coalesce': True,
            'max_instances': 1
        }
    )
    _scheduler.add_job(
        _run_controllo,
        trigger=CronTrigger(hour=config.SCADENZE_ORA, minute=config.SCADENZE_MINUTO,
                            timezone='Europe/Rome'),
        id=JOB_ID,
        name='Scadenze imminenti commesse',
        replace_existing=True
    )
    _scheduler.start()

    next_run = _scheduler.get_job(JOB_ID).next_run_time
    logger.info("Scheduler scadenze attivo, prossima esecuzione: %s",
                next_run.strftime('%Y-%m-%d %H:%M') if next_run else 'N/A')
    return True


def shutdown_scadenze_scheduler():
    """Arresta lo scheduler in modo pulito."""
    global _scheduler

    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler scadenze arrestato")
    _scheduler = None


def get_scadenze_scheduler_status() -> Dict[str, Any]:
    if not _scheduler:
        return {
            "enabled": False,
            "running": False,
            "reason": "Scheduler non inizializzato"
        }

    job = _scheduler.get_job(JOB_ID)
    return {
        "enabled": True,
        "running": _scheduler.running,
        "schedule": f"Ogni giorno {config.SCADENZE_ORA:02d}:{config.SCADENZE_MINUTO:02d}",
        "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
        "last_run": _last_run.isoformat() if _last_run else None,
        "last_result": _last_result
    }
