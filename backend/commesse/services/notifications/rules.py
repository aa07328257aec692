"""
Risoluzione destinatari dalle regole di notifica.
"""

from typing import List

from ...persistence.repositories.base import CommesseStore
from ..commesse.models import RegolaNotifica
from .templates import EventType


def risolvi_regole(store: CommesseStore, event_type: str) -> List[RegolaNotifica]:
    """
    Regole attive per l'evento.

    Cambio priorità e comunicazione urgente, se non hanno regole proprie,
    usano quelle del cambio stato commessa.
    """
    regole = store.get_notification_rules(event_type)
    if not regole and event_type in EventType.FALLBACK:
        regole = store.get_notification_rules(EventType.FALLBACK[event_type])
    return regole
