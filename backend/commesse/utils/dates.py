# =============================================================================
# ZAPP COMMESSE v1.0 - UTILS/DATES
# =============================================================================
# Parsing e formattazione date per API e notifiche
# =============================================================================

from datetime import date, datetime
from typing import Optional, Union


def format_data_it(value: Optional[Union[date, datetime, str]], default: str = 'N/D') -> str:
    """
    Formatta una data in GG/MM/AAAA.

    Accetta date, datetime o stringhe ISO (YYYY-MM-DD...).

    Returns:
        Data formattata o `default` se assente/non parsabile
    """
    if not value:
        return default

    if isinstance(value, datetime):
        value = value.date()
    elif isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return default

    return value.strftime('%d/%m/%Y')


def giorni_mancanti(scadenza: date, oggi: date) -> int:
    """Giorni tra oggi e la scadenza (negativo se già scaduta)."""
    return (scadenza - oggi).days
