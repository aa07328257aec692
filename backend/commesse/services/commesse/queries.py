"""
Query commesse - filtro testuale, classe di stato, ordinamento deterministico.

Lavora su liste di Commessa già caricate (cache), senza accesso al DB.
"""

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...utils.dates import giorni_mancanti
from .constants import StatusClass, is_completed, priority_weight
from .models import Commessa
from .validation import is_locked


def commessa_completata(commessa: Commessa) -> bool:
    """Completata se ha almeno una fase e tutte le fasi sono in stato Completed."""
    return bool(commessa.fasi) and all(is_completed(f.status) for f in commessa.fasi)


def _match_testo(commessa: Commessa, q: str) -> bool:
    campi = (commessa.title, commessa.number, commessa.customer_name, commessa.article)
    return any(q in (c or '').lower() for c in campi)


def _match_stato(commessa: Commessa, status_class: str) -> bool:
    if status_class == StatusClass.ALL:
        return True
    completata = commessa_completata(commessa)
    return completata if status_class == StatusClass.COMPLETED else not completata


def chiave_ordinamento(commessa: Commessa) -> Tuple:
    """
    Priorità decrescente, incomplete prima delle completate, poi cliente
    (o titolo) alfabetico. Numero e id rendono l'ordine totale.
    """
    nome = (commessa.customer_name or commessa.title or '').lower()
    return (
        -priority_weight(commessa.priority),
        commessa_completata(commessa),
        nome,
        commessa.number or '',
        commessa.id,
    )


def filtra_commesse(
    commesse: Iterable[Commessa],
    q: Optional[str] = None,
    status_class: str = StatusClass.ACTIVE,
    include_archived: bool = False
) -> List[Commessa]:
    """
    Filtra e ordina le commesse.

    Args:
        commesse: Commesse da filtrare
        q: Testo libero (case-insensitive su titolo, numero, cliente, articolo)
        status_class: active | completed | all
        include_archived: Include anche le archiviate

    Returns:
        Lista ordinata
    """
    if status_class not in StatusClass.VALUES:
        raise ValueError(f"Classe stato non valida: {status_class}")

    testo = (q or '').strip().lower()
    risultato = [
        c for c in commesse
        if (include_archived or not c.archived)
        and (not testo or _match_testo(c, testo))
        and _match_stato(c, status_class)
    ]
    return sorted(risultato, key=chiave_ordinamento)


def proietta_commessa(commessa: Commessa) -> Dict[str, Any]:
    """Commessa serializzata con flag `locked` calcolato per ogni fase."""
    data = commessa.to_dict()
    fasi = commessa.fasi_ordinate()
    for fase_dict, fase in zip(data['fasi'], fasi):
        fase_dict['locked'] = is_locked(fase, fasi)
    data['completata'] = commessa_completata(commessa)
    return data


def trova_scadenze_imminenti(commesse: Iterable[Commessa], oggi: date,
                             giorni: int) -> List[Tuple[Commessa, int]]:
    """
    Commesse attive non archiviate con scadenza entro `giorni` da oggi.

    Returns:
        Lista di (commessa, giorni_mancanti) ordinata per scadenza
    """
    limite = oggi + timedelta(days=giorni)
    trovate = [
        (c, giorni_mancanti(c.deadline, oggi))
        for c in commesse
        if c.deadline and not c.archived and not commessa_completata(c)
        and oggi <= c.deadline <= limite
    ]
    return sorted(trovate, key=lambda item: (item[0].deadline, item[0].id))
