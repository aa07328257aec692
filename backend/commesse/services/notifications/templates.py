# =============================================================================
# ZAPP COMMESSE v1.0 - TEMPLATE NOTIFICHE
# =============================================================================
# Tipi evento, payload e rendering per WhatsApp (template) ed email
# =============================================================================

import html
from typing import Any, Dict, List, Tuple

from ...utils.dates import format_data_it
from ..commesse.constants import (
    order_type_label,
    phase_label,
    priority_label,
    status_label,
)
from ..commesse.models import Commessa


class EventType:
    """Tipi evento (coincidono con event_type delle regole di notifica)"""
    CAMBIO_STATO = 'cambio_stato_commessa'
    CALENDARIZZAZIONE = 'calendarizzazione_commessa'
    CAMBIO_PRIORITA = 'cambio_priorita_commessa'
    URGENTE = 'comunicazione_urgente_commessa'
    SCADENZA = 'scadenza_imminente'

    ALL = [CAMBIO_STATO, CALENDARIZZAZIONE, CAMBIO_PRIORITA, URGENTE, SCADENZA]

    # Eventi che, senza regole proprie, usano quelle del cambio stato
    FALLBACK = {
        CAMBIO_PRIORITA: CAMBIO_STATO,
        URGENTE: CAMBIO_STATO,
    }


def payload_base(commessa: Commessa) -> Dict[str, Any]:
    """Campi identificativi presenti in ogni evento."""
    return {
        'commessa_id': commessa.id,
        'commessa_number': commessa.number,
        'commessa_title': commessa.title,
        'commessa_type': commessa.type,
        'customer_name': commessa.customer_name,
        'deadline': commessa.deadline.isoformat() if commessa.deadline else None,
    }


def _titolo(payload: Dict[str, Any]) -> str:
    return payload.get('commessa_title') or 'Commessa'


def _riferimento(payload: Dict[str, Any]) -> str:
    return payload.get('commessa_number') or payload.get('commessa_title') or 'N/D'


# =============================================================================
# WHATSAPP
# =============================================================================

def whatsapp_template(event_type: str, payload: Dict[str, Any],
                      recipient_name: str) -> Tuple[str, List[str]]:
    """
    Nome template e parametri posizionali per il destinatario.

    Returns:
        (template_name, template_params)
    """
    tipo = order_type_label(payload.get('commessa_type'))
    cliente = payload.get('customer_name') or 'N/D'
    scadenza = format_data_it(payload.get('deadline'))

    if event_type == EventType.CAMBIO_STATO:
        return event_type, [
            recipient_name, _titolo(payload), status_label(payload.get('new_status')),
            tipo, cliente, scadenza,
        ]

    if event_type == EventType.CALENDARIZZAZIONE:
        template = 'data_ricalendarizzata' if payload.get('is_reschedule') else 'data_calendarizzata'
        return template, [
            recipient_name, _riferimento(payload), phase_label(payload.get('phase_type')),
            format_data_it(payload.get('scheduled_date')), cliente,
        ]

    if event_type == EventType.CAMBIO_PRIORITA:
        return event_type, [
            recipient_name, _riferimento(payload),
            priority_label(payload.get('old_priority')),
            priority_label(payload.get('new_priority')),
            tipo, cliente, scadenza,
        ]

    if event_type == EventType.URGENTE:
        return event_type, [
            recipient_name, _riferimento(payload), _titolo(payload),
            payload.get('message') or '', cliente, scadenza,
        ]

    if event_type == EventType.SCADENZA:
        giorni = payload.get('days_remaining')
        return event_type, [
            recipient_name, _titolo(payload), tipo, cliente, scadenza,
            str(giorni) if giorni is not None else 'N/D',
        ]

    raise ValueError(f"Tipo evento sconosciuto: {event_type}")


# =============================================================================
# EMAIL
# =============================================================================

def email_message(event_type: str, payload: Dict[str, Any]) -> Tuple[str, str, str]:
    """
    Oggetto, corpo testo e corpo HTML della notifica email.

    Returns:
        (subject, body_text, body_html)
    """
    titolo = _titolo(payload)
    riferimento = _riferimento(payload)
    cliente = payload.get('customer_name') or 'N/D'
    scadenza = format_data_it(payload.get('deadline'))
    tipo = order_type_label(payload.get('commessa_type'))

    if event_type == EventType.CAMBIO_STATO:
        stato = status_label(payload.get('new_status'))
        fase = phase_label(payload.get('phase_type'))
        subject = f"Cambio stato: {riferimento} - {fase} {stato}"
        testo = f"La fase {fase} della commessa {riferimento} ({titolo}) è ora: {stato}."
    elif event_type == EventType.CALENDARIZZAZIONE:
        fase = phase_label(payload.get('phase_type'))
        data = format_data_it(payload.get('scheduled_date'))
        if payload.get('is_reschedule'):
            subject = f"Data ricalendarizzata: {riferimento}"
            azione = 'ricalendarizzata'
        else:
            subject = f"Data calendarizzata: {riferimento}"
            azione = 'calendarizzata'
        testo = f"La fase {fase} della commessa {riferimento} è stata {azione} per il {data}."
    elif event_type == EventType.CAMBIO_PRIORITA:
        vecchia = priority_label(payload.get('old_priority'))
        nuova = priority_label(payload.get('new_priority'))
        subject = f"Cambio Priorità: {riferimento} -> {nuova}"
        testo = (f"La priorità della commessa {riferimento} ({titolo}) "
                 f"è stata cambiata da {vecchia} a {nuova}.")
    elif event_type == EventType.URGENTE:
        subject = f"Comunicazione Urgente: {riferimento}"
        testo = payload.get('message') or ''
    elif event_type == EventType.SCADENZA:
        giorni = payload.get('days_remaining')
        giorni_str = str(giorni) if giorni is not None else 'N/D'
        subject = f"Scadenza Imminente: {titolo} ({giorni_str} giorni)"
        testo = f"La commessa {titolo} scade il {scadenza} ({giorni_str} giorni)."
    else:
        raise ValueError(f"Tipo evento sconosciuto: {event_type}")

    body_text = f"{testo}\nTipologia: {tipo}\nCliente: {cliente}\nScadenza: {scadenza}"
    # testi inseriti dagli utenti: mai HTML grezzo nel corpo
    e = html.escape
    body_html = (
        f"<p><strong>{e(riferimento)}</strong> - {e(titolo)}</p>"
        f"<p>{e(testo)}</p>"
        f"<ul><li>Tipologia: {e(tipo)}</li><li>Cliente: {e(cliente)}</li>"
        f"<li>Scadenza: {e(scadenza)}</li></ul>"
    )
    return subject, body_text, body_html
