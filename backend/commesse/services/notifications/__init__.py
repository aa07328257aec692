# =============================================================================
# ZAPP COMMESSE v1.0 - NOTIFICATIONS PACKAGE
# =============================================================================
#   templates.py  - EventType, payload, rendering WhatsApp/email
#   channels.py   - WhatsAppChannel, EmailChannel
#   rules.py      - risoluzione destinatari con fallback
#   dispatcher.py - NotificationDispatcher (thread pool, fire-and-forget)
# =============================================================================

from .templates import EventType, payload_base, whatsapp_template, email_message
from .channels import (
    NotificationChannel,
    WhatsAppChannel,
    EmailChannel,
    DestinatarioNonValidoError,
    default_channels,
)
from .rules import risolvi_regole
from .dispatcher import NotificationDispatcher, DispatchResult

__all__ = [
    'EventType',
    'payload_base',
    'whatsapp_template',
    'email_message',
    'NotificationChannel',
    'WhatsAppChannel',
    'EmailChannel',
    'DestinatarioNonValidoError',
    'default_channels',
    'risolvi_regole',
    'NotificationDispatcher',
    'DispatchResult',
]
