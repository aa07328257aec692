"""
Canali di notifica - WhatsApp (gateway HTTP, template message) ed email (SMTP).

Ogni canale consegna a un singolo destinatario e solleva eccezione in caso
di errore: la raccolta dei risultati spetta al dispatcher.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

import requests

from ...config import config
from ..commesse.models import RegolaNotifica
from .templates import email_message, whatsapp_template


logger = logging.getLogger('commesse.notifiche')


class DestinatarioNonValidoError(ValueError):
    """Regola senza recapito per il canale."""


class NotificationChannel(ABC):
    """Canale di consegna."""

    name: str = ''

    @abstractmethod
    def deliver(self, regola: RegolaNotifica, event_type: str, payload: Dict[str, Any]) -> str:
        """
        Consegna la notifica al destinatario della regola.

        Returns:
            Recapito usato (telefono o email)
        """


class WhatsAppChannel(NotificationChannel):
    """Invio template WhatsApp tramite gateway HTTP."""

    name = 'whatsapp'

    def __init__(self, api_url: Optional[str] = None, token: Optional[str] = None,
                 account_id: Optional[str] = None, timeout: Optional[int] = None,
                 session: Optional[requests.Session] = None):
        self.api_url = api_url if api_url is not None else config.WHATSAPP_API_URL
        self.token = token if token is not None else config.WHATSAPP_API_TOKEN
        self.account_id = account_id if account_id is not None else config.WHATSAPP_ACCOUNT_ID
        self.timeout = timeout or config.WHATSAPP_TIMEOUT_SEC
        self.session = session or requests.Session()

    def deliver(self, regola: RegolaNotifica, event_type: str, payload: Dict[str, Any]) -> str:
        if not regola.recipient_phone:
            raise DestinatarioNonValidoError("Nessun numero di telefono")
        if not self.api_url:
            raise RuntimeError("Gateway WhatsApp non configurato")

        template_name, params = whatsapp_template(event_type, payload, regola.recipient_name)
        response = self.session.post(
            self.api_url,
            json={
                'account_id': self.account_id,
                'to': regola.recipient_phone,
                'type': 'template',
                'template_name': template_name,
                'template_language': 'it',
                'template_params': params,
            },
            headers={'Authorization': f'Bearer {self.token}'},
            timeout=self.timeout,
        )
        response.raise_for_status()

        result = response.json()
        if not result.get('success', False):
            raise RuntimeError(result.get('error') or 'Invio WhatsApp rifiutato')

        logger.info("WhatsApp %s inviato a %s (%s)", template_name,
                    regola.recipient_name, regola.recipient_phone)
        return regola.recipient_phone


class EmailChannel(NotificationChannel):
    """Invio email via SMTP con TLS."""

    name = 'email'

    def __init__(self, smtp_config: Optional[Dict[str, Any]] = None):
        self.config = smtp_config or {
            'smtp_host': config.SMTP_HOST,
            'smtp_port': config.SMTP_PORT,
            'smtp_user': config.SMTP_USER,
            'smtp_password': config.SMTP_PASSWORD,
            'smtp_sender_name': config.SMTP_SENDER_NAME,
            'smtp_sender_email': config.SMTP_SENDER_EMAIL,
            'smtp_timeout': config.SMTP_TIMEOUT,
        }

    def connect_smtp(self) -> smtplib.SMTP:
        """Connessione SMTP con TLS"""
        server = smtplib.SMTP(
            self.config.get('smtp_host', 'smtp.gmail.com'),
            int(self.config.get('smtp_port', 587)),
            timeout=self.config.get('smtp_timeout', 30),
        )
        if self.config.get('smtp_use_tls', True):
            server.starttls()
        if self.config.get('smtp_user'):
            server.login(self.config['smtp_user'], self.config.get('smtp_password', ''))
        return server

    def send_email(self, to: str, subject: str,
                   body_html: str, body_text: Optional[str] = None) -> None:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject

        sender_name = self.config.get('smtp_sender_name', 'ERP Zapper')
        sender_email = self.config.get('smtp_sender_email') or self.config.get('smtp_user', '')
        msg['From'] = f"{sender_name} <{sender_email}>"
        msg['To'] = to

        if body_text:
            msg.attach(MIMEText(body_text, 'plain', 'utf-8'))
        msg.attach(MIMEText(body_html, 'html', 'utf-8'))

        server = self.connect_smtp()
        try:
            server.send_message(msg)
        finally:
            try:
                server.quit()
            except smtplib.SMTPException:
                pass

    def deliver(self, regola: RegolaNotifica, event_type: str, payload: Dict[str, Any]) -> str:
        if not regola.recipient_email:
            raise DestinatarioNonValidoError("Nessuna email")

        subject, body_text, body_html = email_message(event_type, payload)
        self.send_email(regola.recipient_email, subject, body_html, body_text)

        logger.info("Email '%s' inviata a %s", subject, regola.recipient_email)
        return regola.recipient_email


def default_channels() -> Dict[str, NotificationChannel]:
    """Canali configurati da ambiente."""
    return {
        WhatsAppChannel.name: WhatsAppChannel(),
        EmailChannel.name: EmailChannel(),
    }
