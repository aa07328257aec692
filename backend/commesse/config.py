# =============================================================================
# ZAPP COMMESSE v1.0 - CONFIGURAZIONE
# =============================================================================
# Parametri letti da variabili ambiente (con .env opzionale)
# =============================================================================

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "si")


# =============================================================================
# CONFIGURAZIONE PRINCIPALE
# =============================================================================

class Settings:
    """Configurazione globale dell'applicazione."""

    # Database PostgreSQL
    PG_HOST: str = os.getenv("PG_HOST", "localhost")
    PG_PORT: int = int(os.getenv("PG_PORT", "5432"))
    PG_DATABASE: str = os.getenv("PG_DATABASE", "zapp")
    PG_USER: str = os.getenv("PG_USER", "zapp_user")
    PG_PASSWORD: str = os.getenv("PG_PASSWORD", "")
    PG_POOL_MIN: int = int(os.getenv("PG_POOL_MIN", "2"))
    PG_POOL_MAX: int = int(os.getenv("PG_POOL_MAX", "20"))

    # Selettore backing store: "postgresql" o "memory"
    COMMESSE_STORE: str = os.getenv("COMMESSE_STORE", "postgresql")

    # Worker in background
    WRITE_WORKERS: int = int(os.getenv("COMMESSE_WRITE_WORKERS", "4"))
    NOTIFY_WORKERS: int = int(os.getenv("COMMESSE_NOTIFY_WORKERS", "2"))
    WRITE_TIMEOUT_SEC: float = float(os.getenv("COMMESSE_WRITE_TIMEOUT_SEC", "30"))

    # WhatsApp gateway (template message)
    WHATSAPP_API_URL: str = os.getenv("WHATSAPP_API_URL", "")
    WHATSAPP_API_TOKEN: str = os.getenv("WHATSAPP_API_TOKEN", "")
    WHATSAPP_ACCOUNT_ID: str = os.getenv("WHATSAPP_ACCOUNT_ID", "")
    WHATSAPP_TIMEOUT_SEC: int = int(os.getenv("WHATSAPP_TIMEOUT_SEC", "15"))

    # SMTP
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str = os.getenv("SMTP_USER", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_SENDER_NAME: str = os.getenv("SMTP_SENDER_NAME", "ERP Zapper")
    SMTP_SENDER_EMAIL: str = os.getenv("SMTP_SENDER_EMAIL", "")
    SMTP_TIMEOUT: int = int(os.getenv("SMTP_TIMEOUT", "30"))

    # Job scadenze imminenti
    SCADENZE_ENABLED: bool = _env_bool("SCADENZE_ENABLED", "true")
    SCADENZE_ORA: int = int(os.getenv("SCADENZE_ORA", "7"))
    SCADENZE_MINUTO: int = int(os.getenv("SCADENZE_MINUTO", "0"))
    SCADENZE_GIORNI_PREAVVISO: int = int(os.getenv("SCADENZE_GIORNI_PREAVVISO", "3"))

    # Ambiente
    TESTING: bool = _env_bool("TESTING")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Versione
    VERSION: str = "1.0.0"
    APP_NAME: str = "ZAPP COMMESSE"


# Istanza singleton
config = Settings()
