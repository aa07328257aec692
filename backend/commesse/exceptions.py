# =============================================================================
# ZAPP COMMESSE v1.0 - ECCEZIONI CENTRALIZZATE
# =============================================================================
# Sistema di eccezioni custom per gestione errori uniforme
# =============================================================================

from typing import Optional, Dict, Any


class CommesseException(Exception):
    """
    Eccezione base per il servizio commesse.

    Tutte le eccezioni custom devono estendere questa classe.
    code e status_code vengono usati dall'exception handler dell'app.
    """
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    detail: str = "Errore interno del server"

    def __init__(self, detail: Optional[str] = None, extra: Dict[str, Any] = None):
        self.detail = detail or self.__class__.detail
        self.extra = extra or {}
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Converte in dizionario per logging."""
        return {
            "code": self.code,
            "status_code": self.status_code,
            "message": self.detail,
            **self.extra
        }


# =============================================================================
# ECCEZIONI HTTP STANDARD
# =============================================================================

class NotFoundError(CommesseException):
    """Risorsa non trovata (404)."""
    status_code = 404
    code = "NOT_FOUND"
    detail = "Risorsa non trovata"


class ValidationError(CommesseException):
    """
    Richiesta rifiutata prima di qualsiasi modifica (400).

    Non ritentabile senza cambiare la richiesta.
    """
    status_code = 400
    code = "VALIDATION_ERROR"
    detail = "Errore di validazione"


# =============================================================================
# ECCEZIONI DOMINIO - COMMESSE E FASI
# =============================================================================

class CommessaNotFoundError(NotFoundError):
    """Commessa non trovata."""
    code = "COMMESSA_NOT_FOUND"
    detail = "Commessa non trovata"


class FaseNotFoundError(NotFoundError):
    """Fase non trovata."""
    code = "FASE_NOT_FOUND"
    detail = "Fase non trovata"


class FaseBloccataError(ValidationError):
    """La fase precedente non è completata."""
    status_code = 409
    code = "FASE_BLOCCATA"
    detail = "Fase bloccata: la fase precedente non è completata"


class StatoNonValidoError(ValidationError):
    """Stato non ammesso per il tipo di fase."""
    code = "STATO_NON_VALIDO"
    detail = "Stato non ammesso per questo tipo di fase"


class NessunaModificaError(ValidationError):
    """Il valore richiesto coincide con quello attuale: la richiesta viene ignorata."""
    code = "NESSUNA_MODIFICA"
    detail = "Valore invariato"


class PrioritaNonValidaError(ValidationError):
    """Priorità fuori vocabolario."""
    code = "PRIORITA_NON_VALIDA"
    detail = "Priorità non valida"


class CampoNonModificabileError(ValidationError):
    """Campo commessa non modificabile o valore non ammesso."""
    code = "CAMPO_NON_MODIFICABILE"
    detail = "Campo non modificabile"


class MessaggioNonValidoError(ValidationError):
    """Messaggio urgente vuoto o troppo lungo."""
    code = "MESSAGGIO_NON_VALIDO"
    detail = "Messaggio urgente non valido"


# =============================================================================
# ECCEZIONI DOMINIO - PERSISTENZA
# =============================================================================

class PersistenceError(CommesseException):
    """
    Scrittura sul backing store fallita.

    La cache è già stata ripristinata allo snapshot: la stessa chiamata
    può essere ripetuta.
    """
    status_code = 503
    code = "PERSISTENCE_ERROR"
    detail = "Salvataggio non riuscito, modifica annullata"


class PartialDeletionError(CommesseException):
    """
    Eliminazione a cascata interrotta dopo la rimozione dei dipendenti.

    Solo log, mai sollevata: status_code e code servono al record
    prodotto da to_dict(). La risposta HTTP resta 200 con success false.
    """
    status_code = 500
    code = "PARTIAL_DELETION"
    detail = "Eliminazione incompleta: dati dipendenti già rimossi"


class NotificationDispatchError(CommesseException):
    """Invio notifica fallito. Solo log, mai restituito al chiamante."""
    code = "NOTIFICATION_DISPATCH_FAILED"
    detail = "Invio notifica fallito"
