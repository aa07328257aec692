# =============================================================================
# ZAPP COMMESSE v1.0 - BASE REPOSITORY
# =============================================================================
# Interfaccia del backing store e classe base per il Repository Pattern
# =============================================================================

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ...database_pg import get_db_cursor
from ...services.commesse.models import Commessa, Comunicazione, RegolaNotifica


class CommesseStore(ABC):
    """
    Backing store delle commesse.

    Tutte le operazioni sono sincrone e sollevano l'eccezione del driver
    in caso di errore: la traduzione in PersistenceError spetta alla
    pipeline.
    """

    @abstractmethod
    def get_commessa(self, commessa_id: str) -> Optional[Commessa]:
        """Commessa con fasi ordinate e campi joinati."""

    @abstractmethod
    def list_commesse(self) -> List[Commessa]:
        """Tutte le commesse (archiviate incluse)."""

    @abstractmethod
    def update_fase(self, fase_id: str, changes: Dict[str, Any]) -> None:
        """Aggiorna in un'unica scrittura i campi della fase."""

    @abstractmethod
    def update_commessa(self, commessa_id: str, changes: Dict[str, Any]) -> None:
        """Aggiorna in un'unica scrittura i campi della commessa."""

    @abstractmethod
    def delete_fasi(self, commessa_id: str) -> int:
        pass

    @abstractmethod
    def delete_comunicazioni(self, commessa_id: str) -> int:
        pass

    @abstractmethod
    def delete_commessa(self, commessa_id: str) -> bool:
        pass

    @abstractmethod
    def add_comunicazione(self, comunicazione: Comunicazione) -> Comunicazione:
        pass

    @abstractmethod
    def list_comunicazioni(self, commessa_id: str) -> List[Comunicazione]:
        pass

    @abstractmethod
    def get_notification_rules(self, event_type: str) -> List[RegolaNotifica]:
        """Regole attive per il tipo evento."""


class BaseRepository(ABC):
    """
    Repository base su PostgreSQL.

    Attributes:
        table_name: Nome della tabella principale
        primary_key: Nome della chiave primaria (default: 'id')
    """

    def __init__(self, table_name: str, primary_key: str = 'id'):
        self.table_name = table_name
        self.primary_key = primary_key

    def _execute_query(self, query: str, params: tuple = None) -> List[Dict[str, Any]]:
        """Esegue query e ritorna lista di dict."""
        with get_db_cursor() as cur:
            cur.execute(query, params or ())
            return [dict(row) for row in cur.fetchall()]

    def _execute_one(self, query: str, params: tuple = None) -> Optional[Dict[str, Any]]:
        """Esegue query e ritorna singolo dict."""
        with get_db_cursor() as cur:
            cur.execute(query, params or ())
            row = cur.fetchone()
            return dict(row) if row else None

    def _execute_update(self, query: str, params: tuple = None) -> int:
        """Esegue INSERT/UPDATE/DELETE e ritorna il numero di righe toccate."""
        with get_db_cursor() as cur:
            cur.execute(query, params or ())
            return cur.rowcount

    def delete_by_id(self, id_value: str) -> bool:
        """
        Elimina record per ID.

        Returns:
            True se eliminato
        """
        return self._execute_update(
            f"DELETE FROM {self.table_name} WHERE {self.primary_key} = %s",
            (id_value,)
        ) > 0
