# =============================================================================
# ZAPP COMMESSE v1.0 - COMMESSE REPOSITORY
# =============================================================================
# Backing store PostgreSQL: commesse, fasi, comunicazioni, regole notifica
# =============================================================================

from typing import Any, Dict, List, Optional

from psycopg2.extras import Json

from .base import BaseRepository, CommesseStore
from ...services.commesse.models import Commessa, Comunicazione, Fase, RegolaNotifica
from ...services.commesse.validation import EDITABLE_FIELDS


FASE_COLUMNS = frozenset({'status', 'scheduled_date', 'started_at', 'completed_at', 'notes'})
COMMESSA_COLUMNS = EDITABLE_FIELDS | {'priority', 'archived'}


_SELECT_COMMESSA = """
    SELECT c.*,
           cu.name AS customer_name,
           so.number AS sales_order_number,
           b.name AS bom_name,
           b.version AS bom_version
    FROM commesse c
    LEFT JOIN customers cu ON cu.id = c.customer_id
    LEFT JOIN sales_orders so ON so.id = c.sales_order_id
    LEFT JOIN boms b ON b.id = c.bom_id
"""


def _set_clause(changes: Dict[str, Any], allowed: frozenset) -> str:
    colonne = sorted(changes)
    non_ammesse = set(colonne) - allowed
    if non_ammesse:
        raise ValueError(f"Colonne non aggiornabili: {', '.join(sorted(non_ammesse))}")
    return ", ".join(f"{col} = %s" for col in colonne)


class CommesseRepository(BaseRepository, CommesseStore):
    """Repository per commesse e tabelle dipendenti."""

    def __init__(self):
        super().__init__('commesse', 'id')

    # -------------------------------------------------------------------------
    # LETTURA
    # -------------------------------------------------------------------------

    def _fasi_by_commessa(self, commessa_ids: List[str]) -> Dict[str, List[Fase]]:
        if not commessa_ids:
            return {}
        rows = self._execute_query("""
            SELECT * FROM commessa_phases
            WHERE commessa_id = ANY(%s::uuid[])
            ORDER BY commessa_id, phase_order
        """, (commessa_ids,))
        result: Dict[str, List[Fase]] = {}
        for row in rows:
            fase = Fase.from_row(row)
            result.setdefault(fase.commessa_id, []).append(fase)
        return result

    def get_commessa(self, commessa_id: str) -> Optional[Commessa]:
        row = self._execute_one(_SELECT_COMMESSA + " WHERE c.id = %s", (commessa_id,))
        if not row:
            return None
        fasi = self._fasi_by_commessa([str(row['id'])])
        return Commessa.from_row(row, fasi.get(str(row['id']), []))

    def list_commesse(self) -> List[Commessa]:
        rows = self._execute_query(_SELECT_COMMESSA + " ORDER BY c.created_at DESC")
        fasi = self._fasi_by_commessa([str(r['id']) for r in rows])
        return [Commessa.from_row(r, fasi.get(str(r['id']), [])) for r in rows]

    # -------------------------------------------------------------------------
    # SCRITTURA
    # -------------------------------------------------------------------------

    def update_fase(self, fase_id: str, changes: Dict[str, Any]) -> None:
        set_clause = _set_clause(changes, FASE_COLUMNS)
        params = tuple(changes[k] for k in sorted(changes)) + (fase_id,)
        updated = self._execute_update(
            f"UPDATE commessa_phases SET {set_clause} WHERE id = %s", params
        )
        if updated == 0:
            raise LookupError(f"Fase {fase_id} non presente nel database")

    def update_commessa(self, commessa_id: str, changes: Dict[str, Any]) -> None:
        set_clause = _set_clause(changes, COMMESSA_COLUMNS)
        params = tuple(changes[k] for k in sorted(changes)) + (commessa_id,)
        updated = self._execute_update(
            f"UPDATE commesse SET {set_clause}, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
            params
        )
        if updated == 0:
            raise LookupError(f"Commessa {commessa_id} non presente nel database")

    def delete_fasi(self, commessa_id: str) -> int:
        return self._execute_update(
            "DELETE FROM commessa_phases WHERE commessa_id = %s", (commessa_id,)
        )

    def delete_comunicazioni(self, commessa_id: str) -> int:
        return self._execute_update(
            "DELETE FROM commessa_communications WHERE commessa_id = %s", (commessa_id,)
        )

    def delete_commessa(self, commessa_id: str) -> bool:
        return self.delete_by_id(commessa_id)

    # -------------------------------------------------------------------------
    # COMUNICAZIONI E REGOLE
    # -------------------------------------------------------------------------

    def add_comunicazione(self, comunicazione: Comunicazione) -> Comunicazione:
        row = self._execute_one("""
            INSERT INTO commessa_communications (
                commessa_id, communication_type, content, old_value, new_value,
                sent_via, sent_to, sent_by, metadata
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at
        """, (
            comunicazione.commessa_id,
            comunicazione.communication_type,
            comunicazione.content,
            comunicazione.old_value,
            comunicazione.new_value,
            comunicazione.sent_via,
            comunicazione.sent_to,
            comunicazione.sent_by,
            Json(comunicazione.metadata),
        ))
        comunicazione.id = str(row['id'])
        comunicazione.created_at = row['created_at']
        return comunicazione

    def list_comunicazioni(self, commessa_id: str) -> List[Comunicazione]:
        rows = self._execute_query("""
            SELECT * FROM commessa_communications
            WHERE commessa_id = %s
            ORDER BY created_at
        """, (commessa_id,))
        return [
            Comunicazione(
                id=str(r['id']),
                commessa_id=str(r['commessa_id']),
                communication_type=r['communication_type'],
                content=r.get('content'),
                old_value=r.get('old_value'),
                new_value=r.get('new_value'),
                sent_via=list(r.get('sent_via') or []),
                sent_to=list(r.get('sent_to') or []),
                sent_by=r.get('sent_by'),
                metadata=r.get('metadata') or {},
                created_at=r.get('created_at'),
            )
            for r in rows
        ]

    def get_notification_rules(self, event_type: str) -> List[RegolaNotifica]:
        rows = self._execute_query("""
            SELECT * FROM zapp_notification_rules
            WHERE event_type = %s AND is_active = TRUE
            ORDER BY channel, recipient_name
        """, (event_type,))
        return [
            RegolaNotifica(
                id=str(r['id']),
                event_type=r['event_type'],
                channel=r['channel'],
                recipient_name=r['recipient_name'],
                recipient_phone=r.get('recipient_phone'),
                recipient_email=r.get('recipient_email'),
                is_active=r['is_active'],
            )
            for r in rows
        ]


# Istanza singleton
commesse_repository = CommesseRepository()
