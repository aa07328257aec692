# =============================================================================
# ZAPP COMMESSE v1.0 - MODELS
# =============================================================================
# Dataclasses per commesse, fasi, comunicazioni e regole di notifica
# =============================================================================

from dataclasses import dataclass, field, fields, asdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .constants import Priority


def _json_value(value: Any) -> Any:
    """Converte tipi non serializzabili per JSON."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


@dataclass
class Fase:
    """Una fase del flusso di lavoro, posseduta da una sola commessa."""
    id: str
    commessa_id: str
    phase_type: str
    phase_order: int
    status: str
    scheduled_date: Optional[date] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: _json_value(v) for k, v in asdict(self).items()}

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Fase':
        return cls(
            id=str(row['id']),
            commessa_id=str(row['commessa_id']),
            phase_type=row['phase_type'],
            phase_order=int(row['phase_order']),
            status=row['status'],
            scheduled_date=row.get('scheduled_date'),
            started_at=row.get('started_at'),
            completed_at=row.get('completed_at'),
            notes=row.get('notes'),
        )


@dataclass
class Commessa:
    """Commessa con le sue fasi ordinate e i campi di visualizzazione joinati."""
    id: str
    number: str
    title: str
    type: str
    priority: Optional[str] = Priority.DEFAULT
    deadline: Optional[date] = None
    created_at: Optional[datetime] = None

    # Riferimenti
    customer_id: Optional[str] = None
    sales_order_id: Optional[str] = None
    lead_id: Optional[str] = None

    # Campi joinati (sola lettura)
    customer_name: Optional[str] = None
    sales_order_number: Optional[str] = None
    bom_name: Optional[str] = None
    bom_version: Optional[str] = None

    # Dati tecnici
    article: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    delivery_mode: Optional[str] = None
    intervention_type: Optional[str] = None
    diameter: Optional[str] = None
    smoke_inlet: Optional[str] = None

    # Spedizione
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_province: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None

    # Pagamento / garanzia
    payment_on_delivery: bool = False
    payment_amount: Optional[Decimal] = None
    warranty: bool = False

    archived: bool = False
    fasi: List[Fase] = field(default_factory=list)

    def fase(self, fase_id: str) -> Optional[Fase]:
        for f in self.fasi:
            if f.id == fase_id:
                return f
        return None

    def fasi_ordinate(self) -> List[Fase]:
        return sorted(self.fasi, key=lambda f: f.phase_order)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: _json_value(getattr(self, f.name)) for f in fields(self) if f.name != 'fasi'}
        data['fasi'] = [f.to_dict() for f in self.fasi_ordinate()]
        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any], fasi: Optional[List[Fase]] = None) -> 'Commessa':
        known = {f.name for f in fields(cls)} - {'fasi'}
        values = {k: v for k, v in row.items() if k in known}
        values['id'] = str(values['id'])
        commessa = cls(**values)
        commessa.fasi = sorted(fasi or [], key=lambda f: f.phase_order)
        return commessa


@dataclass
class Comunicazione:
    """Comunicazione registrata su una commessa (cambio priorità, messaggio urgente)."""
    commessa_id: str
    communication_type: str
    content: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    sent_via: List[str] = field(default_factory=list)
    sent_to: List[str] = field(default_factory=list)
    sent_by: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class RegolaNotifica:
    """Regola di notifica: chi riceve quale evento su quale canale."""
    event_type: str
    channel: str
    recipient_name: str
    recipient_phone: Optional[str] = None
    recipient_email: Optional[str] = None
    is_active: bool = True
    id: Optional[str] = None


def verifica_sequenza_fasi(fasi: List[Fase]) -> bool:
    """True se i phase_order sono univoci e contigui a partire da 1."""
    ordini = sorted(f.phase_order for f in fasi)
    return ordini == list(range(1, len(fasi) + 1))
