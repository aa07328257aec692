# =============================================================================
# ZAPP COMMESSE v1.0 - COMMESSE ROUTER
# =============================================================================
# Endpoint per lista/dettaglio commesse e mutazioni su fasi e testata.
#
# Le scritture sono ottimistiche: con attendi=true (default) la risposta
# arriva dopo il salvataggio; con attendi=false si risponde 202 con lo
# stato ottimistico e il salvataggio prosegue in background.
# =============================================================================

from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from ..config import config
from ..dependencies import get_pipeline
from ..services.commesse.constants import StatusClass
from ..services.commesse.pipeline import MutationHandle, PipelineStore
from ..services.commesse.queries import proietta_commessa
from ..services.scheduler import esegui_controllo_scadenze
from ..utils.response import error_response, success_response


router = APIRouter(prefix="/commesse")


# =============================================================================
# MODELLI PYDANTIC
# =============================================================================

class CambioStatoRequest(BaseModel):
    status: str


class ProgrammazioneRequest(BaseModel):
    scheduled_date: date


class CambioPrioritaRequest(BaseModel):
    priority: str
    sent_by: Optional[str] = None


class MessaggioUrgenteRequest(BaseModel):
    message: str
    sender_id: Optional[str] = None


class ModificaCommessaRequest(BaseModel):
    """
    Campi editabili della commessa.

    Solo i campi presenti nel body vengono modificati.
    """
    title: Optional[str] = None
    article: Optional[str] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    delivery_mode: Optional[str] = None
    intervention_type: Optional[str] = None
    diameter: Optional[str] = None
    smoke_inlet: Optional[str] = None
    deadline: Optional[date] = None
    payment_on_delivery: Optional[bool] = None
    payment_amount: Optional[Decimal] = None
    warranty: Optional[bool] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_province: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None


# =============================================================================
# HELPER
# =============================================================================

def _esito(handle: MutationHandle, attendi: bool, response: Response) -> Dict[str, Any]:
    """Risposta standard per una mutazione."""
    if handle.skipped:
        return success_response(proietta_commessa(handle.commessa),
                                message=handle.reason, skipped=True)

    if not attendi:
        response.status_code = 202
        return success_response(proietta_commessa(handle.commessa), pending=True)

    try:
        commessa = handle.result(timeout=config.WRITE_TIMEOUT_SEC)
    except FuturesTimeoutError:
        response.status_code = 202
        return success_response(proietta_commessa(handle.commessa), pending=True,
                                message="Salvataggio ancora in corso")

    return success_response(proietta_commessa(commessa))


# =============================================================================
# LISTA E DETTAGLIO
# =============================================================================

@router.get("")
def lista_commesse(
    q: Optional[str] = Query(None, description="Ricerca su titolo, numero, cliente, articolo"),
    stato: str = Query(StatusClass.ACTIVE, pattern="^(active|completed|all)$"),
    include_archived: bool = False,
    pipeline: PipelineStore = Depends(get_pipeline)
) -> Dict[str, Any]:
    """Lista commesse filtrata e ordinata per priorità."""
    commesse = pipeline.list_commesse(q, stato, include_archived)
    return success_response([proietta_commessa(c) for c in commesse], count=len(commesse))


@router.get("/{commessa_id}")
def dettaglio_commessa(commessa_id: str, pipeline: PipelineStore = Depends(get_pipeline)):
    return success_response(proietta_commessa(pipeline.get_commessa(commessa_id)))


@router.get("/{commessa_id}/comunicazioni")
def comunicazioni_commessa(commessa_id: str, pipeline: PipelineStore = Depends(get_pipeline)):
    """Storico comunicazioni (cambi priorità, messaggi urgenti)."""
    pipeline.get_commessa(commessa_id)
    comunicazioni = pipeline.store.list_comunicazioni(commessa_id)
    data = [
        {
            'id': c.id,
            'communication_type': c.communication_type,
            'content': c.content,
            'old_value': c.old_value,
            'new_value': c.new_value,
            'sent_via': c.sent_via,
            'sent_to': c.sent_to,
            'sent_by': c.sent_by,
            'created_at': c.created_at.isoformat() if c.created_at else None,
        }
        for c in comunicazioni
    ]
    return success_response(data, count=len(data))


# =============================================================================
# MUTAZIONI FASI
# =============================================================================

@router.patch("/fasi/{fase_id}/stato")
def cambia_stato_fase(
    fase_id: str,
    request: CambioStatoRequest,
    response: Response,
    attendi: bool = True,
    pipeline: PipelineStore = Depends(get_pipeline)
):
    """
    Cambia lo stato di una fase.

    - 409 se la fase precedente non è completata
    - 400 se lo stato non appartiene al vocabolario della fase
    - 503 se il salvataggio fallisce (modifica annullata, ripetibile)
    """
    handle = pipeline.apply_phase_status_change(fase_id, request.status)
    return _esito(handle, attendi, response)


@router.patch("/fasi/{fase_id}/programmazione")
def programma_fase(
    fase_id: str,
    request: ProgrammazioneRequest,
    response: Response,
    attendi: bool = True,
    pipeline: PipelineStore = Depends(get_pipeline)
):
    handle = pipeline.schedule_phase(fase_id, request.scheduled_date)
    return _esito(handle, attendi, response)


# =============================================================================
# MUTAZIONI COMMESSA
# =============================================================================

@router.patch("/{commessa_id}/priorita")
def cambia_priorita(
    commessa_id: str,
    request: CambioPrioritaRequest,
    response: Response,
    attendi: bool = True,
    pipeline: PipelineStore = Depends(get_pipeline)
):
    handle = pipeline.apply_priority_change(commessa_id, request.priority, request.sent_by)
    return _esito(handle, attendi, response)


@router.patch("/{commessa_id}")
def modifica_commessa(
    commessa_id: str,
    request: ModificaCommessaRequest,
    response: Response,
    attendi: bool = True,
    pipeline: PipelineStore = Depends(get_pipeline)
):
    handle = pipeline.update_commessa_fields(commessa_id, request.model_dump(exclude_unset=True))
    return _esito(handle, attendi, response)


@router.post("/{commessa_id}/archivia")
def archivia_commessa(
    commessa_id: str,
    response: Response,
    attendi: bool = True,
    pipeline: PipelineStore = Depends(get_pipeline)
):
    handle = pipeline.archive_commessa(commessa_id)
    return _esito(handle, attendi, response)


@router.post("/{commessa_id}/messaggio-urgente", status_code=202)
def messaggio_urgente(
    commessa_id: str,
    request: MessaggioUrgenteRequest,
    pipeline: PipelineStore = Depends(get_pipeline)
):
    """Accoda la comunicazione urgente; l'esito dell'invio finisce solo nei log."""
    pipeline.send_urgent_message(commessa_id, request.message, request.sender_id)
    return success_response(message="Comunicazione urgente in invio")


@router.delete("/{commessa_id}")
def elimina_commessa(commessa_id: str, pipeline: PipelineStore = Depends(get_pipeline)):
    """
    Elimina commessa, fasi e comunicazioni.

    Un'eliminazione interrotta dopo la rimozione delle fasi viene
    segnalata con success=false e code PARTIAL_DELETION.
    """
    result = pipeline.delete_commessa(commessa_id)
    if result.partial:
        return error_response(
            "Eliminazione incompleta: dati dipendenti già rimossi",
            code="PARTIAL_DELETION",
            data=result.to_dict()
        )
    return success_response(result.to_dict(), message="Commessa eliminata")


# =============================================================================
# SCADENZE
# =============================================================================

@router.post("/scadenze/controllo")
def controllo_scadenze(
    giorni: Optional[int] = Query(None, ge=0, description="Giorni di preavviso (default da configurazione)"),
    pipeline: PipelineStore = Depends(get_pipeline)
):
    """Esegue subito il controllo scadenze imminenti (fuori schedulazione)."""
    return esegui_controllo_scadenze(pipeline, giorni=giorni)
