# =============================================================================
# ZAPP COMMESSE v1.0 - COMMESSE FACTORIES
# =============================================================================
# Factory per commesse, fasi e regole di notifica di test
# =============================================================================

from typing import Tuple

import factory

from commesse.services.commesse.constants import OrderType, PhaseStatus, PhaseType, Priority
from commesse.services.commesse.models import Commessa, Fase, RegolaNotifica


class FaseFactory(factory.Factory):
    """
    Factory per fasi commessa.
    """

    class Meta:
        model = Fase

    id = factory.Sequence(lambda n: f"fase-{n:05d}")
    commessa_id = "commessa-00000"
    phase_type = PhaseType.PRODUCTION
    phase_order = 1
    status = PhaseStatus.DA_FARE


class CommessaFactory(factory.Factory):
    """
    Factory per commesse (senza fasi, vedi con_fasi).
    """

    class Meta:
        model = Commessa

    id = factory.Sequence(lambda n: f"commessa-{n:05d}")
    number = factory.Sequence(lambda n: f"TEST-{n:04d}")
    title = factory.Sequence(lambda n: f"Abbattitore test {n}")
    type = OrderType.SUPPLY
    priority = Priority.MEDIUM
    customer_name = factory.Sequence(lambda n: f"Cliente {n:04d}")
    article = None
    deadline = None
    archived = False
    fasi = factory.LazyFunction(list)

    @classmethod
    def con_fasi(cls, *fasi: Tuple[str, str], **kwargs) -> Commessa:
        """
        Crea commessa con fasi ordinate.

        Args:
            fasi: coppie (phase_type, status) nell'ordine del flusso
        """
        commessa = cls(**kwargs)
        commessa.fasi = [
            FaseFactory(commessa_id=commessa.id, phase_type=tipo, status=stato, phase_order=i)
            for i, (tipo, stato) in enumerate(fasi, start=1)
        ]
        return commessa


class RegolaNotificaFactory(factory.Factory):
    """
    Factory per regole di notifica.
    """

    class Meta:
        model = RegolaNotifica

    event_type = 'cambio_stato_commessa'
    channel = 'whatsapp'
    recipient_name = factory.Sequence(lambda n: f"Destinatario {n}")
    recipient_phone = factory.Sequence(lambda n: f"+39333{n:07d}")
    recipient_email = factory.Sequence(lambda n: f"destinatario{n}@example.com")
    is_active = True
