# =============================================================================
# ZAPP COMMESSE v1.0 - TEST PIPELINE STORE
# =============================================================================
# Aggiornamento ottimistico, rollback, riconciliazione e notifiche
# =============================================================================

import logging
import threading
from datetime import date

import pytest

from commesse.exceptions import (
    CommessaNotFoundError,
    FaseBloccataError,
    FaseNotFoundError,
    MessaggioNonValidoError,
    PersistenceError,
    PrioritaNonValidaError,
    StatoNonValidoError,
)
from commesse.services.notifications import EventType

from conftest import FIXED_NOW
from factories import CommessaFactory, RegolaNotificaFactory


def _stato_cache(pipeline):
    return sorted((c.to_dict() for c in pipeline.cache.all()), key=lambda d: d['id'])


def _regola_stato(**kwargs):
    return RegolaNotificaFactory(event_type=EventType.CAMBIO_STATO, **kwargs)


class TestScenari:
    """Flussi di riferimento su commessa a due fasi."""

    def test_programmazione_e_spedizione(self, pipeline, store, carica):
        commessa = CommessaFactory.con_fasi(('production', 'pronto'), ('shipping', 'da_preparare'))
        carica(commessa)
        p2 = commessa.fasi[1].id

        pipeline.schedule_phase(p2, date(2025, 6, 1)).result(5)
        aggiornata = pipeline.apply_phase_status_change(p2, 'spedito').result(5)

        fase = aggiornata.fase(p2)
        assert fase.scheduled_date == date(2025, 6, 1)
        assert fase.status == 'spedito'
        assert fase.completed_at == FIXED_NOW
        assert store.get_commessa(commessa.id).fase(p2).status == 'spedito'

    def test_fase_bloccata_cache_invariata(self, pipeline, store, dispatcher, whatsapp, carica):
        commessa = CommessaFactory.con_fasi(('production', 'in_lavorazione'), ('shipping', 'da_preparare'))
        carica(commessa, regole=[_regola_stato()])
        prima = _stato_cache(pipeline)

        with pytest.raises(FaseBloccataError):
            pipeline.apply_phase_status_change(commessa.fasi[1].id, 'pronto')

        assert _stato_cache(pipeline) == prima
        assert store.writes == []
        assert dispatcher.wait_pending(5)
        assert whatsapp.sent == []

    def test_priorita_invariata_nessun_effetto(self, pipeline, store, dispatcher, whatsapp, carica):
        commessa = CommessaFactory(priority='medium')
        carica(commessa, regole=[_regola_stato()])

        handle = pipeline.apply_priority_change(commessa.id, 'medium')

        assert handle.skipped
        assert handle.done()
        assert handle.result().priority == 'medium'
        assert dispatcher.wait_pending(5)
        assert store.writes == []
        assert whatsapp.sent == []


class TestAggiornamentoOttimistico:
    """Visibilità immediata e ripristino su errore di scrittura."""

    def test_stato_visibile_prima_della_scrittura(self, pipeline, store, carica):
        commessa = CommessaFactory.con_fasi(('production', 'da_fare'))
        carica(commessa)
        fase_id = commessa.fasi[0].id
        store.gate = threading.Event()

        handle = pipeline.apply_phase_status_change(fase_id, 'in_lavorazione')

        assert handle.commessa.fase(fase_id).status == 'in_lavorazione'
        assert pipeline.get_commessa(commessa.id).fase(fase_id).status == 'in_lavorazione'
        assert store.get_commessa(commessa.id).fase(fase_id).status == 'da_fare'
        assert not handle.done()

        store.gate.set()
        handle.result(5)
        assert store.get_commessa(commessa.id).fase(fase_id).status == 'in_lavorazione'

    def test_rollback_su_errore_scrittura(self, pipeline, store, dispatcher, whatsapp, carica):
        commessa = CommessaFactory.con_fasi(('production', 'in_test'), ('shipping', 'da_preparare'))
        carica(commessa, CommessaFactory(), regole=[_regola_stato()])
        prima = _stato_cache(pipeline)
        store.fail_on = {'update_fase'}

        handle = pipeline.apply_phase_status_change(commessa.fasi[0].id, 'pronto')
        with pytest.raises(PersistenceError) as exc:
            handle.result(5)

        assert isinstance(exc.value.__cause__, ConnectionError)
        assert _stato_cache(pipeline) == prima
        assert dispatcher.wait_pending(5)
        assert whatsapp.sent == []

    def test_rollback_loggato(self, pipeline, store, carica, caplog):
        commessa = CommessaFactory(priority='low')
        carica(commessa)
        store.fail_on = {'update_commessa'}

        with caplog.at_level(logging.WARNING, logger='commesse.pipeline'):
            with pytest.raises(PersistenceError):
                pipeline.apply_priority_change(commessa.id, 'high').result(5)

        assert pipeline.get_commessa(commessa.id).priority == 'low'
        assert any('cache ripristinata' in r.getMessage() for r in caplog.records)

    def test_nuovo_tentativo_dopo_rollback(self, pipeline, store, carica):
        commessa = CommessaFactory.con_fasi(('production', 'da_fare'))
        carica(commessa)
        fase_id = commessa.fasi[0].id
        store.fail_on = {'update_fase'}

        with pytest.raises(PersistenceError):
            pipeline.apply_phase_status_change(fase_id, 'in_lavorazione').result(5)

        store.fail_on = set()
        riconciliata = pipeline.apply_phase_status_change(fase_id, 'in_lavorazione').result(5)
        assert riconciliata.fase(fase_id).started_at == FIXED_NOW

    def test_riconciliazione_allinea_allo_store(self, pipeline, store, carica):
        commessa = CommessaFactory.con_fasi(('production', 'da_fare'), ('shipping', 'da_preparare'))
        carica(commessa)

        pipeline.apply_phase_status_change(commessa.fasi[0].id, 'in_lavorazione').result(5)

        assert pipeline.get_commessa(commessa.id).to_dict() == store.get_commessa(commessa.id).to_dict()

    def test_rilettura_fallita_mantiene_stato_ottimistico(self, pipeline, store, carica, monkeypatch):
        commessa = CommessaFactory.con_fasi(('production', 'da_fare'))
        carica(commessa)
        fase_id = commessa.fasi[0].id

        def rilettura_rotta(commessa_id):
            raise ConnectionError("timeout")

        monkeypatch.setattr(store, 'get_commessa', rilettura_rotta)
        risultato = pipeline.apply_phase_status_change(fase_id, 'in_lavorazione').result(5)

        assert risultato.fase(fase_id).status == 'in_lavorazione'
        assert pipeline.get_commessa(commessa.id).fase(fase_id).status == 'in_lavorazione'


class TestRollbackPerCommessa:
    """Il ripristino tocca solo la commessa della scrittura fallita."""

    def _scrittura_fase_sospesa(self, store):
        store.gate = threading.Event()
        store.gate_on = {'update_fase'}
        store.fail_on = {'update_fase'}

    def test_altre_commesse_non_ripristinate(self, pipeline, store, carica):
        x = CommessaFactory.con_fasi(('production', 'da_fare'))
        y = CommessaFactory(priority='medium')
        carica(x, y)
        self._scrittura_fase_sospesa(store)

        handle_x = pipeline.apply_phase_status_change(x.fasi[0].id, 'in_lavorazione')
        pipeline.apply_priority_change(y.id, 'high').result(5)

        store.gate.set()
        with pytest.raises(PersistenceError):
            handle_x.result(5)

        assert store.get_commessa(y.id).priority == 'high'
        assert pipeline.get_commessa(y.id).priority == 'high'
        assert pipeline.get_commessa(x.id).fase(x.fasi[0].id).status == 'da_fare'

    def test_commessa_eliminata_non_ricompare(self, pipeline, store, carica):
        x = CommessaFactory.con_fasi(('production', 'da_fare'))
        carica(x)
        self._scrittura_fase_sospesa(store)

        handle = pipeline.apply_phase_status_change(x.fasi[0].id, 'in_lavorazione')
        risultato = pipeline.delete_commessa(x.id)
        assert risultato.commessa_eliminata
        assert pipeline.list_commesse(status_class='all') == []

        store.gate.set()
        with pytest.raises(PersistenceError):
            handle.result(5)

        assert store.get_commessa(x.id) is None
        assert pipeline.cache.get(x.id) is None
        assert pipeline.list_commesse(status_class='all', include_archived=True) == []

    def test_commit_successivo_sulla_stessa_commessa(self, pipeline, store, carica):
        x = CommessaFactory.con_fasi(('production', 'da_fare'), priority='low')
        carica(x)
        self._scrittura_fase_sospesa(store)

        handle_fase = pipeline.apply_phase_status_change(x.fasi[0].id, 'in_lavorazione')
        pipeline.apply_priority_change(x.id, 'urgent').result(5)

        store.gate.set()
        with pytest.raises(PersistenceError):
            handle_fase.result(5)

        assert pipeline.get_commessa(x.id).to_dict() == store.get_commessa(x.id).to_dict()
        assert pipeline.get_commessa(x.id).priority == 'urgent'
        assert pipeline.get_commessa(x.id).fase(x.fasi[0].id).status == 'da_fare'


class TestMutazioniFase:
    """Cambio stato e programmazione."""

    def test_stato_non_valido_nessuna_scrittura(self, pipeline, store, dispatcher, whatsapp, carica):
        commessa = CommessaFactory.con_fasi(('installation', 'da_programmare'))
        carica(commessa, regole=[_regola_stato()])

        with pytest.raises(StatoNonValidoError):
            pipeline.apply_phase_status_change(commessa.fasi[0].id, 'spedito')
        assert store.writes == []
        assert dispatcher.wait_pending(5)
        assert whatsapp.sent == []

    def test_fase_inesistente(self, pipeline, carica):
        carica(CommessaFactory.con_fasi(('production', 'da_fare')))
        with pytest.raises(FaseNotFoundError):
            pipeline.apply_phase_status_change('fase-inesistente', 'pronto')

    def test_stato_invariato_saltato(self, pipeline, store, carica):
        commessa = CommessaFactory.con_fasi(('production', 'standby'))
        carica(commessa)

        handle = pipeline.apply_phase_status_change(commessa.fasi[0].id, 'standby')

        assert handle.skipped
        assert handle.reason
        assert store.writes == []

    def test_programmazione_installazione_scrittura_unica(self, pipeline, store, carica):
        commessa = CommessaFactory.con_fasi(('production', 'pronto'), ('installation', 'da_programmare'))
        carica(commessa)
        fase_id = commessa.fasi[1].id

        pipeline.schedule_phase(fase_id, date(2025, 6, 10)).result(5)

        assert store.writes == [
            ('update_fase', fase_id, {'scheduled_date': date(2025, 6, 10), 'status': 'programmata'})
        ]

    def test_notifica_cambio_stato(self, pipeline, dispatcher, whatsapp, email, carica):
        commessa = CommessaFactory.con_fasi(('production', 'da_fare'))
        carica(commessa, regole=[
            _regola_stato(recipient_name='Mario'),
            _regola_stato(channel='email', recipient_name='Ufficio'),
        ])

        pipeline.apply_phase_status_change(commessa.fasi[0].id, 'in_lavorazione').result(5)
        assert dispatcher.wait_pending(5)

        assert len(whatsapp.sent) == 1
        assert len(email.sent) == 1
        payload = whatsapp.sent[0]['payload']
        assert payload['old_status'] == 'da_fare'
        assert payload['new_status'] == 'in_lavorazione'
        assert payload['commessa_number'] == commessa.number

    def test_notifica_riprogrammazione(self, pipeline, dispatcher, whatsapp, carica):
        commessa = CommessaFactory.con_fasi(('installation', 'da_programmare'))
        carica(commessa, regole=[
            RegolaNotificaFactory(event_type=EventType.CALENDARIZZAZIONE)
        ])
        fase_id = commessa.fasi[0].id

        pipeline.schedule_phase(fase_id, date(2025, 6, 10)).result(5)
        pipeline.schedule_phase(fase_id, date(2025, 6, 12)).result(5)
        assert dispatcher.wait_pending(5)

        flags = sorted(s['payload']['is_reschedule'] for s in whatsapp.sent)
        assert flags == [False, True]

    def test_errore_notifica_non_annulla_mutazione(self, pipeline, store, dispatcher, carica):
        commessa = CommessaFactory.con_fasi(('production', 'da_fare'))
        carica(commessa, regole=[_regola_stato(recipient_name='Mario')])
        dispatcher.channels['whatsapp'].fail_for = {'Mario'}

        risultato = pipeline.apply_phase_status_change(commessa.fasi[0].id, 'in_lavorazione').result(5)
        assert dispatcher.wait_pending(5)

        assert risultato.fase(commessa.fasi[0].id).status == 'in_lavorazione'
        assert store.get_commessa(commessa.id).fase(commessa.fasi[0].id).status == 'in_lavorazione'


class TestMutazioniCommessa:
    """Priorità, campi, archiviazione, messaggi urgenti."""

    def test_cambio_priorita_registra_comunicazione(self, pipeline, store, dispatcher, whatsapp, carica):
        commessa = CommessaFactory(priority='medium')
        carica(commessa, regole=[_regola_stato(recipient_name='Mario')])

        pipeline.apply_priority_change(commessa.id, 'urgent', sent_by='operatore-1').result(5)
        assert dispatcher.wait_pending(5)

        assert whatsapp.sent[0]['event_type'] == EventType.CAMBIO_PRIORITA
        comunicazioni = store.list_comunicazioni(commessa.id)
        assert len(comunicazioni) == 1
        assert comunicazioni[0].communication_type == 'cambio_priorita'
        assert comunicazioni[0].old_value == 'medium'
        assert comunicazioni[0].new_value == 'urgent'
        assert comunicazioni[0].sent_via == ['whatsapp']
        assert comunicazioni[0].sent_by == 'operatore-1'

    def test_priorita_non_valida(self, pipeline, carica):
        commessa = CommessaFactory()
        carica(commessa)
        with pytest.raises(PrioritaNonValidaError):
            pipeline.apply_priority_change(commessa.id, 'critica')

    def test_commessa_inesistente(self, pipeline, carica):
        carica()
        with pytest.raises(CommessaNotFoundError):
            pipeline.apply_priority_change('commessa-x', 'high')

    def test_modifica_campi_senza_notifica(self, pipeline, store, dispatcher, whatsapp, email, carica):
        commessa = CommessaFactory(title='Forno', shipping_city=None)
        carica(commessa, regole=[_regola_stato()])

        risultato = pipeline.update_commessa_fields(
            commessa.id, {'title': 'Forno', 'shipping_city': 'Bologna'}
        ).result(5)
        assert dispatcher.wait_pending(5)

        assert risultato.shipping_city == 'Bologna'
        assert store.writes == [('update_commessa', commessa.id, {'shipping_city': 'Bologna'})]
        assert whatsapp.sent == [] and email.sent == []

    def test_archiviazione(self, pipeline, carica):
        commessa = CommessaFactory()
        carica(commessa)

        pipeline.archive_commessa(commessa.id).result(5)

        assert pipeline.list_commesse() == []
        assert [c.id for c in pipeline.list_commesse(include_archived=True)] == [commessa.id]
        assert pipeline.archive_commessa(commessa.id).skipped

    def test_messaggio_urgente(self, pipeline, store, whatsapp, carica):
        commessa = CommessaFactory()
        carica(commessa, regole=[_regola_stato(recipient_name='Mario')])

        risultato = pipeline.send_urgent_message(commessa.id, '  Fermare la spedizione  ', 'operatore-2').result(5)

        assert risultato.sent_via == ['whatsapp']
        assert whatsapp.sent[0]['recipient'] == 'Mario'
        assert whatsapp.sent[0]['payload']['message'] == 'Fermare la spedizione'
        comunicazione = store.list_comunicazioni(commessa.id)[0]
        assert comunicazione.communication_type == 'comunicazione_urgente'
        assert comunicazione.content == 'Fermare la spedizione'
        assert comunicazione.sent_by == 'operatore-2'

    @pytest.mark.parametrize("messaggio", ['', '   ', 'x' * 501])
    def test_messaggio_urgente_non_valido(self, pipeline, carica, messaggio):
        commessa = CommessaFactory()
        carica(commessa)
        with pytest.raises(MessaggioNonValidoError):
            pipeline.send_urgent_message(commessa.id, messaggio)

    def test_messaggio_urgente_limite(self, pipeline, carica):
        commessa = CommessaFactory()
        carica(commessa)
        risultato = pipeline.send_urgent_message(commessa.id, 'x' * 500).result(5)
        assert risultato.skipped
