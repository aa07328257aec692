# =============================================================================
# ZAPP COMMESSE v1.0 - TEST VOCABOLARI FASI
# =============================================================================

import pytest

from commesse.services.commesse.constants import (
    PhaseStatus,
    PhaseType,
    Priority,
    allowed_statuses,
    is_completed,
    order_type_label,
    phase_label,
    priority_label,
    priority_weight,
    scheduling_transition,
    started_status,
    status_label,
)


class TestVocabolari:
    """Vocabolario stati per tipo fase."""

    def test_production(self):
        assert allowed_statuses(PhaseType.PRODUCTION) == (
            'da_fare', 'in_lavorazione', 'in_test', 'standby', 'bloccato', 'pronto'
        )

    def test_shipping(self):
        assert allowed_statuses(PhaseType.SHIPPING) == (
            'da_preparare', 'in_lavorazione', 'pronto', 'spedito'
        )

    def test_installation(self):
        assert allowed_statuses(PhaseType.INSTALLATION) == (
            'da_programmare', 'programmata', 'da_completare', 'completata'
        )

    @pytest.mark.parametrize("phase_type", [PhaseType.MAINTENANCE, PhaseType.REPAIR])
    def test_maintenance_repair(self, phase_type):
        assert allowed_statuses(phase_type) == ('da_programmare', 'in_lavorazione', 'completata')

    def test_tipo_sconosciuto(self):
        assert allowed_statuses('painting') == ()

    def test_ogni_tipo_ha_un_vocabolario(self):
        for phase_type in PhaseType.ALL:
            assert allowed_statuses(phase_type)

    def test_ogni_vocabolario_termina_in_stato_completato(self):
        for phase_type in PhaseType.ALL:
            assert is_completed(allowed_statuses(phase_type)[-1])


class TestCompleted:
    """Set Completed condiviso tra i tipi fase."""

    @pytest.mark.parametrize("status", [
        'pronto', 'completato', 'completata', 'spedito', 'completed', 'closed'
    ])
    def test_stati_completati(self, status):
        assert is_completed(status)

    @pytest.mark.parametrize("status", [
        'da_fare', 'in_lavorazione', 'in_test', 'standby', 'bloccato',
        'da_preparare', 'da_programmare', 'programmata', 'da_completare', None, ''
    ])
    def test_stati_non_completati(self, status):
        assert not is_completed(status)

    def test_set_esatto(self):
        assert PhaseStatus.COMPLETED == {
            'pronto', 'completato', 'completata', 'spedito', 'completed', 'closed'
        }


class TestTransizioniDerivate:
    """Stato di lavorazione e passaggio a programmata."""

    def test_started_status(self):
        assert started_status(PhaseType.PRODUCTION) == 'in_lavorazione'
        assert started_status(PhaseType.SHIPPING) == 'in_lavorazione'
        assert started_status(PhaseType.INSTALLATION) == 'da_completare'
        assert started_status(PhaseType.REPAIR) == 'in_lavorazione'

    def test_scheduling_transition_solo_installazione(self):
        assert scheduling_transition(PhaseType.INSTALLATION) == ('da_programmare', 'programmata')
        assert scheduling_transition(PhaseType.SHIPPING) is None
        assert scheduling_transition(PhaseType.MAINTENANCE) is None


class TestPrioritaEtichette:
    """Pesi priorità ed etichette italiane."""

    def test_pesi(self):
        assert [priority_weight(p) for p in Priority.ALL] == [1, 2, 3, 4]
        assert priority_weight(None) == 0

    def test_default(self):
        assert Priority.DEFAULT == 'medium'

    def test_etichette(self):
        assert status_label('in_lavorazione') == 'In lavorazione'
        assert phase_label('installation') == 'Installazione'
        assert order_type_label('spareparts') == 'Ricambi'
        assert priority_label('urgent') == 'Urgente'

    def test_etichette_fallback(self):
        assert status_label(None) == 'N/D'
        assert priority_label('') == 'N/D'
        assert order_type_label('custom') == 'custom'
