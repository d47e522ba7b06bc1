import os
import sys

import pytest

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from recibos_caja.services import CashRegisterService, PaymentService, ValidationError
from recibos_caja.services.cash_register_service import cut_request


@pytest.fixture
def service(cash_repo):
    return CashRegisterService(cash_repo)


@pytest.fixture
def paid_day(payment_repo, receipt_repo, backend):
    """Dos cobros del día: uno en efectivo y uno por transferencia."""
    payments = PaymentService(payment_repo)
    for total, method in ((1000.0, 1), (400.0, 2)):
        data = backend.add_receipt(total=total)
        payments.register_and_apply(receipt_repo.get_by_id(data['idRecibo']), total, method)
    return backend


def test_generate_shows_backend_totals(service, paid_day):
    result = service.generate('2025-01-10', '2025-01-10T23:59:59', ' ')
    assert result['ok'] is True
    assert result['request'] == {'fechaInicio': '2025-01-10', 'fechaFin': '2025-01-10', 'idUsuarioCaja': None}
    summary = result['summary']
    assert summary.totales.cantidad == 2
    assert summary.totales.efectivo == 1000.0
    assert summary.totales.transferencia == 400.0
    assert summary.totales.total == 1400.0
    assert [p.id_pago for p in summary.pagos] == sorted(paid_day.payments)


def test_generate_rejects_inverted_range(service, backend):
    result = service.generate('2025-02-01', '2025-01-01')
    assert result['ok'] is False
    assert result['error'] == 'La fecha de fin no puede ser anterior a la de inicio'
    assert backend.calls == []


def test_generate_rejects_bad_dates(service, backend):
    result = service.generate('ayer', '')
    assert [e.field for e in result['errors']] == ['fechaInicio', 'fechaFin']
    assert backend.calls == []


def test_close_persists_cut(service, paid_day):
    result = service.close('2025-01-10', '2025-01-10', 'c1', '500', '  Sin diferencias ', user='caja@usag.mx')

    assert result['ok'] is True
    cut = result['cut']
    assert cut.folio_corte_caja == 'CC-0001'
    assert cut.cerrado is True
    assert cut.total_general == 1400.0
    assert paid_day.calls[-1][3] == {
        'fechaInicio': '2025-01-10',
        'fechaFin': '2025-01-10',
        'idUsuarioCaja': 'c1',
        'montoInicial': 500.0,
        'observaciones': 'Sin diferencias',
    }

    fetched = service.get(cut.id_corte_caja)
    assert fetched['ok'] is True
    assert fetched['cut'].observaciones == 'Sin diferencias'


def test_close_rejects_negative_initial_amount(service, backend):
    result = service.close('2025-01-10', '2025-01-10', monto_inicial='-1')
    assert result == {'ok': False, 'error': 'El monto inicial debe ser un número mayor o igual a 0'}
    assert backend.calls == []


def test_missing_cut(service):
    assert service.get(77) == {'ok': False, 'error': 'Corte de caja no encontrado'}


def test_cut_pdf_without_disposition_uses_default_name(service):
    result = service.download_pdf(3)
    assert result['ok'] is True
    assert result['download'].filename == 'CorteCaja_3.pdf'
    assert result['download'].content_type == 'application/pdf'


def test_cashiers(service):
    cashiers = service.cashiers()['cashiers']
    assert cashiers[0].id_usuario == 'c1'
    assert cashiers[0].total_cobros == 4


def test_pending_receipts_needs_three_characters(service, backend):
    assert service.pending_receipts(' ab ')['error'] == 'Capture al menos 3 caracteres para buscar'
    assert backend.calls == []


def test_preview_pdf_of_open_cut(service, backend):
    result = service.preview_pdf('2025-01-10', '2025-01-11', ' c1 ')
    assert result['ok'] is True
    assert result['download'].content == b'%PDF-1.4 vista previa'
    assert result['download'].filename == 'CorteCaja_2025-01-10.pdf'
    assert backend.paths() == ['/caja/corte/pdf']
    assert backend.calls[-1][3] == {'fechaInicio': '2025-01-10', 'fechaFin': '2025-01-11', 'idUsuarioCaja': 'c1'}


def test_preview_pdf_validates_range(service, backend):
    result = service.preview_pdf('2025-02-01', '2025-01-01')
    assert result['error'] == 'La fecha de fin no puede ser anterior a la de inicio'
    assert backend.calls == []


def test_cut_request_raises_validation_error():
    with pytest.raises(ValidationError) as info:
        cut_request('ayer', '2025-01-01')
    assert [e.field for e in info.value.errors] == ['fechaInicio']
    assert cut_request('2025-01-01', '2025-01-02', '') == {
        'fechaInicio': '2025-01-01', 'fechaFin': '2025-01-02', 'idUsuarioCaja': None,
    }
