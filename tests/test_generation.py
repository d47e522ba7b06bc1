import os
import sys

import pytest

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from recibos_caja.models import Receipt, ReceiptStatus
from recibos_caja.repositories import ApiError, NotFoundError
from recibos_caja.services import GenerationService, ScholarshipService, summarize_receipts

APPLICANT = 321


@pytest.fixture
def service(applicant_repo):
    return GenerationService(applicant_repo, 'Cuota de Inscripcion', 7)


# ==============================================================================
# GENERACIÓN MANUAL Y POR CONCEPTO
# ==============================================================================

def test_manual_receipt_uses_default_concept(service, backend):
    result = service.generate_manual(APPLICANT, '1500.50')
    assert result['ok'] is True
    assert result['receipt'].total == 1500.5
    assert result['receipt'].id_aspirante == APPLICANT
    method, path, _, body, _ = backend.calls[-1]
    assert (method, path) == ('POST', f'/Aspirante/{APPLICANT}/generar-recibo-inscripcion')
    assert body == {'monto': 1500.5, 'concepto': 'Cuota de Inscripcion', 'diasVencimiento': 7}


@pytest.mark.parametrize('monto, concepto, message', [
    ('0', 'Inscripción', 'El monto debe ser mayor a 0'),
    ('-10', 'Inscripción', 'El monto debe ser mayor a 0'),
    ('abc', 'Inscripción', 'El monto debe ser mayor a 0'),
    ('100', '   ', 'El concepto es obligatorio'),
])
def test_manual_receipt_validation(service, backend, monto, concepto, message):
    result = service.generate_manual(APPLICANT, monto, concepto)
    assert result['ok'] is False
    assert result['error'] == message
    assert backend.calls == []


def test_negative_due_days_rejected(service, backend):
    result = service.generate_manual(APPLICANT, 100, 'Inscripción', '-3')
    assert result['ok'] is False
    assert 'no pueden ser negativos' in result['error']
    assert backend.calls == []


def test_concept_receipt_sends_zero_amount(service, backend):
    result = service.generate_by_concept(APPLICANT, '8', 15)
    assert result['ok'] is True
    assert result['receipt'].total == 1200.0
    body = backend.calls[-1][3]
    assert body == {'idConceptoPago': 8, 'diasVencimiento': 15, 'monto': 0}


def test_concept_receipt_requires_positive_concept(service, backend):
    result = service.generate_by_concept(APPLICANT, '0')
    assert result['ok'] is False
    assert result['error'] == 'Seleccione un concepto de pago válido'
    assert backend.calls == []


def test_backend_rejection_is_surfaced(service):
    result = service.generate_by_concept(APPLICANT, 99)
    assert result['ok'] is False
    assert result['error'] == 'Concepto de pago inexistente'
    assert result['status_code'] == 400


# ==============================================================================
# PLANTILLAS
# ==============================================================================

def test_missing_template_is_not_an_error(service, backend):
    result = service.find_template(APPLICANT)
    assert result == {'ok': True, 'template': None}
    assert backend.paths() == [f'/Aspirante/{APPLICANT}/plantilla-disponible']


def test_template_without_id_is_treated_as_missing(service, backend):
    from fake_backend import FakeResponse
    backend.overrides[('GET', f'/Aspirante/{APPLICANT}/plantilla-disponible')] = FakeResponse(200, {})
    assert service.find_template(APPLICANT)['template'] is None


def test_find_template(service, backend):
    backend.add_template(APPLICANT, numero_recibos=4)
    template = service.find_template(APPLICANT)['template']
    assert template.numero_recibos == 4
    assert template.detalles[0].precio_unitario == 2000.0


def _seed_pending(backend, template, count):
    for _ in range(count):
        backend.add_receipt(total=2000.0, id_aspirante=APPLICANT,
                            id_plantilla=template['idPlantillaCobro'])


def test_template_expansion_with_purge_replaces_pending(service, backend):
    template = backend.add_template(APPLICANT, numero_recibos=4)
    _seed_pending(backend, template, 3)

    result = service.generate_from_template(APPLICANT, template['idPlantillaCobro'], True)

    assert result['ok'] is True
    assert len(result['receipts']) == 4
    remaining = backend.applicant_receipts(APPLICANT)
    assert len(remaining) == 4
    assert {r['idRecibo'] for r in remaining} == {r.id_recibo for r in result['receipts']}
    assert backend.calls[-1][3] == {
        'idPlantillaCobro': template['idPlantillaCobro'],
        'eliminarPendientesExistentes': True,
    }


def test_template_expansion_without_purge_keeps_pending(service, backend):
    template = backend.add_template(APPLICANT, numero_recibos=4)
    _seed_pending(backend, template, 3)

    result = service.generate_from_template(APPLICANT, str(template['idPlantillaCobro']), False)

    assert result['ok'] is True
    assert len(backend.applicant_receipts(APPLICANT)) == 7
    assert backend.calls[-1][3]['eliminarPendientesExistentes'] is False


def test_purge_keeps_receipts_with_payments(service, backend):
    template = backend.add_template(APPLICANT, numero_recibos=2)
    backend.add_receipt(total=2000.0, saldo=500.0, id_aspirante=APPLICANT,
                        id_plantilla=template['idPlantillaCobro'])
    service.generate_from_template(APPLICANT, template['idPlantillaCobro'], True)
    assert len(backend.applicant_receipts(APPLICANT)) == 3


def test_invalid_template_id(service, backend):
    assert service.generate_from_template(APPLICANT, 'x')['error'] == 'Plantilla de cobro inválida'
    assert backend.calls == []


# ==============================================================================
# LISTADO Y BORRADO
# ==============================================================================

def test_applicant_receipts_summary(service, backend):
    backend.add_receipt(total=1000.0, id_aspirante=APPLICANT)
    backend.add_receipt(total=500.0, saldo=100.0, id_aspirante=APPLICANT)
    backend.add_receipt(total=300.0, id_aspirante=APPLICANT, estatus='Cancelado')

    result = service.applicant_receipts(APPLICANT)

    assert result['ok'] is True
    assert len(result['receipts']) == 3
    assert result['summary'] == {
        'total': 1500.0,
        'pagado': 400.0,
        'pendiente': 1100.0,
        'descuento': 0.0,
        'recibos': 2,
    }


def test_summarize_empty_list():
    assert summarize_receipts([])['total'] == 0.0


def test_delete_receipt_with_payments_sends_nothing(service, backend):
    receipt = Receipt(id_recibo=55, folio='REC-000055', estatus=ReceiptStatus.PARCIAL,
                      subtotal=1000.0, total=1000.0, saldo=400.0)
    result = service.delete_applicant_receipt(receipt)
    assert result == {
        'ok': False,
        'error': 'El recibo REC-000055 tiene pagos aplicados y no se puede eliminar',
    }
    assert backend.calls == []


def test_delete_unpaid_receipt(service, backend, applicant_repo):
    data = backend.add_receipt(total=800.0, id_aspirante=APPLICANT)
    receipt = applicant_repo.list_receipts(APPLICANT)[0]
    result = service.delete_applicant_receipt(receipt)
    assert result == {'ok': True, 'id_recibo': data['idRecibo']}
    assert data['idRecibo'] not in backend.receipts
    assert backend.calls[-1][:2] == ('DELETE', f"/Aspirante/recibo/{data['idRecibo']}")


def test_recalculate_agreement_discounts(applicant_repo, scholarship_repo, backend):
    service = ScholarshipService(scholarship_repo, applicant_repo)
    result = service.recalculate_agreement_discounts(str(APPLICANT))
    assert result['ok'] is True
    assert result['result'].recibos_actualizados == 2
    assert backend.paths('POST') == [f'/Aspirante/{APPLICANT}/recalcular-descuentos-convenio']


def test_recalculate_scholarship_discounts_requires_student(applicant_repo, scholarship_repo, backend):
    service = ScholarshipService(scholarship_repo, applicant_repo)
    assert service.recalculate_scholarship_discounts('')['error'] == 'Estudiante inválido'
    result = service.recalculate_scholarship_discounts(12, 3)
    assert result['ok'] is True
    assert backend.calls[-1][3] == {'idEstudiante': 12, 'idPeriodoAcademico': 3}


def test_not_found_error_is_api_error():
    assert issubclass(NotFoundError, ApiError)
    error = NotFoundError('x', 404)
    assert error.status_code == 404
