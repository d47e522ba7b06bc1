import json
import os
import re
import sys
from urllib.parse import parse_qs, urlsplit

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from recibos_caja.app_container import get_container
from conftest import CSRF, USER_EMAIL, expired_token
from fake_backend import FakeResponse


def login(client, next_url=None):
    getr = client.get('/auth/v2/login')
    assert getr.status_code == 200
    html = getr.get_data(as_text=True)
    m = re.search(r'name="csrf_token" value="([0-9a-f]+)"', html)
    token = m.group(1) if m else None
    assert token, 'no csrf token in login page'
    url = '/auth/v2/login' + (f'?next={next_url}' if next_url else '')
    return client.post(url, data={'email': USER_EMAIL, 'password': 'secreto123', 'csrf_token': token},
                       follow_redirects=True)


# ==============================================================================
# AUTENTICACIÓN
# ==============================================================================

def test_login_flow(client, backend):
    r = login(client)
    assert r.status_code == 200
    html = r.get_data(as_text=True)
    assert f'Bienvenido, {USER_EMAIL}.' in html
    assert 'Captura los filtros y presiona Buscar.' in html
    with client.session_transaction() as sess:
        assert sess['access_token']
        assert sess['user']['email'] == USER_EMAIL


def test_login_redirects_to_next(client, backend):
    backend.add_receipt(id_aspirante=321)
    r = login(client, next_url='/aspirantes/321/recibos')
    assert 'Recibos del aspirante 321' in r.get_data(as_text=True)


def test_login_ignores_external_next(client):
    r = login(client, next_url='https://example.com/phish')
    assert r.request.path == '/recibos'


def test_login_with_bad_password(client):
    client.get('/auth/v2/login')
    with client.session_transaction() as sess:
        token = sess['csrf_token']
    r = client.post('/auth/v2/login', data={'email': USER_EMAIL, 'password': 'mala', 'csrf_token': token},
                    follow_redirects=True)
    assert 'Credenciales inválidas' in r.get_data(as_text=True)
    with client.session_transaction() as sess:
        assert 'access_token' not in sess


def test_login_without_csrf_is_rejected(client, backend):
    r = client.post('/auth/v2/login', data={'email': USER_EMAIL, 'password': 'secreto123'},
                    follow_redirects=True)
    assert 'Sesión expirada. Por favor intenta de nuevo.' in r.get_data(as_text=True)
    assert backend.calls == []


def test_login_required(client):
    r = client.get('/recibos')
    assert r.status_code == 302
    location = urlsplit(r.headers['Location'])
    assert location.path == '/auth/v2/login'
    assert parse_qs(location.query) == {'next': ['/recibos']}


def test_expired_token_redirects_to_login(client, backend):
    with client.session_transaction() as sess:
        sess['access_token'] = expired_token()
        sess['user'] = {'email': USER_EMAIL}
    r = client.get('/recibos?buscar=1')
    assert r.status_code == 302
    assert r.headers['Location'].endswith('/auth/v2/login')
    assert backend.calls == []
    with client.session_transaction() as sess:
        assert 'access_token' not in sess


def test_expired_token_on_api_returns_401(client):
    with client.session_transaction() as sess:
        sess['access_token'] = expired_token()
    r = client.get('/api/recibos/1/acciones')
    assert r.status_code == 401
    assert r.get_json() == {'ok': False, 'error': 'Sesión expirada'}


def test_backend_401_forces_login(auth_client, backend):
    backend.overrides[('GET', '/recibos/buscar')] = FakeResponse(401, {'message': 'Token revocado'})
    r = auth_client.get('/recibos?buscar=1', follow_redirects=True)
    assert r.request.path == '/auth/v2/login'
    assert 'Sesión expirada. Inicia sesión nuevamente.' in r.get_data(as_text=True)


def test_logout(auth_client):
    r = auth_client.get('/logout', follow_redirects=True)
    assert 'Sesión cerrada.' in r.get_data(as_text=True)
    with auth_client.session_transaction() as sess:
        assert 'access_token' not in sess


def test_logs_are_not_served(auth_client):
    assert auth_client.get('/logs/performance.log').status_code == 404


def test_security_headers(client):
    r = client.get('/auth/v2/login')
    assert r.headers['X-Frame-Options'] == 'DENY'
    assert r.headers['X-Content-Type-Options'] == 'nosniff'


# ==============================================================================
# RECIBOS
# ==============================================================================

def test_search_only_runs_on_explicit_trigger(auth_client, backend):
    backend.add_receipt(total=1500.0, matricula='A0042')

    r = auth_client.get('/recibos?matricula=A0042')
    assert 'Captura los filtros y presiona Buscar.' in r.get_data(as_text=True)
    assert backend.calls == []

    r = auth_client.get('/recibos?buscar=1&matricula=A0042')
    html = r.get_data(as_text=True)
    assert 'REC-000100' in html
    assert backend.paths() == ['/recibos/buscar']


def test_cancel_receipt(auth_client, backend):
    receipt = backend.add_receipt()
    r = auth_client.post(f"/recibos/{receipt['idRecibo']}/cancelar",
                         data={'motivo': 'Duplicado', 'csrf_token': CSRF}, follow_redirects=True)
    assert 'Recibo REC-000100 cancelado.' in r.get_data(as_text=True)
    assert backend.receipts[receipt['idRecibo']]['estatus'] == 'Cancelado'


def test_cancel_returns_to_search(auth_client, backend):
    receipt = backend.add_receipt()
    r = auth_client.post(f"/recibos/{receipt['idRecibo']}/cancelar",
                         data={'motivo': 'Duplicado', 'csrf_token': CSRF, 'next': '/recibos?buscar=1&folio=REC'})
    assert r.headers['Location'].endswith('/recibos?buscar=1&folio=REC')


def test_cancel_without_csrf_sends_nothing(auth_client, backend):
    receipt = backend.add_receipt()
    r = auth_client.post(f"/recibos/{receipt['idRecibo']}/cancelar", data={'motivo': 'Duplicado'},
                         follow_redirects=True)
    assert 'Sesión expirada. Por favor intenta de nuevo.' in r.get_data(as_text=True)
    assert backend.calls == []


def test_reverse_pending_receipt_shows_error(auth_client, backend):
    receipt = backend.add_receipt()
    r = auth_client.post(f"/recibos/{receipt['idRecibo']}/reversar",
                         data={'motivo': 'Error', 'csrf_token': CSRF}, follow_redirects=True)
    assert 'No se puede reversar el recibo REC-000100 con estatus Pendiente' in r.get_data(as_text=True)
    assert backend.paths('PUT') == []


def test_inflight_action_is_rejected(auth_client, backend):
    receipt = backend.add_receipt()
    get_container().inflight.acquire(USER_EMAIL, 'cancelar', receipt['idRecibo'])

    r = auth_client.post(f"/recibos/{receipt['idRecibo']}/cancelar",
                         data={'motivo': 'Duplicado', 'csrf_token': CSRF}, follow_redirects=True)

    assert 'La operación ya está en proceso. Espera a que termine.' in r.get_data(as_text=True)
    assert backend.paths('PUT') == []


def test_actions_json(auth_client, backend):
    paid = backend.add_receipt(total=1000.0, saldo=0.0)
    r = auth_client.get(f"/api/recibos/{paid['idRecibo']}/acciones")
    assert r.status_code == 200
    assert r.get_json() == {
        'ok': True,
        'idRecibo': paid['idRecibo'],
        'estatus': 'Pagado',
        'acciones': {'reversar': True, 'cancelar': False, 'eliminar': False, 'pagar': False},
    }
    assert auth_client.get('/api/recibos/999/acciones').status_code == 404


def test_receipt_by_folio(auth_client, backend):
    backend.add_receipt(total=700.0)
    data = auth_client.get('/api/recibos/folio/REC-000100').get_json()
    assert data['recibo']['folio'] == 'REC-000100'
    assert data['recibo']['estatus_nombre'] == 'Pendiente'
    assert data['acciones']['pagar'] is True


def test_csv_export_with_zero_rows_is_refused(auth_client, backend):
    r = auth_client.get('/recibos/exportar.csv?folio=NADA', follow_redirects=True)
    assert r.status_code == 200
    assert 'No hay datos para exportar' in r.get_data(as_text=True)
    assert r.request.path == '/recibos'


def test_csv_export(auth_client, backend):
    backend.add_receipt(total=1500.0)
    r = auth_client.get('/recibos/exportar.csv')
    assert r.status_code == 200
    assert r.mimetype == 'text/csv'
    assert r.data.startswith('\ufeff'.encode('utf-8'))
    assert 'attachment' in r.headers['Content-Disposition']


def test_excel_and_pdf_downloads(auth_client):
    r = auth_client.get('/recibos/exportar.xlsx')
    assert r.data == b'PK\x03\x04xlsx'
    assert 'Recibos_2025.xlsx' in r.headers['Content-Disposition']
    r = auth_client.get('/recibos/12/pdf')
    assert r.mimetype == 'application/pdf'


# ==============================================================================
# ASPIRANTES
# ==============================================================================

def test_applicant_page_without_template(auth_client, backend):
    backend.add_receipt(total=900.0, id_aspirante=321)
    html = auth_client.get('/aspirantes/321/recibos').get_data(as_text=True)
    assert 'REC-000100' in html
    assert 'No hay plantilla activa para el aspirante.' in html


def test_generate_manual_receipt_route(auth_client, backend):
    r = auth_client.post('/aspirantes/321/recibos/manual',
                         data={'monto': '1200', 'concepto': 'Inscripción', 'csrf_token': CSRF},
                         follow_redirects=True)
    assert 'Recibo REC-000100 generado.' in r.get_data(as_text=True)
    assert backend.calls[0][3] == {'monto': 1200.0, 'concepto': 'Inscripción', 'diasVencimiento': 7}


def test_generate_manual_receipt_validation_route(auth_client, backend):
    r = auth_client.post('/aspirantes/321/recibos/manual',
                         data={'monto': '0', 'concepto': 'Inscripción', 'csrf_token': CSRF},
                         follow_redirects=True)
    assert 'El monto debe ser mayor a 0' in r.get_data(as_text=True)
    assert backend.paths('POST') == []


def test_generate_from_template_route(auth_client, backend):
    template = backend.add_template(321, numero_recibos=3)
    r = auth_client.post('/aspirantes/321/recibos/plantilla',
                         data={'id_plantilla_cobro': template['idPlantillaCobro'],
                               'eliminar_pendientes': '1', 'csrf_token': CSRF},
                         follow_redirects=True)
    assert 'Se generaron 3 recibos desde la plantilla.' in r.get_data(as_text=True)
    assert backend.calls[0][3]['eliminarPendientesExistentes'] is True


def test_delete_paid_receipt_route_sends_no_delete(auth_client, backend):
    receipt = backend.add_receipt(total=900.0, saldo=100.0, id_aspirante=321)
    r = auth_client.post(f"/aspirantes/321/recibos/{receipt['idRecibo']}/eliminar",
                         data={'csrf_token': CSRF}, follow_redirects=True)
    assert 'tiene pagos aplicados y no se puede eliminar' in r.get_data(as_text=True)
    assert backend.paths('DELETE') == []


def test_delete_unpaid_receipt_route(auth_client, backend):
    receipt = backend.add_receipt(total=900.0, id_aspirante=321)
    r = auth_client.post(f"/aspirantes/321/recibos/{receipt['idRecibo']}/eliminar",
                         data={'csrf_token': CSRF}, follow_redirects=True)
    assert 'Recibo REC-000100 eliminado.' in r.get_data(as_text=True)
    assert receipt['idRecibo'] not in backend.receipts


# ==============================================================================
# CAJA
# ==============================================================================

def test_register_payment_route(auth_client, backend):
    receipt = backend.add_receipt(total=1500.0)
    r = auth_client.post('/caja/pago', data={
        'id_recibo': receipt['idRecibo'], 'monto': '1500', 'id_medio_pago': '1', 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert 'Pago aplicado: $1,500.00. Saldo: $0.00 (recibo Pagado)' in r.get_data(as_text=True)


def test_register_payment_on_paid_receipt(auth_client, backend):
    receipt = backend.add_receipt(total=1500.0, saldo=0.0)
    r = auth_client.post('/caja/pago', data={
        'id_recibo': receipt['idRecibo'], 'monto': '10', 'id_medio_pago': '1', 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert 'no admite pagos' in r.get_data(as_text=True)
    assert backend.paths('POST') == []


def test_apply_payment_route(auth_client, backend):
    first = backend.add_receipt(total=300.0)
    second = backend.add_receipt(total=200.0)
    lines = [
        {'idReciboDetalle': first['detalles'][0]['idReciboDetalle'], 'monto': 300},
        {'idReciboDetalle': second['detalles'][0]['idReciboDetalle'], 'monto': 200},
    ]
    r = auth_client.post('/caja/pagos/aplicar', data={
        'monto': '500', 'id_medio_pago': '2', 'aplicaciones': json.dumps(lines), 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert 'Pago 500 aplicado a 2 renglones.' in r.get_data(as_text=True)
    assert backend.receipts[second['idRecibo']]['estatus'] == 'Pagado'


def test_apply_payment_route_with_bad_json(auth_client, backend):
    r = auth_client.post('/caja/pagos/aplicar', data={
        'monto': '500', 'id_medio_pago': '2', 'aplicaciones': '{no es json', 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert 'Formato de aplicaciones inválido.' in r.get_data(as_text=True)
    assert backend.calls == []


def test_apply_payment_route_with_non_object_lines(auth_client, backend):
    r = auth_client.post('/caja/pagos/aplicar', data={
        'monto': '500', 'id_medio_pago': '2', 'aplicaciones': '[5]', 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert r.status_code == 200
    assert 'Renglón inválido' in r.get_data(as_text=True)
    assert backend.calls == []


def test_waive_surcharge_route(auth_client, backend):
    receipt = backend.add_receipt(total=1100.0, recargos=100.0)
    r = auth_client.post(f"/caja/recibos/{receipt['idRecibo']}/recargo", data={
        'accion': 'condonar', 'motivo': 'Autorizado', 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert 'Recargo condonado' in r.get_data(as_text=True)
    assert backend.receipts[receipt['idRecibo']]['recargos'] == 0


def test_pending_receipts_api(auth_client):
    r = auth_client.get('/api/caja/recibos-pendientes?criterio=ab')
    assert r.status_code == 400
    assert r.get_json()['error'] == 'Capture al menos 3 caracteres para buscar'


def test_cash_cut_generate_and_close(auth_client, backend):
    receipt = backend.add_receipt(total=800.0)
    auth_client.post('/caja/pago', data={
        'id_recibo': receipt['idRecibo'], 'monto': '800', 'id_medio_pago': '1', 'csrf_token': CSRF,
    })

    r = auth_client.post('/caja/corte', data={
        'fecha_inicio': '2025-01-10', 'fecha_fin': '2025-01-10', 'csrf_token': CSRF,
    })
    html = r.get_data(as_text=True)
    assert 'Total: $800.00' in html
    assert 'Cerrar corte' in html

    r = auth_client.post('/caja/corte/cerrar', data={
        'fecha_inicio': '2025-01-10', 'fecha_fin': '2025-01-10', 'monto_inicial': '200',
        'observaciones': 'Turno matutino', 'csrf_token': CSRF,
    }, follow_redirects=True)
    html = r.get_data(as_text=True)
    assert r.request.path == '/caja/cortes/1'
    assert 'Corte CC-0001 cerrado.' in html
    assert 'Turno matutino' in html


def test_cash_cut_with_inverted_range(auth_client, backend):
    r = auth_client.post('/caja/corte', data={
        'fecha_inicio': '2025-02-10', 'fecha_fin': '2025-01-10', 'csrf_token': CSRF,
    })
    assert 'La fecha de fin no puede ser anterior a la de inicio' in r.get_data(as_text=True)
    assert backend.paths('POST') == []


def test_cash_cut_pdf_preview(auth_client, backend):
    r = auth_client.post('/caja/corte', data={
        'fecha_inicio': '2025-01-10', 'fecha_fin': '2025-01-10', 'csrf_token': CSRF,
    })
    assert 'Vista previa PDF' in r.get_data(as_text=True)

    r = auth_client.post('/caja/corte/pdf', data={
        'fecha_inicio': '2025-01-10', 'fecha_fin': '2025-01-10', 'id_usuario_caja': '', 'csrf_token': CSRF,
    })
    assert r.mimetype == 'application/pdf'
    assert r.data == b'%PDF-1.4 vista previa'
    assert 'CorteCaja_2025-01-10.pdf' in r.headers['Content-Disposition']


def test_cash_cut_pdf_preview_with_bad_dates(auth_client, backend):
    r = auth_client.post('/caja/corte/pdf', data={
        'fecha_inicio': '', 'fecha_fin': '2025-01-10', 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert 'Fecha de inicio inválida' in r.get_data(as_text=True)
    assert backend.paths('POST') == []


# ==============================================================================
# ADMINISTRACIÓN
# ==============================================================================

def test_azure_users_create(auth_client, backend):
    backend.add_directory_user('José García', 'jose.garcia@usag.mx')
    r = auth_client.post('/admin/usuarios-azure', data={
        'given_name': 'José María', 'surname': 'García López', 'domain': 'usag.mx',
        'password': 'Temporal#2025', 'csrf_token': CSRF,
    }, follow_redirects=True)
    html = r.get_data(as_text=True)
    assert 'Cuenta jose.garcialopez@usag.mx creada.' in html
    assert '2 usuarios' in html


def test_recalculate_scholarships_route(auth_client, backend):
    r = auth_client.post('/becas/recalcular', data={'id_estudiante': '12', 'csrf_token': CSRF},
                         follow_redirects=True)
    assert 'Descuentos por beca recalculados en 2 recibos.' in r.get_data(as_text=True)


def test_admin_listing_api(auth_client, backend):
    backend.add_receipt(total=500.0, saldo=0.0)
    backend.add_receipt(total=700.0)
    data = auth_client.get('/api/recibos/admin?estatus=Pagado').get_json()
    assert data['totalRegistros'] == 1
    assert data['recibos'][0]['estatus_nombre'] == 'Pagado'
    assert auth_client.get('/api/recibos/admin?estatus=Perdido').status_code == 400


def test_assign_scholarship_route(auth_client, backend):
    r = auth_client.post('/becas/asignar', data={
        'id_estudiante': '12', 'id_beca': '5', 'vigencia_desde': '2025-01-01', 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert 'Beca asignada. Descuentos recalculados en 2 recibos.' in r.get_data(as_text=True)


def test_assign_scholarship_route_when_recalculation_fails(auth_client, backend):
    backend.overrides[('POST', '/becas/recalcular-descuentos')] = FakeResponse(500, {'message': 'Periodo cerrado'})
    r = auth_client.post('/becas/asignar', data={
        'id_estudiante': '12', 'id_beca': '5', 'vigencia_desde': '2025-01-01', 'csrf_token': CSRF,
    }, follow_redirects=True)
    assert 'Beca asignada. No se recalcularon los descuentos: Periodo cerrado' in r.get_data(as_text=True)


def test_reset_password_route(auth_client, backend):
    backend.add_directory_user('Ana Ruiz', 'ana.ruiz@usag.mx')
    r = auth_client.post('/admin/usuarios-azure/u1/restablecer', data={'csrf_token': CSRF},
                         follow_redirects=True)
    assert 'Contraseña temporal: Tmp#4821' in r.get_data(as_text=True)


def test_send_mail_api_accepts_csrf_header(auth_client, backend):
    r = auth_client.post('/api/correo/caja@usag.mx/enviar',
                         json={'to': 'alumno@alumnos.usag.mx', 'subject': 'Recibo', 'body': 'Adjunto'},
                         headers={'X-CSRF-Token': CSRF})
    assert r.get_json() == {'ok': True}
    assert backend.sent_messages[0][1]['to'] == ['alumno@alumnos.usag.mx']


def test_send_mail_api_without_csrf(auth_client, backend):
    r = auth_client.post('/api/correo/caja@usag.mx/enviar', json={'to': 'a@usag.mx', 'subject': 'x'})
    assert r.status_code == 403
    assert backend.calls == []
