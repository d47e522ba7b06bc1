import os
import sys

import pytest

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from recibos_caja.models import DirectoryUser
from recibos_caja.services import DirectoryService, build_mail_nickname
from recibos_caja.services.directory_service import filter_users, paginate


@pytest.fixture
def service(directory_repo):
    return DirectoryService(directory_repo, page_size=2)


# ==============================================================================
# ALIAS DE CORREO
# ==============================================================================

def test_nickname_without_collision():
    assert build_mail_nickname('José María', 'García López', 'usag.mx') == 'jose.garcia'


def test_nickname_with_collision_appends_second_surname():
    existing = ['Jose.Garcia@usag.mx', 'otro@usag.mx']
    assert build_mail_nickname('José María', 'García López', 'usag.mx', existing) == 'jose.garcialopez'


def test_collision_in_other_domain_is_ignored():
    existing = ['jose.garcia@alumnos.usag.mx']
    assert build_mail_nickname('José María', 'García López', 'usag.mx', existing) == 'jose.garcia'


def test_collision_without_second_surname_keeps_short_form():
    assert build_mail_nickname('Ana', 'Núñez', 'usag.mx', ['ana.nunez@usag.mx']) == 'ana.nunez'


def test_nickname_strips_symbols_and_diacritics():
    assert build_mail_nickname("  Ñoño-Luis ", "D'Ávila  Peña", '@USAG.MX') == 'nonoluis.davila'


# ==============================================================================
# FILTRO Y PAGINACIÓN LOCALES
# ==============================================================================

def _users():
    return [
        DirectoryUser(id='1', display_name='Ana López', user_principal_name='ana.lopez@usag.mx'),
        DirectoryUser(id='2', display_name='Luis Pérez', user_principal_name='luis.perez@usag.mx',
                      email='lperez@gmail.com'),
        DirectoryUser(id='3', display_name='Caja Dos', user_principal_name='caja2@usag.mx'),
    ]


def test_filter_users_by_name_upn_or_email():
    users = _users()
    assert [u.id for u in filter_users(users, 'LÓPEZ')] == ['1']
    assert [u.id for u in filter_users(users, 'gmail')] == ['2']
    assert len(filter_users(users, '  ')) == 3


def test_paginate_clamps_page():
    page = paginate(list(range(5)), 9, 2)
    assert page == {'items': [4], 'page': 3, 'total_pages': 3, 'total': 5}
    assert paginate([], 1, 20)['total_pages'] == 1


# ==============================================================================
# ALTA DE CUENTAS
# ==============================================================================

def test_list_users_paginates_locally(service, backend):
    for i in range(3):
        backend.add_directory_user(f'Usuario {i}', f'usuario{i}@usag.mx', enabled=i != 1)
    result = service.list_users(page=2)
    assert result['ok'] is True
    assert result['page']['total'] == 3
    assert [u.id for u in result['page']['items']] == ['u3']
    assert result['enabled'] == 2


def test_create_user_loads_directory_and_avoids_collision(service, backend):
    backend.add_directory_user('José García', 'jose.garcia@usag.mx')

    result = service.create_user('José María', 'García López', 'usag.mx', 'Temporal#2025')

    assert result['ok'] is True
    assert result['user_principal_name'] == 'jose.garcialopez@usag.mx'
    assert backend.paths() == ['/email/users', '/email/users']
    payload = backend.calls[-1][3]
    assert payload['mailNickname'] == 'jose.garcialopez'
    assert payload['displayName'] == 'José María García López'
    assert payload['forceChangePasswordNextSignIn'] is True


def test_create_user_uses_loaded_users_without_request(service, backend):
    loaded = [DirectoryUser(id='9', display_name='X', user_principal_name='ana.ruiz@usag.mx')]
    result = service.create_user('Ana', 'Ruiz', 'usag.mx', 'Temporal#2025', loaded_users=loaded)
    assert result['ok'] is False
    assert result['error'] == 'La cuenta ana.ruiz@usag.mx ya existe'
    assert backend.calls == []


def test_create_user_validates_before_loading(service, backend):
    result = service.create_user('Ana', '', 'usag.mx', 'corta')
    assert result['ok'] is False
    assert 'Los apellidos son obligatorios' in result['error']
    assert 'al menos 8 caracteres' in result['error']
    assert backend.calls == []


def test_domains(service):
    assert service.domains() == {'ok': True, 'domains': ['usag.mx', 'alumnos.usag.mx']}
