import os
import sys
import time

import pytest
from jose import jwt

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from recibos_caja import performance_logger
from recibos_caja.repositories import (
    ApiClient,
    ApplicantRepository,
    CashRegisterRepository,
    DirectoryRepository,
    PaymentRepository,
    ReceiptRepository,
    ScholarshipRepository,
)
from recibos_caja.services import SessionContext
from fake_backend import FakeBackend

performance_logger.configure(enabled=False)

BASE_URL = 'http://backend.test/api'
USER_EMAIL = 'caja@usag.mx'
CSRF = 'a1b2c3d4e5f6'


def make_token(sub=USER_EMAIL, ttl=3600, **claims):
    payload = {'sub': sub, 'exp': int(time.time()) + ttl}
    payload.update(claims)
    return jwt.encode(payload, 'secret', algorithm='HS256')


def expired_token(sub=USER_EMAIL):
    return make_token(sub, ttl=-60)


# ==============================================================================
# CAPA DE SERVICIOS (sin Flask)
# ==============================================================================

@pytest.fixture
def backend():
    return FakeBackend(token_factory=make_token)


@pytest.fixture
def store():
    return {}


@pytest.fixture
def session_context(store):
    return SessionContext(lambda: store)


@pytest.fixture
def logged_in(session_context):
    session_context.init(make_token(), {'email': USER_EMAIL})
    return session_context


@pytest.fixture
def api(backend, logged_in):
    return ApiClient(BASE_URL, logged_in, http=backend, timeout=5)


@pytest.fixture
def receipt_repo(api):
    return ReceiptRepository(api)


@pytest.fixture
def applicant_repo(api):
    return ApplicantRepository(api)


@pytest.fixture
def payment_repo(api):
    return PaymentRepository(api)


@pytest.fixture
def cash_repo(api):
    return CashRegisterRepository(api)


@pytest.fixture
def scholarship_repo(api):
    return ScholarshipRepository(api)


@pytest.fixture
def directory_repo(api):
    return DirectoryRepository(api)


# ==============================================================================
# APLICACIÓN FLASK
# ==============================================================================

@pytest.fixture
def app(backend):
    from recibos_caja.app_container import AppContainer
    from recibos_caja.config import TestingConfig
    from recibos_caja.main import configure_app

    flask_app = configure_app(TestingConfig, http=backend)
    yield flask_app
    AppContainer.reset_instance()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def auth_client(client):
    with client.session_transaction() as sess:
        sess['access_token'] = make_token()
        sess['user'] = {'email': USER_EMAIL}
        sess['csrf_token'] = CSRF
    return client
