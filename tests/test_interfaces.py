import os
import sys

import pytest

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from recibos_caja.app_container import AppContainer
from recibos_caja.config import TestingConfig
from recibos_caja.repositories import (
    ApplicantRepository,
    AuthRepository,
    CashRegisterRepository,
    DirectoryRepository,
    IApplicantRepository,
    IAuthRepository,
    ICashRegisterRepository,
    IDirectoryRepository,
    IPaymentRepository,
    IReceiptRepository,
    IScholarshipRepository,
    PaymentRepository,
    ReceiptRepository,
    ScholarshipRepository,
)


@pytest.mark.parametrize('implementation, protocol', [
    (ReceiptRepository, IReceiptRepository),
    (ApplicantRepository, IApplicantRepository),
    (PaymentRepository, IPaymentRepository),
    (CashRegisterRepository, ICashRegisterRepository),
    (ScholarshipRepository, IScholarshipRepository),
    (DirectoryRepository, IDirectoryRepository),
    (AuthRepository, IAuthRepository),
])
def test_http_repositories_satisfy_contracts(api, implementation, protocol):
    assert isinstance(implementation(api), protocol)


def test_container_is_a_singleton_until_reset(backend):
    AppContainer.reset_instance()
    first = AppContainer.get_instance(TestingConfig, http=backend)
    try:
        assert AppContainer.get_instance() is first
        assert first.receipt_service is first.receipt_service
        assert isinstance(first.receipt_repo, IReceiptRepository)
    finally:
        AppContainer.reset_instance()
    assert AppContainer.get_instance(TestingConfig, http=backend) is not first
    AppContainer.reset_instance()
