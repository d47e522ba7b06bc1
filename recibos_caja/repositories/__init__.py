# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso al API remoto
# ==============================================================================
# Esta capa encapsula todo el acceso HTTP al backend de administración escolar.
# Los servicios no conocen URLs ni verbos: sólo llaman métodos con nombre.
#
# ESTRUCTURA:
# ├── interfaces.py                → Protocolos (contratos de cada repositorio)
# ├── base.py                      → ApiClient, BaseRepository y errores
# ├── receipt_repository.py        → /recibos
# ├── applicant_repository.py      → /Aspirante (generación de recibos)
# ├── payment_repository.py        → /Pagos
# ├── cash_register_repository.py  → /caja
# ├── scholarship_repository.py    → /becas
# ├── directory_repository.py      → /email (Azure AD)
# └── auth_repository.py           → /auth
# ==============================================================================

# Interfaces
from .interfaces import (
    IReceiptRepository,
    IApplicantRepository,
    IPaymentRepository,
    ICashRegisterRepository,
    IScholarshipRepository,
    IDirectoryRepository,
    IAuthRepository,
)

# Transporte y errores
from .base import (
    ApiClient,
    ApiError,
    BaseRepository,
    NotFoundError,
    SessionExpiredError,
    build_params,
    extract_error_message,
)

# Implementaciones HTTP
from .receipt_repository import ReceiptRepository
from .applicant_repository import ApplicantRepository
from .payment_repository import PaymentRepository
from .cash_register_repository import CashRegisterRepository
from .scholarship_repository import ScholarshipRepository
from .directory_repository import DirectoryRepository
from .auth_repository import AuthRepository

__all__ = [
    # Interfaces
    'IReceiptRepository',
    'IApplicantRepository',
    'IPaymentRepository',
    'ICashRegisterRepository',
    'IScholarshipRepository',
    'IDirectoryRepository',
    'IAuthRepository',

    # Transporte y errores
    'ApiClient',
    'ApiError',
    'BaseRepository',
    'NotFoundError',
    'SessionExpiredError',
    'build_params',
    'extract_error_message',

    # Implementaciones
    'ReceiptRepository',
    'ApplicantRepository',
    'PaymentRepository',
    'CashRegisterRepository',
    'ScholarshipRepository',
    'DirectoryRepository',
    'AuthRepository',
]
