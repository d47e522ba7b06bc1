# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODAS las reglas del lado del cliente.
#
# PRINCIPIOS:
# 1. Los servicios orquestan llamadas a repositorios
# 2. Aplican compuertas de estado y validaciones ANTES de llamar al backend
# 3. Las rutas (controllers) solo llaman a servicios
# 4. Los servicios NO conocen URLs ni verbos HTTP
#
# ESTRUCTURA:
# ├── session_service.py       → SessionContext (único escritor de la sesión)
# ├── auth_service.py          → Inicio/cierre de sesión
# ├── validation.py            → FieldError, ValidationResult, validadores
# ├── results.py               → Diccionarios {'ok': ..., 'error': ...}
# ├── receipt_service.py       → Búsqueda, cancelar/reversar, compuertas
# ├── generation_service.py    → Generación de recibos de aspirantes
# ├── payment_service.py       → Registrar/aplicar pagos, ajustes
# ├── cash_register_service.py → Corte de caja
# ├── scholarship_service.py   → Recálculo de becas y convenios
# ├── directory_service.py     → Usuarios Azure AD, alias de correo
# ├── export_service.py        → CSV
# └── inflight.py              → Guarda contra dobles envíos
# ==============================================================================

from recibos_caja.services.session_service import SessionContext, is_token_expired
from recibos_caja.services.auth_service import AuthService
from recibos_caja.services.validation import FieldError, ValidationError, ValidationResult
from recibos_caja.services.receipt_service import (
    ReceiptService,
    TransitionError,
    allowed_actions,
    can_cancel,
    can_delete,
    can_pay,
    can_reverse,
)
from recibos_caja.services.generation_service import GenerationService, summarize_receipts
from recibos_caja.services.payment_service import PaymentService
from recibos_caja.services.cash_register_service import CashRegisterService
from recibos_caja.services.scholarship_service import ScholarshipService
from recibos_caja.services.directory_service import DirectoryService, build_mail_nickname
from recibos_caja.services.export_service import ExportService, to_csv
from recibos_caja.services.inflight import InFlightGuard

__all__ = [
    'SessionContext',
    'is_token_expired',
    'AuthService',
    'FieldError',
    'ValidationError',
    'ValidationResult',
    'ReceiptService',
    'TransitionError',
    'allowed_actions',
    'can_cancel',
    'can_delete',
    'can_pay',
    'can_reverse',
    'GenerationService',
    'summarize_receipts',
    'PaymentService',
    'CashRegisterService',
    'ScholarshipService',
    'DirectoryService',
    'build_mail_nickname',
    'ExportService',
    'to_csv',
    'InFlightGuard',
]
