# ==============================================================================
# RESULTADOS DE SERVICIO
# ==============================================================================
# Los servicios regresan diccionarios {'ok': True, ...} / {'ok': False,
# 'error': ...}. Las rutas convierten el error en un flash (toast).
#
# SessionExpiredError NUNCA se convierte en resultado: se propaga hasta el
# manejador de Flask, que redirige al login.
# ==============================================================================

import logging
from typing import Any, Dict

from recibos_caja.repositories.base import ApiError, SessionExpiredError, extract_error_message
from .validation import ValidationResult

logger = logging.getLogger(__name__)


def success(**data: Any) -> Dict[str, Any]:
    result = {'ok': True}
    result.update(data)
    return result


def failure(message: str, **data: Any) -> Dict[str, Any]:
    result = {'ok': False, 'error': message}
    result.update(data)
    return result


def invalid(validation: ValidationResult) -> Dict[str, Any]:
    return failure(validation.message, errors=validation.errors)


def api_failure(error: ApiError, fallback: str) -> Dict[str, Any]:
    """
    Convierte un ApiError en resultado fallido, registrándolo en el log.

    El mensaje sale del cuerpo de la respuesta (extract_error_message) y,
    si el servidor no mandó ninguno, del texto genérico de la acción.

    Raises:
        SessionExpiredError: se vuelve a lanzar tal cual
    """
    if isinstance(error, SessionExpiredError):
        raise error
    if error.status_code is None:
        message = error.message
    else:
        message = extract_error_message(error.payload, fallback)
    logger.error("%s: %s (HTTP %s)", fallback, error.message, error.status_code)
    return failure(message, status_code=error.status_code)
