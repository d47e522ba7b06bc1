# ==============================================================================
# SERVICIO DE AUTENTICACIÓN
# ==============================================================================
# El backend emite el JWT; aquí sólo se guarda a través del SessionContext
# (único escritor de la sesión).
# ==============================================================================

import logging
from typing import Any, Dict

from recibos_caja.repositories.base import ApiError
from recibos_caja.repositories.interfaces import IAuthRepository
from .results import api_failure, failure, success
from .session_service import SessionContext, is_token_expired

logger = logging.getLogger(__name__)


class AuthService:

    def __init__(self, auth_repo: IAuthRepository, session_context: SessionContext):
        self.auth_repo = auth_repo
        self.session_context = session_context

    def login(self, email: str, password: str) -> Dict[str, Any]:
        email = (email or '').strip()
        if not email or not password:
            return failure('Capture correo y contraseña')

        # Un token viejo en la sesión haría que la petición de login se rechace
        self.session_context.clear('relogin')
        try:
            data = self.auth_repo.login(email, password)
        except ApiError as e:
            return api_failure(e, 'Usuario o contraseña incorrectos')

        if is_token_expired(data['token']):
            return failure('El servidor regresó un token ya expirado')
        self.session_context.init(data['token'], data['user'])
        logger.info("Inicio de sesión: %s", email)
        return success(user=data['user'])

    def logout(self) -> None:
        self.session_context.clear('logout')
