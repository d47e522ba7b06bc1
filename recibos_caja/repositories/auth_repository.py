# ==============================================================================
# REPOSITORIO DE AUTENTICACIÓN
# ==============================================================================

from typing import Any, Dict

from .base import ApiError, BaseRepository, SessionExpiredError


class AuthRepository(BaseRepository):

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Inicia sesión contra el backend.

        Returns:
            {'token': str, 'user': dict}

        Raises:
            ApiError: credenciales inválidas o respuesta sin token
        """
        try:
            data = self.api.post('/auth/login', json={'email': email, 'password': password}) or {}
        except SessionExpiredError as e:
            # En el login un 401 son credenciales inválidas, no una sesión vencida
            raise ApiError('Usuario o contraseña incorrectos', e.status_code, e.payload) from e
        if not isinstance(data, dict):
            raise ApiError('Respuesta inesperada del servidor al iniciar sesión', payload=data)
        token = data.get('token') or data.get('accessToken') or data.get('access_token')
        if not token:
            raise ApiError('El servidor no regresó un token de acceso', payload=data)
        user = data.get('user') or data.get('usuario') or {'email': email}
        return {'token': token, 'user': user}
