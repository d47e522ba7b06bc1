# ==============================================================================
# CONTEXTO DE SESIÓN
# ==============================================================================
# Único escritor del token de acceso y del usuario en sesión.
#
# En la app web el almacenamiento es la cookie de sesión de Flask; en pruebas
# es un dict. Nadie más escribe 'access_token' ni 'user': los lectores usan
# las propiedades de esta clase o se suscriben a sus eventos (init, refresh,
# clear).
#
# La expiración se decide leyendo el claim "exp" del JWT SIN verificar la
# firma (la firma la valida el backend). Un token que no se puede decodificar
# o sin "exp" se considera expirado.
# ==============================================================================

import logging
import time
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from jose import jwt, JWTError

logger = logging.getLogger(__name__)

SessionListener = Callable[[str, 'SessionContext'], None]


def is_token_expired(token: str, now: Optional[float] = None) -> bool:
    """
    Indica si el JWT ya expiró.

    Args:
        token: JWT crudo
        now: Epoch en segundos (por defecto, la hora actual)

    Returns:
        True si expiró, no tiene "exp" o no se puede decodificar
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return True
    exp = claims.get('exp')
    if exp is None:
        return True
    try:
        exp = float(exp)
    except (TypeError, ValueError):
        return True
    current = time.time() if now is None else now
    return current >= exp


class SessionContext:
    """
    Sesión del usuario con ciclo de vida explícito: init / refresh / clear.

    Uso:
        ctx = SessionContext(lambda: flask.session)
        ctx.subscribe(lambda event, c: print(event))
        ctx.init(token, {'email': 'caja@usag.mx'})
    """

    TOKEN_KEY = 'access_token'
    USER_KEY = 'user'

    def __init__(self, store_factory: Callable[[], MutableMapping[str, Any]] = None):
        if store_factory is None:
            local: Dict[str, Any] = {}
            store_factory = lambda: local  # noqa: E731
        self._store_factory = store_factory
        self._listeners: List[SessionListener] = []

    @property
    def _store(self) -> MutableMapping[str, Any]:
        return self._store_factory()

    # =========================================================================
    # LECTURA
    # =========================================================================

    @property
    def token(self) -> Optional[str]:
        return self._store.get(self.TOKEN_KEY)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self._store.get(self.USER_KEY)

    @property
    def username(self) -> str:
        user = self.user or {}
        return user.get('email') or user.get('userName') or user.get('nombres') or 'anónimo'

    def is_expired(self, now: Optional[float] = None) -> bool:
        """True si hay token y ya expiró (sin token no hay nada que expirar)."""
        token = self.token
        return bool(token) and is_token_expired(token, now)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and not self.is_expired()

    # =========================================================================
    # ESCRITURA (único escritor)
    # =========================================================================

    def init(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        store = self._store
        store[self.TOKEN_KEY] = token
        store[self.USER_KEY] = user or {}
        self._notify('init')

    def refresh(self, token: str) -> None:
        self._store[self.TOKEN_KEY] = token
        self._notify('refresh')

    def clear(self, reason: str = 'logout') -> None:
        store = self._store
        had_token = self.TOKEN_KEY in store
        store.pop(self.TOKEN_KEY, None)
        store.pop(self.USER_KEY, None)
        if had_token:
            logger.info("Sesión cerrada (%s)", reason)
        self._notify('clear')

    # =========================================================================
    # SUSCRIPCIONES
    # =========================================================================

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Registra un listener; retorna la función para desuscribirlo."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                logger.exception("Listener de sesión falló en evento '%s'", event)
