# ==============================================================================
# GUARDA "EN VUELO" PARA ACCIONES QUE MUTAN
# ==============================================================================
# Generar, aplicar, reversar, cancelar y ajustar NO son idempotentes. Mientras
# una acción de un usuario está en curso, un segundo envío de la misma acción
# sobre la misma llave se rechaza con un aviso.
#
# Es sólo preventivo: la autoridad sobre duplicados es el backend.
# ==============================================================================

import threading
from contextlib import contextmanager
from typing import Any, Hashable, Iterator, Set, Tuple

InFlightKey = Tuple[str, str, Hashable]


class InFlightGuard:
    """
    Uso:
        with guard.hold(user, 'cancelar', id_recibo) as acquired:
            if not acquired:
                flash('La operación ya está en proceso', 'warning')
            else:
                ...
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Set[InFlightKey] = set()

    def acquire(self, user: str, action: str, key: Any = None) -> bool:
        token = (user or '', action, key)
        with self._lock:
            if token in self._active:
                return False
            self._active.add(token)
            return True

    def release(self, user: str, action: str, key: Any = None) -> None:
        with self._lock:
            self._active.discard((user or '', action, key))

    def is_active(self, user: str, action: str, key: Any = None) -> bool:
        with self._lock:
            return (user or '', action, key) in self._active

    @contextmanager
    def hold(self, user: str, action: str, key: Any = None) -> Iterator[bool]:
        acquired = self.acquire(user, action, key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(user, action, key)
