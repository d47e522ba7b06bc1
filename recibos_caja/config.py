# ==============================================================================
# CONFIGURACIÓN DE LA APLICACIÓN
# ==============================================================================
# Toda la configuración se lee de variables de entorno. En desarrollo se
# puede usar un archivo .env en la raíz del proyecto (python-dotenv).
#
# Variables principales:
#   RECIBOS_API_BASE_URL   → URL base del API REST de control escolar
#   RECIBOS_SECRET_KEY     → Llave para firmar la cookie de sesión de Flask
#   RECIBOS_API_TIMEOUT    → Timeout (segundos) de cada llamada al API
#   RECIBOS_PROFILING      → "0" para desactivar los logs de rendimiento
# ==============================================================================

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'si', 'sí')


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


_DEFAULT_SECRET = "recibos_caja_dev_secret_key_change_in_production"


class Config:
    """Configuración base (producción)."""

    # ═══════════════════════════════════════════════════════════════════════
    # API REMOTO
    # ═══════════════════════════════════════════════════════════════════════
    API_BASE_URL = os.environ.get('RECIBOS_API_BASE_URL', 'http://localhost:5000/api')
    API_TIMEOUT = _env_int('RECIBOS_API_TIMEOUT', 30)

    # ═══════════════════════════════════════════════════════════════════════
    # SESIÓN / SEGURIDAD
    # ═══════════════════════════════════════════════════════════════════════
    PRODUCTION_MODE = _env_bool('RECIBOS_PRODUCTION', True)
    SECRET_KEY = os.environ.get('RECIBOS_SECRET_KEY') or _DEFAULT_SECRET
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = _env_bool('RECIBOS_COOKIE_SECURE', False)
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 8 * 3600  # 8 horas (un turno de caja)
    LOGIN_PATH = '/auth/v2/login'

    # ═══════════════════════════════════════════════════════════════════════
    # REGLAS DE NEGOCIO (valores por defecto de la UI)
    # ═══════════════════════════════════════════════════════════════════════
    DEFAULT_CURRENCY = 'MXN'
    DEFAULT_DUE_DAYS = 7
    DEFAULT_CONCEPT = 'Cuota de Inscripcion'
    SEARCH_PAGE_SIZE = 50
    DIRECTORY_PAGE_SIZE = 20

    # ═══════════════════════════════════════════════════════════════════════
    # PROFILING
    # ═══════════════════════════════════════════════════════════════════════
    ENABLE_PROFILING = _env_bool('RECIBOS_PROFILING', True)

    TESTING = False

    @classmethod
    def warn_if_insecure(cls) -> None:
        if cls.PRODUCTION_MODE and cls.SECRET_KEY == _DEFAULT_SECRET:
            print("[ADVERTENCIA] PRODUCTION_MODE activo sin RECIBOS_SECRET_KEY definida")
            print("[ADVERTENCIA] Define la variable de entorno para mayor seguridad")


class TestingConfig(Config):
    """Configuración para la suite de pruebas (sin red real)."""
    TESTING = True
    PRODUCTION_MODE = False
    SECRET_KEY = 'testing-secret'
    API_BASE_URL = 'http://backend.test/api'
    ENABLE_PROFILING = False
