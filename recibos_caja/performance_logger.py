# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide rendimiento de rutas Flask y de llamadas al API remoto sin afectar la
# experiencia del usuario. Guarda logs legibles en /logs/ para análisis humano.
#
# ACTIVAR/DESACTIVAR: configure(enabled=...) o RECIBOS_PROFILING=0
# ==============================================================================

import os
import threading
import time
from collections import defaultdict
from datetime import datetime
from functools import wraps

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = True

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

LOGS_DIR = os.path.join(os.path.dirname(__file__), 'logs')

PERFORMANCE_LOG = 'performance.log'
SLOW_ROUTES_LOG = 'slow_routes.log'
SLOW_CALLS_LOG = 'slow_calls.log'

# Mapeo de rutas a nombres legibles (para logs más humanos)
ROUTE_NAMES = {
    'GET /auth/v2/login': 'Ver inicio de sesión',
    'POST /auth/v2/login': 'Iniciar sesión',
    'GET /logout': 'Cerrar sesión',

    'GET /recibos': 'Buscar recibos',
    'POST /recibos/<int:id_recibo>/cancelar': 'Cancelar recibo',
    'POST /recibos/<int:id_recibo>/reversar': 'Reversar recibo',
    'GET /recibos/exportar.csv': 'Exportar recibos CSV',
    'GET /recibos/exportar.xlsx': 'Exportar recibos Excel',

    'GET /aspirantes/<int:id_aspirante>/recibos': 'Ver recibos de aspirante',
    'POST /aspirantes/<int:id_aspirante>/recibos/manual': 'Generar recibo manual',
    'POST /aspirantes/<int:id_aspirante>/recibos/concepto': 'Generar recibo por concepto',
    'POST /aspirantes/<int:id_aspirante>/recibos/plantilla': 'Generar recibos desde plantilla',

    'POST /caja/pago': 'Registrar pago',
    'POST /caja/pagos/aplicar': 'Aplicar pago a varios recibos',
    'GET /caja/corte': 'Ver corte de caja',
    'POST /caja/corte': 'Generar corte de caja',
    'POST /caja/corte/cerrar': 'Cerrar corte de caja',
    'POST /caja/corte/pdf': 'Vista previa PDF de corte',
}

_log_lock = threading.Lock()


def configure(enabled: bool = None, logs_dir: str = None) -> None:
    """Ajusta el profiling en tiempo de ejecución (lo usa configure_app)."""
    global ENABLE_PROFILING, LOGS_DIR
    if enabled is not None:
        ENABLE_PROFILING = bool(enabled)
    if logs_dir:
        LOGS_DIR = logs_dir


# ═══════════════════════════════════════════════════════════════════════════
# ESTADÍSTICAS (en memoria)
# ═══════════════════════════════════════════════════════════════════════════

# Estructura: {nombre: {calls: int, total_time: float, max_time: float}}
_call_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════
# ESCRITURA DE LOGS
# ═══════════════════════════════════════════════════════════════════════════

def _get_timestamp():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _write_log(filename, content):
    """Escribe contenido a un archivo de log (thread-safe)."""
    try:
        with _log_lock:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(os.path.join(LOGS_DIR, filename), 'a', encoding='utf-8') as f:
                f.write(content)
    except OSError:
        pass  # Un log que no se puede escribir no debe tumbar la petición


def _get_route_name(method, path, rule=None):
    key = f"{method} {path}"
    if key in ROUTE_NAMES:
        return ROUTE_NAMES[key]
    if rule:
        rule_key = f"{method} {rule}"
        if rule_key in ROUTE_NAMES:
            return ROUTE_NAMES[rule_key]
    return f"{method} {path}"


def _record(name, elapsed_ms):
    with _stats_lock:
        stats = _call_stats[name]
        stats['calls'] += 1
        stats['total_time'] += elapsed_ms
        if elapsed_ms > stats['max_time']:
            stats['max_time'] = elapsed_ms


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ PROFILING DE RUTAS (hooks de Flask)
# ═══════════════════════════════════════════════════════════════════════════

def log_route_performance(method, path, rule, time_ms, user=None):
    if not ENABLE_PROFILING:
        return

    log_entry = f"""
════════════════════════════════════════
[PERFORMANCE] {_get_timestamp()}
────────────────────────────────────────
Acción: {_get_route_name(method, path, rule)}
Usuario: {user or 'anónimo'}
Ruta: {method} {path}
Tiempo: {time_ms:.0f} ms
"""
    _write_log(PERFORMANCE_LOG, log_entry)

    if time_ms >= THRESHOLD_WARNING:
        level = 'CRITICAL' if time_ms >= THRESHOLD_CRITICAL else 'WARNING'
        threshold = THRESHOLD_CRITICAL if level == 'CRITICAL' else THRESHOLD_WARNING
        _write_log(SLOW_ROUTES_LOG, f"""
[{level}] {_get_timestamp()}
────────────────────────────────────────
Ruta {'MUY LENTA' if level == 'CRITICAL' else 'LENTA'}: {_get_route_name(method, path, rule)}
Usuario: {user or 'anónimo'}
Tiempo: {time_ms:.0f} ms (umbral: {threshold} ms)
────────────────────────────────────────
""")


def init_profiling(app, user_getter=None):
    """
    Registra hooks before_request / after_request en una app Flask.

    Args:
        app: Aplicación Flask
        user_getter: Callable sin argumentos que devuelve el usuario actual
    """
    from flask import g, request

    @app.before_request
    def _start_timer():
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        if not ENABLE_PROFILING or not hasattr(g, 'start_time'):
            return response
        if request.path.startswith('/static'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000
        rule = str(request.url_rule) if request.url_rule else request.path
        user = user_getter() if user_getter else None
        log_route_performance(request.method, request.path, rule, elapsed, user)
        return response


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ LLAMADAS AL API REMOTO
# ═══════════════════════════════════════════════════════════════════════════

def log_api_call(method, path, status_code, time_ms):
    """
    Registra una llamada HTTP al backend. Solo escribe a disco si es lenta;
    siempre actualiza las estadísticas en memoria.
    """
    if not ENABLE_PROFILING:
        return

    name = f"API {method} {path}"
    _record(name, time_ms)

    if time_ms >= THRESHOLD_WARNING:
        severity = 'CRÍTICO' if time_ms >= THRESHOLD_CRITICAL else 'LENTO'
        _write_log(SLOW_CALLS_LOG, f"""
[{severity}] {_get_timestamp()}
Llamada: {method} {path}
Estado HTTP: {status_code if status_code is not None else 'sin respuesta'}
Tiempo: {time_ms:.0f} ms
────────────────────────────────────────
""")


def profile_function(func=None, name=None):
    """
    Decorador para medir funciones clave (p. ej. operaciones de caja).

    Uso:
        @profile_function
        def mi_funcion(): ...

        @profile_function(name="Registrar y aplicar pago")
        def register_and_apply(): ...
    """
    def decorator(fn):
        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not ENABLE_PROFILING:
                return fn(*args, **kwargs)
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                _record(func_name, elapsed_ms)
                if elapsed_ms >= THRESHOLD_WARNING:
                    _write_log(SLOW_CALLS_LOG, f"""
[LENTO] {_get_timestamp()}
Función: {func_name}
Tiempo: {elapsed_ms:.0f} ms
────────────────────────────────────────
""")
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ REPORTE DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_call_stats():
    """
    Returns:
        dict: {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for call_name, stats in _call_stats.items():
            calls = stats['calls']
            avg = stats['total_time'] / calls if calls > 0 else 0
            result[call_name] = {
                'calls': calls,
                'avg_time': round(avg, 2),
                'max_time': round(stats['max_time'], 2),
            }
        return result


def reset_stats():
    """Reinicia todas las estadísticas (útil para testing)."""
    with _stats_lock:
        _call_stats.clear()


__all__ = [
    'configure',
    'init_profiling',
    'log_api_call',
    'profile_function',
    'get_call_stats',
    'reset_stats',
]
