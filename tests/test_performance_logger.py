import os
import sys

import pytest

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from recibos_caja import performance_logger


@pytest.fixture
def profiling(tmp_path, monkeypatch):
    """Profiling activo escribiendo en un directorio temporal."""
    monkeypatch.setattr(performance_logger, 'ENABLE_PROFILING', True)
    monkeypatch.setattr(performance_logger, 'LOGS_DIR', str(tmp_path))
    performance_logger.reset_stats()
    yield tmp_path
    performance_logger.reset_stats()


def read_log(logs_dir, name):
    with open(os.path.join(logs_dir, name), encoding='utf-8') as f:
        return f.read()


def test_fast_call_only_updates_stats(profiling):
    performance_logger.log_api_call('GET', '/recibos/buscar', 200, 120)

    stats = performance_logger.get_call_stats()['API GET /recibos/buscar']
    assert stats == {'calls': 1, 'avg_time': 120, 'max_time': 120}
    assert not os.path.exists(os.path.join(profiling, 'slow_calls.log'))


@pytest.mark.parametrize('time_ms, severity', [(300, '[LENTO]'), (699, '[LENTO]'), (800, '[CRÍTICO]')])
def test_slow_call_thresholds(profiling, time_ms, severity):
    performance_logger.log_api_call('POST', '/Pagos/aplicar', 200, time_ms)
    content = read_log(profiling, 'slow_calls.log')
    assert severity in content
    assert 'Llamada: POST /Pagos/aplicar' in content


def test_call_without_response(profiling):
    performance_logger.log_api_call('GET', '/caja/cajeros', None, 750)
    assert 'Estado HTTP: sin respuesta' in read_log(profiling, 'slow_calls.log')


def test_route_logging_uses_readable_names(profiling):
    performance_logger.log_route_performance('POST', '/caja/pago', '/caja/pago', 50, 'caja@usag.mx')
    assert not os.path.exists(os.path.join(profiling, 'slow_routes.log'))

    performance_logger.log_route_performance(
        'POST', '/recibos/7/cancelar', '/recibos/<int:id_recibo>/cancelar', 900
    )
    performance = read_log(profiling, 'performance.log')
    assert 'Acción: Registrar pago' in performance
    assert 'Usuario: caja@usag.mx' in performance
    slow = read_log(profiling, 'slow_routes.log')
    assert '[CRITICAL]' in slow
    assert 'Ruta MUY LENTA: Cancelar recibo' in slow
    assert '(umbral: 700 ms)' in slow


def test_profile_function_records_stats(profiling, monkeypatch):
    @performance_logger.profile_function(name='Registrar y aplicar pago')
    def register():
        return 'ok'

    assert register() == 'ok'
    assert register() == 'ok'
    assert performance_logger.get_call_stats()['Registrar y aplicar pago']['calls'] == 2

    monkeypatch.setattr(performance_logger, 'THRESHOLD_WARNING', 0)
    register()
    assert 'Función: Registrar y aplicar pago' in read_log(profiling, 'slow_calls.log')


def test_profile_function_keeps_exceptions(profiling):
    @performance_logger.profile_function
    def fails():
        raise ValueError('sin saldo')

    with pytest.raises(ValueError):
        fails()
    assert performance_logger.get_call_stats()['fails']['calls'] == 1


def test_unwritable_logs_dir_does_not_raise(profiling, monkeypatch):
    blocker = profiling / 'no_es_directorio'
    blocker.write_text('x')
    monkeypatch.setattr(performance_logger, 'LOGS_DIR', str(blocker / 'logs'))

    performance_logger.log_api_call('GET', '/recibos/buscar', 200, 900)
    performance_logger.log_route_performance('GET', '/recibos', '/recibos', 900)

    assert performance_logger.get_call_stats()['API GET /recibos/buscar']['calls'] == 1


def test_disabled_profiling_records_nothing(profiling, monkeypatch):
    monkeypatch.setattr(performance_logger, 'ENABLE_PROFILING', False)
    performance_logger.log_api_call('GET', '/recibos/buscar', 200, 900)
    performance_logger.log_route_performance('GET', '/recibos', '/recibos', 900)

    assert performance_logger.get_call_stats() == {}
    assert os.listdir(profiling) == []
