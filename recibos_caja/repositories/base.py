# ==============================================================================
# REPOSITORIO BASE - Transporte HTTP hacia el API REST
# ==============================================================================
# Todos los repositorios hablan con el backend a través de ApiClient:
#   - Adjunta el token Bearer de la sesión
#   - Rechaza la petición si el token ya expiró (limpia la sesión)
#   - Un 401 limpia la sesión y se convierte en SessionExpiredError
#   - Cualquier otro 4xx/5xx se convierte en ApiError con el mensaje del
#     servidor (extract_error_message) o uno genérico
#
# No hay reintentos, ni backoff, ni caché: cada lectura va al backend.
# ==============================================================================

import logging
import re
import time
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests
from werkzeug.utils import secure_filename

from recibos_caja import performance_logger
from recibos_caja.models import Download

logger = logging.getLogger(__name__)


# ==============================================================================
# ERRORES
# ==============================================================================

class ApiError(Exception):
    """
    Falla al hablar con el backend.

    Attributes:
        message: Mensaje listo para mostrarse al usuario
        status_code: Código HTTP (None si no hubo respuesta)
        payload: Cuerpo decodificado de la respuesta de error
    """

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class NotFoundError(ApiError):
    """El recurso no existe (HTTP 404)."""


class SessionExpiredError(ApiError):
    """Token ausente/expirado o respuesta 401. La sesión ya fue limpiada."""


# Orden fijo en el que se buscan mensajes de error en la respuesta
ERROR_MESSAGE_FIELDS = ('message', 'Error', 'error', 'mensaje')


def extract_error_message(payload: Any, fallback: str) -> str:
    """
    Obtiene el mensaje de error que manda el servidor.

    Prioridad:
        1. payload['message']
        2. payload['Error']
        3. payload['error']
        4. payload['mensaje']
        5. el payload mismo si es un texto no vacío (y no es HTML)
        6. fallback

    Args:
        payload: Cuerpo de la respuesta (dict, str o None)
        fallback: Mensaje genérico que describe la acción que falló

    Returns:
        Mensaje para el usuario
    """
    if isinstance(payload, dict):
        for key in ERROR_MESSAGE_FIELDS:
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return fallback
    if isinstance(payload, str):
        text = payload.strip()
        if text and not text.startswith('<'):
            return text
    return fallback


# ==============================================================================
# UTILIDADES
# ==============================================================================

def build_params(params: Optional[Dict[str, Any]]) -> List[Tuple[str, str]]:
    """
    Convierte filtros en parámetros de query.

    - None, '' y False se omiten (el backend interpreta ausencia = sin filtro)
    - True se manda como "true"
    - Listas se mandan como parámetro repetido (estatus=0&estatus=1)
    """
    result: List[Tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None or value is False or value == '':
            continue
        if value is True:
            result.append((key, 'true'))
        elif isinstance(value, (list, tuple, set)):
            result.extend((key, _param_text(item)) for item in value if item not in (None, ''))
        else:
            result.append((key, _param_text(value)))
    return result


def _param_text(value: Any) -> str:
    # Los enums de estatus viajan como su valor numérico
    if isinstance(value, Enum):
        value = value.value
    return str(value)


_FILENAME_RE = re.compile(r"filename\*?=(?:UTF-8'')?[\"']?([^\"';\n]+)", re.IGNORECASE)


def filename_from_disposition(disposition: Optional[str], default: str) -> str:
    """Nombre de archivo del header Content-Disposition, saneado."""
    if disposition:
        match = _FILENAME_RE.search(disposition)
        if match:
            name = secure_filename(match.group(1).strip())
            if name:
                return name
    return secure_filename(default) or 'descarga'


# ==============================================================================
# CLIENTE HTTP
# ==============================================================================

class ApiClient:
    """
    Adaptador de transporte hacia el API REST.

    Uso:
        api = ApiClient('https://api.escuela.mx/api', session_context)
        data = api.get('/recibos/buscar', params={'folio': 'A-1'})
    """

    def __init__(
        self,
        base_url: str,
        session_context,
        http: Optional[requests.Session] = None,
        timeout: int = 30
    ):
        """
        Args:
            base_url: URL base del API (sin diagonal final)
            session_context: SessionContext con el token del usuario
            http: Sesión de requests (inyectable para pruebas)
            timeout: Timeout por llamada, en segundos
        """
        self.base_url = base_url.rstrip('/')
        self.session_context = session_context
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        token = self.session_context.token
        if token:
            if self.session_context.is_expired():
                self.session_context.clear('expired')
                raise SessionExpiredError('Token expirado')
            headers['Authorization'] = f'Bearer {token}'
        return headers

    @staticmethod
    def _decode(response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None
    ):
        """
        Ejecuta la petición y valida el código de respuesta.

        Returns:
            El objeto response (2xx)

        Raises:
            SessionExpiredError: token expirado o 401
            NotFoundError: 404
            ApiError: cualquier otra falla
        """
        headers = self._headers()
        url = f"{self.base_url}{path}"
        status = None
        start = time.perf_counter()
        try:
            response = self.http.request(
                method,
                url,
                params=build_params(params),
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
            status = response.status_code
        except requests.RequestException as e:
            logger.error("Sin respuesta del backend en %s %s: %s", method, path, e)
            raise ApiError('No se pudo conectar con el servidor. Verifique su conexión.') from e
        finally:
            performance_logger.log_api_call(
                method, path, status, (time.perf_counter() - start) * 1000
            )

        if status == 401:
            self.session_context.clear('unauthorized')
            raise SessionExpiredError('Sesión expirada', 401, self._decode(response))

        if status >= 400:
            payload = self._decode(response)
            message = extract_error_message(payload, f'Error {status} en {method} {path}')
            error_cls = NotFoundError if status == 404 else ApiError
            raise error_cls(message, status, payload)

        return response

    # =========================================================================
    # ATAJOS JSON
    # =========================================================================

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._decode(self.request('GET', path, params=params))

    def post(self, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return self._decode(self.request('POST', path, params=params, json=json))

    def put(self, path: str, json: Any = None) -> Any:
        return self._decode(self.request('PUT', path, json=json))

    def delete(self, path: str) -> Any:
        return self._decode(self.request('DELETE', path))

    # =========================================================================
    # DESCARGAS (PDF / Excel)
    # =========================================================================

    def _download(self, response, default_filename: str) -> Download:
        headers = response.headers or {}
        return Download(
            content=response.content,
            filename=filename_from_disposition(headers.get('Content-Disposition'), default_filename),
            content_type=headers.get('Content-Type', 'application/octet-stream'),
        )

    def get_blob(self, path: str, default_filename: str,
                 params: Optional[Dict[str, Any]] = None) -> Download:
        return self._download(self.request('GET', path, params=params), default_filename)

    def post_blob(self, path: str, default_filename: str, json: Any = None) -> Download:
        return self._download(self.request('POST', path, json=json), default_filename)


class BaseRepository:
    """
    Clase base de los repositorios HTTP.
    Cada repositorio concreto agrupa los endpoints de un recurso del backend.
    """

    def __init__(self, api: ApiClient):
        self.api = api

    @staticmethod
    def _as_list(data: Any, key: str = None) -> Iterable[Dict[str, Any]]:
        """El backend a veces responde una lista y a veces {key: [...]}."""
        if isinstance(data, list):
            return data
        if key and isinstance(data, dict) and isinstance(data.get(key), list):
            return data[key]
        return []
