# ==============================================================================
# SERVICIO DE DIRECTORIO (Azure AD)
# ==============================================================================
# Alta de cuentas institucionales y consulta de buzones. La única lógica local
# es la composición del alias de correo (mail nickname):
#
#   "José María" + "García López"  →  jose.garcia
#   si jose.garcia@dominio ya existe entre los usuarios cargados
#                                  →  jose.garcialopez
#
# Normalización: minúsculas, NFD, sin diacríticos, sólo [a-z0-9] por palabra.
# ==============================================================================

import logging
import math
import re
import unicodedata
from typing import Any, Dict, Iterable, List, Optional

from recibos_caja.models import DirectoryUser
from recibos_caja.repositories.base import ApiError
from recibos_caja.repositories.interfaces import IDirectoryRepository
from .results import api_failure, failure, invalid, success
from .validation import validate_new_directory_user

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r'[^a-z0-9]')


def _name_tokens(text: str) -> List[str]:
    decomposed = unicodedata.normalize('NFD', (text or '').lower())
    plain = ''.join(c for c in decomposed if unicodedata.category(c) != 'Mn')
    tokens = (_NON_ALNUM.sub('', word) for word in plain.split())
    return [t for t in tokens if t]


def build_mail_nickname(given_name: str, surname: str, domain: str,
                        existing_addresses: Iterable[str] = ()) -> str:
    """
    Compone el alias de correo de un usuario nuevo.

    Args:
        given_name: Nombre(s)
        surname: Apellidos
        domain: Dominio del correo (sin @)
        existing_addresses: UPN/correos de los usuarios ya cargados

    Returns:
        "nombre.apellido1" o, si ese correo ya existe, "nombre.apellido1apellido2"
    """
    names = _name_tokens(given_name)
    surnames = _name_tokens(surname)
    first = names[0] if names else ''
    last = surnames[0] if surnames else ''
    short = f"{first}.{last}" if first and last else first or last

    taken = {a.strip().lower() for a in existing_addresses if a}
    domain = (domain or '').strip().lstrip('@').lower()
    if f"{short}@{domain}" in taken and len(surnames) > 1:
        return f"{short}{surnames[1]}"
    return short


def filter_users(users: List[DirectoryUser], term: str) -> List[DirectoryUser]:
    """Filtro de texto del lado del cliente (nombre, UPN o correo)."""
    term = (term or '').strip().lower()
    if not term:
        return list(users)
    return [
        u for u in users
        if term in (u.display_name or '').lower()
        or term in (u.user_principal_name or '').lower()
        or term in (u.email or '').lower()
    ]


def paginate(items: List[Any], page: int, page_size: int) -> Dict[str, Any]:
    page_size = max(1, page_size)
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size
    return {
        'items': items[start:start + page_size],
        'page': page,
        'total_pages': total_pages,
        'total': len(items),
    }


class DirectoryService:

    def __init__(self, directory_repo: IDirectoryRepository, page_size: int = 20):
        self.directory_repo = directory_repo
        self.page_size = page_size

    def list_users(self, term: str = '', page: int = 1, top: int = 999) -> Dict[str, Any]:
        """
        Carga los usuarios (lista completa) y aplica filtro + paginación locales.
        """
        try:
            users = self.directory_repo.list_users(top)
        except ApiError as e:
            return api_failure(e, 'Error al cargar usuarios del directorio')
        filtered = filter_users(users, term)
        return success(
            users=users,
            page=paginate(filtered, page, self.page_size),
            enabled=sum(1 for u in users if u.account_enabled),
        )

    def domains(self) -> Dict[str, Any]:
        try:
            return success(domains=self.directory_repo.domains())
        except ApiError as e:
            return api_failure(e, 'Error al cargar los dominios')

    def create_user(
        self,
        given_name: str,
        surname: str,
        domain: str,
        password: str,
        loaded_users: Optional[List[DirectoryUser]] = None,
        job_title: str = None,
        department: str = None
    ) -> Dict[str, Any]:
        """
        Crea una cuenta institucional nombre.apellido@dominio.

        Args:
            loaded_users: Usuarios ya cargados en pantalla (para detectar el
                          choque del alias corto). Si es None se consultan.
        """
        check = validate_new_directory_user(given_name, surname, domain, password)
        if not check.ok:
            return invalid(check)
        data = check.value

        if loaded_users is None:
            listed = self.list_users()
            if not listed['ok']:
                return listed
            loaded_users = listed['users']
        existing = [a for u in loaded_users for a in u.addresses]

        nickname = build_mail_nickname(data['given_name'], data['surname'], data['domain'], existing)
        if not nickname:
            return failure('No se pudo formar el alias de correo con el nombre capturado')
        upn = f"{nickname}@{data['domain']}"
        if upn in existing:
            return failure(f'La cuenta {upn} ya existe')

        payload = {
            'displayName': f"{data['given_name']} {data['surname']}",
            'givenName': data['given_name'],
            'surname': data['surname'],
            'userPrincipalName': upn,
            'mailNickname': nickname,
            'password': data['password'],
            'forceChangePasswordNextSignIn': True,
            'jobTitle': (job_title or '').strip() or None,
            'department': (department or '').strip() or None,
        }
        try:
            response = self.directory_repo.create_user(payload)
        except ApiError as e:
            return api_failure(e, 'Error al crear el usuario')
        if response.get('success') is False:
            return failure(response.get('message') or 'El directorio rechazó la cuenta')
        logger.info("Cuenta %s creada en el directorio", upn)
        return success(user_principal_name=upn, mail_nickname=nickname, response=response)

    def update_user(self, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            self.directory_repo.update_user(user_id, payload)
        except ApiError as e:
            return api_failure(e, 'Error al actualizar el usuario')
        return success()

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        try:
            self.directory_repo.delete_user(user_id)
        except ApiError as e:
            return api_failure(e, 'Error al eliminar el usuario')
        logger.info("Cuenta %s eliminada del directorio", user_id)
        return success()

    def reset_password(self, user_id: str) -> Dict[str, Any]:
        try:
            return success(password=self.directory_repo.reset_password(user_id))
        except ApiError as e:
            return api_failure(e, 'Error al restablecer la contraseña')

    # =========================================================================
    # BUZONES
    # =========================================================================

    def messages(self, mailbox: str, query: str = '', unread_only: bool = False,
                 top: int = 50) -> Dict[str, Any]:
        try:
            if (query or '').strip():
                items = self.directory_repo.search_messages(mailbox, query.strip(), top)
            else:
                items = self.directory_repo.list_messages(mailbox, top, unread_only)
        except ApiError as e:
            return api_failure(e, 'Error al cargar los correos')
        return success(messages=items)

    def send_message(self, mailbox: str, to: Iterable[str], subject: str, body: str,
                     cc: Iterable[str] = (), is_html: bool = False) -> Dict[str, Any]:
        recipients = [t.strip() for t in to if t and t.strip()]
        if not recipients:
            return failure('Capture al menos un destinatario')
        if not (subject or '').strip():
            return failure('El asunto es obligatorio')
        try:
            self.directory_repo.send_message(mailbox, {
                'to': recipients,
                'cc': [c.strip() for c in cc if c and c.strip()],
                'subject': subject.strip(),
                'body': body or '',
                'isHtml': bool(is_html),
            })
        except ApiError as e:
            return api_failure(e, 'Error al enviar el correo')
        return success()

    def mark_as_read(self, mailbox: str, message_id: str) -> Dict[str, Any]:
        try:
            self.directory_repo.mark_as_read(mailbox, message_id)
        except ApiError as e:
            return api_failure(e, 'Error al marcar el correo como leído')
        return success()
