# ==============================================================================
# REPOSITORIO DE DIRECTORIO (Azure AD a través del backend)
# ==============================================================================
# Usuarios, dominios y buzones. El backend expone Microsoft Graph bajo /email.
# ==============================================================================

from typing import Any, Dict, List
from urllib.parse import quote

from recibos_caja.models import DirectoryUser, MailMessage
from .base import BaseRepository


class DirectoryRepository(BaseRepository):

    # =========================================================================
    # USUARIOS
    # =========================================================================

    def list_users(self, top: int = 100) -> List[DirectoryUser]:
        data = self.api.get('/email/users', params={'top': top})
        return [DirectoryUser.from_dict(u) for u in self._as_list(data)]

    def get_user(self, user_id_or_email: str) -> DirectoryUser:
        data = self.api.get(f'/email/users/{quote(user_id_or_email, safe="")}')
        return DirectoryUser.from_dict(data)

    def create_user(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea el usuario en el directorio.

        Returns:
            {'success', 'userId', 'userPrincipalName', 'message', ...}
        """
        return self.api.post('/email/users', json=payload) or {}

    def update_user(self, user_id: str, payload: Dict[str, Any]) -> None:
        self.api.put(f'/email/users/{quote(user_id, safe="")}', json=payload)

    def delete_user(self, user_id: str) -> None:
        self.api.delete(f'/email/users/{quote(user_id, safe="")}')

    def reset_password(self, user_id: str) -> str:
        data = self.api.post(f'/email/users/{quote(user_id, safe="")}/reset-password') or {}
        return data.get('password', '')

    def domains(self) -> List[str]:
        data = self.api.get('/email/domains')
        return [str(d) for d in data] if isinstance(data, list) else []

    # =========================================================================
    # BUZONES
    # =========================================================================

    def list_messages(self, mailbox: str, top: int = 50, unread_only: bool = False) -> List[MailMessage]:
        data = self.api.get(f'/email/{quote(mailbox, safe="")}', params={
            'top': top,
            'unreadOnly': unread_only,
        })
        return [MailMessage.from_dict(m) for m in self._as_list(data)]

    def search_messages(self, mailbox: str, query: str, top: int = 50) -> List[MailMessage]:
        data = self.api.get(f'/email/{quote(mailbox, safe="")}/search', params={
            'query': query,
            'top': top,
        })
        return [MailMessage.from_dict(m) for m in self._as_list(data)]

    def send_message(self, mailbox: str, payload: Dict[str, Any]) -> None:
        self.api.post(f'/email/{quote(mailbox, safe="")}/send', json=payload)

    def mark_as_read(self, mailbox: str, message_id: str) -> None:
        self.api.post(f'/email/{quote(mailbox, safe="")}/messages/{quote(message_id, safe="")}/read')
