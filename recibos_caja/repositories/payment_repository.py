# ==============================================================================
# REPOSITORIO DE PAGOS
# ==============================================================================
# Dos transiciones separadas:
#   1. register(pago)        → POST /Pagos          → idPago
#   2. apply(idPago, líneas) → POST /Pagos/aplicar  → ids de aplicación
#
# Más el atajo de un solo recibo (POST /Pagos/registrar-y-aplicar), que es lo
# que usa la caja en el día a día.
# ==============================================================================

from typing import List, Optional

from recibos_caja.models import (
    Download,
    Payment,
    PaymentApplication,
    PaymentMethod,
    RegisterAndApplyResult,
)
from .base import ApiError, BaseRepository, NotFoundError


class PaymentRepository(BaseRepository):

    def register(self, payment: Payment) -> int:
        """
        Registra un pago (sin aplicarlo).

        Returns:
            idPago asignado por el backend
        """
        data = self.api.post('/Pagos', json=payment.to_dict())
        if isinstance(data, dict):
            data = data.get('idPago')
        try:
            return int(data)
        except (TypeError, ValueError):
            raise ApiError('El servidor no regresó el ID del pago', payload=data)

    def apply(self, id_pago: int, aplicaciones: List[PaymentApplication]) -> List[int]:
        """Distribuye un pago registrado entre renglones de uno o más recibos."""
        data = self.api.post('/Pagos/aplicar', json={
            'idPago': int(id_pago),
            'aplicaciones': [a.to_dict() for a in aplicaciones],
        })
        return [int(x) for x in data] if isinstance(data, list) else []

    def register_and_apply(self, id_recibo: int, payment: Payment) -> RegisterAndApplyResult:
        body = payment.to_dict()
        body['idRecibo'] = int(id_recibo)
        data = self.api.post('/Pagos/registrar-y-aplicar', json=body)
        return RegisterAndApplyResult.from_dict(data)

    def get(self, id_pago: int) -> Optional[Payment]:
        try:
            data = self.api.get(f'/Pagos/{int(id_pago)}')
        except NotFoundError:
            return None
        return Payment.from_dict(data) if data else None

    def payment_methods(self) -> List[PaymentMethod]:
        data = self.api.get('/catalogos/medios-pago')
        return [PaymentMethod.from_dict(m) for m in self._as_list(data)]

    def cancel(self, id_pago: int, motivo: str, autorizado_por: Optional[str] = None) -> None:
        self.api.post(f'/caja/pago/{int(id_pago)}/cancelar', json={
            'motivo': motivo,
            'autorizadoPor': autorizado_por,
        })

    def download_voucher(self, id_pago: int) -> Download:
        return self.api.get_blob(f'/pagos/{int(id_pago)}/comprobante', f'Comprobante_{int(id_pago)}.pdf')
