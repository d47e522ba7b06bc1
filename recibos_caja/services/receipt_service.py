# ==============================================================================
# SERVICIO DE RECIBOS
# ==============================================================================
# Búsqueda, estadísticas y transiciones terminales (cancelar, reversar).
#
# REGLAS DE ESTADO (se aplican ANTES de llamar al backend):
#   - Reversar: sólo si el estatus es Pagado o Pago Parcial
#   - Cancelar: sólo si el estatus NO es Cancelado ni Pagado
#   - Eliminar: sólo si saldo == total (nunca se aplicó un pago)
#   - Cancelar y reversar exigen motivo no vacío
#
# El estatus nunca se infiere localmente: tras cada transición se usa lo que
# responde el servidor.
# ==============================================================================

import logging
from typing import Any, Dict, Optional

from recibos_caja.models import Receipt, ReceiptSearchFilters, ReceiptStatus
from recibos_caja.repositories.base import ApiError
from recibos_caja.repositories.interfaces import IReceiptRepository
from .results import api_failure, failure, invalid, success
from .validation import parse_positive_int, validate_reason

logger = logging.getLogger(__name__)

REVERSIBLE_STATUSES = frozenset([ReceiptStatus.PAGADO, ReceiptStatus.PARCIAL])
NON_CANCELLABLE_STATUSES = frozenset([ReceiptStatus.CANCELADO, ReceiptStatus.PAGADO])


class TransitionError(Exception):
    """La acción no está permitida en el estatus actual del recibo."""

    def __init__(self, receipt: Receipt, action: str):
        self.receipt = receipt
        self.action = action
        super().__init__(
            f"No se puede {action} el recibo {receipt.folio or receipt.id_recibo} "
            f"con estatus {receipt.estatus_nombre}"
        )


# ==============================================================================
# COMPUERTAS DE ESTADO
# ==============================================================================

def can_reverse(receipt: Receipt) -> bool:
    return receipt.estatus in REVERSIBLE_STATUSES


def can_cancel(receipt: Receipt) -> bool:
    return receipt.estatus is not None and receipt.estatus not in NON_CANCELLABLE_STATUSES


def can_delete(receipt: Receipt) -> bool:
    """Sólo se borra un recibo al que nunca se le aplicó un pago."""
    return abs(receipt.saldo - receipt.total) < 0.005


def can_pay(receipt: Receipt) -> bool:
    return (
        receipt.estatus is not None
        and receipt.estatus not in (ReceiptStatus.PAGADO, ReceiptStatus.CANCELADO)
        and receipt.saldo > 0
    )


def allowed_actions(receipt: Receipt) -> Dict[str, bool]:
    """Qué botones de acción se habilitan para el recibo."""
    return {
        'reversar': can_reverse(receipt),
        'cancelar': can_cancel(receipt),
        'eliminar': can_delete(receipt),
        'pagar': can_pay(receipt),
    }


_GATES = {
    'cancelar': can_cancel,
    'reversar': can_reverse,
    'eliminar': can_delete,
    'pagar': can_pay,
}


def ensure_allowed(receipt: Receipt, action: str) -> None:
    """
    Raises:
        TransitionError: si la compuerta de la acción está cerrada
    """
    if not _GATES[action](receipt):
        raise TransitionError(receipt, action)


# ==============================================================================
# SERVICIO
# ==============================================================================

class ReceiptService:
    """
    Servicio para consulta y transiciones de recibos.

    Responsabilidades:
    - Búsqueda avanzada (sólo con disparo explícito desde la UI)
    - Compuertas de cancelar/reversar
    - Descargas (PDF, Excel) tal como las genera el backend
    """

    def __init__(self, receipt_repo: IReceiptRepository, page_size: int = 50):
        self.receipt_repo = receipt_repo
        self.page_size = page_size

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def search(self, filters: ReceiptSearchFilters) -> Dict[str, Any]:
        """
        Ejecuta la búsqueda. Cada llamada reemplaza por completo la página
        anterior (no hay caché ni mezcla incremental).
        """
        filters = filters.cleaned()
        try:
            result = self.receipt_repo.search(filters)
        except ApiError as e:
            return api_failure(e, 'Error al buscar recibos')
        return success(result=result, filters=filters)

    def statistics(self, id_periodo_academico: Optional[int] = None) -> Dict[str, Any]:
        try:
            stats = self.receipt_repo.statistics(id_periodo_academico)
        except ApiError as e:
            return api_failure(e, 'Error al obtener estadísticas de recibos')
        return success(statistics=stats)

    def list_admin(self, id_periodo_academico: Any = None, id_estudiante: Any = None,
                   estatus: Any = None, solo_vencidos: bool = False,
                   matricula: str = None, folio: str = None) -> Dict[str, Any]:
        """Listado administrativo; `estatus` acepta varios valores (nombres o números)."""
        if estatus is not None and not isinstance(estatus, (list, tuple)):
            estatus = [estatus]
        codes = [ReceiptStatus.parse(s) for s in estatus or []]
        if any(code is None for code in codes):
            return failure('Estatus de recibo inválido')
        try:
            result = self.receipt_repo.list_admin(
                parse_positive_int(id_periodo_academico),
                parse_positive_int(id_estudiante),
                [int(code) for code in codes] or None,
                solo_vencidos,
                (matricula or '').strip() or None,
                (folio or '').strip() or None,
            )
        except ApiError as e:
            return api_failure(e, 'Error al listar recibos')
        return success(result=result)

    def recalculate(self, id_estudiante: Any, id_periodo_academico: Any) -> Dict[str, Any]:
        """Recalcula recargos y descuentos; los montos nuevos los decide el servidor."""
        student = parse_positive_int(id_estudiante)
        period = parse_positive_int(id_periodo_academico)
        if student is None or period is None:
            return failure('Seleccione estudiante y periodo')
        try:
            result = self.receipt_repo.recalculate(student, period)
        except ApiError as e:
            return api_failure(e, 'Error al recalcular los recibos')
        logger.info("Recibos recalculados: estudiante %s, periodo %s, %d recibos",
                    student, period, result.recibos_actualizados)
        return success(result=result)

    def get(self, id_recibo: int) -> Dict[str, Any]:
        try:
            receipt = self.receipt_repo.get_by_id(id_recibo)
        except ApiError as e:
            return api_failure(e, 'Error al obtener el recibo')
        if receipt is None:
            return failure('Recibo no encontrado')
        if not receipt.is_consistent():
            logger.warning(
                "Recibo %s con montos inconsistentes: %s",
                receipt.id_recibo, '; '.join(receipt.invariant_errors())
            )
        return success(receipt=receipt, actions=allowed_actions(receipt))

    def find_by_folio(self, folio: str) -> Dict[str, Any]:
        if not (folio or '').strip():
            return failure('Capture un folio')
        try:
            receipt = self.receipt_repo.get_by_folio(folio)
        except ApiError as e:
            return api_failure(e, 'Error al buscar el folio')
        if receipt is None:
            return failure(f'No existe el folio {folio.strip()}')
        return success(receipt=receipt, actions=allowed_actions(receipt))

    # =========================================================================
    # TRANSICIONES
    # =========================================================================

    def cancel(self, id_recibo: int, motivo: str, user: str = None) -> Dict[str, Any]:
        return self._terminal_transition(id_recibo, motivo, 'cancelar', user)

    def reverse(self, id_recibo: int, motivo: str, user: str = None) -> Dict[str, Any]:
        return self._terminal_transition(id_recibo, motivo, 'reversar', user)

    def _terminal_transition(self, id_recibo: int, motivo: str, action: str, user: str) -> Dict[str, Any]:
        reason = validate_reason(motivo)
        if not reason.ok:
            return invalid(reason)

        # El estatus que mostró la tabla puede estar viejo: se vuelve a leer
        current = self.get(id_recibo)
        if not current['ok']:
            return current
        receipt = current['receipt']

        try:
            ensure_allowed(receipt, action)
        except TransitionError as e:
            return failure(str(e))

        operation = self.receipt_repo.cancel if action == 'cancelar' else self.receipt_repo.reverse
        try:
            updated = operation(receipt.id_recibo, reason.value)
        except ApiError as e:
            return api_failure(e, f'Error al {action} el recibo')

        logger.info(
            "Recibo %s: %s por %s (motivo: %s)",
            receipt.folio or receipt.id_recibo, action, user or 'anónimo', reason.value
        )
        return success(receipt=updated or receipt, previous_status=receipt.estatus)

    # =========================================================================
    # DESCARGAS Y REPORTES
    # =========================================================================

    def download_pdf(self, id_recibo: int) -> Dict[str, Any]:
        try:
            return success(download=self.receipt_repo.download_pdf(id_recibo))
        except ApiError as e:
            return api_failure(e, 'Error al descargar el PDF del recibo')

    def export_excel(self, filters: ReceiptSearchFilters) -> Dict[str, Any]:
        try:
            return success(download=self.receipt_repo.export_excel(filters.cleaned()))
        except ApiError as e:
            return api_failure(e, 'Error al exportar recibos a Excel')

    def overdue_report(self, id_periodo_academico: Optional[int] = None,
                       dias_vencido_minimo: Optional[int] = None) -> Dict[str, Any]:
        try:
            report = self.receipt_repo.overdue_report(id_periodo_academico, dias_vencido_minimo)
        except ApiError as e:
            return api_failure(e, 'Error al obtener la cartera vencida')
        return success(report=report)
