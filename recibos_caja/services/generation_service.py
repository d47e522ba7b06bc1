# ==============================================================================
# SERVICIO DE GENERACIÓN DE RECIBOS (aspirantes)
# ==============================================================================
# Tres caminos de creación, mutuamente excluyentes:
#   1. generate_manual      → monto + concepto capturados
#   2. generate_by_concept  → concepto del catálogo (monto lo resuelve el backend)
#   3. generate_from_template → expansión de la plantilla del plan/cuatrimestre
#
# "No hay plantilla" NO es un error: find_template regresa ok con template=None
# y la UI muestra "sin plantilla disponible".
# ==============================================================================

import logging
from typing import Any, Dict, List

from recibos_caja.models import Receipt, ReceiptStatus, money
from recibos_caja.repositories.base import ApiError
from recibos_caja.repositories.interfaces import IApplicantRepository
from recibos_caja.performance_logger import profile_function
from .receipt_service import TransitionError, ensure_allowed
from .results import api_failure, failure, invalid, success
from .validation import parse_positive_int, validate_concept_receipt, validate_manual_receipt

logger = logging.getLogger(__name__)


def summarize_receipts(receipts: List[Receipt]) -> Dict[str, float]:
    """
    Totales para mostrar en el modal del aspirante (no se mandan al backend).
    Los recibos cancelados no cuentan.
    """
    active = [r for r in receipts if r.estatus != ReceiptStatus.CANCELADO]
    total = money(sum(r.total for r in active))
    pendiente = money(sum(r.saldo for r in active))
    return {
        'total': total,
        'pagado': money(total - pendiente),
        'pendiente': pendiente,
        'descuento': money(sum(r.descuento for r in active)),
        'recibos': len(active),
    }


class GenerationService:
    """
    Servicio de generación de recibos para aspirantes.

    Ninguna generación es idempotente; las rutas la envuelven con el
    InFlightGuard para evitar dobles envíos.
    """

    def __init__(
        self,
        applicant_repo: IApplicantRepository,
        default_concept: str = 'Cuota de Inscripcion',
        default_due_days: int = 7
    ):
        self.applicant_repo = applicant_repo
        self.default_concept = default_concept
        self.default_due_days = default_due_days

    def applicant_receipts(self, id_aspirante: int) -> Dict[str, Any]:
        """Siempre consulta al backend (el modal se recarga cada vez que se abre)."""
        try:
            receipts = self.applicant_repo.list_receipts(id_aspirante)
        except ApiError as e:
            return api_failure(e, 'Error al cargar los recibos del aspirante')
        return success(receipts=receipts, summary=summarize_receipts(receipts))

    # =========================================================================
    # GENERACIÓN
    # =========================================================================

    @profile_function(name="Generar recibo manual")
    def generate_manual(self, id_aspirante: int, monto: Any, concepto: Any = None,
                        dias_vencimiento: Any = None) -> Dict[str, Any]:
        """
        Genera un recibo con monto y concepto capturados.

        Returns:
            {'ok': True, 'receipt': Receipt} o {'ok': False, 'error', 'errors'}
        """
        if concepto is None:
            concepto = self.default_concept
        check = validate_manual_receipt(monto, concepto, dias_vencimiento, self.default_due_days)
        if not check.ok:
            return invalid(check)
        data = check.value
        try:
            receipt = self.applicant_repo.generate_manual_receipt(
                id_aspirante, data['monto'], data['concepto'], data['dias_vencimiento']
            )
        except ApiError as e:
            return api_failure(e, 'Error al generar el recibo')
        logger.info("Recibo %s generado para aspirante %s", receipt.folio, id_aspirante)
        return success(receipt=receipt)

    @profile_function(name="Generar recibo por concepto")
    def generate_by_concept(self, id_aspirante: int, id_concepto_pago: Any,
                            dias_vencimiento: Any = None) -> Dict[str, Any]:
        check = validate_concept_receipt(id_concepto_pago, dias_vencimiento, self.default_due_days)
        if not check.ok:
            return invalid(check)
        try:
            receipt = self.applicant_repo.generate_concept_receipt(
                id_aspirante, check.value['id_concepto_pago'], check.value['dias_vencimiento']
            )
        except ApiError as e:
            return api_failure(e, 'Error al generar el recibo por concepto')
        logger.info("Recibo %s (concepto %s) generado para aspirante %s",
                    receipt.folio, check.value['id_concepto_pago'], id_aspirante)
        return success(receipt=receipt)

    def find_template(self, id_aspirante: int) -> Dict[str, Any]:
        """
        Returns:
            {'ok': True, 'template': BillingTemplate | None}
        """
        try:
            template = self.applicant_repo.find_template(id_aspirante)
        except ApiError as e:
            return api_failure(e, 'Error al buscar la plantilla de cobro')
        return success(template=template)

    @profile_function(name="Generar recibos desde plantilla")
    def generate_from_template(self, id_aspirante: int, id_plantilla_cobro: Any,
                               eliminar_pendientes_existentes: bool = False) -> Dict[str, Any]:
        template_id = parse_positive_int(id_plantilla_cobro)
        if template_id is None:
            return failure('Plantilla de cobro inválida')
        try:
            receipts = self.applicant_repo.generate_from_template(
                id_aspirante, template_id, bool(eliminar_pendientes_existentes)
            )
        except ApiError as e:
            return api_failure(e, 'Error al generar recibos desde la plantilla')
        logger.info(
            "Plantilla %s expandida en %d recibos para aspirante %s (purga=%s)",
            template_id, len(receipts), id_aspirante, bool(eliminar_pendientes_existentes)
        )
        return success(receipts=receipts)

    # =========================================================================
    # BORRADO
    # =========================================================================

    def delete_applicant_receipt(self, receipt: Receipt) -> Dict[str, Any]:
        """
        Elimina un recibo sin pagos aplicados.
        Si saldo != total se rechaza aquí, sin llamar al backend.
        """
        try:
            ensure_allowed(receipt, 'eliminar')
        except TransitionError:
            return failure(
                f'El recibo {receipt.folio or receipt.id_recibo} tiene pagos aplicados '
                f'y no se puede eliminar'
            )
        try:
            self.applicant_repo.delete_receipt(receipt.id_recibo)
        except ApiError as e:
            return api_failure(e, 'Error al eliminar el recibo')
        logger.info("Recibo %s eliminado", receipt.folio or receipt.id_recibo)
        return success(id_recibo=receipt.id_recibo)
