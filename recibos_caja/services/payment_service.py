# ==============================================================================
# SERVICIO DE PAGOS
# ==============================================================================
# Centraliza la lógica de cobro en caja.
#
# Registrar y aplicar son DOS transiciones:
#   register()  → el pago existe, todavía sin aplicar
#   apply()     → se distribuye entre renglones de uno o varios recibos
# register_and_apply() es el atajo de un solo recibo que usa la caja.
#
# El saldo y el estatus resultantes SIEMPRE los calcula el backend; aquí
# sólo se valida lo que se puede rechazar sin preguntar.
# ==============================================================================

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from recibos_caja.models import Payment, PaymentStatus, Receipt, ReceiptStatus
from recibos_caja.repositories.base import ApiError
from recibos_caja.repositories.interfaces import ICashRegisterRepository, IPaymentRepository
from recibos_caja.performance_logger import profile_function
from .results import api_failure, failure, invalid, success
from .validation import (
    parse_amount,
    validate_applications,
    validate_payment,
    validate_reason,
)

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Servicio para gestión de pagos.

    Responsabilidades:
    - Registrar pagos y aplicarlos a renglones
    - Validar montos contra el saldo mostrado
    - Cancelar pagos y ajustar renglones/recargos (con motivo)
    """

    def __init__(
        self,
        payment_repo: IPaymentRepository,
        cash_repo: ICashRegisterRepository = None,
        currency: str = 'MXN'
    ):
        """
        Args:
            payment_repo: Repositorio de pagos
            cash_repo: Repositorio de caja (ajustes de renglones y recargos)
            currency: Moneda por defecto
        """
        self.payment_repo = payment_repo
        self.cash_repo = cash_repo
        self.currency = currency

    def _build_payment(self, monto: float, id_medio_pago: int, referencia: Optional[str],
                       notas: Optional[str], fecha_pago_utc: Optional[str]) -> Payment:
        return Payment(
            id_medio_pago=id_medio_pago,
            monto=monto,
            fecha_pago_utc=fecha_pago_utc or datetime.now(timezone.utc).isoformat(),
            moneda=self.currency,
            estatus=PaymentStatus.CONFIRMADO,
            referencia=(referencia or '').strip() or None,
            notas=(notas or '').strip() or None,
        )

    # =========================================================================
    # DOS PASOS: REGISTRAR → APLICAR
    # =========================================================================

    def register(
        self,
        monto: Any,
        id_medio_pago: Any,
        referencia: str = None,
        notas: str = None,
        fecha_pago_utc: str = None
    ) -> Dict[str, Any]:
        """
        Registra un pago sin aplicarlo.

        Returns:
            {'ok': True, 'id_pago': int, 'payment': Payment}
        """
        check = validate_payment(monto, id_medio_pago)
        if not check.ok:
            return invalid(check)
        payment = self._build_payment(
            check.value['monto'], check.value['id_medio_pago'], referencia, notas, fecha_pago_utc
        )
        try:
            id_pago = self.payment_repo.register(payment)
        except ApiError as e:
            return api_failure(e, 'Error al registrar el pago')
        payment.id_pago = id_pago
        logger.info("Pago %s registrado por %.2f", id_pago, payment.monto)
        return success(id_pago=id_pago, payment=payment)

    def apply(self, id_pago: Any, lines: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Aplica un pago registrado a uno o más renglones.

        Args:
            id_pago: ID del pago registrado
            lines: [{'idReciboDetalle': int, 'monto': float}, ...]
        """
        try:
            id_pago = int(id_pago)
        except (TypeError, ValueError):
            return failure('Pago inválido')
        check = validate_applications(lines)
        if not check.ok:
            return invalid(check)
        try:
            ids = self.payment_repo.apply(id_pago, check.value)
        except ApiError as e:
            return api_failure(e, 'Error al aplicar el pago')
        logger.info("Pago %s aplicado a %d renglones", id_pago, len(check.value))
        return success(id_pago=id_pago, aplicaciones=ids)

    def register_then_apply(
        self,
        monto: Any,
        id_medio_pago: Any,
        lines: Iterable[Dict[str, Any]],
        referencia: str = None,
        notas: str = None
    ) -> Dict[str, Any]:
        """
        Liquidación de varios recibos con un solo pago.
        Las líneas se validan antes de registrar para no dejar pagos huérfanos.
        """
        lines = list(lines or [])
        check = validate_applications(lines)
        if not check.ok:
            return invalid(check)
        amount = parse_amount(monto)
        applied = round(sum(a.monto for a in check.value), 2)
        if amount is not None and applied - amount > 0.005:
            return failure(f'Lo aplicado (${applied:.2f}) excede el monto del pago (${amount:.2f})')

        registered = self.register(monto, id_medio_pago, referencia, notas)
        if not registered['ok']:
            return registered
        applied_result = self.apply(registered['id_pago'], lines)
        # Si falla la aplicación el pago queda registrado; se reporta su ID
        applied_result['id_pago'] = registered['id_pago']
        return applied_result

    # =========================================================================
    # ATAJO DE UN SOLO RECIBO
    # =========================================================================

    @profile_function(name="Registrar y aplicar pago")
    def register_and_apply(
        self,
        receipt: Receipt,
        monto: Any,
        id_medio_pago: Any,
        referencia: str = None,
        notas: str = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Registra y aplica un pago a un recibo.

        Rechazos locales (sin llamar al backend):
        - Recibo Pagado o Cancelado
        - Monto <= 0
        - Monto mayor al saldo

        Returns:
            Dict con resultado (ok, result, status_changed, old_status, new_status)
        """
        if receipt.estatus in (ReceiptStatus.PAGADO, ReceiptStatus.CANCELADO):
            return failure(f'El recibo ya está {receipt.estatus_nombre.lower()}; no admite pagos')

        check = validate_payment(monto, id_medio_pago)
        if not check.ok:
            return invalid(check)
        amount = check.value['monto']

        if amount - receipt.saldo > 0.005:
            return failure(f'El pago excede el saldo pendiente (${receipt.saldo:.2f})')

        payment = self._build_payment(amount, check.value['id_medio_pago'], referencia, notas, None)
        try:
            result = self.payment_repo.register_and_apply(receipt.id_recibo, payment)
        except ApiError as e:
            return api_failure(e, 'Error al registrar el pago')

        logger.info(
            "Pago %s de %.2f aplicado a recibo %s por %s (saldo %.2f → %.2f)",
            result.id_pago, result.monto_aplicado, receipt.folio or receipt.id_recibo,
            user or 'anónimo', result.saldo_anterior, result.saldo_nuevo
        )
        return success(
            result=result,
            status_changed=result.estatus_recibo_anterior != result.estatus_recibo_nuevo,
            old_status=result.estatus_recibo_anterior,
            new_status=result.estatus_recibo_nuevo,
        )

    # =========================================================================
    # CANCELACIÓN Y AJUSTES
    # =========================================================================

    def cancel_payment(self, id_pago: Any, motivo: str, autorizado_por: str = None) -> Dict[str, Any]:
        reason = validate_reason(motivo)
        if not reason.ok:
            return invalid(reason)
        try:
            self.payment_repo.cancel(int(id_pago), reason.value, autorizado_por)
        except (TypeError, ValueError):
            return failure('Pago inválido')
        except ApiError as e:
            return api_failure(e, 'Error al cancelar el pago')
        logger.info("Pago %s cancelado (motivo: %s)", id_pago, reason.value)
        return success(id_pago=int(id_pago))

    def modify_detail_amount(self, id_recibo: int, id_recibo_detalle: int,
                             nuevo_monto: Any, motivo: str) -> Dict[str, Any]:
        """Cambia el monto de un renglón. El total/saldo nuevos los calcula el backend."""
        reason = validate_reason(motivo)
        if not reason.ok:
            return invalid(reason)
        amount = parse_amount(nuevo_monto)
        if amount is None or amount < 0:
            return failure('El nuevo monto no puede ser negativo')
        try:
            result = self.cash_repo.modify_detail_amount(id_recibo, id_recibo_detalle, amount, reason.value)
        except ApiError as e:
            return api_failure(e, 'Error al modificar el renglón del recibo')
        if not result.exitoso:
            return failure(result.mensaje or 'El servidor rechazó el ajuste', adjustment=result)
        return success(adjustment=result)

    def modify_surcharge(self, id_recibo: int, nuevo_recargo: Any, motivo: str) -> Dict[str, Any]:
        reason = validate_reason(motivo)
        if not reason.ok:
            return invalid(reason)
        amount = parse_amount(nuevo_recargo)
        if amount is None or amount < 0:
            return failure('El recargo no puede ser negativo')
        try:
            result = self.cash_repo.modify_surcharge(id_recibo, amount, reason.value)
        except ApiError as e:
            return api_failure(e, 'Error al modificar el recargo')
        if not result.exitoso:
            return failure(result.mensaje or 'El servidor rechazó el ajuste', adjustment=result)
        return success(adjustment=result)

    def waive_surcharge(self, id_recibo: int, motivo: str) -> Dict[str, Any]:
        reason = validate_reason(motivo)
        if not reason.ok:
            return invalid(reason)
        try:
            data = self.cash_repo.waive_surcharge(id_recibo, reason.value)
        except ApiError as e:
            return api_failure(e, 'Error al condonar el recargo')
        return success(
            message=data.get('message') or 'Recargo condonado',
            recargo_condonado=data.get('recargoCondonado', 0),
        )

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def payment_methods(self) -> Dict[str, Any]:
        try:
            methods = [m for m in self.payment_repo.payment_methods() if m.activo]
        except ApiError as e:
            return api_failure(e, 'Error al cargar los medios de pago')
        return success(methods=methods)

    def get_payment(self, id_pago: int) -> Dict[str, Any]:
        try:
            payment = self.payment_repo.get(id_pago)
        except ApiError as e:
            return api_failure(e, 'Error al obtener el pago')
        if payment is None:
            return failure('Pago no encontrado')
        return success(payment=payment)

    def download_voucher(self, id_pago: int) -> Dict[str, Any]:
        try:
            return success(download=self.payment_repo.download_voucher(id_pago))
        except ApiError as e:
            return api_failure(e, 'Error al descargar el comprobante de pago')
