# ==============================================================================
# SERVICIO DE CORTE DE CAJA
# ==============================================================================
# generate() → resumen detallado (todavía abierto) de un rango de fechas
# close()    → persiste el corte; a partir de ahí es inmutable
# preview_pdf() → PDF del corte generado antes de cerrarlo
#
# No hay agregación local: totales por medio de pago y lista de pagos vienen
# calculados del backend y sólo se muestran.
# ==============================================================================

import logging
from typing import Any, Dict, Optional

from recibos_caja.models import money
from recibos_caja.repositories.base import ApiError
from recibos_caja.repositories.interfaces import ICashRegisterRepository
from .results import api_failure, failure, success
from .validation import ValidationError, parse_amount, validate_date_range

logger = logging.getLogger(__name__)


def cut_request(fecha_inicio: Any, fecha_fin: Any,
                id_usuario_caja: Optional[str] = None) -> Dict[str, Any]:
    """
    Cuerpo {fechaInicio, fechaFin, idUsuarioCaja} común a generar, cerrar y
    previsualizar un corte.

    Raises:
        ValidationError: fechas inválidas o rango invertido
    """
    start, end = validate_date_range(fecha_inicio, fecha_fin).raise_for_errors()
    return {
        'fechaInicio': start.isoformat(),
        'fechaFin': end.isoformat(),
        'idUsuarioCaja': (id_usuario_caja or '').strip() or None,
    }


class CashRegisterService:

    def __init__(self, cash_repo: ICashRegisterRepository):
        self.cash_repo = cash_repo

    def generate(self, fecha_inicio: Any, fecha_fin: Any,
                 id_usuario_caja: Optional[str] = None) -> Dict[str, Any]:
        """
        Genera el resumen del corte.

        Returns:
            {'ok': True, 'summary': CashCutSummary, 'request': {...}}
        """
        try:
            request = cut_request(fecha_inicio, fecha_fin, id_usuario_caja)
        except ValidationError as e:
            return failure(str(e), errors=e.errors)
        try:
            summary = self.cash_repo.generate_cut(
                request['fechaInicio'], request['fechaFin'], request['idUsuarioCaja']
            )
        except ApiError as e:
            return api_failure(e, 'Error al generar el corte de caja')
        return success(summary=summary, request=request)

    def close(self, fecha_inicio: Any, fecha_fin: Any, id_usuario_caja: Optional[str] = None,
              monto_inicial: Any = None, observaciones: str = None, user: str = None) -> Dict[str, Any]:
        """Cierra el corte del mismo rango que se generó."""
        try:
            payload = cut_request(fecha_inicio, fecha_fin, id_usuario_caja)
        except ValidationError as e:
            return failure(str(e), errors=e.errors)
        initial = parse_amount(monto_inicial) if monto_inicial not in (None, '') else 0.0
        if initial is None or initial < 0:
            return failure('El monto inicial debe ser un número mayor o igual a 0')
        payload['montoInicial'] = money(initial)
        payload['observaciones'] = (observaciones or '').strip() or None
        try:
            cut = self.cash_repo.close_cut(payload)
        except ApiError as e:
            return api_failure(e, 'Error al cerrar el corte de caja')
        logger.info("Corte %s cerrado por %s (total %.2f)",
                    cut.folio_corte_caja, user or 'anónimo', cut.total_general)
        return success(cut=cut)

    def get(self, id_corte: int) -> Dict[str, Any]:
        try:
            cut = self.cash_repo.get_cut(id_corte)
        except ApiError as e:
            return api_failure(e, 'Error al obtener el corte de caja')
        if cut is None:
            return failure('Corte de caja no encontrado')
        return success(cut=cut)

    def list(self, usuario_id: str = None, fecha_inicio: str = None,
             fecha_fin: str = None) -> Dict[str, Any]:
        try:
            cuts = self.cash_repo.list_cuts(usuario_id, fecha_inicio, fecha_fin)
        except ApiError as e:
            return api_failure(e, 'Error al listar cortes de caja')
        return success(cuts=cuts)

    def download_pdf(self, id_corte: int) -> Dict[str, Any]:
        try:
            return success(download=self.cash_repo.download_cut_pdf(id_corte))
        except ApiError as e:
            return api_failure(e, 'Error al descargar el PDF del corte')

    def preview_pdf(self, fecha_inicio: Any, fecha_fin: Any,
                    id_usuario_caja: Optional[str] = None) -> Dict[str, Any]:
        """PDF del corte antes de cerrarlo (mismo rango que generate)."""
        try:
            request = cut_request(fecha_inicio, fecha_fin, id_usuario_caja)
        except ValidationError as e:
            return failure(str(e), errors=e.errors)
        try:
            download = self.cash_repo.preview_cut_pdf(
                request['fechaInicio'], request['fechaFin'], request['idUsuarioCaja']
            )
        except ApiError as e:
            return api_failure(e, 'Error al generar el PDF del corte')
        return success(download=download)

    def cashiers(self) -> Dict[str, Any]:
        try:
            return success(cashiers=self.cash_repo.cashiers())
        except ApiError as e:
            return api_failure(e, 'Error al cargar la lista de cajeros')

    def pending_receipts(self, criterio: str) -> Dict[str, Any]:
        """Recibos por cobrar de un alumno (matrícula, nombre o folio)."""
        criterio = (criterio or '').strip()
        if len(criterio) < 3:
            return failure('Capture al menos 3 caracteres para buscar')
        try:
            data = self.cash_repo.pending_receipts(criterio)
        except ApiError as e:
            return api_failure(e, 'Error al buscar recibos por cobrar')
        return success(data=data)
