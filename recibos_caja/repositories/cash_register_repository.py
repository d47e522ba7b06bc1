# ==============================================================================
# REPOSITORIO DE CAJA
# ==============================================================================
# Cortes de caja y ajustes puntuales sobre recibos (/caja/*).
# Todas las sumas las calcula el backend; aquí sólo se leen.
# ==============================================================================

from typing import Any, Dict, List, Optional

from recibos_caja.models import AdjustmentResult, CashCut, CashCutSummary, Cashier, Download
from .base import BaseRepository, NotFoundError


class CashRegisterRepository(BaseRepository):

    def pending_receipts(self, criterio: str) -> Dict[str, Any]:
        """
        Busca recibos por cobrar de un estudiante/aspirante (matrícula, nombre o folio).

        Returns:
            {'estudiante': {...}, 'recibos': [...]} tal como lo manda el servidor
        """
        data = self.api.get('/caja/recibos-pendientes', params={'criterio': criterio})
        return data if isinstance(data, dict) else {'recibos': data or []}

    # =========================================================================
    # CORTES
    # =========================================================================

    def generate_cut(
        self,
        fecha_inicio: str,
        fecha_fin: str,
        id_usuario_caja: Optional[str] = None
    ) -> CashCutSummary:
        data = self.api.post('/caja/corte/generar', json={
            'fechaInicio': fecha_inicio,
            'fechaFin': fecha_fin,
            'idUsuarioCaja': id_usuario_caja,
        })
        return CashCutSummary.from_dict(data or {})

    def close_cut(self, payload: Dict[str, Any]) -> CashCut:
        """Cierra el corte; a partir de aquí es inmutable."""
        data = self.api.post('/caja/corte/cerrar', json=payload)
        return CashCut.from_dict(data)

    def list_cuts(
        self,
        usuario_id: Optional[str] = None,
        fecha_inicio: Optional[str] = None,
        fecha_fin: Optional[str] = None
    ) -> List[CashCut]:
        data = self.api.get('/caja/cortes', params={
            'usuarioId': usuario_id,
            'fechaInicio': fecha_inicio,
            'fechaFin': fecha_fin,
        })
        return [CashCut.from_dict(c) for c in self._as_list(data)]

    def get_cut(self, id_corte: int) -> Optional[CashCut]:
        try:
            data = self.api.get(f'/caja/cortes/{int(id_corte)}')
        except NotFoundError:
            return None
        return CashCut.from_dict(data) if data else None

    def download_cut_pdf(self, id_corte: int) -> Download:
        return self.api.get_blob(f'/caja/cortes/{int(id_corte)}/pdf', f'CorteCaja_{int(id_corte)}.pdf')

    def preview_cut_pdf(
        self,
        fecha_inicio: str,
        fecha_fin: str,
        id_usuario_caja: Optional[str] = None
    ) -> Download:
        """PDF de un corte generado pero todavía sin cerrar."""
        return self.api.post_blob('/caja/corte/pdf', f'CorteCaja_{fecha_inicio}_{fecha_fin}.pdf', json={
            'fechaInicio': fecha_inicio,
            'fechaFin': fecha_fin,
            'idUsuarioCaja': id_usuario_caja,
        })

    def cashiers(self) -> List[Cashier]:
        data = self.api.get('/caja/cajeros')
        return [Cashier.from_dict(c) for c in self._as_list(data)]

    # =========================================================================
    # AJUSTES (el backend recalcula total y saldo)
    # =========================================================================

    def modify_detail_amount(
        self,
        id_recibo: int,
        id_recibo_detalle: int,
        nuevo_monto: float,
        motivo: str
    ) -> AdjustmentResult:
        data = self.api.put(
            f'/caja/recibos/{int(id_recibo)}/detalles/{int(id_recibo_detalle)}',
            json={'nuevoMonto': nuevo_monto, 'motivo': motivo},
        )
        return AdjustmentResult.from_dict(data or {})

    def modify_surcharge(self, id_recibo: int, nuevo_recargo: float, motivo: str) -> AdjustmentResult:
        data = self.api.put(
            f'/caja/recibos/{int(id_recibo)}/recargo',
            json={'nuevoRecargo': nuevo_recargo, 'motivo': motivo},
        )
        return AdjustmentResult.from_dict(data or {})

    def waive_surcharge(self, id_recibo: int, motivo: str) -> Dict[str, Any]:
        """Condona el recargo. Respuesta: {'message', 'recargoCondonado'}."""
        data = self.api.post(f'/caja/recibos/{int(id_recibo)}/quitar-recargo', json={'motivo': motivo})
        return data if isinstance(data, dict) else {}
