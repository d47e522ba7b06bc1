# ==============================================================================
# REPOSITORIO DE RECIBOS
# ==============================================================================
# Endpoints /recibos/* del backend: búsqueda avanzada, listados, estadísticas,
# cancelación/reversa y descargas (PDF, Excel).
# El orden de los resultados lo decide el servidor; aquí no se reordena nada.
# ==============================================================================

from typing import Any, Dict, List, Optional

from recibos_caja.models import (
    Download,
    RecalculationResult,
    Receipt,
    ReceiptSearchFilters,
    ReceiptSearchResult,
    ReceiptStatistics,
)
from .base import BaseRepository, NotFoundError


class ReceiptRepository(BaseRepository):
    """
    Repositorio de recibos.

    Formato de un recibo en el backend (ReciboDto / ReciboExtendido):
    {
        "idRecibo": 10, "folio": "REC-000010", "estatus": "Pendiente",
        "subtotal": 1500.0, "descuento": 0, "recargos": 0,
        "total": 1500.0, "saldo": 1500.0, "detalles": [...]
    }
    """

    def get_by_id(self, id_recibo: int) -> Optional[Receipt]:
        """
        Obtiene un recibo por ID.

        Returns:
            Receipt o None si no existe
        """
        try:
            data = self.api.get(f'/recibos/{int(id_recibo)}')
        except NotFoundError:
            return None
        return Receipt.from_dict(data) if data else None

    def get_by_folio(self, folio: str) -> Optional[Receipt]:
        try:
            data = self.api.get(f'/recibos/folio/{folio.strip()}')
        except NotFoundError:
            return None
        return Receipt.from_dict(data) if data else None

    def search(self, filters: ReceiptSearchFilters) -> ReceiptSearchResult:
        """Búsqueda avanzada paginada con contadores agregados."""
        data = self.api.get('/recibos/buscar', params=filters.to_params())
        return ReceiptSearchResult.from_dict(data)

    def list_admin(
        self,
        id_periodo_academico: Optional[int] = None,
        id_estudiante: Optional[int] = None,
        estatus: Optional[List[int]] = None,
        solo_vencidos: bool = False,
        matricula: Optional[str] = None,
        folio: Optional[str] = None
    ) -> ReceiptSearchResult:
        """Listado administrativo (/recibos/admin). Estatus múltiple = parámetro repetido."""
        data = self.api.get('/recibos/admin', params={
            'idPeriodoAcademico': id_periodo_academico,
            'idEstudiante': id_estudiante,
            'estatus': estatus,
            'soloVencidos': solo_vencidos,
            'matricula': matricula,
            'folio': folio,
        })
        if isinstance(data, list):
            return ReceiptSearchResult.from_dict({'recibos': data, 'totalRegistros': len(data)})
        return ReceiptSearchResult.from_dict(data)

    def statistics(self, id_periodo_academico: Optional[int] = None) -> ReceiptStatistics:
        data = self.api.get('/recibos/estadisticas', params={
            'idPeriodoAcademico': id_periodo_academico,
        })
        return ReceiptStatistics.from_dict(data)

    # =========================================================================
    # TRANSICIONES TERMINALES
    # =========================================================================

    def cancel(self, id_recibo: int, motivo: str) -> Optional[Receipt]:
        data = self.api.put(f'/recibos/{int(id_recibo)}/cancelar', json={'motivo': motivo})
        return Receipt.from_dict(data) if isinstance(data, dict) and data.get('idRecibo') else None

    def reverse(self, id_recibo: int, motivo: str) -> Optional[Receipt]:
        data = self.api.put(f'/recibos/{int(id_recibo)}/reversar', json={'motivo': motivo})
        return Receipt.from_dict(data) if isinstance(data, dict) and data.get('idRecibo') else None

    def recalculate(self, id_estudiante: int, id_periodo_academico: int) -> RecalculationResult:
        """Recalcula recargos/descuentos de los recibos de un estudiante en un periodo."""
        data = self.api.post('/recibos/recalcular', json={
            'idEstudiante': id_estudiante,
            'idPeriodoAcademico': id_periodo_academico,
        })
        return RecalculationResult.from_dict(data)

    # =========================================================================
    # REPORTES Y DESCARGAS
    # =========================================================================

    def overdue_report(
        self,
        id_periodo_academico: Optional[int] = None,
        dias_vencido_minimo: Optional[int] = None
    ) -> Dict[str, Any]:
        """Reporte de cartera vencida (se muestra tal cual lo calcula el servidor)."""
        return self.api.get('/recibos/reportes/cartera-vencida', params={
            'idPeriodoAcademico': id_periodo_academico,
            'diasVencidoMinimo': dias_vencido_minimo,
        }) or {}

    def download_pdf(self, id_recibo: int) -> Download:
        return self.api.get_blob(f'/recibos/{int(id_recibo)}/pdf', f'Recibo_{int(id_recibo)}.pdf')

    def export_excel(self, filters: ReceiptSearchFilters) -> Download:
        params = filters.to_params()
        # El Excel no se pagina ni filtra por fechas
        for key in ('pagina', 'tamanioPagina', 'fechaEmisionDesde', 'fechaEmisionHasta',
                    'fechaVencimientoDesde', 'fechaVencimientoHasta'):
            params.pop(key, None)
        return self.api.get_blob('/recibos/exportar-excel', 'Recibos.xlsx', params=params)
