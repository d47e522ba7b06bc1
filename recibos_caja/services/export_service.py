# ==============================================================================
# SERVICIO DE EXPORTACIÓN (CSV)
# ==============================================================================
# El CSV se arma localmente: BOM UTF-8 (para que Excel reconozca acentos),
# todas las celdas entre comillas, comillas internas duplicadas ("") y
# renglones separados por \n.
#
# Una exportación sin renglones se rechaza: nunca se produce un archivo vacío.
# Excel y PDF NO se arman aquí; los genera el backend.
# ==============================================================================

import csv
import io
from datetime import date
from typing import Any, Dict, Iterable, List, Sequence

from recibos_caja.models import Download, Receipt
from .results import failure, success

BOM = '\ufeff'

RECEIPT_HEADERS = [
    'Folio',
    'Matrícula',
    'Nombre',
    'Periodo',
    'Fecha Emisión',
    'Fecha Vencimiento',
    'Estatus',
    'Subtotal',
    'Descuento',
    'Recargos',
    'Total',
    'Saldo',
    'Días Vencido',
]


def to_csv(headers: Sequence[Any], rows: Iterable[Sequence[Any]]) -> str:
    """Texto CSV (con BOM) de encabezados + renglones."""
    si = io.StringIO()
    writer = csv.writer(si, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(['' if h is None else h for h in headers])
    for row in rows:
        writer.writerow(['' if cell is None else cell for cell in row])
    # Sin salto de línea al final del último renglón
    return BOM + si.getvalue()[:-1]


def receipt_row(r: Receipt) -> List[Any]:
    return [
        r.folio or '',
        r.matricula or '',
        r.nombre_completo or '',
        r.nombre_periodo or '',
        (r.fecha_emision or '')[:10],
        (r.fecha_vencimiento or '')[:10],
        r.estatus_nombre,
        f'{r.subtotal:.2f}',
        f'{r.descuento:.2f}',
        f'{r.recargos:.2f}',
        f'{r.total:.2f}',
        f'{r.saldo:.2f}',
        r.dias_vencido,
    ]


class ExportService:

    def export_csv(self, headers: Sequence[Any], rows: Iterable[Sequence[Any]],
                   filename: str) -> Dict[str, Any]:
        """
        Returns:
            {'ok': True, 'download': Download} o {'ok': False, 'error'} si no hay datos
        """
        rows = list(rows)
        if not rows:
            return failure('No hay datos para exportar')
        content = to_csv(headers, rows).encode('utf-8')
        return success(download=Download(
            content=content,
            filename=filename,
            content_type='text/csv; charset=utf-8',
        ))

    def export_receipts(self, receipts: List[Receipt]) -> Dict[str, Any]:
        filename = f'Recibos_{date.today().isoformat()}.csv'
        return self.export_csv(RECEIPT_HEADERS, [receipt_row(r) for r in receipts], filename)
