import os
import sys
from datetime import date

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from recibos_caja.models import Receipt, ReceiptStatus
from recibos_caja.services import ExportService, to_csv
from recibos_caja.services.export_service import RECEIPT_HEADERS


def test_zero_rows_are_refused():
    result = ExportService().export_csv(['Folio'], [], 'vacio.csv')
    assert result == {'ok': False, 'error': 'No hay datos para exportar'}


def test_receipts_export_refuses_empty_search():
    assert ExportService().export_receipts([])['error'] == 'No hay datos para exportar'


def test_csv_has_bom_quotes_and_no_trailing_newline():
    text = to_csv(['Folio', 'Nombre'], [['A-1', 'Ana "La Jefa" López'], ['A-2', None]])
    assert text.startswith('\ufeff')
    assert text == '\ufeff"Folio","Nombre"\n"A-1","Ana ""La Jefa"" López"\n"A-2",""'


def test_receipt_export_download():
    receipt = Receipt(
        id_recibo=1,
        folio='REC-000001',
        matricula='A0001',
        nombre_completo='Ana López',
        fecha_emision='2025-01-10T00:00:00',
        fecha_vencimiento='2025-01-17T00:00:00',
        estatus=ReceiptStatus.PARCIAL,
        subtotal=1000,
        total=1000,
        saldo=250.5,
        dias_vencido=3,
    )

    result = ExportService().export_receipts([receipt])

    assert result['ok'] is True
    download = result['download']
    assert download.filename == f'Recibos_{date.today().isoformat()}.csv'
    assert download.content_type == 'text/csv; charset=utf-8'
    text = download.content.decode('utf-8')
    header, row = text.lstrip('\ufeff').split('\n')
    assert header.split(',')[0] == '"Folio"'
    assert len(header.split(',')) == len(RECEIPT_HEADERS)
    assert row == ('"REC-000001","A0001","Ana López","","2025-01-10","2025-01-17",'
                   '"Pago Parcial","1000.00","0.00","0.00","1000.00","250.50","3"')
