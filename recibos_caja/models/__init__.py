# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Proyecciones locales de las entidades del API remoto, como dataclasses.
#   - Type hints para documentación y autocompletado
#   - Lectura del JSON camelCase del backend en un solo lugar (from_dict)
#   - Estados como enumeraciones (ReceiptStatus y PaymentStatus son distintas)
# ==============================================================================

from .entities import (
    # Utilidades
    money,

    # Recibos
    Receipt,
    ReceiptLine,
    ReceiptStatus,
    ReceiptSearchFilters,
    ReceiptSearchResult,
    ReceiptStatistics,

    # Plantillas
    BillingTemplate,
    BillingTemplateLine,

    # Pagos
    Payment,
    PaymentApplication,
    PaymentMethod,
    PaymentStatus,
    RegisterAndApplyResult,
    AdjustmentResult,

    # Corte de caja
    Cashier,
    CashCut,
    CashCutPayment,
    CashCutSummary,
    CashCutTotals,

    # Becas
    RecalculationResult,
    ScholarshipType,
    StudentScholarship,

    # Directorio
    DirectoryUser,
    MailMessage,

    # Descargas
    Download,
)

__all__ = [
    'money',

    'Receipt',
    'ReceiptLine',
    'ReceiptStatus',
    'ReceiptSearchFilters',
    'ReceiptSearchResult',
    'ReceiptStatistics',

    'BillingTemplate',
    'BillingTemplateLine',

    'Payment',
    'PaymentApplication',
    'PaymentMethod',
    'PaymentStatus',
    'RegisterAndApplyResult',
    'AdjustmentResult',

    'Cashier',
    'CashCut',
    'CashCutPayment',
    'CashCutSummary',
    'CashCutTotals',

    'RecalculationResult',
    'ScholarshipType',
    'StudentScholarship',

    'DirectoryUser',
    'MailMessage',

    'Download',
]
