# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos (protocolos) que cumplen los repositorios HTTP. Esto permite:
#
# 1. INDEPENDENCIA DEL TRANSPORTE
#    - Los servicios dependen de interfaces, NO de ApiClient
#    - Las pruebas pueden usar cualquier objeto que cumpla el contrato
#
# 2. DOCUMENTACIÓN
#    - Contratos claros de qué endpoint respalda cada operación
#
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from recibos_caja.models import (
    AdjustmentResult,
    BillingTemplate,
    CashCut,
    CashCutSummary,
    Cashier,
    DirectoryUser,
    Download,
    MailMessage,
    Payment,
    PaymentApplication,
    PaymentMethod,
    RecalculationResult,
    Receipt,
    ReceiptSearchFilters,
    ReceiptSearchResult,
    ReceiptStatistics,
    RegisterAndApplyResult,
    StudentScholarship,
)


@runtime_checkable
class IReceiptRepository(Protocol):
    """Recibos: búsqueda, estadísticas y transiciones terminales."""

    def get_by_id(self, id_recibo: int) -> Optional[Receipt]:
        ...

    def get_by_folio(self, folio: str) -> Optional[Receipt]:
        ...

    def search(self, filters: ReceiptSearchFilters) -> ReceiptSearchResult:
        ...

    def list_admin(self, id_periodo_academico: Optional[int] = None, id_estudiante: Optional[int] = None,
                   estatus: Optional[List[int]] = None, solo_vencidos: bool = False,
                   matricula: Optional[str] = None, folio: Optional[str] = None) -> ReceiptSearchResult:
        ...

    def statistics(self, id_periodo_academico: Optional[int] = None) -> ReceiptStatistics:
        ...

    def recalculate(self, id_estudiante: int, id_periodo_academico: int) -> RecalculationResult:
        ...

    def cancel(self, id_recibo: int, motivo: str) -> Optional[Receipt]:
        ...

    def reverse(self, id_recibo: int, motivo: str) -> Optional[Receipt]:
        ...

    def download_pdf(self, id_recibo: int) -> Download:
        ...

    def export_excel(self, filters: ReceiptSearchFilters) -> Download:
        ...

    def overdue_report(self, id_periodo_academico: Optional[int] = None,
                       dias_vencido_minimo: Optional[int] = None) -> Dict[str, Any]:
        ...


@runtime_checkable
class IApplicantRepository(Protocol):
    """Recibos de aspirantes: generación, plantilla y borrado."""

    def list_receipts(self, id_aspirante: int) -> List[Receipt]:
        ...

    def generate_manual_receipt(self, id_aspirante: int, monto: float,
                                concepto: str, dias_vencimiento: int) -> Receipt:
        ...

    def generate_concept_receipt(self, id_aspirante: int, id_concepto_pago: int,
                                 dias_vencimiento: int) -> Receipt:
        ...

    def find_template(self, id_aspirante: int) -> Optional[BillingTemplate]:
        ...

    def generate_from_template(self, id_aspirante: int, id_plantilla_cobro: int,
                               eliminar_pendientes_existentes: bool) -> List[Receipt]:
        ...

    def delete_receipt(self, id_recibo: int) -> None:
        ...

    def recalculate_agreement_discounts(self, id_aspirante: int) -> RecalculationResult:
        ...


@runtime_checkable
class IPaymentRepository(Protocol):
    """Pagos: registrar y aplicar por separado, o en un solo paso."""

    def register(self, payment: Payment) -> int:
        ...

    def apply(self, id_pago: int, aplicaciones: List[PaymentApplication]) -> List[int]:
        ...

    def register_and_apply(self, id_recibo: int, payment: Payment) -> RegisterAndApplyResult:
        ...

    def get(self, id_pago: int) -> Optional[Payment]:
        ...

    def payment_methods(self) -> List[PaymentMethod]:
        ...

    def cancel(self, id_pago: int, motivo: str, autorizado_por: Optional[str] = None) -> None:
        ...

    def download_voucher(self, id_pago: int) -> Download:
        ...


@runtime_checkable
class ICashRegisterRepository(Protocol):
    """Caja: cortes y ajustes de renglones/recargos."""

    def pending_receipts(self, criterio: str) -> Dict[str, Any]:
        ...

    def generate_cut(self, fecha_inicio: str, fecha_fin: str,
                     id_usuario_caja: Optional[str] = None) -> CashCutSummary:
        ...

    def close_cut(self, payload: Dict[str, Any]) -> CashCut:
        ...

    def list_cuts(self, usuario_id: Optional[str] = None, fecha_inicio: Optional[str] = None,
                  fecha_fin: Optional[str] = None) -> List[CashCut]:
        ...

    def get_cut(self, id_corte: int) -> Optional[CashCut]:
        ...

    def download_cut_pdf(self, id_corte: int) -> Download:
        ...

    def preview_cut_pdf(self, fecha_inicio: str, fecha_fin: str,
                        id_usuario_caja: Optional[str] = None) -> Download:
        ...

    def cashiers(self) -> List[Cashier]:
        ...

    def modify_detail_amount(self, id_recibo: int, id_recibo_detalle: int,
                             nuevo_monto: float, motivo: str) -> AdjustmentResult:
        ...

    def modify_surcharge(self, id_recibo: int, nuevo_recargo: float,
                         motivo: str) -> AdjustmentResult:
        ...

    def waive_surcharge(self, id_recibo: int, motivo: str) -> Dict[str, Any]:
        ...


@runtime_checkable
class IScholarshipRepository(Protocol):
    """Becas y recálculo de descuentos."""

    def student_scholarships(self, id_estudiante: int,
                             solo_activas: Optional[bool] = None) -> List[StudentScholarship]:
        ...

    def assign_from_catalog(self, payload: Dict[str, Any]) -> StudentScholarship:
        ...

    def deactivate(self, id_beca_asignacion: int) -> None:
        ...

    def recalculate_discounts(self, id_estudiante: int,
                              id_periodo_academico: Optional[int] = None) -> RecalculationResult:
        ...


@runtime_checkable
class IDirectoryRepository(Protocol):
    """Usuarios y buzones del directorio (Azure AD vía backend)."""

    def list_users(self, top: int = 100) -> List[DirectoryUser]:
        ...

    def create_user(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def update_user(self, user_id: str, payload: Dict[str, Any]) -> None:
        ...

    def delete_user(self, user_id: str) -> None:
        ...

    def reset_password(self, user_id: str) -> str:
        ...

    def domains(self) -> List[str]:
        ...

    def list_messages(self, mailbox: str, top: int = 50,
                      unread_only: bool = False) -> List[MailMessage]:
        ...

    def search_messages(self, mailbox: str, query: str, top: int = 50) -> List[MailMessage]:
        ...

    def send_message(self, mailbox: str, payload: Dict[str, Any]) -> None:
        ...

    def mark_as_read(self, mailbox: str, message_id: str) -> None:
        ...


@runtime_checkable
class IAuthRepository(Protocol):
    def login(self, email: str, password: str) -> Dict[str, Any]:
        ...
