# ==============================================================================
# VALIDACIÓN DE FORMULARIOS
# ==============================================================================
# Validadores puros: reciben datos crudos (form/JSON) y regresan un
# ValidationResult con el valor normalizado o la lista de FieldError.
# Se ejecutan ANTES de mandar cualquier petición al backend.
# ==============================================================================

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from recibos_caja.models import PaymentApplication, money


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass
class ValidationResult:
    """Ok(valor) | Invalid([FieldError, ...])"""
    value: Any = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        return '; '.join(e.message for e in self.errors)

    def raise_for_errors(self) -> Any:
        if self.errors:
            raise ValidationError(self.errors)
        return self.value


class ValidationError(Exception):
    """Datos inválidos detectados antes de llamar al backend."""

    def __init__(self, errors: Iterable[FieldError]):
        self.errors = list(errors)
        super().__init__('; '.join(e.message for e in self.errors))


# ==============================================================================
# PRIMITIVAS
# ==============================================================================

def parse_amount(raw: Any) -> Optional[float]:
    """Monto con redondeo contable, o None si no es numérico."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(str(raw).replace(',', '').strip())
    except (TypeError, ValueError):
        return None
    return money(value) if math.isfinite(value) else None


def parse_positive_int(raw: Any) -> Optional[int]:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def parse_date(raw: Any) -> Optional[date]:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw or '').strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text[:10]).date()
    except ValueError:
        return None


def is_blank(text: Any) -> bool:
    return not str(text or '').strip()


# ==============================================================================
# VALIDADORES POR OPERACIÓN
# ==============================================================================

def validate_reason(motivo: Any, field_name: str = 'motivo') -> ValidationResult:
    """Cancelar, reversar y los ajustes exigen motivo no vacío."""
    if is_blank(motivo):
        return ValidationResult(errors=[FieldError(field_name, 'El motivo es obligatorio')])
    return ValidationResult(value=str(motivo).strip())


def validate_manual_receipt(monto: Any, concepto: Any, dias_vencimiento: Any,
                            default_due_days: int = 7) -> ValidationResult:
    errors = []
    amount = parse_amount(monto)
    if amount is None or amount <= 0:
        errors.append(FieldError('monto', 'El monto debe ser mayor a 0'))
    if is_blank(concepto):
        errors.append(FieldError('concepto', 'El concepto es obligatorio'))
    days = _due_days(dias_vencimiento, default_due_days, errors)
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value={
        'monto': amount,
        'concepto': str(concepto).strip(),
        'dias_vencimiento': days,
    })


def validate_concept_receipt(id_concepto_pago: Any, dias_vencimiento: Any,
                             default_due_days: int = 7) -> ValidationResult:
    errors = []
    concept_id = parse_positive_int(id_concepto_pago)
    if concept_id is None:
        errors.append(FieldError('idConceptoPago', 'Seleccione un concepto de pago válido'))
    days = _due_days(dias_vencimiento, default_due_days, errors)
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value={'id_concepto_pago': concept_id, 'dias_vencimiento': days})


def _due_days(raw: Any, default: int, errors: List[FieldError]) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        days = int(str(raw).strip())
    except ValueError:
        errors.append(FieldError('diasVencimiento', 'Los días de vencimiento deben ser un número'))
        return default
    if days < 0:
        errors.append(FieldError('diasVencimiento', 'Los días de vencimiento no pueden ser negativos'))
    return days


def validate_applications(lines: Iterable[Dict[str, Any]]) -> ValidationResult:
    """
    Líneas de aplicación de un pago: [{idReciboDetalle, monto}, ...].
    Montos positivos y sin renglones repetidos.
    """
    errors = []
    result: List[PaymentApplication] = []
    seen = set()
    for i, line in enumerate(lines or []):
        if not isinstance(line, dict):
            errors.append(FieldError(f'aplicaciones[{i}]', 'Renglón inválido'))
            continue
        detail_id = parse_positive_int(line.get('idReciboDetalle'))
        amount = parse_amount(line.get('monto'))
        if detail_id is None:
            errors.append(FieldError(f'aplicaciones[{i}].idReciboDetalle', 'Renglón de recibo inválido'))
            continue
        if detail_id in seen:
            errors.append(FieldError(
                f'aplicaciones[{i}].idReciboDetalle',
                f'El renglón {detail_id} aparece más de una vez'
            ))
            continue
        seen.add(detail_id)
        if amount is None or amount <= 0:
            errors.append(FieldError(f'aplicaciones[{i}].monto', 'Cada monto aplicado debe ser mayor a 0'))
            continue
        result.append(PaymentApplication(id_recibo_detalle=detail_id, monto=amount))
    if not result and not errors:
        errors.append(FieldError('aplicaciones', 'Debe aplicar el pago al menos a un renglón'))
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=result)


def validate_payment(monto: Any, id_medio_pago: Any) -> ValidationResult:
    errors = []
    amount = parse_amount(monto)
    if amount is None or amount <= 0:
        errors.append(FieldError('monto', 'El monto debe ser mayor a 0'))
    method = parse_positive_int(id_medio_pago)
    if method is None:
        errors.append(FieldError('idMedioPago', 'Seleccione un medio de pago'))
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value={'monto': amount, 'id_medio_pago': method})


def validate_date_range(fecha_inicio: Any, fecha_fin: Any) -> ValidationResult:
    errors = []
    start = parse_date(fecha_inicio)
    end = parse_date(fecha_fin)
    if start is None:
        errors.append(FieldError('fechaInicio', 'Fecha de inicio inválida'))
    if end is None:
        errors.append(FieldError('fechaFin', 'Fecha de fin inválida'))
    if start and end and start > end:
        errors.append(FieldError('fechaFin', 'La fecha de fin no puede ser anterior a la de inicio'))
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=(start, end))


def validate_new_directory_user(given_name: Any, surname: Any, domain: Any,
                                password: Any) -> ValidationResult:
    errors = []
    if is_blank(given_name):
        errors.append(FieldError('givenName', 'El nombre es obligatorio'))
    if is_blank(surname):
        errors.append(FieldError('surname', 'Los apellidos son obligatorios'))
    if is_blank(domain):
        errors.append(FieldError('domain', 'Seleccione un dominio'))
    if len(str(password or '')) < 8:
        errors.append(FieldError('password', 'La contraseña debe tener al menos 8 caracteres'))
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value={
        'given_name': str(given_name).strip(),
        'surname': str(surname).strip(),
        'domain': str(domain).strip().lstrip('@').lower(),
        'password': str(password),
    })
