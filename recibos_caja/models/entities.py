# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Proyecciones locales (de solo lectura) de las entidades que viven en el API
# remoto. Ninguna entidad se construye "a mano" para mandarla a persistir:
# los recibos nacen en los endpoints de generación y cambian sólo a través de
# transiciones con nombre (cancelar, reversar, aplicar pago, ajustes).
#
# Cada entidad sabe leerse del JSON camelCase del backend (from_dict) y, cuando
# viaja de regreso, serializarse (to_dict).
# ==============================================================================

import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional


# ==============================================================================
# UTILIDADES DE LECTURA
# ==============================================================================

def money(value: Any) -> float:
    """
    Redondeo contable (half-up) a 2 decimales. Acepta float/str/Decimal/None.
    """
    if value is None or value == '':
        return 0.0
    try:
        q = Decimal(str(value))
    except (InvalidOperation, ValueError):
        q = Decimal('0')
    return float(q.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Primer valor presente entre varias llaves (camelCase / PascalCase)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


# Tope de renglones por página que se pide al backend
MAX_PAGE_SIZE = 200


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize('NFD', text)
    return ''.join(c for c in decomposed if unicodedata.category(c) != 'Mn')


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class ReceiptStatus(int, Enum):
    """
    Estados de un recibo.

    El backend a veces manda el número y a veces el nombre; `parse` acepta
    ambos. NO comparte valores con PaymentStatus.
    """
    PENDIENTE = 0
    PARCIAL = 1
    PAGADO = 2
    VENCIDO = 3
    CANCELADO = 4
    BONIFICADO = 5

    @property
    def label(self) -> str:
        return _RECEIPT_STATUS_LABELS[self]

    @classmethod
    def parse(cls, value: Any) -> Optional['ReceiptStatus']:
        """
        Convierte un valor del backend en ReceiptStatus.

        Acepta: 2, "2", "PAGADO", "Pagado", "Pago Parcial".
        Retorna None si el valor no se reconoce.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        text = str(value).strip()
        if not text:
            return None
        if text.isdigit():
            return cls.parse(int(text))
        key = _strip_accents(text).upper().replace(' ', '').replace('_', '')
        return _RECEIPT_STATUS_ALIASES.get(key)


_RECEIPT_STATUS_LABELS = {
    ReceiptStatus.PENDIENTE: 'Pendiente',
    ReceiptStatus.PARCIAL: 'Pago Parcial',
    ReceiptStatus.PAGADO: 'Pagado',
    ReceiptStatus.VENCIDO: 'Vencido',
    ReceiptStatus.CANCELADO: 'Cancelado',
    ReceiptStatus.BONIFICADO: 'Bonificado',
}

_RECEIPT_STATUS_ALIASES = {
    'PENDIENTE': ReceiptStatus.PENDIENTE,
    'PARCIAL': ReceiptStatus.PARCIAL,
    'PAGOPARCIAL': ReceiptStatus.PARCIAL,
    'PAGADO': ReceiptStatus.PAGADO,
    'VENCIDO': ReceiptStatus.VENCIDO,
    'CANCELADO': ReceiptStatus.CANCELADO,
    'BONIFICADO': ReceiptStatus.BONIFICADO,
}


class PaymentStatus(int, Enum):
    """Estados de un pago (enumeración independiente de ReceiptStatus)."""
    CONFIRMADO = 0
    RECHAZADO = 1
    CANCELADO = 2

    @classmethod
    def parse(cls, value: Any) -> 'PaymentStatus':
        if isinstance(value, cls):
            return value
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            key = str(value or '').strip().upper()
            return cls.__members__.get(key, cls.CONFIRMADO)


class ScholarshipType(str, Enum):
    """Tipos de beca/descuento."""
    PORCENTAJE = "PORCENTAJE"
    MONTO = "MONTO"


# ==============================================================================
# RECIBOS
# ==============================================================================

@dataclass
class ReceiptLine:
    """Renglón (detalle) de un recibo."""
    id_recibo_detalle: Optional[int]
    descripcion: str
    cantidad: float = 1
    precio_unitario: float = 0.0
    importe: float = 0.0
    id_concepto_pago: Optional[int] = None
    descuento_beca: float = 0.0
    importe_neto: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReceiptLine':
        neto = data.get('importeNeto')
        return cls(
            id_recibo_detalle=_int_or_none(data.get('idReciboDetalle')),
            descripcion=data.get('descripcion') or '',
            cantidad=data.get('cantidad', 1) or 0,
            precio_unitario=money(data.get('precioUnitario')),
            importe=money(data.get('importe')),
            id_concepto_pago=_int_or_none(data.get('idConceptoPago')),
            descuento_beca=money(data.get('descuentoBeca')),
            importe_neto=money(neto) if neto is not None else None,
        )


@dataclass
class Receipt:
    """
    Proyección local de un recibo.

    Invariantes (las garantiza el backend, aquí sólo se verifican):
        total == subtotal - descuento + recargos
        0 <= saldo <= total   (salvo estatus Cancelado)
    """
    id_recibo: int
    folio: Optional[str] = None
    id_aspirante: Optional[int] = None
    id_estudiante: Optional[int] = None
    id_periodo_academico: Optional[int] = None
    fecha_emision: Optional[str] = None
    fecha_vencimiento: Optional[str] = None
    estatus: Optional[ReceiptStatus] = None
    subtotal: float = 0.0
    descuento: float = 0.0
    recargos: float = 0.0
    total: float = 0.0
    saldo: float = 0.0
    notas: Optional[str] = None
    detalles: List[ReceiptLine] = field(default_factory=list)

    # Campos de la proyección extendida (búsqueda avanzada)
    matricula: Optional[str] = None
    nombre_completo: Optional[str] = None
    nombre_periodo: Optional[str] = None
    dias_vencido: int = 0
    esta_vencido: bool = False
    tipo_persona: Optional[str] = None
    motivo_cancelacion: Optional[str] = None

    @property
    def estatus_nombre(self) -> str:
        return self.estatus.label if self.estatus is not None else 'Desconocido'

    @property
    def pagado(self) -> float:
        """Monto aplicado hasta ahora (solo para mostrar)."""
        return money(self.total - self.saldo)

    def invariant_errors(self) -> List[str]:
        """Lista de invariantes que NO se cumplen en esta proyección."""
        errors = []
        expected = money(self.subtotal - self.descuento + self.recargos)
        if abs(expected - self.total) > 0.01:
            errors.append(
                f"total {self.total:.2f} != subtotal - descuento + recargos ({expected:.2f})"
            )
        if self.estatus != ReceiptStatus.CANCELADO:
            if self.saldo < 0:
                errors.append(f"saldo negativo ({self.saldo:.2f})")
            elif self.saldo - self.total > 0.01:
                errors.append(f"saldo {self.saldo:.2f} mayor que total {self.total:.2f}")
        return errors

    def is_consistent(self) -> bool:
        return not self.invariant_errors()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Receipt':
        """Crea instancia desde el JSON del backend (ReciboDto / ReciboExtendido)."""
        return cls(
            id_recibo=int(data.get('idRecibo')),
            folio=data.get('folio'),
            id_aspirante=_int_or_none(data.get('idAspirante')),
            id_estudiante=_int_or_none(data.get('idEstudiante')),
            id_periodo_academico=_int_or_none(data.get('idPeriodoAcademico')),
            fecha_emision=data.get('fechaEmision'),
            fecha_vencimiento=data.get('fechaVencimiento'),
            estatus=ReceiptStatus.parse(data.get('estatus')),
            subtotal=money(data.get('subtotal')),
            descuento=money(data.get('descuento')),
            recargos=money(data.get('recargos')),
            total=money(data.get('total')),
            saldo=money(data.get('saldo')),
            notas=data.get('notas'),
            detalles=[ReceiptLine.from_dict(d) for d in data.get('detalles') or []],
            matricula=data.get('matricula'),
            nombre_completo=data.get('nombreCompleto'),
            nombre_periodo=data.get('nombrePeriodo'),
            dias_vencido=_int_or_none(data.get('diasVencido')) or 0,
            esta_vencido=bool(data.get('estaVencido', False)),
            tipo_persona=data.get('tipoPersona'),
            motivo_cancelacion=data.get('motivoCancelacion'),
        )


@dataclass
class ReceiptSearchFilters:
    """
    Filtros de la búsqueda avanzada de recibos.

    Cambiar un filtro NO dispara la búsqueda; la UI requiere el botón
    "Buscar" (o Enter).
    """
    id_periodo_academico: Optional[int] = None
    estatus: Optional[str] = None
    matricula: Optional[str] = None
    folio: Optional[str] = None
    solo_vencidos: bool = False
    solo_pendientes: bool = False
    solo_pagados: bool = False
    fecha_emision_desde: Optional[str] = None
    fecha_emision_hasta: Optional[str] = None
    fecha_vencimiento_desde: Optional[str] = None
    fecha_vencimiento_hasta: Optional[str] = None
    pagina: int = 1
    tamanio_pagina: int = 50

    def cleaned(self) -> 'ReceiptSearchFilters':
        """Copia con textos recortados y estatus "all"/vacío eliminado."""
        estatus = (self.estatus or '').strip()
        return ReceiptSearchFilters(
            id_periodo_academico=self.id_periodo_academico,
            estatus=None if estatus.lower() in ('', 'all') else estatus,
            matricula=(self.matricula or '').strip() or None,
            folio=(self.folio or '').strip() or None,
            solo_vencidos=self.solo_vencidos,
            solo_pendientes=self.solo_pendientes,
            solo_pagados=self.solo_pagados,
            fecha_emision_desde=self.fecha_emision_desde or None,
            fecha_emision_hasta=self.fecha_emision_hasta or None,
            fecha_vencimiento_desde=self.fecha_vencimiento_desde or None,
            fecha_vencimiento_hasta=self.fecha_vencimiento_hasta or None,
            pagina=max(1, self.pagina or 1),
            tamanio_pagina=min(max(1, self.tamanio_pagina or 1), MAX_PAGE_SIZE),
        )

    def to_params(self) -> Dict[str, Any]:
        """Parámetros de query para /recibos/buscar (el ApiClient quita vacíos)."""
        f = self.cleaned()
        return {
            'folio': f.folio,
            'matricula': f.matricula,
            'idPeriodoAcademico': f.id_periodo_academico,
            'estatus': f.estatus,
            'soloVencidos': f.solo_vencidos,
            'soloPagados': f.solo_pagados,
            'soloPendientes': f.solo_pendientes,
            'fechaEmisionDesde': f.fecha_emision_desde,
            'fechaEmisionHasta': f.fecha_emision_hasta,
            'fechaVencimientoDesde': f.fecha_vencimiento_desde,
            'fechaVencimientoHasta': f.fecha_vencimiento_hasta,
            'pagina': f.pagina,
            'tamanioPagina': f.tamanio_pagina,
        }

    @classmethod
    def from_args(cls, args: Any, page_size: int = 50) -> 'ReceiptSearchFilters':
        """Construye filtros desde request.args (o cualquier mapping)."""
        def flag(name):
            return str(args.get(name, '')).strip().lower() in ('1', 'true', 'on', 'si')

        return cls(
            id_periodo_academico=_int_or_none(args.get('idPeriodoAcademico')),
            estatus=args.get('estatus') or None,
            matricula=args.get('matricula') or None,
            folio=args.get('folio') or None,
            solo_vencidos=flag('soloVencidos'),
            solo_pendientes=flag('soloPendientes'),
            solo_pagados=flag('soloPagados'),
            fecha_emision_desde=args.get('fechaEmisionDesde') or None,
            fecha_emision_hasta=args.get('fechaEmisionHasta') or None,
            fecha_vencimiento_desde=args.get('fechaVencimientoDesde') or None,
            fecha_vencimiento_hasta=args.get('fechaVencimientoHasta') or None,
            pagina=max(_int_or_none(args.get('pagina')) or 1, 1),
            tamanio_pagina=min(max(_int_or_none(args.get('tamanioPagina')) or page_size, 1), MAX_PAGE_SIZE),
        )


@dataclass
class ReceiptSearchResult:
    """Página de recibos + contadores agregados calculados por el backend."""
    recibos: List[Receipt] = field(default_factory=list)
    total_registros: int = 0
    pagina_actual: int = 1
    total_paginas: int = 0
    tamanio_pagina: int = 0
    total_pagados: int = 0
    total_pendientes: int = 0
    total_vencidos: int = 0
    total_saldo_pendiente: float = 0.0
    total_recargos: float = 0.0

    def counters(self) -> Dict[str, Any]:
        return {
            'totalRegistros': self.total_registros,
            'totalPagados': self.total_pagados,
            'totalPendientes': self.total_pendientes,
            'totalVencidos': self.total_vencidos,
            'totalSaldoPendiente': self.total_saldo_pendiente,
            'totalRecargos': self.total_recargos,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReceiptSearchResult':
        data = data or {}
        return cls(
            recibos=[Receipt.from_dict(r) for r in data.get('recibos') or []],
            total_registros=int(data.get('totalRegistros', 0) or 0),
            pagina_actual=int(data.get('paginaActual', 1) or 1),
            total_paginas=int(data.get('totalPaginas', 0) or 0),
            tamanio_pagina=int(data.get('tamanioPagina', 0) or 0),
            total_pagados=int(data.get('totalPagados', 0) or 0),
            total_pendientes=int(data.get('totalPendientes', 0) or 0),
            total_vencidos=int(data.get('totalVencidos', 0) or 0),
            total_saldo_pendiente=money(data.get('totalSaldoPendiente')),
            total_recargos=money(data.get('totalRecargos')),
        )


@dataclass
class ReceiptStatistics:
    total_recibos: int = 0
    saldo_pendiente: float = 0.0
    recibos_vencidos: int = 0
    recargos_acumulados: float = 0.0
    recibos_pendientes: int = 0
    recibos_pagados: int = 0
    recibos_parciales: int = 0
    total_cobrado: float = 0.0
    por_periodo: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReceiptStatistics':
        data = data or {}
        return cls(
            total_recibos=int(data.get('totalRecibos', 0) or 0),
            saldo_pendiente=money(data.get('saldoPendiente')),
            recibos_vencidos=int(data.get('recibosVencidos', 0) or 0),
            recargos_acumulados=money(data.get('recargosAcumulados')),
            recibos_pendientes=int(data.get('recibosPendientes', 0) or 0),
            recibos_pagados=int(data.get('recibosPagados', 0) or 0),
            recibos_parciales=int(data.get('recibosParciales', 0) or 0),
            total_cobrado=money(data.get('totalCobrado')),
            por_periodo=list(data.get('porPeriodo') or []),
        )


# ==============================================================================
# PLANTILLAS DE COBRO
# ==============================================================================

@dataclass
class BillingTemplateLine:
    id_concepto_pago: int
    descripcion: str
    cantidad: float = 1
    precio_unitario: float = 0.0
    orden: int = 0
    aplica_en_recibo: Optional[int] = None
    id_plantilla_detalle: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BillingTemplateLine':
        return cls(
            id_concepto_pago=int(data.get('idConceptoPago', 0) or 0),
            descripcion=data.get('descripcion') or data.get('nombreConcepto') or '',
            cantidad=data.get('cantidad', 1) or 0,
            precio_unitario=money(data.get('precioUnitario')),
            orden=int(data.get('orden', 0) or 0),
            aplica_en_recibo=_int_or_none(data.get('aplicaEnRecibo')),
            id_plantilla_detalle=_int_or_none(data.get('idPlantillaDetalle')),
        )


@dataclass
class BillingTemplate:
    """
    Receta reutilizable: plan + cuatrimestre, número de recibos, día de
    vencimiento y conceptos. El backend la expande en N recibos.
    """
    id_plantilla_cobro: int
    nombre_plantilla: str
    id_plan_estudios: Optional[int] = None
    numero_cuatrimestre: Optional[int] = None
    id_periodo_academico: Optional[int] = None
    numero_recibos: int = 1
    dia_vencimiento: int = 10
    estrategia_emision: int = 0
    es_activa: bool = True
    version: int = 1
    nombre_plan_estudios: Optional[str] = None
    detalles: List[BillingTemplateLine] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BillingTemplate':
        return cls(
            id_plantilla_cobro=int(data.get('idPlantillaCobro')),
            nombre_plantilla=data.get('nombrePlantilla') or '',
            id_plan_estudios=_int_or_none(data.get('idPlanEstudios')),
            numero_cuatrimestre=_int_or_none(data.get('numeroCuatrimestre')),
            id_periodo_academico=_int_or_none(data.get('idPeriodoAcademico')),
            numero_recibos=int(data.get('numeroRecibos', 1) or 1),
            dia_vencimiento=int(data.get('diaVencimiento', 10) or 10),
            estrategia_emision=int(data.get('estrategiaEmision', 0) or 0),
            es_activa=bool(data.get('esActiva', True)),
            version=int(data.get('version', 1) or 1),
            nombre_plan_estudios=data.get('nombrePlanEstudios') or data.get('nombrePlan'),
            detalles=[BillingTemplateLine.from_dict(d) for d in data.get('detalles') or []],
        )


# ==============================================================================
# PAGOS
# ==============================================================================

@dataclass
class Payment:
    """
    Pago registrado en caja. Registrar y aplicar son dos transiciones
    separadas: primero existe el pago, después se distribuye en renglones.
    """
    id_medio_pago: int
    monto: float
    fecha_pago_utc: Optional[str] = None
    moneda: str = 'MXN'
    estatus: PaymentStatus = PaymentStatus.CONFIRMADO
    referencia: Optional[str] = None
    notas: Optional[str] = None
    id_pago: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Cuerpo para POST /Pagos (RegistrarPagoDto)."""
        d = {
            'fechaPagoUtc': self.fecha_pago_utc,
            'idMedioPago': self.id_medio_pago,
            'monto': money(self.monto),
            'moneda': self.moneda,
            'estatus': int(self.estatus),
        }
        if self.referencia:
            d['referencia'] = self.referencia
        if self.notas:
            d['notas'] = self.notas
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Payment':
        return cls(
            id_pago=_int_or_none(data.get('idPago')),
            fecha_pago_utc=data.get('fechaPagoUtc'),
            id_medio_pago=int(data.get('idMedioPago', 0) or 0),
            monto=money(data.get('monto')),
            moneda=data.get('moneda') or 'MXN',
            estatus=PaymentStatus.parse(data.get('estatus', 0)),
            referencia=data.get('referencia'),
            notas=data.get('notas'),
        )


@dataclass
class PaymentApplication:
    """Monto de un pago que se aplica a un renglón de recibo."""
    id_recibo_detalle: int
    monto: float

    def to_dict(self) -> Dict[str, Any]:
        return {'idReciboDetalle': self.id_recibo_detalle, 'monto': money(self.monto)}


@dataclass
class PaymentMethod:
    id_medio_pago: int
    clave: str
    nombre: str
    requiere_referencia: bool = False
    activo: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PaymentMethod':
        return cls(
            id_medio_pago=int(data.get('idMedioPago')),
            clave=data.get('clave') or '',
            nombre=data.get('nombre') or '',
            requiere_referencia=bool(data.get('requiereReferencia', False)),
            activo=bool(data.get('activo', True)),
        )


@dataclass
class RegisterAndApplyResult:
    """Saldo y estatus antes/después del pago, tal como los reporta el backend."""
    id_pago: int
    id_recibo: int
    monto_aplicado: float
    saldo_anterior: float
    saldo_nuevo: float
    estatus_recibo_anterior: Optional[ReceiptStatus]
    estatus_recibo_nuevo: Optional[ReceiptStatus]
    recibo_pagado_completamente: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegisterAndApplyResult':
        return cls(
            id_pago=int(data.get('idPago')),
            id_recibo=int(data.get('idRecibo')),
            monto_aplicado=money(data.get('montoAplicado')),
            saldo_anterior=money(data.get('saldoAnterior')),
            saldo_nuevo=money(data.get('saldoNuevo')),
            estatus_recibo_anterior=ReceiptStatus.parse(data.get('estatusReciboAnterior')),
            estatus_recibo_nuevo=ReceiptStatus.parse(data.get('estatusReciboNuevo')),
            recibo_pagado_completamente=bool(data.get('reciboPagadoCompletamente', False)),
        )


@dataclass
class AdjustmentResult:
    """
    Resultado de modificar un renglón o el recargo de un recibo.
    El backend recalcula total/saldo; aquí sólo se muestran.
    """
    exitoso: bool
    mensaje: str
    monto_anterior: float
    monto_nuevo: float
    nuevo_total: float
    nuevo_saldo: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdjustmentResult':
        saldo = data.get('nuevoSaldo')
        return cls(
            exitoso=bool(data.get('exitoso', True)),
            mensaje=data.get('mensaje') or '',
            monto_anterior=money(_pick(data, 'montoAnterior', 'recargoAnterior')),
            monto_nuevo=money(_pick(data, 'montoNuevo', 'recargoNuevo')),
            nuevo_total=money(data.get('nuevoTotal')),
            nuevo_saldo=money(saldo) if saldo is not None else None,
        )


# ==============================================================================
# CORTE DE CAJA
# ==============================================================================

@dataclass
class Cashier:
    id_usuario: str
    nombre_completo: str
    email: Optional[str] = None
    total_cobros: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Cashier':
        return cls(
            id_usuario=str(data.get('idUsuario') or ''),
            nombre_completo=data.get('nombreCompleto') or '',
            email=data.get('email'),
            total_cobros=int(data.get('totalCobros', 0) or 0),
        )


@dataclass
class CashCutTotals:
    cantidad: int = 0
    efectivo: float = 0.0
    transferencia: float = 0.0
    tarjeta: float = 0.0
    total: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CashCutTotals':
        data = data or {}
        return cls(
            cantidad=int(data.get('cantidad', 0) or 0),
            efectivo=money(data.get('efectivo')),
            transferencia=money(data.get('transferencia')),
            tarjeta=money(data.get('tarjeta')),
            total=money(data.get('total')),
        )


@dataclass
class CashCutPayment:
    id_pago: int
    monto: float
    fecha_pago_utc: Optional[str] = None
    folio_pago: Optional[str] = None
    medio_pago: Optional[str] = None
    matricula: Optional[str] = None
    nombre_estudiante: Optional[str] = None
    concepto: Optional[str] = None
    folio_recibo: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CashCutPayment':
        return cls(
            id_pago=int(data.get('idPago')),
            monto=money(data.get('monto')),
            fecha_pago_utc=data.get('fechaPagoUtc'),
            folio_pago=data.get('folioPago'),
            medio_pago=data.get('medioPago'),
            matricula=data.get('matricula'),
            nombre_estudiante=data.get('nombreEstudiante'),
            concepto=data.get('concepto'),
            folio_recibo=data.get('folioRecibo'),
        )


@dataclass
class CashCutSummary:
    """Resumen detallado (todavía abierto) de los cobros de un periodo."""
    fecha_inicio: str
    fecha_fin: str
    pagos: List[CashCutPayment] = field(default_factory=list)
    totales: CashCutTotals = field(default_factory=CashCutTotals)
    cajero: Optional[Cashier] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CashCutSummary':
        cajero = data.get('cajero')
        return cls(
            fecha_inicio=data.get('fechaInicio') or '',
            fecha_fin=data.get('fechaFin') or '',
            pagos=[CashCutPayment.from_dict(p) for p in data.get('pagos') or []],
            totales=CashCutTotals.from_dict(data.get('totales')),
            cajero=Cashier.from_dict(cajero) if cajero else None,
        )


@dataclass
class CashCut:
    """Corte de caja cerrado: inmutable y descargable en PDF."""
    id_corte_caja: int
    folio_corte_caja: str
    fecha_inicio: str
    fecha_fin: str
    id_usuario_caja: Optional[str] = None
    monto_inicial: float = 0.0
    total_efectivo: float = 0.0
    total_transferencia: float = 0.0
    total_tarjeta: float = 0.0
    total_general: float = 0.0
    cerrado: bool = False
    fecha_cierre: Optional[str] = None
    cerrado_por: Optional[str] = None
    observaciones: Optional[str] = None
    cantidad_pagos: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CashCut':
        return cls(
            id_corte_caja=int(data.get('idCorteCaja')),
            folio_corte_caja=data.get('folioCorteCaja') or '',
            fecha_inicio=data.get('fechaInicio') or '',
            fecha_fin=data.get('fechaFin') or '',
            id_usuario_caja=data.get('idUsuarioCaja'),
            monto_inicial=money(data.get('montoInicial')),
            total_efectivo=money(data.get('totalEfectivo')),
            total_transferencia=money(data.get('totalTransferencia')),
            total_tarjeta=money(data.get('totalTarjeta')),
            total_general=money(data.get('totalGeneral')),
            cerrado=bool(data.get('cerrado', False)),
            fecha_cierre=data.get('fechaCierre'),
            cerrado_por=data.get('cerradoPor'),
            observaciones=data.get('observaciones'),
            cantidad_pagos=int(data.get('cantidadPagos', 0) or 0),
        )


# ==============================================================================
# BECAS / CONVENIOS
# ==============================================================================

@dataclass
class RecalculationResult:
    """Respuesta de los disparadores de recálculo de descuentos."""
    recibos_actualizados: int = 0
    mensaje: str = ''
    descuento_total_aplicado: float = 0.0
    detalle: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecalculationResult':
        data = data or {}
        return cls(
            recibos_actualizados=int(_pick(
                data, 'recibosActualizados', 'recibosModificados', 'RecibosActualizados', default=0
            )),
            mensaje=_pick(data, 'mensaje', 'Mensaje', 'message', default=''),
            descuento_total_aplicado=money(data.get('descuentoTotalAplicado')),
            detalle=list(data.get('detalle') or []),
        )


@dataclass
class StudentScholarship:
    id_beca_asignacion: int
    id_estudiante: int
    tipo: ScholarshipType
    valor: float
    vigencia_desde: Optional[str] = None
    vigencia_hasta: Optional[str] = None
    activo: bool = True
    id_periodo_academico: Optional[int] = None
    nombre: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StudentScholarship':
        beca = data.get('beca') or {}
        try:
            tipo = ScholarshipType(str(data.get('tipo', 'PORCENTAJE')).upper())
        except ValueError:
            tipo = ScholarshipType.PORCENTAJE
        return cls(
            id_beca_asignacion=int(data.get('idBecaAsignacion')),
            id_estudiante=int(data.get('idEstudiante')),
            tipo=tipo,
            valor=money(data.get('valor')),
            vigencia_desde=data.get('vigenciaDesde'),
            vigencia_hasta=data.get('vigenciaHasta'),
            activo=bool(data.get('activo', True)),
            id_periodo_academico=_int_or_none(data.get('idPeriodoAcademico')),
            nombre=beca.get('nombre'),
        )


# ==============================================================================
# DIRECTORIO (AZURE AD)
# ==============================================================================

@dataclass
class DirectoryUser:
    id: str
    display_name: str
    user_principal_name: str
    email: Optional[str] = None
    given_name: Optional[str] = None
    surname: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    account_enabled: bool = True

    @property
    def addresses(self) -> List[str]:
        """Direcciones conocidas del usuario, en minúsculas."""
        values = {self.user_principal_name, self.email}
        return sorted(v.lower() for v in values if v)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DirectoryUser':
        return cls(
            id=str(data.get('id') or ''),
            display_name=data.get('displayName') or '',
            user_principal_name=data.get('userPrincipalName') or '',
            email=data.get('email'),
            given_name=data.get('givenName'),
            surname=data.get('surname'),
            job_title=data.get('jobTitle'),
            department=data.get('department'),
            account_enabled=bool(data.get('accountEnabled', True)),
        )


@dataclass
class MailMessage:
    id: str
    subject: str
    body_preview: str = ''
    from_address: Optional[str] = None
    received: Optional[str] = None
    is_read: bool = False
    has_attachments: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MailMessage':
        sender = data.get('from') or {}
        return cls(
            id=str(data.get('id') or ''),
            subject=data.get('subject') or '',
            body_preview=data.get('bodyPreview') or '',
            from_address=sender.get('address'),
            received=data.get('receivedDateTime'),
            is_read=bool(data.get('isRead', False)),
            has_attachments=bool(data.get('hasAttachments', False)),
        )


# ==============================================================================
# DESCARGAS
# ==============================================================================

@dataclass
class Download:
    """Archivo binario (PDF/Excel/CSV) listo para mandarse con send_file."""
    content: bytes
    filename: str
    content_type: str = 'application/octet-stream'
