# ==============================================================================
# REPOSITORIO DE ASPIRANTES (recibos)
# ==============================================================================
# Generación de recibos para aspirantes. Tres caminos mutuamente excluyentes:
#   - Concepto manual (monto + descripción)
#   - Concepto del catálogo (el servidor resuelve el monto)
#   - Expansión de plantilla de cobro (N recibos)
#
# Ninguna generación es idempotente: repetir la llamada duplica recibos.
# ==============================================================================

import logging
from typing import List, Optional

from recibos_caja.models import BillingTemplate, RecalculationResult, Receipt
from .base import BaseRepository, NotFoundError

logger = logging.getLogger(__name__)


class ApplicantRepository(BaseRepository):
    """Endpoints /Aspirante/* relacionados con recibos."""

    def list_receipts(self, id_aspirante: int) -> List[Receipt]:
        data = self.api.get(f'/Aspirante/{int(id_aspirante)}/recibo-inicial')
        return [Receipt.from_dict(r) for r in self._as_list(data, 'recibos')]

    def generate_manual_receipt(
        self,
        id_aspirante: int,
        monto: float,
        concepto: str,
        dias_vencimiento: int
    ) -> Receipt:
        """
        Genera un recibo por concepto manual.

        Args:
            id_aspirante: ID del aspirante
            monto: Monto (> 0, validado por el servicio)
            concepto: Descripción del concepto
            dias_vencimiento: Días para el vencimiento

        Returns:
            El recibo creado
        """
        data = self.api.post(f'/Aspirante/{int(id_aspirante)}/generar-recibo-inscripcion', json={
            'monto': monto,
            'concepto': concepto,
            'diasVencimiento': dias_vencimiento,
        })
        return Receipt.from_dict(data)

    def generate_concept_receipt(
        self,
        id_aspirante: int,
        id_concepto_pago: int,
        dias_vencimiento: int
    ) -> Receipt:
        """
        Genera un recibo a partir de un concepto del catálogo.
        El endpoint es el mismo que el manual; `monto: 0` indica al servidor
        que tome el precio del catálogo.
        """
        data = self.api.post(f'/Aspirante/{int(id_aspirante)}/generar-recibo-inscripcion', json={
            'idConceptoPago': id_concepto_pago,
            'diasVencimiento': dias_vencimiento,
            'monto': 0,
        })
        return Receipt.from_dict(data)

    def find_template(self, id_aspirante: int) -> Optional[BillingTemplate]:
        """
        Busca la plantilla que corresponde al plan/cuatrimestre del aspirante.

        Returns:
            BillingTemplate o None si no hay plantilla (404 o respuesta vacía).
            Cualquier otro error se propaga.
        """
        try:
            data = self.api.get(f'/Aspirante/{int(id_aspirante)}/plantilla-disponible')
        except NotFoundError:
            logger.info("Aspirante %s sin plantilla disponible", id_aspirante)
            return None
        if not isinstance(data, dict) or not data.get('idPlantillaCobro'):
            return None
        return BillingTemplate.from_dict(data)

    def generate_from_template(
        self,
        id_aspirante: int,
        id_plantilla_cobro: int,
        eliminar_pendientes_existentes: bool = False
    ) -> List[Receipt]:
        data = self.api.post(f'/Aspirante/{int(id_aspirante)}/generar-recibos-plantilla', json={
            'idPlantillaCobro': id_plantilla_cobro,
            'eliminarPendientesExistentes': bool(eliminar_pendientes_existentes),
        })
        return [Receipt.from_dict(r) for r in self._as_list(data, 'recibos')]

    def delete_receipt(self, id_recibo: int) -> None:
        self.api.delete(f'/Aspirante/recibo/{int(id_recibo)}')

    def recalculate_agreement_discounts(self, id_aspirante: int) -> RecalculationResult:
        data = self.api.post(f'/Aspirante/{int(id_aspirante)}/recalcular-descuentos-convenio')
        return RecalculationResult.from_dict(data)
