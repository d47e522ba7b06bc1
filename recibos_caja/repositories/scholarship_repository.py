# ==============================================================================
# REPOSITORIO DE BECAS
# ==============================================================================
# Asignación de becas y disparador de recálculo de descuentos.
# El recálculo es sólo un disparador: el servidor ajusta el descuento de los
# recibos existentes y regresa cuántos modificó.
# ==============================================================================

from typing import Any, Dict, List, Optional

from recibos_caja.models import RecalculationResult, StudentScholarship
from .base import BaseRepository


class ScholarshipRepository(BaseRepository):

    def student_scholarships(
        self,
        id_estudiante: int,
        solo_activas: Optional[bool] = None
    ) -> List[StudentScholarship]:
        params = {}
        if solo_activas is not None:
            # Aquí False sí es un filtro, no "sin filtro"
            params['soloActivas'] = 'true' if solo_activas else 'false'
        data = self.api.get(f'/becas/estudiante/{int(id_estudiante)}', params=params)
        return [StudentScholarship.from_dict(b) for b in self._as_list(data)]

    def assign_from_catalog(self, payload: Dict[str, Any]) -> StudentScholarship:
        """
        Asigna una beca del catálogo.

        Args:
            payload: {idEstudiante, idBeca, idPeriodoAcademico?, vigenciaDesde,
                      vigenciaHasta?, observaciones?}
        """
        data = self.api.post('/becas/asignar-catalogo', json=payload)
        return StudentScholarship.from_dict(data)

    def deactivate(self, id_beca_asignacion: int) -> None:
        self.api.delete(f'/becas/{int(id_beca_asignacion)}')

    def recalculate_discounts(
        self,
        id_estudiante: int,
        id_periodo_academico: Optional[int] = None
    ) -> RecalculationResult:
        data = self.api.post('/becas/recalcular-descuentos', json={
            'idEstudiante': int(id_estudiante),
            'idPeriodoAcademico': id_periodo_academico,
        })
        return RecalculationResult.from_dict(data)
