# ==============================================================================
# SERVICIO DE BECAS Y CONVENIOS
# ==============================================================================
# Cambiar una beca o un convenio NO modifica los recibos existentes: hay que
# disparar el recálculo explícitamente. El cálculo vive en el backend.
# ==============================================================================

import logging
from typing import Any, Dict, Optional

from recibos_caja.repositories.base import ApiError
from recibos_caja.repositories.interfaces import IApplicantRepository, IScholarshipRepository
from .results import api_failure, failure, success
from .validation import parse_date, parse_positive_int

logger = logging.getLogger(__name__)


class ScholarshipService:

    def __init__(self, scholarship_repo: IScholarshipRepository,
                 applicant_repo: IApplicantRepository = None):
        self.scholarship_repo = scholarship_repo
        self.applicant_repo = applicant_repo

    def student_scholarships(self, id_estudiante: int, solo_activas: bool = None) -> Dict[str, Any]:
        try:
            return success(scholarships=self.scholarship_repo.student_scholarships(id_estudiante, solo_activas))
        except ApiError as e:
            return api_failure(e, 'Error al cargar las becas del estudiante')

    def recalculate_scholarship_discounts(self, id_estudiante: Any,
                                          id_periodo_academico: Any = None) -> Dict[str, Any]:
        student = parse_positive_int(id_estudiante)
        if student is None:
            return failure('Estudiante inválido')
        period = parse_positive_int(id_periodo_academico) if id_periodo_academico else None
        try:
            result = self.scholarship_repo.recalculate_discounts(student, period)
        except ApiError as e:
            return api_failure(e, 'Error al recalcular descuentos por beca')
        logger.info("Descuentos por beca recalculados: estudiante %s, %d recibos",
                    student, result.recibos_actualizados)
        return success(result=result)

    def recalculate_agreement_discounts(self, id_aspirante: Any) -> Dict[str, Any]:
        applicant = parse_positive_int(id_aspirante)
        if applicant is None:
            return failure('Aspirante inválido')
        try:
            result = self.applicant_repo.recalculate_agreement_discounts(applicant)
        except ApiError as e:
            return api_failure(e, 'Error al recalcular descuentos por convenio')
        logger.info("Descuentos por convenio recalculados: aspirante %s, %d recibos",
                    applicant, result.recibos_actualizados)
        return success(result=result)

    def assign_from_catalog(
        self,
        id_estudiante: Any,
        id_beca: Any,
        vigencia_desde: Any,
        id_periodo_academico: Any = None,
        vigencia_hasta: Any = None,
        observaciones: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Asigna una beca del catálogo y, si se asignó, dispara el recálculo
        para que los recibos existentes reflejen el descuento.
        """
        student = parse_positive_int(id_estudiante)
        beca = parse_positive_int(id_beca)
        desde = parse_date(vigencia_desde)
        if student is None or beca is None:
            return failure('Seleccione estudiante y beca')
        if desde is None:
            return failure('La fecha de inicio de vigencia es obligatoria')
        hasta = parse_date(vigencia_hasta)
        if hasta is not None and hasta < desde:
            return failure('La vigencia final no puede ser anterior a la inicial')
        period = parse_positive_int(id_periodo_academico) if id_periodo_academico else None

        try:
            scholarship = self.scholarship_repo.assign_from_catalog({
                'idEstudiante': student,
                'idBeca': beca,
                'idPeriodoAcademico': period,
                'vigenciaDesde': desde.isoformat(),
                'vigenciaHasta': hasta.isoformat() if hasta else None,
                'observaciones': (observaciones or '').strip() or None,
            })
        except ApiError as e:
            return api_failure(e, 'Error al asignar la beca')

        recalculation = self.recalculate_scholarship_discounts(student, period)
        return success(scholarship=scholarship, recalculation=recalculation)

    def deactivate(self, id_beca_asignacion: int, id_estudiante: int) -> Dict[str, Any]:
        try:
            self.scholarship_repo.deactivate(id_beca_asignacion)
        except ApiError as e:
            return api_failure(e, 'Error al desactivar la beca')
        recalculation = self.recalculate_scholarship_discounts(id_estudiante)
        return success(recalculation=recalculation)
