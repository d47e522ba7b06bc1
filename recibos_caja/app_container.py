# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (se inyecta una sesión HTTP falsa en lugar de requests)
#   - Un solo ApiClient compartido por todos los repositorios
#
# La sesión del usuario vive en la cookie de Flask; el SessionContext la lee
# a través de store_factory, así que el contenedor puede ser global.
# ==============================================================================

from typing import Any, Callable, MutableMapping, Optional

from recibos_caja.config import Config

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Acceso HTTP al backend
# ═══════════════════════════════════════════════════════════════════════════════
from recibos_caja.repositories import (
    ApiClient,
    ApplicantRepository,
    AuthRepository,
    CashRegisterRepository,
    DirectoryRepository,
    PaymentRepository,
    ReceiptRepository,
    ScholarshipRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Reglas del lado del cliente
# ═══════════════════════════════════════════════════════════════════════════════
from recibos_caja.services import (
    AuthService,
    CashRegisterService,
    DirectoryService,
    ExportService,
    GenerationService,
    InFlightGuard,
    PaymentService,
    ReceiptService,
    ScholarshipService,
    SessionContext,
)


def _flask_session() -> MutableMapping[str, Any]:
    from flask import session
    return session


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    de cada repositorio y servicio.

    Uso:
        container = AppContainer(config=Config)
        receipt_service = container.receipt_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, config=None, http=None, store_factory=None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(
        self,
        config=None,
        http=None,
        store_factory: Callable[[], MutableMapping[str, Any]] = None
    ):
        """
        Inicializa el contenedor.

        Args:
            config: Clase de configuración (Config / TestingConfig)
            http: Sesión HTTP (requests.Session o un doble de pruebas)
            store_factory: De dónde lee/escribe la sesión (por defecto flask.session)
        """
        if self._initialized:
            return

        self.config = config or Config
        self._http = http
        self._store_factory = store_factory or _flask_session

        # Infraestructura
        self._session_context: Optional[SessionContext] = None
        self._api: Optional[ApiClient] = None
        self._inflight: Optional[InFlightGuard] = None

        # Repositorios (lazy loading)
        self._receipt_repo: Optional[ReceiptRepository] = None
        self._applicant_repo: Optional[ApplicantRepository] = None
        self._payment_repo: Optional[PaymentRepository] = None
        self._cash_repo: Optional[CashRegisterRepository] = None
        self._scholarship_repo: Optional[ScholarshipRepository] = None
        self._directory_repo: Optional[DirectoryRepository] = None
        self._auth_repo: Optional[AuthRepository] = None

        # Servicios (lazy loading)
        self._auth_service: Optional[AuthService] = None
        self._receipt_service: Optional[ReceiptService] = None
        self._generation_service: Optional[GenerationService] = None
        self._payment_service: Optional[PaymentService] = None
        self._cash_register_service: Optional[CashRegisterService] = None
        self._scholarship_service: Optional[ScholarshipService] = None
        self._directory_service: Optional[DirectoryService] = None
        self._export_service: Optional[ExportService] = None

        self._initialized = True

    # =========================================================================
    # INFRAESTRUCTURA
    # =========================================================================

    @property
    def session_context(self) -> SessionContext:
        if self._session_context is None:
            self._session_context = SessionContext(self._store_factory)
        return self._session_context

    @property
    def api(self) -> ApiClient:
        """Cliente HTTP compartido (singleton)."""
        if self._api is None:
            self._api = ApiClient(
                self.config.API_BASE_URL,
                self.session_context,
                http=self._http,
                timeout=self.config.API_TIMEOUT,
            )
        return self._api

    @property
    def inflight(self) -> InFlightGuard:
        if self._inflight is None:
            self._inflight = InFlightGuard()
        return self._inflight

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def receipt_repo(self) -> ReceiptRepository:
        if self._receipt_repo is None:
            self._receipt_repo = ReceiptRepository(self.api)
        return self._receipt_repo

    @property
    def applicant_repo(self) -> ApplicantRepository:
        if self._applicant_repo is None:
            self._applicant_repo = ApplicantRepository(self.api)
        return self._applicant_repo

    @property
    def payment_repo(self) -> PaymentRepository:
        if self._payment_repo is None:
            self._payment_repo = PaymentRepository(self.api)
        return self._payment_repo

    @property
    def cash_repo(self) -> CashRegisterRepository:
        if self._cash_repo is None:
            self._cash_repo = CashRegisterRepository(self.api)
        return self._cash_repo

    @property
    def scholarship_repo(self) -> ScholarshipRepository:
        if self._scholarship_repo is None:
            self._scholarship_repo = ScholarshipRepository(self.api)
        return self._scholarship_repo

    @property
    def directory_repo(self) -> DirectoryRepository:
        if self._directory_repo is None:
            self._directory_repo = DirectoryRepository(self.api)
        return self._directory_repo

    @property
    def auth_repo(self) -> AuthRepository:
        if self._auth_repo is None:
            self._auth_repo = AuthRepository(self.api)
        return self._auth_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def auth_service(self) -> AuthService:
        if self._auth_service is None:
            self._auth_service = AuthService(self.auth_repo, self.session_context)
        return self._auth_service

    @property
    def receipt_service(self) -> ReceiptService:
        """Servicio de recibos (singleton)."""
        if self._receipt_service is None:
            self._receipt_service = ReceiptService(self.receipt_repo, self.config.SEARCH_PAGE_SIZE)
        return self._receipt_service

    @property
    def generation_service(self) -> GenerationService:
        if self._generation_service is None:
            self._generation_service = GenerationService(
                self.applicant_repo,
                self.config.DEFAULT_CONCEPT,
                self.config.DEFAULT_DUE_DAYS,
            )
        return self._generation_service

    @property
    def payment_service(self) -> PaymentService:
        """Servicio de pagos (singleton)."""
        if self._payment_service is None:
            self._payment_service = PaymentService(
                self.payment_repo,
                self.cash_repo,
                self.config.DEFAULT_CURRENCY,
            )
        return self._payment_service

    @property
    def cash_register_service(self) -> CashRegisterService:
        if self._cash_register_service is None:
            self._cash_register_service = CashRegisterService(self.cash_repo)
        return self._cash_register_service

    @property
    def scholarship_service(self) -> ScholarshipService:
        if self._scholarship_service is None:
            self._scholarship_service = ScholarshipService(self.scholarship_repo, self.applicant_repo)
        return self._scholarship_service

    @property
    def directory_service(self) -> DirectoryService:
        if self._directory_service is None:
            self._directory_service = DirectoryService(self.directory_repo, self.config.DIRECTORY_PAGE_SIZE)
        return self._directory_service

    @property
    def export_service(self) -> ExportService:
        if self._export_service is None:
            self._export_service = ExportService()
        return self._export_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing.
        """
        for attr in list(vars(self)):
            if attr.startswith('_') and attr not in ('_initialized', '_http', '_store_factory'):
                setattr(self, attr, None)

    @classmethod
    def get_instance(cls, config=None, http=None, store_factory=None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.
        Los argumentos solo se usan en la primera llamada.
        """
        if cls._instance is None:
            return cls(config, http, store_factory)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(config=None, http=None, store_factory=None) -> AppContainer:
    """Obtiene el contenedor de dependencias global."""
    return AppContainer.get_instance(config, http, store_factory)
