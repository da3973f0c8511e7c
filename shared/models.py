"""Pydantic contracts shared across backend services and the dashboard API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


ALL = "all"


class ServiceErrorCode(str, Enum):
    """Stable error codes for service contracts across layers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    BACKEND_ERROR = "BACKEND_ERROR"


class ServiceError(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: ServiceErrorCode
    message: str
    details: dict[str, object] | None = None


class ProjectStatus(str, Enum):
    PLANIFICACION = "planificacion"
    ACTIVO = "activo"
    FINALIZADO = "finalizado"
    CANCELADO = "cancelado"


class ExpenseCategory(str, Enum):
    HONORARIOS = "honorarios"
    REFRIGERIOS = "refrigerios"
    TRANSPORTE = "transporte"
    MATERIALES = "materiales"
    SERVICIOS = "servicios"
    OTROS = "otros"


class LaborType(str, Enum):
    ARTISTICA = "artistica"
    TECNICA = "tecnica"
    ADMINISTRATIVA = "administrativa"
    LOGISTICA = "logistica"
    PRODUCCION = "produccion"
    OTROS = "otros"


class PaymentStatus(str, Enum):
    PENDIENTE = "pendiente"
    PAGADO = "pagado"
    CANCELADO = "cancelado"


class EvidenceType(str, Enum):
    FOTOGRAFIA = "fotografia"
    VIDEO = "video"
    AUDIO = "audio"
    LISTA_ASISTENCIA = "lista_asistencia"
    DOCUMENTO = "documento"
    INFORME = "informe"
    OTRO = "otro"


class ReportType(str, Enum):
    EJECUTIVO = "ejecutivo"
    FINANCIERO = "financiero"
    PROYECTOS = "proyectos"
    PERSONALIZADO = "personalizado"


class ReportFormat(str, Enum):
    PDF = "pdf"
    EXCEL = "excel"
    AMBOS = "ambos"


class ReportState(str, Enum):
    COMPLETADO = "completado"
    PROCESANDO = "procesando"
    ERROR = "error"


# Rows as returned by PostgREST `select=*`; unknown columns are ignored.


class Project(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    nombre: str
    descripcion: str | None = None
    presupuesto_total: Decimal = Decimal("0")
    presupuesto_ejecutado: Decimal | None = None
    fecha_inicio: date
    fecha_fin: date | None = None
    estado: str = ProjectStatus.PLANIFICACION.value
    supervisor_id: UUID | None = None


class Expense(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    proyecto_id: UUID | None = None
    tipo_gasto: str
    descripcion: str
    monto: Decimal
    fecha_gasto: date
    responsable: str | None = None
    evidencia_url: str | None = None
    aprobado: bool | None = None
    observaciones: str | None = None
    created_at: datetime | None = None


class Worker(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    nombre: str
    cedula: str
    telefono: str | None = None
    email: str | None = None
    especialidad: str | None = None
    valor_hora: Decimal | None = None
    activo: bool | None = True
    created_at: datetime | None = None


class Payment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    proyecto_id: UUID | None = None
    trabajador_id: UUID | None = None
    fecha_actividad: date
    tipo_labor: str
    horas_trabajadas: Decimal | None = None
    valor_pactado: Decimal
    estado_pago: str | None = PaymentStatus.PENDIENTE.value
    fecha_pago: date | None = None
    comprobante_url: str | None = None
    observaciones: str | None = None
    created_at: datetime | None = None


class Evidence(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: UUID
    proyecto_id: UUID | None = None
    tipo_evidencia: str
    nombre_archivo: str
    url_archivo: str
    fecha_actividad: date
    descripcion: str | None = None
    tamano_archivo: int | None = Field(default=None, alias="tamaño_archivo")
    created_at: datetime | None = None


class ExpenseRecord(Expense):
    """Expense joined with its parent project."""

    proyecto: Project | None = None


class PaymentRecord(Payment):
    """Payment joined with its parent project and worker."""

    proyecto: Project | None = None
    trabajador: Worker | None = None


class EvidenceRecord(Evidence):
    """Evidence joined with its parent project."""

    proyecto: Project | None = None


class ReportHistoryEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: UUID
    nombre: str
    descripcion: str | None = None
    tipo: str
    formato: str
    fecha_creacion: datetime
    tamano_mb: Decimal = Field(default=Decimal("0"), alias="tamaño_mb")
    estado: str = ReportState.PROCESANDO.value
    creado_por: str
    descargas: int = 0
    modulos: list[str] = Field(default_factory=list)
    proyectos_incluidos: int = 0
    url_archivo: str | None = None
    parametros_generacion: dict[str, object] | None = None


# Mutation requests.


def _require_text(value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError("must not be blank")
    return cleaned


class ProjectCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str
    descripcion: str | None = None
    presupuesto_total: Decimal = Field(ge=0)
    fecha_inicio: date
    fecha_fin: date | None = None
    estado: ProjectStatus = ProjectStatus.PLANIFICACION

    @field_validator("nombre")
    @classmethod
    def nombre_not_blank(cls, value: str) -> str:
        return _require_text(value)


class ProjectUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str | None = None
    descripcion: str | None = None
    presupuesto_total: Decimal | None = Field(default=None, ge=0)
    fecha_inicio: date | None = None
    fecha_fin: date | None = None
    estado: ProjectStatus | None = None


class ExpenseCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proyecto_id: UUID
    tipo_gasto: ExpenseCategory
    descripcion: str
    monto: Decimal = Field(gt=0)
    fecha_gasto: date
    responsable: str | None = None
    evidencia_url: str | None = None
    aprobado: bool = False
    observaciones: str | None = None

    @field_validator("descripcion")
    @classmethod
    def descripcion_not_blank(cls, value: str) -> str:
        return _require_text(value)


class ExpenseUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proyecto_id: UUID | None = None
    tipo_gasto: ExpenseCategory | None = None
    descripcion: str | None = None
    monto: Decimal | None = Field(default=None, gt=0)
    fecha_gasto: date | None = None
    responsable: str | None = None
    evidencia_url: str | None = None
    aprobado: bool | None = None
    observaciones: str | None = None


class PaymentCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proyecto_id: UUID
    trabajador_id: UUID
    fecha_actividad: date
    tipo_labor: LaborType
    horas_trabajadas: Decimal | None = Field(default=None, ge=0)
    valor_pactado: Decimal = Field(gt=0)
    estado_pago: PaymentStatus = PaymentStatus.PENDIENTE
    fecha_pago: date | None = None
    comprobante_url: str | None = None
    observaciones: str | None = None


class PaymentUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proyecto_id: UUID | None = None
    trabajador_id: UUID | None = None
    fecha_actividad: date | None = None
    tipo_labor: LaborType | None = None
    horas_trabajadas: Decimal | None = Field(default=None, ge=0)
    valor_pactado: Decimal | None = Field(default=None, gt=0)
    estado_pago: PaymentStatus | None = None
    fecha_pago: date | None = None
    comprobante_url: str | None = None
    observaciones: str | None = None


class WorkerCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str
    cedula: str
    telefono: str | None = None
    email: str | None = None
    especialidad: str | None = None
    valor_hora: Decimal | None = Field(default=None, ge=0)

    @field_validator("nombre")
    @classmethod
    def nombre_not_blank(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("cedula")
    @classmethod
    def cedula_digits_only(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned.isdigit():
            raise ValueError("cedula must contain digits only")
        return cleaned


class WorkerUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str | None = None
    cedula: str | None = None
    telefono: str | None = None
    email: str | None = None
    especialidad: str | None = None
    valor_hora: Decimal | None = Field(default=None, ge=0)

    @field_validator("cedula")
    @classmethod
    def cedula_digits_only(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        if not cleaned.isdigit():
            raise ValueError("cedula must contain digits only")
        return cleaned


class EvidenceCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proyecto_id: UUID
    tipo_evidencia: EvidenceType
    nombre_archivo: str
    url_archivo: str
    fecha_actividad: date
    descripcion: str | None = None
    tamano_archivo: int | None = Field(default=None, ge=0)


# Client-side filter states. Defaults are the "inactive" sentinels.


class ExpenseFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search: str = ""
    category: str = ALL
    project: str = ALL
    responsible: str = ALL
    status: str = ALL
    date_start: str = ""
    date_end: str = ""
    amount_min: str = ""
    amount_max: str = ""

    def cleared(self) -> "ExpenseFilters":
        return ExpenseFilters()


class PaymentFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search: str = ""
    labor_type: str = ALL
    project: str = ALL
    worker: str = ALL
    status: str = ALL
    date_start: str = ""
    date_end: str = ""
    amount_min: str = ""
    amount_max: str = ""
    hours_min: str = ""
    hours_max: str = ""

    def cleared(self) -> "PaymentFilters":
        return PaymentFilters()


class EvidenceFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search: str = ""
    evidence_type: str = ALL
    project: str = ALL
    date_start: str = ""
    date_end: str = ""

    def cleared(self) -> "EvidenceFilters":
        return EvidenceFilters()


RecordT = TypeVar("RecordT")


class FilterResult(BaseModel, Generic[RecordT]):
    items: list[RecordT]
    active_filters: int
    result_count: int
    total_count: int


class ConsolidatedFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date_start: date | None = None
    date_end: date | None = None
    project_ids: list[UUID] = Field(default_factory=list)
    statuses: list[str] = Field(default_factory=list)
    amount_min: Decimal | None = None
    amount_max: Decimal | None = None


class ReportHistoryCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nombre: str
    descripcion: str | None = None
    tipo: ReportType
    formato: ReportFormat
    creado_por: str
    modulos: list[str] = Field(default_factory=list)
    proyectos_incluidos: int = Field(default=0, ge=0)
    parametros_generacion: dict[str, object] | None = None

    @field_validator("nombre", "creado_por")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        return _require_text(value)


class ReportHistoryFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search: str = ""
    report_type: str = ALL
    state: str = ALL
    order: str = "fecha_desc"


# Dashboard statistics cards.


class ExpenseStats(BaseModel):
    total: Decimal = Decimal("0")
    month_total: Decimal = Decimal("0")
    today_total: Decimal = Decimal("0")
    approved_total: Decimal = Decimal("0")
    pending_total: Decimal = Decimal("0")
    average: Decimal = Decimal("0")
    count: int = 0


class PaymentStats(BaseModel):
    total: Decimal = Decimal("0")
    month_total: Decimal = Decimal("0")
    today_total: Decimal = Decimal("0")
    pending_total: Decimal = Decimal("0")
    paid_total: Decimal = Decimal("0")
    average: Decimal = Decimal("0")
    count: int = 0
    total_workers: int = 0
    active_workers: int = 0


class EvidenceStats(BaseModel):
    total: int = 0
    images: int = 0
    videos: int = 0
    documents: int = 0
    audios: int = 0
    others: int = 0


class ReportStats(BaseModel):
    total_projects: int = 0
    active_projects: int = 0
    expense_total: Decimal = Decimal("0")
    payment_total: Decimal = Decimal("0")
    evidence_total: int = 0
    expense_month_total: Decimal = Decimal("0")
    payment_month_total: Decimal = Decimal("0")
    inactive_projects: int = 0
