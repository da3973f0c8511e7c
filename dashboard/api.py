"""FastAPI entrypoint for the SiGeCul dashboard endpoints."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import Any, TypeVar
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from backend.auth.supabase_auth import UnauthorizedError, authenticate_bearer_token
from backend.db.supabase_client import SupabaseRequestError
from backend.factory import BackendServices, build_backend_services
from backend.reporting import (
    ExportFile,
    NothingToExportError,
    build_consolidated_pdf,
    build_consolidated_workbook,
    build_evidence_csv,
    build_expenses_csv,
    build_expenses_pdf,
    build_expenses_workbook,
    build_payments_csv,
    build_payments_pdf,
    build_payments_workbook,
)
from backend.reporting.pdf_report import DEFAULT_CONSOLIDATED_TITLE
from backend.services.consolidated import ConsolidatedData
from backend.services.filters import filter_evidence, filter_expenses, filter_payments
from shared import config as _config
from shared.labels import EXPENSE_CATEGORY_LABELS, PROJECT_STATUS_LABELS, label_for
from shared.models import (
    ALL,
    ConsolidatedFilters,
    EvidenceCreateRequest,
    EvidenceFilters,
    ExpenseCreateRequest,
    ExpenseFilters,
    ExpenseRecord,
    ExpenseUpdateRequest,
    FilterResult,
    PaymentCreateRequest,
    PaymentFilters,
    PaymentRecord,
    PaymentStatus,
    PaymentUpdateRequest,
    ProjectCreateRequest,
    ProjectUpdateRequest,
    ReportFormat,
    ReportHistoryFilters,
    ReportType,
    ServiceError,
    ServiceErrorCode,
    WorkerCreateRequest,
    WorkerUpdateRequest,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

_STATUS_BY_ERROR_CODE = {
    ServiceErrorCode.NOT_FOUND: 404,
    ServiceErrorCode.CONFLICT: 409,
    ServiceErrorCode.VALIDATION_ERROR: 400,
    ServiceErrorCode.BACKEND_ERROR: 502,
}


class ApprovalPayload(BaseModel):
    aprobado: bool


class PaymentStatusPayload(BaseModel):
    estado_pago: PaymentStatus
    fecha_pago: date | None = None


@lru_cache(maxsize=1)
def get_backend_services() -> BackendServices:
    """Create and cache the backend services once per process."""

    return build_backend_services()


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    prefix = "Bearer "
    if not authorization.startswith(prefix):
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    token = authorization[len(prefix) :].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


def _resolve_supervisor(authorization: str | None) -> UUID:
    """Resolve the dashboard user (usuarios.id) behind the bearer token."""

    token = _extract_bearer_token(authorization)
    try:
        account = authenticate_bearer_token(token)
    except UnauthorizedError as exc:
        raise HTTPException(status_code=401, detail="Unauthorized") from exc

    supervisor_id = get_backend_services().users_repository.get_user_id_for_auth_user(
        auth_user_id=account.auth_user_id
    )
    if supervisor_id is None:
        raise HTTPException(status_code=401, detail="No active user linked to authenticated account")
    return supervisor_id


def current_supervisor(authorization: str | None = Header(default=None)) -> UUID:
    return _resolve_supervisor(authorization)


def _unwrap(result: T | ServiceError) -> T:
    if isinstance(result, ServiceError):
        raise HTTPException(status_code=_STATUS_BY_ERROR_CODE[result.code], detail=result.message)
    return result


def _download(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": export.content_disposition},
    )


def expense_filters(
    search: str = "",
    category: str = ALL,
    project: str = ALL,
    responsible: str = ALL,
    status: str = ALL,
    date_start: str = "",
    date_end: str = "",
    amount_min: str = "",
    amount_max: str = "",
) -> ExpenseFilters:
    return ExpenseFilters(
        search=search,
        category=category,
        project=project,
        responsible=responsible,
        status=status,
        date_start=date_start,
        date_end=date_end,
        amount_min=amount_min,
        amount_max=amount_max,
    )


def payment_filters(
    search: str = "",
    labor_type: str = ALL,
    project: str = ALL,
    worker: str = ALL,
    status: str = ALL,
    date_start: str = "",
    date_end: str = "",
    amount_min: str = "",
    amount_max: str = "",
    hours_min: str = "",
    hours_max: str = "",
) -> PaymentFilters:
    return PaymentFilters(
        search=search,
        labor_type=labor_type,
        project=project,
        worker=worker,
        status=status,
        date_start=date_start,
        date_end=date_end,
        amount_min=amount_min,
        amount_max=amount_max,
        hours_min=hours_min,
        hours_max=hours_max,
    )


def evidence_filters(
    search: str = "",
    evidence_type: str = ALL,
    project: str = ALL,
    date_start: str = "",
    date_end: str = "",
) -> EvidenceFilters:
    return EvidenceFilters(
        search=search,
        evidence_type=evidence_type,
        project=project,
        date_start=date_start,
        date_end=date_end,
    )


def consolidated_filters(
    date_start: date | None = None,
    date_end: date | None = None,
    project_ids: list[UUID] = Query(default=[]),
    statuses: list[str] = Query(default=[]),
    amount_min: Decimal | None = None,
    amount_max: Decimal | None = None,
) -> ConsolidatedFilters:
    return ConsolidatedFilters(
        date_start=date_start,
        date_end=date_end,
        project_ids=project_ids,
        statuses=statuses,
        amount_min=amount_min,
        amount_max=amount_max,
    )


def report_history_filters(
    search: str = "",
    report_type: str = ALL,
    state: str = ALL,
    order: str = "fecha_desc",
) -> ReportHistoryFilters:
    return ReportHistoryFilters(search=search, report_type=report_type, state=state, order=order)


def _record_consolidated_report(
    supervisor_id: UUID,
    data: ConsolidatedData,
    export: ExportFile,
    *,
    nombre: str,
    formato: ReportFormat,
    filters: ConsolidatedFilters,
    include_summary: bool,
    include_details: bool,
) -> None:
    """Add the generated file to the history; a failed insert never blocks the download."""

    modulos = (["resumen"] if include_summary else []) + (
        ["proyectos", "gastos", "pagos", "evidencias"] if include_details else []
    )
    result = get_backend_services().report_history.record_generation(
        supervisor_id=supervisor_id,
        nombre=nombre,
        tipo=ReportType.EJECUTIVO,
        formato=formato,
        modulos=modulos,
        proyectos_incluidos=data.summary.total_projects,
        size_bytes=len(export.content),
        parametros_generacion={
            "filters": filters.model_dump(mode="json"),
            "include_summary": include_summary,
            "include_details": include_details,
        },
    )
    if isinstance(result, ServiceError):
        logger.warning("report_history_not_recorded filename=%s", export.filename)


def _consolidated_overview(data: ConsolidatedData) -> dict[str, Any]:
    return {
        "summary": data.summary,
        "projects_by_status": [
            {**jsonable_encoder(share), "label": label_for(PROJECT_STATUS_LABELS, share.estado)}
            for share in data.projects_by_status
        ],
        "expenses_by_category": [
            {**jsonable_encoder(share), "label": label_for(EXPENSE_CATEGORY_LABELS, share.tipo_gasto)}
            for share in data.expenses_by_category
        ],
        "payments_by_worker": [
            {**jsonable_encoder(worker), "projects_label": worker.projects_label} for worker in data.payments_by_worker
        ],
        "monthly_trend": data.monthly_trend,
        "generated_at": data.generated_at,
    }


def _filtered_expenses(supervisor_id: UUID, filters: ExpenseFilters) -> FilterResult[ExpenseRecord]:
    records = get_backend_services().records.expense_records(supervisor_id)
    return filter_expenses(records, filters)


def _filtered_payments(supervisor_id: UUID, filters: PaymentFilters) -> FilterResult[PaymentRecord]:
    records = get_backend_services().records.payment_records(supervisor_id)
    return filter_payments(records, filters)


app = FastAPI(title="SiGeCul Dashboard API")

ALLOW_ORIGINS = _config.cors_allow_origins()


@app.middleware("http")
async def log_http_requests(request: Request, call_next):
    """Log incoming requests, HTTP status codes and unexpected errors."""

    logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "http_request_failed method=%s path=%s",
            request.method,
            request.url.path,
        )
        raise

    logger.info(
        "http_response_sent method=%s path=%s status_code=%s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

logger.info("cors_allow_origins=%s", ALLOW_ORIGINS)


@app.exception_handler(SupabaseRequestError)
async def handle_fetch_failure(request: Request, exc: SupabaseRequestError) -> JSONResponse:
    logger.warning("records_fetch_failed path=%s status=%s", request.url.path, exc.status)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(NothingToExportError)
async def handle_nothing_to_export(request: Request, exc: NothingToExportError) -> JSONResponse:
    logger.info("export_refused_empty path=%s", request.url.path)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for unhandled exceptions."""

    logger.exception(
        "unhandled_exception method=%s path=%s exception_type=%s message=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.get("/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""

    return {"status": "ok"}


# Filtered views


@app.get("/projects")
def list_projects(supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(get_backend_services().records.list_projects(supervisor_id))


@app.get("/expenses")
def list_expenses(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: ExpenseFilters = Depends(expense_filters),
) -> Any:
    return jsonable_encoder(_filtered_expenses(supervisor_id, filters))


@app.get("/payments")
def list_payments(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: PaymentFilters = Depends(payment_filters),
) -> Any:
    return jsonable_encoder(_filtered_payments(supervisor_id, filters))


@app.get("/evidence")
def list_evidence(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: EvidenceFilters = Depends(evidence_filters),
) -> Any:
    records = get_backend_services().records.evidence_records(supervisor_id)
    return jsonable_encoder(filter_evidence(records, filters))


# Statistics cards


@app.get("/expenses/stats")
def expense_stats(supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(get_backend_services().statistics.expense_stats(supervisor_id))


@app.get("/payments/stats")
def payment_stats(supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(get_backend_services().statistics.payment_stats(supervisor_id))


@app.get("/evidence/stats")
def evidence_stats(supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(get_backend_services().statistics.evidence_stats(supervisor_id))


@app.get("/reports/stats")
def report_stats(supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(get_backend_services().statistics.report_stats(supervisor_id))


# Exports of the filtered views


@app.get("/expenses/export.csv")
def export_expenses_csv(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: ExpenseFilters = Depends(expense_filters),
) -> Response:
    return _download(build_expenses_csv(_filtered_expenses(supervisor_id, filters).items))


@app.get("/expenses/export.xlsx")
def export_expenses_workbook(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: ExpenseFilters = Depends(expense_filters),
) -> Response:
    return _download(build_expenses_workbook(_filtered_expenses(supervisor_id, filters).items))


@app.get("/expenses/export.pdf")
def export_expenses_pdf(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: ExpenseFilters = Depends(expense_filters),
) -> Response:
    records = _filtered_expenses(supervisor_id, filters).items
    return _download(build_expenses_pdf(records, org_name=_config.org_name()))


@app.get("/payments/export.csv")
def export_payments_csv(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: PaymentFilters = Depends(payment_filters),
) -> Response:
    return _download(build_payments_csv(_filtered_payments(supervisor_id, filters).items))


@app.get("/payments/export.xlsx")
def export_payments_workbook(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: PaymentFilters = Depends(payment_filters),
) -> Response:
    return _download(build_payments_workbook(_filtered_payments(supervisor_id, filters).items))


@app.get("/payments/export.pdf")
def export_payments_pdf(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: PaymentFilters = Depends(payment_filters),
) -> Response:
    records = _filtered_payments(supervisor_id, filters).items
    return _download(build_payments_pdf(records, org_name=_config.org_name()))


@app.get("/evidence/export.csv")
def export_evidence_csv(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: EvidenceFilters = Depends(evidence_filters),
) -> Response:
    records = get_backend_services().records.evidence_records(supervisor_id)
    return _download(build_evidence_csv(filter_evidence(records, filters).items))


@app.get("/reports/consolidated")
def consolidated_overview(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: ConsolidatedFilters = Depends(consolidated_filters),
) -> Any:
    data = get_backend_services().consolidated.build(supervisor_id=supervisor_id, filters=filters)
    return jsonable_encoder(_consolidated_overview(data))


@app.get("/reports/consolidated.pdf")
def consolidated_pdf(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: ConsolidatedFilters = Depends(consolidated_filters),
    title: str = DEFAULT_CONSOLIDATED_TITLE,
    include_summary: bool = True,
    include_details: bool = True,
) -> Response:
    title = title.strip() or DEFAULT_CONSOLIDATED_TITLE
    data = get_backend_services().consolidated.build(supervisor_id=supervisor_id, filters=filters)
    export = build_consolidated_pdf(
        data,
        org_name=_config.org_name(),
        title=title,
        include_summary=include_summary,
        include_details=include_details,
        top_projects=_config.report_top_projects(),
        top_expenses=_config.report_top_expenses(),
    )
    _record_consolidated_report(
        supervisor_id,
        data,
        export,
        nombre=title,
        formato=ReportFormat.PDF,
        filters=filters,
        include_summary=include_summary,
        include_details=include_details,
    )
    return _download(export)


@app.get("/reports/consolidated.xlsx")
def consolidated_workbook(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: ConsolidatedFilters = Depends(consolidated_filters),
    include_summary: bool = True,
    include_details: bool = True,
) -> Response:
    data = get_backend_services().consolidated.build(supervisor_id=supervisor_id, filters=filters)
    export = build_consolidated_workbook(data, include_summary=include_summary, include_details=include_details)
    _record_consolidated_report(
        supervisor_id,
        data,
        export,
        nombre=DEFAULT_CONSOLIDATED_TITLE,
        formato=ReportFormat.EXCEL,
        filters=filters,
        include_summary=include_summary,
        include_details=include_details,
    )
    return _download(export)


# Report history


@app.get("/reports/history")
def list_report_history(
    supervisor_id: UUID = Depends(current_supervisor),
    filters: ReportHistoryFilters = Depends(report_history_filters),
) -> Any:
    service = get_backend_services().report_history
    return jsonable_encoder(_unwrap(service.list_reports(supervisor_id=supervisor_id, filters=filters)))


@app.post("/reports/history/{report_id}/downloads")
def register_report_download(report_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    service = get_backend_services().report_history
    return jsonable_encoder(_unwrap(service.register_download(supervisor_id=supervisor_id, report_id=report_id)))


@app.delete("/reports/history/{report_id}")
def delete_report_history(report_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> dict[str, str]:
    service = get_backend_services().report_history
    deleted_id = _unwrap(service.delete_report(supervisor_id=supervisor_id, report_id=report_id))
    return {"deleted_id": str(deleted_id)}


# Projects


@app.post("/projects", status_code=201)
def create_project(payload: ProjectCreateRequest, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    service = get_backend_services().dashboard
    return jsonable_encoder(_unwrap(service.create_project(supervisor_id=supervisor_id, request=payload)))


@app.patch("/projects/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdateRequest,
    supervisor_id: UUID = Depends(current_supervisor),
) -> Any:
    service = get_backend_services().dashboard
    result = service.update_project(supervisor_id=supervisor_id, project_id=project_id, request=payload)
    return jsonable_encoder(_unwrap(result))


@app.delete("/projects/{project_id}")
def delete_project(project_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> dict[str, str]:
    service = get_backend_services().dashboard
    deleted_id = _unwrap(service.delete_project(supervisor_id=supervisor_id, project_id=project_id))
    return {"deleted_id": str(deleted_id)}


# Expenses


@app.post("/expenses", status_code=201)
def create_expense(payload: ExpenseCreateRequest, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    service = get_backend_services().dashboard
    return jsonable_encoder(_unwrap(service.create_expense(supervisor_id=supervisor_id, request=payload)))


@app.patch("/expenses/{expense_id}")
def update_expense(
    expense_id: UUID,
    payload: ExpenseUpdateRequest,
    supervisor_id: UUID = Depends(current_supervisor),
) -> Any:
    service = get_backend_services().dashboard
    result = service.update_expense(supervisor_id=supervisor_id, expense_id=expense_id, request=payload)
    return jsonable_encoder(_unwrap(result))


@app.post("/expenses/{expense_id}/approval")
def set_expense_approval(
    expense_id: UUID,
    payload: ApprovalPayload,
    supervisor_id: UUID = Depends(current_supervisor),
) -> Any:
    service = get_backend_services().dashboard
    result = service.set_expense_approval(supervisor_id=supervisor_id, expense_id=expense_id, aprobado=payload.aprobado)
    return jsonable_encoder(_unwrap(result))


@app.delete("/expenses/{expense_id}")
def delete_expense(expense_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    service = get_backend_services().dashboard
    return jsonable_encoder(_unwrap(service.delete_expense(supervisor_id=supervisor_id, expense_id=expense_id)))


# Payments


@app.post("/payments", status_code=201)
def create_payment(payload: PaymentCreateRequest, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    service = get_backend_services().dashboard
    return jsonable_encoder(_unwrap(service.create_payment(supervisor_id=supervisor_id, request=payload)))


@app.patch("/payments/{payment_id}")
def update_payment(
    payment_id: UUID,
    payload: PaymentUpdateRequest,
    supervisor_id: UUID = Depends(current_supervisor),
) -> Any:
    service = get_backend_services().dashboard
    result = service.update_payment(supervisor_id=supervisor_id, payment_id=payment_id, request=payload)
    return jsonable_encoder(_unwrap(result))


@app.post("/payments/{payment_id}/status")
def set_payment_status(
    payment_id: UUID,
    payload: PaymentStatusPayload,
    supervisor_id: UUID = Depends(current_supervisor),
) -> Any:
    service = get_backend_services().dashboard
    result = service.set_payment_status(
        supervisor_id=supervisor_id,
        payment_id=payment_id,
        status=payload.estado_pago,
        fecha_pago=payload.fecha_pago,
    )
    return jsonable_encoder(_unwrap(result))


@app.delete("/payments/{payment_id}")
def delete_payment(payment_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    service = get_backend_services().dashboard
    return jsonable_encoder(_unwrap(service.delete_payment(supervisor_id=supervisor_id, payment_id=payment_id)))


# Workers


@app.get("/workers")
def list_workers(active_only: bool = False, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(_unwrap(get_backend_services().dashboard.list_workers(active_only=active_only)))


@app.post("/workers", status_code=201)
def create_worker(payload: WorkerCreateRequest, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(_unwrap(get_backend_services().dashboard.create_worker(payload)))


@app.patch("/workers/{worker_id}")
def update_worker(
    worker_id: UUID,
    payload: WorkerUpdateRequest,
    supervisor_id: UUID = Depends(current_supervisor),
) -> Any:
    return jsonable_encoder(_unwrap(get_backend_services().dashboard.update_worker(worker_id, payload)))


@app.post("/workers/{worker_id}/deactivate")
def deactivate_worker(worker_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(_unwrap(get_backend_services().dashboard.set_worker_active(worker_id, False)))


@app.post("/workers/{worker_id}/activate")
def activate_worker(worker_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    return jsonable_encoder(_unwrap(get_backend_services().dashboard.set_worker_active(worker_id, True)))


@app.delete("/workers/{worker_id}")
def delete_worker(worker_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> dict[str, str]:
    deleted_id = _unwrap(get_backend_services().dashboard.delete_worker(worker_id))
    return {"deleted_id": str(deleted_id)}


# Evidence


@app.post("/evidence", status_code=201)
def create_evidence(payload: EvidenceCreateRequest, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    service = get_backend_services().dashboard
    return jsonable_encoder(_unwrap(service.create_evidence(supervisor_id=supervisor_id, request=payload)))


@app.delete("/evidence/{evidence_id}")
def delete_evidence(evidence_id: UUID, supervisor_id: UUID = Depends(current_supervisor)) -> Any:
    service = get_backend_services().dashboard
    return jsonable_encoder(_unwrap(service.delete_evidence(supervisor_id=supervisor_id, evidence_id=evidence_id)))
