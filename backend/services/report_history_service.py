"""Record generated reports and serve the history list of the reports page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable
from uuid import UUID

from backend.repositories.report_history_repository import ReportHistoryRepository
from shared.models import (
    ALL,
    ReportFormat,
    ReportHistoryCreateRequest,
    ReportHistoryEntry,
    ReportHistoryFilters,
    ReportState,
    ReportType,
    ServiceError,
    ServiceErrorCode,
)


logger = logging.getLogger(__name__)

_BYTES_PER_MB = Decimal(1024 * 1024)

_ORDERINGS: dict[str, tuple[Callable[[ReportHistoryEntry], object], bool]] = {
    "fecha_desc": (lambda row: row.fecha_creacion, True),
    "fecha_asc": (lambda row: row.fecha_creacion, False),
    "nombre_asc": (lambda row: row.nombre.casefold(), False),
    "descargas_desc": (lambda row: row.descargas, True),
    "tamano_desc": (lambda row: row.tamano_mb, True),
}


def size_in_mb(size_bytes: int) -> Decimal:
    return (Decimal(size_bytes) / _BYTES_PER_MB).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _matches(entry: ReportHistoryEntry, filters: ReportHistoryFilters) -> bool:
    needle = filters.search.strip().casefold()
    haystack = (entry.nombre, entry.descripcion, entry.creado_por)
    if needle and not any(needle in (value or "").casefold() for value in haystack):
        return False
    if filters.report_type != ALL and entry.tipo != filters.report_type:
        return False
    if filters.state != ALL and entry.estado != filters.state:
        return False
    return True


def filter_history(entries: list[ReportHistoryEntry], filters: ReportHistoryFilters) -> list[ReportHistoryEntry]:
    """Apply the text, type and state filters, then the requested ordering (newest first by default)."""

    key, reverse = _ORDERINGS.get(filters.order, _ORDERINGS["fecha_desc"])
    return sorted((entry for entry in entries if _matches(entry, filters)), key=key, reverse=reverse)


def _backend_error(action: str, exc: Exception) -> ServiceError:
    logger.exception("report_history_failed action=%s", action)
    return ServiceError(code=ServiceErrorCode.BACKEND_ERROR, message=str(exc))


def _not_found() -> ServiceError:
    return ServiceError(code=ServiceErrorCode.NOT_FOUND, message="Reporte no encontrado")


@dataclass(slots=True)
class ReportHistoryService:
    repository: ReportHistoryRepository

    def list_reports(
        self, *, supervisor_id: UUID, filters: ReportHistoryFilters | None = None
    ) -> list[ReportHistoryEntry] | ServiceError:
        try:
            entries = self.repository.list_reports(created_by=str(supervisor_id))
        except Exception as exc:
            return _backend_error("list_reports", exc)
        return filter_history(entries, filters or ReportHistoryFilters())

    def record_generation(
        self,
        *,
        supervisor_id: UUID,
        nombre: str,
        tipo: ReportType,
        formato: ReportFormat,
        modulos: list[str],
        proyectos_incluidos: int,
        size_bytes: int,
        parametros_generacion: dict[str, object] | None = None,
        descripcion: str | None = None,
    ) -> ReportHistoryEntry | ServiceError:
        """Insert the history row, then mark it completed with the file size."""

        request = ReportHistoryCreateRequest(
            nombre=nombre,
            descripcion=descripcion,
            tipo=tipo,
            formato=formato,
            creado_por=str(supervisor_id),
            modulos=modulos,
            proyectos_incluidos=proyectos_incluidos,
            parametros_generacion=parametros_generacion,
        )
        try:
            entry = self.repository.create_report(request)
            completed = self.repository.update_report(
                entry.id,
                {"estado": ReportState.COMPLETADO.value, "tamaño_mb": size_in_mb(size_bytes)},
            )
        except Exception as exc:
            return _backend_error("record_generation", exc)
        logger.info("report_recorded report_id=%s tipo=%s formato=%s", entry.id, tipo.value, formato.value)
        return completed or entry

    def _owned(self, supervisor_id: UUID, report_id: UUID) -> ReportHistoryEntry | None:
        entry = self.repository.get_report(report_id)
        if entry is None or entry.creado_por != str(supervisor_id):
            return None
        return entry

    def register_download(self, *, supervisor_id: UUID, report_id: UUID) -> ReportHistoryEntry | ServiceError:
        try:
            entry = self._owned(supervisor_id, report_id)
            if entry is None:
                return _not_found()
            updated = self.repository.update_report(report_id, {"descargas": entry.descargas + 1})
        except Exception as exc:
            return _backend_error("register_download", exc)
        return updated or _not_found()

    def delete_report(self, *, supervisor_id: UUID, report_id: UUID) -> UUID | ServiceError:
        try:
            if self._owned(supervisor_id, report_id) is None:
                return _not_found()
            deleted = self.repository.delete_report(report_id)
        except Exception as exc:
            return _backend_error("delete_report", exc)
        if not deleted:
            return _not_found()
        return report_id
