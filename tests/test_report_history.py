"""Tests for the generated reports history."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from backend.repositories.report_history_repository import InMemoryReportHistoryRepository
from backend.services.report_history_service import ReportHistoryService, size_in_mb
from shared.models import (
    ReportFormat,
    ReportHistoryEntry,
    ReportHistoryFilters,
    ReportType,
    ServiceError,
    ServiceErrorCode,
)
from tests.fakes import OTHER_SUPERVISOR_ID, SUPERVISOR_ID


REPORT_JAN_ID = UUID("60000000-0000-4000-8000-000000000001")
REPORT_FEB_ID = UUID("60000000-0000-4000-8000-000000000002")
REPORT_FOREIGN_ID = UUID("60000000-0000-4000-8000-000000000003")


def _entry(report_id: UUID, nombre: str, created: datetime, **fields) -> ReportHistoryEntry:
    return ReportHistoryEntry.model_validate(
        {
            "id": report_id,
            "nombre": nombre,
            "tipo": "ejecutivo",
            "formato": "pdf",
            "fecha_creacion": created,
            "creado_por": str(SUPERVISOR_ID),
            "estado": "completado",
            **fields,
        }
    )


@pytest.fixture
def service():
    repository = InMemoryReportHistoryRepository(
        [
            _entry(REPORT_JAN_ID, "Cierre de enero", datetime(2026, 1, 31, tzinfo=timezone.utc), descargas=4),
            _entry(
                REPORT_FEB_ID,
                "Balance financiero",
                datetime(2026, 2, 28, tzinfo=timezone.utc),
                tipo="financiero",
                estado="error",
                descripcion="Pagos de febrero",
            ),
            _entry(
                REPORT_FOREIGN_ID,
                "Reporte ajeno",
                datetime(2026, 2, 1, tzinfo=timezone.utc),
                creado_por=str(OTHER_SUPERVISOR_ID),
            ),
        ]
    )
    return ReportHistoryService(repository=repository)


def test_size_in_mb_rounds_to_hundredths() -> None:
    assert size_in_mb(1536 * 1024) == Decimal("1.50")
    assert size_in_mb(0) == Decimal("0.00")


def test_history_is_scoped_and_newest_first(service) -> None:
    entries = service.list_reports(supervisor_id=SUPERVISOR_ID)

    assert [entry.id for entry in entries] == [REPORT_FEB_ID, REPORT_JAN_ID]


def test_history_filters_and_orderings(service) -> None:
    by_text = service.list_reports(supervisor_id=SUPERVISOR_ID, filters=ReportHistoryFilters(search="FEBRERO"))
    by_type = service.list_reports(supervisor_id=SUPERVISOR_ID, filters=ReportHistoryFilters(report_type="ejecutivo"))
    by_state = service.list_reports(supervisor_id=SUPERVISOR_ID, filters=ReportHistoryFilters(state="error"))
    by_downloads = service.list_reports(
        supervisor_id=SUPERVISOR_ID, filters=ReportHistoryFilters(order="descargas_desc")
    )

    assert [entry.id for entry in by_text] == [REPORT_FEB_ID]
    assert [entry.id for entry in by_type] == [REPORT_JAN_ID]
    assert [entry.id for entry in by_state] == [REPORT_FEB_ID]
    assert by_downloads[0].id == REPORT_JAN_ID


def test_record_generation_completes_the_entry(service) -> None:
    entry = service.record_generation(
        supervisor_id=SUPERVISOR_ID,
        nombre="Reporte Consolidado",
        tipo=ReportType.EJECUTIVO,
        formato=ReportFormat.EXCEL,
        modulos=["resumen"],
        proyectos_incluidos=2,
        size_bytes=2 * 1024 * 1024,
    )

    assert not isinstance(entry, ServiceError)
    assert entry.estado == "completado"
    assert entry.tamano_mb == Decimal("2.00")
    assert entry.descargas == 0
    assert entry.creado_por == str(SUPERVISOR_ID)


def test_downloads_and_deletes_only_touch_own_reports(service) -> None:
    downloaded = service.register_download(supervisor_id=SUPERVISOR_ID, report_id=REPORT_JAN_ID)
    foreign = service.delete_report(supervisor_id=SUPERVISOR_ID, report_id=REPORT_FOREIGN_ID)

    assert downloaded.descargas == 5
    assert isinstance(foreign, ServiceError)
    assert foreign.code == ServiceErrorCode.NOT_FOUND
    assert service.delete_report(supervisor_id=SUPERVISOR_ID, report_id=REPORT_JAN_ID) == REPORT_JAN_ID


def test_repository_failure_becomes_backend_error(service, monkeypatch, caplog) -> None:
    def _boom(*_args, **_kwargs):
        raise RuntimeError("Supabase request failed with status 500: oops")

    monkeypatch.setattr(service.repository, "create_report", _boom)

    result = service.record_generation(
        supervisor_id=SUPERVISOR_ID,
        nombre="Reporte Consolidado",
        tipo=ReportType.EJECUTIVO,
        formato=ReportFormat.PDF,
        modulos=[],
        proyectos_incluidos=0,
        size_bytes=10,
    )

    assert isinstance(result, ServiceError)
    assert result.code == ServiceErrorCode.BACKEND_ERROR
    assert "report_history_failed action=record_generation" in caplog.text
