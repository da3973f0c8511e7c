"""Composition root for backend services."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from backend.db.supabase_client import SupabaseClient, SupabaseSettings
from backend.events import EventBus
from backend.repositories.evidence_repository import InMemoryEvidenceRepository, SupabaseEvidenceRepository
from backend.repositories.expenses_repository import InMemoryExpensesRepository, SupabaseExpensesRepository
from backend.repositories.payments_repository import InMemoryPaymentsRepository, SupabasePaymentsRepository
from backend.repositories.projects_repository import InMemoryProjectsRepository, SupabaseProjectsRepository
from backend.repositories.report_history_repository import (
    InMemoryReportHistoryRepository,
    ReportHistoryRepository,
    SupabaseReportHistoryRepository,
)
from backend.repositories.users_repository import (
    InMemoryUsersRepository,
    SupabaseUsersRepository,
    UsersRepository,
)
from backend.repositories.workers_repository import InMemoryWorkersRepository, SupabaseWorkersRepository
from backend.services.consolidated import ConsolidatedService
from backend.services.dashboard_service import DashboardService
from backend.services.records_service import RecordsService
from backend.services.report_history_service import ReportHistoryService
from backend.services.statistics_service import StatisticsService
from shared import config


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BackendServices:
    event_bus: EventBus
    records: RecordsService
    dashboard: DashboardService
    consolidated: ConsolidatedService
    statistics: StatisticsService
    report_history: ReportHistoryService
    users_repository: UsersRepository


def build_supabase_client() -> SupabaseClient | None:
    supabase_url = config.supabase_url()
    supabase_key = config.supabase_service_role_key()
    if not supabase_url or not supabase_key:
        return None
    return SupabaseClient(
        settings=SupabaseSettings(
            url=supabase_url,
            service_role_key=supabase_key,
            anon_key=config.supabase_anon_key(),
        )
    )


def build_backend_services(client: SupabaseClient | None = None) -> BackendServices:
    """Wire repositories, the event bus and services.

    Supabase-backed repositories are used when the service role is configured;
    otherwise everything runs on in-memory repositories (local development and
    tests).
    """

    client = client or build_supabase_client()
    if client is not None:
        projects = SupabaseProjectsRepository(client)
        expenses = SupabaseExpensesRepository(client)
        payments = SupabasePaymentsRepository(client)
        workers = SupabaseWorkersRepository(client)
        evidence = SupabaseEvidenceRepository(client)
        users: UsersRepository = SupabaseUsersRepository(client)
        history: ReportHistoryRepository = SupabaseReportHistoryRepository(client)
    else:
        projects = InMemoryProjectsRepository()
        expenses = InMemoryExpensesRepository()
        payments = InMemoryPaymentsRepository()
        workers = InMemoryWorkersRepository()
        evidence = InMemoryEvidenceRepository()
        users = InMemoryUsersRepository()
        history = InMemoryReportHistoryRepository()
    logger.info("backend_services_built storage=%s", "supabase" if client is not None else "in_memory")

    event_bus = EventBus()
    records = RecordsService(
        projects_repository=projects,
        expenses_repository=expenses,
        payments_repository=payments,
        workers_repository=workers,
        evidence_repository=evidence,
        event_bus=event_bus,
        ttl_seconds=config.records_cache_ttl_seconds(),
    )
    dashboard = DashboardService(
        projects_repository=projects,
        expenses_repository=expenses,
        payments_repository=payments,
        workers_repository=workers,
        evidence_repository=evidence,
        event_bus=event_bus,
    )
    return BackendServices(
        event_bus=event_bus,
        records=records,
        dashboard=dashboard,
        consolidated=ConsolidatedService(records_service=records),
        statistics=StatisticsService(records_service=records, workers_repository=workers),
        report_history=ReportHistoryService(repository=history),
        users_repository=users,
    )
