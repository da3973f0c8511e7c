"""Tests for the statistics cards of the dashboard pages."""

from datetime import date
from decimal import Decimal

import pytest

from backend.services.statistics_service import month_bounds
from tests.fakes import OTHER_SUPERVISOR_ID, SUPERVISOR_ID, build_seeded_services


@pytest.fixture
def statistics():
    return build_seeded_services().statistics


def test_month_bounds_handle_leap_february() -> None:
    assert month_bounds(date(2028, 2, 10)) == (date(2028, 2, 1), date(2028, 2, 29))


def test_expense_stats(statistics) -> None:
    stats = statistics.expense_stats(SUPERVISOR_ID, today=date(2026, 2, 12))

    assert stats.total == Decimal("200000")
    assert stats.month_total == Decimal("200000")
    assert stats.today_total == Decimal("30000")
    assert stats.approved_total == Decimal("150000")
    assert stats.pending_total == Decimal("50000")
    assert stats.average == Decimal("66666.67")
    assert stats.count == 3


def test_expense_month_total_resets_with_the_calendar_month(statistics) -> None:
    stats = statistics.expense_stats(SUPERVISOR_ID, today=date(2026, 3, 2))

    assert stats.month_total == Decimal("0")
    assert stats.total == Decimal("200000")


def test_payment_stats_treat_missing_status_as_pending(statistics) -> None:
    stats = statistics.payment_stats(SUPERVISOR_ID, today=date(2026, 2, 14))

    assert stats.total == Decimal("350000")
    assert stats.month_total == Decimal("350000")
    assert stats.today_total == Decimal("200000")
    assert stats.pending_total == Decimal("100000")
    assert stats.paid_total == Decimal("200000")
    assert stats.average == Decimal("116666.67")
    assert (stats.total_workers, stats.active_workers) == (2, 1)


def test_evidence_stats_group_documents(statistics) -> None:
    stats = statistics.evidence_stats(SUPERVISOR_ID)

    assert stats.total == 2
    assert stats.images == 1
    assert stats.documents == 1
    assert stats.others == 0


def test_stats_for_supervisor_without_records() -> None:
    statistics = build_seeded_services().statistics

    assert statistics.expense_stats(OTHER_SUPERVISOR_ID, today=date(2026, 2, 12)).average == Decimal("0")
    assert statistics.evidence_stats(OTHER_SUPERVISOR_ID).total == 0


def test_report_stats_month_totals_use_payment_date(statistics) -> None:
    stats = statistics.report_stats(SUPERVISOR_ID, today=date(2026, 2, 20))

    assert stats.total_projects == 2
    assert stats.active_projects == 1
    assert stats.expense_total == Decimal("200000")
    assert stats.payment_total == Decimal("350000")
    assert stats.evidence_total == 2
    assert stats.expense_month_total == Decimal("200000")
    assert stats.payment_month_total == Decimal("200000")
    assert stats.inactive_projects == 0


def test_projects_without_recent_activity_are_counted(statistics) -> None:
    stats = statistics.report_stats(SUPERVISOR_ID, today=date(2026, 4, 15))

    assert stats.inactive_projects == 2
