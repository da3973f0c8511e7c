"""Pure predicate filters over joined record collections.

Each filter dimension is skipped while it holds its sentinel value (`"all"` for
selectors, empty text otherwise). Numeric and date inputs come from free-text
fields: when they do not parse they impose no constraint and are not counted as
active.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Sequence, TypeVar

from shared.labels import approval_code, evidence_types_for, payment_status_code
from shared.models import (
    ALL,
    EvidenceFilters,
    EvidenceRecord,
    ExpenseFilters,
    ExpenseRecord,
    FilterResult,
    PaymentFilters,
    PaymentRecord,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")
Predicate = Callable[[T], bool]


def parse_amount(raw: str) -> Decimal | None:
    text = (raw or "").strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        logger.debug("filter_amount_ignored value=%s", text)
        return None
    return value if value.is_finite() else None


def parse_day(raw: str) -> date | None:
    text = (raw or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.debug("filter_date_ignored value=%s", text)
        return None


def _selected(value: str) -> str | None:
    cleaned = (value or "").strip()
    if not cleaned or cleaned == ALL:
        return None
    return cleaned


def _search_term(value: str) -> str | None:
    term = (value or "").strip().lower()
    return term or None


def _contains(term: str, fields: Iterable[str | None]) -> bool:
    return any(term in field.lower() for field in fields if field)


def _range_predicates(
    raw_min: str,
    raw_max: str,
    parse: Callable[[str], object],
    getter: Callable[[T], object],
) -> list[Predicate[T]]:
    """Inclusive bounds; an unset or malformed side imposes no constraint."""

    predicates: list[Predicate[T]] = []
    low = parse(raw_min)
    high = parse(raw_max)
    if low is not None:
        predicates.append(lambda item: (value := getter(item)) is not None and value >= low)
    if high is not None:
        predicates.append(lambda item: (value := getter(item)) is not None and value <= high)
    return predicates


def _apply(records: Sequence[T], predicates: list[Predicate[T]]) -> FilterResult[T]:
    items = [record for record in records if all(predicate(record) for predicate in predicates)]
    return FilterResult(
        items=items,
        active_filters=len(predicates),
        result_count=len(items),
        total_count=len(records),
    )


def expense_predicates(filters: ExpenseFilters) -> list[Predicate[ExpenseRecord]]:
    predicates: list[Predicate[ExpenseRecord]] = []

    if term := _search_term(filters.search):
        predicates.append(
            lambda item: _contains(
                term,
                (item.descripcion, item.proyecto.nombre if item.proyecto else None, item.responsable),
            )
        )
    if category := _selected(filters.category):
        predicates.append(lambda item: item.tipo_gasto == category)
    if project := _selected(filters.project):
        predicates.append(lambda item: str(item.proyecto_id) == project)
    if responsible := _selected(filters.responsible):
        predicates.append(lambda item: item.responsable == responsible)
    if status := _selected(filters.status):
        predicates.append(lambda item: approval_code(item.aprobado) == status)

    predicates += _range_predicates(
        filters.date_start, filters.date_end, parse_day, lambda item: item.fecha_gasto
    )
    predicates += _range_predicates(
        filters.amount_min, filters.amount_max, parse_amount, lambda item: item.monto
    )
    return predicates


def payment_predicates(filters: PaymentFilters) -> list[Predicate[PaymentRecord]]:
    predicates: list[Predicate[PaymentRecord]] = []

    if term := _search_term(filters.search):
        predicates.append(
            lambda item: _contains(
                term,
                (
                    item.trabajador.nombre if item.trabajador else None,
                    item.proyecto.nombre if item.proyecto else None,
                    item.tipo_labor,
                    item.observaciones,
                    item.trabajador.especialidad if item.trabajador else None,
                ),
            )
        )
    if labor_type := _selected(filters.labor_type):
        predicates.append(lambda item: item.tipo_labor == labor_type)
    if project := _selected(filters.project):
        predicates.append(lambda item: str(item.proyecto_id) == project)
    if worker := _selected(filters.worker):
        predicates.append(lambda item: str(item.trabajador_id) == worker)
    if status := _selected(filters.status):
        predicates.append(lambda item: payment_status_code(item.estado_pago) == status)

    predicates += _range_predicates(
        filters.date_start, filters.date_end, parse_day, lambda item: item.fecha_actividad
    )
    predicates += _range_predicates(
        filters.amount_min, filters.amount_max, parse_amount, lambda item: item.valor_pactado
    )
    predicates += _range_predicates(
        filters.hours_min, filters.hours_max, parse_amount, lambda item: item.horas_trabajadas
    )
    return predicates


def evidence_predicates(filters: EvidenceFilters) -> list[Predicate[EvidenceRecord]]:
    predicates: list[Predicate[EvidenceRecord]] = []

    if term := _search_term(filters.search):
        predicates.append(
            lambda item: _contains(
                term,
                (item.nombre_archivo, item.descripcion, item.proyecto.nombre if item.proyecto else None),
            )
        )
    if selector := _selected(filters.evidence_type):
        allowed = evidence_types_for(selector)
        predicates.append(lambda item: item.tipo_evidencia in allowed)
    if project := _selected(filters.project):
        predicates.append(lambda item: str(item.proyecto_id) == project)

    predicates += _range_predicates(
        filters.date_start, filters.date_end, parse_day, lambda item: item.fecha_actividad
    )
    return predicates


def filter_expenses(records: Sequence[ExpenseRecord], filters: ExpenseFilters) -> FilterResult[ExpenseRecord]:
    return _apply(records, expense_predicates(filters))


def filter_payments(records: Sequence[PaymentRecord], filters: PaymentFilters) -> FilterResult[PaymentRecord]:
    return _apply(records, payment_predicates(filters))


def filter_evidence(
    records: Sequence[EvidenceRecord], filters: EvidenceFilters
) -> FilterResult[EvidenceRecord]:
    return _apply(records, evidence_predicates(filters))
