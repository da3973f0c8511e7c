"""Single source of truth for categorical code labels.

Filtering, dashboard display and every export resolve codes through these
tables so the taxonomy used to filter and the one used to report stay aligned.
"""

from __future__ import annotations

from typing import Mapping


EXPENSE_CATEGORY_LABELS: Mapping[str, str] = {
    "honorarios": "HONORARIOS PROFESIONALES",
    "refrigerios": "REFRIGERIOS Y ALIMENTACIÓN",
    "transporte": "TRANSPORTE Y MOVILIZACIÓN",
    "materiales": "MATERIALES Y SUMINISTROS",
    "servicios": "SERVICIOS PROFESIONALES",
    "otros": "OTROS GASTOS",
}

LABOR_TYPE_LABELS: Mapping[str, str] = {
    "artistica": "ACTIVIDAD ARTÍSTICA",
    "tecnica": "SOPORTE TÉCNICO",
    "administrativa": "GESTIÓN ADMINISTRATIVA",
    "logistica": "APOYO LOGÍSTICO",
    "produccion": "PRODUCCIÓN EJECUTIVA",
    "otros": "OTRAS ACTIVIDADES",
}

PAYMENT_STATUS_LABELS: Mapping[str, str] = {
    "pagado": "✅ PAGADO",
    "pendiente": "⏳ PENDIENTE DE PAGO",
    "cancelado": "❌ CANCELADO",
}

APPROVAL_LABELS: Mapping[str, str] = {
    "aprobado": "✅ APROBADO",
    "pendiente": "⏳ PENDIENTE DE APROBACIÓN",
}

# Built-in PDF fonts have no glyphs for the status emoji.
PAYMENT_STATUS_PLAIN_LABELS: Mapping[str, str] = {
    "pagado": "PAGADO",
    "pendiente": "PENDIENTE DE PAGO",
    "cancelado": "CANCELADO",
}

APPROVAL_PLAIN_LABELS: Mapping[str, str] = {
    "aprobado": "APROBADO",
    "pendiente": "PENDIENTE DE APROBACIÓN",
}

EVIDENCE_TYPE_LABELS: Mapping[str, str] = {
    "fotografia": "FOTOGRAFÍA",
    "video": "VIDEO",
    "audio": "AUDIO",
    "lista_asistencia": "LISTA DE ASISTENCIA",
    "documento": "DOCUMENTO",
    "informe": "INFORME",
    "otro": "OTRO",
}

PROJECT_STATUS_LABELS: Mapping[str, str] = {
    "planificacion": "EN PLANIFICACIÓN",
    "activo": "ACTIVO",
    "finalizado": "FINALIZADO",
    "cancelado": "CANCELADO",
}

# Dashboard tabs group several raw evidence types under one selector.
EVIDENCE_TYPE_GROUPS: Mapping[str, frozenset[str]] = {
    "fotografias": frozenset({"fotografia"}),
    "videos": frozenset({"video"}),
    "documentos": frozenset({"documento", "lista_asistencia", "informe"}),
    "audios": frozenset({"audio"}),
    "otros": frozenset({"otro"}),
}

UNSPECIFIED = "SIN ESPECIFICAR"
PROJECT_NOT_FOUND = "PROYECTO NO ENCONTRADO"
WORKER_NOT_FOUND = "TRABAJADOR NO ENCONTRADO"


def label_for(table: Mapping[str, str], code: str | None, *, missing: str = UNSPECIFIED) -> str:
    """Return the uppercase label for `code`, falling back to the raw code uppercased."""

    if code is None or not str(code).strip():
        return missing
    return table.get(code) or str(code).upper()


def approval_code(aprobado: bool | None) -> str:
    """Map the nullable approval flag onto its status code."""

    return "aprobado" if aprobado else "pendiente"


def approval_label(aprobado: bool | None) -> str:
    return APPROVAL_LABELS[approval_code(aprobado)]


def approval_plain_label(aprobado: bool | None) -> str:
    return APPROVAL_PLAIN_LABELS[approval_code(aprobado)]


def payment_status_code(estado_pago: str | None) -> str:
    """Payments without an explicit status are pending."""

    return estado_pago or "pendiente"


def evidence_types_for(selector: str) -> frozenset[str]:
    """Resolve a tab group or a raw evidence type into the set of raw types it matches."""

    return EVIDENCE_TYPE_GROUPS.get(selector, frozenset({selector}))
