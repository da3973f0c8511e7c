"""Colombian peso and Spanish date formatting shared by the dashboard and exports."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


_NBSP = "\u00a0"

MONTH_NAMES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)
# Indexed by `date.weekday()` (Monday == 0).
WEEKDAY_NAMES = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")


def to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def format_cop(value: Decimal | int | float | str | None) -> str:
    """Format `value` the way es-CO renders COP currency with zero decimals.

    >>> format_cop(Decimal("1234567.5"))
    '$\\xa01.234.568'
    """

    if value is None or value == "":
        return ""
    amount = to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    grouped = f"{abs(amount):,.0f}".replace(",", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}${_NBSP}{grouped}"


def plain_number(value: Decimal | int | float | None) -> str:
    """Return the shortest plain-decimal text for a numeric value (no exponent)."""

    if value is None:
        return ""
    amount = to_decimal(value)
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal("1")))
    return format(amount.normalize(), "f")


def format_percentage(part: Decimal | int, whole: Decimal | int) -> str:
    """Return `part / whole * 100` with one decimal, or `0%` for an empty denominator."""

    whole_value = to_decimal(whole)
    if whole_value == 0:
        return "0%"
    ratio = to_decimal(part) / whole_value * Decimal("100")
    return f"{ratio.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}%"


def format_long_date(value: date | datetime | None) -> str:
    """Return `lunes, 5 de enero de 2026` style dates."""

    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    weekday = WEEKDAY_NAMES[value.weekday()]
    month = MONTH_NAMES[value.month - 1]
    return f"{weekday}, {value.day} de {month} de {value.year}"


def format_short_date(value: date | None) -> str:
    """Return `dd/mm/yyyy`."""

    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_timestamp(value: datetime) -> str:
    return f"{format_long_date(value)}, {value.strftime('%H:%M')}"


def quarter_of(value: date) -> str:
    return f"Q{(value.month - 1) // 3 + 1}"


def date_parts(value: date) -> dict[str, str]:
    """Decompose a date into the uppercase month, year, quarter and weekday columns."""

    return {
        "month": MONTH_NAMES[value.month - 1].upper(),
        "year": str(value.year),
        "quarter": quarter_of(value),
        "weekday": WEEKDAY_NAMES[value.weekday()].upper(),
    }
