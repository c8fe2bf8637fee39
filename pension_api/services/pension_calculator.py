from __future__ import annotations

import re
from dataclasses import dataclass, asdict
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

DateLike = Union[date, datetime]
Number = Union[int, float, str, Decimal]

MS_PER_DAY = 24 * 60 * 60 * 1000
# average Gregorian year, absorbs leap days
MS_PER_YEAR = 36525 * MS_PER_DAY // 100

SCHEME_TOTAL = "total"
SCHEME_PARTIAL = "partial"

# scheme -> (gratuity_rate, pension_rate)
BASE_RATES = {
    SCHEME_TOTAL: (Decimal("0.25"), Decimal("0.80")),
    SCHEME_PARTIAL: (Decimal("0.20"), Decimal("0.60")),
}
DEFAULT_RATES = BASE_RATES[SCHEME_TOTAL]

CURRENCY_SYMBOL = "₦"
TWO_PLACES = Decimal("0.01")
_AMOUNT_NOISE = re.compile(r"[₦,\s]")


@dataclass(frozen=True)
class PensionCalculationInput:
    salary: Number
    date_of_first_appointment: DateLike
    date_of_retirement: DateLike
    pension_scheme_type: str | None
    current_level: str | None = None  # carried along, not used by the rate rules yet


@dataclass(frozen=True)
class PensionCalculationResult:
    years_of_service: int
    gratuity_rate: Decimal
    pension_rate: Decimal
    total_gratuity: Decimal
    monthly_pension: Decimal

    def as_dict(self) -> dict:
        out = asdict(self)
        for k in ("gratuity_rate", "pension_rate", "total_gratuity", "monthly_pension"):
            out[k] = float(out[k])
        return out


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _epoch_ms(value: DateLike) -> int:
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    else:
        dt = datetime.combine(value, time.min, tzinfo=timezone.utc)
    delta = dt - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86400 + delta.seconds) * 1000 + delta.microseconds // 1000


def parse_amount(raw) -> Decimal | None:
    """Read 1200000, "1,200,000" or "₦1,200,000.50" as a Decimal; None if unreadable."""
    if raw is None:
        return None
    try:
        return Decimal(_AMOUNT_NOISE.sub("", str(raw)))
    except InvalidOperation:
        return None


def years_between(start: DateLike, end: DateLike) -> int:
    """Whole years of service, floor of elapsed milliseconds over 365.25 days.

    Not calendar accurate on purpose. A negative span floors downwards.
    """
    return (_epoch_ms(end) - _epoch_ms(start)) // MS_PER_YEAR


def base_rates(scheme: str | None) -> tuple[Decimal, Decimal]:
    # unrecognised schemes get the "total" tier
    return BASE_RATES.get((scheme or "").strip().lower(), DEFAULT_RATES)


def adjust_rates(years: int, gratuity: Decimal, pension: Decimal) -> tuple[Decimal, Decimal]:
    if years >= 35:
        return min(gratuity + Decimal("0.05"), Decimal("0.30")), min(pension + Decimal("0.10"), Decimal("0.90"))
    if years >= 30:
        return min(gratuity + Decimal("0.03"), Decimal("0.28")), min(pension + Decimal("0.05"), Decimal("0.85"))
    if years < 10:
        return max(gratuity - Decimal("0.05"), Decimal("0.15")), max(pension - Decimal("0.10"), Decimal("0.50"))
    return gratuity, pension


def calculate_pension(inp: PensionCalculationInput) -> PensionCalculationResult:
    """
    Derive years of service and the gratuity / pension figures for a pensioner.

    Deterministic for the same inputs, no clock or I/O involved. Date order is
    not checked here; callers validate before persisting.
    """
    salary = _to_decimal(inp.salary)
    years = years_between(inp.date_of_first_appointment, inp.date_of_retirement)

    gratuity_rate, pension_rate = base_rates(inp.pension_scheme_type)
    gratuity_rate, pension_rate = adjust_rates(years, gratuity_rate, pension_rate)

    return PensionCalculationResult(
        years_of_service=years,
        gratuity_rate=gratuity_rate,
        pension_rate=pension_rate,
        total_gratuity=salary * gratuity_rate,
        monthly_pension=salary * pension_rate / 12,
    )


def format_currency(amount: Number) -> str:
    """Naira display string, e.g. ``₦1,200,000.00``. Rounds half away from zero."""
    value = _to_decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(value):,.2f}"


def format_percentage(rate: Number) -> str:
    pct = (_to_decimal(rate) * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{pct}%"
