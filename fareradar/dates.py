"""Trip date helpers.

Genera combinaciones de fechas (ida, vuelta) según los días de la semana
preferidos. Ej: "todos los viernes-domingo de los próximos 3 meses".
"""

import calendar
from datetime import date, timedelta

DAY_MAP: dict[str, int] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

# Escapadas cortas: la vuelta no puede caer a más de una semana de la ida
MAX_TRIP_DAYS = 7


def weekday_number(day: str | int) -> int:
    """Convert a weekday name (or a 0-6 int, Monday=0) to its number."""
    if isinstance(day, int):
        if not 0 <= day <= 6:
            raise ValueError(f"Weekday out of range: {day}")
        return day
    try:
        return DAY_MAP[day.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown weekday: {day!r}") from None


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day (31 ene + 1 mes = 28/29 feb)."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def dates_for_weekdays(
    days: list[str | int],
    months_ahead: int = 3,
    start: date | None = None,
) -> list[date]:
    """All dates in ``[start, start + months_ahead]`` falling on ``days``."""
    start = start or date.today()
    end = add_months(start, months_ahead)
    wanted = {weekday_number(d) for d in days}

    result: list[date] = []
    current = start
    while current <= end:
        if current.weekday() in wanted:
            result.append(current)
        current += timedelta(days=1)
    return result


def enumerate_trips(
    outbound_weekday: str | int,
    return_weekday: str | int,
    months_ahead: int = 3,
    today: date | None = None,
) -> list[tuple[date, date]]:
    """Enumerate (outbound, return) pairs for a weekday combination.

    Para cada fecha de ida toma la primera fecha de vuelta estrictamente
    posterior, y descarta el par si la diferencia supera MAX_TRIP_DAYS.
    Mismo ``today`` → misma secuencia.
    """
    today = today or date.today()
    outbound_dates = dates_for_weekdays([outbound_weekday], months_ahead, today)
    return_dates = dates_for_weekdays([return_weekday], months_ahead, today)

    trips: list[tuple[date, date]] = []
    for outbound in outbound_dates:
        closest = next((r for r in return_dates if r > outbound), None)
        if closest is None:
            continue
        if (closest - outbound).days <= MAX_TRIP_DAYS:
            trips.append((outbound, closest))
    return trips


def next_weekday(day: str | int, from_date: date | None = None) -> date:
    """Next occurrence of ``day`` strictly after ``from_date``."""
    from_date = from_date or date.today()
    days_until = weekday_number(day) - from_date.weekday()
    if days_until <= 0:
        days_until += 7
    return from_date + timedelta(days=days_until)


def friday_sunday_weekends(
    months_ahead: int = 3, today: date | None = None,
) -> list[tuple[date, date]]:
    """Classic weekend trips: Friday out, Sunday back."""
    return enumerate_trips("friday", "sunday", months_ahead, today)


def flexible_weekends(
    months_ahead: int = 3, today: date | None = None,
) -> list[tuple[date, date]]:
    """Fri/Sat outbound × Sun/Mon return, deduplicated and sorted by outbound."""
    patterns = [
        ("friday", "sunday"),
        ("friday", "monday"),
        ("saturday", "sunday"),
        ("saturday", "monday"),
    ]
    trips: set[tuple[date, date]] = set()
    for outbound, ret in patterns:
        trips.update(enumerate_trips(outbound, ret, months_ahead, today))
    return sorted(trips)


def format_date_range(outbound: date, return_date: date | None = None) -> str:
    """Human date range. Ej: 'Dec 20 - 22, 2024' o 'Dec 29, 2024 - Jan 02, 2025'."""
    if return_date is None:
        return outbound.strftime("%b %d, %Y")

    if (outbound.year, outbound.month) == (return_date.year, return_date.month):
        return f"{outbound:%b %d} - {return_date:%d, %Y}"

    if outbound.year == return_date.year:
        return f"{outbound:%b %d} - {return_date:%b %d, %Y}"

    return f"{outbound:%b %d, %Y} - {return_date:%b %d, %Y}"
