"""
scratchdb Kernel: Calendar Projection

Month grid over a `date` column. Weeks start on Monday; leading and
trailing blank cells pad the grid to whole weeks.

A row is placed on the day given by the first 10 characters of its date
value (so "2026-02-14T10:00:00Z" lands on Feb 14). Rows with a missing or
unparseable date collect in `no_date`.
"""

from __future__ import annotations

import calendar
import datetime
import re
from dataclasses import dataclass, field

from scratchdb.kernel.types import ColumnDef, DatabaseRow, DatabaseSchema, ViewDef

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


@dataclass
class CalendarDay:
    date: str  # YYYY-MM-DD
    day: int
    rows: list[DatabaseRow] = field(default_factory=list)
    is_today: bool = False


@dataclass
class CalendarMonth:
    year: int
    month: int  # 1-12
    date_column: str | None
    weeks: list[list[CalendarDay | None]] = field(default_factory=list)
    no_date: list[DatabaseRow] = field(default_factory=list)

    @property
    def title(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    @property
    def weekdays(self) -> tuple[str, ...]:
        """Column headers of the grid, Monday first."""
        return WEEKDAYS

    def day(self, iso_date: str) -> CalendarDay | None:
        for week in self.weeks:
            for cell in week:
                if cell is not None and cell.date == iso_date:
                    return cell
        return None


def default_date_column(schema: DatabaseSchema) -> ColumnDef | None:
    """First date column."""
    for col in schema.columns:
        if col.type == "date":
            return col
    return None


def resolve_date_column(
    schema: DatabaseSchema, view: ViewDef | None, date_column: str | None = None
) -> ColumnDef | None:
    for candidate in (date_column, view.date_column if view else None):
        if candidate:
            col = schema.column(candidate)
            return col if col is not None and col.type == "date" else None
    return default_date_column(schema)


def date_key(value) -> str | None:
    """The YYYY-MM-DD day a stored date value falls on, or None."""
    if not isinstance(value, str) or not _DATE_PREFIX.match(value):
        return None
    key = value[:10]
    try:
        datetime.date.fromisoformat(key)
    except ValueError:
        return None
    return key


def iso_day(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Navigate by `delta` months. Month is 1-12."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def build_month(
    year: int,
    month: int,
    rows: list[DatabaseRow],
    date_column: str | None,
    today: datetime.date | None = None,
) -> CalendarMonth:
    """Lay out one month. Without a date column every row goes to `no_date`."""
    result = CalendarMonth(year=year, month=month, date_column=date_column)

    by_day: dict[str, list[DatabaseRow]] = {}
    for row in rows:
        key = date_key(row.fields.get(date_column)) if date_column else None
        if key is None:
            result.no_date.append(row)
        else:
            by_day.setdefault(key, []).append(row)

    today = today or datetime.date.today()
    first_weekday, days_in_month = calendar.monthrange(year, month)  # Monday == 0
    total_cells = -(-(first_weekday + days_in_month) // 7) * 7

    cells: list[CalendarDay | None] = []
    for i in range(total_cells):
        day = i - first_weekday + 1
        if day < 1 or day > days_in_month:
            cells.append(None)
            continue
        iso = iso_day(year, month, day)
        cells.append(
            CalendarDay(
                date=iso,
                day=day,
                rows=by_day.get(iso, []),
                is_today=today == datetime.date(year, month, day),
            )
        )

    result.weeks = [cells[i : i + 7] for i in range(0, total_cells, 7)]
    return result


def project_calendar(
    rows: list[DatabaseRow],
    schema: DatabaseSchema,
    view: ViewDef | None = None,
    year: int | None = None,
    month: int | None = None,
    date_column: str | None = None,
    today: datetime.date | None = None,
) -> CalendarMonth:
    """Calendar for already filtered and sorted rows. Defaults to the current month."""
    today = today or datetime.date.today()
    col = resolve_date_column(schema, view, date_column)
    return build_month(
        year or today.year,
        month or today.month,
        rows,
        col.id if col else None,
        today=today,
    )
