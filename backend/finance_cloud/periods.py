"""Calendar month helpers keyed by ``YYYY-MM`` period identifiers."""
from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date

from .errors import ValidationFailed

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def previous_month_key(d: date) -> str:
    year, month = shift_month(d.year, d.month, -1)
    return f"{year:04d}-{month:02d}"


def normalize_month_key(raw: str | None, *, today: date | None = None) -> str:
    """Return ``raw`` if it is a valid period, the current month if blank.

    Raises ``ValidationFailed`` for a non-blank value that is not ``YYYY-MM``
    or whose month range falls outside the calendar.
    """

    value = (raw or "").strip()
    if not value:
        return month_key(today or date.today())
    if not MONTH_PATTERN.match(value):
        raise ValidationFailed(f"Invalid period '{value}', expected YYYY-MM")
    MonthRange.for_month(value)
    return value


@dataclass(frozen=True)
class MonthRange:
    month: str
    start: date
    end_exclusive: date
    previous_start: date

    @classmethod
    def for_month(cls, month: str) -> "MonthRange":
        if not MONTH_PATTERN.match(month):
            raise ValidationFailed(f"Invalid period '{month}', expected YYYY-MM")
        year, month_number = (int(part) for part in month.split("-"))
        next_year, next_month = shift_month(year, month_number, 1)
        prev_year, prev_month = shift_month(year, month_number, -1)
        try:
            return cls(
                month=month,
                start=date(year, month_number, 1),
                end_exclusive=date(next_year, next_month, 1),
                previous_start=date(prev_year, prev_month, 1),
            )
        except ValueError as exc:
            # the month and both neighbours must fit in date.min..date.max
            raise ValidationFailed(f"Period '{month}' is out of range") from exc

    @property
    def previous_end_exclusive(self) -> date:
        return self.start

    @property
    def previous_month(self) -> str:
        return month_key(self.previous_start)

    @property
    def label(self) -> str:
        return f"{_MONTH_NAMES[self.start.month - 1]} {self.start.year}"

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.start.year, self.start.month)[1]

    def contains(self, d: date) -> bool:
        return self.start <= d < self.end_exclusive

    def contains_previous(self, d: date) -> bool:
        return self.previous_start <= d < self.start

    def days_elapsed(self, today: date) -> int | None:
        """Days of the month already elapsed at ``today``; ``None`` for future months."""

        if today < self.start:
            return None
        if today >= self.end_exclusive:
            return self.days_in_month
        return max(1, today.day)


__all__ = [
    "MONTH_PATTERN",
    "MonthRange",
    "month_key",
    "previous_month_key",
    "shift_month",
    "normalize_month_key",
]
