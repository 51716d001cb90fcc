"""Month keys and calendar ranges."""

from __future__ import annotations

from datetime import date

import pytest

from finance_cloud.errors import ValidationFailed
from finance_cloud.periods import MonthRange, normalize_month_key, previous_month_key
from finance_cloud.reports import build_report


def test_blank_period_defaults_to_current_month():
    today = date(2024, 6, 15)

    assert normalize_month_key(None, today=today) == "2024-06"
    assert normalize_month_key("  ", today=today) == "2024-06"
    assert normalize_month_key(" 2023-12 ", today=today) == "2023-12"


@pytest.mark.parametrize("raw", ["2024-13", "2024-6", "June", "2024-00", "24-06"])
def test_malformed_period_is_rejected(raw):
    with pytest.raises(ValidationFailed):
        normalize_month_key(raw)


def test_previous_month_wraps_the_year():
    assert previous_month_key(date(2024, 1, 20)) == "2023-12"


def test_month_range_boundaries():
    month_range = MonthRange.for_month("2024-01")

    assert month_range.start == date(2024, 1, 1)
    assert month_range.end_exclusive == date(2024, 2, 1)
    assert month_range.previous_start == date(2023, 12, 1)
    assert month_range.previous_month == "2023-12"
    assert month_range.label == "January 2024"
    assert month_range.contains(date(2024, 1, 31))
    assert not month_range.contains(date(2024, 2, 1))
    assert month_range.contains_previous(date(2023, 12, 31))
    assert MonthRange.for_month("2024-02").days_in_month == 29


def test_days_elapsed():
    month_range = MonthRange.for_month("2024-01")

    assert month_range.days_elapsed(date(2023, 12, 31)) is None
    assert month_range.days_elapsed(date(2024, 1, 10)) == 10
    assert month_range.days_elapsed(date(2024, 3, 1)) == 31


@pytest.mark.parametrize("raw", ["9999-12", "0000-05", "0001-01"])
def test_periods_outside_the_calendar_are_rejected(raw):
    with pytest.raises(ValidationFailed, match="out of range"):
        MonthRange.for_month(raw)
    with pytest.raises(ValidationFailed):
        normalize_month_key(raw)


def test_report_for_out_of_range_month_is_a_validation_error():
    with pytest.raises(ValidationFailed):
        build_report([], "9999-12")
