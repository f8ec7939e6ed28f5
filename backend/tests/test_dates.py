from datetime import date

from makao.services.dates import add_months, clamp_day, month_key, same_month


def test_clamp_day_to_month_length():
    assert clamp_day(2025, 2, 31) == date(2025, 2, 28)
    assert clamp_day(2024, 2, 31) == date(2024, 2, 29)
    assert clamp_day(2025, 4, 31) == date(2025, 4, 30)
    assert clamp_day(2025, 1, 15) == date(2025, 1, 15)


def test_add_months_wraps_year():
    assert add_months(date(2025, 12, 5), 1) == date(2026, 1, 5)
    assert add_months(date(2025, 1, 5), -1) == date(2024, 12, 5)


def test_add_months_clamps_and_restores_day():
    feb = add_months(date(2025, 1, 31), 1)
    assert feb == date(2025, 2, 28)
    # Explicit day keeps the original payment day after a short month
    assert add_months(feb, 1, day=31) == date(2025, 3, 31)


def test_month_key_and_same_month():
    assert month_key(date(2025, 3, 9)) == "2025-03"
    assert same_month(date(2025, 3, 1), date(2025, 3, 31))
    assert not same_month(date(2025, 3, 1), date(2024, 3, 1))
