import datetime as dt

from billing_watcher.billing import billing_periods

UTC = dt.timezone.utc


def test_january_rolls_back_into_previous_year():
    assert billing_periods(dt.datetime(2025, 1, 15, tzinfo=UTC)) == ("202501", "202412", "202410", "2025")


def test_mid_year():
    assert billing_periods(dt.datetime(2025, 7, 1, tzinfo=UTC)) == ("202507", "202506", "202504", "2025")


def test_march_trailing_window_starts_in_december():
    assert billing_periods(dt.datetime(2024, 3, 31, 23, 59, tzinfo=UTC)) == ("202403", "202402", "202312", "2024")


def test_december():
    assert billing_periods(dt.datetime(2024, 12, 1, tzinfo=UTC)) == ("202412", "202411", "202409", "2024")


def test_converts_to_utc_before_computing():
    # 2025-02-01 01:00 in UTC+9 is still January in UTC
    tokyo = dt.timezone(dt.timedelta(hours=9))
    assert billing_periods(dt.datetime(2025, 2, 1, 1, 0, tzinfo=tokyo))[0] == "202501"
