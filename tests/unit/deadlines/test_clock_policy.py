from datetime import datetime, timedelta, timezone

from app.services.deadlines import clock_policy

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def test_round_half_up_rounds_halves_up():
    assert clock_policy.round_half_up(2.5) == 3
    assert clock_policy.round_half_up(2.49) == 2
    assert clock_policy.round_half_up(0.5) == 1


def test_business_days_scale_by_21_over_15():
    assert clock_policy.business_to_calendar_days(15) == 21
    assert clock_policy.business_to_calendar_days(5) == 7
    # 10 * 21 / 15 = 14
    assert clock_policy.business_to_calendar_days(10) == 14


def test_missing_base_means_rule_does_not_apply():
    assert clock_policy.calendar_deadline(None, 60) is None
    assert clock_policy.remaining_calendar_days(None, 60, NOW) is None
    assert clock_policy.remaining_business_days_approx(None, 15, NOW) is None
    assert clock_policy.remaining_hours(None, 72, NOW) is None


def test_remaining_calendar_days_rounds_up_and_goes_negative():
    assert clock_policy.remaining_calendar_days(NOW - timedelta(days=60), 60, NOW) == 0
    assert clock_policy.remaining_calendar_days(NOW - timedelta(days=55, hours=1), 60, NOW) == 5
    assert clock_policy.remaining_calendar_days(NOW - timedelta(days=62), 60, NOW) == -2


def test_remaining_business_days_floor_at_zero():
    sent = NOW - timedelta(days=30)
    assert clock_policy.remaining_business_days_approx(sent, 15, NOW) == 0


def test_remaining_business_days_converts_calendar_remainder():
    # 21 calendar days after sending; 7 left -> 7 * 15 / 21 = 5
    sent = NOW - timedelta(days=14)
    assert clock_policy.business_deadline(sent, 15) == sent + timedelta(days=21)
    assert clock_policy.remaining_business_days_approx(sent, 15, NOW) == 5


def test_remaining_hours():
    signed = NOW - timedelta(hours=30)
    assert clock_policy.remaining_hours(signed, 72, NOW) == 42
    assert clock_policy.hours_deadline(signed, 72) == signed + timedelta(hours=72)


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    assert clock_policy.calendar_deadline(naive, 1) == datetime(2026, 1, 2, 12, 0, tzinfo=timezone.utc)
