"""
Tests for satisfaction level calculations and dashboard periods
"""
import pytest
from datetime import datetime, timedelta
from pharmacy_feedback.statistics.satisfaction import (
    SatisfactionLevel,
    get_satisfaction_level,
    compute_metrics,
    employee_score,
    rating_distribution,
)
from pharmacy_feedback.statistics.periods import (
    resolve_comparison_frame,
    resolve_previous_period,
    resolve_time_filter,
    resolve_time_frame,
    shift_months,
    trend_buckets,
)


def test_satisfaction_level_mapping():
    """Test that ratings map to correct satisfaction levels."""
    assert get_satisfaction_level(1) == SatisfactionLevel.VERY_DISSATISFIED
    assert get_satisfaction_level(3) == SatisfactionLevel.NEUTRAL
    assert get_satisfaction_level(5) == SatisfactionLevel.VERY_SATISFIED


def test_satisfaction_level_invalid():
    """Test handling of invalid ratings."""
    # Should default to NEUTRAL for invalid ratings
    assert get_satisfaction_level(0) == SatisfactionLevel.NEUTRAL
    assert get_satisfaction_level(6) == SatisfactionLevel.NEUTRAL


def test_compute_metrics_all_very_satisfied():
    metrics = compute_metrics([5, 5, 5, 5])

    assert metrics["average_rating"] == 5.0
    assert metrics["satisfaction_index"] == 100.0
    assert metrics["distribution"]["5_star"] == 100.0
    assert metrics["distribution"]["1_star"] == 0.0
    assert metrics["satisfaction_levels"]["VERY_SATISFIED"] == 4


def test_compute_metrics_mixed():
    metrics = compute_metrics([1, 3, 4, 4])

    assert metrics["average_rating"] == 3.0
    assert metrics["satisfaction_index"] == 60.0  # (3/5) * 100
    assert metrics["distribution"]["4_star"] == 50.0
    assert metrics["distribution"]["3_star"] == 25.0
    assert metrics["distribution"]["1_star"] == 25.0
    assert metrics["total_feedbacks"] == 4


def test_compute_metrics_empty():
    metrics = compute_metrics([])

    assert metrics["average_rating"] == 0.0
    assert metrics["satisfaction_index"] == 0.0
    assert metrics["total_feedbacks"] == 0
    assert all(value == 0.0 for value in metrics["distribution"].values())


def test_rating_distribution_ignores_out_of_range():
    assert rating_distribution([1, 5, 5, 0, 7]) == {"1": 1, "2": 0, "3": 0, "4": 0, "5": 2}


def test_employee_score_rewards_volume():
    """Same average, more reviews, higher score."""
    assert employee_score(5.0, 1) < employee_score(4.5, 20)
    assert employee_score(4.0, 0) == 0.0


def test_shift_months_clamps_day():
    assert shift_months(datetime(2024, 3, 31), -1) == datetime(2024, 2, 29)
    assert shift_months(datetime(2024, 1, 15), -3) == datetime(2023, 10, 15)
    assert shift_months(datetime(2023, 11, 30), 3) == datetime(2024, 2, 29)


def test_resolve_time_filter():
    now = datetime(2024, 6, 15, 12, 0)

    assert resolve_time_filter("all", now) == (None, None)
    assert resolve_time_filter("30days", now) == (now - timedelta(days=30), now)
    assert resolve_time_filter("quarter", now) == (datetime(2024, 3, 15, 12, 0), now)
    assert resolve_time_filter("semester", now) == (datetime(2023, 12, 15, 12, 0), now)
    assert resolve_time_filter("year", now) == (datetime(2023, 6, 15, 12, 0), now)
    assert resolve_time_filter("lastYear", now) == (datetime(2022, 6, 15, 12, 0), datetime(2023, 6, 15, 12, 0))


def test_resolve_time_filter_invalid():
    with pytest.raises(ValueError):
        resolve_time_filter("decade")


def test_resolve_previous_period():
    now = datetime(2024, 6, 15, 12, 0)

    assert resolve_previous_period("all", now) == (None, None)
    assert resolve_previous_period("30days", now) == (now - timedelta(days=60), now - timedelta(days=30))
    start, end = resolve_previous_period("lastYear", now)
    assert end == datetime(2022, 6, 15, 12, 0)
    assert (end - start) == (datetime(2023, 6, 15, 12, 0) - datetime(2022, 6, 15, 12, 0))


def test_resolve_time_frame():
    now = datetime(2024, 6, 15, 12, 0)
    assert resolve_time_frame("month", now) == (datetime(2024, 5, 15, 12, 0), now)
    assert resolve_time_frame("year", now) == (datetime(2023, 6, 15, 12, 0), now)
    assert resolve_time_frame("all", now) == (None, None)
    assert resolve_comparison_frame("month", now) == (datetime(2024, 4, 15, 12, 0), datetime(2024, 5, 15, 12, 0))
    assert resolve_comparison_frame("year", now) == (datetime(2022, 6, 15, 12, 0), datetime(2023, 6, 15, 12, 0))
    assert resolve_comparison_frame("all", now) == (None, None)
    with pytest.raises(ValueError):
        resolve_time_frame("week", now)


def test_trend_buckets():
    now = datetime(2024, 3, 10, 18, 30)

    days = trend_buckets("month", now)
    assert len(days) == 30
    assert days[-1].label == "10"
    assert days[-1].start == datetime(2024, 3, 10)
    assert days[0].start == datetime(2024, 2, 10)

    months = trend_buckets("year", now)
    assert [b.label for b in months][-3:] == ["Jan", "Feb", "Mar"]
    assert months[0].start == datetime(2023, 4, 1)
    assert months[-1].end == datetime(2024, 4, 1)

    # "all" reaches back to the first session, labelled with the year
    everything = trend_buckets("all", now, earliest=datetime(2022, 11, 3))
    assert len(everything) == 17
    assert everything[0].label == "Nov 2022"
    assert everything[-1].label == "Mar 2024"
    assert len(trend_buckets("all", now)) == 12
