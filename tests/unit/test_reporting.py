# =============================================================================
# tests/unit/test_reporting.py
# Unit tests for statistics over preparations
# =============================================================================

from datetime import date, datetime, time

import pytest

from oncogest_core.services.reporting import (
    TimeWindow,
    build_report,
    compute_counts,
    distribution_projection,
    resolve_window,
    trend_projection,
)


class TestResolveWindow:
    """Tests for window bounds relative to a fixed now"""

    def test_week_runs_monday_to_sunday(self, fixed_now):
        window = resolve_window("week", fixed_now)
        assert window.start == datetime(2024, 5, 13)
        assert window.end == datetime.combine(date(2024, 5, 19), time.max)

    def test_week_can_start_on_sunday(self, fixed_now):
        window = resolve_window("week", fixed_now, week_starts_on=6)
        assert window.start == datetime(2024, 5, 12)

    def test_month(self, fixed_now):
        window = resolve_window(TimeWindow.MONTH, fixed_now)
        assert window.start == datetime(2024, 5, 1)
        assert window.end.date() == date(2024, 5, 31)

    def test_february_leap_year(self):
        window = resolve_window("month", datetime(2024, 2, 10))
        assert window.end.date() == date(2024, 2, 29)

    def test_quarter_is_rolling_three_months(self, fixed_now):
        window = resolve_window("quarter", fixed_now)
        assert window.start == datetime(2024, 2, 15, 12, 0)
        assert window.end == fixed_now

    def test_quarter_clamps_short_months(self):
        window = resolve_window("quarter", datetime(2024, 5, 31, 8, 0))
        assert window.start == datetime(2024, 2, 29, 8, 0)

    def test_year(self, fixed_now):
        window = resolve_window("year", fixed_now)
        assert window.start == datetime(2024, 1, 1)
        assert window.end.date() == date(2024, 12, 31)

    def test_custom_date_end_covers_whole_day(self, fixed_now):
        window = resolve_window("custom", fixed_now, date(2024, 5, 1), date(2024, 5, 10))
        assert window.start == datetime(2024, 5, 1)
        assert window.contains(datetime(2024, 5, 10, 23, 59))

    def test_custom_without_bounds_uses_last_thirty_days(self, fixed_now):
        window = resolve_window("custom", fixed_now)
        assert window.start == datetime(2024, 4, 15, 12, 0)
        assert window.end == fixed_now

    def test_custom_missing_end_keeps_given_start(self, fixed_now):
        window = resolve_window("custom", fixed_now, date(2024, 5, 1), None)
        assert window.start == datetime(2024, 5, 1)
        assert window.end == fixed_now

    def test_custom_missing_start_keeps_given_end(self, fixed_now):
        window = resolve_window("custom", fixed_now, None, date(2024, 5, 9))
        assert window.start == datetime(2024, 4, 15, 12, 0)
        assert window.end == datetime.combine(date(2024, 5, 9), time.max)

    def test_unknown_selector_raises(self, fixed_now):
        with pytest.raises(ValueError):
            resolve_window("fortnight", fixed_now)


class TestCounts:
    """Tests for status counters"""

    def test_expired_and_pending_only_count_open_records(self, make_preparation, fixed_now):
        records = [
            make_preparation(expires_in=-2),                # expired
            make_preparation(expires_in=0),                 # pending, expires today
            make_preparation(expires_in=-2, used=True),     # used, not expired
            make_preparation(expires_in=-2, resolved=True),  # resolved, not expired
            make_preparation(used=True, resolved=True),
        ]
        counts = compute_counts(records, today=fixed_now.date())

        assert counts.total == 5
        assert counts.used == 2
        assert counts.resolved == 2
        assert counts.expired == 1
        assert counts.pending == 1
        assert counts.utilization_rate == 40.0

    def test_percentages_round_to_one_decimal(self, make_preparation, fixed_now):
        records = [make_preparation(used=True)] + [make_preparation() for _ in range(2)]
        counts = compute_counts(records, today=fixed_now.date())
        assert counts.percentage(counts.used) == 33.3

    def test_exact_halves_round_up(self, make_preparation, fixed_now):
        records = [make_preparation(used=True)] + [make_preparation() for _ in range(399)]
        counts = compute_counts(records, today=fixed_now.date())

        assert counts.utilization_rate == 0.3
        # 1/16 = 6.25%
        assert compute_counts(records[:16], today=fixed_now.date()).utilization_rate == 6.3

    def test_empty_counts(self):
        counts = compute_counts([])
        assert counts.total == 0
        assert counts.utilization_rate == 0.0


class TestProjections:
    """Tests for trend and distribution buckets"""

    def test_same_day_records_share_a_bucket(self, make_preparation):
        records = [
            make_preparation(created_days_ago=1, used=True),
            make_preparation(created_days_ago=1, resolved=True),
            make_preparation(created_days_ago=0),
        ]
        trend = trend_projection(records)

        assert [(b.date, b.total, b.used, b.resolved) for b in trend] == [
            ("2024-05-14", 2, 1, 1),
            ("2024-05-15", 1, 0, 0),
        ]

    def test_distribution_groups_by_first_token(self, make_preparation):
        records = [
            make_preparation(name="Cisplatin 75mg/m²", used=True),
            make_preparation(name="Cisplatin 100mg/m²"),
            make_preparation(name="Paclitaxel 175mg/m²"),
        ]
        buckets = distribution_projection(records)

        assert [(b.name, b.total, b.used) for b in buckets] == [
            ("Cisplatin", 2, 1),
            ("Paclitaxel", 1, 0),
        ]

    def test_distribution_keeps_top_ten_with_stable_ties(self, make_preparation):
        records = [make_preparation(name=f"Drug{i:02d} 1mg") for i in range(12)]
        records += [make_preparation(name="Drug11 2mg")]

        buckets = distribution_projection(records)

        assert len(buckets) == 10
        assert buckets[0].name == "Drug11"
        assert [b.name for b in buckets[1:]] == [f"Drug{i:02d}" for i in range(9)]

    def test_empty_projections(self):
        assert trend_projection([]) == []
        assert distribution_projection([]) == []


class TestBuildReport:
    """Tests for the combined dashboard report"""

    def test_month_report_excludes_other_months(self, make_preparation, fixed_now):
        records = [
            make_preparation(created_days_ago=0, used=True),
            make_preparation(created_days_ago=10, expires_in=-5),
            make_preparation(created_days_ago=30),   # 15 April
        ]
        report = build_report(records, "month", fixed_now)

        assert report.counts.total == 2
        assert report.counts.used == 1
        assert report.counts.expired == 1
        assert report.counts.utilization_rate == 50.0
        assert len(report.records) == 2
        assert [s["name"] for s in report.status_breakdown()] == ["Utilized", "Expired"]

    def test_empty_window(self, make_preparation, fixed_now):
        report = build_report([make_preparation(created_days_ago=400)], "year", fixed_now)

        assert not report.has_data
        assert report.counts.utilization_rate == 0.0
        assert report.trend == []
        assert report.distribution == []
        assert report.status_breakdown() == []
