# =============================================================================
# tests/unit/test_report_export.py
# Unit tests for CSV and summary exports
# =============================================================================

from datetime import date, datetime

from oncogest_core.models import LeftoverPreparation
from oncogest_core.services import build_report, export_csv, export_filename, export_summary


class TestExportCsv:
    """Tests for the semicolon-delimited export"""

    def test_header_and_row(self):
        prep = LeftoverPreparation(
            id="42",
            preparation_name="Cisplatin 75mg/m²",
            dose="150mg",
            expiry_date=date(2024, 5, 20),
            used=True,
            created_at=datetime(2024, 5, 10, 9, 5),
        )
        lines = export_csv([prep]).split("\n")

        assert lines[0] == "\ufeffID;Preparation;Dose;Expiry;Used;Resolved;Created"
        assert lines[1] == "42;Cisplatin 75mg/m²;150mg;2024-05-20;Yes;No;10/05/2024 09:05"

    def test_empty_export_has_header_only(self):
        assert export_csv([]) == "\ufeffID;Preparation;Dose;Expiry;Used;Resolved;Created\n"


class TestExportSummary:
    """Tests for the text report"""

    def test_summary_lines(self, make_preparation, fixed_now):
        records = [
            make_preparation(used=True),
            make_preparation(resolved=True),
            make_preparation(expires_in=-1),
            make_preparation(),
        ]
        report = build_report(records, "month", fixed_now)
        text = export_summary(report, generated_at=datetime(2024, 5, 15, 18, 30))

        assert text.startswith("STATISTICS REPORT - ONCOGEST\n")
        assert "Period: 01/05/2024 - 31/05/2024" in text
        assert "Generated: 15/05/2024 18:30" in text
        assert "Total preparations: 4" in text
        assert "Utilized (used): 1 (25.0%)" in text
        assert "Expired: 1 (25.0%)" in text
        assert "UTILIZATION RATE: 25.0%" in text

    def test_empty_report_rate_is_zero(self, fixed_now):
        text = export_summary(build_report([], "week", fixed_now))
        assert "Total preparations: 0" in text
        assert "UTILIZATION RATE: 0.0%" in text


def test_export_filename():
    assert export_filename("statistics", "csv", date(2024, 5, 15)) == "statistics_2024-05-15.csv"
