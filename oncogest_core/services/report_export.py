# =============================================================================
# oncogest_core/services/report_export.py
# CSV and plain-text exports of the statistics report
# =============================================================================

from __future__ import annotations
from datetime import date, datetime
from typing import Iterable, Optional

import pandas as pd

from oncogest_core.models import LeftoverPreparation
from .reporting import PreparationReport

CSV_COLUMNS = ["ID", "Preparation", "Dose", "Expiry", "Used", "Resolved", "Created"]
CSV_SEPARATOR = ";"
# Excel needs the BOM to detect UTF-8
UTF8_BOM = "\ufeff"

DATE_FORMAT = "%d/%m/%Y"
DATETIME_FORMAT = "%d/%m/%Y %H:%M"


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def export_csv(records: Iterable[LeftoverPreparation]) -> str:
    """Semicolon-delimited table of the raw preparation fields."""
    rows = [
        [
            r.id or "",
            r.preparation_name,
            r.dose,
            r.expiry_date.isoformat() if r.expiry_date else "",
            _yes_no(r.used),
            _yes_no(r.resolved),
            r.created_at.strftime(DATETIME_FORMAT) if r.created_at else "",
        ]
        for r in records
    ]
    df = pd.DataFrame(rows, columns=CSV_COLUMNS)
    return UTF8_BOM + df.to_csv(sep=CSV_SEPARATOR, index=False, lineterminator="\n")


def export_summary(report: PreparationReport, generated_at: Optional[datetime] = None) -> str:
    """Fixed-format text summary built only from the report counters."""
    generated_at = generated_at or datetime.now()
    counts = report.counts

    lines = [
        "STATISTICS REPORT - ONCOGEST",
        "============================",
        f"Period: {report.window.start.strftime(DATE_FORMAT)} - {report.window.end.strftime(DATE_FORMAT)}",
        f"Generated: {generated_at.strftime(DATETIME_FORMAT)}",
        "",
        "SUMMARY",
        "-------",
        f"Total preparations: {counts.total}",
        f"Utilized (used): {counts.utilized} ({counts.percentage(counts.utilized)}%)",
        f"Resolved: {counts.resolved} ({counts.percentage(counts.resolved)}%)",
        f"Pending: {counts.pending} ({counts.percentage(counts.pending)}%)",
        f"Expired: {counts.expired} ({counts.percentage(counts.expired)}%)",
        "",
        f"UTILIZATION RATE: {counts.utilization_rate}%",
    ]
    return "\n".join(lines) + "\n"


def export_filename(prefix: str, extension: str, day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"{prefix}_{day.isoformat()}.{extension}"
