# =============================================================================
# oncogest_core/services/__init__.py
# Service Layer for OncoGest
# Separates data access and reporting from UI presentation
# =============================================================================
"""
Service Layer for OncoGest

Usage Example:
-------------
    from oncogest_core.services import get_gateway, build_report, MedicationSearch

    gateway = get_gateway()                 # remote or local fallback, chosen once
    result = gateway.fetch_all()
    report = build_report(result.data, "month")
    print(report.counts.utilization_rate)

    search = MedicationSearch(gateway)
    search.set_query("cispl")
"""

from .base_service import BaseService, ServiceResult
from .record_gateway import (
    RecordGateway,
    RecordStore,
    RemoteStore,
    LocalFallbackStore,
    StoreMode,
    build_gateway,
    get_gateway,
)
from .search_proxy import MedicationSearch
from .reporting import (
    TimeWindow,
    DateWindow,
    StatusCounts,
    TrendBucket,
    FamilyBucket,
    PreparationReport,
    resolve_window,
    build_report,
)
from .report_export import export_csv, export_summary, export_filename

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Record store gateway
    "RecordGateway",
    "RecordStore",
    "RemoteStore",
    "LocalFallbackStore",
    "StoreMode",
    "build_gateway",
    "get_gateway",
    # Search
    "MedicationSearch",
    # Reporting
    "TimeWindow",
    "DateWindow",
    "StatusCounts",
    "TrendBucket",
    "FamilyBucket",
    "PreparationReport",
    "resolve_window",
    "build_report",
    # Export
    "export_csv",
    "export_summary",
    "export_filename",
]
