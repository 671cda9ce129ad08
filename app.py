"""
OncoGest - leftover preparation tracking for the oncology pharmacy.

Run with:
    streamlit run app.py
"""

from datetime import datetime

import plotly.express as px
import streamlit as st

from oncogest_core.auth import SessionGate
from oncogest_core.config import load_settings
from oncogest_core.logging import setup_logging
from oncogest_core.models import (
    LeftoverPreparation,
    Medication,
    PurchaseEntry,
    RecordKind,
    active_worklist,
)
from oncogest_core.services import (
    MedicationSearch,
    build_report,
    export_csv,
    export_filename,
    export_summary,
    get_gateway,
)
from oncogest_core.state import init_state

st.set_page_config(page_title="OncoGest", page_icon="💊", layout="wide")


@st.cache_resource
def _configure_logging():
    setup_logging()


_configure_logging()
init_state()

settings = load_settings()
gate = SessionGate(settings.shared_secret)

if not gate.is_authenticated:
    st.title("OncoGest")
    with st.form("login"):
        attempt = st.text_input("Password", type="password")
        if st.form_submit_button("Enter"):
            if gate.check(attempt):
                st.rerun()
            st.error("Incorrect password")
    st.stop()

gateway = get_gateway()

with st.sidebar:
    st.markdown("### OncoGest")
    page = st.radio("Section", ["Leftovers", "Purchases", "Statistics", "Admin"])
    if gateway.is_fallback:
        st.warning("Demo mode: data is stored on this machine only.")
    if st.button("Log out"):
        gate.logout()
        st.rerun()


def _show(result):
    if not result:
        st.error(f"Error: {result.error}")
    return result.data or []


# =============================================================================
# LEFTOVERS
# =============================================================================

if page == "Leftovers":
    st.header("Leftover preparations")

    with st.form("new_preparation", clear_on_submit=True):
        cols = st.columns(3)
        name = cols[0].text_input("Preparation")
        dose = cols[1].text_input("Dose")
        expiry = cols[2].date_input("Expiry date")
        if st.form_submit_button("Add"):
            result = gateway.create(
                LeftoverPreparation(preparation_name=name, dose=dose, expiry_date=expiry)
            )
            if not result:
                st.error(result.error)

    for prep in active_worklist(_show(gateway.fetch_active())):
        cols = st.columns([4, 3, 2, 1, 1])
        cols[0].write(prep.preparation_name)
        cols[1].write(prep.dose)
        cols[2].write(prep.expiry_label())
        if cols[3].button("Used", key=f"used_{prep.id}"):
            gateway.update(RecordKind.PREPARATIONS, prep.id, {"used": True})
            st.rerun()
        if cols[4].button("Resolve", key=f"resolve_{prep.id}"):
            gateway.update(RecordKind.PREPARATIONS, prep.id, {"resolved": True})
            st.rerun()

# =============================================================================
# PURCHASES
# =============================================================================

elif page == "Purchases":
    st.header("Purchases")

    query = st.text_input("Search medication")
    matches = MedicationSearch(gateway).search_now(query)
    if matches:
        chosen = st.selectbox("Medication", matches, format_func=lambda m: m.name)
        stock = st.number_input("Current stock", min_value=0, step=1)
        if st.button("Add entry"):
            result = gateway.create(PurchaseEntry.for_medication(chosen, int(stock)))
            if not result:
                st.error(result.error)

    history = st.toggle("Show history", key="show_order_history")
    entries = _show(gateway.fetch_order_history() if history else gateway.fetch_orders_for_day())
    for entry in entries:
        cols = st.columns([2, 4, 2, 1, 1])
        cols[0].write(entry.order_date)
        cols[1].write(entry.medication_name)
        cols[2].write(f"Stock: {entry.current_stock}")
        ordered = cols[3].checkbox("Ordered", value=entry.ordered, key=f"ordered_{entry.id}")
        if ordered != entry.ordered:
            gateway.update(RecordKind.PURCHASES, entry.id, {"ordered": ordered})
            st.rerun()
        if cols[4].button("Delete", key=f"delete_{entry.id}"):
            gateway.delete(RecordKind.PURCHASES, entry.id)
            st.rerun()

# =============================================================================
# STATISTICS
# =============================================================================

elif page == "Statistics":
    st.header("Statistics")

    window = st.selectbox(
        "Period", ["week", "month", "quarter", "year", "custom"], key="report_window"
    )
    custom_start = custom_end = None
    if window == "custom":
        cols = st.columns(2)
        custom_start = cols[0].date_input("From", key="custom_start")
        custom_end = cols[1].date_input("To", key="custom_end")

    report = build_report(_show(gateway.fetch_all()), window, None, custom_start, custom_end)
    counts = report.counts

    cols = st.columns(5)
    cols[0].metric("Total", counts.total)
    cols[1].metric("Utilized", counts.utilized)
    cols[2].metric("Resolved", counts.resolved)
    cols[3].metric("Pending", counts.pending)
    cols[4].metric("Expired", counts.expired)
    st.metric("Utilization rate", f"{counts.utilization_rate}%")

    if not report.has_data:
        st.info("No data for the selected period.")
    else:
        st.plotly_chart(
            px.pie(report.status_breakdown(), names="name", values="value", title="Status")
        )
        st.plotly_chart(
            px.line(
                [vars(b) for b in report.trend],
                x="date", y=["total", "used", "resolved"], title="Daily trend",
            )
        )
        st.plotly_chart(
            px.bar(
                [vars(b) for b in report.distribution],
                x="name", y=["total", "used"], barmode="group", title="By drug family",
            )
        )

    today = datetime.now().date()
    cols = st.columns(2)
    cols[0].download_button(
        "Export CSV", export_csv(report.records),
        file_name=export_filename("statistics", "csv", today), mime="text/csv",
    )
    cols[1].download_button(
        "Export report", export_summary(report),
        file_name=export_filename("report", "txt", today), mime="text/plain",
    )

# =============================================================================
# ADMIN
# =============================================================================

else:
    st.header("Administration")

    st.subheader("Preparations")
    for prep in _show(gateway.fetch_all()):
        cols = st.columns([4, 3, 2, 1])
        cols[0].write(prep.preparation_name)
        cols[1].write(prep.dose)
        cols[2].write(prep.status().value)
        if cols[3].button("Delete", key=f"admin_delete_{prep.id}"):
            gateway.delete(RecordKind.PREPARATIONS, prep.id)
            st.rerun()
    if st.button("Delete ALL preparations", type="primary"):
        gateway.clear_all(RecordKind.PREPARATIONS)
        st.rerun()

    st.subheader("Medication catalog")
    with st.form("new_medication", clear_on_submit=True):
        new_name = st.text_input("Name")
        if st.form_submit_button("Add medication"):
            result = gateway.create(Medication(name=new_name.strip()))
            if not result:
                st.error(result.error)

    for med in _show(gateway.fetch_catalog()):
        cols = st.columns([6, 1])
        cols[0].write(med.name)
        if cols[1].button("Delete", key=f"med_delete_{med.id}"):
            gateway.delete(RecordKind.MEDICATIONS, med.id)
            st.rerun()
