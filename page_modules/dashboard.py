"""Dashboard page with live job metrics, recent job cards and stock alerts."""
from datetime import datetime

import plotly.express as px
import streamlit as st

from core.config import get_app_timezone, get_refresh_intervals
from core.constants import RECENT_JOBS_LIMIT
from core.dashboard import MetricsAggregator, monthly_revenue_by_day
from core.services import get_low_stock, get_recent_job_cards, watch_table
from ui.components import format_money, render_table, status_badge


@st.cache_resource
def _get_aggregator(_gateway):
    return MetricsAggregator(
        _gateway, get_refresh_intervals(), tz=get_app_timezone()
    )


def render(gateway, garage):
    """Render the dashboard page."""
    st.header("\U0001F4C8 Dashboard")
    if not garage:
        st.info("Select a garage to see its dashboard")
        return

    watch_table(gateway, "job_cards", garage["id"])
    watch_table(gateway, "inventory", garage["id"])
    intervals = get_refresh_intervals()
    aggregator = _get_aggregator(gateway)

    # Fastest interval drives the poll; slower queries stay cached until stale
    @st.fragment(run_every=intervals.today)
    def _metrics():
        if aggregator.is_loading(garage["id"]):
            st.caption("Refreshing…")
        metrics = aggregator.refresh(garage["id"])
        col1, col2, col3 = st.columns(3)
        col1.metric("Today's Revenue", format_money(metrics.today_revenue))
        col2.metric("Monthly Revenue", format_money(metrics.monthly_revenue))
        col3.metric("Active Jobs", metrics.active_jobs)
        col1, col2, col3 = st.columns(3)
        col1.metric("Completed Today", metrics.today_completed_jobs)
        col2.metric("Completed This Month", metrics.completed_jobs)
        col3.metric("Avg Repair Time", metrics.avg_repair_time)

    _metrics()

    st.markdown("---")
    st.subheader("\U0001F4B9 Revenue This Month")
    revenue_df = monthly_revenue_by_day(
        gateway, garage["id"], datetime.now(get_app_timezone())
    )
    if not revenue_df.empty:
        fig = px.bar(
            revenue_df,
            x="day",
            y="revenue",
            labels={"day": "Day", "revenue": "Revenue"},
            color="revenue",
            color_continuous_scale="Viridis",
        )
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("No completed jobs this month")

    jobs = get_recent_job_cards(gateway, garage["id"], limit=RECENT_JOBS_LIMIT)
    if not jobs.empty:
        st.subheader("\U0001F4CB Job Status")
        status_counts = jobs["status"].value_counts().rename_axis("status").reset_index(name="jobs")
        fig = px.pie(status_counts, names="status", values="jobs", hole=0.4)
        st.plotly_chart(fig, use_container_width=True)

    col_left, col_right = st.columns([3, 2])
    with col_left:
        st.subheader("\U0001F527 Recent Job Cards")
        recent = get_recent_job_cards(gateway, garage["id"], limit=5)
        if recent.empty:
            st.info("No job cards yet")
        else:
            lines = [
                f"**{r['customer_name']}** · {r['car_make']} {r['car_model']} "
                f"({r['car_number']}) · {status_badge(r['status'])}"
                for _, r in recent.iterrows()
            ]
            st.markdown("<br>".join(lines), unsafe_allow_html=True)

    with col_right:
        st.subheader("\U0001F6A8 Inventory Alerts")
        low = get_low_stock(gateway, garage["id"])
        render_table(
            low,
            {"item_name": "Item", "quantity": "Stock", "min_stock_level": "Minimum"},
            "All items are above their minimum stock",
        )
