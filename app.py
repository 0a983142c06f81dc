from __future__ import annotations

import logging
from datetime import datetime

import pandas as pd
import plotly.express as px
import streamlit as st

from abreadout import (
    ConfigurationError,
    RecommendationPolicy,
    export_to_csv,
    generate_visit_records,
    run_analysis,
)
from abreadout.config import (
    BORDERLINE_LIFT_THRESHOLD,
    DEFAULT_MONTHLY_VISITORS,
    DEFAULT_REVENUE_PER_CONVERSION,
    SHIP_LIFT_THRESHOLD,
)
from abreadout.storage import (
    get_analysis_runs,
    get_visit_records,
    load_csv,
    save_analysis_run,
    save_visit_records,
)
from abreadout.tables import (
    balance_table,
    conversion_table,
    daily_table,
    impact_table,
    significance_table,
    summary_table,
    weekly_table,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

SIMULATION_START = datetime(2024, 1, 1)

st.set_page_config(page_title="Landing Page A/B Readout", layout="wide")

st.title("Landing Page A/B Readout")
st.caption("Validate, clean and read out a landing-page experiment from raw visit records.")


with st.sidebar:
    st.header("Data")
    source = st.radio("Source", ["Upload CSV", "Simulate", "Stored records"], index=0)

    raw = None
    if source == "Upload CSV":
        uploaded = st.file_uploader("Visit records (user_id, timestamp, group, landing_page, converted)", type="csv")
        if uploaded is not None:
            raw = load_csv(uploaded)
    elif source == "Simulate":
        control_rate = st.number_input("Control conversion", min_value=0.0, max_value=1.0, value=0.12, step=0.005, format="%.4f")
        treatment_rate = st.number_input("Treatment conversion", min_value=0.0, max_value=1.0, value=0.125, step=0.005, format="%.4f")
        users = st.number_input("Users per group", min_value=100, max_value=500_000, value=20_000, step=1000)
        days = st.slider("Duration (days)", min_value=7, max_value=60, value=21)
        mismatch_rate = st.slider("Mismatch rate", min_value=0.0, max_value=0.1, value=0.01, step=0.005)
        duplicate_rate = st.slider("Duplicate rate", min_value=0.0, max_value=0.1, value=0.01, step=0.005)
        seed = st.text_input("Seed (optional)", value="")
        seed = int(seed) if seed.strip().isdigit() else None
        raw = generate_visit_records(
            control_rate=float(control_rate),
            treatment_rate=float(treatment_rate),
            users_per_group=int(users),
            duration_days=int(days),
            mismatch_rate=float(mismatch_rate),
            duplicate_rate=float(duplicate_rate),
            # a seeded run pins the calendar too, so reruns give identical records
            start_date=SIMULATION_START if seed is not None else None,
            seed=seed,
        )
    else:
        raw = get_visit_records()
        if raw.empty:
            raw = None
            st.info("No stored records yet (abreadout.db).")

    st.header("Business assumptions")
    monthly_visitors = st.number_input("Monthly visitors", min_value=0, value=DEFAULT_MONTHLY_VISITORS, step=10_000)
    revenue = st.number_input("Revenue per conversion ($)", min_value=0.0, value=DEFAULT_REVENUE_PER_CONVERSION, step=5.0)
    ship_threshold = st.number_input("Ship above lift", value=SHIP_LIFT_THRESHOLD, step=0.001, format="%.4f")
    borderline_threshold = st.number_input("Borderline above lift", value=BORDERLINE_LIFT_THRESHOLD, step=0.001, format="%.4f")

    name = st.text_input("Run name", value=f"Readout {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    save_history = st.checkbox("Save run to history (SQLite)", value=False)


def _fmt(value, spec: str) -> str:
    return "n/a" if value is None else format(value, spec)


def render_report(raw: pd.DataFrame) -> None:
    try:
        policy = RecommendationPolicy(float(ship_threshold), float(borderline_threshold))
        report = run_analysis(raw, int(monthly_visitors), float(revenue), policy)
    except ConfigurationError as exc:
        st.error(str(exc))
        return

    summary = report.summary
    sig = report.significance

    # --- data quality ---
    st.subheader("Data quality")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Raw records", f"{report.cleaning.raw_records:,}")
    c2.metric("Mismatched dropped", f"{report.cleaning.mismatched_dropped:,}")
    c3.metric("Duplicates dropped", f"{report.cleaning.duplicates_dropped:,}")
    c4.metric("Clean users", f"{report.cleaning.clean_records:,}")

    with st.expander("Diagnostics"):
        st.markdown("**Group balance**")
        st.dataframe(balance_table(report.diagnostics), use_container_width=True, hide_index=True)
        st.markdown("**Mismatched assignments**")
        st.dataframe(report.diagnostics.mismatched, use_container_width=True, hide_index=True)
        st.markdown("**Users in both groups**")
        st.dataframe(report.diagnostics.cross_group, use_container_width=True, hide_index=True)
        st.markdown("**Duplicate users within a group**")
        st.dataframe(report.diagnostics.duplicates, use_container_width=True, hide_index=True)

    # --- top metrics ---
    st.subheader("Results")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Control conversion", _fmt(summary.control_rate, ".2%"), f"{summary.control_conversions}/{summary.control_users}")
    c2.metric("Treatment conversion", _fmt(summary.treatment_rate, ".2%"), f"{summary.treatment_conversions}/{summary.treatment_users}")
    c3.metric("Absolute lift", _fmt(summary.absolute_lift, "+.4%"))
    c4.metric("Relative lift", _fmt(summary.relative_lift, "+.2%"))

    c5, c6, c7, c8 = st.columns(4)
    c5.metric("z-score", _fmt(sig.z_score if sig else None, ".3f"))
    c6.metric("Verdict", sig.verdict if sig else "n/a")
    c7.metric("Test window", f"{summary.test_duration_days or 0} days")
    c8.metric("Annual impact", _fmt(report.impact.incremental_annual_revenue, ",.0f"))

    if sig is None:
        st.warning("One group has no users; the z-test cannot run.")
    elif sig.warning:
        st.warning(sig.warning)
    st.caption(sig.method_note if sig else "")

    rec = report.impact.recommendation or "no recommendation"
    message = f"{summary.summary_finding}. Recommendation: {rec}."
    if rec.startswith("ship"):
        st.success(message)
    else:
        st.warning(message)

    st.dataframe(conversion_table(report.overall), use_container_width=True, hide_index=True)
    st.dataframe(significance_table(sig), use_container_width=True, hide_index=True)

    # --- trends ---
    daily = daily_table(report.daily)
    left, right = st.columns(2)
    with left:
        st.markdown("#### Cumulative conversion rate")
        fig = px.line(daily, x="test_date", y="cumulative_conversion_pct", color="group_name", markers=True)
        fig.update_layout(yaxis_title="%", height=340)
        st.plotly_chart(fig, use_container_width=True)
    with right:
        st.markdown("#### Daily conversion rate")
        fig2 = px.line(daily, x="test_date", y="daily_conversion_pct", color="group_name", markers=True)
        fig2.update_layout(yaxis_title="%", height=340)
        st.plotly_chart(fig2, use_container_width=True)

    st.markdown("#### Weekly consistency")
    st.dataframe(weekly_table(report.weekly), use_container_width=True, hide_index=True)

    with st.expander("Daily detail"):
        st.dataframe(daily, use_container_width=True, hide_index=True)

    # --- impact & summary ---
    st.subheader("Business impact")
    st.dataframe(impact_table(report.impact), use_container_width=True, hide_index=True)
    st.subheader("Executive summary")
    st.dataframe(summary_table(summary), use_container_width=True, hide_index=True)

    st.download_button(
        label="Download raw CSV",
        data=export_to_csv(raw).encode("utf-8"),
        file_name="ab_data.csv",
        mime="text/csv",
    )

    if save_history:
        save_visit_records(raw)
        run_id = save_analysis_run(name.strip() or "Readout", summary, report.impact)
        st.info(f"Saved as run #{run_id} (abreadout.db).")


if raw is None:
    st.info("Choose a data source in the sidebar.")
else:
    render_report(raw)

runs = get_analysis_runs(limit=10)
if runs:
    st.subheader("History")
    st.dataframe(pd.DataFrame(runs), use_container_width=True, hide_index=True)
